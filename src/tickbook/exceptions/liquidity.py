from typing import Any

from eth_typing import ChecksumAddress

from tickbook.exceptions.base import TickbookError


class LiquidityError(TickbookError):
    """
    Exception raised while validating or applying a liquidity mutation.
    """


class InvalidRange(LiquidityError):
    """
    Raised when a position's tick bounds are malformed.
    """

    def __init__(self, tick_lower: int, tick_upper: int, reason: str) -> None:
        self.tick_lower = tick_lower
        self.tick_upper = tick_upper
        self.reason = reason
        super().__init__(message=f"Invalid tick range [{tick_lower}, {tick_upper}): {reason}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.tick_lower, self.tick_upper, self.reason)


class InsufficientLiquidity(LiquidityError):
    """
    Raised when a negative delta would drive a liquidity aggregate below zero.
    """

    def __init__(self, aggregate: str, liquidity: int, delta: int) -> None:
        self.aggregate = aggregate
        self.liquidity = liquidity
        self.delta = delta
        super().__init__(
            message=f"Insufficient liquidity for {aggregate}: held {liquidity}, delta {delta}"
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.aggregate, self.liquidity, self.delta)


class LiquidityOverflow(LiquidityError):
    """
    Raised when a liquidity aggregate would exceed its representable or permitted width.
    """

    def __init__(self, aggregate: str, value: int, limit: int) -> None:
        self.aggregate = aggregate
        self.value = value
        self.limit = limit
        super().__init__(message=f"Liquidity overflow for {aggregate}: {value} exceeds {limit}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.aggregate, self.value, self.limit)


class SlippageExceeded(LiquidityError):
    """
    Raised when the token amount realized at the current pool price falls outside the limit
    supplied by the caller. For liquidity increases the limit is a maximum deposit, for decreases it
    is a minimum withdrawal.
    """

    def __init__(self, token: int, amount: int, limit: int) -> None:
        self.token = token
        self.amount = amount
        self.limit = limit
        super().__init__(
            message=f"Slippage exceeded for token{token}: amount {amount}, limit {limit}"
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.token, self.amount, self.limit)


class PositionOwnerMismatch(LiquidityError):
    """
    Raised when a mutation is requested by an identity that does not own the position.
    """

    def __init__(self, position: ChecksumAddress, owner: ChecksumAddress) -> None:
        self.position = position
        self.owner = owner
        super().__init__(message=f"Position {position} is not owned by {owner}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.position, self.owner)
