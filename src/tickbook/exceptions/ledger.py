from typing import Any

from eth_typing import ChecksumAddress

from tickbook.exceptions.base import TickbookError


class LedgerError(TickbookError):
    """
    Exception raised by the liquidity ledger.
    """


class Conflict(LedgerError):
    """
    Raised when a mutation was computed against a pool state that is no longer current. The caller
    should re-fetch state and retry the whole operation.
    """

    retryable = True

    def __init__(
        self,
        pool: ChecksumAddress,
        expected_version: int,
        actual_version: int,
    ) -> None:
        self.pool = pool
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            message=f"Pool {pool} changed: expected version {expected_version}, found {actual_version}"  # noqa: E501
        )

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool, self.expected_version, self.actual_version)


class PoolAlreadyExists(LedgerError):
    def __init__(self, pool: ChecksumAddress) -> None:
        self.pool = pool
        super().__init__(message=f"Pool {pool} already exists")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool,)


class PositionAlreadyExists(LedgerError):
    def __init__(self, position: ChecksumAddress) -> None:
        self.position = position
        super().__init__(message=f"Position {position} already exists")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.position,)


class UnknownPool(LedgerError):
    """
    Raised when a query or mutation references a pool the ledger does not hold.
    """

    def __init__(self, pool: ChecksumAddress) -> None:
        self.pool = pool
        super().__init__(message=f"Unknown pool {pool}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.pool,)


class UnknownPosition(LedgerError):
    """
    Raised when a query or mutation references a position the ledger does not hold.
    """

    def __init__(self, position: ChecksumAddress) -> None:
        self.position = position
        super().__init__(message=f"Unknown position {position}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.position,)
