from typing import Any

from tickbook.exceptions.base import TickbookError


class TickMathError(TickbookError):
    """
    Exception raised inside tick and price conversion helpers.
    """


class OutOfRange(TickMathError):
    """
    Raised when a tick or sqrt price lies outside the supported domain.
    """

    def __init__(self, value: int, lower: int, upper: int) -> None:
        self.value = value
        self.lower = lower
        self.upper = upper
        super().__init__(message=f"Value {value} outside of range [{lower}, {upper}]")

    def __reduce__(self) -> tuple[Any, ...]:
        # Pickling will raise an exception if a reduction method is not defined
        return self.__class__, (self.value, self.lower, self.upper)


class InvalidTick(TickMathError):
    """
    Raised when a tick is not aligned to the pool's tick spacing.
    """

    def __init__(self, tick: int, tick_spacing: int) -> None:
        self.tick = tick
        self.tick_spacing = tick_spacing
        super().__init__(message=f"Tick {tick} is not a multiple of tick spacing {tick_spacing}")

    def __reduce__(self) -> tuple[Any, ...]:
        return self.__class__, (self.tick, self.tick_spacing)
