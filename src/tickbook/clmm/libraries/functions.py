from tickbook.constants import MAX_INT128, MIN_INT128
from tickbook.exceptions import LiquidityOverflow, TickbookValueError


def mulmod(x: int, y: int, k: int) -> int:
    if k == 0:
        raise TickbookValueError(message="division by zero")
    return (x * y) % k


# Overflow checks that raise instead of silently wrapping to the narrower type
def to_int128(x: int, aggregate: str = "int128") -> int:
    if not (MIN_INT128 <= x <= MAX_INT128):
        raise LiquidityOverflow(
            aggregate=aggregate,
            value=x,
            limit=MAX_INT128 if x > 0 else MIN_INT128,
        )
    return x
