from tickbook.constants import MAX_UINT256, MIN_UINT256
from tickbook.clmm.libraries.functions import mulmod
from tickbook.exceptions import TickbookValueError


def muldiv(
    a: int,
    b: int,
    denominator: int,
) -> int:
    """
    Calculate a * b / denominator, rounding down.

    Python integers do not overflow, so the 512-bit intermediate product needs no special handling.
    The inputs and the result are checked against the uint256 range.
    """

    if not (MIN_UINT256 <= a <= MAX_UINT256):
        raise TickbookValueError(message="Invalid value for a.")
    if not (MIN_UINT256 <= b <= MAX_UINT256):
        raise TickbookValueError(message="Invalid value for b.")
    if not (MIN_UINT256 <= denominator <= MAX_UINT256):
        raise TickbookValueError(message="Invalid value for denominator.")

    if denominator == 0:
        raise TickbookValueError(message="DIVISION BY ZERO")

    result = (a * b) // denominator

    if not (MIN_UINT256 <= result <= MAX_UINT256):
        raise TickbookValueError(message="Invalid result, does not fit in uint256")

    return result


def muldiv_rounding_up(a: int, b: int, denominator: int) -> int:
    result = muldiv(a, b, denominator)
    if mulmod(a, b, denominator) > 0:
        # must be less than max uint256 since we're rounding up
        if not (MIN_UINT256 <= result < MAX_UINT256):
            raise TickbookValueError(message="Rounded result does not fit in uint256")
        return result + 1
    return result
