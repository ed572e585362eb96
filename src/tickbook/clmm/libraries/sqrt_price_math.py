import functools

from tickbook.clmm.libraries._config import LIB_CACHE_SIZE
from tickbook.clmm.libraries.constants import Q64, Q64_RESOLUTION
from tickbook.clmm.libraries.full_math import muldiv, muldiv_rounding_up
from tickbook.clmm.libraries.unsafe_math import div_rounding_up
from tickbook.exceptions import TickbookValueError

"""
Token amount deltas between two Q64.64 sqrt prices for a given liquidity.
"""


@functools.lru_cache(maxsize=LIB_CACHE_SIZE)
def get_amount0_delta(
    sqrt_price_a_x64: int,
    sqrt_price_b_x64: int,
    liquidity: int,
    round_up: bool | None = None,
) -> int:
    # Passing `round_up` returns the unsigned amount for a non-negative liquidity. Omitting it
    # returns a signed amount for a signed liquidity, rounding up for deposits (positive liquidity)
    # and down for withdrawals (negative liquidity).

    if round_up is not None:
        if sqrt_price_a_x64 > sqrt_price_b_x64:
            sqrt_price_a_x64, sqrt_price_b_x64 = sqrt_price_b_x64, sqrt_price_a_x64

        if not (sqrt_price_a_x64 > 0):
            raise TickbookValueError(message="required: sqrt_price_a_x64 > 0")

        numerator1 = liquidity << Q64_RESOLUTION
        numerator2 = sqrt_price_b_x64 - sqrt_price_a_x64

        return (
            div_rounding_up(
                muldiv_rounding_up(numerator1, numerator2, sqrt_price_b_x64),
                sqrt_price_a_x64,
            )
            if round_up
            else muldiv(numerator1, numerator2, sqrt_price_b_x64) // sqrt_price_a_x64
        )

    return (
        -get_amount0_delta(sqrt_price_a_x64, sqrt_price_b_x64, -liquidity, False)
        if liquidity < 0
        else get_amount0_delta(sqrt_price_a_x64, sqrt_price_b_x64, liquidity, True)
    )


@functools.lru_cache(maxsize=LIB_CACHE_SIZE)
def get_amount1_delta(
    sqrt_price_a_x64: int,
    sqrt_price_b_x64: int,
    liquidity: int,
    round_up: bool | None = None,
) -> int:
    if round_up is not None:
        if sqrt_price_a_x64 > sqrt_price_b_x64:
            sqrt_price_a_x64, sqrt_price_b_x64 = sqrt_price_b_x64, sqrt_price_a_x64

        return (
            muldiv_rounding_up(liquidity, sqrt_price_b_x64 - sqrt_price_a_x64, Q64)
            if round_up
            else muldiv(liquidity, sqrt_price_b_x64 - sqrt_price_a_x64, Q64)
        )

    return (
        -get_amount1_delta(sqrt_price_a_x64, sqrt_price_b_x64, -liquidity, False)
        if liquidity < 0
        else get_amount1_delta(sqrt_price_a_x64, sqrt_price_b_x64, liquidity, True)
    )
