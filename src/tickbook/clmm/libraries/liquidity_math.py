from tickbook.constants import MAX_INT128, MAX_UINT128, MIN_INT128, MIN_UINT128
from tickbook.clmm.libraries.constants import Q64
from tickbook.clmm.libraries.full_math import muldiv
from tickbook.clmm.libraries.sqrt_price_math import get_amount0_delta, get_amount1_delta
from tickbook.exceptions import InsufficientLiquidity, LiquidityOverflow


def add_delta(x: int, y: int, aggregate: str = "liquidity") -> int:
    """
    Add a signed int128 delta to an unsigned uint128 liquidity value.

    An underflow raises `InsufficientLiquidity` and an overflow raises `LiquidityOverflow`. Both
    identify the aggregate being modified through the `aggregate` argument.
    """

    if not (MIN_UINT128 <= x <= MAX_UINT128):
        raise LiquidityOverflow(aggregate=aggregate, value=x, limit=MAX_UINT128)
    if not (MIN_INT128 <= y <= MAX_INT128):
        raise LiquidityOverflow(
            aggregate="liquidity_delta",
            value=y,
            limit=MAX_INT128 if y > 0 else MIN_INT128,
        )

    z = x + y

    if z < MIN_UINT128:
        raise InsufficientLiquidity(aggregate=aggregate, liquidity=x, delta=y)
    if z > MAX_UINT128:
        raise LiquidityOverflow(aggregate=aggregate, value=z, limit=MAX_UINT128)

    return z


def get_amounts_for_liquidity(
    sqrt_price_x64: int,
    sqrt_price_a_x64: int,
    sqrt_price_b_x64: int,
    liquidity: int,
    round_up: bool,
) -> tuple[int, int]:
    """
    Computes the token0 and token1 amounts represented by `liquidity` over the price range
    [sqrt_price_a_x64, sqrt_price_b_x64] at the current price `sqrt_price_x64`.

    Below the range the position is held entirely in token0, above it entirely in token1.
    """

    if sqrt_price_a_x64 > sqrt_price_b_x64:
        sqrt_price_a_x64, sqrt_price_b_x64 = sqrt_price_b_x64, sqrt_price_a_x64

    if sqrt_price_x64 <= sqrt_price_a_x64:
        return (
            get_amount0_delta(sqrt_price_a_x64, sqrt_price_b_x64, liquidity, round_up),
            0,
        )
    if sqrt_price_x64 < sqrt_price_b_x64:
        return (
            get_amount0_delta(sqrt_price_x64, sqrt_price_b_x64, liquidity, round_up),
            get_amount1_delta(sqrt_price_a_x64, sqrt_price_x64, liquidity, round_up),
        )
    return (
        0,
        get_amount1_delta(sqrt_price_a_x64, sqrt_price_b_x64, liquidity, round_up),
    )


def get_liquidity_for_amount0(sqrt_price_a_x64: int, sqrt_price_b_x64: int, amount0: int) -> int:
    if sqrt_price_a_x64 > sqrt_price_b_x64:
        sqrt_price_a_x64, sqrt_price_b_x64 = sqrt_price_b_x64, sqrt_price_a_x64
    intermediate = muldiv(sqrt_price_a_x64, sqrt_price_b_x64, Q64)
    return muldiv(amount0, intermediate, sqrt_price_b_x64 - sqrt_price_a_x64)


def get_liquidity_for_amount1(sqrt_price_a_x64: int, sqrt_price_b_x64: int, amount1: int) -> int:
    if sqrt_price_a_x64 > sqrt_price_b_x64:
        sqrt_price_a_x64, sqrt_price_b_x64 = sqrt_price_b_x64, sqrt_price_a_x64
    return muldiv(amount1, Q64, sqrt_price_b_x64 - sqrt_price_a_x64)


def get_liquidity_for_amounts(
    sqrt_price_x64: int,
    sqrt_price_a_x64: int,
    sqrt_price_b_x64: int,
    amount0: int,
    amount1: int,
) -> int:
    """
    Computes the maximum liquidity that can be deposited over the price range with the given token
    amounts at the current price.
    """

    if sqrt_price_a_x64 > sqrt_price_b_x64:
        sqrt_price_a_x64, sqrt_price_b_x64 = sqrt_price_b_x64, sqrt_price_a_x64

    if sqrt_price_x64 <= sqrt_price_a_x64:
        return get_liquidity_for_amount0(sqrt_price_a_x64, sqrt_price_b_x64, amount0)
    if sqrt_price_x64 < sqrt_price_b_x64:
        return min(
            get_liquidity_for_amount0(sqrt_price_x64, sqrt_price_b_x64, amount0),
            get_liquidity_for_amount1(sqrt_price_a_x64, sqrt_price_x64, amount1),
        )
    return get_liquidity_for_amount1(sqrt_price_a_x64, sqrt_price_b_x64, amount1)
