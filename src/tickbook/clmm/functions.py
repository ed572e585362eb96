import math
from decimal import Decimal
from fractions import Fraction

import eth_abi.abi
from eth_typing import ChecksumAddress
from eth_utils.crypto import keccak
from hexbytes import HexBytes

from tickbook.checksum_cache import get_checksum_address
from tickbook.clmm.libraries.liquidity_math import get_amounts_for_liquidity
from tickbook.clmm.libraries.tick_math import get_sqrt_price_at_tick, get_tick_at_sqrt_price
from tickbook.clmm.types import PoolState, SqrtPriceX64, Tick, Token0Amount, Token1Amount
from tickbook.exceptions import TickbookValueError

POOL_SEED = b"pool"
POSITION_SEED = b"position"
TICK_ARRAY_SEED = b"tick_array"


def _derive_address(seed: bytes, types: tuple[str, ...], args: tuple[object, ...]) -> ChecksumAddress:
    # The last 20 bytes of the keccak hash becomes the address
    digest = keccak(HexBytes(0xFF) + seed + eth_abi.abi.encode(types=types, args=args))
    return get_checksum_address(HexBytes(digest[-20:]).to_0x_hex())


def generate_pool_address(token0: str, token1: str, tick_spacing: int) -> ChecksumAddress:
    """
    Generate the deterministic pool identifier from its token pair and tick spacing.
    """

    return _derive_address(
        POOL_SEED,
        ("address", "address", "uint16"),
        (get_checksum_address(token0), get_checksum_address(token1), tick_spacing),
    )


def generate_position_address(
    pool: str,
    owner: str,
    tick_lower: Tick,
    tick_upper: Tick,
) -> ChecksumAddress:
    """
    Generate the deterministic position identifier for an owner's range in a pool.
    """

    return _derive_address(
        POSITION_SEED,
        ("address", "address", "int32", "int32"),
        (get_checksum_address(pool), get_checksum_address(owner), tick_lower, tick_upper),
    )


def generate_tick_array_address(pool: str, start_tick_index: int) -> ChecksumAddress:
    """
    Generate the tick array identifier. It is fully determined by the pool and the array's start
    index, so callers can locate an array without enumerating the store.
    """

    return _derive_address(
        TICK_ARRAY_SEED,
        ("address", "int32"),
        (get_checksum_address(pool), start_tick_index),
    )


def sqrt_price_x64_to_price(
    sqrt_price_x64: SqrtPriceX64,
    decimals0: int,
    decimals1: int,
) -> Fraction:
    """
    Convert a Q64.64 sqrt price into the nominal price of token0 in units of token1, corrected for
    the decimal place values of both tokens.
    """

    return Fraction(sqrt_price_x64**2, 2**128) * Fraction(10) ** (decimals0 - decimals1)


def price_to_sqrt_price_x64(
    price: Fraction | Decimal | int | str,
    decimals0: int,
    decimals1: int,
) -> SqrtPriceX64:
    """
    Convert a nominal price into a Q64.64 sqrt price, rounding down.

    This is the exact inverse of `sqrt_price_x64_to_price` for any price it produces.
    """

    raw_price = Fraction(price) / Fraction(10) ** (decimals0 - decimals1)
    if raw_price <= 0:
        raise TickbookValueError(message=f"Price must be positive, got {price}")
    return math.isqrt(math.floor(raw_price * 2**128))


def get_tick_at_price(
    price: Fraction | Decimal | int | str,
    decimals0: int,
    decimals1: int,
) -> Tick:
    """
    Get the greatest tick whose price is less than or equal to the given nominal price.
    """

    return get_tick_at_sqrt_price(price_to_sqrt_price_x64(price, decimals0, decimals1))


def get_price_at_tick(tick: Tick, decimals0: int, decimals1: int) -> Fraction:
    return sqrt_price_x64_to_price(get_sqrt_price_at_tick(tick), decimals0, decimals1)


def get_amounts_for_liquidity_delta(
    pool: PoolState,
    tick_lower: Tick,
    tick_upper: Tick,
    liquidity_delta: int,
) -> tuple[Token0Amount, Token1Amount]:
    """
    Get the token amounts moved by a liquidity delta at the pool's current price. Deposits are
    rounded up and withdrawals rounded down, so rounding always favors the pool.
    """

    return get_amounts_for_liquidity(
        sqrt_price_x64=pool.sqrt_price_x64,
        sqrt_price_a_x64=get_sqrt_price_at_tick(tick_lower),
        sqrt_price_b_x64=get_sqrt_price_at_tick(tick_upper),
        liquidity=abs(liquidity_delta),
        round_up=liquidity_delta > 0,
    )


def get_amount_limits_with_slippage(
    pool: PoolState,
    tick_lower: Tick,
    tick_upper: Tick,
    liquidity_delta: int,
    slippage: Fraction | Decimal | float | str,
) -> tuple[Token0Amount, Token1Amount]:
    """
    Compute the token amount limits to submit with a liquidity mutation, given the pool state read
    by the client and a fractional slippage tolerance (e.g. 0.005 for 0.5%).

    An increase returns maximum deposits scaled up by the tolerance, a decrease returns minimum
    withdrawals scaled down by it.
    """

    tolerance = Fraction(slippage)
    if not (0 <= tolerance <= 1):
        raise TickbookValueError(message=f"Slippage must be within [0, 1], got {slippage}")

    amount0, amount1 = get_amounts_for_liquidity_delta(pool, tick_lower, tick_upper, liquidity_delta)

    if liquidity_delta > 0:
        return (
            math.ceil(amount0 * (1 + tolerance)),
            math.ceil(amount1 * (1 + tolerance)),
        )
    return (
        math.floor(amount0 * (1 - tolerance)),
        math.floor(amount1 * (1 - tolerance)),
    )
