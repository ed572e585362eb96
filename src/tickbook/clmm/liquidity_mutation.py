import dataclasses

from tickbook.clmm.functions import generate_tick_array_address, get_amounts_for_liquidity_delta
from tickbook.clmm.libraries.functions import to_int128
from tickbook.clmm.libraries.liquidity_math import add_delta
from tickbook.clmm.libraries.tick import tick_spacing_to_max_liquidity_per_tick
from tickbook.clmm.libraries.tick_array import (
    check_tick,
    get_tick_array_start_index,
    get_tick_offset_in_array,
)
from tickbook.clmm.tick_array_store import TickArraySource
from tickbook.clmm.types import (
    LiquidityDelta,
    LiquidityMutationResult,
    PersonalPositionState,
    PoolState,
    Tick,
    TickArrayState,
    TickState,
    TickUpdate,
)
from tickbook.constants import TICK_ARRAY_SIZE
from tickbook.exceptions import (
    InvalidRange,
    InvalidTick,
    LiquidityOverflow,
    SlippageExceeded,
    TickArrayNotFound,
    TickbookValueError,
)


def validate_position_range(tick_lower: Tick, tick_upper: Tick, tick_spacing: int) -> None:
    """
    Check that a position range is well-formed for a pool with the given tick spacing.

    Misaligned or inverted bounds raise `InvalidRange`, bounds outside the tick domain raise
    `OutOfRange`.
    """

    if tick_lower >= tick_upper:
        raise InvalidRange(
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            reason="tick_lower must be less than tick_upper",
        )

    for tick in (tick_lower, tick_upper):
        try:
            check_tick(tick, tick_spacing)
        except InvalidTick:
            raise InvalidRange(
                tick_lower=tick_lower,
                tick_upper=tick_upper,
                reason=f"tick {tick} is not a multiple of tick spacing {tick_spacing}",
            ) from None


def _update_tick(
    tick: TickState,
    liquidity_delta: LiquidityDelta,
    *,
    upper: bool,
    max_liquidity_per_tick: int,
) -> TickState:
    liquidity_gross_after = add_delta(tick.liquidity_gross, liquidity_delta, "liquidity_gross")
    if liquidity_delta > 0 and liquidity_gross_after > max_liquidity_per_tick:
        raise LiquidityOverflow(
            aggregate="liquidity_gross",
            value=liquidity_gross_after,
            limit=max_liquidity_per_tick,
        )

    # Liquidity positions include the lower tick, but exclude the upper tick. Crossing the upper
    # tick going up removes the position's liquidity from the active set.
    liquidity_net_after = to_int128(
        tick.liquidity_net - liquidity_delta if upper else tick.liquidity_net + liquidity_delta,
        "liquidity_net",
    )

    return TickState(
        tick=tick.tick,
        liquidity_net=liquidity_net_after,
        liquidity_gross=liquidity_gross_after,
        initialized=liquidity_gross_after != 0,
    )


def _resolve_tick_array(
    tick_arrays: TickArraySource,
    pool: PoolState,
    tick: Tick,
    tick_array_size: int,
) -> TickArrayState:
    start_tick_index = get_tick_array_start_index(tick, pool.tick_spacing, tick_array_size)
    address = generate_tick_array_address(pool.address, start_tick_index)
    if address not in tick_arrays:
        raise TickArrayNotFound(address)

    tick_array = tick_arrays[address]
    if len(tick_array.ticks) != tick_array_size:
        raise TickbookValueError(
            message=f"Tick array {address} holds {len(tick_array.ticks)} ticks, expected {tick_array_size}"  # noqa: E501
        )
    return tick_array


def modify_liquidity(
    pool: PoolState,
    position: PersonalPositionState,
    tick_arrays: TickArraySource,
    liquidity_delta: LiquidityDelta,
    amount_0_limit: int,
    amount_1_limit: int,
    tick_array_size: int = TICK_ARRAY_SIZE,
) -> LiquidityMutationResult:
    """
    Compute the effect of adding a signed liquidity delta to a position.

    The pool's active liquidity, the position's liquidity and both boundary tick records are
    updated together. Nothing passed in is modified: the new states are returned, and the caller
    commits them atomically or not at all.

    For an increase, `amount_0_limit` and `amount_1_limit` are the maximum token amounts the caller
    will deposit. For a decrease they are the minimum amounts the caller will accept. A realized
    amount outside either limit raises `SlippageExceeded`.
    """

    # Validate
    if position.pool != pool.address:
        raise TickbookValueError(
            message=f"Position {position.address} belongs to pool {position.pool}, not {pool.address}"  # noqa: E501
        )
    validate_position_range(position.tick_lower, position.tick_upper, pool.tick_spacing)
    to_int128(liquidity_delta, "liquidity_delta")
    position_liquidity_after = add_delta(position.liquidity, liquidity_delta, "position.liquidity")

    # Resolve the arrays holding both boundary ticks. They may be the same array.
    lower_array = _resolve_tick_array(tick_arrays, pool, position.tick_lower, tick_array_size)
    upper_array = _resolve_tick_array(tick_arrays, pool, position.tick_upper, tick_array_size)

    # Update the tick boundaries. The offsets differ even when the arrays are shared, so neither
    # update reads the other's result.
    max_liquidity_per_tick = tick_spacing_to_max_liquidity_per_tick(pool.tick_spacing)
    tick_updates: list[TickUpdate] = []
    for tick, tick_array, upper in (
        (position.tick_lower, lower_array, False),
        (position.tick_upper, upper_array, True),
    ):
        offset = get_tick_offset_in_array(tick, pool.tick_spacing, tick_array_size)
        before = tick_array.ticks[offset]
        assert before.tick == tick, (
            f"Tick array {tick_array.address} slot {offset} holds tick {before.tick}, expected {tick}"  # noqa: E501
        )
        tick_updates.append(
            TickUpdate(
                address=tick_array.address,
                offset=offset,
                before=before,
                after=_update_tick(
                    before,
                    liquidity_delta,
                    upper=upper,
                    max_liquidity_per_tick=max_liquidity_per_tick,
                ),
            )
        )

    position_after = dataclasses.replace(position, liquidity=position_liquidity_after)

    # Adjust in-range liquidity if the modified region includes the active tick
    pool_after = pool
    if position.in_range(pool.tick_current):
        pool_after = dataclasses.replace(
            pool,
            liquidity=add_delta(pool.liquidity, liquidity_delta, "pool.liquidity"),
        )

    # Enforce the caller's token amount bounds at the current price
    amount0, amount1 = get_amounts_for_liquidity_delta(
        pool, position.tick_lower, position.tick_upper, liquidity_delta
    )
    for token, amount, limit in ((0, amount0, amount_0_limit), (1, amount1, amount_1_limit)):
        if liquidity_delta > 0 and amount > limit:
            raise SlippageExceeded(token=token, amount=amount, limit=limit)
        if liquidity_delta < 0 and amount < limit:
            raise SlippageExceeded(token=token, amount=amount, limit=limit)

    return LiquidityMutationResult(
        pool=pool_after,
        position=position_after,
        tick_updates=tuple(tick_updates),
        amount_0=amount0,
        amount_1=amount1,
    )
