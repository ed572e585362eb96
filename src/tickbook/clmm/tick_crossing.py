import dataclasses
from collections.abc import Iterable

from tickbook.clmm.libraries.liquidity_math import add_delta
from tickbook.clmm.libraries.tick_math import get_tick_at_sqrt_price
from tickbook.clmm.types import PoolState, SqrtPriceX64, TickState


def cross_ticks(
    pool: PoolState,
    ticks: Iterable[TickState],
    sqrt_price_x64: SqrtPriceX64,
) -> PoolState:
    """
    Move the pool to a new sqrt price, applying the net liquidity of every initialized tick crossed
    along the way.

    Moving up crosses ticks in (tick_current, new_tick] and adds their net liquidity. Moving down
    crosses ticks in (new_tick, tick_current] and subtracts it. The ticks passed in may include
    ticks outside the crossed interval; they are ignored.
    """

    new_tick = get_tick_at_sqrt_price(sqrt_price_x64)
    old_tick = pool.tick_current

    liquidity = pool.liquidity
    if new_tick > old_tick:
        for tick in sorted(ticks, key=lambda t: t.tick):
            if tick.initialized and old_tick < tick.tick <= new_tick:
                liquidity = add_delta(liquidity, tick.liquidity_net, "pool.liquidity")
    elif new_tick < old_tick:
        for tick in sorted(ticks, key=lambda t: t.tick, reverse=True):
            if tick.initialized and new_tick < tick.tick <= old_tick:
                liquidity = add_delta(liquidity, -tick.liquidity_net, "pool.liquidity")

    return dataclasses.replace(
        pool,
        tick_current=new_tick,
        sqrt_price_x64=sqrt_price_x64,
        liquidity=liquidity,
    )
