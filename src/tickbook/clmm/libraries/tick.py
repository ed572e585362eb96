import functools

from tickbook.constants import MAX_UINT128
from tickbook.clmm.libraries.tick_math import MAX_TICK, MIN_TICK


@functools.cache
def tick_spacing_to_max_liquidity_per_tick(tick_spacing: int) -> int:
    # Round the lower bound toward zero, matching integer division of a negative tick
    min_tick = -(-MIN_TICK // tick_spacing) * tick_spacing
    max_tick = (MAX_TICK // tick_spacing) * tick_spacing
    num_ticks = (max_tick - min_tick) // tick_spacing + 1
    return MAX_UINT128 // num_ticks
