import functools

from tickbook.clmm.libraries._config import LIB_CACHE_SIZE
from tickbook.clmm.libraries.tick_math import MAX_TICK, MIN_TICK
from tickbook.constants import TICK_ARRAY_SIZE
from tickbook.exceptions import InvalidTick, OutOfRange, TickbookValueError

"""
Deterministic addressing of ticks within fixed-size tick arrays.

A tick array holds `tick_array_size` consecutive initializable ticks, so a single array spans
`tick_spacing * tick_array_size` tick indices. Array boundaries are aligned to multiples of that
span, rounding toward negative infinity.
"""


def check_tick(tick: int, tick_spacing: int) -> None:
    if tick_spacing <= 0:
        raise TickbookValueError(message=f"Invalid tick spacing {tick_spacing}")
    if not (MIN_TICK <= tick <= MAX_TICK):
        raise OutOfRange(value=tick, lower=MIN_TICK, upper=MAX_TICK)
    if tick % tick_spacing != 0:
        raise InvalidTick(tick=tick, tick_spacing=tick_spacing)


def ticks_in_array(tick_spacing: int, tick_array_size: int = TICK_ARRAY_SIZE) -> int:
    return tick_spacing * tick_array_size


@functools.lru_cache(maxsize=LIB_CACHE_SIZE)
def get_tick_array_start_index(
    tick: int,
    tick_spacing: int,
    tick_array_size: int = TICK_ARRAY_SIZE,
) -> int:
    """
    Get the first tick index of the array holding `tick`.
    """

    check_tick(tick, tick_spacing)
    span = ticks_in_array(tick_spacing, tick_array_size)
    # Python floor division rounds toward negative infinity, so negative ticks need no adjustment
    return (tick // span) * span


@functools.lru_cache(maxsize=LIB_CACHE_SIZE)
def get_tick_offset_in_array(
    tick: int,
    tick_spacing: int,
    tick_array_size: int = TICK_ARRAY_SIZE,
) -> int:
    """
    Get the slot of `tick` within its tick array, in the range [0, tick_array_size).
    """

    start_index = get_tick_array_start_index(tick, tick_spacing, tick_array_size)
    return ((tick - start_index) // tick_spacing) % tick_array_size


def get_tick_array_start_indexes(
    tick_lower: int,
    tick_upper: int,
    tick_spacing: int,
    tick_array_size: int = TICK_ARRAY_SIZE,
) -> tuple[int, ...]:
    """
    Get the start index of every tick array spanned by the range [tick_lower, tick_upper], in
    ascending order.
    """

    if tick_lower > tick_upper:
        raise TickbookValueError(message=f"tick_lower {tick_lower} > tick_upper {tick_upper}")

    first = get_tick_array_start_index(tick_lower, tick_spacing, tick_array_size)
    last = get_tick_array_start_index(tick_upper, tick_spacing, tick_array_size)
    return tuple(range(first, last + 1, ticks_in_array(tick_spacing, tick_array_size)))


def count_tick_arrays_in_range(
    tick_lower: int,
    tick_upper: int,
    tick_spacing: int,
    tick_array_size: int = TICK_ARRAY_SIZE,
) -> int:
    first = get_tick_array_start_index(tick_lower, tick_spacing, tick_array_size)
    last = get_tick_array_start_index(tick_upper, tick_spacing, tick_array_size)
    return (last - first) // ticks_in_array(tick_spacing, tick_array_size) + 1
