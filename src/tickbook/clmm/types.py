import dataclasses
from typing import Self

import pydantic
from eth_typing import ChecksumAddress

from tickbook.constants import TICK_ARRAY_SIZE
from tickbook.validation.fixed_width import ValidatedInt32, ValidatedInt128, ValidatedUint128

type Liquidity = int
type LiquidityDelta = int
type LiquidityGross = int
type LiquidityNet = int
type SqrtPriceX64 = int
type Tick = int
type TickArrayStartIndex = int
type Token0Amount = int
type Token1Amount = int


class TickState(pydantic.BaseModel, frozen=True):
    tick: ValidatedInt32
    liquidity_net: ValidatedInt128 = 0
    liquidity_gross: ValidatedUint128 = 0
    initialized: bool = False


@dataclasses.dataclass(slots=True, eq=False)
class TickArrayState:
    """
    A fixed-size run of tick records. Slot `i` holds the tick at
    `start_tick_index + i * tick_spacing`.
    """

    address: ChecksumAddress
    pool: ChecksumAddress
    start_tick_index: TickArrayStartIndex
    tick_spacing: int
    ticks: list[TickState]
    initialized_tick_count: int = 0

    @classmethod
    def empty(
        cls,
        *,
        address: ChecksumAddress,
        pool: ChecksumAddress,
        start_tick_index: TickArrayStartIndex,
        tick_spacing: int,
        tick_array_size: int = TICK_ARRAY_SIZE,
    ) -> Self:
        return cls(
            address=address,
            pool=pool,
            start_tick_index=start_tick_index,
            tick_spacing=tick_spacing,
            ticks=[
                TickState(tick=start_tick_index + offset * tick_spacing)
                for offset in range(tick_array_size)
            ],
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TickArrayState):
            return NotImplemented
        return (
            self.address == other.address
            and self.pool == other.pool
            and self.start_tick_index == other.start_tick_index
            and self.tick_spacing == other.tick_spacing
            and self.initialized_tick_count == other.initialized_tick_count
            and self.ticks == other.ticks
        )

    def __hash__(self) -> int:
        return hash(self.address)

    def copy(self) -> Self:
        # Tick records are immutable, so a shallow copy of the list is independent of the original
        return dataclasses.replace(self, ticks=self.ticks.copy())

    @property
    def end_tick_index(self) -> Tick:
        """
        The first tick index beyond this array.
        """
        return self.start_tick_index + len(self.ticks) * self.tick_spacing

    def initialized_ticks(self) -> list[TickState]:
        return [tick for tick in self.ticks if tick.initialized]


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class PoolState:
    address: ChecksumAddress
    token0: ChecksumAddress
    token1: ChecksumAddress
    tick_spacing: int
    tick_current: Tick
    sqrt_price_x64: SqrtPriceX64
    liquidity: Liquidity
    mint0_decimals: int
    mint1_decimals: int
    version: int = 0


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class PersonalPositionState:
    address: ChecksumAddress
    pool: ChecksumAddress
    owner: ChecksumAddress
    tick_lower: Tick
    tick_upper: Tick
    liquidity: Liquidity = 0

    def in_range(self, tick: Tick) -> bool:
        """
        Whether the position's liquidity is active at the given tick. The lower bound is inclusive
        and the upper bound exclusive.
        """
        return self.tick_lower <= tick < self.tick_upper


@dataclasses.dataclass(slots=True, frozen=True, kw_only=True)
class LiquidityMutationRequest:
    position: ChecksumAddress
    owner: ChecksumAddress
    liquidity_delta: LiquidityDelta
    # Maximum token amounts deposited for an increase, minimum token amounts withdrawn for a
    # decrease
    amount_0_limit: Token0Amount
    amount_1_limit: Token1Amount
    expected_pool_version: int | None = None


@dataclasses.dataclass(slots=True, frozen=True)
class TickUpdate:
    address: ChecksumAddress
    offset: int
    before: TickState
    after: TickState

    @property
    def tick(self) -> Tick:
        return self.after.tick

    @property
    def flipped(self) -> bool:
        return self.before.initialized != self.after.initialized


@dataclasses.dataclass(slots=True, frozen=True)
class LiquidityMutationResult:
    pool: PoolState
    position: PersonalPositionState
    tick_updates: tuple[TickUpdate, ...]
    amount_0: Token0Amount
    amount_1: Token1Amount
