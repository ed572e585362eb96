from collections.abc import Callable, Iterable, Iterator
from typing import Protocol

from eth_typing import ChecksumAddress

from tickbook.clmm.types import Tick, TickArrayState, TickState
from tickbook.exceptions import (
    TickArrayAlreadyInitialized,
    TickArrayNotFound,
    TickbookValueError,
)
from tickbook.logging import logger


class TickArraySource(Protocol):
    """
    The minimal read interface the liquidity mutation protocol needs to resolve tick arrays.
    """

    def __contains__(self, address: object) -> bool: ...
    def __getitem__(self, address: ChecksumAddress) -> TickArrayState: ...


class TickArrayStore:
    """
    Holds tick arrays keyed by their derived address.

    Arrays are independent: updating a record in one array never reads another, so a caller only
    needs the one or two arrays holding a position's boundary ticks.
    """

    def __init__(self, tick_arrays: Iterable[TickArrayState] = ()) -> None:
        self._tick_arrays: dict[ChecksumAddress, TickArrayState] = {}
        # Per-pool index of array addresses, keyed by start tick index
        self._pool_index: dict[ChecksumAddress, dict[Tick, ChecksumAddress]] = {}

        for tick_array in tick_arrays:
            self.add(tick_array)

    def __contains__(self, address: object) -> bool:
        return address in self._tick_arrays

    def __getitem__(self, address: ChecksumAddress) -> TickArrayState:
        return self.get(address)

    def __iter__(self) -> Iterator[ChecksumAddress]:
        return iter(self._tick_arrays)

    def __len__(self) -> int:
        return len(self._tick_arrays)

    def add(self, tick_array: TickArrayState) -> None:
        if tick_array.address in self._tick_arrays:
            raise TickArrayAlreadyInitialized(tick_array.address)

        self._tick_arrays[tick_array.address] = tick_array
        self._pool_index.setdefault(tick_array.pool, {})[tick_array.start_tick_index] = (
            tick_array.address
        )
        logger.debug(
            f"Initialized tick array {tick_array.address} (pool {tick_array.pool}, start {tick_array.start_tick_index})"  # noqa: E501
        )

    def get(self, address: ChecksumAddress) -> TickArrayState:
        try:
            return self._tick_arrays[address]
        except KeyError:
            raise TickArrayNotFound(address) from None

    def get_many(self, addresses: Iterable[ChecksumAddress]) -> dict[ChecksumAddress, TickArrayState]:
        """
        Get several tick arrays at once. Duplicate addresses are collapsed, and the first missing
        address raises `TickArrayNotFound`.
        """

        return {address: self.get(address) for address in addresses}

    def for_pool(self, pool: ChecksumAddress) -> list[TickArrayState]:
        """
        Get all tick arrays for a pool, ordered by start index.
        """

        pool_arrays = self._pool_index.get(pool, {})
        return [self._tick_arrays[pool_arrays[start]] for start in sorted(pool_arrays)]

    def initialized_ticks(
        self,
        pool: ChecksumAddress,
        tick_lower: Tick,
        tick_upper: Tick,
    ) -> list[TickState]:
        """
        Get the initialized ticks of a pool within [tick_lower, tick_upper], in ascending order.
        """

        return [
            tick
            for tick_array in self.for_pool(pool)
            if tick_array.end_tick_index > tick_lower and tick_array.start_tick_index <= tick_upper
            for tick in tick_array.initialized_ticks()
            if tick_lower <= tick.tick <= tick_upper
        ]

    def upsert_tick(
        self,
        address: ChecksumAddress,
        offset: int,
        mutator: Callable[[TickState], TickState],
    ) -> TickState:
        """
        Replace the tick record at `offset` with the result of `mutator(record)`, keeping the
        array's initialized tick count current.
        """

        tick_array = self.get(address)

        if not (0 <= offset < len(tick_array.ticks)):
            raise TickbookValueError(message=f"Offset {offset} outside of tick array {address}")

        before = tick_array.ticks[offset]
        after = mutator(before)

        if after.tick != before.tick:
            raise TickbookValueError(
                message=f"Tick record for {before.tick} cannot be replaced by a record for {after.tick}"  # noqa: E501
            )

        tick_array.ticks[offset] = after
        if after.initialized and not before.initialized:
            tick_array.initialized_tick_count += 1
        elif before.initialized and not after.initialized:
            tick_array.initialized_tick_count -= 1

        return after
