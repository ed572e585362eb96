import dataclasses
from collections.abc import Iterable
from threading import Lock
from typing import Any, Self

from eth_typing import ChecksumAddress

from tickbook.checksum_cache import get_checksum_address
from tickbook.clmm.functions import (
    generate_pool_address,
    generate_position_address,
    generate_tick_array_address,
)
from tickbook.clmm.libraries.tick_array import (
    check_tick,
    count_tick_arrays_in_range,
    get_tick_array_start_index,
    get_tick_array_start_indexes,
    get_tick_offset_in_array,
)
from tickbook.clmm.libraries.tick_math import get_tick_at_sqrt_price
from tickbook.clmm.liquidity_mutation import validate_position_range
from tickbook.clmm.liquidity_mutation import modify_liquidity as compute_liquidity_mutation
from tickbook.clmm.tick_array_store import TickArrayStore
from tickbook.clmm.tick_crossing import cross_ticks
from tickbook.clmm.types import (
    Liquidity,
    LiquidityMutationRequest,
    LiquidityMutationResult,
    PersonalPositionState,
    PoolState,
    SqrtPriceX64,
    Tick,
    TickArrayState,
    TickState,
)
from tickbook.config import settings
from tickbook.constants import MAX_UINT8
from tickbook.exceptions import (
    Conflict,
    InvalidRange,
    PoolAlreadyExists,
    PositionAlreadyExists,
    PositionOwnerMismatch,
    TickbookValueError,
    UnknownPool,
    UnknownPosition,
)
from tickbook.logging import logger


class ConcentratedLiquidityLedger:
    """
    In-process execution substrate for concentrated liquidity pools.

    The ledger holds pool, position and tick array state and serializes writes per pool. Every
    committed mutation increments the pool's `version`, and callers may pass the version they read
    to have a stale mutation rejected with a retryable `Conflict`.

    @dev Each pool has its own lock, held for the validation and commit of a mutation. Reads return
    frozen states or copies, so no intermediate state is observable.
    """

    def __init__(
        self,
        *,
        tick_array_size: int | None = None,
        max_tick_arrays_per_position: int | None = None,
        silent: bool = False,
    ) -> None:
        self.tick_array_size = (
            tick_array_size if tick_array_size is not None else settings.tick_array_size
        )
        self.max_tick_arrays_per_position = (
            max_tick_arrays_per_position
            if max_tick_arrays_per_position is not None
            else settings.max_tick_arrays_per_position
        )
        if self.tick_array_size <= 0:
            raise TickbookValueError(message=f"Invalid tick array size {self.tick_array_size}")

        self.silent = silent

        self._pools: dict[ChecksumAddress, PoolState] = {}
        self._positions: dict[ChecksumAddress, PersonalPositionState] = {}
        self._tick_arrays = TickArrayStore()

        self._registry_lock = Lock()
        self._pool_locks: dict[ChecksumAddress, Lock] = {}

    def __getstate__(self) -> dict[str, Any]:
        # Locks cannot be pickled, so they are recreated after unpickling
        return {
            "tick_array_size": self.tick_array_size,
            "max_tick_arrays_per_position": self.max_tick_arrays_per_position,
            "silent": self.silent,
            "_pools": self._pools,
            "_positions": self._positions,
            "_tick_arrays": self._tick_arrays,
        }

    def __setstate__(self, state: dict[str, Any]) -> None:
        for attr_name, attr_value in state.items():
            setattr(self, attr_name, attr_value)
        self._registry_lock = Lock()
        self._pool_locks = {pool: Lock() for pool in self._pools}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(pools={len(self._pools)}, positions={len(self._positions)}, tick_arrays={len(self._tick_arrays)})"  # noqa: E501
        )

    @classmethod
    def from_states(
        cls,
        pools: Iterable[PoolState],
        positions: Iterable[PersonalPositionState],
        tick_arrays: Iterable[TickArrayState],
        **kwargs: Any,
    ) -> Self:
        """
        Build a ledger from previously recorded states, e.g. a snapshot.
        """

        ledger = cls(**kwargs)
        for pool in pools:
            if pool.address in ledger._pools:
                raise PoolAlreadyExists(pool.address)
            ledger._pools[pool.address] = pool
            ledger._pool_locks[pool.address] = Lock()
        for tick_array in tick_arrays:
            if tick_array.pool not in ledger._pools:
                raise UnknownPool(tick_array.pool)
            ledger._tick_arrays.add(tick_array)
        for position in positions:
            if position.pool not in ledger._pools:
                raise UnknownPool(position.pool)
            if position.address in ledger._positions:
                raise PositionAlreadyExists(position.address)
            ledger._positions[position.address] = position
        return ledger

    def _lock_for(self, pool: ChecksumAddress) -> Lock:
        try:
            return self._pool_locks[pool]
        except KeyError:
            raise UnknownPool(pool) from None

    def _check_version(self, pool: PoolState, expected_pool_version: int | None) -> None:
        if expected_pool_version is not None and expected_pool_version != pool.version:
            raise Conflict(
                pool=pool.address,
                expected_version=expected_pool_version,
                actual_version=pool.version,
            )

    @property
    def pools(self) -> tuple[PoolState, ...]:
        return tuple(self._pools.values())

    def positions(self, pool: str | None = None) -> tuple[PersonalPositionState, ...]:
        if pool is None:
            return tuple(self._positions.values())
        pool = get_checksum_address(pool)
        return tuple(position for position in self._positions.values() if position.pool == pool)

    def tick_arrays(self, pool: str) -> tuple[TickArrayState, ...]:
        pool = get_checksum_address(pool)
        with self._lock_for(pool):
            return tuple(tick_array.copy() for tick_array in self._tick_arrays.for_pool(pool))

    def create_pool(
        self,
        token0: str,
        token1: str,
        tick_spacing: int,
        sqrt_price_x64: SqrtPriceX64,
        mint0_decimals: int,
        mint1_decimals: int,
    ) -> PoolState:
        """
        Create an empty pool at the given price. The pool starts with no active liquidity.
        """

        if tick_spacing <= 0:
            raise TickbookValueError(message=f"Invalid tick spacing {tick_spacing}")
        for decimals in (mint0_decimals, mint1_decimals):
            if not (0 <= decimals <= MAX_UINT8):
                raise TickbookValueError(message=f"Invalid token decimals {decimals}")

        token0 = get_checksum_address(token0)
        token1 = get_checksum_address(token1)
        if token0 == token1:
            raise TickbookValueError(message="Pool tokens must be distinct")

        pool = PoolState(
            address=generate_pool_address(token0, token1, tick_spacing),
            token0=token0,
            token1=token1,
            tick_spacing=tick_spacing,
            tick_current=get_tick_at_sqrt_price(sqrt_price_x64),
            sqrt_price_x64=sqrt_price_x64,
            liquidity=0,
            mint0_decimals=mint0_decimals,
            mint1_decimals=mint1_decimals,
        )

        with self._registry_lock:
            if pool.address in self._pools:
                raise PoolAlreadyExists(pool.address)
            self._pool_locks[pool.address] = Lock()
            self._pools[pool.address] = pool

        if not self.silent:  # pragma: no branch
            logger.info("Concentrated Liquidity Pool")
            logger.info(f"• Address: {pool.address}")
            logger.info(f"• Token 0: {pool.token0}")
            logger.info(f"• Token 1: {pool.token1}")
            logger.info(f"• Tick Spacing: {pool.tick_spacing}")
            logger.info(f"• SqrtPriceX64: {pool.sqrt_price_x64}")
            logger.info(f"• Tick: {pool.tick_current}")

        return pool

    def initialize_tick_array(self, pool: str, start_tick_index: Tick) -> TickArrayState:
        """
        Create an empty tick array for the pool. The start index must be aligned to an array
        boundary.
        """

        pool = get_checksum_address(pool)
        with self._lock_for(pool):
            return self._add_tick_array(self._pools[pool], start_tick_index).copy()

    def _add_tick_array(self, pool: PoolState, start_tick_index: Tick) -> TickArrayState:
        aligned_start = get_tick_array_start_index(
            start_tick_index, pool.tick_spacing, self.tick_array_size
        )
        if aligned_start != start_tick_index:
            raise TickbookValueError(
                message=f"Tick array start index {start_tick_index} is not aligned, expected {aligned_start}"  # noqa: E501
            )

        tick_array = TickArrayState.empty(
            address=generate_tick_array_address(pool.address, start_tick_index),
            pool=pool.address,
            start_tick_index=start_tick_index,
            tick_spacing=pool.tick_spacing,
            tick_array_size=self.tick_array_size,
        )
        self._tick_arrays.add(tick_array)
        return tick_array

    def initialize_tick_arrays_for_range(
        self,
        pool: str,
        tick_lower: Tick,
        tick_upper: Tick,
    ) -> tuple[TickArrayState, ...]:
        """
        Create every missing tick array spanned by [tick_lower, tick_upper]. Arrays that already
        exist are left untouched. Returns all arrays spanned by the range, in ascending order.
        """

        pool = get_checksum_address(pool)

        tick_arrays = []
        with self._lock_for(pool):
            pool_state = self._pools[pool]
            for start_tick_index in get_tick_array_start_indexes(
                tick_lower, tick_upper, pool_state.tick_spacing, self.tick_array_size
            ):
                address = generate_tick_array_address(pool, start_tick_index)
                tick_array = (
                    self._tick_arrays.get(address)
                    if address in self._tick_arrays
                    else self._add_tick_array(pool_state, start_tick_index)
                )
                tick_arrays.append(tick_array.copy())
        return tuple(tick_arrays)

    def open_position(
        self,
        pool: str,
        owner: str,
        tick_lower: Tick,
        tick_upper: Tick,
    ) -> PersonalPositionState:
        """
        Record a new, empty position for `owner` over [tick_lower, tick_upper).
        """

        pool = get_checksum_address(pool)
        owner = get_checksum_address(owner)

        with self._lock_for(pool):
            pool_state = self._pools[pool]
            validate_position_range(tick_lower, tick_upper, pool_state.tick_spacing)

            if self.max_tick_arrays_per_position is not None:
                tick_array_count = count_tick_arrays_in_range(
                    tick_lower, tick_upper, pool_state.tick_spacing, self.tick_array_size
                )
                if tick_array_count > self.max_tick_arrays_per_position:
                    raise InvalidRange(
                        tick_lower=tick_lower,
                        tick_upper=tick_upper,
                        reason=f"range spans {tick_array_count} tick arrays, limit is {self.max_tick_arrays_per_position}",  # noqa: E501
                    )

            position = PersonalPositionState(
                address=generate_position_address(pool, owner, tick_lower, tick_upper),
                pool=pool,
                owner=owner,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
            )
            if position.address in self._positions:
                raise PositionAlreadyExists(position.address)
            self._positions[position.address] = position

        logger.debug(f"Opened position {position.address} [{tick_lower}, {tick_upper}) in {pool}")
        return position

    def modify_liquidity(self, request: LiquidityMutationRequest) -> LiquidityMutationResult:
        """
        Validate and commit a liquidity mutation. Pool, position and tick records are updated
        together, or not at all if any check fails.
        """

        position = self.get_position(request.position)
        owner = get_checksum_address(request.owner)
        if position.owner != owner:
            raise PositionOwnerMismatch(position=position.address, owner=owner)

        with self._lock_for(position.pool):
            pool = self._pools[position.pool]
            self._check_version(pool, request.expected_pool_version)

            result = compute_liquidity_mutation(
                pool=pool,
                position=self._positions[position.address],
                tick_arrays=self._tick_arrays,
                liquidity_delta=request.liquidity_delta,
                amount_0_limit=request.amount_0_limit,
                amount_1_limit=request.amount_1_limit,
                tick_array_size=self.tick_array_size,
            )

            # All checks have passed, so the commit below cannot fail partway
            for update in result.tick_updates:
                self._tick_arrays.upsert_tick(
                    update.address,
                    update.offset,
                    lambda _, after=update.after: after,
                )
            pool_after = dataclasses.replace(result.pool, version=pool.version + 1)
            self._pools[pool.address] = pool_after
            self._positions[position.address] = result.position

        logger.debug(
            f"Committed liquidity delta {request.liquidity_delta} to position {position.address}: pool liquidity {pool.liquidity} -> {pool_after.liquidity}, version {pool_after.version}"  # noqa: E501
        )
        return dataclasses.replace(result, pool=pool_after)

    def increase_liquidity(
        self,
        position: str,
        owner: str,
        liquidity: Liquidity,
        amount_0_max: int,
        amount_1_max: int,
        expected_pool_version: int | None = None,
    ) -> LiquidityMutationResult:
        if liquidity < 0:
            raise TickbookValueError(message=f"Liquidity must be non-negative, got {liquidity}")
        return self.modify_liquidity(
            LiquidityMutationRequest(
                position=get_checksum_address(position),
                owner=get_checksum_address(owner),
                liquidity_delta=liquidity,
                amount_0_limit=amount_0_max,
                amount_1_limit=amount_1_max,
                expected_pool_version=expected_pool_version,
            )
        )

    def decrease_liquidity(
        self,
        position: str,
        owner: str,
        liquidity: Liquidity,
        amount_0_min: int,
        amount_1_min: int,
        expected_pool_version: int | None = None,
    ) -> LiquidityMutationResult:
        if liquidity < 0:
            raise TickbookValueError(message=f"Liquidity must be non-negative, got {liquidity}")
        return self.modify_liquidity(
            LiquidityMutationRequest(
                position=get_checksum_address(position),
                owner=get_checksum_address(owner),
                liquidity_delta=-liquidity,
                amount_0_limit=amount_0_min,
                amount_1_limit=amount_1_min,
                expected_pool_version=expected_pool_version,
            )
        )

    def apply_price_update(
        self,
        pool: str,
        sqrt_price_x64: SqrtPriceX64,
        expected_pool_version: int | None = None,
    ) -> PoolState:
        """
        Move the pool to a new price, adjusting active liquidity by the net liquidity of every
        initialized tick crossed.
        """

        pool = get_checksum_address(pool)
        new_tick = get_tick_at_sqrt_price(sqrt_price_x64)

        with self._lock_for(pool):
            pool_state = self._pools[pool]
            self._check_version(pool_state, expected_pool_version)

            crossed_ticks = self._tick_arrays.initialized_ticks(
                pool,
                min(pool_state.tick_current, new_tick),
                max(pool_state.tick_current, new_tick),
            )
            pool_after = dataclasses.replace(
                cross_ticks(pool_state, crossed_ticks, sqrt_price_x64),
                version=pool_state.version + 1,
            )
            self._pools[pool] = pool_after

        logger.debug(
            f"Moved pool {pool} from tick {pool_state.tick_current} to {pool_after.tick_current}: liquidity {pool_state.liquidity} -> {pool_after.liquidity}"  # noqa: E501
        )
        return pool_after

    def get_pool(self, pool: str) -> PoolState:
        pool = get_checksum_address(pool)
        try:
            return self._pools[pool]
        except KeyError:
            raise UnknownPool(pool) from None

    def get_position(self, position: str) -> PersonalPositionState:
        position = get_checksum_address(position)
        try:
            return self._positions[position]
        except KeyError:
            raise UnknownPosition(position) from None

    def get_position_by_owner(
        self,
        pool: str,
        owner: str,
        tick_lower: Tick,
        tick_upper: Tick,
    ) -> PersonalPositionState:
        return self.get_position(generate_position_address(pool, owner, tick_lower, tick_upper))

    def get_tick_array(self, address: str) -> TickArrayState:
        """
        Get a copy of a tick array. Later mutations do not affect the returned copy.
        """

        tick_array = self._tick_arrays.get(get_checksum_address(address))
        with self._lock_for(tick_array.pool):
            return tick_array.copy()

    def get_tick_arrays(self, addresses: Iterable[str]) -> dict[ChecksumAddress, TickArrayState]:
        return {
            address: self.get_tick_array(address)
            for address in (get_checksum_address(address) for address in addresses)
        }

    def get_tick(self, pool: str, tick: Tick) -> TickState:
        """
        Get the record for a single tick. The tick array holding it must exist.
        """

        pool_state = self.get_pool(pool)
        check_tick(tick, pool_state.tick_spacing)
        start_tick_index = get_tick_array_start_index(
            tick, pool_state.tick_spacing, self.tick_array_size
        )
        tick_array = self._tick_arrays.get(
            generate_tick_array_address(pool_state.address, start_tick_index)
        )
        return tick_array.ticks[
            get_tick_offset_in_array(tick, pool_state.tick_spacing, self.tick_array_size)
        ]
