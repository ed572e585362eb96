import pickle
import threading

import hypothesis
import hypothesis.strategies
import pytest

from tickbook.checksum_cache import get_checksum_address
from tickbook.clmm.functions import (
    generate_pool_address,
    generate_position_address,
    generate_tick_array_address,
    get_amount_limits_with_slippage,
    get_amounts_for_liquidity_delta,
)
from tickbook.clmm.ledger import ConcentratedLiquidityLedger
from tickbook.clmm.libraries.tick_math import get_sqrt_price_at_tick
from tickbook.clmm.types import LiquidityMutationRequest, PersonalPositionState
from tickbook.constants import MAX_UINT128
from tickbook.exceptions import (
    Conflict,
    InsufficientLiquidity,
    InvalidRange,
    PoolAlreadyExists,
    PositionAlreadyExists,
    PositionOwnerMismatch,
    SlippageExceeded,
    TickArrayAlreadyInitialized,
    TickArrayNotFound,
    TickbookValueError,
    UnknownPool,
    UnknownPosition,
)

from ..conftest import INITIAL_TICK, OTHER_OWNER, OWNER, TICK_SPACING, TOKEN0, TOKEN1


def increase(
    ledger: ConcentratedLiquidityLedger,
    position: PersonalPositionState,
    liquidity: int,
    expected_pool_version: int | None = None,
):
    return ledger.increase_liquidity(
        position=position.address,
        owner=position.owner,
        liquidity=liquidity,
        amount_0_max=MAX_UINT128,
        amount_1_max=MAX_UINT128,
        expected_pool_version=expected_pool_version,
    )


def decrease(ledger: ConcentratedLiquidityLedger, position: PersonalPositionState, liquidity: int):
    return ledger.decrease_liquidity(
        position=position.address,
        owner=position.owner,
        liquidity=liquidity,
        amount_0_min=0,
        amount_1_min=0,
    )


def assert_invariants(ledger: ConcentratedLiquidityLedger, pool_address: str) -> None:
    """
    Check that the pool's active liquidity and every tick record agree with the recorded positions.
    """

    pool = ledger.get_pool(pool_address)
    positions = ledger.positions(pool_address)

    assert pool.liquidity == sum(
        position.liquidity for position in positions if position.in_range(pool.tick_current)
    )

    for tick_array in ledger.tick_arrays(pool_address):
        assert tick_array.initialized_tick_count == len(tick_array.initialized_ticks())
        for tick in tick_array.ticks:
            gross = sum(
                position.liquidity
                for position in positions
                if tick.tick in (position.tick_lower, position.tick_upper)
            )
            net = sum(
                position.liquidity for position in positions if position.tick_lower == tick.tick
            ) - sum(
                position.liquidity for position in positions if position.tick_upper == tick.tick
            )
            assert tick.liquidity_gross == gross
            assert tick.liquidity_net == net
            assert tick.initialized == (gross != 0)


@pytest.fixture
def active_ledger(
    ledger: ConcentratedLiquidityLedger, pool_address: str
) -> ConcentratedLiquidityLedger:
    """
    The default ledger, plus a position over [-600, 600) holding the pool's 1000 active liquidity.
    """

    position = ledger.open_position(pool_address, OTHER_OWNER, -600, 600)
    increase(ledger, position, 1000)
    return ledger


def test_create_pool(ledger: ConcentratedLiquidityLedger, pool_address: str):
    pool = ledger.get_pool(pool_address)
    assert pool.address == pool_address
    assert pool.token0 == get_checksum_address(TOKEN0)
    assert pool.token1 == get_checksum_address(TOKEN1)
    assert pool.tick_current == INITIAL_TICK
    assert pool.sqrt_price_x64 == get_sqrt_price_at_tick(INITIAL_TICK)
    assert pool.liquidity == 0
    assert pool.version == 0
    assert ledger.pools == (pool,)

    with pytest.raises(PoolAlreadyExists):
        ledger.create_pool(TOKEN0, TOKEN1, TICK_SPACING, pool.sqrt_price_x64, 6, 6)


def test_create_pool_validation():
    ledger = ConcentratedLiquidityLedger(silent=True)
    sqrt_price = get_sqrt_price_at_tick(0)

    with pytest.raises(TickbookValueError):
        ledger.create_pool(TOKEN0, TOKEN1, 0, sqrt_price, 6, 6)
    with pytest.raises(TickbookValueError):
        ledger.create_pool(TOKEN0, TOKEN1, 10, sqrt_price, 6, 256)
    with pytest.raises(TickbookValueError):
        ledger.create_pool(TOKEN0, TOKEN0, 10, sqrt_price, 6, 6)

    assert ledger.pools == ()


def test_create_pool_logs(caplog: pytest.LogCaptureFixture):
    from tickbook.logging import logger

    logger.propagate = True
    try:
        with caplog.at_level("INFO", logger=logger.name):
            ConcentratedLiquidityLedger().create_pool(
                TOKEN0, TOKEN1, TICK_SPACING, get_sqrt_price_at_tick(0), 6, 6
            )
    finally:
        logger.propagate = False

    assert "Tick Spacing: 10" in caplog.text


def test_initialize_tick_array(ledger: ConcentratedLiquidityLedger, pool_address: str):
    tick_array = ledger.initialize_tick_array(pool_address, 1200)
    assert tick_array.address == generate_tick_array_address(pool_address, 1200)
    assert tick_array.start_tick_index == 1200
    assert len(tick_array.ticks) == 60

    with pytest.raises(TickArrayAlreadyInitialized):
        ledger.initialize_tick_array(pool_address, 1200)

    with pytest.raises(TickbookValueError):
        # Not aligned to a tick array boundary
        ledger.initialize_tick_array(pool_address, 1210)

    with pytest.raises(UnknownPool):
        ledger.initialize_tick_array(generate_pool_address(TOKEN0, TOKEN1, 60), 0)


def test_initialize_tick_arrays_for_range(ledger: ConcentratedLiquidityLedger, pool_address: str):
    tick_arrays = ledger.initialize_tick_arrays_for_range(pool_address, 0, 1800)
    assert [tick_array.start_tick_index for tick_array in tick_arrays] == [0, 600, 1200, 1800]
    assert len(ledger.tick_arrays(pool_address)) == 5

    # Repeating the call is a no-op
    assert ledger.initialize_tick_arrays_for_range(pool_address, 0, 1800) == tick_arrays


def test_open_position(ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = ledger.open_position(pool_address, OWNER.lower(), 90, 110)
    assert position.address == generate_position_address(pool_address, OWNER, 90, 110)
    assert position.owner == get_checksum_address(OWNER)
    assert position.liquidity == 0
    assert ledger.get_position(position.address) == position
    assert ledger.get_position_by_owner(pool_address, OWNER, 90, 110) == position

    with pytest.raises(PositionAlreadyExists):
        ledger.open_position(pool_address, OWNER, 90, 110)

    with pytest.raises(InvalidRange):
        ledger.open_position(pool_address, OWNER, 110, 90)
    with pytest.raises(InvalidRange):
        ledger.open_position(pool_address, OWNER, 95, 110)
    with pytest.raises(UnknownPool):
        ledger.open_position(generate_pool_address(TOKEN0, TOKEN1, 60), OWNER, 90, 120)


def test_max_tick_arrays_per_position(pool_address: str):
    ledger = ConcentratedLiquidityLedger(max_tick_arrays_per_position=2, silent=True)
    ledger.create_pool(TOKEN0, TOKEN1, TICK_SPACING, get_sqrt_price_at_tick(0), 6, 6)

    ledger.open_position(pool_address, OWNER, -10, 10)
    with pytest.raises(InvalidRange) as exc_info:
        ledger.open_position(pool_address, OWNER, -10, 600)
    assert "3 tick arrays" in exc_info.value.reason


def test_in_range_increase(active_ledger: ConcentratedLiquidityLedger, pool_address: str):
    assert active_ledger.get_pool(pool_address).liquidity == 1000

    position = active_ledger.open_position(pool_address, OWNER, 90, 110)
    result = increase(active_ledger, position, 500)

    assert result.pool.liquidity == 1500
    assert active_ledger.get_pool(pool_address) == result.pool
    assert active_ledger.get_position(position.address).liquidity == 500
    assert active_ledger.get_tick(pool_address, 90).liquidity_gross == 500
    assert active_ledger.get_tick(pool_address, 110).liquidity_gross == 500
    assert_invariants(active_ledger, pool_address)


def test_out_of_range_increase(active_ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = active_ledger.open_position(pool_address, OWNER, 200, 300)
    result = increase(active_ledger, position, 500)

    assert result.pool.liquidity == 1000
    assert active_ledger.get_tick(pool_address, 200).liquidity_gross == 500
    assert active_ledger.get_tick(pool_address, 300).liquidity_gross == 500
    assert_invariants(active_ledger, pool_address)


def test_decrease_exceeding_position_leaves_state_unchanged(
    active_ledger: ConcentratedLiquidityLedger, pool_address: str
):
    position = active_ledger.open_position(pool_address, OWNER, 90, 110)
    increase(active_ledger, position, 300)

    pool_before = active_ledger.get_pool(pool_address)
    position_before = active_ledger.get_position(position.address)
    tick_array_address = generate_tick_array_address(pool_address, 0)
    tick_array_before = active_ledger.get_tick_array(tick_array_address)

    with pytest.raises(InsufficientLiquidity) as exc_info:
        decrease(active_ledger, position, 400)
    assert exc_info.value.liquidity == 300
    assert exc_info.value.delta == -400

    assert active_ledger.get_pool(pool_address) == pool_before
    assert active_ledger.get_position(position.address) == position_before
    assert active_ledger.get_tick_array(tick_array_address) == tick_array_before


def test_decrease(active_ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = active_ledger.open_position(pool_address, OWNER, 90, 110)
    increase(active_ledger, position, 500)

    result = decrease(active_ledger, position, 200)
    assert result.pool.liquidity == 1300
    assert result.position.liquidity == 300
    assert active_ledger.get_tick(pool_address, 90).liquidity_gross == 300

    decrease(active_ledger, position, 300)
    tick = active_ledger.get_tick(pool_address, 90)
    assert tick.liquidity_gross == 0
    assert not tick.initialized
    assert_invariants(active_ledger, pool_address)


def test_versions_and_conflict(ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = ledger.open_position(pool_address, OWNER, 90, 110)
    assert ledger.get_pool(pool_address).version == 0

    result = increase(ledger, position, 500, expected_pool_version=0)
    assert result.pool.version == 1

    with pytest.raises(Conflict) as exc_info:
        increase(ledger, position, 500, expected_pool_version=0)
    assert exc_info.value.retryable
    assert exc_info.value.expected_version == 0
    assert exc_info.value.actual_version == 1
    assert ledger.get_position(position.address).liquidity == 500

    # A retry against the fresh version succeeds
    result = increase(ledger, position, 500, expected_pool_version=1)
    assert result.pool.version == 2
    assert result.position.liquidity == 1000


def test_failed_mutation_keeps_version(ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = ledger.open_position(pool_address, OWNER, 90, 110)
    with pytest.raises(InsufficientLiquidity):
        decrease(ledger, position, 1)
    assert ledger.get_pool(pool_address).version == 0


def test_owner_mismatch(ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = ledger.open_position(pool_address, OWNER, 90, 110)
    with pytest.raises(PositionOwnerMismatch) as exc_info:
        ledger.modify_liquidity(
            LiquidityMutationRequest(
                position=position.address,
                owner=get_checksum_address(OTHER_OWNER),
                liquidity_delta=500,
                amount_0_limit=MAX_UINT128,
                amount_1_limit=MAX_UINT128,
            )
        )
    assert exc_info.value.position == position.address
    assert ledger.get_position(position.address).liquidity == 0


def test_unknown_entities(ledger: ConcentratedLiquidityLedger, pool_address: str):
    missing = generate_position_address(pool_address, OWNER, 90, 110)
    with pytest.raises(UnknownPosition):
        ledger.get_position(missing)
    with pytest.raises(UnknownPosition):
        ledger.increase_liquidity(missing, OWNER, 1, MAX_UINT128, MAX_UINT128)
    with pytest.raises(UnknownPool):
        ledger.get_pool(generate_pool_address(TOKEN0, TOKEN1, 60))
    with pytest.raises(TickArrayNotFound):
        ledger.get_tick(pool_address, 1200)
    with pytest.raises(TickArrayNotFound):
        ledger.get_tick_array(generate_tick_array_address(pool_address, 1200))


def test_negative_liquidity_argument(ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = ledger.open_position(pool_address, OWNER, 90, 110)
    with pytest.raises(TickbookValueError):
        ledger.increase_liquidity(position.address, OWNER, -1, MAX_UINT128, MAX_UINT128)
    with pytest.raises(TickbookValueError):
        ledger.decrease_liquidity(position.address, OWNER, -1, 0, 0)


def test_missing_tick_array_blocks_mutation(
    ledger: ConcentratedLiquidityLedger, pool_address: str
):
    position = ledger.open_position(pool_address, OWNER, 1100, 1210)
    with pytest.raises(TickArrayNotFound):
        increase(ledger, position, 500)
    assert ledger.get_pool(pool_address).version == 0

    ledger.initialize_tick_array(pool_address, 1200)
    assert increase(ledger, position, 500).position.liquidity == 500


def test_slippage_limits(active_ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = active_ledger.open_position(pool_address, OWNER, 90, 110)
    pool = active_ledger.get_pool(pool_address)
    amount0, amount1 = get_amounts_for_liquidity_delta(pool, 90, 110, 10**12)

    with pytest.raises(SlippageExceeded):
        active_ledger.increase_liquidity(position.address, OWNER, 10**12, amount0, amount1 - 1)
    assert active_ledger.get_pool(pool_address) == pool

    amount_0_max, amount_1_max = get_amount_limits_with_slippage(pool, 90, 110, 10**12, "0.005")
    result = active_ledger.increase_liquidity(
        position.address, OWNER, 10**12, amount_0_max, amount_1_max, pool.version
    )
    assert (result.amount_0, result.amount_1) == (amount0, amount1)


def test_idempotent_queries(active_ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = active_ledger.open_position(pool_address, OWNER, 90, 110)
    increase(active_ledger, position, 500)
    tick_array_address = generate_tick_array_address(pool_address, 0)

    first = (
        active_ledger.get_pool(pool_address),
        active_ledger.get_position(position.address),
        active_ledger.get_tick_array(tick_array_address),
        active_ledger.get_tick_arrays([tick_array_address]),
    )
    second = (
        active_ledger.get_pool(pool_address),
        active_ledger.get_position(position.address),
        active_ledger.get_tick_array(tick_array_address),
        active_ledger.get_tick_arrays([tick_array_address]),
    )
    assert first == second

    # Returned tick arrays are copies, unaffected by later mutations
    increase(active_ledger, position, 500)
    assert active_ledger.get_tick_array(tick_array_address) != first[2]
    assert first[2].ticks[9].liquidity_gross == 500


def test_get_tick_arrays_reports_first_missing(
    ledger: ConcentratedLiquidityLedger, pool_address: str
):
    present = generate_tick_array_address(pool_address, 0)
    first_missing = generate_tick_array_address(pool_address, 1200)
    second_missing = generate_tick_array_address(pool_address, 1800)

    with pytest.raises(TickArrayNotFound) as exc_info:
        ledger.get_tick_arrays([present, first_missing, second_missing])
    assert exc_info.value.address == first_missing


def test_apply_price_update(active_ledger: ConcentratedLiquidityLedger, pool_address: str):
    position = active_ledger.open_position(pool_address, OWNER, 200, 300)
    increase(active_ledger, position, 500)
    version = active_ledger.get_pool(pool_address).version

    pool = active_ledger.apply_price_update(pool_address, get_sqrt_price_at_tick(250))
    assert pool.tick_current == 250
    assert pool.liquidity == 1500
    assert pool.version == version + 1
    assert_invariants(active_ledger, pool_address)

    pool = active_ledger.apply_price_update(pool_address, get_sqrt_price_at_tick(-700))
    assert pool.tick_current == -700
    assert pool.liquidity == 0
    assert_invariants(active_ledger, pool_address)

    with pytest.raises(Conflict):
        active_ledger.apply_price_update(
            pool_address, get_sqrt_price_at_tick(0), expected_pool_version=version
        )


def test_concurrent_increases(ledger: ConcentratedLiquidityLedger, pool_address: str):
    positions = [
        ledger.open_position(pool_address, OWNER, tick_lower, tick_lower + 100)
        for tick_lower in range(-300, 300, 50)
    ]

    def worker(position: PersonalPositionState) -> None:
        for _ in range(20):
            increase(ledger, position, 7)

    threads = [threading.Thread(target=worker, args=(position,)) for position in positions]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert ledger.get_pool(pool_address).version == 20 * len(positions)
    assert all(
        ledger.get_position(position.address).liquidity == 140 for position in positions
    )
    assert_invariants(ledger, pool_address)


def test_pickle(active_ledger: ConcentratedLiquidityLedger, pool_address: str):
    unpickled = pickle.loads(pickle.dumps(active_ledger))
    assert unpickled.pools == active_ledger.pools
    assert unpickled.positions() == active_ledger.positions()
    assert unpickled.tick_arrays(pool_address) == active_ledger.tick_arrays(pool_address)

    # The unpickled ledger is independent and usable
    position = unpickled.open_position(pool_address, OWNER, 90, 110)
    increase(unpickled, position, 500)
    assert unpickled.get_pool(pool_address).liquidity == 1500
    assert active_ledger.get_pool(pool_address).liquidity == 1000


RANGES = [(-600, 600), (90, 110), (200, 300), (-10, 10), (500, 700), (0, 1190), (-600, -590)]


@hypothesis.settings(max_examples=50, deadline=None)
@hypothesis.given(
    operations=hypothesis.strategies.lists(
        hypothesis.strategies.one_of(
            hypothesis.strategies.tuples(
                hypothesis.strategies.just("modify"),
                hypothesis.strategies.integers(min_value=0, max_value=len(RANGES) - 1),
                hypothesis.strategies.integers(min_value=-(10**6), max_value=10**6),
            ),
            hypothesis.strategies.tuples(
                hypothesis.strategies.just("price"),
                hypothesis.strategies.integers(min_value=-60, max_value=119),
                hypothesis.strategies.just(0),
            ),
        ),
        max_size=30,
    )
)
def test_invariants_hold_for_any_sequence(operations: list[tuple[str, int, int]]):
    ledger = ConcentratedLiquidityLedger(tick_array_size=60, silent=True)
    pool = ledger.create_pool(
        TOKEN0, TOKEN1, TICK_SPACING, get_sqrt_price_at_tick(INITIAL_TICK), 6, 6
    )
    for start_tick_index in (-600, 0, 600):
        ledger.initialize_tick_array(pool.address, start_tick_index)
    positions = [
        ledger.open_position(pool.address, OWNER, tick_lower, tick_upper)
        for tick_lower, tick_upper in RANGES
    ]

    for kind, index, liquidity_delta in operations:
        if kind == "price":
            ledger.apply_price_update(pool.address, get_sqrt_price_at_tick(index * TICK_SPACING))
            continue

        position = ledger.get_position(positions[index].address)
        if position.liquidity + liquidity_delta < 0:
            with pytest.raises(InsufficientLiquidity):
                decrease(ledger, position, -liquidity_delta)
        elif liquidity_delta >= 0:
            increase(ledger, position, liquidity_delta)
        else:
            decrease(ledger, position, -liquidity_delta)

        assert_invariants(ledger, pool.address)

    assert_invariants(ledger, pool.address)
