import logging

import pytest

from tickbook.clmm.functions import generate_pool_address
from tickbook.clmm.ledger import ConcentratedLiquidityLedger
from tickbook.clmm.libraries.tick_math import get_sqrt_price_at_tick
from tickbook.logging import logger

TOKEN0 = "0x0000000000000000000000000000000000000a01"
TOKEN1 = "0x0000000000000000000000000000000000000b02"
OWNER = "0x1111111111111111111111111111111111111111"
OTHER_OWNER = "0x2222222222222222222222222222222222222222"

TICK_SPACING = 10
TICK_ARRAY_SIZE = 60
INITIAL_TICK = 100


@pytest.fixture(scope="session", autouse=True)
def _set_tickbook_logging():
    """
    Set the logging level to DEBUG for the test run
    """
    logger.setLevel(logging.DEBUG)


@pytest.fixture
def pool_address() -> str:
    return generate_pool_address(TOKEN0, TOKEN1, TICK_SPACING)


@pytest.fixture
def ledger() -> ConcentratedLiquidityLedger:
    """
    A ledger holding one empty pool at tick 100 with tick spacing 10, and initialized tick arrays
    covering ticks [-600, 1200).
    """

    ledger = ConcentratedLiquidityLedger(tick_array_size=TICK_ARRAY_SIZE, silent=True)
    pool = ledger.create_pool(
        token0=TOKEN0,
        token1=TOKEN1,
        tick_spacing=TICK_SPACING,
        sqrt_price_x64=get_sqrt_price_at_tick(INITIAL_TICK),
        mint0_decimals=6,
        mint1_decimals=6,
    )
    for start_tick_index in (-600, 0, 600):
        ledger.initialize_tick_array(pool.address, start_tick_index)
    return ledger
