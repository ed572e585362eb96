import pytest

from tickbook.clmm.libraries.sqrt_price_math import get_amount0_delta, get_amount1_delta
from tickbook.exceptions import TickbookValueError

Q64 = 2**64


def test_get_amount0_delta():
    # Zero liquidity or an empty price range moves nothing
    assert get_amount0_delta(Q64, 2 * Q64, 0, True) == 0
    assert get_amount0_delta(Q64, Q64, 10**18, True) == 0

    # Between prices 1 and 4, liquidity L holds L/2 of token0
    assert get_amount0_delta(Q64, 2 * Q64, 10**18, True) == 5 * 10**17
    assert get_amount0_delta(2 * Q64, Q64, 10**18, False) == 5 * 10**17

    with pytest.raises(TickbookValueError):
        get_amount0_delta(0, Q64, 1, True)


def test_get_amount0_delta_rounding():
    assert get_amount0_delta(Q64, 2 * Q64, 1, True) == 1
    assert get_amount0_delta(Q64, 2 * Q64, 1, False) == 0


def test_get_amount1_delta():
    assert get_amount1_delta(Q64, 2 * Q64, 0, True) == 0
    assert get_amount1_delta(Q64, Q64, 10**18, True) == 0

    # Between prices 1 and 4, liquidity L holds L of token1
    assert get_amount1_delta(Q64, 2 * Q64, 10**18, True) == 10**18
    assert get_amount1_delta(2 * Q64, Q64, 10**18, False) == 10**18


def test_get_amount1_delta_rounding():
    assert get_amount1_delta(Q64, Q64 + 1, 1, True) == 1
    assert get_amount1_delta(Q64, Q64 + 1, 1, False) == 0


def test_signed_amount_deltas():
    # Positive liquidity rounds up, negative liquidity rounds down and returns a negative amount
    assert get_amount0_delta(Q64, 2 * Q64, 1) == 1
    assert get_amount0_delta(Q64, 2 * Q64, -1) == 0
    assert get_amount1_delta(Q64, 2 * Q64, -(10**18)) == -(10**18)
    assert get_amount1_delta(Q64, Q64 + 1, 1) == 1
    assert get_amount1_delta(Q64, Q64 + 1, -1) == 0
