from . import (
    libraries as libraries,
)  # excluded from __all__ so it doesn't bubble back up to the top level package namespace
from .functions import (
    generate_pool_address,
    generate_position_address,
    generate_tick_array_address,
    get_amount_limits_with_slippage,
    get_amounts_for_liquidity_delta,
    get_price_at_tick,
    get_tick_at_price,
    price_to_sqrt_price_x64,
    sqrt_price_x64_to_price,
)
from .ledger import ConcentratedLiquidityLedger
from .liquidity_mutation import modify_liquidity, validate_position_range
from .snapshot import LedgerSnapshot
from .tick_array_store import TickArraySource, TickArrayStore
from .tick_crossing import cross_ticks
from .types import (
    LiquidityMutationRequest,
    LiquidityMutationResult,
    PersonalPositionState,
    PoolState,
    TickArrayState,
    TickState,
    TickUpdate,
)

__all__ = (
    "ConcentratedLiquidityLedger",
    "LedgerSnapshot",
    "LiquidityMutationRequest",
    "LiquidityMutationResult",
    "PersonalPositionState",
    "PoolState",
    "TickArraySource",
    "TickArrayState",
    "TickArrayStore",
    "TickState",
    "TickUpdate",
    "cross_ticks",
    "generate_pool_address",
    "generate_position_address",
    "generate_tick_array_address",
    "get_amount_limits_with_slippage",
    "get_amounts_for_liquidity_delta",
    "get_price_at_tick",
    "get_tick_at_price",
    "modify_liquidity",
    "price_to_sqrt_price_x64",
    "sqrt_price_x64_to_price",
    "validate_position_range",
)
