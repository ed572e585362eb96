from tickbook.exceptions.base import TickbookError, TickbookTypeError, TickbookValueError
from tickbook.exceptions.ledger import (
    Conflict,
    LedgerError,
    PoolAlreadyExists,
    PositionAlreadyExists,
    UnknownPool,
    UnknownPosition,
)
from tickbook.exceptions.liquidity import (
    InsufficientLiquidity,
    InvalidRange,
    LiquidityError,
    LiquidityOverflow,
    PositionOwnerMismatch,
    SlippageExceeded,
)
from tickbook.exceptions.tick_array import (
    TickArrayAlreadyInitialized,
    TickArrayError,
    TickArrayNotFound,
)
from tickbook.exceptions.tick_math import InvalidTick, OutOfRange, TickMathError

from . import base, ledger, liquidity, tick_array, tick_math

__all__ = (
    "Conflict",
    "InsufficientLiquidity",
    "InvalidRange",
    "InvalidTick",
    "LedgerError",
    "LiquidityError",
    "LiquidityOverflow",
    "OutOfRange",
    "PoolAlreadyExists",
    "PositionAlreadyExists",
    "PositionOwnerMismatch",
    "SlippageExceeded",
    "TickArrayAlreadyInitialized",
    "TickArrayError",
    "TickArrayNotFound",
    "TickMathError",
    "TickbookError",
    "TickbookTypeError",
    "TickbookValueError",
    "UnknownPool",
    "UnknownPosition",
    "base",
    "ledger",
    "liquidity",
    "tick_array",
    "tick_math",
)
