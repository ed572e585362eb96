from .checksum_cache import get_checksum_address
from .config import settings
from .version import __version__

# isort: split

from . import exceptions
from .clmm import (
    ConcentratedLiquidityLedger,
    LedgerSnapshot,
    LiquidityMutationRequest,
    LiquidityMutationResult,
    PersonalPositionState,
    PoolState,
    TickArrayState,
    TickArrayStore,
    TickState,
)
from .logging import logger

__all__ = (
    "ConcentratedLiquidityLedger",
    "LedgerSnapshot",
    "LiquidityMutationRequest",
    "LiquidityMutationResult",
    "PersonalPositionState",
    "PoolState",
    "TickArrayState",
    "TickArrayStore",
    "TickState",
    "__version__",
    "exceptions",
    "get_checksum_address",
    "logger",
    "settings",
)
