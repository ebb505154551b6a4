"""Constant-product automated market maker for a two-asset pool."""

from cpamm.config import PoolConfig
from cpamm.errors import (
    ErrorCode,
    InsufficientAmount,
    InsufficientLiquidity,
    InvalidShare,
    NonEquivalentValue,
    PoolError,
    SlippageExceeded,
    ThresholdNotReached,
    ZeroAmount,
    ZeroLiquidity,
)
from cpamm.ledger import Asset, PoolSnapshot, PoolState
from cpamm.pool import Pool

__version__ = "0.1.0"
__all__ = [
    "__version__",
    # Pool
    "Pool",
    "PoolConfig",
    "PoolState",
    "PoolSnapshot",
    "Asset",
    # Errors
    "PoolError",
    "ErrorCode",
    "ZeroLiquidity",
    "ZeroAmount",
    "InsufficientAmount",
    "NonEquivalentValue",
    "ThresholdNotReached",
    "InvalidShare",
    "InsufficientLiquidity",
    "SlippageExceeded",
]
