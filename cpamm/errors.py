"""Pool error classes.

The pool fails with one of a closed set of named conditions. Each error
class carries a stable ErrorCode so hosts can map failures without string
matching.
"""

from enum import Enum


class ErrorCode(Enum):
    """Stable identifiers for pool failures."""

    ZERO_LIQUIDITY = "zero_liquidity"
    ZERO_AMOUNT = "zero_amount"
    INSUFFICIENT_AMOUNT = "insufficient_amount"
    NON_EQUIVALENT_VALUE = "non_equivalent_value"
    THRESHOLD_NOT_REACHED = "threshold_not_reached"
    INVALID_SHARE = "invalid_share"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    SLIPPAGE_EXCEEDED = "slippage_exceeded"


class PoolError(Exception):
    """Base error for pool operations."""

    code: ErrorCode


class ZeroLiquidity(PoolError):
    """Swap or quote attempted while the pool holds no liquidity."""

    code = ErrorCode.ZERO_LIQUIDITY


class ZeroAmount(PoolError):
    """Provided, withdrawn or swapped quantity is zero."""

    code = ErrorCode.ZERO_AMOUNT


class InsufficientAmount(PoolError):
    """Caller's balance is less than the requested amount."""

    code = ErrorCode.INSUFFICIENT_AMOUNT


class NonEquivalentValue(PoolError):
    """Deposit ratio does not match the pool's current price ratio."""

    code = ErrorCode.NON_EQUIVALENT_VALUE


class ThresholdNotReached(PoolError):
    """Deposit too small: computed share issuance rounds to zero."""

    code = ErrorCode.THRESHOLD_NOT_REACHED


class InvalidShare(PoolError):
    """Requested share exceeds the pool's total shares."""

    code = ErrorCode.INVALID_SHARE


class InsufficientLiquidity(PoolError):
    """Requested output meets or exceeds the pool's reserve of that asset."""

    code = ErrorCode.INSUFFICIENT_LIQUIDITY


class SlippageExceeded(PoolError):
    """Quoted amount violates the caller's min-out or max-in bound."""

    code = ErrorCode.SLIPPAGE_EXCEEDED


ERRORS_BY_CODE: dict[ErrorCode, type[PoolError]] = {
    cls.code: cls
    for cls in (
        ZeroLiquidity,
        ZeroAmount,
        InsufficientAmount,
        NonEquivalentValue,
        ThresholdNotReached,
        InvalidShare,
        InsufficientLiquidity,
        SlippageExceeded,
    )
}
