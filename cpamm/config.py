"""Pool configuration and logging setup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import structlog

from cpamm.constants import DEFAULT_FEE_RATE, FEE_DENOMINATOR

logger = structlog.get_logger()


def sanitize_fee_rate(fee_rate: int) -> int:
    """Coerce a fee rate into the valid per-mille range [0, 1000).

    Out-of-range values are not an error: they mean "no fee".

    Raises:
        TypeError: If fee_rate is not an int
        ValueError: If fee_rate is negative
    """
    if not isinstance(fee_rate, int) or isinstance(fee_rate, bool):
        raise TypeError(f"Fee rate must be int, got {type(fee_rate).__name__}")
    if fee_rate < 0:
        raise ValueError(f"Fee rate cannot be negative: {fee_rate}")
    if fee_rate >= FEE_DENOMINATOR:
        logger.warning(
            "fee_rate_out_of_range",
            requested=fee_rate,
            using=0,
            valid_range=f"[0, {FEE_DENOMINATOR})",
        )
        return 0
    return fee_rate


@dataclass(frozen=True)
class PoolConfig:
    """Construction parameters for a Pool.

    Attributes:
        fee_rate: Trading fee in per-mille, sanitized to [0, 1000) on creation.
            Immutable for the life of the pool.
    """

    fee_rate: int = DEFAULT_FEE_RATE

    def __post_init__(self) -> None:
        object.__setattr__(self, "fee_rate", sanitize_fee_rate(self.fee_rate))

    @property
    def fee_multiplier(self) -> int:
        """Per-mille share of an input that participates in pricing.

        For a 3 per-mille fee this returns 997.
        """
        return FEE_DENOMINATOR - self.fee_rate

    @classmethod
    def from_env(cls) -> PoolConfig:
        """Load configuration from the environment.

        - CPAMM_FEE_RATE: Trading fee in per-mille (default: 3)

        Raises:
            ValueError: If CPAMM_FEE_RATE is not a decimal integer
        """
        raw = os.environ.get("CPAMM_FEE_RATE", str(DEFAULT_FEE_RATE))
        try:
            fee_rate = int(raw)
        except ValueError as err:
            raise ValueError(f"CPAMM_FEE_RATE must be an integer: '{raw}'") from err
        return cls(fee_rate=fee_rate)


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog for console output."""
    log_level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
