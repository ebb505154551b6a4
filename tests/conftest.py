"""Pytest configuration and fixtures."""

import pytest

from cpamm.pool import Pool
from tests.helpers.constants import ALICE, BOB, STARTING_BALANCE


def make_pool(fee_rate: int = 0, balance: int = STARTING_BALANCE) -> Pool:
    """Create an empty pool with ALICE and BOB funded off-pool.

    Args:
        fee_rate: Trading fee in per-mille
        balance: Starting balance of each asset for each funded principal
    """
    pool = Pool(fee_rate=fee_rate)
    pool.credit(ALICE, balance, balance)
    pool.credit(BOB, balance, balance)
    return pool


@pytest.fixture
def empty_pool() -> Pool:
    """A fee-free pool with no liquidity and two funded principals."""
    return make_pool(fee_rate=0)


@pytest.fixture
def active_pool(empty_pool: Pool) -> Pool:
    """A fee-free pool after ALICE's genesis deposit of (1000, 1000)."""
    empty_pool.provide(ALICE, 1000, 1000)
    return empty_pool


@pytest.fixture
def fee_pool() -> Pool:
    """A 3 per-mille pool after ALICE's genesis deposit of (1000, 1000)."""
    pool = make_pool(fee_rate=3)
    pool.provide(ALICE, 1000, 1000)
    return pool
