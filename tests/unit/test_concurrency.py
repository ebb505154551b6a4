"""Tests for concurrent access to one pool."""

import sys
import threading

from cpamm.ledger import Asset
from cpamm.pool import Pool

TRADERS = [f"trader-{i}" for i in range(8)]
SWAPS_PER_TRADER = 50
FUNDING = 1_000_000


def test_concurrent_swaps_keep_pool_consistent():
    """Interleaved swaps from many threads leave a consistent, conserved state."""
    pool = Pool(fee_rate=3)
    pool.credit("provider", 100_000, 100_000)
    for trader in TRADERS:
        pool.credit(trader, FUNDING, FUNDING)
    pool.provide("provider", 100_000, 100_000)

    supply1 = pool.state.total_asset1 + sum(pool.state.balance1.values())
    supply2 = pool.state.total_asset2 + sum(pool.state.balance2.values())
    errors: list[BaseException] = []

    def trade(trader: str) -> None:
        try:
            for i in range(SWAPS_PER_TRADER):
                asset_in = Asset.ASSET1 if i % 2 == 0 else Asset.ASSET2
                if i % 3 == 0:
                    pool.swap_given_output(trader, 50, asset_in=asset_in)
                else:
                    pool.swap_given_input(trader, 100, asset_in=asset_in)
        except Exception as err:  # surfaced through the errors list below
            errors.append(err)

    threads = [threading.Thread(target=trade, args=(trader,)) for trader in TRADERS]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    state = pool.state
    assert state.check_invariants() == []
    assert state.total_asset1 + sum(state.balance1.values()) == supply1
    assert state.total_asset2 + sum(state.balance2.values()) == supply2
    assert pool.is_active


def test_concurrent_provide_and_withdraw():
    """Liquidity churn from several threads conserves shares."""
    pool = Pool(fee_rate=0)
    pool.credit("seed", 1000, 1000)
    pool.provide("seed", 1000, 1000)
    for trader in TRADERS:
        pool.credit(trader, 10_000, 10_000)

    def churn(trader: str) -> None:
        for _ in range(20):
            shares = pool.provide(trader, 100, 100)
            pool.withdraw(trader, shares)

    threads = [threading.Thread(target=churn, args=(trader,)) for trader in TRADERS]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    state = pool.state
    assert state.check_invariants() == []
    assert sum(state.shares.values()) == state.total_shares
    assert state.total_shares == 100_000_000
    assert (state.total_asset1, state.total_asset2) == (1000, 1000)
    for trader in TRADERS:
        assert pool.holdings(trader) == (10_000, 10_000, 0)


def test_credits_interleaved_with_swaps_are_not_lost():
    """Funding a principal while it trades keeps every credited unit."""
    pool = Pool(fee_rate=3)
    pool.credit("provider", 1_000_000, 1_000_000)
    pool.provide("provider", 1_000_000, 1_000_000)
    iterations = 5_000
    pool.credit("trader", 10 * iterations, 0)

    supply1 = pool.state.total_asset1 + sum(pool.state.balance1.values())
    supply2 = pool.state.total_asset2 + sum(pool.state.balance2.values())

    def fund() -> None:
        for _ in range(iterations):
            pool.credit("trader", 1, 1)

    def trade() -> None:
        for _ in range(iterations):
            pool.swap_given_input("trader", 10)

    interval = sys.getswitchinterval()
    sys.setswitchinterval(1e-6)
    try:
        threads = [threading.Thread(target=fund), threading.Thread(target=trade)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
    finally:
        sys.setswitchinterval(interval)

    state = pool.state
    assert state.check_invariants() == []
    assert state.total_asset1 + sum(state.balance1.values()) == supply1 + iterations
    assert state.total_asset2 + sum(state.balance2.values()) == supply2 + iterations
