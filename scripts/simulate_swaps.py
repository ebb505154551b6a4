#!/usr/bin/env python3
"""Simulate a random swap sequence against a seeded pool.

Prints the constant-product invariant after every swap so fee accrual
(and rounding drift at fee_rate=0) can be eyeballed, then the liquidity
provider's withdrawal estimate against the initial deposit.

Usage:
    python scripts/simulate_swaps.py --fee-rate 3 --swaps 50 --seed 7
"""

import argparse
import random
import sys
from pathlib import Path

import structlog

sys.path.insert(0, str(Path(__file__).parent.parent))

from cpamm.config import configure_logging
from cpamm.errors import PoolError
from cpamm.ledger import Asset
from cpamm.pool import Pool

logger = structlog.get_logger()

PROVIDER = "provider"
TRADER = "trader"


def run_simulation(
    fee_rate: int,
    reserve1: int,
    reserve2: int,
    swaps: int,
    max_swap: int,
    seed: int,
) -> int:
    pool = Pool(fee_rate=fee_rate)
    pool.credit(PROVIDER, reserve1, reserve2)
    pool.credit(TRADER, max_swap * swaps, max_swap * swaps)
    shares = pool.provide(PROVIDER, reserve1, reserve2)

    rng = random.Random(seed)
    k_start = pool.k
    print(f"Genesis: reserves=({reserve1}, {reserve2}) shares={shares} k={k_start}")
    print()
    print(f"{'#':>4}  {'in':>6}  {'amount_in':>12}  {'amount_out':>12}  {'k':>24}  {'dk':>14}")

    rejected = 0
    k_prev = k_start
    for i in range(1, swaps + 1):
        asset_in = rng.choice([Asset.ASSET1, Asset.ASSET2])
        amount_in = rng.randint(1, max_swap)
        try:
            amount_out = pool.swap_given_input(TRADER, amount_in, asset_in=asset_in)
        except PoolError as err:
            rejected += 1
            print(f"{i:>4}  {asset_in.value:>6}  {amount_in:>12}  rejected: {err.code.value}")
            continue
        k = pool.k
        print(
            f"{i:>4}  {asset_in.value:>6}  {amount_in:>12}  {amount_out:>12}  "
            f"{k:>24}  {k - k_prev:>+14}"
        )
        k_prev = k

    total1, total2, total_shares, _ = pool.details()
    amount1, amount2 = pool.get_withdraw_estimate(shares)
    print()
    print(f"Final reserves: ({total1}, {total2})  total_shares={total_shares}")
    print(f"k: {k_start} -> {pool.k} ({pool.k - k_start:+})")
    print(f"Provider withdrawal estimate: ({amount1}, {amount2}) for deposit ({reserve1}, {reserve2})")
    if rejected:
        print(f"Rejected swaps: {rejected}")

    violations = pool.state.check_invariants()
    for violation in violations:
        logger.error("invariant_violated", detail=violation)
    return 1 if violations else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Simulate swaps against a constant-product pool")
    parser.add_argument("--fee-rate", type=int, default=3, help="Fee in per-mille (default: 3)")
    parser.add_argument("--reserve1", type=int, default=1_000_000, help="Initial asset1 deposit")
    parser.add_argument("--reserve2", type=int, default=1_000_000, help="Initial asset2 deposit")
    parser.add_argument("--swaps", type=int, default=20, help="Number of swaps (default: 20)")
    parser.add_argument(
        "--max-swap", type=int, default=10_000, help="Largest single swap input (default: 10000)"
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()
    configure_logging(verbose=args.verbose)

    if args.reserve1 <= 0 or args.reserve2 <= 0:
        print("Error: initial reserves must be positive")
        return 1

    return run_simulation(
        fee_rate=args.fee_rate,
        reserve1=args.reserve1,
        reserve2=args.reserve2,
        swaps=args.swaps,
        max_swap=args.max_swap,
        seed=args.seed,
    )


if __name__ == "__main__":
    sys.exit(main())
