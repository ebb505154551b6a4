"""Constant-product liquidity pool.

The pool holds reserves of two assets and prices swaps so that the product
of the reserves stays constant, net of the trading fee:

    (reserve_in + effective_in) * (reserve_out - amount_out) = k

where effective_in = amount_in * (1000 - fee_rate) / 1000. The fee is taken
out of the input before pricing and stays in the pool as extra reserve, so k
grows over time.

Every quotient truncates. The rounding directions are part of the pool's
guarantees: withdrawals never favor the withdrawer, and a single swap never
drains an output reserve to zero.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from cpamm.config import PoolConfig
from cpamm.constants import BALANCE_MAX, DEFAULT_FEE_RATE, FEE_DENOMINATOR, GENESIS_SHARES
from cpamm.errors import (
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
from cpamm.ledger import Asset, PoolSnapshot, PoolState, Principal
from cpamm.safe_int import S

logger = structlog.get_logger()


class Pool:
    """Two-asset constant-product AMM pool.

    The pool has two macro-states: Empty (k == 0) and Active (k > 0).
    provide() is the only way into Active; withdraw() returns to Empty when
    the last outstanding share is burned. Quotes and swaps fail with
    ZeroLiquidity while Empty.

    Each public operation runs under a single lock for its whole
    read-validate-mutate sequence, and validates everything before writing:
    a failed operation leaves the state untouched.

    Usage:
        pool = Pool(fee_rate=3)
        pool.credit("alice", 10_000, 10_000)
        shares = pool.provide("alice", 1_000, 1_000)
        out = pool.swap_given_input("alice", 100, min_out=90)
    """

    def __init__(self, fee_rate: int = DEFAULT_FEE_RATE) -> None:
        """Create an empty pool.

        Args:
            fee_rate: Trading fee in per-mille. Values >= 1000 are coerced to 0.
        """
        self.config = PoolConfig(fee_rate=fee_rate)
        self._state = PoolState(fee_rate=self.config.fee_rate)
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: PoolConfig) -> Pool:
        return cls(fee_rate=config.fee_rate)

    @classmethod
    def restore(cls, state: PoolState) -> Pool:
        """Wrap state loaded by the host's ledger store.

        The stored fee rate is sanitized the same way as at creation.
        """
        pool = cls(fee_rate=state.fee_rate)
        state.fee_rate = pool.config.fee_rate
        pool._state = state
        return pool

    @property
    def state(self) -> PoolState:
        """The live state aggregate (for the host's ledger store)."""
        return self._state

    @property
    def fee_rate(self) -> int:
        return self.config.fee_rate

    @contextmanager
    def _operation(self, name: str, **context: Any) -> Iterator[PoolState]:
        """Hold the pool lock for one operation, logging rejections."""
        with self._lock:
            try:
                yield self._state
            except PoolError as err:
                logger.warning(
                    "pool_operation_rejected",
                    operation=name,
                    error=err.code.value,
                    detail=str(err),
                    **context,
                )
                raise

    # =========================================================================
    # Validation and invariant helpers
    # =========================================================================

    @staticmethod
    def _require_positive_and_affordable(
        balances: dict[Principal, int], principal: Principal, amount: int
    ) -> None:
        """Ensure amount is non-zero and covered by the principal's balance."""
        if amount == 0:
            raise ZeroAmount("Amount cannot be zero")
        held = balances.get(principal, 0)
        if amount > held:
            raise InsufficientAmount(f"Requested {amount}, balance is {held}")

    def _require_active_pool(self) -> None:
        if self._state.k == 0:
            raise ZeroLiquidity("Pool has no liquidity")

    @property
    def k(self) -> int:
        """Constant-product invariant: total_asset1 * total_asset2."""
        with self._lock:
            return self._state.k

    @property
    def is_active(self) -> bool:
        return self.k > 0

    # =========================================================================
    # Reads
    # =========================================================================

    def holdings(self, principal: Principal) -> tuple[int, int, int]:
        """Return the principal's (asset1 balance, asset2 balance, shares)."""
        with self._lock:
            state = self._state
            return (
                state.balance_of(Asset.ASSET1, principal),
                state.balance_of(Asset.ASSET2, principal),
                state.share_of(principal),
            )

    def details(self) -> tuple[int, int, int, int]:
        """Return (total_asset1, total_asset2, total_shares, fee_rate)."""
        with self._lock:
            state = self._state
            return state.total_asset1, state.total_asset2, state.total_shares, state.fee_rate

    def credit(self, principal: Principal, amount1: int, amount2: int) -> None:
        """Seed the principal's off-pool balances through the ledger store.

        Raises:
            ValueError: If either amount is not an int within [0, BALANCE_MAX]
        """
        with self._lock:
            self._state.credit(principal, amount1, amount2)
        logger.debug("balance_credited", principal=principal, amount1=amount1, amount2=amount2)

    def snapshot(self) -> PoolSnapshot:
        with self._lock:
            return self._state.snapshot()

    def get_equivalent_asset2_estimate(self, amount1: int) -> int:
        """Amount of asset2 that matches amount1 at the current pool ratio."""
        _check_amount("amount1", amount1)
        with self._operation("equivalent_estimate", amount1=amount1) as state:
            self._require_active_pool()
            return (S(state.total_asset2) * S(amount1) // S(state.total_asset1)).value

    def get_equivalent_asset1_estimate(self, amount2: int) -> int:
        """Amount of asset1 that matches amount2 at the current pool ratio."""
        _check_amount("amount2", amount2)
        with self._operation("equivalent_estimate", amount2=amount2) as state:
            self._require_active_pool()
            return (S(state.total_asset1) * S(amount2) // S(state.total_asset2)).value

    # =========================================================================
    # Liquidity
    # =========================================================================

    def provide(self, principal: Principal, amount1: int, amount2: int) -> int:
        """Deposit both assets and mint shares to the principal.

        The first deposit into an empty pool always mints GENESIS_SHARES and
        sets the price. Later deposits must match the current reserve ratio
        exactly: the shares computed independently from each side must be
        equal.

        Returns:
            Number of shares minted

        Raises:
            ZeroAmount: If either amount is zero
            InsufficientAmount: If the principal cannot cover either amount
            NonEquivalentValue: If the deposit ratio differs from the pool's
            ThresholdNotReached: If the deposit is too small to mint a share
        """
        _check_amount("amount1", amount1)
        _check_amount("amount2", amount2)
        with self._operation(
            "provide", principal=principal, amount1=amount1, amount2=amount2
        ) as state:
            self._require_positive_and_affordable(state.balance1, principal, amount1)
            self._require_positive_and_affordable(state.balance2, principal, amount2)

            if state.total_shares == 0:
                share = GENESIS_SHARES
            else:
                share1 = (S(state.total_shares) * S(amount1) // S(state.total_asset1)).value
                share2 = (S(state.total_shares) * S(amount2) // S(state.total_asset2)).value
                if share1 != share2:
                    raise NonEquivalentValue(
                        f"Deposit ({amount1}, {amount2}) does not match reserve ratio "
                        f"({state.total_asset1}, {state.total_asset2})"
                    )
                share = share1

            if share == 0:
                raise ThresholdNotReached("Deposit too small to mint any shares")

            state.settle(
                principal,
                reserve1=amount1,
                reserve2=amount2,
                balance1=-amount1,
                balance2=-amount2,
                shares=share,
            )

        logger.info(
            "liquidity_provided",
            principal=principal,
            amount1=amount1,
            amount2=amount2,
            shares=share,
        )
        return share

    def _withdraw_estimate(self, share: int) -> tuple[int, int]:
        self._require_active_pool()
        state = self._state
        if share > state.total_shares:
            raise InvalidShare(f"Share {share} exceeds total shares {state.total_shares}")
        amount1 = S(share) * S(state.total_asset1) // S(state.total_shares)
        amount2 = S(share) * S(state.total_asset2) // S(state.total_shares)
        return amount1.value, amount2.value

    def get_withdraw_estimate(self, share: int) -> tuple[int, int]:
        """Amounts of each asset that burning share would return.

        Pro-rata with floor division: rounding dust stays in the pool.

        Raises:
            ZeroLiquidity: If the pool is empty
            InvalidShare: If share exceeds total shares
        """
        _check_amount("share", share)
        with self._operation("withdraw_estimate", share=share):
            return self._withdraw_estimate(share)

    def withdraw(self, principal: Principal, share: int) -> tuple[int, int]:
        """Burn the principal's shares and return their pro-rata reserves.

        Returns:
            Tuple of (amount1, amount2) credited to the principal

        Raises:
            ZeroAmount: If share is zero
            InsufficientAmount: If the principal holds fewer shares
        """
        _check_amount("share", share)
        with self._operation("withdraw", principal=principal, share=share) as state:
            self._require_positive_and_affordable(state.shares, principal, share)
            amount1, amount2 = self._withdraw_estimate(share)
            state.settle(
                principal,
                shares=-share,
                reserve1=-amount1,
                reserve2=-amount2,
                balance1=amount1,
                balance2=amount2,
            )
            emptied = state.total_shares == 0

        logger.info(
            "liquidity_withdrawn",
            principal=principal,
            shares=share,
            amount1=amount1,
            amount2=amount2,
            pool_emptied=emptied,
        )
        return amount1, amount2

    # =========================================================================
    # Swap pricing
    # =========================================================================

    def _quote_out_given_in(self, amount_in: int, asset_in: Asset) -> int:
        self._require_active_pool()
        reserve_in, reserve_out = self._state.get_reserves(asset_in)
        k = S(reserve_in) * S(reserve_out)

        effective_in = S(self.config.fee_multiplier) * S(amount_in) // FEE_DENOMINATOR
        in_after = S(reserve_in) + effective_in
        out_after = k // in_after
        amount_out = S(reserve_out) - out_after

        # out_after can floor to zero; never let one swap empty the reserve
        if amount_out == reserve_out:
            amount_out = amount_out - 1
        return amount_out.value

    def _quote_in_given_out(self, amount_out: int, asset_in: Asset) -> int:
        self._require_active_pool()
        reserve_in, reserve_out = self._state.get_reserves(asset_in)
        if amount_out >= reserve_out:
            raise InsufficientLiquidity(
                f"Requested {amount_out}, reserve is {reserve_out}"
            )
        k = S(reserve_in) * S(reserve_out)

        out_after = S(reserve_out) - amount_out
        in_after = k // out_after
        # Gross the fee back up; truncation can under-quote by the fee rounding
        amount_in = (in_after - reserve_in) * FEE_DENOMINATOR // self.config.fee_multiplier
        return amount_in.value

    def quote_out_given_in(self, amount_in: int, asset_in: Asset = Asset.ASSET1) -> int:
        """Output amount a swap of amount_in of asset_in would yield.

        Raises:
            ZeroLiquidity: If the pool is empty
        """
        _check_amount("amount_in", amount_in)
        with self._operation("quote_out_given_in", amount_in=amount_in, asset_in=asset_in.value):
            amount_out = self._quote_out_given_in(amount_in, asset_in)
        logger.debug("quote", asset_in=asset_in.value, amount_in=amount_in, amount_out=amount_out)
        return amount_out

    def quote_in_given_out(self, amount_out: int, asset_in: Asset = Asset.ASSET1) -> int:
        """Input amount of asset_in needed to receive amount_out of the other asset.

        Raises:
            ZeroLiquidity: If the pool is empty
            InsufficientLiquidity: If amount_out meets or exceeds the output reserve
        """
        _check_amount("amount_out", amount_out)
        with self._operation(
            "quote_in_given_out", amount_out=amount_out, asset_in=asset_in.value
        ):
            amount_in = self._quote_in_given_out(amount_out, asset_in)
        logger.debug("quote", asset_in=asset_in.value, amount_in=amount_in, amount_out=amount_out)
        return amount_in

    def quote_asset2_given_asset1_in(self, amount_in: int) -> int:
        return self.quote_out_given_in(amount_in, Asset.ASSET1)

    def quote_asset1_given_asset2_in(self, amount_in: int) -> int:
        return self.quote_out_given_in(amount_in, Asset.ASSET2)

    def quote_asset1_in_given_asset2_out(self, amount_out: int) -> int:
        return self.quote_in_given_out(amount_out, Asset.ASSET1)

    def quote_asset2_in_given_asset1_out(self, amount_out: int) -> int:
        return self.quote_in_given_out(amount_out, Asset.ASSET2)

    # =========================================================================
    # Swap execution
    # =========================================================================

    def _execute_swap(
        self, principal: Principal, asset_in: Asset, amount_in: int, amount_out: int
    ) -> None:
        if asset_in is Asset.ASSET1:
            self._state.settle(
                principal,
                reserve1=amount_in,
                reserve2=-amount_out,
                balance1=-amount_in,
                balance2=amount_out,
            )
        else:
            self._state.settle(
                principal,
                reserve2=amount_in,
                reserve1=-amount_out,
                balance2=-amount_in,
                balance1=amount_out,
            )

    def swap_given_input(
        self,
        principal: Principal,
        amount_in: int,
        min_out: int = 0,
        asset_in: Asset = Asset.ASSET1,
    ) -> int:
        """Swap an exact amount of asset_in for at least min_out of the other asset.

        Returns:
            Amount of the output asset credited to the principal

        Raises:
            ZeroAmount: If amount_in is zero
            InsufficientAmount: If the principal cannot cover amount_in
            ZeroLiquidity: If the pool is empty
            SlippageExceeded: If the quoted output is below min_out
        """
        _check_amount("amount_in", amount_in)
        _check_amount("min_out", min_out)
        with self._operation(
            "swap_given_input",
            principal=principal,
            asset_in=asset_in.value,
            amount_in=amount_in,
            min_out=min_out,
        ) as state:
            self._require_positive_and_affordable(state.balances(asset_in), principal, amount_in)
            amount_out = self._quote_out_given_in(amount_in, asset_in)
            if amount_out < min_out:
                raise SlippageExceeded(f"Quoted output {amount_out} is below minimum {min_out}")
            self._execute_swap(principal, asset_in, amount_in, amount_out)
            k_after = state.k

        logger.info(
            "swap_executed",
            principal=principal,
            kind="given_input",
            asset_in=asset_in.value,
            amount_in=amount_in,
            amount_out=amount_out,
            k=k_after,
        )
        return amount_out

    def swap_given_output(
        self,
        principal: Principal,
        amount_out: int,
        max_in: int = BALANCE_MAX,
        asset_in: Asset = Asset.ASSET1,
    ) -> int:
        """Swap at most max_in of asset_in for an exact amount_out of the other asset.

        Returns:
            Amount of asset_in debited from the principal

        Raises:
            ZeroLiquidity: If the pool is empty
            InsufficientLiquidity: If amount_out meets or exceeds the output reserve
            SlippageExceeded: If the quoted input is above max_in
            ZeroAmount: If the quoted input is zero
            InsufficientAmount: If the principal cannot cover the quoted input
        """
        _check_amount("amount_out", amount_out)
        _check_amount("max_in", max_in)
        with self._operation(
            "swap_given_output",
            principal=principal,
            asset_in=asset_in.value,
            amount_out=amount_out,
            max_in=max_in,
        ) as state:
            amount_in = self._quote_in_given_out(amount_out, asset_in)
            if amount_in > max_in:
                raise SlippageExceeded(f"Quoted input {amount_in} is above maximum {max_in}")
            self._require_positive_and_affordable(state.balances(asset_in), principal, amount_in)
            self._execute_swap(principal, asset_in, amount_in, amount_out)
            k_after = state.k

        logger.info(
            "swap_executed",
            principal=principal,
            kind="given_output",
            asset_in=asset_in.value,
            amount_in=amount_in,
            amount_out=amount_out,
            k=k_after,
        )
        return amount_in


def _check_amount(name: str, value: int) -> None:
    """Reject values that are not unsigned 128-bit integers.

    Raises:
        TypeError: If value is not an int
        ValueError: If value is negative or exceeds BALANCE_MAX
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > BALANCE_MAX:
        raise ValueError(f"{name} out of range [0, {BALANCE_MAX}]: {value}")


__all__ = ["Pool"]
