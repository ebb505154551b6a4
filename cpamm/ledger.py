"""Pool state: reserves, shares and the off-pool balance ledger.

The pool's fields form one aggregate that is mutated as a unit. Mappings are
keyed by an opaque principal and are kept sparse: a principal with no entry
holds zero, and entries that drop to zero are removed.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass, field
from enum import Enum

from cpamm.safe_int import S, is_balance

# Opaque caller identity supplied by the host (account id, address, name...)
Principal = Hashable


class Asset(str, Enum):
    """One side of the two-asset pool."""

    ASSET1 = "asset1"
    ASSET2 = "asset2"

    @property
    def other(self) -> Asset:
        return Asset.ASSET2 if self is Asset.ASSET1 else Asset.ASSET1


@dataclass(frozen=True)
class PoolSnapshot:
    """Immutable copy of the full pool state at one point in time."""

    total_asset1: int
    total_asset2: int
    total_shares: int
    fee_rate: int
    shares: dict[Principal, int]
    balance1: dict[Principal, int]
    balance2: dict[Principal, int]

    @property
    def k(self) -> int:
        return self.total_asset1 * self.total_asset2


@dataclass
class PoolState:
    """Every field the pool owns between calls."""

    fee_rate: int = 0
    total_asset1: int = 0
    total_asset2: int = 0
    total_shares: int = 0
    shares: dict[Principal, int] = field(default_factory=dict)
    balance1: dict[Principal, int] = field(default_factory=dict)
    balance2: dict[Principal, int] = field(default_factory=dict)

    # --- Reads ---

    def reserve(self, asset: Asset) -> int:
        return self.total_asset1 if asset is Asset.ASSET1 else self.total_asset2

    def get_reserves(self, asset_in: Asset) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        return self.reserve(asset_in), self.reserve(asset_in.other)

    def balances(self, asset: Asset) -> dict[Principal, int]:
        """The off-pool balance map for one asset."""
        return self.balance1 if asset is Asset.ASSET1 else self.balance2

    def balance_of(self, asset: Asset, principal: Principal) -> int:
        return self.balances(asset).get(principal, 0)

    def share_of(self, principal: Principal) -> int:
        return self.shares.get(principal, 0)

    @property
    def k(self) -> int:
        """Constant-product invariant: product of the two reserves."""
        return (S(self.total_asset1) * S(self.total_asset2)).value

    # --- Writes ---

    def settle(
        self,
        principal: Principal,
        *,
        reserve1: int = 0,
        reserve2: int = 0,
        balance1: int = 0,
        balance2: int = 0,
        shares: int = 0,
    ) -> None:
        """Apply signed deltas to reserves, the principal's balances and shares.

        All new values are computed before any field is written, so a delta
        that would underflow or overflow leaves the state untouched.

        Raises:
            Underflow: If any quantity would go negative
            BalanceOverflow: If any quantity would exceed BALANCE_MAX
        """
        new_reserve1 = _apply(self.total_asset1, reserve1)
        new_reserve2 = _apply(self.total_asset2, reserve2)
        new_total_shares = _apply(self.total_shares, shares)
        new_shares = _apply(self.share_of(principal), shares)
        new_balance1 = _apply(self.balance1.get(principal, 0), balance1)
        new_balance2 = _apply(self.balance2.get(principal, 0), balance2)

        self.total_asset1 = new_reserve1
        self.total_asset2 = new_reserve2
        self.total_shares = new_total_shares
        _store(self.shares, principal, new_shares)
        _store(self.balance1, principal, new_balance1)
        _store(self.balance2, principal, new_balance2)

    def credit(self, principal: Principal, amount1: int, amount2: int) -> None:
        """Seed a principal's off-pool balances.

        This is the ledger store's funding hook; the pool itself never
        creates balances. Not synchronized: a state shared across threads is
        funded through Pool.credit(), which holds the pool lock.
        """
        for amount in (amount1, amount2):
            if not isinstance(amount, int) or isinstance(amount, bool) or not is_balance(amount):
                raise ValueError(f"Credit amount out of range: {amount!r}")
        self.settle(principal, balance1=amount1, balance2=amount2)

    # --- Inspection ---

    def snapshot(self) -> PoolSnapshot:
        return PoolSnapshot(
            total_asset1=self.total_asset1,
            total_asset2=self.total_asset2,
            total_shares=self.total_shares,
            fee_rate=self.fee_rate,
            shares=dict(self.shares),
            balance1=dict(self.balance1),
            balance2=dict(self.balance2),
        )

    def check_invariants(self) -> list[str]:
        """Return a description of every violated state invariant.

        An empty list means the state is consistent.
        """
        violations = []
        if sum(self.shares.values()) != self.total_shares:
            violations.append(
                f"shares sum {sum(self.shares.values())} != total_shares {self.total_shares}"
            )
        if (self.total_asset1 == 0) != (self.total_asset2 == 0):
            violations.append(
                f"one-sided reserves ({self.total_asset1}, {self.total_asset2})"
            )
        if (self.total_shares == 0) != (self.k == 0):
            violations.append(
                f"total_shares {self.total_shares} inconsistent with k {self.k}"
            )
        for name, mapping in (
            ("shares", self.shares),
            ("balance1", self.balance1),
            ("balance2", self.balance2),
        ):
            negative = [p for p, amount in mapping.items() if amount <= 0]
            if negative:
                violations.append(f"{name} has non-positive entries for {negative}")
        return violations


def _store(mapping: dict[Principal, int], principal: Principal, amount: int) -> None:
    if amount == 0:
        mapping.pop(principal, None)
    else:
        mapping[principal] = amount


def _apply(value: int, delta: int) -> int:
    """Add a signed delta to an unsigned quantity.

    Raises:
        Underflow: If the result would be negative
        BalanceOverflow: If the result exceeds BALANCE_MAX
    """
    if delta >= 0:
        return (S(value) + delta).to_balance()
    return (S(value) - (-delta)).value
