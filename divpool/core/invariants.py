"""Invariant checkers for the dividend accounting state.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant IDs (empty = all pass).

These are global checks: several of them walk every account record, so they
run from tests and from the tracker's optional check-on-commit mode, never on
the hot path.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Sequence

from .accumulator import accumulated_entitlement
from .eligibility import is_eligible
from .errors import ArithmeticBoundsError
from .types import AccountId, AccountRecord, PoolState


@dataclass(frozen=True)
class LedgerSnapshot:
    """Everything the invariants look at, gathered by the caller."""

    pool: PoolState
    accounts: Mapping[AccountId, AccountRecord]
    holders: Sequence[AccountId]
    balance_of: Callable[[AccountId], int]


def _entitlement_or_none(pool: PoolState, record: AccountRecord) -> int | None:
    try:
        return accumulated_entitlement(pool, record)
    except ArithmeticBoundsError:
        return None


def inv_withdrawn_within_entitlement(s: LedgerSnapshot) -> bool:
    for record in s.accounts.values():
        if record.excluded:
            continue
        earned = _entitlement_or_none(s.pool, record)
        if earned is None or record.withdrawn > earned:
            return False
    return True


def inv_withdrawn_within_distributed(s: LedgerSnapshot) -> bool:
    return s.pool.total_withdrawn <= s.pool.total_distributed


def inv_total_withdrawn_matches_accounts(s: LedgerSnapshot) -> bool:
    return s.pool.total_withdrawn == sum(r.withdrawn for r in s.accounts.values())


def inv_total_shares_matches_accounts(s: LedgerSnapshot) -> bool:
    return s.pool.total_shares == sum(r.shares for r in s.accounts.values())


def inv_excluded_track_zero_shares(s: LedgerSnapshot) -> bool:
    return all(r.shares == 0 for r in s.accounts.values() if r.excluded)


def inv_entitlements_within_distributed(s: LedgerSnapshot) -> bool:
    """Floor rounding may strand dust, but the pool never owes more than it received."""
    total = 0
    for record in s.accounts.values():
        earned = _entitlement_or_none(s.pool, record)
        if earned is None:
            return False
        total += earned
    return total <= s.pool.total_distributed


def inv_holders_unique(s: LedgerSnapshot) -> bool:
    return len(set(s.holders)) == len(s.holders)


def inv_holders_eligible(s: LedgerSnapshot) -> bool:
    threshold = s.pool.eligibility_threshold
    for account in s.holders:
        excluded = s.accounts.get(account, AccountRecord()).excluded
        if not is_eligible(s.balance_of(account), threshold, excluded):
            return False
    return True


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[LedgerSnapshot], bool]] = {
    "inv_withdrawn_within_entitlement": inv_withdrawn_within_entitlement,
    "inv_withdrawn_within_distributed": inv_withdrawn_within_distributed,
    "inv_total_withdrawn_matches_accounts": inv_total_withdrawn_matches_accounts,
    "inv_total_shares_matches_accounts": inv_total_shares_matches_accounts,
    "inv_excluded_track_zero_shares": inv_excluded_track_zero_shares,
    "inv_entitlements_within_distributed": inv_entitlements_within_distributed,
    "inv_holders_unique": inv_holders_unique,
    "inv_holders_eligible": inv_holders_eligible,
}


def check_all(snapshot: LedgerSnapshot) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(snapshot)
    ]
