"""Eligible-holder membership rules.

An account is an eligible holder iff it is not excluded and its balance is at
least the configured threshold. Membership is reporting-only; it never affects
entitlement.

`sync_membership()` is the one place membership is written. It is called from
every trigger (balance change, exclusion toggle, threshold change) so the rule
lives in a single function.
"""

from __future__ import annotations

from typing import Literal, Protocol

from .types import AccountId

MembershipChange = Literal["added", "removed"]


class MembershipSet(Protocol):
    def add(self, account: AccountId) -> bool: ...

    def remove(self, account: AccountId) -> bool: ...

    def contains(self, account: AccountId) -> bool: ...


def is_eligible(balance: int, threshold: int, excluded: bool) -> bool:
    return not excluded and balance >= threshold


def sync_membership(
    holders: MembershipSet,
    account: AccountId,
    balance: int,
    threshold: int,
    excluded: bool,
) -> MembershipChange | None:
    """Bring *account*'s membership in line with the rule. Returns what changed."""
    if is_eligible(balance, threshold, excluded):
        return "added" if holders.add(account) else None
    return "removed" if holders.remove(account) else None
