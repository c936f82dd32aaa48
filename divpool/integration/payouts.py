"""
Value transfer collaborators.

The tracker only decides *how much* an account is owed. Moving the settlement
asset is delegated to a `Payout`; a `False` return or a raised exception both
count as a failed payment and make the tracker roll the withdrawal back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Protocol, Set

from ..core.math import checked_add, require_uint
from ..core.types import AccountId
from ..util.structured_logging import log_event

log = logging.getLogger("divpool.payouts")


class Payout(Protocol):
    def pay(self, account: AccountId, amount: int) -> bool:
        """Deliver *amount* to *account*. Return False if it was not delivered."""


@dataclass
class ReservePayout:
    """
    In-memory settlement reserve.

    Deposits credit the reserve; payments debit it and credit the recipient.
    Accounts in `blocked` refuse payment (models a recipient that rejects
    incoming value).
    """

    reserve: int = 0
    paid: Dict[AccountId, int] = field(default_factory=dict)
    blocked: Set[AccountId] = field(default_factory=set)

    def fund(self, amount: int) -> None:
        require_uint(amount, name="amount")
        self.reserve = checked_add(self.reserve, amount)

    def pay(self, account: AccountId, amount: int) -> bool:
        if account in self.blocked:
            log_event(log, "payout_refused", level=logging.WARNING, account=account, amount=amount)
            return False
        if amount > self.reserve:
            log_event(log, "payout_short_reserve", level=logging.WARNING, account=account, amount=amount, reserve=self.reserve)
            return False
        self.reserve -= amount
        self.paid[account] = checked_add(self.paid.get(account, 0), amount)
        return True

    def paid_to(self, account: AccountId) -> int:
        return self.paid.get(account, 0)
