"""
Wiring helper: a share ledger, a tracker listening to it, and a reserve payout.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import PoolConfig
from ..core.types import AccountId
from ..state.shares import ShareLedger
from .payouts import ReservePayout
from .tracker import DividendTracker


@dataclass
class DividendPool:
    ledger: ShareLedger
    tracker: DividendTracker
    payout: ReservePayout

    def deposit(self, depositor: AccountId, amount: int) -> None:
        """Record a deposit and credit the value to the payout reserve.

        Both happen in one tracker transaction: either the reserve is funded
        and the deposit recorded, or neither.
        """
        self.tracker.record_deposit(depositor, amount, settle=self.payout.fund)


def create_pool(config: PoolConfig | None = None, *, payout: ReservePayout | None = None) -> DividendPool:
    ledger = ShareLedger()
    payout = payout if payout is not None else ReservePayout()
    tracker = DividendTracker(ledger, payout, config)
    ledger.add_listener(tracker)
    return DividendPool(ledger=ledger, tracker=tracker, payout=payout)
