"""Withdrawal booking, payout failure rollback and re-entrancy."""

import logging

import pytest

from divpool.config import PoolConfig
from divpool.core.errors import NothingToWithdrawError, PayoutTransferError, ReentrantCallError
from divpool.integration.pool import DividendPool, create_pool
from divpool.integration.tracker import DividendTracker
from divpool.state.shares import ShareLedger

E18 = 10**18


def _funded() -> DividendPool:
    pool = create_pool(PoolConfig(magnitude=E18))
    pool.ledger.mint("alice", 300)
    pool.ledger.mint("bob", 700)
    pool.deposit("treasury", 100)
    return pool


class ExplodingPayout:
    def pay(self, account: str, amount: int) -> bool:
        raise RuntimeError("bridge offline")


class ReentrantPayout:
    """Calls back into the tracker for the same account while paying."""

    def __init__(self) -> None:
        self.tracker: DividendTracker | None = None
        self.inner_errors: list[Exception] = []
        self.paid: list[tuple[str, int]] = []

    def pay(self, account: str, amount: int) -> bool:
        try:
            self.tracker.withdraw(account)
        except ReentrantCallError as exc:
            self.inner_errors.append(exc)
        self.paid.append((account, amount))
        return True


def _tracker_with(payout) -> tuple[ShareLedger, DividendTracker]:
    ledger = ShareLedger()
    tracker = DividendTracker(ledger, payout, PoolConfig(magnitude=E18))
    ledger.add_listener(tracker)
    ledger.mint("alice", 300)
    ledger.mint("bob", 700)
    tracker.record_deposit("treasury", 100)
    return ledger, tracker


class TestSuccessfulWithdraw:
    def test_pays_and_books(self):
        pool = _funded()
        assert pool.tracker.withdraw("alice") == 30
        assert pool.payout.paid_to("alice") == 30
        assert pool.payout.reserve == 70
        assert pool.tracker.total_withdrawn == 30

    def test_nothing_to_withdraw(self):
        pool = _funded()
        with pytest.raises(NothingToWithdrawError):
            pool.tracker.withdraw("nobody")

    def test_second_withdraw_rejected(self):
        pool = _funded()
        pool.tracker.withdraw("alice")
        with pytest.raises(NothingToWithdrawError):
            pool.tracker.withdraw("alice")

    def test_excluded_account_can_still_withdraw(self):
        pool = _funded()
        pool.tracker.exclude("alice")
        assert pool.tracker.withdraw("alice") == 30


class TestFailedPayout:
    def test_blocked_recipient_rolls_back(self):
        pool = _funded()
        seen = []
        pool.tracker.subscribe(seen.append)
        pool.payout.blocked.add("alice")
        with pytest.raises(PayoutTransferError) as info:
            pool.tracker.withdraw("alice")
        assert info.value.account == "alice"
        assert info.value.amount == 30
        assert pool.tracker.withdrawable_of("alice") == 30
        assert pool.tracker.withdrawn_of("alice") == 0
        assert pool.tracker.total_withdrawn == 0
        assert pool.payout.reserve == 100
        assert seen == []

    def test_retry_after_unblock(self):
        pool = _funded()
        pool.payout.blocked.add("alice")
        with pytest.raises(PayoutTransferError):
            pool.tracker.withdraw("alice")
        pool.payout.blocked.discard("alice")
        assert pool.tracker.withdraw("alice") == 30

    def test_short_reserve_rolls_back(self):
        pool = _funded()
        # Bypass pool.deposit so the reserve is never funded.
        pool.tracker.record_deposit("treasury", 1000)
        with pytest.raises(PayoutTransferError):
            pool.tracker.withdraw("alice")
        assert pool.tracker.withdrawable_of("alice") == 330

    def test_raising_payout_is_wrapped(self):
        _, tracker = _tracker_with(ExplodingPayout())
        with pytest.raises(PayoutTransferError) as info:
            tracker.withdraw("alice")
        assert isinstance(info.value.__cause__, RuntimeError)
        assert "bridge offline" in str(info.value)
        assert tracker.withdrawable_of("alice") == 30

    def test_rollback_is_logged(self, caplog, monkeypatch):
        monkeypatch.setattr(logging.getLogger("divpool"), "propagate", True)
        caplog.set_level(logging.WARNING, logger="divpool.tracker")
        pool = _funded()
        pool.payout.blocked.add("alice")
        with pytest.raises(PayoutTransferError):
            pool.tracker.withdraw("alice")
        assert any('"event":"withdrawal_rolled_back"' in r.getMessage() for r in caplog.records)


class MintingPayout:
    """Mints shares through the ledger mid-payment, then reports failure."""

    def __init__(self) -> None:
        self.pool: DividendPool | None = None
        self.inner_errors: list[Exception] = []

    def pay(self, account: str, amount: int) -> bool:
        try:
            self.pool.ledger.mint("carol", 500)
        except ReentrantCallError as exc:
            self.inner_errors.append(exc)
        return False


class TestReentrancy:
    def test_reentrant_withdraw_is_rejected(self):
        payout = ReentrantPayout()
        _, tracker = _tracker_with(payout)
        payout.tracker = tracker
        assert tracker.withdraw("alice") == 30
        assert len(payout.inner_errors) == 1
        assert payout.paid == [("alice", 30)]
        assert tracker.withdrawn_of("alice") == 30
        assert tracker.total_withdrawn == 30

    def test_escaping_inner_error_rolls_back_outer(self):
        class Leaky:
            tracker: DividendTracker

            def pay(self, account: str, amount: int) -> bool:
                self.tracker.withdraw(account)
                return True

        payout = Leaky()
        _, tracker = _tracker_with(payout)
        payout.tracker = tracker
        with pytest.raises(PayoutTransferError) as info:
            tracker.withdraw("alice")
        assert isinstance(info.value.__cause__, ReentrantCallError)
        assert tracker.withdrawable_of("alice") == 30
        assert tracker.total_withdrawn == 0

    def test_ledger_mutation_during_failed_payout_changes_nothing(self):
        payout = MintingPayout()
        pool = create_pool(PoolConfig(magnitude=E18), payout=payout)
        payout.pool = pool
        pool.ledger.mint("alice", 300)
        pool.ledger.mint("bob", 700)
        pool.tracker.record_deposit("treasury", 100)

        with pytest.raises(PayoutTransferError):
            pool.tracker.withdraw("alice")

        assert len(payout.inner_errors) == 1
        assert pool.ledger.balance_of("carol") == 0
        assert pool.ledger.total_supply() == 1000
        assert pool.tracker.total_shares == 1000
        assert pool.tracker.shares_of("carol") == 0
        assert pool.tracker.withdrawable_of("alice") == 30
        assert pool.tracker.check_invariants() == []

    def test_other_mutations_rejected_during_payout(self):
        class Busy:
            def __init__(self) -> None:
                self.tracker: DividendTracker | None = None
                self.errors: list[str] = []

            def pay(self, account: str, amount: int) -> bool:
                attempts = [
                    lambda: self.tracker.record_deposit("treasury", 10),
                    lambda: self.tracker.withdraw("bob"),
                    lambda: self.tracker.exclude("bob"),
                    lambda: self.tracker.set_threshold(500),
                ]
                for attempt in attempts:
                    try:
                        attempt()
                    except ReentrantCallError:
                        self.errors.append("rejected")
                # Views still work mid-payment.
                assert self.tracker.withdrawable_of(account) == 0
                return True

        payout = Busy()
        _, tracker = _tracker_with(payout)
        payout.tracker = tracker
        before = tracker.pool_state
        assert tracker.withdraw("alice") == 30
        assert payout.errors == ["rejected"] * 4
        assert tracker.total_distributed == before.total_distributed
        assert tracker.eligibility_threshold == before.eligibility_threshold
        assert not tracker.is_excluded("bob")
        assert tracker.withdrawable_of("bob") == 70

    def test_payout_guard_released_after_payment(self):
        pool = _funded()
        pool.payout.blocked.add("alice")
        with pytest.raises(PayoutTransferError):
            pool.tracker.withdraw("alice")
        pool.deposit("treasury", 10)
        assert pool.tracker.total_distributed == 110
