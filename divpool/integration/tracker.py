"""
Stateful dividend tracker.

`DividendTracker` is the imperative shell around the pure accounting core in
`divpool.core`. It owns the mutable state (pool accumulator, account records,
eligible holder set) and is the only place that state is written:

- `record_deposit()` spreads a deposit over the currently tracked shares.
- `on_balances_will_change()` is the balance-change hook. A share ledger calls
  it with pending balances *before* applying them; each account's correction
  is adjusted so value already accrued under the old balance is kept.
- `withdraw()` books the payout, then asks the `Payout` collaborator to move
  the value, and rolls the booking back if that fails.
- `exclude()` / `include()` / `set_threshold()` are the administrative
  operations, gated by an optional `OwnerGate`.

Every public mutating operation runs inside `_transaction()`: a reentrant lock
serializes operations, and a journal of the pool state, touched account records
and holder-set changes restores the exact prior state if anything in the block
raises. Events reach subscribers only after the transaction has committed.

Thread safety:
    Operations on one tracker are serialized by an internal RLock. The lock is
    reentrant so a payout collaborator calling back into the tracker on the
    same thread can read committed state instead of deadlocking. Mutations
    from inside a payout (including share-ledger changes that reach the
    balance hook) raise `ReentrantCallError`, so a failed withdrawal only ever
    rolls back its own booking.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Protocol, Tuple

from ..config import PoolConfig
from ..core.accumulator import (
    accumulated_entitlement,
    exclude_record,
    include_record,
    record_deposit,
    sync_shares,
)
from ..core.eligibility import MembershipChange, sync_membership
from ..core.errors import (
    AlreadyExcludedError,
    DividendInvariantError,
    NoOpError,
    NotExcludedError,
    PayoutTransferError,
    ReentrantCallError,
)
from ..core.invariants import LedgerSnapshot, check_all
from ..core.math import require_uint
from ..core.types import AccountId, AccountInfo, AccountRecord, Effect, Event, PoolState
from ..core.withdrawals import apply_withdrawal, withdrawable_of
from ..state.accounts import AccountTable
from ..state.holders import HolderSet
from ..util.structured_logging import log_event
from .auth import OwnerGate
from .payouts import Payout

log = logging.getLogger("divpool.tracker")

Subscriber = Callable[[Effect], None]


class ShareSource(Protocol):
    def balance_of(self, account: AccountId) -> int: ...

    def total_supply(self) -> int: ...


class _Journal:
    """Undo log for one transaction."""

    def __init__(self, pool: PoolState, accounts: AccountTable, holders: HolderSet) -> None:
        self.pool = pool
        self._accounts = accounts
        self._holders = holders
        self._records: Dict[AccountId, Optional[AccountRecord]] = {}
        self._holder_ops: List[Tuple[MembershipChange, AccountId, int]] = []
        self.settlements: List[Callable[[], None]] = []

    def put(self, account: AccountId, record: AccountRecord) -> None:
        if account not in self._records:
            self._records[account] = self._accounts.lookup(account)
        self._accounts.put(account, record)

    def sync_membership(
        self,
        account: AccountId,
        balance: int,
        threshold: int,
        excluded: bool,
    ) -> MembershipChange | None:
        position = self._holders.index_of(account)
        change = sync_membership(self._holders, account, balance, threshold, excluded)
        if change is not None:
            self._holder_ops.append((change, account, position))
        return change

    def rollback(self) -> None:
        for change, account, position in reversed(self._holder_ops):
            if change == "added":
                self._holders.remove(account)
            else:
                self._holders.insert_at(account, position)
        for account, previous in self._records.items():
            self._accounts.restore(account, previous)


class DividendTracker:
    """
    Pull-based proportional dividend ledger.

    Example:
        ledger = ShareLedger()
        tracker = DividendTracker(ledger, ReservePayout())
        ledger.add_listener(tracker)

        ledger.mint("alice", 300)
        ledger.mint("bob", 700)
        tracker.record_deposit("treasury", 100)
        tracker.withdrawable_of("alice")  # 29, floor rounding at M = 2**128
    """

    def __init__(
        self,
        ledger: ShareSource,
        payout: Payout,
        config: PoolConfig | None = None,
        *,
        gate: OwnerGate | None = None,
    ) -> None:
        config = config or PoolConfig()
        self._ledger = ledger
        self._payout = payout
        self._pool = PoolState(
            magnitude=config.magnitude,
            eligibility_threshold=config.eligibility_threshold,
        )
        self._accounts = AccountTable()
        self._holders = HolderSet()
        if gate is None and config.owner is not None:
            gate = OwnerGate(config.owner)
        self._gate = gate
        self._check_on_commit = config.check_invariants_on_commit
        self._lock = threading.RLock()
        self._payout_depth = 0
        self._subscribers: List[Subscriber] = []

    # ========================================================================
    # Events
    # ========================================================================

    def subscribe(self, callback: Subscriber) -> None:
        """Register *callback* to receive an `Effect` after each committed operation.

        Exceptions raised by a subscriber propagate to the caller of the
        operation; the operation itself has already committed by then.
        """
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _emit(self, effect: Effect) -> None:
        for callback in list(self._subscribers):
            callback(effect)

    # ========================================================================
    # Transaction boundary
    # ========================================================================

    @contextmanager
    def _transaction(self, pending: Mapping[AccountId, int] | None = None) -> Iterator[_Journal]:
        with self._lock:
            if self._payout_depth:
                raise ReentrantCallError("tracker state cannot change while a payout is in flight")
            journal = _Journal(self._pool, self._accounts, self._holders)
            try:
                yield journal
                if self._check_on_commit:
                    self._verify(pending)
                # External settlement runs last; if it raises, nothing is kept.
                for settle in journal.settlements:
                    settle()
            except BaseException:
                journal.rollback()
                self._pool = journal.pool
                raise

    def _verify(self, pending: Mapping[AccountId, int] | None) -> None:
        violations = check_all(self._snapshot(pending))
        if violations:
            raise DividendInvariantError(violations)

    def _snapshot(self, pending: Mapping[AccountId, int] | None = None) -> LedgerSnapshot:
        if pending:
            def balance_of(account: AccountId) -> int:
                if account in pending:
                    return pending[account]
                return self._ledger.balance_of(account)
        else:
            balance_of = self._ledger.balance_of
        return LedgerSnapshot(
            pool=self._pool,
            accounts=self._accounts.get_all(),
            holders=self._holders.snapshot(),
            balance_of=balance_of,
        )

    def _authorize(self, caller: AccountId | None) -> None:
        if self._gate is not None:
            self._gate.require(caller)

    # ========================================================================
    # Deposits
    # ========================================================================

    def record_deposit(
        self,
        depositor: AccountId,
        amount: int,
        *,
        settle: Callable[[int], None] | None = None,
    ) -> None:
        """Attribute *amount* to every tracked share, pro rata.

        A zero amount succeeds without changing anything. *settle*, when given,
        is called with the amount as the last step of the same transaction
        (e.g. to fund the payout reserve); if it raises, the deposit is not
        recorded. Subscribers run only after both have committed.

        Raises:
            EmptyPoolError: no shares are tracked.
            DividendOverflowError: accumulator or lifetime total overflow.
            ReentrantCallError: called from inside a payout.
        """
        with self._transaction() as tx:
            self._pool = record_deposit(self._pool, amount, self._pool.total_shares)
            rate = self._pool.per_share_rate
            if settle is not None and amount:
                tx.settlements.append(lambda: settle(amount))
        if amount == 0:
            return
        log_event(log, "deposit_recorded", depositor=depositor, amount=amount, per_share_rate=rate)
        self._emit(Effect(event=Event.DEPOSIT_RECORDED, account=depositor, amount=amount))

    # ========================================================================
    # Balance-change hook
    # ========================================================================

    def on_balance_will_change(self, account: AccountId, new_balance: int) -> None:
        self.on_balances_will_change({account: new_balance})

    def on_balances_will_change(self, changes: Mapping[AccountId, int]) -> None:
        """Re-sync every account in *changes* to its pending balance.

        Each side is synced against its own pre-change tracked shares. Either
        every account is re-synced or, if any side fails, none is.
        """
        with self._transaction(pending=changes) as tx:
            threshold = self._pool.eligibility_threshold
            for account, new_balance in changes.items():
                self._pool, record = sync_shares(self._pool, self._accounts.get(account), new_balance)
                tx.put(account, record)
                tx.sync_membership(account, new_balance, threshold, record.excluded)

    # ========================================================================
    # Withdrawals
    # ========================================================================

    def withdraw(self, account: AccountId) -> int:
        """Pay out everything *account* can withdraw and return the amount.

        The withdrawal is booked before the payout collaborator is invoked, and
        the collaborator cannot change tracker state while it runs. If the
        payment fails the booking is rolled back.

        Raises:
            NothingToWithdrawError: nothing is withdrawable.
            PayoutTransferError: the payout collaborator failed (state unchanged).
            ReentrantCallError: called from inside a payout.
        """
        try:
            with self._transaction() as tx:
                self._pool, record, amount = apply_withdrawal(self._pool, self._accounts.get(account))
                tx.put(account, record)
                self._pay(account, amount)
        except PayoutTransferError as exc:
            log_event(
                log, "withdrawal_rolled_back", level=logging.WARNING,
                account=account, amount=exc.amount, reason=str(exc),
            )
            raise
        log_event(log, "withdrawal_completed", account=account, amount=amount)
        self._emit(Effect(event=Event.WITHDRAWAL_COMPLETED, account=account, amount=amount))
        return amount

    def _pay(self, account: AccountId, amount: int) -> None:
        # While this is non-zero every mutating entry point raises
        # ReentrantCallError; views stay available to the collaborator.
        self._payout_depth += 1
        try:
            delivered = self._payout.pay(account, amount)
        except Exception as exc:
            raise PayoutTransferError(account, amount, f"{type(exc).__name__}: {exc}") from exc
        finally:
            self._payout_depth -= 1
        if not delivered:
            raise PayoutTransferError(account, amount)

    # ========================================================================
    # Administration
    # ========================================================================

    def exclude(self, account: AccountId, *, caller: AccountId | None = None) -> None:
        """Opt *account* out of future deposits; accrued value stays withdrawable.

        Raises:
            AlreadyExcludedError: the account is already excluded.
        """
        self._authorize(caller)
        with self._transaction() as tx:
            record = self._accounts.get(account)
            if record.excluded:
                raise AlreadyExcludedError(f"{account!r} is already excluded")
            self._pool, record = exclude_record(self._pool, record)
            tx.put(account, record)
            tx.sync_membership(account, 0, self._pool.eligibility_threshold, True)
        log_event(log, "account_excluded", account=account)
        self._emit(Effect(event=Event.ACCOUNT_EXCLUDED, account=account))

    def include(self, account: AccountId, *, caller: AccountId | None = None) -> None:
        """Clear *account*'s exclusion.

        Tracked shares stay at zero until the account's next balance change,
        so re-inclusion neither adds nor removes entitlement.

        Raises:
            NotExcludedError: the account is not excluded.
        """
        self._authorize(caller)
        with self._transaction() as tx:
            record = self._accounts.get(account)
            if not record.excluded:
                raise NotExcludedError(f"{account!r} is not excluded")
            tx.put(account, include_record(record))
            tx.sync_membership(
                account, self._ledger.balance_of(account), self._pool.eligibility_threshold, False,
            )
        log_event(log, "account_included", account=account)
        self._emit(Effect(event=Event.ACCOUNT_INCLUDED, account=account))

    def set_threshold(self, new_threshold: int, *, caller: AccountId | None = None) -> None:
        """Change the eligible-holder threshold and re-check current members.

        Only current members are re-evaluated; other accounts pick up the new
        threshold on their next balance change.

        Raises:
            NoOpError: *new_threshold* equals the current threshold.
        """
        self._authorize(caller)
        require_uint(new_threshold, name="new_threshold")
        with self._transaction() as tx:
            if new_threshold == self._pool.eligibility_threshold:
                raise NoOpError(f"threshold is already {new_threshold}")
            self._pool = replace(self._pool, eligibility_threshold=new_threshold)
            evicted = 0
            for account in self._holders.snapshot():
                change = tx.sync_membership(
                    account,
                    self._ledger.balance_of(account),
                    new_threshold,
                    self._accounts.get(account).excluded,
                )
                if change == "removed":
                    evicted += 1
        log_event(log, "threshold_updated", threshold=new_threshold, evicted=evicted)
        self._emit(Effect(event=Event.THRESHOLD_UPDATED, threshold=new_threshold))

    def transfer_ownership(self, new_owner: AccountId, *, caller: AccountId | None) -> None:
        """Hand the administrative gate to *new_owner*.

        An ungated tracker accepts any caller here and becomes gated.
        """
        if self._gate is None:
            self._gate = OwnerGate(new_owner)
            log_event(log, "ownership_assigned", owner=new_owner)
            return
        self._gate.transfer_ownership(new_owner, caller=caller)

    # ========================================================================
    # Views
    # ========================================================================

    @property
    def pool_state(self) -> PoolState:
        return self._pool

    @property
    def owner(self) -> AccountId | None:
        return self._gate.owner if self._gate is not None else None

    @property
    def per_share_rate(self) -> int:
        return self._pool.per_share_rate

    @property
    def total_distributed(self) -> int:
        return self._pool.total_distributed

    @property
    def total_withdrawn(self) -> int:
        return self._pool.total_withdrawn

    @property
    def total_shares(self) -> int:
        return self._pool.total_shares

    @property
    def eligibility_threshold(self) -> int:
        return self._pool.eligibility_threshold

    def record_of(self, account: AccountId) -> AccountRecord:
        return self._accounts.get(account)

    def accumulated_entitlement(self, account: AccountId) -> int:
        with self._lock:
            return accumulated_entitlement(self._pool, self._accounts.get(account))

    def withdrawable_of(self, account: AccountId) -> int:
        with self._lock:
            return withdrawable_of(self._pool, self._accounts.get(account))

    def withdrawn_of(self, account: AccountId) -> int:
        return self._accounts.get(account).withdrawn

    def shares_of(self, account: AccountId) -> int:
        return self._accounts.get(account).shares

    def is_excluded(self, account: AccountId) -> bool:
        return self._accounts.get(account).excluded

    def is_holder(self, account: AccountId) -> bool:
        return self._holders.contains(account)

    def holder_count(self) -> int:
        return self._holders.size()

    def holder_at(self, index: int) -> AccountId:
        return self._holders.key_at(index)

    def holders(self) -> List[AccountId]:
        return self._holders.snapshot()

    def account_info(self, account: AccountId) -> AccountInfo:
        with self._lock:
            record = self._accounts.get(account)
            accumulated = accumulated_entitlement(self._pool, record)
            return AccountInfo(
                account=account,
                index=self._holders.index_of(account),
                shares=record.shares,
                accumulated=accumulated,
                withdrawn=record.withdrawn,
                withdrawable=withdrawable_of(self._pool, record),
                excluded=record.excluded,
            )

    def account_info_at(self, index: int) -> AccountInfo:
        with self._lock:
            return self.account_info(self._holders.key_at(index))

    def undistributed_dust(self) -> int:
        """Value received but not attributable to any account (floor rounding).

        Walks every account record.
        """
        with self._lock:
            attributed = sum(
                accumulated_entitlement(self._pool, record)
                for record in self._accounts.get_all().values()
            )
            return self._pool.total_distributed - attributed

    def check_invariants(self) -> List[str]:
        """Run the invariant registry against the current state."""
        with self._lock:
            return check_all(self._snapshot())

    def __repr__(self) -> str:
        return (
            f"DividendTracker(shares={self._pool.total_shares}, "
            f"distributed={self._pool.total_distributed}, "
            f"withdrawn={self._pool.total_withdrawn}, holders={self._holders.size()})"
        )
