"""
Fungible share ledger with a pre-mutation listener.

This is the balance ledger the dividend core reacts to. Every mutation
(mint, burn, transfer) first announces the *pending* balances of the accounts
it touches to the registered listener, and only applies them if the listener
returned normally. A listener that raises aborts the mutation.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Protocol

from ..core.errors import InsufficientSharesError
from ..core.math import checked_add, require_uint
from ..core.types import AccountId
from ..util.structured_logging import log_event

log = logging.getLogger("divpool.shares")

Amount = int  # Non-negative integer share units


class BalanceListener(Protocol):
    def on_balances_will_change(self, changes: Mapping[AccountId, Amount]) -> None:
        """Called with ``{account: pending_balance}`` before the ledger applies it."""


class ShareLedger:
    """
    Mapping account -> share balance, plus total supply.

    Zero balances are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._balances: Dict[AccountId, Amount] = {}
        self._total_supply: Amount = 0
        self._listener: Optional[BalanceListener] = None

    def add_listener(self, listener: BalanceListener) -> None:
        """Register the balance listener.

        Only one listener is supported: a second one could not be told to undo
        its update when the first refused. Re-adding the same listener is a
        no-op.

        Raises:
            ValueError: a different listener is already registered.
        """
        if self._listener is listener:
            return
        if self._listener is not None:
            raise ValueError("ShareLedger supports a single balance listener")
        self._listener = listener

    def balance_of(self, account: AccountId) -> Amount:
        return self._balances.get(account, 0)

    def total_supply(self) -> Amount:
        return self._total_supply

    def mint(self, account: AccountId, amount: Amount) -> None:
        """Create *amount* new shares for *account*."""
        require_uint(amount, name="amount")
        new_balance = checked_add(self.balance_of(account), amount)
        new_supply = checked_add(self._total_supply, amount)
        self._apply({account: new_balance}, new_supply)
        log_event(log, "shares_minted", account=account, amount=amount)

    def burn(self, account: AccountId, amount: Amount) -> None:
        """Destroy *amount* of *account*'s shares.

        Raises:
            InsufficientSharesError: balance is below *amount*.
        """
        require_uint(amount, name="amount")
        current = self.balance_of(account)
        if amount > current:
            raise InsufficientSharesError(
                f"cannot burn {amount} from {account!r}: balance {current}"
            )
        self._apply({account: current - amount}, self._total_supply - amount)
        log_event(log, "shares_burned", account=account, amount=amount)

    def transfer(self, sender: AccountId, receiver: AccountId, amount: Amount) -> None:
        """Move *amount* shares from *sender* to *receiver*.

        Raises:
            InsufficientSharesError: sender balance is below *amount*.
        """
        require_uint(amount, name="amount")
        sender_balance = self.balance_of(sender)
        if amount > sender_balance:
            raise InsufficientSharesError(
                f"cannot transfer {amount} from {sender!r}: balance {sender_balance}"
            )
        if sender == receiver:
            changes = {sender: sender_balance}
        else:
            changes = {
                sender: sender_balance - amount,
                receiver: checked_add(self.balance_of(receiver), amount),
            }
        self._apply(changes, self._total_supply)
        log_event(log, "shares_transferred", sender=sender, receiver=receiver, amount=amount)

    def _apply(self, changes: Mapping[AccountId, Amount], new_supply: Amount) -> None:
        if self._listener is not None:
            self._listener.on_balances_will_change(changes)
        for account, balance in changes.items():
            if balance == 0:
                self._balances.pop(account, None)
            else:
                self._balances[account] = balance
        self._total_supply = new_supply

    def get_all_balances(self) -> Dict[AccountId, Amount]:
        return dict(self._balances)

    def __repr__(self) -> str:
        return f"ShareLedger({len(self._balances)} holders, supply={self._total_supply})"
