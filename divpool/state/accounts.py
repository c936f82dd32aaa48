"""
Per-account dividend records.

Implements AccountTable[AccountId] -> AccountRecord
"""

from __future__ import annotations

from typing import Dict, Iterator, Mapping

from ..core.types import AccountId, AccountRecord

_EMPTY = AccountRecord()


class AccountTable:
    """
    Mapping account -> AccountRecord.

    Unlike the balance-style tables, records are never dropped, even when every
    field is back to zero: a record that has been written once keeps its
    withdrawal history for the life of the pool.
    """

    def __init__(self) -> None:
        self._records: Dict[AccountId, AccountRecord] = {}

    def get(self, account: AccountId) -> AccountRecord:
        """Record for *account*; an empty record if it was never written."""
        return self._records.get(account, _EMPTY)

    def put(self, account: AccountId, record: AccountRecord) -> None:
        if not isinstance(record, AccountRecord):
            raise TypeError(f"record must be an AccountRecord, got {type(record).__name__}")
        self._records[account] = record

    def restore(self, account: AccountId, previous: AccountRecord | None) -> None:
        """Undo a `put()`: reinstate *previous*, or forget a record that did not exist."""
        if previous is None:
            self._records.pop(account, None)
        else:
            self._records[account] = previous

    def lookup(self, account: AccountId) -> AccountRecord | None:
        """Stored record, or None when the account has never been written."""
        return self._records.get(account)

    def get_all(self) -> Mapping[AccountId, AccountRecord]:
        # Shallow copy; records themselves are immutable.
        return dict(self._records)

    def __contains__(self, account: object) -> bool:
        return account in self._records

    def __iter__(self) -> Iterator[AccountId]:
        return iter(sorted(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"AccountTable({len(self._records)} entries)"
