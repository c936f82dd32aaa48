"""
Index-addressable set of eligible holder accounts.

Membership, insertion and removal are O(1). Members are stored densely in a
list so they can be enumerated by position; removing a member moves the last
member into the vacated slot, so positions are stable only between removals.
"""

from __future__ import annotations

from typing import Dict, Iterator, List

from ..core.types import AccountId


class HolderSet:
    """
    Set of account ids with positional access.

    Invariant: ``self._index[self._keys[i]] == i`` for every ``i``.
    """

    def __init__(self) -> None:
        self._keys: List[AccountId] = []
        self._index: Dict[AccountId, int] = {}

    def add(self, account: AccountId) -> bool:
        """Insert *account*. Returns False if it was already a member."""
        if account in self._index:
            return False
        self._index[account] = len(self._keys)
        self._keys.append(account)
        return True

    def remove(self, account: AccountId) -> bool:
        """Remove *account*. Returns False if it was not a member."""
        idx = self._index.pop(account, None)
        if idx is None:
            return False
        last = self._keys.pop()
        if last != account:
            self._keys[idx] = last
            self._index[last] = idx
        return True

    def insert_at(self, account: AccountId, index: int) -> None:
        """Exact inverse of `remove()`: put *account* back at *index*.

        The member currently at *index* (the one `remove()` moved there) goes
        back to the end.
        """
        if account in self._index:
            raise ValueError(f"{account!r} is already a member")
        if not (0 <= index <= len(self._keys)):
            raise IndexError(f"holder index out of range: {index}")
        if index == len(self._keys):
            self._keys.append(account)
        else:
            moved = self._keys[index]
            self._index[moved] = len(self._keys)
            self._keys.append(moved)
            self._keys[index] = account
        self._index[account] = index

    def contains(self, account: AccountId) -> bool:
        return account in self._index

    def size(self) -> int:
        return len(self._keys)

    def index_of(self, account: AccountId) -> int:
        """Position of *account*, or -1 when it is not a member."""
        return self._index.get(account, -1)

    def key_at(self, index: int) -> AccountId:
        """Member at *index*.

        Raises:
            IndexError: index is outside ``[0, size())``.
        """
        if not (0 <= index < len(self._keys)):
            raise IndexError(f"holder index out of range: {index}")
        return self._keys[index]

    def snapshot(self) -> List[AccountId]:
        """Members in positional order (a copy)."""
        return list(self._keys)

    def verify_index(self) -> bool:
        """Check the key list and the index map agree."""
        if len(self._keys) != len(self._index):
            return False
        return all(self._index.get(k) == i for i, k in enumerate(self._keys))

    def __contains__(self, account: object) -> bool:
        return account in self._index

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[AccountId]:
        return iter(list(self._keys))

    def __repr__(self) -> str:
        return f"HolderSet({len(self._keys)} members)"
