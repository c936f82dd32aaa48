"""
Single-owner authorization gate for administrative operations.

The gate only answers "may *caller* do this"; the tracker decides which
operations are administrative.
"""

from __future__ import annotations

import logging

from ..core.errors import NoOpError, UnauthorizedError
from ..core.types import AccountId
from ..util.structured_logging import log_event

log = logging.getLogger("divpool.auth")


class OwnerGate:
    def __init__(self, owner: AccountId) -> None:
        if not isinstance(owner, str) or not owner:
            raise ValueError("owner must be a non-empty string")
        self._owner = owner

    @property
    def owner(self) -> AccountId:
        return self._owner

    def is_authorized(self, caller: AccountId | None) -> bool:
        return caller is not None and caller == self._owner

    def require(self, caller: AccountId | None) -> None:
        if not self.is_authorized(caller):
            raise UnauthorizedError(f"caller {caller!r} is not the owner")

    def transfer_ownership(self, new_owner: AccountId, *, caller: AccountId | None) -> None:
        self.require(caller)
        if not isinstance(new_owner, str) or not new_owner:
            raise ValueError("new_owner must be a non-empty string")
        if new_owner == self._owner:
            raise NoOpError(f"{new_owner!r} is already the owner")
        previous, self._owner = self._owner, new_owner
        log_event(log, "ownership_transferred", previous=previous, owner=new_owner)
