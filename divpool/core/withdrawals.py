"""Withdrawal bookkeeping: what is still owed, and the state after paying it."""

from __future__ import annotations

from dataclasses import replace

from .accumulator import accumulated_entitlement
from .errors import AccountingInvariantError, NothingToWithdrawError
from .math import checked_add
from .types import AccountRecord, PoolState


def withdrawable_of(state: PoolState, record: AccountRecord) -> int:
    """Entitlement not yet paid out.

    Raises:
        AccountingInvariantError: the account has been paid more than it earned.
    """
    earned = accumulated_entitlement(state, record)
    if record.withdrawn > earned:
        raise AccountingInvariantError(
            f"withdrawn {record.withdrawn} exceeds accumulated entitlement {earned}"
        )
    return earned - record.withdrawn


def apply_withdrawal(
    state: PoolState,
    record: AccountRecord,
) -> tuple[PoolState, AccountRecord, int]:
    """Return ``(state, record, amount)`` with the full withdrawable amount booked.

    Raises:
        NothingToWithdrawError: nothing is withdrawable.
    """
    amount = withdrawable_of(state, record)
    if amount == 0:
        raise NothingToWithdrawError("nothing to withdraw")
    return (
        replace(state, total_withdrawn=checked_add(state.total_withdrawn, amount)),
        replace(record, withdrawn=checked_add(record.withdrawn, amount)),
        amount,
    )
