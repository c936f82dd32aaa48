"""Magnified per-share dividend accumulator.

Deposits never iterate holders: each one bumps a single global
`per_share_rate` (value per share, scaled by `magnitude`). An account's
lifetime entitlement is then

    floor((per_share_rate * shares + correction) / magnitude)

where `correction` is a signed per-account offset. Whenever the account's
tracked shares change by `d`, the correction moves by `-per_share_rate * d`,
so the entitlement already accrued under the old share count is locked in and
only future deposits see the new count. Both deposit and query are O(1).

Floor division in `rate_delta()` leaves at most `total_shares - 1` scaled units
per deposit unattributed. That dust stays in the pool; it is never paid out.
"""

from __future__ import annotations

from dataclasses import replace

from .errors import EmptyPoolError, NegativeEntitlementError, NegativeValueError
from .math import (
    checked_add,
    checked_add_signed,
    checked_mul,
    checked_sub,
    checked_sub_signed,
    require_uint,
    to_int256,
    to_uint256,
)
from .types import AccountRecord, PoolState


def rate_delta(amount: int, total_shares: int, magnitude: int) -> int:
    """Scaled per-share increase for a deposit: ``floor(amount * M / shares)``."""
    if total_shares == 0:
        raise EmptyPoolError("cannot attribute a deposit to zero shares")
    return checked_mul(amount, magnitude) // total_shares


def record_deposit(state: PoolState, amount: int, total_shares: int) -> PoolState:
    """Return the pool state after attributing *amount* across *total_shares*.

    Raises:
        EmptyPoolError: ``total_shares == 0`` (checked before the zero-amount exit).
        DividendOverflowError: accumulator or lifetime total leaves uint256.
    """
    require_uint(amount, name="amount")
    require_uint(total_shares, name="total_shares")
    if total_shares == 0:
        raise EmptyPoolError("cannot attribute a deposit to zero shares")
    if amount == 0:
        return state

    delta = rate_delta(amount, total_shares, state.magnitude)
    return replace(
        state,
        per_share_rate=checked_add(state.per_share_rate, delta),
        total_distributed=checked_add(state.total_distributed, amount),
    )


def scaled_entitlement(state: PoolState, record: AccountRecord) -> int:
    """``per_share_rate * shares + correction`` in the signed domain."""
    magnified = to_int256(checked_mul(state.per_share_rate, record.shares))
    return checked_add_signed(magnified, record.correction)


def accumulated_entitlement(state: PoolState, record: AccountRecord) -> int:
    """Lifetime value earned by the account (withdrawn or not).

    Raises:
        NegativeEntitlementError: the signed intermediate is negative, which
            means a share change bypassed `sync_shares()`.
    """
    try:
        scaled = to_uint256(scaled_entitlement(state, record))
    except NegativeValueError as exc:
        raise NegativeEntitlementError(str(exc)) from exc
    return scaled // state.magnitude


def sync_shares(
    state: PoolState,
    record: AccountRecord,
    new_shares: int,
) -> tuple[PoolState, AccountRecord]:
    """Move the account's tracked shares to *new_shares*, preserving accrued value.

    Excluded accounts keep zero tracked shares; their record is returned as-is.
    """
    require_uint(new_shares, name="new_shares")
    if record.excluded:
        return state, record

    old_shares = record.shares
    if new_shares == old_shares:
        return state, record

    if new_shares > old_shares:
        adjustment = to_int256(checked_mul(state.per_share_rate, new_shares - old_shares))
        correction = checked_sub_signed(record.correction, adjustment)
    else:
        adjustment = to_int256(checked_mul(state.per_share_rate, old_shares - new_shares))
        correction = checked_add_signed(record.correction, adjustment)

    total = checked_add(checked_sub(state.total_shares, old_shares), new_shares)
    return (
        replace(state, total_shares=total),
        replace(record, shares=new_shares, correction=correction),
    )


def exclude_record(state: PoolState, record: AccountRecord) -> tuple[PoolState, AccountRecord]:
    """Drop the account's tracked shares to zero and flag it excluded."""
    state, record = sync_shares(state, record, 0)
    return state, replace(record, excluded=True)


def include_record(record: AccountRecord) -> AccountRecord:
    # Tracked shares stay at zero until the next balance change re-syncs them.
    return replace(record, excluded=False)
