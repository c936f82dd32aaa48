"""Pure, integer-only dividend accounting.

- deterministic transitions on frozen dataclasses,
- checked uint256/int256 arithmetic (no wrapping, no clamping),
- fail-closed errors and invariant checks.

Public API:
- `record_deposit(state, amount, total_shares) -> PoolState`
- `accumulated_entitlement(state, record) -> int`
- `sync_shares(state, record, new_shares) -> (PoolState, AccountRecord)`
- `withdrawable_of(state, record) -> int`
- `apply_withdrawal(state, record) -> (PoolState, AccountRecord, amount)`
- `check_all(snapshot) -> list[str]`
"""

from .accumulator import (
    accumulated_entitlement,
    exclude_record,
    include_record,
    rate_delta,
    record_deposit,
    sync_shares,
)
from .eligibility import is_eligible, sync_membership
from .errors import (
    AccountingInvariantError,
    AlreadyExcludedError,
    ArithmeticBoundsError,
    CallerMisuseError,
    DividendError,
    DividendInvariantError,
    DividendOverflowError,
    EmptyPoolError,
    ExternalDependencyError,
    InsufficientSharesError,
    NegativeEntitlementError,
    NegativeValueError,
    NoOpError,
    NotExcludedError,
    NothingToWithdrawError,
    PayoutTransferError,
    ReentrantCallError,
    UnauthorizedError,
)
from .invariants import INVARIANT_REGISTRY, LedgerSnapshot, check_all
from .math import MAGNITUDE
from .types import AccountId, AccountInfo, AccountRecord, Effect, Event, PoolState
from .withdrawals import apply_withdrawal, withdrawable_of

__all__ = [
    "accumulated_entitlement",
    "exclude_record",
    "include_record",
    "rate_delta",
    "record_deposit",
    "sync_shares",
    "is_eligible",
    "sync_membership",
    "AccountingInvariantError",
    "AlreadyExcludedError",
    "ArithmeticBoundsError",
    "CallerMisuseError",
    "DividendError",
    "DividendInvariantError",
    "DividendOverflowError",
    "EmptyPoolError",
    "ExternalDependencyError",
    "InsufficientSharesError",
    "NegativeEntitlementError",
    "NegativeValueError",
    "NoOpError",
    "NotExcludedError",
    "NothingToWithdrawError",
    "PayoutTransferError",
    "ReentrantCallError",
    "UnauthorizedError",
    "INVARIANT_REGISTRY",
    "LedgerSnapshot",
    "check_all",
    "MAGNITUDE",
    "AccountId",
    "AccountInfo",
    "AccountRecord",
    "Effect",
    "Event",
    "PoolState",
    "apply_withdrawal",
    "withdrawable_of",
]
