"""Data types for the dividend accounting core.

All types are frozen dataclasses (immutable); the integration layer commits a
new value by replacing the old one, which is what makes rollback cheap.

Units/conventions:
- `shares` / balances are unsigned integer share units.
- `per_share_rate` is value-per-share scaled by `magnitude`.
- `correction` is signed and scaled by `magnitude`.
- every other amount is an unsigned integer of the settlement asset.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from .math import INT256_MAX, INT256_MIN, MAGNITUDE, UINT256_MAX

AccountId = str


def _check_uint_fields(obj: object, names: tuple[str, ...]) -> None:
    for name in names:
        v = getattr(obj, name)
        if not isinstance(v, int) or isinstance(v, bool):
            raise TypeError(f"{name} must be an int")
        if not (0 <= v <= UINT256_MAX):
            raise ValueError(f"{name} must be a uint256: {v}")


@unique
class Event(Enum):
    """Observable events emitted after a successful operation."""
    DEPOSIT_RECORDED = "DepositRecorded"
    WITHDRAWAL_COMPLETED = "WithdrawalCompleted"
    ACCOUNT_EXCLUDED = "AccountExcluded"
    ACCOUNT_INCLUDED = "AccountIncluded"
    THRESHOLD_UPDATED = "ThresholdUpdated"


@dataclass(frozen=True)
class PoolState:
    """Global accumulator state, created once at genesis."""

    per_share_rate: int = 0
    total_distributed: int = 0
    total_withdrawn: int = 0
    # Sum of tracked (dividend-bearing) shares; excluded accounts contribute 0.
    total_shares: int = 0
    eligibility_threshold: int = 0
    magnitude: int = MAGNITUDE

    def __post_init__(self) -> None:
        _check_uint_fields(self, (
            "per_share_rate",
            "total_distributed",
            "total_withdrawn",
            "total_shares",
            "eligibility_threshold",
            "magnitude",
        ))
        if self.magnitude == 0:
            raise ValueError("magnitude must be positive")


@dataclass(frozen=True)
class AccountRecord:
    """Per-account accounting record. Never deleted once created."""

    shares: int = 0
    withdrawn: int = 0
    correction: int = 0
    excluded: bool = False

    def __post_init__(self) -> None:
        _check_uint_fields(self, ("shares", "withdrawn"))
        if not isinstance(self.correction, int) or isinstance(self.correction, bool):
            raise TypeError("correction must be an int")
        if not (INT256_MIN <= self.correction <= INT256_MAX):
            raise ValueError(f"correction must be an int256: {self.correction}")
        if self.excluded and self.shares != 0:
            raise ValueError("excluded accounts must track zero shares")


@dataclass(frozen=True)
class Effect:
    """Event payload delivered to subscribers after a successful step."""

    event: Event
    account: AccountId = ""
    amount: int = 0
    threshold: int = 0


@dataclass(frozen=True)
class AccountInfo:
    """Reporting view of a single account."""

    account: AccountId
    # Position in the eligible holder set, -1 when not a member.
    index: int
    shares: int
    accumulated: int
    withdrawn: int
    withdrawable: int
    excluded: bool
