"""Exception types for the dividend accounting core.

Three categories, matching how callers are expected to react:

- `CallerMisuseError`: the request is invalid in the current state; nothing
  changed, retrying the same call will fail the same way.
- `ArithmeticBoundsError`: a domain bound or internal invariant was violated;
  the operation is aborted and must not be clamped or retried blindly.
- `ExternalDependencyError`: a collaborator failed; state was rolled back and
  the caller may retry later.
"""

from __future__ import annotations


class DividendError(Exception):
    """Base class for every error raised by `divpool`."""


# -- Caller misuse -----------------------------------------------------------

class CallerMisuseError(DividendError):
    pass


class EmptyPoolError(CallerMisuseError):
    """Raised when a deposit is recorded while no shares are outstanding."""


class NothingToWithdrawError(CallerMisuseError):
    """Raised when an account with zero withdrawable value tries to withdraw."""


class AlreadyExcludedError(CallerMisuseError):
    pass


class NotExcludedError(CallerMisuseError):
    pass


class NoOpError(CallerMisuseError):
    """Raised when an administrative update would not change anything."""


class UnauthorizedError(CallerMisuseError):
    pass


class InsufficientSharesError(CallerMisuseError):
    pass


class ReentrantCallError(CallerMisuseError):
    """Raised when tracker state is mutated from inside a payout callback."""


# -- Arithmetic bounds / internal consistency --------------------------------

class ArithmeticBoundsError(DividendError):
    pass


class DividendOverflowError(ArithmeticBoundsError, OverflowError):
    """Raised when a checked operation leaves the uint256/int256 domain."""


class NegativeValueError(ArithmeticBoundsError):
    """Raised when a negative signed value is narrowed to unsigned."""


class NegativeEntitlementError(ArithmeticBoundsError):
    """Raised when `rate * shares + correction` is negative for an account."""


class AccountingInvariantError(ArithmeticBoundsError):
    """Raised when an account has withdrawn more than it is entitled to."""


class DividendInvariantError(ArithmeticBoundsError):
    """Raised when a committed state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")


# -- External dependency -----------------------------------------------------

class ExternalDependencyError(DividendError):
    pass


class PayoutTransferError(ExternalDependencyError):
    """Raised when the payout collaborator could not deliver a withdrawal."""

    def __init__(self, account: str, amount: int, reason: str = "payout rejected") -> None:
        self.account = account
        self.amount = amount
        super().__init__(f"payout of {amount} to {account!r} failed: {reason}")
