"""Checked integer arithmetic for the dividend accounting core.

Every function is stateless and operates on plain Python ints.

Python ints never wrap, so the fixed-width domains are enforced explicitly:
unsigned values live in uint256, signed values (the per-account correction) in
int256. Results outside the domain raise instead of clamping. Division is
Python's `//` (floor); every dividend passed to it here is non-negative.

All crossing between the unsigned and signed domains goes through
`to_int256()` / `to_uint256()`.
"""

from __future__ import annotations

from .errors import DividendOverflowError, NegativeValueError

# Domain constants
UINT256_MAX: int = 2**256 - 1
INT256_MAX: int = 2**255 - 1
INT256_MIN: int = -(2**255)

# Fixed-point scale of the per-share accumulator.
MAGNITUDE: int = 2**128


# -- Input validation ---------------------------------------------------------

def require_uint(value: int, *, name: str = "value") -> int:
    """Return *value* if it is a uint256, else raise TypeError/ValueError."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    if value > UINT256_MAX:
        raise DividendOverflowError(f"{name} exceeds uint256: {value}")
    return value


def require_int(value: int, *, name: str = "value") -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if not (INT256_MIN <= value <= INT256_MAX):
        raise DividendOverflowError(f"{name} outside int256: {value}")
    return value


# -- Unsigned ----------------------------------------------------------------

def checked_add(a: int, b: int) -> int:
    r = a + b
    if r > UINT256_MAX:
        raise DividendOverflowError(f"uint256 add overflow: {a} + {b}")
    return r


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise DividendOverflowError(f"uint256 sub underflow: {a} - {b}")
    return a - b


def checked_mul(a: int, b: int) -> int:
    r = a * b
    if r > UINT256_MAX:
        raise DividendOverflowError(f"uint256 mul overflow: {a} * {b}")
    return r


# -- Signed ------------------------------------------------------------------

def _check_int256(r: int, op: str) -> int:
    if not (INT256_MIN <= r <= INT256_MAX):
        raise DividendOverflowError(f"int256 {op} overflow: {r}")
    return r


def checked_add_signed(a: int, b: int) -> int:
    return _check_int256(a + b, "add")


def checked_sub_signed(a: int, b: int) -> int:
    return _check_int256(a - b, "sub")


def checked_mul_signed(a: int, b: int) -> int:
    return _check_int256(a * b, "mul")


# -- Sign-crossing boundary --------------------------------------------------

def to_int256(u: int) -> int:
    """Widen an unsigned value into the signed domain (fails above INT256_MAX)."""
    if u > INT256_MAX:
        raise DividendOverflowError(f"value does not fit int256: {u}")
    return u


def to_uint256(s: int) -> int:
    """Narrow a signed value back to unsigned (fails when negative)."""
    if s < 0:
        raise NegativeValueError(f"negative value cannot be narrowed to uint256: {s}")
    if s > UINT256_MAX:
        raise DividendOverflowError(f"value does not fit uint256: {s}")
    return s
