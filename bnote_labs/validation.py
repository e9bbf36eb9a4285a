"""Input and parameter guards shared by the estimators."""

from __future__ import annotations

from numbers import Integral
from typing import Any

from .errors import ConfigurationError, RangeViolation, ValidationError
from .models import ProtocolParameters


def require_amount(amount: Any) -> int:
    """Return ``amount`` as an int, rejecting non-integers and values <= 0."""
    if isinstance(amount, bool) or not isinstance(amount, Integral):
        raise ValidationError(f"Amount must be an integer number of base units (got {amount!r}).")
    if amount <= 0:
        raise ValidationError("Enter an amount > 0")
    return int(amount)


def require_lock_days(lock_days: Any) -> int:
    """Return ``lock_days`` as an int, rejecting fractional or non-positive days."""
    if isinstance(lock_days, bool):
        raise ValidationError("Days must be an integer.")
    if isinstance(lock_days, float) and lock_days.is_integer():
        lock_days = int(lock_days)
    if not isinstance(lock_days, Integral):
        raise ValidationError("Days must be an integer.")
    if lock_days <= 0:
        raise ValidationError("Days must be a positive integer.")
    return int(lock_days)


def range_violation(lock_days: int, params: ProtocolParameters) -> RangeViolation | None:
    if lock_days < params.min_lock_days or lock_days > params.max_lock_days:
        return RangeViolation(lock_days, params.min_lock_days, params.max_lock_days)
    return None


def require_basis(params: ProtocolParameters) -> int:
    if params.basis_denominator <= 0:
        raise ConfigurationError(
            f"basis denominator must be positive (got {params.basis_denominator})"
        )
    return params.basis_denominator
