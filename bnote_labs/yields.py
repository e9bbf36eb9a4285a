"""Prorated APR yield estimation."""

from __future__ import annotations

from . import protocol_constants as const
from .models import ProtocolParameters
from .validation import require_amount, require_basis, require_lock_days


def estimate_yield(principal_amount: int, lock_days: int, params: ProtocolParameters) -> int:
    """Estimate the APR yield earned over ``lock_days``, in token base units.

    Formula:
        yield = amount * apr_bps * lock_days // (basis * 365)

    All numerators are multiplied before the single truncating division so the
    result is reproducible bit-for-bit across callers.

    Raises:
        ValidationError: amount <= 0 or lock_days <= 0
        ConfigurationError: basis denominator <= 0

    Example:
        >>> estimate_yield(1000, 365, params)  # 3.69% APR, BASIS 10000
        36
    """
    amount = require_amount(principal_amount)
    days = require_lock_days(lock_days)
    basis = require_basis(params)
    return amount * params.apr_basis_points * days // (basis * const.DAYS_PER_YEAR)
