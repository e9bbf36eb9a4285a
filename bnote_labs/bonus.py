"""Bonus and projected-shares estimation for new stakes.

Mirrors the contract's share formula using integer/basis-point arithmetic only:

    lpb_bonus_bps = min(lock_days // 365, LPB_MAX_YEARS) * LPB_PER_YEAR_BPS
    bpb_bonus_bps = BPB_MAX_BPS * min(amount, BPB_CAP) // BPB_CAP
    effective     = amount * (BASIS + lpb_bonus_bps + bpb_bonus_bps) // BASIS
    shares        = effective * 10**decimals // share_rate

Both bonuses are summed before the single truncating division, so an amount
exactly at the BPB cap earns exactly ``BPB_MAX_BPS`` with no float rounding.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from . import protocol_constants as const
from .errors import ConfigurationError, RangeViolation
from .models import ProtocolParameters
from .validation import range_violation, require_amount, require_basis, require_lock_days


@dataclass(frozen=True)
class BonusShareEstimate:
    principal_amount: int
    lock_days: int
    lpb_years: int
    lpb_bonus_bps: int
    bpb_bonus_bps: int
    bonus_factor_numerator: int
    effective_principal: int
    projected_shares: int
    range_violation: RangeViolation | None = field(default=None, compare=False)

    @property
    def in_range(self) -> bool:
        return self.range_violation is None

    def require_in_range(self) -> "BonusShareEstimate":
        """Raise the recorded ``RangeViolation`` for callers that block submission."""
        if self.range_violation is not None:
            raise self.range_violation
        return self


def lpb_bonus_bps(lock_days: int, params: ProtocolParameters) -> tuple[int, int]:
    """Return (credited years, LPB bonus bps) for a lock period."""
    years = lock_days // const.DAYS_PER_YEAR
    lpb_years = min(years, params.lpb_max_years)
    return lpb_years, lpb_years * params.lpb_bps_per_year


def bpb_bonus_bps(principal_amount: int, params: ProtocolParameters) -> int:
    """BPB bonus as an exact rational of the cap, floored to whole bps."""
    cap = params.bpb_cap_amount
    if cap <= 0:
        if params.bpb_max_bps > 0:
            raise ConfigurationError("BPB cap is zero while BPB max bonus is non-zero")
        return 0
    return params.bpb_max_bps * min(principal_amount, cap) // cap


def estimate_shares(
    principal_amount: int, lock_days: int, params: ProtocolParameters
) -> BonusShareEstimate:
    """Project shares and the bonus breakdown for a prospective stake.

    Out-of-range ``lock_days`` still produce an estimate; the violation is
    attached as ``range_violation`` so the caller can warn or block.

    Raises:
        ValidationError: amount <= 0 or non-integer/non-positive days
        ConfigurationError: share rate or BPB configuration unusable
    """
    amount = require_amount(principal_amount)
    days = require_lock_days(lock_days)
    basis = require_basis(params)
    if params.share_rate <= 0:
        raise ConfigurationError("share rate is zero; projected shares unavailable")

    lpb_years, lpb_bps = lpb_bonus_bps(days, params)
    bpb_bps = bpb_bonus_bps(amount, params)
    numerator = basis + lpb_bps + bpb_bps
    effective_principal = amount * numerator // basis
    projected_shares = effective_principal * params.share_rate_scale // params.share_rate

    return BonusShareEstimate(
        principal_amount=amount,
        lock_days=days,
        lpb_years=lpb_years,
        lpb_bonus_bps=lpb_bps,
        bpb_bonus_bps=bpb_bps,
        bonus_factor_numerator=numerator,
        effective_principal=effective_principal,
        projected_shares=projected_shares,
        range_violation=range_violation(days, params),
    )
