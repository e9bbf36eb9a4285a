"""Stake-start preview: everything shown before the user submits a stake."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from . import protocol_constants as const
from .bonus import estimate_shares
from .errors import ConfigurationError, RangeViolation
from .models import ProtocolParameters
from .validation import range_violation, require_amount, require_lock_days
from .yields import estimate_yield

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StakePreview:
    """Off-chain guide for a prospective stake.

    Share and yield fields are ``None`` when the parameters make the estimate
    unavailable; ``unavailable_reason`` then says why.
    """

    amount: int
    lock_days: int
    unlock_timestamp: int
    lpb_years: int | None
    lpb_bonus_bps: int | None
    bpb_bonus_bps: int | None
    lpb_bonus_percent: float | None
    bpb_bonus_percent: float | None
    projected_shares: int | None
    estimated_yield: int | None
    early_max_percent: float | None
    late_max_percent: float | None
    range_violation: RangeViolation | None = field(default=None, compare=False)
    unavailable_reason: str | None = None


def validate_stake_request(
    amount: int, lock_days: int, params: ProtocolParameters
) -> tuple[int, int]:
    """Gate a stake-open request before any ledger interaction.

    Raises:
        ValidationError: amount <= 0 or non-integer days
        RangeViolation: days outside [min_lock_days, max_lock_days]
    """
    checked_amount = require_amount(amount)
    checked_days = require_lock_days(lock_days)
    violation = range_violation(checked_days, params)
    if violation is not None:
        raise violation
    return checked_amount, checked_days


def preview_stake(
    amount: int, lock_days: int, params: ProtocolParameters, now: int
) -> StakePreview:
    """Combine the bonus, yield and penalty-cap estimates for the preview panel.

    Raises:
        ValidationError: amount/days unusable (nothing to preview)
    """
    checked_amount = require_amount(amount)
    checked_days = require_lock_days(lock_days)
    unlock_timestamp = now + checked_days * const.ONE_DAY_SECONDS
    basis_ok = params.basis_denominator > 0

    reasons: list[str] = []
    shares = None
    try:
        shares = estimate_shares(checked_amount, checked_days, params)
    except ConfigurationError as exc:
        LOGGER.warning("Share estimate unavailable: %s", exc)
        reasons.append(str(exc))

    estimated_yield = None
    try:
        estimated_yield = estimate_yield(checked_amount, checked_days, params)
    except ConfigurationError as exc:
        LOGGER.warning("Yield estimate unavailable: %s", exc)
        reasons.append(str(exc))

    def _pct(bps: int | None) -> float | None:
        if bps is None or not basis_ok:
            return None
        return bps / params.basis_denominator * 100

    return StakePreview(
        amount=checked_amount,
        lock_days=checked_days,
        unlock_timestamp=unlock_timestamp,
        lpb_years=shares.lpb_years if shares else None,
        lpb_bonus_bps=shares.lpb_bonus_bps if shares else None,
        bpb_bonus_bps=shares.bpb_bonus_bps if shares else None,
        lpb_bonus_percent=_pct(shares.lpb_bonus_bps if shares else None),
        bpb_bonus_percent=_pct(shares.bpb_bonus_bps if shares else None),
        projected_shares=shares.projected_shares if shares else None,
        estimated_yield=estimated_yield,
        early_max_percent=params.early_max_percent if basis_ok else None,
        late_max_percent=params.late_max_percent if basis_ok else None,
        range_violation=range_violation(checked_days, params),
        unavailable_reason="; ".join(dict.fromkeys(reasons)) or None,
    )
