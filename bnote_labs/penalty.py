"""Early/late penalty state machine and penalty curves.

A stake moves Early -> UnlockDay -> Late as ``now`` advances; the state is a
pure function of (start, lock_days, now). Penalties scale linearly with the
distance from the unlock day and are capped at the configured maximum:

    early: EARLY_PENALTY_BASIS * days_remaining // lock_days
    late:  LATE_PENALTY_BASIS  * late_days      // lock_days
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

import pandas as pd

from . import protocol_constants as const
from .errors import ConfigurationError
from .models import ProtocolParameters, StakeRecord
from .validation import require_basis


class StakeStatus(Enum):
    EARLY = "early"
    UNLOCK_TODAY = "unlock_today"
    LATE = "late"


@dataclass(frozen=True)
class PenaltyAssessment:
    status: StakeStatus
    days_elapsed: int
    days_remaining: int
    penalty_bps: int
    penalty_percent: float

    @property
    def late_days(self) -> int:
        return max(0, -self.days_remaining)


def days_elapsed(start_timestamp: int, now: int) -> int:
    """Whole days since ``start_timestamp``, never negative."""
    return max(0, (now - start_timestamp) // const.ONE_DAY_SECONDS)


def classify(days_remaining: int) -> StakeStatus:
    if days_remaining > 0:
        return StakeStatus.EARLY
    if days_remaining == 0:
        return StakeStatus.UNLOCK_TODAY
    return StakeStatus.LATE


def _require_lock_days(lock_days: int) -> int:
    if lock_days <= 0:
        raise ConfigurationError(f"lock_days must be positive to price a penalty (got {lock_days})")
    return lock_days


def penalty_bps_for_offset(days_remaining: int, lock_days: int, params: ProtocolParameters) -> int:
    """Penalty in bps when ``days_remaining`` days separate ``now`` from unlock."""
    _require_lock_days(lock_days)
    if days_remaining > 0:
        scaled = params.early_penalty_bps * days_remaining // lock_days
        return min(scaled, params.early_penalty_bps)
    if days_remaining == 0:
        return 0
    late_days = -days_remaining
    scaled = params.late_penalty_bps * late_days // lock_days
    return min(scaled, params.late_penalty_bps)


def bps_to_percent(bps: int, params: ProtocolParameters) -> float:
    return bps / require_basis(params) * 100


def assess(
    lock_days: int, start_timestamp: int, now: int, params: ProtocolParameters
) -> PenaltyAssessment:
    _require_lock_days(lock_days)
    elapsed = days_elapsed(start_timestamp, now)
    remaining = lock_days - elapsed
    bps = penalty_bps_for_offset(remaining, lock_days, params)
    return PenaltyAssessment(
        status=classify(remaining),
        days_elapsed=elapsed,
        days_remaining=remaining,
        penalty_bps=bps,
        penalty_percent=bps_to_percent(bps, params),
    )


def assess_stake(stake: StakeRecord, params: ProtocolParameters, now: int) -> PenaltyAssessment:
    """Classify ``stake`` at ``now`` and estimate the penalty for ending it.

    Raises:
        ConfigurationError: the stake carries ``lock_days <= 0``
    """
    return assess(stake.lock_days, stake.start_timestamp, now, params)


def iter_penalty_curve(lock_days: int, params: ProtocolParameters) -> Iterator[dict[str, object]]:
    """Yield penalty points for offsets -lock_days..+lock_days (offset = days remaining)."""
    _require_lock_days(lock_days)
    for offset in range(-lock_days, lock_days + 1):
        bps = penalty_bps_for_offset(offset, lock_days, params)
        yield {
            "offset": offset,
            "status": classify(offset).value,
            "penalty_bps": bps,
            "penalty_percent": bps_to_percent(bps, params),
        }


def penalty_curve(lock_days: int, params: ProtocolParameters) -> pd.DataFrame:
    """Chart-ready penalty curve for a given lock period (2 * lock_days + 1 rows)."""
    return pd.DataFrame(
        list(iter_penalty_curve(lock_days, params)),
        columns=["offset", "status", "penalty_bps", "penalty_percent"],
    )


def close_stake_notice(stake: StakeRecord, params: ProtocolParameters, now: int) -> str:
    """Confirmation text shown before a stake-close request is sent."""
    assessment = assess_stake(stake, params, now)
    if assessment.status is StakeStatus.EARLY:
        return (
            f"Early by {assessment.days_remaining} day(s). "
            f"Estimated penalty ~{assessment.penalty_percent:.2f}% of principal."
        )
    if assessment.status is StakeStatus.LATE:
        return (
            f"Late by {assessment.late_days} day(s). "
            f"Estimated penalty ~{assessment.penalty_percent:.2f}% (grows with lateness)."
        )
    return "It's the unlock day. No late penalty expected."
