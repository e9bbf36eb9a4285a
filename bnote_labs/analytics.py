"""Aggregate views over the stake population.

Every function here is a pure derivation of (stakes, params, now); callers
re-run them on each clock tick or refresh. Amount columns hold exact Python
integers (object dtype) because 18-decimal base units overflow int64.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Sequence

import pandas as pd

from . import protocol_constants as const
from .errors import ConfigurationError
from .formatting import format_units, iso_utc
from .models import ProtocolParameters, StakeRecord
from .penalty import assess_stake

LOGGER = logging.getLogger(__name__)

CSV_COLUMNS: tuple[str, ...] = (
    "index",
    "amount",
    "lock_days",
    "start_timestamp",
    "start_iso8601",
    "unlock_timestamp",
    "unlock_iso8601",
    "status",
    "days_remaining",
    "estimated_penalty_percent",
)


def _amounts(values: Iterable[int]) -> pd.Series:
    return pd.Series(list(values), dtype="object")


def _day_index(timestamp: int) -> int:
    return timestamp // const.ONE_DAY_SECONDS


# =============================================================================
# Supply split
# =============================================================================


def supply_summary(params: ProtocolParameters) -> dict[str, int | float]:
    """Locked (staked) vs circulating supply, with the staked share of initial supply."""
    staked_amount = max(0, params.initial_supply - params.total_supply)
    staked_percent = (
        staked_amount * 100 / params.initial_supply if params.initial_supply > 0 else 0.0
    )
    return {
        "staked_amount": staked_amount,
        "staked_percent": staked_percent,
        "circulating_amount": params.total_supply,
    }


def supply_split(params: ProtocolParameters) -> pd.DataFrame:
    """Two-slice donut dataset: Locked and Circulating."""
    summary = supply_summary(params)
    return pd.DataFrame(
        {
            "slice": ["Locked", "Circulating"],
            "amount": _amounts([summary["staked_amount"], summary["circulating_amount"]]),
        }
    )


# =============================================================================
# Maturity histogram
# =============================================================================


def _bucket_label(min_days: int, max_days: int | None) -> str:
    if max_days is None:
        return f"{min_days}d+"
    return f"{min_days}-{max_days}d"


def _bucket_for(lock_days: int) -> int | None:
    for position, (min_days, max_days) in enumerate(const.MATURITY_BUCKETS):
        if lock_days >= min_days and (max_days is None or lock_days <= max_days):
            return position
    return None


def maturity_histogram(stakes: Sequence[StakeRecord]) -> pd.DataFrame:
    """Sum principal and count stakes per lock-duration bucket.

    Returns one row per bucket in ``MATURITY_BUCKETS`` order, zero-filled.
    """
    amounts = [0] * len(const.MATURITY_BUCKETS)
    counts = [0] * len(const.MATURITY_BUCKETS)
    for stake in stakes:
        position = _bucket_for(stake.lock_days)
        if position is None:
            LOGGER.warning(
                "Stake %s has lock_days=%s outside every maturity bucket; skipped",
                stake.index,
                stake.lock_days,
            )
            continue
        amounts[position] += stake.principal_amount
        counts[position] += 1
    return pd.DataFrame(
        {
            "bucket": [_bucket_label(lo, hi) for lo, hi in const.MATURITY_BUCKETS],
            "min_days": [lo for lo, _ in const.MATURITY_BUCKETS],
            "max_days": pd.Series([hi for _, hi in const.MATURITY_BUCKETS], dtype="object"),
            "amount": _amounts(amounts),
            "count": counts,
        }
    )


# =============================================================================
# Unlock calendar
# =============================================================================


def unlock_calendar(stakes: Sequence[StakeRecord], now: int) -> pd.DataFrame:
    """Dense daily unlock schedule for today .. today + 90 (always 91 rows)."""
    today = _day_index(now)
    days = list(range(today, today + const.UNLOCK_CALENDAR_DAYS + 1))
    amounts = dict.fromkeys(days, 0)
    counts = dict.fromkeys(days, 0)
    for stake in stakes:
        day = stake.unlock_day
        if day in amounts:
            amounts[day] += stake.principal_amount
            counts[day] += 1
    return pd.DataFrame(
        {
            "day": days,
            "date": pd.to_datetime(
                [day * const.ONE_DAY_SECONDS for day in days], unit="s", utc=True
            ),
            "amount": _amounts(amounts[day] for day in days),
            "count": [counts[day] for day in days],
        }
    )


def unlock_calendar_overflow(stakes: Sequence[StakeRecord], now: int) -> dict[str, dict[str, int]]:
    """Stakes the calendar window leaves out: already unlocked, or beyond day 90."""
    today = _day_index(now)
    last_day = today + const.UNLOCK_CALENDAR_DAYS
    overflow = {
        "before_window": {"amount": 0, "count": 0},
        "after_window": {"amount": 0, "count": 0},
    }
    for stake in stakes:
        day = stake.unlock_day
        if day < today:
            key = "before_window"
        elif day > last_day:
            key = "after_window"
        else:
            continue
        overflow[key]["amount"] += stake.principal_amount
        overflow[key]["count"] += 1
    return overflow


# =============================================================================
# Ladder
# =============================================================================


def stake_ladder(stakes: Sequence[StakeRecord]) -> pd.DataFrame:
    """Timeline bars: start offset (days from the earliest start) and duration."""
    if not stakes:
        return pd.DataFrame(columns=["index", "offset", "duration"])
    min_start_day = min(stake.start_day for stake in stakes)
    return pd.DataFrame(
        {
            "index": [stake.index for stake in stakes],
            "offset": [stake.start_day - min_start_day for stake in stakes],
            "duration": [stake.lock_days for stake in stakes],
        }
    )


# =============================================================================
# Per-stake rows (table + CSV)
# =============================================================================


@dataclass(frozen=True)
class StakeRow:
    index: int
    principal_amount: int
    shares: int
    lock_days: int
    start_timestamp: int
    unlock_timestamp: int
    status: str | None
    days_remaining: int | None
    estimated_penalty_percent: float | None


def project_stake_rows(
    stakes: Sequence[StakeRecord], params: ProtocolParameters, now: int
) -> list[StakeRow]:
    """Single projection feeding both the stakes table and the CSV export."""
    rows: list[StakeRow] = []
    for stake in stakes:
        status = None
        days_remaining = None
        penalty_percent = None
        try:
            assessment = assess_stake(stake, params, now)
        except ConfigurationError as exc:
            LOGGER.warning("Cannot assess stake %s: %s", stake.index, exc)
        else:
            status = assessment.status.value
            days_remaining = assessment.days_remaining
            penalty_percent = assessment.penalty_percent
        rows.append(
            StakeRow(
                index=stake.index,
                principal_amount=stake.principal_amount,
                shares=stake.shares,
                lock_days=stake.lock_days,
                start_timestamp=stake.start_timestamp,
                unlock_timestamp=stake.unlock_timestamp,
                status=status,
                days_remaining=days_remaining,
                estimated_penalty_percent=penalty_percent,
            )
        )
    return rows


def stake_rows_frame(
    stakes: Sequence[StakeRecord], params: ProtocolParameters, now: int
) -> pd.DataFrame:
    """Tabular form of ``project_stake_rows`` for the interactive table."""
    rows = project_stake_rows(stakes, params, now)
    columns = list(StakeRow.__dataclass_fields__)
    frame = pd.DataFrame([asdict(row) for row in rows], columns=columns)
    frame["principal_amount"] = _amounts(row.principal_amount for row in rows)
    frame["shares"] = _amounts(row.shares for row in rows)
    # Unassessable rows carry None; keep whole days as ints like the CSV
    frame["days_remaining"] = pd.Series([row.days_remaining for row in rows], dtype="object")
    return frame


def stakes_csv(
    stakes: Sequence[StakeRecord],
    params: ProtocolParameters,
    now: int,
    *,
    decimals: int | None = None,
) -> str:
    """CSV export: header first, every field quoted, inner quotes doubled."""
    token_decimals = params.token_decimals if decimals is None else decimals
    records = []
    for row in project_stake_rows(stakes, params, now):
        penalty = row.estimated_penalty_percent
        records.append(
            {
                "index": row.index,
                "amount": format_units(row.principal_amount, token_decimals),
                "lock_days": row.lock_days,
                "start_timestamp": row.start_timestamp,
                "start_iso8601": iso_utc(row.start_timestamp),
                "unlock_timestamp": row.unlock_timestamp,
                "unlock_iso8601": iso_utc(row.unlock_timestamp),
                "status": row.status,
                "days_remaining": row.days_remaining,
                "estimated_penalty_percent": None if penalty is None else f"{penalty:.2f}",
            }
        )
    frame = pd.DataFrame(records, columns=list(CSV_COLUMNS), dtype="object")
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def wallet_shares(stakes: Sequence[StakeRecord]) -> int:
    """Total shares held across the owner's stakes."""
    return sum(stake.shares for stake in stakes)
