"""Staking protocol and engine constants.

This module centralizes the magic numbers used across the staking engine. The
contract defaults below are only used when a ledger getter is absent, and are
always reported as assumed defaults by ``ledger.ConfigurationSource``.
"""

from __future__ import annotations

# =============================================================================
# Time
# =============================================================================

# Seconds per day; stake lock periods are counted in whole days
ONE_DAY_SECONDS = 86_400

# Calendar days per year (LPB year count and APR proration)
DAYS_PER_YEAR = 365

# Milliseconds per second (session samples are stamped in unix millis)
MILLIS_PER_SECOND = 1_000


# =============================================================================
# Token
# =============================================================================

# bNote uses 18 decimals like most EVM tokens
# Source: ERC-20 decimals() of the deployed contract
TOKEN_DECIMALS = 18

# Base units per whole token
BASE_UNITS_PER_TOKEN = 10**TOKEN_DECIMALS


# =============================================================================
# Assumed contract defaults
# =============================================================================
# Used only when the deployed contract does not expose the matching getter.
# Keys are the getter names of the contract.

DEFAULT_BASIS = 10_000
DEFAULT_MIN_STAKE_DAYS = 1
DEFAULT_MAX_STAKE_DAYS = 5_555
DEFAULT_LPB_PER_YEAR_BPS = 2_000
DEFAULT_LPB_MAX_YEARS = 10
DEFAULT_BPB_MAX_BPS = 1_000
DEFAULT_BPB_CAP = 210_000 * BASE_UNITS_PER_TOKEN
DEFAULT_EARLY_PENALTY_BASIS = 2_500
DEFAULT_LATE_PENALTY_BASIS = 2_500

ASSUMED_CONTRACT_DEFAULTS: dict[str, int] = {
    "BASIS": DEFAULT_BASIS,
    "MIN_STAKE_DAYS": DEFAULT_MIN_STAKE_DAYS,
    "MAX_STAKE_DAYS": DEFAULT_MAX_STAKE_DAYS,
    "LPB_PER_YEAR_BPS": DEFAULT_LPB_PER_YEAR_BPS,
    "LPB_MAX_YEARS": DEFAULT_LPB_MAX_YEARS,
    "BPB_MAX_BPS": DEFAULT_BPB_MAX_BPS,
    "BPB_CAP": DEFAULT_BPB_CAP,
    "EARLY_PENALTY_BASIS": DEFAULT_EARLY_PENALTY_BASIS,
    "LATE_PENALTY_BASIS": DEFAULT_LATE_PENALTY_BASIS,
}


# =============================================================================
# Analytics
# =============================================================================

# Maturity histogram buckets (inclusive lock-day ranges, None = unbounded)
# Exhaustive and non-overlapping for any lock_days >= 1
MATURITY_BUCKETS: tuple[tuple[int, int | None], ...] = (
    (1, 7),
    (8, 30),
    (31, 90),
    (91, 365),
    (366, None),
)

# Unlock calendar covers today plus this many days (91 entries)
UNLOCK_CALENDAR_DAYS = 90

# Session sample series bound (per metric)
SESSION_SERIES_MAX_LENGTH = 200

# Recommended recomputation tick
CLOCK_TICK_SECONDS = 30
