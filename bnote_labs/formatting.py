"""Presentation helpers: base units to human decimals, compact numbers, timestamps."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from decimal import Decimal

from . import protocol_constants as const

MISSING = "—"


def format_units(value: int, decimals: int = const.TOKEN_DECIMALS) -> str:
    """Exact decimal string for a base-unit amount (``1000 * 10**18`` -> ``"1000.0"``)."""
    if decimals <= 0:
        return str(int(value))
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(int(value)), 10**decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_text}"


def units_to_float(value: int, decimals: int = const.TOKEN_DECIMALS) -> float:
    return float(Decimal(int(value)).scaleb(-decimals))


def _is_missing(value: float | int | None) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and not math.isfinite(value)


def format_number(value: float | int | None, *, decimals: int = 2) -> str:
    if _is_missing(value):
        return MISSING
    return f"{value:,.{decimals}f}"


def format_compact(value: float | int | None, *, decimals: int = 2) -> str:
    if _is_missing(value):
        return MISSING
    num = float(value)
    magnitude = abs(num)
    if magnitude >= 1e9:
        return f"{num / 1e9:.{decimals}f}B"
    if magnitude >= 1e6:
        return f"{num / 1e6:.{decimals}f}M"
    if magnitude >= 1e3:
        return f"{num / 1e3:.{decimals}f}k"
    return f"{num:.{decimals}f}"


def format_pct(value: float | None, *, decimals: int = 2) -> str:
    if _is_missing(value):
        return MISSING
    return f"{value:.{decimals}f}%"


def iso_utc(timestamp: int) -> str:
    """ISO-8601 UTC string with millisecond precision and ``Z`` suffix."""
    moment = datetime.fromtimestamp(timestamp, tz=UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
