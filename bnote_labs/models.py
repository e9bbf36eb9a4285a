"""Data model shared by the estimators and the analytics aggregator.

All amount-like fields are integers in token base units. Ledger payloads
usually carry uint256 values as decimal strings, so the ``from_dict``
constructors coerce through ``int``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from . import protocol_constants as const


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("boolean is not an integer amount")
    return int(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1"):
            return True
        if text in ("false", "0", ""):
            return False
    raise ValueError(f"cannot interpret {value!r} as a boolean flag")


def _pick(payload: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    if default is None:
        raise KeyError(keys[0])
    return default


@dataclass(frozen=True)
class ProtocolParameters:
    """Snapshot of contract constants and state, refreshed by the caller.

    Attributes:
        basis_denominator: Denominator for every basis-point ratio (BASIS)
        min_lock_days / max_lock_days: Allowed lock window in days
        apr_basis_points: Annual rate numerator over ``basis_denominator``
        share_rate: Principal-to-shares ratio scaled by 10**token_decimals
        total_shares / total_supply / initial_supply: Base-unit totals
        lpb_bps_per_year / lpb_max_years: Longer Pays Better schedule
        bpb_max_bps / bpb_cap_amount: Bigger Pays Better schedule
        early_penalty_bps / late_penalty_bps: Maximum penalties
        token_decimals: Scale of ``share_rate`` and of amounts
    """

    basis_denominator: int
    min_lock_days: int
    max_lock_days: int
    apr_basis_points: int
    share_rate: int
    total_shares: int
    total_supply: int
    initial_supply: int
    lpb_bps_per_year: int
    lpb_max_years: int
    bpb_max_bps: int
    bpb_cap_amount: int
    early_penalty_bps: int
    late_penalty_bps: int
    token_decimals: int = const.TOKEN_DECIMALS

    @property
    def share_rate_scale(self) -> int:
        return 10**self.token_decimals

    @property
    def early_max_percent(self) -> float:
        return self.early_penalty_bps / self.basis_denominator * 100

    @property
    def late_max_percent(self) -> float:
        return self.late_penalty_bps / self.basis_denominator * 100

    @property
    def apr_percent(self) -> float:
        return self.apr_basis_points / self.basis_denominator * 100

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ProtocolParameters":
        return cls(
            basis_denominator=_as_int(payload["basis_denominator"]),
            min_lock_days=_as_int(payload["min_lock_days"]),
            max_lock_days=_as_int(payload["max_lock_days"]),
            apr_basis_points=_as_int(payload["apr_basis_points"]),
            share_rate=_as_int(payload["share_rate"]),
            total_shares=_as_int(payload.get("total_shares", 0)),
            total_supply=_as_int(payload.get("total_supply", 0)),
            initial_supply=_as_int(payload.get("initial_supply", 0)),
            lpb_bps_per_year=_as_int(payload["lpb_bps_per_year"]),
            lpb_max_years=_as_int(payload["lpb_max_years"]),
            bpb_max_bps=_as_int(payload["bpb_max_bps"]),
            bpb_cap_amount=_as_int(payload["bpb_cap_amount"]),
            early_penalty_bps=_as_int(payload["early_penalty_bps"]),
            late_penalty_bps=_as_int(payload["late_penalty_bps"]),
            token_decimals=_as_int(payload.get("token_decimals", const.TOKEN_DECIMALS)),
        )


@dataclass(frozen=True)
class StakeRecord:
    """One position in the owner's stake list (never mutated by the engine)."""

    index: int
    principal_amount: int
    lock_days: int
    start_timestamp: int
    shares: int
    auto_renew: bool = False

    @property
    def unlock_timestamp(self) -> int:
        return self.start_timestamp + self.lock_days * const.ONE_DAY_SECONDS

    @property
    def start_day(self) -> int:
        return self.start_timestamp // const.ONE_DAY_SECONDS

    @property
    def unlock_day(self) -> int:
        return self.unlock_timestamp // const.ONE_DAY_SECONDS

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], *, index: int | None = None) -> "StakeRecord":
        """Build a record from either ledger-style or snake_case keys."""
        resolved_index = index if index is not None else _pick(payload, "index", "_idx")
        return cls(
            index=_as_int(resolved_index),
            principal_amount=_as_int(_pick(payload, "principal_amount", "amount")),
            lock_days=_as_int(_pick(payload, "lock_days", "lockDays")),
            start_timestamp=_as_int(_pick(payload, "start_timestamp", "startTimestamp")),
            shares=_as_int(_pick(payload, "shares", default=0)),
            auto_renew=_as_bool(_pick(payload, "auto_renew", "autoRenew", default=False)),
        )


@dataclass(frozen=True)
class SessionSamplePoint:
    timestamp: int  # unix millis
    value: float
