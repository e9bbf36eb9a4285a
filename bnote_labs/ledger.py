"""Ledger Client boundary and the verified-vs-assumed configuration source.

The engine never talks to the chain itself. A ``LedgerClient`` exposes typed
getters for contract constants plus the owner's stake list; the two mutating
operations belong to the client and are only declared here.

``ConfigurationSource`` turns those getters into a ``ProtocolParameters``
snapshot. Constants whose getter is absent fall back to the assumed defaults in
``protocol_constants`` and are tagged as such, so callers can tell verified
values from guessed ones.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

from . import protocol_constants as const
from .errors import ConfigurationError, UpstreamUnavailable
from .models import ProtocolParameters, StakeRecord

LOGGER = logging.getLogger(__name__)

VERIFIED = "verified"
ASSUMED_DEFAULT = "assumed_default"

Getter = Callable[[], Any]

# Contract getter name -> ProtocolParameters field
CONSTANT_FIELDS: dict[str, str] = {
    "BASIS": "basis_denominator",
    "MIN_STAKE_DAYS": "min_lock_days",
    "MAX_STAKE_DAYS": "max_lock_days",
    "LPB_PER_YEAR_BPS": "lpb_bps_per_year",
    "LPB_MAX_YEARS": "lpb_max_years",
    "BPB_MAX_BPS": "bpb_max_bps",
    "BPB_CAP": "bpb_cap_amount",
    "EARLY_PENALTY_BASIS": "early_penalty_bps",
    "LATE_PENALTY_BASIS": "late_penalty_bps",
}

# State getters that have no meaningful default
STATE_FIELDS: dict[str, str] = {
    "totalSupply": "total_supply",
    "INITIAL_SUPPLY": "initial_supply",
    "totalShares": "total_shares",
}


class LedgerClient(Protocol):
    def constant_getters(self) -> Mapping[str, Getter]:
        """Getter callables keyed by contract getter name (absent = not exposed)."""

    def stakes_of(self, owner: str | None) -> Sequence[StakeRecord]:
        ...

    def open_stake(self, amount: int, lock_days: int, auto_renew: bool) -> str:
        """Submit a stake-open and return the confirmed transaction id."""

    def close_stake(self, index: int) -> str:
        """Submit a stake-close and return the confirmed transaction id."""


@dataclass(frozen=True)
class ResolvedParameters:
    params: ProtocolParameters
    provenance: dict[str, str]

    @property
    def assumed(self) -> list[str]:
        return sorted(name for name, tag in self.provenance.items() if tag == ASSUMED_DEFAULT)

    @property
    def fully_verified(self) -> bool:
        return not self.assumed


class ConfigurationSource:
    """Resolve protocol parameters from ledger getters, tagging each value's origin."""

    def __init__(
        self,
        getters: Mapping[str, Getter | None],
        defaults: Mapping[str, int] | None = None,
    ):
        self.getters = dict(getters)
        self.defaults = dict(const.ASSUMED_CONTRACT_DEFAULTS if defaults is None else defaults)

    def _call(self, name: str) -> Any:
        getter = self.getters[name]
        try:
            return getter()
        except Exception as exc:
            raise UpstreamUnavailable(f"ledger getter {name} failed: {exc}") from exc

    def read(self, name: str) -> tuple[int, str]:
        """Return (value, provenance) for a single constant or state getter."""
        if self.getters.get(name) is not None:
            return int(self._call(name)), VERIFIED
        if name in self.defaults:
            LOGGER.warning("Contract getter %s absent; assuming default %s", name, self.defaults[name])
            return int(self.defaults[name]), ASSUMED_DEFAULT
        raise ConfigurationError(f"required ledger getter {name} is not available")

    def _read_metrics(self) -> tuple[int, int]:
        if self.getters.get("metrics") is None:
            raise ConfigurationError("required ledger getter metrics is not available")
        metrics = self._call("metrics")
        try:
            apr_basis_points, share_rate = metrics
            return int(apr_basis_points), int(share_rate)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"ledger getter metrics returned {metrics!r}; expected (apr_bps, share_rate)"
            ) from exc

    def resolve(self) -> ResolvedParameters:
        """Build a ``ProtocolParameters`` snapshot.

        Raises:
            ConfigurationError: a required getter is missing
            UpstreamUnavailable: a getter failed
        """
        values: dict[str, int] = {}
        provenance: dict[str, str] = {}
        for name, field_name in {**CONSTANT_FIELDS, **STATE_FIELDS}.items():
            values[field_name], provenance[name] = self.read(name)

        values["apr_basis_points"], values["share_rate"] = self._read_metrics()
        provenance["metrics"] = VERIFIED

        if self.getters.get("decimals") is not None:
            values["token_decimals"] = int(self._call("decimals"))
            provenance["decimals"] = VERIFIED
        else:
            values["token_decimals"] = const.TOKEN_DECIMALS
            provenance["decimals"] = ASSUMED_DEFAULT

        return ResolvedParameters(params=ProtocolParameters(**values), provenance=provenance)


class SnapshotLedgerClient:
    """Read-only ledger client backed by a JSON snapshot file.

    Expected layout::

        {"owner": "0x...",
         "constants": {"BASIS": 10000, "metrics": [369, "1000000000000000000"], ...},
         "stakes": [{"amount": "...", "lockDays": 365, "startTimestamp": ..., "shares": "..."}]}

    Stakes without an explicit index take their list position.
    """

    def __init__(self, payload: Mapping[str, Any]):
        self.payload = payload

    @classmethod
    def from_path(cls, path: Path) -> "SnapshotLedgerClient":
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise UpstreamUnavailable(f"cannot read ledger snapshot {path}: {exc}") from exc
        return cls(payload)

    @property
    def owner(self) -> str | None:
        return self.payload.get("owner")

    def balance_of(self, owner: str | None = None) -> int:
        return int(self.payload.get("balance") or 0)

    def constant_getters(self) -> Mapping[str, Getter]:
        constants = self.payload.get("constants") or {}
        return {name: (lambda value=value: value) for name, value in constants.items()}

    def stakes_of(self, owner: str | None = None) -> list[StakeRecord]:
        if owner is not None and self.owner is not None and owner.lower() != self.owner.lower():
            return []
        return [
            StakeRecord.from_dict(item, index=item.get("index", item.get("_idx", position)))
            for position, item in enumerate(self.payload.get("stakes") or [])
        ]

    def open_stake(self, amount: int, lock_days: int, auto_renew: bool) -> str:
        raise UpstreamUnavailable("snapshot ledger client is read-only")

    def close_stake(self, index: int) -> str:
        raise UpstreamUnavailable("snapshot ledger client is read-only")


def load_snapshot(
    client: LedgerClient, owner: str | None = None
) -> tuple[ResolvedParameters, list[StakeRecord]]:
    """Refresh parameters and the owner's stakes in one call."""
    resolved = ConfigurationSource(client.constant_getters()).resolve()
    stakes = list(client.stakes_of(owner))
    return resolved, stakes
