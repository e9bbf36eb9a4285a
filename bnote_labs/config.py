"""Configuration helpers for bNote staking analytics."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from . import protocol_constants as const

load_dotenv()

DATA_DIR = Path(os.getenv("BNOTE_DATA_DIR", "data"))
RAW_DATA_DIR = DATA_DIR / "raw"
CACHE_DIR = DATA_DIR / "cache"
SESSION_SERIES_DIR = CACHE_DIR / "session_series"
OUT_DIR = Path("out")

DEXSCREENER_BASE = os.getenv("DEXSCREENER_BASE", "https://api.dexscreener.com")
CONTRACT_ADDRESS = os.getenv(
    "BNOTE_CONTRACT_ADDRESS", "0x473EB99177965277275B3e83bCE3d4884473878D"
)
CHAIN_KEYWORD = os.getenv("BNOTE_CHAIN_KEYWORD", "pulse")
SNAPSHOT_PATH = Path(os.getenv("BNOTE_SNAPSHOT_PATH", str(DATA_DIR / "snapshot.json")))

RAW_DATA_DIR.mkdir(parents=True, exist_ok=True)
CACHE_DIR.mkdir(parents=True, exist_ok=True)
SESSION_SERIES_DIR.mkdir(parents=True, exist_ok=True)
OUT_DIR.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class RetryConfig:
    """Settings for HTTP retry/backoff behaviour."""

    wait_min_seconds: float = 0.5
    wait_max_seconds: float = 8.0
    max_attempts: int = 4
    status_forcelist: tuple[int, ...] = field(
        default_factory=lambda: (429, 500, 502, 503, 504, 522, 525)
    )


DEFAULT_RETRY_CONFIG = RetryConfig()


def resolve_cache_path(prefix: str, key: str, suffix: str = ".json") -> Path:
    """Return a deterministic cache path under data/raw for a given key."""
    sanitized_prefix = prefix.replace("/", "_")
    filename = f"{sanitized_prefix}_{key}{suffix}"
    return RAW_DATA_DIR / filename


def clock_tick_seconds() -> int:
    """Recomputation period for callers that drive ``now`` from a timer."""
    env_value = os.getenv("BNOTE_CLOCK_TICK_SECONDS")
    if env_value:
        try:
            value = int(env_value)
        except ValueError:
            pass
        else:
            if value > 0:
                return value
    return const.CLOCK_TICK_SECONDS
