"""Market data (Dexscreener) for the bNote token and its thin value derivations.

The top-liquidity pair on the configured chain is treated as the reference
market. A provider failure never propagates into the staking engine: callers
use ``load_market_snapshot`` and get ``None`` ("unavailable"), and every
derivation below returns ``None`` for the fields that need a missing price.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import requests

from . import config as cfg
from . import protocol_constants as const
from .errors import UpstreamUnavailable
from .formatting import units_to_float
from .http_utils import RequestOptions, TransientHTTPError, build_session, cached_json_request

LOGGER = logging.getLogger(__name__)

_DEXSCREENER_SESSION = build_session(
    {"Accept": "application/json", "User-Agent": "bnote-labs/1.0"}
)


@dataclass(frozen=True)
class MarketSnapshot:
    pair_identifier: str
    price_in_quote_currency: float | None
    price_in_native_currency: float | None
    liquidity: float | None
    fully_diluted_valuation: float | None
    volume_24h: float | None
    price_change_1h: float | None
    price_change_24h: float | None
    buy_count_24h: int | None
    sell_count_24h: int | None


def _float_or_none(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int_or_none(value: Any) -> int | None:
    number = _float_or_none(value)
    return None if number is None else int(number)


def _liquidity_usd(pair: Mapping[str, Any]) -> float:
    return _float_or_none((pair.get("liquidity") or {}).get("usd")) or 0.0


def select_reference_pair(
    pairs: list[Mapping[str, Any]], chain_keyword: str
) -> Mapping[str, Any] | None:
    """Pick the highest-liquidity pair whose chain id mentions ``chain_keyword``."""
    keyword = chain_keyword.lower()
    candidates = [
        pair
        for pair in pairs
        if keyword in str(pair.get("chainId") or pair.get("chain") or "").lower()
    ]
    if not candidates:
        return None
    return max(candidates, key=_liquidity_usd)


def parse_pair(pair: Mapping[str, Any]) -> MarketSnapshot:
    txns_24h = (pair.get("txns") or {}).get("h24") or {}
    volume = pair.get("volume") or {}
    change = pair.get("priceChange") or {}
    return MarketSnapshot(
        pair_identifier=str(pair.get("pairAddress") or ""),
        price_in_quote_currency=_float_or_none(pair.get("priceUsd")),
        price_in_native_currency=_float_or_none(pair.get("priceNative")),
        liquidity=_float_or_none((pair.get("liquidity") or {}).get("usd")),
        fully_diluted_valuation=_float_or_none(pair.get("fdv")),
        volume_24h=_float_or_none(volume.get("h24")),
        price_change_1h=_float_or_none(change.get("h1")),
        price_change_24h=_float_or_none(change.get("h24")),
        buy_count_24h=_int_or_none(txns_24h.get("buys")),
        sell_count_24h=_int_or_none(txns_24h.get("sells")),
    )


def fetch_market_snapshot(
    token_address: str | None = None,
    *,
    chain_keyword: str | None = None,
    force_refresh: bool = False,
) -> MarketSnapshot:
    """Fetch the reference pair for ``token_address``.

    Raises:
        UpstreamUnavailable: transport failure, bad payload, or no pair on chain
    """
    address = token_address or cfg.CONTRACT_ADDRESS
    keyword = chain_keyword or cfg.CHAIN_KEYWORD
    url = f"{cfg.DEXSCREENER_BASE}/latest/dex/tokens/{address}"
    try:
        payload = cached_json_request(
            RequestOptions(
                prefix="dexscreener_tokens",
                session=_DEXSCREENER_SESSION,
                method="GET",
                url=url,
                ttl_seconds=cfg.clock_tick_seconds(),
                force_refresh=force_refresh,
            )
        )
    except (TransientHTTPError, requests.RequestException, RuntimeError) as exc:
        raise UpstreamUnavailable(f"Dexscreener request failed: {exc}") from exc

    if not isinstance(payload, Mapping):
        raise UpstreamUnavailable("Dexscreener returned an unexpected payload")
    pair = select_reference_pair(list(payload.get("pairs") or []), keyword)
    if pair is None:
        raise UpstreamUnavailable(f"No {keyword} pair listed for {address}")
    return parse_pair(pair)


def load_market_snapshot(
    token_address: str | None = None,
    *,
    chain_keyword: str | None = None,
    force_refresh: bool = False,
) -> MarketSnapshot | None:
    """Like ``fetch_market_snapshot`` but returns ``None`` when unavailable."""
    try:
        return fetch_market_snapshot(
            token_address, chain_keyword=chain_keyword, force_refresh=force_refresh
        )
    except UpstreamUnavailable as exc:
        LOGGER.warning("Market data unavailable: %s", exc)
        return None


def wallet_value(
    balance: int,
    snapshot: MarketSnapshot | None,
    *,
    decimals: int = const.TOKEN_DECIMALS,
) -> dict[str, float | None]:
    """Wallet balance valued in the quote (USD) and native currencies."""
    tokens = units_to_float(balance, decimals)
    quote = snapshot.price_in_quote_currency if snapshot else None
    native = snapshot.price_in_native_currency if snapshot else None
    return {
        "value_quote": tokens * quote if quote else None,
        "value_native": tokens * native if native else None,
    }


def market_cap_estimate(
    total_supply: int,
    snapshot: MarketSnapshot | None,
    *,
    decimals: int = const.TOKEN_DECIMALS,
) -> float | None:
    """Circulating supply (``total_supply``) times the quote price."""
    if snapshot is None or not snapshot.price_in_quote_currency:
        return None
    return units_to_float(total_supply, decimals) * snapshot.price_in_quote_currency
