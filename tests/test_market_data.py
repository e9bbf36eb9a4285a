from __future__ import annotations

from pathlib import Path

import pytest

from bnote_labs import config
from bnote_labs import market_data
from bnote_labs.errors import UpstreamUnavailable

TOKEN = 10**18


def _pairs_fixture() -> dict[str, object]:
    return {
        "pairs": [
            {
                "chainId": "ethereum",
                "pairAddress": "0xeth",
                "priceUsd": "9.0",
                "liquidity": {"usd": 5_000_000},
            },
            {
                "chainId": "pulsechain",
                "pairAddress": "0xsmall",
                "priceUsd": "0.5",
                "priceNative": "100",
                "liquidity": {"usd": 1_000},
            },
            {
                "chainId": "pulsechain",
                "pairAddress": "0xdeep",
                "priceUsd": "0.02",
                "priceNative": "250.5",
                "liquidity": {"usd": 80_000},
                "fdv": 1_500_000,
                "volume": {"h24": 12_345.6},
                "priceChange": {"h1": -0.4, "h24": 3.1},
                "txns": {"h24": {"buys": 40, "sells": 12}},
            },
        ]
    }


class DummyResponse:
    def __init__(self, status_code: int, payload):
        self.status_code = status_code
        self._payload = payload
        self.headers = {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")

    def json(self):
        return self._payload


class DummySession:
    def __init__(self, payload, status_code: int = 200):
        self.payload = payload
        self.status_code = status_code
        self.urls: list[str] = []

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.urls.append(url)
        return DummyResponse(self.status_code, self.payload)


@pytest.fixture()
def temp_cache(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(config, "RAW_DATA_DIR", tmp_path)
    yield tmp_path


def test_reference_pair_is_deepest_on_chain():
    pair = market_data.select_reference_pair(_pairs_fixture()["pairs"], "pulse")
    assert pair["pairAddress"] == "0xdeep"
    assert market_data.select_reference_pair(_pairs_fixture()["pairs"], "solana") is None


def test_parse_pair_fields():
    snapshot = market_data.parse_pair(_pairs_fixture()["pairs"][2])

    assert snapshot.pair_identifier == "0xdeep"
    assert snapshot.price_in_quote_currency == pytest.approx(0.02)
    assert snapshot.price_in_native_currency == pytest.approx(250.5)
    assert snapshot.liquidity == pytest.approx(80_000)
    assert snapshot.fully_diluted_valuation == pytest.approx(1_500_000)
    assert snapshot.buy_count_24h == 40
    assert snapshot.sell_count_24h == 12


def test_parse_pair_tolerates_missing_fields():
    snapshot = market_data.parse_pair({"pairAddress": "0x1"})
    assert snapshot.price_in_quote_currency is None
    assert snapshot.volume_24h is None
    assert snapshot.buy_count_24h is None


def test_fetch_market_snapshot(monkeypatch, temp_cache):
    session = DummySession(_pairs_fixture())
    monkeypatch.setattr(market_data, "_DEXSCREENER_SESSION", session)

    snapshot = market_data.fetch_market_snapshot("0xToken", chain_keyword="pulse")

    assert snapshot.pair_identifier == "0xdeep"
    assert session.urls == [f"{config.DEXSCREENER_BASE}/latest/dex/tokens/0xToken"]


def test_fetch_without_chain_pair_is_unavailable(monkeypatch, temp_cache):
    monkeypatch.setattr(market_data, "_DEXSCREENER_SESSION", DummySession({"pairs": None}))
    with pytest.raises(UpstreamUnavailable):
        market_data.fetch_market_snapshot("0xToken", chain_keyword="pulse")


def test_load_market_snapshot_returns_none_on_failure(monkeypatch, temp_cache, caplog):
    monkeypatch.setattr(market_data, "_DEXSCREENER_SESSION", DummySession({}, status_code=404))
    assert market_data.load_market_snapshot("0xToken", chain_keyword="pulse") is None
    assert "Market data unavailable" in caplog.text


def test_wallet_value_and_market_cap():
    snapshot = market_data.parse_pair(_pairs_fixture()["pairs"][2])

    value = market_data.wallet_value(1_000 * TOKEN, snapshot)
    assert value["value_quote"] == pytest.approx(20.0)
    assert value["value_native"] == pytest.approx(250_500.0)
    assert market_data.market_cap_estimate(2_000_000 * TOKEN, snapshot) == pytest.approx(40_000.0)


def test_value_derivations_without_market():
    assert market_data.wallet_value(TOKEN, None) == {"value_quote": None, "value_native": None}
    assert market_data.market_cap_estimate(TOKEN, None) is None
