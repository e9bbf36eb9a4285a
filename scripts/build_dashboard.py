#!/usr/bin/env python3
"""Generate a standalone HTML staking dashboard from a ledger snapshot."""

from __future__ import annotations

import argparse
import html
import logging
import sys
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import pandas as pd
import plotly.graph_objects as go
import plotly.io as pio

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bnote_labs import analytics
from bnote_labs import config as cfg
from bnote_labs import formatting as fmt
from bnote_labs import ledger
from bnote_labs import market_data
from bnote_labs import penalty
from bnote_labs import session_series
from bnote_labs.errors import ConfigurationError
from bnote_labs.models import ProtocolParameters, SessionSamplePoint, StakeRecord

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

SERIES_LABELS: dict[str, str] = {
    "total_shares": "Total shares (contract)",
    "price_native": "Price (native per bNote)",
}
DONUT_COLORS = ["#70e1ff", "#ffaf40"]


def _write_html(
    output_path: Path,
    title: str,
    sections: Iterable[str],
    *,
    last_updated: datetime | None = None,
) -> None:
    """Wrap the provided HTML snippets in a basic document and write to disk."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    stamp = (last_updated or datetime.now(UTC)).strftime("%Y-%m-%d %H:%M %Z")
    document = "\n".join(
        [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '  <meta charset="utf-8" />',
            '  <meta name="viewport" content="width=device-width, initial-scale=1" />',
            f"  <title>{html.escape(title)}</title>",
            '  <style type="text/css">',
            "    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif; margin: 0 auto; padding: 2rem; max-width: 1100px; background: #0a0e1a; color: #e8f1ff; }",
            "    h1, h2 { color: #70e1ff; }",
            "    .last-updated { font-size: 0.85rem; color: #7681a1; margin-bottom: 1.5rem; }",
            "    table { border-collapse: collapse; width: 100%; margin: 1.5rem 0; }",
            "    th, td { border: 1px solid #2f354a; padding: 0.5rem 0.75rem; text-align: center; }",
            "    th { background: #1f2840; }",
            "    tr:nth-child(even) { background: #161b2e; }",
            "    .section { margin-bottom: 3rem; }",
            "    .note { font-size: 0.9rem; color: #b5bfd9; margin-top: -1rem; margin-bottom: 1.5rem; }",
            "    .kpi-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 1rem; }",
            "    .kpi-card { background: #141c30; padding: 1rem; border-radius: 12px; border: 1px solid #2f354a; }",
            "    .kpi-label { text-transform: uppercase; font-size: 0.75rem; color: #7f8bb3; letter-spacing: 0.05em; }",
            "    .kpi-value { font-size: 1.5rem; margin-top: 0.25rem; color: #e8f1ff; }",
            "    .kpi-subtext { font-size: 0.85rem; color: #7f8bb3; margin-top: 0.25rem; }",
            "  </style>",
            "</head>",
            "<body>",
            f"<h1>{html.escape(title)}</h1>",
            f"<div class='last-updated'>Last updated {stamp}</div>",
            *sections,
            "</body>",
            "</html>",
        ]
    )
    output_path.write_text(document, encoding="utf-8")
    print(f"Wrote {output_path}")


def _section(title: str, body: Sequence[str], note: str | None = None) -> str:
    parts = ["<div class='section'>", f"<h2>{html.escape(title)}</h2>"]
    if note:
        parts.append(f"<p class='note'>{html.escape(note)}</p>")
    parts.extend(body)
    parts.append("</div>")
    return "\n".join(parts)


def _figure_html(fig: go.Figure) -> str:
    fig.update_layout(template="plotly_dark", height=420)
    return pio.to_html(fig, include_plotlyjs="cdn", full_html=False)


def render_kpi_cards(cards: Sequence[dict[str, str]]) -> str:
    if not cards:
        return "<p>No KPI data.</p>"
    rows = ["<div class='section'>", "<div class='kpi-grid'>"]
    for card in cards:
        rows.append(
            "\n".join(
                [
                    "<div class='kpi-card'>",
                    f"  <div class='kpi-label'>{html.escape(card.get('label', ''))}</div>",
                    f"  <div class='kpi-value'>{html.escape(card.get('value', fmt.MISSING))}</div>",
                    f"  <div class='kpi-subtext'>{html.escape(card.get('subtext', ''))}</div>",
                    "</div>",
                ]
            )
        )
    rows.append("</div></div>")
    return "\n".join(rows)


def build_kpi_cards(
    params: ProtocolParameters,
    stakes: Sequence[StakeRecord],
    snapshot: market_data.MarketSnapshot | None,
    balance: int,
) -> list[dict[str, str]]:
    decimals = params.token_decimals
    supply = analytics.supply_summary(params)
    value = market_data.wallet_value(balance, snapshot, decimals=decimals)
    market_cap = market_data.market_cap_estimate(params.total_supply, snapshot, decimals=decimals)
    price_quote = snapshot.price_in_quote_currency if snapshot else None
    price_native = snapshot.price_in_native_currency if snapshot else None
    circulating = fmt.units_to_float(params.total_supply, decimals)
    return [
        {
            "label": "Price (USD)",
            "value": f"${fmt.format_number(price_quote, decimals=6)}" if price_quote else fmt.MISSING,
            "subtext": (
                f"Liquidity ${fmt.format_compact(snapshot.liquidity)}"
                if snapshot and snapshot.liquidity
                else ""
            ),
        },
        {
            "label": "Price (native)",
            "value": fmt.format_number(price_native, decimals=6) if price_native else fmt.MISSING,
            "subtext": (
                f"FDV ${fmt.format_compact(snapshot.fully_diluted_valuation)}"
                if snapshot and snapshot.fully_diluted_valuation
                else ""
            ),
        },
        {
            "label": "Wallet Value",
            "value": (
                f"${fmt.format_compact(value['value_quote'])}"
                if value["value_quote"] is not None
                else fmt.MISSING
            ),
            "subtext": (
                f"{fmt.format_compact(value['value_native'])} native"
                if value["value_native"] is not None
                else ""
            ),
        },
        {
            "label": "Market Cap (est.)",
            "value": f"${fmt.format_compact(market_cap)}" if market_cap is not None else fmt.MISSING,
            "subtext": f"Circ: {fmt.format_compact(circulating)}",
        },
        {
            "label": "Staked (locked)",
            "value": fmt.format_compact(fmt.units_to_float(int(supply["staked_amount"]), decimals)),
            "subtext": f"{fmt.format_pct(float(supply['staked_percent']))} of initial",
        },
        {
            "label": "APR",
            "value": fmt.format_pct(params.apr_percent) if params.basis_denominator > 0 else fmt.MISSING,
            "subtext": f"Share rate: {fmt.units_to_float(params.share_rate, decimals):.6f}",
        },
        {
            "label": "Wallet Shares",
            "value": fmt.format_compact(
                fmt.units_to_float(analytics.wallet_shares(stakes), decimals), decimals=3
            ),
            "subtext": (
                f"Contract: {fmt.format_compact(fmt.units_to_float(params.total_shares, decimals), decimals=3)}"
            ),
        },
    ]


def _tokens(amounts: pd.Series, decimals: int) -> list[float]:
    return [fmt.units_to_float(int(amount), decimals) for amount in amounts]


def render_supply_donut(params: ProtocolParameters) -> str:
    split = analytics.supply_split(params)
    fig = go.Figure(
        go.Pie(
            labels=split["slice"],
            values=_tokens(split["amount"], params.token_decimals),
            hole=0.55,
            marker={"colors": DONUT_COLORS},
        )
    )
    fig.update_layout(title="Locked vs Circulating")
    return _section("Supply Split", [_figure_html(fig)])


def render_maturity_histogram(stakes: Sequence[StakeRecord], decimals: int) -> str:
    histogram = analytics.maturity_histogram(stakes)
    fig = go.Figure()
    fig.add_bar(
        x=histogram["bucket"],
        y=_tokens(histogram["amount"], decimals),
        customdata=histogram["count"],
        marker_color="#70e1ff",
        hovertemplate="<b>%{x}</b><br>Amount: %{y:,.2f}<br>Stakes: %{customdata}<extra></extra>",
    )
    fig.update_layout(title="Principal by Lock Duration", xaxis_title="Lock days", yaxis_title="bNote")
    return _section("Maturity Histogram", [_figure_html(fig)])


def render_unlock_calendar(stakes: Sequence[StakeRecord], now: int, decimals: int) -> str:
    calendar = analytics.unlock_calendar(stakes, now)
    overflow = analytics.unlock_calendar_overflow(stakes, now)
    fig = go.Figure()
    fig.add_bar(
        x=calendar["date"],
        y=_tokens(calendar["amount"], decimals),
        marker_color="#22c55e",
        hovertemplate="%{x|%Y-%m-%d}<br>Unlocking: %{y:,.2f}<extra></extra>",
    )
    fig.update_layout(title="Unlocks, next 90 days", xaxis_title="Date", yaxis_title="bNote")
    note = (
        f"Already unlocked: {overflow['before_window']['count']} stake(s); "
        f"unlocking after day 90: {overflow['after_window']['count']} stake(s), "
        f"{fmt.format_compact(fmt.units_to_float(overflow['after_window']['amount'], decimals))} bNote."
    )
    return _section("Unlock Calendar", [_figure_html(fig)], note=note)


def render_ladder(stakes: Sequence[StakeRecord]) -> str:
    ladder = analytics.stake_ladder(stakes)
    if ladder.empty:
        return _section("Stake Ladder", ["<p>No stakes yet.</p>"])
    fig = go.Figure()
    fig.add_bar(
        y=[f"#{index}" for index in ladder["index"]],
        x=ladder["duration"],
        base=ladder["offset"],
        customdata=ladder["offset"],
        orientation="h",
        marker_color="#a78bfa",
        hovertemplate="%{y}: day %{customdata} for %{x} days<extra></extra>",
    )
    fig.update_layout(title="Stake Timeline", xaxis_title="Days from first stake")
    return _section("Stake Ladder", [_figure_html(fig)])


def render_penalty_curve(lock_days: int, params: ProtocolParameters) -> str:
    try:
        curve = penalty.penalty_curve(lock_days, params)
    except ConfigurationError as exc:
        LOGGER.warning("Penalty curve unavailable: %s", exc)
        return _section("Penalty Curve", ["<p>Penalty curve unavailable.</p>"])
    fig = go.Figure()
    fig.add_scatter(
        x=curve["offset"],
        y=curve["penalty_percent"],
        mode="lines",
        line={"color": "#ff5f7a"},
        hovertemplate="Days remaining: %{x}<br>Penalty: %{y:.2f}%<extra></extra>",
    )
    fig.update_layout(
        title=f"Penalty vs days remaining ({lock_days}-day stake)",
        xaxis_title="Days remaining (negative = late)",
        yaxis_title="Penalty (% of principal)",
    )
    note = (
        f"Early penalties scale linearly with remaining days (max {fmt.format_pct(params.early_max_percent)}). "
        f"Late penalties grow after unlock (max {fmt.format_pct(params.late_max_percent)}). "
        "Ending on the unlock day avoids any penalty."
    )
    return _section("Penalty Curve", [_figure_html(fig)], note=note)


def render_session_trends(series_by_metric: Mapping[str, Sequence[SessionSamplePoint]]) -> str:
    fig = go.Figure()
    for metric, series in series_by_metric.items():
        if not series:
            continue
        frame = session_series.series_frame(series)
        fig.add_scatter(x=frame["ts"], y=frame["value"], mode="lines+markers", name=SERIES_LABELS.get(metric, metric))
    if not fig.data:
        return _section("Session Trends", ["<p>No samples recorded yet.</p>"])
    fig.update_layout(title="Recorded samples")
    return _section("Session Trends", [_figure_html(fig)])


def render_stakes_table(stakes: Sequence[StakeRecord], params: ProtocolParameters, now: int) -> str:
    if not stakes:
        return _section("Your Stakes", ["<p>No stakes yet.</p>"])
    decimals = params.token_decimals
    table = analytics.stake_rows_frame(stakes, params, now)
    table["principal_amount"] = [fmt.format_compact(v) for v in _tokens(table["principal_amount"], decimals)]
    table["shares"] = [fmt.format_compact(v, decimals=3) for v in _tokens(table["shares"], decimals)]
    table["start_timestamp"] = table["start_timestamp"].map(fmt.iso_utc)
    table["unlock_timestamp"] = table["unlock_timestamp"].map(fmt.iso_utc)
    table["estimated_penalty_percent"] = table["estimated_penalty_percent"].map(
        lambda v: fmt.format_pct(v) if pd.notna(v) else fmt.MISSING
    )
    table = table.rename(
        columns={
            "index": "#",
            "principal_amount": "Amount",
            "shares": "Shares",
            "lock_days": "Lock (days)",
            "start_timestamp": "Start",
            "unlock_timestamp": "Unlock",
            "status": "Status",
            "days_remaining": "Days remaining",
            "estimated_penalty_percent": "Est. penalty",
        }
    )
    note = (
        "Early = before the full lock period elapses; Late = after unlock. "
        "Guidance here is client-side; chain timing rules."
    )
    return _section("Your Stakes", [table.to_html(index=False, na_rep=fmt.MISSING)], note=note)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--snapshot",
        type=Path,
        default=cfg.SNAPSHOT_PATH,
        help="Ledger snapshot JSON (default: $BNOTE_SNAPSHOT_PATH or data/snapshot.json).",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=cfg.OUT_DIR / "dashboard.html",
        help="Output HTML path (default: out/dashboard.html).",
    )
    parser.add_argument(
        "--curve-days",
        type=int,
        default=365,
        help="Lock period used for the penalty curve (default: 365).",
    )
    parser.add_argument("--now", type=int, help="Override the current unix time (seconds).")
    parser.add_argument("--skip-market-data", action="store_true", help="Do not query Dexscreener.")
    parser.add_argument("--skip-session-samples", action="store_true", help="Do not record trend samples.")
    parser.add_argument("--force-refresh", action="store_true", help="Bypass the HTTP cache.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    now = args.now if args.now is not None else int(time.time())

    client = ledger.SnapshotLedgerClient.from_path(args.snapshot)
    resolved, stakes = ledger.load_snapshot(client, client.owner)
    params = resolved.params
    if resolved.assumed:
        LOGGER.warning("Using assumed defaults for: %s", ", ".join(resolved.assumed))

    snapshot = None
    if not args.skip_market_data:
        snapshot = market_data.load_market_snapshot(force_refresh=args.force_refresh)

    store = session_series.SessionSeriesStore()
    series_by_metric: dict[str, list[SessionSamplePoint]] = {}
    if args.skip_session_samples:
        series_by_metric = {metric: store.load(metric) for metric in SERIES_LABELS}
    else:
        now_ms = session_series.to_millis(now)
        series_by_metric["total_shares"] = store.record(
            "total_shares", fmt.units_to_float(params.total_shares, params.token_decimals), now_ms
        )
        if snapshot is not None and snapshot.price_in_native_currency is not None:
            series_by_metric["price_native"] = store.record(
                "price_native", snapshot.price_in_native_currency, now_ms
            )
        else:
            series_by_metric["price_native"] = store.load("price_native")

    sections = [
        render_kpi_cards(build_kpi_cards(params, stakes, snapshot, client.balance_of(client.owner))),
        render_stakes_table(stakes, params, now),
        render_supply_donut(params),
        render_maturity_histogram(stakes, params.token_decimals),
        render_unlock_calendar(stakes, now, params.token_decimals),
        render_ladder(stakes),
        render_penalty_curve(args.curve_days, params),
        render_session_trends(series_by_metric),
    ]
    _write_html(
        args.out,
        "bNote Staking Dashboard",
        sections,
        last_updated=datetime.fromtimestamp(now, tz=UTC),
    )


if __name__ == "__main__":
    main()
