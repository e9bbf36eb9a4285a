from __future__ import annotations

import csv
import io
from dataclasses import replace

import pandas as pd
import pytest

from bnote_labs import analytics
from bnote_labs.models import ProtocolParameters, StakeRecord

DAY = 86_400
TODAY = 19_700
NOW = TODAY * DAY + 3_600
TOKEN = 10**18


def _params(**overrides) -> ProtocolParameters:
    base = ProtocolParameters(
        basis_denominator=10_000,
        min_lock_days=1,
        max_lock_days=5_555,
        apr_basis_points=369,
        share_rate=10**18,
        total_shares=5_000 * TOKEN,
        total_supply=750_000 * TOKEN,
        initial_supply=1_000_000 * TOKEN,
        lpb_bps_per_year=2_000,
        lpb_max_years=10,
        bpb_max_bps=1_000,
        bpb_cap_amount=210_000 * TOKEN,
        early_penalty_bps=2_500,
        late_penalty_bps=2_500,
    )
    return replace(base, **overrides)


def _stakes_fixture() -> list[StakeRecord]:
    # Unlock days relative to TODAY: -5, +0, +10, +90, +91, +400
    return [
        StakeRecord(0, 100 * TOKEN, 5, (TODAY - 10) * DAY, 100 * TOKEN),
        StakeRecord(1, 200 * TOKEN, 30, (TODAY - 30) * DAY, 210 * TOKEN),
        StakeRecord(2, 300 * TOKEN, 60, (TODAY - 50) * DAY, 330 * TOKEN),
        StakeRecord(3, 400 * TOKEN, 90, TODAY * DAY, 450 * TOKEN),
        StakeRecord(4, 500 * TOKEN, 365, (TODAY - 274) * DAY, 700 * TOKEN),
        StakeRecord(5, 600 * TOKEN, 400, TODAY * DAY, 900 * TOKEN),
    ]


def test_supply_split():
    split = analytics.supply_split(_params())

    assert split["slice"].tolist() == ["Locked", "Circulating"]
    assert split["amount"].tolist() == [250_000 * TOKEN, 750_000 * TOKEN]
    summary = analytics.supply_summary(_params())
    assert summary["staked_percent"] == pytest.approx(25.0)


def test_supply_split_handles_zero_initial_supply():
    summary = analytics.supply_summary(_params(initial_supply=0, total_supply=0))
    assert summary["staked_amount"] == 0
    assert summary["staked_percent"] == 0.0


def test_maturity_histogram_preserves_totals():
    stakes = _stakes_fixture()
    histogram = analytics.maturity_histogram(stakes)

    assert histogram["bucket"].tolist() == ["1-7d", "8-30d", "31-90d", "91-365d", "366d+"]
    assert histogram["count"].tolist() == [1, 1, 2, 1, 1]
    assert sum(histogram["amount"]) == sum(s.principal_amount for s in stakes)
    assert histogram.loc[histogram["bucket"] == "31-90d", "amount"].iloc[0] == 700 * TOKEN


def test_maturity_histogram_empty_is_zero_filled():
    histogram = analytics.maturity_histogram([])
    assert len(histogram) == 5
    assert sum(histogram["amount"]) == 0
    assert histogram["count"].sum() == 0


def test_maturity_histogram_skips_invalid_lock_days(caplog):
    stakes = [StakeRecord(9, TOKEN, 0, TODAY * DAY, TOKEN)]
    histogram = analytics.maturity_histogram(stakes)
    assert sum(histogram["amount"]) == 0
    assert "outside every maturity bucket" in caplog.text


def test_unlock_calendar_window():
    calendar = analytics.unlock_calendar(_stakes_fixture(), NOW)

    assert len(calendar) == 91
    assert calendar["day"].iloc[0] == TODAY
    assert calendar["day"].iloc[-1] == TODAY + 90
    by_day = dict(zip(calendar["day"], calendar["amount"]))
    assert by_day[TODAY] == 200 * TOKEN
    assert by_day[TODAY + 10] == 300 * TOKEN
    assert by_day[TODAY + 90] == 400 * TOKEN
    assert calendar["count"].sum() == 3


def test_unlock_calendar_empty_still_has_91_days():
    calendar = analytics.unlock_calendar([], NOW)
    assert len(calendar) == 91
    assert calendar["count"].sum() == 0


def test_unlock_calendar_overflow():
    overflow = analytics.unlock_calendar_overflow(_stakes_fixture(), NOW)

    assert overflow["before_window"] == {"amount": 100 * TOKEN, "count": 1}
    assert overflow["after_window"] == {"amount": 1_100 * TOKEN, "count": 2}


def test_stake_ladder_offsets_from_earliest_start():
    ladder = analytics.stake_ladder(_stakes_fixture())

    assert ladder["offset"].min() == 0
    assert ladder.loc[ladder["index"] == 4, "offset"].iloc[0] == 0
    assert ladder.loc[ladder["index"] == 5, "offset"].iloc[0] == 274
    assert ladder["duration"].tolist() == [5, 30, 60, 90, 365, 400]


def test_stake_ladder_empty():
    ladder = analytics.stake_ladder([])
    assert ladder.empty
    assert list(ladder.columns) == ["index", "offset", "duration"]


def _csv_text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def test_stakes_csv_matches_table_projection():
    # Last stake cannot be assessed and leaves its status columns blank
    stakes = [*_stakes_fixture(), StakeRecord(6, TOKEN, 0, TODAY * DAY, TOKEN)]
    params = _params()

    table = analytics.stake_rows_frame(stakes, params, NOW)
    rows = list(csv.DictReader(io.StringIO(analytics.stakes_csv(stakes, params, NOW))))

    assert len(rows) == len(table) == len(stakes)
    for row, (_, expected) in zip(rows, table.iterrows()):
        assert row["index"] == str(expected["index"])
        assert row["status"] == _csv_text(expected["status"])
        assert row["days_remaining"] == _csv_text(expected["days_remaining"])
        assert row["estimated_penalty_percent"] == _csv_text(expected["estimated_penalty_percent"])
    assert table["days_remaining"].iloc[0] == -5
    assert str(table["days_remaining"].iloc[0]) == "-5"
    assert table["days_remaining"].iloc[-1] is None


def test_stakes_csv_format():
    stake = StakeRecord(7, 1_000 * TOKEN, 100, 1_700_000_000, TOKEN)
    text = analytics.stakes_csv([stake], _params(), 1_700_000_000 + 40 * DAY)
    header, line = text.splitlines()

    assert header == ",".join(f'"{name}"' for name in analytics.CSV_COLUMNS)
    assert line.startswith('"7","1000.0","100","1700000000","2023-11-14T22:13:20.000Z"')
    assert line.endswith('"early","60","15.00"')
    assert text.endswith("\n")


def test_stakes_csv_empty_has_header_only():
    text = analytics.stakes_csv([], _params(), NOW)
    assert text.splitlines() == [",".join(f'"{name}"' for name in analytics.CSV_COLUMNS)]


def test_stake_rows_blank_status_for_invalid_lock_days():
    stake = StakeRecord(3, TOKEN, 0, TODAY * DAY, TOKEN)
    (row,) = analytics.project_stake_rows([stake], _params(), NOW)
    assert row.status is None
    assert row.days_remaining is None
    assert row.estimated_penalty_percent is None


def test_wallet_shares():
    assert analytics.wallet_shares(_stakes_fixture()) == 2_690 * TOKEN
    assert analytics.wallet_shares([]) == 0
