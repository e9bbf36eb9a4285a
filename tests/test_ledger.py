from __future__ import annotations

import json

import pytest

from bnote_labs import ledger
from bnote_labs import protocol_constants as const
from bnote_labs.errors import ConfigurationError, UpstreamUnavailable

TOKEN = 10**18


def _constants_fixture() -> dict[str, object]:
    return {
        "BASIS": 10_000,
        "MIN_STAKE_DAYS": 1,
        "MAX_STAKE_DAYS": 3_690,
        "LPB_PER_YEAR_BPS": 2_000,
        "LPB_MAX_YEARS": 10,
        "BPB_MAX_BPS": 1_000,
        "BPB_CAP": str(210_000 * TOKEN),
        "EARLY_PENALTY_BASIS": 2_500,
        "LATE_PENALTY_BASIS": 2_500,
        "totalSupply": str(750_000 * TOKEN),
        "INITIAL_SUPPLY": str(1_000_000 * TOKEN),
        "totalShares": str(5_000 * TOKEN),
        "metrics": [369, str(TOKEN)],
        "decimals": 18,
    }


def _snapshot_fixture() -> dict[str, object]:
    return {
        "owner": "0xAbC",
        "balance": str(42 * TOKEN),
        "constants": _constants_fixture(),
        "stakes": [
            {"amount": str(TOKEN), "lockDays": 30, "startTimestamp": 1_700_000_000, "shares": "10"},
            {
                "index": 7,
                "principal_amount": 2 * TOKEN,
                "lock_days": 365,
                "start_timestamp": 1_700_000_000,
                "shares": 20,
                "auto_renew": True,
            },
        ],
    }


def test_all_getters_present_is_fully_verified():
    getters = {name: (lambda v=value: v) for name, value in _constants_fixture().items()}
    resolved = ledger.ConfigurationSource(getters).resolve()

    assert resolved.fully_verified
    assert resolved.params.max_lock_days == 3_690
    assert resolved.params.bpb_cap_amount == 210_000 * TOKEN
    assert resolved.params.apr_basis_points == 369
    assert resolved.params.share_rate == TOKEN


def test_absent_constant_getter_uses_tagged_default(caplog):
    constants = _constants_fixture()
    del constants["MAX_STAKE_DAYS"]
    del constants["decimals"]
    getters = {name: (lambda v=value: v) for name, value in constants.items()}

    resolved = ledger.ConfigurationSource(getters).resolve()

    assert resolved.params.max_lock_days == const.DEFAULT_MAX_STAKE_DAYS
    assert resolved.provenance["MAX_STAKE_DAYS"] == ledger.ASSUMED_DEFAULT
    assert resolved.provenance["BASIS"] == ledger.VERIFIED
    assert resolved.assumed == ["MAX_STAKE_DAYS", "decimals"]
    assert "MAX_STAKE_DAYS" in caplog.text


def test_getter_set_to_none_counts_as_absent():
    getters = {name: (lambda v=value: v) for name, value in _constants_fixture().items()}
    getters["BPB_CAP"] = None
    resolved = ledger.ConfigurationSource(getters).resolve()
    assert resolved.provenance["BPB_CAP"] == ledger.ASSUMED_DEFAULT


@pytest.mark.parametrize("missing", ["metrics", "totalShares"])
def test_missing_required_getter_raises(missing):
    getters = {name: (lambda v=value: v) for name, value in _constants_fixture().items()}
    del getters[missing]
    with pytest.raises(ConfigurationError):
        ledger.ConfigurationSource(getters).resolve()


def test_failing_getter_is_upstream_unavailable():
    def _boom():
        raise TimeoutError("rpc timeout")

    getters = {name: (lambda v=value: v) for name, value in _constants_fixture().items()}
    getters["BASIS"] = _boom
    with pytest.raises(UpstreamUnavailable, match="BASIS"):
        ledger.ConfigurationSource(getters).resolve()


def test_snapshot_client_loads_params_and_stakes(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(_snapshot_fixture()), encoding="utf-8")

    client = ledger.SnapshotLedgerClient.from_path(path)
    resolved, stakes = ledger.load_snapshot(client, "0xabc")

    assert resolved.fully_verified
    assert client.balance_of(client.owner) == 42 * TOKEN
    assert [stake.index for stake in stakes] == [0, 7]
    assert stakes[0].principal_amount == TOKEN
    assert stakes[0].shares == 10
    assert stakes[1].auto_renew is True


def test_snapshot_client_other_owner_has_no_stakes():
    client = ledger.SnapshotLedgerClient(_snapshot_fixture())
    assert client.stakes_of("0xdef") == []


def test_snapshot_client_is_read_only():
    client = ledger.SnapshotLedgerClient(_snapshot_fixture())
    with pytest.raises(UpstreamUnavailable):
        client.open_stake(TOKEN, 30, False)
    with pytest.raises(UpstreamUnavailable):
        client.close_stake(0)


def test_missing_snapshot_file(tmp_path):
    with pytest.raises(UpstreamUnavailable):
        ledger.SnapshotLedgerClient.from_path(tmp_path / "missing.json")


@pytest.mark.parametrize(
    "flag,expected",
    [(True, True), (False, False), ("false", False), ("TRUE", True), ("0", False), (1, True)],
)
def test_snapshot_auto_renew_flag_parsing(flag, expected):
    payload = _snapshot_fixture()
    payload["stakes"] = [
        {"amount": "1", "lockDays": 30, "startTimestamp": 1_700_000_000, "autoRenew": flag}
    ]
    (stake,) = ledger.SnapshotLedgerClient(payload).stakes_of()
    assert stake.auto_renew is expected


def test_snapshot_auto_renew_rejects_unknown_text():
    payload = _snapshot_fixture()
    payload["stakes"] = [
        {"amount": "1", "lockDays": 30, "startTimestamp": 1_700_000_000, "autoRenew": "maybe"}
    ]
    with pytest.raises(ValueError):
        ledger.SnapshotLedgerClient(payload).stakes_of()


@pytest.mark.parametrize("metrics", [369, [369], [369, 1, 2], ["x", "1"]])
def test_malformed_metrics_is_configuration_error(metrics):
    getters = {name: (lambda v=value: v) for name, value in _constants_fixture().items()}
    getters["metrics"] = lambda: metrics
    with pytest.raises(ConfigurationError, match="metrics"):
        ledger.ConfigurationSource(getters).resolve()
