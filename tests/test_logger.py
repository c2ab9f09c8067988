import csv
import io
import json

import pytest

from market_explorer import config
from market_explorer import logger as interaction_log


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATA_DIR", tmp_path)
    return tmp_path


@pytest.mark.parametrize(
    "param, raw, expected",
    [
        ("demand_intercept", 21.4, 21.0),
        ("demand_intercept", 99, 30.0),
        ("demand_slope", 0.1, 0.5),
        ("demand_slope", "1.26", 1.3),
        ("demand_shift", -0.3, -0.5),
        ("tax", None, 2.0),
        ("tax", "abc", 2.0),
        ("tax", float("nan"), 2.0),
        ("ceiling_level", 7.76, 8.0),
    ],
)
def test_normalize_param_value(param, raw, expected) -> None:
    assert interaction_log.normalize_param_value(param, raw) == expected


def test_normalize_toggle() -> None:
    assert interaction_log.normalize_toggle(["on"]) is True
    assert interaction_log.normalize_toggle([]) is False
    assert interaction_log.normalize_toggle(None) is False
    assert interaction_log.normalize_toggle(True) is True


def test_normalize_params_fills_defaults() -> None:
    params = interaction_log.normalize_params({"demand_slope": 2.04, "tax_enabled": ["on"]})
    assert params["demand_slope"] == 2.0
    assert params["tax_enabled"] is True
    assert params["demand_intercept"] == config.DEFAULT_PARAMS["demand_intercept"]
    assert params["animate"] is False
    assert set(params) == set(config.DEFAULT_PARAMS) | set(config.DEFAULT_TOGGLES)


def test_normalized_equal() -> None:
    assert interaction_log.normalized_equal("demand_slope", 1.0, 1.02)
    assert not interaction_log.normalized_equal("demand_slope", 1.0, 1.1)
    assert interaction_log.normalized_equal("tax_enabled", ["on"], True)


def test_records_are_sequenced_per_session() -> None:
    first = interaction_log.build_log_record("seq-test", event="reset")
    second = interaction_log.build_log_record(
        "seq-test",
        event="param_change",
        params={"tax": 3.0, "tax_enabled": True, "ignored": 1},
        param_name="tax",
        old_value=2.0,
        new_value=3.0,
        source="slider",
    )
    assert second["seq"] == first["seq"] + 1
    assert second["schema_version"] == config.SCHEMA_VERSION
    assert second["model_type"] == config.MODEL_TYPE
    assert second["tax"] == 3.0
    assert "ignored" not in second
    assert second["t_server_iso"].endswith("Z")


def test_write_and_read_session_log(data_dir) -> None:
    record = interaction_log.build_log_record("abc", event="consent", extras={"consent_status": "accepted"})
    assert interaction_log.write_log_record("abc", record)
    path = interaction_log.session_log_path("abc")
    assert path == data_dir / "session_abc.jsonl"
    with path.open("a", encoding="utf-8") as fh:
        fh.write("not json\n\n")
    records = interaction_log.read_session_log_records("abc")
    assert len(records) == 1
    assert records[0]["consent_status"] == "accepted"
    assert json.loads(path.read_text(encoding="utf-8").splitlines()[0])["event"] == "consent"


def test_missing_log_reads_empty(data_dir) -> None:
    assert interaction_log.read_session_log_records("nobody") == []


def test_write_failure_is_reported_not_raised(tmp_path, monkeypatch, caplog) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("file, not a directory", encoding="utf-8")
    monkeypatch.setattr(config, "DATA_DIR", blocker)
    with caplog.at_level("WARNING", logger="market_explorer.logger"):
        assert interaction_log.write_log_record("abc", {"event": "reset"}) is False
    assert "Could not write interaction log" in caplog.text


def test_unknown_session_id_is_sanitised() -> None:
    assert interaction_log.safe_session_id("") == "unknown"
    assert interaction_log.safe_session_id(None) == "unknown"
    assert interaction_log.session_log_path(None).name == "session_unknown.jsonl"


def test_csv_export_uses_schema_columns() -> None:
    records = [
        {"event": "param_change", "param_name": "tax", "t_client_ms": 1234.0, "extra": "dropped"},
        {"event": "export", "export_type": "csv"},
    ]
    content = interaction_log.build_csv_content(records)
    rows = list(csv.DictReader(io.StringIO(content)))
    assert list(rows[0]) == config.SCHEMA_COLUMNS
    assert rows[0]["t_client_ms"] == "1234"
    assert rows[1]["export_type"] == "csv"
    assert interaction_log.build_csv_content([]) is None


def test_preview_messages() -> None:
    change = {"event": "param_change", "param_name": "tax", "old_value": 2.0, "new_value": 2.5, "source": "slider"}
    assert interaction_log.format_preview_message(change) == "param_change: tax 2 → 2.5 (slider)"
    toggle = {"event": "toggle_change", "param_name": "tax_enabled", "old_value": False, "new_value": True, "source": "toggle"}
    assert interaction_log.format_preview_message(toggle) == "toggle_change: tax_enabled off → on (toggle)"
    assert interaction_log.format_preview_message({"event": "scenario_apply", "scenario": "tax"}) == "scenario_apply: tax"
    assert interaction_log.format_preview_message({"event": "theme_toggle", "theme": "dark"}) == "theme_toggle: dark"


def test_preview_log_is_bounded() -> None:
    entries = []
    for i in range(8):
        entries = interaction_log.append_preview_log(entries, f"m{i}")
    assert entries == ["m3", "m4", "m5", "m6", "m7"]
    assert interaction_log.append_preview_log(None, "x") == ["x"]
