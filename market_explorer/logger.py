from __future__ import annotations

import csv
import io
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config

_log = logging.getLogger(__name__)

_SESSION_LOG_STATE: Dict[str, Dict[str, Any]] = {}


def normalize_param_value(param: str, value: Any) -> float:
    cfg = config.PARAM_BOUNDS.get(param, {"min": -10.0, "max": 10.0, "step": 0.1})
    try:
        num = float(value)
    except (TypeError, ValueError):
        num = float(config.DEFAULT_PARAMS.get(param, 0.0))
    if num != num:
        num = float(config.DEFAULT_PARAMS.get(param, 0.0))
    num = max(cfg["min"], min(cfg["max"], num))
    step = cfg.get("step", 0.1) or 0.1
    quantized = round(num / step) * step
    if quantized == -0.0:
        quantized = 0.0
    return float(f"{quantized:.12g}")


def normalize_toggle(value: Any) -> bool:
    if isinstance(value, (list, tuple, set)):
        return "on" in value or True in value
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return bool(value)


def normalize_params(raw: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    raw = raw or {}
    params: Dict[str, Any] = {}
    for key, default_val in config.DEFAULT_PARAMS.items():
        params[key] = normalize_param_value(key, raw.get(key, default_val))
    for key, default_flag in config.DEFAULT_TOGGLES.items():
        params[key] = normalize_toggle(raw.get(key, default_flag))
    return params


def normalized_equal(param: str, old_value: Any, new_value: Any) -> bool:
    if param in config.DEFAULT_TOGGLES:
        return normalize_toggle(old_value) == normalize_toggle(new_value)
    old_norm = normalize_param_value(param, old_value)
    new_norm = normalize_param_value(param, new_value)
    return abs(old_norm - new_norm) < 1e-9


def safe_session_id(session_id: Optional[str]) -> str:
    return session_id if isinstance(session_id, str) and session_id else "unknown"


def next_seq_and_elapsed(session_id: str, t_client_ms: Optional[int] = None) -> Dict[str, Any]:
    state = _SESSION_LOG_STATE.setdefault(
        session_id, {"seq": 0, "last_t_client": None, "last_t_server_ms": None}
    )
    now_ms = int(time.time() * 1000)
    seq = state["seq"] + 1
    state["seq"] = seq
    elapsed = 0
    if t_client_ms is not None and state["last_t_client"] is not None:
        elapsed = max(int(t_client_ms - state["last_t_client"]), 0)
    elif state["last_t_server_ms"] is not None:
        elapsed = max(now_ms - state["last_t_server_ms"], 0)
    state["last_t_client"] = t_client_ms
    state["last_t_server_ms"] = now_ms
    ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return {"seq": seq, "elapsed_time_ms": elapsed, "t_server_iso": ts, "now_ms": now_ms}


def build_log_record(
    session_id: str,
    *,
    event: str,
    params: Optional[Dict[str, Any]] = None,
    param_name: Optional[str] = None,
    old_value: Optional[Any] = None,
    new_value: Optional[Any] = None,
    source: str = "system",
    t_client_ms: Optional[int] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    safe_id = safe_session_id(session_id)
    timing = next_seq_and_elapsed(safe_id, t_client_ms)
    record: Dict[str, Any] = {
        "schema_version": config.SCHEMA_VERSION,
        "session_id": safe_id,
        "t_client_ms": t_client_ms,
        "t_server_iso": timing["t_server_iso"],
        "seq": timing["seq"],
        "event": event,
        "model_type": config.MODEL_TYPE,
        "param_name": param_name,
        "old_value": old_value,
        "new_value": new_value,
        "source": source,
        "elapsed_time_ms": timing["elapsed_time_ms"],
        "mode": config.APP_MODE,
        "interaction_phase": config.DEFAULT_INTERACTION_PHASE,
    }
    if params:
        for key in (*config.DEFAULT_PARAMS, *config.DEFAULT_TOGGLES):
            if key in params:
                record[key] = params[key]
    if extras:
        record.update(extras)
    return record


def session_log_path(session_id: str) -> Path:
    return config.DATA_DIR / f"session_{safe_session_id(session_id)}.jsonl"


def append_jsonl(path: Path, record: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")
        fh.flush()


def write_log_record(session_id: str, record: Dict[str, Any]) -> bool:
    try:
        append_jsonl(session_log_path(session_id), record)
    except OSError as exc:
        _log.warning("Could not write interaction log for %s: %s", session_id, exc)
        return False
    return True


def read_session_log_records(session_id: str) -> List[Dict[str, Any]]:
    path = session_log_path(session_id)
    if not path.exists():
        return []
    records: List[Dict[str, Any]] = []
    try:
        with path.open("r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    _log.debug("Skipping corrupt log line in %s", path)
                    continue
    except OSError as exc:
        _log.warning("Could not read interaction log %s: %s", path, exc)
    return records


def flatten_record_for_csv(record: Dict[str, Any]) -> Dict[str, Any]:
    flat = dict.fromkeys(config.SCHEMA_COLUMNS, None)
    for key, value in record.items():
        if key in flat:
            flat[key] = value
    return flat


def build_csv_content(records: List[Dict[str, Any]]) -> Optional[str]:
    if not records:
        return None
    rows = [flatten_record_for_csv(rec) for rec in records]
    columns = list(config.SCHEMA_COLUMNS)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        if row.get("t_client_ms") is not None:
            try:
                row["t_client_ms"] = str(int(row["t_client_ms"]))
            except (TypeError, ValueError):
                pass
        writer.writerow({col: row.get(col) for col in columns})
    return buffer.getvalue()


def format_value_preview(value: Optional[Any]) -> str:
    if value is None:
        return "—"
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, float):
        text = f"{value:.3f}".rstrip("0").rstrip(".")
        return text if text else "0"
    return str(value)


def format_preview_message(record: Dict[str, Any]) -> str:
    event = record.get("event", "event")
    if event in {"param_change", "toggle_change"}:
        param = record.get("param_name", "?")
        old_v = format_value_preview(record.get("old_value"))
        new_v = format_value_preview(record.get("new_value"))
        source = record.get("source", "source")
        return f"{event}: {param} {old_v} → {new_v} ({source})"
    if event == "scenario_apply":
        return f"scenario_apply: {record.get('scenario', '?')}"
    if event == "reset":
        return "reset: parameters restored"
    if event == "theme_toggle":
        return f"theme_toggle: {record.get('theme', '?')}"
    if event == "consent":
        return f"consent: {record.get('consent_status', 'status')}"
    if event == "export":
        return f"export: {record.get('export_type', 'unknown')}"
    return event


def append_preview_log(log_data: Any, message: str) -> List[str]:
    capacity = config.PREVIEW_LOG_CAPACITY
    entries = list(log_data[-(capacity - 1):]) if isinstance(log_data, list) else []
    entries.append(message)
    return entries[-capacity:]
