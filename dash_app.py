"""Dash front end for the supply and demand explorer."""

from __future__ import annotations

import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import dash
from dash import Input, Output, State, dcc, html

from market_explorer import config
from market_explorer import logger as interaction_log
from market_explorer import verbal_descriptions as verbal
from market_explorer.graph_engine import build_figure
from market_explorer.logging_config import setup_logging
from market_explorer.market_model import MarketParams, evaluate_market
from market_explorer.scenarios import apply_scenario, default_params, scenario_options

log = setup_logging()

_NUMERIC_PARAMS: List[str] = list(config.DEFAULT_PARAMS)
_TOGGLE_PARAMS: List[str] = list(config.DEFAULT_TOGGLES)
_CURVE_GROUPS = (
    ("Demand", ("demand_intercept", "demand_slope", "demand_shift")),
    ("Supply", ("supply_intercept", "supply_slope", "supply_shift")),
)
_POLICY_GROUPS = (
    ("Price controls", (("ceiling_enabled", "ceiling_level"), ("floor_enabled", "floor_level"))),
    ("Tax & subsidy", (("tax_enabled", "tax"), ("subsidy_enabled", "subsidy"))),
)
_THROTTLE_STATE: Dict[str, Dict[str, Any]] = {}
_SESSION_PARAM_CACHE: Dict[str, Dict[str, Any]] = {}

_PANEL_STYLE: Dict[str, Any] = {
    "padding": "12px 16px",
    "borderRadius": "8px",
    "border": "1px solid #d0d0d0",
    "marginBottom": "16px",
}


def _slider_id(name: str) -> str:
    return f"slider-{name.replace('_', '-')}"


def _toggle_id(name: str) -> str:
    return f"toggle-{name.replace('_', '-')}"


def _toggle_value(enabled: bool) -> List[str]:
    return ["on"] if enabled else []


def _get_session_id(session_data: Optional[Dict[str, Any]]) -> str:
    if isinstance(session_data, dict):
        raw = session_data.get("session_id")
        if isinstance(raw, str) and raw:
            return raw
    return "unknown"


def _is_logging_allowed(consent_data: Optional[Dict[str, Any]]) -> bool:
    return bool(consent_data and consent_data.get("granted"))


def _resolve_uirevision_value(ui_store: Optional[Dict[str, Any]]) -> str:
    nonce = config.DEFAULT_UI_NONCE
    if isinstance(ui_store, dict):
        raw = ui_store.get("uirevision_nonce")
        if raw is not None:
            nonce = str(raw)
    return f"{config.UI_BASE_TOKEN}{nonce}"


def _bump_uirevision_store(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    base = dict(data) if isinstance(data, dict) else {}
    try:
        nonce_int = int(base.get("uirevision_nonce", config.DEFAULT_UI_NONCE))
    except (TypeError, ValueError):
        nonce_int = int(config.DEFAULT_UI_NONCE)
    base["uirevision_nonce"] = str(nonce_int + 1)
    return base


def _params_from_controls(numeric_values: Sequence[Any], toggle_values: Sequence[Any]) -> MarketParams:
    raw: Dict[str, Any] = dict(zip(_NUMERIC_PARAMS, numeric_values))
    raw.update(zip(_TOGGLE_PARAMS, toggle_values))
    return MarketParams.from_dict(interaction_log.normalize_params(raw))


def _control_values(params: MarketParams) -> List[Any]:
    data = params.to_dict()
    return [data[name] for name in _NUMERIC_PARAMS] + [_toggle_value(data[name]) for name in _TOGGLE_PARAMS]


def _get_param_cache(session_id: str) -> Dict[str, Any]:
    return _SESSION_PARAM_CACHE.setdefault(session_id, default_params().to_dict())


def _flush_pending_record(session_id: str) -> None:
    state = _THROTTLE_STATE.get(session_id)
    if not state:
        return
    state["timer"] = None
    pending = state.get("pending")
    if not pending:
        return
    interaction_log.write_log_record(session_id, pending)
    state["pending"] = None
    state["last_ts"] = time.monotonic()


def _log_with_throttle(session_id: str, record: Dict[str, Any]) -> None:
    state = _THROTTLE_STATE.setdefault(
        session_id,
        {"last_ts": 0.0, "pending": None, "timer": None},
    )
    now = time.monotonic()
    since_last = now - state["last_ts"]
    if since_last >= config.LOG_RATE_LIMIT_SECONDS:
        interaction_log.write_log_record(session_id, record)
        state["last_ts"] = now
        state["pending"] = None
        timer = state.get("timer")
        if timer:
            timer.cancel()
            state["timer"] = None
        return

    state["pending"] = record
    if state.get("timer"):
        return
    delay = max(config.LOG_RATE_LIMIT_SECONDS - since_last, 0.01)
    timer = threading.Timer(delay, _flush_pending_record, args=(session_id,))
    timer.daemon = True
    state["timer"] = timer
    timer.start()


def _change_feedback(name: str, old_value: Any, new_value: Any) -> Optional[str]:
    for curve in ("demand", "supply"):
        if name == f"{curve}_shift":
            return verbal.describe_shift_change(curve, old_value, new_value)
        if name == f"{curve}_slope":
            return verbal.describe_slope_change(curve, old_value, new_value)
    return None


def _param_slider(name: str, value: float) -> html.Div:
    cfg = config.PARAM_BOUNDS[name]
    slider_id = _slider_id(name)
    return html.Div(
        [
            html.Label(config.PARAM_LABELS[name], htmlFor=slider_id, style={"fontWeight": 600}),
            dcc.Slider(
                id=slider_id,
                min=cfg["min"],
                max=cfg["max"],
                step=cfg["step"],
                value=value,
                marks={cfg["min"]: f"{cfg['min']:g}", cfg["max"]: f"{cfg['max']:g}"},
                updatemode="drag",
                tooltip={"placement": "bottom", "always_visible": True},
            ),
        ],
        style={"marginBottom": "12px"},
    )


def _toggle(name: str, enabled: bool) -> dcc.Checklist:
    return dcc.Checklist(
        id=_toggle_id(name),
        options=[{"label": f" {config.TOGGLE_LABELS[name]}", "value": "on"}],
        value=_toggle_value(enabled),
        inputStyle={"marginRight": "6px"},
    )


def _controls_panel(params: MarketParams) -> html.Div:
    data = params.to_dict()
    children: List[Any] = [
        html.Div(
            [
                html.Label("Scenario", htmlFor="dropdown-scenario", style={"fontWeight": 600}),
                dcc.Dropdown(
                    id="dropdown-scenario",
                    options=scenario_options(),
                    value=config.DEFAULT_SCENARIO,
                    clearable=False,
                ),
            ],
            style={"marginBottom": "12px"},
        ),
        html.Div(
            [
                html.Button("Reset to default", id="btn-reset", n_clicks=0, type="button"),
                html.Button(
                    "Toggle Dark / Light Theme",
                    id="btn-theme",
                    n_clicks=0,
                    type="button",
                    style={"marginLeft": "8px"},
                ),
            ],
            style={"marginBottom": "16px"},
        ),
    ]
    for title, names in _CURVE_GROUPS:
        children.append(
            html.Div(
                [html.H4(title), *[_param_slider(name, data[name]) for name in names]],
                style=_PANEL_STYLE,
            )
        )
    for title, pairs in _POLICY_GROUPS:
        rows: List[Any] = [html.H4(title)]
        for toggle, name in pairs:
            rows.append(_toggle(toggle, data[toggle]))
            rows.append(_param_slider(name, data[name]))
        children.append(html.Div(rows, style=_PANEL_STYLE))
    children.append(_toggle("animate", data["animate"]))
    return html.Div(children, style={"flex": "1", "minWidth": "320px"})


def _logging_panel() -> html.Div:
    return html.Div(
        [
            html.H4("Interaction log"),
            dcc.Checklist(
                id="toggle-consent",
                options=[{"label": " Allow logging of my interactions", "value": "on"}],
                value=[],
                inputStyle={"marginRight": "6px"},
            ),
            html.Div(
                [
                    html.Button("Download JSONL", id="btn-download-jsonl", n_clicks=0, type="button"),
                    html.Button(
                        "Download CSV",
                        id="btn-download-csv",
                        n_clicks=0,
                        type="button",
                        style={"marginLeft": "8px"},
                    ),
                    dcc.Download(id="download-jsonl"),
                    dcc.Download(id="download-csv"),
                ],
                style={"marginTop": "8px"},
            ),
            html.Pre(id="log-display", style={"whiteSpace": "pre-wrap", "fontSize": "12px"}),
        ],
        style=_PANEL_STYLE,
    )


def _serve_layout() -> html.Div:
    params = default_params()
    initial_outcome = evaluate_market(params)
    return html.Div(
        [
            html.H2("Supply & Demand Explorer"),
            html.Div(
                [
                    _controls_panel(params),
                    html.Div(
                        [
                            dcc.Graph(
                                id="market-graph",
                                figure=build_figure(initial_outcome),
                                config={"displaylogo": False},
                            ),
                            html.Div(id="info-panel", style=_PANEL_STYLE),
                            html.Div(id="verbal-feedback", role="status", **{"aria-live": "polite"}),
                            _logging_panel(),
                        ],
                        style={"flex": "2", "minWidth": "480px", "marginLeft": "24px"},
                    ),
                ],
                style={"display": "flex", "flexWrap": "wrap"},
            ),
            dcc.Store(id="store-session", data={"session_id": uuid.uuid4().hex}),
            dcc.Store(id="store-consent", data=dict(config.DEFAULT_CONSENT_STATE)),
            dcc.Store(id="store-theme", data={"theme": config.DEFAULT_THEME}),
            dcc.Store(id="store-ui", data={"uirevision_nonce": config.DEFAULT_UI_NONCE}),
            dcc.Store(id="store-log-sink", data=[]),
            dcc.Interval(
                id="interval-animate",
                interval=config.ANIMATION_INTERVAL_MS,
                n_intervals=0,
                disabled=not params.animate,
            ),
        ],
        id="app-root",
        style={"padding": "16px", "fontFamily": "sans-serif"},
    )


app = dash.Dash(__name__)
server = app.server
app.layout = _serve_layout

_SLIDER_VALUES = [Input(_slider_id(name), "value") for name in _NUMERIC_PARAMS]
_TOGGLE_VALUES = [Input(_toggle_id(name), "value") for name in _TOGGLE_PARAMS]
_CONTROL_OUTPUTS = [Output(_slider_id(name), "value") for name in _NUMERIC_PARAMS] + [
    Output(_toggle_id(name), "value") for name in _TOGGLE_PARAMS
]
_CONTROL_STATES = [State(_slider_id(name), "value") for name in _NUMERIC_PARAMS] + [
    State(_toggle_id(name), "value") for name in _TOGGLE_PARAMS
]


@app.callback(
    [
        Output("market-graph", "figure"),
        Output("info-panel", "children"),
    ],
    [
        *_SLIDER_VALUES,
        *_TOGGLE_VALUES,
        Input("interval-animate", "n_intervals"),
        Input("store-theme", "data"),
        Input("store-ui", "data"),
    ],
)
def _update_market(*args):
    numeric_values = args[: len(_NUMERIC_PARAMS)]
    toggle_values = args[len(_NUMERIC_PARAMS): len(_NUMERIC_PARAMS) + len(_TOGGLE_PARAMS)]
    n_intervals, theme_data, ui_store_data = args[-3:]
    params = _params_from_controls(numeric_values, toggle_values)
    outcome = evaluate_market(params, n_intervals or 0)
    theme_name = theme_data.get("theme") if isinstance(theme_data, dict) else None
    fig = build_figure(outcome, theme_name=theme_name, uirevision=_resolve_uirevision_value(ui_store_data))
    info = html.Ul([html.Li(line) for line in verbal.info_panel_lines(outcome)])
    return fig, info


@app.callback(
    Output("interval-animate", "disabled"),
    Input(_toggle_id("animate"), "value"),
)
def _toggle_animation(animate_value):
    return not interaction_log.normalize_toggle(animate_value)


@app.callback(
    [
        Output("store-theme", "data"),
        Output("app-root", "style"),
        Output("store-log-sink", "data", allow_duplicate=True),
    ],
    Input("btn-theme", "n_clicks"),
    [
        State("store-theme", "data"),
        State("app-root", "style"),
        State("store-session", "data"),
        State("store-consent", "data"),
        State("store-log-sink", "data"),
    ],
    prevent_initial_call=True,
)
def _toggle_theme(n_clicks, theme_data, root_style, session_data, consent_data, log_store_data):
    if not n_clicks:
        return dash.no_update, dash.no_update, dash.no_update
    current = theme_data.get("theme") if isinstance(theme_data, dict) else config.DEFAULT_THEME
    new_theme = "light" if current == "dark" else "dark"
    palette = config.THEMES[new_theme]
    style = dict(root_style) if isinstance(root_style, dict) else {}
    style.update({"backgroundColor": palette["background"], "color": palette["text"]})

    log_update = dash.no_update
    if _is_logging_allowed(consent_data):
        session_id = _get_session_id(session_data)
        record = interaction_log.build_log_record(
            session_id,
            event="theme_toggle",
            source="button",
            extras={"theme": new_theme},
        )
        interaction_log.write_log_record(session_id, record)
        log_update = interaction_log.append_preview_log(
            log_store_data, interaction_log.format_preview_message(record)
        )
    return {"theme": new_theme}, style, log_update


@app.callback(
    [
        *_CONTROL_OUTPUTS,
        Output("store-ui", "data"),
        Output("store-log-sink", "data", allow_duplicate=True),
    ],
    [
        Input("dropdown-scenario", "value"),
        Input("btn-reset", "n_clicks"),
    ],
    [
        *_CONTROL_STATES,
        State("store-ui", "data"),
        State("store-session", "data"),
        State("store-consent", "data"),
        State("store-log-sink", "data"),
    ],
    prevent_initial_call=True,
)
def _apply_scenario_or_reset(scenario_name, reset_clicks, *states):
    n_controls = len(_NUMERIC_PARAMS) + len(_TOGGLE_PARAMS)
    no_change = [dash.no_update] * (n_controls + 2)
    ctx = dash.callback_context
    if not ctx.triggered:
        return no_change
    trigger_id = ctx.triggered[0]["prop_id"].split(".")[0]
    control_values = states[:n_controls]
    ui_store_data, session_data, consent_data, log_store_data = states[n_controls:]
    current = _params_from_controls(control_values[: len(_NUMERIC_PARAMS)], control_values[len(_NUMERIC_PARAMS):])

    if trigger_id == "btn-reset":
        if not reset_clicks:
            return no_change
        params = default_params()
        event, extras = "reset", None
    else:
        if scenario_name not in config.SCENARIOS:
            return no_change
        params = apply_scenario(scenario_name, current)
        event, extras = "scenario_apply", {"scenario": scenario_name}

    session_id = _get_session_id(session_data)
    # Programmatic updates must not be logged again as slider changes.
    _SESSION_PARAM_CACHE[session_id] = params.to_dict()
    updated_ui_store = _bump_uirevision_store(ui_store_data)
    log_update = dash.no_update
    if _is_logging_allowed(consent_data):
        record = interaction_log.build_log_record(
            session_id,
            event=event,
            params=params.to_dict(),
            source="button" if event == "reset" else "dropdown",
            extras={**(extras or {}), "uirevision": _resolve_uirevision_value(updated_ui_store)},
        )
        interaction_log.write_log_record(session_id, record)
        log_update = interaction_log.append_preview_log(
            log_store_data, interaction_log.format_preview_message(record)
        )
    log.info("%s applied for session %s", event, session_id)
    return [*_control_values(params), updated_ui_store, log_update]


@app.callback(
    [
        Output("store-log-sink", "data", allow_duplicate=True),
        Output("verbal-feedback", "children"),
    ],
    [*_SLIDER_VALUES, *_TOGGLE_VALUES],
    [
        State("store-session", "data"),
        State("store-consent", "data"),
        State("store-log-sink", "data"),
    ],
    prevent_initial_call=True,
)
def _log_control_activity(*args):
    n_controls = len(_NUMERIC_PARAMS) + len(_TOGGLE_PARAMS)
    control_values = args[:n_controls]
    session_data, consent_data, log_store_data = args[n_controls:]
    params = _params_from_controls(control_values[: len(_NUMERIC_PARAMS)], control_values[len(_NUMERIC_PARAMS):])
    new_values = params.to_dict()

    session_id = _get_session_id(session_data)
    cache = _get_param_cache(session_id)
    changed = [
        name
        for name in (*_NUMERIC_PARAMS, *_TOGGLE_PARAMS)
        if not interaction_log.normalized_equal(name, cache.get(name), new_values[name])
    ]
    if not changed:
        return dash.no_update, dash.no_update

    feedback = dash.no_update
    log_entries = log_store_data
    for name in changed:
        old_value = cache.get(name)
        message = _change_feedback(name, old_value, new_values[name])
        if message:
            feedback = message
        if _is_logging_allowed(consent_data):
            is_toggle = name in config.DEFAULT_TOGGLES
            record = interaction_log.build_log_record(
                session_id,
                event="toggle_change" if is_toggle else "param_change",
                params=new_values,
                param_name=name,
                old_value=old_value,
                new_value=new_values[name],
                source="toggle" if is_toggle else "slider",
            )
            _log_with_throttle(session_id, record)
            log_entries = interaction_log.append_preview_log(
                log_entries, interaction_log.format_preview_message(record)
            )
        cache[name] = new_values[name]

    log_update = log_entries if log_entries is not log_store_data else dash.no_update
    return log_update, feedback


@app.callback(
    [
        Output("store-consent", "data"),
        Output("store-log-sink", "data", allow_duplicate=True),
    ],
    Input("toggle-consent", "value"),
    [
        State("store-consent", "data"),
        State("store-session", "data"),
        State("store-log-sink", "data"),
    ],
    prevent_initial_call=True,
)
def _handle_consent_decision(consent_value, consent_data, session_data, log_store_data):
    granted = interaction_log.normalize_toggle(consent_value)
    data = dict(consent_data) if isinstance(consent_data, dict) else dict(config.DEFAULT_CONSENT_STATE)
    data["granted"] = granted
    data["declined"] = not granted
    data["timestamp_utc"] = datetime.now(timezone.utc).isoformat()

    session_id = _get_session_id(session_data)
    status = "accepted" if granted else "declined"
    record = interaction_log.build_log_record(
        session_id,
        event="consent",
        source="toggle",
        extras={"consent_status": status},
    )
    interaction_log.write_log_record(session_id, record)
    return data, interaction_log.append_preview_log(log_store_data, interaction_log.format_preview_message(record))


@app.callback(
    [
        Output("download-jsonl", "data"),
        Output("store-log-sink", "data", allow_duplicate=True),
    ],
    Input("btn-download-jsonl", "n_clicks"),
    [
        State("store-session", "data"),
        State("store-consent", "data"),
        State("store-log-sink", "data"),
    ],
    prevent_initial_call=True,
)
def _handle_download_jsonl(n_clicks, session_data, consent_data, log_store_data):
    if not n_clicks or not _is_logging_allowed(consent_data):
        return dash.no_update, dash.no_update
    session_id = _get_session_id(session_data)
    _flush_pending_record(session_id)
    path = interaction_log.session_log_path(session_id)
    if not path.exists():
        return dash.no_update, dash.no_update

    record = interaction_log.build_log_record(
        session_id,
        event="export",
        source="button",
        extras={"export_type": "jsonl"},
    )
    interaction_log.write_log_record(session_id, record)
    summary = interaction_log.format_preview_message(record)
    return dcc.send_file(str(path)), interaction_log.append_preview_log(log_store_data, summary)


@app.callback(
    [
        Output("download-csv", "data"),
        Output("store-log-sink", "data", allow_duplicate=True),
    ],
    Input("btn-download-csv", "n_clicks"),
    [
        State("store-session", "data"),
        State("store-consent", "data"),
        State("store-log-sink", "data"),
    ],
    prevent_initial_call=True,
)
def _handle_download_csv(n_clicks, session_data, consent_data, log_store_data):
    if not n_clicks or not _is_logging_allowed(consent_data):
        return dash.no_update, dash.no_update
    session_id = _get_session_id(session_data)
    _flush_pending_record(session_id)
    records = interaction_log.read_session_log_records(session_id)
    csv_content = interaction_log.build_csv_content(records)
    if not csv_content:
        return dash.no_update, dash.no_update

    record = interaction_log.build_log_record(
        session_id,
        event="export",
        source="button",
        extras={"export_type": "csv"},
    )
    interaction_log.write_log_record(session_id, record)
    summary = interaction_log.format_preview_message(record)
    filename = f"session_{interaction_log.safe_session_id(session_id)}.csv"
    return dcc.send_string(csv_content, filename=filename), interaction_log.append_preview_log(log_store_data, summary)


@app.callback(
    Output("log-display", "children"),
    [
        Input("store-log-sink", "data"),
        Input("store-consent", "data"),
    ],
)
def _render_log_display(log_entries, consent_data):
    if not _is_logging_allowed(consent_data):
        return "Recent logs hidden (consent required)."
    if not isinstance(log_entries, list):
        log_entries = []
    if not log_entries:
        return "Recent logs will appear here."
    lines = [f"- {entry}" for entry in reversed(log_entries)]
    return "\n".join(["Recent logs:", *lines])


if __name__ == "__main__":
    app.run(debug=True)
