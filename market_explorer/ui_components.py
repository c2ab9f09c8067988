"""Streamlit controls for the market explorer."""

from typing import Any, Dict

import streamlit as st

from . import config
from .logger import normalize_params
from .market_model import MarketParams

_CURVE_PARAMS = (
    ("Demand", ("demand_intercept", "demand_slope", "demand_shift")),
    ("Supply", ("supply_intercept", "supply_slope", "supply_shift")),
)
_POLICY_PARAMS = (
    ("ceiling_enabled", "ceiling_level"),
    ("floor_enabled", "floor_level"),
    ("tax_enabled", "tax"),
    ("subsidy_enabled", "subsidy"),
)


def widget_key(name: str) -> str:
    return f"param_{name}"


def seed_session_state(params: MarketParams, *, overwrite: bool = False) -> None:
    # Widget keys must be written before the widgets render.
    for name, value in params.to_dict().items():
        key = widget_key(name)
        if overwrite or key not in st.session_state:
            st.session_state[key] = value


def param_slider(name: str) -> float:
    cfg = config.PARAM_BOUNDS[name]
    return st.slider(
        config.PARAM_LABELS[name],
        min_value=cfg["min"],
        max_value=cfg["max"],
        step=cfg["step"],
        key=widget_key(name),
    )


def market_controls() -> MarketParams:
    raw: Dict[str, Any] = {}
    for title, names in _CURVE_PARAMS:
        st.subheader(title)
        for name in names:
            raw[name] = param_slider(name)

    st.subheader("Policy")
    for toggle, name in _POLICY_PARAMS:
        enabled = st.checkbox(config.TOGGLE_LABELS[toggle], key=widget_key(toggle))
        raw[toggle] = enabled
        if enabled:
            raw[name] = param_slider(name)
        else:
            raw[name] = st.session_state.get(widget_key(name), config.DEFAULT_PARAMS[name])

    raw["animate"] = st.checkbox(config.TOGGLE_LABELS["animate"], key=widget_key("animate"))
    return MarketParams.from_dict(normalize_params(raw))
