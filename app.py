import streamlit as st
import streamlit_shadcn_ui as ui

from market_explorer import config
from market_explorer import verbal_descriptions as verbal
from market_explorer.graph_engine import build_figure
from market_explorer.logging_config import setup_logging
from market_explorer.market_model import evaluate_market
from market_explorer.scenarios import apply_scenario, default_params
from market_explorer.ui_components import market_controls, seed_session_state

log = setup_logging()

# Wide layout and clear page title
st.set_page_config(page_title="Supply & Demand Explorer", layout="wide")

st.title("Supply & Demand Explorer")
st.caption("Move the curves, add price controls or a tax/subsidy, and watch the equilibrium respond.")

if "market_params" not in st.session_state:
    st.session_state["market_params"] = default_params()
if "scenario_choice" not in st.session_state:
    st.session_state["scenario_choice"] = config.DEFAULT_SCENARIO

def _on_scenario_change():
    name = st.session_state.get("scenario_choice", config.DEFAULT_SCENARIO)
    params = apply_scenario(name, st.session_state["market_params"])
    st.session_state["market_params"] = params
    seed_session_state(params, overwrite=True)
    log.info("Scenario applied: %s", name)


def _reset_params_to_defaults():
    params = default_params()
    st.session_state["market_params"] = params
    seed_session_state(params, overwrite=True)
    log.info("Parameters reset to defaults")


# Restore widget values that Streamlit dropped while their widgets were hidden
seed_session_state(st.session_state["market_params"])

left_col, right_col = st.columns([1, 2], gap="large")

with left_col:
    st.header("Controls")
    st.selectbox(
        "Scenario",
        options=list(config.SCENARIOS),
        format_func=lambda name: config.SCENARIOS[name]["label"],
        key="scenario_choice",
        on_change=_on_scenario_change,
    )
    st.button("Reset to default", use_container_width=True, on_click=_reset_params_to_defaults)
    dark_mode = ui.switch(default_checked=False, label="Dark theme", key="theme_switch")

    previous = st.session_state["market_params"]
    params = market_controls()
    st.session_state["market_params"] = params

    tick = 0
    if params.animate:
        tick = st.slider("Time (ticks)", min_value=0, max_value=600, value=0, step=1, key="animation_tick")

with right_col:
    st.header("Graph")
    st.caption("Hover the marked points for exact values.")
    outcome = evaluate_market(params, tick)
    theme_name = "dark" if dark_mode else "light"
    fig = build_figure(outcome, theme_name=theme_name, uirevision=f"{config.UI_BASE_TOKEN}{config.DEFAULT_UI_NONCE}")
    st.plotly_chart(
        fig,
        use_container_width=True,
        config={"displaylogo": False},
    )

st.divider()

st.header("Market summary")
for line in verbal.info_panel_lines(outcome):
    st.write(f"- {line}")

changes = []
for curve in ("demand", "supply"):
    old_shift, new_shift = getattr(previous, f"{curve}_shift"), getattr(params, f"{curve}_shift")
    if old_shift != new_shift:
        changes.append(verbal.describe_shift_change(curve, old_shift, new_shift))
    old_slope, new_slope = getattr(previous, f"{curve}_slope"), getattr(params, f"{curve}_slope")
    if old_slope != new_slope:
        changes.append(verbal.describe_slope_change(curve, old_slope, new_slope))
for text in changes:
    st.info(text)
