from __future__ import annotations

from pathlib import Path

# Paths and filenames
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "market_explorer" / "data"

# Visible economic window (quantity x price)
Q_MAX = 20.0
P_MAX = 20.0
NUM_SAMPLES = 201
TICK_SPACING = 5

# Parameter defaults and bounds
DEFAULT_PARAMS = {
    "demand_intercept": 20.0,
    "demand_slope": 1.0,
    "demand_shift": 0.0,
    "supply_intercept": 4.0,
    "supply_slope": 1.0,
    "supply_shift": 0.0,
    "ceiling_level": 8.0,
    "floor_level": 5.0,
    "tax": 2.0,
    "subsidy": 2.0,
}
PARAM_BOUNDS = {
    "demand_intercept": {"min": 10.0, "max": 30.0, "step": 1.0},
    "demand_slope": {"min": 0.5, "max": 3.0, "step": 0.1},
    "demand_shift": {"min": -5.0, "max": 5.0, "step": 0.5},
    "supply_intercept": {"min": 0.0, "max": 15.0, "step": 1.0},
    "supply_slope": {"min": 0.5, "max": 3.0, "step": 0.1},
    "supply_shift": {"min": -5.0, "max": 5.0, "step": 0.5},
    "ceiling_level": {"min": 0.0, "max": P_MAX, "step": 0.5},
    "floor_level": {"min": 0.0, "max": P_MAX, "step": 0.5},
    "tax": {"min": 0.0, "max": 10.0, "step": 0.5},
    "subsidy": {"min": 0.0, "max": 10.0, "step": 0.5},
}
PARAM_LABELS = {
    "demand_intercept": "Demand intercept (a)",
    "demand_slope": "Demand slope (b)",
    "demand_shift": "Demand shift",
    "supply_intercept": "Supply intercept (c)",
    "supply_slope": "Supply slope (d)",
    "supply_shift": "Supply shift",
    "ceiling_level": "Ceiling price",
    "floor_level": "Floor price",
    "tax": "Tax per unit",
    "subsidy": "Subsidy per unit",
}
DEFAULT_TOGGLES = {
    "ceiling_enabled": False,
    "floor_enabled": False,
    "tax_enabled": False,
    "subsidy_enabled": False,
    "animate": False,
}
TOGGLE_LABELS = {
    "ceiling_enabled": "Enable price ceiling",
    "floor_enabled": "Enable price floor",
    "tax_enabled": "Enable tax on sellers",
    "subsidy_enabled": "Enable subsidy to sellers",
    "animate": "Animate shifts over time",
}

# Precision / guard rails
EPS_ZERO = 1e-12

# Animated shifts: offset = amplitude * sin(omega * tick) (cos for supply)
ANIMATION_AMPLITUDE = 1.5
ANIMATION_OMEGA = 0.06
ANIMATION_INTERVAL_MS = 50

# Scenario presets merged onto defaults ("custom" keeps current values)
DEFAULT_SCENARIO = "custom"
SCENARIOS = {
    "custom": {"label": "Custom / Manual", "overrides": None},
    "baseline": {"label": "Baseline market", "overrides": {}},
    "demand_boom": {"label": "Demand boom", "overrides": {"demand_shift": 4.0}},
    "supply_shock": {"label": "Supply shock (crop failure)", "overrides": {"supply_shift": 4.0}},
    "ceiling": {
        "label": "Binding price ceiling",
        "overrides": {"ceiling_enabled": True, "ceiling_level": 6.0},
    },
    "floor": {
        "label": "Binding price floor",
        "overrides": {"floor_enabled": True, "floor_level": 15.0},
    },
    "tax": {"label": "Per-unit tax (sellers)", "overrides": {"tax_enabled": True, "tax": 3.0}},
    "subsidy": {
        "label": "Per-unit subsidy (sellers)",
        "overrides": {"subsidy_enabled": True, "subsidy": 3.0},
    },
}

# UI, mode, schema
UI_BASE_TOKEN = "market-"
DEFAULT_UI_NONCE = "0"
DEFAULT_CONSENT_STATE = {"granted": False, "declined": False, "timestamp_utc": None}
SCHEMA_VERSION = 1
MODEL_TYPE = "linear_supply_demand"
APP_MODE = "dash"
DEFAULT_INTERACTION_PHASE = "change"

# Logging
LOG_RATE_LIMIT_SECONDS = 0.1
PREVIEW_LOG_CAPACITY = 5
LOGGER_NAME = "market_explorer"

# CSV column order
SCHEMA_COLUMNS = [
    "schema_version",
    "session_id",
    "t_client_ms",
    "t_server_iso",
    "seq",
    "event",
    "model_type",
    "param_name",
    "old_value",
    "new_value",
    "source",
    *DEFAULT_PARAMS.keys(),
    *DEFAULT_TOGGLES.keys(),
    "elapsed_time_ms",
    "mode",
    "interaction_phase",
    "scenario",
    "theme",
    "uirevision",
    "consent_status",
    "export_type",
]

# Plot palette and styles
FIGURE_COLORS = {
    "demand": "rgb(80,150,255)",
    "supply": "rgb(255,80,80)",
    "supply_base": "rgb(255,120,120)",
    "supply_policy": "rgb(255,180,60)",
    "ceiling": "rgb(160,160,160)",
    "floor": "rgb(200,120,0)",
    "wedge": "rgb(120,0,200)",
    "equilibrium_base": "rgb(150,150,150)",
    "shortage_fill": "rgba(80,150,255,0.24)",
    "surplus_fill": "rgba(255,80,80,0.24)",
    "wedge_fill": "rgba(120,0,200,0.31)",
}
DEMAND_LINE_STYLE = {"color": FIGURE_COLORS["demand"], "width": 2}
SUPPLY_LINE_STYLE = {"color": FIGURE_COLORS["supply"], "width": 2}
SUPPLY_BASE_LINE_STYLE = {"color": FIGURE_COLORS["supply_base"], "width": 2, "dash": "dash"}
SUPPLY_POLICY_LINE_STYLE = {"color": FIGURE_COLORS["supply_policy"], "width": 2}
CONTROL_LINE_WIDTH = 1.5
WEDGE_LINE_STYLE = {"color": FIGURE_COLORS["wedge"], "width": 2}
EQUILIBRIUM_MARKER_SIZE = 10
CONTROL_MARKER_SIZE = 7
SHORTAGE_BAND_HEIGHT = 0.4
WEDGE_BAND_WIDTH = 0.3
HOVER_DISTANCE_PX = 18

# Light / dark themes
DEFAULT_THEME = "light"
THEMES = {
    "light": {
        "template": "plotly_white",
        "background": "#ffffff",
        "text": "#000000",
        "axis": "#000000",
        "grid": "#e6e6e6",
        "equilibrium": "#000000",
        "tooltip_bg": "rgb(245,245,245)",
    },
    "dark": {
        "template": "plotly_dark",
        "background": "rgb(20,20,20)",
        "text": "rgb(240,240,240)",
        "axis": "rgb(220,220,220)",
        "grid": "#333333",
        "equilibrium": "#ffffff",
        "tooltip_bg": "rgb(40,40,40)",
    },
}
