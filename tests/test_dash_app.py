import dash_app
from market_explorer import config
from market_explorer.market_model import MarketParams


def test_params_from_controls_normalizes_widget_values() -> None:
    numeric = [config.DEFAULT_PARAMS[name] for name in config.DEFAULT_PARAMS]
    numeric[0] = 99
    toggles = [[] for _ in config.DEFAULT_TOGGLES]
    toggles[list(config.DEFAULT_TOGGLES).index("tax_enabled")] = ["on"]
    params = dash_app._params_from_controls(numeric, toggles)
    assert params.demand_intercept == 30.0
    assert params.tax_enabled
    assert not params.animate


def test_control_values_round_trip() -> None:
    params = MarketParams(supply_shift=2.5, floor_enabled=True)
    values = dash_app._control_values(params)
    n_numeric = len(config.DEFAULT_PARAMS)
    assert dash_app._params_from_controls(values[:n_numeric], values[n_numeric:]) == params


def test_uirevision_nonce_bumps() -> None:
    store = dash_app._bump_uirevision_store({"uirevision_nonce": "4"})
    assert store == {"uirevision_nonce": "5"}
    assert dash_app._resolve_uirevision_value(store) == "market-5"
    assert dash_app._bump_uirevision_store(None) == {"uirevision_nonce": "1"}


def test_change_feedback_only_for_curve_shape() -> None:
    assert dash_app._change_feedback("demand_shift", 0.0, 1.0).startswith("Demand shifts up")
    assert dash_app._change_feedback("supply_slope", 1.0, 2.0).startswith("A steeper supply")
    assert dash_app._change_feedback("tax", 1.0, 2.0) is None


def test_layout_contains_every_control() -> None:
    layout = dash_app._serve_layout()
    ids = set()

    def walk(node):
        node_id = getattr(node, "id", None)
        if node_id:
            ids.add(node_id)
        children = getattr(node, "children", None)
        if isinstance(children, (list, tuple)):
            for child in children:
                walk(child)
        elif children is not None and hasattr(children, "children"):
            walk(children)

    walk(layout)
    for name in config.DEFAULT_PARAMS:
        assert dash_app._slider_id(name) in ids
    for name in config.DEFAULT_TOGGLES:
        assert dash_app._toggle_id(name) in ids
    assert {"market-graph", "dropdown-scenario", "btn-reset", "btn-theme", "interval-animate"} <= ids
