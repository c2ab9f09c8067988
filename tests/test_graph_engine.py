import plotly.graph_objects as go
import pytest

from market_explorer import config
from market_explorer.graph_engine import (
    build_figure,
    clip_prices,
    distortion_band,
    evaluate_demand,
    generate_q_grid,
    generate_q_samples,
    resolve_theme,
)
from market_explorer.market_model import ControlKind, ControlOutcome, LinearCurve, MarketParams, evaluate_market


def _trace_names(fig: go.Figure):
    return [trace.name for trace in fig.data]


def test_q_grid_spans_window() -> None:
    qs = generate_q_grid()
    assert len(qs) == config.NUM_SAMPLES
    assert qs[0] == 0.0
    assert qs[-1] == pytest.approx(config.Q_MAX)
    assert generate_q_samples(3.0, 5.0, 1) == [3.0]


def test_out_of_window_prices_become_gaps() -> None:
    assert clip_prices([-1.0, 0.0, 10.0, 20.0, 20.5]) == [None, 0.0, 10.0, 20.0, None]
    ys = evaluate_demand(LinearCurve(25.0, 1.0), [0.0, 5.0, 10.0, 30.0])
    assert ys == [None, 20.0, 15.0, None]


def test_resolve_theme_falls_back_to_default() -> None:
    assert resolve_theme("dark") is config.THEMES["dark"]
    assert resolve_theme(None) is config.THEMES[config.DEFAULT_THEME]
    assert resolve_theme("sepia") is config.THEMES[config.DEFAULT_THEME]


def test_baseline_figure_traces() -> None:
    fig = build_figure(evaluate_market(MarketParams()))
    assert _trace_names(fig) == ["Demand", "Supply", "E₀", "E"]
    eq_trace = fig.data[-1]
    assert list(eq_trace.x) == [8.0]
    assert list(eq_trace.y) == [12.0]
    assert "E (8.00, 12.00)" in eq_trace.text
    assert fig.layout.xaxis.range == (0, config.Q_MAX)
    assert fig.layout.hoverdistance == config.HOVER_DISTANCE_PX


def test_policy_figure_shows_both_supply_curves_and_wedge() -> None:
    fig = build_figure(evaluate_market(MarketParams(tax_enabled=True, tax=4.0)))
    names = _trace_names(fig)
    assert "Supply (base)" in names
    assert "Supply (with tax/subsidy)" in names
    assert "Tax / subsidy wedge" in names
    base = next(trace for trace in fig.data if trace.name == "Supply (base)")
    assert base.line.dash == "dash"
    wedge = next(trace for trace in fig.data if trace.name == "Tax / subsidy wedge")
    assert list(wedge.x) == [6.0, 6.0]
    assert list(wedge.y) == [14.0, 10.0]
    assert any("Tax wedge ≈ 4.00" in ann.text for ann in fig.layout.annotations)


def test_binding_ceiling_draws_band_and_markers() -> None:
    params = MarketParams(ceiling_enabled=True, ceiling_level=6.0)
    fig = build_figure(evaluate_market(params))
    markers = [trace for trace in fig.data if trace.name and trace.name.startswith("Q")]
    assert sorted(trace.text[0] for trace in markers) == ["Qd", "Qs"]
    rects = [shape for shape in fig.layout.shapes if shape.type == "rect"]
    assert len(rects) == 1
    assert rects[0].x0 == 2.0
    assert rects[0].x1 == 14.0
    assert rects[0].y1 == 6.0
    texts = [ann.text for ann in fig.layout.annotations]
    assert "Binding ceiling → Shortage ≈ 12.00" in texts


def test_non_binding_floor_has_no_band() -> None:
    params = MarketParams(floor_enabled=True, floor_level=5.0)
    fig = build_figure(evaluate_market(params))
    assert [shape.type for shape in fig.layout.shapes] == ["line"]
    assert "Floor not binding (Pf ≤ Pe)" in [ann.text for ann in fig.layout.annotations]


def test_off_window_control_quantities_are_not_marked() -> None:
    params = MarketParams(ceiling_enabled=True, ceiling_level=0.0)
    fig = build_figure(evaluate_market(params))
    markers = [trace for trace in fig.data if trace.name and trace.name.startswith("Q")]
    # Qd = 20 sits on the edge, Qs = -4 is off-screen
    assert [trace.text[0] for trace in markers] == ["Qd"]


def test_band_is_clipped_to_window() -> None:
    control = ControlOutcome(
        kind=ControlKind.FLOOR,
        level=18.0,
        quantity_demanded=-2.0,
        quantity_supplied=25.0,
        binding=True,
        distortion=27.0,
    )
    band = distortion_band(control)
    assert band["x0"] == 0.0
    assert band["x1"] == config.Q_MAX
    assert band["y0"] == 18.0


def test_dark_theme_layout() -> None:
    fig = build_figure(evaluate_market(MarketParams()), theme_name="dark", uirevision="market-3")
    assert fig.layout.paper_bgcolor == config.THEMES["dark"]["background"]
    assert fig.layout.uirevision == "market-3"
    assert fig.data[-1].marker.color == config.THEMES["dark"]["equilibrium"]


def test_missing_equilibrium_draws_only_curves() -> None:
    params = MarketParams(demand_intercept=10.0, supply_intercept=15.0, ceiling_enabled=True)
    fig = build_figure(evaluate_market(params))
    assert _trace_names(fig) == ["Demand", "Supply"]
    assert len(fig.layout.shapes) == 0
