from market_explorer import verbal_descriptions as verbal
from market_explorer.market_model import ControlKind, Equilibrium, MarketParams, evaluate_market


def test_equation_lines() -> None:
    outcome = evaluate_market(MarketParams())
    assert verbal.describe_demand_equation(outcome) == "Demand: P = (20.0 + shift_D) - 1.00Q"
    assert verbal.describe_supply_equation(outcome) == "Supply: P = (4.0 + shift_S + tax - subsidy) + 1.00Q"
    assert verbal.describe_shifts(outcome) == "shift_D = 0.0, shift_S = 0.0, tax = 0.0, subsidy = 0.0"


def test_equilibrium_text() -> None:
    eq = Equilibrium(8.0, 12.0)
    assert verbal.equilibrium_label("E", eq) == "E (8.00, 12.00)"
    assert verbal.equilibrium_tooltip("E₀", eq) == "E₀: Q=8.00, P=12.00"


def test_missing_equilibrium_is_explained() -> None:
    outcome = evaluate_market(MarketParams(demand_intercept=10.0, supply_intercept=15.0))
    assert verbal.describe_equilibria(outcome) == ["No equilibrium inside the visible window."]


def test_control_status_lines() -> None:
    ceiling = evaluate_market(MarketParams(ceiling_enabled=True, ceiling_level=6.0)).ceiling
    assert verbal.control_status(ceiling) == "Binding ceiling → Shortage ≈ 12.00"
    assert verbal.control_level_label(ceiling) == "Ceiling = 6.00"

    loose = evaluate_market(MarketParams(ceiling_enabled=True, ceiling_level=15.0)).ceiling
    assert verbal.control_status(loose) == "Ceiling not binding (Pc ≥ Pe)"

    floor = evaluate_market(MarketParams(floor_enabled=True, floor_level=5.0)).floor
    assert verbal.control_status(floor) == "Floor not binding (Pf ≤ Pe)"

    binding_floor = evaluate_market(MarketParams(floor_enabled=True, floor_level=16.0)).floor
    assert verbal.control_status(binding_floor) == "Binding floor → Surplus ≈ 8.00"


def test_control_quantity_tooltip() -> None:
    assert verbal.control_quantity_tooltip("Qd", 14.0, ControlKind.CEILING) == "Qd (at ceiling): 14.00"
    assert verbal.control_quantity_tooltip("Qs", 2.5, ControlKind.FLOOR) == "Qs (at floor): 2.50"


def test_wedge_labels() -> None:
    assert verbal.wedge_label(3.0, 0.0) == "Tax wedge ≈ 3.00"
    assert verbal.wedge_label(0.0, 2.0) == "Subsidy wedge ≈ 2.00"
    assert verbal.wedge_label(3.0, 1.0) == "Net wedge ≈ 2.00"


def test_wedge_tooltip() -> None:
    outcome = evaluate_market(MarketParams(tax_enabled=True, tax=4.0))
    assert verbal.wedge_tooltip(outcome) == "Tax wedge ≈ 4.00\nPd=14.00, Pp=10.00"
    assert verbal.wedge_tooltip(evaluate_market(MarketParams())) is None


def test_info_panel_includes_policy_lines() -> None:
    params = MarketParams(ceiling_enabled=True, ceiling_level=6.0, tax_enabled=True, tax=2.0)
    lines = verbal.info_panel_lines(evaluate_market(params))
    assert lines[0].startswith("Demand:")
    assert "Base Eq (no policy): Pe₀ ≈ 12.00, Qe₀ ≈ 8.00" in lines
    assert "Policy Eq: Pe ≈ 13.00, Qe ≈ 7.00" in lines
    assert lines[-1] == "Tax wedge ≈ 2.00"
    assert any(line.startswith("Binding ceiling") for line in lines)


def test_change_descriptions() -> None:
    assert "Demand shifts up" in verbal.describe_shift_change("demand", 0.0, 2.0)
    assert "Supply shifts down" in verbal.describe_shift_change("supply", 1.0, -1.0)
    assert verbal.describe_shift_change("supply", 1.0, 1.0) == "The supply curve stays put."
    assert verbal.describe_slope_change("demand", 1.0, 2.0).startswith("A steeper demand curve")
    assert verbal.describe_slope_change("supply", 2.0, 1.0).startswith("A flatter supply curve")
