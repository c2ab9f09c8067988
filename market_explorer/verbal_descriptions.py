"""Info-panel text, point labels and tooltips for the market figure."""

from __future__ import annotations

from typing import List, Optional

from .market_model import ControlKind, ControlOutcome, Equilibrium, MarketOutcome


def describe_demand_equation(outcome: MarketOutcome) -> str:
    p = outcome.params
    return f"Demand: P = ({p.demand_intercept:.1f} + shift_D) - {p.demand_slope:.2f}Q"


def describe_supply_equation(outcome: MarketOutcome) -> str:
    p = outcome.params
    return f"Supply: P = ({p.supply_intercept:.1f} + shift_S + tax - subsidy) + {p.supply_slope:.2f}Q"


def describe_shifts(outcome: MarketOutcome) -> str:
    pol = outcome.policy
    return (
        f"shift_D = {pol.demand_shift:.1f}, shift_S = {pol.supply_shift:.1f}, "
        f"tax = {pol.tax:.1f}, subsidy = {pol.subsidy:.1f}"
    )


def equilibrium_label(label: str, eq: Equilibrium) -> str:
    return f"{label} ({eq.quantity:.2f}, {eq.price:.2f})"


def equilibrium_tooltip(label: str, eq: Equilibrium) -> str:
    return f"{label}: Q={eq.quantity:.2f}, P={eq.price:.2f}"


def describe_equilibria(outcome: MarketOutcome) -> List[str]:
    lines = []
    if outcome.base_equilibrium is not None:
        eq = outcome.base_equilibrium
        lines.append(f"Base Eq (no policy): Pe₀ ≈ {eq.price:.2f}, Qe₀ ≈ {eq.quantity:.2f}")
    if outcome.policy_equilibrium is not None:
        eq = outcome.policy_equilibrium
        lines.append(f"Policy Eq: Pe ≈ {eq.price:.2f}, Qe ≈ {eq.quantity:.2f}")
    if not lines:
        lines.append("No equilibrium inside the visible window.")
    return lines


def control_name(kind: ControlKind) -> str:
    return "Ceiling" if kind is ControlKind.CEILING else "Floor"


def control_level_label(control: ControlOutcome) -> str:
    return f"{control_name(control.kind)} = {control.level:.2f}"


def control_status(control: ControlOutcome) -> str:
    if control.kind is ControlKind.CEILING:
        if control.binding:
            return f"Binding ceiling → Shortage ≈ {control.shortage:.2f}"
        return "Ceiling not binding (Pc ≥ Pe)"
    if control.binding:
        return f"Binding floor → Surplus ≈ {control.surplus:.2f}"
    return "Floor not binding (Pf ≤ Pe)"


def control_quantity_tooltip(symbol: str, quantity: float, kind: ControlKind) -> str:
    where = "ceiling" if kind is ControlKind.CEILING else "floor"
    return f"{symbol} (at {where}): {quantity:.2f}"


def wedge_label(tax: float, subsidy: float) -> str:
    if tax > 0 and subsidy <= 0:
        return f"Tax wedge ≈ {tax:.2f}"
    if subsidy > 0 and tax <= 0:
        return f"Subsidy wedge ≈ {subsidy:.2f}"
    return f"Net wedge ≈ {tax - subsidy:.2f}"


def wedge_tooltip(outcome: MarketOutcome) -> Optional[str]:
    if outcome.wedge is None:
        return None
    w = outcome.wedge
    label = wedge_label(outcome.policy.tax, outcome.policy.subsidy)
    return f"{label}\nPd={w.consumer_price:.2f}, Pp={w.producer_price:.2f}"


def info_panel_lines(outcome: MarketOutcome) -> List[str]:
    lines = [
        describe_demand_equation(outcome),
        describe_supply_equation(outcome),
        describe_shifts(outcome),
        *describe_equilibria(outcome),
    ]
    for control in (outcome.ceiling, outcome.floor):
        if control is not None:
            lines.append(control_status(control))
    if outcome.wedge is not None:
        lines.append(wedge_label(outcome.policy.tax, outcome.policy.subsidy))
    return lines


def describe_shift_change(curve: str, old: float, new: float) -> str:
    if new == old:
        return f"The {curve} curve stays put."
    direction = "up" if new > old else "down"
    if curve == "demand":
        effect = "raising" if new > old else "lowering"
        return f"Demand shifts {direction}, {effect} both equilibrium price and quantity."
    effect = "higher price, lower quantity" if new > old else "lower price, higher quantity"
    return f"Supply shifts {direction}: {effect} at the new equilibrium."


def describe_slope_change(curve: str, old: float, new: float) -> str:
    if new == old:
        return f"The {curve} slope is unchanged."
    trend = "steeper" if new > old else "flatter"
    responsive = "less" if new > old else "more"
    return f"A {trend} {curve} curve means quantity is {responsive} responsive to price."
