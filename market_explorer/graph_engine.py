from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import plotly.graph_objects as go

from . import config
from . import verbal_descriptions as verbal
from .market_model import (
    ControlKind,
    ControlOutcome,
    Equilibrium,
    LinearCurve,
    MarketOutcome,
    demand_price,
    supply_price,
)


def generate_q_samples(q_min: float, q_max: float, count: int) -> List[float]:
    if count < 2:
        return [q_min]
    step = (q_max - q_min) / (count - 1)
    return [q_min + i * step for i in range(count)]


def generate_q_grid() -> List[float]:
    return generate_q_samples(0.0, config.Q_MAX, config.NUM_SAMPLES)


def clip_prices(prices: Sequence[float], p_max: float = config.P_MAX) -> List[Optional[float]]:
    return [p if 0.0 <= p <= p_max else None for p in prices]


def evaluate_demand(curve: LinearCurve, qs: Sequence[float]) -> List[Optional[float]]:
    return clip_prices([demand_price(q, curve.intercept, curve.slope) for q in qs])


def evaluate_supply(curve: LinearCurve, qs: Sequence[float]) -> List[Optional[float]]:
    return clip_prices([supply_price(q, curve.intercept, curve.slope) for q in qs])


def resolve_theme(name: Optional[str]) -> Dict[str, str]:
    return config.THEMES.get(name or config.DEFAULT_THEME, config.THEMES[config.DEFAULT_THEME])


def _hover(text: str) -> str:
    return text.replace("\n", "<br>") + "<extra></extra>"


def curve_traces(outcome: MarketOutcome, qs: Sequence[float]) -> List[go.Scatter]:
    traces = [
        go.Scatter(
            x=qs,
            y=evaluate_demand(outcome.demand, qs),
            mode="lines",
            name="Demand",
            line=dict(config.DEMAND_LINE_STYLE),
            hoverinfo="skip",
        )
    ]
    if outcome.policy_active:
        traces.append(
            go.Scatter(
                x=qs,
                y=evaluate_supply(outcome.base_supply, qs),
                mode="lines",
                name="Supply (base)",
                line=dict(config.SUPPLY_BASE_LINE_STYLE),
                hoverinfo="skip",
            )
        )
        traces.append(
            go.Scatter(
                x=qs,
                y=evaluate_supply(outcome.policy_supply, qs),
                mode="lines",
                name="Supply (with tax/subsidy)",
                line=dict(config.SUPPLY_POLICY_LINE_STYLE),
                hoverinfo="skip",
            )
        )
    else:
        traces.append(
            go.Scatter(
                x=qs,
                y=evaluate_supply(outcome.base_supply, qs),
                mode="lines",
                name="Supply",
                line=dict(config.SUPPLY_LINE_STYLE),
                hoverinfo="skip",
            )
        )
    return traces


def equilibrium_trace(eq: Equilibrium, label: str, color: str) -> go.Scatter:
    return go.Scatter(
        x=[eq.quantity],
        y=[eq.price],
        mode="markers+text",
        name=label,
        text=[verbal.equilibrium_label(label, eq)],
        textposition="top right",
        textfont=dict(size=12),
        marker=dict(color=color, size=config.EQUILIBRIUM_MARKER_SIZE, symbol="circle"),
        hovertemplate=_hover(verbal.equilibrium_tooltip(label, eq)),
        showlegend=False,
    )


def control_marker_traces(control: ControlOutcome) -> List[go.Scatter]:
    traces = []
    points = (
        ("Qd", control.quantity_demanded, config.FIGURE_COLORS["demand"]),
        ("Qs", control.quantity_supplied, config.FIGURE_COLORS["supply"]),
    )
    for symbol, quantity, color in points:
        if not 0.0 <= quantity <= config.Q_MAX:
            continue
        traces.append(
            go.Scatter(
                x=[quantity],
                y=[control.level],
                mode="markers+text",
                name=f"{symbol} ({control.kind.value})",
                text=[symbol],
                textposition="bottom center",
                marker=dict(color=color, size=config.CONTROL_MARKER_SIZE),
                hovertemplate=_hover(verbal.control_quantity_tooltip(symbol, quantity, control.kind)),
                showlegend=False,
            )
        )
    return traces


def distortion_band(control: ControlOutcome) -> Optional[Dict[str, Any]]:
    """Shaded strip between Qd and Qs, clipped to the window."""
    if not control.binding:
        return None
    left = max(0.0, min(control.quantity_demanded, control.quantity_supplied))
    right = min(config.Q_MAX, max(control.quantity_demanded, control.quantity_supplied))
    if right <= left:
        return None
    if control.kind is ControlKind.CEILING:
        y0, y1 = control.level - config.SHORTAGE_BAND_HEIGHT, control.level
        fill = config.FIGURE_COLORS["shortage_fill"]
    else:
        y0, y1 = control.level, control.level + config.SHORTAGE_BAND_HEIGHT
        fill = config.FIGURE_COLORS["surplus_fill"]
    return dict(type="rect", x0=left, x1=right, y0=y0, y1=y1, fillcolor=fill, line=dict(width=0), layer="below")


def control_shapes(control: ControlOutcome) -> List[Dict[str, Any]]:
    color = config.FIGURE_COLORS["ceiling" if control.kind is ControlKind.CEILING else "floor"]
    shapes = [
        dict(
            type="line",
            x0=0,
            x1=config.Q_MAX,
            y0=control.level,
            y1=control.level,
            line=dict(color=color, width=config.CONTROL_LINE_WIDTH),
        )
    ]
    band = distortion_band(control)
    if band is not None:
        shapes.append(band)
    return shapes


def control_annotations(control: ControlOutcome, theme: Dict[str, str], row: int) -> List[Dict[str, Any]]:
    text_color = theme["text"]
    below = control.kind is ControlKind.FLOOR
    return [
        dict(
            x=config.Q_MAX,
            y=control.level,
            text=verbal.control_level_label(control),
            showarrow=False,
            xanchor="right",
            yanchor="top" if below else "bottom",
            font=dict(color=text_color, size=12),
        ),
        dict(
            x=0.01,
            y=0.99 - 0.05 * row,
            xref="paper",
            yref="paper",
            text=verbal.control_status(control),
            showarrow=False,
            xanchor="left",
            yanchor="top",
            font=dict(color=text_color, size=12),
        ),
    ]


def wedge_elements(outcome: MarketOutcome, theme: Dict[str, str]) -> Dict[str, list]:
    if outcome.wedge is None or outcome.policy_equilibrium is None:
        return {"traces": [], "shapes": [], "annotations": []}
    qe = outcome.policy_equilibrium.quantity
    pd_, pp = outcome.wedge.consumer_price, outcome.wedge.producer_price
    label = verbal.wedge_label(outcome.policy.tax, outcome.policy.subsidy)
    segment = go.Scatter(
        x=[qe, qe],
        y=[pd_, pp],
        mode="lines",
        name="Tax / subsidy wedge",
        line=dict(config.WEDGE_LINE_STYLE),
        hoverinfo="skip",
    )
    midpoint = go.Scatter(
        x=[qe],
        y=[(pd_ + pp) / 2],
        mode="markers",
        name="Wedge",
        marker=dict(color=config.FIGURE_COLORS["wedge"], size=6, opacity=0.6),
        hovertemplate=_hover(verbal.wedge_tooltip(outcome) or label),
        showlegend=False,
    )
    band = dict(
        type="rect",
        x0=qe,
        x1=qe + config.WEDGE_BAND_WIDTH,
        y0=min(pd_, pp),
        y1=max(pd_, pp),
        fillcolor=config.FIGURE_COLORS["wedge_fill"],
        line=dict(width=0),
        layer="below",
    )
    annotation = dict(
        x=qe + config.WEDGE_BAND_WIDTH,
        y=(pd_ + pp) / 2,
        text=label,
        showarrow=False,
        xanchor="left",
        yanchor="bottom",
        font=dict(color=theme["text"], size=12),
    )
    return {"traces": [segment, midpoint], "shapes": [band], "annotations": [annotation]}


def axis_layout(title: str, limit: float, theme: Dict[str, str]) -> Dict[str, Any]:
    return dict(
        title=title,
        range=[0, limit],
        dtick=config.TICK_SPACING,
        showgrid=True,
        gridcolor=theme["grid"],
        zeroline=False,
        showline=True,
        linecolor=theme["axis"],
        ticks="outside",
        fixedrange=True,
    )


def build_figure(outcome: MarketOutcome, *, theme_name: Optional[str] = None, uirevision: str = "market") -> go.Figure:
    theme = resolve_theme(theme_name)
    qs = generate_q_grid()

    traces: List[go.Scatter] = list(curve_traces(outcome, qs))
    shapes: List[Dict[str, Any]] = []
    annotations: List[Dict[str, Any]] = []

    if outcome.base_equilibrium is not None:
        traces.append(equilibrium_trace(outcome.base_equilibrium, "E₀", config.FIGURE_COLORS["equilibrium_base"]))
    if outcome.policy_equilibrium is not None:
        traces.append(equilibrium_trace(outcome.policy_equilibrium, "E", theme["equilibrium"]))

    for row, control in enumerate(c for c in (outcome.ceiling, outcome.floor) if c is not None):
        traces.extend(control_marker_traces(control))
        shapes.extend(control_shapes(control))
        annotations.extend(control_annotations(control, theme, row))

    wedge = wedge_elements(outcome, theme)
    traces.extend(wedge["traces"])
    shapes.extend(wedge["shapes"])
    annotations.extend(wedge["annotations"])

    fig = go.Figure(data=traces)
    fig.update_layout(
        template=theme["template"],
        height=560,
        margin=dict(l=56, r=16, t=32, b=48),
        paper_bgcolor=theme["background"],
        plot_bgcolor=theme["background"],
        font=dict(color=theme["text"]),
        xaxis=axis_layout("Quantity (Q)", config.Q_MAX, theme),
        yaxis=axis_layout("Price (P)", config.P_MAX, theme),
        showlegend=True,
        legend=dict(x=0.01, y=0.01, xanchor="left", yanchor="bottom", bgcolor="rgba(0,0,0,0)"),
        hovermode="closest",
        hoverdistance=config.HOVER_DISTANCE_PX,
        hoverlabel=dict(bgcolor=theme["tooltip_bg"], font=dict(color=theme["text"])),
        uirevision=uirevision,
        shapes=shapes,
        annotations=annotations,
    )
    return fig
