"""Linear supply and demand model with price controls, taxes and subsidies."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from . import config

logger = logging.getLogger(__name__)


class ControlKind(str, Enum):
    CEILING = "ceiling"
    FLOOR = "floor"


@dataclass(frozen=True)
class LinearCurve:
    intercept: float
    slope: float

    def shifted(self, delta: float) -> LinearCurve:
        return LinearCurve(self.intercept + delta, self.slope)


@dataclass(frozen=True)
class PolicyShift:
    demand_shift: float = 0.0
    supply_shift: float = 0.0
    tax: float = 0.0
    subsidy: float = 0.0

    @property
    def net_tax(self) -> float:
        return self.tax - self.subsidy

    @property
    def active(self) -> bool:
        return self.tax > 0 or self.subsidy > 0


@dataclass(frozen=True)
class Equilibrium:
    quantity: float
    price: float


@dataclass(frozen=True)
class PriceControl:
    kind: ControlKind
    level: float


@dataclass(frozen=True)
class ControlOutcome:
    kind: ControlKind
    level: float
    quantity_demanded: float
    quantity_supplied: float
    binding: bool
    distortion: float

    @property
    def shortage(self) -> float:
        return self.distortion if self.kind is ControlKind.CEILING else 0.0

    @property
    def surplus(self) -> float:
        return self.distortion if self.kind is ControlKind.FLOOR else 0.0


@dataclass(frozen=True)
class Wedge:
    consumer_price: float
    producer_price: float

    @property
    def value(self) -> float:
        return self.consumer_price - self.producer_price


@dataclass(frozen=True)
class MarketParams:
    """Snapshot of every user-controlled input, read once per evaluation."""

    demand_intercept: float = config.DEFAULT_PARAMS["demand_intercept"]
    demand_slope: float = config.DEFAULT_PARAMS["demand_slope"]
    demand_shift: float = config.DEFAULT_PARAMS["demand_shift"]
    supply_intercept: float = config.DEFAULT_PARAMS["supply_intercept"]
    supply_slope: float = config.DEFAULT_PARAMS["supply_slope"]
    supply_shift: float = config.DEFAULT_PARAMS["supply_shift"]
    ceiling_enabled: bool = config.DEFAULT_TOGGLES["ceiling_enabled"]
    ceiling_level: float = config.DEFAULT_PARAMS["ceiling_level"]
    floor_enabled: bool = config.DEFAULT_TOGGLES["floor_enabled"]
    floor_level: float = config.DEFAULT_PARAMS["floor_level"]
    tax_enabled: bool = config.DEFAULT_TOGGLES["tax_enabled"]
    tax: float = config.DEFAULT_PARAMS["tax"]
    subsidy_enabled: bool = config.DEFAULT_TOGGLES["subsidy_enabled"]
    subsidy: float = config.DEFAULT_PARAMS["subsidy"]
    animate: bool = config.DEFAULT_TOGGLES["animate"]

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> MarketParams:
        known = {key: value for key, value in (data or {}).items() if key in cls.__dataclass_fields__}
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def merged(self, overrides: Optional[Mapping[str, Any]]) -> MarketParams:
        if not overrides:
            return self
        known = {key: value for key, value in overrides.items() if key in self.__dataclass_fields__}
        return replace(self, **known)

    @property
    def demand(self) -> LinearCurve:
        return LinearCurve(self.demand_intercept, self.demand_slope)

    @property
    def supply(self) -> LinearCurve:
        return LinearCurve(self.supply_intercept, self.supply_slope)

    @property
    def ceiling(self) -> Optional[PriceControl]:
        return PriceControl(ControlKind.CEILING, self.ceiling_level) if self.ceiling_enabled else None

    @property
    def floor(self) -> Optional[PriceControl]:
        return PriceControl(ControlKind.FLOOR, self.floor_level) if self.floor_enabled else None

    def policy(self, *, demand_offset: float = 0.0, supply_offset: float = 0.0) -> PolicyShift:
        return PolicyShift(
            demand_shift=self.demand_shift + demand_offset,
            supply_shift=self.supply_shift + supply_offset,
            tax=self.tax if self.tax_enabled else 0.0,
            subsidy=self.subsidy if self.subsidy_enabled else 0.0,
        )


@dataclass(frozen=True)
class MarketOutcome:
    params: MarketParams
    tick: float
    policy: PolicyShift
    demand: LinearCurve
    base_supply: LinearCurve
    policy_supply: LinearCurve
    base_equilibrium: Optional[Equilibrium]
    policy_equilibrium: Optional[Equilibrium]
    ceiling: Optional[ControlOutcome]
    floor: Optional[ControlOutcome]
    wedge: Optional[Wedge]

    @property
    def policy_active(self) -> bool:
        return self.policy.active


def demand_price(quantity: float, intercept: float, slope: float) -> float:
    return intercept - slope * quantity


def supply_price(quantity: float, intercept: float, slope: float) -> float:
    return intercept + slope * quantity


def quantity_demanded_at(price: float, intercept: float, slope: float) -> float:
    return (intercept - price) / slope


def quantity_supplied_at(price: float, intercept: float, slope: float) -> float:
    return (price - intercept) / slope


def in_window(
    quantity: float,
    price: float,
    *,
    q_max: float = config.Q_MAX,
    p_max: float = config.P_MAX,
) -> bool:
    return 0.0 <= quantity <= q_max and 0.0 <= price <= p_max


def compute_equilibrium(
    demand_intercept: float,
    demand_slope: float,
    supply_intercept: float,
    supply_slope: float,
    *,
    q_max: float = config.Q_MAX,
    p_max: float = config.P_MAX,
    eps: float = config.EPS_ZERO,
) -> Optional[Equilibrium]:
    """Intersect demand and supply.

    Returns ``None`` for parallel lines and for intersections outside the
    visible ``[0, q_max] x [0, p_max]`` window.
    """
    denom = demand_slope + supply_slope
    if abs(denom) < eps:
        return None
    qe = (demand_intercept - supply_intercept) / denom
    pe = demand_price(qe, demand_intercept, demand_slope)
    if not (math.isfinite(qe) and math.isfinite(pe)):
        return None
    if not in_window(qe, pe, q_max=q_max, p_max=p_max):
        return None
    return Equilibrium(quantity=qe, price=pe)


def analyze_control(
    control: PriceControl,
    equilibrium: Equilibrium,
    demand: LinearCurve,
    supply: LinearCurve,
) -> ControlOutcome:
    """Quantities at the control price and the shortage or surplus it causes.

    A ceiling binds below the equilibrium price, a floor above it. A
    control that does not bind reports zero distortion.
    """
    qd = quantity_demanded_at(control.level, demand.intercept, demand.slope)
    qs = quantity_supplied_at(control.level, supply.intercept, supply.slope)
    if control.kind is ControlKind.CEILING:
        binding = control.level < equilibrium.price
        distortion = qd - qs if binding else 0.0
    else:
        binding = control.level > equilibrium.price
        distortion = qs - qd if binding else 0.0
    return ControlOutcome(
        kind=control.kind,
        level=control.level,
        quantity_demanded=qd,
        quantity_supplied=qs,
        binding=binding,
        distortion=distortion,
    )


def compute_wedge(quantity: float, demand: LinearCurve, base_supply: LinearCurve) -> Wedge:
    # Producers receive the price on the pre-policy supply curve.
    return Wedge(
        consumer_price=demand_price(quantity, demand.intercept, demand.slope),
        producer_price=supply_price(quantity, base_supply.intercept, base_supply.slope),
    )


def animation_offsets(
    tick: float,
    *,
    amplitude: float = config.ANIMATION_AMPLITUDE,
    omega: float = config.ANIMATION_OMEGA,
) -> Tuple[float, float]:
    t = omega * tick
    return amplitude * math.sin(t), amplitude * math.cos(t)


def evaluate_market(
    params: MarketParams,
    tick: float = 0,
    *,
    q_max: float = config.Q_MAX,
    p_max: float = config.P_MAX,
) -> MarketOutcome:
    """Compute every curve, equilibrium and policy effect for one frame.

    ``tick`` only matters when ``params.animate`` is set; the shifts then
    oscillate around their slider values.
    """
    demand_offset = supply_offset = 0.0
    if params.animate:
        demand_offset, supply_offset = animation_offsets(tick)
    policy = params.policy(demand_offset=demand_offset, supply_offset=supply_offset)

    demand = params.demand.shifted(policy.demand_shift)
    base_supply = params.supply.shifted(policy.supply_shift)
    policy_supply = base_supply.shifted(policy.net_tax)

    base_eq = compute_equilibrium(
        demand.intercept, demand.slope, base_supply.intercept, base_supply.slope, q_max=q_max, p_max=p_max
    )
    policy_eq = compute_equilibrium(
        demand.intercept, demand.slope, policy_supply.intercept, policy_supply.slope, q_max=q_max, p_max=p_max
    )
    if policy_eq is None:
        logger.debug("No visible equilibrium for %s", policy)

    ceiling = floor = None
    wedge = None
    if policy_eq is not None:
        if params.ceiling is not None:
            ceiling = analyze_control(params.ceiling, policy_eq, demand, policy_supply)
        if params.floor is not None:
            floor = analyze_control(params.floor, policy_eq, demand, policy_supply)
        if policy.active:
            wedge = compute_wedge(policy_eq.quantity, demand, base_supply)

    return MarketOutcome(
        params=params,
        tick=tick,
        policy=policy,
        demand=demand,
        base_supply=base_supply,
        policy_supply=policy_supply,
        base_equilibrium=base_eq,
        policy_equilibrium=policy_eq,
        ceiling=ceiling,
        floor=floor,
        wedge=wedge,
    )
