from __future__ import annotations

from typing import Any, Dict, List, Optional

from . import config
from .market_model import MarketParams


def default_params() -> MarketParams:
    return MarketParams.from_dict({**config.DEFAULT_PARAMS, **config.DEFAULT_TOGGLES})


def scenario_options() -> List[Dict[str, str]]:
    return [{"label": entry["label"], "value": name} for name, entry in config.SCENARIOS.items()]


def get_scenario(name: str) -> Dict[str, Any]:
    return config.SCENARIOS[name]


def apply_scenario(name: str, current: Optional[MarketParams] = None) -> MarketParams:
    """Parameters for a named preset.

    Every preset except ``custom`` starts from the defaults and merges its
    overrides on top; ``custom`` keeps the current parameters.
    """
    overrides = get_scenario(name)["overrides"]
    if overrides is None:
        return current if current is not None else default_params()
    return default_params().merged(overrides)
