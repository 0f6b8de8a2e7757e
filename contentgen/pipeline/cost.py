"""Cost estimator: enabled stages -> priced line items.

Prices are configuration (``Settings.unit_prices`` or a YAML file of
``capability: price`` pairs), keyed by stage capability.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from contentgen.pipeline.registry import stages as default_stages
from contentgen.schemas.models import (
    CostEstimate,
    CostLineItem,
    GenerationRequest,
    StageDescriptor,
)

DEFAULT_PRICES: dict[str, float] = {
    "dataforseo": 0.075,
    "serp": 0.05,
    "perplexity": 0.10,
    "generation": 0.25,
    "images": 0.20,
}


def load_price_table(path: str | Path) -> dict[str, float]:
    """Load ``{capability: unit price}`` from a YAML file.

    Accepts either a flat mapping or one nested under a ``prices`` key.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pricing file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if isinstance(data, dict) and isinstance(data.get("prices"), dict):
        data = data["prices"]
    if not isinstance(data, dict):
        raise ValueError(f"Pricing file must contain a mapping: {path}")
    return {str(k): float(v) for k, v in data.items()}


def estimate(
    request: GenerationRequest,
    prices: dict[str, float] | None = None,
    registry: tuple[StageDescriptor, ...] | None = None,
) -> CostEstimate:
    """One line item per priced stage; ``included`` mirrors the enable flag."""
    table = DEFAULT_PRICES if prices is None else prices
    items: list[CostLineItem] = []
    for stage in registry or default_stages():
        if not stage.capability or stage.capability not in table:
            continue
        items.append(
            CostLineItem(
                stage_id=stage.id,
                capability=stage.capability,
                unit_cost=table[stage.capability],
                included=request.is_enabled(stage.id),
            )
        )
    total = round(sum(i.unit_cost for i in items if i.included), 4)
    return CostEstimate(items=items, total=total)
