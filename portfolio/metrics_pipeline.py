from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from portfolio.filters import DealFilters
from portfolio.records import Deal

PIPELINE_COLUMNS = ["deal_id", "deal_name", "location", "total_units", "purchase_price", "market_value", "status"]


def compute_pipeline(filters: DealFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    deals: List[Deal] = ctx.get("filtered_deals", [])
    rows = [{c: getattr(d, c) for c in PIPELINE_COLUMNS} for d in deals]
    return {
        "filters": asdict(filters),
        "filter_options": ctx.get("filter_options", {}),
        "count": len(rows),
        "rows": rows,
    }
