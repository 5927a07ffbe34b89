from __future__ import annotations

from typing import Any, Dict

from portfolio.data import KINDS


def compute_data_summary(ctx: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "source": ctx.get("source"),
        "row_counts": {kind: int(len(ctx.get(kind, []) or [])) for kind in KINDS},
        "filtered_deals": int(len(ctx.get("filtered_deals", []) or [])),
        "schemas": {kind: list(spec.columns) for kind, spec in KINDS.items()},
    }
