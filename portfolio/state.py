from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from portfolio.filters import DealFilters, normalize_filters


PAGES = {
    "overview": "Overview",
    "pipeline": "Deal Pipeline",
    "deal-detail": "Deal Detail",
    "data": "Data Management",
}


@dataclass(frozen=True)
class DashboardState:
    """UI state owned by the caller; every change yields a new state."""

    page: str = "overview"
    filters: DealFilters = field(default_factory=DealFilters)
    selected_deal_id: Optional[str] = None

    def navigate(self, page: str) -> "DashboardState":
        if page not in PAGES:
            raise ValueError(f"Unknown page: {page}")
        return replace(self, page=page)

    def select_deal(self, deal_id: str) -> "DashboardState":
        return replace(self, page="deal-detail", selected_deal_id=deal_id)

    def with_filters(self, raw: Dict[str, Any] | DealFilters) -> "DashboardState":
        filters = raw if isinstance(raw, DealFilters) else normalize_filters(raw)
        return replace(self, filters=filters)
