from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from portfolio.records import Deal


FILTER_ALL = "all"

# filter field -> deal attribute
FILTER_FIELDS = {
    "status": "status",
    "property_type": "property_type",
    "location": "location",
}

_ALIASES = {"propertyType": "property_type"}


@dataclass(frozen=True)
class DealFilters:
    status: str = FILTER_ALL
    property_type: str = FILTER_ALL
    location: str = FILTER_ALL

    def is_unfiltered(self) -> bool:
        return all(getattr(self, f) == FILTER_ALL for f in FILTER_FIELDS)


def _selection(value: Any) -> str:
    if value is None:
        return FILTER_ALL
    s = str(value)
    if not s.strip():
        return FILTER_ALL
    return s


def normalize_filters(raw: Optional[Dict[str, Any]]) -> DealFilters:
    """Build filters from a loose mapping; blank or missing selections mean "all"."""
    raw = dict(raw or {})
    for alias, name in _ALIASES.items():
        if alias in raw and name not in raw:
            raw[name] = raw[alias]
    return DealFilters(**{f: _selection(raw.get(f)) for f in FILTER_FIELDS})


def deal_matches(deal: Deal, filters: DealFilters) -> bool:
    for field_name, attr in FILTER_FIELDS.items():
        wanted = getattr(filters, field_name)
        if wanted != FILTER_ALL and getattr(deal, attr) != wanted:
            return False
    return True


def filter_deals(deals: Iterable[Deal], filters: DealFilters) -> List[Deal]:
    return [d for d in deals if deal_matches(d, filters)]


def distinct_values(deals: Sequence[Deal], attr: str) -> List[str]:
    """Unique non-missing values of ``attr`` in first-seen order."""
    seen: Dict[str, None] = {}
    for deal in deals:
        value = getattr(deal, attr)
        if value is not None:
            seen.setdefault(value, None)
    return list(seen)


def filter_options(deals: Sequence[Deal]) -> Dict[str, List[str]]:
    """Choices for each filter, derived from the unfiltered deal collection."""
    return {
        f: [FILTER_ALL] + [v for v in distinct_values(deals, attr) if v != FILTER_ALL]
        for f, attr in FILTER_FIELDS.items()
    }
