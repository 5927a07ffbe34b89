from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Tuple


DEAL_COLUMNS = [
    "deal_id",
    "deal_name",
    "acquisition_date",
    "total_units",
    "purchase_price",
    "renovation_budget",
    "market_value",
    "debt_amount",
    "status",
    "property_type",
    "location",
]

UNIT_COLUMNS = [
    "unit_id",
    "deal_id",
    "unit_number",
    "bedrooms",
    "bathrooms",
    "sq_ft",
    "current_rent",
    "market_rent",
    "occupancy_status",
]

FINANCIAL_COLUMNS = [
    "financial_id",
    "deal_id",
    "period",
    "gross_rent",
    "operating_expenses",
    "noi",
    "capex",
    "debt_service",
]

DEAL_NUMERIC = ["total_units", "purchase_price", "renovation_budget", "market_value", "debt_amount"]
UNIT_NUMERIC = ["bedrooms", "bathrooms", "sq_ft", "current_rent", "market_rent"]
FINANCIAL_NUMERIC = ["gross_rent", "operating_expenses", "noi", "capex", "debt_service"]

_MISSING_TOKENS = {"", "nan", "none", "null", "<na>"}


def as_number(value: Any) -> float:
    """Coerce to float; missing or malformed input becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        out = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(out) or math.isinf(out):
        return 0.0
    return out


def as_count(value: Any) -> int:
    return int(as_number(value))


def as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    s = str(value).strip()
    if s.lower() in _MISSING_TOKENS:
        return None
    return s


def as_key(value: Any) -> Optional[str]:
    """Identifier columns read back as floats ("101.0") are normalized to "101"."""
    if isinstance(value, float) and not math.isnan(value) and value.is_integer():
        value = int(value)
    return as_text(value)


@dataclass(frozen=True)
class Deal:
    deal_id: str
    deal_name: Optional[str] = None
    acquisition_date: Optional[str] = None
    total_units: int = 0
    purchase_price: float = 0.0
    renovation_budget: float = 0.0
    market_value: float = 0.0
    debt_amount: float = 0.0
    status: Optional[str] = None
    property_type: Optional[str] = None
    location: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Optional["Deal"]:
        deal_id = as_key(row.get("deal_id"))
        if deal_id is None:
            return None
        return cls(
            deal_id=deal_id,
            deal_name=as_text(row.get("deal_name")),
            acquisition_date=as_text(row.get("acquisition_date")),
            total_units=as_count(row.get("total_units")),
            purchase_price=as_number(row.get("purchase_price")),
            renovation_budget=as_number(row.get("renovation_budget")),
            market_value=as_number(row.get("market_value")),
            debt_amount=as_number(row.get("debt_amount")),
            status=as_text(row.get("status")),
            property_type=as_text(row.get("property_type")),
            location=as_text(row.get("location")),
        )


@dataclass(frozen=True)
class Unit:
    unit_id: str
    deal_id: Optional[str] = None
    unit_number: Optional[str] = None
    bedrooms: float = 0.0
    bathrooms: float = 0.0
    sq_ft: float = 0.0
    current_rent: float = 0.0
    market_rent: float = 0.0
    occupancy_status: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Optional["Unit"]:
        unit_id = as_key(row.get("unit_id"))
        if unit_id is None:
            return None
        return cls(
            unit_id=unit_id,
            deal_id=as_key(row.get("deal_id")),
            unit_number=as_key(row.get("unit_number")),
            bedrooms=as_number(row.get("bedrooms")),
            bathrooms=as_number(row.get("bathrooms")),
            sq_ft=as_number(row.get("sq_ft")),
            current_rent=as_number(row.get("current_rent")),
            market_rent=as_number(row.get("market_rent")),
            occupancy_status=as_text(row.get("occupancy_status")),
        )


@dataclass(frozen=True)
class FinancialPeriod:
    financial_id: str
    deal_id: Optional[str] = None
    period: Optional[str] = None
    gross_rent: float = 0.0
    operating_expenses: float = 0.0
    noi: float = 0.0
    capex: float = 0.0
    debt_service: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Optional["FinancialPeriod"]:
        financial_id = as_key(row.get("financial_id"))
        if financial_id is None:
            return None
        return cls(
            financial_id=financial_id,
            deal_id=as_key(row.get("deal_id")),
            period=as_text(row.get("period")),
            gross_rent=as_number(row.get("gross_rent")),
            operating_expenses=as_number(row.get("operating_expenses")),
            noi=as_number(row.get("noi")),
            capex=as_number(row.get("capex")),
            debt_service=as_number(row.get("debt_service")),
        )


@dataclass(frozen=True)
class RecordStore:
    """Immutable snapshot of the three collections; replaced wholesale on reload."""

    deals: Tuple[Deal, ...] = field(default_factory=tuple)
    units: Tuple[Unit, ...] = field(default_factory=tuple)
    financials: Tuple[FinancialPeriod, ...] = field(default_factory=tuple)
    source: str = "empty"

    def replace(self, kind: str, records: Iterable[object], *, source: Optional[str] = None) -> "RecordStore":
        values = {"deals": self.deals, "units": self.units, "financials": self.financials}
        if kind not in values:
            raise KeyError(kind)
        values[kind] = tuple(records)
        return RecordStore(source=source or self.source, **values)


def build_deals(rows: Iterable[Mapping[str, Any]]) -> List[Deal]:
    return [d for d in (Deal.from_row(r) for r in rows) if d is not None]


def build_units(rows: Iterable[Mapping[str, Any]]) -> List[Unit]:
    return [u for u in (Unit.from_row(r) for r in rows) if u is not None]


def build_financials(rows: Iterable[Mapping[str, Any]]) -> List[FinancialPeriod]:
    return [f for f in (FinancialPeriod.from_row(r) for r in rows) if f is not None]


def build_store(
    deals: Iterable[Mapping[str, Any]] = (),
    units: Iterable[Mapping[str, Any]] = (),
    financials: Iterable[Mapping[str, Any]] = (),
    *,
    source: str = "manual",
) -> RecordStore:
    return RecordStore(
        deals=tuple(build_deals(deals)),
        units=tuple(build_units(units)),
        financials=tuple(build_financials(financials)),
        source=source,
    )
