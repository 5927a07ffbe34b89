from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

from portfolio.metrics_overview import annualized_cap_rate, occupancy_rate
from portfolio.records import Deal, FinancialPeriod, Unit


@dataclass(frozen=True)
class DealMetrics:
    total_cost: float
    equity: float
    ltv: float
    total_noi: float
    cap_rate: float
    occupancy_rate: float


def find_deal(deals: Sequence[Deal], deal_id: Optional[str]) -> Optional[Deal]:
    if deal_id is None:
        return None
    return next((d for d in deals if d.deal_id == deal_id), None)


def related_units(deal: Deal, units: Sequence[Unit]) -> List[Unit]:
    return [u for u in units if u.deal_id == deal.deal_id]


def related_financials(deal: Deal, financials: Sequence[FinancialPeriod]) -> List[FinancialPeriod]:
    return [f for f in financials if f.deal_id == deal.deal_id]


def compute_deal_metrics(
    deal: Deal,
    units: Sequence[Unit],
    financials: Sequence[FinancialPeriod],
) -> DealMetrics:
    """Deal-level ratios. ``units`` and ``financials`` must already be the deal's own."""
    ltv = deal.debt_amount / deal.market_value if deal.market_value > 0 else 0.0
    return DealMetrics(
        total_cost=deal.purchase_price + deal.renovation_budget,
        equity=deal.market_value - deal.debt_amount,
        ltv=ltv,
        total_noi=sum(f.noi for f in financials),
        cap_rate=annualized_cap_rate(financials, deal.market_value),
        occupancy_rate=occupancy_rate(units),
    )


def rent_upside(unit: Unit) -> float:
    # not floored: negative upside means above-market rent
    return unit.market_rent - unit.current_rent


def cash_flow(period: FinancialPeriod) -> float:
    return period.noi - period.capex - period.debt_service


def unit_rows(units: Sequence[Unit]) -> List[Dict[str, Any]]:
    rows = []
    for u in units:
        upside = rent_upside(u)
        rows.append({**asdict(u), "rent_upside": upside, "upside_positive": upside > 0})
    return rows


def financial_rows(financials: Sequence[FinancialPeriod]) -> List[Dict[str, Any]]:
    rows = []
    for f in financials:
        cf = cash_flow(f)
        rows.append({**asdict(f), "cash_flow": cf, "cash_flow_positive": cf > 0})
    return rows


def compute_deal_detail(deal_id: str, ctx: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    deal = find_deal(ctx.get("deals", []), deal_id)
    if deal is None:
        return None
    units = related_units(deal, ctx.get("units", []))
    financials = related_financials(deal, ctx.get("financials", []))
    metrics = compute_deal_metrics(deal, units, financials)
    return {
        "deal": asdict(deal),
        "metrics": asdict(metrics),
        "units": unit_rows(units),
        "financials": financial_rows(financials),
    }
