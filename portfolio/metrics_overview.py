from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from portfolio.charts import PALETTE, records_frame, to_vega_spec
from portfolio.filters import DealFilters
from portfolio.records import Deal, FinancialPeriod, Unit


OCCUPIED = "Occupied"
QUARTERS_PER_YEAR = 4


@dataclass(frozen=True)
class PortfolioKPIs:
    total_deals: int
    total_units: int
    total_value: float
    total_equity: float
    occupancy_rate: float
    avg_cap_rate: float


def occupancy_rate(units: Sequence[Unit]) -> float:
    if not units:
        return 0.0
    occupied = sum(1 for u in units if u.occupancy_status == OCCUPIED)
    return occupied / len(units)


def annualized_cap_rate(financials: Sequence[FinancialPeriod], value: float) -> float:
    """Quarterly NOI sum x 4 over ``value``; 0 when there is no value."""
    if value <= 0:
        return 0.0
    total_noi = sum(f.noi for f in financials)
    return total_noi * QUARTERS_PER_YEAR / value


def compute_kpis(
    deals: Sequence[Deal],
    units: Sequence[Unit],
    financials: Sequence[FinancialPeriod],
) -> PortfolioKPIs:
    """Portfolio KPIs.

    ``deals`` is the filtered deal list. ``units`` and ``financials`` are the
    full collections: occupancy and cap rate are not scoped to the filtered
    deals.
    """
    total_value = sum(d.market_value for d in deals)
    return PortfolioKPIs(
        total_deals=len(deals),
        total_units=sum(d.total_units for d in deals),
        total_value=total_value,
        total_equity=sum(d.market_value - d.debt_amount for d in deals),
        occupancy_rate=occupancy_rate(units),
        avg_cap_rate=annualized_cap_rate(financials, total_value),
    )


def portfolio_series(deals: Sequence[Deal]) -> List[Dict[str, Any]]:
    return [
        {"name": d.deal_name, "value": d.market_value, "equity": d.market_value - d.debt_amount}
        for d in deals
    ]


def noi_series(financials: Sequence[FinancialPeriod]) -> List[Dict[str, Any]]:
    # stable sort: equal labels keep input order, missing periods go last
    ordered = sorted(financials, key=lambda f: (f.period is None, f.period or ""))
    return [
        {"period": f.period, "noi": f.noi, "cash_flow": f.noi - f.capex - f.debt_service}
        for f in ordered
    ]


def unit_mix_series(units: Sequence[Unit]) -> List[Dict[str, Any]]:
    """Units grouped by bedroom count, groups in first-seen order."""
    if not units:
        return []
    df = pd.DataFrame({"bedrooms": [u.bedrooms for u in units], "current_rent": [u.current_rent for u in units]})
    mix = (
        df.groupby("bedrooms", sort=False)
        .agg(count=("current_rent", "size"), avg_rent=("current_rent", "mean"))
        .reset_index()
    )
    return [
        {"name": f"{r['bedrooms']:g}BR", "count": int(r["count"]), "avg_rent": float(r["avg_rent"])}
        for r in mix.to_dict(orient="records")
    ]


def _portfolio_chart(rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    df = records_frame(rows)
    if df is None:
        return None
    long_df = df.melt(id_vars="name", value_vars=["value", "equity"], var_name="metric", value_name="amount")
    bar = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("name:N", title="Deal", sort=None),
            xOffset="metric:N",
            y=alt.Y("amount:Q", title=None, axis=alt.Axis(format="$~s")),
            color=alt.Color("metric:N", title=None, scale=alt.Scale(range=PALETTE[:2])),
            tooltip=["name", "metric", alt.Tooltip("amount:Q", format="$,.0f")],
        )
        .properties(height=300)
    )
    return to_vega_spec(bar)


def _noi_chart(rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    df = records_frame(rows)
    if df is None:
        return None
    long_df = df.melt(id_vars=["period"], value_vars=["noi", "cash_flow"], var_name="metric", value_name="amount")
    hover = alt.selection_point(fields=["metric"], on="mouseover", empty="all")
    line = (
        alt.Chart(long_df)
        .mark_line(point={"filled": True, "size": 60})
        .encode(
            x=alt.X("period:O", title="Period", sort=None),
            y=alt.Y("amount:Q", title=None, axis=alt.Axis(format="$~s", gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("metric:N", title=None, scale=alt.Scale(range=PALETTE[1:3])),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=["period", "metric", alt.Tooltip("amount:Q", format="$,.0f")],
        )
        .add_params(hover)
        .properties(height=300)
    )
    return to_vega_spec(line)


def _unit_mix_chart(rows: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    df = records_frame(rows)
    if df is None:
        return None
    pie = (
        alt.Chart(df)
        .mark_arc()
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color("name:N", title="Unit Type", sort=None, scale=alt.Scale(range=PALETTE)),
            tooltip=["name", "count", alt.Tooltip("avg_rent:Q", title="Avg Rent", format="$,.0f")],
        )
        .properties(height=300)
    )
    return to_vega_spec(pie)


def compute_overview(filters: DealFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    deals: List[Deal] = ctx.get("filtered_deals", [])
    units: List[Unit] = ctx.get("units", [])
    financials: List[FinancialPeriod] = ctx.get("financials", [])

    kpis = compute_kpis(deals, units, financials)
    portfolio = portfolio_series(deals)
    noi = noi_series(financials)
    unit_mix = unit_mix_series(units)

    return {
        "filters": asdict(filters),
        "filter_options": ctx.get("filter_options", {}),
        "kpis": asdict(kpis),
        "series": {"portfolio": portfolio, "noi": noi, "unit_mix": unit_mix},
        "charts": {
            "portfolio_value": _portfolio_chart(portfolio),
            "noi_trend": _noi_chart(noi),
            "unit_mix": _unit_mix_chart(unit_mix),
        },
    }
