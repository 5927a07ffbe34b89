from contextlib import contextmanager
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from portfolio.data import KINDS, RecordImportError, import_records, load_dashboard_data, load_sample_store, prepare_context, template_csv
from portfolio.export import (
    deal_report_filename,
    deal_report_text,
    deals_frame,
    format_currency,
    format_percent,
    pipeline_filename,
    pipeline_xlsx_bytes,
)
from portfolio.filters import FILTER_ALL, DealFilters
from portfolio.metrics_data import compute_data_summary
from portfolio.metrics_deal import DealMetrics, compute_deal_detail, find_deal, related_units
from portfolio.metrics_overview import compute_overview
from portfolio.metrics_pipeline import compute_pipeline
from portfolio.records import Deal
from portfolio.state import PAGES, DashboardState


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body


def format_filter_summary(filters: DealFilters) -> str:
    chips = [
        f"Status: {'All' if filters.status == FILTER_ALL else filters.status}",
        f"Type: {'All' if filters.property_type == FILTER_ALL else filters.property_type}",
        f"Location: {'All' if filters.location == FILTER_ALL else filters.location}",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str = ""):
    inject_base_styles()
    st.markdown(
        f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
        unsafe_allow_html=True,
    )
    if filter_summary_html:
        st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def set_state(state: DashboardState):
    st.session_state["dashboard_state"] = state


def go_to(page: str, deal_id: Optional[str] = None):
    current: DashboardState = st.session_state["dashboard_state"]
    new_state = current.select_deal(deal_id) if deal_id else current.navigate(page)
    set_state(new_state)
    st.session_state["nav"] = new_state.page


def reset_to_sample():
    st.session_state["store"] = load_sample_store()


# ---------- UI setup ----------
st.set_page_config(page_title="Real Estate Portfolio Dashboard", layout="wide")
inject_base_styles()
st.title("Real Estate Portfolio Dashboard")

if "store" not in st.session_state:
    st.session_state["store"] = load_dashboard_data()
if "dashboard_state" not in st.session_state:
    set_state(DashboardState())
if "nav" not in st.session_state:
    st.session_state["nav"] = st.session_state["dashboard_state"].page

store = st.session_state["store"]
state: DashboardState = st.session_state["dashboard_state"]
options = prepare_context(None, store)["filter_options"]

# ----- Sidebar: navigation + filters -----
with st.sidebar:
    st.markdown("### Navigate")
    page_ids = list(PAGES)
    st.radio(
        "Navigate",
        page_ids,
        key="nav",
        format_func=PAGES.get,
        on_change=lambda: go_to(st.session_state["nav"]),
    )

    st.markdown("---")
    st.markdown("### Filters")
    selections: Dict[str, str] = {}
    labels = {"status": "Status", "property_type": "Property Type", "location": "Location"}
    for field_name, label in labels.items():
        choices: List[str] = options[field_name]
        current = getattr(state.filters, field_name)
        index = choices.index(current) if current in choices else 0
        selections[field_name] = st.selectbox(
            label,
            options=choices,
            index=index,
            format_func=lambda v, label=label: f"All {label}" if v == FILTER_ALL else v,
        )
    state = state.with_filters(selections)

set_state(state)
ctx = prepare_context(state.filters, store)


# ----- Page renderers -----
def render_kpi_cards(kpis: Dict[str, float]):
    cols = st.columns(3)
    cols[0].metric("Total Deals", f"{kpis['total_deals']:,}")
    cols[1].metric("Total Units", f"{kpis['total_units']:,}")
    cols[2].metric("Portfolio Value", format_currency(kpis["total_value"]))
    cols = st.columns(3)
    cols[0].metric("Total Equity", format_currency(kpis["total_equity"]))
    cols[1].metric("Occupancy Rate", format_percent(kpis["occupancy_rate"]), help="Across all loaded units.")
    cols[2].metric("Avg Cap Rate", format_percent(kpis["avg_cap_rate"]), help="Sum of NOI x 4 / portfolio value.")


def render_overview_page():
    render_page_header("Portfolio Overview", "Home / Overview", format_filter_summary(state.filters))
    payload = compute_overview(state.filters, ctx)
    render_kpi_cards(payload["kpis"])

    charts = payload["charts"]
    cols = st.columns(2)
    with cols[0]:
        with card("Portfolio Value by Deal"):
            if charts["portfolio_value"]:
                st.vega_lite_chart(charts["portfolio_value"], use_container_width=True)
            else:
                st.info("No deals match the selected filters.")
    with cols[1]:
        with card("NOI & Cash Flow Trend"):
            if charts["noi_trend"]:
                st.vega_lite_chart(charts["noi_trend"], use_container_width=True)
            else:
                st.info("No financial periods loaded.")
    with card("Unit Mix"):
        if charts["unit_mix"]:
            st.vega_lite_chart(charts["unit_mix"], use_container_width=True)
        else:
            st.info("No units loaded.")


def render_pipeline_page():
    payload = compute_pipeline(state.filters, ctx)
    render_page_header("Deal Pipeline", "Home / Pipeline", format_filter_summary(state.filters))
    st.download_button(
        "Export to Excel",
        data=pipeline_xlsx_bytes(ctx["filtered_deals"]),
        file_name=pipeline_filename(),
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    if not payload["rows"]:
        st.info("No deals match the selected filters.")
        return
    table = pd.DataFrame(payload["rows"])
    for col in ["purchase_price", "market_value"]:
        table[col] = table[col].apply(format_currency)
    st.dataframe(table.drop(columns=["deal_id"]), hide_index=True, use_container_width=True)

    deal_ids = [r["deal_id"] for r in payload["rows"]]
    names = {r["deal_id"]: r["deal_name"] or r["deal_id"] for r in payload["rows"]}
    chosen = st.selectbox("Deal", deal_ids, format_func=names.get)
    st.button("View Details", on_click=go_to, args=("deal-detail", chosen))


def _render_unit_table(rows: List[dict]):
    if not rows:
        st.info("No units recorded for this deal.")
        return
    table = pd.DataFrame(rows)[["unit_number", "bedrooms", "bathrooms", "sq_ft", "current_rent", "market_rent", "rent_upside", "occupancy_status"]]
    styled = table.style.format(
        {"current_rent": format_currency, "market_rent": format_currency, "rent_upside": format_currency}
    ).map(lambda v: "color: #16a34a" if v > 0 else "color: #6b7280", subset=["rent_upside"])
    st.dataframe(styled, hide_index=True, use_container_width=True)


def _render_financial_table(rows: List[dict]):
    if not rows:
        return
    table = pd.DataFrame(rows)[["period", "gross_rent", "operating_expenses", "noi", "capex", "debt_service", "cash_flow"]]
    money = {c: format_currency for c in table.columns if c != "period"}
    styled = table.style.format(money).map(
        lambda v: "color: #16a34a" if v > 0 else "color: #dc2626", subset=["cash_flow"]
    )
    with card("Financial Performance"):
        st.dataframe(styled, hide_index=True, use_container_width=True)


def render_deal_detail_page():
    payload = compute_deal_detail(state.selected_deal_id, ctx) if state.selected_deal_id else None
    if payload is None:
        st.info("No deal selected.")
        st.button("Back to Pipeline", on_click=go_to, args=("pipeline",))
        return

    deal: Deal = find_deal(ctx["deals"], state.selected_deal_id)
    render_page_header(deal.deal_name or deal.deal_id, "Home / Pipeline / Deal")
    st.button("← Back to Pipeline", on_click=go_to, args=("pipeline",))

    units = related_units(deal, ctx["units"])
    metrics = payload["metrics"]
    report = deal_report_text(deal, DealMetrics(**metrics), units)
    st.download_button("Export Report", data=report.encode("utf-8"), file_name=deal_report_filename(deal), mime="text/plain")

    cols = st.columns(3)
    cols[0].metric("Total Cost", format_currency(metrics["total_cost"]))
    cols[1].metric("Market Value", format_currency(deal.market_value))
    cols[2].metric("Equity", format_currency(metrics["equity"]))
    cols = st.columns(3)
    cols[0].metric("LTV Ratio", format_percent(metrics["ltv"]))
    cols[1].metric("Cap Rate", format_percent(metrics["cap_rate"]))
    cols[2].metric("Occupancy", format_percent(metrics["occupancy_rate"]))

    with card("Unit Mix"):
        _render_unit_table(payload["units"])
    _render_financial_table(payload["financials"])


def render_data_page():
    render_page_header("Data Management", "Home / Data")
    st.button("Reset to Sample Data", on_click=reset_to_sample)

    summary = compute_data_summary(ctx)
    st.caption(f"Source: {summary['source']}")
    cols = st.columns(len(KINDS))
    for col, kind in zip(cols, KINDS):
        with col:
            with card(f"{kind.title()} ({summary['row_counts'][kind]})"):
                upload = st.file_uploader(f"Upload {kind.title()} CSV", type=["csv"], key=f"upload_{kind}")
                if upload is not None and st.session_state.get(f"_imported_{kind}") != upload.file_id:
                    try:
                        st.session_state["store"] = import_records(store, kind, upload.getvalue())
                        st.session_state[f"_imported_{kind}"] = upload.file_id
                        st.rerun()
                    except RecordImportError as exc:
                        st.error(str(exc))
                st.download_button(
                    "Download Template",
                    data=template_csv(kind).encode("utf-8"),
                    file_name=f"{kind}_template.csv",
                    mime="text/csv",
                    key=f"template_{kind}",
                )

    with st.expander("Loaded deals"):
        st.dataframe(deals_frame(ctx["deals"]), hide_index=True, use_container_width=True)


PAGE_RENDERERS = {
    "overview": render_overview_page,
    "pipeline": render_pipeline_page,
    "deal-detail": render_deal_detail_page,
    "data": render_data_page,
}

PAGE_RENDERERS[state.page]()
