from __future__ import annotations

import io
import re
from dataclasses import asdict
from datetime import date
from typing import List, Optional, Sequence
from urllib.parse import quote

import pandas as pd

from portfolio.metrics_deal import DealMetrics
from portfolio.records import DEAL_COLUMNS, Deal, Unit


def format_currency(value: object) -> str:
    """US dollars, no forced decimals (cents only when present)."""
    if value is None or pd.isna(value):
        value = 0.0
    amount = float(value)
    text = f"{abs(amount):,.2f}".rstrip("0").rstrip(".")
    return f"-${text}" if amount < 0 and text != "0" else f"${text}"


def format_percent(value: object) -> str:
    if value is None or pd.isna(value):
        value = 0.0
    return f"{float(value) * 100:.1f}%"


def _format_number(value: object) -> str:
    if value is None:
        return ""
    return f"{value:g}" if isinstance(value, float) else str(value)


def deals_frame(deals: Sequence[Deal]) -> pd.DataFrame:
    return pd.DataFrame([asdict(d) for d in deals], columns=DEAL_COLUMNS)


def pipeline_filename(today: Optional[date] = None) -> str:
    return f"pipeline_{(today or date.today()).isoformat()}.xlsx"


def pipeline_xlsx_bytes(deals: Sequence[Deal]) -> bytes:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        deals_frame(deals).to_excel(writer, index=False, sheet_name="Deals")
    return output.getvalue()


def deal_report_filename(deal: Deal, today: Optional[date] = None) -> str:
    return f"{deal.deal_name or deal.deal_id}_analysis_{(today or date.today()).isoformat()}.txt"


def attachment_header(filename: str) -> str:
    """Content-Disposition value safe for any file name (RFC 6266 / 5987)."""
    fallback = filename.encode("ascii", "ignore").decode("ascii")
    fallback = re.sub(r'[\x00-\x1f\x7f"\\]', "", fallback).strip() or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def deal_report_text(
    deal: Deal,
    metrics: DealMetrics,
    units: Sequence[Unit],
    today: Optional[date] = None,
) -> str:
    lines: List[str] = [
        f"Deal Analysis: {deal.deal_name or deal.deal_id}",
        f"Generated: {(today or date.today()).isoformat()}",
        "",
        f"Location: {deal.location or ''}",
        f"Property Type: {deal.property_type or ''}",
        f"Total Units: {deal.total_units}",
        "",
        "Financial Metrics:",
        f"Purchase Price: {format_currency(deal.purchase_price)}",
        f"Market Value: {format_currency(deal.market_value)}",
        f"Total Equity: {format_currency(metrics.equity)}",
        f"LTV: {format_percent(metrics.ltv)}",
        f"Cap Rate: {format_percent(metrics.cap_rate)}",
        f"Occupancy: {format_percent(metrics.occupancy_rate)}",
        "",
        "Unit Details:",
    ]
    for u in units:
        lines.append(
            f"{u.unit_number or u.unit_id} - {_format_number(u.bedrooms)}BR/{_format_number(u.bathrooms)}BA - "
            f"{_format_number(u.sq_ft)}sqft - Rent: {format_currency(u.current_rent)} - {u.occupancy_status or ''}"
        )
    return "\n".join(lines)
