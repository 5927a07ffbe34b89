from __future__ import annotations

import logging
import math
import threading
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, File, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DataSummaryResponse, DealFiltersModel, FilterOptionsResponse
from portfolio.data import (
    KINDS,
    RecordImportError,
    import_records,
    load_dashboard_data,
    prepare_context,
    template_csv,
)
from portfolio.export import (
    attachment_header,
    deal_report_filename,
    deal_report_text,
    pipeline_filename,
    pipeline_xlsx_bytes,
)
from portfolio.filters import DealFilters, normalize_filters
from portfolio.metrics_data import compute_data_summary
from portfolio.metrics_deal import compute_deal_detail, compute_deal_metrics, find_deal, related_financials, related_units
from portfolio.metrics_overview import compute_overview
from portfolio.metrics_pipeline import compute_pipeline
from portfolio.records import RecordStore


app = FastAPI(title="Portfolio Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Replaced wholesale by uploads and reset; None means "load from disk/sample".
# Guarded by _store_lock; uploads read and replace it as one step.
_store: Optional[RecordStore] = None
_store_lock = threading.RLock()


def current_store() -> RecordStore:
    global _store
    with _store_lock:
        if _store is None:
            _store = load_dashboard_data()
        return _store


def set_store(store: Optional[RecordStore]) -> None:
    global _store
    with _store_lock:
        _store = store


def _filters_from_model(model: Optional[DealFiltersModel]) -> DealFilters:
    raw = model.model_dump() if model is not None else {}
    return normalize_filters(raw)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _unknown_kind(kind: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"Unknown record kind: {kind}", "type": "NotFound"})


@app.get("/meta/filters", response_model=FilterOptionsResponse)
def meta_filters():
    try:
        ctx = prepare_context(None, current_store())
        return _json(ctx["filter_options"])
    except Exception as exc:
        logger.exception("meta_filters failed")
        return _error(exc)


@app.post("/overview")
def overview(filters: Optional[DealFiltersModel] = None):
    try:
        f = _filters_from_model(filters)
        ctx = prepare_context(f, current_store())
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/pipeline")
def pipeline(filters: Optional[DealFiltersModel] = None):
    try:
        f = _filters_from_model(filters)
        ctx = prepare_context(f, current_store())
        return _json(compute_pipeline(f, ctx))
    except Exception as exc:
        logger.exception("pipeline failed")
        return _error(exc)


@app.get("/deals/{deal_id}")
def deal_detail(deal_id: str):
    try:
        ctx = prepare_context(None, current_store())
        payload = compute_deal_detail(deal_id, ctx)
    except Exception as exc:
        logger.exception("deal_detail failed")
        return _error(exc)
    if payload is None:
        return JSONResponse(status_code=404, content={"error": f"Deal not found: {deal_id}", "type": "NotFound"})
    return _json(payload)


@app.get("/data", response_model=DataSummaryResponse)
def data_summary():
    try:
        ctx = prepare_context(None, current_store())
        return _json(compute_data_summary(ctx))
    except Exception as exc:
        logger.exception("data_summary failed")
        return _error(exc)


@app.post("/data/reset")
def reset_data():
    try:
        store = load_dashboard_data()
        set_store(store)
        ctx = prepare_context(None, store)
        return _json(compute_data_summary(ctx))
    except Exception as exc:
        logger.exception("reset_data failed")
        return _error(exc)


@app.post("/data/{kind}")
def upload_data(kind: str, file: UploadFile = File(...)):
    if kind not in KINDS:
        return _unknown_kind(kind)
    try:
        content = file.file.read()
        # read and replace under one lock
        with _store_lock:
            store = import_records(current_store(), kind, content)
            set_store(store)
    except RecordImportError as exc:
        logger.warning("upload %s rejected: %s", kind, exc)
        return _error(exc, status_code=400)
    except Exception as exc:
        logger.exception("upload_data failed")
        return _error(exc)
    ctx = prepare_context(None, store)
    return _json(compute_data_summary(ctx))


@app.get("/templates/{kind}")
def download_template(kind: str):
    if kind not in KINDS:
        return _unknown_kind(kind)
    return Response(
        content=template_csv(kind).encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": attachment_header(f"{kind}_template.csv")},
    )


@app.post("/export/pipeline")
def export_pipeline(filters: Optional[DealFiltersModel] = None):
    f = _filters_from_model(filters)
    ctx = prepare_context(f, current_store())
    content = pipeline_xlsx_bytes(ctx["filtered_deals"])
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": attachment_header(pipeline_filename())},
    )


@app.get("/export/deals/{deal_id}/report")
def export_deal_report(deal_id: str):
    store = current_store()
    deal = find_deal(store.deals, deal_id)
    if deal is None:
        return JSONResponse(status_code=404, content={"error": f"Deal not found: {deal_id}", "type": "NotFound"})
    try:
        units = related_units(deal, store.units)
        metrics = compute_deal_metrics(deal, units, related_financials(deal, store.financials))
        return Response(
            content=deal_report_text(deal, metrics, units).encode("utf-8"),
            media_type="text/plain; charset=utf-8",
            headers={"Content-Disposition": attachment_header(deal_report_filename(deal))},
        )
    except Exception as exc:
        logger.exception("export_deal_report failed")
        return _error(exc)
