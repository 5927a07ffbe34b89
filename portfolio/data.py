from __future__ import annotations

import io
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

import pandas as pd

from portfolio.filters import DealFilters, filter_deals, filter_options, normalize_filters
from portfolio.records import (
    DEAL_COLUMNS,
    DEAL_NUMERIC,
    FINANCIAL_COLUMNS,
    FINANCIAL_NUMERIC,
    UNIT_COLUMNS,
    UNIT_NUMERIC,
    Deal,
    RecordStore,
    build_deals,
    build_financials,
    build_units,
)
from portfolio.sample_data import SAMPLE_DEALS_CSV, SAMPLE_FINANCIALS_CSV, SAMPLE_UNITS_CSV


logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("PORTFOLIO_DATA_DIR") or Path(__file__).resolve().parents[1] / "data")


class RecordImportError(ValueError):
    """Raised when an uploaded or on-disk CSV cannot be turned into records."""


class RecordKind(NamedTuple):
    columns: List[str]
    numeric: List[str]
    key: str
    filename: str
    build: Callable[[Iterable[Mapping[str, Any]]], list]


KINDS: Dict[str, RecordKind] = {
    "deals": RecordKind(DEAL_COLUMNS, DEAL_NUMERIC, "deal_id", "deals.csv", build_deals),
    "units": RecordKind(UNIT_COLUMNS, UNIT_NUMERIC, "unit_id", "units.csv", build_units),
    "financials": RecordKind(FINANCIAL_COLUMNS, FINANCIAL_NUMERIC, "financial_id", "financials.csv", build_financials),
}


def get_kind(kind: str) -> RecordKind:
    try:
        return KINDS[kind]
    except KeyError:
        raise KeyError(f"Unknown record kind: {kind!r}") from None


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col].astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series
    return df


def read_frame(source: Union[str, bytes], kind: str) -> pd.DataFrame:
    """Parse CSV text into a frame restricted to the schema columns of ``kind``."""
    spec = get_kind(kind)
    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise RecordImportError(f"{kind}: file is not UTF-8 text") from exc
    try:
        df = pd.read_csv(io.StringIO(source), dtype=str, skip_blank_lines=True)
    except pd.errors.EmptyDataError as exc:
        raise RecordImportError(f"{kind}: file is empty") from exc
    except pd.errors.ParserError as exc:
        raise RecordImportError(f"{kind}: could not parse CSV ({exc})") from exc

    df.columns = [str(c).strip() for c in df.columns]
    df = drop_duplicate_columns(df)
    if spec.key not in df.columns:
        raise RecordImportError(f"{kind}: missing required column '{spec.key}'")

    df = df[[c for c in spec.columns if c in df.columns]].copy()
    text_cols = [c for c in df.columns if c not in spec.numeric]
    df = coerce_str_safe(df, text_cols)
    df = numericize(df, spec.numeric)
    return df


def parse_records(source: Union[str, bytes], kind: str) -> list:
    df = read_frame(source, kind)
    spec = get_kind(kind)
    rows = df.astype(object).where(df.notna(), None).to_dict(orient="records")
    records = spec.build(rows)
    dropped = len(rows) - len(records)
    if dropped:
        logger.warning("Dropped %d %s rows without %s", dropped, kind, spec.key)
    logger.info("Parsed %d %s records", len(records), kind)
    return records


def import_records(store: RecordStore, kind: str, source: Union[str, bytes]) -> RecordStore:
    """Replace one collection of ``store`` wholesale with the parsed upload."""
    records = parse_records(source, kind)
    return store.replace(kind, records, source="upload")


def template_csv(kind: str) -> str:
    return ",".join(get_kind(kind).columns) + "\n"


# ---------------- Loaders ----------------
@lru_cache(maxsize=1)
def load_sample_store() -> RecordStore:
    return RecordStore(
        deals=tuple(parse_records(SAMPLE_DEALS_CSV, "deals")),
        units=tuple(parse_records(SAMPLE_UNITS_CSV, "units")),
        financials=tuple(parse_records(SAMPLE_FINANCIALS_CSV, "financials")),
        source="sample",
    )


def get_source_files(data_dir: Optional[Path] = None) -> Dict[str, Path]:
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    files = {kind: base / spec.filename for kind, spec in KINDS.items()}
    return {kind: path for kind, path in files.items() if path.is_file()}


def file_signature(files: Dict[str, Path]) -> Tuple[Tuple[str, str, float], ...]:
    return tuple((kind, str(path), path.stat().st_mtime) for kind, path in sorted(files.items()))


@lru_cache(maxsize=4)
def _load_store_cached(files_sig: Tuple[Tuple[str, str, float], ...]) -> RecordStore:
    store = RecordStore(source="files")
    for kind, path, _ in files_sig:
        records = parse_records(Path(path).read_bytes(), kind)
        store = store.replace(kind, records)
    logger.info(
        "Loaded store from %s: %d deals, %d units, %d financials",
        ", ".join(path for _, path, _ in files_sig),
        len(store.deals),
        len(store.units),
        len(store.financials),
    )
    return store


def load_dashboard_data(data_dir: Optional[Path] = None) -> RecordStore:
    """Load the store from the data directory, falling back to the sample data."""
    files = get_source_files(data_dir)
    if not files:
        return load_sample_store()
    return _load_store_cached(file_signature(files))


@lru_cache(maxsize=8)
def _cached_filter_options(deals: Tuple[Deal, ...]) -> Dict[str, Tuple[str, ...]]:
    # keyed on the deal collection; filter changes reuse the same option sets
    return {name: tuple(values) for name, values in filter_options(deals).items()}


def deal_filter_options(deals: Tuple[Deal, ...]) -> Dict[str, List[str]]:
    return {name: list(values) for name, values in _cached_filter_options(tuple(deals)).items()}


def prepare_context(filters: dict | DealFilters | None, store: RecordStore) -> Dict[str, Any]:
    filt = filters if isinstance(filters, DealFilters) else normalize_filters(filters or {})
    deals = list(store.deals)
    return {
        "filters": filt,
        "deals": deals,
        "filtered_deals": filter_deals(deals, filt),
        "units": list(store.units),
        "financials": list(store.financials),
        "filter_options": deal_filter_options(store.deals),
        "source": store.source,
    }
