import pytest

from portfolio.data import (
    RecordImportError,
    get_source_files,
    import_records,
    load_dashboard_data,
    parse_records,
    template_csv,
)
from portfolio.records import Deal, FinancialPeriod, RecordStore, Unit, as_number, build_store


def test_sample_store_shapes(sample_store):
    assert sample_store.source == "sample"
    assert [d.deal_id for d in sample_store.deals] == ["D001", "D002", "D003"]
    assert len(sample_store.units) == 6
    assert len(sample_store.financials) == 4

    d1 = sample_store.deals[0]
    assert d1.deal_name == "Sunset Apartments"
    assert d1.total_units == 48
    assert d1.market_value == pytest.approx(3_200_000)
    assert d1.status == "Active"

    u1 = sample_store.units[0]
    assert u1.unit_number == "101"
    assert u1.bedrooms == 1
    assert u1.occupancy_status == "Occupied"


def test_rows_without_identifier_are_discarded():
    csv_text = (
        "deal_id,deal_name,market_value\n"
        "D1,First,100\n"
        ",Orphan,200\n"
        "   ,Blank,300\n"
        "D2,Second,400\n"
    )
    deals = parse_records(csv_text, "deals")
    assert [d.deal_id for d in deals] == ["D1", "D2"]


def test_malformed_numeric_fields_become_zero():
    csv_text = (
        "unit_id,deal_id,bedrooms,current_rent,market_rent,occupancy_status\n"
        "U1,D1,two,n/a,,Occupied\n"
    )
    (unit,) = parse_records(csv_text, "units")
    assert unit.bedrooms == 0
    assert unit.current_rent == 0.0
    assert unit.market_rent == 0.0
    assert unit.sq_ft == 0.0
    assert unit.occupancy_status == "Occupied"


def test_unknown_columns_ignored_and_missing_columns_default():
    csv_text = "financial_id,period,noi,extra\nF1,2024-Q1,1000,zzz\n"
    (fin,) = parse_records(csv_text, "financials")
    assert fin == FinancialPeriod(financial_id="F1", period="2024-Q1", noi=1000.0)


def test_missing_key_column_raises():
    with pytest.raises(RecordImportError, match="deal_id"):
        parse_records("deal_name,market_value\nA,1\n", "deals")


def test_empty_file_raises():
    with pytest.raises(RecordImportError):
        parse_records(b"", "units")


def test_non_utf8_bytes_raise():
    with pytest.raises(RecordImportError):
        parse_records(b"\xff\xfe\xfa\x00", "units")


def test_unknown_kind_raises_key_error():
    with pytest.raises(KeyError):
        parse_records("a,b\n1,2\n", "leases")


def test_import_replaces_only_one_collection(sample_store):
    new_store = import_records(sample_store, "deals", "deal_id,deal_name\nX1,Only\n")
    assert [d.deal_id for d in new_store.deals] == ["X1"]
    assert new_store.units == sample_store.units
    assert new_store.financials == sample_store.financials
    assert new_store.source == "upload"
    # original snapshot untouched
    assert len(sample_store.deals) == 3


def test_template_csv_is_header_only():
    assert template_csv("units") == (
        "unit_id,deal_id,unit_number,bedrooms,bathrooms,sq_ft,current_rent,market_rent,occupancy_status\n"
    )


def test_from_row_coercion_boundary():
    deal = Deal.from_row({"deal_id": 7.0, "total_units": "12", "market_value": None, "status": "  Active "})
    assert deal.deal_id == "7"
    assert deal.total_units == 12
    assert deal.market_value == 0.0
    assert deal.status == "Active"
    assert Deal.from_row({"deal_name": "no id"}) is None
    assert Unit.from_row({"unit_id": float("nan")}) is None


def test_as_number_handles_garbage():
    assert as_number("1e3") == 1000.0
    assert as_number("abc") == 0.0
    assert as_number(float("inf")) == 0.0
    assert as_number(True) == 0.0


def test_build_store_from_mappings():
    store = build_store(deals=[{"deal_id": "D1"}, {"deal_name": "dropped"}], source="test")
    assert isinstance(store, RecordStore)
    assert [d.deal_id for d in store.deals] == ["D1"]
    assert store.units == ()


def test_store_replace_rejects_unknown_kind(sample_store):
    with pytest.raises(KeyError):
        sample_store.replace("leases", [])


def test_load_from_data_dir(tmp_path):
    (tmp_path / "deals.csv").write_text("deal_id,deal_name,market_value\nA1,Alpha,10\n")
    (tmp_path / "units.csv").write_text("unit_id,deal_id,occupancy_status\nU1,A1,Vacant\n")

    assert set(get_source_files(tmp_path)) == {"deals", "units"}
    store = load_dashboard_data(tmp_path)
    assert store.source == "files"
    assert [d.deal_id for d in store.deals] == ["A1"]
    assert [u.unit_id for u in store.units] == ["U1"]
    assert store.financials == ()


def test_empty_data_dir_falls_back_to_sample(tmp_path):
    store = load_dashboard_data(tmp_path)
    assert store.source == "sample"


def test_fractional_bedrooms_survive_import():
    units = parse_records(
        "unit_id,deal_id,bedrooms,bathrooms\nU1,D1,1.5,1\nU2,D1,2,2\n",
        "units",
    )
    assert [u.bedrooms for u in units] == [1.5, 2.0]
