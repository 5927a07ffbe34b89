from portfolio.filters import (
    FILTER_ALL,
    DealFilters,
    deal_matches,
    filter_deals,
    filter_options,
    normalize_filters,
)
from portfolio.records import Deal


def _deal(deal_id, status="Active", property_type="Multifamily", location="Austin"):
    return Deal(deal_id=deal_id, status=status, property_type=property_type, location=location)


DEALS = [
    _deal("D1"),
    _deal("D2", location="Miami"),
    _deal("D3", status="Closed", location="Denver"),
    _deal("D4", property_type="Retail", location="Austin"),
]


def test_all_filter_returns_original_sequence():
    filters = DealFilters()
    assert filters.is_unfiltered()
    assert filter_deals(DEALS, filters) == DEALS


def test_each_field_is_exact_match():
    assert [d.deal_id for d in filter_deals(DEALS, DealFilters(status="Closed"))] == ["D3"]
    assert [d.deal_id for d in filter_deals(DEALS, DealFilters(location="Austin"))] == ["D1", "D4"]
    assert [d.deal_id for d in filter_deals(DEALS, DealFilters(property_type="Retail"))] == ["D4"]


def test_fields_combine_with_and():
    f = DealFilters(status="Active", location="Austin", property_type="Multifamily")
    assert [d.deal_id for d in filter_deals(DEALS, f)] == ["D1"]


def test_match_is_case_sensitive_and_not_partial():
    assert not deal_matches(DEALS[0], DealFilters(status="active"))
    assert not deal_matches(DEALS[0], DealFilters(location="Aus"))


def test_filtering_is_idempotent():
    f = DealFilters(status="Active")
    once = filter_deals(DEALS, f)
    assert filter_deals(once, f) == once


def test_missing_attribute_only_matches_all():
    deal = Deal(deal_id="X")
    assert deal_matches(deal, DealFilters())
    assert not deal_matches(deal, DealFilters(status="Active"))


def test_options_first_seen_order_from_unfiltered_deals():
    options = filter_options(DEALS)
    assert options["status"] == [FILTER_ALL, "Active", "Closed"]
    assert options["property_type"] == [FILTER_ALL, "Multifamily", "Retail"]
    assert options["location"] == [FILTER_ALL, "Austin", "Miami", "Denver"]


def test_options_skip_missing_and_literal_all():
    options = filter_options([Deal(deal_id="A"), _deal("B", status="all")])
    assert options["status"] == [FILTER_ALL]


def test_normalize_filters_accepts_camel_case_and_blanks():
    f = normalize_filters({"status": "Active", "propertyType": "Retail", "location": " "})
    assert f == DealFilters(status="Active", property_type="Retail", location=FILTER_ALL)
    assert normalize_filters(None) == DealFilters()
    assert normalize_filters({"property_type": "Office", "propertyType": "Retail"}).property_type == "Office"
