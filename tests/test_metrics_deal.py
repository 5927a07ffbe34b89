import pytest

from portfolio.data import prepare_context
from portfolio.metrics_deal import (
    cash_flow,
    compute_deal_detail,
    compute_deal_metrics,
    find_deal,
    related_financials,
    related_units,
    rent_upside,
)
from portfolio.records import Deal, FinancialPeriod, Unit


def test_ltv_half():
    deal = Deal(deal_id="D1", market_value=2_000_000, debt_amount=1_000_000)
    assert compute_deal_metrics(deal, [], []).ltv == pytest.approx(0.5)


def test_zero_market_value_guards_ratios():
    deal = Deal(deal_id="D1", market_value=0, debt_amount=1_000_000)
    fins = [FinancialPeriod(financial_id="F1", deal_id="D1", noi=10_000)]
    metrics = compute_deal_metrics(deal, [], fins)
    assert metrics.ltv == 0.0
    assert metrics.cap_rate == 0.0
    assert metrics.equity == pytest.approx(-1_000_000)
    assert metrics.occupancy_rate == 0.0


def test_sample_deal_metrics(sample_store):
    deal = find_deal(sample_store.deals, "D001")
    units = related_units(deal, sample_store.units)
    fins = related_financials(deal, sample_store.financials)
    assert [u.unit_id for u in units] == ["U001", "U002", "U003"]
    assert [f.financial_id for f in fins] == ["F001", "F002"]

    metrics = compute_deal_metrics(deal, units, fins)
    assert metrics.total_cost == pytest.approx(2_700_000)
    assert metrics.equity == pytest.approx(1_400_000)
    assert metrics.ltv == pytest.approx(1_800_000 / 3_200_000)
    assert metrics.total_noi == pytest.approx(78_300)
    assert metrics.cap_rate == pytest.approx(78_300 * 4 / 3_200_000)
    assert metrics.occupancy_rate == pytest.approx(2 / 3)


def test_rent_upside_not_floored():
    assert rent_upside(Unit(unit_id="U1", current_rent=1_200, market_rent=1_300)) == pytest.approx(100)
    assert rent_upside(Unit(unit_id="U2", current_rent=1_500, market_rent=1_400)) == pytest.approx(-100)


def test_cash_flow():
    period = FinancialPeriod(financial_id="F1", noi=39_100, capex=8_000, debt_service=22_500)
    assert cash_flow(period) == pytest.approx(8_600)


def test_dangling_deal_has_empty_related_sets():
    deal = Deal(deal_id="GHOST", market_value=1_000)
    units = [Unit(unit_id="U1", deal_id="D1")]
    fins = [FinancialPeriod(financial_id="F1", deal_id="D1", noi=5)]
    assert related_units(deal, units) == []
    assert related_financials(deal, fins) == []
    assert find_deal([deal], "NOPE") is None
    assert find_deal([deal], None) is None


def test_deal_detail_payload(sample_store):
    ctx = prepare_context(None, sample_store)
    payload = compute_deal_detail("D002", ctx)
    assert payload["deal"]["deal_name"] == "Harbor View"
    assert payload["metrics"]["occupancy_rate"] == pytest.approx(1.0)

    upsides = [(u["unit_id"], u["rent_upside"], u["upside_positive"]) for u in payload["units"]]
    assert upsides == [("U004", 150.0, True), ("U005", 200.0, True)]

    (fin,) = payload["financials"]
    assert fin["cash_flow"] == pytest.approx(20_500)
    assert fin["cash_flow_positive"] is True


def test_deal_detail_unknown_id(sample_store):
    ctx = prepare_context(None, sample_store)
    assert compute_deal_detail("D999", ctx) is None
