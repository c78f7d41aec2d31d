"""Tests for comprehensive report aggregation over the two collaborators."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lotwise.models.schemas import AnalyzeRequest, Pathway, PropertyFacts
from lotwise.services.aggregator import (
    DEFAULT_ASSESSED_VALUE,
    DEFAULT_LOT_SIZE_SQFT,
    DEFAULT_ZONING,
    ReportAggregator,
    build_comprehensive_report,
)
from lotwise.services.municipal_data import StaticMunicipalProvider
from lotwise.zoning_engine.rule_tables import RuleTables, StaticRuleBook


# ──────────────────────────────────────────────────────────────
# FIXTURES
# ──────────────────────────────────────────────────────────────

PROPERTY_PAYLOAD = {
    "bcAssessment": {
        "address": "5100 Joyce St",
        "lotSize": 6820,
        "totalAssessedValue": 1_850_000,
        "zoning": "RT-1",
    },
    "mlsComparables": [
        {"soldPrice": 1_900_000, "squareFootage": 2200, "daysOnMarket": 12},
        {"listPrice": 2_050_000, "squareFootage": 2400, "daysOnMarket": 20},
    ],
    "marketAnalysis": {"averagePricePerSqFt": 850, "marketTrend": "rising", "averageDaysOnMarket": 18},
}


def _make_property_provider(payload=None, error=None):
    provider = MagicMock()
    provider.get_property_data = AsyncMock(return_value=payload, side_effect=error)
    return provider


def _make_regulatory_provider(payload=None, error=None):
    provider = MagicMock()
    provider.get_regulatory_analysis = AsyncMock(return_value=payload, side_effect=error)
    return provider


def _make_aggregator(property_provider=None, regulatory_provider=None, timeout_s=5.0):
    return ReportAggregator(
        property_provider=property_provider or _make_property_provider(),
        regulatory_provider=regulatory_provider or _make_regulatory_provider(),
        rules=StaticRuleBook(RuleTables.builtin()),
        timeout_s=timeout_s,
    )


class _SlowPropertyProvider:
    async def get_property_data(self, address, city):
        await asyncio.sleep(1)
        return PROPERTY_PAYLOAD


# ──────────────────────────────────────────────────────────────
# PARCEL RESOLUTION
# ──────────────────────────────────────────────────────────────

class TestResolveParcel:
    def test_all_defaults(self):
        parcel, defaults = ReportAggregator.resolve_parcel(
            AnalyzeRequest(address="1 Main St", municipality="Vancouver"), PropertyFacts(),
        )
        assert parcel.zoning == DEFAULT_ZONING
        assert parcel.lot_size_sqft == DEFAULT_LOT_SIZE_SQFT
        assert parcel.assessed_value == DEFAULT_ASSESSED_VALUE
        assert defaults == ["zoning", "lot_size_sqft", "assessed_value"]

    def test_request_wins_over_facts(self):
        request = AnalyzeRequest(
            address="1 Main St", municipality="Vancouver",
            lot_size_sqft=5000, zoning="RS-1", assessed_value=0,
        )
        facts = PropertyFacts(lot_size_sqft=6820, zoning="RT-1", assessed_value=1_850_000)
        parcel, defaults = ReportAggregator.resolve_parcel(request, facts)
        assert parcel.lot_size_sqft == 5000
        assert parcel.zoning == "RS-1"
        assert parcel.assessed_value == 0
        assert defaults == []

    def test_facts_fill_gaps(self):
        request = AnalyzeRequest(address="1 Main St", municipality="Vancouver")
        facts = PropertyFacts(lot_size_sqft=6820, zoning="RT-1", latitude=49.2, longitude=-123.0)
        parcel, defaults = ReportAggregator.resolve_parcel(request, facts)
        assert parcel.lot_size_sqft == 6820
        assert parcel.zoning == "RT-1"
        assert parcel.latitude == 49.2
        assert defaults == ["assessed_value"]


# ──────────────────────────────────────────────────────────────
# COLLABORATOR FAILURES
# ──────────────────────────────────────────────────────────────

class TestCollaboratorFailures:
    @pytest.mark.asyncio
    async def test_both_unavailable(self):
        aggregator = _make_aggregator(
            _make_property_provider(error=RuntimeError("down")),
            _make_regulatory_provider(error=RuntimeError("down")),
        )
        report = await aggregator.build(AnalyzeRequest(address="1 Main St", municipality="Vancouver"))

        assert report.defaults_applied == ["zoning", "lot_size_sqft", "assessed_value"]
        assert report.plan.parcel.zoning == "RS-1"
        assert report.plan.parcel.lot_size_sqft == 4000
        assert not any(report.data_sources.model_dump().values())
        assert report.design_constraints == []
        assert report.comparables == []
        assert report.cache_key is None

    @pytest.mark.asyncio
    async def test_defaults_still_produce_scenarios(self):
        aggregator = _make_aggregator()
        report = await aggregator.build(AnalyzeRequest(address="1 Main St", municipality="Vancouver"))
        # 4,000 SF SSMUH-eligible lot: suite, duplex and fourplex
        assert len(report.plan.scenarios) == 3
        assert report.plan.allowances.ssmuh.units == 4

    @pytest.mark.asyncio
    async def test_timeout_treated_as_unavailable(self):
        aggregator = _make_aggregator(property_provider=_SlowPropertyProvider(), timeout_s=0.01)
        report = await aggregator.build(AnalyzeRequest(address="1 Main St", municipality="Vancouver"))
        assert "lot_size_sqft" in report.defaults_applied
        assert not report.data_sources.property_assessment

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, caplog):
        aggregator = _make_aggregator(_make_property_provider(error=RuntimeError("boom")))
        await aggregator.build(AnalyzeRequest(address="1 Main St", municipality="Vancouver"))
        assert "Property data unavailable: boom" in caplog.text


# ──────────────────────────────────────────────────────────────
# COLLABORATOR ORDERING
# ──────────────────────────────────────────────────────────────

class TestCollaboratorOrdering:
    @pytest.mark.asyncio
    async def test_request_zoning_queries_both(self):
        prop = _make_property_provider(PROPERTY_PAYLOAD)
        reg = _make_regulatory_provider()
        await _make_aggregator(prop, reg).build(
            AnalyzeRequest(address="5100 Joyce St", municipality="Vancouver", zoning="RS-1"),
        )
        prop.get_property_data.assert_awaited_once_with("5100 Joyce St", "Vancouver")
        reg.get_regulatory_analysis.assert_awaited_once_with("Vancouver", "RS-1")

    @pytest.mark.asyncio
    async def test_regulatory_uses_resolved_zoning(self):
        reg = _make_regulatory_provider()
        await _make_aggregator(_make_property_provider(PROPERTY_PAYLOAD), reg).build(
            AnalyzeRequest(address="5100 Joyce St", municipality="Vancouver"),
        )
        reg.get_regulatory_analysis.assert_awaited_once_with("Vancouver", "RT-1")

    @pytest.mark.asyncio
    async def test_regulatory_falls_back_to_default_zoning(self):
        reg = _make_regulatory_provider()
        await _make_aggregator(_make_property_provider(error=RuntimeError("down")), reg).build(
            AnalyzeRequest(address="1 Main St", municipality="Vancouver"),
        )
        reg.get_regulatory_analysis.assert_awaited_once_with("Vancouver", "RS-1")


# ──────────────────────────────────────────────────────────────
# FULL REPORT
# ──────────────────────────────────────────────────────────────

class TestFullReport:
    @pytest.mark.asyncio
    async def test_provenance_all_sources(self):
        aggregator = _make_aggregator(
            _make_property_provider(PROPERTY_PAYLOAD), StaticMunicipalProvider(),
        )
        report = await aggregator.build(
            AnalyzeRequest(address="5100 Joyce St", municipality="Vancouver", zoning="RS-1"),
        )
        assert all(report.data_sources.model_dump().values())
        assert report.defaults_applied == []
        assert report.plan.parcel.assessed_value == 1_850_000
        assert report.market_analysis.price_trend == "rising"
        assert len(report.comparables) == 2
        assert "Maximum height: 10.7m" in report.design_constraints
        assert "Laneway house development opportunity" in report.regulatory_opportunities

    @pytest.mark.asyncio
    async def test_market_summarized_from_comparables(self):
        payload = {"mlsComparables": PROPERTY_PAYLOAD["mlsComparables"]}
        report = await _make_aggregator(_make_property_provider(payload)).build(
            AnalyzeRequest(address="1 Main St", municipality="Vancouver"),
        )
        assert report.market_analysis.avg_days_on_market == 16
        assert report.market_analysis.price_range_high == 2_050_000
        assert report.data_sources.mls_comparables
        assert not report.data_sources.property_assessment

    @pytest.mark.asyncio
    async def test_market_context_from_comparables(self):
        report = await _make_aggregator(_make_property_provider(PROPERTY_PAYLOAD)).build(
            AnalyzeRequest(address="5100 Joyce St", municipality="Vancouver"),
        )
        # Sold price preferred, list price otherwise: (1.9M + 2.05M) / 2
        assert report.market_context.estimated_market_value == 1_975_000

    @pytest.mark.asyncio
    async def test_supplied_distances(self):
        report = await _make_aggregator().build(AnalyzeRequest(
            address="5100 Joyce St", municipality="Vancouver",
            lot_size_sqft=6820, zoning="RS-1", assessed_value=2_100_000,
            rapid_transit_distance_m=150, frequent_transit_distance_m=150,
        ))
        assert report.plan.transit.distance_source == "supplied"
        assert report.plan.allowances.maximum_potential.pathway == Pathway.TOD
        assert report.plan.allowances.maximum_potential.units == 12

    @pytest.mark.asyncio
    async def test_bad_collaborator_coordinates_ignored(self):
        payload = {"bcAssessment": {**PROPERTY_PAYLOAD["bcAssessment"], "latitude": 249.2, "longitude": -123.0}}
        report = await _make_aggregator(_make_property_provider(payload)).build(
            AnalyzeRequest(address="5100 Joyce St", municipality="Vancouver"),
        )
        assert report.plan.parcel.latitude is None
        assert report.plan.transit.distance_source == "unknown"
        assert report.plan.transit.rapid_transit.distance_m is None

    @pytest.mark.asyncio
    async def test_convenience_wrapper(self):
        report = await build_comprehensive_report(
            AnalyzeRequest(address="1 Main St", municipality="Burnaby", lot_size_sqft=2800, zoning="R1"),
            property_provider=_make_property_provider(),
            regulatory_provider=StaticMunicipalProvider(),
            rules=StaticRuleBook(RuleTables.builtin()),
            timeout_s=5.0,
        )
        assert report.plan.allowances.ssmuh.units == 3
        assert len(report.plan.scenarios) == 1


# ──────────────────────────────────────────────────────────────
# CACHING
# ──────────────────────────────────────────────────────────────

class TestCaching:
    @pytest.mark.asyncio
    async def test_miss_stores_report(self):
        aggregator = _make_aggregator(_make_property_provider(PROPERTY_PAYLOAD), StaticMunicipalProvider())
        with patch("lotwise.services.aggregator.get_cached_analysis", new=AsyncMock(return_value=None)), \
             patch("lotwise.services.aggregator.set_cached_analysis", new=AsyncMock(return_value=True)) as mock_set:
            report = await aggregator.build(
                AnalyzeRequest(address="5100 Joyce St", municipality="Vancouver"), use_cache=True,
            )
            assert report.cache_key is not None
            mock_set.assert_awaited_once()
            cache_id, data = mock_set.call_args.args
            assert cache_id == report.cache_key
            assert data["plan"]["parcel"]["address"] == "5100 Joyce St"

    @pytest.mark.asyncio
    async def test_fallback_report_not_stored(self):
        aggregator = _make_aggregator(
            _make_property_provider(error=RuntimeError("down")),
            _make_regulatory_provider(error=RuntimeError("down")),
        )
        with patch("lotwise.services.aggregator.get_cached_analysis", new=AsyncMock(return_value=None)), \
             patch("lotwise.services.aggregator.set_cached_analysis", new=AsyncMock(return_value=True)) as mock_set:
            report = await aggregator.build(
                AnalyzeRequest(address="1 Main St", municipality="Vancouver"), use_cache=True,
            )
        assert report.defaults_applied == ["zoning", "lot_size_sqft", "assessed_value"]
        mock_set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_outage_not_stored(self):
        aggregator = _make_aggregator(
            _make_property_provider(PROPERTY_PAYLOAD),
            _make_regulatory_provider(error=asyncio.TimeoutError()),
        )
        with patch("lotwise.services.aggregator.get_cached_analysis", new=AsyncMock(return_value=None)), \
             patch("lotwise.services.aggregator.set_cached_analysis", new=AsyncMock(return_value=True)) as mock_set:
            await aggregator.build(
                AnalyzeRequest(address="5100 Joyce St", municipality="Vancouver"), use_cache=True,
            )
        mock_set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hit_skips_collaborators(self):
        request = AnalyzeRequest(address="1 Main St", municipality="Vancouver")
        cached = (await _make_aggregator().build(request)).model_dump(mode="json")

        prop = _make_property_provider()
        with patch("lotwise.services.aggregator.get_cached_analysis", new=AsyncMock(return_value=cached)):
            report = await _make_aggregator(property_provider=prop).build(request, use_cache=True)

        prop.get_property_data.assert_not_awaited()
        assert report.plan.parcel.address == "1 Main St"

    @pytest.mark.asyncio
    async def test_no_cache_by_default(self):
        with patch("lotwise.services.aggregator.get_cached_analysis", new=AsyncMock()) as mock_get:
            await _make_aggregator().build(AnalyzeRequest(address="1 Main St", municipality="Vancouver"))
            mock_get.assert_not_awaited()
