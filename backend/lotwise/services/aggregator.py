"""
Comprehensive report aggregation.

Fetches property facts and regulatory facts from the two collaborators,
resolves the parcel (request values, then collaborator values, then
defaults), runs the development optimizer and assembles a
``ComprehensiveReport`` with provenance flags.

Collaborator failures never fail the report: a timeout or error is logged,
the payload is treated as unavailable and defaults are used in its place.
When the request carries a zoning code both collaborators are queried
concurrently; otherwise the regulatory query waits for the resolved zoning.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Optional

from lotwise.config import settings
from lotwise.models.schemas import (
    AnalyzeRequest,
    ComprehensiveReport,
    DataSourcesUsed,
    MarketAnalysis,
    Parcel,
    PropertyFacts,
    RegulatoryFacts,
)
from lotwise.services.cache import (
    analysis_cache_id,
    get_cached_analysis,
    set_cached_analysis,
)
from lotwise.services.municipal_data import (
    RegulatoryProvider,
    get_regulatory_provider,
    parse_regulatory_payload,
)
from lotwise.services.property_data import (
    HttpPropertyProvider,
    PropertyDataProvider,
    parse_property_payload,
)
from lotwise.zoning_engine.market import build_market_context, summarize_market
from lotwise.zoning_engine.optimizer import DevelopmentOptimizer
from lotwise.zoning_engine.rule_tables import RuleBook, get_default_rulebook
from lotwise.zoning_engine.transit import supplied_distance_source

logger = logging.getLogger(__name__)

DEFAULT_ZONING = "RS-1"
DEFAULT_LOT_SIZE_SQFT = 4000.0
DEFAULT_ASSESSED_VALUE = 1_000_000.0


class ReportAggregator:
    """Builds comprehensive reports from collaborators and the optimizer."""

    def __init__(
        self,
        property_provider: Optional[PropertyDataProvider] = None,
        regulatory_provider: Optional[RegulatoryProvider] = None,
        rules: Optional[RuleBook] = None,
        timeout_s: Optional[float] = None,
    ):
        self.property_provider = property_provider or HttpPropertyProvider()
        self.regulatory_provider = regulatory_provider or get_regulatory_provider()
        self.rules = rules or get_default_rulebook()
        self.timeout_s = timeout_s if timeout_s is not None else settings.provider_timeout_s
        self.optimizer = DevelopmentOptimizer(self.rules)

    async def _guarded(self, label: str, call: Awaitable) -> Optional[dict]:
        """Await a collaborator call; timeouts and errors become None."""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %.1fs", label, self.timeout_s)
        except Exception as exc:
            logger.warning("%s unavailable: %s", label, exc)
        return None

    async def _fetch_property(self, request: AnalyzeRequest) -> Optional[dict]:
        return await self._guarded(
            "Property data",
            self.property_provider.get_property_data(request.address, request.municipality),
        )

    async def _fetch_regulatory(self, municipality: str, zoning: str) -> Optional[dict]:
        return await self._guarded(
            "Regulatory data",
            self.regulatory_provider.get_regulatory_analysis(municipality, zoning),
        )

    async def _collect(
        self, request: AnalyzeRequest,
    ) -> tuple[Optional[dict], Optional[dict]]:
        if request.zoning:
            property_raw, regulatory_raw = await asyncio.gather(
                self._fetch_property(request),
                self._fetch_regulatory(request.municipality, request.zoning),
            )
            return property_raw, regulatory_raw

        property_raw = await self._fetch_property(request)
        zoning = parse_property_payload(property_raw).zoning or DEFAULT_ZONING
        regulatory_raw = await self._fetch_regulatory(request.municipality, zoning)
        return property_raw, regulatory_raw

    @staticmethod
    def resolve_parcel(
        request: AnalyzeRequest,
        facts: PropertyFacts,
    ) -> tuple[Parcel, list[str]]:
        """Request values win, then collaborator values, then labelled defaults."""
        defaults: list[str] = []

        zoning = request.zoning or facts.zoning
        if not zoning:
            zoning = DEFAULT_ZONING
            defaults.append("zoning")

        lot_size = request.lot_size_sqft or facts.lot_size_sqft
        if not lot_size:
            lot_size = DEFAULT_LOT_SIZE_SQFT
            defaults.append("lot_size_sqft")

        value = request.assessed_value if request.assessed_value is not None else facts.assessed_value
        if value is None:
            value = DEFAULT_ASSESSED_VALUE
            defaults.append("assessed_value")

        parcel = Parcel(
            address=request.address,
            municipality=request.municipality,
            lot_size_sqft=lot_size,
            zoning=zoning,
            assessed_value=value,
            latitude=request.latitude if request.latitude is not None else facts.latitude,
            longitude=request.longitude if request.longitude is not None else facts.longitude,
        )
        return parcel, defaults

    async def build(self, request: AnalyzeRequest, use_cache: bool = False) -> ComprehensiveReport:
        cache_id = None
        if use_cache:
            cache_id = analysis_cache_id(
                request.address, request.municipality,
                request.model_dump(mode="json"), self.rules.version,
            )
            cached = await get_cached_analysis(cache_id)
            if cached:
                logger.info("Cache hit for %s", request.address)
                return ComprehensiveReport.model_validate(cached)

        property_raw, regulatory_raw = await self._collect(request)

        facts = parse_property_payload(property_raw)
        regulatory: Optional[RegulatoryFacts] = (
            parse_regulatory_payload(regulatory_raw) if regulatory_raw is not None else None
        )
        parcel, defaults = self.resolve_parcel(request, facts)

        market_analysis: Optional[MarketAnalysis] = facts.market_analysis
        if market_analysis is None and facts.comparables:
            market_analysis = summarize_market(facts.comparables)

        distance_source = supplied_distance_source(
            request.rapid_transit_distance_m, request.frequent_transit_distance_m,
        )

        plan = self.optimizer.optimize(
            parcel,
            distance_source=distance_source,
            regulatory=regulatory,
            market_analysis=market_analysis,
        )

        report = ComprehensiveReport(
            plan=plan,
            data_sources=DataSourcesUsed(
                property_assessment=facts.has_assessment,
                mls_comparables=bool(facts.comparables),
                municipal_zoning=bool(regulatory and regulatory.zoning),
                municipal_bylaws=bool(regulatory and regulatory.bylaws),
                building_codes=bool(regulatory and regulatory.building_code),
            ),
            defaults_applied=defaults,
            market_context=build_market_context(parcel, facts.comparables, self.rules),
            market_analysis=market_analysis or MarketAnalysis(),
            comparables=facts.comparables,
            design_constraints=list(regulatory.design_constraints) if regulatory else [],
            regulatory_opportunities=list(regulatory.opportunities) if regulatory else [],
            analysis_date=datetime.now(timezone.utc),
            cache_key=cache_id,
        )

        if defaults:
            logger.info("Report for %s used defaults for: %s", request.address, ", ".join(defaults))

        if cache_id:
            if property_raw is None or regulatory_raw is None:
                logger.info("Not caching report for %s: collaborator data incomplete", request.address)
            else:
                await set_cached_analysis(cache_id, report.model_dump(mode="json"))

        return report


async def build_comprehensive_report(
    request: AnalyzeRequest,
    *,
    property_provider: Optional[PropertyDataProvider] = None,
    regulatory_provider: Optional[RegulatoryProvider] = None,
    rules: Optional[RuleBook] = None,
    timeout_s: Optional[float] = None,
    use_cache: bool = False,
) -> ComprehensiveReport:
    """Convenience wrapper around ``ReportAggregator.build``."""
    aggregator = ReportAggregator(
        property_provider=property_provider,
        regulatory_provider=regulatory_provider,
        rules=rules,
        timeout_s=timeout_s,
    )
    return await aggregator.build(request, use_cache=use_cache)
