"""
Property data collaborator: BC Assessment record + MLS comparables.

The upstream service returns loosely-shaped JSON::

    {
      "bcAssessment": {"address": ..., "lotSize": 6820, "totalAssessedValue": 1850000,
                       "zoning": "RS-1", ...},
      "mlsComparables": [{"soldPrice": ..., "listPrice": ..., "squareFootage": ...,
                          "daysOnMarket": ...}, ...],
      "marketAnalysis": {"averagePricePerSqFt": ..., "marketTrend": "rising",
                         "averageDaysOnMarket": ..., "priceRange": {"min": ..., "max": ...}}
    }

``parse_property_payload`` converts that into ``PropertyFacts`` once, at the
boundary.  Unusable fields become ``None``; snake_case keys are accepted too.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from lotwise.config import settings
from lotwise.models.schemas import Comparable, MarketAnalysis, PropertyFacts
from lotwise.services.payloads import parse_float, parse_int, parse_positive, pick

logger = logging.getLogger(__name__)

VALID_TRENDS = ("rising", "falling", "stable")


class PropertyDataProvider(Protocol):
    async def get_property_data(self, address: str, city: str) -> Optional[dict]: ...


class HttpPropertyProvider:
    """Fetch raw property JSON from the configured property data service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url if base_url is not None else settings.property_data_url
        self.api_key = api_key if api_key is not None else settings.property_data_api_key
        self.timeout = timeout or settings.provider_timeout_s

    async def get_property_data(self, address: str, city: str) -> Optional[dict]:
        if not self.base_url:
            logger.debug("Property data URL not configured")
            return None

        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(
                self.base_url,
                params={"address": address, "city": city},
                headers=headers,
            )
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            data = resp.json()

        return data if isinstance(data, dict) else None


# ──────────────────────────────────────────────────────────────────
# BOUNDARY PARSING
# ──────────────────────────────────────────────────────────────────

def _parse_comparable(record: dict) -> Comparable:
    return Comparable(
        address=str(pick(record, "address") or ""),
        sold_price=parse_positive(pick(record, "soldPrice", "sold_price", "price")),
        list_price=parse_positive(pick(record, "listPrice", "list_price")),
        sqft=parse_positive(pick(record, "squareFootage", "sqft", "square_footage")),
        days_on_market=parse_int(pick(record, "daysOnMarket", "days_on_market", "dom")),
    )


def _parse_market_analysis(record: dict) -> MarketAnalysis:
    price_range = pick(record, "priceRange", "price_range")
    if not isinstance(price_range, dict):
        price_range = {}
    trend = str(pick(record, "marketTrend", "price_trend", "trend") or "stable").lower()
    dom = parse_float(pick(record, "averageDaysOnMarket", "avg_days_on_market"))
    return MarketAnalysis(
        avg_price_per_sqft=parse_float(pick(record, "averagePricePerSqFt", "avg_price_per_sqft")) or 0.0,
        price_trend=trend if trend in VALID_TRENDS else "stable",
        avg_days_on_market=dom if dom is not None and dom > 0 else MarketAnalysis().avg_days_on_market,
        price_range_low=parse_float(pick(price_range, "min", "low")) or 0.0,
        price_range_high=parse_float(pick(price_range, "max", "high")) or 0.0,
    )


def parse_property_payload(payload: Optional[dict]) -> PropertyFacts:
    """Convert a raw property payload into ``PropertyFacts``.

    Missing or malformed sections yield ``None`` fields rather than errors.
    """
    if not isinstance(payload, dict):
        return PropertyFacts()

    assessment = pick(payload, "bcAssessment", "assessment")
    if not isinstance(assessment, dict):
        assessment = {}

    raw_comps = pick(payload, "mlsComparables", "comparables") or []
    comparables = [
        _parse_comparable(c) for c in raw_comps if isinstance(c, dict)
    ] if isinstance(raw_comps, list) else []

    raw_market = pick(payload, "marketAnalysis", "market_analysis")
    market = _parse_market_analysis(raw_market) if isinstance(raw_market, dict) else None

    zoning = pick(assessment, "zoning", "zoningCode", "zone_code")
    address = pick(assessment, "address")
    lat = parse_float(pick(assessment, "latitude", "lat"))
    lng = parse_float(pick(assessment, "longitude", "lng", "lon"))
    if lat is None or lng is None or not (-90 <= lat <= 90 and -180 <= lng <= 180):
        lat = lng = None

    return PropertyFacts(
        address=str(address) if address is not None else None,
        lot_size_sqft=parse_positive(pick(assessment, "lotSize", "lot_size_sqft", "lot_size")),
        assessed_value=parse_positive(pick(assessment, "totalAssessedValue", "assessedValue", "assessed_value")),
        zoning=(str(zoning).strip() or None) if zoning is not None else None,
        latitude=lat,
        longitude=lng,
        has_assessment=bool(assessment),
        comparables=comparables,
        market_analysis=market,
    )
