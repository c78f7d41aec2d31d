"""
Property metrics and market context.

Market demand is scored from average days on market and the price trend of
comparable sales.  The market context estimates a current market value from
comparables (falling back to an assessed-value uplift) and a rough
redevelopment ROI used to label viability.
"""

from __future__ import annotations

from typing import Optional

from lotwise.models.schemas import (
    Comparable,
    MarketAnalysis,
    MarketContext,
    Parcel,
    PropertyMetrics,
)
from lotwise.zoning_engine.rule_tables import RuleBook, get_default_rulebook

BASE_DEMAND_SCORE = 70
ASSESSMENT_TO_MARKET = 1.18
REDEVELOPMENT_VALUE_UPLIFT = 1.25
# Construction cost basis: $/SF times a nominal 1,000 SF build
NOMINAL_BUILD_SQFT = 1000

# (days-on-market upper bound, demand score), fastest market first
DEMAND_BANDS = [
    (15, 95),
    (30, 85),
    (60, 75),
]

TREND_ADJUSTMENT = {"rising": 10, "falling": -10}


def market_demand_score(analysis: Optional[MarketAnalysis]) -> int:
    score = BASE_DEMAND_SCORE
    if analysis is None:
        return score
    for upper, band_score in DEMAND_BANDS:
        if analysis.avg_days_on_market < upper:
            score = band_score
            break
    score += TREND_ADJUSTMENT.get(analysis.price_trend, 0)
    return min(score, 100)


def build_property_metrics(
    parcel: Parcel,
    analysis: Optional[MarketAnalysis] = None,
    rules: Optional[RuleBook] = None,
) -> PropertyMetrics:
    rules = rules or get_default_rulebook()
    return PropertyMetrics(
        lot_size_sqft=parcel.lot_size_sqft,
        current_value=parcel.assessed_value,
        current_zoning=parcel.zoning,
        transit_score=rules.transit_score(parcel.municipality),
        market_demand_score=market_demand_score(analysis),
    )


def summarize_market(comparables: list[Comparable]) -> MarketAnalysis:
    """Market analysis derived from comparable listings.

    List price is preferred over sold price for the average, matching how
    listing feeds report active inventory.
    """
    if not comparables:
        return MarketAnalysis()

    prices = [p for p in (c.list_price or c.sold_price or 0 for c in comparables) if p > 0]
    sqfts = [c.sqft for c in comparables if c.sqft and c.sqft > 0]
    doms = [c.days_on_market for c in comparables if c.days_on_market and c.days_on_market > 0]

    avg_price = sum(prices) / len(prices) if prices else 0.0
    avg_sqft = sum(sqfts) / len(sqfts) if sqfts else 0.0

    return MarketAnalysis(
        avg_price_per_sqft=round(avg_price / avg_sqft) if avg_sqft > 0 else 0.0,
        price_trend="stable",
        avg_days_on_market=round(sum(doms) / len(doms)) if doms else MarketAnalysis().avg_days_on_market,
        price_range_low=min(prices) if prices else 0.0,
        price_range_high=max(prices) if prices else 0.0,
    )


def estimate_market_value(assessed_value: float, comparables: list[Comparable]) -> float:
    prices = [c.sold_price or c.list_price for c in comparables]
    prices = [p for p in prices if p]
    if prices:
        return sum(prices) / len(prices)
    return assessed_value * ASSESSMENT_TO_MARKET


def development_viability(expected_roi_pct: float) -> str:
    if expected_roi_pct > 15:
        return "High"
    if expected_roi_pct > 8:
        return "Medium"
    return "Low"


def build_market_context(
    parcel: Parcel,
    comparables: list[Comparable],
    rules: Optional[RuleBook] = None,
) -> MarketContext:
    rules = rules or get_default_rulebook()
    market_value = estimate_market_value(parcel.assessed_value, comparables)
    cost_psf = rules.construction_cost_psf(parcel.municipality)
    investment = market_value + cost_psf * NOMINAL_BUILD_SQFT
    roi = (
        (market_value * REDEVELOPMENT_VALUE_UPLIFT - investment) / investment * 100
        if investment > 0 else 0.0
    )
    return MarketContext(
        estimated_market_value=round(market_value, 2),
        construction_cost_psf=cost_psf,
        expected_roi_pct=round(roi, 2),
        development_viability=development_viability(roi),
    )
