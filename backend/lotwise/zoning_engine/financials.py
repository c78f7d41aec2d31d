"""
Pricing and physical modelling of candidate scenarios.

All numbers are feasibility-level estimates using 2025 BC construction
benchmarks.  They are NOT appraisals or cost estimates for lending.
"""

from __future__ import annotations

import math
from typing import Optional

from lotwise.models.schemas import (
    AllowanceSet,
    DevelopmentScenario,
    FinancialSummary,
    Parcel,
    RegulatoryFacts,
    ScenarioCompliance,
)
from lotwise.zoning_engine.scenarios import ScenarioTemplate

DEFAULT_MAX_HEIGHT_M = 10.7
SOFT_COST_RATIO = 0.25
RENT_MULTIPLE = 12
MIN_REVENUE_MULTIPLE = 1.15
BASE_CONSTRUCTION_MONTHS = 6

WOOD_FRAME_MAX_HEIGHT_M = 10.7
MIXED_MAX_HEIGHT_M = 18


# ──────────────────────────────────────────────────────────────────
# COST & PHYSICAL RULES
# ──────────────────────────────────────────────────────────────────

def construction_cost_per_sqft(total_units: int) -> float:
    if total_units <= 1:
        return 280
    if total_units <= 2:
        return 300
    if total_units <= 4:
        return 320
    return 350


def height_limit_m(max_height_m: Optional[float] = None) -> float:
    """Zoning height limit, or the default when missing or non-positive."""
    if max_height_m is None or max_height_m <= 0:
        return DEFAULT_MAX_HEIGHT_M
    return max_height_m


def building_height_m(total_units: int, max_height_m: Optional[float] = None) -> float:
    max_height = height_limit_m(max_height_m)
    if total_units <= 2:
        return min(9.0, max_height)
    if total_units <= 4:
        return min(10.7, max_height)
    return min(12.0, max_height)


def construction_type(height_m: float) -> str:
    if height_m <= WOOD_FRAME_MAX_HEIGHT_M:
        return "wood-frame"
    if height_m <= MIXED_MAX_HEIGHT_M:
        return "mixed"
    return "concrete"


def construction_months(total_gfa_sqft: float) -> int:
    return math.ceil(total_gfa_sqft / 1000) + BASE_CONSTRUCTION_MONTHS


def governing_fsr(template: ScenarioTemplate, allowances: AllowanceSet) -> float:
    """FSR that caps a scenario: its pathway's allowance, lifted by TOD when eligible."""
    fsr = allowances.allowance_for(template.pathway).fsr
    if allowances.tod.eligible:
        fsr = max(fsr, allowances.tod.fsr)
    return fsr


def summarize_financials(
    template: ScenarioTemplate,
    land_value: float,
) -> FinancialSummary:
    gfa = template.total_gfa_sqft
    cost_psf = construction_cost_per_sqft(template.total_units)
    construction = gfa * cost_psf
    soft = construction * SOFT_COST_RATIO
    total_cost = construction + soft + land_value

    annual_rent = sum(u.market_rent * 12 * u.count for u in template.unit_mix)
    revenue = max(annual_rent * RENT_MULTIPLE, total_cost * MIN_REVENUE_MULTIPLE)
    net_profit = revenue - total_cost
    roi = (net_profit / total_cost) * 100 if total_cost > 0 else 0.0
    months = construction_months(gfa)

    return FinancialSummary(
        cost_per_sqft=cost_psf,
        construction_cost=construction,
        soft_costs=soft,
        land_value=land_value,
        total_project_cost=total_cost,
        annual_rent=annual_rent,
        revenue=revenue,
        net_profit=net_profit,
        roi_pct=roi,
        construction_months=months,
        construction_duration=f"{months} months",
    )


# ──────────────────────────────────────────────────────────────────
# QUALITATIVE ATTRIBUTES
# ──────────────────────────────────────────────────────────────────

def _has_bylaw(regulatory: Optional[RegulatoryFacts], category: str) -> bool:
    return bool(regulatory) and any(b.category == category for b in regulatory.bylaws)


def _step_code_level(regulatory: Optional[RegulatoryFacts]) -> Optional[int]:
    if regulatory and regulatory.building_code and regulatory.building_code.step_code_required:
        return regulatory.building_code.step_code_min_level
    return None


def design_features(total_units: int, regulatory: Optional[RegulatoryFacts]) -> list[str]:
    features = [
        "Open concept layouts",
        "Energy-efficient windows and insulation",
        "Modern kitchen appliances",
        "In-suite laundry",
    ]
    level = _step_code_level(regulatory)
    if level is not None:
        features.append(f"Energy Step Code Level {level} compliance")
    if total_units > 2:
        features.extend(["Dedicated parking spaces", "Shared outdoor space"])
    return features


def risk_factors(total_units: int, regulatory: Optional[RegulatoryFacts]) -> list[str]:
    risks = []
    if _has_bylaw(regulatory, "tree"):
        risks.append("Tree retention requirements may limit design")
    if total_units > 4:
        risks.append("Development permit process may extend timeline")
    risks.extend(["Construction cost inflation", "Interest rate changes"])
    return risks


def opportunities(allowances: AllowanceSet) -> list[str]:
    result = []
    if allowances.ssmuh.eligible:
        result.extend(["SSMUH streamlined approval process", "Reduced parking requirements"])
    if allowances.tod.eligible:
        result.append("Transit-oriented development incentives")
    result.extend(["Strong rental market demand", "Property value appreciation"])
    return result


# ──────────────────────────────────────────────────────────────────
# SCENARIO ASSEMBLY
# ──────────────────────────────────────────────────────────────────

def price_scenario(
    template: ScenarioTemplate,
    parcel: Parcel,
    allowances: AllowanceSet,
    regulatory: Optional[RegulatoryFacts] = None,
) -> DevelopmentScenario:
    """Turn a template into a fully priced, compliance-checked scenario.

    Land coverage is capped at the governing FSR; the uncapped ratio decides
    ``zoning_compliant``.
    """
    gfa = template.total_gfa_sqft
    units = template.total_units
    fsr_cap = governing_fsr(template, allowances)
    raw_ratio = gfa / parcel.lot_size_sqft if parcel.lot_size_sqft > 0 else math.inf
    coverage = min(raw_ratio, fsr_cap)

    max_height = None
    if regulatory and regulatory.zoning:
        max_height = regulatory.zoning.max_height_m
    height = building_height_m(units, max_height)

    compliance = ScenarioCompliance(
        zoning_compliant=raw_ratio <= fsr_cap,
        ssmuh_compliant=allowances.ssmuh.eligible,
        tod_compliant=allowances.tod.eligible,
        building_code_compliant=height <= height_limit_m(max_height),
        municipal_bylaws_compliant=True,
        accessibility_compliant=units > 3,
    )

    return DevelopmentScenario(
        name=template.name,
        pathway=template.pathway,
        total_units=units,
        unit_mix=list(template.unit_mix),
        total_gfa_sqft=gfa,
        governing_fsr=fsr_cap,
        land_coverage=coverage,
        building_height_m=height,
        construction_type=construction_type(height),
        compliance=compliance,
        financials=summarize_financials(template, parcel.assessed_value),
        design_features=design_features(units, regulatory),
        risk_factors=risk_factors(units, regulatory),
        opportunities=opportunities(allowances),
    )
