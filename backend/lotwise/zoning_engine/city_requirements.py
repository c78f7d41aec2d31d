"""
Municipality requirement flags and structured design guidance.
"""

from __future__ import annotations

from typing import Optional

from lotwise.models.schemas import (
    CitySpecificRequirements,
    DesignGuidance,
    DevelopmentScenario,
    RegulatoryFacts,
)
from lotwise.zoning_engine.rule_tables import (
    RuleBook,
    get_default_rulebook,
    normalize_municipality,
)

BASE_MATERIALS = ["Fiber cement siding", "Aluminum windows", "Asphalt shingles"]
WOOD_FRAME_MATERIALS = ["Wood trim accents", "Composite decking"]
BASE_SUSTAINABILITY = ["LED lighting", "High-efficiency HVAC", "Low-flow plumbing fixtures"]
STEP_CODE_SUSTAINABILITY = ["Enhanced building envelope", "Heat recovery ventilation"]


def analyze_city_requirements(
    municipality: str,
    regulatory: Optional[RegulatoryFacts],
    rules: Optional[RuleBook] = None,
) -> CitySpecificRequirements:
    rules = rules or get_default_rulebook()
    zoning = regulatory.zoning if regulatory else None
    building_code = regulatory.building_code if regulatory else None
    bylaws = regulatory.bylaws if regulatory else []

    return CitySpecificRequirements(
        development_permit_required=bool(zoning and zoning.development_permit_requirements),
        community_amenity_contribution=rules.amenity_contribution(municipality),
        parking_reduction=bool(zoning and "reduced" in zoning.parking_requirements.lower()),
        energy_step_code_level=(building_code.step_code_min_level if building_code else None) or 1,
        tree_retention_required=any(b.category == "tree" for b in bylaws),
        heritage_designation=any(b.category == "heritage" for b in bylaws),
    )


def architectural_style(municipality: str, total_units: int) -> str:
    if normalize_municipality(municipality) == "vancouver":
        if total_units <= 2:
            return "Contemporary Vancouver Special"
        return "Modern West Coast Contemporary"
    if total_units <= 2:
        return "Modern Craftsman"
    return "Contemporary Multi-Family"


def material_palette(construction_type: str) -> list[str]:
    materials = list(BASE_MATERIALS)
    if construction_type == "wood-frame":
        materials.extend(WOOD_FRAME_MATERIALS)
    return materials


def sustainability_features(regulatory: Optional[RegulatoryFacts]) -> list[str]:
    features = list(BASE_SUSTAINABILITY)
    if regulatory and regulatory.building_code and regulatory.building_code.step_code_required:
        features.extend(STEP_CODE_SUSTAINABILITY)
    return features


def build_design_guidance(
    municipality: str,
    scenario: DevelopmentScenario,
    regulatory: Optional[RegulatoryFacts],
) -> DesignGuidance:
    """Structured design guidance for the recommended scenario."""
    zoning = regulatory.zoning if regulatory else None
    return DesignGuidance(
        architectural_style=architectural_style(municipality, scenario.total_units),
        material_palette=material_palette(scenario.construction_type),
        sustainability_features=sustainability_features(regulatory),
        landscape_requirements=list(zoning.landscaping_requirements) if zoning else [],
        design_constraints=list(regulatory.design_constraints) if regulatory else [],
    )
