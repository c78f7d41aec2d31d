"""
Parcel-level compliance flags and municipality-specific requirements.

Flags are derived from the parcel, its transit profile and the rule book;
no numeric modelling happens here.  Special requirements come from a small
registry of pattern rules, each matching on municipality and/or zoning::

    register_requirement(RequirementRule(
        key="vancouver_laneway",
        municipality="vancouver",
        text="Laneway house potential",
    ))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from lotwise.models.schemas import (
    AllowanceSet,
    ComplianceRecord,
    Parcel,
    TransitProfile,
)
from lotwise.zoning_engine.allowances import (
    SSMUH_MIN_POPULATION,
    SSMUH_SIXPLEX_MIN_LOT_M2,
    SSMUH_SMALL_LOT_M2,
    is_single_family_or_duplex,
)
from lotwise.zoning_engine.rule_tables import (
    RuleBook,
    get_default_rulebook,
    normalize_municipality,
)

logger = logging.getLogger(__name__)

SSMUH_REQUIREMENTS = [
    "Municipality over 5,000 population",
    "Within urban containment boundary",
    "Single-family or duplex zone",
    "6-plex requires within 400m of frequent transit",
]

DENSITY_TIERS = {
    "200m": "Tier 1: 5.0 FSR minimum",
    "400m": "Tier 2: 4.0 FSR minimum",
    "800m": "Tier 3: 3.0 FSR minimum",
    "none": "Not in TOD zone",
}

HEIGHT_ALLOWANCES = {
    "200m": "Up to 20 storeys",
    "400m": "Up to 12 storeys",
    "800m": "Up to 8 storeys",
    "none": "Standard zoning heights",
}


# ──────────────────────────────────────────────────────────────────
# SPECIAL REQUIREMENT REGISTRY
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RequirementRule:
    """A requirement that applies when municipality and zoning both match.

    ``municipality`` matches the normalized name exactly; ``zoning_contains``
    is a case-insensitive substring test.  ``None`` matches anything.
    """
    key: str
    text: str
    municipality: Optional[str] = None
    zoning_contains: Optional[str] = None

    def matches(self, municipality: str, zoning: str) -> bool:
        if self.municipality is not None and normalize_municipality(municipality) != self.municipality:
            return False
        if self.zoning_contains is not None and self.zoning_contains.upper() not in (zoning or "").upper():
            return False
        return True


REQUIREMENT_REGISTRY: dict[str, RequirementRule] = {}


def register_requirement(rule: RequirementRule) -> None:
    REQUIREMENT_REGISTRY[rule.key] = rule


register_requirement(RequirementRule(
    key="vancouver_laneway",
    municipality="vancouver",
    text="Laneway house potential",
))
register_requirement(RequirementRule(
    key="vancouver_character",
    municipality="vancouver",
    text="Character retention policy may apply",
))
register_requirement(RequirementRule(
    key="townhouse_standards",
    zoning_contains="RT",
    text="Townhouse development standards",
))


def special_requirements(municipality: str, zoning: str) -> list[str]:
    """Requirements from every registered rule matching the parcel, in registration order."""
    return [
        rule.text for rule in REQUIREMENT_REGISTRY.values()
        if rule.matches(municipality, zoning)
    ]


# ──────────────────────────────────────────────────────────────────
# EVALUATOR
# ──────────────────────────────────────────────────────────────────

def evaluate_compliance(
    parcel: Parcel,
    transit: TransitProfile,
    allowances: AllowanceSet,
    rules: Optional[RuleBook] = None,
) -> ComplianceRecord:
    rules = rules or get_default_rulebook()
    lot_m2 = parcel.lot_size_m2
    populous = rules.population(parcel.municipality) > SSMUH_MIN_POPULATION
    tod_zone = allowances.tod.tod_zone

    return ComplianceRecord(
        fourplex_eligible=(
            populous
            and lot_m2 > SSMUH_SMALL_LOT_M2
            and is_single_family_or_duplex(parcel.zoning)
        ),
        sixplex_eligible=(
            populous
            and lot_m2 >= SSMUH_SIXPLEX_MIN_LOT_M2
            and transit.frequent_transit.within_400m
        ),
        tod_eligible=transit.rapid_transit.within_800m,
        density_tier=DENSITY_TIERS.get(tod_zone, DENSITY_TIERS["none"]),
        height_allowance=HEIGHT_ALLOWANCES.get(tod_zone, HEIGHT_ALLOWANCES["none"]),
        parking_required=not transit.rapid_transit.within_800m,
        ssmuh_requirements=list(SSMUH_REQUIREMENTS),
        special_requirements=special_requirements(parcel.municipality, parcel.zoning),
    )
