"""
Municipal regulatory collaborator: zoning rules, bylaws and building code.

Two providers implement ``get_regulatory_analysis(city, zoning)``:

  - ``HttpMunicipalProvider`` calls a configured regulatory service and
    returns its raw JSON.
  - ``StaticMunicipalProvider`` serves bundled data for Vancouver, Burnaby,
    Richmond, Surrey, Maple Ridge and Coquitlam, drawn from each city's
    zoning bylaw and updated for the 2024 provincial housing legislation.

Both return plain dicts; ``parse_regulatory_payload`` converts either shape
(camelCase from the service, snake_case from the static tables) into
``RegulatoryFacts``.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from lotwise.config import settings
from lotwise.models.schemas import (
    BuildingCodeRequirements,
    Bylaw,
    RegulatoryFacts,
    Setbacks,
    ZoningRules,
)
from lotwise.services.payloads import parse_float, parse_int, parse_positive, pick, str_list
from lotwise.zoning_engine.rule_tables import normalize_municipality

logger = logging.getLogger(__name__)


class RegulatoryProvider(Protocol):
    async def get_regulatory_analysis(self, city: str, zoning: str) -> Optional[dict]: ...


# ──────────────────────────────────────────────────────────────────
# BUNDLED MUNICIPAL DATA
# ──────────────────────────────────────────────────────────────────

def _zone(city, code, description, height, far, density, min_lot, setbacks, parking,
          uses, dp=(), landscaping=()) -> ZoningRules:
    front, rear, side = setbacks
    return ZoningRules(
        municipality=city,
        zone_code=code,
        description=description,
        max_height_m=height,
        max_far=far,
        max_density=density,
        min_lot_size_m2=min_lot,
        setbacks=Setbacks(front=front, rear=rear, side=side),
        parking_requirements=parking,
        permitted_uses=list(uses),
        development_permit_requirements=list(dp),
        landscaping_requirements=list(landscaping),
    )


ZONING_DATA: dict[str, dict[str, ZoningRules]] = {
    "vancouver": {
        "RS-1": _zone(
            "Vancouver", "RS-1", "Single Detached House", 10.7, 0.70, 1, 372, (6.0, 7.5, 1.2),
            "1 space per dwelling unit",
            ["Single detached house", "Secondary suite (subject to regulations)",
             "Laneway house (subject to regulations)", "Home occupation"],
            dp=["Character retention review (in character areas)", "Tree protection measures",
                "Neighbourhood character assessment"],
            landscaping=["Minimum 60% soft landscaping in front yard",
                         "Tree retention and replacement requirements", "Rain water management"],
        ),
        "RT-2": _zone(
            "Vancouver", "RT-2", "Townhouse", 10.7, 0.75, 8, 465, (6.0, 7.5, 1.2),
            "1 space per unit + 1 visitor space per 4 units",
            ["Townhouse", "Duplex", "Multiple conversion dwelling"],
            dp=["Urban design panel review", "Community amenity contribution",
                "Public art requirement"],
        ),
    },
    "burnaby": {
        "R1": _zone(
            "Burnaby", "R1", "Single Family Residential", 9.5, 0.55, 1, 557, (7.5, 7.5, 1.5),
            "2 spaces per dwelling unit",
            ["Single family dwelling", "Secondary suite", "Home occupation"],
        ),
    },
    "richmond": {
        "SR1": _zone(
            "Richmond", "SR1", "Single Detached", 9.5, 0.60, 1, 465, (6.0, 6.0, 1.2),
            "2 spaces per dwelling unit",
            ["Single family dwelling", "Secondary suite", "Coach house"],
        ),
    },
    "surrey": {
        "RF": _zone(
            "Surrey", "RF", "Single Family Residential", 9.0, 0.50, 1, 600, (6.0, 7.5, 1.5),
            "2 spaces per dwelling unit",
            ["Single family dwelling", "Secondary suite", "Home occupation"],
        ),
    },
    "maple ridge": {
        "RS-1": _zone(
            "Maple Ridge", "RS-1", "Single Family Residential - SSMUH Eligible",
            10.5, 0.65, 6, 557, (7.5, 7.5, 1.2),
            "1.25 spaces per unit (SSMUH modified)",
            ["Single detached dwelling", "Small-scale multi-unit housing (3-6 units)",
             "Secondary suite", "Home occupation"],
            dp=["Form and character DP required", "Energy Step Code Level 3 minimum"],
        ),
        "RS-2": _zone(
            "Maple Ridge", "RS-2", "Single & Two Family Residential",
            10.5, 0.70, 6, 464, (6.0, 7.5, 1.2),
            "1.5 spaces per unit",
            ["Single detached dwelling", "Two family dwelling (duplex)",
             "Small-scale multi-unit housing", "Secondary suite"],
            dp=["Form and character DP for multi-unit", "Tree protection plan"],
        ),
        "RM-1": _zone(
            "Maple Ridge", "RM-1", "Medium Density Residential",
            12.0, 1.0, 25, 372, (6.0, 6.0, 3.0),
            "1.5 spaces per unit + visitor parking",
            ["Single detached dwelling", "Two family dwelling", "Multiple family dwelling",
             "Townhouse", "Apartment building"],
            dp=["Development permit required", "Landscape plan required",
                "Privacy and overlook mitigation"],
        ),
        "TOA": _zone(
            "Maple Ridge", "TOA", "Transit-Oriented Area - Port Haney Station",
            20.0, 2.5, 100, 200, (3.0, 4.5, 1.5),
            "0.5 spaces per unit (reduced for transit)",
            ["Multiple family dwelling", "Mixed use development", "Ground floor commercial",
             "Live-work units"],
            dp=["Development permit required", "Transit-oriented design guidelines",
                "Ground floor activation plan"],
        ),
    },
    "coquitlam": {
        "RS-1": _zone(
            "Coquitlam", "RS-1", "One-Family Residential - SSMUH Eligible",
            10.0, 0.60, 4, 464, (7.5, 7.5, 1.2),
            "1.5 spaces per unit (SSMUH modified)",
            ["Single detached dwelling", "Small-scale multi-unit housing (up to 4 units)",
             "Secondary suite", "Home occupation", "Garden cottage"],
            dp=["Transit-Oriented Area DP if within 800m of SkyTrain",
                "Form and character guidelines", "SSMUH compliance demonstration"],
        ),
        "RT-1": _zone(
            "Coquitlam", "RT-1", "Infill/Townhouse Residential",
            10.0, 0.75, 8, 372, (6.0, 6.0, 3.0),
            "2 spaces per unit",
            ["Single detached dwelling", "Two family dwelling", "Townhouse",
             "Multiple family dwelling", "Secondary suite"],
            dp=["Development permit required", "Landscape plan required",
                "Privacy protection measures"],
        ),
    },
}


def _bylaw(city, number, title, section, category, requirement, zones) -> Bylaw:
    return Bylaw(
        municipality=city, bylaw_number=number, title=title, section=section,
        category=category, requirement=requirement, applicable_zones=list(zones),
    )


BYLAW_DATA: dict[str, list[Bylaw]] = {
    "vancouver": [
        _bylaw("Vancouver", "3575", "Zoning and Development Bylaw", "4.7", "zoning",
               "Secondary suites permitted in RS zones subject to regulations",
               ["RS-1", "RS-2", "RS-3", "RS-5", "RS-6", "RS-7"]),
        _bylaw("Vancouver", "12518", "Tree Protection Bylaw", "3.1", "tree",
               "Permit required for removal of trees 20cm+ diameter", ["ALL"]),
        _bylaw("Vancouver", "11000", "Building Bylaw", "1.4", "building",
               "Energy Step Code Level 3 minimum for Part 9 buildings", ["ALL"]),
    ],
    "burnaby": [
        _bylaw("Burnaby", "13500", "Zoning Bylaw", "6.1", "zoning",
               "Secondary suites permitted with special permit", ["R1", "R2", "R3"]),
    ],
    "richmond": [
        _bylaw("Richmond", "8500", "Zoning Bylaw", "4.2", "zoning",
               "Coach houses permitted on lots 465m² or larger", ["SR1", "SR2"]),
    ],
    "surrey": [
        _bylaw("Surrey", "12000", "Zoning Bylaw", "5.3", "zoning",
               "Secondary suites permitted by right in RF zones", ["RF", "RF-G", "RF-9"]),
    ],
    "maple ridge": [
        _bylaw("Maple Ridge", "7600-2019", "Zoning Bylaw", "Small-Scale Multi-Unit Housing", "zoning",
               "Eligible single-family and duplex lots can accommodate 3, 4, or 6 units with "
               "updated density, height, setback, and parking standards",
               ["RS-1", "RS-2", "RS-3"]),
        _bylaw("Maple Ridge", "Building Bylaw", "Building Regulation Bylaw", "Building Permits", "building",
               "Building permit required for construction, renovation, or demolition of "
               "structures over 100 square feet",
               ["All zones"]),
        _bylaw("Maple Ridge", "7600-2019", "Transit-Oriented Development", "TOA Zones", "zoning",
               "400m radius around Port Haney Station, Maple Meadows and Haney Place stations "
               "designated as Transit-Oriented Areas with enhanced density",
               ["TOA"]),
        _bylaw("Maple Ridge", "Tree Protection Bylaw", "Tree Protection and Management",
               "Development Requirements", "environmental",
               "Tree retention and replacement requirements for development sites",
               ["All residential zones"]),
        _bylaw("Maple Ridge", "Parking Bylaw", "Off-Street Parking Requirements", "Residential Parking",
               "parking", "Reduced parking requirements for SSMUH and transit-oriented development",
               ["RS-1", "RS-2", "TOA"]),
    ],
    "coquitlam": [
        _bylaw("Coquitlam", "3000", "Zoning Bylaw", "Small-Scale Multi-Unit Housing", "zoning",
               "Up to 4 units allowed on most single-family lots with SSMUH compliance",
               ["RS-1", "RS-2"]),
        _bylaw("Coquitlam", "3000", "Transit-Oriented Areas", "TOA Development", "zoning",
               "Lands within 800m of SkyTrain stations designated as Transit-Oriented Areas "
               "with prescribed densities",
               ["All residential zones near transit"]),
    ],
}

BUILDING_CODE_DATA: dict[str, BuildingCodeRequirements] = {
    "vancouver": BuildingCodeRequirements(
        municipality="Vancouver",
        step_code_required=True,
        step_code_min_level=3,
        accessibility_requirements=[
            "Barrier-free path to entrance",
            "Accessible washroom on main floor",
            "Door widths minimum 810mm",
        ],
        fire_protection_requirements=[
            "Smoke alarms interconnected",
            "Carbon monoxide detectors required",
        ],
    ),
    "maple ridge": BuildingCodeRequirements(
        municipality="Maple Ridge",
        step_code_required=True,
        step_code_min_level=3,
        accessibility_requirements=[
            "Universal design features encouraged",
            "Barrier-free access to ground floor units",
        ],
        fire_protection_requirements=[
            "Sprinkler systems required for buildings over 3 storeys",
            "Fire department access requirements",
        ],
    ),
    "coquitlam": BuildingCodeRequirements(
        municipality="Coquitlam",
        step_code_required=True,
        step_code_min_level=3,
        accessibility_requirements=[
            "Universal design features",
            "Transit accessibility compliance",
        ],
        fire_protection_requirements=[
            "Sprinkler requirements per BCBC",
            "Fire department access",
        ],
    ),
}


# ──────────────────────────────────────────────────────────────────
# LOOKUPS
# ──────────────────────────────────────────────────────────────────

def get_zoning_rules(city: str, zoning: str) -> Optional[ZoningRules]:
    city_zones = ZONING_DATA.get(normalize_municipality(city))
    if not city_zones:
        logger.debug("No bundled zoning data for %s", city)
        return None
    return city_zones.get((zoning or "").strip().upper())


def _applies_to(bylaw: Bylaw, zoning: str) -> bool:
    code = (zoning or "").strip().upper()
    for zone in bylaw.applicable_zones:
        if zone.upper() == code or zone.upper().startswith("ALL"):
            return True
    return False


def get_applicable_bylaws(city: str, zoning: str) -> list[Bylaw]:
    return [
        b for b in BYLAW_DATA.get(normalize_municipality(city), [])
        if _applies_to(b, zoning)
    ]


def get_building_code(city: str) -> Optional[BuildingCodeRequirements]:
    return BUILDING_CODE_DATA.get(normalize_municipality(city))


def is_city_supported(city: str) -> bool:
    return normalize_municipality(city) in ZONING_DATA


def supported_cities() -> list[str]:
    return [
        next(iter(zones.values())).municipality
        for zones in ZONING_DATA.values()
    ]


def _fmt(value: float) -> str:
    return f"{value:g}"


def _permits(zoning: ZoningRules, use: str) -> bool:
    return any(u.lower().startswith(use.lower()) for u in zoning.permitted_uses)


def build_regulatory_analysis(
    zoning: Optional[ZoningRules],
    bylaws: list[Bylaw],
    building_code: Optional[BuildingCodeRequirements],
) -> RegulatoryFacts:
    """Combine zoning, bylaws and building code into design constraints and opportunities."""
    constraints: list[str] = []
    opportunities: list[str] = []

    if zoning:
        if zoning.max_height_m is not None:
            constraints.append(f"Maximum height: {_fmt(zoning.max_height_m)}m")
        if zoning.max_far is not None:
            constraints.append(f"Maximum FAR: {_fmt(zoning.max_far)}")
        if zoning.setbacks:
            s = zoning.setbacks
            constraints.append(
                f"Setbacks: Front {_fmt(s.front)}m, Rear {_fmt(s.rear)}m, Side {_fmt(s.side)}m"
            )
        if _permits(zoning, "Secondary suite"):
            opportunities.append("Secondary suite potential for rental income")
        if _permits(zoning, "Laneway house"):
            opportunities.append("Laneway house development opportunity")

    for bylaw in bylaws:
        if bylaw.category == "building" and "Energy Step Code" in bylaw.requirement:
            constraints.append(f"Energy efficiency: {bylaw.requirement}")
        if bylaw.category == "tree":
            constraints.append(f"Tree protection: {bylaw.requirement}")

    if building_code and building_code.step_code_required:
        constraints.append(f"Energy Step Code Level {building_code.step_code_min_level} required")
        opportunities.append("Energy efficiency rebates and incentives available")

    return RegulatoryFacts(
        zoning=zoning,
        bylaws=bylaws,
        building_code=building_code,
        design_constraints=constraints,
        opportunities=opportunities,
    )


class StaticMunicipalProvider:
    """Regulatory analysis from the bundled municipal tables."""

    async def get_regulatory_analysis(self, city: str, zoning: str) -> Optional[dict]:
        if not is_city_supported(city):
            logger.info("Municipal data not available for %s", city)
        facts = build_regulatory_analysis(
            get_zoning_rules(city, zoning),
            get_applicable_bylaws(city, zoning),
            get_building_code(city),
        )
        return facts.model_dump()


class HttpMunicipalProvider:
    """Fetch raw regulatory JSON from the configured municipal data service."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = base_url if base_url is not None else settings.municipal_data_url
        self.timeout = timeout or settings.provider_timeout_s

    async def get_regulatory_analysis(self, city: str, zoning: str) -> Optional[dict]:
        if not self.base_url:
            return None
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(self.base_url, params={"city": city, "zoning": zoning})
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            data = resp.json()
        return data if isinstance(data, dict) else None


def get_regulatory_provider() -> RegulatoryProvider:
    """HTTP provider when a service URL is configured, bundled tables otherwise."""
    if settings.municipal_data_url:
        return HttpMunicipalProvider()
    return StaticMunicipalProvider()


# ──────────────────────────────────────────────────────────────────
# BOUNDARY PARSING
# ──────────────────────────────────────────────────────────────────

def _parse_zoning(record: dict) -> Optional[ZoningRules]:
    code = pick(record, "zoningCode", "zone_code", "code")
    if code is None:
        return None
    raw_setbacks = pick(record, "setbacks")
    setbacks = None
    if isinstance(raw_setbacks, dict):
        setbacks = Setbacks(
            front=parse_float(raw_setbacks.get("front")) or 0.0,
            rear=parse_float(raw_setbacks.get("rear")) or 0.0,
            side=parse_float(raw_setbacks.get("side")) or 0.0,
            flanking=parse_float(raw_setbacks.get("flanking")),
        )
    return ZoningRules(
        municipality=str(pick(record, "city", "municipality") or ""),
        zone_code=str(code),
        description=str(pick(record, "description") or ""),
        max_height_m=parse_positive(pick(record, "maxHeight", "max_height_m")),
        max_far=parse_positive(pick(record, "maxFAR", "max_far")),
        max_density=parse_positive(pick(record, "maxDensity", "max_density")),
        min_lot_size_m2=parse_positive(pick(record, "minLotSize", "min_lot_size_m2")),
        setbacks=setbacks,
        parking_requirements=str(pick(record, "parkingRequirements", "parking_requirements") or ""),
        permitted_uses=str_list(pick(record, "permittedUses", "permitted_uses")),
        development_permit_requirements=str_list(
            pick(record, "developmentPermitRequirements", "development_permit_requirements")
        ),
        landscaping_requirements=str_list(
            pick(record, "landscapingRequirements", "landscaping_requirements")
        ),
    )


def _parse_bylaw(record: dict) -> Bylaw:
    return Bylaw(
        municipality=str(pick(record, "city", "municipality") or ""),
        bylaw_number=str(pick(record, "bylawNumber", "bylaw_number") or ""),
        title=str(pick(record, "title") or ""),
        section=str(pick(record, "section") or ""),
        category=str(pick(record, "category") or "zoning").lower(),
        requirement=str(pick(record, "requirement") or ""),
        applicable_zones=str_list(pick(record, "applicableZones", "applicable_zones")),
    )


def _parse_building_code(record: dict) -> BuildingCodeRequirements:
    step = record.get("energyStepCode")
    if isinstance(step, dict):
        required = bool(step.get("required"))
        level = parse_int(step.get("minLevel"))
    else:
        required = bool(record.get("step_code_required"))
        level = parse_int(record.get("step_code_min_level"))
    return BuildingCodeRequirements(
        municipality=str(pick(record, "city", "municipality") or ""),
        step_code_required=required,
        step_code_min_level=level,
        accessibility_requirements=str_list(
            pick(record, "accessibilityRequirements", "accessibility_requirements")
        ),
        fire_protection_requirements=str_list(
            pick(record, "fireProtectionRequirements", "fire_protection_requirements")
        ),
    )


def parse_regulatory_payload(payload: Optional[dict]) -> RegulatoryFacts:
    """Convert a raw regulatory payload into ``RegulatoryFacts``."""
    if not isinstance(payload, dict):
        return RegulatoryFacts()

    raw_zoning = payload.get("zoning")
    raw_bylaws = payload.get("bylaws")
    raw_code = pick(payload, "buildingCode", "building_code")

    return RegulatoryFacts(
        zoning=_parse_zoning(raw_zoning) if isinstance(raw_zoning, dict) else None,
        bylaws=[_parse_bylaw(b) for b in raw_bylaws if isinstance(b, dict)]
        if isinstance(raw_bylaws, list) else [],
        building_code=_parse_building_code(raw_code) if isinstance(raw_code, dict) else None,
        design_constraints=str_list(pick(payload, "designConstraints", "design_constraints")),
        opportunities=str_list(payload.get("opportunities")),
    )
