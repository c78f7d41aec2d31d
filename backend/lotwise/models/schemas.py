from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

SQFT_TO_M2 = 0.092903


def sqft_to_m2(sqft: float) -> float:
    # 6 dp, so an exact m2 figure survives the round trip through sqft
    return round(sqft * SQFT_TO_M2, 6)


class Pathway(str, Enum):
    CURRENT = "current"
    SSMUH = "SSMUH"
    TOD = "TOD"


# ──────────────────────────────────────────────────────────────────
# PARCEL & TRANSIT
# ──────────────────────────────────────────────────────────────────

class Parcel(BaseModel):
    address: str = ""
    municipality: str = ""
    lot_size_sqft: float = Field(ge=0)
    zoning: str = "RS-1"
    assessed_value: float = Field(default=0.0, ge=0)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    model_config = {"frozen": True}

    @property
    def lot_size_m2(self) -> float:
        return sqft_to_m2(self.lot_size_sqft)


class RapidTransitAccess(BaseModel):
    within_200m: bool = False
    within_400m: bool = False
    within_800m: bool = False
    station_type: str = "Bus Service"
    frequency: str = "15-30 min bus service"
    distance_m: Optional[float] = None  # None = unknown


class FrequentTransitAccess(BaseModel):
    within_400m: bool = False
    service_level: str = "Limited service"
    bus_routes: int = 1
    distance_m: Optional[float] = None


class TransitProfile(BaseModel):
    municipality: str = ""
    rapid_transit: RapidTransitAccess = Field(default_factory=RapidTransitAccess)
    frequent_transit: FrequentTransitAccess = Field(default_factory=FrequentTransitAccess)
    served_by_rapid_transit: bool = False
    served_by_frequent_transit: bool = False
    distance_source: str = "unknown"

    @property
    def distance_known(self) -> bool:
        return (
            self.rapid_transit.distance_m is not None
            or self.frequent_transit.distance_m is not None
        )


# ──────────────────────────────────────────────────────────────────
# ALLOWANCES & COMPLIANCE
# ──────────────────────────────────────────────────────────────────

class Allowance(BaseModel):
    units: int = Field(ge=0)
    storeys: float = Field(ge=0)
    fsr: float = Field(ge=0)
    eligible: bool = True
    reason: str = ""


class TodAllowance(Allowance):
    tod_zone: str = "none"  # "200m", "400m", "800m", "none"


class MaximumPotential(BaseModel):
    units: int = Field(ge=0)
    storeys: float = Field(ge=0)
    fsr: float = Field(ge=0)
    pathway: Pathway


class AllowanceSet(BaseModel):
    current: Allowance
    ssmuh: Allowance
    tod: TodAllowance
    maximum_potential: MaximumPotential

    def allowance_for(self, pathway: Pathway) -> Allowance:
        if pathway == Pathway.SSMUH:
            return self.ssmuh
        if pathway == Pathway.TOD:
            return self.tod
        return self.current

    def max_fsr(self) -> float:
        """Greatest FSR granted by current zoning or any eligible regime."""
        values = [self.current.fsr]
        if self.ssmuh.eligible:
            values.append(self.ssmuh.fsr)
        if self.tod.eligible:
            values.append(self.tod.fsr)
        return max(values)


class ComplianceRecord(BaseModel):
    fourplex_eligible: bool = False
    sixplex_eligible: bool = False
    tod_eligible: bool = False
    density_tier: str = "Not in TOD zone"
    height_allowance: str = "Standard zoning heights"
    parking_required: bool = True
    ssmuh_requirements: list[str] = []
    special_requirements: list[str] = []


class ScenarioCompliance(BaseModel):
    zoning_compliant: bool = False
    ssmuh_compliant: bool = False
    tod_compliant: bool = False
    building_code_compliant: bool = True
    municipal_bylaws_compliant: bool = True
    accessibility_compliant: bool = False

    def compliant_count(self) -> int:
        return sum(1 for v in self.model_dump().values() if v)

    @classmethod
    def total_checks(cls) -> int:
        return len(cls.model_fields)


# ──────────────────────────────────────────────────────────────────
# SCENARIOS
# ──────────────────────────────────────────────────────────────────

class UnitType(BaseModel):
    unit_type: str
    bedrooms: int = Field(ge=0)
    bathrooms: int = Field(ge=0)
    sqft: float = Field(gt=0)
    count: int = Field(ge=1)
    market_rent: float = Field(ge=0)

    model_config = {"frozen": True}


class FinancialSummary(BaseModel):
    cost_per_sqft: float
    construction_cost: float
    soft_costs: float
    land_value: float
    total_project_cost: float
    annual_rent: float
    revenue: float
    net_profit: float
    roi_pct: float
    construction_months: int
    construction_duration: str


class DevelopmentScenario(BaseModel):
    name: str
    pathway: Pathway
    total_units: int = Field(ge=0)
    unit_mix: list[UnitType]
    total_gfa_sqft: float
    governing_fsr: float
    land_coverage: float
    building_height_m: float
    construction_type: str  # wood-frame, mixed, concrete
    compliance: ScenarioCompliance
    financials: FinancialSummary
    design_features: list[str] = []
    risk_factors: list[str] = []
    opportunities: list[str] = []
    score: float = 0.0


class ScenarioRank(BaseModel):
    name: str
    score: float
    rank: int
    is_recommended: bool = False


# ──────────────────────────────────────────────────────────────────
# COLLABORATOR FACTS (boundary-converted)
# ──────────────────────────────────────────────────────────────────

class Comparable(BaseModel):
    address: str = ""
    sold_price: Optional[float] = None
    list_price: Optional[float] = None
    sqft: Optional[float] = None
    days_on_market: Optional[int] = None


class MarketAnalysis(BaseModel):
    avg_price_per_sqft: float = 0.0
    price_trend: str = "stable"  # rising, falling, stable
    avg_days_on_market: float = 30.0
    price_range_low: float = 0.0
    price_range_high: float = 0.0


class PropertyFacts(BaseModel):
    address: Optional[str] = None
    lot_size_sqft: Optional[float] = None
    assessed_value: Optional[float] = None
    zoning: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    has_assessment: bool = False
    comparables: list[Comparable] = []
    market_analysis: Optional[MarketAnalysis] = None


class Setbacks(BaseModel):
    front: float = 0.0
    rear: float = 0.0
    side: float = 0.0
    flanking: Optional[float] = None


class ZoningRules(BaseModel):
    municipality: str = ""
    zone_code: str
    description: str = ""
    max_height_m: Optional[float] = None
    max_far: Optional[float] = None
    max_density: Optional[float] = None
    min_lot_size_m2: Optional[float] = None
    setbacks: Optional[Setbacks] = None
    parking_requirements: str = ""
    permitted_uses: list[str] = []
    development_permit_requirements: list[str] = []
    landscaping_requirements: list[str] = []


class Bylaw(BaseModel):
    municipality: str = ""
    bylaw_number: str = ""
    title: str = ""
    section: str = ""
    category: str = "zoning"  # zoning, building, subdivision, tree, parking, heritage, environmental
    requirement: str = ""
    applicable_zones: list[str] = []


class BuildingCodeRequirements(BaseModel):
    municipality: str = ""
    step_code_required: bool = False
    step_code_min_level: Optional[int] = None
    accessibility_requirements: list[str] = []
    fire_protection_requirements: list[str] = []


class RegulatoryFacts(BaseModel):
    zoning: Optional[ZoningRules] = None
    bylaws: list[Bylaw] = []
    building_code: Optional[BuildingCodeRequirements] = None
    design_constraints: list[str] = []
    opportunities: list[str] = []


# ──────────────────────────────────────────────────────────────────
# REPORT
# ──────────────────────────────────────────────────────────────────

class PropertyMetrics(BaseModel):
    lot_size_sqft: float
    current_value: float
    current_zoning: str
    transit_score: int
    market_demand_score: int


class CitySpecificRequirements(BaseModel):
    development_permit_required: bool = False
    community_amenity_contribution: float = 0.0
    parking_reduction: bool = False
    energy_step_code_level: int = 1
    tree_retention_required: bool = False
    heritage_designation: bool = False


class DesignGuidance(BaseModel):
    architectural_style: str
    material_palette: list[str] = []
    sustainability_features: list[str] = []
    landscape_requirements: list[str] = []
    design_constraints: list[str] = []


class MarketContext(BaseModel):
    estimated_market_value: float
    construction_cost_psf: float
    expected_roi_pct: float
    development_viability: str  # High, Medium, Low


class OptimizedPlan(BaseModel):
    parcel: Parcel
    property_metrics: PropertyMetrics
    transit: TransitProfile
    allowances: AllowanceSet
    compliance: ComplianceRecord
    scenarios: list[DevelopmentScenario]
    recommended_scenario: DevelopmentScenario
    scenario_ranking: list[ScenarioRank] = []
    city_requirements: CitySpecificRequirements
    design_guidance: DesignGuidance
    rules_version: str = ""


class DataSourcesUsed(BaseModel):
    property_assessment: bool = False
    mls_comparables: bool = False
    municipal_zoning: bool = False
    municipal_bylaws: bool = False
    building_codes: bool = False


class ComprehensiveReport(BaseModel):
    plan: OptimizedPlan
    data_sources: DataSourcesUsed
    defaults_applied: list[str] = []
    market_context: MarketContext
    market_analysis: MarketAnalysis
    comparables: list[Comparable] = []
    design_constraints: list[str] = []
    regulatory_opportunities: list[str] = []
    analysis_date: datetime
    cache_key: Optional[str] = None


# ──────────────────────────────────────────────────────────────────
# API REQUESTS / RESPONSES
# ──────────────────────────────────────────────────────────────────

class AnalyzeRequest(BaseModel):
    address: str
    municipality: str
    lot_size_sqft: Optional[float] = Field(default=None, gt=0)
    zoning: Optional[str] = None
    assessed_value: Optional[float] = Field(default=None, ge=0)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    rapid_transit_distance_m: Optional[float] = Field(default=None, ge=0)
    frequent_transit_distance_m: Optional[float] = Field(default=None, ge=0)


class AllowanceRequest(BaseModel):
    municipality: str
    lot_size_sqft: float = Field(gt=0)
    zoning: str = "RS-1"
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    rapid_transit_distance_m: Optional[float] = Field(default=None, ge=0)
    frequent_transit_distance_m: Optional[float] = Field(default=None, ge=0)


class AllowanceResponse(BaseModel):
    transit: TransitProfile
    allowances: AllowanceSet
    compliance: ComplianceRecord
