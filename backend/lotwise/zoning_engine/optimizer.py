"""
Development optimizer: takes a Parcel and produces an OptimizedPlan.

Stages, each a pure function of the previous stages' outputs:
  - transit classification
  - allowances (current zoning, SSMUH, TOD, maximum potential)
  - parcel compliance flags and special requirements
  - scenario generation and pricing
  - scoring, ranking and recommendation
  - city requirements and design guidance
"""

from __future__ import annotations

import logging
from typing import Optional

from lotwise.models.schemas import (
    AllowanceSet,
    ComplianceRecord,
    MarketAnalysis,
    OptimizedPlan,
    Parcel,
    RegulatoryFacts,
    TransitProfile,
)
from lotwise.zoning_engine.allowances import calculate_allowances
from lotwise.zoning_engine.city_requirements import (
    analyze_city_requirements,
    build_design_guidance,
)
from lotwise.zoning_engine.compliance import evaluate_compliance
from lotwise.zoning_engine.financials import price_scenario
from lotwise.zoning_engine.market import build_property_metrics
from lotwise.zoning_engine.rule_tables import RuleBook, get_default_rulebook
from lotwise.zoning_engine.scenarios import generate_scenarios
from lotwise.zoning_engine.selector import (
    rank_scenarios,
    score_scenarios,
    select_recommended,
)
from lotwise.zoning_engine.transit import DistanceSource, classify_transit

logger = logging.getLogger(__name__)


class DevelopmentOptimizer:
    """Computes allowances, scenarios and a recommendation for a parcel.

    Holds only the rule book; no state is kept between calls.
    """

    def __init__(self, rules: Optional[RuleBook] = None):
        self.rules = rules or get_default_rulebook()

    def analyze_allowances(
        self,
        parcel: Parcel,
        distance_source: Optional[DistanceSource] = None,
    ) -> tuple[TransitProfile, AllowanceSet, ComplianceRecord]:
        """Transit, allowances and compliance only (no scenarios)."""
        transit = classify_transit(
            parcel.municipality,
            parcel.latitude,
            parcel.longitude,
            distance_source=distance_source,
            rules=self.rules,
        )
        allowances = calculate_allowances(
            parcel.municipality, parcel.lot_size_sqft, parcel.zoning, transit, self.rules,
        )
        compliance = evaluate_compliance(parcel, transit, allowances, self.rules)
        return transit, allowances, compliance

    def optimize(
        self,
        parcel: Parcel,
        *,
        distance_source: Optional[DistanceSource] = None,
        regulatory: Optional[RegulatoryFacts] = None,
        market_analysis: Optional[MarketAnalysis] = None,
    ) -> OptimizedPlan:
        """Full pipeline: allowances + priced scenarios + recommendation."""
        transit, allowances, compliance = self.analyze_allowances(parcel, distance_source)

        templates = generate_scenarios(parcel.lot_size_sqft, allowances)
        scenarios = score_scenarios([
            price_scenario(t, parcel, allowances, regulatory) for t in templates
        ])
        recommended = select_recommended(scenarios)

        logger.info(
            "Optimized %s (%s, %s): max potential %d units via %s, recommended %r",
            parcel.address or "<no address>", parcel.municipality, parcel.zoning,
            allowances.maximum_potential.units, allowances.maximum_potential.pathway.value,
            recommended.name,
        )

        return OptimizedPlan(
            parcel=parcel,
            property_metrics=build_property_metrics(parcel, market_analysis, self.rules),
            transit=transit,
            allowances=allowances,
            compliance=compliance,
            scenarios=scenarios,
            recommended_scenario=recommended,
            scenario_ranking=rank_scenarios(scenarios),
            city_requirements=analyze_city_requirements(parcel.municipality, regulatory, self.rules),
            design_guidance=build_design_guidance(parcel.municipality, recommended, regulatory),
            rules_version=self.rules.version,
        )
