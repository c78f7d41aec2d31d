"""Tests for municipality requirement flags and design guidance."""

from __future__ import annotations

import pytest

from lotwise.models.schemas import Parcel, RegulatoryFacts
from lotwise.services.municipal_data import (
    build_regulatory_analysis,
    get_applicable_bylaws,
    get_building_code,
    get_zoning_rules,
)
from lotwise.zoning_engine.city_requirements import (
    analyze_city_requirements,
    architectural_style,
    build_design_guidance,
    material_palette,
    sustainability_features,
)
from lotwise.zoning_engine.financials import price_scenario
from lotwise.zoning_engine.optimizer import DevelopmentOptimizer
from lotwise.zoning_engine.rule_tables import RuleTables, StaticRuleBook
from lotwise.zoning_engine.scenarios import SCENARIO_TEMPLATES


@pytest.fixture
def rules():
    return StaticRuleBook(RuleTables.builtin())


def _regulatory(city, zoning):
    return build_regulatory_analysis(
        get_zoning_rules(city, zoning),
        get_applicable_bylaws(city, zoning),
        get_building_code(city),
    )


class TestCityRequirements:
    def test_vancouver_rs1(self, rules):
        req = analyze_city_requirements("Vancouver", _regulatory("Vancouver", "RS-1"), rules)
        assert req.development_permit_required
        assert req.community_amenity_contribution == 25000
        assert not req.parking_reduction
        assert req.energy_step_code_level == 3
        assert req.tree_retention_required
        assert not req.heritage_designation

    def test_transit_area_parking_reduction(self, rules):
        req = analyze_city_requirements("Maple Ridge", _regulatory("Maple Ridge", "TOA"), rules)
        assert req.parking_reduction

    def test_without_regulatory_facts(self, rules):
        req = analyze_city_requirements("Surrey", None, rules)
        assert not req.development_permit_required
        assert req.community_amenity_contribution == 15000
        assert req.energy_step_code_level == 1
        assert not req.tree_retention_required

    def test_burnaby_without_building_code(self, rules):
        req = analyze_city_requirements("Burnaby", _regulatory("Burnaby", "R1"), rules)
        assert req.energy_step_code_level == 1
        assert not req.development_permit_required


class TestDesignGuidance:
    @pytest.mark.parametrize("city,units,style", [
        ("Vancouver", 2, "Contemporary Vancouver Special"),
        ("vancouver", 4, "Modern West Coast Contemporary"),
        ("Burnaby", 2, "Modern Craftsman"),
        ("Burnaby", 6, "Contemporary Multi-Family"),
    ])
    def test_architectural_style(self, city, units, style):
        assert architectural_style(city, units) == style

    def test_wood_frame_materials(self):
        assert len(material_palette("wood-frame")) == 5
        assert "Composite decking" in material_palette("wood-frame")

    def test_mixed_materials(self):
        assert material_palette("mixed") == ["Fiber cement siding", "Aluminum windows", "Asphalt shingles"]

    def test_sustainability_with_step_code(self):
        features = sustainability_features(_regulatory("Vancouver", "RS-1"))
        assert "Heat recovery ventilation" in features
        assert len(features) == 5

    def test_sustainability_without_step_code(self):
        assert len(sustainability_features(RegulatoryFacts())) == 3

    def test_guidance_for_scenario(self, rules):
        regulatory = _regulatory("Vancouver", "RS-1")
        parcel = Parcel(municipality="Vancouver", lot_size_sqft=6820, zoning="RS-1", assessed_value=2_000_000)
        _, allowances, _ = DevelopmentOptimizer(rules).analyze_allowances(parcel)
        scenario = price_scenario(SCENARIO_TEMPLATES[0], parcel, allowances, regulatory)

        guidance = build_design_guidance("Vancouver", scenario, regulatory)
        assert guidance.architectural_style == "Contemporary Vancouver Special"
        assert "Rain water management" in guidance.landscape_requirements
        assert guidance.design_constraints == regulatory.design_constraints

    def test_guidance_without_regulatory(self, rules):
        parcel = Parcel(municipality="Hope", lot_size_sqft=4000)
        _, allowances, _ = DevelopmentOptimizer(rules).analyze_allowances(parcel)
        scenario = price_scenario(SCENARIO_TEMPLATES[0], parcel, allowances)

        guidance = build_design_guidance("Hope", scenario, None)
        assert guidance.landscape_requirements == []
        assert guidance.design_constraints == []
