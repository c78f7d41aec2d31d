"""
Candidate building programs for a residential parcel.

The catalogue is fixed and ordered; each template has a guard on lot size
and SSMUH eligibility.  The single-family-with-suite template has no guard,
so at least one candidate is always produced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from lotwise.models.schemas import AllowanceSet, Pathway, UnitType


@dataclass(frozen=True)
class ScenarioTemplate:
    name: str
    pathway: Pathway
    unit_mix: tuple[UnitType, ...]
    guard: Callable[[float, AllowanceSet], bool]

    @property
    def total_units(self) -> int:
        return sum(u.count for u in self.unit_mix)

    @property
    def total_gfa_sqft(self) -> float:
        return sum(u.sqft * u.count for u in self.unit_mix)


def _always(lot_size_sqft: float, allowances: AllowanceSet) -> bool:
    return True


SCENARIO_TEMPLATES: tuple[ScenarioTemplate, ...] = (
    ScenarioTemplate(
        name="Single Family with Legal Suite",
        pathway=Pathway.CURRENT,
        unit_mix=(
            UnitType(unit_type="Main House", bedrooms=3, bathrooms=2, sqft=1800, count=1, market_rent=3200),
            UnitType(unit_type="Legal Suite", bedrooms=1, bathrooms=1, sqft=600, count=1, market_rent=1800),
        ),
        guard=_always,
    ),
    ScenarioTemplate(
        name="Duplex Development",
        pathway=Pathway.CURRENT,
        unit_mix=(
            UnitType(unit_type="Duplex Unit", bedrooms=3, bathrooms=2, sqft=1200, count=2, market_rent=2800),
        ),
        guard=lambda lot, a: lot >= 3000,
    ),
    ScenarioTemplate(
        name="Fourplex (SSMUH-compliant)",
        pathway=Pathway.SSMUH,
        unit_mix=(
            UnitType(unit_type="Family Unit", bedrooms=3, bathrooms=2, sqft=1000, count=1, market_rent=2600),
            UnitType(unit_type="Standard Unit", bedrooms=2, bathrooms=1, sqft=800, count=3, market_rent=2200),
        ),
        guard=lambda lot, a: a.ssmuh.eligible and lot >= 4000,
    ),
    ScenarioTemplate(
        name="Six-unit Small Apartment (SSMUH)",
        pathway=Pathway.SSMUH,
        unit_mix=(
            UnitType(unit_type="Family Unit", bedrooms=3, bathrooms=2, sqft=900, count=2, market_rent=2500),
            UnitType(unit_type="Standard Unit", bedrooms=2, bathrooms=1, sqft=700, count=3, market_rent=2100),
            UnitType(unit_type="Studio", bedrooms=0, bathrooms=1, sqft=500, count=1, market_rent=1600),
        ),
        guard=lambda lot, a: a.ssmuh.eligible and lot >= 5000,
    ),
)


def generate_scenarios(lot_size_sqft: float, allowances: AllowanceSet) -> list[ScenarioTemplate]:
    """Templates whose guard admits this parcel, in catalogue order."""
    return [t for t in SCENARIO_TEMPLATES if t.guard(lot_size_sqft, allowances)]
