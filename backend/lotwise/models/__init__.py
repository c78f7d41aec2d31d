from __future__ import annotations

from lotwise.models.schemas import (
    AllowanceSet,
    ComprehensiveReport,
    DevelopmentScenario,
    OptimizedPlan,
    Parcel,
    Pathway,
    TransitProfile,
)

__all__ = [
    "AllowanceSet",
    "ComprehensiveReport",
    "DevelopmentScenario",
    "OptimizedPlan",
    "Parcel",
    "Pathway",
    "TransitProfile",
]
