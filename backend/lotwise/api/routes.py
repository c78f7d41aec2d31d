from __future__ import annotations

from fastapi import APIRouter, Depends

from lotwise.models.schemas import (
    AllowanceRequest,
    AllowanceResponse,
    AnalyzeRequest,
    ComprehensiveReport,
    Parcel,
)
from lotwise.services.aggregator import ReportAggregator
from lotwise.services.municipal_data import supported_cities
from lotwise.zoning_engine.optimizer import DevelopmentOptimizer
from lotwise.zoning_engine.rule_tables import get_default_rulebook
from lotwise.zoning_engine.transit import supplied_distance_source

router = APIRouter(prefix="/api/v1")


def get_aggregator() -> ReportAggregator:
    return ReportAggregator()


def get_optimizer() -> DevelopmentOptimizer:
    return DevelopmentOptimizer(get_default_rulebook())


@router.post("/analyze", response_model=ComprehensiveReport)
async def analyze_parcel(
    request: AnalyzeRequest,
    aggregator: ReportAggregator = Depends(get_aggregator),
):
    """Full analysis: collaborators + allowances + priced scenarios + recommendation."""
    return await aggregator.build(request, use_cache=True)


@router.post("/allowances", response_model=AllowanceResponse)
async def parcel_allowances(
    request: AllowanceRequest,
    optimizer: DevelopmentOptimizer = Depends(get_optimizer),
):
    """Transit, allowances and compliance for a bare parcel (no collaborators)."""
    parcel = Parcel(
        municipality=request.municipality,
        lot_size_sqft=request.lot_size_sqft,
        zoning=request.zoning,
        latitude=request.latitude,
        longitude=request.longitude,
    )
    distance_source = supplied_distance_source(
        request.rapid_transit_distance_m, request.frequent_transit_distance_m,
    )
    transit, allowances, compliance = optimizer.analyze_allowances(parcel, distance_source)
    return AllowanceResponse(transit=transit, allowances=allowances, compliance=compliance)


@router.get("/municipalities")
async def list_municipalities():
    """Municipalities with bundled regulatory data, plus the rule-table version."""
    return {
        "supported": supported_cities(),
        "rules_version": get_default_rulebook().version,
    }
