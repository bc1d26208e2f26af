"""
API router for variety endpoints.
"""
from fastapi import APIRouter

from agroclima.api.dependencies import RecommendationServiceDep
from agroclima.api.v1.models.requests import VarietyRecommendationRequest
from agroclima.api.v1.models.responses import (
    RecommendationMetadata,
    VarietyCatalogueResponse,
    VarietyRecommendationResponse,
)
from agroclima.domain.models import Location
from agroclima.domain.varieties import PISTACHIO_VARIETIES
from agroclima.services.domain.request_validator import InputValidationError
from agroclima.utils.geo_projection import is_valid_coordinate


router = APIRouter(tags=["varieties"])


@router.get(
    "/varieties",
    response_model=VarietyCatalogueResponse,
    summary="List the variety catalogue",
)
async def list_varieties() -> VarietyCatalogueResponse:
    return VarietyCatalogueResponse(varieties=list(PISTACHIO_VARIETIES))


@router.post(
    "/variety-recommendation",
    response_model=VarietyRecommendationResponse,
    summary="Rank varieties for a site",
    description="""
    Aggregate the supplied daily records into a climate profile and score
    every fruit-bearing variety against it.

    Scoring blends chill-hour containment (25%), heat tolerance (20%),
    cold tolerance (15%), water deficit (20%), thermal accumulation (10%)
    and frost/heat-stress risk (10%). Fewer than 300 days of data scores
    every variety 0.
    """,
    responses={400: {"description": "Invalid request"}},
)
async def recommend_varieties(
    request: VarietyRecommendationRequest,
    recommendation_service: RecommendationServiceDep,
) -> VarietyRecommendationResponse:
    """
    Rank varieties for the supplied climate series.

    Args:
        request: Coordinates and canonical daily records
        recommendation_service: Recommendation service (injected dependency)

    Returns:
        VarietyRecommendationResponse with ranking, report and profile
    """
    if request.latitude is None or request.longitude is None:
        raise InputValidationError("Missing required parameters (latitude, longitude)")
    if not is_valid_coordinate(request.latitude, request.longitude):
        raise InputValidationError("Coordinates out of range")
    if not request.climate_data:
        raise InputValidationError("Missing required parameter (climateData)")

    location = Location(latitude=request.latitude, longitude=request.longitude)
    result = recommendation_service.recommend(request.climate_data, location)

    return VarietyRecommendationResponse(
        recommendations=result.recommendations,
        detailed_report=result.report,
        profile=result.profile,
        campaigns=result.campaigns,
        metadata=RecommendationMetadata(
            records_analyzed=result.records_analyzed,
            latitude=request.latitude,
            longitude=request.longitude,
        ),
    )
