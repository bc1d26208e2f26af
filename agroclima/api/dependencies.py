"""
Dependency injection for FastAPI.
"""
from datetime import date
from typing import Annotated
from fastapi import Depends

from agroclima.infrastructure.geocoding_client import (
    GeocodingClient,
    get_geocoding_client,
)
from agroclima.infrastructure.source_registry import SourceRegistry, get_source_registry
from agroclima.services.application.climate_service import ClimateService
from agroclima.services.application.recommendation_service import RecommendationService
from agroclima.services.domain.suitability_engine import SuitabilityEngine


def get_today() -> date:
    """Reference date for validation; overridden in tests."""
    return date.today()


def get_climate_service(
    registry: Annotated[SourceRegistry, Depends(get_source_registry)],
) -> ClimateService:
    """
    Dependency factory for ClimateService.

    Args:
        registry: Source registry (injected)

    Returns:
        ClimateService instance
    """
    return ClimateService(registry=registry)


def get_suitability_engine() -> SuitabilityEngine:
    return SuitabilityEngine()


def get_recommendation_service(
    engine: Annotated[SuitabilityEngine, Depends(get_suitability_engine)],
) -> RecommendationService:
    """
    Dependency factory for RecommendationService.

    Args:
        engine: Suitability engine (injected)

    Returns:
        RecommendationService instance
    """
    return RecommendationService(engine=engine)


# Type aliases for cleaner route signatures
ClimateServiceDep = Annotated[ClimateService, Depends(get_climate_service)]
RecommendationServiceDep = Annotated[RecommendationService, Depends(get_recommendation_service)]
GeocodingClientDep = Annotated[GeocodingClient, Depends(get_geocoding_client)]
TodayDep = Annotated[date, Depends(get_today)]
