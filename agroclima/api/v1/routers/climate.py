"""
API router for climate data endpoints.

Validation and upstream errors propagate to ErrorHandlerMiddleware, which
renders them as ``{success: false, error, source?, debug?}``.
"""
import logging
from fastapi import APIRouter

from agroclima.api.dependencies import ClimateServiceDep, TodayDep
from agroclima.api.v1.models.requests import (
    ClimateDataRequest,
    HistoricalAnalysisRequest,
    MultiSourceRequest,
)
from agroclima.api.v1.models.responses import (
    ClimateAnalysisResponse,
    ClimateDataResponse,
    HistoricalAnalysisResponse,
    MultiSourceResponse,
    RequestInfo,
)
from agroclima.config import settings
from agroclima.services.application.climate_service import ClimateDataResult
from agroclima.services.domain.request_validator import (
    ClimateQuery,
    validate_climate_request,
    validate_historical_request,
    validate_multi_source_request,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["climate"])

ERROR_RESPONSES = {
    400: {"description": "Invalid request"},
    502: {"description": "Upstream source failure"},
}


def _request_info(query: ClimateQuery, result: ClimateDataResult) -> RequestInfo:
    info = RequestInfo(
        source=query.source.value,
        latitude=query.location.latitude,
        longitude=query.location.longitude,
        postal_code=query.location.postal_code,
        start_date=query.date_range.start.isoformat(),
        end_date=query.date_range.end.isoformat(),
        day_count=query.date_range.day_count,
        is_historical=query.is_historical,
    )
    if query.is_historical:
        info.years_count = result.years_count
        info.chunks_count = result.chunks_count
    return info


@router.post(
    "/climate-data",
    response_model=ClimateDataResponse,
    summary="Get a canonical daily climate series",
    description="""
    Fetch daily climate records for a point from one source.

    - NASA_POWER, ERA5 and SIAR need coordinates and a past date range of
      at most 730 days, or `isHistorical` to split longer ranges into chunks
    - AEMET needs a 5-digit postal code and serves forecasts of up to 7
      days from today (default: today to today + 6)
    """,
    responses=ERROR_RESPONSES,
)
async def get_climate_data(
    request: ClimateDataRequest,
    climate_service: ClimateServiceDep,
    today: TodayDep,
) -> ClimateDataResponse:
    query = validate_climate_request(request.model_dump(by_alias=True), today=today)
    logger.info(
        f"climate-data {query.source.value} {query.date_range.start}..{query.date_range.end} "
        f"historical={query.is_historical}"
    )
    result = await climate_service.get_climate_data(query, today=today)
    return ClimateDataResponse(
        source=query.source.value,
        data=result.records,
        request_info=_request_info(query, result),
    )


@router.post(
    "/climate-analysis",
    response_model=ClimateAnalysisResponse,
    summary="Get a daily series and its climate profile",
    responses=ERROR_RESPONSES,
)
async def get_climate_analysis(
    request: ClimateDataRequest,
    climate_service: ClimateServiceDep,
    today: TodayDep,
) -> ClimateAnalysisResponse:
    query = validate_climate_request(request.model_dump(by_alias=True), today=today)
    result, profile = await climate_service.analyze(query, today=today)
    return ClimateAnalysisResponse(
        source=query.source.value,
        data=result.records,
        request_info=_request_info(query, result),
        profile=profile,
    )


@router.post(
    "/climate-data/multi-source",
    response_model=MultiSourceResponse,
    summary="Merge one range from several sources",
    description="""
    Query several providers for the same coordinate and range. A provider
    failure is reported in `errors` without affecting the others; the
    request fails only when every provider fails.
    """,
    responses=ERROR_RESPONSES,
)
async def get_multi_source_data(
    request: MultiSourceRequest,
    climate_service: ClimateServiceDep,
    today: TodayDep,
) -> MultiSourceResponse:
    sources, location, date_range = validate_multi_source_request(request.model_dump(by_alias=True))
    result = await climate_service.get_multi_source_data(sources, location, date_range, today=today)
    return MultiSourceResponse(
        sources=[s.value for s in sources],
        data=result.records,
        record_counts={k.value: v for k, v in result.record_counts.items()},
        errors={k.value: v for k, v in result.errors.items()},
    )


@router.post(
    "/historical-analysis",
    response_model=HistoricalAnalysisResponse,
    summary="Long-range profile, campaign summary and trends",
    description=f"""
    Fetch a long range in chunks and derive the climate profile, per-campaign
    summary and year-over-year trends. Defaults: source
    {settings.default_source}, end today, start
    {settings.historical_default_years} years before the end.
    """,
    responses=ERROR_RESPONSES,
)
async def get_historical_analysis(
    request: HistoricalAnalysisRequest,
    climate_service: ClimateServiceDep,
    today: TodayDep,
) -> HistoricalAnalysisResponse:
    query = validate_historical_request(
        request.model_dump(by_alias=True),
        default_source=settings.default_source,
        today=today,
    )
    analysis = await climate_service.historical_analysis(query, today=today)
    return HistoricalAnalysisResponse(
        source=query.source.value,
        data=analysis.data.records,
        request_info=_request_info(query, analysis.data),
        profile=analysis.profile,
        campaigns=analysis.campaigns,
        trends=analysis.trends,
    )
