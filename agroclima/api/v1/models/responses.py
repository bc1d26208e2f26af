"""
API response models using Pydantic.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from agroclima.domain.models import (
    CampaignSummary,
    ClimateProfile,
    DailyRecord,
    DetailedReport,
    HistoricalTrends,
    VarietyProfile,
    VarietyRecommendation,
)


class RequestInfo(BaseModel):
    """Echo of the resolved request."""
    source: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    postal_code: Optional[str] = Field(default=None, alias="postalCode")
    start_date: str = Field(alias="startDate")
    end_date: str = Field(alias="endDate")
    day_count: int = Field(
        alias="dayCount",
        description="Days between startDate and endDate (end - start)"
    )
    is_historical: bool = Field(alias="isHistorical")
    years_count: Optional[int] = Field(
        default=None,
        alias="yearsCount",
        description="Distinct calendar years present in the data"
    )
    chunks_count: Optional[int] = Field(
        default=None,
        alias="chunksCount",
        description="Upstream calls made for a historical request"
    )

    class Config:
        populate_by_name = True


class ClimateDataResponse(BaseModel):
    """Response model for climate data endpoints."""
    success: bool = True
    source: str
    data: List[DailyRecord]
    request_info: RequestInfo = Field(alias="requestInfo")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "success": True,
                "source": "NASA_POWER",
                "data": [
                    {"date": "2023-01-01", "temperature_avg": 9.1, "temperature_min": 3.2,
                     "temperature_max": 15.0, "precipitation": 0.0},
                ],
                "requestInfo": {
                    "source": "NASA_POWER",
                    "latitude": 38.0,
                    "longitude": -1.5,
                    "startDate": "2023-01-01",
                    "endDate": "2023-01-03",
                    "dayCount": 2,
                    "isHistorical": False,
                },
            }
        }


class ClimateAnalysisResponse(ClimateDataResponse):
    """Climate data plus its aggregated profile."""
    profile: ClimateProfile


class MultiSourceResponse(BaseModel):
    """Merged data across providers with per-provider outcome."""
    success: bool = True
    sources: List[str]
    data: List[DailyRecord]
    record_counts: Dict[str, int] = Field(alias="recordCounts")
    errors: Dict[str, str] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class HistoricalAnalysisResponse(BaseModel):
    success: bool = True
    source: str
    data: List[DailyRecord]
    request_info: RequestInfo = Field(alias="requestInfo")
    profile: ClimateProfile
    campaigns: CampaignSummary
    trends: HistoricalTrends

    class Config:
        populate_by_name = True


class RecommendationMetadata(BaseModel):
    records_analyzed: int = Field(alias="recordsAnalyzed")
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    class Config:
        populate_by_name = True


class VarietyRecommendationResponse(BaseModel):
    """Response model for the variety recommendation endpoint."""
    success: bool = True
    recommendations: List[VarietyRecommendation]
    detailed_report: DetailedReport = Field(alias="detailedReport")
    profile: ClimateProfile
    campaigns: CampaignSummary
    metadata: RecommendationMetadata

    class Config:
        populate_by_name = True


class VarietyCatalogueResponse(BaseModel):
    varieties: List[VarietyProfile]


class GeocodeResponse(BaseModel):
    success: bool = True
    postal_code: str = Field(alias="postalCode")
    latitude: float
    longitude: float

    class Config:
        populate_by_name = True
