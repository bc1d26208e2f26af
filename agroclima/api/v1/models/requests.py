"""
API request models using Pydantic.

Fields are deliberately loose (everything optional) so that the request
validator, not the schema, decides which rule fails first.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from agroclima.domain.models import DailyRecord


class ClimateDataRequest(BaseModel):
    """Single-source climate query."""
    source: Optional[str] = Field(
        default=None,
        description="NASA_POWER, ERA5, SIAR or AEMET",
        examples=["NASA_POWER"]
    )
    latitude: Optional[float] = Field(default=None, examples=[38.0])
    longitude: Optional[float] = Field(default=None, examples=[-1.5])
    postal_code: Optional[str] = Field(
        default=None,
        alias="postalCode",
        description="5-digit postal code, required for AEMET"
    )
    start_date: Optional[str] = Field(default=None, alias="startDate", examples=["2023-01-01"])
    end_date: Optional[str] = Field(default=None, alias="endDate", examples=["2023-12-31"])
    is_historical: bool = Field(
        default=False,
        alias="isHistorical",
        description="Split long ranges into chunks instead of capping them"
    )

    class Config:
        populate_by_name = True


class MultiSourceRequest(BaseModel):
    """Same coordinate and range queried on several providers."""
    sources: List[str] = Field(default_factory=list, examples=[["NASA_POWER", "SIAR"]])
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")

    class Config:
        populate_by_name = True


class HistoricalAnalysisRequest(BaseModel):
    """Long-range analysis; source and dates are optional."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    source: Optional[str] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")

    class Config:
        populate_by_name = True


class VarietyRecommendationRequest(BaseModel):
    """Canonical records to score varieties against."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    climate_data: List[DailyRecord] = Field(default_factory=list, alias="climateData")

    class Config:
        populate_by_name = True


class PostalCodeRequest(BaseModel):
    postal_code: Optional[str] = Field(default=None, alias="postalCode", examples=["30001"])

    class Config:
        populate_by_name = True
