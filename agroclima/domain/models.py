"""
Domain models for climate records, profiles and crop varieties.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, databases, etc.).
"""
from datetime import date
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class SourceKind(str, Enum):
    """Upstream weather data providers."""
    NASA_POWER = "NASA_POWER"
    ERA5 = "ERA5"
    SIAR = "SIAR"
    AEMET = "AEMET"


class Location(BaseModel):
    """A point of interest, by coordinates and/or postal code."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    postal_code: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    class Config:
        frozen = True


class DateRange(BaseModel):
    """Inclusive calendar date range."""
    start: date
    end: date

    @property
    def days(self) -> int:
        """Number of calendar days covered, both ends included."""
        return (self.end - self.start).days + 1

    @property
    def day_count(self) -> int:
        """Distance in days between start and end."""
        return (self.end - self.start).days

    class Config:
        frozen = True


class DailyRecord(BaseModel):
    """Canonical daily climate observation at one location."""
    date: date
    temperature_avg: float = Field(description="Mean air temperature (°C)")
    temperature_min: Optional[float] = Field(default=None, description="Minimum air temperature (°C)")
    temperature_max: Optional[float] = Field(default=None, description="Maximum air temperature (°C)")
    precipitation: float = Field(default=0.0, ge=0, description="Precipitation (mm)")
    humidity: Optional[float] = Field(default=None, description="Relative humidity (%)")
    solar_radiation: Optional[float] = Field(default=None, description="Solar radiation (MJ/m²/day)")
    wind_speed: Optional[float] = Field(default=None, description="Wind speed (m/s)")
    eto: Optional[float] = Field(default=None, ge=0, description="Reference evapotranspiration (mm/day)")
    etc: Optional[float] = Field(default=None, ge=0, description="Crop evapotranspiration (mm/day)")
    frost_hours: Optional[float] = Field(default=None, ge=0, description="Hours below freezing")
    frost_hours_inferred: bool = Field(
        default=False,
        description="True when frost_hours only flags a frost day of unknown duration"
    )
    chill_hours: Optional[float] = Field(default=None, ge=0, description="Hours in the chilling band")
    gdd: Optional[float] = Field(default=None, ge=0, description="Growing degree days")


class ClimateProfile(BaseModel):
    """Aggregate climate indicators over a record sequence."""
    total_days: int = 0
    year_count: int = 0
    avg_temperature: float = 0.0
    min_temperature: float = 0.0
    max_temperature: float = 0.0
    total_chill_hours: float = 0.0
    total_frost_hours: float = 0.0
    frost_days: int = 0
    total_precipitation: float = 0.0
    total_eto: float = 0.0
    total_etc: float = 0.0
    water_deficit: float = 0.0
    total_gdd: float = 0.0
    heat_stress_days: int = 0
    extreme_cold_days: int = 0

    # Per-year means (cumulative / year_count)
    annual_chill_hours: float = 0.0
    annual_gdd: float = 0.0
    annual_precipitation: float = 0.0
    annual_etc: float = 0.0
    annual_water_deficit: float = 0.0
    annual_frost_days: float = 0.0
    annual_heat_stress_days: float = 0.0
    annual_extreme_cold_days: float = 0.0

    class Config:
        frozen = True


class CampaignSummary(BaseModel):
    """Per-campaign agronomic aggregates and conservative percentiles."""
    years: List[int] = Field(default_factory=list)
    winter_chill_by_year: dict[int, float] = Field(default_factory=dict)
    season_gdd_by_year: dict[int, float] = Field(default_factory=dict)
    spring_frost_days_by_year: dict[int, int] = Field(default_factory=dict)
    summer_heat_stress_days_by_year: dict[int, int] = Field(default_factory=dict)
    winter_extreme_cold_days_by_year: dict[int, int] = Field(default_factory=dict)
    water_deficit_by_year: dict[int, float] = Field(default_factory=dict)
    chill_hours_p10: float = 0.0
    gdd_p10: float = 0.0
    spring_frost_days_p90: float = 0.0
    heat_stress_days_p90: float = 0.0
    extreme_cold_days_p90: float = 0.0
    water_deficit_p90: float = 0.0

    class Config:
        frozen = True


class ClimateStability(BaseModel):
    """Inter-annual variability indicators."""
    temperature_variability: float = 0.0
    precipitation_variability: float = 0.0
    stability_score: float = 50.0


class HistoricalTrends(BaseModel):
    """Year-over-year slopes of key indicators."""
    total_years: int = 0
    temperature_trend: float = 0.0
    precipitation_trend: float = 0.0
    chill_hours_trend: float = 0.0
    frost_days_trend: float = 0.0
    yearly_profiles: dict[int, ClimateProfile] = Field(default_factory=dict)
    climate_stability: ClimateStability = Field(default_factory=ClimateStability)


class VarietyType(str, Enum):
    """Flowering role of a pistachio variety."""
    FEMALE = "female"
    MALE = "male"


class VarietyProfile(BaseModel):
    """Static reference data for a crop variety."""
    id: str
    name: str
    origin: str
    type: VarietyType
    chill_hours_min: float
    chill_hours_max: float
    min_winter_temp: float = Field(description="Lowest tolerable winter temperature (°C)")
    max_summer_temp: float = Field(description="Highest tolerable summer temperature (°C)")
    annual_water_need: float = Field(description="Annual water need (mm)")
    critical_water_periods: List[str] = Field(default_factory=list)
    production_start: int = Field(description="Years to first production")
    peak_production: int = Field(description="Years to full production")
    lifespan: int = Field(description="Productive lifespan in years")
    pollinizers: List[str] = Field(default_factory=list, description="Compatible pollinizer ids")
    description: str = ""

    class Config:
        frozen = True


class PollinizerReference(BaseModel):
    """Reference to a compatible pollinizer variety."""
    id: str
    name: str


class VarietyRecommendation(BaseModel):
    """Suitability of one variety for a climate profile."""
    variety: VarietyProfile
    suitability_score: float = Field(ge=0, le=100)
    matching_factors: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    pollinizers: List[PollinizerReference] = Field(default_factory=list)


class RiskAssessment(BaseModel):
    """Overall climate risk for a site."""
    level: str
    score: int
    factors: List[str] = Field(default_factory=list)
    mitigation: List[str] = Field(default_factory=list)


class PlantingStrategy(BaseModel):
    """Planting plan built around the best-ranked variety."""
    primary_variety: str
    pollinizers: List[str] = Field(default_factory=list)
    planting_ratio: str
    planting_density: str
    expected_production: str
    timeline: List[str] = Field(default_factory=list)


class ReportSummary(BaseModel):
    """Headline counts of a detailed report."""
    total_varieties_evaluated: int
    suitable_count: int
    marginal_count: int
    unsuitable_count: int
    best_variety: str
    best_score: float


class DetailedReport(BaseModel):
    """Narrative report composed from ranked recommendations."""
    summary: ReportSummary
    climate_profile: ClimateProfile
    top_recommendations: List[VarietyRecommendation]
    suitable_varieties: List[VarietyRecommendation]
    marginal_varieties: List[VarietyRecommendation]
    general_recommendations: List[str]
    risk_assessment: RiskAssessment
    planting_strategy: PlantingStrategy
