"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Upstream Provider Configuration
    nasa_power_base_url: str = Field(
        default="https://power.larc.nasa.gov/api/temporal/daily/point",
        description="NASA POWER daily point endpoint"
    )
    aemet_base_url: str = Field(
        default="https://opendata.aemet.es/opendata/api",
        description="AEMET OpenData base URL"
    )
    aemet_api_key: str = Field(
        default="",
        description="AEMET OpenData API key"
    )
    siar_base_url: str = Field(
        default="https://servicio.mapa.gob.es/websiar/api",
        description="SIAR agroclimatic network base URL"
    )
    siar_api_key: str = Field(
        default="",
        description="SIAR API key"
    )
    cds_base_url: str = Field(
        default="https://cds.climate.copernicus.eu/api",
        description="Copernicus Climate Data Store base URL"
    )
    cds_api_key: str = Field(
        default="",
        description="Copernicus CDS personal access token"
    )
    cds_era5_dataset: str = Field(
        default="reanalysis-era5-single-levels-timeseries",
        description="ERA5 point time-series dataset"
    )
    era5_poll_interval: float = Field(
        default=2.0,
        description="Seconds between CDS job status polls"
    )
    era5_max_polls: int = Field(
        default=240,
        description="Maximum number of CDS job status polls"
    )
    http_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for upstream HTTP calls"
    )

    # Geocoding Configuration
    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org/search",
        description="Postal code geocoding endpoint"
    )
    geocoder_user_agent: str = Field(
        default="agroclima/1.0",
        description="User-Agent sent to the geocoder"
    )
    geocoder_country: str = Field(
        default="Spain",
        description="Country appended to postal code queries"
    )

    # Retry Configuration (geocoding only; climate sources never retry)
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for geocoding calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=1,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Request Envelope
    default_source: str = Field(
        default="NASA_POWER",
        description="Source used when a historical analysis omits one"
    )
    max_range_days: int = Field(
        default=730,
        description="Maximum inclusive days for a non-historical request"
    )
    historical_chunk_days: int = Field(
        default=730,
        description="Maximum inclusive days per upstream call in historical mode"
    )
    historical_default_years: int = Field(
        default=20,
        description="Years covered by a historical analysis without startDate"
    )
    aemet_max_forecast_days: int = Field(
        default=7,
        description="Maximum inclusive days of an AEMET forecast"
    )
    max_concurrent_chunks: int = Field(
        default=3,
        description="Outstanding upstream calls allowed per provider"
    )

    # Agronomic Parameters
    gdd_base_temperature: float = Field(
        default=7.0,
        description="Base temperature (°C) for growing degree days"
    )
    chill_threshold: float = Field(
        default=7.2,
        description="Upper bound (°C) of the chilling band"
    )
    frost_threshold: float = Field(
        default=0.0,
        description="Temperature (°C) below which an hour counts as frost"
    )
    heat_stress_threshold: float = Field(
        default=40.0,
        description="Daily maximum (°C) above which a day is heat-stressed"
    )
    extreme_cold_threshold: float = Field(
        default=-5.0,
        description="Daily minimum (°C) below which a day is extreme cold"
    )
    dormancy_months: list[int] = Field(
        default=[11, 12, 1, 2],
        description="Calendar months of the chill-accumulation window"
    )
    min_recommendation_days: int = Field(
        default=300,
        description="Days of data required before varieties are scored"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Agroclima Climate & Variety API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
