"""
Upstream endpoint constants and parameter vocabularies.

This module contains the provider-specific paths, field names and sentinel
values. Centralizing these values makes it easy to follow upstream API changes.
"""


class NasaPowerAPI:
    """NASA POWER daily point API."""

    COMMUNITY = "AG"
    FILL_VALUE = -999.0
    DATE_FORMAT = "%Y%m%d"

    # Upstream parameter -> canonical field
    PARAMETERS = {
        "T2M_MAX": "temperature_max",
        "T2M_MIN": "temperature_min",
        "T2M": "temperature_avg",
        "RH2M": "humidity",
        "PRECTOTCORR": "precipitation",
        "WS2M": "wind_speed",
        "ALLSKY_SFC_SW_DWN": "solar_radiation",
    }


class AemetAPIEndpoints:
    """AEMET OpenData endpoint paths."""

    MUNICIPALITY_DAILY_FORECAST = "/prediccion/especifica/municipio/diaria/{municipality_id}"
    MUNICIPALITIES = "/maestro/municipios"

    PARAMETERS = (
        "temperatura.maxima",
        "temperatura.minima",
        "humedadRelativa",
        "viento",
        "probPrecipitacion",
    )

    @classmethod
    def get_daily_forecast(cls, municipality_id: str) -> str:
        """
        Get the daily forecast endpoint for a municipality.

        Args:
            municipality_id: INE municipality code (5 digits)

        Returns:
            Formatted endpoint path
        """
        return cls.MUNICIPALITY_DAILY_FORECAST.format(municipality_id=municipality_id)


class SiarAPIEndpoints:
    """SIAR agroclimatic network endpoint paths."""

    STATIONS = "/estaciones"
    STATION_DATA = "/estaciones/{station_code}/datos"

    # Upstream field -> canonical field
    PARAMETERS = {
        "temperaturaMaxima": "temperature_max",
        "temperaturaMinima": "temperature_min",
        "temperaturaMedia": "temperature_avg",
        "humedadRelativa": "humidity",
        "precipitacion": "precipitation",
        "velocidadViento": "wind_speed",
        "radiacionSolar": "solar_radiation",
        "etPMon": "eto",
    }

    @classmethod
    def get_station_data(cls, station_code: str) -> str:
        return cls.STATION_DATA.format(station_code=station_code)


class CdsAPIEndpoints:
    """Copernicus CDS Retrieve API v1 paths."""

    EXECUTE = "/retrieve/v1/processes/{process_id}/execution"
    JOB = "/retrieve/v1/jobs/{job_id}"

    VARIABLES = (
        "2m_temperature",
        "2m_dewpoint_temperature",
        "total_precipitation",
        "surface_solar_radiation_downwards",
        "10m_u_component_of_wind",
        "10m_v_component_of_wind",
    )

    # Accepted CSV header aliases per variable
    COLUMNS = {
        "time": ("valid_time", "time", "date", "datetime"),
        "temperature": ("2m_temperature", "t2m"),
        "dewpoint": ("2m_dewpoint_temperature", "d2m"),
        "precipitation": ("total_precipitation", "tp"),
        "radiation": ("surface_solar_radiation_downwards", "ssrd"),
        "u_wind": ("10m_u_component_of_wind", "u10"),
        "v_wind": ("10m_v_component_of_wind", "v10"),
    }

    @classmethod
    def get_execute(cls, process_id: str) -> str:
        return cls.EXECUTE.format(process_id=process_id)

    @classmethod
    def get_job(cls, job_id: str) -> str:
        return cls.JOB.format(job_id=job_id)


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Diagnostic body kept on upstream failures
    MAX_ERROR_BODY_CHARS = 500
