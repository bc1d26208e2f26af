"""
Domain service: boundary validation of climate queries.

Rules run in a fixed order and the first failure wins, so callers always
get the same message for the same bad request. Nothing here performs I/O.
"""
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional
import logging

from agroclima.config import settings
from agroclima.domain.models import DateRange, Location, SourceKind
from agroclima.utils.geo_projection import is_valid_coordinate

logger = logging.getLogger(__name__)

POSTAL_CODE_PATTERN = re.compile(r"^\d{5}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InputValidationError(ValueError):
    """A request rejected at the boundary; never retried."""

    def __init__(
        self,
        message: str,
        debug: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.debug = debug
        self.source = source


@dataclass(frozen=True)
class ClimateQuery:
    """A validated request ready for dispatch."""
    source: SourceKind
    location: Location
    date_range: DateRange
    is_historical: bool = False


def parse_source(value: Any) -> SourceKind:
    if value is None or str(value).strip() == "":
        raise InputValidationError("Missing required parameter (source)")
    try:
        return SourceKind(str(value).strip())
    except ValueError:
        raise InputValidationError(
            f"Unknown source '{value}'",
            debug={"supported": [k.value for k in SourceKind]},
        )


def parse_day(value: Any) -> Optional[date]:
    """Parse YYYY-MM-DD, or the date part of an ISO datetime."""
    text = str(value or "").strip()[:10]
    if not DATE_PATTERN.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _require_dates(start_raw: Any, end_raw: Any) -> DateRange:
    start, end = parse_day(start_raw), parse_day(end_raw)
    if start is None or end is None:
        raise InputValidationError(
            "Invalid dates (use YYYY-MM-DD)",
            debug={"startDate": start_raw, "endDate": end_raw},
        )
    if end < start:
        raise InputValidationError("endDate must be >= startDate")
    return DateRange(start=start, end=end)


def _require_coordinates(latitude: Any, longitude: Any) -> Location:
    if latitude is None or longitude is None:
        raise InputValidationError("Missing required parameters (latitude, longitude)")
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise InputValidationError("latitude and longitude must be numbers")
    if not is_valid_coordinate(lat, lon):
        raise InputValidationError(
            "Coordinates out of range",
            debug={"latitude": lat, "longitude": lon},
        )
    return Location(latitude=lat, longitude=lon)


def validate_postal_code(value: Any) -> str:
    postal_code = str(value or "").strip()
    if not POSTAL_CODE_PATTERN.match(postal_code):
        raise InputValidationError("Invalid postal code (5 digits)")
    return postal_code


def _validate_aemet(body: Mapping[str, Any], today: date) -> ClimateQuery:
    postal_code = validate_postal_code(body.get("postalCode"))

    start = parse_day(body.get("startDate")) if body.get("startDate") else today
    if start is None:
        raise InputValidationError(
            "Invalid dates (use YYYY-MM-DD)",
            debug={"startDate": body.get("startDate"), "endDate": body.get("endDate")},
            source=SourceKind.AEMET.value,
        )
    end_raw = body.get("endDate")
    end = parse_day(end_raw) if end_raw else start + timedelta(days=settings.aemet_max_forecast_days - 1)
    if end is None:
        raise InputValidationError(
            "Invalid dates (use YYYY-MM-DD)",
            debug={"startDate": body.get("startDate"), "endDate": end_raw},
            source=SourceKind.AEMET.value,
        )

    if start < today:
        raise InputValidationError(
            "AEMET only provides forecasts (from today onward)",
            debug={"startDate": start.isoformat(), "today": today.isoformat()},
            source=SourceKind.AEMET.value,
        )
    if end < start:
        raise InputValidationError("endDate must be >= startDate", source=SourceKind.AEMET.value)

    date_range = DateRange(start=start, end=end)
    if date_range.days > settings.aemet_max_forecast_days:
        raise InputValidationError(
            f"Date range exceeded (max {settings.aemet_max_forecast_days} days)",
            source=SourceKind.AEMET.value,
        )
    return ClimateQuery(
        source=SourceKind.AEMET,
        location=Location(postal_code=postal_code),
        date_range=date_range,
    )


def validate_climate_request(
    body: Mapping[str, Any],
    today: Optional[date] = None,
) -> ClimateQuery:
    """
    Validate a single-source climate query.

    Args:
        body: Request fields keyed by their wire names (source, latitude,
            longitude, postalCode, startDate, endDate, isHistorical)
        today: Reference date, defaults to the current date

    Returns:
        ClimateQuery

    Raises:
        InputValidationError: On the first violated rule
    """
    today = today or date.today()
    try:
        source = parse_source(body.get("source"))
        if source == SourceKind.AEMET:
            return _validate_aemet(body, today)

        if not body.get("startDate") or not body.get("endDate"):
            raise InputValidationError("Missing required parameters (startDate, endDate)")
        location = _require_coordinates(body.get("latitude"), body.get("longitude"))
        date_range = _require_dates(body.get("startDate"), body.get("endDate"))

        is_historical = bool(body.get("isHistorical"))
        if is_historical and date_range.end > today:
            raise InputValidationError(
                "endDate cannot be in the future for historical requests",
                debug={"endDate": date_range.end.isoformat(), "today": today.isoformat()},
            )
        if not is_historical and date_range.days > settings.max_range_days:
            raise InputValidationError(
                f"Date range cannot exceed {settings.max_range_days} days "
                "(set isHistorical for longer ranges)",
                debug={"days": date_range.days},
            )
    except InputValidationError as e:
        logger.warning(f"Rejected climate request: {e.message}")
        raise

    return ClimateQuery(
        source=source,
        location=location,
        date_range=date_range,
        is_historical=is_historical,
    )


def validate_multi_source_request(
    body: Mapping[str, Any],
) -> tuple[List[SourceKind], Location, DateRange]:
    """Validate a fan-out query over several sources for one coordinate."""
    raw_sources = body.get("sources") or []
    if not raw_sources:
        raise InputValidationError("Missing required parameter (sources)")
    sources: List[SourceKind] = []
    for raw in raw_sources:
        kind = parse_source(raw)
        if kind not in sources:
            sources.append(kind)

    if not body.get("startDate") or not body.get("endDate"):
        raise InputValidationError("Missing required parameters (startDate, endDate)")
    location = _require_coordinates(body.get("latitude"), body.get("longitude"))
    date_range = _require_dates(body.get("startDate"), body.get("endDate"))
    if date_range.days > settings.max_range_days:
        raise InputValidationError(
            f"Date range cannot exceed {settings.max_range_days} days",
            debug={"days": date_range.days},
        )
    return sources, location, date_range


def years_before(day: date, years: int) -> date:
    """Same calendar day ``years`` earlier; Feb 29 maps to Feb 28."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


def validate_historical_request(
    body: Mapping[str, Any],
    default_source: Optional[str] = None,
    today: Optional[date] = None,
) -> ClimateQuery:
    """
    Validate a historical analysis query, filling defaults.

    The source falls back to ``default_source`` (the configured default
    when omitted), the end to today and the start to the configured
    number of years before the end.
    """
    today = today or date.today()
    source = parse_source(body.get("source") or default_source or settings.default_source)
    if source == SourceKind.AEMET:
        raise InputValidationError("AEMET only provides forecasts and cannot serve historical data")

    location = _require_coordinates(body.get("latitude"), body.get("longitude"))

    end = parse_day(body.get("endDate")) if body.get("endDate") else today
    if end is None:
        raise InputValidationError("Invalid dates (use YYYY-MM-DD)", debug={"endDate": body.get("endDate")})
    start = (
        parse_day(body.get("startDate")) if body.get("startDate")
        else years_before(end, settings.historical_default_years)
    )
    if start is None:
        raise InputValidationError("Invalid dates (use YYYY-MM-DD)", debug={"startDate": body.get("startDate")})
    if end < start:
        raise InputValidationError("endDate must be >= startDate")
    if end > today:
        raise InputValidationError(
            "endDate cannot be in the future for historical requests",
            debug={"endDate": end.isoformat(), "today": today.isoformat()},
        )

    return ClimateQuery(
        source=source,
        location=location,
        date_range=DateRange(start=start, end=end),
        is_historical=True,
    )
