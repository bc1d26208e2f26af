"""
Domain service: map raw provider payloads onto the canonical DailyRecord.

Provider clients already emit canonical field names in SI units; what
varies is which fields are present. This module fills the gaps:

- temperature_avg falls back to (max + min) / 2, then to the single
  available extreme; a payload with no temperature at all is dropped
- magnitude fields are clamped to zero
- eto is estimated with Hargreaves-Samani when latitude and both extremes
  are known, etc as eto * Kc(day of year)
- frost_hours falls back to a frost-day flag when temperature_min < 0
- chill_hours is estimated from the daily extremes and only credited
  inside the dormancy window
- gdd falls back to max(0, Tmean - base)
"""
import math
from datetime import date, datetime
from typing import Any, Iterable, List, Optional
import logging

from agroclima.config import settings
from agroclima.domain.models import DailyRecord, SourceKind
from agroclima.utils.agro_formulas import (
    clamp_non_negative,
    crop_coefficient,
    day_of_year,
    growing_degree_days,
    hargreaves_eto,
    hours_below,
    is_in_window,
    sanitize_daily_et,
)

logger = logging.getLogger(__name__)

# Inferred frost: at least one hour below zero, duration unknown
INFERRED_FROST_HOURS = 1.0


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a raw field to float.

    Numeric strings (including decimal commas) are accepted; None, empty
    strings, booleans, NaN, infinities and non-numeric text are absent.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_date(value: Any) -> Optional[date]:
    """Parse ISO dates, ISO datetimes and compact YYYYMMDD stamps."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        if len(text) == 8 and text.isdigit():
            return datetime.strptime(text, "%Y%m%d").date()
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _resolve_temperature_avg(
    avg: Optional[float],
    t_min: Optional[float],
    t_max: Optional[float],
) -> Optional[float]:
    if avg is not None:
        return avg
    if t_min is not None and t_max is not None:
        return (t_min + t_max) / 2
    if t_max is not None:
        return t_max
    return t_min


def normalize(
    raw: dict,
    source_kind: SourceKind,
    latitude: Optional[float] = None,
) -> Optional[DailyRecord]:
    """
    Normalize one raw payload.

    Args:
        raw: Payload keyed by canonical field names
        source_kind: Provider that produced the payload
        latitude: Site latitude, needed to estimate ETo

    Returns:
        DailyRecord, or None when the date is unparseable or no temperature
        is present
    """
    day = parse_date(raw.get("date"))
    if day is None:
        logger.debug(f"{source_kind.value}: dropping payload with date {raw.get('date')!r}")
        return None

    t_min = to_number(raw.get("temperature_min"))
    t_max = to_number(raw.get("temperature_max"))
    t_avg = _resolve_temperature_avg(to_number(raw.get("temperature_avg")), t_min, t_max)
    if t_avg is None:
        logger.debug(f"{source_kind.value}: dropping {day} without temperature")
        return None

    doy = day_of_year(day)

    eto = clamp_non_negative(to_number(raw.get("eto")))
    if eto is not None:
        eto = sanitize_daily_et(eto)
    elif latitude is not None and t_min is not None and t_max is not None:
        eto = hargreaves_eto(t_max, t_min, latitude, doy)

    etc = clamp_non_negative(to_number(raw.get("etc")))
    if etc is not None:
        etc = sanitize_daily_et(etc)
    elif eto is not None:
        etc = sanitize_daily_et(eto * crop_coefficient(doy))

    frost_hours = clamp_non_negative(to_number(raw.get("frost_hours")))
    frost_inferred = False
    if frost_hours is None and t_min is not None:
        if t_min < settings.frost_threshold:
            frost_hours = INFERRED_FROST_HOURS
            frost_inferred = True
        else:
            frost_hours = 0.0

    chill_hours = clamp_non_negative(to_number(raw.get("chill_hours")))
    if not is_in_window(day, settings.dormancy_months):
        chill_hours = 0.0
    elif chill_hours is None and t_min is not None and t_max is not None:
        chill_hours = hours_below(settings.chill_threshold, t_min, t_max)

    gdd = clamp_non_negative(to_number(raw.get("gdd")))
    if gdd is None:
        gdd = growing_degree_days(t_avg, settings.gdd_base_temperature)

    return DailyRecord(
        date=day,
        temperature_avg=t_avg,
        temperature_min=t_min,
        temperature_max=t_max,
        precipitation=clamp_non_negative(to_number(raw.get("precipitation"))) or 0.0,
        humidity=to_number(raw.get("humidity")),
        solar_radiation=clamp_non_negative(to_number(raw.get("solar_radiation"))),
        wind_speed=clamp_non_negative(to_number(raw.get("wind_speed"))),
        eto=eto,
        etc=etc,
        frost_hours=frost_hours,
        frost_hours_inferred=frost_inferred,
        chill_hours=chill_hours,
        gdd=gdd,
    )


def normalize_batch(
    raws: Iterable[dict],
    source_kind: SourceKind,
    latitude: Optional[float] = None,
) -> List[DailyRecord]:
    """Normalize a batch, dropping invalid payloads."""
    records: List[DailyRecord] = []
    discarded = 0
    for raw in raws:
        record = normalize(raw, source_kind, latitude) if isinstance(raw, dict) else None
        if record is None:
            discarded += 1
        else:
            records.append(record)

    if discarded:
        logger.debug(f"{source_kind.value}: discarded {discarded} payloads during normalization")
    return records
