"""
Agrometeorological formulas used to fill fields a provider does not report.

References:
- Hargreaves & Samani (1985): Reference crop evapotranspiration from temperature
- Allen et al. (1998): FAO Irrigation and Drainage Paper No. 56
"""
import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

import numpy as np


@dataclass(frozen=True)
class CropCoefficients:
    """Pistachio crop coefficients and growth-stage boundaries (day of year)."""
    kc_initial: float = 0.45
    kc_development: float = 0.75
    kc_mid: float = 1.1
    kc_late: float = 0.85
    bud_break: int = 90
    flowering: int = 120
    fruit_development: int = 180
    harvest: int = 270


PISTACHIO_KC = CropCoefficients()

# Daily ET above this is treated as a reporting error
MAX_DAILY_ET = 20.0


def day_of_year(day: date) -> int:
    return day.timetuple().tm_yday


def is_in_window(day: date, months: Iterable[int]) -> bool:
    """Whether a date falls in one of the given calendar months."""
    return day.month in set(months)


def winter_campaign_year(day: date) -> int:
    """
    Campaign year of a winter date.

    November and December belong to the following year's campaign, so the
    Nov 2023 - Feb 2024 winter is campaign 2024.
    """
    return day.year + 1 if day.month >= 11 else day.year


def extraterrestrial_radiation(latitude: float, doy: int) -> float:
    """
    Daily extraterrestrial radiation Ra (MJ/m²/day), FAO-56 eq. 21.

    Args:
        latitude: Latitude in degrees
        doy: Day of year (1-366)

    Returns:
        Ra, never negative
    """
    lat_rad = math.radians(latitude)
    declination = 0.409 * math.sin(2 * math.pi * doy / 365 - 1.39)
    inverse_distance = 1 + 0.033 * math.cos(2 * math.pi * doy / 365)
    # Clamp for polar day/night
    cos_ws = max(-1.0, min(1.0, -math.tan(lat_rad) * math.tan(declination)))
    sunset_angle = math.acos(cos_ws)

    ra = (24 * 60 / math.pi) * 0.082 * inverse_distance * (
        sunset_angle * math.sin(lat_rad) * math.sin(declination)
        + math.cos(lat_rad) * math.cos(declination) * math.sin(sunset_angle)
    )
    return max(0.0, ra)


def hargreaves_eto(temp_max: float, temp_min: float, latitude: float, doy: int) -> float:
    """
    Reference evapotranspiration with the Hargreaves-Samani equation.

    ETo = 0.0023 * (Tmean + 17.8) * sqrt(Tmax - Tmin) * Ra * 0.408

    The 0.408 factor converts Ra from MJ/m²/day to mm/day of evaporation.
    """
    temp_mean = (temp_max + temp_min) / 2
    ra = extraterrestrial_radiation(latitude, doy)
    eto = 0.0023 * (temp_mean + 17.8) * math.sqrt(abs(temp_max - temp_min)) * ra * 0.408
    return sanitize_daily_et(eto)


def sanitize_daily_et(value: float) -> float:
    if value <= 0 or math.isnan(value):
        return 0.0
    return min(value, MAX_DAILY_ET)


def crop_coefficient(doy: int, kc: CropCoefficients = PISTACHIO_KC) -> float:
    """Kc interpolated linearly between growth stages."""
    stages = [
        (kc.bud_break, kc.kc_initial),
        (kc.flowering, kc.kc_development),
        (kc.fruit_development, kc.kc_mid),
        (kc.harvest, kc.kc_late),
    ]
    if doy < stages[0][0]:
        return kc.kc_initial
    for (start_doy, start_kc), (end_doy, end_kc) in zip(stages, stages[1:]):
        if doy < end_doy:
            progress = (doy - start_doy) / (end_doy - start_doy)
            return start_kc + progress * (end_kc - start_kc)
    return kc.kc_late


def growing_degree_days(temp_mean: float, base_temp: float) -> float:
    return max(0.0, temp_mean - base_temp)


def hours_below(threshold: float, temp_min: float, temp_max: float) -> float:
    """
    Hours of a day spent below a threshold.

    Assumes a linear daily temperature course between the extremes.
    """
    if temp_max <= threshold:
        return 24.0
    if temp_min >= threshold:
        return 0.0
    span = temp_max - temp_min
    return max(0.0, min(24.0, 24.0 * (threshold - temp_min) / span))


def relative_humidity(temp_c, dewpoint_c):
    """
    Relative humidity (%) from air and dewpoint temperature (Magnus).

    Works element-wise on numpy arrays and pandas Series; missing
    dewpoints stay NaN.
    """
    es = 6.112 * np.exp(17.67 * temp_c / (temp_c + 243.5))
    e = 6.112 * np.exp(17.67 * dewpoint_c / (dewpoint_c + 243.5))
    return np.clip(100 * e / es, 0.0, 100.0)


def clamp_non_negative(value: Optional[float]) -> Optional[float]:
    """max(0, value); negative readings are reporting noise."""
    if value is None:
        return None
    return max(0.0, value)
