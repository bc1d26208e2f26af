"""
Domain service: aggregate canonical daily records into climate indicators.

Missing values are carried as NaN so each field is reduced over the days
that actually report it; a gap in one field never counts as zero in
another field's totals.
"""
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Optional, Sequence
import logging

import numpy as np

from agroclima.config import settings
from agroclima.domain.models import (
    CampaignSummary,
    ClimateProfile,
    ClimateStability,
    DailyRecord,
    HistoricalTrends,
)
from agroclima.utils.agro_formulas import is_in_window, winter_campaign_year

logger = logging.getLogger(__name__)

GROWING_SEASON_MONTHS = (3, 4, 5, 6, 7, 8, 9, 10)
SPRING_FROST_MONTHS = (3, 4)
SUMMER_MONTHS = (6, 7, 8)

# Stability needs a few seasons before variability means anything
MIN_YEARS_FOR_STABILITY = 3


def _column(records: Sequence[DailyRecord], getter: Callable[[DailyRecord], Optional[float]]) -> np.ndarray:
    """Field values as a float array with NaN for missing entries."""
    values = (getter(r) for r in records)
    return np.array([np.nan if v is None else v for v in values], dtype=float)


def _safe(value: float) -> float:
    """Replace NaN (all-missing reductions) with 0."""
    return 0.0 if np.isnan(value) else float(value)


def _nan_reduce(func, values: np.ndarray) -> float:
    if values.size == 0 or np.all(np.isnan(values)):
        return 0.0
    return _safe(func(values))


def aggregate(records: Sequence[DailyRecord]) -> ClimateProfile:
    """
    Build a ClimateProfile over a record sequence.

    Args:
        records: Canonical daily records, in any order

    Returns:
        ClimateProfile; all zeros with year_count 0 for empty input
    """
    if not records:
        return ClimateProfile()

    t_avg = _column(records, lambda r: r.temperature_avg)
    t_min = _column(records, lambda r: r.temperature_min)
    t_max = _column(records, lambda r: r.temperature_max)
    precipitation = _column(records, lambda r: r.precipitation)
    eto = _column(records, lambda r: r.eto)
    etc = _column(records, lambda r: r.etc)
    frost = _column(records, lambda r: r.frost_hours)
    gdd = _column(records, lambda r: r.gdd)
    # Chill only counts inside the dormancy window
    chill = _column(
        records,
        lambda r: r.chill_hours if is_in_window(r.date, settings.dormancy_months) else 0.0,
    )

    # Fall back to the daily mean when no extreme is reported
    lowest = t_min if not np.all(np.isnan(t_min)) else t_avg
    highest = t_max if not np.all(np.isnan(t_max)) else t_avg

    total_precipitation = _nan_reduce(np.nansum, precipitation)
    total_etc = _nan_reduce(np.nansum, etc)
    water_deficit = max(0.0, total_etc - total_precipitation)

    with np.errstate(invalid="ignore"):
        frost_days = int(np.sum(frost > 0))
        heat_stress_days = int(np.sum(t_max > settings.heat_stress_threshold))
        extreme_cold_days = int(np.sum(t_min < settings.extreme_cold_threshold))

    year_count = len({r.date.year for r in records})
    total_chill = _nan_reduce(np.nansum, chill)
    total_gdd = _nan_reduce(np.nansum, gdd)

    def per_year(total: float) -> float:
        return round(total / year_count, 2) if year_count else 0.0

    return ClimateProfile(
        total_days=len(records),
        year_count=year_count,
        avg_temperature=round(_nan_reduce(np.nanmean, t_avg), 2),
        min_temperature=round(_nan_reduce(np.nanmin, lowest), 2),
        max_temperature=round(_nan_reduce(np.nanmax, highest), 2),
        total_chill_hours=round(total_chill, 2),
        total_frost_hours=round(_nan_reduce(np.nansum, frost), 2),
        frost_days=frost_days,
        total_precipitation=round(total_precipitation, 2),
        total_eto=round(_nan_reduce(np.nansum, eto), 2),
        total_etc=round(total_etc, 2),
        water_deficit=round(water_deficit, 2),
        total_gdd=round(total_gdd, 2),
        heat_stress_days=heat_stress_days,
        extreme_cold_days=extreme_cold_days,
        annual_chill_hours=per_year(total_chill),
        annual_gdd=per_year(total_gdd),
        annual_precipitation=per_year(total_precipitation),
        annual_etc=per_year(total_etc),
        annual_water_deficit=per_year(water_deficit),
        annual_frost_days=per_year(frost_days),
        annual_heat_stress_days=per_year(heat_stress_days),
        annual_extreme_cold_days=per_year(extreme_cold_days),
    )


def _percentile(values: Iterable[float], q: float) -> float:
    array = np.array(list(values), dtype=float)
    if array.size == 0:
        return 0.0
    return round(float(np.percentile(array, q)), 2)


def summarize_campaigns(records: Sequence[DailyRecord]) -> CampaignSummary:
    """
    Per-campaign agronomic aggregates with conservative percentiles.

    Winter quantities (chill, extreme cold) are credited to the campaign
    year of their winter, so Nov 2023 - Feb 2024 counts toward 2024.
    Growing-season GDD and water deficit cover March to October, spring
    frost March and April, summer heat stress June to August.
    """
    chill: Dict[int, float] = defaultdict(float)
    extreme_cold: Dict[int, int] = defaultdict(int)
    season_gdd: Dict[int, float] = defaultdict(float)
    season_etc: Dict[int, float] = defaultdict(float)
    season_precip: Dict[int, float] = defaultdict(float)
    spring_frost: Dict[int, int] = defaultdict(int)
    summer_heat: Dict[int, int] = defaultdict(int)

    for r in records:
        year = r.date.year
        if is_in_window(r.date, settings.dormancy_months):
            campaign = winter_campaign_year(r.date)
            chill[campaign] += r.chill_hours or 0.0
            cold = r.temperature_min is not None and r.temperature_min < settings.extreme_cold_threshold
            extreme_cold[campaign] += int(cold)
        if r.date.month in GROWING_SEASON_MONTHS:
            season_gdd[year] += r.gdd or 0.0
            season_etc[year] += r.etc or 0.0
            season_precip[year] += r.precipitation
        if r.date.month in SPRING_FROST_MONTHS:
            spring_frost[year] += int((r.frost_hours or 0) > 0)
        if r.date.month in SUMMER_MONTHS:
            hot = r.temperature_max is not None and r.temperature_max > settings.heat_stress_threshold
            summer_heat[year] += int(hot)

    deficit = {
        year: round(max(0.0, season_etc[year] - season_precip[year]), 2)
        for year in season_etc
    }

    return CampaignSummary(
        years=sorted({r.date.year for r in records}),
        winter_chill_by_year={y: round(v, 2) for y, v in sorted(chill.items())},
        season_gdd_by_year={y: round(v, 2) for y, v in sorted(season_gdd.items())},
        spring_frost_days_by_year=dict(sorted(spring_frost.items())),
        summer_heat_stress_days_by_year=dict(sorted(summer_heat.items())),
        winter_extreme_cold_days_by_year=dict(sorted(extreme_cold.items())),
        water_deficit_by_year=dict(sorted(deficit.items())),
        # Winters and seasons that accumulated nothing are not campaigns
        chill_hours_p10=_percentile((v for v in chill.values() if v > 0), 10),
        gdd_p10=_percentile((v for v in season_gdd.values() if v > 0), 10),
        spring_frost_days_p90=_percentile(spring_frost.values(), 90),
        heat_stress_days_p90=_percentile(summer_heat.values(), 90),
        extreme_cold_days_p90=_percentile(extreme_cold.values(), 90),
        water_deficit_p90=_percentile(deficit.values(), 90),
    )


def linear_trend(values: Sequence[float]) -> float:
    """Least-squares slope per step, 0 for fewer than two points."""
    if len(values) < 2:
        return 0.0
    x = np.arange(len(values), dtype=float)
    slope = np.polyfit(x, np.asarray(values, dtype=float), 1)[0]
    return round(float(slope), 3)


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population CV in percent, 0 when the mean is 0."""
    array = np.asarray(values, dtype=float)
    mean = float(np.mean(array))
    if mean == 0:
        return 0.0
    return float(np.std(array) / abs(mean) * 100)


def calculate_historical_trends(records: Sequence[DailyRecord]) -> HistoricalTrends:
    """
    Year-over-year trends over calendar-year profiles.

    Returns:
        HistoricalTrends; slopes are 0 with fewer than two years and the
        stability score stays 50 with fewer than three
    """
    by_year: Dict[int, List[DailyRecord]] = defaultdict(list)
    for r in records:
        by_year[r.date.year].append(r)

    years = sorted(by_year)
    yearly_profiles = {year: aggregate(by_year[year]) for year in years}

    if len(years) < 2:
        return HistoricalTrends(total_years=len(years), yearly_profiles=yearly_profiles)

    temperatures = [yearly_profiles[y].avg_temperature for y in years]
    precipitation = [yearly_profiles[y].total_precipitation for y in years]

    stability = ClimateStability()
    if len(years) >= MIN_YEARS_FOR_STABILITY:
        temp_cv = coefficient_of_variation(temperatures)
        precip_cv = coefficient_of_variation(precipitation)
        stability = ClimateStability(
            temperature_variability=round(temp_cv, 2),
            precipitation_variability=round(precip_cv, 2),
            stability_score=round(max(0.0, 100 - (temp_cv + precip_cv) * 10), 1),
        )

    logger.info(f"Historical trends over {len(years)} years ({years[0]}-{years[-1]})")
    return HistoricalTrends(
        total_years=len(years),
        temperature_trend=linear_trend(temperatures),
        precipitation_trend=linear_trend(precipitation),
        chill_hours_trend=linear_trend([yearly_profiles[y].total_chill_hours for y in years]),
        frost_days_trend=linear_trend([yearly_profiles[y].frost_days for y in years]),
        yearly_profiles=yearly_profiles,
        climate_stability=stability,
    )
