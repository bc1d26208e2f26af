"""
Domain service: score crop varieties against a climate profile.

Each variety starts at 100 and is blended with one factor score at a time,
``score = score * (1 - weight) + factor * weight``:

- chill-hour range containment (25%)
- summer heat tolerance margin (20%)
- winter cold tolerance margin (15%)
- water deficit against annual need (20%)
- thermal accumulation in GDD (10%)
- frost and heat-stress day risk (10%)

When per-campaign summaries are available the site is judged on a bad
year: P10 winter chill and P10 Mar-Oct GDD, P90 Mar-Apr frost days, P90
Jun-Aug heat-stress days, P90 winter extreme-cold days and P90 Mar-Oct
water deficit. Without them the per-year means of the profile are used.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence
import logging

from agroclima.config import settings
from agroclima.domain.models import (
    CampaignSummary,
    ClimateProfile,
    DetailedReport,
    Location,
    PlantingStrategy,
    PollinizerReference,
    ReportSummary,
    RiskAssessment,
    VarietyProfile,
    VarietyRecommendation,
)
from agroclima.domain.varieties import get_pollinizers_for_variety

logger = logging.getLogger(__name__)


@dataclass
class SuitabilityConfig:
    """Weights and thresholds of the suitability scoring."""

    # Factor weights
    chill_weight: float = 0.25
    heat_weight: float = 0.20
    cold_weight: float = 0.15
    water_weight: float = 0.20
    thermal_weight: float = 0.10
    risk_weight: float = 0.10

    # Thermal accumulation band (GDD per year)
    gdd_min: float = 1500.0
    gdd_max: float = 3000.0

    # Water deficit as a share of annual need
    water_low_ratio: float = 0.3
    water_moderate_ratio: float = 0.6

    pollinizer_penalty: float = 15.0

    # Report classes
    suitable_score: float = 70.0
    marginal_score: float = 50.0
    top_count: int = 3


@dataclass(frozen=True)
class ScoringBasis:
    """Annual indicators a site is scored on."""
    chill_hours: float
    gdd: float
    frost_days: float
    heat_stress_days: float
    extreme_cold_days: float
    water_deficit: float

    @classmethod
    def from_profile(cls, profile: ClimateProfile) -> "ScoringBasis":
        return cls(
            chill_hours=profile.annual_chill_hours,
            gdd=profile.annual_gdd,
            frost_days=profile.annual_frost_days,
            heat_stress_days=profile.annual_heat_stress_days,
            extreme_cold_days=profile.annual_extreme_cold_days,
            water_deficit=profile.annual_water_deficit,
        )

    @classmethod
    def from_campaigns(cls, campaigns: CampaignSummary) -> "ScoringBasis":
        return cls(
            chill_hours=campaigns.chill_hours_p10,
            gdd=campaigns.gdd_p10,
            frost_days=campaigns.spring_frost_days_p90,
            heat_stress_days=campaigns.heat_stress_days_p90,
            extreme_cold_days=campaigns.extreme_cold_days_p90,
            water_deficit=campaigns.water_deficit_p90,
        )


def scoring_basis(profile: ClimateProfile, campaigns: Optional[CampaignSummary] = None) -> ScoringBasis:
    """Campaign percentiles when any campaign was summarized, else profile means."""
    if campaigns is not None and campaigns.years:
        return ScoringBasis.from_campaigns(campaigns)
    return ScoringBasis.from_profile(profile)


class SuitabilityEngine:
    """Ranks varieties for a site and composes the detailed report."""

    def __init__(self, config: Optional[SuitabilityConfig] = None):
        self.config = config or SuitabilityConfig()

    # ========================================================================
    # Scoring
    # ========================================================================

    def score(
        self,
        varieties: Sequence[VarietyProfile],
        profile: ClimateProfile,
        location: Location,
        campaigns: Optional[CampaignSummary] = None,
    ) -> List[VarietyRecommendation]:
        """
        Evaluate each variety against the site climate.

        Args:
            varieties: Candidate varieties
            profile: Aggregated climate of the site
            location: Site location
            campaigns: Per-campaign summary of the same records, if available

        Returns:
            Recommendations sorted by descending score
        """
        if profile.total_days < settings.min_recommendation_days:
            logger.warning(
                f"Profile covers {profile.total_days} days, "
                f"{settings.min_recommendation_days} needed to score varieties"
            )
            return [self._insufficient_data(v) for v in varieties]

        basis = scoring_basis(profile, campaigns)
        recommendations = [self._evaluate(v, profile, basis) for v in varieties]
        # Stable sort keeps catalogue order on ties
        return sorted(recommendations, key=lambda r: r.suitability_score, reverse=True)

    def _insufficient_data(self, variety: VarietyProfile) -> VarietyRecommendation:
        return VarietyRecommendation(
            variety=variety,
            suitability_score=0,
            concerns=[
                "Insufficient data: at least one full campaign "
                f"({settings.min_recommendation_days} days) is required to recommend varieties"
            ],
            recommendations=["Extend the date range, ideally to 5-10 campaigns"],
        )

    def _evaluate(
        self,
        variety: VarietyProfile,
        profile: ClimateProfile,
        basis: ScoringBasis,
    ) -> VarietyRecommendation:
        cfg = self.config
        matching: List[str] = []
        concerns: List[str] = []

        score = 100.0
        for weight, factor in (
            (cfg.chill_weight, self._chill_factor(variety, basis, matching, concerns)),
            (cfg.heat_weight, self._heat_factor(variety, profile, matching, concerns)),
            (cfg.cold_weight, self._cold_factor(variety, profile, matching, concerns)),
            (cfg.water_weight, self._water_factor(variety, basis, matching, concerns)),
            (cfg.thermal_weight, self._thermal_factor(basis, matching, concerns)),
            (cfg.risk_weight, self._risk_factor(basis, matching, concerns)),
        ):
            score = score * (1 - weight) + factor * weight

        pollinizers = get_pollinizers_for_variety(variety)
        if pollinizers and not any(
            basis.chill_hours >= p.chill_hours_min for p in pollinizers
        ):
            concerns.append(
                "Pollination at risk: none of the suggested pollinizers reaches "
                "its minimum chill hours"
            )
            score -= cfg.pollinizer_penalty

        return VarietyRecommendation(
            variety=variety,
            suitability_score=round(max(0.0, min(100.0, score)), 1),
            matching_factors=matching,
            concerns=concerns,
            recommendations=self._variety_recommendations(variety, profile, basis),
            pollinizers=[PollinizerReference(id=p.id, name=p.name) for p in pollinizers],
        )

    def _chill_factor(self, variety, basis, matching, concerns) -> float:
        chill = basis.chill_hours
        if variety.chill_hours_min <= chill <= variety.chill_hours_max:
            matching.append(f"Adequate chill hours ({chill:.0f} h per winter)")
            return 100.0
        if chill < variety.chill_hours_min:
            deficit = variety.chill_hours_min - chill
            concerns.append(f"Chill hour deficit: {deficit:.0f} h below the minimum")
            return max(0.0, 100 - deficit / variety.chill_hours_min * 100)
        excess = chill - variety.chill_hours_max
        concerns.append(f"Chill hour excess: {excess:.0f} h above the maximum")
        return max(50.0, 100 - excess / variety.chill_hours_max * 50)

    def _heat_factor(self, variety, profile, matching, concerns) -> float:
        peak = profile.max_temperature
        if peak <= variety.max_summer_temp:
            matching.append(f"Good heat tolerance (recorded maximum {peak}°C)")
            return 100.0
        excess = peak - variety.max_summer_temp
        if excess <= 3:
            concerns.append(f"Occasionally high temperatures ({peak}°C)")
            return 80.0
        concerns.append(f"Excessive temperatures ({peak}°C vs maximum {variety.max_summer_temp}°C)")
        return max(20.0, 100 - excess * 10)

    def _cold_factor(self, variety, profile, matching, concerns) -> float:
        low = profile.min_temperature
        if low >= variety.min_winter_temp:
            matching.append(f"Good cold tolerance (recorded minimum {low}°C)")
            return 100.0
        deficit = variety.min_winter_temp - low
        if deficit <= 2:
            concerns.append(f"Occasional severe frosts ({low}°C)")
            return 70.0
        concerns.append(f"Temperatures too low ({low}°C vs minimum {variety.min_winter_temp}°C)")
        return max(10.0, 100 - deficit * 15)

    def _water_factor(self, variety, basis, matching, concerns) -> float:
        deficit = basis.water_deficit
        ratio = deficit / variety.annual_water_need if variety.annual_water_need else 0.0
        if ratio <= self.config.water_low_ratio:
            matching.append("Water requirements well covered (low deficit)")
            return 100.0
        if ratio <= self.config.water_moderate_ratio:
            concerns.append(f"Moderate water deficit ({deficit:.0f} mm per season)")
            return 80.0
        concerns.append(
            f"Significant water deficit ({deficit:.0f} mm vs {variety.annual_water_need:.0f} mm need)"
        )
        return max(30.0, 100 - ratio * 50)

    def _thermal_factor(self, basis, matching, concerns) -> float:
        gdd = basis.gdd
        cfg = self.config
        if cfg.gdd_min <= gdd <= cfg.gdd_max:
            matching.append(f"Adequate thermal accumulation ({gdd:.0f} GDD per season)")
            return 100.0
        if gdd < cfg.gdd_min:
            concerns.append(f"Insufficient thermal accumulation: {gdd:.0f} GDD")
            return max(20.0, gdd / cfg.gdd_min * 100)
        concerns.append(f"Excess accumulated heat: {gdd:.0f} GDD")
        return max(60.0, 100 - (gdd - cfg.gdd_max) / 1000 * 20)

    def _risk_factor(self, basis, matching, concerns) -> float:
        risk = 100.0
        frost_days = basis.frost_days
        if frost_days > 15:
            concerns.append(f"High frost risk ({frost_days:.0f} spring frost days)")
            risk -= 30
        elif frost_days > 5:
            concerns.append(f"Moderate frost risk ({frost_days:.0f} spring frost days)")
            risk -= 15
        else:
            matching.append(f"Low frost risk ({frost_days:.0f} spring frost days)")

        heat_days = basis.heat_stress_days
        limit = settings.heat_stress_threshold
        if heat_days > 30:
            concerns.append(f"High heat stress ({heat_days:.0f} summer days above {limit:.0f}°C)")
            risk -= 25
        elif heat_days > 10:
            concerns.append(f"Moderate heat stress ({heat_days:.0f} summer days above {limit:.0f}°C)")
            risk -= 10
        else:
            matching.append(f"Low heat stress ({heat_days:.0f} summer days above {limit:.0f}°C)")
        return max(0.0, risk)

    def _variety_recommendations(
        self,
        variety: VarietyProfile,
        profile: ClimateProfile,
        basis: ScoringBasis,
    ) -> List[str]:
        advice: List[str] = []
        if basis.water_deficit > variety.annual_water_need * 0.4:
            advice.append("Install a high-efficiency drip irrigation system")
            advice.append(
                "Schedule irrigation during critical periods: "
                + ", ".join(variety.critical_water_periods)
            )
        if basis.frost_days > 5:
            advice.append("Install frost protection (sprinklers, heaters)")
            advice.append("Avoid planting in low-lying, frost-prone areas")
        if basis.heat_stress_days > 15:
            advice.append("Consider partial shading during summer")
            advice.append("Increase irrigation frequency on extreme heat days")
        if variety.pollinizers:
            advice.append(f"Plant pollinizers: {', '.join(variety.pollinizers)} (ratio 1:8-10)")
        if variety.id == "kerman" and profile.min_temperature < -8:
            advice.append("Consider cold-resistant rootstocks")
        if variety.id == "sirora" and basis.chill_hours < 600:
            advice.append("Well suited to low-chill areas")
        return advice

    # ========================================================================
    # Detailed report
    # ========================================================================

    def detailed_report(
        self,
        recommendations: Sequence[VarietyRecommendation],
        profile: ClimateProfile,
        location: Location,
        campaigns: Optional[CampaignSummary] = None,
    ) -> DetailedReport:
        """
        Compose ranked recommendations into a narrative report.

        Args:
            recommendations: Output of ``score``, best first
            profile: Climate profile the recommendations were built from
            location: Site location
            campaigns: Per-campaign summary passed to ``score``, if any

        Returns:
            DetailedReport
        """
        cfg = self.config
        basis = scoring_basis(profile, campaigns)
        ranked = list(recommendations)
        top = ranked[:cfg.top_count]
        suitable = [r for r in ranked if r.suitability_score >= cfg.suitable_score]
        marginal = [
            r for r in ranked
            if cfg.marginal_score <= r.suitability_score < cfg.suitable_score
        ]
        unsuitable = [r for r in ranked if r.suitability_score < cfg.marginal_score]

        summary = ReportSummary(
            total_varieties_evaluated=len(ranked),
            suitable_count=len(suitable),
            marginal_count=len(marginal),
            unsuitable_count=len(unsuitable),
            best_variety=top[0].variety.name if top else "None",
            best_score=top[0].suitability_score if top else 0.0,
        )

        return DetailedReport(
            summary=summary,
            climate_profile=profile,
            top_recommendations=top,
            suitable_varieties=suitable,
            marginal_varieties=marginal,
            general_recommendations=self._general_recommendations(basis, location),
            risk_assessment=self._risk_from_basis(basis),
            planting_strategy=self._planting_strategy(top),
        )

    def _general_recommendations(self, basis: ScoringBasis, location: Location) -> List[str]:
        advice: List[str] = []
        if basis.water_deficit > 400:
            advice.append("Prioritise water efficiency: drip irrigation, mulching, drought-tolerant varieties")
        if basis.frost_days > 10:
            advice.append("Choose sites with good cold-air drainage and consider active frost protection")
        if basis.heat_stress_days > 20:
            advice.append("Apply heat mitigation: shading and cooling irrigation")
        if basis.chill_hours < 800:
            advice.append("Prioritise low-chill varieties such as Sirora or Larnaka")

        latitude = abs(location.latitude) if location.latitude is not None else None
        if latitude is not None and latitude > 40:
            advice.append("High-latitude zone: prioritise cold-hardy varieties")
        elif latitude is not None and latitude < 30:
            advice.append("Tropical/subtropical zone: choose low-chill varieties")
        return advice

    def assess_risk(
        self,
        profile: ClimateProfile,
        campaigns: Optional[CampaignSummary] = None,
    ) -> RiskAssessment:
        """Overall site risk from spring frost, summer heat, drought and extreme cold."""
        return self._risk_from_basis(scoring_basis(profile, campaigns))

    def _risk_from_basis(self, basis: ScoringBasis) -> RiskAssessment:
        score = 0
        factors: List[str] = []
        mitigation: List[str] = []

        if basis.frost_days > 15:
            score += 25
            factors.append("High frost risk during flowering")
            mitigation.append("Frost protection system")
        if basis.heat_stress_days > 25:
            score += 20
            factors.append("Frequent summer heat stress")
            mitigation.append("Shading and cooling irrigation")
        if basis.water_deficit > 500:
            score += 20
            factors.append("High seasonal water deficit")
            mitigation.append("Efficient irrigation system")
        if basis.extreme_cold_days > 5:
            score += 15
            factors.append("Extreme winter cold risk")
            mitigation.append("Cold-resistant rootstock selection")

        if score <= 20:
            level = "Low"
        elif score <= 40:
            level = "Moderate"
        elif score <= 60:
            level = "High"
        else:
            level = "Very High"

        return RiskAssessment(level=level, score=score, factors=factors, mitigation=mitigation)

    def _planting_strategy(self, top: Sequence[VarietyRecommendation]) -> PlantingStrategy:
        if not top:
            return PlantingStrategy(
                primary_variety="Not recommended",
                planting_ratio="N/A",
                planting_density="N/A",
                expected_production="N/A",
                timeline=["Climate conditions are not suitable for pistachio"],
            )

        primary = top[0].variety
        start, peak = primary.production_start, primary.peak_production
        return PlantingStrategy(
            primary_variety=primary.name,
            pollinizers=[p.name for p in top[0].pollinizers],
            planting_ratio="8-10 females : 1-2 males",
            planting_density="200-250 trees/ha (6x8m or 7x7m)",
            expected_production=f"First harvest: year {start}, full production: year {peak}",
            timeline=[
                f"Years 1-{start - 1}: establishment and vegetative growth",
                f"Years {start}-{peak - 1}: production onset (0.5-2 kg/tree)",
                f"Year {peak}+: full production (3-8 kg/tree)",
                f"Productive life: {primary.lifespan} years",
            ],
        )
