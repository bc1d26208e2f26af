"""
Unit tests for variety suitability scoring and the detailed report.
"""
import pytest
from datetime import date, timedelta

from agroclima.domain.models import CampaignSummary, ClimateProfile, Location
from agroclima.domain.varieties import (
    PISTACHIO_VARIETIES,
    get_female_varieties,
    get_pollinizers_for_variety,
    get_variety_by_id,
)
from agroclima.services.domain.climate_aggregator import aggregate, summarize_campaigns
from agroclima.services.domain.suitability_engine import SuitabilityConfig, SuitabilityEngine


def make_profile(**overrides) -> ClimateProfile:
    """One typical year that suits Kerman."""
    fields = dict(
        total_days=365,
        year_count=1,
        avg_temperature=15.0,
        min_temperature=-5.0,
        max_temperature=40.0,
        annual_chill_hours=1000.0,
        annual_gdd=2000.0,
        annual_precipitation=350.0,
        annual_etc=450.0,
        annual_water_deficit=100.0,
        annual_frost_days=2.0,
        annual_heat_stress_days=0.0,
        annual_extreme_cold_days=0.0,
    )
    fields.update(overrides)
    return ClimateProfile(**fields)


def make_campaigns(**overrides) -> CampaignSummary:
    """Campaign percentiles of one typical year that suits Kerman."""
    fields = dict(
        years=[2023],
        chill_hours_p10=1000.0,
        gdd_p10=2000.0,
        spring_frost_days_p90=2.0,
        heat_stress_days_p90=0.0,
        extreme_cold_days_p90=0.0,
        water_deficit_p90=100.0,
    )
    fields.update(overrides)
    return CampaignSummary(**fields)


def year_with_frost(record_factory, frost_months):
    """A 2023 series with frost hours only in the given months."""
    start = date(2023, 1, 1)
    days = [start + timedelta(days=i) for i in range(365)]
    return [
        record_factory(day, frost_hours=3.0 if day.month in frost_months else 0.0)
        for day in days
    ]


@pytest.fixture
def engine() -> SuitabilityEngine:
    return SuitabilityEngine()


@pytest.fixture
def location() -> Location:
    return Location(latitude=38.0, longitude=-1.5)


# ============================================================
# Catalogue Tests
# ============================================================

class TestVarietyCatalogue:
    """Tests for the variety catalogue lookups."""

    def test_female_varieties(self):
        """Only fruit-bearing varieties are candidates."""
        ids = [v.id for v in get_female_varieties()]
        assert ids == ["kerman", "sirora", "larnaka", "aegina"]

    def test_lookup(self):
        """Varieties are found by id."""
        assert get_variety_by_id("kerman").name == "Kerman"
        assert get_variety_by_id("unknown") is None

    def test_unknown_pollinizers_skipped(self):
        """Pollinizer ids missing from the catalogue are ignored."""
        larnaka = get_variety_by_id("larnaka")
        assert [p.id for p in get_pollinizers_for_variety(larnaka)] == ["peters"]

    def test_catalogue_ranges_consistent(self):
        """Chill ranges are ordered."""
        for variety in PISTACHIO_VARIETIES:
            assert variety.chill_hours_min < variety.chill_hours_max


# ============================================================
# Scoring Tests
# ============================================================

class TestScoring:
    """Tests for SuitabilityEngine.score."""

    def test_ideal_profile_scores_full(self, engine, location):
        """A profile inside every tolerance scores 100."""
        kerman = get_variety_by_id("kerman")

        [recommendation] = engine.score([kerman], make_profile(), location)

        assert recommendation.suitability_score == 100
        assert recommendation.concerns == []
        assert {p.id for p in recommendation.pollinizers} == {"peters", "randy"}

    def test_sorted_descending(self, engine, location):
        """Recommendations come best first."""
        ranked = engine.score(get_female_varieties(), make_profile(), location)
        scores = [r.suitability_score for r in ranked]

        assert scores == sorted(scores, reverse=True)
        assert ranked[0].variety.id == "kerman"
        assert ranked[-1].variety.id == "larnaka"

    def test_scores_bounded(self, engine, location):
        """Scores stay within 0 and 100 in a hostile climate."""
        hostile = make_profile(
            annual_chill_hours=0,
            max_temperature=55,
            min_temperature=-30,
            annual_water_deficit=3000,
            annual_gdd=100,
            annual_frost_days=60,
            annual_heat_stress_days=90,
        )

        for recommendation in engine.score(get_female_varieties(), hostile, location):
            assert 0 <= recommendation.suitability_score <= 100

    def test_insufficient_data(self, engine, location):
        """Less than a campaign of data scores every variety 0."""
        ranked = engine.score(get_female_varieties(), make_profile(total_days=120), location)

        assert all(r.suitability_score == 0 for r in ranked)
        assert all("Insufficient data" in r.concerns[0] for r in ranked)

    def test_pollinizer_penalty(self, engine, location):
        """Low chill that no pollinizer tolerates costs 15 points."""
        kerman = get_variety_by_id("kerman")
        config = SuitabilityConfig(pollinizer_penalty=0)
        profile = make_profile(annual_chill_hours=650)

        [penalized] = engine.score([kerman], profile, location)
        [unpenalized] = SuitabilityEngine(config).score([kerman], profile, location)

        assert any("Pollination at risk" in c for c in penalized.concerns)
        assert penalized.suitability_score == pytest.approx(unpenalized.suitability_score - 15, abs=0.1)

    def test_chill_deficit_reported(self, engine, location):
        """Chill below the minimum is flagged with its size."""
        kerman = get_variety_by_id("kerman")

        [recommendation] = engine.score([kerman], make_profile(annual_chill_hours=700), location)

        assert any("Chill hour deficit: 100 h" in c for c in recommendation.concerns)
        assert recommendation.suitability_score < 100

    def test_water_advice(self, engine, location):
        """A large deficit adds irrigation advice."""
        kerman = get_variety_by_id("kerman")

        [recommendation] = engine.score([kerman], make_profile(annual_water_deficit=500), location)

        assert "Install a high-efficiency drip irrigation system" in recommendation.recommendations


# ============================================================
# Report Tests
# ============================================================

class TestDetailedReport:
    """Tests for SuitabilityEngine.detailed_report."""

    def test_summary_counts(self, engine, location):
        """Suitable, marginal and unsuitable counts cover every variety."""
        profile = make_profile()
        ranked = engine.score(get_female_varieties(), profile, location)

        report = engine.detailed_report(ranked, profile, location)
        summary = report.summary

        assert summary.total_varieties_evaluated == 4
        assert summary.suitable_count + summary.marginal_count + summary.unsuitable_count == 4
        assert summary.best_variety == "Kerman"
        assert len(report.top_recommendations) == 3
        assert report.planting_strategy.primary_variety == "Kerman"

    def test_empty_recommendations(self, engine, location):
        """No candidates give a not-recommended strategy."""
        report = engine.detailed_report([], make_profile(), location)

        assert report.summary.best_variety == "None"
        assert report.planting_strategy.primary_variety == "Not recommended"

    def test_low_risk(self, engine):
        """A mild profile is low risk."""
        risk = engine.assess_risk(make_profile())

        assert risk.level == "Low"
        assert risk.score == 0

    def test_very_high_risk(self, engine):
        """Every risk factor present adds up to very high."""
        risk = engine.assess_risk(make_profile(
            annual_frost_days=20,
            annual_heat_stress_days=30,
            annual_water_deficit=600,
            annual_extreme_cold_days=6,
        ))

        assert risk.level == "Very High"
        assert risk.score == 80
        assert len(risk.factors) == len(risk.mitigation) == 4

    def test_latitude_advice(self, engine):
        """High latitudes get cold-hardy advice."""
        profile = make_profile()
        report = engine.detailed_report([], profile, Location(latitude=42.0, longitude=-3.0))

        assert "High-latitude zone: prioritise cold-hardy varieties" in report.general_recommendations


# ============================================================
# Campaign Basis Tests
# ============================================================

class TestCampaignBasis:
    """Tests for scoring on per-campaign percentiles."""

    def test_campaign_chill_overrides_mean(self, engine, location):
        """A poor P10 winter is judged even when the mean is adequate."""
        kerman = get_variety_by_id("kerman")

        [recommendation] = engine.score(
            [kerman], make_profile(), location, make_campaigns(chill_hours_p10=700)
        )

        assert any("Chill hour deficit: 100 h" in c for c in recommendation.concerns)

    def test_campaign_water_deficit(self, engine, location):
        """The growing-season P90 deficit drives water advice."""
        kerman = get_variety_by_id("kerman")

        [recommendation] = engine.score(
            [kerman], make_profile(), location, make_campaigns(water_deficit_p90=500)
        )

        assert "Install a high-efficiency drip irrigation system" in recommendation.recommendations

    def test_empty_campaigns_fall_back_to_profile(self, engine, location):
        kerman = get_variety_by_id("kerman")

        [recommendation] = engine.score([kerman], make_profile(), location, CampaignSummary())

        assert recommendation.suitability_score == 100

    def test_winter_frost_is_not_flowering_risk(self, engine, record_factory):
        """Frost only in January and December leaves spring untouched."""
        records = year_with_frost(record_factory, frost_months=(1, 12))
        profile = aggregate(records)

        risk = engine.assess_risk(profile, summarize_campaigns(records))

        assert profile.annual_frost_days == 62
        assert "High frost risk during flowering" not in risk.factors
        assert risk.level == "Low"

    def test_spring_frost_is_flowering_risk(self, engine, record_factory):
        """Frost across March and April is reported."""
        records = year_with_frost(record_factory, frost_months=(3, 4))

        risk = engine.assess_risk(aggregate(records), summarize_campaigns(records))

        assert risk.factors == ["High frost risk during flowering"]
        assert risk.score == 25

    def test_report_uses_campaigns(self, engine, location, record_factory):
        """The detailed report assesses risk on the same basis as scoring."""
        records = year_with_frost(record_factory, frost_months=(1, 12))
        profile = aggregate(records)
        campaigns = summarize_campaigns(records)
        ranked = engine.score(get_female_varieties(), profile, location, campaigns)

        report = engine.detailed_report(ranked, profile, location, campaigns)

        assert report.risk_assessment.factors == []
        assert not any("frost protection" in a for a in report.general_recommendations)
