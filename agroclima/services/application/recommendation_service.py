"""
Application service: Orchestration layer for variety recommendations.
"""
from dataclasses import dataclass
from typing import List, Sequence
import logging

from agroclima.domain.models import (
    CampaignSummary,
    ClimateProfile,
    DailyRecord,
    DetailedReport,
    Location,
    VarietyRecommendation,
)
from agroclima.domain.varieties import get_female_varieties
from agroclima.services.domain.climate_aggregator import aggregate, summarize_campaigns
from agroclima.services.domain.merger import merge_record_batches
from agroclima.services.domain.suitability_engine import SuitabilityEngine

logger = logging.getLogger(__name__)


@dataclass
class RecommendationResult:
    recommendations: List[VarietyRecommendation]
    report: DetailedReport
    profile: ClimateProfile
    campaigns: CampaignSummary
    records_analyzed: int


class RecommendationService:
    """
    Application service for variety recommendations.

    Turns a canonical record sequence into ranked recommendations and a
    detailed report for the fruit-bearing varieties of the catalogue.
    """

    def __init__(self, engine: SuitabilityEngine):
        self.engine = engine

    def recommend(
        self,
        records: Sequence[DailyRecord],
        location: Location,
    ) -> RecommendationResult:
        # Callers may send unsorted or duplicated days
        canonical = merge_record_batches([records])
        profile = aggregate(canonical)
        campaigns = summarize_campaigns(canonical)

        recommendations = self.engine.score(get_female_varieties(), profile, location, campaigns)
        report = self.engine.detailed_report(recommendations, profile, location, campaigns)

        logger.info(
            f"Scored {len(recommendations)} varieties over {len(canonical)} days; "
            f"best {report.summary.best_variety} ({report.summary.best_score})"
        )
        return RecommendationResult(
            recommendations=recommendations,
            report=report,
            profile=profile,
            campaigns=campaigns,
            records_analyzed=len(canonical),
        )
