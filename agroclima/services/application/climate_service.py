"""
Application service: Orchestration layer for climate data retrieval.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional
import logging

from agroclima.config import settings
from agroclima.domain.models import (
    CampaignSummary,
    ClimateProfile,
    DailyRecord,
    DateRange,
    HistoricalTrends,
    Location,
    SourceKind,
)
from agroclima.infrastructure.source_adapter import SourceDescriptor, SourceFailure
from agroclima.infrastructure.source_registry import SourceRegistry
from agroclima.services.domain.climate_aggregator import (
    aggregate,
    calculate_historical_trends,
    summarize_campaigns,
)
from agroclima.services.domain.merger import merge_record_batches
from agroclima.services.domain.range_splitter import split_date_range
from agroclima.services.domain.record_normalizer import normalize_batch
from agroclima.services.domain.request_validator import ClimateQuery

logger = logging.getLogger(__name__)


@dataclass
class ClimateDataResult:
    """Canonical sequence for one query plus how it was obtained."""
    source: SourceKind
    records: List[DailyRecord]
    date_range: DateRange
    is_historical: bool = False
    chunks_count: Optional[int] = None

    @property
    def years_count(self) -> int:
        return len({r.date.year for r in self.records})


@dataclass
class MultiSourceResult:
    """Merged sequence across providers with per-provider outcome."""
    records: List[DailyRecord]
    record_counts: Dict[SourceKind, int] = field(default_factory=dict)
    errors: Dict[SourceKind, str] = field(default_factory=dict)


@dataclass
class HistoricalAnalysis:
    data: ClimateDataResult
    profile: ClimateProfile
    campaigns: CampaignSummary
    trends: HistoricalTrends


class ClimateService:
    """
    Application service for climate data operations.

    Coordinates range splitting, source adapters, normalization and
    merging. No business rules live here.
    """

    def __init__(self, registry: SourceRegistry):
        """
        Initialize the service with dependencies.

        Args:
            registry: Source descriptors keyed by kind
        """
        self.registry = registry

    async def get_climate_data(
        self,
        query: ClimateQuery,
        today: Optional[date] = None,
    ) -> ClimateDataResult:
        """
        Fetch the canonical sequence for a validated query.

        Non-historical queries make one upstream call. Historical queries
        are split into chunks no longer than the source allows; if any chunk
        fails the whole request fails and nothing is merged.

        Raises:
            SourceFailure: If an upstream call fails or the request is outside
                the source's capability envelope
        """
        descriptor = self.registry.get(query.source)

        if not query.is_historical:
            batch = await self._fetch_normalized(descriptor, query.location, query.date_range, today)
            return ClimateDataResult(
                source=query.source,
                records=merge_record_batches([batch]),
                date_range=query.date_range,
            )

        chunk_days = min(settings.historical_chunk_days, descriptor.max_chunk_days)
        chunks = split_date_range(query.date_range.start, query.date_range.end, chunk_days)
        logger.info(
            f"Historical {query.source.value} request: {query.date_range.days} days "
            f"in {len(chunks)} chunks of up to {chunk_days} days"
        )

        semaphore = asyncio.Semaphore(settings.max_concurrent_chunks)

        async def fetch_chunk(chunk: DateRange) -> List[DailyRecord]:
            async with semaphore:
                return await self._fetch_normalized(descriptor, query.location, chunk, today)

        tasks = [asyncio.create_task(fetch_chunk(c)) for c in chunks]
        try:
            batches = await asyncio.gather(*tasks)
        except Exception as e:
            # Sibling chunks still in flight are abandoned
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.error(f"Historical {query.source.value} request aborted: {e}")
            raise

        return ClimateDataResult(
            source=query.source,
            records=merge_record_batches(batches),
            date_range=query.date_range,
            is_historical=True,
            chunks_count=len(chunks),
        )

    async def analyze(
        self,
        query: ClimateQuery,
        today: Optional[date] = None,
    ) -> tuple[ClimateDataResult, ClimateProfile]:
        """Fetch a sequence and aggregate it into a climate profile."""
        result = await self.get_climate_data(query, today)
        return result, aggregate(result.records)

    async def get_multi_source_data(
        self,
        sources: List[SourceKind],
        location: Location,
        date_range: DateRange,
        today: Optional[date] = None,
    ) -> MultiSourceResult:
        """
        Query several providers for the same point and merge the results.

        Each provider's failure is recorded without affecting the others.
        On date conflicts the provider listed later wins.

        Raises:
            SourceFailure: Only when every provider fails
        """
        semaphore = asyncio.Semaphore(settings.max_concurrent_chunks)

        async def fetch_source(kind: SourceKind) -> List[DailyRecord]:
            async with semaphore:
                return await self._fetch_normalized(self.registry.get(kind), location, date_range, today)

        outcomes = await asyncio.gather(
            *(fetch_source(kind) for kind in sources),
            return_exceptions=True,
        )

        batches: List[List[DailyRecord]] = []
        result = MultiSourceResult(records=[])
        for kind, outcome in zip(sources, outcomes):
            if isinstance(outcome, SourceFailure):
                logger.error(f"{kind.value} failed in multi-source request: {outcome.message}")
                result.errors[kind] = outcome.message
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                batches.append(outcome)
                result.record_counts[kind] = len(outcome)

        if not batches:
            raise SourceFailure(
                "All sources failed",
                body="; ".join(f"{k.value}: {msg}" for k, msg in result.errors.items()),
            )

        result.records = merge_record_batches(batches)
        return result

    async def historical_analysis(
        self,
        query: ClimateQuery,
        today: Optional[date] = None,
    ) -> HistoricalAnalysis:
        """Fetch a long range and derive profile, campaigns and trends."""
        data = await self.get_climate_data(query, today)
        return HistoricalAnalysis(
            data=data,
            profile=aggregate(data.records),
            campaigns=summarize_campaigns(data.records),
            trends=calculate_historical_trends(data.records),
        )

    async def _fetch_normalized(
        self,
        descriptor: SourceDescriptor,
        location: Location,
        date_range: DateRange,
        today: Optional[date],
    ) -> List[DailyRecord]:
        raws = await descriptor.fetch(location, date_range, today)
        return normalize_batch(raws, descriptor.kind, location.latitude)
