"""
Unit tests for the application services.

Tests cover:
- Single-call and chunked retrieval
- Atomic failure of historical requests
- Multi-source isolation and precedence
- Recommendation pipeline
"""
import asyncio
import pytest
from datetime import date

from agroclima.config import settings
from agroclima.domain.models import DateRange, Location, SourceKind
from agroclima.infrastructure.source_adapter import CapabilityViolation, SourceFailure
from agroclima.services.application.climate_service import ClimateService
from agroclima.services.application.recommendation_service import RecommendationService
from agroclima.services.domain.request_validator import ClimateQuery
from agroclima.services.domain.suitability_engine import SuitabilityEngine

TODAY = date(2024, 6, 1)
COORDS = Location(latitude=38.0, longitude=-1.5)


def query(start: date, end: date, historical: bool = False, source=SourceKind.NASA_POWER) -> ClimateQuery:
    return ClimateQuery(
        source=source,
        location=COORDS,
        date_range=DateRange(start=start, end=end),
        is_historical=historical,
    )


# ============================================================
# Single-Source Tests
# ============================================================

class TestGetClimateData:
    """Tests for ClimateService.get_climate_data."""

    @pytest.mark.asyncio
    async def test_single_call(self, stub_client_factory, stub_registry_factory):
        """A non-historical query makes exactly one upstream call."""
        nasa = stub_client_factory(SourceKind.NASA_POWER)
        service = ClimateService(stub_registry_factory(nasa))

        result = await service.get_climate_data(query(date(2023, 1, 1), date(2023, 1, 3)), today=TODAY)

        assert len(nasa.calls) == 1
        assert [r.date for r in result.records] == [date(2023, 1, 1), date(2023, 1, 2), date(2023, 1, 3)]
        assert result.chunks_count is None

    @pytest.mark.asyncio
    async def test_historical_chunks(self, stub_client_factory, stub_registry_factory):
        """Twenty-one years split into eleven chunks and merge without gaps."""
        nasa = stub_client_factory(SourceKind.NASA_POWER)
        service = ClimateService(stub_registry_factory(nasa))

        result = await service.get_climate_data(
            query(date(2000, 1, 1), date(2020, 12, 31), historical=True),
            today=TODAY,
        )

        assert result.chunks_count == 11
        assert len(nasa.calls) == 11
        assert all(c.days <= 730 for c in nasa.calls)
        assert len(result.records) == DateRange(start=date(2000, 1, 1), end=date(2020, 12, 31)).days
        assert result.years_count == 21

    @pytest.mark.asyncio
    async def test_historical_failure_is_atomic(self, stub_client_factory, stub_registry_factory):
        """One failing chunk fails the whole request."""
        nasa = stub_client_factory(
            SourceKind.NASA_POWER,
            failure=SourceFailure("NASA_POWER API error 500", source=SourceKind.NASA_POWER, status_code=500),
            fail_when=lambda r: r.start <= date(2004, 1, 1) <= r.end,
        )
        service = ClimateService(stub_registry_factory(nasa))

        with pytest.raises(SourceFailure, match="500"):
            await service.get_climate_data(
                query(date(2000, 1, 1), date(2010, 12, 31), historical=True),
                today=TODAY,
            )

    @pytest.mark.asyncio
    async def test_failed_request_cancels_sibling_chunks(self, stub_client_factory, stub_registry_factory):
        """Chunks still running when another fails never complete."""
        finished = []
        nasa = stub_client_factory(SourceKind.NASA_POWER)

        async def slow_fetch(location, date_range):
            if date_range.start == date(2000, 1, 1):
                raise SourceFailure("NASA_POWER API error 500", source=SourceKind.NASA_POWER, status_code=500)
            await asyncio.sleep(0.2)
            finished.append(date_range.end)
            return []

        nasa.fetch = slow_fetch
        service = ClimateService(stub_registry_factory(nasa))

        with pytest.raises(SourceFailure, match="500"):
            await service.get_climate_data(
                query(date(2000, 1, 1), date(2007, 12, 31), historical=True),
                today=TODAY,
            )
        await asyncio.sleep(0.4)

        assert finished == []

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, monkeypatch, stub_client_factory, stub_registry_factory):
        """No more than max_concurrent_chunks calls run at once."""
        monkeypatch.setattr(settings, "max_concurrent_chunks", 2)
        in_flight = 0
        peak = 0

        nasa = stub_client_factory(SourceKind.NASA_POWER)
        original = nasa.fetch

        async def tracked_fetch(location, date_range):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            result = await original(location, date_range)
            in_flight -= 1
            return result

        nasa.fetch = tracked_fetch
        service = ClimateService(stub_registry_factory(nasa))

        await service.get_climate_data(
            query(date(2010, 1, 1), date(2020, 12, 31), historical=True),
            today=TODAY,
        )

        assert peak == 2

    @pytest.mark.asyncio
    async def test_envelope_enforced(self, stub_client_factory, stub_registry_factory):
        """A past-only source refuses ranges ending after today."""
        nasa = stub_client_factory(SourceKind.NASA_POWER)
        service = ClimateService(stub_registry_factory(nasa))

        with pytest.raises(CapabilityViolation):
            await service.get_climate_data(query(date(2024, 5, 1), date(2024, 6, 10)), today=TODAY)
        assert nasa.calls == []

    @pytest.mark.asyncio
    async def test_analyze(self, stub_client_factory, stub_registry_factory):
        """Analysis aggregates what was fetched."""
        nasa = stub_client_factory(SourceKind.NASA_POWER)
        service = ClimateService(stub_registry_factory(nasa))

        result, profile = await service.analyze(query(date(2023, 1, 1), date(2023, 1, 10)), today=TODAY)

        assert profile.total_days == len(result.records) == 10
        assert profile.total_precipitation == 10


# ============================================================
# Multi-Source Tests
# ============================================================

class TestMultiSource:
    """Tests for ClimateService.get_multi_source_data."""

    @pytest.mark.asyncio
    async def test_failure_isolated(self, stub_client_factory, stub_registry_factory):
        """One failing provider does not affect the others."""
        nasa = stub_client_factory(SourceKind.NASA_POWER)
        siar = stub_client_factory(
            SourceKind.SIAR,
            failure=SourceFailure("SIAR API error 401", source=SourceKind.SIAR, status_code=401),
        )
        service = ClimateService(stub_registry_factory(nasa, siar))

        result = await service.get_multi_source_data(
            [SourceKind.NASA_POWER, SourceKind.SIAR],
            COORDS,
            DateRange(start=date(2023, 1, 1), end=date(2023, 1, 3)),
            today=TODAY,
        )

        assert len(result.records) == 3
        assert result.record_counts == {SourceKind.NASA_POWER: 3}
        assert result.errors == {SourceKind.SIAR: "SIAR API error 401"}

    @pytest.mark.asyncio
    async def test_later_source_wins(self, stub_client_factory, stub_registry_factory):
        """On a shared date the provider listed later takes precedence."""
        nasa = stub_client_factory(
            SourceKind.NASA_POWER,
            payloads=lambda r: [{"date": "2023-01-01", "temperature_avg": 10}],
        )
        era5 = stub_client_factory(
            SourceKind.ERA5,
            payloads=lambda r: [{"date": "2023-01-01", "temperature_avg": 12}],
        )
        service = ClimateService(stub_registry_factory(nasa, era5))
        single_day = DateRange(start=date(2023, 1, 1), end=date(2023, 1, 1))

        nasa_last = await service.get_multi_source_data(
            [SourceKind.ERA5, SourceKind.NASA_POWER], COORDS, single_day, today=TODAY
        )
        era5_last = await service.get_multi_source_data(
            [SourceKind.NASA_POWER, SourceKind.ERA5], COORDS, single_day, today=TODAY
        )

        assert nasa_last.records[0].temperature_avg == 10
        assert era5_last.records[0].temperature_avg == 12

    @pytest.mark.asyncio
    async def test_all_fail(self, stub_client_factory, stub_registry_factory):
        """Only a total failure raises."""
        failure = SourceFailure("down")
        nasa = stub_client_factory(SourceKind.NASA_POWER, failure=failure)
        siar = stub_client_factory(SourceKind.SIAR, failure=failure)
        service = ClimateService(stub_registry_factory(nasa, siar))

        with pytest.raises(SourceFailure, match="All sources failed"):
            await service.get_multi_source_data(
                [SourceKind.NASA_POWER, SourceKind.SIAR],
                COORDS,
                DateRange(start=date(2023, 1, 1), end=date(2023, 1, 3)),
                today=TODAY,
            )


# ============================================================
# Historical Analysis Tests
# ============================================================

class TestHistoricalAnalysis:
    """Tests for ClimateService.historical_analysis."""

    @pytest.mark.asyncio
    async def test_profile_campaigns_trends(self, stub_client_factory, stub_registry_factory):
        nasa = stub_client_factory(SourceKind.NASA_POWER)
        service = ClimateService(stub_registry_factory(nasa))

        analysis = await service.historical_analysis(
            query(date(2019, 1, 1), date(2023, 12, 31), historical=True),
            today=TODAY,
        )

        assert analysis.data.chunks_count == 3
        assert analysis.profile.year_count == 5
        assert analysis.campaigns.years == [2019, 2020, 2021, 2022, 2023]
        assert analysis.trends.total_years == 5
        assert analysis.campaigns.chill_hours_p10 > 0


# ============================================================
# Recommendation Tests
# ============================================================

class TestRecommendationService:
    """Tests for RecommendationService.recommend."""

    def test_full_year(self, full_year_records):
        """A full year is scored for every fruit-bearing variety."""
        service = RecommendationService(SuitabilityEngine())

        result = service.recommend(list(reversed(full_year_records)), COORDS)

        assert result.records_analyzed == 365
        assert len(result.recommendations) == 4
        assert result.report.summary.total_varieties_evaluated == 4
        assert result.profile.total_days == 365

    def test_short_series(self, record_factory):
        """A short series scores every variety 0."""
        service = RecommendationService(SuitabilityEngine())
        records = [record_factory(date(2023, 1, d)) for d in range(1, 11)]

        result = service.recommend(records, COORDS)

        assert all(r.suitability_score == 0 for r in result.recommendations)
