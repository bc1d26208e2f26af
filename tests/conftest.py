"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Synthetic daily records and payloads
- Stub source clients and registries
- FastAPI test client
"""
import math
import pytest
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from agroclima.main import app
from agroclima.domain.models import DailyRecord, DateRange, SourceKind
from agroclima.infrastructure.source_adapter import (
    LocationForm,
    SourceClient,
    SourceDescriptor,
    SourceFailure,
    TemporalDirection,
)
from agroclima.infrastructure.source_registry import SourceRegistry


TODAY = date(2024, 6, 1)


# ============================================================
# Sample Data Fixtures
# ============================================================

def make_record(day: date, **overrides) -> DailyRecord:
    """Build a canonical record with mild defaults."""
    fields = dict(
        date=day,
        temperature_avg=12.0,
        temperature_min=6.0,
        temperature_max=18.0,
        precipitation=1.0,
        eto=2.0,
        etc=1.5,
        frost_hours=0.0,
        chill_hours=0.0,
        gdd=5.0,
    )
    fields.update(overrides)
    return DailyRecord(**fields)


def seasonal_payload(day: date) -> dict:
    """Raw payload following a sinusoidal annual temperature cycle."""
    doy = day.timetuple().tm_yday
    mean = 15 - 10 * math.cos(2 * math.pi * (doy - 15) / 365)
    return {
        "date": day.isoformat(),
        "temperature_min": round(mean - 7, 2),
        "temperature_max": round(mean + 7, 2),
        "precipitation": 1.0,
    }


def payloads_for(date_range: DateRange) -> List[dict]:
    return [seasonal_payload(date_range.start + timedelta(days=i)) for i in range(date_range.days)]


@pytest.fixture
def record_factory():
    """Build canonical records with overridable fields."""
    return make_record


@pytest.fixture
def sample_records() -> List[DailyRecord]:
    """Three days with precipitation 0, 5 and 2 mm."""
    return [
        make_record(date(2023, 1, 1), precipitation=0.0),
        make_record(date(2023, 1, 2), precipitation=5.0),
        make_record(date(2023, 1, 3), precipitation=2.0),
    ]


@pytest.fixture
def full_year_records() -> List[DailyRecord]:
    """A full 2023 of normalized seasonal records."""
    from agroclima.services.domain.record_normalizer import normalize_batch

    year = DateRange(start=date(2023, 1, 1), end=date(2023, 12, 31))
    return normalize_batch(payloads_for(year), SourceKind.NASA_POWER, latitude=38.0)


# ============================================================
# Stub Source Fixtures
# ============================================================

class StubSourceClient(SourceClient):
    """Source client returning canned payloads and recording calls."""

    def __init__(
        self,
        kind: SourceKind,
        payloads: Optional[Callable[[DateRange], List[dict]]] = None,
        failure: Optional[SourceFailure] = None,
        fail_when: Optional[Callable[[DateRange], bool]] = None,
    ):
        self.kind = kind
        self.payloads = payloads or payloads_for
        self.failure = failure
        self.fail_when = fail_when
        self.calls: List[DateRange] = []
        self.client = AsyncMock()

    async def fetch(self, location, date_range):
        self.calls.append(date_range)
        if self.failure and (self.fail_when is None or self.fail_when(date_range)):
            raise self.failure
        return self.payloads(date_range)


def stub_descriptor(client: StubSourceClient, max_chunk_days: int = 730) -> SourceDescriptor:
    forecast = client.kind == SourceKind.AEMET
    return SourceDescriptor(
        kind=client.kind,
        max_chunk_days=7 if forecast else max_chunk_days,
        temporal_direction=TemporalDirection.FUTURE if forecast else TemporalDirection.PAST,
        location_form=LocationForm.POSTAL_CODE if forecast else LocationForm.COORDINATES,
        parameter_vocabulary=(),
        client=client,
    )


@pytest.fixture
def stub_client_factory():
    """Create StubSourceClient instances."""
    return StubSourceClient


@pytest.fixture
def stub_registry_factory():
    """Build a SourceRegistry from stub clients."""
    def build(*clients: StubSourceClient) -> SourceRegistry:
        return SourceRegistry([stub_descriptor(c) for c in clients])
    return build


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def stub_sources() -> Dict[SourceKind, StubSourceClient]:
    """One stub client per provider, wired into the test client."""
    return {kind: StubSourceClient(kind) for kind in SourceKind}


@pytest.fixture
def test_client(stub_sources) -> TestClient:
    """Create a synchronous test client for FastAPI."""
    from agroclima.api.dependencies import get_today
    from agroclima.infrastructure.source_registry import get_source_registry

    registry = SourceRegistry([stub_descriptor(c) for c in stub_sources.values()])
    app.dependency_overrides[get_today] = lambda: TODAY
    app.dependency_overrides[get_source_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()
