"""
Unit tests for the source capability envelope and the base client.
"""
import pytest
import httpx
import respx
from datetime import date
from unittest.mock import AsyncMock

from agroclima.domain.models import DateRange, Location, SourceKind
from agroclima.infrastructure.nasa_power_client import NasaPowerClient
from agroclima.infrastructure.source_adapter import (
    CapabilityViolation,
    LocationForm,
    SourceDescriptor,
    SourceFailure,
    TemporalDirection,
)
from agroclima.infrastructure.source_registry import build_default_registry

TODAY = date(2024, 6, 1)
COORDS = Location(latitude=38.0, longitude=-1.5)
POSTAL = Location(postal_code="30001")


def descriptor(client, **overrides) -> SourceDescriptor:
    fields = dict(
        kind=SourceKind.NASA_POWER,
        max_chunk_days=730,
        temporal_direction=TemporalDirection.PAST,
        location_form=LocationForm.COORDINATES,
        parameter_vocabulary=("T2M",),
        client=client,
    )
    fields.update(overrides)
    return SourceDescriptor(**fields)


@pytest.fixture
def mock_client():
    client = AsyncMock()
    client.fetch.return_value = [{"date": "2024-01-01", "temperature_avg": 10}]
    return client


# ============================================================
# Capability Envelope Tests
# ============================================================

class TestCapabilityEnvelope:
    """Tests for SourceDescriptor.check_request and fetch."""

    @pytest.mark.asyncio
    async def test_valid_request_delegates(self, mock_client):
        """Requests inside the envelope reach the client."""
        date_range = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))

        result = await descriptor(mock_client).fetch(COORDS, date_range, today=TODAY)

        assert result == [{"date": "2024-01-01", "temperature_avg": 10}]
        mock_client.fetch.assert_awaited_once_with(COORDS, date_range)

    @pytest.mark.asyncio
    async def test_range_too_long(self, mock_client):
        """A range over the declared maximum is rejected before any call."""
        date_range = DateRange(start=date(2020, 1, 1), end=date(2022, 1, 1))

        with pytest.raises(CapabilityViolation, match="exceeds"):
            await descriptor(mock_client).fetch(COORDS, date_range, today=TODAY)

        mock_client.fetch.assert_not_awaited()

    def test_past_source_rejects_future(self, mock_client):
        """A past-only source cannot serve dates after today."""
        date_range = DateRange(start=date(2024, 5, 30), end=date(2024, 6, 2))

        with pytest.raises(CapabilityViolation, match="up to"):
            descriptor(mock_client).check_request(COORDS, date_range, today=TODAY)

    def test_future_source_rejects_past(self, mock_client):
        """A forecast source cannot serve dates before today."""
        forecast = descriptor(
            mock_client,
            kind=SourceKind.AEMET,
            max_chunk_days=7,
            temporal_direction=TemporalDirection.FUTURE,
            location_form=LocationForm.POSTAL_CODE,
        )
        date_range = DateRange(start=date(2024, 5, 31), end=date(2024, 6, 3))

        with pytest.raises(CapabilityViolation, match="forecasts"):
            forecast.check_request(POSTAL, date_range, today=TODAY)

    def test_location_form(self, mock_client):
        """Coordinate sources need coordinates and postal sources a postal code."""
        date_range = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 2))
        postal_source = descriptor(mock_client, location_form=LocationForm.POSTAL_CODE)

        with pytest.raises(CapabilityViolation, match="latitude and longitude"):
            descriptor(mock_client).check_request(POSTAL, date_range, today=TODAY)
        with pytest.raises(CapabilityViolation, match="postal code"):
            postal_source.check_request(COORDS, date_range, today=TODAY)

    def test_both_directions(self, mock_client):
        """A source serving both directions accepts ranges spanning today."""
        either = descriptor(mock_client, temporal_direction=TemporalDirection.BOTH)
        either.check_request(COORDS, DateRange(start=date(2024, 5, 1), end=date(2024, 7, 1)), today=TODAY)

    def test_violation_is_source_failure(self, mock_client):
        """Envelope violations carry their source."""
        date_range = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 2))
        with pytest.raises(SourceFailure) as exc_info:
            descriptor(mock_client).check_request(POSTAL, date_range, today=TODAY)
        assert exc_info.value.source == SourceKind.NASA_POWER

    def test_default_registry(self):
        """The default registry declares the four providers."""
        registry = build_default_registry(geocoder=AsyncMock())

        assert set(registry.kinds) == set(SourceKind)
        aemet = registry.get(SourceKind.AEMET)
        assert aemet.max_chunk_days == 7
        assert aemet.temporal_direction == TemporalDirection.FUTURE
        assert aemet.location_form == LocationForm.POSTAL_CODE
        assert registry.get(SourceKind.NASA_POWER).max_chunk_days == 730


# ============================================================
# Base Client Tests
# ============================================================

class TestSourceClient:
    """Tests for the shared request handling."""

    def test_failure_body_truncated(self):
        """Diagnostic bodies keep at most 500 characters."""
        failure = SourceFailure("boom", source=SourceKind.SIAR, status_code=500, body="x" * 2000)

        assert len(failure.body) == 500
        assert failure.to_debug() == {"upstreamStatus": 500, "upstreamBody": "x" * 500}

    @pytest.mark.asyncio
    async def test_context_manager_exit_closes_client(self):
        """__aexit__ should close the HTTP client."""
        client = NasaPowerClient()
        client.close = AsyncMock()

        async with client:
            pass

        client.close.assert_called_once()

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_2xx_is_failure_without_retry(self):
        """Upstream errors surface once, with status and body."""
        client = NasaPowerClient()
        respx.get("https://upstream.test/data").mock(
            return_value=httpx.Response(503, text="Service Unavailable")
        )

        with pytest.raises(SourceFailure) as exc_info:
            await client._make_request("GET", "https://upstream.test/data")

        assert exc_info.value.status_code == 503
        assert exc_info.value.body == "Service Unavailable"
        assert respx.calls.call_count == 1
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_is_failure(self):
        """Connection errors become SourceFailure."""
        client = NasaPowerClient()
        respx.get("https://upstream.test/data").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(SourceFailure, match="request error"):
            await client._make_request("GET", "https://upstream.test/data")
        await client.close()
