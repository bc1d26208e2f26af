"""
Infrastructure layer: capability-tagged weather source adapters.

Every provider is described by a ``SourceDescriptor`` declaring the location
form it accepts, how far into the past or future it can look, the maximum
range per call and its parameter vocabulary. ``SourceDescriptor.fetch``
enforces that envelope before delegating to the provider client, so a
request outside it fails fast instead of being silently truncated.

Adapters never retry: a failed call surfaces as ``SourceFailure`` and the
caller decides what to do with it.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

import httpx

from agroclima.config import settings
from agroclima.domain.models import DateRange, Location, SourceKind
from agroclima.infrastructure.api_constants import APIConstants

logger = logging.getLogger(__name__)

RawPayload = Dict[str, Any]


class SourceFailure(Exception):
    """An upstream provider call that did not yield usable data."""

    def __init__(
        self,
        message: str,
        source: Optional[SourceKind] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        self.status_code = status_code
        self.body = body[:APIConstants.MAX_ERROR_BODY_CHARS] if body else body

    def to_debug(self) -> Dict[str, Any]:
        """Diagnostic payload for failure responses."""
        return {
            "upstreamStatus": self.status_code,
            "upstreamBody": self.body,
        }


class CapabilityViolation(SourceFailure):
    """A request outside the capability envelope a source declares."""


class TemporalDirection(str, Enum):
    PAST = "past"
    FUTURE = "future"
    BOTH = "both"


class LocationForm(str, Enum):
    COORDINATES = "coordinates"
    POSTAL_CODE = "postal_code"


class SourceClient:
    """
    Base class for provider HTTP clients.

    Subclasses implement ``fetch`` and map the provider response into raw
    payload dicts keyed by canonical field names.
    """

    kind: SourceKind

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(
            timeout=settings.http_timeout,
            headers={"accept": APIConstants.CONTENT_TYPE_JSON},
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def fetch(self, location: Location, date_range: DateRange) -> List[RawPayload]:
        raise NotImplementedError

    async def _make_request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Make a single HTTP request.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Absolute URL
            **kwargs: Additional arguments for the request

        Returns:
            The successful response

        Raises:
            SourceFailure: On transport errors or non-2xx responses
        """
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise SourceFailure(
                f"{self.kind.value} request error: {str(e)}",
                source=self.kind,
            )

        if not response.is_success:
            raise SourceFailure(
                f"{self.kind.value} API error {response.status_code}",
                source=self.kind,
                status_code=response.status_code,
                body=response.text,
            )
        return response

    def _parse_json(self, response: httpx.Response) -> Any:
        """Decode a JSON body, reporting malformed bodies as failures."""
        try:
            return response.json()
        except ValueError:
            raise SourceFailure(
                f"{self.kind.value} returned a malformed body",
                source=self.kind,
                status_code=response.status_code,
                body=response.text,
            )

    def _malformed(self, reason: str, body: Any = None) -> SourceFailure:
        return SourceFailure(
            f"{self.kind.value} unexpected response: {reason}",
            source=self.kind,
            status_code=200,
            body=str(body) if body is not None else None,
        )


@dataclass(frozen=True)
class SourceDescriptor:
    """Capabilities of one provider plus the client that serves it."""
    kind: SourceKind
    max_chunk_days: int
    temporal_direction: TemporalDirection
    location_form: LocationForm
    parameter_vocabulary: tuple[str, ...]
    client: SourceClient

    def check_request(
        self,
        location: Location,
        date_range: DateRange,
        today: Optional[date] = None,
    ) -> None:
        """
        Reject a request outside this source's declared envelope.

        Raises:
            CapabilityViolation: Describing the first violated capability
        """
        today = today or date.today()

        if self.location_form == LocationForm.COORDINATES and not location.has_coordinates:
            raise self._violation("requires latitude and longitude")
        if self.location_form == LocationForm.POSTAL_CODE and not location.postal_code:
            raise self._violation("requires a postal code")

        if date_range.end < date_range.start:
            raise self._violation("end date precedes start date")
        if date_range.days > self.max_chunk_days:
            raise self._violation(
                f"range of {date_range.days} days exceeds the {self.max_chunk_days}-day limit"
            )

        if self.temporal_direction == TemporalDirection.FUTURE and date_range.start < today:
            raise self._violation(f"only serves forecasts from {today.isoformat()} onward")
        if self.temporal_direction == TemporalDirection.PAST and date_range.end > today:
            raise self._violation(f"only serves data up to {today.isoformat()}")

    async def fetch(
        self,
        location: Location,
        date_range: DateRange,
        today: Optional[date] = None,
    ) -> List[RawPayload]:
        """
        Fetch raw daily payloads after validating the capability envelope.

        Raises:
            CapabilityViolation: If the request is outside the envelope
            SourceFailure: If the upstream call fails
        """
        self.check_request(location, date_range, today)
        logger.info(
            f"Fetching {self.kind.value} {date_range.start}..{date_range.end} "
            f"({date_range.days} days)"
        )
        return await self.client.fetch(location, date_range)

    def _violation(self, reason: str) -> CapabilityViolation:
        return CapabilityViolation(
            f"{self.kind.value} {reason}",
            source=self.kind,
        )
