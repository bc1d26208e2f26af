"""
Infrastructure layer: postal code geocoding with retry logic.
"""
from typing import Any, List, Optional
import logging

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from agroclima.config import settings
from agroclima.infrastructure.api_constants import APIConstants

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Custom exception for geocoding failures."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GeocodingClient:
    """
    Resolves Spanish postal codes to coordinates.
    Implements retry logic with exponential backoff.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.geocoder_base_url
        self.client = client or httpx.AsyncClient(
            headers={
                "User-Agent": settings.geocoder_user_agent,
                "accept": APIConstants.CONTENT_TYPE_JSON,
            },
            timeout=settings.http_timeout,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _make_request(self, params: dict) -> Any:
        """
        Query the geocoder with retry on transient failures.

        Server errors (5xx) and transport errors are re-raised so tenacity
        retries them; client errors (4xx) fail immediately.
        """
        response = await self.client.get(self.base_url, params=params)
        if response.status_code >= 500:
            response.raise_for_status()
        if response.status_code >= 400:
            raise GeocodingError(
                f"Geocoder request failed: {response.status_code} - "
                f"{response.text[:APIConstants.MAX_ERROR_BODY_CHARS]}"
            )
        return response.json()

    async def geocode_postal_code(self, postal_code: str) -> tuple[float, float]:
        """
        Resolve a postal code to a (latitude, longitude) pair.

        Args:
            postal_code: 5-digit Spanish postal code

        Returns:
            (latitude, longitude)

        Raises:
            GeocodingError: 404 when nothing matches, 502 when the geocoder fails
        """
        params = {
            "q": f"{postal_code}, {settings.geocoder_country}",
            "format": "json",
            "limit": 1,
        }
        try:
            results: List[dict] = await self._make_request(params)
        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error(f"Geocoder unavailable for postal code {postal_code}: {e}")
            raise GeocodingError(f"Geocoder unavailable: {str(e)}")
        except ValueError:
            raise GeocodingError("Geocoder returned a malformed body")

        if not isinstance(results, list) or not results:
            raise GeocodingError(
                f"No coordinates found for postal code {postal_code}",
                status_code=404,
            )

        try:
            latitude = float(results[0]["lat"])
            longitude = float(results[0]["lon"])
        except (KeyError, TypeError, ValueError):
            raise GeocodingError("Geocoder returned a result without coordinates")

        logger.info(f"Postal code {postal_code} -> ({latitude:.4f}, {longitude:.4f})")
        return latitude, longitude


# Singleton instance
_geocoding_client: Optional[GeocodingClient] = None


def get_geocoding_client() -> GeocodingClient:
    """
    Get or create the singleton geocoding client instance.

    Returns:
        GeocodingClient instance
    """
    global _geocoding_client
    if _geocoding_client is None:
        _geocoding_client = GeocodingClient()
    return _geocoding_client


async def close_geocoding_client():
    global _geocoding_client
    if _geocoding_client is not None:
        await _geocoding_client.close()
        _geocoding_client = None
