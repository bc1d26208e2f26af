"""
Registry of capability descriptors, one per supported source.
"""
from typing import Dict, Iterable, Optional
import logging

from agroclima.config import settings
from agroclima.domain.models import SourceKind
from agroclima.infrastructure.aemet_client import AemetClient
from agroclima.infrastructure.api_constants import AemetAPIEndpoints, NasaPowerAPI, SiarAPIEndpoints, CdsAPIEndpoints
from agroclima.infrastructure.era5_client import Era5Client
from agroclima.infrastructure.geocoding_client import GeocodingClient, get_geocoding_client
from agroclima.infrastructure.nasa_power_client import NasaPowerClient
from agroclima.infrastructure.siar_client import SiarClient
from agroclima.infrastructure.source_adapter import (
    LocationForm,
    SourceDescriptor,
    TemporalDirection,
)

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Lookup of source descriptors by kind."""

    def __init__(self, descriptors: Iterable[SourceDescriptor]):
        self._descriptors: Dict[SourceKind, SourceDescriptor] = {d.kind: d for d in descriptors}

    def get(self, kind: SourceKind) -> SourceDescriptor:
        try:
            return self._descriptors[kind]
        except KeyError:
            raise KeyError(f"No adapter registered for {kind.value}")

    def __contains__(self, kind: SourceKind) -> bool:
        return kind in self._descriptors

    @property
    def kinds(self) -> list[SourceKind]:
        return list(self._descriptors)

    async def close(self):
        """Close every provider HTTP client."""
        for descriptor in self._descriptors.values():
            await descriptor.client.close()


def build_default_registry(geocoder: Optional[GeocodingClient] = None) -> SourceRegistry:
    """Create descriptors for NASA POWER, ERA5, SIAR and AEMET."""
    geocoder = geocoder or get_geocoding_client()
    historical_days = settings.max_range_days
    return SourceRegistry([
        SourceDescriptor(
            kind=SourceKind.NASA_POWER,
            max_chunk_days=historical_days,
            temporal_direction=TemporalDirection.PAST,
            location_form=LocationForm.COORDINATES,
            parameter_vocabulary=tuple(NasaPowerAPI.PARAMETERS),
            client=NasaPowerClient(),
        ),
        SourceDescriptor(
            kind=SourceKind.ERA5,
            max_chunk_days=historical_days,
            temporal_direction=TemporalDirection.PAST,
            location_form=LocationForm.COORDINATES,
            parameter_vocabulary=CdsAPIEndpoints.VARIABLES,
            client=Era5Client(),
        ),
        SourceDescriptor(
            kind=SourceKind.SIAR,
            max_chunk_days=historical_days,
            temporal_direction=TemporalDirection.PAST,
            location_form=LocationForm.COORDINATES,
            parameter_vocabulary=tuple(SiarAPIEndpoints.PARAMETERS),
            client=SiarClient(),
        ),
        SourceDescriptor(
            kind=SourceKind.AEMET,
            max_chunk_days=settings.aemet_max_forecast_days,
            temporal_direction=TemporalDirection.FUTURE,
            location_form=LocationForm.POSTAL_CODE,
            parameter_vocabulary=AemetAPIEndpoints.PARAMETERS,
            client=AemetClient(geocoder),
        ),
    ])


# Singleton instance
_registry: Optional[SourceRegistry] = None


def get_source_registry() -> SourceRegistry:
    """
    Get or create the singleton source registry.

    Returns:
        SourceRegistry with the default descriptors
    """
    global _registry
    if _registry is None:
        _registry = build_default_registry()
        logger.info(f"Registered sources: {', '.join(k.value for k in _registry.kinds)}")
    return _registry


async def close_source_registry():
    global _registry
    if _registry is not None:
        await _registry.close()
        _registry = None
