"""
SIAR agroclimatic station network client.
"""
from typing import Any, List, Optional
import logging

import httpx

from agroclima.config import settings
from agroclima.domain.models import DateRange, Location, SourceKind
from agroclima.infrastructure.api_constants import SiarAPIEndpoints
from agroclima.infrastructure.source_adapter import RawPayload, SourceClient, SourceFailure
from agroclima.utils.geo_projection import find_nearest

logger = logging.getLogger(__name__)


def _coordinate(value: Any) -> Optional[float]:
    try:
        return float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        return None


class SiarClient(SourceClient):
    """Daily observations from the station closest to a coordinate."""

    kind = SourceKind.SIAR

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        super().__init__(client)
        self.base_url = settings.siar_base_url.rstrip("/")

    @property
    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {settings.siar_api_key}"}

    async def fetch(self, location: Location, date_range: DateRange) -> List[RawPayload]:
        station = await self.find_nearest_station(location.latitude, location.longitude)

        response = await self._make_request(
            "GET",
            f"{self.base_url}{SiarAPIEndpoints.get_station_data(str(station['codigo']))}",
            params={
                "fechaInicio": date_range.start.isoformat(),
                "fechaFin": date_range.end.isoformat(),
                "formato": "json",
            },
            headers=self._headers,
        )
        body = self._parse_json(response)
        if not isinstance(body, list):
            raise self._malformed("station data is not a list", body)

        rows = []
        for item in body:
            if not isinstance(item, dict):
                continue
            row: RawPayload = {"date": str(item.get("fecha", ""))[:10]}
            for upstream, field in SiarAPIEndpoints.PARAMETERS.items():
                if upstream in item:
                    row[field] = item[upstream]
            rows.append(row)

        logger.info(f"SIAR station {station.get('nombre')} returned {len(rows)} days")
        return rows

    async def find_nearest_station(self, latitude: float, longitude: float) -> dict:
        """
        Pick the station with the shortest geodesic distance to a point.

        Raises:
            SourceFailure: If the station list is unusable
        """
        response = await self._make_request(
            "GET",
            f"{self.base_url}{SiarAPIEndpoints.STATIONS}",
            headers=self._headers,
        )
        stations = self._parse_json(response)
        if not isinstance(stations, list):
            raise self._malformed("station list is not a list", stations)

        nearest = find_nearest(
            latitude,
            longitude,
            (
                (s, _coordinate(s.get("latitud")), _coordinate(s.get("longitud")))
                for s in stations
                if isinstance(s, dict) and s.get("codigo") is not None
            ),
        )
        if nearest is None:
            raise SourceFailure("SIAR has no station with coordinates", source=self.kind)

        station, distance = nearest
        logger.info(f"SIAR nearest station {station.get('nombre')} at {distance:.1f} km")
        return station
