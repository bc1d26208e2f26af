"""
AEMET OpenData municipality forecast client.

AEMET answers every query in two steps: the endpoint returns a small
envelope whose ``datos`` field points at the actual payload, which is
downloaded with a second request.
"""
import re
from datetime import date
from typing import Any, List, Optional, Tuple
import logging

import httpx

from agroclima.config import settings
from agroclima.domain.models import DateRange, Location, SourceKind
from agroclima.infrastructure.api_constants import AemetAPIEndpoints
from agroclima.infrastructure.geocoding_client import GeocodingClient, GeocodingError
from agroclima.infrastructure.source_adapter import RawPayload, SourceClient, SourceFailure
from agroclima.utils.geo_projection import find_nearest

logger = logging.getLogger(__name__)

_COORD_PATTERN = re.compile(r"^(\d+(?:[.,]\d+)?)([NSEW])?$", re.IGNORECASE)

KMH_TO_MS = 1 / 3.6


def parse_aemet_coordinate(raw: Any) -> Optional[float]:
    """
    Parse an AEMET catalogue coordinate such as ``"40.4165N"`` or ``"3,70W"``.

    Southern and western hemispheres are negative.
    """
    if raw is None:
        return None
    match = _COORD_PATTERN.match(str(raw).strip())
    if not match:
        return None
    value = float(match.group(1).replace(",", "."))
    hemisphere = (match.group(2) or "").upper()
    return -value if hemisphere in ("S", "W") else value


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class AemetClient(SourceClient):
    """Seven-day forecast for the municipality matching a postal code."""

    kind = SourceKind.AEMET

    def __init__(
        self,
        geocoder: GeocodingClient,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(client)
        self.geocoder = geocoder
        self.base_url = settings.aemet_base_url.rstrip("/")

    async def fetch(self, location: Location, date_range: DateRange) -> List[RawPayload]:
        postal_code = location.postal_code
        try:
            forecast = await self._get_forecast(postal_code)
        except SourceFailure as e:
            # Many postal codes double as INE municipality ids; the rest are
            # resolved to the nearest catalogued municipality.
            logger.info(f"AEMET direct lookup failed for {postal_code} ({e.message}), resolving municipality")
            municipality_id, name, distance = await self._resolve_municipality(postal_code)
            logger.info(f"AEMET municipality {name} ({municipality_id}) at {distance:.1f} km")
            forecast = await self._get_forecast(municipality_id)

        rows = [
            row for row in self._map_daily(forecast)
            if date_range.start.isoformat() <= row["date"] <= date_range.end.isoformat()
        ]
        if not rows:
            raise SourceFailure(
                "AEMET returned no data in the requested range",
                source=self.kind,
            )
        return rows

    async def _get_datos(self, path: str) -> Any:
        """Run the two-step retrieval for an endpoint path."""
        response = await self._make_request(
            "GET",
            f"{self.base_url}{path}",
            headers={"api_key": settings.aemet_api_key},
        )
        envelope = self._parse_json(response)
        datos_url = envelope.get("datos") if isinstance(envelope, dict) else None
        if not datos_url:
            estado = envelope.get("estado") if isinstance(envelope, dict) else None
            raise SourceFailure(
                f"AEMET returned no data link (estado={estado})",
                source=self.kind,
                status_code=response.status_code,
                body=response.text,
            )
        return self._parse_json(await self._make_request("GET", str(datos_url)))

    async def _get_forecast(self, municipality_id: str) -> Any:
        return await self._get_datos(AemetAPIEndpoints.get_daily_forecast(municipality_id))

    async def _resolve_municipality(self, postal_code: str) -> Tuple[str, str, float]:
        try:
            latitude, longitude = await self.geocoder.geocode_postal_code(postal_code)
        except GeocodingError as e:
            raise SourceFailure(
                f"AEMET could not locate postal code {postal_code}: {e.message}",
                source=self.kind,
                status_code=e.status_code,
            )

        municipalities = await self._get_datos(AemetAPIEndpoints.MUNICIPALITIES)
        if not isinstance(municipalities, list):
            raise self._malformed("municipality catalogue is not a list", municipalities)

        nearest = find_nearest(
            latitude,
            longitude,
            (
                (m, parse_aemet_coordinate(m.get("latitud")), parse_aemet_coordinate(m.get("longitud")))
                for m in municipalities
                if isinstance(m, dict)
            ),
        )
        if nearest is None:
            raise SourceFailure(
                f"No AEMET municipality near postal code {postal_code}",
                source=self.kind,
            )
        municipality, distance = nearest
        # Catalogue ids carry an "id" prefix, e.g. "id28079"
        municipality_id = re.sub(r"^id", "", str(municipality.get("id", "")))
        return municipality_id, str(municipality.get("nombre", "")), distance

    def _map_daily(self, forecast: Any) -> List[RawPayload]:
        root = forecast[0] if isinstance(forecast, list) and forecast else forecast
        try:
            days = root["prediccion"]["dia"]
        except (KeyError, TypeError):
            raise self._malformed("missing prediccion.dia", forecast)
        if not isinstance(days, list):
            raise self._malformed("prediccion.dia is not a list", days)

        rows = []
        for day in days:
            if not isinstance(day, dict):
                raise self._malformed("forecast day is not an object", day)
            stamp = str(day.get("fecha", ""))[:10]
            try:
                date.fromisoformat(stamp)
            except ValueError:
                logger.debug(f"Skipping AEMET day with date {stamp!r}")
                continue

            temperature = day.get("temperatura") or {}
            humidity = day.get("humedadRelativa") or {}
            hourly_humidity = [
                v for v in (_to_float(d.get("value")) for d in humidity.get("dato") or []) if v is not None
            ]
            humidity_avg = _mean(hourly_humidity)
            if humidity_avg is None:
                humidity_avg = _mean([
                    v for v in (_to_float(humidity.get("maxima")), _to_float(humidity.get("minima")))
                    if v is not None
                ])

            # Strongest forecast wind of the day, km/h upstream
            speeds = [
                v for v in (_to_float(w.get("velocidad")) for w in day.get("viento") or []) if v is not None
            ]

            rows.append({
                "date": stamp,
                "temperature_max": _to_float(temperature.get("maxima")),
                "temperature_min": _to_float(temperature.get("minima")),
                "humidity": humidity_avg,
                "wind_speed": max(speeds) * KMH_TO_MS if speeds else None,
            })
        return rows
