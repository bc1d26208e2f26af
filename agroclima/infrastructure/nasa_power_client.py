"""
NASA POWER daily point client.
"""
from datetime import datetime
from typing import Dict, List
import logging

from agroclima.config import settings
from agroclima.domain.models import DateRange, Location, SourceKind
from agroclima.infrastructure.api_constants import NasaPowerAPI
from agroclima.infrastructure.source_adapter import RawPayload, SourceClient

logger = logging.getLogger(__name__)


class NasaPowerClient(SourceClient):
    """Reanalysis-backed daily series for any coordinate on the globe."""

    kind = SourceKind.NASA_POWER

    async def fetch(self, location: Location, date_range: DateRange) -> List[RawPayload]:
        params = {
            "parameters": ",".join(NasaPowerAPI.PARAMETERS),
            "community": NasaPowerAPI.COMMUNITY,
            "latitude": location.latitude,
            "longitude": location.longitude,
            "start": date_range.start.strftime(NasaPowerAPI.DATE_FORMAT),
            "end": date_range.end.strftime(NasaPowerAPI.DATE_FORMAT),
            "format": "JSON",
        }
        response = await self._make_request("GET", settings.nasa_power_base_url, params=params)
        body = self._parse_json(response)

        try:
            series: Dict[str, Dict[str, float]] = body["properties"]["parameter"]
        except (KeyError, TypeError):
            raise self._malformed("missing properties.parameter", body)

        return self._pivot(series)

    def _pivot(self, series: Dict[str, Dict[str, float]]) -> List[RawPayload]:
        """
        Turn per-parameter {YYYYMMDD: value} maps into one payload per day.

        Fill values become None so the normalizer treats them as absent.
        """
        rows: Dict[str, RawPayload] = {}
        for parameter, field in NasaPowerAPI.PARAMETERS.items():
            for stamp, value in (series.get(parameter) or {}).items():
                try:
                    day = datetime.strptime(stamp, NasaPowerAPI.DATE_FORMAT).date().isoformat()
                except ValueError:
                    logger.debug(f"Skipping NASA POWER key {stamp!r}")
                    continue
                row = rows.setdefault(day, {"date": day})
                row[field] = None if value == NasaPowerAPI.FILL_VALUE else value

        logger.info(f"NASA POWER returned {len(rows)} days")
        return [rows[day] for day in sorted(rows)]
