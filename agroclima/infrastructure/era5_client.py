"""
ERA5 reanalysis client over the Copernicus CDS Retrieve API.

A request is a job: it is submitted, polled until it finishes, and its
CSV asset of hourly values is downloaded and reduced to daily payloads.
"""
import asyncio
import io
from datetime import timedelta
from typing import List, Optional
import logging

import numpy as np
import pandas as pd

from agroclima.config import settings
from agroclima.domain.models import DateRange, Location, SourceKind
from agroclima.infrastructure.api_constants import APIConstants, CdsAPIEndpoints
from agroclima.infrastructure.source_adapter import RawPayload, SourceClient, SourceFailure
from agroclima.utils.agro_formulas import relative_humidity

logger = logging.getLogger(__name__)

KELVIN_OFFSET = 273.15
JOULES_PER_MJ = 1e6

DAILY_ROUNDING = {
    "temperature_max": 2,
    "temperature_min": 2,
    "temperature_avg": 2,
    "humidity": 2,
    "precipitation": 2,
    "wind_speed": 2,
    "solar_radiation": 3,
    "gdd": 2,
}


def _read_hourly(text: str) -> pd.DataFrame:
    """Hourly frame with canonical column names and numeric values."""
    df = pd.read_csv(io.StringIO(text), comment="#", skipinitialspace=True)
    df.columns = [str(c).strip().lower() for c in df.columns]

    renames = {}
    for name, aliases in CdsAPIEndpoints.COLUMNS.items():
        found = next((a for a in aliases if a in df.columns), None)
        if found is not None:
            renames[found] = name
    df = df.rename(columns=renames)

    if "time" not in df.columns or "temperature" not in df.columns:
        raise ValueError(f"unexpected CSV columns: {', '.join(df.columns)}")

    for name in CdsAPIEndpoints.COLUMNS:
        if name == "time":
            continue
        df[name] = pd.to_numeric(df[name], errors="coerce") if name in df.columns else np.nan

    return df.dropna(subset=["time", "temperature"])


def hourly_csv_to_daily(text: str) -> List[RawPayload]:
    """
    Reduce a CDS hourly CSV to one payload per day.

    Converts K to °C, metres to millimetres, J/m² to MJ/m², and derives
    relative humidity from dewpoint and wind speed from its u/v components.
    Frost hours count hours below the frost threshold and chill hours
    count hours below the chill threshold.

    Raises:
        ValueError: If the CSV is empty or the time or temperature column
            is missing
    """
    df = _read_hourly(text)
    if df.empty:
        return []

    temp_c = df["temperature"] - KELVIN_OFFSET
    hourly = pd.DataFrame({
        "date": df["time"].astype(str).str.strip().str[:10],
        "temp_c": temp_c,
        "humidity": relative_humidity(temp_c, df["dewpoint"] - KELVIN_OFFSET),
        "precip_mm": df["precipitation"] * 1000,
        "radiation_mj": df["radiation"] / JOULES_PER_MJ,
        "wind": np.hypot(df["u_wind"], df["v_wind"]),
        "frost": temp_c < settings.frost_threshold,
        "chill": temp_c < settings.chill_threshold,
        "thermal_excess": (temp_c - settings.gdd_base_temperature).clip(lower=0),
    })

    daily = (
        hourly.groupby("date", sort=True)
        .agg(
            temperature_max=("temp_c", "max"),
            temperature_min=("temp_c", "min"),
            temperature_avg=("temp_c", "mean"),
            humidity=("humidity", "mean"),
            precipitation=("precip_mm", "sum"),
            wind_speed=("wind", "mean"),
            solar_radiation=("radiation_mj", "sum"),
            frost_hours=("frost", "sum"),
            chill_hours=("chill", "sum"),
            gdd=("thermal_excess", "mean"),
        )
        .astype({"frost_hours": float, "chill_hours": float})
        .round(DAILY_ROUNDING)
        .reset_index()
    )

    # Days without dewpoint or wind report those fields as missing
    daily = daily.astype(object).where(daily.notna(), None)
    return daily.to_dict("records")


class Era5Client(SourceClient):
    """Hourly ERA5 point time series aggregated to days."""

    kind = SourceKind.ERA5

    @property
    def _headers(self) -> dict:
        return {"PRIVATE-TOKEN": settings.cds_api_key}

    async def fetch(self, location: Location, date_range: DateRange) -> List[RawPayload]:
        if not settings.cds_api_key:
            raise SourceFailure("ERA5 requires a CDS API key", source=self.kind)

        job_id = await self._submit_job(self._build_inputs(location, date_range))
        logger.info(f"ERA5 job {job_id} submitted")
        asset_url = await self._poll_job(job_id)
        text = await self._download(asset_url)

        try:
            rows = hourly_csv_to_daily(text)
        except ValueError as e:
            raise self._malformed(str(e), text)

        start, end = date_range.start.isoformat(), date_range.end.isoformat()
        return [row for row in rows if start <= row["date"] <= end]

    def _build_inputs(self, location: Location, date_range: DateRange) -> dict:
        dates = [date_range.start + timedelta(days=i) for i in range(date_range.days)]
        return {
            "variable": list(CdsAPIEndpoints.VARIABLES),
            "year": sorted({f"{d.year}" for d in dates}),
            "month": sorted({f"{d.month:02d}" for d in dates}),
            "day": sorted({f"{d.day:02d}" for d in dates}),
            "time": [f"{h:02d}:00" for h in range(24)],
            "location": {"latitude": location.latitude, "longitude": location.longitude},
            "product_type": "reanalysis",
            "data_format": "csv",
        }

    def _url(self, path: str) -> str:
        return f"{settings.cds_base_url.rstrip('/')}{path}"

    async def _submit_job(self, inputs: dict) -> str:
        response = await self._make_request(
            "POST",
            self._url(CdsAPIEndpoints.get_execute(settings.cds_era5_dataset)),
            json={"inputs": inputs},
            headers=self._headers,
        )
        location = response.headers.get("location")
        if location:
            job_id = location.rstrip("/").split("/")[-1]
            if job_id:
                return job_id

        body = self._parse_json(response)
        job_id = body.get("jobID") or body.get("jobId") or body.get("id") if isinstance(body, dict) else None
        if not job_id:
            raise self._malformed("no job id in submit response", body)
        return str(job_id)

    async def _poll_job(self, job_id: str) -> str:
        url = self._url(CdsAPIEndpoints.get_job(job_id))
        for _ in range(settings.era5_max_polls):
            body = self._parse_json(await self._make_request("GET", url, headers=self._headers))
            if not isinstance(body, dict):
                raise self._malformed(f"job {job_id} status is not an object", body)
            status = str(body.get("status") or body.get("state") or "").lower()

            if status in ("successful", "completed"):
                href = self._asset_href(body)
                if not href:
                    raise self._malformed(f"job {job_id} finished without a download link", body)
                return href
            if status in ("failed", "dismissed"):
                raise SourceFailure(
                    f"ERA5 job {job_id} failed: {body.get('message') or body.get('error') or status}",
                    source=self.kind,
                    body=str(body),
                )
            await asyncio.sleep(settings.era5_poll_interval)

        raise SourceFailure(f"ERA5 job {job_id} did not finish in time", source=self.kind)

    @staticmethod
    def _asset_href(body: dict) -> Optional[str]:
        outputs = body.get("outputs")
        if isinstance(outputs, dict):
            href = ((outputs.get("asset") or {}).get("value") or {}).get("href")
            if href:
                return href
        for link in body.get("links") or []:
            if isinstance(link, dict) and link.get("rel") == "results":
                return link.get("href")
        return None

    async def _download(self, url: str) -> str:
        response = await self._make_request("GET", url, headers=self._headers)
        text = response.text
        stripped = text.lstrip()
        if stripped.startswith("{") or stripped.startswith("[") or "," not in text:
            raise self._malformed(
                "asset is not CSV",
                text[:APIConstants.MAX_ERROR_BODY_CHARS],
            )
        return text
