import logging
import re
from typing import Any, Dict, Optional, Tuple

import httpx

from agroflow.config.settings import HTTP_TIMEOUT_SECONDS, OPEN_METEO_FORECAST_URL, OPEN_METEO_GEOCODING_URL
from agroflow.extract.base import EnvironmentalDataError, EnvironmentalDataSource

logger = logging.getLogger(__name__)

_COORDINATES = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*,\s*(-?\d+(?:\.\d+)?)\s*$")


def parse_coordinates(location: str) -> Optional[Tuple[float, float]]:
    """Returns (lat, lon) for a 'lat,long' string, None for a place name."""
    match = _COORDINATES.match(location or "")
    if not match:
        return None
    lat, lon = float(match.group(1)), float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return lat, lon


def parse_forecast(payload: Dict[str, Any]) -> Dict[str, float]:
    """
    Extracts current temperature / humidity and the rainfall of the last 24
    hours from an Open-Meteo forecast response.
    """
    current = payload.get("current") or {}
    if current.get("temperature_2m") is None or current.get("relative_humidity_2m") is None:
        raise EnvironmentalDataError("Forecast response has no current conditions")

    hourly = payload.get("hourly") or {}
    times = hourly.get("time") or []
    precipitation = hourly.get("precipitation") or []
    now = current.get("time")

    # Only hours that already happened count towards observed rainfall
    observed = [
        amount for ts, amount in zip(times, precipitation)
        if amount is not None and (now is None or ts <= now)
    ]

    return {
        "temperature": float(current["temperature_2m"]),
        "humidity": float(current["relative_humidity_2m"]),
        "rainfall": round(float(sum(observed[-24:])), 2),
    }


class OpenMeteoEnvironmentalSource(EnvironmentalDataSource):
    """
    Environmental lookup backed by the free Open-Meteo forecast and geocoding APIs.
    Groundwater depth is not available there and is left to the previous sample.
    """

    def __init__(
        self,
        forecast_url: str = OPEN_METEO_FORECAST_URL,
        geocoding_url: str = OPEN_METEO_GEOCODING_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.forecast_url = forecast_url
        self.geocoding_url = geocoding_url
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, location: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                lat, lon = await self._resolve(client, location)

                logger.info(f"🌦️ Fetching conditions for {location} ({lat:.3f}, {lon:.3f})...")
                response = await client.get(self.forecast_url, params={
                    "latitude": lat,
                    "longitude": lon,
                    "current": "temperature_2m,relative_humidity_2m",
                    "hourly": "precipitation",
                    "past_hours": 24,
                    "forecast_hours": 1,
                    "timezone": "auto",
                })
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise EnvironmentalDataError(f"Open-Meteo request failed for '{location}': {e}") from e
        except ValueError as e:
            raise EnvironmentalDataError(f"Open-Meteo returned invalid JSON for '{location}': {e}") from e

        data = parse_forecast(payload)
        logger.info(f"✅ Conditions for {location}: {data}")
        return data

    async def _resolve(self, client: httpx.AsyncClient, location: str) -> Tuple[float, float]:
        coordinates = parse_coordinates(location)
        if coordinates:
            return coordinates

        # The geocoder matches on the place name only ('Nashik, Maharashtra' -> 'Nashik')
        name = (location or "").split(",")[0].strip()
        if not name:
            raise EnvironmentalDataError("Location is empty")

        response = await client.get(self.geocoding_url, params={"name": name, "count": 1})
        response.raise_for_status()
        results = response.json().get("results") or []
        if not results:
            raise EnvironmentalDataError(f"Location '{location}' could not be geocoded")
        return float(results[0]["latitude"]), float(results[0]["longitude"])
