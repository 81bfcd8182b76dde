"""OpenWeatherMap client with graceful fallback to mock data."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import structlog

from modules.weather.fallback import fallback_weather
from shared.cache import TTLCache
from shared.config import get_settings
from shared.fetch_result import FetchResult
from shared.http import fetch_with_retry

logger = structlog.get_logger()

FORECAST_ENTRIES = 8
FORECAST_SHOWN = 6
MPS_TO_KMH = 3.6


def _cache_key(lat: float, lng: float) -> str:
    return f"weather:{lat:.2f},{lng:.2f}"


def _format_time(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%I:%M %p")


def transform_current(lat: float, lng: float, data: dict) -> dict:
    """Convert an OpenWeatherMap /weather body into the dashboard shape."""
    weather = data["weather"][0]
    return {
        "location": {"lat": lat, "lng": lng, "name": data.get("name", "")},
        "current": {
            "temperature": round(data["main"]["temp"]),
            "condition": weather["main"],
            "description": weather["description"],
            "windSpeed": round(data.get("wind", {}).get("speed", 0) * MPS_TO_KMH),
            "humidity": data["main"].get("humidity"),
            "pressure": data["main"].get("pressure"),
            "visibility": data.get("visibility", 0) / 1000,
            "icon": weather.get("icon"),
        },
        "alerts": [],
        "forecast": [],
    }


def transform_forecast(data: dict) -> list[dict]:
    """Convert an OpenWeatherMap /forecast body into short forecast entries."""
    entries = []
    for item in data.get("list", [])[:FORECAST_SHOWN]:
        weather = item["weather"][0]
        entries.append({
            "time": _format_time(item["dt"]),
            "temp": round(item["main"]["temp"]),
            "condition": weather["main"],
            "description": weather["description"],
            "icon": weather.get("icon"),
        })
    return entries


class WeatherClient:
    """Async client for current conditions and a short forecast."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        cache: TTLCache | None = None,
        cache_ttl: int | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.weather_api_key
        self.base_url = (base_url or settings.weather_api_url).rstrip("/")
        self.cache = cache
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.weather_cache_ttl

    async def get_weather(self, lat: float, lng: float) -> FetchResult[dict]:
        """Return live weather, or the mock payload flagged as degraded."""
        if not self.api_key:
            logger.warning("weather_api_key_missing")
            return FetchResult.degraded(
                fallback_weather(lat, lng), "Weather API key not configured"
            )

        key = _cache_key(lat, lng)
        if self.cache is not None:
            hit = await self.cache.get(key, self.cache_ttl)
            if hit is not None:
                return FetchResult.ok(hit.value)

        params = {"lat": lat, "lon": lng, "appid": self.api_key, "units": "metric"}
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                current = await self._fetch(client, "/weather", params)
                payload = transform_current(lat, lng, current)
                payload["forecast"] = await self._forecast(client, params)
        except (RuntimeError, KeyError, IndexError, TypeError) as e:
            logger.warning("weather_fetch_degraded", lat=lat, lng=lng, error=str(e))
            return FetchResult.degraded(
                fallback_weather(lat, lng),
                "Failed to fetch live weather data, serving fallback.",
            )

        if self.cache is not None:
            await self.cache.put(key, payload)
        return FetchResult.ok(payload)

    async def _forecast(self, client: httpx.AsyncClient, params: dict) -> list[dict]:
        try:
            data = await self._fetch(
                client, "/forecast", {**params, "cnt": FORECAST_ENTRIES}
            )
            return transform_forecast(data)
        except (RuntimeError, KeyError, IndexError, TypeError) as e:
            logger.warning("weather_forecast_unavailable", error=str(e))
            return []

    async def _fetch(self, client: httpx.AsyncClient, path: str, params: dict) -> dict:
        """Make a request to OpenWeatherMap, raising RuntimeError on failure."""
        url = f"{self.base_url}{path}"
        try:
            resp = await fetch_with_retry(client, "GET", url, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "openweathermap_http_error",
                path=path,
                status=e.response.status_code,
            )
            raise RuntimeError(
                f"Weather API returned HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.error("openweathermap_request_error", path=path, error=str(e))
            raise RuntimeError(f"Weather API request failed: {e}") from e
        except ValueError as e:
            raise RuntimeError("Weather API returned invalid JSON") from e
