"""Async client for the SafeGuard Radar API."""

from __future__ import annotations

import math

import httpx
import structlog

from shared.cache import MemoryBackend, TTLCache
from shared.config import get_settings
from shared.errors import (
    AppError,
    AuthError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from shared.fetch_result import FetchResult
from shared.http import fetch_with_retry
from tracker.geolocation import PositionSample

logger = structlog.get_logger()

ALERTS_CACHE_TTL = 600  # 10 minutes


def _error_from_response(resp: httpx.Response) -> AppError:
    """Map an error response onto the shared error taxonomy."""
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error") or resp.reason_phrase or "Request failed"

    if resp.status_code == 400:
        return ValidationError(body.get("errors") or [message])
    if resp.status_code == 401:
        return AuthError(message)
    if resp.status_code == 404:
        return NotFoundError(message)
    return UpstreamError(f"HTTP {resp.status_code}: {message}")


class RadarClient:
    """Bearer-authenticated client. Reads go through the retry wrapper; writes are sent once."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        cache: TTLCache | None = None,
        timeout: float = 10.0,
        retry_attempts: int | None = None,
        retry_base_delay: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.radar_api_url).rstrip("/")
        token = token if token is not None else settings.radar_api_token
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.cache = cache if cache is not None else TTLCache(MemoryBackend(), namespace="radar-client")
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> RadarClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        """Send a request and return the success envelope.

        Only GETs go through the retry wrapper. Writes to the location store
        are sent once so a storage failure reaches the caller unretried.
        """
        try:
            if method == "GET":
                resp = await fetch_with_retry(
                    self._client,
                    method,
                    path,
                    attempts=self.retry_attempts,
                    base_delay=self.retry_base_delay,
                    **kwargs,
                )
            else:
                resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPStatusError as e:
            raise _error_from_response(e.response) from e
        except httpx.TransportError as e:
            logger.warning("radar_api_unreachable", path=path, error=str(e))
            raise UpstreamError(f"API unreachable: {e}") from e

        if resp.status_code >= 400:
            raise _error_from_response(resp)
        try:
            body = resp.json()
        except ValueError as e:
            raise UpstreamError("API returned invalid JSON") from e
        if not isinstance(body, dict) or not body.get("success"):
            raise UpstreamError("API returned an unexpected payload")
        return body

    # ---- live locations ----

    async def push_location(
        self,
        sample: PositionSample,
        share_with: list[str],
        name: str | None = None,
    ) -> dict:
        payload = {
            "lat": sample.latitude,
            "lng": sample.longitude,
            "accuracy": sample.accuracy,
            "heading": sample.heading,
            "speed": sample.speed,
            "is_sharing": True,
            "share_with": list(share_with),
        }
        if name:
            payload["name"] = name
        body = await self._request("POST", "/api/live-locations", json=payload)
        return body["data"]

    async def update_sharing(self, share_with: list[str], is_sharing: bool = True) -> dict:
        body = await self._request(
            "PUT",
            "/api/live-locations",
            json={"is_sharing": is_sharing, "share_with": list(share_with)},
        )
        return body["data"]

    async def stop_sharing(self) -> dict:
        body = await self._request("DELETE", "/api/live-locations")
        return body["data"]

    async def get_live_locations(self, include_own: bool = False) -> list[dict]:
        body = await self._request(
            "GET",
            "/api/live-locations",
            params={"include_own": "true" if include_own else "false"},
        )
        return body.get("data") or []

    # ---- alerts & weather ----

    async def get_alerts(
        self,
        lat: float | None = None,
        lng: float | None = None,
        radius: float | None = None,
    ) -> FetchResult[list[dict]]:
        """Alerts near a point, served from a 10-minute cache when fresh.

        When the API is unreachable a previously cached list is returned as
        degraded; with nothing cached the result is failed.
        """
        params = {k: v for k, v in (("lat", lat), ("lng", lng), ("radius", radius)) if v is not None}
        key = "alerts:" + ",".join(f"{k}={v}" for k, v in sorted(params.items()))

        hit = await self.cache.get(key, ALERTS_CACHE_TTL)
        if hit is not None:
            return FetchResult.ok(hit.value)

        try:
            body = await self._request("GET", "/api/alerts", params=params)
        except AppError as e:
            stale = await self.cache.get(key, math.inf)
            if stale is not None:
                logger.warning("alerts_served_stale", age_seconds=stale.age_seconds)
                return FetchResult.degraded(stale.value, f"Showing cached alerts: {e.public_message}")
            return FetchResult.failed(e.public_message)

        alerts = body.get("data") or []
        if body.get("degraded"):
            return FetchResult.degraded(alerts, body.get("reason") or "Live alert feed unavailable")
        await self.cache.put(key, alerts)
        return FetchResult.ok(alerts)

    async def get_weather(self, lat: float, lng: float) -> FetchResult[dict]:
        try:
            body = await self._request("GET", "/api/weather", params={"lat": lat, "lng": lng})
        except AppError as e:
            return FetchResult.failed(e.public_message)
        if body.get("fallback"):
            return FetchResult.degraded(body["data"], body.get("error") or "Weather fallback")
        return FetchResult.ok(body["data"])
