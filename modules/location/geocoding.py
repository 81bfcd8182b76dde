"""Address geocoding via OpenStreetMap Nominatim."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog

from shared.config import get_settings
from shared.fetch_result import FetchResult
from shared.http import fetch_with_retry

logger = structlog.get_logger()


@dataclass
class GeocodeResult:
    """A geocoding match."""

    lat: float
    lng: float
    display_name: str


async def geocode_address(address: str) -> FetchResult[GeocodeResult | None]:
    """Resolve a free-text address to its best Nominatim match.

    An address with no match is an ok result carrying ``None``; a failed
    result means the geocoding service itself could not be used.
    """
    settings = get_settings()
    params: dict[str, str | int] = {"q": address, "format": "json", "limit": 1}
    headers = {"User-Agent": settings.http_user_agent}

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await fetch_with_retry(
                client, "GET", settings.nominatim_url, params=params, headers=headers
            )
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPError as e:
        logger.warning("geocode_failed", address=address, error=str(e))
        return FetchResult.failed(f"Geocoding failed: {e}")
    except ValueError:
        logger.warning("geocode_invalid_json", address=address)
        return FetchResult.failed("Geocoding service returned invalid JSON")

    if not isinstance(data, list) or not data:
        logger.info("geocode_no_match", address=address)
        return FetchResult.ok(None)

    item = data[0]
    try:
        result = GeocodeResult(
            lat=float(item["lat"]),
            lng=float(item["lon"]),
            display_name=item.get("display_name", address),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("geocode_unexpected_payload", address=address, error=str(e))
        return FetchResult.failed("Geocoding service returned an unexpected payload")

    logger.info("geocode_resolved", address=address, lat=result.lat, lng=result.lng)
    return FetchResult.ok(result)
