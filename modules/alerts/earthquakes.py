"""USGS earthquake feed client and feature-to-alert transform."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import structlog

from shared.config import get_settings
from shared.fetch_result import FetchResult
from shared.http import fetch_with_retry
from shared.schemas.alerts import HazardAlert
from shared.schemas.common import Coordinates

logger = structlog.get_logger()

USGS_SOURCE = "USGS Earthquake Hazards Program"
ALERT_LIFETIME = timedelta(days=7)
MIN_RADIUS_KM = 50.0
KM_PER_MAGNITUDE = 20.0


def magnitude_severity(magnitude: float) -> str:
    """Map a magnitude onto the alert severity scale."""
    if magnitude >= 6.5:
        return "high"
    if magnitude >= 5.5:
        return "medium"
    return "low"


def magnitude_radius_km(magnitude: float) -> float:
    return max(MIN_RADIUS_KM, magnitude * KM_PER_MAGNITUDE)


def earthquake_to_alert(feature: dict) -> HazardAlert:
    """Transform one GeoJSON feature from the USGS feed into a HazardAlert.

    Raises KeyError/TypeError/ValueError on a malformed feature.
    """
    props = feature["properties"]
    coords = feature["geometry"]["coordinates"]
    lng, lat = float(coords[0]), float(coords[1])
    depth = coords[2] if len(coords) > 2 else None
    magnitude = float(props["mag"])
    place = props.get("place") or "Unknown location"
    issued = datetime.fromtimestamp(props["time"] / 1000, tz=timezone.utc)

    description = props.get("title") or (
        f"Magnitude {magnitude} earthquake reported near {place}. Depth: {depth} km."
    )

    return HazardAlert(
        id=str(feature["id"]),
        type="earthquake",
        severity=magnitude_severity(magnitude),
        title=f"M {magnitude} Earthquake: {place}",
        description=description,
        location=place,
        coordinates=Coordinates(lat=lat, lng=lng),
        radius=magnitude_radius_km(magnitude),
        issued=issued,
        expires=issued + ALERT_LIFETIME,
        source=USGS_SOURCE,
    )


class EarthquakeFeed:
    """Recent significant earthquakes from the USGS FDSN event service."""

    def __init__(self, url: str | None = None, min_magnitude: float | None = None, limit: int | None = None):
        settings = get_settings()
        self.url = url or settings.earthquake_feed_url
        self.min_magnitude = min_magnitude if min_magnitude is not None else settings.earthquake_min_magnitude
        self.limit = limit or settings.earthquake_limit

    async def fetch(self) -> FetchResult[list[HazardAlert]]:
        """Fetch and transform the feed. Never raises for upstream failures."""
        params = {
            "format": "geojson",
            "minmagnitude": self.min_magnitude,
            "orderby": "time",
            "limit": self.limit,
        }
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await fetch_with_retry(client, "GET", self.url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning("earthquake_feed_http_error", status=e.response.status_code)
            return FetchResult.failed(f"Earthquake feed returned HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            logger.warning("earthquake_feed_request_error", error=str(e))
            return FetchResult.failed(f"Earthquake feed unreachable: {e}")
        except ValueError as e:
            logger.warning("earthquake_feed_invalid_json", error=str(e))
            return FetchResult.failed("Earthquake feed returned invalid JSON")

        alerts: list[HazardAlert] = []
        features = data.get("features", []) if isinstance(data, dict) else []
        for feature in features:
            try:
                alerts.append(earthquake_to_alert(feature))
            except (KeyError, TypeError, ValueError, IndexError) as e:
                logger.warning(
                    "earthquake_feature_skipped",
                    feature_id=feature.get("id") if isinstance(feature, dict) else None,
                    error=str(e),
                )

        logger.info("earthquake_feed_fetched", count=len(alerts))
        return FetchResult.ok(alerts)
