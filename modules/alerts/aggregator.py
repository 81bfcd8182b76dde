"""Alert feed aggregation and proximity filtering."""

from __future__ import annotations

from datetime import datetime

import structlog
from pydantic import ValidationError as PydanticValidationError

from modules.alerts.earthquakes import EarthquakeFeed
from modules.alerts.seed import seed_alerts
from shared.cache import TTLCache
from shared.config import get_settings
from shared.fetch_result import FetchResult
from shared.geo import circles_overlap
from shared.schemas.alerts import HazardAlert

logger = structlog.get_logger()

EARTHQUAKE_CACHE_KEY = "alerts:earthquakes"


def filter_nearby(
    alerts: list[HazardAlert], lat: float, lng: float, radius_km: float
) -> list[HazardAlert]:
    """Keep alerts whose affected circle overlaps the query circle."""
    return [
        alert
        for alert in alerts
        if circles_overlap(
            (alert.coordinates.lat, alert.coordinates.lng),
            alert.radius,
            (lat, lng),
            radius_km,
        )
    ]


def dedupe_alerts(alerts: list[HazardAlert]) -> list[HazardAlert]:
    """Drop repeated alert ids, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[HazardAlert] = []
    for alert in alerts:
        if alert.id in seen:
            continue
        seen.add(alert.id)
        unique.append(alert)
    return unique


class AlertAggregator:
    """Merges the seed alert set with the live earthquake feed."""

    def __init__(
        self,
        feed: EarthquakeFeed | None = None,
        cache: TTLCache | None = None,
        cache_ttl: int | None = None,
    ):
        self.feed = feed or EarthquakeFeed()
        self.cache = cache
        self.cache_ttl = cache_ttl if cache_ttl is not None else get_settings().alerts_cache_ttl

    async def _earthquakes(self) -> FetchResult[list[HazardAlert]]:
        if self.cache is not None:
            hit = await self.cache.get(EARTHQUAKE_CACHE_KEY, self.cache_ttl)
            if hit is not None:
                try:
                    return FetchResult.ok([HazardAlert.model_validate(a) for a in hit.value])
                except PydanticValidationError as e:
                    logger.warning("alerts_cache_invalid", error=str(e))

        result = await self.feed.fetch()
        if result.is_ok and self.cache is not None:
            await self.cache.put(
                EARTHQUAKE_CACHE_KEY,
                [a.model_dump(mode="json") for a in result.value or []],
            )
        return result

    async def get_alerts(
        self,
        lat: float | None = None,
        lng: float | None = None,
        radius: float | None = None,
        now: datetime | None = None,
    ) -> FetchResult[list[HazardAlert]]:
        """Return seed + live alerts, filtered by proximity when a point and radius are given.

        A failed feed degrades the result to the seed set instead of failing.
        """
        alerts = seed_alerts(now)
        quakes = await self._earthquakes()
        if quakes.is_ok:
            alerts.extend(quakes.value or [])
        else:
            logger.warning("alerts_feed_degraded", reason=quakes.reason)

        alerts = dedupe_alerts(alerts)

        if lat is not None and lng is not None and radius is not None:
            alerts = filter_nearby(alerts, lat, lng, radius)

        if quakes.is_ok:
            return FetchResult.ok(alerts)
        return FetchResult.degraded(alerts, quakes.reason or "Live alert feed unavailable")
