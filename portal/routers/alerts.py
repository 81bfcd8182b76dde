"""Hazard alert endpoint — seed alerts merged with the live earthquake feed."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from modules.alerts.aggregator import AlertAggregator
from portal.services import get_alert_aggregator
from shared.errors import ValidationError

logger = structlog.get_logger()

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


@router.get("")
async def list_alerts(
    lat: float | None = None,
    lng: float | None = None,
    radius: float | None = None,
    aggregator: AlertAggregator = Depends(get_alert_aggregator),
) -> dict:
    """Unified alert list. Proximity filtering applies when lat, lng and radius are all given."""
    errors: list[str] = []
    if lat is not None and not -90 <= lat <= 90:
        errors.append("lat must be between -90 and 90")
    if lng is not None and not -180 <= lng <= 180:
        errors.append("lng must be between -180 and 180")
    if radius is not None and radius < 0:
        errors.append("radius must be a non-negative number")
    if errors:
        raise ValidationError(errors)

    result = await aggregator.get_alerts(lat=lat, lng=lng, radius=radius)
    alerts = [a.model_dump(mode="json") for a in result.value_or([])]

    body: dict = {
        "success": True,
        "data": alerts,
        "count": len(alerts),
        "degraded": result.is_degraded,
    }
    if result.is_degraded:
        body["reason"] = result.reason
    return body
