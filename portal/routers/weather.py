"""Weather endpoint — live conditions with a mock fallback."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from modules.weather.client import WeatherClient
from portal.services import get_weather_client
from shared.errors import UpstreamError, ValidationError
from shared.geo import coordinate_errors

router = APIRouter(prefix="/api/weather", tags=["weather"])


@router.get("")
async def get_weather(
    lat: float,
    lng: float,
    client: WeatherClient = Depends(get_weather_client),
) -> dict:
    errors = coordinate_errors(lat, lng)
    if errors:
        raise ValidationError(errors)

    result = await client.get_weather(lat, lng)
    if result.is_failed:
        raise UpstreamError(result.reason)

    body: dict = {"success": True, "data": result.value}
    if result.is_degraded:
        body["fallback"] = True
        body["error"] = result.reason
    return body
