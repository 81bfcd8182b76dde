"""Geographic helpers — great-circle distance and coordinate validation."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lng2 - lng1)
    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def circles_overlap(
    center_a: tuple[float, float],
    radius_a_km: float,
    center_b: tuple[float, float],
    radius_b_km: float,
) -> bool:
    """True when two circles on the sphere touch or overlap."""
    distance = haversine_km(center_a[0], center_a[1], center_b[0], center_b[1])
    return distance <= radius_a_km + radius_b_km


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def coordinate_errors(lat: object, lng: object) -> list[str]:
    """Return one message per invalid coordinate. Empty when both are valid."""
    errors: list[str] = []
    if not _is_number(lat):
        errors.append("lat must be a number")
    elif not -90 <= lat <= 90:  # type: ignore[operator]
        errors.append("lat must be between -90 and 90")
    if not _is_number(lng):
        errors.append("lng must be a number")
    elif not -180 <= lng <= 180:  # type: ignore[operator]
        errors.append("lng must be between -180 and 180")
    return errors
