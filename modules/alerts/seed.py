"""Illustrative hazard alerts served alongside live feeds.

Issued/expiry times are relative to the request time so the demo data never
goes stale.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from shared.schemas.alerts import HazardAlert
from shared.schemas.common import Coordinates

# (id, type, severity, title, description, location, lat, lng, radius_km,
#  issued offset, expires offset, source)
_SEED: list[tuple] = [
    (
        "mock-1", "weather", "high",
        "Severe Thunderstorm Warning",
        "Damaging winds up to 70mph and large hail expected.",
        "Brooklyn, NY", 40.6892, -74.0445, 10,
        timedelta(0), timedelta(hours=1),
        "National Weather Service",
    ),
    (
        "mock-traffic-1", "traffic", "medium",
        "Accident on Brooklyn Bridge",
        "Multi-vehicle collision on Brooklyn Bridge, eastbound. Expect major "
        "delays. Emergency services on scene.",
        "Brooklyn Bridge, New York, NY", 40.7061, -73.9969, 3,
        timedelta(minutes=-15), timedelta(hours=2),
        "Local Traffic Authority",
    ),
    (
        "mock-traffic-2", "traffic", "low",
        "Road Closure - Main St",
        "Main Street closed between 1st Ave and 3rd Ave due to a local event. "
        "Detours in place.",
        "Main Street, Anytown, USA", 34.0522, -118.2437, 2,
        timedelta(hours=-2), timedelta(hours=4),
        "Anytown Police Department",
    ),
    (
        "mock-traffic-3", "traffic", "high",
        "Major Highway Standstill - I-5 North",
        "Complete standstill on I-5 Northbound near exit 167 due to overturned "
        "truck. Avoid area if possible. Expected clearance in 3+ hours.",
        "I-5 Northbound, Seattle, WA", 47.6205, -122.3493, 10,
        timedelta(minutes=-5), timedelta(hours=3.5),
        "State DOT",
    ),
    (
        "mock-emergency-1", "emergency", "low",
        "Power Outage Reported",
        "Scattered power outages affecting approximately 1,200 customers in "
        "Lower Manhattan.",
        "Lower Manhattan, New York, NY", 40.7282, -73.7949, 8,
        timedelta(hours=-1), timedelta(hours=2),
        "Con Edison",
    ),
    (
        "mock-unrest-1", "safety", "medium",
        "Planned Protest - City Hall",
        "A large demonstration is planned for City Hall plaza today from 2 PM "
        "to 5 PM. Expect road closures and increased police presence in the area.",
        "City Hall, MajorCity, USA", 39.9526, -75.1652, 2,
        timedelta(days=-1), timedelta(hours=6),
        "City Police Advisory",
    ),
    (
        "mock-safety-1", "safety", "high",
        "Industrial Fire - Evacuation Order",
        "Large fire at industrial complex in the West Port area. Smoke plume "
        "visible. Evacuation ordered for a 5km radius. Follow emergency "
        "personnel instructions.",
        "West Port Industrial Area", 33.7339, -118.2830, 7,
        timedelta(minutes=-10), timedelta(hours=12),
        "County Emergency Services",
    ),
    (
        "mock-unrest-2", "safety", "low",
        "Election Polling Station Congestion",
        "High voter turnout reported at downtown polling stations. Expect longer "
        "than usual wait times. Consider off-peak hours if possible.",
        "Downtown Polling Centers", 40.7580, -73.9855, 3,
        timedelta(hours=-2), timedelta(hours=4),
        "Board of Elections Update",
    ),
]


def seed_alerts(now: datetime | None = None) -> list[HazardAlert]:
    """Return the seed alert set stamped relative to ``now``."""
    now = now or datetime.now(timezone.utc)
    return [
        HazardAlert(
            id=alert_id,
            type=alert_type,
            severity=severity,
            title=title,
            description=description,
            location=location,
            coordinates=Coordinates(lat=lat, lng=lng),
            radius=radius,
            issued=now + issued,
            expires=now + expires,
            source=source,
        )
        for (
            alert_id, alert_type, severity, title, description, location,
            lat, lng, radius, issued, expires, source,
        ) in _SEED
    ]
