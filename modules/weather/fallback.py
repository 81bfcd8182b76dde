"""Mock weather payload served when live conditions are unavailable."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

FALLBACK_LOCATION_NAME = "Fallback Location (Weather API Error)"

_FALLBACK_FORECAST = [
    ("12:00 PM", 22, "Sunny", "clear sky", "01d"),
    ("03:00 PM", 23, "Sunny", "clear sky", "01d"),
    ("06:00 PM", 21, "Clouds", "few clouds", "02d"),
    ("09:00 PM", 18, "Clear", "clear sky", "01n"),
    ("12:00 AM", 16, "Clear", "clear sky", "01n"),
    ("03:00 AM", 15, "Clear", "clear sky", "01n"),
]


def fallback_weather(lat: float, lng: float, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    return {
        "location": {"lat": lat, "lng": lng, "name": FALLBACK_LOCATION_NAME},
        "current": {
            "temperature": 20,
            "condition": "Partly Cloudy",
            "description": "partly cloudy with a chance of showers",
            "windSpeed": 15,
            "humidity": 60,
            "pressure": 1012,
            "visibility": 10,
            "icon": "02d",
        },
        "alerts": [
            {
                "id": "fallback-weather-alert-1",
                "type": "weather_api_status",
                "title": "Real-time Weather Unavailable",
                "description": (
                    "Currently displaying cached or mock weather data due to an "
                    "issue fetching live updates. Please try again later."
                ),
                "severity": "low",
                "areas": ["Current Location"],
                "expires": (now + timedelta(hours=1)).isoformat(),
                "source": "System",
            }
        ],
        "forecast": [
            {"time": time, "temp": temp, "condition": condition, "description": desc, "icon": icon}
            for time, temp, condition, desc, icon in _FALLBACK_FORECAST
        ],
    }
