"""Position sources for the sharing client."""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

MOVEMENT_THRESHOLD_DEG = 0.0001

PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"
PERMISSION_PROMPT = "prompt"


@dataclass(frozen=True)
class PositionSample:
    """A single fix from a position source."""

    latitude: float
    longitude: float
    accuracy: float | None = None
    heading: float | None = None
    speed: float | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def moved_beyond(
        self, other: PositionSample | None, threshold: float = MOVEMENT_THRESHOLD_DEG
    ) -> bool:
        """True when either coordinate differs from ``other`` by more than ``threshold`` degrees."""
        if other is None:
            return True
        return (
            abs(self.latitude - other.latitude) > threshold
            or abs(self.longitude - other.longitude) > threshold
        )

    @classmethod
    def from_dict(cls, data: dict) -> PositionSample:
        ts = data.get("timestamp")
        return cls(
            latitude=float(data["lat"]),
            longitude=float(data["lng"]),
            accuracy=data.get("accuracy"),
            heading=data.get("heading"),
            speed=data.get("speed"),
            timestamp=datetime.fromisoformat(ts) if ts else datetime.now(timezone.utc),
        )


class GeolocationError(Exception):
    """Base class for recoverable positioning failures."""

    default_message = "Failed to get location"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class LocationPermissionError(GeolocationError, PermissionError):
    default_message = (
        "Location access denied. Please allow location access in your device settings."
    )


class PositionUnavailableError(GeolocationError):
    default_message = (
        "Location information unavailable. Please check your device's location settings."
    )


class LocationTimeoutError(GeolocationError, TimeoutError):
    default_message = (
        "Location request timed out. Please try again or check your connection."
    )


class GeolocationSource(ABC):
    """Abstract device positioning capability."""

    @abstractmethod
    async def permission_state(self) -> str:
        """Return "granted", "denied" or "prompt"."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask for location access. Returns True when granted."""

    @abstractmethod
    async def get_position(self, timeout: float, high_accuracy: bool = True) -> PositionSample:
        """Return one fix or raise a GeolocationError."""

    @abstractmethod
    def watch(self, high_accuracy: bool = True) -> AsyncIterator[PositionSample]:
        """Yield fixes as the position changes."""


class ReplayGeolocationSource(GeolocationSource):
    """Replays a recorded track, one sample per ``interval`` seconds.

    ``get_position`` returns the current point of the track; ``watch`` advances
    through the remaining points and stops at the end of the track.
    """

    def __init__(
        self,
        samples: list[PositionSample],
        interval: float = 1.0,
        permission: str = PERMISSION_GRANTED,
        grant_on_request: bool = True,
    ):
        self._samples = list(samples)
        self._index = 0
        self.interval = interval
        self._permission = permission
        self._grant_on_request = grant_on_request

    @classmethod
    def from_file(cls, path: str | Path, interval: float = 1.0) -> ReplayGeolocationSource:
        """Load a JSON array of ``{"lat", "lng", ...}`` objects."""
        raw = json.loads(Path(path).read_text())
        return cls([PositionSample.from_dict(item) for item in raw], interval=interval)

    async def permission_state(self) -> str:
        return self._permission

    async def request_permission(self) -> bool:
        if self._permission == PERMISSION_PROMPT:
            self._permission = PERMISSION_GRANTED if self._grant_on_request else PERMISSION_DENIED
        return self._permission == PERMISSION_GRANTED

    def _check_access(self) -> None:
        if self._permission != PERMISSION_GRANTED:
            raise LocationPermissionError()
        if not self._samples:
            raise PositionUnavailableError()

    async def get_position(self, timeout: float, high_accuracy: bool = True) -> PositionSample:
        self._check_access()
        return self._samples[self._index]

    async def watch(self, high_accuracy: bool = True) -> AsyncIterator[PositionSample]:
        self._check_access()
        while self._index < len(self._samples) - 1:
            await asyncio.sleep(self.interval)
            self._index += 1
            yield self._samples[self._index]
