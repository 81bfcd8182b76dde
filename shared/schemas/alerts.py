"""Hazard alert schema — read-only records merged from seed data and live feeds."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from shared.schemas.common import Coordinates

Severity = Literal["low", "medium", "high"]


class HazardAlert(BaseModel):
    id: str
    type: str  # weather, traffic, emergency, earthquake, safety, ...
    severity: Severity
    title: str
    description: str
    location: str
    coordinates: Coordinates
    radius: float  # km
    issued: datetime
    expires: datetime
    source: str
