"""SQLAlchemy models."""

from shared.models.base import Base
from shared.models.contact import Contact
from shared.models.live_location import LiveLocation
from shared.models.tracked_location import TrackedLocation
from shared.models.user import User

__all__ = [
    "Base",
    "Contact",
    "LiveLocation",
    "TrackedLocation",
    "User",
]
