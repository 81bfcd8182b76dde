"""Tracked locations — people and properties a user watches on the map."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import storage_guard
from shared.errors import NotFoundError
from shared.geo import coordinate_errors
from shared.models.tracked_location import (
    LOCATION_STATUSES,
    LOCATION_TYPES,
    TrackedLocation,
)

logger = structlog.get_logger()


def _blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_new_location(payload: dict) -> list[str]:
    errors: list[str] = []
    if _blank(payload.get("name")):
        errors.append("name is required and must be a non-empty string")
    errors.extend(coordinate_errors(payload.get("lat"), payload.get("lng")))
    if payload.get("type") not in LOCATION_TYPES:
        errors.append('type must be either "person" or "property"')
    status = payload.get("status")
    if status is not None and status not in LOCATION_STATUSES:
        errors.append('status must be "safe", "at_risk", or "unknown"')
    if _blank(payload.get("location")):
        errors.append("location description is required")
    return errors


def validate_location_update(payload: dict) -> list[str]:
    """Validate a partial update. Only the fields present are checked."""
    errors: list[str] = []
    has_lat = payload.get("lat") is not None
    has_lng = payload.get("lng") is not None
    if has_lat or has_lng:
        if has_lat and has_lng:
            errors.extend(coordinate_errors(payload["lat"], payload["lng"]))
        else:
            errors.append("lat and lng must be provided together")
    if payload.get("type") is not None and payload["type"] not in LOCATION_TYPES:
        errors.append("type is invalid")
    if payload.get("status") is not None and payload["status"] not in LOCATION_STATUSES:
        errors.append("status is invalid")
    if "name" in payload and payload["name"] is not None and _blank(payload["name"]):
        errors.append("name cannot be empty")
    return errors


async def list_tracked_locations(
    session: AsyncSession,
    user_id: uuid.UUID,
    type_filter: str | None = None,
    status_filter: str | None = None,
) -> list[TrackedLocation]:
    """The owner's tracked locations, newest first. Unknown filter values are ignored."""
    query = (
        select(TrackedLocation)
        .where(TrackedLocation.user_id == user_id)
        .order_by(TrackedLocation.created_at.desc())
    )
    if type_filter in LOCATION_TYPES:
        query = query.where(TrackedLocation.type == type_filter)
    if status_filter in LOCATION_STATUSES:
        query = query.where(TrackedLocation.status == status_filter)

    async with storage_guard(session, "list_tracked_locations"):
        result = await session.execute(query)
        return list(result.scalars().all())


async def _get_owned(
    session: AsyncSession, user_id: uuid.UUID, location_id: uuid.UUID
) -> TrackedLocation:
    result = await session.execute(
        select(TrackedLocation).where(
            TrackedLocation.id == location_id,
            TrackedLocation.user_id == user_id,
        )
    )
    loc = result.scalar_one_or_none()
    if loc is None:
        raise NotFoundError("Location not found")
    return loc


async def create_tracked_location(
    session: AsyncSession, user_id: uuid.UUID, payload: dict
) -> TrackedLocation:
    now = datetime.now(timezone.utc)
    loc = TrackedLocation(
        id=uuid.uuid4(),
        user_id=user_id,
        name=payload["name"].strip(),
        latitude=payload["lat"],
        longitude=payload["lng"],
        type=payload["type"],
        status=payload.get("status") or "unknown",
        location=payload["location"].strip(),
        last_updated=now,
        created_at=now,
    )
    async with storage_guard(session, "create_tracked_location"):
        session.add(loc)
        await session.commit()
    logger.info("tracked_location_created", user_id=str(user_id), location_id=str(loc.id))
    return loc


async def update_tracked_location(
    session: AsyncSession, user_id: uuid.UUID, location_id: uuid.UUID, payload: dict
) -> TrackedLocation:
    """Apply the fields present in ``payload`` to an owned location."""
    async with storage_guard(session, "update_tracked_location"):
        loc = await _get_owned(session, user_id, location_id)
        if payload.get("name") is not None:
            loc.name = payload["name"].strip()
        if payload.get("lat") is not None:
            loc.latitude = payload["lat"]
            loc.longitude = payload["lng"]
        if payload.get("type") is not None:
            loc.type = payload["type"]
        if payload.get("status") is not None:
            loc.status = payload["status"]
        if payload.get("location") is not None:
            loc.location = payload["location"].strip()
        loc.last_updated = datetime.now(timezone.utc)
        await session.commit()
    logger.info("tracked_location_updated", user_id=str(user_id), location_id=str(location_id))
    return loc


async def delete_tracked_location(
    session: AsyncSession, user_id: uuid.UUID, location_id: uuid.UUID
) -> TrackedLocation:
    async with storage_guard(session, "delete_tracked_location"):
        loc = await _get_owned(session, user_id, location_id)
        await session.delete(loc)
        await session.commit()
    logger.info("tracked_location_deleted", user_id=str(user_id), location_id=str(location_id))
    return loc


def serialize_tracked_location(loc: TrackedLocation) -> dict:
    return {
        "id": str(loc.id),
        "user_id": str(loc.user_id),
        "name": loc.name,
        "lat": loc.latitude,
        "lng": loc.longitude,
        "type": loc.type,
        "status": loc.status,
        "location": loc.location,
        "last_updated": loc.last_updated.isoformat() if loc.last_updated else None,
        "created_at": loc.created_at.isoformat() if loc.created_at else None,
    }
