"""Tracked location CRUD, scoped to the caller."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from modules.location.tracked import (
    create_tracked_location,
    delete_tracked_location,
    list_tracked_locations,
    serialize_tracked_location,
    update_tracked_location,
    validate_location_update,
    validate_new_location,
)
from portal.auth import PortalUser, require_auth
from shared.database import get_session_factory
from shared.errors import ValidationError
from shared.models.tracked_location import LOCATION_STATUSES

router = APIRouter(prefix="/api/locations", tags=["locations"])


class CreateLocationRequest(BaseModel):
    name: str
    lat: float
    lng: float
    type: str
    status: str | None = None
    location: str


class UpdateLocationRequest(BaseModel):
    id: uuid.UUID
    name: str | None = None
    lat: float | None = None
    lng: float | None = None
    type: str | None = None
    status: str | None = None
    location: str | None = None


class StatusUpdateRequest(BaseModel):
    id: uuid.UUID
    status: str


@router.get("")
async def list_locations(
    type: str | None = None,
    status: str | None = None,
    user: PortalUser = Depends(require_auth),
) -> dict:
    factory = get_session_factory()
    async with factory() as session:
        locations = await list_tracked_locations(
            session, user.user_id, type_filter=type, status_filter=status
        )
    data = [serialize_tracked_location(loc) for loc in locations]
    return {"success": True, "data": data, "count": len(data)}


@router.post("", status_code=201)
async def create_location(
    body: CreateLocationRequest,
    user: PortalUser = Depends(require_auth),
) -> dict:
    payload = body.model_dump()
    errors = validate_new_location(payload)
    if errors:
        raise ValidationError(errors)

    factory = get_session_factory()
    async with factory() as session:
        loc = await create_tracked_location(session, user.user_id, payload)
    return {
        "success": True,
        "data": serialize_tracked_location(loc),
        "message": "Location created successfully",
    }


@router.put("")
async def update_location(
    body: UpdateLocationRequest,
    user: PortalUser = Depends(require_auth),
) -> dict:
    payload = body.model_dump(exclude_unset=True)
    location_id = payload.pop("id")
    errors = validate_location_update(payload)
    if errors:
        raise ValidationError(errors)

    factory = get_session_factory()
    async with factory() as session:
        loc = await update_tracked_location(session, user.user_id, location_id, payload)
    return {
        "success": True,
        "data": serialize_tracked_location(loc),
        "message": "Location updated successfully",
    }


@router.patch("")
async def update_location_status(
    body: StatusUpdateRequest,
    user: PortalUser = Depends(require_auth),
) -> dict:
    """Quick status change without touching other fields."""
    if body.status not in LOCATION_STATUSES:
        raise ValidationError(['status must be "safe", "at_risk", or "unknown"'])

    factory = get_session_factory()
    async with factory() as session:
        loc = await update_tracked_location(
            session, user.user_id, body.id, {"status": body.status}
        )
    return {
        "success": True,
        "data": serialize_tracked_location(loc),
        "message": "Status updated successfully",
    }


@router.delete("")
async def delete_location(
    id: uuid.UUID,
    user: PortalUser = Depends(require_auth),
) -> dict:
    factory = get_session_factory()
    async with factory() as session:
        loc = await delete_tracked_location(session, user.user_id, id)
    return {
        "success": True,
        "data": serialize_tracked_location(loc),
        "message": "Location deleted successfully",
    }
