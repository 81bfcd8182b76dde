"""Live location endpoints — position upsert, sharing settings, fan-out query."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, StrictBool

from modules.location.live import (
    list_visible_locations,
    load_profiles,
    recipient_errors,
    serialize_live_location,
    stop_sharing,
    update_sharing_settings,
    upsert_live_location,
    validate_live_location,
)
from portal.auth import PortalUser, require_auth
from shared.database import get_session_factory
from shared.errors import ValidationError

logger = structlog.get_logger()

router = APIRouter(prefix="/api/live-locations", tags=["live-locations"])


class LiveLocationPush(BaseModel):
    lat: float
    lng: float
    name: str | None = None
    accuracy: float | None = None
    heading: float | None = None
    speed: float | None = None
    is_sharing: bool = True
    share_with: list[str] = []


class SharingSettingsUpdate(BaseModel):
    is_sharing: StrictBool
    share_with: list[str] | None = None


@router.get("")
async def get_live_locations(
    include_own: bool = False,
    user: PortalUser = Depends(require_auth),
) -> dict:
    """Live locations shared with the caller, newest first."""
    factory = get_session_factory()
    async with factory() as session:
        locations = await list_visible_locations(
            session, user.user_id, include_own=include_own
        )
        profiles = await load_profiles(session, [loc.user_id for loc in locations])

    data = [
        serialize_live_location(loc, profiles.get(str(loc.user_id)))
        for loc in locations
    ]
    return {"success": True, "data": data, "count": len(data)}


@router.post("")
async def push_live_location(
    body: LiveLocationPush,
    response: Response,
    user: PortalUser = Depends(require_auth),
) -> dict:
    """Create or update the caller's live location. 201 on first push, 200 after."""
    payload = body.model_dump()
    errors = validate_live_location(payload)
    if errors:
        raise ValidationError(errors)

    factory = get_session_factory()
    async with factory() as session:
        loc, created = await upsert_live_location(session, user.user_id, payload)

    response.status_code = 201 if created else 200
    return {
        "success": True,
        "data": serialize_live_location(loc),
        "message": (
            "Live location created successfully"
            if created
            else "Live location updated successfully"
        ),
    }


@router.api_route("", methods=["PUT", "PATCH"])
async def update_settings(
    body: SharingSettingsUpdate,
    user: PortalUser = Depends(require_auth),
) -> dict:
    """Update the sharing flag and recipient list without touching the position."""
    errors = recipient_errors(body.share_with)
    if errors:
        raise ValidationError(errors)

    factory = get_session_factory()
    async with factory() as session:
        loc = await update_sharing_settings(
            session, user.user_id, body.is_sharing, body.share_with
        )

    return {
        "success": True,
        "data": serialize_live_location(loc),
        "message": "Sharing settings updated successfully",
    }


@router.delete("")
async def stop_live_location(user: PortalUser = Depends(require_auth)) -> dict:
    """Stop sharing. The row is kept with is_sharing=false."""
    factory = get_session_factory()
    async with factory() as session:
        loc = await stop_sharing(session, user.user_id)

    return {
        "success": True,
        "data": serialize_live_location(loc),
        "message": "Location sharing stopped successfully",
    }
