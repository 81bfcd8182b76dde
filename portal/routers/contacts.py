"""Contact book endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from modules.contacts.store import (
    create_contact,
    list_contacts,
    resolve_coordinates,
    serialize_contact,
    validate_contact,
)
from portal.auth import PortalUser, require_auth
from shared.database import get_session_factory
from shared.errors import ValidationError

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


class CreateContactRequest(BaseModel):
    name: str
    relationship: str
    address: str
    lat: float | None = None
    lng: float | None = None
    status: str | None = None
    phone: str | None = None
    email: str | None = None
    description: str | None = None


@router.get("")
async def get_contacts(user: PortalUser = Depends(require_auth)) -> dict:
    factory = get_session_factory()
    async with factory() as session:
        contacts = await list_contacts(session, user.user_id)
    data = [serialize_contact(c) for c in contacts]
    return {"success": True, "data": data, "count": len(data)}


@router.post("", status_code=201)
async def add_contact(
    body: CreateContactRequest,
    user: PortalUser = Depends(require_auth),
) -> dict:
    """Create a contact. The address is geocoded when coordinates are omitted."""
    payload = body.model_dump()
    errors = validate_contact(payload)
    if errors:
        raise ValidationError(errors)

    lat, lng = await resolve_coordinates(payload)

    factory = get_session_factory()
    async with factory() as session:
        contact = await create_contact(session, user.user_id, payload, lat, lng)
    return {"success": True, "data": serialize_contact(contact)}
