"""Personal contact book, scoped to the authenticated owner."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from modules.location.geocoding import geocode_address
from shared.database import storage_guard
from shared.errors import UpstreamError, ValidationError
from shared.geo import coordinate_errors
from shared.models.contact import CONTACT_STATUSES, Contact

logger = structlog.get_logger()

REQUIRED_FIELDS = ("name", "relationship", "address")


def validate_contact(payload: dict) -> list[str]:
    """Check required fields and ranges. Coordinates may be absent when an address is given."""
    errors = [
        f"{field} is required"
        for field in REQUIRED_FIELDS
        if not isinstance(payload.get(field), str) or not payload[field].strip()
    ]
    lat, lng = payload.get("lat"), payload.get("lng")
    if lat is not None or lng is not None:
        errors.extend(coordinate_errors(lat, lng))
    status = payload.get("status")
    if status is not None and status not in CONTACT_STATUSES:
        errors.append('status must be "safe", "caution", or "danger"')
    return errors


async def resolve_coordinates(payload: dict) -> tuple[float, float]:
    """Use the supplied coordinates, or geocode the address when they are missing."""
    if payload.get("lat") is not None and payload.get("lng") is not None:
        return payload["lat"], payload["lng"]

    result = await geocode_address(payload["address"])
    if result.is_failed:
        raise UpstreamError(f"Geocoding service unavailable: {result.reason}")
    if result.value is None:
        raise ValidationError([f"address could not be geocoded: '{payload['address']}' not found"])
    return result.value.lat, result.value.lng


async def list_contacts(session: AsyncSession, user_id: uuid.UUID) -> list[Contact]:
    async with storage_guard(session, "list_contacts"):
        result = await session.execute(
            select(Contact)
            .where(Contact.user_id == user_id)
            .order_by(Contact.created_at.desc())
        )
        return list(result.scalars().all())


async def create_contact(
    session: AsyncSession,
    user_id: uuid.UUID,
    payload: dict,
    lat: float,
    lng: float,
) -> Contact:
    now = datetime.now(timezone.utc)
    contact = Contact(
        id=uuid.uuid4(),
        user_id=user_id,
        name=payload["name"].strip(),
        relationship=payload["relationship"].strip(),
        address=payload["address"].strip(),
        latitude=lat,
        longitude=lng,
        status=payload.get("status") or "safe",
        phone=payload.get("phone"),
        email=payload.get("email"),
        description=payload.get("description"),
        created_at=now,
        updated_at=now,
    )
    async with storage_guard(session, "create_contact"):
        session.add(contact)
        await session.commit()
    logger.info("contact_created", user_id=str(user_id), contact_id=str(contact.id))
    return contact


def serialize_contact(contact: Contact) -> dict:
    return {
        "id": str(contact.id),
        "user_id": str(contact.user_id),
        "name": contact.name,
        "relationship": contact.relationship,
        "phone": contact.phone,
        "email": contact.email,
        "address": contact.address,
        "lat": contact.latitude,
        "lng": contact.longitude,
        "status": contact.status,
        "description": contact.description,
        "created_at": contact.created_at.isoformat() if contact.created_at else None,
        "updated_at": contact.updated_at.isoformat() if contact.updated_at else None,
    }
