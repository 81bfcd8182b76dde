"""Live location sharing — per-user upsert, sharing settings, and fan-out."""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import get_settings
from shared.database import storage_guard
from shared.errors import NotFoundError
from shared.geo import coordinate_errors
from shared.models.live_location import LiveLocation
from shared.models.user import User

logger = structlog.get_logger()

DEFAULT_NAME = "My Location"


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_live_location(payload: dict) -> list[str]:
    """Return every problem with a position push. Empty when valid."""
    errors = coordinate_errors(payload.get("lat"), payload.get("lng"))

    accuracy = payload.get("accuracy")
    if accuracy is not None and (not _is_number(accuracy) or accuracy < 0):
        errors.append("accuracy must be a non-negative number")

    heading = payload.get("heading")
    if heading is not None and (not _is_number(heading) or not 0 <= heading < 360):
        errors.append("heading must be a number in [0, 360)")

    speed = payload.get("speed")
    if speed is not None and (not _is_number(speed) or speed < 0):
        errors.append("speed must be a non-negative number")

    errors.extend(recipient_errors(payload.get("share_with")))
    return errors


def recipient_errors(share_with: object) -> list[str]:
    if share_with is None:
        return []
    if not isinstance(share_with, list):
        return ["share_with must be a list of user ids"]
    errors = []
    for recipient in share_with:
        try:
            uuid.UUID(str(recipient))
        except ValueError:
            errors.append(f"share_with contains an invalid user id: {recipient}")
    return errors


def normalize_recipients(share_with: Iterable[str | uuid.UUID] | None) -> list[str]:
    """Canonical, de-duplicated recipient ids. Order carries no meaning."""
    if not share_with:
        return []
    return sorted({str(uuid.UUID(str(r))) for r in share_with})


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def freshness_window() -> timedelta:
    return timedelta(minutes=get_settings().live_location_freshness_minutes)


def filter_visible(
    records: Iterable[LiveLocation],
    viewer_id: uuid.UUID,
    *,
    include_own: bool = False,
    now: datetime | None = None,
    window: timedelta | None = None,
) -> list[LiveLocation]:
    """Apply the fan-out visibility rule and order newest first.

    A record is visible when it is sharing, was updated within ``window``,
    and the viewer is either a listed recipient or (with ``include_own``)
    its owner.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - (window or freshness_window())
    viewer = str(viewer_id)

    visible = []
    for record in records:
        if not record.is_sharing:
            continue
        if _as_utc(record.last_updated) < cutoff:
            continue
        is_recipient = viewer in (record.share_with or [])
        is_owner = str(record.user_id) == viewer
        if is_recipient or (include_own and is_owner):
            visible.append(record)

    visible.sort(key=lambda r: _as_utc(r.last_updated), reverse=True)
    return visible


async def get_live_location(session: AsyncSession, user_id: uuid.UUID) -> LiveLocation | None:
    result = await session.execute(
        select(LiveLocation).where(LiveLocation.user_id == user_id)
    )
    return result.scalar_one_or_none()


def _apply_position(loc: LiveLocation, payload: dict, now: datetime) -> None:
    loc.name = payload.get("name") or DEFAULT_NAME
    loc.latitude = payload["lat"]
    loc.longitude = payload["lng"]
    loc.accuracy = payload.get("accuracy")
    loc.heading = payload.get("heading")
    loc.speed = payload.get("speed")
    loc.is_sharing = payload.get("is_sharing") is not False
    loc.share_with = normalize_recipients(payload.get("share_with"))
    loc.last_updated = now


async def upsert_live_location(
    session: AsyncSession,
    user_id: uuid.UUID,
    payload: dict,
    now: datetime | None = None,
) -> tuple[LiveLocation, bool]:
    """Insert or update the caller's single live location row.

    Returns the stored row and whether it was created. The payload must
    already have passed ``validate_live_location``.
    """
    now = now or datetime.now(timezone.utc)

    async with storage_guard(session, "upsert_live_location"):
        loc = await get_live_location(session, user_id)
        created = loc is None
        if created:
            loc = LiveLocation(id=uuid.uuid4(), user_id=user_id, created_at=now)
            _apply_position(loc, payload, now)
            session.add(loc)
        else:
            _apply_position(loc, payload, now)

        try:
            await session.commit()
        except IntegrityError:
            # Lost a race with a concurrent first push; update the winner's row
            await session.rollback()
            loc = await get_live_location(session, user_id)
            if loc is None:
                raise
            created = False
            _apply_position(loc, payload, now)
            await session.commit()

    logger.info(
        "live_location_upserted",
        user_id=str(user_id),
        created=created,
        is_sharing=loc.is_sharing,
        recipients=len(loc.share_with),
    )
    return loc, created


async def update_sharing_settings(
    session: AsyncSession,
    user_id: uuid.UUID,
    is_sharing: bool,
    share_with: list[str] | None,
    now: datetime | None = None,
) -> LiveLocation:
    """Change only the sharing flag and recipient list."""
    now = now or datetime.now(timezone.utc)
    async with storage_guard(session, "update_sharing_settings"):
        loc = await get_live_location(session, user_id)
        if loc is None:
            raise NotFoundError("Live location not found")
        loc.is_sharing = is_sharing
        loc.share_with = normalize_recipients(share_with)
        loc.last_updated = now
        await session.commit()

    logger.info(
        "live_location_settings_updated",
        user_id=str(user_id),
        is_sharing=is_sharing,
        recipients=len(loc.share_with),
    )
    return loc


async def stop_sharing(
    session: AsyncSession,
    user_id: uuid.UUID,
    now: datetime | None = None,
) -> LiveLocation:
    """Turn sharing off. The row and its last position are kept."""
    now = now or datetime.now(timezone.utc)
    async with storage_guard(session, "stop_sharing"):
        loc = await get_live_location(session, user_id)
        if loc is None:
            raise NotFoundError("Live location not found")
        loc.is_sharing = False
        loc.last_updated = now
        await session.commit()

    logger.info("live_location_sharing_stopped", user_id=str(user_id))
    return loc


async def list_visible_locations(
    session: AsyncSession,
    viewer_id: uuid.UUID,
    include_own: bool = False,
    now: datetime | None = None,
) -> list[LiveLocation]:
    """Live locations the viewer may see, newest first."""
    now = now or datetime.now(timezone.utc)
    window = freshness_window()
    async with storage_guard(session, "list_visible_locations"):
        result = await session.execute(
            select(LiveLocation)
            .where(
                LiveLocation.is_sharing == True,  # noqa: E712
                LiveLocation.last_updated >= now - window,
            )
            .order_by(LiveLocation.last_updated.desc())
        )
        candidates = result.scalars().all()

    return filter_visible(
        candidates, viewer_id, include_own=include_own, now=now, window=window
    )


async def load_profiles(
    session: AsyncSession, user_ids: Iterable[uuid.UUID]
) -> dict[str, User]:
    """Fetch display profiles for the owners of visible locations."""
    ids = list({uid for uid in user_ids})
    if not ids:
        return {}
    async with storage_guard(session, "load_profiles"):
        result = await session.execute(select(User).where(User.id.in_(ids)))
        users = result.scalars().all()
    return {str(u.id): u for u in users}


def serialize_live_location(loc: LiveLocation, profile: User | None = None) -> dict:
    data = {
        "id": str(loc.id) if loc.id else None,
        "user_id": str(loc.user_id),
        "name": loc.name,
        "lat": loc.latitude,
        "lng": loc.longitude,
        "accuracy": loc.accuracy,
        "heading": loc.heading,
        "speed": loc.speed,
        "is_sharing": loc.is_sharing,
        "share_with": list(loc.share_with or []),
        "last_updated": loc.last_updated.isoformat() if loc.last_updated else None,
        "created_at": loc.created_at.isoformat() if loc.created_at else None,
    }
    if profile is not None:
        data["user"] = {
            "id": str(profile.id),
            "name": profile.full_name,
            "avatar_url": profile.avatar_url,
        }
    return data
