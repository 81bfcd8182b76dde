"""Tests for tracked location CRUD."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock

import pytest

from modules.location.tracked import (
    create_tracked_location,
    delete_tracked_location,
    list_tracked_locations,
    serialize_tracked_location,
    update_tracked_location,
    validate_location_update,
    validate_new_location,
)
from shared.errors import NotFoundError
from tests.conftest import scalar_result, scalars_result

VALID = {
    "name": "Grandma's House",
    "lat": 40.7128,
    "lng": -74.0060,
    "type": "property",
    "location": "New York, NY",
}


class TestValidateNewLocation:
    def test_valid(self):
        assert validate_new_location(VALID) == []

    def test_status_optional_but_checked(self):
        assert validate_new_location({**VALID, "status": "safe"}) == []
        assert validate_new_location({**VALID, "status": "lost"}) == [
            'status must be "safe", "at_risk", or "unknown"'
        ]

    def test_all_problems_reported(self):
        errors = validate_new_location({"name": "  ", "lat": 100, "type": "car"})
        assert errors == [
            "name is required and must be a non-empty string",
            "lat must be between -90 and 90",
            "lng must be a number",
            'type must be either "person" or "property"',
            "location description is required",
        ]


class TestValidateLocationUpdate:
    def test_empty_update_is_valid(self):
        assert validate_location_update({}) == []

    def test_lat_without_lng(self):
        assert validate_location_update({"lat": 10.0}) == ["lat and lng must be provided together"]

    def test_invalid_enums_and_name(self):
        errors = validate_location_update({"type": "car", "status": "lost", "name": ""})
        assert errors == ["type is invalid", "status is invalid", "name cannot be empty"]

    def test_coordinates_range_checked(self):
        assert validate_location_update({"lat": 10.0, "lng": 200.0}) == [
            "lng must be between -180 and 180"
        ]


class TestTrackedLocationStore:
    @pytest.mark.asyncio
    async def test_create_defaults_status_to_unknown(self, mock_db_session):
        user_id = uuid.uuid4()
        loc = await create_tracked_location(mock_db_session, user_id, {**VALID, "name": " Home "})

        assert loc.user_id == user_id
        assert loc.name == "Home"
        assert loc.status == "unknown"
        assert isinstance(loc.id, uuid.UUID)
        mock_db_session.add.assert_called_once_with(loc)
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_returns_rows(self, mock_db_session, make_tracked_location):
        rows = [make_tracked_location(), make_tracked_location(type="person")]
        mock_db_session.execute = AsyncMock(return_value=scalars_result(rows))

        result = await list_tracked_locations(mock_db_session, uuid.uuid4(), type_filter="boat")

        assert result == rows

    @pytest.mark.asyncio
    async def test_list_with_filters_adds_conditions(self, mock_db_session):
        await list_tracked_locations(mock_db_session, uuid.uuid4(), "person", "safe")
        stmt = mock_db_session.execute.await_args.args[0]
        sql = str(stmt)
        assert "tracked_locations.type" in sql
        assert "tracked_locations.status" in sql

    @pytest.mark.asyncio
    async def test_update_partial(self, mock_db_session, make_tracked_location):
        loc = make_tracked_location(status="unknown")
        mock_db_session.execute = AsyncMock(return_value=scalar_result(loc))

        updated = await update_tracked_location(
            mock_db_session, loc.user_id, loc.id, {"status": "at_risk"}
        )

        assert updated.status == "at_risk"
        assert updated.name == "Grandma's House"
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_coordinates(self, mock_db_session, make_tracked_location):
        loc = make_tracked_location()
        mock_db_session.execute = AsyncMock(return_value=scalar_result(loc))

        await update_tracked_location(mock_db_session, loc.user_id, loc.id, {"lat": 1.0, "lng": 2.0})

        assert (loc.latitude, loc.longitude) == (1.0, 2.0)

    @pytest.mark.asyncio
    async def test_update_someone_elses_location_is_not_found(self, mock_db_session):
        with pytest.raises(NotFoundError, match="Location not found"):
            await update_tracked_location(mock_db_session, uuid.uuid4(), uuid.uuid4(), {"status": "safe"})
        mock_db_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete(self, mock_db_session, make_tracked_location):
        loc = make_tracked_location()
        mock_db_session.execute = AsyncMock(return_value=scalar_result(loc))

        deleted = await delete_tracked_location(mock_db_session, loc.user_id, loc.id)

        assert deleted is loc
        mock_db_session.delete.assert_awaited_once_with(loc)
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_missing_is_not_found(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await delete_tracked_location(mock_db_session, uuid.uuid4(), uuid.uuid4())


def test_serialize(make_tracked_location):
    loc = make_tracked_location(type="person", status="safe")
    data = serialize_tracked_location(loc)
    assert data["id"] == str(loc.id)
    assert data["lat"] == 40.7128
    assert data["type"] == "person"
    assert data["status"] == "safe"
    assert data["location"] == "New York, NY"
