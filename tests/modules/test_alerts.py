"""Tests for the alert aggregator, earthquake transform, and proximity filter."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from modules.alerts.aggregator import AlertAggregator, dedupe_alerts, filter_nearby
from modules.alerts.earthquakes import (
    EarthquakeFeed,
    earthquake_to_alert,
    magnitude_radius_km,
    magnitude_severity,
)
from modules.alerts.seed import seed_alerts
from shared.cache import MemoryBackend, TTLCache
from shared.fetch_result import FetchResult
from shared.geo import haversine_km
from tests.conftest import mock_http_client, mock_response

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _feature(mag=5.0, fid="us7000abcd", lat=35.0, lng=139.0, place="10 km S of Somewhere", time_ms=None):
    return {
        "id": fid,
        "properties": {
            "mag": mag,
            "place": place,
            "time": time_ms if time_ms is not None else int(NOW.timestamp() * 1000),
            "title": f"M {mag} - {place}",
        },
        "geometry": {"coordinates": [lng, lat, 10.0]},
    }


def _stub_feed(result):
    feed = AsyncMock(spec=EarthquakeFeed)
    feed.fetch.return_value = result
    return feed


# ==========================================================================
# Earthquake transform
# ==========================================================================


class TestMagnitudeThresholds:
    def test_six_point_five_is_high(self):
        assert magnitude_severity(6.5) == "high"

    def test_exactly_five_point_five_is_medium(self):
        assert magnitude_severity(5.5) == "medium"

    def test_just_below_five_point_five_is_low(self):
        assert magnitude_severity(5.4999) == "low"

    def test_radius_floor_is_fifty_km(self):
        assert magnitude_radius_km(2.0) == 50
        assert magnitude_radius_km(4.5) == 90
        assert magnitude_radius_km(7.0) == 140


class TestEarthquakeToAlert:
    def test_fields(self):
        alert = earthquake_to_alert(_feature(mag=6.7, lat=38.1, lng=142.4, place="Off the coast of Japan"))
        assert alert.id == "us7000abcd"
        assert alert.type == "earthquake"
        assert alert.severity == "high"
        assert alert.title == "M 6.7 Earthquake: Off the coast of Japan"
        assert alert.coordinates.lat == 38.1
        assert alert.coordinates.lng == 142.4
        assert alert.radius == pytest.approx(134.0)
        assert alert.source == "USGS Earthquake Hazards Program"

    def test_expires_seven_days_after_event(self):
        alert = earthquake_to_alert(_feature())
        assert alert.issued == NOW
        assert alert.expires - alert.issued == timedelta(days=7)

    def test_description_falls_back_without_title(self):
        feature = _feature(mag=4.8, place="Nowhere")
        del feature["properties"]["title"]
        alert = earthquake_to_alert(feature)
        assert "Magnitude 4.8 earthquake reported near Nowhere" in alert.description

    def test_malformed_feature_raises(self):
        with pytest.raises(KeyError):
            earthquake_to_alert({"id": "x", "properties": {}})


# ==========================================================================
# Earthquake feed
# ==========================================================================


class TestEarthquakeFeed:
    @pytest.mark.asyncio
    async def test_fetch_transforms_features_and_skips_bad_ones(self):
        body = {"features": [_feature(fid="a"), {"id": "broken"}, _feature(fid="b", mag=6.0)]}
        client = mock_http_client(mock_response(200, body))
        with patch("modules.alerts.earthquakes.httpx.AsyncClient", return_value=client):
            result = await EarthquakeFeed(url="https://usgs.test/query").fetch()

        assert result.is_ok
        assert [a.id for a in result.value] == ["a", "b"]
        params = client.request.await_args.kwargs["params"]
        assert params["minmagnitude"] == 4.5
        assert params["orderby"] == "time"
        assert params["format"] == "geojson"

    @pytest.mark.asyncio
    async def test_fetch_failure_is_a_failed_result(self):
        client = mock_http_client(side_effect=httpx.ConnectError("down"))
        with patch("modules.alerts.earthquakes.httpx.AsyncClient", return_value=client):
            result = await EarthquakeFeed(url="https://usgs.test/query").fetch()

        assert result.is_failed
        assert "unreachable" in result.reason

    @pytest.mark.asyncio
    async def test_client_error_is_a_failed_result(self):
        client = mock_http_client(mock_response(404, {}))
        with patch("modules.alerts.earthquakes.httpx.AsyncClient", return_value=client):
            result = await EarthquakeFeed(url="https://usgs.test/query").fetch()

        assert result.is_failed
        assert "404" in result.reason
        assert client.request.await_count == 1


# ==========================================================================
# Proximity filter
# ==========================================================================


class TestFilterNearby:
    def test_brooklyn_caller_sees_brooklyn_not_seattle(self):
        alerts = seed_alerts(NOW)
        nearby = {a.id for a in filter_nearby(alerts, 40.70, -74.00, 5)}
        assert "mock-1" in nearby
        assert "mock-traffic-3" not in nearby

    def test_inclusion_matches_combined_radius(self):
        for alert in seed_alerts(NOW):
            d = haversine_km(alert.coordinates.lat, alert.coordinates.lng, 40.70, -74.00)
            included = bool(filter_nearby([alert], 40.70, -74.00, 5))
            assert included == (d <= alert.radius + 5)

    def test_increasing_radius_never_removes_alerts(self):
        alerts = seed_alerts(NOW)
        previous: set[str] = set()
        for radius in (0, 1, 5, 25, 100, 1000, 5000):
            current = {a.id for a in filter_nearby(alerts, 40.70, -74.00, radius)}
            assert previous <= current
            previous = current


def test_dedupe_keeps_first_occurrence():
    alerts = seed_alerts(NOW)
    dup = alerts[0].model_copy(update={"title": "duplicate"})
    result = dedupe_alerts(alerts + [dup])
    assert len(result) == len(alerts)
    assert result[0].title == alerts[0].title


def test_seed_alerts_are_relative_to_now():
    alerts = seed_alerts(NOW)
    assert len(alerts) == 8
    assert all(a.expires > NOW for a in alerts)
    assert all(a.issued <= NOW for a in alerts)


# ==========================================================================
# Aggregator
# ==========================================================================


class TestAlertAggregator:
    @pytest.mark.asyncio
    async def test_merges_seed_and_live_feed(self):
        quake = earthquake_to_alert(_feature(fid="quake-1"))
        aggregator = AlertAggregator(feed=_stub_feed(FetchResult.ok([quake])))

        result = await aggregator.get_alerts(now=NOW)

        assert result.is_ok
        ids = [a.id for a in result.value]
        assert len(ids) == 9
        assert ids[-1] == "quake-1"

    @pytest.mark.asyncio
    async def test_feed_failure_degrades_to_seed_set(self):
        aggregator = AlertAggregator(feed=_stub_feed(FetchResult.failed("USGS down")))

        result = await aggregator.get_alerts(now=NOW)

        assert result.is_degraded
        assert result.reason == "USGS down"
        assert len(result.value) == 8

    @pytest.mark.asyncio
    async def test_proximity_applied_only_with_point_and_radius(self):
        aggregator = AlertAggregator(feed=_stub_feed(FetchResult.ok([])))

        partial = await aggregator.get_alerts(lat=40.70, lng=-74.00, now=NOW)
        assert len(partial.value) == 8

        nearby = await aggregator.get_alerts(lat=40.70, lng=-74.00, radius=5, now=NOW)
        ids = {a.id for a in nearby.value}
        assert "mock-1" in ids
        assert "mock-traffic-3" not in ids

    @pytest.mark.asyncio
    async def test_feed_result_cached(self):
        quake = earthquake_to_alert(_feature(fid="quake-1"))
        feed = _stub_feed(FetchResult.ok([quake]))
        cache = TTLCache(MemoryBackend())
        aggregator = AlertAggregator(feed=feed, cache=cache, cache_ttl=300)

        first = await aggregator.get_alerts(now=NOW)
        second = await aggregator.get_alerts(now=NOW)

        assert feed.fetch.await_count == 1
        assert [a.id for a in first.value] == [a.id for a in second.value]
