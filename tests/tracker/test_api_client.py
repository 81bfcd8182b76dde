"""Tests for the Radar API client, using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from shared.cache import MemoryBackend, TTLCache
from shared.errors import AuthError, NotFoundError, UpstreamError, ValidationError
from tracker.api_client import ALERTS_CACHE_TTL, RadarClient
from tracker.geolocation import PositionSample


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _client(handler, cache=None, attempts=1) -> RadarClient:
    return RadarClient(
        base_url="http://radar.test",
        token="tok",
        cache=cache,
        retry_attempts=attempts,
        retry_base_delay=0,
        transport=httpx.MockTransport(handler),
    )


class TestLiveLocationCalls:
    @pytest.mark.asyncio
    async def test_push_sends_bearer_and_payload(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"success": True, "data": {"id": "x"}})

        async with _client(handler) as client:
            data = await client.push_location(
                PositionSample(40.7, -74.0, accuracy=5.0), ["b"], name="Walk"
            )

        assert data == {"id": "x"}
        assert seen["auth"] == "Bearer tok"
        assert seen["method"] == "POST"
        assert seen["path"] == "/api/live-locations"
        assert seen["body"]["lat"] == 40.7
        assert seen["body"]["share_with"] == ["b"]
        assert seen["body"]["name"] == "Walk"
        assert seen["body"]["is_sharing"] is True

    @pytest.mark.asyncio
    async def test_update_sharing_uses_put(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            return httpx.Response(200, json={"success": True, "data": {"is_sharing": False}})

        async with _client(handler) as client:
            data = await client.update_sharing(["b"], is_sharing=False)

        assert methods == ["PUT"]
        assert data["is_sharing"] is False

    @pytest.mark.asyncio
    async def test_get_live_locations_passes_include_own(self):
        def handler(request):
            assert request.url.params["include_own"] == "true"
            return httpx.Response(200, json={"success": True, "data": [{"id": 1}], "count": 1})

        async with _client(handler) as client:
            assert await client.get_live_locations(include_own=True) == [{"id": 1}]


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, body, error_cls",
        [
            (400, {"success": False, "errors": ["lat must be a number"]}, ValidationError),
            (401, {"success": False, "error": "Token expired"}, AuthError),
            (404, {"success": False, "error": "Live location not found"}, NotFoundError),
            (503, {"success": False, "error": "down"}, UpstreamError),
        ],
    )
    async def test_status_maps_to_error(self, status, body, error_cls):
        async with _client(lambda request: httpx.Response(status, json=body)) as client:
            with pytest.raises(error_cls):
                await client.stop_sharing()

    @pytest.mark.asyncio
    async def test_validation_errors_are_itemised(self):
        body = {"success": False, "errors": ["lat must be a number", "lng must be a number"]}
        async with _client(lambda request: httpx.Response(400, json=body)) as client:
            with pytest.raises(ValidationError) as exc_info:
                await client.stop_sharing()
        assert exc_info.value.errors == body["errors"]

    @pytest.mark.asyncio
    async def test_transport_error_is_upstream(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler, attempts=2) as client:
            with pytest.raises(UpstreamError, match="API unreachable"):
                await client.stop_sharing()

    @pytest.mark.asyncio
    async def test_unsuccessful_envelope_is_upstream(self):
        async with _client(lambda request: httpx.Response(200, json={"success": False})) as client:
            with pytest.raises(UpstreamError):
                await client.stop_sharing()


class TestAlertsCache:
    @pytest.mark.asyncio
    async def test_fresh_cache_skips_network(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"success": True, "data": [{"id": "a"}], "degraded": False})

        async with _client(handler) as client:
            first = await client.get_alerts(40.7, -74.0, 5)
            second = await client.get_alerts(40.7, -74.0, 5)

        assert first.is_ok and second.is_ok
        assert second.value == [{"id": "a"}]
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_stale_cache_served_as_degraded_when_offline(self):
        clock = FakeClock()
        cache = TTLCache(MemoryBackend(), clock=clock)
        online = True

        def handler(request):
            if not online:
                raise httpx.ConnectError("offline", request=request)
            return httpx.Response(200, json={"success": True, "data": [{"id": "a"}], "degraded": False})

        async with _client(handler, cache=cache) as client:
            await client.get_alerts(40.7, -74.0, 5)
            online = False
            clock.now += ALERTS_CACHE_TTL + 1
            result = await client.get_alerts(40.7, -74.0, 5)

        assert result.is_degraded
        assert result.value == [{"id": "a"}]
        assert result.reason.startswith("Showing cached alerts")

    @pytest.mark.asyncio
    async def test_offline_without_cache_fails(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        async with _client(handler) as client:
            result = await client.get_alerts()

        assert result.is_failed

    @pytest.mark.asyncio
    async def test_server_degraded_is_not_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(
                200, json={"success": True, "data": [], "degraded": True, "reason": "USGS down"}
            )

        async with _client(handler) as client:
            first = await client.get_alerts()
            await client.get_alerts()

        assert first.is_degraded
        assert first.reason == "USGS down"
        assert len(calls) == 2


class TestWeather:
    @pytest.mark.asyncio
    async def test_fallback_is_degraded(self):
        body = {"success": True, "data": {"current": {}}, "fallback": True, "error": "no key"}
        async with _client(lambda request: httpx.Response(200, json=body)) as client:
            result = await client.get_weather(1.0, 2.0)
        assert result.is_degraded
        assert result.reason == "no key"

    @pytest.mark.asyncio
    async def test_error_is_failed(self):
        body = {"success": False, "error": "Upstream service unavailable"}
        async with _client(lambda request: httpx.Response(502, json=body)) as client:
            result = await client.get_weather(1.0, 2.0)
        assert result.is_failed


class TestRetryPolicy:
    @pytest.mark.asyncio
    async def test_writes_are_not_retried_on_server_error(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            return httpx.Response(500, json={"success": False, "error": "Internal server error"})

        client = RadarClient(
            base_url="http://radar.test",
            token="tok",
            transport=httpx.MockTransport(handler),
        )
        async with client:
            with pytest.raises(UpstreamError):
                await client.push_location(PositionSample(40.7, -74.0), ["b"])
            with pytest.raises(UpstreamError):
                await client.update_sharing(["b"])
            with pytest.raises(UpstreamError):
                await client.stop_sharing()

        assert methods == ["POST", "PUT", "DELETE"]

    @pytest.mark.asyncio
    async def test_writes_are_not_retried_on_transport_error(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            raise httpx.ConnectError("refused", request=request)

        client = RadarClient(
            base_url="http://radar.test",
            token="tok",
            transport=httpx.MockTransport(handler),
        )
        async with client:
            with pytest.raises(UpstreamError, match="API unreachable"):
                await client.stop_sharing()

        assert methods == ["DELETE"]

    @pytest.mark.asyncio
    async def test_reads_are_retried(self):
        methods = []

        def handler(request):
            methods.append(request.method)
            if len(methods) < 3:
                return httpx.Response(503, json={"success": False, "error": "down"})
            return httpx.Response(200, json={"success": True, "data": [], "count": 0})

        client = RadarClient(
            base_url="http://radar.test",
            token="tok",
            transport=httpx.MockTransport(handler),
        )
        async with client:
            assert await client.get_live_locations() == []

        assert methods == ["GET", "GET", "GET"]
