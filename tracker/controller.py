"""Sharing controller — drives live position pushes from a position source.

States: IDLE -> STARTING -> SHARING -> STOPPING -> IDLE. While sharing, two
tasks run side by side: a watch that pushes whenever the position moves past
the movement threshold, and a timer that re-pushes a fresh fix on a fixed
interval so recipients see an up-to-date ``last_updated``.
"""

from __future__ import annotations

import asyncio
import enum

import structlog

from shared.errors import AppError
from tracker.api_client import RadarClient
from tracker.geolocation import (
    MOVEMENT_THRESHOLD_DEG,
    PERMISSION_GRANTED,
    GeolocationError,
    GeolocationSource,
    LocationPermissionError,
    LocationTimeoutError,
    PositionSample,
)

logger = structlog.get_logger()

FIX_TIMEOUT_SECONDS = 15.0
REFRESH_INTERVAL_SECONDS = 30.0


class SharingState(str, enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    SHARING = "sharing"
    STOPPING = "stopping"


class SharingController:
    def __init__(
        self,
        source: GeolocationSource,
        client: RadarClient,
        *,
        fix_timeout: float = FIX_TIMEOUT_SECONDS,
        refresh_interval: float = REFRESH_INTERVAL_SECONDS,
        movement_threshold: float = MOVEMENT_THRESHOLD_DEG,
        high_accuracy: bool = True,
        name: str | None = None,
    ):
        self.source = source
        self.client = client
        self.fix_timeout = fix_timeout
        self.refresh_interval = refresh_interval
        self.movement_threshold = movement_threshold
        self.high_accuracy = high_accuracy
        self.name = name

        self.state = SharingState.IDLE
        self.recipients: list[str] = []
        self.last_pushed: PositionSample | None = None
        self.last_error: str | None = None
        self.live_locations: list[dict] = []

        self._watch_task: asyncio.Task | None = None
        self._timer_task: asyncio.Task | None = None

    @property
    def is_sharing(self) -> bool:
        return self.state == SharingState.SHARING

    async def start_sharing(self, recipients: list[str] | None = None) -> None:
        """Acquire a fix, push it, and start the watch and refresh timer.

        Raises LocationPermissionError, PositionUnavailableError or
        LocationTimeoutError (all recoverable) and leaves the controller IDLE.
        """
        if self.state != SharingState.IDLE:
            logger.info("sharing_start_ignored", state=self.state.value)
            return

        self.state = SharingState.STARTING
        self.recipients = list(recipients or [])
        try:
            await self._ensure_permission()
            sample = await self._get_fix()
            await self.client.push_location(sample, self.recipients, name=self.name)
        except (GeolocationError, AppError) as e:
            self.state = SharingState.IDLE
            self.last_error = str(e)
            logger.warning("sharing_start_failed", error=str(e))
            raise
        except asyncio.CancelledError:
            self.state = SharingState.IDLE
            raise

        self.last_pushed = sample
        self.last_error = None
        self._watch_task = asyncio.create_task(self._watch_loop())
        self._timer_task = asyncio.create_task(self._timer_loop())
        self.state = SharingState.SHARING
        logger.info("sharing_started", recipients=len(self.recipients))

    async def stop_sharing(self) -> None:
        """Tell the server sharing stopped, then cancel the watch and timer.

        A no-op when not sharing. If the server call fails the controller
        stays SHARING and the error propagates.
        """
        if self.state != SharingState.SHARING:
            return

        self.state = SharingState.STOPPING
        try:
            await self.client.stop_sharing()
        except AppError as e:
            self.state = SharingState.SHARING
            self.last_error = str(e)
            logger.warning("sharing_stop_failed", error=str(e))
            raise
        except asyncio.CancelledError:
            self.state = SharingState.SHARING
            raise

        await self._cancel_tasks()
        self.state = SharingState.IDLE
        logger.info("sharing_stopped")

    async def update_sharing_settings(self, recipients: list[str]) -> dict:
        """Replace the recipient list on the server without restarting anything.

        Later pushes carry the new list.
        """
        data = await self.client.update_sharing(
            recipients, is_sharing=self.state == SharingState.SHARING
        )
        self.recipients = list(recipients)
        logger.info("sharing_recipients_updated", recipients=len(self.recipients))
        return data

    async def refresh_locations(self, include_own: bool = False) -> list[dict]:
        """Fetch the positions currently shared with this user."""
        self.live_locations = await self.client.get_live_locations(include_own=include_own)
        return self.live_locations

    async def aclose(self) -> None:
        """Tear down local work without a server call."""
        await self._cancel_tasks()
        self.state = SharingState.IDLE

    # ---- internals ----

    async def _ensure_permission(self) -> None:
        if await self.source.permission_state() == PERMISSION_GRANTED:
            return
        if not await self.source.request_permission():
            raise LocationPermissionError()

    async def _get_fix(self) -> PositionSample:
        try:
            return await asyncio.wait_for(
                self.source.get_position(self.fix_timeout, self.high_accuracy),
                timeout=self.fix_timeout,
            )
        except GeolocationError:
            raise
        except TimeoutError:
            raise LocationTimeoutError() from None

    async def _push(self, sample: PositionSample) -> None:
        try:
            await self.client.push_location(sample, self.recipients, name=self.name)
        except AppError as e:
            self.last_error = str(e)
            logger.warning("location_push_failed", error=str(e))
            return
        self.last_pushed = sample

    async def _watch_loop(self) -> None:
        try:
            async for sample in self.source.watch(self.high_accuracy):
                if sample.moved_beyond(self.last_pushed, self.movement_threshold):
                    await self._push(sample)
        except GeolocationError as e:
            self.last_error = "Failed to track location changes"
            logger.warning("location_watch_error", error=str(e))

    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            try:
                sample = await self._get_fix()
            except GeolocationError as e:
                self.last_error = str(e)
                logger.warning("periodic_fix_failed", error=str(e))
                continue
            await self._push(sample)

    async def _cancel_tasks(self) -> None:
        tasks = [t for t in (self._watch_task, self._timer_task) if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._watch_task = None
        self._timer_task = None
