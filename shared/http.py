"""Outbound HTTP with retry and exponential backoff."""

from __future__ import annotations

import asyncio

import httpx
import structlog

from shared.config import get_settings

logger = structlog.get_logger()


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    attempts: int | None = None,
    base_delay: float | None = None,
    **kwargs,
) -> httpx.Response:
    """Send a request, retrying server errors and transport failures.

    4xx responses are returned to the caller on the first attempt. A 5xx or
    a transport error is retried after ``base_delay * 2**attempt`` seconds.
    When every attempt fails the last error is raised: ``HTTPStatusError``
    for a 5xx, the original transport error otherwise.
    """
    settings = get_settings()
    if attempts is None:
        attempts = settings.http_retry_attempts
    if base_delay is None:
        base_delay = settings.http_retry_base_delay
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            response = await client.request(method, url, **kwargs)
            if response.status_code < 500:
                return response
            response.raise_for_status()
        except (httpx.HTTPStatusError, httpx.TransportError) as e:
            if attempt == attempts - 1:
                logger.error("http_retry_exhausted", url=url, attempts=attempts, error=str(e))
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "http_retry",
                url=url,
                attempt=attempt + 1,
                next_delay_seconds=delay,
                error=str(e),
            )
            await asyncio.sleep(delay)
