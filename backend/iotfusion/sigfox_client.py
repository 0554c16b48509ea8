from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from .config import API_VERSION
from .errors import UpstreamError

logger = logging.getLogger(__name__)

USER_AGENT = f"IoT-DataFusionSuite/{API_VERSION}"


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, (httpx.TransportError, httpx.TimeoutException)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def _to_upstream_error(exc: Exception) -> UpstreamError:
    if isinstance(exc, UpstreamError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return UpstreamError("External API request timeout", 504)
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        status_code = 503 if response.status_code == 404 else response.status_code
        return UpstreamError(
            f"External API error: {response.status_code} - {response.reason_phrase}",
            status_code,
        )
    if isinstance(exc, httpx.TransportError):
        return UpstreamError("Unable to reach external API. Please try again later.", 503)
    return UpstreamError(f"External API request failed: {exc}", 503)


class SigfoxClient:
    """Fetches the raw record array from the Sigfox callback endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 10.0,
        retries: int = 3,
        backoff: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.retries = max(1, retries)
        self.backoff = backoff
        self._transport = transport

    async def _get_once(self) -> list[dict[str, Any]]:
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.endpoint, headers=headers)
        response.raise_for_status()

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError("Invalid data format received from external API", 502) from exc
        if not isinstance(data, list):
            raise UpstreamError("Invalid data format received from external API", 502)
        return [r for r in data if isinstance(r, dict)]

    async def fetch_records(self) -> list[dict[str, Any]]:
        for attempt in range(1, self.retries + 1):
            start = time.perf_counter()
            logger.info("Fetching data from external API (attempt %d, endpoint %s)", attempt, self.endpoint)
            try:
                records = await self._get_once()
            except (httpx.HTTPError, UpstreamError) as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.error(
                    "Error fetching external data (attempt %d, %.0fms): %s", attempt, duration_ms, exc
                )
                if attempt < self.retries and _is_retryable(exc):
                    logger.info("Retrying external API request (next attempt %d of %d)", attempt + 1, self.retries)
                    await asyncio.sleep(self.backoff * attempt)
                    continue
                raise _to_upstream_error(exc) from exc

            duration_ms = (time.perf_counter() - start) * 1000
            logger.info("Fetched %d records from external API in %.0fms", len(records), duration_ms)
            return records

        # unreachable: the loop either returns or raises
        raise UpstreamError("External API request failed", 503)
