"""
Analytics sinks.

- MemorySink: keeps events in a list (tests, debugging)
- LogSink: writes events to the log
- HttpSink: batches events and POSTs them to a capture endpoint

Analytics wraps the configured sinks. Delivery problems are logged and
dropped: analytics must never break a lesson.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Sequence

import httpx
from loguru import logger

from mixmind.analytics.events import AnalyticsEvent

if TYPE_CHECKING:
    from config import Settings


class AnalyticsSink(ABC):
    """Destination for analytics events."""

    @abstractmethod
    async def track(self, event: AnalyticsEvent) -> None:
        """Deliver or buffer one event."""

    async def flush(self) -> None:
        """Deliver buffered events."""

    async def close(self) -> None:
        await self.flush()


class MemorySink(AnalyticsSink):
    """In-memory sink for development and testing."""

    def __init__(self):
        self.events: list[AnalyticsEvent] = []

    async def track(self, event: AnalyticsEvent) -> None:
        self.events.append(event)

    def events_of(self, event_type: str) -> list[AnalyticsEvent]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


class LogSink(AnalyticsSink):
    """Writes each event to the log at INFO."""

    async def track(self, event: AnalyticsEvent) -> None:
        logger.info(f"[analytics] {event.type} user={event.user_id} {event.payload()}")


class HttpSink(AnalyticsSink):
    """
    Batching HTTP sink.

    Events are buffered and sent as one JSON batch when batch_size is
    reached or on flush(). A failed batch is dropped after logging.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        batch_size: int = 20,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.batch_size = max(1, batch_size)
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._buffer: list[AnalyticsEvent] = []

    async def track(self, event: AnalyticsEvent) -> None:
        self._buffer.append(event)
        if len(self._buffer) >= self.batch_size:
            await self.flush()

    async def flush(self) -> None:
        if not self._buffer:
            return
        batch, self._buffer = self._buffer, []
        body = {
            "api_key": self.api_key,
            "batch": [
                {
                    "event": e.type,
                    "distinct_id": e.user_id,
                    "timestamp": e.timestamp.isoformat(),
                    "properties": e.payload(),
                }
                for e in batch
            ],
        }
        try:
            response = await self._client.post(self.endpoint, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Dropped {len(batch)} analytics events: {e}")
            return
        logger.debug(f"Sent {len(batch)} analytics events")

    async def close(self) -> None:
        await self.flush()
        if self._owns_client:
            await self._client.aclose()


class Analytics:
    """Fans events out to sinks."""

    def __init__(self, sinks: Sequence[AnalyticsSink] = ()):
        self.sinks = list(sinks)

    async def emit(self, event: AnalyticsEvent) -> None:
        for sink in self.sinks:
            try:
                await sink.track(event)
            except httpx.HTTPError as e:
                logger.warning(f"Analytics sink {type(sink).__name__} failed on {event.type}: {e}")

    async def emit_all(self, events: Sequence[AnalyticsEvent]) -> None:
        for event in events:
            await self.emit(event)

    async def flush(self) -> None:
        for sink in self.sinks:
            await sink.flush()

    async def close(self) -> None:
        for sink in self.sinks:
            await sink.close()


def create_analytics(settings: "Settings") -> Analytics:
    """Build the Analytics dispatcher from settings."""
    if settings.analytics_sink == "memory":
        return Analytics([MemorySink()])
    if settings.analytics_sink == "http":
        if not settings.has_http_analytics():
            logger.warning("analytics_sink=http but no analytics_endpoint set; logging events instead")
            return Analytics([LogSink()])
        return Analytics([
            HttpSink(
                settings.analytics_endpoint,
                api_key=settings.analytics_api_key,
                batch_size=settings.analytics_batch_size,
                timeout=settings.analytics_timeout_seconds,
            )
        ])
    return Analytics([LogSink()])
