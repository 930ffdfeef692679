"""Analytics boundary: event models and delivery sinks."""

from mixmind.analytics.events import AnalyticsEvent
from mixmind.analytics.sinks import (
    Analytics,
    AnalyticsSink,
    HttpSink,
    LogSink,
    MemorySink,
    create_analytics,
)

__all__ = [
    "Analytics",
    "AnalyticsEvent",
    "AnalyticsSink",
    "HttpSink",
    "LogSink",
    "MemorySink",
    "create_analytics",
]
