"""Structured run events and simple metrics for supervised child processes."""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from rsubprocess.util.logging import get_logger

EVENTS_LOGGER_NAME = "rsubprocess.events"


@dataclass(frozen=True)
class RunEvent:
    """Machine-readable record of something that happened during a run.

    Attributes:
        event_type: Dotted event name, e.g. ``process.finished``.
        timestamp: Unix timestamp in seconds.
        payload: Event data (command, status, durations, ...).
        context: Fields shared by every event of one logger.
    """

    event_type: str
    timestamp: float
    payload: dict[str, Any]
    context: dict[str, Any] = field(default_factory=dict)


class EventLogger:
    """Emits run events as JSON log records."""

    def __init__(self, logger_name: str, context: dict[str, Any] | None = None) -> None:
        self._logger = get_logger(logger_name)
        self._context = context or {}

    def log(
        self,
        event_type: str,
        payload: dict[str, Any],
        *,
        level: str = "INFO",
        context: dict[str, Any] | None = None,
    ) -> None:
        """Emit one event.

        Args:
            event_type: Dotted event name.
            payload: Event data; must be JSON serializable.
            level: Logging level name (default: INFO).
            context: Per-event context merged over the logger's context.
        """

        event = RunEvent(
            event_type=event_type,
            timestamp=time.time(),
            payload=payload,
            context={**self._context, **(context or {})},
        )
        self._logger.log(_normalize_level(level), json.dumps(event.__dict__, sort_keys=True))


@dataclass
class MetricsCollector:
    """Counts runs, timeouts and failures and records run durations."""

    counters: dict[str, int] = field(default_factory=dict)
    durations: dict[str, list[float]] = field(default_factory=dict)

    def increment(self, name: str, value: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + value

    def record_duration(self, name: str, duration_s: float) -> None:
        self.durations.setdefault(name, []).append(duration_s)

    def snapshot(self) -> dict[str, Any]:
        """Return counters and a count/total/avg summary per duration metric."""

        duration_summary: dict[str, dict[str, float]] = {}
        for name, values in self.durations.items():
            total = sum(values)
            count = len(values)
            duration_summary[name] = {
                "count": float(count),
                "total_s": total,
                "avg_s": total / count if count else 0.0,
            }
        return {"counters": dict(self.counters), "durations": duration_summary}


@dataclass(frozen=True)
class ObservabilityManager:
    """Pairs an event logger with a metrics collector for the harness."""

    events: EventLogger
    metrics: MetricsCollector

    def log_event(self, event_type: str, payload: dict[str, Any], *, level: str = "INFO") -> None:
        self.events.log(event_type, payload, level=level)

    @contextmanager
    def track_duration(self, metric_name: str) -> Iterator[None]:
        """Record the wall-clock duration of the wrapped block."""

        start = time.perf_counter()
        try:
            yield
        finally:
            self.metrics.record_duration(metric_name, time.perf_counter() - start)


def create_observability_manager(context: dict[str, Any] | None = None) -> ObservabilityManager:
    """Create a manager logging to ``rsubprocess.events``."""

    return ObservabilityManager(
        events=EventLogger(EVENTS_LOGGER_NAME, context=context),
        metrics=MetricsCollector(),
    )


def _normalize_level(level: str) -> int:
    normalized = level.strip().upper()
    return getattr(logging, normalized, logging.INFO)
