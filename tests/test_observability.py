from __future__ import annotations

import json
import logging

from rsubprocess.util.observability import (
    EventLogger,
    MetricsCollector,
    create_observability_manager,
)


def test_metrics_collector_snapshot() -> None:
    metrics = MetricsCollector()
    metrics.increment("runs", 2)
    metrics.record_duration("process.run", 1.5)
    metrics.record_duration("process.run", 0.5)

    snapshot = metrics.snapshot()

    assert snapshot["counters"]["runs"] == 2
    assert snapshot["durations"]["process.run"] == {"count": 2.0, "total_s": 2.0, "avg_s": 1.0}


def test_event_logger_emits_json(caplog) -> None:
    logger = EventLogger("test.events", context={"session": "s1"})
    caplog.set_level(logging.INFO, logger="rsubprocess.test.events")

    logger.log("process.finished", {"status": 0})

    payload = json.loads(caplog.records[-1].message)
    assert payload["event_type"] == "process.finished"
    assert payload["payload"]["status"] == 0
    assert payload["context"] == {"session": "s1"}


def test_manager_tracks_duration() -> None:
    manager = create_observability_manager()

    with manager.track_duration("block"):
        pass

    assert manager.metrics.durations["block"][0] >= 0
