# SPDX-License-Identifier: Apache-2.0
"""Structured pipeline events and the sinks that surface them."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .metrics import (
    DECODE_FAILURES,
    FLUSH_FAILURES,
    PUBLISH_FAILURES,
    PUBLISH_LATENCY,
    RECORDS_DECODED,
    RECORDS_PUBLISHED,
)

log = logging.getLogger(__name__)

DECODE = "decode"
PUBLISH = "publish"
FLUSH = "flush"

OK = "ok"
FAILED = "failed"
SKIPPED = "skipped"
TRUNCATED = "truncated"
ABORTED = "aborted"
COMPLETED = "completed"


@dataclass(slots=True)
class PipelineEvent:
    stage: str
    outcome: str
    index: Optional[int] = None
    key: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)


class EventSink:
    def emit(self, event: PipelineEvent) -> None:
        """Default sink drops events."""


class LogSink(EventSink):
    def emit(self, event: PipelineEvent) -> None:
        if event.outcome == OK:
            log.debug("[%s] record %s key=%s %s", event.stage, event.index, event.key, event.detail)
        elif event.outcome == COMPLETED:
            log.info("[%s] pass completed %s", event.stage, event.detail)
        else:
            log.warning(
                "[%s] %s record=%s key=%s %s", event.stage, event.outcome, event.index, event.key, event.detail
            )


class MetricsSink(EventSink):
    def emit(self, event: PipelineEvent) -> None:
        detail = event.detail
        if event.stage == DECODE:
            kind = detail.get("kind", "unknown")
            if event.outcome == OK:
                RECORDS_DECODED.labels(kind).inc()
            elif event.outcome in (FAILED, SKIPPED, TRUNCATED, ABORTED):
                DECODE_FAILURES.labels(kind, detail.get("error", event.outcome)).inc()
        elif event.stage == PUBLISH:
            topic = detail.get("topic", "unknown")
            if event.outcome == OK:
                RECORDS_PUBLISHED.labels(topic).inc()
                if "latency_ms" in detail:
                    PUBLISH_LATENCY.labels(topic).observe(detail["latency_ms"])
            elif event.outcome == FAILED:
                PUBLISH_FAILURES.labels(topic, detail.get("error", "unknown")).inc()
        elif event.stage == FLUSH and event.outcome == FAILED:
            FLUSH_FAILURES.labels(detail.get("topic", "unknown")).inc()


class FanoutSink(EventSink):
    def __init__(self, *sinks: EventSink):
        self.sinks = list(sinks)

    def emit(self, event: PipelineEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)


def default_sink() -> EventSink:
    return FanoutSink(LogSink(), MetricsSink())
