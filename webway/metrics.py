"""Prometheus metrics for decode and publish passes."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

RECORDS_DECODED = Counter(
    "webway_records_decoded_total",
    "Records decoded from containers",
    labelnames=("kind",),
)

DECODE_FAILURES = Counter(
    "webway_decode_failures_total",
    "Records that failed to decode or were missing from a truncated container",
    labelnames=("kind", "reason"),
)

RECORDS_PUBLISHED = Counter(
    "webway_records_published_total",
    "Records acknowledged by the broker",
    labelnames=("topic",),
)

PUBLISH_FAILURES = Counter(
    "webway_publish_failures_total",
    "Records the broker rejected, that timed out, or that could not be serialised",
    labelnames=("topic", "reason"),
)

FLUSH_FAILURES = Counter(
    "webway_flush_failures_total",
    "Terminal flushes that did not complete in time",
    labelnames=("topic",),
)

PUBLISH_LATENCY = Histogram(
    "webway_publish_latency_ms",
    "Round trip of one publish to the broker (milliseconds)",
    labelnames=("topic",),
    buckets=(1, 2, 5, 10, 20, 50, 100, 200, 500, 1000, 2000, 5000),
)
