# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures: event capture and a scripted broker."""
from __future__ import annotations

import asyncio
import random
from typing import Any, Dict, List, Mapping, Optional

import pytest

from webway.brokers.base import Broker, DeliveryReceipt
from webway.errors import PublishFailure
from webway.records import SensorReading
from webway.sinks import EventSink, PipelineEvent

NOW = 1_700_000_000


class CaptureSink(EventSink):
    """Sink used in tests to capture pipeline events."""

    def __init__(self):
        self.events: List[PipelineEvent] = []

    def emit(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def outcomes(self, stage: str) -> List[str]:
        return [e.outcome for e in self.events if e.stage == stage]


class ScriptedBroker(Broker):
    """Broker that fails or stalls the calls (0-based) it is told to."""

    def __init__(
        self,
        fail_on=(),
        hang_on=(),
        flush_error: Optional[Exception] = None,
        flush_hang: bool = False,
        fail_with: Optional[Exception] = None,
    ):
        super().__init__("scripted", {})
        self.fail_on = set(fail_on)
        self.fail_with = fail_with
        self.hang_on = set(hang_on)
        self.flush_error = flush_error
        self.flush_hang = flush_hang
        self.calls: List[Dict[str, Any]] = []
        self.flushes = 0
        self.topics: List[tuple] = []

    async def publish(self, topic, key, payload, *, timestamp_ms=None, wait=5.0) -> DeliveryReceipt:
        index = len(self.calls)
        self.calls.append({"topic": topic, "key": key, "payload": payload, "timestamp_ms": timestamp_ms, "wait": wait})
        if index in self.hang_on:
            await asyncio.sleep(3600)
        if index in self.fail_on:
            raise self.fail_with or PublishFailure(key, "rejected by broker")
        return DeliveryReceipt(partition=index % 3, offset=index)

    async def flush(self, wait: float) -> None:
        self.flushes += 1
        if self.flush_hang:
            await asyncio.sleep(3600)
        if self.flush_error is not None:
            raise self.flush_error

    async def ensure_topic(self, name: str, partitions: int, replication: int, config: Mapping[str, str]) -> None:
        self.topics.append((name, partitions, replication, dict(config)))


@pytest.fixture
def capture_sink() -> CaptureSink:
    return CaptureSink()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def sample_readings() -> List[SensorReading]:
    return [
        SensorReading(timestamp=NOW, sensor_id=1001, temperature=21.5, humidity=45.25, pressure=1013.0),
        SensorReading(timestamp=NOW + 60, sensor_id=2002, temperature=15.0, humidity=79.5, pressure=990.125),
        SensorReading(timestamp=NOW + 120, sensor_id=9998, temperature=34.75, humidity=30.0, pressure=1029.5),
    ]


@pytest.fixture
def scripted_broker():
    """Factory for brokers with scripted failures."""
    return ScriptedBroker
