# SPDX-License-Identifier: Apache-2.0
"""Synthetic record generation for fixtures and load tests.

Every function takes its random source as an argument; seed it for
reproducible output.
"""
from __future__ import annotations

import random
import time
from typing import Optional

import numpy as np

from .records import AUTOMATION_DATA_SIZE, AutomationData, LogEntry, LogLevel, MixedRecord, SensorReading

CANNED_MESSAGES = (
    "System startup completed",
    "Database connection established",
    "Processing batch job",
    "Warning: High memory usage detected",
    "Error: Failed to connect to external service",
    "User authentication successful",
    "Cache cleared successfully",
    "Backup process initiated",
)

TIMESTAMP_WINDOW_S = 3600
SENSOR_ID_RANGE = (1000, 9999)
TEMPERATURE_RANGE = (15.0, 35.0)
HUMIDITY_RANGE = (30.0, 80.0)
PRESSURE_RANGE = (990.0, 1030.0)
UNNORMALIZED_RANGE = (-1000.0, 1000.0)


def _now(now: Optional[int]) -> int:
    return int(time.time()) if now is None else now


def _float32_below(value, high: float):
    # float32 rounding can land on the excluded upper bound
    ceiling = np.nextafter(np.float32(high), np.float32(-np.inf))
    return np.minimum(np.float32(value), ceiling)


def _uniform32(rng: random.Random, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return float(_float32_below(rng.uniform(low, high), high))


def random_sensor_reading(rng: random.Random, now: Optional[int] = None) -> SensorReading:
    return SensorReading(
        timestamp=_now(now) + rng.randrange(TIMESTAMP_WINDOW_S),
        sensor_id=rng.randrange(*SENSOR_ID_RANGE),
        temperature=_uniform32(rng, TEMPERATURE_RANGE),
        humidity=_uniform32(rng, HUMIDITY_RANGE),
        pressure=_uniform32(rng, PRESSURE_RANGE),
    )


def random_log_entry(rng: random.Random, now: Optional[int] = None) -> LogEntry:
    return LogEntry(
        timestamp=_now(now) + rng.randrange(TIMESTAMP_WINDOW_S),
        level=rng.randrange(len(LogLevel)),
        message=rng.choice(CANNED_MESSAGES),
    )


def random_mixed_record(rng: random.Random, p_sensor: float = 0.6, now: Optional[int] = None) -> MixedRecord:
    if rng.random() < p_sensor:
        return MixedRecord(random_sensor_reading(rng, now))
    return MixedRecord(random_log_entry(rng, now))


def random_automation_data(
    message_key: int,
    sequence_number: int,
    rng: np.random.Generator,
    now: Optional[int] = None,
    size: int = AUTOMATION_DATA_SIZE,
) -> AutomationData:
    low, high = UNNORMALIZED_RANGE
    normalized = rng.random(size, dtype=np.float32)
    span = np.float32(high - low)
    unnormalized = rng.random(size, dtype=np.float32) * span + np.float32(low)
    return AutomationData(
        message_key=message_key,
        sequence_number=sequence_number,
        sys_timestamp=_now(now),
        normalized_data=normalized,
        unnormalized_data=_float32_below(unnormalized, high),
    )


def random_bytes(rng: random.Random, size: int) -> bytes:
    return rng.randbytes(size)
