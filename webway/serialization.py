# SPDX-License-Identifier: Apache-2.0
"""Wire payloads, keys, and event timestamps for published records."""
from __future__ import annotations

import json
from typing import Any, Dict

from .errors import EncodeError, SerializationFailure
from .protowire import encode_automation_data
from .records import AutomationData, LogEntry, MixedRecord, SensorReading


def unwrap(record):
    return record.record if isinstance(record, MixedRecord) else record


def record_key(record) -> str:
    record = unwrap(record)
    if isinstance(record, SensorReading):
        return f"sensor_{record.sensor_id}"
    if isinstance(record, LogEntry):
        return f"log_{record.timestamp}"
    if isinstance(record, AutomationData):
        return str(record.sequence_number)
    raise SerializationFailure(f"no key for {type(record).__name__}")


def record_timestamp(record) -> int:
    """Event time of the record in unix seconds."""
    record = unwrap(record)
    if isinstance(record, AutomationData):
        return record.sys_timestamp
    return record.timestamp


def to_document(record) -> Dict[str, Any]:
    record = unwrap(record)
    if isinstance(record, SensorReading):
        return {
            "timestamp": record.timestamp,
            "sensor_id": record.sensor_id,
            "temperature": record.temperature,
            "humidity": record.humidity,
            "pressure": record.pressure,
        }
    if isinstance(record, LogEntry):
        return {
            "timestamp": record.timestamp,
            "level": record.level_name,
            "message": record.message,
        }
    raise SerializationFailure(f"json payload not supported for {type(record).__name__}")


def encode_payload(record, fmt: str = "auto") -> bytes:
    record = unwrap(record)
    fmt = fmt.lower()
    if fmt == "auto":
        fmt = "protobuf" if isinstance(record, AutomationData) else "json"
    if fmt == "json":
        document = to_document(record)
        try:
            return json.dumps(document, allow_nan=False).encode("utf-8")
        except ValueError as exc:
            raise SerializationFailure(f"cannot encode {type(record).__name__} as json: {exc}") from exc
    if fmt == "protobuf":
        if not isinstance(record, AutomationData):
            raise SerializationFailure(f"protobuf payload not supported for {type(record).__name__}")
        try:
            return encode_automation_data(record)
        except EncodeError as exc:
            raise SerializationFailure(str(exc)) from exc
    raise SerializationFailure(f"unknown serializer '{fmt}'")
