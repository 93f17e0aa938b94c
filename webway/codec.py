# SPDX-License-Identifier: Apache-2.0
"""Byte-level codec for the fixed-layout record containers.

Every layout is little-endian, fields in declaration order, no padding:

- header:   magic(4) | version(u32) | record_count(u32)
- sensor:   timestamp(u64) | sensor_id(u32) | temperature(f32) | humidity(f32) | pressure(f32)
- log:      timestamp(u64) | level(u8) | message_length(u16) | message(N bytes UTF-8)
- mixed:    tag(u8, 0=sensor 1=log) | body
"""
from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Callable, Dict, Protocol

from .errors import EncodeError, InvalidMagic, InvalidTag, InvalidText, UnexpectedEnd
from .records import LogEntry, MixedRecord, RecordTag, SensorReading

VERSION = 1

HEADER = struct.Struct("<4sII")
SENSOR = struct.Struct("<QIfff")
LOG_HEAD = struct.Struct("<QBH")
TAG = struct.Struct("<B")


class ContainerKind(enum.Enum):
    SENSOR = b"SENS"
    LOG = b"LOGS"
    MIXED = b"MIXD"

    @classmethod
    def from_name(cls, name: str) -> "ContainerKind":
        wanted = name.strip().upper().encode("ascii")
        for kind in cls:
            if kind.value == wanted or kind.name.encode("ascii") == wanted:
                return kind
        raise ValueError(f"unknown container kind '{name}'")


@dataclass(frozen=True, slots=True)
class ContainerHeader:
    magic: bytes
    version: int
    record_count: int


class Cursor(Protocol):
    position: int

    def take(self, size: int) -> bytes:
        ...


class ByteCursor:
    """Read position over an in-memory buffer."""

    def __init__(self, data: bytes, offset: int = 0):
        self._view = memoryview(data)
        self.position = offset

    @property
    def remaining(self) -> int:
        return len(self._view) - self.position

    def take(self, size: int) -> bytes:
        start = self.position
        end = start + size
        if end > len(self._view):
            available = len(self._view) - start
            self.position = len(self._view)
            raise UnexpectedEnd(start, size, available)
        self.position = end
        return bytes(self._view[start:end])


def _pack(layout: struct.Struct, *values) -> bytes:
    try:
        return layout.pack(*values)
    except (struct.error, OverflowError) as exc:
        raise EncodeError(f"cannot pack {values!r}: {exc}") from exc


def encode_header(kind: ContainerKind, record_count: int, version: int = VERSION) -> bytes:
    return _pack(HEADER, kind.value, version, record_count)


def decode_header(cursor: Cursor, expected: ContainerKind) -> ContainerHeader:
    magic, version, count = HEADER.unpack(cursor.take(HEADER.size))
    if magic != expected.value:
        raise InvalidMagic(magic, expected.value)
    return ContainerHeader(magic=magic, version=version, record_count=count)


def encode_sensor_reading(reading: SensorReading) -> bytes:
    return _pack(
        SENSOR,
        reading.timestamp,
        reading.sensor_id,
        reading.temperature,
        reading.humidity,
        reading.pressure,
    )


def decode_sensor_reading(cursor: Cursor) -> SensorReading:
    timestamp, sensor_id, temperature, humidity, pressure = SENSOR.unpack(cursor.take(SENSOR.size))
    return SensorReading(
        timestamp=timestamp,
        sensor_id=sensor_id,
        temperature=temperature,
        humidity=humidity,
        pressure=pressure,
    )


def encode_log_entry(entry: LogEntry) -> bytes:
    message = entry.message.encode("utf-8")
    return _pack(LOG_HEAD, entry.timestamp, entry.level, len(message)) + message


def decode_log_entry(cursor: Cursor) -> LogEntry:
    offset = cursor.position
    timestamp, level, length = LOG_HEAD.unpack(cursor.take(LOG_HEAD.size))
    raw = cursor.take(length)
    try:
        message = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidText(offset, exc.reason) from None
    return LogEntry(timestamp=timestamp, level=level, message=message)


def encode_mixed_record(mixed: MixedRecord) -> bytes:
    if mixed.tag is RecordTag.SENSOR:
        body = encode_sensor_reading(mixed.record)
    else:
        body = encode_log_entry(mixed.record)
    return TAG.pack(mixed.tag) + body


def decode_mixed_record(cursor: Cursor) -> MixedRecord:
    offset = cursor.position
    (tag,) = TAG.unpack(cursor.take(TAG.size))
    if tag == RecordTag.SENSOR:
        return MixedRecord(decode_sensor_reading(cursor))
    if tag == RecordTag.LOG:
        return MixedRecord(decode_log_entry(cursor))
    raise InvalidTag(offset, tag)


RECORD_TYPES: Dict[ContainerKind, type] = {
    ContainerKind.SENSOR: SensorReading,
    ContainerKind.LOG: LogEntry,
    ContainerKind.MIXED: MixedRecord,
}

ENCODERS: Dict[ContainerKind, Callable[..., bytes]] = {
    ContainerKind.SENSOR: encode_sensor_reading,
    ContainerKind.LOG: encode_log_entry,
    ContainerKind.MIXED: encode_mixed_record,
}

DECODERS: Dict[ContainerKind, Callable[[Cursor], object]] = {
    ContainerKind.SENSOR: decode_sensor_reading,
    ContainerKind.LOG: decode_log_entry,
    ContainerKind.MIXED: decode_mixed_record,
}


def encode_record(kind: ContainerKind, record) -> bytes:
    expected = RECORD_TYPES[kind]
    if not isinstance(record, expected):
        raise EncodeError(f"{kind.value.decode()} container cannot hold {type(record).__name__}")
    return ENCODERS[kind](record)


def decode_record(kind: ContainerKind, cursor: Cursor):
    return DECODERS[kind](cursor)
