"""Record values shared across the codec, container, and pipelines."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

import numpy as np

MAX_MESSAGE_LENGTH = 0xFFFF
AUTOMATION_DATA_SIZE = 780_000


class LogLevel(enum.IntEnum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3


class RecordTag(enum.IntEnum):
    """Discriminator written in front of every mixed-container body."""

    SENSOR = 0
    LOG = 1


@dataclass(frozen=True, slots=True)
class SensorReading:
    timestamp: int
    sensor_id: int
    temperature: float
    humidity: float
    pressure: float


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A log line; ``message_length`` always follows the UTF-8 size of ``message``."""

    timestamp: int
    level: int
    message: str

    def __post_init__(self) -> None:
        if not 0 <= self.level <= 0xFF:
            raise ValueError(f"log level {self.level} does not fit in one byte")
        if self.message_length > MAX_MESSAGE_LENGTH:
            raise ValueError(f"log message is {self.message_length} bytes, limit is {MAX_MESSAGE_LENGTH}")

    @property
    def message_length(self) -> int:
        return len(self.message.encode("utf-8"))

    @property
    def level_name(self) -> str:
        try:
            return LogLevel(self.level).name
        except ValueError:
            return f"LEVEL{self.level}"


@dataclass(frozen=True, slots=True)
class MixedRecord:
    record: Union[SensorReading, LogEntry]

    @property
    def tag(self) -> RecordTag:
        if isinstance(self.record, SensorReading):
            return RecordTag.SENSOR
        return RecordTag.LOG


@dataclass(slots=True, eq=False)
class AutomationData:
    """Bulk float payload published as a protowire message."""

    message_key: int
    sequence_number: int
    sys_timestamp: int
    normalized_data: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    unnormalized_data: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))

    def __post_init__(self) -> None:
        self.normalized_data = np.ascontiguousarray(self.normalized_data, dtype=np.float32)
        self.unnormalized_data = np.ascontiguousarray(self.unnormalized_data, dtype=np.float32)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AutomationData):
            return NotImplemented
        return (
            self.message_key == other.message_key
            and self.sequence_number == other.sequence_number
            and self.sys_timestamp == other.sys_timestamp
            and np.array_equal(self.normalized_data, other.normalized_data)
            and np.array_equal(self.unnormalized_data, other.unnormalized_data)
        )

    @property
    def raw_size(self) -> int:
        """Size of the field values before any encoding, in bytes."""
        return self.normalized_data.nbytes + self.unnormalized_data.nbytes + 4 + 4 + 8


Record = Union[SensorReading, LogEntry, MixedRecord, AutomationData]
