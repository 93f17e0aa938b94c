# SPDX-License-Identifier: Apache-2.0
"""Protocol-buffers wire encoding for AutomationData.

Message layout::

    1: int32 message_key
    2: int32 sequence_number
    3: uint64 sys_timestamp
    4: repeated float normalized_data   (packed)
    5: repeated float unnormalized_data (packed)

Zero scalars and empty arrays are omitted, as proto3 does.
"""
from __future__ import annotations

from typing import Dict, List

import numpy as np

from .codec import ByteCursor
from .errors import DecodeError, EncodeError, InvalidTag
from .records import AutomationData

VARINT = 0
I64 = 1
LEN = 2
I32 = 5

_U64_MASK = (1 << 64) - 1
_MAX_VARINT_BYTES = 10
_FLOAT = np.dtype("<f4")

SCALAR_FIELDS = (1, 2, 3)
FLOAT_FIELDS = (4, 5)


def encode_varint(value: int) -> bytes:
    if value < 0 or value > _U64_MASK:
        raise EncodeError(f"varint out of range: {value}")
    out = bytearray()
    while True:
        bits = value & 0x7F
        value >>= 7
        if value:
            out.append(bits | 0x80)
        else:
            out.append(bits)
            return bytes(out)


def read_varint(cursor: ByteCursor) -> int:
    offset = cursor.position
    result = 0
    for shift in range(0, 7 * _MAX_VARINT_BYTES, 7):
        (byte,) = cursor.take(1)
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result & _U64_MASK
    raise DecodeError(f"varint at offset {offset} is longer than {_MAX_VARINT_BYTES} bytes")


def _key(number: int, wire_type: int) -> bytes:
    return encode_varint((number << 3) | wire_type)


def _int32(value: int) -> int:
    if not -(1 << 31) <= value < (1 << 31):
        raise EncodeError(f"{value} does not fit in int32")
    return value & _U64_MASK


def _as_int32(raw: int) -> int:
    raw &= 0xFFFFFFFF
    return raw - (1 << 32) if raw >= (1 << 31) else raw


def encode_automation_data(data: AutomationData) -> bytes:
    parts: List[bytes] = []
    if data.message_key:
        parts += [_key(1, VARINT), encode_varint(_int32(data.message_key))]
    if data.sequence_number:
        parts += [_key(2, VARINT), encode_varint(_int32(data.sequence_number))]
    if data.sys_timestamp:
        parts += [_key(3, VARINT), encode_varint(data.sys_timestamp)]
    for number, values in ((4, data.normalized_data), (5, data.unnormalized_data)):
        if values.size:
            block = values.astype(_FLOAT, copy=False).tobytes()
            parts += [_key(number, LEN), encode_varint(len(block)), block]
    return b"".join(parts)


def _skip(cursor: ByteCursor, wire_type: int, offset: int, key: int) -> None:
    if wire_type == VARINT:
        read_varint(cursor)
    elif wire_type == I64:
        cursor.take(8)
    elif wire_type == LEN:
        cursor.take(read_varint(cursor))
    elif wire_type == I32:
        cursor.take(4)
    else:
        raise InvalidTag(offset, key)


def decode_automation_data(payload: bytes) -> AutomationData:
    cursor = ByteCursor(payload)
    scalars: Dict[int, int] = {1: 0, 2: 0, 3: 0}
    floats: Dict[int, List[np.ndarray]] = {4: [], 5: []}
    while cursor.remaining:
        offset = cursor.position
        key = read_varint(cursor)
        number, wire_type = key >> 3, key & 0x7
        if number == 0:
            raise InvalidTag(offset, key)
        if number in SCALAR_FIELDS:
            if wire_type != VARINT:
                raise InvalidTag(offset, key)
            scalars[number] = read_varint(cursor)
        elif number in FLOAT_FIELDS:
            if wire_type == LEN:
                block = cursor.take(read_varint(cursor))
                if len(block) % _FLOAT.itemsize:
                    raise DecodeError(f"packed float block at offset {offset} has {len(block)} bytes")
                floats[number].append(np.frombuffer(block, dtype=_FLOAT))
            elif wire_type == I32:
                floats[number].append(np.frombuffer(cursor.take(4), dtype=_FLOAT))
            else:
                raise InvalidTag(offset, key)
        else:
            _skip(cursor, wire_type, offset, key)

    def _join(chunks: List[np.ndarray]) -> np.ndarray:
        if not chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(chunks).astype(np.float32)

    return AutomationData(
        message_key=_as_int32(scalars[1]),
        sequence_number=_as_int32(scalars[2]),
        sys_timestamp=scalars[3],
        normalized_data=_join(floats[4]),
        unnormalized_data=_join(floats[5]),
    )
