# SPDX-License-Identifier: Apache-2.0
"""Error families for the codec, container and publish boundaries."""
from __future__ import annotations

import asyncio


class WebwayError(Exception):
    """Base class for every error raised by webway."""

    recoverable = False


class IoFailure(WebwayError):
    """The underlying file object failed to read or write."""


class EncodeError(WebwayError):
    """A value does not fit the width of its field."""


class DecodeError(WebwayError):
    """Malformed input on the decode path."""


class UnexpectedEnd(DecodeError):
    def __init__(self, offset: int, needed: int, available: int):
        super().__init__(f"unexpected end at offset {offset}: needed {needed} bytes, {available} available")
        self.offset = offset
        self.needed = needed
        self.available = available


class InvalidMagic(DecodeError):
    def __init__(self, found: bytes, expected: bytes):
        super().__init__(f"invalid magic {found!r}, expected {expected!r}")
        self.found = found
        self.expected = expected


class InvalidTag(DecodeError):
    """Unknown mixed-record discriminator or protowire key; framing is lost."""

    def __init__(self, offset: int, tag: int):
        super().__init__(f"invalid tag {tag} at offset {offset}")
        self.offset = offset
        self.tag = tag


class InvalidText(DecodeError):
    """Log message bytes are not valid UTF-8. The record was fully consumed."""

    recoverable = True

    def __init__(self, offset: int, reason: str):
        super().__init__(f"invalid UTF-8 message at offset {offset}: {reason}")
        self.offset = offset
        self.reason = reason


class Truncated(DecodeError):
    """The source ended on a record boundary before record_count was reached."""

    def __init__(self, declared: int, decoded: int):
        super().__init__(f"container declares {declared} records but ends after {decoded}")
        self.declared = declared
        self.decoded = decoded


class PublishError(WebwayError):
    """Base class for failures on the publish boundary."""


class SerializationFailure(PublishError):
    pass


class PublishFailure(PublishError):
    def __init__(self, key: str, reason: str):
        super().__init__(f"publish of {key!r} failed: {reason}")
        self.key = key
        self.reason = reason


class FlushFailure(PublishError):
    pass


class TopicSetupFailure(PublishError):
    pass


def io_failure(exc: OSError) -> IoFailure:
    return IoFailure(f"{exc.__class__.__name__}: {exc}")


def publish_failure(exc: BaseException, key: str) -> PublishFailure:
    if isinstance(exc, PublishFailure):
        return exc
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return PublishFailure(key, "timed out")
    return PublishFailure(key, str(exc) or exc.__class__.__name__)


def flush_failure(exc: BaseException) -> FlushFailure:
    if isinstance(exc, FlushFailure):
        return exc
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return FlushFailure("flush timed out")
    return FlushFailure(f"flush failed: {exc or exc.__class__.__name__}")
