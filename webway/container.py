# SPDX-License-Identifier: Apache-2.0
"""Streaming reader and writer for SENS/LOGS/MIXD containers."""
from __future__ import annotations

import contextlib
import logging
from collections.abc import Sized
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator

from .codec import ContainerHeader, ContainerKind, decode_header, decode_record, encode_header, encode_record
from .errors import UnexpectedEnd, Truncated, WebwayError, io_failure

log = logging.getLogger(__name__)


class StreamCursor:
    """Cursor over a blocking binary file object; never reads past what it needs."""

    def __init__(self, source: BinaryIO):
        self._source = source
        self.position = 0

    def take(self, size: int) -> bytes:
        start = self.position
        chunk = b""
        try:
            while len(chunk) < size:
                more = self._source.read(size - len(chunk))
                if not more:
                    break
                chunk += more
        except OSError as exc:
            raise io_failure(exc) from exc
        self.position += len(chunk)
        if len(chunk) < size:
            raise UnexpectedEnd(start, size, len(chunk))
        return chunk


class ContainerWriter:
    def __init__(self, sink: BinaryIO, kind: ContainerKind):
        self.sink = sink
        self.kind = kind

    def write(self, records: Iterable) -> int:
        if not isinstance(records, Sized):
            records = list(records)
        bodies = [encode_record(self.kind, record) for record in records]
        try:
            self.sink.write(encode_header(self.kind, len(bodies)))
            for body in bodies:
                self.sink.write(body)
            self.sink.flush()
        except OSError as exc:
            raise io_failure(exc) from exc
        return len(bodies)


class ContainerReader:
    """Single-pass iterator over the records of one container.

    The header is parsed on construction. Iteration stops after
    ``header.record_count`` records; a source that ends early on a record
    boundary raises :class:`Truncated`, one that ends inside a record raises
    :class:`UnexpectedEnd`.
    """

    def __init__(self, source: BinaryIO, kind: ContainerKind):
        self.kind = kind
        self._cursor = StreamCursor(source)
        self.header: ContainerHeader = decode_header(self._cursor, kind)
        self.records_read = 0
        self._exhausted = False

    @property
    def position(self) -> int:
        return self._cursor.position

    def __iter__(self) -> Iterator:
        return self

    def __next__(self):
        if self._exhausted or self.records_read >= self.header.record_count:
            self._exhausted = True
            raise StopIteration
        start = self._cursor.position
        index = self.records_read
        self.records_read += 1
        try:
            return decode_record(self.kind, self._cursor)
        except UnexpectedEnd as exc:
            self._exhausted = True
            if exc.available == 0 and exc.offset == start:
                raise Truncated(self.header.record_count, index) from None
            raise
        except WebwayError as exc:
            if not exc.recoverable:
                self._exhausted = True
            raise


def write_container(path: str | Path, kind: ContainerKind, records: Iterable) -> int:
    try:
        with open(path, "wb") as fh:
            count = ContainerWriter(fh, kind).write(records)
    except OSError as exc:
        raise io_failure(exc) from exc
    log.info("wrote %d %s records to %s", count, kind.value.decode(), path)
    return count


@contextlib.contextmanager
def open_container(path: str | Path, kind: ContainerKind) -> Iterator[ContainerReader]:
    try:
        fh = open(path, "rb")
    except OSError as exc:
        raise io_failure(exc) from exc
    with fh:
        yield ContainerReader(fh, kind)
