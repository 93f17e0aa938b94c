# SPDX-License-Identifier: Apache-2.0
"""Decode pipeline: per-record recovery policy over a container reader."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from . import sinks
from .codec import ContainerKind
from .container import ContainerReader, open_container
from .errors import Truncated, UnexpectedEnd, WebwayError
from .sinks import EventSink, PipelineEvent

log = logging.getLogger(__name__)


class DecodePolicy(str, enum.Enum):
    STOP = "stop"
    SKIP = "skip"


class PassState(str, enum.Enum):
    READING = "reading"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(slots=True)
class RecordFailure:
    index: Optional[int]
    error: WebwayError


@dataclass(slots=True)
class DecodeReport:
    """Outcome of one decode pass.

    ``records`` is only filled by :meth:`DecodePipeline.run`; lazy callers of
    :meth:`DecodePipeline.iter_records` keep the records themselves.
    """

    kind: ContainerKind
    declared: int = 0
    decoded: int = 0
    state: PassState = PassState.READING
    truncated: bool = False
    records: List = field(default_factory=list)
    failures: List[RecordFailure] = field(default_factory=list)

    @property
    def error(self) -> Optional[WebwayError]:
        if self.state is PassState.ABORTED and self.failures:
            return self.failures[-1].error
        return None

    @property
    def missing(self) -> int:
        """Declared records that were neither decoded nor reported as failures."""
        return max(0, self.declared - self.decoded - len(self.failures))


@dataclass
class DecodePipeline:
    policy: DecodePolicy = DecodePolicy.STOP
    sink: EventSink = field(default_factory=EventSink)

    def iter_records(self, reader: ContainerReader, report: DecodeReport) -> Iterator:
        report.declared = reader.header.record_count
        report.state = PassState.READING
        while True:
            index = reader.records_read
            try:
                record = next(reader)
            except StopIteration:
                report.state = PassState.DONE
                break
            except Truncated as exc:
                report.truncated = True
                report.state = PassState.DONE
                self._emit(report, sinks.TRUNCATED, index, exc)
                break
            except UnexpectedEnd as exc:
                report.truncated = True
                report.failures.append(RecordFailure(index, exc))
                report.state = PassState.DONE
                self._emit(report, sinks.TRUNCATED, index, exc)
                break
            except WebwayError as exc:
                report.failures.append(RecordFailure(index, exc))
                if self.policy is DecodePolicy.SKIP and exc.recoverable:
                    self._emit(report, sinks.SKIPPED, index, exc)
                    continue
                report.state = PassState.ABORTED
                self._emit(report, sinks.ABORTED, index, exc)
                break
            report.decoded += 1
            self._emit(report, sinks.OK, index)
            yield record
        self._summary(report)

    def run(self, reader: ContainerReader) -> DecodeReport:
        report = DecodeReport(kind=reader.kind)
        report.records.extend(self.iter_records(reader, report))
        return report

    def run_path(self, path: str | Path, kind: ContainerKind) -> DecodeReport:
        report = DecodeReport(kind=kind)
        try:
            with open_container(path, kind) as reader:
                report.records.extend(self.iter_records(reader, report))
        except WebwayError as exc:
            log.error("cannot open %s container %s: %s", kind.value.decode(), path, exc)
            report.failures.append(RecordFailure(None, exc))
            report.state = PassState.ABORTED
            self._emit(report, sinks.ABORTED, None, exc)
        return report

    def _emit(self, report: DecodeReport, outcome: str, index: Optional[int], exc: WebwayError | None = None) -> None:
        detail = {"kind": report.kind.value.decode()}
        if exc is not None:
            detail["error"] = type(exc).__name__
            detail["message"] = str(exc)
        self.sink.emit(PipelineEvent(stage=sinks.DECODE, outcome=outcome, index=index, detail=detail))

    def _summary(self, report: DecodeReport) -> None:
        detail = {
            "kind": report.kind.value.decode(),
            "state": report.state.value,
            "declared": report.declared,
            "decoded": report.decoded,
            "failed": len(report.failures),
            "truncated": report.truncated,
        }
        self.sink.emit(PipelineEvent(stage=sinks.DECODE, outcome=sinks.COMPLETED, detail=detail))
