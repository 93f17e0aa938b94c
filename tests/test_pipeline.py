from __future__ import annotations

import io
import itertools
import struct

import pytest

from webway import sinks
from webway.codec import ContainerKind, encode_header, encode_log_entry, encode_sensor_reading
from webway.container import ContainerReader, write_container
from webway.errors import InvalidMagic, InvalidTag, InvalidText, IoFailure, UnexpectedEnd
from webway.pipeline import DecodePipeline, DecodePolicy, DecodeReport, PassState
from webway.records import LogEntry

NOW = 1_700_000_000

ENTRIES = [LogEntry(timestamp=NOW + i, level=i % 4, message=f"entry {i}") for i in range(4)]
BAD_ENTRY = struct.pack("<QBH", NOW, 1, 3) + b"\xff\xfe\xfd"


def _logs_with_bad_second_entry() -> bytes:
    bodies = [encode_log_entry(ENTRIES[0]), BAD_ENTRY] + [encode_log_entry(e) for e in ENTRIES[2:]]
    return encode_header(ContainerKind.LOG, 4) + b"".join(bodies)


def _reader(data: bytes, kind: ContainerKind = ContainerKind.LOG) -> ContainerReader:
    return ContainerReader(io.BytesIO(data), kind)


def test_clean_pass(capture_sink):
    data = encode_header(ContainerKind.LOG, 4) + b"".join(encode_log_entry(e) for e in ENTRIES)
    report = DecodePipeline(sink=capture_sink).run(_reader(data))
    assert report.state is PassState.DONE
    assert report.records == ENTRIES
    assert (report.declared, report.decoded, report.failures, report.truncated) == (4, 4, [], False)
    assert capture_sink.outcomes(sinks.DECODE) == [sinks.OK] * 4 + [sinks.COMPLETED]


def test_stop_policy_aborts_on_first_failure(capture_sink):
    report = DecodePipeline(policy=DecodePolicy.STOP, sink=capture_sink).run(_reader(_logs_with_bad_second_entry()))
    assert report.state is PassState.ABORTED
    assert report.records == ENTRIES[:1]
    assert len(report.failures) == 1
    assert report.failures[0].index == 1
    assert isinstance(report.error, InvalidText)
    assert sinks.ABORTED in capture_sink.outcomes(sinks.DECODE)


def test_skip_policy_continues_past_bad_text(capture_sink):
    report = DecodePipeline(policy=DecodePolicy.SKIP, sink=capture_sink).run(_reader(_logs_with_bad_second_entry()))
    assert report.state is PassState.DONE
    assert report.records == [ENTRIES[0], ENTRIES[2], ENTRIES[3]]
    assert report.decoded == 3
    assert [f.index for f in report.failures] == [1]
    assert report.error is None
    assert report.missing == 0
    assert capture_sink.outcomes(sinks.DECODE) == [sinks.OK, sinks.SKIPPED, sinks.OK, sinks.OK, sinks.COMPLETED]


def test_skip_policy_cannot_recover_from_invalid_tag(sample_readings):
    reading = encode_sensor_reading(sample_readings[0])
    data = encode_header(ContainerKind.MIXED, 3) + b"\x00" + reading + b"\x05" + reading + b"\x00" + reading
    report = DecodePipeline(policy=DecodePolicy.SKIP).run(_reader(data, ContainerKind.MIXED))
    assert report.state is PassState.ABORTED
    assert report.decoded == 1
    assert isinstance(report.error, InvalidTag)


def test_truncation_on_boundary_ends_the_pass(sample_readings, capture_sink):
    data = encode_header(ContainerKind.SENSOR, 5) + b"".join(encode_sensor_reading(r) for r in sample_readings[:2])
    report = DecodePipeline(sink=capture_sink).run(_reader(data, ContainerKind.SENSOR))
    assert report.state is PassState.DONE
    assert report.truncated
    assert report.records == sample_readings[:2]
    assert report.failures == []
    assert report.missing == 3
    assert sinks.TRUNCATED in capture_sink.outcomes(sinks.DECODE)


def test_truncation_inside_a_record(sample_readings):
    body = b"".join(encode_sensor_reading(r) for r in sample_readings)
    data = encode_header(ContainerKind.SENSOR, 3) + body[:-5]
    report = DecodePipeline().run(_reader(data, ContainerKind.SENSOR))
    assert report.state is PassState.DONE
    assert report.truncated
    assert report.decoded == 2
    assert [f.index for f in report.failures] == [2]
    assert isinstance(report.failures[0].error, UnexpectedEnd)


def test_iter_records_is_lazy(sample_readings):
    data = encode_header(ContainerKind.SENSOR, 3) + b"".join(encode_sensor_reading(r) for r in sample_readings)
    reader = _reader(data, ContainerKind.SENSOR)
    report = DecodeReport(kind=ContainerKind.SENSOR)
    first_two = list(itertools.islice(DecodePipeline().iter_records(reader, report), 2))
    assert first_two == sample_readings[:2]
    assert report.decoded == 2
    assert report.state is PassState.READING
    assert reader.records_read == 2


def test_summary_event_carries_counts(capture_sink):
    DecodePipeline(policy=DecodePolicy.SKIP, sink=capture_sink).run(_reader(_logs_with_bad_second_entry()))
    summary = capture_sink.events[-1]
    assert summary.outcome == sinks.COMPLETED
    assert summary.detail["declared"] == 4
    assert summary.detail["decoded"] == 3
    assert summary.detail["failed"] == 1
    assert summary.detail["state"] == "done"


def test_run_path_reads_a_file(tmp_path, sample_readings):
    path = tmp_path / "sensor_data.bin"
    write_container(path, ContainerKind.SENSOR, sample_readings)
    report = DecodePipeline().run_path(path, ContainerKind.SENSOR)
    assert report.state is PassState.DONE
    assert report.records == sample_readings


def test_run_path_with_wrong_kind_aborts(tmp_path, sample_readings, capture_sink):
    path = tmp_path / "sensor_data.bin"
    write_container(path, ContainerKind.SENSOR, sample_readings)
    report = DecodePipeline(sink=capture_sink).run_path(path, ContainerKind.LOG)
    assert report.state is PassState.ABORTED
    assert report.failures[0].index is None
    assert isinstance(report.error, InvalidMagic)
    assert capture_sink.outcomes(sinks.DECODE) == [sinks.ABORTED]


def test_run_path_missing_file(tmp_path):
    report = DecodePipeline().run_path(tmp_path / "missing.bin", ContainerKind.SENSOR)
    assert report.state is PassState.ABORTED
    assert isinstance(report.error, IoFailure)


@pytest.mark.parametrize("policy", ["stop", "skip"])
def test_policy_accepts_config_strings(policy):
    assert DecodePolicy(policy).value == policy
