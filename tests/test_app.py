from __future__ import annotations

import pytest

from webway.app import main
from webway.brokers.log import LogBroker
from webway.codec import ContainerKind
from webway.container import open_container
from webway.errors import TopicSetupFailure


@pytest.fixture
def data_dir(tmp_path):
    out = tmp_path / "test_data"
    argv = ["generate", "--out", str(out), "--seed", "1", "--sensors", "20", "--logs", "10", "--mixed", "15", "--random-kb", "2"]
    assert main(argv) == 0
    return out


@pytest.fixture
def log_config(tmp_path):
    path = tmp_path / "webway.yaml"
    path.write_text("broker:\n  type: log\npublish:\n  topic: audit\ndecode:\n  policy: skip\n")
    return str(path)


def test_generate_writes_all_fixtures(data_dir):
    expected = {
        "sensor_data.bin": (ContainerKind.SENSOR, 20),
        "log_data.bin": (ContainerKind.LOG, 10),
        "mixed_data.bin": (ContainerKind.MIXED, 15),
    }
    for name, (kind, count) in expected.items():
        with open_container(data_dir / name, kind) as reader:
            assert reader.header.record_count == count
            assert len(list(reader)) == count
    assert (data_dir / "random_data.bin").stat().st_size == 2048


def test_decode_command(data_dir):
    assert main(["decode", str(data_dir / "log_data.bin"), "--kind", "logs"]) == 0


def test_decode_command_with_wrong_kind_fails(data_dir):
    assert main(["decode", str(data_dir / "log_data.bin"), "--kind", "sens"]) == 1


def test_publish_command(data_dir, log_config):
    assert main(["publish", str(data_dir / "mixed_data.bin"), "--kind", "mixd", "--config", log_config]) == 0


def test_publish_command_with_missing_file(tmp_path, log_config):
    assert main(["publish", str(tmp_path / "missing.bin"), "--kind", "sens", "--config", log_config]) == 1


def test_publish_automation_command(log_config):
    argv = ["publish-automation", "--config", log_config, "--count", "3", "--size", "8", "--seed", "4", "--interval", "0", "--topic", "automation-data"]
    assert main(argv) == 0


@pytest.fixture
def failing_topic_setup(monkeypatch):
    published = []

    async def ensure_topic(self, name, partitions, replication, config):
        raise TopicSetupFailure("admin unreachable")

    original_publish = LogBroker.publish

    async def publish(self, topic, key, payload, **kwargs):
        published.append(key)
        return await original_publish(self, topic, key, payload, **kwargs)

    monkeypatch.setattr(LogBroker, "ensure_topic", ensure_topic)
    monkeypatch.setattr(LogBroker, "publish", publish)
    return published


def test_publish_automation_continues_when_topic_setup_fails(log_config, failing_topic_setup):
    argv = ["publish-automation", "--config", log_config, "--count", "2", "--size", "4", "--interval", "0"]
    assert main(argv) == 0
    assert failing_topic_setup == ["0", "1"]


def test_publish_continues_when_topic_setup_fails(data_dir, log_config, failing_topic_setup):
    assert main(["publish", str(data_dir / "sensor_data.bin"), "--kind", "sens", "--config", log_config]) == 0
    assert len(failing_topic_setup) == 20
