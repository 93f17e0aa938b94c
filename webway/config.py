"""Configuration loader for decode and publish runs."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_TOPIC_CONFIG = {"max.message.bytes": "10485760"}


@dataclass(slots=True)
class BrokerConfig:
    type: str = "log"
    name: str = "default"
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PublishConfig:
    topic: str = "sensor-readings"
    serializer: str = "auto"
    timeout_s: float = 5.0
    flush_timeout_s: float = 5.0


@dataclass(slots=True)
class TopicConfig:
    partitions: int = 3
    replication: int = 1
    config: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TOPIC_CONFIG))


@dataclass(slots=True)
class DecodeConfig:
    policy: str = "stop"


@dataclass(slots=True)
class WebwayConfig:
    version: int = 1
    broker: BrokerConfig = field(default_factory=BrokerConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    topic: TopicConfig = field(default_factory=TopicConfig)
    decode: DecodeConfig = field(default_factory=DecodeConfig)
    metrics_port: int = 0


def _parse_broker(data: Dict[str, Any]) -> BrokerConfig:
    return BrokerConfig(
        type=data.get("type", "log"),
        name=data.get("name", data.get("type", "default")),
        options={k: v for k, v in data.items() if k not in {"type", "name"}},
    )


def _parse_publish(data: Dict[str, Any]) -> PublishConfig:
    serializer = data.get("serializer", "auto")
    if serializer not in {"auto", "json", "protobuf"}:
        raise ValueError(f"unsupported serializer '{serializer}'")
    return PublishConfig(
        topic=data.get("topic", "sensor-readings"),
        serializer=serializer,
        timeout_s=float(data.get("timeout_s", 5.0)),
        flush_timeout_s=float(data.get("flush_timeout_s", 5.0)),
    )


def _parse_topic(data: Dict[str, Any]) -> TopicConfig:
    config = data.get("config")
    if config is None:
        config = dict(DEFAULT_TOPIC_CONFIG)
    if not isinstance(config, dict):
        raise ValueError("topic config must be a mapping")
    return TopicConfig(
        partitions=int(data.get("partitions", 3)),
        replication=int(data.get("replication", 1)),
        config={str(k): str(v) for k, v in config.items()},
    )


def _parse_decode(data: Dict[str, Any]) -> DecodeConfig:
    policy = str(data.get("policy", "stop")).lower()
    if policy not in {"stop", "skip"}:
        raise ValueError(f"unsupported decode policy '{policy}'")
    return DecodeConfig(policy=policy)


def load_config(path: str | Path) -> WebwayConfig:
    raw = yaml.safe_load(Path(path).read_text()) or {}
    return WebwayConfig(
        version=int(raw.get("version", 1)),
        broker=_parse_broker(raw.get("broker", {})),
        publish=_parse_publish(raw.get("publish", {})),
        topic=_parse_topic(raw.get("topic", {})),
        decode=_parse_decode(raw.get("decode", {})),
        metrics_port=int(raw.get("metrics_port", 0)),
    )
