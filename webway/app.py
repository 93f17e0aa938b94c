"""Command line runner: generate fixtures, decode containers, publish records."""
from __future__ import annotations

import argparse
import asyncio
import logging
import random
import time
from pathlib import Path
from typing import Iterator, List, Optional

import numpy as np
from prometheus_client import start_http_server

from webway.brokers import create_broker
from webway.codec import ContainerKind
from webway.config import TopicConfig, WebwayConfig, load_config
from webway.container import open_container, write_container
from webway.errors import TopicSetupFailure, WebwayError
from webway.generator import random_automation_data, random_bytes, random_log_entry, random_mixed_record, random_sensor_reading
from webway.pipeline import DecodePipeline, DecodePolicy, DecodeReport, PassState
from webway.publish import PublishPipeline
from webway.records import AUTOMATION_DATA_SIZE, AutomationData
from webway.sinks import default_sink

log = logging.getLogger("webway")

KIND_CHOICES = ["sens", "logs", "mixd"]


def _load(path: Optional[str]) -> WebwayConfig:
    if path is None:
        return WebwayConfig()
    return load_config(path)


def _policy(args, config: WebwayConfig) -> DecodePolicy:
    return DecodePolicy(args.policy or config.decode.policy)


def cmd_generate(args) -> int:
    rng = random.Random(args.seed)
    out = Path(args.out)
    out.mkdir(parents=True, exist_ok=True)
    write_container(out / "sensor_data.bin", ContainerKind.SENSOR, [random_sensor_reading(rng) for _ in range(args.sensors)])
    write_container(out / "log_data.bin", ContainerKind.LOG, [random_log_entry(rng) for _ in range(args.logs)])
    write_container(out / "mixed_data.bin", ContainerKind.MIXED, [random_mixed_record(rng) for _ in range(args.mixed)])
    (out / "random_data.bin").write_bytes(random_bytes(rng, args.random_kb * 1024))
    log.info("generated %dKB of random data in %s", args.random_kb, out / "random_data.bin")
    return 0


async def _ensure_topic(publisher: PublishPipeline, topic: TopicConfig) -> None:
    try:
        await publisher.ensure_topic(topic)
    except TopicSetupFailure as exc:
        log.warning("could not ensure topic %s exists, publishing anyway: %s", publisher.topic, exc)


def _log_report(path: str, report: DecodeReport) -> None:
    log.info(
        "%s: decoded %d/%d records state=%s truncated=%s failures=%d",
        path,
        report.decoded,
        report.declared,
        report.state.value,
        report.truncated,
        len(report.failures),
    )
    for failure in report.failures:
        log.warning("%s: record %s: %s", path, failure.index, failure.error)


def cmd_decode(args) -> int:
    config = _load(args.config)
    pipeline = DecodePipeline(policy=_policy(args, config), sink=default_sink())
    report = pipeline.run_path(args.path, ContainerKind.from_name(args.kind))
    _log_report(args.path, report)
    return 1 if report.state is PassState.ABORTED else 0


async def publish_container(args, config: WebwayConfig) -> int:
    sink = default_sink()
    broker = create_broker(config.broker)
    publisher = PublishPipeline.from_config(broker, config.publish, sink=sink)
    decoder = DecodePipeline(policy=_policy(args, config), sink=sink)
    kind = ContainerKind.from_name(args.kind)
    report = DecodeReport(kind=kind)
    try:
        await _ensure_topic(publisher, config.topic)
        with open_container(args.path, kind) as reader:
            outcome = await publisher.publish_batch(decoder.iter_records(reader, report))
    except WebwayError as exc:
        log.error("publish of %s failed: %s", args.path, exc)
        return 1
    finally:
        await broker.close()
    _log_report(args.path, report)
    log.info(
        "published %d records to %s, %d failed, flush %s",
        outcome.successful,
        publisher.topic,
        outcome.failed,
        "failed" if outcome.flush_error else "ok",
    )
    return 0 if outcome.failed == 0 and report.state is PassState.DONE else 1


async def publish_automation(args, config: WebwayConfig) -> int:
    rng = np.random.default_rng(args.seed)
    broker = create_broker(config.broker)
    publisher = PublishPipeline.from_config(broker, config.publish, sink=default_sink())
    if args.topic:
        publisher.topic = args.topic
    raw_sizes: List[int] = []

    def messages() -> Iterator[AutomationData]:
        for sequence in range(args.count):
            data = random_automation_data(args.message_key, sequence, rng, size=args.size)
            raw_sizes.append(data.raw_size)
            yield data

    start = time.perf_counter()
    try:
        await _ensure_topic(publisher, config.topic)
        outcome = await publisher.publish_batch(messages(), interval_s=args.interval)
    except WebwayError as exc:
        log.error("automation publish failed: %s", exc)
        return 1
    finally:
        await broker.close()
    elapsed = time.perf_counter() - start
    total_mb = sum(raw_sizes) / 1024 / 1024
    log.info(
        "sent %d/%d messages, %.2f MB raw in %.2fs (%.2f MB/s)",
        outcome.successful,
        outcome.attempted,
        total_mb,
        elapsed,
        total_mb / elapsed if elapsed else 0.0,
    )
    return 0 if outcome.failed == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Binary telemetry containers and broker publishing")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="write synthetic SENS/LOGS/MIXD containers")
    gen.add_argument("--out", default="test_data")
    gen.add_argument("--seed", type=int)
    gen.add_argument("--sensors", type=int, default=1000)
    gen.add_argument("--logs", type=int, default=500)
    gen.add_argument("--mixed", type=int, default=750)
    gen.add_argument("--random-kb", type=int, default=100)

    dec = sub.add_parser("decode", help="decode a container and report failures")
    dec.add_argument("path")
    dec.add_argument("--kind", choices=KIND_CHOICES, required=True)
    dec.add_argument("--policy", choices=[p.value for p in DecodePolicy])
    dec.add_argument("--config")

    pub = sub.add_parser("publish", help="decode a container and publish its records")
    pub.add_argument("path")
    pub.add_argument("--kind", choices=KIND_CHOICES, required=True)
    pub.add_argument("--policy", choices=[p.value for p in DecodePolicy])
    pub.add_argument("--config", default="config/webway.yaml")

    auto = sub.add_parser("publish-automation", help="generate and publish bulk AutomationData messages")
    auto.add_argument("--config", default="config/webway.yaml")
    auto.add_argument("--topic")
    auto.add_argument("--count", type=int, default=10)
    auto.add_argument("--message-key", type=int, default=12345)
    auto.add_argument("--size", type=int, default=AUTOMATION_DATA_SIZE)
    auto.add_argument("--interval", type=float, default=0.1, help="seconds between messages")
    auto.add_argument("--seed", type=int)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    if args.command == "generate":
        return cmd_generate(args)
    if args.command == "decode":
        return cmd_decode(args)
    config = load_config(args.config)
    if config.metrics_port:
        start_http_server(config.metrics_port)
    try:
        if args.command == "publish":
            return asyncio.run(publish_container(args, config))
        return asyncio.run(publish_automation(args, config))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
