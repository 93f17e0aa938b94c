# SPDX-License-Identifier: Apache-2.0
"""Publish pipeline: forwards records to a broker one at a time."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from . import sinks
from .brokers.base import Broker, DeliveryReceipt
from .config import PublishConfig, TopicConfig
from .errors import FlushFailure, PublishError, flush_failure, publish_failure
from .serialization import encode_payload, record_key, record_timestamp
from .sinks import EventSink, PipelineEvent

log = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordOutcome:
    index: int
    key: Optional[str]
    receipt: Optional[DeliveryReceipt] = None
    error: Optional[PublishError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class BatchOutcome:
    successful: int = 0
    failed: int = 0
    outcomes: List[RecordOutcome] = field(default_factory=list)
    flush_error: Optional[FlushFailure] = None

    @property
    def attempted(self) -> int:
        return len(self.outcomes)


class PublishPipeline:
    def __init__(
        self,
        broker: Broker,
        topic: str,
        *,
        serializer: str = "auto",
        timeout_s: float = 5.0,
        flush_timeout_s: float = 5.0,
        sink: EventSink | None = None,
    ):
        self.broker = broker
        self.topic = topic
        self.serializer = serializer
        self.timeout_s = timeout_s
        self.flush_timeout_s = flush_timeout_s
        self.sink = sink or EventSink()

    @classmethod
    def from_config(cls, broker: Broker, cfg: PublishConfig, sink: EventSink | None = None) -> "PublishPipeline":
        return cls(
            broker,
            cfg.topic,
            serializer=cfg.serializer,
            timeout_s=cfg.timeout_s,
            flush_timeout_s=cfg.flush_timeout_s,
            sink=sink,
        )

    async def ensure_topic(self, cfg: TopicConfig) -> None:
        await self.broker.ensure_topic(self.topic, cfg.partitions, cfg.replication, cfg.config)

    async def publish_one(self, record) -> DeliveryReceipt:
        """Send one record, keyed by its identity and stamped with its own event time."""
        key = record_key(record)
        payload = encode_payload(record, self.serializer)
        timestamp_ms = record_timestamp(record) * 1000
        try:
            return await asyncio.wait_for(
                self.broker.publish(self.topic, key, payload, timestamp_ms=timestamp_ms, wait=self.timeout_s),
                self.timeout_s,
            )
        except PublishError:
            raise
        except Exception as exc:
            raise publish_failure(exc, key) from exc

    async def publish_batch(self, records: Iterable, *, interval_s: float = 0.0) -> BatchOutcome:
        """Publish every record, tallying failures, then flush once.

        ``interval_s`` paces the sends; no wait follows the last record.
        """
        outcome = BatchOutcome()
        for index, record in enumerate(records):
            if index and interval_s > 0:
                await asyncio.sleep(interval_s)
            key: Optional[str] = None
            start = time.perf_counter()
            try:
                key = record_key(record)
                receipt = await self.publish_one(record)
            except PublishError as exc:
                outcome.failed += 1
                outcome.outcomes.append(RecordOutcome(index=index, key=key, error=exc))
                self._emit(sinks.PUBLISH, sinks.FAILED, index, key, error=type(exc).__name__, message=str(exc))
                continue
            latency_ms = (time.perf_counter() - start) * 1000
            outcome.successful += 1
            outcome.outcomes.append(RecordOutcome(index=index, key=key, receipt=receipt))
            self._emit(
                sinks.PUBLISH,
                sinks.OK,
                index,
                key,
                latency_ms=latency_ms,
                partition=receipt.partition,
                offset=receipt.offset,
            )
        outcome.flush_error = await self.flush()
        self._emit(
            sinks.PUBLISH,
            sinks.COMPLETED,
            None,
            None,
            successful=outcome.successful,
            failed=outcome.failed,
            flushed=outcome.flush_error is None,
        )
        return outcome

    async def flush(self) -> Optional[FlushFailure]:
        try:
            await asyncio.wait_for(self.broker.flush(self.flush_timeout_s), self.flush_timeout_s)
        except Exception as exc:
            failure = flush_failure(exc)
            log.warning("flush of topic %s did not complete: %s", self.topic, failure)
            self._emit(sinks.FLUSH, sinks.FAILED, None, None, error=type(failure).__name__, message=str(failure))
            return failure
        return None

    def _emit(self, stage: str, outcome: str, index: Optional[int], key: Optional[str], **detail) -> None:
        detail["topic"] = self.topic
        self.sink.emit(PipelineEvent(stage=stage, outcome=outcome, index=index, key=key, detail=detail))
