# SPDX-License-Identifier: Apache-2.0
"""Kafka broker adapter backed by aiokafka."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from aiokafka import AIOKafkaProducer
from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.errors import KafkaError, TopicAlreadyExistsError, for_code

from webway.errors import FlushFailure, PublishFailure, TopicSetupFailure

from .base import Broker, DeliveryReceipt

log = logging.getLogger(__name__)

MAX_MESSAGE_BYTES = 10 * 1024 * 1024
MAX_BATCH_BYTES = 1024 * 1024


class KafkaBroker(Broker):
    def __init__(self, name: str, options: Dict[str, Any]):
        super().__init__(name, options)
        self.bootstrap_servers = options.get("bootstrap_servers", "localhost:19092")
        self._lock = asyncio.Lock()
        self._producer: AIOKafkaProducer | None = None

    async def _ensure(self) -> AIOKafkaProducer:
        async with self._lock:
            if self._producer is not None:
                return self._producer
            producer = AIOKafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                client_id=self.options.get("client_id", "webway"),
                compression_type=self.options.get("compression_type"),
                max_request_size=int(self.options.get("max_request_size", MAX_MESSAGE_BYTES)),
                max_batch_size=int(self.options.get("max_batch_size", MAX_BATCH_BYTES)),
                linger_ms=int(self.options.get("linger_ms", 10)),
                acks=self.options.get("acks", 1),
            )
            try:
                await producer.start()
            except Exception:
                await producer.stop()
                raise
            self._producer = producer
            log.info("connected Kafka broker %s to %s", self.name, self.bootstrap_servers)
            return producer

    async def publish(
        self,
        topic: str,
        key: str,
        payload: bytes,
        *,
        timestamp_ms: Optional[int] = None,
        wait: float = 5.0,
    ) -> DeliveryReceipt:
        try:
            producer = await self._ensure()
            metadata = await producer.send_and_wait(
                topic, value=payload, key=key.encode("utf-8"), timestamp_ms=timestamp_ms
            )
        except KafkaError as exc:
            raise PublishFailure(key, str(exc)) from exc
        return DeliveryReceipt(partition=metadata.partition, offset=metadata.offset)

    async def flush(self, wait: float) -> None:
        if self._producer is None:
            return
        try:
            await asyncio.wait_for(self._producer.flush(), wait)
        except KafkaError as exc:
            raise FlushFailure(f"flush failed: {exc}") from exc

    async def ensure_topic(self, name: str, partitions: int, replication: int, config: Mapping[str, str]) -> None:
        admin = AIOKafkaAdminClient(
            bootstrap_servers=self.bootstrap_servers,
            request_timeout_ms=int(self.options.get("admin_timeout_ms", 10_000)),
        )
        topic = NewTopic(
            name=name,
            num_partitions=partitions,
            replication_factor=replication,
            topic_configs={str(k): str(v) for k, v in config.items()},
        )
        try:
            await admin.start()
            response = await admin.create_topics([topic])
        except TopicAlreadyExistsError:
            log.info("topic %s already exists", name)
            return
        except KafkaError as exc:
            raise TopicSetupFailure(f"cannot create topic {name}: {exc}") from exc
        finally:
            await admin.close()
        for topic_name, code, *_ in getattr(response, "topic_errors", ()):
            if code == 0:
                log.info("topic %s created", topic_name)
            elif code == TopicAlreadyExistsError.errno:
                log.info("topic %s already exists", topic_name)
            else:
                raise TopicSetupFailure(f"cannot create topic {topic_name}: {for_code(code).__name__}")

    async def close(self) -> None:
        if self._producer:
            await self._producer.stop()
            self._producer = None
