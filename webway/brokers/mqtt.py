"""MQTT broker adapter.

MQTT has no keys, partitions, or offsets: the key is appended to the topic
path, every receipt reports partition 0 and a per-adapter sequence number.
With QoS >= 1 the publish call returns only after the broker acknowledged it,
so there is nothing left to flush.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

from asyncio_mqtt import Client, MqttError

from webway.errors import PublishFailure

from .base import Broker, DeliveryReceipt

log = logging.getLogger(__name__)


class MQTTBroker(Broker):
    def __init__(self, name: str, options):
        super().__init__(name, options)
        self._lock = asyncio.Lock()
        self._client: Client | None = None
        self._sequence = 0

    async def _ensure(self) -> Client:
        async with self._lock:
            if self._client is not None:
                return self._client
            host = self.options.get("host", "127.0.0.1")
            port = int(self.options.get("port", 1883))
            username = self.options.get("username")
            password = self.options.get("password")
            client = Client(hostname=host, port=port, username=username, password=password)
            await client.connect()
            self._client = client
            log.info("connected MQTT broker %s to %s:%s", self.name, host, port)
            return client

    async def publish(
        self,
        topic: str,
        key: str,
        payload: bytes,
        *,
        timestamp_ms: Optional[int] = None,
        wait: float = 5.0,
    ) -> DeliveryReceipt:
        qos = int(self.options.get("qos", 1))
        retain = bool(self.options.get("retain", False))
        target = f"{topic}/{key}" if self.options.get("key_in_topic", True) else topic
        try:
            client = await self._ensure()
            await client.publish(target, payload, qos=qos, retain=retain, timeout=wait)
        except MqttError as exc:
            raise PublishFailure(key, str(exc)) from exc
        offset = self._sequence
        self._sequence += 1
        return DeliveryReceipt(partition=0, offset=offset)

    async def ensure_topic(self, name: str, partitions: int, replication: int, config: Mapping[str, str]) -> None:
        log.debug("MQTT topics are implicit; nothing to create for %s", name)

    async def close(self) -> None:
        if self._client:
            await self._client.disconnect()
            self._client = None
