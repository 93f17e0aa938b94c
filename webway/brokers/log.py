# SPDX-License-Identifier: Apache-2.0
"""Broker that only logs messages; for dry runs and audits."""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, Mapping, Optional

from .base import Broker, DeliveryReceipt

log = logging.getLogger(__name__)


class LogBroker(Broker):
    def __init__(self, name: str, options: Dict[str, Any]):
        super().__init__(name, options)
        self._offsets: Dict[str, int] = defaultdict(int)

    async def publish(
        self,
        topic: str,
        key: str,
        payload: bytes,
        *,
        timestamp_ms: Optional[int] = None,
        wait: float = 5.0,
    ) -> DeliveryReceipt:
        offset = self._offsets[topic]
        self._offsets[topic] += 1
        log.info(
            "[broker %s] %s key=%s bytes=%d timestamp_ms=%s offset=%d",
            self.name,
            topic,
            key,
            len(payload),
            timestamp_ms,
            offset,
        )
        return DeliveryReceipt(partition=0, offset=offset)

    async def ensure_topic(self, name: str, partitions: int, replication: int, config: Mapping[str, str]) -> None:
        log.info(
            "[broker %s] topic %s partitions=%d replication=%d config=%s",
            self.name,
            name,
            partitions,
            replication,
            dict(config),
        )
