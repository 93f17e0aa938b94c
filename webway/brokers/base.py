# SPDX-License-Identifier: Apache-2.0
"""Broker collaborator interface used by the publish pipeline."""
from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True, slots=True)
class DeliveryReceipt:
    partition: int
    offset: int


class Broker(abc.ABC):
    def __init__(self, name: str, options: Dict[str, Any]):
        self.name = name
        self.options = options

    @abc.abstractmethod
    async def publish(
        self,
        topic: str,
        key: str,
        payload: bytes,
        *,
        timestamp_ms: Optional[int] = None,
        wait: float = 5.0,
    ) -> DeliveryReceipt:  # pragma: no cover - interface
        raise NotImplementedError

    async def flush(self, wait: float) -> None:
        """Force buffered messages out; brokers without a buffer return immediately."""

    async def ensure_topic(
        self, name: str, partitions: int, replication: int, config: Mapping[str, str]
    ) -> None:
        """Create ``name`` unless it exists already."""

    async def close(self) -> None:
        """Release the connection."""
