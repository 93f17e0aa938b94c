"""Broker factory."""
from __future__ import annotations

from typing import Callable

from webway.config import BrokerConfig

from .base import Broker, DeliveryReceipt


BROKER_TYPES: dict[str, Callable[..., Broker]] = {}


def register(broker_type: str, factory: Callable[..., Broker]) -> None:
    BROKER_TYPES[broker_type] = factory


def create_broker(cfg: BrokerConfig) -> Broker:
    if cfg.type not in BROKER_TYPES:
        raise ValueError(f"unknown broker type '{cfg.type}'")
    return BROKER_TYPES[cfg.type](cfg.name, cfg.options)


from .kafka import KafkaBroker
from .log import LogBroker
from .mqtt import MQTTBroker

register("kafka", lambda name, options: KafkaBroker(name, options))
register("log", lambda name, options: LogBroker(name, options))
register("mqtt", lambda name, options: MQTTBroker(name, options))

__all__ = ["Broker", "DeliveryReceipt", "create_broker", "register", "BROKER_TYPES"]
