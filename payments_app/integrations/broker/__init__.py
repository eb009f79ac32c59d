from __future__ import annotations

from .base import BrokerClient
from .rabbitmq import RabbitMQClient

__all__ = ["BrokerClient", "RabbitMQClient"]
