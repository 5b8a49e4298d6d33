"""
Metrics for the credential model.

MetricsClient is the small surface the model reports through. Two backends
exist: Telegraf/StatsD through aio-statsd, and a no-op client used when
metrics are disabled and in tests.

Metric names emitted by the model:
- credmodel.token.issued (tags: kind)
- credmodel.lookup.miss (tags: kind)
- credmodel.revoke (tags: kind, revoked)
- credmodel.operation.time (tags: operation)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union

from aio_statsd import TelegrafStatsdClient

logger = logging.getLogger(__name__)


class MetricsClient(ABC):
    @abstractmethod
    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    @abstractmethod
    def gauge(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Set a point-in-time value."""
        pass

    @abstractmethod
    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record a duration in seconds."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class TelegrafMetricsClient(MetricsClient):
    def __init__(self, client: TelegrafStatsdClient) -> None:
        self.client = client

    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.increment(name, value, tag_dict=tag_dict or {})

    def gauge(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.gauge(name, value, tag_dict=tag_dict or {})

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.client.timer(name, value, tag_dict=tag_dict or {})

    async def close(self) -> None:
        try:
            await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing Telegraf client: {e}")


class NoOpMetricsClient(MetricsClient):
    def increment(
        self,
        name: str,
        value: Union[int, float] = 1,
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    def timer(
        self,
        name: str,
        value: Union[int, float],
        tag_dict: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass

    async def close(self) -> None:
        pass


async def create_metrics_client(
    backend: str,
    host: str = "localhost",
    port: int = 8125,
    debug: bool = False,
) -> MetricsClient:
    """Build and connect the metrics client for `backend` ("telegraf" or "noop")."""
    if backend == "telegraf":
        statsd_client = TelegrafStatsdClient(host=host, port=port, debug=debug)
        await statsd_client.connect()
        logger.info("Telegraf metrics client connected to %s:%s", host, port)
        return TelegrafMetricsClient(statsd_client)
    if backend == "noop":
        return NoOpMetricsClient()
    raise ValueError(f"Unknown metrics backend: {backend}")
