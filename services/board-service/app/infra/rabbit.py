# app/infra/rabbit.py
from __future__ import annotations

import json
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict

import aio_pika
from aio_pika import ExchangeType, DeliveryMode

from app.config import settings
from libs.board_common.events import rk, Service, Version

logger = logging.getLogger("board.infra.rabbit")


class RabbitPublisher:
    """
    Publishes board events on the topic exchange, routed as
        <org>.board.<event>.<version>

    Every event gets its own AMQP message_id. correlation_id carries the id of
    the chat message an event belongs to, so a consumer can apply the
    created/edited/deleted events of one message in order.
    """
    def __init__(self, url: Optional[str] = None, exchange_name: Optional[str] = None):
        self.url = url or settings.RABBITMQ_URL
        self.exchange_name = exchange_name or settings.RABBITMQ_EXCHANGE
        self._conn: Optional[aio_pika.abc.AbstractRobustConnection] = None
        self._channel: Optional[aio_pika.abc.AbstractChannel] = None
        self._exchange: Optional[aio_pika.abc.AbstractExchange] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        if self._exchange:
            return
        async with self._lock:
            if self._exchange:
                return
            logger.info("board.rabbit.connecting", extra={"exchange": self.exchange_name})
            self._conn = await aio_pika.connect_robust(self.url)
            self._channel = await self._conn.channel()
            self._exchange = await self._channel.declare_exchange(
                self.exchange_name, ExchangeType.TOPIC, durable=True
            )
            logger.info("board.rabbit.connected", extra={"exchange": self.exchange_name})

    @staticmethod
    def build_message(payload: dict, *, correlation_id: Optional[str] = None,
                      headers: Optional[Dict[str, str]] = None) -> aio_pika.Message:
        return aio_pika.Message(
            body=json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str).encode("utf-8"),
            content_type="application/json",
            delivery_mode=DeliveryMode.PERSISTENT,
            message_id=str(uuid.uuid4()),
            correlation_id=correlation_id,
            timestamp=datetime.now(timezone.utc),
            app_id=settings.SERVICE_NAME,
            headers=headers or {},
        )

    async def publish_v1(
        self,
        *,
        org: str,
        event: str,
        payload: dict,
        correlation_id: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        version: str = Version.V1.value,
    ) -> str:
        """Publish one persistent JSON event and return the routing key it went out on."""
        await self.connect()
        assert self._exchange is not None

        routing_key = rk(org=org, service=Service.BOARD, event=event, version=version)
        msg = self.build_message(payload, correlation_id=correlation_id, headers=headers)
        await self._exchange.publish(msg, routing_key=routing_key)
        logger.info("board.rabbit.published", extra={"routing_key": routing_key, "correlation_id": correlation_id})
        return routing_key

    async def close(self) -> None:
        try:
            if self._channel and not self._channel.is_closed:
                await self._channel.close()
        finally:
            if self._conn and not self._conn.is_closed:
                await self._conn.close()
            self._exchange = None
            self._channel = None
            self._conn = None
