# ridebid/infra/event_bus.py
"""
Шина событий на базе RabbitMQ.
Публикует события маркетплейса (bid_placed, bid_accepted, journey_cancelled)
в topic exchange. Доставка at-least-once: message_id = event_id,
потребители дедуплицируют по нему.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable
from uuid import uuid4

import aio_pika
from aio_pika import ExchangeType, Message
from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractExchange

from ridebid.common.constants import TypeMsg
from ridebid.common.exceptions import InfrastructureError
from ridebid.common.logger import log_error, log_info


@runtime_checkable
class EventSink(Protocol):
    """Получатель доменных событий."""

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        ...


def build_envelope(topic: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Оборачивает payload в конверт события."""
    return {
        "event_id": str(uuid4()),
        "event_type": topic,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "payload": payload,
    }


class EventBus:
    """
    Шина событий на базе RabbitMQ.

    Реализует:
    - Публикацию событий в topic exchange (routing_key = тип события)
    - Автоматическое переподключение (connect_robust)
    """

    _instance: EventBus | None = None
    _connection: AbstractConnection | None = None
    _channel: AbstractChannel | None = None
    _exchange: AbstractExchange | None = None

    def __new__(cls) -> EventBus:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Инициализация (вызывается только один раз благодаря Singleton)."""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._connection = None
        self._channel = None
        self._exchange = None
        self._exchange_name = "ridebid.events"
        self._publish_timeout = 5.0

    @property
    def is_connected(self) -> bool:
        """Проверяет, активно ли соединение."""
        return self._connection is not None and not self._connection.is_closed

    async def connect(
        self,
        url: str,
        exchange_name: str = "ridebid.events",
        publish_timeout: float = 5.0,
    ) -> None:
        """
        Подключается к RabbitMQ.

        Args:
            url: URL RabbitMQ
            exchange_name: Имя exchange
            publish_timeout: Таймаут публикации (секунды)
        """
        if self.is_connected:
            return

        self._exchange_name = exchange_name
        self._publish_timeout = publish_timeout

        await log_info("Подключение к RabbitMQ...", type_msg=TypeMsg.INFO)

        self._connection = await aio_pika.connect_robust(url)
        self._channel = await self._connection.channel(publisher_confirms=True)

        # topic exchange для гибкой маршрутизации
        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            ExchangeType.TOPIC,
            durable=True,
        )

        await log_info("Подключение к RabbitMQ установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с RabbitMQ."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._channel = None
            self._exchange = None
            await log_info("Соединение с RabbitMQ закрыто", type_msg=TypeMsg.INFO)

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        """
        Публикует событие в exchange.

        Args:
            topic: Тип события (routing_key)
            payload: Данные события (JSON-совместимый словарь)

        Raises:
            InfrastructureError: нет соединения, таймаут или ошибка брокера
        """
        if not self.is_connected or self._exchange is None:
            raise InfrastructureError("Нет соединения с RabbitMQ")

        envelope = build_envelope(topic, payload)
        message = Message(
            body=json.dumps(envelope, ensure_ascii=False, default=str).encode(),
            content_type="application/json",
            message_id=envelope["event_id"],
            timestamp=datetime.now(timezone.utc),
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )

        try:
            await asyncio.wait_for(
                self._exchange.publish(message, routing_key=topic),
                timeout=self._publish_timeout,
            )
        except Exception as e:
            await log_error(f"Ошибка публикации события {topic}: {e}", logger_name="event_bus")
            raise InfrastructureError(f"Не удалось опубликовать событие {topic}: {e}") from e

        await log_info(
            f"Событие опубликовано: {topic}",
            type_msg=TypeMsg.DEBUG,
            logger_name="event_bus",
            extra={"event_id": envelope["event_id"]},
        )

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к RabbitMQ.

        Returns:
            True если подключение работает
        """
        return self.is_connected


def get_event_bus() -> EventBus:
    """Возвращает глобальный экземпляр EventBus."""
    return EventBus()


async def init_event_bus() -> EventBus:
    """
    Инициализирует подключение к RabbitMQ.
    Использует настройки из конфигурации.
    """
    from ridebid.config import settings

    event_bus = get_event_bus()
    await event_bus.connect(
        url=settings.rabbitmq.url,
        exchange_name=settings.rabbitmq.RABBITMQ_EXCHANGE,
        publish_timeout=settings.rabbitmq.RABBITMQ_PUBLISH_TIMEOUT,
    )
    await log_info(
        f"RabbitMQ подключён: {settings.rabbitmq.RABBITMQ_HOST}:{settings.rabbitmq.RABBITMQ_PORT}",
        type_msg=TypeMsg.INFO,
    )
    return event_bus


async def close_event_bus() -> None:
    """Закрывает подключение к RabbitMQ."""
    await get_event_bus().disconnect()
    await log_info("RabbitMQ отключён", type_msg=TypeMsg.INFO)
