# ridebid/infra/redis_client.py
"""
Клиент Redis для Geo-индекса водителей.
Поддерживает GEO-поиск с координатами и хеши с атрибутами водителя.
"""

from __future__ import annotations

import asyncio
from functools import wraps
from typing import Any, Callable, TypeVar

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ridebid.common.constants import TypeMsg
from ridebid.common.exceptions import InfrastructureError
from ridebid.common.logger import log_error, log_info

T = TypeVar("T")

REDIS_ERRORS: tuple[type[BaseException], ...] = (
    RedisConnectionError,
    RedisTimeoutError,
    asyncio.TimeoutError,
    OSError,
)


def translate_redis_errors(func: Callable[..., T]) -> Callable[..., T]:
    """Переводит ошибки соединения и таймауты Redis в InfrastructureError."""
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await func(*args, **kwargs)
        except REDIS_ERRORS as e:
            await log_error(f"Redis недоступен ({func.__name__}): {e}", logger_name="redis")
            raise InfrastructureError(f"Redis недоступен: {e}") from e

    return wrapper  # type: ignore


class RedisClient:
    """
    Асинхронный клиент Redis.
    Поддерживает:
    - Geo-поиск (GEORADIUS с расстоянием и координатами)
    - Hash операции
    """

    _instance: RedisClient | None = None
    _client: redis.Redis | None = None

    def __new__(cls) -> RedisClient:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Инициализация (вызывается только один раз благодаря Singleton)."""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._client = None
        self._namespace = "ridebid"

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    def _make_key(self, key: str) -> str:
        """Добавляет namespace к ключу."""
        return f"{self._namespace}:{key}"

    async def connect(
        self,
        url: str,
        max_connections: int = 50,
        socket_timeout: float = 5.0,
        namespace: str = "ridebid",
    ) -> None:
        """
        Подключается к Redis.

        Args:
            url: URL Redis
            max_connections: Максимальное количество соединений
            socket_timeout: Таймаут операций (секунды)
            namespace: Префикс ключей
        """
        if self._client is not None:
            return

        await log_info("Подключение к Redis...", type_msg=TypeMsg.INFO)

        self._namespace = namespace
        self._client = redis.from_url(
            url,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )

        # Проверяем подключение
        await self._client.ping()

        await log_info("Подключение к Redis установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто", type_msg=TypeMsg.INFO)

    # =========================================================================
    # HASH ОПЕРАЦИИ
    # =========================================================================

    @translate_redis_errors
    async def hgetall_many(self, names: list[str]) -> list[dict[str, str]]:
        """Получает несколько хешей за один round-trip (пайплайн)."""
        if not names:
            return []
        async with self.client.pipeline(transaction=False) as pipe:
            for name in names:
                pipe.hgetall(self._make_key(name))
            return await pipe.execute()

    # =========================================================================
    # GEO ОПЕРАЦИИ (для поиска водителей)
    # =========================================================================

    @translate_redis_errors
    async def georadius(
        self,
        key: str,
        longitude: float,
        latitude: float,
        radius: float,
        unit: str = "km",
        count: int | None = None,
    ) -> list[tuple[str, float, float, float]]:
        """
        Ищет участников в радиусе от точки.

        Returns:
            Список кортежей (member, distance, longitude, latitude), по возрастанию расстояния
        """
        results = await self.client.georadius(
            self._make_key(key),
            longitude,
            latitude,
            radius,
            unit=unit,
            withdist=True,
            withcoord=True,
            count=count,
            sort="ASC",
        )

        return [
            (member, float(dist), float(coord[0]), float(coord[1]))
            for member, dist, coord in results
        ]

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к Redis.

        Returns:
            True если подключение работает
        """
        try:
            return await self.client.ping()
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}")
            return False


def get_redis() -> RedisClient:
    """Возвращает глобальный экземпляр RedisClient."""
    return RedisClient()


async def init_redis() -> RedisClient:
    """
    Инициализирует подключение к Redis.
    Использует настройки из конфигурации.
    """
    from ridebid.config import settings

    redis_client = get_redis()
    await redis_client.connect(
        url=settings.redis.url,
        max_connections=settings.redis.REDIS_MAX_CONNECTIONS,
        socket_timeout=settings.redis.REDIS_SOCKET_TIMEOUT,
        namespace=settings.redis.REDIS_NAMESPACE,
    )
    await log_info(
        f"Redis подключён: {settings.redis.REDIS_HOST}:{settings.redis.REDIS_PORT}/{settings.redis.REDIS_DB}",
        type_msg=TypeMsg.INFO,
    )
    return redis_client


async def close_redis() -> None:
    """Закрывает подключение к Redis."""
    await get_redis().disconnect()
    await log_info("Redis отключён", type_msg=TypeMsg.INFO)
