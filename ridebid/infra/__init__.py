# ridebid/infra/__init__.py
"""
Инфраструктурный слой: PostgreSQL, Redis, RabbitMQ.
"""

from ridebid.infra.database import DatabaseManager, get_db, init_db, close_db
from ridebid.infra.redis_client import RedisClient, get_redis, init_redis, close_redis
from ridebid.infra.event_bus import EventBus, EventSink, get_event_bus, init_event_bus, close_event_bus

__all__ = [
    "DatabaseManager",
    "get_db",
    "init_db",
    "close_db",
    "RedisClient",
    "get_redis",
    "init_redis",
    "close_redis",
    "EventBus",
    "EventSink",
    "get_event_bus",
    "init_event_bus",
    "close_event_bus",
]
