# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test_api_key")

from ridebid.config.loader import AuctionSettings, GeoSettings, PricingSettings  # noqa: E402
from ridebid.core.auction.models import Journey  # noqa: E402
from tests.fakes import InMemoryAuctionStore, RecordingEventSink  # noqa: E402


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "PROJECT_NAME": "ridebid_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_FORMAT": "json",
        "TIMEZONE": "Asia/Colombo",
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "ridebid_test",
        "DB_USER": "postgres",
        "DB_MIN_POOL_SIZE": 2,
        "DB_MAX_POOL_SIZE": 5,
        "DB_COMMAND_TIMEOUT": 3.0,
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_DB": 1,
        "REDIS_NAMESPACE": "ridebid_test",
        "REDIS_MAX_CONNECTIONS": 10,
        "REDIS_SOCKET_TIMEOUT": 1.0,
        "RABBITMQ_HOST": "localhost",
        "RABBITMQ_PORT": 5672,
        "RABBITMQ_USER": "guest",
        "RABBITMQ_PASSWORD": "guest",
        "RABBITMQ_VHOST": "/",
        "RABBITMQ_EXCHANGE": "ridebid.test",
        "RABBITMQ_PUBLISH_TIMEOUT": 1.0,
        "SNAP_TO_ROAD_ENABLED": False,
        "DEFAULT_SEARCH_RADIUS_KM": 5.0,
        "MAX_SEARCH_RADIUS_KM": 30.0,
        "RADIUS_OVERFLOW_POLICY": "reject",
        "FARE_PER_KM": 60.0,
        "MINIMUM_FARE": 300.0,
        "VEHICLE_PREMIUM_POLICY": "max",
        "DEMAND_ZONES": [{"keywords": ["kandy"], "multiplier": 1.1}],
        "PASSENGER_REQUEST_BID_ORDER": "asc",
        "DRIVER_ROUTE_BID_ORDER": "desc",
        "BID_MESSAGE_MAX_LENGTH": 120,
    }


@pytest.fixture
def geo_settings() -> GeoSettings:
    """Настройки геопоиска по умолчанию."""
    return GeoSettings()


@pytest.fixture
def pricing_settings() -> PricingSettings:
    """Тарифы по умолчанию."""
    return PricingSettings()


@pytest.fixture
def auction_settings() -> AuctionSettings:
    """Настройки аукциона по умолчанию."""
    return AuctionSettings()


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_db() -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.fetchval = AsyncMock(return_value=None)
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.georadius = AsyncMock(return_value=[])
    redis.hgetall_many = AsyncMock(return_value=[])
    return redis


@pytest.fixture
def store() -> InMemoryAuctionStore:
    """Транзакционное in-memory хранилище аукциона."""
    return InMemoryAuctionStore()


@pytest.fixture
def event_sink() -> RecordingEventSink:
    """Получатель событий, запоминающий публикации."""
    return RecordingEventSink()


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_journey_data() -> dict[str, Any]:
    """Пример поездки: Colombo Fort -> Kandy, будний день 08:00."""
    return {
        "id": "journey-1",
        "owner_id": "P1",
        "kind": "passenger_request",
        "pickup_latitude": 6.9344,
        "pickup_longitude": 79.8428,
        "pickup_address": "Colombo Fort",
        "dropoff_latitude": 7.2906,
        "dropoff_longitude": 80.6337,
        "dropoff_address": "Kandy",
        # Среда, 08:00 по Коломбо
        "scheduled_at": datetime(2024, 5, 15, 2, 30, tzinfo=timezone.utc),
        "distance_meters": 10000,
        "duration_seconds": 1800,
        "vehicle_types": ["car"],
        "currency": "LKR",
    }


@pytest.fixture
def sample_journey(sample_journey_data: dict[str, Any]) -> Journey:
    """Открытая поездка пассажира P1."""
    return Journey(**sample_journey_data)


# =============================================================================
# УТИЛИТЫ
# =============================================================================

@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file
