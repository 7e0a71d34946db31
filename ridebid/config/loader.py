# ridebid/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины — config/config.json (плоский словарь ключей).
Секреты и адреса инфраструктуры переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации (можно переопределить через RIDEBID_CONFIG)."""
    override = os.getenv("RIDEBID_CONFIG")
    if override:
        return Path(override)
    return get_project_root() / "config" / "config.json"


def load_config_json(path: Path | None = None) -> dict[str, Any]:
    """Загружает config.json и возвращает словарь без ключей-комментариев."""
    config_path = path or get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {k: v for k, v in data.items() if not k.startswith("_comment_")}


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "ridebid"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_FORMAT: Literal["colored", "json"] = "colored"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_MAX_BYTES: int = 10485760


class DomainSettings(BaseModel):
    """Региональные настройки."""
    TIMEZONE: str = "Asia/Colombo"


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "ridebid"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 5
    DB_MAX_POOL_SIZE: int = 20
    DB_COMMAND_TIMEOUT: float = 10.0

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RedisSettings(BaseModel):
    """Настройки Redis."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "ridebid"
    REDIS_MAX_CONNECTIONS: int = 50
    REDIS_SOCKET_TIMEOUT: float = 5.0

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class RabbitMQSettings(BaseModel):
    """Настройки RabbitMQ."""
    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_VHOST: str = "/"
    RABBITMQ_EXCHANGE: str = "ridebid.events"
    RABBITMQ_PUBLISH_TIMEOUT: float = 5.0

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к RabbitMQ."""
        return (
            f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}"
            f"@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}{self.RABBITMQ_VHOST}"
        )


class GoogleMapsSettings(BaseModel):
    """Настройки Google Maps (Roads API для привязки к дороге)."""
    GOOGLE_MAPS_API_KEY: str = ""
    SNAP_TO_ROAD_ENABLED: bool = False
    ROADS_API_TIMEOUT: float = 5.0

    @field_validator("GOOGLE_MAPS_API_KEY", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает API ключ из переменных окружения."""
        if not v:
            return os.getenv("GOOGLE_MAPS_API_KEY", "")
        return v


class GeoSettings(BaseModel):
    """Настройки поиска водителей."""
    DEFAULT_SEARCH_RADIUS_KM: float = 5.0
    MAX_SEARCH_RADIUS_KM: float = 50.0
    RADIUS_OVERFLOW_POLICY: Literal["clamp", "reject"] = "clamp"
    SCORE_WEIGHT_DISTANCE: float = 0.6
    SCORE_WEIGHT_RATING: float = 0.3
    SCORE_WEIGHT_VEHICLE: float = 0.1

    @field_validator("MAX_SEARCH_RADIUS_KM")
    @classmethod
    def check_positive(cls, v: float) -> float:
        """Максимальный радиус должен быть положительным."""
        if v <= 0:
            raise ValueError("MAX_SEARCH_RADIUS_KM должен быть > 0")
        return v


class DemandZone(BaseModel):
    """Правило повышенного спроса: ключевые слова адреса -> множитель."""
    keywords: list[str]
    multiplier: float = Field(..., gt=0)


def _default_demand_zones() -> list[DemandZone]:
    return [
        DemandZone(keywords=["airport", "cmb"], multiplier=1.3),
        DemandZone(keywords=["fort", "colombo 1"], multiplier=1.2),
        DemandZone(keywords=["galle face", "one galle face"], multiplier=1.15),
    ]


def _default_vehicle_premiums() -> dict[str, float]:
    return {
        "car": 1.0,
        "van": 1.5,
        "suv": 1.4,
        "tuktuk": 0.8,
        "bike": 0.6,
    }


class PricingSettings(BaseModel):
    """Параметры подсказки цены ставки."""
    FARE_PER_KM: float = 50.0
    FARE_PER_MINUTE: float = 5.0
    MINIMUM_FARE: float = 250.0
    PEAK_HOURS: list[int] = Field(default_factory=lambda: [7, 8, 9, 17, 18, 19])
    PEAK_MULTIPLIER: float = 1.25
    # Дни недели по datetime.weekday(): 5: суббота, 6: воскресенье
    WEEKEND_DAYS: list[int] = Field(default_factory=lambda: [5, 6])
    WEEKEND_MULTIPLIER: float = 1.15
    VEHICLE_PREMIUMS: dict[str, float] = Field(default_factory=_default_vehicle_premiums)
    BASELINE_VEHICLE_TYPE: str = "car"
    VEHICLE_PREMIUM_POLICY: Literal["mean", "max"] = "mean"
    SUGGESTION_BAND_PERCENT: float = 15.0
    ROUNDING_STEP: float = 50.0
    CURRENCY: str = "LKR"
    DEMAND_ZONES: list[DemandZone] = Field(default_factory=_default_demand_zones)
    DEFAULT_DISTANCE_KM: float = 10.0
    DEFAULT_DURATION_MINUTES: float = 30.0

    @field_validator("PEAK_HOURS")
    @classmethod
    def check_hours(cls, v: list[int]) -> list[int]:
        """Часы пика должны быть в диапазоне 0..23."""
        for hour in v:
            if not 0 <= hour <= 23:
                raise ValueError(f"Некорректный час пика: {hour}")
        return v

    @field_validator("ROUNDING_STEP")
    @classmethod
    def check_step(cls, v: float) -> float:
        """Шаг округления должен быть положительным."""
        if v <= 0:
            raise ValueError("ROUNDING_STEP должен быть > 0")
        return v

    @model_validator(mode="after")
    def check_baseline(self) -> "PricingSettings":
        """Базовый тип транспорта должен иметь надбавку."""
        if self.BASELINE_VEHICLE_TYPE not in self.VEHICLE_PREMIUMS:
            raise ValueError(
                f"BASELINE_VEHICLE_TYPE={self.BASELINE_VEHICLE_TYPE} отсутствует в VEHICLE_PREMIUMS"
            )
        return self


class AuctionSettings(BaseModel):
    """Настройки аукциона ставок."""
    PASSENGER_REQUEST_BID_ORDER: Literal["asc", "desc"] = "asc"
    DRIVER_ROUTE_BID_ORDER: Literal["asc", "desc"] = "desc"
    BID_MESSAGE_MAX_LENGTH: int = 300


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

# Переменные окружения, которые переопределяют значения из config.json
_ENV_OVERRIDES: tuple[str, ...] = (
    "ENVIRONMENT",
    "LOG_LEVEL",
    "DB_HOST",
    "DB_PORT",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_PASSWORD",
    "RABBITMQ_HOST",
    "RABBITMQ_PORT",
    "RABBITMQ_USER",
    "RABBITMQ_PASSWORD",
    "GOOGLE_MAPS_API_KEY",
)


def _section(model: type[BaseModel], data: dict[str, Any]) -> BaseModel:
    """Собирает секцию настроек из плоского словаря: берёт только известные поля."""
    values: dict[str, Any] = {}
    for field_name in model.model_fields:
        if field_name in _ENV_OVERRIDES and os.getenv(field_name):
            values[field_name] = os.getenv(field_name)
        elif field_name in data:
            values[field_name] = data[field_name]
    return model(**values)


class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    domain: DomainSettings = Field(default_factory=DomainSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    rabbitmq: RabbitMQSettings = Field(default_factory=RabbitMQSettings)
    google_maps: GoogleMapsSettings = Field(default_factory=GoogleMapsSettings)
    geo: GeoSettings = Field(default_factory=GeoSettings)
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    auction: AuctionSettings = Field(default_factory=AuctionSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Создаёт Settings из плоского словаря ключей config.json."""
        return cls(
            system=_section(SystemSettings, data),
            logging=_section(LoggingSettings, data),
            domain=_section(DomainSettings, data),
            database=_section(DatabaseSettings, data),
            redis=_section(RedisSettings, data),
            rabbitmq=_section(RabbitMQSettings, data),
            google_maps=_section(GoogleMapsSettings, data),
            geo=_section(GeoSettings, data),
            pricing=_section(PricingSettings, data),
            auction=_section(AuctionSettings, data),
        )

    @classmethod
    def from_config_json(cls, path: Path | None = None) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Если файла нет, используются значения по умолчанию (и переменные окружения).
        """
        config_path = path or get_config_path()
        if not config_path.exists():
            return cls.from_dict({})
        return cls.from_dict(load_config_json(config_path))


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Перед чтением подгружает .env из корня проекта.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


settings = get_settings()
