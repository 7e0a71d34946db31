# ridebid/core/geo/repository.py
"""
Хранилище положений водителей.
Redis GEO-индекс drivers:locations + хеш driver:{id} с атрибутами.
"""

from __future__ import annotations

from typing import Protocol

from ridebid.common.exceptions import ValidationError
from ridebid.common.logger import log_warning
from ridebid.core.geo.models import Coordinates, DriverLocation
from ridebid.infra.redis_client import RedisClient

DRIVER_LOCATIONS_KEY = "drivers:locations"
DRIVER_HASH_PREFIX = "driver:"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class DriverLocationStore(Protocol):
    """Источник снимков положения водителей."""

    async def find_within(self, center: Coordinates, radius_km: float) -> list[DriverLocation]:
        """
        Возвращает водителей в радиусе (допускается надмножество:
        GeoMatcher сам пересчитывает расстояния и фильтрует).
        """
        ...


def parse_driver_hash(driver_id: str, coordinates: Coordinates, data: dict[str, str]) -> DriverLocation:
    """Собирает DriverLocation из полей хеша driver:{id}."""
    available = str(data.get("available", "0")).strip().lower() in _TRUE_VALUES

    raw_types = data.get("vehicle_types") or ""
    vehicle_types = tuple(t.strip().lower() for t in raw_types.split(",") if t.strip())

    rating: float | None = None
    raw_rating = data.get("rating")
    if raw_rating not in (None, ""):
        try:
            rating = float(raw_rating)
        except ValueError:
            rating = None

    return DriverLocation(
        driver_id=driver_id,
        coordinates=coordinates,
        available=available,
        vehicle_types=vehicle_types,
        rating=rating,
    )


class RedisDriverLocationStore:
    """Поиск водителей через Redis GEO."""

    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    async def find_within(self, center: Coordinates, radius_km: float) -> list[DriverLocation]:
        hits = await self._redis.georadius(
            DRIVER_LOCATIONS_KEY,
            center.longitude,
            center.latitude,
            radius_km,
            unit="km",
        )
        if not hits:
            return []

        attributes = await self._redis.hgetall_many(
            [f"{DRIVER_HASH_PREFIX}{member}" for member, _, _, _ in hits]
        )

        drivers: list[DriverLocation] = []
        for (member, _dist, lon, lat), data in zip(hits, attributes):
            if not data:
                # Нет атрибутов: водитель считается недоступным
                continue
            try:
                coordinates = Coordinates(latitude=lat, longitude=lon)
            except ValidationError:
                await log_warning(f"Некорректные координаты водителя {member}: {lat},{lon}", logger_name="geo")
                continue
            drivers.append(parse_driver_hash(str(member), coordinates, data))

        return drivers
