# ridebid/core/geo/service.py
"""
Geo-Matcher: поиск ближайших доступных водителей, расстояния,
привязка к дороге и ранжирование кандидатов.
"""

from __future__ import annotations

import math
from typing import Optional

from ridebid.common.constants import TypeMsg
from ridebid.common.exceptions import ValidationError
from ridebid.common.logger import log_info, log_warning
from ridebid.config.loader import GeoSettings
from ridebid.core.geo.models import (
    Coordinates,
    DriverLocation,
    NearbyDriver,
    ScoredDriver,
    validate_coordinates,
)
from ridebid.core.geo.repository import DriverLocationStore
from ridebid.core.geo.snapper import IdentitySnapper, RoadSnapper

EARTH_RADIUS_KM = 6371.0

# Рейтинг водителя по шкале 0..5
MAX_RATING = 5.0


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """
    Вычисляет расстояние между двумя точками (в км) по формуле Haversine.
    """
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlon = math.radians(b.longitude - a.longitude)

    h = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) *
         math.sin(dlon / 2) ** 2)

    # min() защищает asin от погрешности округления при h чуть больше 1
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


class GeoMatcher:
    """
    Сервис геопоиска водителей.

    Хранилище может вернуть надмножество кандидатов (индекс приблизителен),
    поэтому расстояния пересчитываются и фильтруются здесь.
    """

    def __init__(
        self,
        store: DriverLocationStore,
        snapper: RoadSnapper | None = None,
        geo_settings: GeoSettings | None = None,
    ) -> None:
        """
        Args:
            store: Источник положений водителей
            snapper: Привязка к дороге (по умолчанию: без изменений)
            geo_settings: Настройки поиска (из конфига если None)
        """
        if geo_settings is None:
            from ridebid.config import settings
            geo_settings = settings.geo

        self._store = store
        self._snapper = snapper or IdentitySnapper()
        self._settings = geo_settings

    async def _resolve_radius(self, radius_km: Optional[float]) -> float:
        """Проверяет радиус и применяет политику превышения максимума."""
        if radius_km is None:
            radius_km = self._settings.DEFAULT_SEARCH_RADIUS_KM

        if isinstance(radius_km, bool) or not isinstance(radius_km, (int, float)) or math.isnan(radius_km):
            raise ValidationError(f"Invalid search radius: {radius_km!r}")
        if radius_km <= 0:
            raise ValidationError(f"Search radius must be positive, got {radius_km}")

        max_radius = self._settings.MAX_SEARCH_RADIUS_KM
        if radius_km > max_radius:
            if self._settings.RADIUS_OVERFLOW_POLICY == "reject":
                raise ValidationError(f"Search radius {radius_km} km exceeds maximum {max_radius} km")
            await log_warning(
                f"Радиус {radius_km} км больше максимума, ограничен до {max_radius} км",
                logger_name="geo",
            )
            radius_km = max_radius

        return float(radius_km)

    async def find_nearby(
        self,
        center: Coordinates,
        radius_km: Optional[float] = None,
        vehicle_type: Optional[str] = None,
    ) -> list[NearbyDriver]:
        """
        Ищет доступных водителей в радиусе от точки.

        Args:
            center: Центр поиска
            radius_km: Радиус в км (из конфига если None)
            vehicle_type: Фильтр по типу транспорта (точное совпадение)

        Returns:
            Водители по возрастанию расстояния, при равенстве: по id

        Raises:
            ValidationError: некорректные координаты или радиус
            InfrastructureError: хранилище недоступно
        """
        validate_coordinates(center.latitude, center.longitude)
        radius = await self._resolve_radius(radius_km)
        wanted_type = str(vehicle_type).strip().lower() if vehicle_type else None

        candidates = await self._store.find_within(center, radius)

        nearby: list[NearbyDriver] = []
        for driver in candidates:
            if not driver.available:
                continue
            if wanted_type is not None and wanted_type not in _normalized_types(driver):
                continue

            distance_km = haversine_km(center, driver.coordinates)
            if distance_km > radius:
                continue

            nearby.append(NearbyDriver(driver=driver, distance_meters=distance_km * 1000.0))

        nearby.sort(key=lambda n: (n.distance_meters, n.driver_id))

        await log_info(
            f"Найдено {len(nearby)} водителей в радиусе {radius} км",
            type_msg=TypeMsg.DEBUG,
            logger_name="geo",
        )
        return nearby

    @staticmethod
    def distance(a: Coordinates, b: Coordinates) -> float:
        """Расстояние между точками в км (Haversine)."""
        validate_coordinates(a.latitude, a.longitude)
        validate_coordinates(b.latitude, b.longitude)
        return haversine_km(a, b)

    async def snap_to_road(self, point: Coordinates) -> Coordinates:
        """Привязывает точку к ближайшей дороге."""
        validate_coordinates(point.latitude, point.longitude)
        return await self._snapper.snap(point)

    async def rank_candidates(
        self,
        center: Coordinates,
        radius_km: Optional[float] = None,
        preferred_vehicle_type: Optional[str] = None,
    ) -> list[ScoredDriver]:
        """
        Ранжирует водителей в радиусе по расстоянию, рейтингу и типу транспорта.

        score = w_d * (1 - d/r) + w_r * rating/5 + w_v * (1.0 | 0.5)
        Без рейтинга его вклад равен 0.

        Returns:
            Кандидаты по убыванию балла, при равенстве: по id
        """
        radius = await self._resolve_radius(radius_km)
        nearby = await self.find_nearby(center, radius)
        preferred = str(preferred_vehicle_type).strip().lower() if preferred_vehicle_type else None

        scored = [
            ScoredDriver(candidate=candidate, score=self._score(candidate, radius, preferred))
            for candidate in nearby
        ]
        scored.sort(key=lambda s: (-s.score, s.driver_id))
        return scored

    def _score(self, candidate: NearbyDriver, radius_km: float, preferred: Optional[str]) -> float:
        distance_score = max(0.0, 1.0 - candidate.distance_km / radius_km)

        rating = candidate.driver.rating
        rating_score = min(max(rating, 0.0), MAX_RATING) / MAX_RATING if rating is not None else 0.0

        if preferred is not None and preferred in _normalized_types(candidate.driver):
            vehicle_score = 1.0
        else:
            vehicle_score = 0.5

        return (
            self._settings.SCORE_WEIGHT_DISTANCE * distance_score
            + self._settings.SCORE_WEIGHT_RATING * rating_score
            + self._settings.SCORE_WEIGHT_VEHICLE * vehicle_score
        )


def _normalized_types(driver: DriverLocation) -> set[str]:
    return {t.strip().lower() for t in driver.vehicle_types}
