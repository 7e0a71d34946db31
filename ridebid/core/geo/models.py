# ridebid/core/geo/models.py
"""
Модели геоданных: координаты, снимок положения водителя, кандидаты поиска.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from ridebid.common.exceptions import ValidationError


@dataclass(frozen=True)
class Coordinates:
    """Точка WGS-84. Широта в [-90, 90], долгота в [-180, 180]."""
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        validate_coordinates(self.latitude, self.longitude)


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Проверяет диапазоны координат, иначе ValidationError."""
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        raise ValidationError("Coordinates must be numeric")
    if math.isnan(latitude) or math.isnan(longitude):
        raise ValidationError("Coordinates must not be NaN")
    if not -90.0 <= latitude <= 90.0:
        raise ValidationError(f"Latitude out of range: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise ValidationError(f"Longitude out of range: {longitude}")


@dataclass(frozen=True)
class DriverLocation:
    """Снимок положения водителя (только чтение)."""
    driver_id: str
    coordinates: Coordinates
    available: bool = True
    vehicle_types: tuple[str, ...] = field(default_factory=tuple)
    rating: Optional[float] = None


@dataclass(frozen=True)
class NearbyDriver:
    """Водитель в радиусе поиска с пересчитанным расстоянием."""
    driver: DriverLocation
    distance_meters: float

    @property
    def driver_id(self) -> str:
        return self.driver.driver_id

    @property
    def distance_km(self) -> float:
        return self.distance_meters / 1000.0


@dataclass(frozen=True)
class ScoredDriver:
    """Кандидат с итоговым баллом ранжирования."""
    candidate: NearbyDriver
    score: float

    @property
    def driver_id(self) -> str:
        return self.candidate.driver_id
