# ridebid/core/auction/models.py
"""
Модели данных аукциона: поездка (journey) и ставка (bid).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from ridebid.common.constants import BidStatus, JourneyKind, JourneyStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Journey(BaseModel):
    """Модель поездки, на которую делают ставки."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="UUID поездки")
    owner_id: str = Field(..., description="ID владельца (пассажир или водитель)")
    kind: JourneyKind = Field(JourneyKind.PASSENGER_REQUEST, description="Тип поездки")

    # Локации
    pickup_latitude: float = Field(..., ge=-90.0, le=90.0, description="Широта подачи")
    pickup_longitude: float = Field(..., ge=-180.0, le=180.0, description="Долгота подачи")
    pickup_address: str = Field("", description="Адрес подачи")
    dropoff_latitude: float = Field(..., ge=-90.0, le=90.0, description="Широта назначения")
    dropoff_longitude: float = Field(..., ge=-180.0, le=180.0, description="Долгота назначения")
    dropoff_address: str = Field("", description="Адрес назначения")

    # Оценки маршрута
    scheduled_at: datetime = Field(..., description="Время отправления")
    distance_meters: Optional[int] = Field(None, ge=0, description="Оценка расстояния, м")
    duration_seconds: Optional[int] = Field(None, ge=0, description="Оценка времени, с")
    vehicle_types: list[str] = Field(default_factory=list, description="Типы транспорта")
    currency: str = Field("LKR", description="Валюта")

    # Статус и подтверждение
    status: JourneyStatus = Field(JourneyStatus.OPEN, description="Статус поездки")
    agreed_fare: Optional[float] = Field(None, description="Согласованная цена")
    counterparty_id: Optional[str] = Field(None, description="ID второй стороны")

    # Временные метки
    created_at: datetime = Field(default_factory=utcnow, description="Время создания")
    updated_at: datetime = Field(default_factory=utcnow, description="Время изменения")
    confirmed_at: Optional[datetime] = Field(None, description="Время подтверждения")

    @property
    def is_open(self) -> bool:
        """Принимает ли поездка ставки."""
        return self.status == JourneyStatus.OPEN


class Bid(BaseModel):
    """Модель ставки."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="UUID ставки")
    journey_id: str = Field(..., description="ID поездки")
    bidder_id: str = Field(..., description="ID участника")
    amount: float = Field(..., gt=0.0, description="Сумма ставки")
    message: Optional[str] = Field(None, description="Сообщение владельцу")
    status: BidStatus = Field(BidStatus.PENDING, description="Статус ставки")
    created_at: datetime = Field(default_factory=utcnow, description="Время создания")
    decided_at: Optional[datetime] = Field(None, description="Время решения")

    @property
    def is_pending(self) -> bool:
        return self.status == BidStatus.PENDING
