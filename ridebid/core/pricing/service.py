# ridebid/core/pricing/service.py
"""
Pricing Advisor: рекомендуемый диапазон ставки для поездки.
Чистые детерминированные вычисления, без ввода-вывода.
"""

from __future__ import annotations

import math
from datetime import datetime
from statistics import fmean
from typing import TYPE_CHECKING, Iterable, Optional
from zoneinfo import ZoneInfo

from ridebid.common.exceptions import ValidationError
from ridebid.common.logger import get_logger
from ridebid.config.loader import PricingSettings
from ridebid.core.pricing.demand import DemandStrategy, KeywordDemandStrategy
from ridebid.core.pricing.models import BidSuggestion

if TYPE_CHECKING:
    from ridebid.core.auction.models import Journey

logger = get_logger("pricing")


def round_half_up(value: float, step: float) -> float:
    """Округляет до ближайшего кратного step, половина: вверх."""
    return math.floor(value / step + 0.5) * step


class PricingAdvisor:
    """Рассчитывает подсказку цены ставки."""

    def __init__(
        self,
        pricing_settings: PricingSettings | None = None,
        demand_strategy: DemandStrategy | None = None,
        timezone: str | None = None,
    ) -> None:
        """
        Args:
            pricing_settings: Тарифы и таблицы (из конфига если None)
            demand_strategy: Стратегия спроса (по умолчанию: ключевые слова из конфига)
            timezone: Часовой пояс региона для пиковых часов
        """
        if pricing_settings is None or timezone is None:
            from ridebid.config import settings
            pricing_settings = pricing_settings or settings.pricing
            timezone = timezone or settings.domain.TIMEZONE

        self._settings = pricing_settings
        self._demand = demand_strategy or KeywordDemandStrategy(pricing_settings.DEMAND_ZONES)
        self._tz = ZoneInfo(timezone)

    def time_multiplier(self, scheduled_at: datetime) -> float:
        """Пиковые часы имеют приоритет над выходными."""
        local = scheduled_at.astimezone(self._tz) if scheduled_at.tzinfo else scheduled_at

        if local.hour in self._settings.PEAK_HOURS:
            return self._settings.PEAK_MULTIPLIER
        if local.weekday() in self._settings.WEEKEND_DAYS:
            return self._settings.WEEKEND_MULTIPLIER
        return 1.0

    def vehicle_premium(self, vehicle_types: Optional[Iterable[str]]) -> float:
        """
        Надбавка за тип транспорта.
        Пустой список: базовый тип, неизвестный тип: 1.0,
        несколько типов: среднее или максимум по настройке.
        """
        premiums_table = self._settings.VEHICLE_PREMIUMS
        types = [str(t).strip().lower() for t in (vehicle_types or []) if str(t).strip()]
        if not types:
            return premiums_table[self._settings.BASELINE_VEHICLE_TYPE]

        premiums = [premiums_table.get(t, 1.0) for t in types]
        if self._settings.VEHICLE_PREMIUM_POLICY == "max":
            return max(premiums)
        return fmean(premiums)

    def suggest_bid(
        self,
        distance_km: float,
        duration_minutes: float,
        pickup_address: Optional[str],
        scheduled_at: datetime,
        vehicle_types: Optional[Iterable[str]] = None,
        currency: Optional[str] = None,
    ) -> BidSuggestion:
        """
        Рассчитывает рекомендуемый диапазон ставки.

        Args:
            distance_km: Расстояние в километрах
            duration_minutes: Время поездки в минутах
            pickup_address: Адрес подачи (для коэффициента спроса)
            scheduled_at: Время отправления
            vehicle_types: Типы транспорта
            currency: Валюта (из конфига если None)

        Returns:
            BidSuggestion с min <= recommended <= max
        """
        for name, value in (("distance_km", distance_km), ("duration_minutes", duration_minutes)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or value < 0:
                raise ValidationError(f"{name} must be a non-negative number, got {value!r}")

        s = self._settings
        base = distance_km * s.FARE_PER_KM + duration_minutes * s.FARE_PER_MINUTE
        demand = self._demand.multiplier(pickup_address)
        time_factor = self.time_multiplier(scheduled_at)
        vehicle = self.vehicle_premium(vehicle_types)

        recommended = max(base * demand * time_factor * vehicle, s.MINIMUM_FARE)
        band = s.SUGGESTION_BAND_PERCENT / 100.0

        suggestion = BidSuggestion(
            min=round_half_up(recommended * (1.0 - band), s.ROUNDING_STEP),
            recommended=round_half_up(recommended, s.ROUNDING_STEP),
            max=round_half_up(recommended * (1.0 + band), s.ROUNDING_STEP),
            currency=currency or s.CURRENCY,
        )

        logger.debug(
            "Подсказка ставки: base=%.2f demand=%.2f time=%.2f vehicle=%.2f -> %s",
            base, demand, time_factor, vehicle, suggestion.recommended,
        )
        return suggestion

    def suggest_for_journey(self, journey: Journey) -> BidSuggestion:
        """Подсказка по данным поездки; без оценок: значения по умолчанию."""
        distance_km = (
            journey.distance_meters / 1000.0
            if journey.distance_meters is not None
            else self._settings.DEFAULT_DISTANCE_KM
        )
        duration_minutes = (
            journey.duration_seconds / 60.0
            if journey.duration_seconds is not None
            else self._settings.DEFAULT_DURATION_MINUTES
        )
        return self.suggest_bid(
            distance_km=distance_km,
            duration_minutes=duration_minutes,
            pickup_address=journey.pickup_address,
            scheduled_at=journey.scheduled_at,
            vehicle_types=journey.vehicle_types,
            currency=journey.currency,
        )
