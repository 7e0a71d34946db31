# ridebid/core/pricing/demand.py
"""
Стратегии коэффициента спроса по адресу подачи.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from ridebid.config.loader import DemandZone


class DemandStrategy(Protocol):
    """Возвращает множитель спроса для адреса подачи."""

    def multiplier(self, pickup_address: str | None) -> float:
        ...


class KeywordDemandStrategy:
    """
    Упорядоченные правила (ключевые слова -> множитель).
    Совпадение: подстрока без учёта регистра, побеждает первое правило.
    """

    def __init__(self, zones: Iterable[DemandZone], default: float = 1.0) -> None:
        self._rules = [
            (tuple(k.lower() for k in zone.keywords if k), zone.multiplier)
            for zone in zones
        ]
        self._default = default

    def multiplier(self, pickup_address: str | None) -> float:
        if not pickup_address:
            return self._default

        address = pickup_address.lower()
        for keywords, multiplier in self._rules:
            if any(keyword in address for keyword in keywords):
                return multiplier
        return self._default
