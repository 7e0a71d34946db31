# ridebid/shared/events/base.py
"""
Базовые классы для доменных событий.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class DomainEvent(BaseModel):
    """
    Базовый класс для всех доменных событий.

    Все события должны быть:
    - Иммутабельными
    - Сериализуемыми в JSON
    - Идемпотентными при обработке (по id ставки / поездки)
    """

    model_config = ConfigDict(frozen=True)

    event_type: str = ""

    def to_payload(self) -> dict[str, Any]:
        """Возвращает JSON-совместимый payload без служебного event_type."""
        return self.model_dump(mode="json", exclude={"event_type"})
