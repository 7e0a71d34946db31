# ridebid/core/pricing/models.py
"""
Модели подсказки цены.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class BidSuggestion(BaseModel):
    """Рекомендуемый диапазон ставки."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(..., ge=0.0, description="Нижняя граница")
    recommended: float = Field(..., ge=0.0, description="Рекомендуемая ставка")
    max: float = Field(..., ge=0.0, description="Верхняя граница")
    currency: str = Field(..., description="Валюта")
