# ridebid/common/exceptions.py
"""
Иерархия ошибок маркетплейса.

Флаг ``retryable`` подсказывает вызывающей стороне, имеет ли смысл
повторять операцию (после перечитывания состояния или с backoff).
Движок сам никогда не повторяет записи.
"""

from __future__ import annotations


class MarketplaceError(Exception):
    """Базовая ошибка домена."""

    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MarketplaceError):
    """Некорректные входные данные (координаты, радиус, сумма)."""


class NotFoundError(MarketplaceError):
    """Поездка или ставка не найдена."""


class ForbiddenError(MarketplaceError):
    """Нарушение прав владения."""


class ConflictError(MarketplaceError):
    """Дубликат ставки или проигранная гонка. Повтор: после перечитывания состояния."""

    retryable = True


class InvalidStateError(ConflictError):
    """Поездка не в статусе OPEN."""


class InfrastructureError(MarketplaceError):
    """Хранилище недоступно, таймаут или откат транзакции."""

    retryable = True


class DataIntegrityError(MarketplaceError):
    """Нарушена целостность данных (ставка без поездки)."""
