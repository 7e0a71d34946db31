# ridebid/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class JourneyStatus(str, Enum):
    """Статусы поездки (journey)."""
    OPEN = "open"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class JourneyKind(str, Enum):
    """Кто разместил поездку."""
    PASSENGER_REQUEST = "passenger_request"
    DRIVER_ROUTE = "driver_route"

    def __str__(self) -> str:
        return self.value


class BidStatus(str, Enum):
    """Статусы ставки."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value


class EventTopics:
    """Топики событий маркетплейса."""
    BID_PLACED = "bid_placed"
    BID_ACCEPTED = "bid_accepted"
    JOURNEY_CANCELLED = "journey_cancelled"
