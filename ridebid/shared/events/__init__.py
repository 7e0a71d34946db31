# ridebid/shared/events/__init__.py
"""
Доменные события маркетплейса.
"""

from ridebid.shared.events.base import DomainEvent
from ridebid.shared.events.bid_events import BidAccepted, BidPlaced, JourneyCancelled

__all__ = [
    "DomainEvent",
    "BidPlaced",
    "BidAccepted",
    "JourneyCancelled",
]
