# ridebid/shared/events/bid_events.py
"""
События аукциона ставок.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from ridebid.shared.events.base import DomainEvent


class BidPlaced(DomainEvent):
    """Событие: ставка размещена (уведомить владельца поездки)."""

    event_type: Literal["bid_placed"] = "bid_placed"

    journey_id: str
    bid_id: str
    bidder_id: str
    amount: float
    owner_id: str


class BidAccepted(DomainEvent):
    """Событие: ставка принята, поездка подтверждена."""

    event_type: Literal["bid_accepted"] = "bid_accepted"

    journey_id: str
    bid_id: str
    bidder_id: str
    owner_id: str
    agreed_fare: float
    scheduled_at: datetime


class JourneyCancelled(DomainEvent):
    """Событие: поездка отменена владельцем."""

    event_type: Literal["journey_cancelled"] = "journey_cancelled"

    journey_id: str
    owner_id: str
    previous_status: str
    rejected_bid_ids: list[str] = []
