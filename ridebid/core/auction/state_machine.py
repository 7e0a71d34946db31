# ridebid/core/auction/state_machine.py
"""
Допустимые переходы статусов поездки и ставки.
"""

from __future__ import annotations

from ridebid.common.constants import BidStatus, JourneyStatus


class JourneyStateMachine:
    ALLOWED_TRANSITIONS = {
        JourneyStatus.OPEN: [JourneyStatus.CONFIRMED, JourneyStatus.CANCELLED],
        JourneyStatus.CONFIRMED: [JourneyStatus.IN_PROGRESS, JourneyStatus.CANCELLED],
        JourneyStatus.IN_PROGRESS: [JourneyStatus.COMPLETED],
        JourneyStatus.COMPLETED: [],
        JourneyStatus.CANCELLED: [],
    }

    # Статусы, из которых владелец может отменить поездку
    CANCELLABLE = [
        status for status, targets in ALLOWED_TRANSITIONS.items()
        if JourneyStatus.CANCELLED in targets
    ]

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        try:
            curr = JourneyStatus(current_status)
            new = JourneyStatus(new_status)
            return new in JourneyStateMachine.ALLOWED_TRANSITIONS.get(curr, [])
        except ValueError:
            return False


class BidStateMachine:
    ALLOWED_TRANSITIONS = {
        BidStatus.PENDING: [BidStatus.ACCEPTED, BidStatus.REJECTED],
        BidStatus.ACCEPTED: [],
        BidStatus.REJECTED: [],
    }

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        try:
            curr = BidStatus(current_status)
            new = BidStatus(new_status)
            return new in BidStateMachine.ALLOWED_TRANSITIONS.get(curr, [])
        except ValueError:
            return False
