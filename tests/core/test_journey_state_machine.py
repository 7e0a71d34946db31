# tests/core/test_journey_state_machine.py
"""
Тесты для машин состояний поездки и ставки.
"""

import pytest

from ridebid.common.constants import BidStatus, JourneyStatus
from ridebid.core.auction.state_machine import BidStateMachine, JourneyStateMachine


class TestJourneyStateMachine:

    @pytest.mark.parametrize(
        "current,new",
        [
            (JourneyStatus.OPEN, JourneyStatus.CONFIRMED),
            (JourneyStatus.OPEN, JourneyStatus.CANCELLED),
            (JourneyStatus.CONFIRMED, JourneyStatus.IN_PROGRESS),
            (JourneyStatus.CONFIRMED, JourneyStatus.CANCELLED),
            (JourneyStatus.IN_PROGRESS, JourneyStatus.COMPLETED),
        ],
    )
    def test_allowed(self, current: JourneyStatus, new: JourneyStatus) -> None:
        assert JourneyStateMachine.can_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (JourneyStatus.CONFIRMED, JourneyStatus.OPEN),
            (JourneyStatus.OPEN, JourneyStatus.COMPLETED),
            (JourneyStatus.IN_PROGRESS, JourneyStatus.CANCELLED),
            (JourneyStatus.COMPLETED, JourneyStatus.CANCELLED),
            (JourneyStatus.CANCELLED, JourneyStatus.OPEN),
        ],
    )
    def test_forbidden(self, current: JourneyStatus, new: JourneyStatus) -> None:
        assert not JourneyStateMachine.can_transition(current, new)

    def test_string_statuses(self) -> None:
        assert JourneyStateMachine.can_transition("open", "confirmed")

    def test_unknown_status(self) -> None:
        assert not JourneyStateMachine.can_transition("open", "teleported")

    def test_cancellable(self) -> None:
        assert JourneyStateMachine.CANCELLABLE == [JourneyStatus.OPEN, JourneyStatus.CONFIRMED]


class TestBidStateMachine:

    def test_pending_can_be_decided(self) -> None:
        assert BidStateMachine.can_transition(BidStatus.PENDING, BidStatus.ACCEPTED)
        assert BidStateMachine.can_transition(BidStatus.PENDING, BidStatus.REJECTED)

    @pytest.mark.parametrize("terminal", [BidStatus.ACCEPTED, BidStatus.REJECTED])
    def test_decided_is_final(self, terminal: BidStatus) -> None:
        for target in BidStatus:
            assert not BidStateMachine.can_transition(terminal, target)
