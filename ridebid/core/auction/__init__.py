# ridebid/core/auction/__init__.py
"""
Auction Engine: поездки, ставки и их принятие.
"""

from ridebid.core.auction.models import Bid, Journey
from ridebid.core.auction.repository import AuctionStore, AuctionUnitOfWork, PostgresAuctionStore
from ridebid.core.auction.service import AuctionEngine
from ridebid.core.auction.state_machine import BidStateMachine, JourneyStateMachine

__all__ = [
    "Bid",
    "Journey",
    "AuctionStore",
    "AuctionUnitOfWork",
    "PostgresAuctionStore",
    "AuctionEngine",
    "BidStateMachine",
    "JourneyStateMachine",
]
