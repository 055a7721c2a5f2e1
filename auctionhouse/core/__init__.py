"""Core auction client: references, snapshots, services and tracking"""
from auctionhouse.core.refs import AuctionRef, ProtocolTag, decode, encode
from auctionhouse.core.models import AuctionState, BidEvent
from auctionhouse.core.services.registry import AuctionServiceRegistry
from auctionhouse.core.tracker import AuctionTracker

__all__ = [
    "AuctionRef",
    "ProtocolTag",
    "decode",
    "encode",
    "AuctionState",
    "BidEvent",
    "AuctionServiceRegistry",
    "AuctionTracker",
]
