"""Protocol services over the auction contracts"""
from auctionhouse.core.services.base import AuctionService
from auctionhouse.core.services.english import EnglishAuctionService
from auctionhouse.core.services.allpay import AllPayAuctionService
from auctionhouse.core.services.dutch import (
    DutchAuctionService,
    LinearAuctionService,
    ExponentialAuctionService,
    LogarithmicAuctionService,
)
from auctionhouse.core.services.vickrey import VickreyAuctionService
from auctionhouse.core.services.registry import AuctionServiceRegistry, SERVICE_CLASSES

__all__ = [
    "AuctionService",
    "EnglishAuctionService",
    "AllPayAuctionService",
    "DutchAuctionService",
    "LinearAuctionService",
    "ExponentialAuctionService",
    "LogarithmicAuctionService",
    "VickreyAuctionService",
    "AuctionServiceRegistry",
    "SERVICE_CLASSES",
]
