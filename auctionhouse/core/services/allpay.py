"""
All-pay auction service.

Same open ascending mechanics as English, except every bid is kept by the
auctioneer: losers are not refunded. Each placeBid adds to the bidder's
running total.
"""

from auctionhouse.core.models import AuctionState
from auctionhouse.core.refs import ProtocolTag
from auctionhouse.core.services.english import AscendingAuctionService


class AllPayAuctionService(AscendingAuctionService):
    protocol = ProtocolTag.ALLPAY

    def _check_bid(self, state: AuctionState, amount: int):
        # amount is an increment on the bidder's total, so only the
        # no-bids case can be checked without a per-bidder read
        if not state.has_bids and amount < state.starting_price:
            raise ValueError(f"Bid {amount} is below the starting bid {state.starting_price}")
