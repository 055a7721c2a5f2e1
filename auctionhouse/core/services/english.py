"""
English auction service.

Ascending open bids: each bid must beat the highest bid by at least the
minimum increment, and late bids push the deadline out by the extension.
Outbid bidders are refunded by the contract.
"""

from typing import Any, Dict, Tuple

from auctionhouse.core.ledger import PendingTransaction
from auctionhouse.core.models import AuctionParams, AuctionState, EnglishParams
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.services.base import COMMON_FIELDS, AuctionService
from auctionhouse.crypto import ZERO_ADDRESS
from auctionhouse.errors import PhaseViolation
from auctionhouse.utils.logger import get_logger
from auctionhouse.utils.validation import validate_amount

logger = get_logger("services.english")

ASCENDING_FIELDS = COMMON_FIELDS + (
    "startingBid",
    "availableFunds",
    "minBidDelta",
    "highestBid",
    "winner",
    "deadline",
    "deadlineExtension",
    "isClaimed",
)


class AscendingAuctionService(AuctionService):
    """Shared client for the open ascending-bid contracts."""

    layout = ASCENDING_FIELDS
    optional_fields = ("protocolFee",)

    def _map_auction(self, ref: AuctionRef, fields: Dict[str, Any]) -> AuctionState:
        return AuctionState(
            **self._base_fields(ref, fields),
            starting_price=int(fields["startingBid"]),
            current_price=int(fields["highestBid"]),
            highest_bidder=fields["winner"],
            deadline=int(fields["deadline"]),
            min_bid_delta=int(fields["minBidDelta"]),
            deadline_extension=int(fields["deadlineExtension"]),
            extra={"protocol_fee": int(fields.get("protocolFee", 0))},
        )

    def _price_from_state(self, state: AuctionState, now: float) -> int:
        return state.current_price

    def _creation_args(self, params: AuctionParams) -> Tuple[Any, ...]:
        if not isinstance(params, EnglishParams):
            raise TypeError(f"{self.protocol.value} auctions need EnglishParams, got {type(params).__name__}")
        return self._common_creation_args(params) + (
            params.starting_bid,
            params.min_bid_delta,
            params.duration,
            params.deadline_extension,
        )

    async def get_current_bid(self, ref: AuctionRef, bidder: str) -> int:
        """Total the contract holds for `bidder` on this auction."""
        self._check_ref(ref)
        return int(await self._read("bids", ref.id, bidder))

    def _check_bid(self, state: AuctionState, amount: int):
        """Client-side pre-checks; the contract has the final word."""

    async def submit_bid(self, ref: AuctionRef, amount: int, sender: str) -> PendingTransaction:
        """
        Approve the bidding token and place a bid.

        Raises:
            PhaseViolation: if the auction has ended
            ValueError: if the amount cannot win
        """
        ok, err = validate_amount(amount, "amount", min_val=1)
        if not ok:
            raise ValueError(err)

        state = await self.get_auction(ref)
        if state.is_ended(self._now()):
            raise PhaseViolation(f"{ref} has ended")
        self._check_bid(state, amount)

        if state.bidding_token.lower() != ZERO_ADDRESS:
            await self._approve(state.bidding_token, amount, sender)
        pending = await self._transact("placeBid", ref.id, amount, sender=sender)
        logger.info(f"Bid {amount} on {ref} from {sender[:10]}...")
        return pending


class EnglishAuctionService(AscendingAuctionService):
    protocol = ProtocolTag.ENGLISH

    def _check_bid(self, state: AuctionState, amount: int):
        if not state.has_bids:
            if amount < state.starting_price:
                raise ValueError(f"Bid {amount} is below the starting bid {state.starting_price}")
            return
        minimum = state.current_price + state.min_bid_delta
        if amount < minimum:
            raise ValueError(f"Bid {amount} is below the minimum next bid {minimum}")
