"""
Dutch auction services.

The asking price falls from the starting price to the reserved price over
the auction's duration; the first buyer to accept the current price wins.
The three contracts differ only in curve shape, so the curve is evaluated
locally with the shared decay model instead of calling getCurrentPrice.
"""

from typing import Any, ClassVar, Dict, Tuple

from auctionhouse.core.ledger import PendingTransaction
from auctionhouse.core.models import AuctionParams, AuctionState, DutchParams
from auctionhouse.core.pricing.decay import DECAY_FACTOR_SCALE, DecayShape, PriceCurveParams, price_at
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.services.base import COMMON_FIELDS, AuctionService
from auctionhouse.crypto import ZERO_ADDRESS, same_address
from auctionhouse.errors import NotApplicable, PhaseViolation
from auctionhouse.utils.logger import get_logger
from auctionhouse.utils.validation import validate_amount

logger = get_logger("services.dutch")


class DutchAuctionService(AuctionService):
    """Shared client for the descending-price contracts."""

    shape: ClassVar[DecayShape]

    def _map_auction(self, ref: AuctionRef, fields: Dict[str, Any]) -> AuctionState:
        settle_price = int(fields["settlePrice"])
        return AuctionState(
            **self._base_fields(ref, fields),
            starting_price=int(fields["startingPrice"]),
            current_price=settle_price,
            highest_bidder=fields["winner"],
            deadline=int(fields["deadline"]),
            extra={
                "reserved_price": int(fields["reservedPrice"]),
                "duration": int(fields["duration"]),
                "decay_factor": int(fields.get("decayFactor", 0)),
                "scaling_factor": int(fields.get("scalingFactor", 0)),
                "settle_price": settle_price,
            },
        )

    def curve(self, state: AuctionState) -> PriceCurveParams:
        """Decay curve described by a snapshot."""
        return PriceCurveParams(
            start_price=float(state.starting_price),
            reserved_price=float(state.extra["reserved_price"]),
            duration=float(state.extra["duration"]),
            decay_factor=state.extra["decay_factor"] / DECAY_FACTOR_SCALE,
            shape=self.shape,
        )

    @staticmethod
    def start_time(state: AuctionState) -> int:
        return state.deadline - state.extra["duration"]

    def _price_from_state(self, state: AuctionState, now: float) -> int:
        reserved = state.extra["reserved_price"]
        if self.shape == DecayShape.LINEAR:
            # Integer arithmetic, exact for 18-decimal token amounts
            duration = state.extra["duration"]
            if duration <= 0:
                return reserved
            elapsed = min(max(int(now) - self.start_time(state), 0), duration)
            return state.starting_price - (state.starting_price - reserved) * elapsed // duration
        price = round(price_at(self.curve(state), now - self.start_time(state)))
        return min(max(price, reserved), state.starting_price)

    def _creation_args(self, params: AuctionParams) -> Tuple[Any, ...]:
        if not isinstance(params, DutchParams):
            raise TypeError(f"{self.protocol.value} auctions need DutchParams, got {type(params).__name__}")
        args = self._common_creation_args(params) + (params.starting_price, params.reserved_price)
        if self.shape != DecayShape.LINEAR:
            if not params.decay_factor:
                raise ValueError(f"{self.protocol.value} auctions need a decay factor")
            args += (params.decay_factor,)
        return args + (params.duration,)

    async def submit_bid(self, ref: AuctionRef, amount: int, sender: str) -> PendingTransaction:
        """
        Buy at the current price, paying at most `amount`.

        Raises:
            PhaseViolation: if the auction is sold or expired
            ValueError: if the current price exceeds `amount`
        """
        ok, err = validate_amount(amount, "amount", min_val=1)
        if not ok:
            raise ValueError(err)

        state = await self.get_auction(ref)
        now = self._now()
        if state.is_ended(now):
            raise PhaseViolation(f"{ref} is no longer for sale")

        price = self._price_from_state(state, now)
        if price > amount:
            raise ValueError(f"Current price {price} exceeds the limit {amount}")

        if state.bidding_token.lower() != ZERO_ADDRESS:
            await self._approve(state.bidding_token, amount, sender)
        pending = await self._transact("withdrawItem", ref.id, sender=sender)
        logger.info(f"Buying {ref} at ~{price} for {sender[:10]}...")
        return pending

    async def withdraw(self, ref: AuctionRef, sender: str) -> PendingTransaction:
        """Collect the proceeds, or reclaim the item once unsold and expired."""
        state = await self.get_auction(ref)
        if not same_address(sender, state.auctioneer):
            raise NotApplicable("Dutch buyers receive the item when they buy; use submit_bid")
        if not state.is_ended(self._now()):
            raise PhaseViolation(f"{ref} is still for sale")
        return await self._transact("withdrawFunds", ref.id, sender=sender)


class LinearAuctionService(DutchAuctionService):
    protocol = ProtocolTag.LINEAR
    shape = DecayShape.LINEAR
    layout = COMMON_FIELDS + (
        "startingPrice",
        "availableFunds",
        "reservedPrice",
        "settlePrice",
        "winner",
        "deadline",
        "duration",
        "isClaimed",
    )


class ExponentialAuctionService(DutchAuctionService):
    protocol = ProtocolTag.EXPONENTIAL
    shape = DecayShape.EXPONENTIAL
    layout = COMMON_FIELDS + (
        "startingPrice",
        "availableFunds",
        "reservedPrice",
        "decayFactor",
        "settlePrice",
        "winner",
        "deadline",
        "duration",
        "isClaimed",
    )


class LogarithmicAuctionService(DutchAuctionService):
    protocol = ProtocolTag.LOGARITHMIC
    shape = DecayShape.LOGARITHMIC
    layout = COMMON_FIELDS + (
        "startingPrice",
        "availableFunds",
        "reservedPrice",
        "decayFactor",
        "scalingFactor",
        "settlePrice",
        "winner",
        "deadline",
        "duration",
        "isClaimed",
    )
