"""
Vickrey (sealed-bid second-price) auction service.

Bidders first commit to a hidden bid, paying the commit fee, then reveal
it. After the reveal deadline the highest revealed bidder wins at the
second-highest price. There is no public running price.
"""

from typing import Any, Dict, Optional, Tuple

from auctionhouse.core.auction.commitment import Commitment
from auctionhouse.core.auction.phases import VickreyPhase, phase_of
from auctionhouse.core.ledger import PendingTransaction
from auctionhouse.core.models import AuctionParams, AuctionState, VickreyParams
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.services.base import COMMON_FIELDS, AuctionService
from auctionhouse.crypto import ZERO_ADDRESS, same_address
from auctionhouse.errors import NotApplicable, PhaseViolation
from auctionhouse.utils.logger import get_logger
from auctionhouse.utils.validation import validate_amount, validate_salt

logger = get_logger("services.vickrey")

BID_REVEALED_EVENT = "BidRevealed"
EMPTY_COMMITMENT = bytes(32)


class VickreyAuctionService(AuctionService):
    protocol = ProtocolTag.VICKREY
    layout = COMMON_FIELDS + (
        "availableFunds",
        "winningBid",
        "winner",
        "startTime",
        "bidCommitEnd",
        "bidRevealEnd",
        "isClaimed",
    )
    optional_fields = ("commitFee",)
    bid_event = BID_REVEALED_EVENT

    def _map_auction(self, ref: AuctionRef, fields: Dict[str, Any]) -> AuctionState:
        return AuctionState(
            **self._base_fields(ref, fields),
            starting_price=0,
            current_price=int(fields["winningBid"]),
            highest_bidder=fields["winner"],
            deadline=int(fields["bidRevealEnd"]),
            extra={
                "start_time": int(fields["startTime"]),
                "commit_end": int(fields["bidCommitEnd"]),
                "reveal_end": int(fields["bidRevealEnd"]),
                "commit_fee": int(fields.get("commitFee", 0)),
            },
        )

    def _price_from_state(self, state: AuctionState, now: float) -> int:
        raise NotApplicable("Vickrey auctions have no public price until they end")

    def _creation_args(self, params: AuctionParams) -> Tuple[Any, ...]:
        if not isinstance(params, VickreyParams):
            raise TypeError(f"Vickrey auctions need VickreyParams, got {type(params).__name__}")
        return self._common_creation_args(params) + (
            params.min_bid,
            params.commit_duration,
            params.reveal_duration,
        )

    def phase(self, state: AuctionState, now: Optional[float] = None) -> VickreyPhase:
        return phase_of(state, self._now(now))

    async def _require_phase(self, ref: AuctionRef, expected: VickreyPhase) -> AuctionState:
        state = await self.get_auction(ref)
        current = self.phase(state)
        if current != expected:
            raise PhaseViolation(f"{ref} is in its {current.value} phase, not {expected.value}")
        return state

    async def get_commitment(self, ref: AuctionRef, bidder: str) -> Optional[Commitment]:
        """The commitment the contract holds for `bidder`, if any."""
        self._check_ref(ref)
        raw = await self._read("commitments", ref.id, bidder)
        if isinstance(raw, str):
            raw = bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
        if not raw or bytes(raw) == EMPTY_COMMITMENT:
            return None
        return Commitment(bytes(raw))

    async def submit_commitment(
        self,
        ref: AuctionRef,
        commitment: Commitment,
        sender: str,
        fee: Optional[int] = None,
    ) -> PendingTransaction:
        """
        Commit a sealed bid, paying the commit fee in the native currency.

        Raises:
            PhaseViolation: outside the commit phase
        """
        state = await self._require_phase(ref, VickreyPhase.COMMIT)
        if fee is None:
            fee = state.extra["commit_fee"]
        return await self._transact("commitBid", ref.id, commitment.hash, sender=sender, value=fee)

    async def reveal_bid(self, ref: AuctionRef, amount: int, salt: str, sender: str) -> PendingTransaction:
        """
        Reveal a committed bid, approving the bidding token for `amount`.

        Raises:
            PhaseViolation: outside the reveal phase
        """
        ok, err = validate_amount(amount, "amount")
        if not ok:
            raise ValueError(err)
        ok, err = validate_salt(salt)
        if not ok:
            raise ValueError(err)

        state = await self._require_phase(ref, VickreyPhase.REVEAL)
        if state.bidding_token.lower() != ZERO_ADDRESS:
            await self._approve(state.bidding_token, amount, sender)
        return await self._transact("revealBid", ref.id, amount, salt, sender=sender)

    async def withdraw(self, ref: AuctionRef, sender: str) -> PendingTransaction:
        state = await self._require_phase(ref, VickreyPhase.ENDED)
        if same_address(sender, state.auctioneer):
            return await self._transact("withdrawFunds", ref.id, sender=sender)
        return await self._transact("withdrawItem", ref.id, sender=sender)
