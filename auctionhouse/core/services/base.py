"""
Auction Service - uniform capability set over protocol-specific contracts.

Every protocol contract exposes the same shape of API (an `auctions(id)`
struct, an `auctionCounter`, `AuctionCreated` / `bidPlaced` events and
`withdrawFunds` / `withdrawItem` settlement), but with a different struct
layout and a different bidding entry point. Subclasses describe their
layout and bidding rules; the base class does the wire work.

Operations that mean nothing for a protocol raise NotApplicable.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple

from auctionhouse.core.auction.commitment import Commitment
from auctionhouse.core.ledger import (
    BlockRange,
    LedgerTransport,
    LogEvent,
    PendingTransaction,
    TxRequest,
    guarded,
    scan_logs,
    submit,
)
from auctionhouse.core.config import DEFAULT_SCAN_WINDOW
from auctionhouse.core.models import AssetKind, AssetRef, AuctionParams, AuctionState, BidEvent
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.crypto import ZERO_ADDRESS, same_address
from auctionhouse.errors import NotApplicable, NotFound, PhaseViolation, UnsupportedProtocol
from auctionhouse.utils.logger import get_logger
from auctionhouse.utils.validation import validate_address, validate_amount

logger = get_logger("services")


# =============================================================================
# Struct Layouts
# =============================================================================

# Leading fields shared by every auction contract's `auctions(id)` struct
COMMON_FIELDS = (
    "id",
    "name",
    "description",
    "imgUrl",
    "auctioneer",
    "auctionType",
    "auctionedToken",
    "auctionedTokenIdOrAmount",
    "biddingToken",
)

AUCTION_CREATED_EVENT = "AuctionCreated"
BID_PLACED_EVENT = "bidPlaced"


def decode_struct(
    raw: Any,
    layout: Sequence[str],
    optional: Sequence[str] = (),
) -> Dict[str, Any]:
    """
    Name the fields of a contract struct.

    Accepts either a positional tuple (as returned by most ABI decoders) or
    a mapping keyed by field name. Fields in `optional` may be absent.

    Raises:
        ValueError: if a required field is missing
    """
    if isinstance(raw, Mapping):
        missing = [name for name in layout if name not in raw]
        if missing:
            raise ValueError(f"struct is missing fields {missing}")
        return {name: raw[name] for name in (*layout, *optional) if name in raw}

    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"unexpected struct type {type(raw).__name__}")
    if len(raw) < len(layout):
        raise ValueError(f"expected {len(layout)} fields, got {len(raw)}")
    return dict(zip((*layout, *optional), raw))


class AuctionService(ABC):
    """
    Base for one protocol's contract client.

    Subclasses set `protocol`, `layout`, and implement `_map_auction`,
    `_creation_args` and `_price_from_state`.
    """

    protocol: ClassVar[ProtocolTag]
    layout: ClassVar[Tuple[str, ...]]
    optional_fields: ClassVar[Tuple[str, ...]] = ()
    bid_event: ClassVar[str] = BID_PLACED_EVENT

    def __init__(
        self,
        transport: LedgerTransport,
        contract_address: str,
        range_limit: int = 0,
        scan_window: int = DEFAULT_SCAN_WINDOW,
        clock: Callable[[], float] = time.time,
    ):
        ok, err = validate_address(contract_address, f"{self.protocol.value} contract")
        if not ok:
            raise UnsupportedProtocol(err)

        self.transport = transport
        self.contract_address = contract_address
        self.range_limit = range_limit
        self.scan_window = scan_window
        self.clock = clock

    # =========================================================================
    # Wire Helpers
    # =========================================================================

    def _check_ref(self, ref: AuctionRef):
        if ref.protocol != self.protocol:
            raise UnsupportedProtocol(
                f"{type(self).__name__} cannot serve {ref.protocol.value} auction {ref.id}"
            )

    def _now(self, now: Optional[float] = None) -> float:
        return self.clock() if now is None else now

    async def _read(self, function: str, *args: Any) -> Any:
        return await guarded(
            self.transport.read_contract(self.contract_address, function, args),
            f"{self.protocol.value}.{function}",
        )

    async def _transact(self, function: str, *args: Any, sender: str, value: int = 0) -> PendingTransaction:
        request = TxRequest(
            to=self.contract_address,
            function=function,
            args=tuple(args),
            sender=sender,
            value=value,
        )
        return await submit(self.transport, request)

    async def _approve(self, token: str, amount_or_id: int, sender: str) -> None:
        """
        Let the contract pull `amount_or_id` of `token` from `sender`.

        ERC-20 and ERC-721 share the approve(spender, value) signature.
        Waits for confirmation so the follow-up call cannot race it.
        """
        request = TxRequest(
            to=token,
            function="approve",
            args=(self.contract_address, amount_or_id),
            sender=sender,
        )
        pending = await submit(self.transport, request)
        await pending.wait()

    async def _resolve_range(self, range_hint: Optional[BlockRange]) -> BlockRange:
        if range_hint is not None:
            return range_hint
        head = await guarded(self.transport.get_block_number(), "get_block_number")
        return BlockRange.trailing(head, self.scan_window)

    async def _scan(self, event: str, range_hint: Optional[BlockRange], **filters: Any) -> List[LogEvent]:
        block_range = await self._resolve_range(range_hint)
        return await scan_logs(
            self.transport,
            self.contract_address,
            event,
            block_range,
            span=self.range_limit,
            filters=filters or None,
        )

    # =========================================================================
    # Snapshot Mapping
    # =========================================================================

    def _base_fields(self, ref: AuctionRef, fields: Dict[str, Any]) -> Dict[str, Any]:
        """AuctionState keyword arguments common to every protocol."""
        return dict(
            ref=ref,
            name=fields["name"],
            description=fields["description"],
            image_url=fields["imgUrl"],
            auctioneer=fields["auctioneer"],
            asset=AssetRef(
                kind=AssetKind(int(fields["auctionType"])),
                token=fields["auctionedToken"],
                id_or_amount=int(fields["auctionedTokenIdOrAmount"]),
            ),
            bidding_token=fields["biddingToken"],
            available_funds=int(fields.get("availableFunds", 0)),
            is_claimed=bool(fields["isClaimed"]),
        )

    @abstractmethod
    def _map_auction(self, ref: AuctionRef, fields: Dict[str, Any]) -> AuctionState:
        """Build a snapshot from named struct fields."""

    @abstractmethod
    def _price_from_state(self, state: AuctionState, now: float) -> int:
        """Current price implied by a snapshot at time `now`."""

    @abstractmethod
    def _creation_args(self, params: AuctionParams) -> Tuple[Any, ...]:
        """Arguments for this contract's createAuction."""

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_auction(self, ref: AuctionRef) -> AuctionState:
        """
        Fetch a fresh snapshot.

        Raises:
            NotFound: if the id is unused or the record was cleared
            TransportError: if the ledger could not be read
        """
        self._check_ref(ref)
        raw = await self._read("auctions", ref.id)
        if raw is None:
            raise NotFound(f"{ref} not found")

        try:
            fields = decode_struct(raw, self.layout, self.optional_fields)
            state = self._map_auction(ref, fields)
        except (ValueError, TypeError, KeyError) as e:
            raise NotFound(f"{ref} returned an unreadable record: {e}") from e

        if not state.auctioneer or state.auctioneer.lower() == ZERO_ADDRESS:
            raise NotFound(f"{ref} not found")
        return state

    async def get_auction_counter(self) -> int:
        """Number of auctions ever created on this contract."""
        return int(await self._read("auctionCounter"))

    async def get_bid_history(
        self,
        ref: AuctionRef,
        range_hint: Optional[BlockRange] = None,
    ) -> List[BidEvent]:
        """
        Bids on `ref` seen in the scan window, oldest first.

        The result only covers `range_hint` (default: the trailing scan
        window); widen it for complete history.
        """
        self._check_ref(ref)
        logs = await self._scan(self.bid_event, range_hint, auctionId=ref.id)

        blocks = sorted({log.block_number for log in logs})
        stamps = await asyncio.gather(*(
            guarded(self.transport.get_block_timestamp(b), f"get_block_timestamp({b})")
            for b in blocks
        ))
        timestamps = dict(zip(blocks, stamps))

        bids = []
        for log in logs:
            bidder = log.args.get("bidder")
            amount = log.args.get("bidAmount")
            if bidder is None or amount is None:
                logger.debug(f"Skipping incomplete {self.bid_event} log at block {log.block_number}")
                continue
            bids.append(BidEvent(
                bidder=bidder,
                amount=int(amount),
                timestamp=int(timestamps[log.block_number]),
                block_number=log.block_number,
                log_index=log.log_index,
            ))
        return bids

    async def _enrich(self, ids: Sequence[int]) -> List[AuctionState]:
        """Fetch many auctions; failures are logged and dropped."""
        refs = [AuctionRef(self.protocol, i) for i in ids]
        results = await asyncio.gather(*(self.get_auction(r) for r in refs), return_exceptions=True)

        states = []
        for ref, result in zip(refs, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(f"Failed to fetch {ref}: {result}")
                continue
            states.append(result)
        return states

    async def get_all_auctions(self, range_hint: Optional[BlockRange] = None) -> List[AuctionState]:
        """Auctions created within the scan window, in discovery order."""
        logs = await self._scan(AUCTION_CREATED_EVENT, range_hint)

        ids: List[int] = []
        for log in logs:
            auction_id = log.args.get("Id", log.args.get("id"))
            if auction_id is not None and int(auction_id) not in ids:
                ids.append(int(auction_id))
        return await self._enrich(ids)

    async def get_last_auctions(self, n: int = 10) -> List[AuctionState]:
        """The newest `n` auctions, newest first."""
        counter = await self.get_auction_counter()
        start = max(0, counter - n)
        return list(reversed(await self._enrich(range(start, counter))))

    async def get_current_price(self, ref: AuctionRef, now: Optional[float] = None) -> int:
        """Current price, computed from a freshly fetched snapshot."""
        state = await self.get_auction(ref)
        return self._price_from_state(state, self._now(now))

    async def quote_price(self, ref: AuctionRef, now: Optional[float] = None) -> Optional[int]:
        """
        Price to show a buyer, or None once the auction has ended.

        Presentation helper: the underlying price functions never return
        "no price"; this is where an ended auction stops being quoted.
        """
        state = await self.get_auction(ref)
        now = self._now(now)
        if state.is_ended(now):
            return None
        return self._price_from_state(state, now)

    async def get_current_bid(self, ref: AuctionRef, bidder: str) -> int:
        raise NotApplicable(f"{self.protocol.value} auctions do not track per-bidder totals")

    # =========================================================================
    # Writes
    # =========================================================================

    async def submit_bid(self, ref: AuctionRef, amount: int, sender: str) -> PendingTransaction:
        raise NotApplicable(f"{self.protocol.value} auctions do not take open bids")

    async def submit_commitment(
        self,
        ref: AuctionRef,
        commitment: Commitment,
        sender: str,
        fee: Optional[int] = None,
    ) -> PendingTransaction:
        raise NotApplicable(f"{self.protocol.value} auctions do not take sealed commitments")

    async def reveal_bid(self, ref: AuctionRef, amount: int, salt: str, sender: str) -> PendingTransaction:
        raise NotApplicable(f"{self.protocol.value} auctions have no reveal phase")

    async def withdraw(self, ref: AuctionRef, sender: str) -> PendingTransaction:
        """
        Settle an ended auction.

        The auctioneer collects the proceeds (withdrawFunds); anyone else
        claims the item (withdrawItem), which the contract only honours for
        the winner.

        Raises:
            PhaseViolation: if the auction is still running
        """
        state = await self.get_auction(ref)
        if not state.is_ended(self._now()):
            raise PhaseViolation(f"{ref} has not ended yet")

        if same_address(sender, state.auctioneer):
            return await self._transact("withdrawFunds", ref.id, sender=sender)
        return await self._transact("withdrawItem", ref.id, sender=sender)

    async def create_auction(self, params: AuctionParams, sender: str) -> PendingTransaction:
        """Escrow the asset with the contract and create the auction."""
        ok, err = validate_amount(params.token_id_or_amount, "token_id_or_amount")
        if not ok:
            raise ValueError(err)

        args = self._creation_args(params)
        await self._approve(params.auctioned_token, params.token_id_or_amount, sender)
        pending = await self._transact("createAuction", *args, sender=sender)
        logger.info(f"Creating {self.protocol.value} auction {params.name!r}")
        return pending

    def _common_creation_args(self, params: AuctionParams) -> Tuple[Any, ...]:
        return (
            params.name,
            params.description,
            params.image_url,
            int(params.asset_kind),
            params.auctioned_token,
            params.token_id_or_amount,
            params.bidding_token,
        )
