"""
Auction data model shared by every protocol service.

Snapshots are frozen: each fetch from the ledger builds a new AuctionState
and earlier snapshots are never updated in place.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.crypto import ZERO_ADDRESS


class AssetKind(IntEnum):
    """What is being auctioned, as encoded by the contracts."""
    NON_FUNGIBLE = 0    # ERC-721 token id
    FUNGIBLE = 1        # ERC-20 amount


@dataclass(frozen=True)
class AssetRef:
    """The auctioned asset: a token contract plus an id or amount."""
    kind: AssetKind
    token: str
    id_or_amount: int


# =============================================================================
# Auction Snapshot
# =============================================================================


@dataclass(frozen=True)
class AuctionState:
    """
    Snapshot of one auction as read from its contract.

    `current_price` is the highest bid for ascending protocols, the settle
    price (0 until sold) for Dutch auctions and the winning bid for Vickrey.
    Protocol-specific fields live in `extra`:

    Dutch:   reserved_price, duration, decay_factor, scaling_factor, settle_price
    Vickrey: start_time, commit_end, reveal_end, commit_fee
    """
    ref: AuctionRef
    name: str
    description: str
    image_url: str
    auctioneer: str
    asset: AssetRef
    bidding_token: str
    starting_price: int
    current_price: int
    highest_bidder: str
    deadline: int
    available_funds: int = 0
    min_bid_delta: int = 0
    deadline_extension: int = 0
    is_claimed: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def protocol(self) -> ProtocolTag:
        return self.ref.protocol

    @property
    def has_bids(self) -> bool:
        return bool(self.highest_bidder) and self.highest_bidder.lower() != ZERO_ADDRESS

    def is_ended(self, now: float) -> bool:
        """Whether the auction can no longer take bids at time `now`."""
        return self.is_claimed or now >= self.deadline


@dataclass(frozen=True)
class BidEvent:
    """One bid observed in the contract's event log."""
    bidder: str
    amount: int
    timestamp: int
    block_number: int
    log_index: int = 0


# =============================================================================
# Creation Parameters
# =============================================================================


@dataclass
class AuctionParams:
    """Fields common to every createAuction call."""
    name: str
    description: str
    image_url: str
    asset_kind: AssetKind
    auctioned_token: str
    token_id_or_amount: int
    bidding_token: str


@dataclass
class EnglishParams(AuctionParams):
    starting_bid: int = 0
    min_bid_delta: int = 0
    duration: int = 0
    deadline_extension: int = 0


@dataclass
class AllPayParams(EnglishParams):
    pass


@dataclass
class DutchParams(AuctionParams):
    starting_price: int = 0
    reserved_price: int = 0
    duration: int = 0
    decay_factor: Optional[int] = None  # fixed point, see DECAY_FACTOR_SCALE


@dataclass
class VickreyParams(AuctionParams):
    min_bid: int = 0
    commit_duration: int = 0
    reveal_duration: int = 0
