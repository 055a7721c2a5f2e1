"""
Auction Tracker - per-account lists of auctions that matter to the user.

Three lists are kept per (chain, account): auctions the account created,
auctions it bid on and its watchlist. Lists hold references only; loading
a list fetches fresh snapshots from the protocol services.
"""

import asyncio
from typing import Dict, List

from auctionhouse.core.ledger import PendingTransaction
from auctionhouse.core.models import AuctionState
from auctionhouse.core.refs import AuctionRef
from auctionhouse.core.services.registry import AuctionServiceRegistry
from auctionhouse.core.storage.reference_list import ListPurpose, ReferenceListStore, list_key
from auctionhouse.utils.logger import get_logger

logger = get_logger("tracker")


class AuctionTracker:
    """Created / bid-on / watchlisted auctions for one account"""

    def __init__(
        self,
        registry: AuctionServiceRegistry,
        references: ReferenceListStore,
        chain_id: int,
        account: str,
    ):
        self.registry = registry
        self.references = references
        self.chain_id = chain_id
        self.account = account

    def key(self, purpose: ListPurpose) -> str:
        return list_key(purpose, self.chain_id, self.account)

    # =========================================================================
    # Reference Lists
    # =========================================================================

    def watch(self, ref: AuctionRef) -> bool:
        return self.references.append(self.key(ListPurpose.WATCHLIST), ref)

    def unwatch(self, ref: AuctionRef) -> bool:
        return self.references.remove(self.key(ListPurpose.WATCHLIST), ref)

    def is_watched(self, ref: AuctionRef) -> bool:
        return self.references.is_present(self.key(ListPurpose.WATCHLIST), ref)

    def record_created(self, ref: AuctionRef) -> bool:
        return self.references.append(self.key(ListPurpose.CREATED), ref)

    def record_bid(self, ref: AuctionRef) -> bool:
        return self.references.append(self.key(ListPurpose.BIDS), ref)

    def references_for(self, purpose: ListPurpose) -> List[AuctionRef]:
        return self.references.load(self.key(purpose))

    # =========================================================================
    # Actions
    # =========================================================================

    async def place_bid(self, ref: AuctionRef, amount: int) -> PendingTransaction:
        """Submit an open bid (or Dutch purchase) and remember the auction."""
        pending = await self.registry.for_ref(ref).submit_bid(ref, amount, self.account)
        self.record_bid(ref)
        return pending

    # =========================================================================
    # Loading
    # =========================================================================

    async def load(self, purpose: ListPurpose) -> List[AuctionState]:
        """
        Fresh snapshots for every auction in one list, in list order.

        Auctions that fail to load are logged and left out.
        """
        refs = self.references_for(purpose)
        results = await asyncio.gather(
            *(self._fetch(ref) for ref in refs),
            return_exceptions=True,
        )

        states = []
        for ref, result in zip(refs, results):
            if isinstance(result, Exception):
                logger.warning(f"Dropping {ref} from {ListPurpose(purpose).value}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            states.append(result)
        return states

    async def _fetch(self, ref: AuctionRef) -> AuctionState:
        return await self.registry.for_ref(ref).get_auction(ref)

    async def load_all(self) -> Dict[ListPurpose, List[AuctionState]]:
        """All three lists, fetched concurrently."""
        purposes = list(ListPurpose)
        lists = await asyncio.gather(*(self.load(p) for p in purposes))
        return dict(zip(purposes, lists))
