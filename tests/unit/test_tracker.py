"""
Tests for per-account auction tracking.
"""

import asyncio

import pytest

from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.storage import ListPurpose, MemoryStore, ReferenceListStore
from auctionhouse.core.tracker import AuctionTracker


@pytest.fixture
def references():
    return ReferenceListStore(MemoryStore())


@pytest.fixture
def tracker(registry, references, accounts):
    return AuctionTracker(registry, references, chain_id=63, account=accounts.alice)


class TestWatchlist:
    def test_watch_unwatch(self, tracker):
        ref = AuctionRef(ProtocolTag.ENGLISH, 1)
        assert tracker.watch(ref)
        assert not tracker.watch(ref)
        assert tracker.is_watched(ref)
        assert tracker.unwatch(ref)
        assert not tracker.is_watched(ref)

    def test_lists_scoped_per_account(self, registry, references, tracker, accounts):
        ref = AuctionRef(ProtocolTag.ENGLISH, 1)
        tracker.watch(ref)
        other = AuctionTracker(registry, references, chain_id=63, account=accounts.bob)
        assert not other.is_watched(ref)

    def test_lists_scoped_per_chain(self, registry, references, tracker, accounts):
        ref = AuctionRef(ProtocolTag.ENGLISH, 1)
        tracker.watch(ref)
        other = AuctionTracker(registry, references, chain_id=5115, account=accounts.alice)
        assert not other.is_watched(ref)


class TestActions:
    def test_place_bid_records_auction(self, tracker, ledger, seed_auction):
        ref = seed_auction(ProtocolTag.ENGLISH, 2)
        asyncio.run(tracker.place_bid(ref, 150))

        assert tracker.references_for(ListPurpose.BIDS) == [ref]
        assert ledger.calls("placeBid")[0].sender == tracker.account

    def test_failed_bid_not_recorded(self, tracker, seed_auction):
        ref = seed_auction(ProtocolTag.ENGLISH, 2)
        with pytest.raises(ValueError):
            asyncio.run(tracker.place_bid(ref, 1))
        assert tracker.references_for(ListPurpose.BIDS) == []


class TestLoading:
    """Loading fetches fresh snapshots and drops what fails."""

    def test_load_in_list_order(self, tracker, seed_auction):
        a = seed_auction(ProtocolTag.VICKREY, 1)
        b = seed_auction(ProtocolTag.LINEAR, 4)
        tracker.watch(b)
        tracker.watch(a)

        states = asyncio.run(tracker.load(ListPurpose.WATCHLIST))
        assert [s.ref for s in states] == [b, a]

    def test_missing_auctions_dropped(self, tracker, seed_auction):
        a = seed_auction(ProtocolTag.ENGLISH, 1)
        tracker.watch(AuctionRef(ProtocolTag.ENGLISH, 99))
        tracker.watch(a)

        states = asyncio.run(tracker.load(ListPurpose.WATCHLIST))
        assert [s.ref for s in states] == [a]

    def test_load_all(self, tracker, seed_auction):
        created = seed_auction(ProtocolTag.ALLPAY, 1)
        bid = seed_auction(ProtocolTag.ENGLISH, 2)
        tracker.record_created(created)
        tracker.record_bid(bid)

        lists = asyncio.run(tracker.load_all())

        assert [s.ref for s in lists[ListPurpose.CREATED]] == [created]
        assert [s.ref for s in lists[ListPurpose.BIDS]] == [bid]
        assert lists[ListPurpose.WATCHLIST] == []
