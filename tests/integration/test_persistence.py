import asyncio

import pytest

from auctionhouse.core.auction import SecretStore, VickreyBidder
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.storage import ListPurpose, ReferenceListStore, SQLiteStore, list_key
from auctionhouse.core.tracker import AuctionTracker

from conftest import NOW


@pytest.fixture
def db_path(tmp_path):
    """Database file shared by successive 'sessions'."""
    return tmp_path / "client" / "auctionhouse.db"


def test_reference_lists_survive_restart(db_path, registry, seed_auction, accounts):
    """Tracked auctions are still there after the client restarts."""
    # 1. First session
    store_a = SQLiteStore(db_path, bucket="references")
    tracker_a = AuctionTracker(registry, ReferenceListStore(store_a), 63, accounts.alice)

    created = seed_auction(ProtocolTag.ENGLISH, 1)
    watched = seed_auction(ProtocolTag.LINEAR, 2)
    tracker_a.record_created(created)
    tracker_a.watch(watched)
    tracker_a.watch(AuctionRef(ProtocolTag.VICKREY, 77))
    tracker_a.unwatch(AuctionRef(ProtocolTag.VICKREY, 77))

    store_a.close()
    del tracker_a, store_a

    # 2. Second session, same file
    store_b = SQLiteStore(db_path, bucket="references")
    tracker_b = AuctionTracker(registry, ReferenceListStore(store_b), 63, accounts.alice)

    assert tracker_b.references_for(ListPurpose.CREATED) == [created]
    assert tracker_b.references_for(ListPurpose.WATCHLIST) == [watched]

    lists = asyncio.run(tracker_b.load_all())
    assert [s.ref for s in lists[ListPurpose.WATCHLIST]] == [watched]


def test_stored_tokens_are_stable(db_path):
    """Tokens written by one session decode identically in the next."""
    key = list_key(ListPurpose.BIDS, 63, "0xABC")
    refs = [AuctionRef(tag, i) for i, tag in enumerate(ProtocolTag)]

    first = ReferenceListStore(SQLiteStore(db_path, bucket="references"))
    for ref in refs:
        first.append(key, ref)

    raw = SQLiteStore(db_path, bucket="references").get(key)
    assert raw == b"100000000,010000001,001000002,110000003,000000004,101000005"
    assert ReferenceListStore(SQLiteStore(db_path, bucket="references")).load(key) == refs


def test_vickrey_secret_survives_restart(db_path, registry, ledger, clock, seed_auction, accounts):
    """Commit in one session, reveal in the next."""
    ref = seed_auction(ProtocolTag.VICKREY, 4)
    service = registry.get(ProtocolTag.VICKREY)

    # 1. Commit phase: commit and shut down
    secrets_a = SecretStore(SQLiteStore(db_path, bucket="secrets"), passphrase="hunter2hunter2")
    _, secret = asyncio.run(VickreyBidder(service, secrets_a).commit(ref, accounts.alice, 900))
    del secrets_a

    # 2. Reveal phase: a fresh client finds the secret and reveals
    clock.now = NOW + 150
    secrets_b = SecretStore(SQLiteStore(db_path, bucket="secrets"), passphrase="hunter2hunter2")
    assert secrets_b.load(ref, accounts.alice) == secret

    asyncio.run(VickreyBidder(service, secrets_b).reveal(ref, accounts.alice))

    assert ledger.calls("revealBid")[0].args == (4, 900, secret.salt)
    assert secrets_b.load(ref, accounts.alice) is None

    # 3. Nothing left for a third session
    secrets_c = SecretStore(SQLiteStore(db_path, bucket="secrets"), passphrase="hunter2hunter2")
    assert secrets_c.list_secrets() == []
