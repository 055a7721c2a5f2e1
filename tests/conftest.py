"""
Shared fixtures: an in-memory ledger, a controllable clock and helpers
that seed auction records in the shapes the contracts return.
"""

import asyncio
import itertools
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

from auctionhouse.core.config import ClientConfig
from auctionhouse.core.ledger import LogEvent, TxReceipt, TxRequest, TxStatus
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.services.registry import SERVICE_CLASSES, AuctionServiceRegistry
from auctionhouse.crypto import ZERO_ADDRESS, address_from_seed

NOW = 1_700_000_000
GENESIS_TIME = NOW - 1_000_000


# =============================================================================
# Fakes
# =============================================================================


class FakeLedger:
    """
    In-memory LedgerTransport.

    Views are seeded per (address, function, args). Transactions are
    recorded and confirm unless a failure was scheduled for their function.
    """

    def __init__(self, head: int = 50_000):
        self.head = head
        self.views: Dict[Tuple[str, str, Tuple[Any, ...]], Any] = {}
        self.logs: List[Tuple[str, LogEvent]] = []
        self.sent: List[TxRequest] = []
        self.log_queries: List[Tuple[str, int, int]] = []
        self.block_times: Dict[int, int] = {}
        self.read_error: Optional[BaseException] = None
        self.send_error: Optional[BaseException] = None
        self.failing_reads: Dict[Tuple[str, Tuple[Any, ...]], BaseException] = {}
        self.before_receipt: Optional[Callable[[TxRequest], None]] = None
        self._failing: Dict[str, str] = {}
        self._receipts: Dict[str, TxReceipt] = {}
        self._requests: Dict[str, TxRequest] = {}
        self._hashes = itertools.count(1)

    # Seeding -----------------------------------------------------------------

    def set_view(self, address: str, function: str, args: Sequence[Any], value: Any):
        self.views[(address.lower(), function, tuple(args))] = value

    def add_log(self, address: str, event: str, block: int, log_index: int = 0, **args: Any):
        self.logs.append((address.lower(), LogEvent(event, dict(args), block, log_index)))

    def fail_next(self, function: str, error: str = "execution reverted"):
        self._failing[function] = error

    # LedgerTransport ---------------------------------------------------------

    async def read_contract(self, address: str, function: str, args: Sequence[Any] = ()) -> Any:
        await asyncio.sleep(0)
        if self.read_error is not None:
            raise self.read_error
        failure = self.failing_reads.get((function, tuple(args)))
        if failure is not None:
            raise failure
        return self.views.get((address.lower(), function, tuple(args)))

    async def send_transaction(self, request: TxRequest) -> str:
        if self.send_error is not None:
            raise self.send_error
        tx_hash = f"0x{next(self._hashes):064x}"
        self.sent.append(request)
        self._requests[tx_hash] = request

        error = self._failing.pop(request.function, None)
        status = TxStatus.FAILED if error else TxStatus.CONFIRMED
        self._receipts[tx_hash] = TxReceipt(tx_hash, status, self.head + 1, error or "")
        return tx_hash

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        await asyncio.sleep(0)
        if self.before_receipt is not None:
            self.before_receipt(self._requests[tx_hash])
        return self._receipts[tx_hash]

    async def get_logs(
        self,
        address: str,
        event: str,
        from_block: int,
        to_block: int,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[LogEvent]:
        await asyncio.sleep(0)
        self.log_queries.append((event, from_block, to_block))
        found = []
        for log_address, log in self.logs:
            if log_address != address.lower() or log.event != event:
                continue
            if not from_block <= log.block_number <= to_block:
                continue
            if filters and any(log.args.get(k) != v for k, v in filters.items()):
                continue
            found.append(log)
        return found

    async def get_block_number(self) -> int:
        return self.head

    async def get_block_timestamp(self, block_number: int) -> int:
        return self.block_times.get(block_number, GENESIS_TIME + 12 * block_number)

    # Inspection --------------------------------------------------------------

    def calls(self, function: str) -> List[TxRequest]:
        return [r for r in self.sent if r.function == function]


class Clock:
    """Settable time source."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


# =============================================================================
# Default Records
# =============================================================================

SELLER = address_from_seed(b"seller")
ALICE = address_from_seed(b"alice")
BOB = address_from_seed(b"bob")
NFT_TOKEN = address_from_seed(b"nft")
BID_TOKEN = address_from_seed(b"erc20")


def _defaults(tag: ProtocolTag, auction_id: int) -> Dict[str, Any]:
    common = {
        "id": auction_id,
        "name": f"{tag.value} auction {auction_id}",
        "description": "A test lot",
        "imgUrl": "ipfs://lot",
        "auctioneer": SELLER,
        "auctionType": 0,
        "auctionedToken": NFT_TOKEN,
        "auctionedTokenIdOrAmount": 7,
        "biddingToken": BID_TOKEN,
        "availableFunds": 0,
        "winner": ZERO_ADDRESS,
        "isClaimed": False,
    }
    if tag in (ProtocolTag.ENGLISH, ProtocolTag.ALLPAY):
        common.update(
            startingBid=100,
            minBidDelta=10,
            highestBid=0,
            deadline=NOW + 3600,
            deadlineExtension=300,
            protocolFee=0,
        )
    elif tag.is_dutch:
        # started 50s ago, runs 100s
        common.update(
            startingPrice=10_000,
            reservedPrice=2_000,
            decayFactor=5_000,
            scalingFactor=0,
            settlePrice=0,
            deadline=NOW + 50,
            duration=100,
        )
    else:
        common.update(
            winningBid=0,
            startTime=NOW - 100,
            bidCommitEnd=NOW + 100,
            bidRevealEnd=NOW + 200,
            commitFee=1_000,
        )
    return common


def auction_struct(tag: ProtocolTag, auction_id: int, **fields: Any) -> Tuple[Any, ...]:
    """Positional `auctions(id)` tuple in the contract's field order."""
    service = SERVICE_CLASSES[tag]
    values = {**_defaults(tag, auction_id), **fields}
    return tuple(values[name] for name in service.layout + service.optional_fields)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def config(tmp_path):
    return ClientConfig(chain_id=63, data_dir=tmp_path / "data")


@pytest.fixture
def registry(ledger, config, clock):
    return AuctionServiceRegistry(ledger, config, clock=clock)


@pytest.fixture
def accounts():
    return SimpleNamespace(seller=SELLER, alice=ALICE, bob=BOB, nft=NFT_TOKEN, token=BID_TOKEN)


@pytest.fixture
def seed_auction(ledger, config):
    """Factory: store an auction record and return its reference."""

    def _seed(tag: ProtocolTag, auction_id: int = 1, **fields: Any) -> AuctionRef:
        tag = ProtocolTag.parse(tag)
        address = config.contract_address(tag)
        ledger.set_view(address, "auctions", (auction_id,), auction_struct(tag, auction_id, **fields))
        return AuctionRef(tag, auction_id)

    return _seed
