"""
Ledger transport boundary.

The auction contracts live on-chain; this package only reads their state
and submits signed requests through a transport supplied by the caller
(a web3 provider, a wallet bridge, or an in-memory fake in tests).

Protocol:
1. Reads call a view function and return its decoded result
2. Writes are sent once, yielding a transaction hash immediately
3. The caller may await inclusion, which settles as confirmed or failed
4. Event logs are queried per block range; wide ranges are split into
   chunks no larger than the chain's range limit and merged in order
"""

import asyncio
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Awaitable, Iterator, List, Mapping, Optional, Protocol, Sequence, TypeVar

from auctionhouse.errors import AuctionError, TransactionReverted, TransportError
from auctionhouse.utils.logger import get_logger

logger = get_logger("ledger")

T = TypeVar("T")


# =============================================================================
# Wire Types
# =============================================================================


class TxStatus(IntEnum):
    """Settlement state of a submitted transaction."""
    PENDING = 0
    CONFIRMED = 1
    FAILED = 2


@dataclass(frozen=True)
class TxRequest:
    """A state-changing contract call to be signed and sent by `sender`."""
    to: str
    function: str
    args: Sequence[Any] = ()
    sender: str = ""
    value: int = 0


@dataclass(frozen=True)
class TxReceipt:
    """Result of waiting for a transaction."""
    tx_hash: str
    status: TxStatus
    block_number: Optional[int] = None
    error: str = ""

    @property
    def confirmed(self) -> bool:
        return self.status == TxStatus.CONFIRMED


@dataclass(frozen=True)
class LogEvent:
    """A decoded contract event."""
    event: str
    args: Mapping[str, Any]
    block_number: int
    log_index: int = 0
    tx_hash: str = ""


class LedgerTransport(Protocol):
    """Request/response interface to the chain. Every call settles once."""

    async def read_contract(self, address: str, function: str, args: Sequence[Any] = ()) -> Any:
        ...

    async def send_transaction(self, request: TxRequest) -> str:
        ...

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        ...

    async def get_logs(
        self,
        address: str,
        event: str,
        from_block: int,
        to_block: int,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[LogEvent]:
        ...

    async def get_block_number(self) -> int:
        ...

    async def get_block_timestamp(self, block_number: int) -> int:
        ...


async def guarded(call: Awaitable[T], what: str) -> T:
    """
    Await a transport call, normalizing failures to TransportError.

    A timed-out read means "unknown", so it never turns into NotFound.
    Errors from the transport's own stack (RPC client errors, decoding
    failures) are wrapped as well; typed auction errors pass through.
    """
    try:
        return await call
    except AuctionError:
        raise
    except asyncio.TimeoutError as e:
        raise TransportError(f"{what} timed out") from e
    except Exception as e:
        raise TransportError(f"{what} failed: {e}") from e


# =============================================================================
# Pending Transactions
# =============================================================================


@dataclass
class PendingTransaction:
    """
    A write that has been handed to the transport.

    It cannot be cancelled from the client; it can only be awaited or
    ignored.
    """
    tx_hash: str
    request: TxRequest
    transport: LedgerTransport = field(repr=False)
    receipt: Optional[TxReceipt] = None

    @property
    def status(self) -> TxStatus:
        return self.receipt.status if self.receipt else TxStatus.PENDING

    async def wait(self) -> TxReceipt:
        """
        Wait for inclusion.

        Raises:
            TransactionReverted: if the ledger refused the transaction
            TransportError: if the outcome could not be observed
        """
        if self.receipt is None or self.receipt.status == TxStatus.PENDING:
            self.receipt = await guarded(
                self.transport.wait_for_receipt(self.tx_hash),
                f"waiting for {self.request.function}",
            )

        if self.receipt.status == TxStatus.FAILED:
            raise TransactionReverted(
                f"{self.request.function} reverted: {self.receipt.error or 'no reason given'}",
                tx_hash=self.tx_hash,
            )
        return self.receipt


async def submit(transport: LedgerTransport, request: TxRequest) -> PendingTransaction:
    """Send a request exactly once and return its pending handle."""
    tx_hash = await guarded(transport.send_transaction(request), f"sending {request.function}")
    logger.info(f"Submitted {request.function} to {request.to[:10]}... tx={tx_hash[:18]}")
    return PendingTransaction(tx_hash=tx_hash, request=request, transport=transport)


# =============================================================================
# Block Range Scanning
# =============================================================================


@dataclass(frozen=True)
class BlockRange:
    """Inclusive range of block numbers."""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid block range [{self.start}, {self.end}]")

    def __len__(self) -> int:
        return self.end - self.start + 1

    def chunks(self, span: int = 0) -> "BlockRangeChunks":
        """Split into sub-ranges of at most `span` blocks (0 = no limit)."""
        return BlockRangeChunks(self, span)

    @classmethod
    def trailing(cls, head: int, window: int) -> "BlockRange":
        """The last `window` blocks up to and including `head`."""
        return cls(max(0, head - window), head)


@dataclass(frozen=True)
class BlockRangeChunks:
    """Lazy, finite, restartable sequence of sub-ranges."""
    whole: BlockRange
    span: int = 0

    def __iter__(self) -> Iterator[BlockRange]:
        if self.span <= 0:
            yield self.whole
            return
        start = self.whole.start
        while start <= self.whole.end:
            end = min(start + self.span - 1, self.whole.end)
            yield BlockRange(start, end)
            start = end + 1

    def __len__(self) -> int:
        if self.span <= 0:
            return 1
        return -(-len(self.whole) // self.span)


async def scan_logs(
    transport: LedgerTransport,
    address: str,
    event: str,
    block_range: BlockRange,
    span: int = 0,
    filters: Optional[Mapping[str, Any]] = None,
) -> List[LogEvent]:
    """
    Fetch logs for every chunk of `block_range` concurrently.

    The merged result is in chain order (block number, then log index).
    """
    requests = [
        guarded(
            transport.get_logs(address, event, chunk.start, chunk.end, filters),
            f"get_logs({event}, {chunk.start}-{chunk.end})",
        )
        for chunk in block_range.chunks(span)
    ]
    results = await asyncio.gather(*requests)

    merged = [log for batch in results for log in batch]
    merged.sort(key=lambda log: (log.block_number, log.log_index))
    return merged
