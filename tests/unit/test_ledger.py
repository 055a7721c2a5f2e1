"""
Tests for the ledger boundary: block ranges, log scans and pending
transactions.
"""

import asyncio

import pytest

from auctionhouse.core.ledger import (
    BlockRange,
    PendingTransaction,
    TxRequest,
    TxStatus,
    guarded,
    scan_logs,
    submit,
)
from auctionhouse.errors import TransactionReverted, TransportError

CONTRACT = "0x" + "33" * 20


# =============================================================================
# Block Ranges
# =============================================================================


class TestBlockRange:
    """Tests for range splitting."""

    def test_length_is_inclusive(self):
        assert len(BlockRange(10, 10)) == 1
        assert len(BlockRange(0, 99)) == 100

    def test_invalid(self):
        with pytest.raises(ValueError):
            BlockRange(10, 9)
        with pytest.raises(ValueError):
            BlockRange(-1, 5)

    def test_unlimited_span(self):
        assert list(BlockRange(0, 5000).chunks(0)) == [BlockRange(0, 5000)]

    def test_chunks_cover_range(self):
        chunks = list(BlockRange(0, 2500).chunks(1000))
        assert chunks == [BlockRange(0, 999), BlockRange(1000, 1999), BlockRange(2000, 2500)]
        assert len(BlockRange(0, 2500).chunks(1000)) == 3

    def test_chunks_restartable(self):
        chunks = BlockRange(5, 50).chunks(7)
        assert list(chunks) == list(chunks)
        assert sum(len(c) for c in chunks) == 46

    def test_trailing(self):
        assert BlockRange.trailing(50_000, 10_000) == BlockRange(40_000, 50_000)
        assert BlockRange.trailing(300, 10_000) == BlockRange(0, 300)


# =============================================================================
# Log Scans
# =============================================================================


class TestScanLogs:
    """Tests for concurrent chunked log queries."""

    def test_merged_in_chain_order(self, ledger):
        for block, index in ((2500, 1), (10, 0), (2500, 0), (1200, 3)):
            ledger.add_log(CONTRACT, "bidPlaced", block, index, n=(block, index))

        logs = asyncio.run(scan_logs(ledger, CONTRACT, "bidPlaced", BlockRange(0, 2999), span=1000))

        assert [log.args["n"] for log in logs] == [(10, 0), (1200, 3), (2500, 0), (2500, 1)]
        assert len(ledger.log_queries) == 3

    def test_failure_is_transport_error(self, ledger):
        async def broken(*args, **kwargs):
            raise ConnectionError("rpc down")

        ledger.get_logs = broken
        with pytest.raises(TransportError):
            asyncio.run(scan_logs(ledger, CONTRACT, "bidPlaced", BlockRange(0, 10)))


# =============================================================================
# Transactions
# =============================================================================


class TestPendingTransaction:
    """Tests for submit / wait."""

    def test_confirmed(self, ledger):
        async def flow():
            pending = await submit(ledger, TxRequest(CONTRACT, "placeBid", (1, 100), sender="0xabc"))
            assert pending.status == TxStatus.PENDING
            receipt = await pending.wait()
            return pending, receipt

        pending, receipt = asyncio.run(flow())
        assert receipt.confirmed
        assert pending.status == TxStatus.CONFIRMED
        assert len(ledger.sent) == 1

    def test_reverted(self, ledger):
        ledger.fail_next("placeBid", "bid too low")

        async def flow():
            pending = await submit(ledger, TxRequest(CONTRACT, "placeBid", (1, 1)))
            await pending.wait()

        with pytest.raises(TransactionReverted, match="bid too low"):
            asyncio.run(flow())

    def test_send_failure_is_transport_error(self, ledger):
        ledger.send_error = ConnectionError("wallet closed")
        with pytest.raises(TransportError):
            asyncio.run(submit(ledger, TxRequest(CONTRACT, "placeBid")))
        assert ledger.sent == []

    def test_wait_reuses_receipt(self, ledger):
        calls = []
        original = ledger.wait_for_receipt

        async def counting(tx_hash):
            calls.append(tx_hash)
            return await original(tx_hash)

        ledger.wait_for_receipt = counting

        async def flow():
            pending = await submit(ledger, TxRequest(CONTRACT, "withdrawItem", (1,)))
            await pending.wait()
            await pending.wait()

        asyncio.run(flow())
        assert len(calls) == 1


class TestGuarded:
    def test_timeout(self):
        async def slow():
            raise asyncio.TimeoutError()

        with pytest.raises(TransportError, match="timed out"):
            asyncio.run(guarded(slow(), "read"))

    def test_rpc_errors_are_transport_errors(self):
        async def rpc_failure():
            raise RuntimeError("JSON-RPC error -32000: header not found")

        with pytest.raises(TransportError, match="header not found") as info:
            asyncio.run(guarded(rpc_failure(), "read"))
        assert isinstance(info.value.__cause__, RuntimeError)

    def test_auction_errors_pass_through(self):
        async def reverted():
            raise TransactionReverted("placeBid reverted")

        with pytest.raises(TransactionReverted):
            asyncio.run(guarded(reverted(), "read"))
