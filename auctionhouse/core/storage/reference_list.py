import threading
from enum import Enum
from typing import Dict, List

from auctionhouse.core.refs import AuctionRef, decode, encode
from auctionhouse.core.storage.sqlite_adapter import KeyValueStore
from auctionhouse.errors import DecodeError
from auctionhouse.utils.logger import get_logger

logger = get_logger("storage.references")

SEPARATOR = ","


class ListPurpose(str, Enum):
    """What a tracked reference list is for."""
    CREATED = "CreatedAuctions"
    BIDS = "Bids"
    WATCHLIST = "WishList"


def list_key(purpose: ListPurpose, chain_id: int, account: str) -> str:
    """Storage key for one (chain, account, purpose) list."""
    return f"{ListPurpose(purpose).value}:{chain_id}:{account.lower()}"


class ReferenceListStore:
    """
    Ordered, deduplicated lists of auction references.

    Each list lives under a caller-chosen key as comma-joined tokens.
    Mutations are read-modify-write under a per-key lock and persist the
    whole list, so concurrent appends to one key never lose an entry.
    Corrupt tokens are skipped on load and dropped by the next write.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    # =========================================================================
    # Serialization
    # =========================================================================

    def _read(self, key: str) -> List[AuctionRef]:
        raw = self.store.get(key)
        if not raw:
            return []

        refs: List[AuctionRef] = []
        seen = set()
        for token in raw.decode("utf-8", errors="replace").split(SEPARATOR):
            if not token:
                continue
            try:
                ref = decode(token)
            except DecodeError as e:
                logger.warning(f"Skipping corrupt entry in {key!r}: {e}")
                continue
            if ref not in seen:
                seen.add(ref)
                refs.append(ref)
        return refs

    def _write(self, key: str, refs: List[AuctionRef]):
        raw = SEPARATOR.join(encode(ref) for ref in refs)
        self.store.set(key, raw.encode("utf-8"))

    # =========================================================================
    # Queries
    # =========================================================================

    def load(self, key: str) -> List[AuctionRef]:
        """Return the list under key, empty if it was never written."""
        return self._read(key)

    def is_present(self, key: str, ref: AuctionRef) -> bool:
        return ref in self._read(key)

    # =========================================================================
    # Mutations
    # =========================================================================

    def append(self, key: str, ref: AuctionRef) -> bool:
        """
        Add ref at the end of the list.

        Returns:
            True if the list changed, False if ref was already present
        """
        with self._lock_for(key):
            refs = self._read(key)
            if ref in refs:
                return False
            refs.append(ref)
            self._write(key, refs)

        logger.debug(f"Appended {ref} to {key!r}")
        return True

    def remove(self, key: str, ref: AuctionRef) -> bool:
        """
        Remove ref from the list.

        Returns:
            True if the list changed, False if ref was absent
        """
        with self._lock_for(key):
            refs = self._read(key)
            if ref not in refs:
                return False
            refs.remove(ref)
            self._write(key, refs)

        logger.debug(f"Removed {ref} from {key!r}")
        return True

    def clear(self, key: str):
        """Logically reset the list by removing every entry."""
        with self._lock_for(key):
            self._write(key, [])
