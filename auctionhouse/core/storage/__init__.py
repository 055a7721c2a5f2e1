"""
Local Storage Module.

Provides client-side persistence for:
- Tracked auction references (created, bid-on, watchlisted)
- Sealed-bid secrets awaiting reveal
"""

from auctionhouse.core.storage.sqlite_adapter import KeyValueStore, MemoryStore, SQLiteStore
from auctionhouse.core.storage.reference_list import ListPurpose, ReferenceListStore, list_key

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "SQLiteStore",
    "ListPurpose",
    "ReferenceListStore",
    "list_key",
]
