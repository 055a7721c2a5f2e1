"""
Sealed-Bid Commitments - binding a hidden bid to a public hash.

This module implements the bidder's side of the commit-reveal scheme:
1. Commit: publish C = keccak256(uint256(amount) || utf8(salt))
2. Reveal: disclose (amount, salt); anyone can recompute C

The packed encoding matches Solidity's abi.encodePacked(uint256, string),
so the contract recomputes the same value during reveal.

The bidder must keep (amount, salt) until the reveal phase; without them
the bid cannot be revealed. SecretStore persists them locally, keyed by
(auction, bidder), optionally encrypted at rest.
"""

import base64
import hashlib
import json
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from cryptography.fernet import Fernet, InvalidToken

from auctionhouse.core.refs import AuctionRef, decode, encode
from auctionhouse.core.storage.sqlite_adapter import KeyValueStore, MemoryStore
from auctionhouse.crypto import bytes_to_hex, generate_salt, hex_to_bytes, keccak256
from auctionhouse.errors import ConfigurationError, DecodeError
from auctionhouse.utils.logger import get_logger
from auctionhouse.utils.validation import validate_amount

logger = get_logger("commitment")


# =============================================================================
# Constants
# =============================================================================

SECRET_KEY_PREFIX = "vickrey_commitment_"

# PBKDF2 parameters for at-rest encryption
KDF_ITERATIONS = 100_000
KDF_SALT = b"auctionhouse.secrets"


# =============================================================================
# Commitments
# =============================================================================


@dataclass(frozen=True)
class Commitment:
    """A 32-byte sealed-bid commitment."""
    hash: bytes

    def __post_init__(self):
        if len(self.hash) != 32:
            raise ValueError(f"Commitment must be 32 bytes, got {len(self.hash)}")

    @property
    def hex(self) -> str:
        return bytes_to_hex(self.hash)

    @classmethod
    def from_hex(cls, value: str) -> "Commitment":
        return cls(hex_to_bytes(value))


def create_commitment(amount: int, salt: str) -> Commitment:
    """
    Commit to a bid.

    Args:
        amount: Bid in base units (uint256)
        salt: Secret blinding string

    Returns:
        Commitment over the packed (amount, salt) encoding
    """
    ok, err = validate_amount(amount, "amount")
    if not ok:
        raise ValueError(err)
    if not isinstance(salt, str):
        raise ValueError(f"salt must be str, got {type(salt).__name__}")

    packed = amount.to_bytes(32, "big") + salt.encode("utf-8")
    return Commitment(keccak256(packed))


def verify_commitment(commitment: Commitment, amount: int, salt: str) -> bool:
    """Whether (amount, salt) opens `commitment`."""
    try:
        return create_commitment(amount, salt) == commitment
    except ValueError:
        return False


# =============================================================================
# Secrets
# =============================================================================


@dataclass(frozen=True)
class CommitmentSecret:
    """
    Everything a bidder needs to reveal a sealed bid.

    Held only by the bidder. `reveal_failed` is set once the ledger has
    refused a reveal built from these values.
    """
    ref: AuctionRef
    bidder: str
    amount: int
    salt: str = field(repr=False)
    commitment: Commitment
    created_at: float = field(default_factory=time.time)
    reveal_failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "auction": encode(self.ref),
            "bidder": self.bidder,
            "amount": str(self.amount),
            "salt": self.salt,
            "commitment": self.commitment.hex,
            "created_at": self.created_at,
            "reveal_failed": self.reveal_failed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommitmentSecret":
        return cls(
            ref=decode(data["auction"]),
            bidder=data["bidder"],
            amount=int(data["amount"]),
            salt=data["salt"],
            commitment=Commitment.from_hex(data["commitment"]),
            created_at=float(data["created_at"]),
            reveal_failed=bool(data.get("reveal_failed", False)),
        )


def secret_key(ref: AuctionRef, bidder: str) -> str:
    """Storage key for the secret of one (auction, bidder) pair."""
    return f"{SECRET_KEY_PREFIX}{encode(ref)}_{bidder.lower()}"


class SecretStore:
    """
    Local persistence for sealed-bid secrets.

    At most one secret per (auction, bidder): saving again overwrites.
    Without a backing store the secrets live in memory only and do not
    survive a restart.
    """

    def __init__(self, store: Optional[KeyValueStore] = None, passphrase: Optional[str] = None):
        if store is None:
            logger.warning("No persistent store for bid secrets; they will not survive a restart")
            store = MemoryStore()
        self.store = store
        self._fernet = _fernet_for(passphrase) if passphrase else None

    @property
    def persistent(self) -> bool:
        return not isinstance(self.store, MemoryStore)

    def _seal(self, payload: bytes) -> bytes:
        return self._fernet.encrypt(payload) if self._fernet else payload

    def _open(self, blob: bytes) -> bytes:
        if not self._fernet:
            return blob
        try:
            return self._fernet.decrypt(blob)
        except InvalidToken as e:
            raise DecodeError("Stored secret cannot be decrypted with this passphrase") from e

    def save(self, secret: CommitmentSecret) -> None:
        payload = json.dumps(secret.to_dict(), sort_keys=True).encode("utf-8")
        self.store.set(secret_key(secret.ref, secret.bidder), self._seal(payload))
        logger.debug(f"Stored bid secret for {secret.ref} / {secret.bidder[:10]}...")

    def load(self, ref: AuctionRef, bidder: str) -> Optional[CommitmentSecret]:
        """
        Load the secret for (ref, bidder), or None if there is none.

        Raises:
            DecodeError: if the stored record is corrupt or unreadable
        """
        blob = self.store.get(secret_key(ref, bidder))
        if blob is None:
            return None
        try:
            return CommitmentSecret.from_dict(json.loads(self._open(blob)))
        except (ValueError, KeyError, TypeError) as e:
            raise DecodeError(f"Corrupt bid secret for {ref}: {e}") from e

    def mark_reveal_failed(self, secret: CommitmentSecret) -> CommitmentSecret:
        flagged = replace(secret, reveal_failed=True)
        self.save(flagged)
        return flagged

    def erase(self, ref: AuctionRef, bidder: str) -> None:
        self.store.remove(secret_key(ref, bidder))
        logger.debug(f"Erased bid secret for {ref} / {bidder[:10]}...")

    def list_secrets(self, bidder: Optional[str] = None) -> List[CommitmentSecret]:
        """All readable secrets, optionally for one bidder. Needs a listable store."""
        keys = getattr(self.store, "keys", None)
        if keys is None:
            return []

        secrets_found = []
        for key in keys(SECRET_KEY_PREFIX):
            if bidder and not key.endswith("_" + bidder.lower()):
                continue
            blob = self.store.get(key)
            if blob is None:
                continue
            try:
                secrets_found.append(CommitmentSecret.from_dict(json.loads(self._open(blob))))
            except (DecodeError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable bid secret {key!r}: {e}")
        return secrets_found


def _fernet_for(passphrase: str) -> Fernet:
    if len(passphrase) < 8:
        raise ConfigurationError("Secret passphrase must be at least 8 characters")
    key = base64.urlsafe_b64encode(
        hashlib.pbkdf2_hmac("sha256", passphrase.encode(), KDF_SALT, KDF_ITERATIONS)
    )
    return Fernet(key)


__all__ = [
    "Commitment",
    "CommitmentSecret",
    "SecretStore",
    "create_commitment",
    "verify_commitment",
    "generate_salt",
    "secret_key",
]
