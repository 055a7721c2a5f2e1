"""
Cryptographic primitives for auctionhouse.

This module provides:
- Keccak-256 hashing
- Secure salt generation for sealed bids
- Hex and address helpers

Design Notes:
-------------
Commitments must be reproducible by the auction contracts, so they are
hashed with Keccak-256 over Solidity's packed encoding.
"""

import secrets

from Crypto.Hash import keccak


# =============================================================================
# Constants
# =============================================================================

# 256 bits of randomness, hex encoded
DEFAULT_SALT_BYTES = 32

ZERO_ADDRESS = "0x" + "00" * 20


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: bid commitments, address derivation.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Randomness
# =============================================================================


def generate_salt(nbytes: int = DEFAULT_SALT_BYTES) -> str:
    """
    Generate a random salt for a sealed bid.

    Uses the operating system's CSPRNG and returns the bytes hex encoded,
    so the default salt carries 256 bits of entropy in 64 characters.
    """
    if nbytes < 4:
        raise ValueError("Salt must carry at least 4 random bytes")
    return secrets.token_hex(nbytes)


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    if len(address) != 42:  # 0x + 40 hex chars
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def address_from_seed(seed: bytes) -> str:
    """
    Derive a deterministic address-shaped string from arbitrary bytes.

    Address = last 20 bytes of keccak256(seed). Handy for demo accounts.
    """
    return "0x" + keccak256(seed)[-20:].hex()


def same_address(a: str, b: str) -> bool:
    """Compare two addresses case-insensitively."""
    return bool(a) and bool(b) and a.lower() == b.lower()


__all__ = [
    "DEFAULT_SALT_BYTES",
    "ZERO_ADDRESS",
    "keccak256",
    "generate_salt",
    "bytes_to_hex",
    "hex_to_bytes",
    "is_valid_address",
    "address_from_seed",
    "same_address",
]
