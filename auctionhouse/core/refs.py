"""
Auction references - protocol-tagged identifiers and their token codec.

Auction ids are only unique within one protocol contract, so every
reference carries its protocol tag. A reference serializes to a compact
token: a 3-character protocol code followed by the id, zero padded to at
least 6 digits ("100000042" is English auction 42). The layout is frozen;
tokens persisted today must decode tomorrow.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from auctionhouse.errors import DecodeError, UnsupportedProtocol


# =============================================================================
# Constants
# =============================================================================

CODE_LENGTH = 3
MIN_ID_DIGITS = 6


# =============================================================================
# Protocol Tags
# =============================================================================


class ProtocolTag(str, Enum):
    """Closed set of supported auction protocols."""
    ENGLISH = "English"
    LINEAR = "Linear"
    EXPONENTIAL = "Exponential"
    LOGARITHMIC = "Logarithmic"
    ALLPAY = "AllPay"
    VICKREY = "Vickrey"

    @property
    def code(self) -> str:
        """Stable token prefix for this protocol."""
        return _PROTOCOL_CODES[self]

    @property
    def is_dutch(self) -> bool:
        return self in (ProtocolTag.LINEAR, ProtocolTag.EXPONENTIAL, ProtocolTag.LOGARITHMIC)

    @classmethod
    def parse(cls, value: Union["ProtocolTag", str]) -> "ProtocolTag":
        """
        Resolve a tag from an enum member or its string value.

        Raises:
            UnsupportedProtocol: if the value names no known protocol
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedProtocol(f"Unsupported auction protocol: {value!r}") from None


_PROTOCOL_CODES = {
    ProtocolTag.ALLPAY: "000",
    ProtocolTag.ENGLISH: "100",
    ProtocolTag.LINEAR: "010",
    ProtocolTag.LOGARITHMIC: "110",
    ProtocolTag.EXPONENTIAL: "001",
    ProtocolTag.VICKREY: "101",
}

_CODE_TO_PROTOCOL = {code: tag for tag, code in _PROTOCOL_CODES.items()}


# =============================================================================
# Auction Reference
# =============================================================================


@dataclass(frozen=True)
class AuctionRef:
    """Compound key (protocol, id) identifying one auction."""
    protocol: ProtocolTag
    id: int

    def __post_init__(self):
        if not isinstance(self.protocol, ProtocolTag):
            object.__setattr__(self, "protocol", ProtocolTag.parse(self.protocol))
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id < 0:
            raise ValueError(f"Auction id must be a non-negative int, got {self.id!r}")

    @property
    def token(self) -> str:
        return encode(self)

    def __str__(self) -> str:
        return f"{self.protocol.value}#{self.id}"


# =============================================================================
# Token Codec
# =============================================================================


def encode(ref: AuctionRef) -> str:
    """Encode a reference as a storage token."""
    return f"{ref.protocol.code}{ref.id:0{MIN_ID_DIGITS}d}"


def decode(token: str) -> AuctionRef:
    """
    Decode a storage token back into a reference.

    Raises:
        DecodeError: if the token is malformed, uses an unknown protocol
            code, or is not in canonical form
    """
    if not isinstance(token, str):
        raise DecodeError(f"Token must be str, got {type(token).__name__}")

    if len(token) < CODE_LENGTH + MIN_ID_DIGITS:
        raise DecodeError(f"Token too short: {token!r}")

    code, digits = token[:CODE_LENGTH], token[CODE_LENGTH:]

    protocol = _CODE_TO_PROTOCOL.get(code)
    if protocol is None:
        raise DecodeError(f"Unknown protocol code {code!r} in token {token!r}")

    # str.isdigit accepts non-ASCII digits, which int() would silently fold
    if not (digits.isascii() and digits.isdigit()):
        raise DecodeError(f"Invalid auction id in token {token!r}")

    ref = AuctionRef(protocol=protocol, id=int(digits))

    # Reject padding that would not survive a round trip
    if encode(ref) != token:
        raise DecodeError(f"Non-canonical token {token!r}")

    return ref


__all__ = [
    "ProtocolTag",
    "AuctionRef",
    "encode",
    "decode",
]
