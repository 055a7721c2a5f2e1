"""
Typed failures raised by the auction client.

Every error is returned to the immediate caller. Only best-effort bulk
enrichment (tracker lists, auction discovery) drops per-item failures,
and it logs each one.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from auctionhouse.core.auction.commitment import CommitmentSecret


class AuctionError(Exception):
    """Base class for all auctionhouse errors."""


class ConfigurationError(AuctionError):
    """Invalid static parameters, detected at construction time."""


class NotFound(AuctionError):
    """An auction id does not resolve to a live record."""


class UnsupportedProtocol(AuctionError):
    """Dispatch on a protocol tag with no service behind it."""


class NotApplicable(AuctionError):
    """The operation has no meaning for this protocol."""


class PhaseViolation(AuctionError):
    """An operation was attempted outside its lifecycle window."""


class DecodeError(AuctionError):
    """A persisted reference token is malformed."""


class TransportError(AuctionError):
    """
    The ledger transport failed or timed out.

    The outcome of the request is unknown. Writes must only be retried
    by explicit caller action.
    """


class TransactionReverted(AuctionError):
    """The ledger included a submitted write but refused it."""

    def __init__(self, message: str, tx_hash: str = ""):
        super().__init__(message)
        self.tx_hash = tx_hash


class SecretMismatch(AuctionError):
    """
    A reveal does not hash to the stored commitment.

    Carries the stored secret so it can be shown to the bidder for manual
    correction or abandonment.
    """

    def __init__(self, message: str, secret: Optional["CommitmentSecret"] = None):
        super().__init__(message)
        self.secret = secret


__all__ = [
    "AuctionError",
    "ConfigurationError",
    "NotFound",
    "UnsupportedProtocol",
    "NotApplicable",
    "PhaseViolation",
    "DecodeError",
    "TransportError",
    "TransactionReverted",
    "SecretMismatch",
]
