"""
Sealed-bid auction support.

- commitment: commitment hashing and local secret storage
- phases: the Vickrey lifecycle as a function of time
- vickrey: the bidder-side commit / reveal / settle flow
"""

from auctionhouse.core.auction.commitment import (
    Commitment,
    CommitmentSecret,
    SecretStore,
    create_commitment,
    generate_salt,
    secret_key,
    verify_commitment,
)
from auctionhouse.core.auction.phases import VickreyPhase, phase_of, vickrey_phase
from auctionhouse.core.auction.vickrey import VickreyBidder

__all__ = [
    "Commitment",
    "CommitmentSecret",
    "SecretStore",
    "create_commitment",
    "generate_salt",
    "secret_key",
    "verify_commitment",
    "VickreyPhase",
    "phase_of",
    "vickrey_phase",
    "VickreyBidder",
]
