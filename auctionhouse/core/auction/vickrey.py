"""
Vickrey Bidder - the commit, reveal and settle lifecycle for one client.

Flow:
1. commit: hash (amount, salt), submit the hash with the commit fee and
   keep the secret locally so it survives a restart
2. reveal: after the commit phase closes, check (amount, salt) against
   the commitment and disclose it; the secret is erased once confirmed
3. settle: after the reveal deadline, withdraw proceeds or the item

A reveal the ledger refuses is final for those values. The secret is
flagged and later reveals stop until the bidder corrects or abandons it.
"""

import time
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from auctionhouse.core.auction.commitment import (
    CommitmentSecret,
    SecretStore,
    create_commitment,
    verify_commitment,
)
from auctionhouse.core.auction.phases import VickreyPhase, phase_of
from auctionhouse.core.ledger import PendingTransaction
from auctionhouse.core.refs import AuctionRef
from auctionhouse.crypto import generate_salt
from auctionhouse.errors import PhaseViolation, SecretMismatch, TransactionReverted
from auctionhouse.utils.logger import get_logger
from auctionhouse.utils.validation import validate_amount, validate_salt

if TYPE_CHECKING:
    from auctionhouse.core.services.vickrey import VickreyAuctionService

logger = get_logger("vickrey")


class VickreyBidder:
    """Drives one bidder's sealed bids through their phases."""

    def __init__(
        self,
        service: "VickreyAuctionService",
        secrets: SecretStore,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.service = service
        self.secrets = secrets
        self.clock = clock or getattr(service, "clock", time.time)

    async def phase(self, ref: AuctionRef, now: Optional[float] = None) -> VickreyPhase:
        state = await self.service.get_auction(ref)
        return phase_of(state, self.clock() if now is None else now)

    # =========================================================================
    # Commit
    # =========================================================================

    async def commit(
        self,
        ref: AuctionRef,
        bidder: str,
        amount: int,
        salt: Optional[str] = None,
        wait: bool = True,
    ) -> Tuple[PendingTransaction, CommitmentSecret]:
        """
        Commit a sealed bid of `amount`.

        The secret is stored as soon as the ledger accepts the submission,
        replacing any earlier secret for this (auction, bidder). If the
        commitment is then refused, the earlier secret is restored, or the
        new one erased when there was none.

        Args:
            ref: Vickrey auction
            bidder: Committing account
            amount: Bid in base units
            salt: Blinding string (default: 256 random bits as hex)
            wait: Wait for inclusion before returning

        Raises:
            PhaseViolation: outside the commit phase, or if the ledger
                refused the commitment after the phase closed
            TransactionReverted: if the ledger refused it for another reason
        """
        ok, err = validate_amount(amount, "amount", min_val=1)
        if not ok:
            raise ValueError(err)
        if salt is None:
            salt = generate_salt()
        ok, err = validate_salt(salt)
        if not ok:
            raise ValueError(err)

        state = await self.service.get_auction(ref)
        current = phase_of(state, self.clock())
        if current != VickreyPhase.COMMIT:
            raise PhaseViolation(f"{ref} is in its {current.value} phase, commitments are closed")

        previous = self.secrets.load(ref, bidder)
        if previous is not None:
            logger.warning(f"Replacing the stored bid secret for {ref}")

        commitment = create_commitment(amount, salt)
        pending = await self.service.submit_commitment(
            ref, commitment, bidder, fee=state.extra["commit_fee"]
        )

        secret = CommitmentSecret(
            ref=ref,
            bidder=bidder,
            amount=amount,
            salt=salt,
            commitment=commitment,
            created_at=self.clock(),
        )
        self.secrets.save(secret)

        if wait:
            try:
                await pending.wait()
            except TransactionReverted as e:
                # The earlier commitment still stands on-chain
                if previous is not None:
                    self.secrets.save(previous)
                else:
                    self.secrets.erase(ref, bidder)
                if self.clock() >= state.extra["commit_end"]:
                    raise PhaseViolation(f"Commit phase of {ref} closed before inclusion") from e
                raise

        logger.info(f"Committed sealed bid on {ref} ({commitment.hex[:18]}...)")
        return pending, secret

    # =========================================================================
    # Reveal
    # =========================================================================

    async def reveal(
        self,
        ref: AuctionRef,
        bidder: str,
        amount: Optional[int] = None,
        salt: Optional[str] = None,
        retry: bool = False,
    ) -> PendingTransaction:
        """
        Reveal a committed bid and wait for the ledger's verdict.

        Values default to the stored secret. Without one, they are checked
        against the commitment the contract holds.

        Raises:
            SecretMismatch: if the values do not open the commitment, or a
                previous reveal of this secret was refused and `retry` is
                not set; carries the stored secret
            PhaseViolation: outside the reveal phase
            TransactionReverted: if the ledger refused the reveal
        """
        secret = self.secrets.load(ref, bidder)

        if secret is not None and secret.reveal_failed and not retry:
            raise SecretMismatch(
                f"A previous reveal for {ref} was refused; correct the values or abandon the bid",
                secret=secret,
            )

        if amount is None or salt is None:
            if secret is None:
                raise SecretMismatch(f"No stored bid secret for {ref}; supply amount and salt")
            amount = secret.amount if amount is None else amount
            salt = secret.salt if salt is None else salt

        if secret is not None:
            expected = secret.commitment
        else:
            expected = await self.service.get_commitment(ref, bidder)
            if expected is None:
                raise SecretMismatch(f"No commitment on record for {ref}")

        if not verify_commitment(expected, amount, salt):
            raise SecretMismatch(
                f"Amount and salt do not match the commitment for {ref}",
                secret=secret,
            )

        pending = await self.service.reveal_bid(ref, amount, salt, bidder)
        try:
            await pending.wait()
        except TransactionReverted:
            if secret is not None:
                self.secrets.mark_reveal_failed(secret)
            logger.error(f"Reveal for {ref} was refused by the ledger")
            raise

        self.secrets.erase(ref, bidder)
        logger.info(f"Revealed bid on {ref}")
        return pending

    # =========================================================================
    # Secret Management / Settlement
    # =========================================================================

    def stored_secret(self, ref: AuctionRef, bidder: str) -> Optional[CommitmentSecret]:
        return self.secrets.load(ref, bidder)

    def pending_reveals(self, bidder: Optional[str] = None) -> List[CommitmentSecret]:
        """Stored secrets still waiting to be revealed."""
        return self.secrets.list_secrets(bidder)

    def abandon(self, ref: AuctionRef, bidder: str) -> None:
        """Give up a sealed bid; the stored secret is destroyed."""
        self.secrets.erase(ref, bidder)
        logger.info(f"Abandoned sealed bid on {ref}")

    async def settle(self, ref: AuctionRef, sender: str) -> PendingTransaction:
        """
        Withdraw after the reveal deadline.

        Raises:
            PhaseViolation: before the auction has ended
        """
        return await self.service.withdraw(ref, sender)
