"""
Tests for sealed-bid commitments and local secret storage.

Tests cover:
1. Commitment determinism and binding
2. Salt generation
3. SecretStore persistence, encryption and listing
"""

import pytest

from auctionhouse.core.auction import (
    Commitment,
    CommitmentSecret,
    SecretStore,
    create_commitment,
    generate_salt,
    secret_key,
    verify_commitment,
)
from auctionhouse.core.refs import AuctionRef, ProtocolTag
from auctionhouse.core.storage import MemoryStore, SQLiteStore
from auctionhouse.crypto import keccak256
from auctionhouse.errors import ConfigurationError, DecodeError
from auctionhouse.utils.units import to_wei

REF = AuctionRef(ProtocolTag.VICKREY, 4)
BIDDER = "0x" + "ab" * 20


def make_secret(amount=1_500, salt="abc123xy", ref=REF, bidder=BIDDER):
    return CommitmentSecret(
        ref=ref,
        bidder=bidder,
        amount=amount,
        salt=salt,
        commitment=create_commitment(amount, salt),
        created_at=1_700_000_000.0,
    )


# =============================================================================
# Commitments
# =============================================================================


class TestCommitment:
    """Tests for commitment hashing."""

    def test_deterministic(self):
        assert create_commitment(150, "abc123xy") == create_commitment(150, "abc123xy")

    def test_different_amounts_differ(self):
        assert create_commitment(150, "abc123xy") != create_commitment(160, "abc123xy")

    def test_different_salts_differ(self):
        assert create_commitment(150, "abc123xy") != create_commitment(150, "abc123xz")

    def test_packed_encoding(self):
        """uint256 big-endian amount followed by the UTF-8 salt."""
        amount = to_wei("1.5")
        expected = keccak256(amount.to_bytes(32, "big") + "abc123xy".encode("utf-8"))
        assert create_commitment(amount, "abc123xy").hash == expected

    def test_is_32_bytes(self):
        c = create_commitment(1, "saltsalt")
        assert len(c.hash) == 32
        assert c.hex.startswith("0x") and len(c.hex) == 66

    def test_hex_round_trip(self):
        c = create_commitment(99, "saltsalt")
        assert Commitment.from_hex(c.hex) == c

    def test_wrong_length_rejected(self):
        with pytest.raises(ValueError):
            Commitment(b"\x00" * 31)

    @pytest.mark.parametrize("amount", [-1, 2**256, 1.5, "10"])
    def test_invalid_amount(self, amount):
        with pytest.raises(ValueError):
            create_commitment(amount, "saltsalt")

    def test_verify(self):
        c = create_commitment(to_wei("1.5"), "abc123xy")
        assert verify_commitment(c, to_wei("1.5"), "abc123xy")
        assert not verify_commitment(c, to_wei("1.6"), "abc123xy")
        assert not verify_commitment(c, -5, "abc123xy")


class TestSalt:
    def test_default_salt_has_256_bits(self):
        salt = generate_salt()
        assert len(salt) == 64
        int(salt, 16)

    def test_salts_are_unique(self):
        assert len({generate_salt() for _ in range(100)}) == 100

    def test_too_small(self):
        with pytest.raises(ValueError):
            generate_salt(2)


# =============================================================================
# Secret Store
# =============================================================================


class TestSecretStore:
    """Tests for local secret persistence."""

    def test_save_and_load(self):
        secrets = SecretStore(MemoryStore())
        secret = make_secret()
        secrets.save(secret)
        assert secrets.load(REF, BIDDER) == secret

    def test_load_missing(self):
        assert SecretStore(MemoryStore()).load(REF, BIDDER) is None

    def test_bidder_case_insensitive(self):
        secrets = SecretStore(MemoryStore())
        secrets.save(make_secret())
        assert secrets.load(REF, BIDDER.upper().replace("0X", "0x")) is not None

    def test_one_secret_per_pair(self):
        secrets = SecretStore(MemoryStore())
        secrets.save(make_secret(amount=1))
        secrets.save(make_secret(amount=2))
        assert secrets.load(REF, BIDDER).amount == 2

    def test_erase(self):
        secrets = SecretStore(MemoryStore())
        secrets.save(make_secret())
        secrets.erase(REF, BIDDER)
        assert secrets.load(REF, BIDDER) is None

    def test_mark_reveal_failed(self):
        secrets = SecretStore(MemoryStore())
        secret = make_secret()
        secrets.save(secret)

        flagged = secrets.mark_reveal_failed(secret)

        assert flagged.reveal_failed
        assert secrets.load(REF, BIDDER).reveal_failed
        assert not secret.reveal_failed

    def test_key_format(self):
        assert secret_key(REF, BIDDER.upper()) == f"vickrey_commitment_101000004_{BIDDER.upper().lower()}"

    def test_salt_not_in_repr(self):
        assert "abc123xy" not in repr(make_secret())

    def test_corrupt_record(self):
        store = MemoryStore()
        store.set(secret_key(REF, BIDDER), b"{not json")
        with pytest.raises(DecodeError):
            SecretStore(store).load(REF, BIDDER)

    def test_without_store_falls_back_to_memory(self):
        secrets = SecretStore()
        assert not secrets.persistent
        secrets.save(make_secret())
        assert secrets.load(REF, BIDDER) is not None

    def test_list_secrets(self):
        secrets = SecretStore(MemoryStore())
        other = "0x" + "cd" * 20
        secrets.save(make_secret())
        secrets.save(make_secret(ref=AuctionRef(ProtocolTag.VICKREY, 5)))
        secrets.save(make_secret(bidder=other))

        assert len(secrets.list_secrets()) == 3
        assert {s.ref.id for s in secrets.list_secrets(BIDDER)} == {4, 5}
        assert [s.bidder for s in secrets.list_secrets(other)] == [other]


class TestEncryptedSecrets:
    """Secrets sealed with a passphrase."""

    def test_round_trip(self):
        store = MemoryStore()
        secrets = SecretStore(store, passphrase="correct horse")
        secrets.save(make_secret())

        assert b"abc123xy" not in store.get(secret_key(REF, BIDDER))
        assert secrets.load(REF, BIDDER).salt == "abc123xy"

    def test_wrong_passphrase(self):
        store = MemoryStore()
        SecretStore(store, passphrase="correct horse").save(make_secret())
        with pytest.raises(DecodeError):
            SecretStore(store, passphrase="battery staple").load(REF, BIDDER)

    def test_short_passphrase(self):
        with pytest.raises(ConfigurationError):
            SecretStore(MemoryStore(), passphrase="short")

    def test_persisted_in_sqlite(self, tmp_path):
        db = tmp_path / "secrets.db"
        SecretStore(SQLiteStore(db, bucket="secrets"), passphrase="correct horse").save(make_secret())

        reopened = SecretStore(SQLiteStore(db, bucket="secrets"), passphrase="correct horse")
        assert reopened.persistent
        assert reopened.load(REF, BIDDER) == make_secret()
