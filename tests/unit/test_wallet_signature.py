"""Unit tests for Ed25519 wallet signature verification and challenge checks."""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from noizlabs.auth.base58 import b58decode, b58encode
from noizlabs.auth.solana import (
    build_auth_message,
    check_auth_message,
    parse_auth_message,
    verify_wallet_signature,
)


def _keypair() -> tuple[Ed25519PrivateKey, str]:
    key = Ed25519PrivateKey.generate()
    address = b58encode(key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw))
    return key, address


def _sign(key: Ed25519PrivateKey, message: str) -> str:
    return b58encode(key.sign(message.encode("utf-8")))


class TestVerifyWalletSignature:
    def test_valid_signature(self):
        key, address = _keypair()
        message = build_auth_message(address, 1_700_000_000_000)
        assert verify_wallet_signature(address, message, _sign(key, message)) is True

    @pytest.mark.parametrize("bit", [0, 7, 100, 511])
    def test_bit_flipped_signature_rejected(self, bit):
        key, address = _keypair()
        message = build_auth_message(address, 1_700_000_000_000)
        signature = bytearray(key.sign(message.encode()))
        signature[bit // 8] ^= 1 << (bit % 8)
        assert verify_wallet_signature(address, message, b58encode(bytes(signature))) is False

    def test_mismatched_key_rejected(self):
        key, address = _keypair()
        _, other_address = _keypair()
        message = build_auth_message(address, 1_700_000_000_000)
        assert verify_wallet_signature(other_address, message, _sign(key, message)) is False

    def test_tampered_message_rejected(self):
        key, address = _keypair()
        message = build_auth_message(address, 1_700_000_000_000)
        signature = _sign(key, message)
        assert verify_wallet_signature(address, message + " ", signature) is False

    def test_malformed_base58_fails_closed(self):
        key, address = _keypair()
        message = "hello"
        assert verify_wallet_signature("0OIl", message, _sign(key, message)) is False
        assert verify_wallet_signature(address, message, "not base58!") is False
        assert verify_wallet_signature("", message, "") is False

    def test_wrong_lengths_rejected(self):
        key, address = _keypair()
        message = "hello"
        signature = b58decode(_sign(key, message))
        assert verify_wallet_signature(address, message, b58encode(signature[:63])) is False
        assert verify_wallet_signature(b58encode(b"\x01" * 31), message, b58encode(signature)) is False


class TestAuthMessage:
    def test_parse_round_trip(self):
        message = build_auth_message("Wallet111", 1_700_000_000_000)
        parsed = parse_auth_message(message)
        assert parsed.wallet_address == "Wallet111"
        assert parsed.signed_at == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    def test_foreign_prefix_rejected(self):
        with pytest.raises(ValueError, match="Unrecognized"):
            parse_auth_message("Sign this to log in somewhere else\n\nWallet: x\nTimestamp: 1700000000000")

    def test_missing_timestamp_rejected(self):
        with pytest.raises(ValueError, match="wallet and timestamp"):
            parse_auth_message("Sign this message to authenticate with NoizLabs.\n\nWallet: abc")

    def test_fresh_message_accepted(self):
        now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
        message = build_auth_message("abc", int((now - timedelta(seconds=30)).timestamp() * 1000))
        check_auth_message(message, "abc", max_age_seconds=300, future_skew_seconds=60, now=now)

    def test_expired_message_rejected(self):
        now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
        message = build_auth_message("abc", int((now - timedelta(seconds=301)).timestamp() * 1000))
        with pytest.raises(ValueError, match="expired"):
            check_auth_message(message, "abc", max_age_seconds=300, future_skew_seconds=60, now=now)

    def test_future_message_rejected(self):
        now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
        message = build_auth_message("abc", int((now + timedelta(minutes=5)).timestamp() * 1000))
        with pytest.raises(ValueError, match="future"):
            check_auth_message(message, "abc", max_age_seconds=300, future_skew_seconds=60, now=now)

    def test_message_for_other_wallet_rejected(self):
        now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
        message = build_auth_message("someone-else", int(now.timestamp() * 1000))
        with pytest.raises(ValueError, match="different wallet"):
            check_auth_message(message, "abc", max_age_seconds=300, future_skew_seconds=60, now=now)
