"""
Solana wallet message signing verification.

Wallet adapters sign the UTF-8 bytes of a plaintext message with the
account's Ed25519 key and hand back a detached 64-byte signature. The wallet
address is the base58 encoding of the 32-byte public key, so no key lookup
is needed: decode, verify, done.

Uses the ``cryptography`` Ed25519 primitives.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from noizlabs.auth.base58 import b58decode

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64

MESSAGE_PREFIX = "Sign this message to authenticate with NoizLabs."

_WALLET_LINE = re.compile(r"^Wallet: (\S+)$", re.MULTILINE)
_TIMESTAMP_LINE = re.compile(r"^Timestamp: (\d{10,16})$", re.MULTILINE)


def verify_wallet_signature(
    wallet_address: str,
    message: str,
    signature_base58: str,
) -> bool:
    """
    Verify a detached Ed25519 signature over ``message``.

    Args:
        wallet_address: Base58 public key claiming ownership.
        message: The exact plaintext that was signed.
        signature_base58: Base58-encoded 64-byte signature.

    Returns:
        True only if the signature is valid for this key and message.
        Malformed input of any kind yields False, never an exception.
    """
    try:
        public_key_bytes = b58decode(wallet_address)
        signature = b58decode(signature_base58)
    except ValueError:
        return False

    if len(public_key_bytes) != PUBLIC_KEY_LENGTH or len(signature) != SIGNATURE_LENGTH:
        return False

    try:
        public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
        public_key.verify(signature, message.encode("utf-8"))
    except (InvalidSignature, ValueError):
        return False
    return True


def build_auth_message(wallet_address: str, timestamp_ms: int) -> str:
    """The challenge text the web client asks the wallet to sign."""
    return f"{MESSAGE_PREFIX}\n\nWallet: {wallet_address}\nTimestamp: {timestamp_ms}"


@dataclass(frozen=True)
class AuthMessage:
    wallet_address: str
    signed_at: datetime


def parse_auth_message(message: str) -> AuthMessage:
    """
    Extract the wallet and client timestamp from a challenge message.

    Raises:
        ValueError: If the prefix, wallet line or timestamp line is missing.
    """
    if not message.startswith(MESSAGE_PREFIX):
        msg = "Unrecognized sign-in message"
        raise ValueError(msg)

    wallet_match = _WALLET_LINE.search(message)
    timestamp_match = _TIMESTAMP_LINE.search(message)
    if wallet_match is None or timestamp_match is None:
        msg = "Sign-in message must include wallet and timestamp"
        raise ValueError(msg)

    signed_at = datetime.fromtimestamp(int(timestamp_match.group(1)) / 1000, tz=timezone.utc)
    return AuthMessage(wallet_address=wallet_match.group(1), signed_at=signed_at)


def check_auth_message(
    message: str,
    wallet_address: str,
    *,
    max_age_seconds: int,
    future_skew_seconds: int,
    now: datetime | None = None,
) -> None:
    """
    Reject messages signed for another wallet or outside the replay window.

    Raises:
        ValueError: With a human-readable reason.
    """
    parsed = parse_auth_message(message)
    if parsed.wallet_address != wallet_address:
        msg = "Sign-in message was signed for a different wallet"
        raise ValueError(msg)

    if now is None:
        now = datetime.now(timezone.utc)
    age = (now - parsed.signed_at).total_seconds()
    if age > max_age_seconds:
        msg = "Sign-in message has expired"
        raise ValueError(msg)
    if age < -future_skew_seconds:
        msg = "Sign-in message timestamp is in the future"
        raise ValueError(msg)
