"""Base58 (Bitcoin alphabet) codec used for Solana public keys and signatures.

No checksum: Solana transports raw key and signature bytes in plain base58.
"""

from __future__ import annotations

ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {char: i for i, char in enumerate(ALPHABET)}


def b58encode(data: bytes) -> str:
    """Encode raw bytes to base58."""
    n = int.from_bytes(data, "big")
    result = ""
    while n > 0:
        n, remainder = divmod(n, 58)
        result = ALPHABET[remainder] + result
    # Preserve leading zeros
    for byte in data:
        if byte == 0:
            result = "1" + result
        else:
            break
    return result


def b58decode(value: str) -> bytes:
    """Decode a base58 string to raw bytes.

    Raises:
        ValueError: On an empty string or a character outside the alphabet.
    """
    if not value:
        msg = "Empty base58 string"
        raise ValueError(msg)

    n = 0
    for char in value:
        try:
            n = n * 58 + _INDEX[char]
        except KeyError:
            msg = f"Invalid base58 character: {char!r}"
            raise ValueError(msg) from None

    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    leading_zeros = len(value) - len(value.lstrip("1"))
    return b"\x00" * leading_zeros + body


def is_solana_address(value: str) -> bool:
    """True if ``value`` decodes to a 32-byte public key."""
    try:
        return len(b58decode(value)) == 32
    except ValueError:
        return False
