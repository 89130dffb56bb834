"""Unit tests for the base58 codec."""

import pytest

from noizlabs.auth.base58 import ALPHABET, b58decode, b58encode, is_solana_address


class TestBase58:
    def test_known_vector(self):
        assert b58encode(b"hello world") == "StV1DL6CwTryKyV"
        assert b58decode("StV1DL6CwTryKyV") == b"hello world"

    def test_leading_zero_bytes_become_ones(self):
        assert b58encode(b"\x00\x00\x01") == "112"
        assert b58decode("112") == b"\x00\x00\x01"

    def test_all_zero_bytes(self):
        assert b58encode(b"\x00" * 4) == "1111"
        assert b58decode("1111") == b"\x00" * 4

    def test_32_byte_key_round_trips(self):
        key = bytes(range(32))
        assert b58decode(b58encode(key)) == key

    @pytest.mark.parametrize("char", ["0", "O", "I", "l", "+", "/", " "])
    def test_characters_outside_alphabet_rejected(self, char):
        assert char not in ALPHABET
        with pytest.raises(ValueError, match="Invalid base58 character"):
            b58decode(f"abc{char}def")

    def test_empty_string_rejected(self):
        with pytest.raises(ValueError, match="Empty"):
            b58decode("")


class TestSolanaAddress:
    def test_32_byte_key_is_address(self):
        assert is_solana_address(b58encode(b"\x07" * 32))

    def test_wrong_length_is_not_address(self):
        assert not is_solana_address(b58encode(b"\x07" * 31))
        assert not is_solana_address(b58encode(b"\x07" * 33))

    def test_garbage_is_not_address(self):
        assert not is_solana_address("not-a-wallet!")
