"""
Tests for key derivation and the cipher envelope codec.

Tests cover:
- PBKDF2 determinism and salt separation
- Envelope shape and randomness
- Round trips (unicode, long text, alternate configurations)
- Tamper detection and structural validation
"""
import hashlib
import re

import pytest

from navigator_crypto.config import CryptoConfig
from navigator_crypto.crypto import (
    decrypt_envelope,
    derive_key,
    encrypt_envelope,
    parse_envelope,
)
from navigator_crypto.exceptions import (
    AuthenticationFailed,
    InvalidInput,
    MalformedEnvelope,
)

SECRET = b"0123456789abcdef0123456789abcdef"
HEX_FIELD = re.compile(r"^[0-9a-f]+$")


@pytest.fixture
def cfg():
    return CryptoConfig(iterations=1000)


def _flip_hex(value: str, index: int) -> str:
    """Replace one hex character with a different hex character."""
    replacement = "0" if value[index] != "0" else "1"
    return value[:index] + replacement + value[index + 1:]


class TestDeriveKey:
    """Tests for derive_key."""

    def test_length(self):
        assert len(derive_key(SECRET, b"s" * 32, iterations=10)) == 32
        assert len(derive_key(SECRET, b"s" * 32, iterations=10, length=16)) == 16

    def test_deterministic(self):
        salt = b"\x01" * 32
        assert derive_key(SECRET, salt, 100) == derive_key(SECRET, salt, 100)

    def test_different_salts(self):
        assert derive_key(SECRET, b"\x01" * 32, 100) != derive_key(SECRET, b"\x02" * 32, 100)

    def test_matches_pbkdf2_sha256(self):
        salt = b"\x07" * 32
        expected = hashlib.pbkdf2_hmac("sha256", SECRET, salt, 100_000, 32)
        assert derive_key(SECRET, salt) == expected


class TestEncryptEnvelope:
    """Tests for envelope shape and randomness."""

    def test_shape(self, cfg):
        envelope = encrypt_envelope("hello", SECRET, cfg)
        assert envelope.count(":") == 3
        salt, iv, tag, ciphertext = envelope.split(":")
        assert len(salt) == 64
        assert len(iv) == 32
        assert len(tag) == 32
        assert len(ciphertext) == 2 * len("hello")
        for field in (salt, iv, tag, ciphertext):
            assert HEX_FIELD.match(field)

    @pytest.mark.parametrize("length", [1, 100, 10_000])
    def test_shape_long_text(self, cfg, length):
        envelope = encrypt_envelope("x" * length, SECRET, cfg)
        fields = envelope.split(":")
        assert len(fields) == 4
        assert all(fields)

    def test_non_deterministic(self, cfg):
        a = encrypt_envelope("same", SECRET, cfg)
        b = encrypt_envelope("same", SECRET, cfg)
        assert a != b
        assert a.split(":")[0] != b.split(":")[0]
        assert a.split(":")[1] != b.split(":")[1]

    @pytest.mark.parametrize("value", ["", None, 123, b"bytes"])
    def test_invalid_input(self, cfg, value):
        with pytest.raises(InvalidInput):
            encrypt_envelope(value, SECRET, cfg)

    def test_lone_surrogate(self, cfg):
        with pytest.raises(InvalidInput, match="UTF-8") as exc_info:
            encrypt_envelope("bad \ud800 text", SECRET, cfg)
        assert isinstance(exc_info.value.__cause__, UnicodeEncodeError)


class TestDecryptEnvelope:
    """Tests for decryption, authentication and validation."""

    def test_roundtrip(self, cfg):
        envelope = encrypt_envelope("hello", SECRET, cfg)
        assert decrypt_envelope(envelope, SECRET, cfg) == "hello"

    def test_roundtrip_unicode(self, cfg):
        text = "sekrit: \U0001f511 ключ 鍵 : with colons"
        assert decrypt_envelope(encrypt_envelope(text, SECRET, cfg), SECRET, cfg) == text

    def test_roundtrip_long(self, cfg):
        text = "abc:" * 2500
        assert decrypt_envelope(encrypt_envelope(text, SECRET, cfg), SECRET, cfg) == text

    def test_roundtrip_alternate_config(self):
        cfg = CryptoConfig(
            algorithm="aes-128-gcm", iv_length=12, salt_length=16,
            tag_length=12, iterations=10,
        )
        envelope = encrypt_envelope("hello", SECRET, cfg)
        salt, iv, tag, _ = envelope.split(":")
        assert (len(salt), len(iv), len(tag)) == (32, 24, 24)
        assert decrypt_envelope(envelope, SECRET, cfg) == "hello"

    def test_other_config_rejects_envelope(self, cfg):
        envelope = encrypt_envelope("hello", SECRET, cfg)
        other = CryptoConfig(iv_length=12, iterations=1000)
        with pytest.raises(MalformedEnvelope, match="iv"):
            decrypt_envelope(envelope, SECRET, other)

    def test_wrong_secret(self, cfg):
        envelope = encrypt_envelope("hello", SECRET, cfg)
        with pytest.raises(AuthenticationFailed):
            decrypt_envelope(envelope, b"f" * 32, cfg)

    def test_tampered_ciphertext(self, cfg):
        salt, iv, tag, ciphertext = encrypt_envelope("hello world", SECRET, cfg).split(":")
        for index in range(len(ciphertext)):
            tampered = ":".join((salt, iv, tag, _flip_hex(ciphertext, index)))
            with pytest.raises(AuthenticationFailed):
                decrypt_envelope(tampered, SECRET, cfg)

    def test_tampered_tag(self, cfg):
        salt, iv, tag, ciphertext = encrypt_envelope("hello", SECRET, cfg).split(":")
        for index in (0, 7, len(tag) - 1):
            tampered = ":".join((salt, iv, _flip_hex(tag, index), ciphertext))
            with pytest.raises(AuthenticationFailed) as exc_info:
                decrypt_envelope(tampered, SECRET, cfg)
            assert exc_info.value.__cause__ is not None

    @pytest.mark.parametrize("envelope", [
        "abc",
        "a:b:c",
        "a:b:c:d:e",
    ])
    def test_wrong_field_count(self, cfg, envelope):
        with pytest.raises(MalformedEnvelope, match="Expected 4 envelope fields"):
            decrypt_envelope(envelope, SECRET, cfg)

    def test_non_hex_field(self, cfg):
        salt, iv, tag, _ = encrypt_envelope("hello", SECRET, cfg).split(":")
        with pytest.raises(MalformedEnvelope, match="hex"):
            decrypt_envelope(":".join((salt, iv, tag, "zz")), SECRET, cfg)

    @pytest.mark.parametrize("position", ["ciphertext", "salt"])
    def test_whitespace_in_field(self, cfg, position):
        salt, iv, tag, ciphertext = encrypt_envelope("hello world", SECRET, cfg).split(":")
        if position == "ciphertext":
            ciphertext = ciphertext[:2] + " " + ciphertext[2:]
        else:
            salt = salt[:2] + " " + salt[2:]
        with pytest.raises(MalformedEnvelope, match="hex"):
            decrypt_envelope(":".join((salt, iv, tag, ciphertext)), SECRET, cfg)

    def test_trailing_newline(self, cfg):
        envelope = encrypt_envelope("hello", SECRET, cfg)
        with pytest.raises(MalformedEnvelope, match="hex"):
            decrypt_envelope(envelope + "\n", SECRET, cfg)

    def test_empty_ciphertext(self, cfg):
        salt, iv, tag, _ = encrypt_envelope("hello", SECRET, cfg).split(":")
        with pytest.raises(MalformedEnvelope, match="empty"):
            decrypt_envelope(":".join((salt, iv, tag, "")), SECRET, cfg)

    @pytest.mark.parametrize("value", ["", None, 42])
    def test_invalid_envelope_input(self, cfg, value):
        with pytest.raises(InvalidInput):
            decrypt_envelope(value, SECRET, cfg)


class TestParseEnvelope:
    """parse_envelope validates without doing cryptographic work."""

    def test_parse(self, cfg):
        envelope = encrypt_envelope("hello", SECRET, cfg)
        salt, iv, tag, ciphertext = parse_envelope(envelope, cfg)
        assert len(salt) == 32
        assert len(iv) == 16
        assert len(tag) == 16
        assert len(ciphertext) == 5

    def test_malformed_skips_key_derivation(self, cfg, monkeypatch):
        from navigator_crypto import crypto

        def _fail(*args, **kwargs):
            raise AssertionError("derive_key must not run")

        monkeypatch.setattr(crypto, "derive_key", _fail)
        with pytest.raises(MalformedEnvelope):
            crypto.decrypt_envelope("a:b", SECRET, cfg)
