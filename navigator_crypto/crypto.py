"""
Crypto Core — Key derivation and cipher envelope encryption/decryption.

Every encryption derives a fresh key:
    PBKDF2-HMAC-SHA256(secret, random salt, 100k iterations) → AES-GCM

Envelope format (lowercase hex, colon separated):
    <salt>:<iv>:<auth_tag>:<ciphertext>

Security Note:
    Never log plaintext, ciphertext or derived keys.
    Salt and IV are random per call, so derived keys never repeat.
"""
import os
import re
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import CryptoConfig, DEFAULT_ITERATIONS
from .exceptions import AuthenticationFailed, InvalidInput, MalformedEnvelope

logger = logging.getLogger("navigator.crypto")

ENVELOPE_SEPARATOR = ":"
ENVELOPE_FIELDS = 4
_HEX_FIELD = re.compile(r"[0-9a-fA-F]*")


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    secret: bytes,
    salt: bytes,
    iterations: int = DEFAULT_ITERATIONS,
    length: int = 32,
) -> bytes:
    """Derive an encryption key using PBKDF2-HMAC-SHA256.

    Args:
        secret: Operating secret bytes.
        salt: Per-operation random salt.
        iterations: PBKDF2 iteration count.
        length: Output key length in bytes.

    Returns:
        Derived key of ``length`` bytes.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(secret)


# ---------------------------------------------------------------------------
# Envelope encryption
# ---------------------------------------------------------------------------

def encrypt_envelope(plaintext: str, secret: bytes, config: CryptoConfig) -> str:
    """Encrypt text into a cipher envelope.

    Args:
        plaintext: Non-empty text to encrypt.
        secret: Operating secret bytes.
        config: Algorithm and field size settings.

    Returns:
        Envelope string ``salt:iv:tag:ciphertext``.

    Raises:
        InvalidInput: If plaintext is empty, not a string or not encodable.
    """
    if not isinstance(plaintext, str) or not plaintext:
        raise InvalidInput("Plaintext must be a non-empty string", "encrypt")
    try:
        data = plaintext.encode("utf-8")
    except UnicodeEncodeError as err:
        raise InvalidInput("Plaintext is not valid UTF-8 text", "encrypt") from err

    iv = os.urandom(config.iv_length)
    salt = os.urandom(config.salt_length)
    key = derive_key(secret, salt, config.iterations, config.key_length)

    encryptor = Cipher(algorithms.AES(key), modes.GCM(iv)).encryptor()
    ciphertext = encryptor.update(data) + encryptor.finalize()
    tag = encryptor.tag[:config.tag_length]

    return ENVELOPE_SEPARATOR.join(
        (salt.hex(), iv.hex(), tag.hex(), ciphertext.hex())
    )


def parse_envelope(
    envelope: str, config: CryptoConfig
) -> tuple[bytes, bytes, bytes, bytes]:
    """Split and hex-decode an envelope, validating its structure.

    No cryptographic work happens here.

    Args:
        envelope: Envelope string.
        config: Expected field sizes.

    Returns:
        Tuple of (salt, iv, tag, ciphertext).

    Raises:
        InvalidInput: If envelope is empty or not a string.
        MalformedEnvelope: If the field count, hex encoding or sizes are wrong.
    """
    if not isinstance(envelope, str) or not envelope:
        raise InvalidInput("Envelope must be a non-empty string", "decrypt")
    parts = envelope.split(ENVELOPE_SEPARATOR)
    if len(parts) != ENVELOPE_FIELDS:
        raise MalformedEnvelope(
            f"Expected {ENVELOPE_FIELDS} envelope fields, got {len(parts)}",
            "decrypt",
        )
    if not all(_HEX_FIELD.fullmatch(p) for p in parts):
        raise MalformedEnvelope("Envelope fields must be hex encoded", "decrypt")
    try:
        salt, iv, tag, ciphertext = (bytes.fromhex(p) for p in parts)
    except ValueError as err:
        raise MalformedEnvelope(
            "Envelope fields must be hex encoded", "decrypt"
        ) from err

    expected = (
        ("salt", salt, config.salt_length),
        ("iv", iv, config.iv_length),
        ("auth tag", tag, config.tag_length),
    )
    for name, value, size in expected:
        if len(value) != size:
            raise MalformedEnvelope(
                f"Envelope {name} must be {size} bytes, got {len(value)}",
                "decrypt",
            )
    if not ciphertext:
        raise MalformedEnvelope("Envelope ciphertext is empty", "decrypt")
    return salt, iv, tag, ciphertext


def decrypt_envelope(envelope: str, secret: bytes, config: CryptoConfig) -> str:
    """Decrypt and authenticate a cipher envelope.

    Args:
        envelope: Envelope string produced by ``encrypt_envelope``.
        secret: Operating secret bytes.
        config: Algorithm and field size settings.

    Returns:
        Verified plaintext.

    Raises:
        MalformedEnvelope: If the envelope structure is invalid.
        AuthenticationFailed: If the tag does not verify.
    """
    salt, iv, tag, ciphertext = parse_envelope(envelope, config)
    key = derive_key(secret, salt, config.iterations, config.key_length)

    decryptor = Cipher(
        algorithms.AES(key),
        modes.GCM(iv, tag, min_tag_length=config.tag_length),
    ).decryptor()
    try:
        data = decryptor.update(ciphertext) + decryptor.finalize()
    except InvalidTag as err:
        raise AuthenticationFailed(
            "Authentication tag mismatch (tampered data or wrong key)",
            "decrypt",
        ) from err
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise MalformedEnvelope(
            "Decrypted payload is not valid UTF-8", "decrypt"
        ) from err
