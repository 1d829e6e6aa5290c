"""
Crypto Primitives — hashing, identifiers and secure random values.

All randomness comes from the operating system CSPRNG
(``os.urandom`` / ``secrets``).
"""
import os
import re
import uuid
import secrets
import logging

from cryptography.hazmat.primitives import hashes

from .exceptions import CryptoServiceError, InvalidInput, InvalidLength

logger = logging.getLogger("navigator.crypto")

MIN_RANDOM_BYTES = 1
MAX_RANDOM_BYTES = 1024
TOKEN_BYTES = 32

UUID4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_UUID_TEMPLATE = "xxxxxxxx-xxxx-4xxx-yxxx-xxxxxxxxxxxx"


def hash_text(data: str) -> str:
    """Return the SHA-256 hex digest of a UTF-8 string.

    Raises:
        InvalidInput: If data is empty, not a string or not encodable.
    """
    if not isinstance(data, str) or not data:
        raise InvalidInput("Hash input must be a non-empty string", "hash")
    try:
        encoded = data.encode("utf-8")
    except UnicodeEncodeError as err:
        raise InvalidInput("Hash input is not valid UTF-8 text", "hash") from err
    digest = hashes.Hash(hashes.SHA256())
    digest.update(encoded)
    return digest.finalize().hex()


def platform_uuid_available() -> bool:
    """Whether the platform secure UUID generator can be used."""
    return callable(getattr(uuid, "uuid4", None))


def manual_uuid4() -> str:
    """Build an RFC 4122 version 4 UUID from ``secrets`` randomness.

    Version nibble is forced to ``4``, variant nibble to one of 8, 9, a, b.
    """
    chars = []
    for c in _UUID_TEMPLATE:
        if c == "x":
            chars.append(format(secrets.randbelow(16), "x"))
        elif c == "y":
            chars.append(format((secrets.randbelow(16) & 0x3) | 0x8, "x"))
        else:
            chars.append(c)
    return "".join(chars)


def generate_uuid(prefer_platform: bool = True) -> str:
    """Generate a version 4 UUID string.

    Uses the platform generator when available, else ``manual_uuid4``.

    Args:
        prefer_platform: Set False to force the manual generator.

    Raises:
        CryptoServiceError: If no generator produced a valid UUID.
    """
    if prefer_platform and platform_uuid_available():
        value = str(uuid.uuid4())
        if UUID4_PATTERN.match(value):
            return value
        logger.warning("Platform UUID generator returned an invalid value")
    value = manual_uuid4()
    if UUID4_PATTERN.match(value):
        return value
    raise CryptoServiceError("Unable to generate a valid UUID", "generate_uuid")


def generate_random_bytes(length: int) -> str:
    """Return ``length`` random bytes, hex encoded.

    Raises:
        InvalidLength: If length is not an integer in [1, 1024].
    """
    if (
        isinstance(length, bool)
        or not isinstance(length, int)
        or not MIN_RANDOM_BYTES <= length <= MAX_RANDOM_BYTES
    ):
        raise InvalidLength(
            f"Random byte length must be between {MIN_RANDOM_BYTES} "
            f"and {MAX_RANDOM_BYTES}, got {length!r}",
            "generate_random_bytes",
        )
    return os.urandom(length).hex()


def generate_secure_token() -> str:
    """Return a 256-bit random token, hex encoded (64 chars)."""
    return secrets.token_hex(TOKEN_BYTES)
