"""
Vault Payload — Timestamped JSON encoding for vault records.

Plaintext format (before envelope encryption):
    <unix-millis>:<json>

The timestamp is informational (audit/logging) and is never checked
against the clock.
"""
import time
import base64
import logging
from typing import Any, Optional

import orjson

from .exceptions import InvalidInput, InvalidVaultFormat

logger = logging.getLogger("navigator.crypto")

_BYTES_WRAPPER_KEY = "__vault_bytes_b64__"
_ESCAPE_WRAPPER_KEY = "__vault_escaped__"
_RESERVED_KEYS = frozenset({_BYTES_WRAPPER_KEY, _ESCAPE_WRAPPER_KEY})
_SEPARATOR = ":"


def _is_wrapper(value: Any) -> bool:
    """One-key dict whose key is a reserved wrapper marker."""
    return (
        isinstance(value, dict)
        and len(value) == 1
        and next(iter(value)) in _RESERVED_KEYS
    )


def serialize_value(value: Any) -> bytes:
    """Serialize a Python value to JSON bytes.

    bytes values are wrapped as {"__vault_bytes_b64__": "<base64>"} for
    a safe JSON round-trip. A user dict shaped like a wrapper is itself
    wrapped in {"__vault_escaped__": ...} so it comes back unchanged.

    Integers must fit in 64 bits (orjson limit); larger ones are rejected.

    Raises:
        InvalidInput: If value is not JSON serializable.
    """
    if isinstance(value, bytes):
        value = {_BYTES_WRAPPER_KEY: base64.b64encode(value).decode("ascii")}
    elif _is_wrapper(value):
        value = {_ESCAPE_WRAPPER_KEY: value}
    try:
        return orjson.dumps(value)
    except TypeError as err:
        raise InvalidInput(
            f"Vault value is not JSON serializable: {type(value).__name__}",
            "encrypt_vault_data",
        ) from err


def deserialize_value(data: bytes) -> Any:
    """Deserialize JSON bytes back to a Python value.

    Raises:
        InvalidVaultFormat: If the payload is not JSON or carries an
            invalid bytes wrapper.
    """
    try:
        parsed = orjson.loads(data)
    except orjson.JSONDecodeError as err:
        raise InvalidVaultFormat(
            "Vault payload is not valid JSON", "decrypt_vault_data"
        ) from err
    if not _is_wrapper(parsed):
        return parsed
    if _ESCAPE_WRAPPER_KEY in parsed:
        return parsed[_ESCAPE_WRAPPER_KEY]
    try:
        return base64.b64decode(parsed[_BYTES_WRAPPER_KEY], validate=True)
    except (TypeError, ValueError) as err:
        raise InvalidVaultFormat(
            "Vault bytes value is not valid base64", "decrypt_vault_data"
        ) from err


def encode_vault_payload(value: Any, timestamp_ms: Optional[int] = None) -> str:
    """Build the timestamped plaintext for a vault record.

    Args:
        value: JSON-serializable value (or bytes).
        timestamp_ms: Unix time in milliseconds; defaults to now.

    Returns:
        ``"<timestamp_ms>:<json>"`` string.
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    payload = serialize_value(value).decode("utf-8")
    return f"{timestamp_ms}{_SEPARATOR}{payload}"


def decode_vault_payload(plaintext: str) -> tuple[int, Any]:
    """Split a vault plaintext into its timestamp and value.

    Args:
        plaintext: Decrypted vault plaintext.

    Returns:
        Tuple of (timestamp_ms, value).

    Raises:
        InvalidVaultFormat: If the separator or timestamp is missing, or the
            remainder is not valid JSON (or an invalid bytes wrapper).
    """
    timestamp, sep, payload = plaintext.partition(_SEPARATOR)
    if not sep:
        raise InvalidVaultFormat(
            "Vault payload has no timestamp separator", "decrypt_vault_data"
        )
    if not (timestamp.isascii() and timestamp.isdigit()):
        raise InvalidVaultFormat(
            "Vault payload timestamp is not numeric", "decrypt_vault_data"
        )
    return int(timestamp), deserialize_value(payload.encode("utf-8"))
