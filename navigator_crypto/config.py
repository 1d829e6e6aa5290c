"""
Crypto Configuration — Operating secret resolution and validated settings.

Reads settings from environment variables:
    ENCRYPTION_KEY = <exactly 32 bytes>
    ENCRYPTION_ALLOW_INSECURE_KEY = <bool, default true>
    CRYPTO_ALGORITHM = aes-256-gcm | aes-192-gcm | aes-128-gcm
    CRYPTO_IV_LENGTH / CRYPTO_SALT_LENGTH / CRYPTO_TAG_LENGTH = <int>

Changing algorithm or any length changes the envelope format: envelopes
produced under one configuration cannot be opened under another.

Security Note:
    Never log key material. Only log key lengths.
"""
import os
import logging
from typing import Optional, Union

from pydantic import (
    BaseModel,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)

from .exceptions import ConfigurationError

logger = logging.getLogger("navigator.crypto")

SECRET_LENGTH = 32
DEFAULT_ITERATIONS = 100_000

# Well-known development secret, used when no valid ENCRYPTION_KEY is set.
# Never acceptable in production: anyone can read it here.
FALLBACK_SECRET = b"navigator-dev-key-0123456789abcd"

_KEY_LENGTHS = {
    "aes-128-gcm": 16,
    "aes-192-gcm": 24,
    "aes-256-gcm": 32,
}

_INT_ENV_FIELDS = {
    "CRYPTO_IV_LENGTH": "iv_length",
    "CRYPTO_SALT_LENGTH": "salt_length",
    "CRYPTO_TAG_LENGTH": "tag_length",
}


def resolve_secret(
    configured_value: Union[str, bytes, SecretStr, None],
    allow_insecure_default: bool = True,
) -> tuple[bytes, bool]:
    """Resolve the operating secret from a configured value.

    A configured value is accepted verbatim only when it is exactly
    32 bytes long (UTF-8 encoded). Otherwise the development fallback
    is substituted, unless ``allow_insecure_default`` is False.

    Args:
        configured_value: Secret as configured, or None if absent.
        allow_insecure_default: Permit the well-known fallback secret.

    Returns:
        Tuple of (secret_bytes, configured) where ``configured`` is True
        only if the caller-supplied secret was accepted.

    Raises:
        ConfigurationError: If the fallback is needed but not allowed.
    """
    if isinstance(configured_value, SecretStr):
        configured_value = configured_value.get_secret_value()
    if isinstance(configured_value, str):
        configured_value = configured_value.encode("utf-8")

    if configured_value:
        if len(configured_value) == SECRET_LENGTH:
            logger.info("Encryption key loaded from configuration")
            return bytes(configured_value), True
        logger.warning(
            "ENCRYPTION_KEY has invalid length: %d/%d",
            len(configured_value), SECRET_LENGTH,
        )
    else:
        logger.warning("ENCRYPTION_KEY is not configured")

    if not allow_insecure_default:
        raise ConfigurationError(
            f"A valid {SECRET_LENGTH}-byte ENCRYPTION_KEY is required "
            "(insecure default key is disabled)"
        )
    logger.warning(
        "Using the built-in development encryption key. "
        "Set a secure %d-byte ENCRYPTION_KEY in production!",
        SECRET_LENGTH,
    )
    return FALLBACK_SECRET, False


class CryptoConfig(BaseModel):
    """Validated encryption service configuration."""

    encryption_key: Optional[SecretStr] = None
    algorithm: str = Field(default="aes-256-gcm")
    iv_length: int = Field(default=16, ge=8, le=128)
    salt_length: int = Field(default=32, ge=16, le=1024)
    tag_length: int = Field(default=16, ge=12, le=16)
    iterations: int = Field(default=DEFAULT_ITERATIONS, ge=1)
    allow_insecure_default_key: bool = True

    model_config = {"frozen": True}

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Validate the cipher algorithm is a supported AES-GCM variant."""
        v = v.lower()
        if v not in _KEY_LENGTHS:
            raise ValueError(f"Unsupported cipher algorithm: {v}")
        return v

    @property
    def key_length(self) -> int:
        """Derived key size in bytes for the configured algorithm."""
        return _KEY_LENGTHS[self.algorithm]

    @classmethod
    def from_env(cls) -> "CryptoConfig":
        """Create CryptoConfig by loading values from environment.

        Returns:
            Populated CryptoConfig instance.

        Raises:
            ConfigurationError: If a variable cannot be parsed or validated.
        """
        values: dict = {}
        key = os.environ.get("ENCRYPTION_KEY")
        if key:
            values["encryption_key"] = key
        algorithm = os.environ.get("CRYPTO_ALGORITHM")
        if algorithm:
            values["algorithm"] = algorithm
        allow = os.environ.get("ENCRYPTION_ALLOW_INSECURE_KEY")
        if allow:
            values["allow_insecure_default_key"] = allow
        for env_name, field_name in _INT_ENV_FIELDS.items():
            raw = os.environ.get(env_name)
            if raw is None:
                continue
            try:
                values[field_name] = int(raw)
            except ValueError as err:
                raise ConfigurationError(
                    f"{env_name} must be an integer, got {raw!r}"
                ) from err
        try:
            return cls(**values)
        except ValidationError as err:
            raise ConfigurationError(
                f"Invalid crypto configuration: {err}"
            ) from err
