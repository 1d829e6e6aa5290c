"""
Crypto Exceptions — Error taxonomy raised by the encryption service.

Security Note:
    Exception messages must never carry key material or plaintext.
    The underlying library error is always chained as ``__cause__``.
"""
from typing import Optional


class CryptoServiceError(Exception):
    """Base exception for every error raised by the encryption service.

    Attributes:
        message: Human readable description (no secrets).
        operation: Name of the service operation that failed, if known.
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ConfigurationError(CryptoServiceError):
    """Invalid configuration, or the insecure fallback key is disallowed."""


class InvalidInput(CryptoServiceError, ValueError):
    """Empty or wrong-typed plaintext, hash input or vault value."""


class InvalidLength(CryptoServiceError, ValueError):
    """Random byte request outside of the accepted range."""


class MalformedEnvelope(CryptoServiceError, ValueError):
    """Cipher envelope is structurally invalid (field count, hex, sizes)."""


class AuthenticationFailed(CryptoServiceError):
    """Authentication tag mismatch: tampered envelope or wrong secret."""


class InvalidVaultFormat(CryptoServiceError, ValueError):
    """Vault plaintext lacks the timestamp separator or is not JSON."""


class NotInitialized(CryptoServiceError, RuntimeError):
    """Operation attempted on a disposed service."""
