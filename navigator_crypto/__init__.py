"""Navigator Crypto — Self-monitoring symmetric encryption service.

Security Note (Threat Model):
    The operating secret lives in process memory for the service lifetime.
    ``dispose()`` drops the reference, but Python cannot guarantee the
    bytes are zeroed. When no valid ENCRYPTION_KEY is configured, a
    well-known development key is used: treat ``key_configured=False``
    in the status report as a startup error in production.
"""

from .version import __version__
from .config import CryptoConfig, resolve_secret, FALLBACK_SECRET
from .exceptions import (
    CryptoServiceError,
    ConfigurationError,
    InvalidInput,
    InvalidLength,
    MalformedEnvelope,
    AuthenticationFailed,
    InvalidVaultFormat,
    NotInitialized,
)
from .health import SelfTestResult, ServiceCounters, StatusReport
from .service import CryptoService

__all__ = [
    "__version__",
    "CryptoService",
    "CryptoConfig",
    "resolve_secret",
    "FALLBACK_SECRET",
    "SelfTestResult",
    "ServiceCounters",
    "StatusReport",
    "CryptoServiceError",
    "ConfigurationError",
    "InvalidInput",
    "InvalidLength",
    "MalformedEnvelope",
    "AuthenticationFailed",
    "InvalidVaultFormat",
    "NotInitialized",
]
