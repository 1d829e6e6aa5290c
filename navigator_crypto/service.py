"""
CryptoService — Self-monitoring symmetric encryption service.

Provides the public API used by the application layer:
- ``encrypt(text)`` / ``decrypt(envelope)``: authenticated cipher envelopes
- ``encrypt_vault_data(value)`` / ``decrypt_vault_data(envelope)``: vault records
- ``hash``, ``generate_uuid``, ``generate_random_bytes``, ``generate_secure_token``: primitives
- ``test_encryption()`` / ``get_status()``: self-test and health snapshot
- ``dispose()`` / ``restart()``: lifecycle

Build one instance in the application's composition root and pass it to
the handlers that need it::

    crypto = CryptoService.from_env()
    envelope = crypto.encrypt("hello")
    assert crypto.decrypt(envelope) == "hello"

Security Note:
    Never log plaintext, ciphertext or key material. Only operation names,
    sizes and counters are logged.
"""
import time
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .config import CryptoConfig, resolve_secret
from .crypto import decrypt_envelope, encrypt_envelope
from .exceptions import CryptoServiceError, NotInitialized
from .health import (
    SelfTestResult,
    ServiceCounters,
    StatusReport,
    default_probes,
    probe_capabilities,
)
from .locks import ReadWriteLock
from .primitives import (
    UUID4_PATTERN,
    generate_random_bytes,
    generate_secure_token,
    generate_uuid,
    hash_text,
)
from .vault import decode_vault_payload, encode_vault_payload

logger = logging.getLogger("navigator.crypto")

SELF_TEST_TEXT = "Hello, Navigator CryptoService Test! \U0001f510"


class _SelfTestFailure(Exception):
    """A self-test check returned a wrong result."""


class CryptoService:
    """Authenticated encryption, hashing and identifiers over one secret.

    Thread-safe: counters are guarded by a mutex; the operating secret by a
    reader/writer lock (operations read, ``dispose``/``restart`` write).
    """

    def __init__(
        self,
        config: Optional[CryptoConfig] = None,
        config_factory: Optional[Callable[[], CryptoConfig]] = None,
    ):
        self._config_factory = config_factory
        if config is None and config_factory is not None:
            config = config_factory()
        self._config = config or CryptoConfig()
        self._lock = ReadWriteLock()
        self._counter_lock = threading.Lock()
        self._secret = b""
        self._key_configured = False
        self._initialized = False
        self._operation_count = 0
        self._error_count = 0
        self._last_operation: Optional[str] = None
        logger.info("Initializing CryptoService (%s)", self._config.algorithm)
        self._load_secret()
        logger.info("CryptoService initialized")

    @classmethod
    def from_env(cls) -> "CryptoService":
        """Create a CryptoService configured from environment variables.

        ``restart()`` re-reads the environment, so a corrected
        ENCRYPTION_KEY takes effect without rebuilding the service.
        """
        return cls(config_factory=CryptoConfig.from_env)

    def __enter__(self) -> "CryptoService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return (
            f'<CryptoService [{self._config.algorithm}] '
            f'initialized={self._initialized} '
            f'key_configured={self._key_configured}>'
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> CryptoConfig:
        return self._config

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def key_configured(self) -> bool:
        return self._initialized and self._key_configured

    @property
    def counters(self) -> ServiceCounters:
        with self._counter_lock:
            return ServiceCounters(
                operation_count=self._operation_count,
                error_count=self._error_count,
                last_operation=self._last_operation,
            )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_secret(self) -> None:
        """Resolve the operating secret. Caller must hold the write side."""
        self._secret, self._key_configured = resolve_secret(
            self._config.encryption_key,
            self._config.allow_insecure_default_key,
        )
        self._initialized = True

    def _wipe_secret(self) -> None:
        self._secret = b""
        self._key_configured = False
        self._initialized = False

    def _record_error(self) -> None:
        with self._counter_lock:
            self._error_count += 1

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """Count one public call and guard it with the read side of the lock.

        Any raised error is counted; unexpected errors are wrapped into
        ``CryptoServiceError`` with the original as cause.
        """
        with self._counter_lock:
            self._operation_count += 1
            self._last_operation = name
        try:
            with self._lock.read_locked():
                if not self._initialized:
                    raise NotInitialized("CryptoService has been disposed", name)
                yield
        except CryptoServiceError as err:
            self._record_error()
            logger.error("Crypto operation %s failed: %s", name, err)
            raise
        except Exception as err:
            self._record_error()
            logger.error(
                "Crypto operation %s failed: %s", name, type(err).__name__
            )
            raise CryptoServiceError(f"Unexpected error: {err}", name) from err

    # ------------------------------------------------------------------
    # Cipher envelopes
    # ------------------------------------------------------------------

    def encrypt(self, text: str) -> str:
        """Encrypt text into a ``salt:iv:tag:ciphertext`` envelope.

        Raises:
            InvalidInput: If text is empty or not a string.
            NotInitialized: If the service was disposed.
        """
        with self._operation("encrypt"):
            envelope = encrypt_envelope(text, self._secret, self._config)
        logger.debug("Encrypted %d chars into %d chars", len(text), len(envelope))
        return envelope

    def decrypt(self, envelope: str) -> str:
        """Decrypt and verify an envelope produced by ``encrypt``.

        Raises:
            MalformedEnvelope: If the envelope structure is invalid.
            AuthenticationFailed: If the data was tampered with or the key differs.
            NotInitialized: If the service was disposed.
        """
        with self._operation("decrypt"):
            text = decrypt_envelope(envelope, self._secret, self._config)
        logger.debug("Decrypted %d chars into %d chars", len(envelope), len(text))
        return text

    # ------------------------------------------------------------------
    # Vault envelopes
    # ------------------------------------------------------------------

    def encrypt_vault_data(self, value: Any) -> str:
        """Timestamp and JSON-serialize ``value``, then encrypt it.

        Raises:
            InvalidInput: If value is not JSON serializable.
        """
        with self._operation("encrypt_vault_data"):
            plaintext = encode_vault_payload(value)
            envelope = encrypt_envelope(plaintext, self._secret, self._config)
        return envelope

    def decrypt_vault_data(self, envelope: str) -> Any:
        """Decrypt a vault envelope and return the stored value.

        Raises:
            InvalidVaultFormat: If the decrypted payload is not ``<ts>:<json>``.
            MalformedEnvelope: If the envelope structure is invalid.
            AuthenticationFailed: If the tag does not verify.
        """
        with self._operation("decrypt_vault_data"):
            plaintext = decrypt_envelope(envelope, self._secret, self._config)
            timestamp, value = decode_vault_payload(plaintext)
        logger.debug("Vault data decrypted (timestamp=%d ms)", timestamp)
        return value

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def hash(self, data: str) -> str:
        """SHA-256 hex digest of ``data``."""
        with self._operation("hash"):
            return hash_text(data)

    def generate_uuid(self) -> str:
        """Random RFC 4122 version 4 UUID."""
        with self._operation("generate_uuid"):
            return generate_uuid()

    def generate_random_bytes(self, length: int) -> str:
        """``length`` (1..1024) random bytes, hex encoded."""
        with self._operation("generate_random_bytes"):
            return generate_random_bytes(length)

    def generate_secure_token(self) -> str:
        """256-bit random token, hex encoded."""
        with self._operation("generate_secure_token"):
            return generate_secure_token()

    # ------------------------------------------------------------------
    # Self-test and health
    # ------------------------------------------------------------------

    def test_encryption(self) -> SelfTestResult:
        """Exercise encryption, hashing, UUIDs and vault records.

        Checks run in order and the first failure aborts the rest.
        Counters are updated by the underlying calls.
        """
        logger.info("Running CryptoService self-test")
        sample = {
            "test": True,
            "timestamp": time.time_ns() // 1_000_000,
            "data": [1, 2, 3],
        }
        step = "basic_encryption"
        try:
            encrypted = self.encrypt(SELF_TEST_TEXT)
            if self.decrypt(encrypted) != SELF_TEST_TEXT:
                raise _SelfTestFailure("Encryption round trip returned different text")

            step = "hash_consistency"
            digest = self.hash(SELF_TEST_TEXT)
            if digest != self.hash(SELF_TEST_TEXT):
                raise _SelfTestFailure("Hash is not deterministic")

            step = "uuid_generation"
            uuid_value = self.generate_uuid()
            if not UUID4_PATTERN.match(uuid_value):
                raise _SelfTestFailure(f"Invalid UUID format: {uuid_value}")

            step = "vault_encryption"
            vault_envelope = self.encrypt_vault_data(sample)
            if self.decrypt_vault_data(vault_envelope) != sample:
                raise _SelfTestFailure("Vault round trip returned different data")
        except (_SelfTestFailure, CryptoServiceError) as err:
            if isinstance(err, _SelfTestFailure):
                self._record_error()
            logger.error("CryptoService self-test failed at %s: %s", step, err)
            counters = self.counters
            return SelfTestResult(
                success=False,
                message=f"Encryption self-test failed ({step}): {err}",
                details={
                    "step": step,
                    "error": str(err),
                    "operation_count": counters.operation_count,
                    "error_count": counters.error_count,
                },
            )

        logger.info("CryptoService self-test passed")
        return SelfTestResult(
            success=True,
            message="All encryption functions are working",
            details={
                "basic_encryption": True,
                "hash_consistency": True,
                "uuid_generation": True,
                "vault_encryption": True,
                "test_data_length": len(SELF_TEST_TEXT),
                "encrypted_length": len(encrypted),
                "hash_length": len(digest),
                "uuid": uuid_value,
                "operation_count": self.counters.operation_count,
            },
        )

    def get_status(self) -> StatusReport:
        """Health snapshot: capabilities, key state and counters."""
        features = probe_capabilities(
            default_probes(self._config.key_length, self._config.iv_length)
        )
        counters = self.counters
        if not self._initialized:
            status = "error"
        elif counters.error_count == 0:
            status = "healthy"
        else:
            status = "warning"
        return StatusReport(
            status=status,
            key_configured=self.key_configured,
            key_length=len(self._secret),
            algorithm=self._config.algorithm,
            features_available=features,
            last_operation=counters.last_operation,
            operation_count=counters.operation_count,
            errors=counters.error_count,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Wipe the operating secret; later operations raise NotInitialized."""
        logger.info("Disposing CryptoService")
        with self._lock.write_locked():
            self._wipe_secret()
        logger.info("CryptoService disposed")

    def restart(self) -> None:
        """Re-resolve the operating secret and reset counters.

        With a config factory (``from_env``) the configuration is reloaded
        first, so key changes in the environment are picked up.

        Raises:
            ConfigurationError: If the configuration cannot be loaded or no
                usable secret can be resolved; the service stays disposed.
        """
        logger.info("Restarting CryptoService")
        with self._lock.write_locked():
            self._wipe_secret()
            if self._config_factory is not None:
                self._config = self._config_factory()
            self._load_secret()
            with self._counter_lock:
                self._operation_count = 0
                self._error_count = 0
                self._last_operation = None
        logger.info("CryptoService restarted")
