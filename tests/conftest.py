"""Shared fixtures for navigator_crypto tests."""
import pytest

from navigator_crypto import CryptoConfig, CryptoService

TEST_KEY = "0123456789abcdef0123456789abcdef"

# Reduced PBKDF2 cost for tests that do not check the iteration count.
FAST_ITERATIONS = 1000


@pytest.fixture
def clean_env(monkeypatch):
    """Remove crypto env vars that leak between tests."""
    for key in [
        "ENCRYPTION_KEY",
        "ENCRYPTION_ALLOW_INSECURE_KEY",
        "CRYPTO_ALGORITHM",
        "CRYPTO_IV_LENGTH",
        "CRYPTO_SALT_LENGTH",
        "CRYPTO_TAG_LENGTH",
    ]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def config():
    """Config with a valid 32-byte key."""
    return CryptoConfig(encryption_key=TEST_KEY, iterations=FAST_ITERATIONS)


@pytest.fixture
def service(config):
    """A CryptoService using the configured test key."""
    svc = CryptoService(config)
    yield svc
    svc.dispose()


@pytest.fixture
def fallback_service():
    """A CryptoService with no key configured (development fallback)."""
    svc = CryptoService(CryptoConfig(iterations=FAST_ITERATIONS))
    yield svc
    svc.dispose()
