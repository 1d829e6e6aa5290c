"""
Crypto Health — Status snapshot models and capability probes.

Models serialize with camelCase aliases (``model_dump(by_alias=True)``)
for health-check endpoints.
"""
import os
import uuid
import logging
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

logger = logging.getLogger("navigator.crypto")

Probe = Callable[[], Any]


class ServiceCounters(BaseModel):
    """Operation counters of a service instance."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    operation_count: int = 0
    error_count: int = 0
    last_operation: Optional[str] = None


class StatusReport(BaseModel):
    """Point-in-time health view of the encryption service."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: Literal["healthy", "warning", "error"]
    key_configured: bool
    key_length: int
    algorithm: str
    features_available: list[str] = Field(default_factory=list)
    last_operation: Optional[str] = None
    operation_count: int = 0
    errors: int = 0
    timestamp: str


class SelfTestResult(BaseModel):
    """Outcome of ``CryptoService.test_encryption``."""

    success: bool
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


def default_probes(key_length: int = 32, iv_length: int = 16) -> tuple[tuple[str, Probe], ...]:
    """Capability probes: (capability name, trivial invocation) pairs."""
    return (
        ("randomBytes", lambda: os.urandom(1)),
        ("hash", lambda: hashes.Hash(hashes.SHA256())),
        (
            "encryption",
            lambda: Cipher(
                algorithms.AES(bytes(key_length)), modes.GCM(bytes(iv_length))
            ).encryptor(),
        ),
        ("uuid", lambda: uuid.uuid4()),
    )


def probe_capabilities(probes: tuple[tuple[str, Probe], ...]) -> list[str]:
    """Run each probe independently and return the capabilities that work.

    A failing probe only removes its own capability from the result.
    """
    available = []
    for name, probe in probes:
        try:
            probe()
        except Exception as err:
            logger.warning("Crypto capability %s unavailable: %s", name, err)
        else:
            available.append(name)
    return available
