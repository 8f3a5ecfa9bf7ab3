"""Key, signature, template and metadata records with their format checks."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum


def _timestamp() -> int:
    return int(time.time())


class SecurityLevel(Enum):
    """Strength of the post-quantum parameters in use."""

    BASIC = 0
    STANDARD = 1
    HIGH = 2


class TemplateType(Enum):
    """Kind of biometric data a template was built from."""

    FACIAL = 0
    FINGERPRINT = 1
    BEHAVIORAL = 2
    COMBINED = 3


class CryptoTypeError(Exception):
    """Raised when a key, signature or template has the wrong format."""


INVALID_KEY_FORMAT = "Invalid key format"
INVALID_SIGNATURE_FORMAT = "Invalid signature format"
TEMPLATE_GENERATION_FAILED = "Template generation failed"
INVALID_TEMPLATE_FORMAT = "Invalid template format"

_PUBLIC_KEY_SIZES = {
    SecurityLevel.BASIC: 1312,
    SecurityLevel.STANDARD: 1952,
    SecurityLevel.HIGH: 2592,
}

_SIGNATURE_SIZES = {
    SecurityLevel.BASIC: 2420,
    SecurityLevel.STANDARD: 3293,
    SecurityLevel.HIGH: 4595,
}

_TEMPLATE_MIN_SIZES = {
    TemplateType.FACIAL: 512,
    TemplateType.FINGERPRINT: 256,
    TemplateType.BEHAVIORAL: 1024,
    TemplateType.COMBINED: 2048,
}


@dataclass
class KeyPair:
    """Public half of a signing key pair with its parameters."""

    public_key: bytes
    security_level: SecurityLevel
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: int = field(default_factory=_timestamp)
    algorithm: str = "CRYSTALS-Dilithium"

    def verify(self) -> None:
        """Check that the public key has the size its security level requires."""
        if not self.public_key:
            raise CryptoTypeError(INVALID_KEY_FORMAT)
        if len(self.public_key) != _PUBLIC_KEY_SIZES[self.security_level]:
            raise CryptoTypeError(INVALID_KEY_FORMAT)


@dataclass
class Signature:
    """Signature bytes produced with a given key pair."""

    keypair_id: uuid.UUID
    signature_data: bytes
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: int = field(default_factory=_timestamp)

    def verify(self, security_level: SecurityLevel) -> None:
        """Check that the signature has the size ``security_level`` requires."""
        if not self.signature_data:
            raise CryptoTypeError(INVALID_SIGNATURE_FORMAT)
        if len(self.signature_data) != _SIGNATURE_SIZES[security_level]:
            raise CryptoTypeError(INVALID_SIGNATURE_FORMAT)


@dataclass
class VerificationResult:
    """Outcome of checking one signature."""

    is_valid: bool
    verified_at: int
    signature_id: uuid.UUID


@dataclass
class BiometricTemplate:
    """Protected biometric template bytes."""

    template_data: bytes
    template_type: TemplateType
    security_level: SecurityLevel
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: int = field(default_factory=_timestamp)

    def verify(self) -> None:
        """Check that the template holds at least the minimum data for its type."""
        if not self.template_data:
            raise CryptoTypeError(INVALID_TEMPLATE_FORMAT)
        if len(self.template_data) < _TEMPLATE_MIN_SIZES[self.template_type]:
            raise CryptoTypeError(INVALID_TEMPLATE_FORMAT)


@dataclass
class CryptoMetadata:
    """Algorithm version, security level and key-rotation bookkeeping."""

    security_level: SecurityLevel
    created_at: int = field(default_factory=_timestamp)
    updated_at: int | None = None
    algorithm_version: str = "CRYSTALS-Dilithium-v3.1"
    key_rotations: int = 0

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    def record_key_rotation(self) -> None:
        """Count one more key rotation and touch the update time."""
        self.key_rotations += 1
        self.updated_at = _timestamp()