import uuid

import pytest

from qidentity.crypto_types import (
    BiometricTemplate,
    CryptoMetadata,
    CryptoTypeError,
    KeyPair,
    SecurityLevel,
    Signature,
    TemplateType,
    VerificationResult,
)


def test_keypair_verification():
    keypair = KeyPair(bytes(1312), SecurityLevel.BASIC)
    keypair.verify()
    assert keypair.algorithm == "CRYSTALS-Dilithium"

    invalid = KeyPair(bytes(100), SecurityLevel.BASIC)
    with pytest.raises(CryptoTypeError, match="Invalid key format"):
        invalid.verify()


@pytest.mark.parametrize(
    "level, size",
    [
        (SecurityLevel.BASIC, 1312),
        (SecurityLevel.STANDARD, 1952),
        (SecurityLevel.HIGH, 2592),
    ],
)
def test_keypair_sizes_per_level(level, size):
    KeyPair(bytes(size), level).verify()
    with pytest.raises(CryptoTypeError):
        KeyPair(bytes(size + 1), level).verify()


def test_keypair_empty_key_rejected():
    with pytest.raises(CryptoTypeError, match="Invalid key format"):
        KeyPair(b"", SecurityLevel.HIGH).verify()


def test_keypair_ids_are_unique():
    first = KeyPair(bytes(1312), SecurityLevel.BASIC)
    second = KeyPair(bytes(1312), SecurityLevel.BASIC)
    assert first.id != second.id


def test_signature_verification():
    signature = Signature(uuid.uuid4(), bytes(2420))
    signature.verify(SecurityLevel.BASIC)

    invalid = Signature(uuid.uuid4(), bytes(100))
    with pytest.raises(CryptoTypeError, match="Invalid signature format"):
        invalid.verify(SecurityLevel.BASIC)


@pytest.mark.parametrize(
    "level, size",
    [
        (SecurityLevel.BASIC, 2420),
        (SecurityLevel.STANDARD, 3293),
        (SecurityLevel.HIGH, 4595),
    ],
)
def test_signature_sizes_per_level(level, size):
    signature = Signature(uuid.uuid4(), bytes(size))
    signature.verify(level)
    other = next(lv for lv in SecurityLevel if lv is not level)
    with pytest.raises(CryptoTypeError):
        signature.verify(other)


def test_signature_empty_rejected():
    with pytest.raises(CryptoTypeError):
        Signature(uuid.uuid4(), b"").verify(SecurityLevel.STANDARD)


def test_biometric_template():
    template = BiometricTemplate(bytes(2048), TemplateType.COMBINED, SecurityLevel.HIGH)
    template.verify()

    invalid = BiometricTemplate(bytes(100), TemplateType.COMBINED, SecurityLevel.HIGH)
    with pytest.raises(CryptoTypeError, match="Invalid template format"):
        invalid.verify()


@pytest.mark.parametrize(
    "template_type, minimum",
    [
        (TemplateType.FACIAL, 512),
        (TemplateType.FINGERPRINT, 256),
        (TemplateType.BEHAVIORAL, 1024),
        (TemplateType.COMBINED, 2048),
    ],
)
def test_template_minimum_sizes(template_type, minimum):
    BiometricTemplate(bytes(minimum), template_type, SecurityLevel.BASIC).verify()
    BiometricTemplate(bytes(minimum + 10), template_type, SecurityLevel.BASIC).verify()
    with pytest.raises(CryptoTypeError):
        BiometricTemplate(bytes(minimum - 1), template_type, SecurityLevel.BASIC).verify()


def test_crypto_metadata():
    metadata = CryptoMetadata(SecurityLevel.STANDARD)
    assert metadata.key_rotations == 0
    assert metadata.updated_at == metadata.created_at
    assert metadata.algorithm_version == "CRYSTALS-Dilithium-v3.1"

    metadata.record_key_rotation()
    assert metadata.key_rotations == 1
    assert metadata.updated_at >= metadata.created_at


def test_verification_result_fields():
    signature_id = uuid.uuid4()
    result = VerificationResult(True, 10, signature_id)
    assert result.is_valid is True
    assert result.signature_id == signature_id