# qidentity

qidentity provides building blocks for a biometric identity node. It covers lattice-style cryptography, key handling, audit logging, memory-tampering checks and identity records.

The library is pure Python. Its only dependency is `cryptography`, which supplies AES-GCM.

## Modules

### `qidentity.ntt`

Number-theoretic transform over q = 3329 on 256 coefficients.

- `NTTContext()` precomputes the twiddle factors. `forward(coeffs)` and `inverse(coeffs)` each return a new list and raise `ValueError` unless they are given exactly 256 values.
- The helpers are `montgomery_reduce(a)`, `barrett_reduce(a)` and `mod_inverse(a, m)`.

### `qidentity.sampling`

- `random_poly(q)` returns 256 coefficients drawn uniformly from `[0, q)`.
- `sample_cbd(eta)` samples 256 coefficients from the centred binomial distribution. Every coefficient lies in `[-eta, eta]`.
- `expand_a(seed, k)` expands a seed into a `k x k` matrix of polynomials mod 3329, using SHAKE-256. The same seed always gives the same matrix.
- `CryptoError` is the exception raised by the cryptographic modules.

### `qidentity.kyber`

- `Polynomial` is a dataclass that holds 256 coefficients and an `is_ntt` flag. Its methods are `zero()`, `add()`, `multiply()`, `to_ntt()`, `from_ntt()`, `sample_noise()` and `random()`.
- `KyberKEM.keygen()` returns `(PublicKey, SecretKey)`.
- `KyberKEM.encapsulate(pk)` returns a 32-byte shared secret together with a `Ciphertext`.
- `KyberKEM.decapsulate(sk, ct)` recovers the shared secret.

### `qidentity.serialization`

Byte encodings for `Polynomial`, `PublicKey`, `SecretKey` and `Ciphertext`:

- `serialize_polynomial` / `deserialize_polynomial`
- `serialize_public_key` / `deserialize_public_key`
- `serialize_secret_key` / `deserialize_secret_key`
- `serialize_ciphertext` / `deserialize_ciphertext`

A polynomial takes 513 bytes: one flag byte followed by 256 little-endian 16-bit coefficients.

Each encoded key or ciphertext is capped at 1024 bytes, and the serialize functions raise `CryptoError` above that cap. The keys and ciphertexts made by `KyberKEM` are larger than 1024 bytes, so they cannot be serialized this way.

Truncated input raises `CryptoError` on decoding.

### `qidentity.dilithium`

- `Dilithium.keygen()` returns a key pair.
- `Dilithium.sign(sk, message)` returns a `Signature`.
- `Dilithium.verify(pk, message, signature)` compares the signature's hint bits against `A·z` and returns a `bool`.

### `qidentity.key_manager`

`KeyManager(encryption_key)` derives a 32-byte master key from the passphrase with PBKDF2-HMAC-SHA256 (100 000 iterations, random salt). An empty passphrase raises `CryptoError`.

- `encrypt(data)` returns `nonce || ciphertext || tag` using AES-256-GCM.
- `decrypt(encrypted_data)` reverses `encrypt`. It raises `CryptoError` if the data was altered or the keys have been rotated since.
- `hash_features(features)` returns the SHA3-256 hex digest of the float32 features salted with the master key.
- `rotate_keys()` replaces the master key and cipher with random ones.
- `derive_key(purpose)` returns the SHA-256 digest of the master key followed by `purpose`.

### `qidentity.secure_memory`

`SecureMemory(size)` is a fixed-size byte buffer with `write`, `read(length)`, `clear` and `close`. It can also be used as a context manager.

- `clear` zeroes the buffer. `close` zeroes it as well, and after `close` any access raises `SecureMemoryError`.
- Writing or reading more bytes than the buffer holds also raises `SecureMemoryError`.

### `qidentity.crypto_types`

This module defines `SecurityLevel` and `TemplateType`, plus the records `KeyPair`, `Signature`, `VerificationResult`, `BiometricTemplate` and `CryptoMetadata`.

- `KeyPair.verify()` checks the public key size for its level: 1312, 1952 or 2592 bytes.
- `Signature.verify(level)` checks the signature size for the given level: 2420, 3293 or 4595 bytes.
- `BiometricTemplate.verify()` checks that the template meets the minimum size for its type: 512, 256, 1024 or 2048 bytes.
- All three raise `CryptoTypeError` when a check fails.
- `CryptoMetadata.record_key_rotation()` adds one to the rotation count and updates the timestamp.

### `qidentity.audit`

`AuditSystem(retention_days, security_level)` is a thread-safe, in-memory event log.

- `record_event(event_type, component_id, metadata)` stores an event and returns its UUID. It also drops events older than the retention period.
- `get_events(start, end)` returns the events in the inclusive range `[start, end]`. If `end` is before `start` it raises `AuditError`.
- `get_summary(start, end)` counts the events in that range: per type, anomalies, and security-level changes.
- `cleanup_old_events()` drops expired events and returns how many were removed.
- `close()` records a `SYSTEM_SHUTDOWN` event once. Leaving a `with` block calls `close()`.

Event types are constants on `AuditEventType`, such as `AuditEventType.KEY_GENERATION`. Two types carry data and are built with constructors:

- `AuditEventType.authentication_attempt(success)`
- `AuditEventType.anomaly_detected(severity)`, where `severity` is an `AnomalySeverity`

### `qidentity.identity`

`Identity` combines a `BiometricTemplate`, `IdentityMetadata`, a `BehaviorProfile` and a `VerificationStatus`.

- `update_verification(verified)` counts an attempt. A successful attempt marks the identity `VERIFIED`.
- `update_behavior(pattern)` merges a `BehaviorPattern`. If a pattern of the same type already exists, the confidences are blended 0.7/0.3. It then recomputes the trust score, which decays with the age of each pattern.

`IdentityRequest.from_dict()` and `IdentityResponse.to_dict()` convert to and from JSON-ready dictionaries, with byte fields written as lists of ints.

### `qidentity.poisoning`

`MemoryPoisonDetector(alert_handler)` guards `bytearray` or writable `memoryview` regions.

- `protect_region(region, region_id, region_type)` writes 8-byte canaries into the region: four evenly spaced, plus one at the end for regions over 32 bytes. It then registers the region.
- `check_memory()` re-reads the canaries and flags timing anomalies on key-material regions. It sends a `PoisoningAlert` to the handler for each problem found, and returns `True` only if nothing was found.
- `LoggingAlertHandler(log_path)` logs each alert and appends a line for it to `log_path`.

## Examples

```python
from qidentity.kyber import KyberKEM

pk, sk = KyberKEM.keygen()
shared, ciphertext = KyberKEM.encapsulate(pk)
assert KyberKEM.decapsulate(sk, ciphertext) == shared
```

```python
from qidentity.key_manager import KeyManager

manager = KeyManager("secret")
blob = manager.encrypt(b"payload")
assert manager.decrypt(blob) == b"payload"
manager.rotate_keys()  # blob can no longer be decrypted
```

```python
from datetime import datetime, timedelta, timezone
from qidentity.audit import AuditSystem, AuditEventType
from qidentity.crypto_types import SecurityLevel

audit = AuditSystem(30, SecurityLevel.STANDARD)
audit.record_event(AuditEventType.KEY_GENERATION, None, None)
now = datetime.now(timezone.utc)
summary = audit.get_summary(now - timedelta(hours=1), now)
assert summary.total_events == 1
```

## What it does not do

This package is a library only. It does not include:

- an HTTP or REST service for registering or verifying identities;
- any blockchain or ledger client;
- biometric image processing or feature extraction;
- zero-knowledge proofs;
- persistent storage (audit events and identities live in memory only).

`SecureMemory` does not lock pages against swapping. It only zeroes its buffer.

The Kyber- and Dilithium-style schemes here do not interoperate with the standardised algorithms. They should not be relied on for real security.

## Install and test

```
pip install .
pip install .[test]
pytest
```