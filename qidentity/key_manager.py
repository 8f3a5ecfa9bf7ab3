"""Master-key management: AES-256-GCM encryption, feature hashing and key derivation."""

from __future__ import annotations

import hashlib
import os
import struct
import threading
from collections.abc import Sequence

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .sampling import CryptoError

PBKDF2_ITERATIONS = 100_000
KEY_LEN = 32
SALT_LEN = 16
NONCE_LEN = 12


def _random_bytes(count: int, message: str) -> bytes:
    try:
        return os.urandom(count)
    except OSError as exc:
        raise CryptoError(message) from exc


class KeyManager:
    """Holds a master key derived from a passphrase and the cipher built on it."""

    def __init__(self, encryption_key: str) -> None:
        if not encryption_key:
            raise CryptoError("Encryption key cannot be empty")
        salt = _random_bytes(SALT_LEN, "Failed to generate salt")
        master_key = hashlib.pbkdf2_hmac(
            "sha256", encryption_key.encode(), salt, PBKDF2_ITERATIONS, KEY_LEN
        )
        self._lock = threading.RLock()
        self._master_key = master_key
        self._cipher = self._make_cipher(master_key, "Failed to initialize cipher")

    @staticmethod
    def _make_cipher(key: bytes, message: str) -> AESGCM:
        try:
            return AESGCM(key)
        except ValueError as exc:
            raise CryptoError(f"{message}: {exc}") from exc

    def encrypt(self, data: bytes) -> bytes:
        """Return a fresh 12-byte nonce followed by the ciphertext and tag."""
        nonce = _random_bytes(NONCE_LEN, "Failed to generate nonce")
        with self._lock:
            cipher = self._cipher
        return nonce + cipher.encrypt(nonce, bytes(data), None)

    def decrypt(self, encrypted_data: bytes) -> bytes:
        """Reverse :meth:`encrypt`; fails if the data was altered or the key rotated."""
        if len(encrypted_data) < NONCE_LEN:
            raise CryptoError("Invalid encrypted data")
        nonce = bytes(encrypted_data[:NONCE_LEN])
        ciphertext = bytes(encrypted_data[NONCE_LEN:])
        with self._lock:
            cipher = self._cipher
        try:
            return cipher.decrypt(nonce, ciphertext, None)
        except InvalidTag as exc:
            raise CryptoError("Decryption failed: authentication tag mismatch") from exc

    def hash_features(self, features: Sequence[float]) -> str:
        """SHA3-256 hex digest of float32 features salted with the master key."""
        packed = struct.pack(f"<{len(features)}f", *features)
        with self._lock:
            master_key = self._master_key
        return hashlib.sha3_256(packed + master_key).hexdigest()

    def rotate_keys(self) -> None:
        """Replace the master key and cipher with freshly random ones."""
        new_key = _random_bytes(KEY_LEN, "Failed to generate new key")
        new_cipher = self._make_cipher(new_key, "Failed to initialize new cipher")
        with self._lock:
            self._master_key = new_key
            self._cipher = new_cipher

    def derive_key(self, purpose: str) -> bytes:
        """SHA-256 of the master key followed by ``purpose``."""
        with self._lock:
            master_key = self._master_key
        return hashlib.sha256(master_key + purpose.encode()).digest()