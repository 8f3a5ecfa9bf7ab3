"""Random, binomial-noise and seed-expanded sampling of 256-coefficient polynomials."""

from __future__ import annotations

import hashlib
import os
import secrets
from collections.abc import Iterator
from itertools import islice

N = 256
_MATRIX_Q = 3329


class CryptoError(Exception):
    """Raised when a cryptographic operation cannot be completed."""


def _random_bytes(count: int) -> bytes:
    try:
        return os.urandom(count)
    except OSError as exc:
        raise CryptoError("Failed to generate random bytes") from exc


def random_poly(q: int) -> list[int]:
    """Return 256 coefficients drawn uniformly from [0, q)."""
    if q < 1:
        raise ValueError("modulus must be positive")
    try:
        return [secrets.randbelow(q) for _ in range(N)]
    except OSError as exc:
        raise CryptoError("Failed to generate random bytes") from exc


def sample_cbd(eta: int) -> list[int]:
    """Sample 256 coefficients from the centred binomial distribution with parameter eta."""
    if eta < 0:
        raise ValueError("eta must be non-negative")
    bytes_needed = (N * 2 * eta + 7) // 8
    bits = int.from_bytes(_random_bytes(bytes_needed), "little")
    mask = (1 << eta) - 1
    coeffs = []
    for index in range(N):
        offset = index * 2 * eta
        a = ((bits >> offset) & mask).bit_count()
        b = ((bits >> (offset + eta)) & mask).bit_count()
        coeffs.append(a - b)
    return coeffs


def _xof_chunks(data: bytes, size: int) -> Iterator[bytes]:
    """Yield consecutive ``size``-byte chunks of the SHAKE-256 output stream."""
    shake = hashlib.shake_256(data)
    length = size * 2 * N
    offset = 0
    while True:
        stream = shake.digest(length)
        while offset + size <= length:
            yield stream[offset:offset + size]
            offset += size
        length *= 2


def _uniform_coeffs(data: bytes) -> Iterator[int]:
    for chunk in _xof_chunks(data, 3):
        value = int.from_bytes(chunk, "little") & 0x0FFF
        if value < _MATRIX_Q:
            yield value


def expand_a(seed: bytes, k: int) -> list[list[list[int]]]:
    """Deterministically expand ``seed`` into a k x k matrix of polynomials mod 3329."""
    if k < 0:
        raise ValueError("matrix dimension must be non-negative")
    seed = bytes(seed)
    return [
        [
            list(islice(_uniform_coeffs(seed + bytes([i & 0xFF, j & 0xFF])), N))
            for j in range(k)
        ]
        for i in range(k)
    ]