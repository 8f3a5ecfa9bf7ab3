"""Byte encodings of Kyber polynomials, keys and ciphertexts."""

from __future__ import annotations

import struct

from .kyber import KYBER_N, Ciphertext, Polynomial, PublicKey, SecretKey
from .sampling import CryptoError

MAX_PK_SIZE = 1024
MAX_SK_SIZE = 1024
MAX_CT_SIZE = 1024

_COEFFS = struct.Struct(f"<{KYBER_N}h")
POLYNOMIAL_SIZE = 1 + _COEFFS.size


def serialize_polynomial(poly: Polynomial) -> bytes:
    """Encode as one NTT-flag byte followed by little-endian 16-bit coefficients."""
    return bytes([int(poly.is_ntt)]) + _COEFFS.pack(*poly.coeffs)


def deserialize_polynomial(data: bytes) -> Polynomial:
    """Decode a polynomial from the first 513 bytes of ``data``."""
    if len(data) < POLYNOMIAL_SIZE:
        raise CryptoError("Invalid polynomial bytes")
    coeffs = _COEFFS.unpack(bytes(data[1:POLYNOMIAL_SIZE]))
    return Polynomial(list(coeffs), data[0] != 0)


class _Reader:
    """Sequential reader that raises a fixed error when input runs out."""

    def __init__(self, data: bytes, error: str) -> None:
        self._data = bytes(data)
        self._pos = 0
        self._error = error

    @property
    def rest(self) -> bytes:
        return self._data[self._pos:]

    def byte(self) -> int:
        if self._pos >= len(self._data):
            raise CryptoError(self._error)
        value = self._data[self._pos]
        self._pos += 1
        return value

    def polynomial(self) -> Polynomial:
        end = self._pos + POLYNOMIAL_SIZE
        if end > len(self._data):
            raise CryptoError(self._error)
        poly = deserialize_polynomial(self._data[self._pos:end])
        self._pos = end
        return poly

    def polynomials(self, count: int) -> list[Polynomial]:
        return [self.polynomial() for _ in range(count)]


def _encode_vector(polys: list[Polynomial]) -> bytes:
    return bytes([len(polys) & 0xFF]) + b"".join(serialize_polynomial(p) for p in polys)


def serialize_public_key(pk: PublicKey) -> bytes:
    """Encode matrix dimensions, matrix A and vector t."""
    out = bytearray([len(pk.a) & 0xFF])
    if pk.a:
        out.append(len(pk.a[0]) & 0xFF)
    for row in pk.a:
        for poly in row:
            out += serialize_polynomial(poly)
    out += _encode_vector(pk.t)
    if len(out) > MAX_PK_SIZE:
        raise CryptoError("Public key too large")
    return bytes(out)


def deserialize_public_key(data: bytes) -> PublicKey:
    """Decode a public key produced by :func:`serialize_public_key`."""
    error = "Invalid public key bytes"
    if len(data) < 2:
        raise CryptoError(error)
    reader = _Reader(data, error)
    rows = reader.byte()
    cols = reader.byte()
    a = [reader.polynomials(cols) for _ in range(rows)]
    t = reader.polynomials(reader.byte())
    return PublicKey(a, t)


def serialize_secret_key(sk: SecretKey) -> bytes:
    """Encode vector s followed by the embedded public key."""
    out = _encode_vector(sk.s) + serialize_public_key(sk.public_key)
    if len(out) > MAX_SK_SIZE:
        raise CryptoError("Secret key too large")
    return out


def deserialize_secret_key(data: bytes) -> SecretKey:
    """Decode a secret key produced by :func:`serialize_secret_key`."""
    reader = _Reader(data, "Invalid secret key bytes")
    s = reader.polynomials(reader.byte())
    return SecretKey(s, deserialize_public_key(reader.rest))


def serialize_ciphertext(ct: Ciphertext) -> bytes:
    """Encode vector u followed by polynomial v."""
    out = _encode_vector(ct.u) + serialize_polynomial(ct.v)
    if len(out) > MAX_CT_SIZE:
        raise CryptoError("Ciphertext too large")
    return out


def deserialize_ciphertext(data: bytes) -> Ciphertext:
    """Decode a ciphertext produced by :func:`serialize_ciphertext`."""
    reader = _Reader(data, "Invalid ciphertext bytes")
    u = reader.polynomials(reader.byte())
    return Ciphertext(u, reader.polynomial())