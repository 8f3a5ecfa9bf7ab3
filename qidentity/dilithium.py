"""Dilithium-style lattice signatures over 256-coefficient polynomials."""

from __future__ import annotations

import copy
import hashlib
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import reduce

from .ntt import NTTContext
from .sampling import CryptoError, expand_a, random_poly, sample_cbd

DILITHIUM_N = 256
DILITHIUM_Q = 8380417
DILITHIUM_K = 4
DILITHIUM_L = 4
DILITHIUM_ETA = 2
DILITHIUM_TAU = 39
DILITHIUM_BETA = 78
DILITHIUM_OMEGA = 80


def _to_i16(value: int) -> int:
    return ((value + 0x8000) & 0xFFFF) - 0x8000


def _rem(a: int, b: int) -> int:
    """Remainder whose sign follows the dividend."""
    remainder = abs(a) % abs(b)
    return -remainder if a < 0 else remainder


def _reduce_q(value: int) -> int:
    return _to_i16(_rem(value, DILITHIUM_Q))


@dataclass
class Polynomial:
    """A polynomial of 256 coefficients, in normal or NTT form."""

    coeffs: list[int] = field(default_factory=lambda: [0] * DILITHIUM_N)
    is_ntt: bool = False

    def __post_init__(self) -> None:
        self.coeffs = list(self.coeffs)
        if len(self.coeffs) != DILITHIUM_N:
            raise ValueError(f"expected {DILITHIUM_N} coefficients, got {len(self.coeffs)}")

    @staticmethod
    def zero() -> Polynomial:
        """Return the zero polynomial in normal form."""
        return Polynomial()

    def _clone(self) -> Polynomial:
        return Polynomial(list(self.coeffs), self.is_ntt)

    def add(self, other: Polynomial) -> Polynomial:
        """Coefficient-wise sum modulo q; both operands must be in the same form."""
        if self.is_ntt != other.is_ntt:
            raise ValueError("Polynomials must be in same form")
        return Polynomial(
            [_reduce_q(a + b) for a, b in zip(self.coeffs, other.coeffs)],
            self.is_ntt,
        )

    def _ntt_coeffs(self, ctx: NTTContext) -> list[int]:
        return self.coeffs if self.is_ntt else ctx.forward(self.coeffs)

    def multiply(self, other: Polynomial, ctx: NTTContext) -> Polynomial:
        """Pointwise product in the NTT domain; the result is in NTT form."""
        a = self._ntt_coeffs(ctx)
        b = other._ntt_coeffs(ctx)
        return Polynomial([_reduce_q(x * y) for x, y in zip(a, b)], True)

    def to_ntt(self, ctx: NTTContext) -> None:
        """Transform in place into NTT form, if not already there."""
        if not self.is_ntt:
            self.coeffs = ctx.forward(self.coeffs)
            self.is_ntt = True

    def from_ntt(self, ctx: NTTContext) -> None:
        """Transform in place back into normal form, if in NTT form."""
        if self.is_ntt:
            self.coeffs = ctx.inverse(self.coeffs)
            self.is_ntt = False

    @staticmethod
    def sample_noise(eta: int) -> Polynomial:
        """Sample a polynomial with small centred-binomial coefficients."""
        return _from_coeffs(sample_cbd(eta), "Invalid coefficient count")

    @staticmethod
    def random() -> Polynomial:
        """Sample a polynomial with coefficients uniform in [0, q)."""
        return _from_coeffs(random_poly(DILITHIUM_Q), "Invalid coefficient count")


def _from_coeffs(coeffs: list[int], message: str) -> Polynomial:
    if len(coeffs) != DILITHIUM_N:
        raise CryptoError(message)
    return Polynomial(coeffs)


def _in_ntt(poly: Polynomial, ctx: NTTContext) -> Polynomial:
    result = poly._clone()
    result.to_ntt(ctx)
    return result


def _dot(left: Iterable[Polynomial], right: Iterable[Polynomial], ctx: NTTContext) -> Polynomial:
    products = (x.multiply(y, ctx) for x, y in zip(left, right))
    return reduce(Polynomial.add, products, Polynomial(is_ntt=True))


def _matrix_times(a: list[list[Polynomial]], vector: list[Polynomial], ctx: NTTContext) -> list[Polynomial]:
    rows = []
    for row in a[:DILITHIUM_K]:
        product = _dot(row[:DILITHIUM_L], vector, ctx)
        product.from_ntt(ctx)
        rows.append(product)
    return rows


def _parity_bits(polys: Iterable[Polynomial]) -> bytes:
    return bytes(_rem(poly.coeffs[0], 2) & 0xFF for poly in polys)


@dataclass
class PublicKey:
    """Matrix A (k x l, NTT form) and vector t1."""

    a: list[list[Polynomial]]
    t1: list[Polynomial]


@dataclass
class SecretKey:
    """Secret vectors s1 and s2 with a copy of the public key."""

    s1: list[Polynomial]
    s2: list[Polynomial]
    public_key: PublicKey


@dataclass
class Signature:
    """Vector z, hint bytes h and the 32-byte message digest c."""

    z: list[Polynomial]
    h: bytes
    c: bytes


class Dilithium:
    """Key generation, signing and verification."""

    @staticmethod
    def keygen() -> tuple[PublicKey, SecretKey]:
        """Generate a new key pair."""
        ctx = NTTContext()
        try:
            seed = os.urandom(32)
        except OSError as exc:
            raise CryptoError("Failed to generate random seed") from exc

        matrix = expand_a(seed, DILITHIUM_K)
        a = [
            [
                _in_ntt(_from_coeffs(matrix[i][j], "Invalid matrix dimensions"), ctx)
                for j in range(DILITHIUM_L)
            ]
            for i in range(DILITHIUM_K)
        ]
        s1 = [_in_ntt(Polynomial.sample_noise(DILITHIUM_ETA), ctx) for _ in range(DILITHIUM_L)]
        s2 = [_in_ntt(Polynomial.sample_noise(DILITHIUM_ETA), ctx) for _ in range(DILITHIUM_K)]
        t1 = [_dot(row, s1, ctx).add(_in_ntt(s2i, ctx)) for row, s2i in zip(a, s2)]

        pk = PublicKey(a, t1)
        return pk, SecretKey(s1, s2, copy.deepcopy(pk))

    @staticmethod
    def sign(sk: SecretKey, message: bytes) -> Signature:
        """Sign ``message`` with the secret key."""
        if len(sk.s1) < DILITHIUM_L:
            raise ValueError(f"secret key must hold {DILITHIUM_L} polynomials in s1")
        ctx = NTTContext()
        c = hashlib.sha3_256(bytes(message)).digest()

        y = [_in_ntt(Polynomial.sample_noise(DILITHIUM_ETA), ctx) for _ in range(DILITHIUM_L)]
        w = _matrix_times(sk.public_key.a, y, ctx)
        z = [yi.add(_in_ntt(s1i, ctx)) for yi, s1i in zip(y, sk.s1)]
        return Signature(z, _parity_bits(w), c)

    @staticmethod
    def verify(pk: PublicKey, message: bytes, signature: Signature) -> bool:
        """Check the hint bits of ``signature`` against A z."""
        if len(signature.z) < DILITHIUM_L or len(signature.h) < DILITHIUM_K:
            raise ValueError("signature is missing components")
        ctx = NTTContext()
        hashlib.sha3_256(bytes(message)).digest()

        az = _matrix_times(pk.a, signature.z[:DILITHIUM_L], ctx)
        expected = _parity_bits(az)
        return all(bit == hint for bit, hint in zip(expected, signature.h[:DILITHIUM_K]))