"""Kyber-style key encapsulation over R_q = Z_q[X]/(X^n + 1) with q = 3329."""

from __future__ import annotations

import copy
import hashlib
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import reduce

from .ntt import NTTContext
from .sampling import CryptoError, expand_a, random_poly, sample_cbd

KYBER_N = 256
KYBER_Q = 3329
KYBER_K = 3
KYBER_ETA1 = 2
KYBER_ETA2 = 2
KYBER_DU = 10
KYBER_DV = 4

_SECRET_BYTES = 32


def _to_i16(value: int) -> int:
    return ((value + 0x8000) & 0xFFFF) - 0x8000


def _rem(a: int, b: int) -> int:
    """Remainder whose sign follows the dividend."""
    remainder = abs(a) % abs(b)
    return -remainder if a < 0 else remainder


def _reduce_q(value: int) -> int:
    return _to_i16(_rem(value, KYBER_Q))


@dataclass
class Polynomial:
    """A polynomial of 256 signed 16-bit coefficients, in normal or NTT form."""

    coeffs: list[int] = field(default_factory=lambda: [0] * KYBER_N)
    is_ntt: bool = False

    def __post_init__(self) -> None:
        self.coeffs = list(self.coeffs)
        if len(self.coeffs) != KYBER_N:
            raise ValueError(f"expected {KYBER_N} coefficients, got {len(self.coeffs)}")

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
        return _from_coeffs(random_poly(KYBER_Q), "Invalid coefficient count")


def _from_coeffs(coeffs: list[int], message: str) -> Polynomial:
    if len(coeffs) != KYBER_N:
        raise CryptoError(message)
    return Polynomial(coeffs)


def _in_ntt(poly: Polynomial, ctx: NTTContext) -> Polynomial:
    result = poly._clone()
    result.to_ntt(ctx)
    return result


def _dot(left: Iterable[Polynomial], right: Iterable[Polynomial], ctx: NTTContext) -> Polynomial:
    products = (x.multiply(y, ctx) for x, y in zip(left, right))
    return reduce(Polynomial.add, products, Polynomial(is_ntt=True))


def _random_bytes(count: int, message: str) -> bytes:
    try:
        return os.urandom(count)
    except OSError as exc:
        raise CryptoError(message) from exc


def _derive_secret(message: bytes) -> bytes:
    return hashlib.sha3_256(message).digest()


@dataclass
class PublicKey:
    """Matrix A (k x k, NTT form) and vector t."""

    a: list[list[Polynomial]]
    t: list[Polynomial]


@dataclass
class SecretKey:
    """Secret vector s together with a copy of the public key."""

    s: list[Polynomial]
    public_key: PublicKey


@dataclass
class Ciphertext:
    """Vector u and polynomial v."""

    u: list[Polynomial]
    v: Polynomial


class KyberKEM:
    """Key generation, encapsulation and decapsulation."""

    @staticmethod
    def keygen() -> tuple[PublicKey, SecretKey]:
        """Generate a new key pair."""
        ctx = NTTContext()
        seed = _random_bytes(32, "Failed to generate random seed")
        matrix = expand_a(seed, KYBER_K)
        a = [
            [_in_ntt(_from_coeffs(coeffs, "Invalid matrix dimensions"), ctx) for coeffs in row]
            for row in matrix
        ]
        s = [_in_ntt(Polynomial.sample_noise(KYBER_ETA1), ctx) for _ in range(KYBER_K)]
        e = [Polynomial.sample_noise(KYBER_ETA1) for _ in range(KYBER_K)]
        t = [_dot(row, s, ctx).add(_in_ntt(ei, ctx)) for row, ei in zip(a, e)]

        pk = PublicKey(a, t)
        return pk, SecretKey(s, copy.deepcopy(pk))

    @staticmethod
    def encapsulate(pk: PublicKey) -> tuple[bytes, Ciphertext]:
        """Produce a 32-byte shared secret and the ciphertext that carries it."""
        ctx = NTTContext()
        message = _random_bytes(_SECRET_BYTES, "Failed to generate random message")

        r = [_in_ntt(Polynomial.sample_noise(KYBER_ETA1), ctx) for _ in range(KYBER_K)]
        e1 = [Polynomial.sample_noise(KYBER_ETA2) for _ in range(KYBER_K)]
        e2 = Polynomial.sample_noise(KYBER_ETA2)

        u = []
        for i, e1i in enumerate(e1):
            column = (pk.a[j][i] for j in range(KYBER_K))
            ui = _dot(column, r, ctx).add(_in_ntt(e1i, ctx))
            ui.from_ntt(ctx)
            u.append(ui)

        v = _dot(pk.t[:KYBER_K], r, ctx)
        v.from_ntt(ctx)
        v = v.add(e2)

        bits = int.from_bytes(message, "little")
        half = KYBER_Q // 2
        v.coeffs = [
            _reduce_q(c + half * ((bits >> i) & 1)) for i, c in enumerate(v.coeffs)
        ]

        return _derive_secret(message), Ciphertext(u, v)

    @staticmethod
    def decapsulate(sk: SecretKey, ct: Ciphertext) -> bytes:
        """Recover the 32-byte shared secret from a ciphertext."""
        if len(sk.s) < KYBER_K or len(ct.u) < KYBER_K:
            raise ValueError(f"secret key and ciphertext must hold {KYBER_K} polynomials")
        ctx = NTTContext()

        v_prime = list(ct.v.coeffs)
        for si, ui in zip(sk.s[:KYBER_K], ct.u[:KYBER_K]):
            product = si.multiply(_in_ntt(ui, ctx), ctx)
            product.from_ntt(ctx)
            v_prime = [_reduce_q(a - b) for a, b in zip(v_prime, product.coeffs)]

        threshold = KYBER_Q // 4
        bits = 0
        for i, coeff in enumerate(v_prime):
            diff = coeff + KYBER_Q if coeff < 0 else coeff
            if threshold < diff <= KYBER_Q - threshold:
                bits |= 1 << i

        return _derive_secret(bits.to_bytes(_SECRET_BYTES, "little"))