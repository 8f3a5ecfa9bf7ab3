import hashlib

import pytest

from qidentity.kyber import (
    KYBER_ETA1,
    KYBER_K,
    KYBER_N,
    KYBER_Q,
    Ciphertext,
    KyberKEM,
    Polynomial,
)
from qidentity.ntt import NTTContext


@pytest.fixture(scope="module")
def ctx():
    return NTTContext()


@pytest.fixture(scope="module")
def keys():
    return KyberKEM.keygen()


def test_polynomial_addition_of_zeros():
    p3 = Polynomial.zero().add(Polynomial.zero())
    assert p3.coeffs == [0] * KYBER_N
    assert p3.is_ntt is False


def test_polynomial_multiplication_of_zeros(ctx):
    p4 = Polynomial.zero().multiply(Polynomial.zero(), ctx)
    assert p4.coeffs == [0] * KYBER_N
    assert p4.is_ntt is True


def test_noise_sampling_bounds():
    p = Polynomial.sample_noise(KYBER_ETA1)
    assert len(p.coeffs) == KYBER_N
    assert all(abs(c) <= KYBER_ETA1 for c in p.coeffs)
    assert p.is_ntt is False


def test_random_polynomial_range():
    p = Polynomial.random()
    assert all(0 <= c < KYBER_Q for c in p.coeffs)
    assert p.is_ntt is False


def test_add_zero_is_identity():
    p = Polynomial.random()
    assert p.add(Polynomial.zero()) == p


def test_add_is_commutative():
    p, q = Polynomial.random(), Polynomial.random()
    assert p.add(q) == q.add(p)


def test_add_reduces_modulo_q():
    p = Polynomial([KYBER_Q - 1] * KYBER_N)
    q = Polynomial([2] * KYBER_N)
    assert p.add(q).coeffs == [1] * KYBER_N


def test_add_requires_same_form():
    with pytest.raises(ValueError):
        Polynomial.zero().add(Polynomial(is_ntt=True))


def test_polynomial_length_is_checked():
    with pytest.raises(ValueError):
        Polynomial([1, 2, 3])


def test_multiply_leaves_operands_unchanged(ctx):
    p = Polynomial.random()
    q = Polynomial.random()
    before = list(p.coeffs)
    p.multiply(q, ctx)
    assert p.coeffs == before
    assert p.is_ntt is False


def test_multiply_by_zero_gives_zero(ctx):
    p = Polynomial.random()
    assert p.multiply(Polynomial.zero(), ctx).coeffs == [0] * KYBER_N


def test_to_ntt_is_idempotent(ctx):
    p = Polynomial.random()
    p.to_ntt(ctx)
    once = list(p.coeffs)
    p.to_ntt(ctx)
    assert p.is_ntt is True
    assert p.coeffs == once


def test_from_ntt_on_normal_form_is_noop(ctx):
    p = Polynomial.random()
    before = list(p.coeffs)
    p.from_ntt(ctx)
    assert p.coeffs == before
    assert p.is_ntt is False


def test_keygen_shapes(keys):
    pk, sk = keys
    assert len(pk.a) == KYBER_K
    assert all(len(row) == KYBER_K for row in pk.a)
    assert all(poly.is_ntt for row in pk.a for poly in row)
    assert len(pk.t) == KYBER_K and all(poly.is_ntt for poly in pk.t)
    assert len(sk.s) == KYBER_K and all(poly.is_ntt for poly in sk.s)


def test_secret_key_holds_copy_of_public_key(keys):
    pk, sk = keys
    assert sk.public_key == pk
    assert sk.public_key.t[0] is not pk.t[0]


def test_encapsulate_shapes(keys):
    pk, _ = keys
    secret, ct = KyberKEM.encapsulate(pk)
    assert len(secret) == 32
    assert len(ct.u) == KYBER_K
    assert not any(poly.is_ntt for poly in ct.u)
    assert ct.v.is_ntt is False
    assert all(-32768 <= c <= 32767 for c in ct.v.coeffs)


def test_decapsulate_is_deterministic(keys):
    pk, sk = keys
    _, ct = KyberKEM.encapsulate(pk)
    first = KyberKEM.decapsulate(sk, ct)
    assert len(first) == 32
    assert KyberKEM.decapsulate(sk, ct) == first


@pytest.mark.parametrize(
    "value, expected_byte",
    [
        (0, 0x00),
        (832, 0x00),
        (833, 0xFF),
        (1664, 0xFF),
        (-1664, 0xFF),
        (2497, 0xFF),
        (2498, 0x00),
    ],
)
def test_decapsulate_decodes_threshold(keys, value, expected_byte):
    _, sk = keys
    ct = Ciphertext(
        [Polynomial.zero() for _ in range(KYBER_K)],
        Polynomial([value] * KYBER_N),
    )
    expected = hashlib.sha3_256(bytes([expected_byte]) * 32).digest()
    assert KyberKEM.decapsulate(sk, ct) == expected


def test_decapsulate_rejects_short_ciphertext(keys):
    _, sk = keys
    with pytest.raises(ValueError):
        KyberKEM.decapsulate(sk, Ciphertext([Polynomial.zero()], Polynomial.zero()))