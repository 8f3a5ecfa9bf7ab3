import random

import pytest

from qidentity.ntt import (
    N,
    Q,
    R,
    NTTContext,
    barrett_reduce,
    montgomery_reduce,
    mod_inverse,
)


def test_mod_inverse_of_zeta():
    inv = mod_inverse(17, Q)
    assert (17 * inv) % Q == 1
    assert 0 <= inv < Q


def test_mod_inverse_of_n():
    inv = mod_inverse(N, Q)
    assert (N * inv) % Q == 1


def test_montgomery_reduction_is_congruent():
    a = 12345
    x = a * R % Q
    reduced = montgomery_reduce(x)
    assert -Q < reduced < Q
    assert (reduced * R - x) % Q == 0


def test_montgomery_reduce_zero():
    assert montgomery_reduce(0) == 0


@pytest.mark.parametrize("x", [1, 2, 100, 1708, 3328, -5, -3328])
def test_montgomery_reduce_congruence_many(x):
    assert (montgomery_reduce(x) * R - x) % Q == 0


def test_barrett_reduction():
    reduced = barrett_reduce(12345)
    assert (reduced - 12345) % Q == 0
    assert abs(reduced) <= Q


@pytest.mark.parametrize("a", [0, 1, -1, 3329, -3329, 20000, 32767, -32768])
def test_barrett_reduce_congruence(a):
    reduced = barrett_reduce(a)
    assert (reduced - a) % Q == 0
    assert abs(reduced) <= Q


def test_twiddle_tables_start_at_one():
    ctx = NTTContext()
    assert ctx.zetas[0] == 1
    assert ctx.zetas_inv[0] == 1
    assert len(ctx.zetas) == N
    assert len(ctx.zetas_inv) == N


def test_forward_of_zero_is_zero():
    ctx = NTTContext()
    assert ctx.forward([0] * N) == [0] * N
    assert ctx.inverse([0] * N) == [0] * N


def test_forward_does_not_mutate_input_and_is_deterministic():
    ctx = NTTContext()
    rng = random.Random(7)
    coeffs = [rng.randrange(Q) for _ in range(N)]
    original = list(coeffs)
    first = ctx.forward(coeffs)
    second = ctx.forward(coeffs)
    assert coeffs == original
    assert first == second
    assert len(first) == N
    assert all(abs(c) <= Q for c in first)


def test_inverse_output_bounded():
    ctx = NTTContext()
    rng = random.Random(11)
    coeffs = [rng.randrange(Q) for _ in range(N)]
    result = ctx.inverse(coeffs)
    assert len(result) == N
    assert all(-32768 <= c <= 32767 for c in result)


def test_wrong_length_rejected():
    ctx = NTTContext()
    with pytest.raises(ValueError):
        ctx.forward([0] * 10)
    with pytest.raises(ValueError):
        ctx.inverse([0] * 257)