"""Number Theoretic Transform over Z_q with q = 3329 for 256-coefficient polynomials."""

from __future__ import annotations

from collections.abc import Sequence

N = 256
Q = 3329
ZETA = 17
QINV = 62209  # q^(-1) mod 2^16
R = 1 << 16


def _to_i16(value: int) -> int:
    """Wrap an integer into the signed 16-bit range."""
    return ((value + 0x8000) & 0xFFFF) - 0x8000


def _trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _trunc_rem(a: int, b: int) -> int:
    """Remainder whose sign follows the dividend."""
    remainder = abs(a) % abs(b)
    return -remainder if a < 0 else remainder


def montgomery_reduce(a: int) -> int:
    """Compute a * R^(-1) mod q with R = 2^16 (result congruent, not fully reduced)."""
    u = (a * QINV) & 0xFFFF
    t = (a - u * Q) >> 16
    return t - Q if t >= Q else t


def barrett_reduce(a: int) -> int:
    """Reduce a signed 16-bit value modulo q to a small centred representative."""
    a = _to_i16(a)
    v = (a * 20159 + (1 << 25)) >> 26
    return _to_i16(a - v * Q)


def mod_inverse(a: int, m: int) -> int:
    """Modular multiplicative inverse by the extended Euclidean algorithm."""
    t, new_t = 0, 1
    r, new_r = m, a
    while new_r != 0:
        quotient = _trunc_div(r, new_r)
        t, new_t = new_t, t - quotient * new_t
        r, new_r = new_r, r - quotient * new_r
    if t < 0:
        t += m
    return t


def _mul_reduce(x: int, y: int) -> int:
    return _to_i16(montgomery_reduce(_trunc_rem(x * y, Q)))


class NTTContext:
    """Pre-computed twiddle factors for the forward and inverse transforms."""

    def __init__(self) -> None:
        self.zetas = self._powers(ZETA)
        self.zetas_inv = self._powers(mod_inverse(ZETA, Q))

    @staticmethod
    def _powers(base: int) -> tuple[int, ...]:
        powers = []
        current = 1
        for _ in range(N):
            powers.append(current)
            current = _mul_reduce(current, base)
        return tuple(powers)

    @staticmethod
    def _checked(coeffs: Sequence[int]) -> list[int]:
        values = list(coeffs)
        if len(values) != N:
            raise ValueError(f"expected {N} coefficients, got {len(values)}")
        return values

    def forward(self, coeffs: Sequence[int]) -> list[int]:
        """Return the forward transform of ``coeffs`` as a new list."""
        a = self._checked(coeffs)
        k = 1
        length = N // 2
        while length >= 1:
            for start in range(0, N, 2 * length):
                zeta = self.zetas[k]
                k += 1
                for i in range(start, start + length):
                    t = _mul_reduce(zeta, a[i + length])
                    a[i + length] = barrett_reduce(a[i] - t)
                    a[i] = barrett_reduce(a[i] + t)
            length >>= 1
        return a

    def inverse(self, coeffs: Sequence[int]) -> list[int]:
        """Return the inverse transform of ``coeffs`` as a new list."""
        a = self._checked(coeffs)
        k = N - 1
        length = 1
        while length < N:
            for start in range(0, N, 2 * length):
                zeta_inv = self.zetas_inv[k]
                k -= 1
                for i in range(start, start + length):
                    t = a[i]
                    a[i] = barrett_reduce(t + a[i + length])
                    a[i + length] = _mul_reduce(zeta_inv, barrett_reduce(t - a[i + length]))
            length <<= 1

        n_inv = mod_inverse(N, Q)
        return [_mul_reduce(value, n_inv) for value in a]