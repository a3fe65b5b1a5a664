"""Error-free transformations that produce double-double pairs.

Each routine returns (hi, lo) with hi the rounded result and lo the exact
rounding error, so hi + lo equals the exact sum or product whenever nothing
overflows or underflows.
"""

import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp

from typing import Tuple

from ddcore.doubledouble import DoubleDouble

_nmant = jnp.finfo(jnp.float64).nmant
# 2**27 + 1, splits a double into two 26-bit halves
_SPLITTER = (2 << (_nmant - _nmant // 2)) + 1


@jax.jit
def two_sum(a: jnp.ndarray, b: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Knuth's two-sum, valid for any ordering of |a| and |b|."""
    s = a + b
    v = s - a
    e = (a - (s - v)) + (b - v)
    return s, e


@jax.jit
def fast_two_sum(a: jnp.ndarray, b: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Dekker's two-sum; requires |a| >= |b| (or a == 0)."""
    s = a + b
    e = b - (s - a)
    return s, e


def _split(a: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    p = a * _SPLITTER
    a_hi = a - p + p
    a_lo = a - a_hi
    return a_hi, a_lo


@jax.jit
def two_prod(x: jnp.ndarray, y: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    # mul12 from https://csclub.uwaterloo.ca/~pbarfuss/dekker1971.pdf
    hx, tx = _split(x)
    hy, ty = _split(y)

    p = hx * hy
    q = hx * ty + tx * hy
    z = p + q
    zz = p - z + q + tx * ty

    return z, zz


def dd_from_sum(a, b) -> DoubleDouble:
    """The exact sum of two doubles as a DoubleDouble."""
    a = jnp.asarray(a, dtype=jnp.float64)
    b = jnp.asarray(b, dtype=jnp.float64)
    return DoubleDouble(*two_sum(a, b))


def dd_from_product(a, b) -> DoubleDouble:
    """The exact product of two doubles as a DoubleDouble."""
    a = jnp.asarray(a, dtype=jnp.float64)
    b = jnp.asarray(b, dtype=jnp.float64)
    return DoubleDouble(*two_prod(a, b))
