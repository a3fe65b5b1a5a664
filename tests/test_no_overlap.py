"""Tests for the double-double non-overlap predicate."""

import jax

jax.config.update("jax_enable_x64", True)

import sys

import jax.numpy as jnp
import numpy as np
import pytest

from ddcore.overlap import no_overlap

DBL_MAX = sys.float_info.max
INF = float("inf")
NAN = float("nan")

KNOWN_CASES = [
    # normal / normal around the 53-bit window
    (1.0, 2.0**-52, False),
    (-1.0, -(2.0**-52), False),
    (1.0, 2.0**-53, True),
    (-1.0, -(2.0**-53), True),
    (1.0, 0.25, False),
    (1.0, -1e-200, True),
    (1e-200, 1.0, False),
    # normal / subnormal
    (1.0, 2.0**-1023, True),
    (1.0, -(2.0**-1023), True),
    (2.0**-970, 2.0**-1022, False),
    (2.0**-970, 2.0**-1023, True),
    (2.0**-971, 2.0**-1023, False),
    (2.0**-971, 2.0**-1024, True),
    # zero low words
    (1.0, 0.0, True),
    (-1.0, -0.0, True),
    (2.0**-1023, 0.0, True),
    (0.0, 0.0, True),
    (-0.0, 0.0, True),
    # uncertified combinations
    (2.0**-1023, -DBL_MAX, False),
    (2.0**-1023, 2.0**-1074, False),
    (0.0, 1.0, False),
    (0.0, -DBL_MAX, False),
    (0.0, 2.0**-1074, False),
    (INF, 1.0, False),
    (NAN, 1.0, False),
    (1.0, INF, False),
    (1.0, NAN, False),
]


@pytest.mark.parametrize("a,b,expected", KNOWN_CASES)
def test_known_cases(a, b, expected) -> None:
    assert bool(no_overlap(a, b)) is expected


def test_arrays_match_scalars() -> None:
    a = jnp.array([case[0] for case in KNOWN_CASES])
    b = jnp.array([case[1] for case in KNOWN_CASES])
    expected = np.array([case[2] for case in KNOWN_CASES])
    np.testing.assert_array_equal(np.asarray(no_overlap(a, b)), expected)


def test_broadcasts_low_word() -> None:
    a = jnp.array([1.0, 2.0**-1023, 0.0, INF])
    result = no_overlap(a, 0.0)
    np.testing.assert_array_equal(np.asarray(result), [True, True, True, False])


@pytest.mark.parametrize("y", [0.0, 1.0, -1.0, 2.0**-1074, DBL_MAX, INF, NAN])
def test_special_high_word_never_certified(y) -> None:
    assert not bool(no_overlap(INF, y))
    assert not bool(no_overlap(-INF, y))
    assert not bool(no_overlap(NAN, y))


@pytest.mark.parametrize("x", [1.0, -3.5, DBL_MAX, 2.0**-1022, 2.0**-1074, 0.0, -0.0])
def test_zero_low_word_always_certified(x) -> None:
    assert bool(no_overlap(x, 0.0))
    assert bool(no_overlap(x, -0.0))


def test_normal_pairs_follow_exponent_gap() -> None:
    """For two normal words the predicate is exactly the 53-exponent gap."""
    rng = np.random.RandomState(42)
    n = 2000
    k_a = rng.randint(-1000, 1000, n)
    # keep b near a so both outcomes occur often
    k_b = np.clip(k_a - rng.randint(-5, 110, n), -1022, 1023)
    a = np.ldexp(rng.uniform(1.0, 2.0, n), k_a) * rng.choice([-1.0, 1.0], n)
    b = np.ldexp(rng.uniform(1.0, 2.0, n), k_b) * rng.choice([-1.0, 1.0], n)

    expected = k_a >= k_b + 53
    assert expected.any() and (~expected).any()
    result = np.asarray(no_overlap(jnp.asarray(a), jnp.asarray(b)))
    np.testing.assert_array_equal(result, expected)


def test_under_jit() -> None:
    jitted = jax.jit(lambda a, b: no_overlap(a, b))
    assert bool(jitted(1.0, 2.0**-53))
    assert not bool(jitted(1.0, 2.0**-52))
