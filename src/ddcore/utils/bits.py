"""Raw bit-pattern inspection of IEEE-754 binary64 words.

Every look at the bits of a float64 in ddcore goes through this module. All
functions are elementwise over arrays of any shape and decide from the bit
pattern alone, so they give the same answers whether or not the backend flushes
subnormals to zero in arithmetic.
"""

import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp

from enum import IntEnum

MANTISSA_BITS = 52  # stored fraction bits
MANTISSA_DIGITS = 53  # including the implicit leading bit
EXPONENT_MASK = 0x7FF
MANTISSA_MASK = (1 << MANTISSA_BITS) - 1
MAGNITUDE_MASK = (1 << 63) - 1


class FpCategory(IntEnum):
    """Classification of a single float64 word."""

    ZERO = 0
    SUBNORMAL = 1
    NORMAL = 2
    INFINITE = 3
    NAN = 4


def to_bits(x: jnp.ndarray) -> jnp.ndarray:
    """Reinterpret float64 words as their uint64 bit patterns."""
    x = jnp.asarray(x, dtype=jnp.float64)
    return jax.lax.bitcast_convert_type(x, jnp.uint64)


@jax.jit
def exponent(x: jnp.ndarray) -> jnp.ndarray:
    """The 11-bit biased exponent field of each word.

    Args:
        x: float64 words, any shape.

    Returns:
        jnp.ndarray: uint32 values in [0, 2047]; 1023 encodes an unbiased
        exponent of zero, 0 marks zeros/subnormals and 2047 marks inf/NaN.
    """
    bits = to_bits(x)
    return ((bits >> MANTISSA_BITS) & jnp.uint64(EXPONENT_MASK)).astype(jnp.uint32)


@jax.jit
def mantissa_bits(x: jnp.ndarray) -> jnp.ndarray:
    """The 52 stored fraction bits of each word, as uint64."""
    return to_bits(x) & jnp.uint64(MANTISSA_MASK)


@jax.jit
def leading_zeros(x: jnp.ndarray) -> jnp.ndarray:
    """Leading zero count of the 64-bit integer holding the fraction field.

    The fraction occupies the low 52 bits, so the result is at least 12 for any
    word and 64 for words with an empty fraction.
    """
    return jax.lax.clz(mantissa_bits(x)).astype(jnp.uint32)


@jax.jit
def is_zero(x: jnp.ndarray) -> jnp.ndarray:
    """True where the word is +0.0 or -0.0."""
    return (to_bits(x) & jnp.uint64(MAGNITUDE_MASK)) == 0


@jax.jit
def is_nan(x: jnp.ndarray) -> jnp.ndarray:
    return (exponent(x) == EXPONENT_MASK) & (mantissa_bits(x) != 0)


@jax.jit
def classify(x: jnp.ndarray) -> jnp.ndarray:
    """Classify each word as one of the ``FpCategory`` codes (int8)."""
    e = exponent(x)
    m = mantissa_bits(x)
    return jnp.where(
        e == EXPONENT_MASK,
        jnp.where(m == 0, int(FpCategory.INFINITE), int(FpCategory.NAN)),
        jnp.where(
            e == 0,
            jnp.where(m == 0, int(FpCategory.ZERO), int(FpCategory.SUBNORMAL)),
            int(FpCategory.NORMAL),
        ),
    ).astype(jnp.int8)


@jax.jit
def ordering_key(x: jnp.ndarray) -> jnp.ndarray:
    """Map words to int64 keys that sort the way the floats do.

    For any two non-NaN words, comparing keys gives the IEEE-754 ordering,
    including infinities; +0.0 and -0.0 share the key 0. Keys of NaN words are
    meaningless and must be masked out by the caller via ``is_nan``.
    """
    bits = to_bits(x)
    magnitude = (bits & jnp.uint64(MAGNITUDE_MASK)).astype(jnp.int64)
    negative = (bits >> 63) == 1
    return jnp.where(negative, -magnitude, magnitude)
