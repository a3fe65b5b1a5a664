"""The non-overlap predicate for double-double words."""

import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp

from ddcore.utils.bits import (
    MANTISSA_DIGITS,
    FpCategory,
    classify,
    exponent,
    is_zero,
    leading_zeros,
)

# A subnormal word whose fraction has c leading zeros (in 64 bits) leads with
# 2**(63 - c - 1074); a normal word sits 53 places above that once its biased
# exponent reaches 65 - c.
_SUBNORMAL_THRESHOLD_BASE = 65


@jax.jit
def no_overlap(a: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    """Check whether two words can form a double-double pair with ``a`` leading.

    Only the combinations below are certified, everything else (infinities,
    NaNs, a zero or subnormal ``a`` above a nonzero ``b``, a subnormal ``a``
    above a normal ``b``) is assumed to overlap:

        Normal / Normal      exponent(a) >= exponent(b) + 53
        Normal / Subnormal   exponent(a) >= 53, or failing that
                             exponent(a) >= 65 - clz(mantissa(b))
        Normal / Zero        always
        Subnormal / Zero     always
        Zero / Zero          always

    Args:
        a: The more significant words.
        b: The less significant words. Broadcast against ``a``.

    Returns:
        jnp.ndarray: Boolean array, True where the pair does not overlap.
    """
    a, b = jnp.broadcast_arrays(
        jnp.asarray(a, dtype=jnp.float64), jnp.asarray(b, dtype=jnp.float64)
    )
    class_a = classify(a)
    class_b = classify(b)
    exp_a = exponent(a).astype(jnp.int32)
    exp_b = exponent(b).astype(jnp.int32)

    both_normal = exp_a >= exp_b + MANTISSA_DIGITS
    b_threshold = _SUBNORMAL_THRESHOLD_BASE - leading_zeros(b).astype(jnp.int32)
    normal_over_subnormal = (exp_a >= MANTISSA_DIGITS) | (exp_a >= b_threshold)
    b_is_zero = is_zero(b)

    a_is_normal = class_a == int(FpCategory.NORMAL)
    a_is_small = (class_a == int(FpCategory.SUBNORMAL)) | (
        class_a == int(FpCategory.ZERO)
    )

    return jnp.where(
        a_is_normal,
        jnp.where(
            class_b == int(FpCategory.NORMAL),
            both_normal,
            jnp.where(
                class_b == int(FpCategory.SUBNORMAL), normal_over_subnormal, b_is_zero
            ),
        ),
        a_is_small & b_is_zero,
    )
