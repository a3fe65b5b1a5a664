import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp
import numpy as np

import numbers
import warnings
from enum import IntEnum
from functools import partial
from typing import Optional

from ddcore.overlap import no_overlap
from ddcore.utils.bits import is_nan, ordering_key

# comparison codes returned by dd_compare and friends
LESS = -1
EQUAL = 0
GREATER = 1
UNORDERED = 2

_KEY_FLOOR = jnp.iinfo(jnp.int64).min


class Ordering(IntEnum):
    """Outcome of an ordered comparison; ``None`` stands in for "unordered"."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


def _as_word(x) -> jnp.ndarray:
    x = jnp.asarray(x)
    if x.dtype == jnp.float64:
        return x
    if jnp.issubdtype(x.dtype, jnp.floating):
        warnings.warn(
            f"DoubleDouble words should be float64, got {x.dtype}; promoting. "
            "Precision already lost in the narrower type is not recovered.",
            UserWarning,
            stacklevel=3,
        )
    return x.astype(jnp.float64)


@jax.tree_util.register_pytree_node_class
class DoubleDouble:
    """A double-double precision number representation for JAX.

    Represents a high-precision number as the unevaluated sum of two IEEE
    doubles (hi + lo). A value is only trustworthy when ``is_valid()`` holds:
    both words are finite and their significant bits do not overlap. Invalid
    values are not errors, they behave like NaN and are filtered out by
    ``min``/``max``.

    Comparisons are elementwise and lexicographic on (hi, lo); a plain float or
    array compares as (value, 0.0).
    """

    def __init__(self, hi, lo=None):
        """Initialize a DoubleDouble number.

        Args:
            hi: High part (jnp.ndarray or float)
            lo: Low part (jnp.ndarray or float, optional). If None, lo is set to 0

        Raises:
            ValueError: If hi and lo have different shapes.
        """
        hi = _as_word(hi)
        lo = jnp.zeros_like(hi) if lo is None else _as_word(lo)
        if hi.shape != lo.shape:
            raise ValueError(
                f"hi and lo must have the same shape, got {hi.shape} and {lo.shape}"
            )
        self.hi = hi
        self.lo = lo

    def __str__(self) -> str:
        hi = np.asarray(self.hi).tolist()
        lo = np.asarray(self.lo).tolist()
        return _format_nested(hi, lo)

    def __repr__(self):
        return f"DoubleDouble({self.hi}, {self.lo})"

    @property
    def shape(self):
        return self.hi.shape

    def is_valid(self) -> jnp.ndarray:
        """True where both words are finite and do not overlap."""
        return dd_is_valid(self)

    def _compare_with(self, other) -> jnp.ndarray:
        if isinstance(other, DoubleDouble):
            return dd_compare(self, other)
        return dd_compare_scalar(self, other)

    def partial_cmp(self, other) -> Optional[Ordering]:
        """Compare a scalar DoubleDouble against another value or a float.

        Returns:
            Ordering or None: None when the two are unordered (a NaN was hit).

        Raises:
            ValueError: If the comparison is not 0-d; use ``dd_compare`` for
                arrays.
        """
        code = self._compare_with(other)
        if jnp.ndim(code) != 0:
            raise ValueError(
                f"partial_cmp needs scalar operands, got shape {jnp.shape(code)}; "
                "use dd_compare for arrays"
            )
        code = int(code)
        return None if code == UNORDERED else Ordering(code)

    def __eq__(self, other):
        if not _is_comparable(other):
            return NotImplemented
        return self._compare_with(other) == EQUAL

    def __ne__(self, other):
        if not _is_comparable(other):
            return NotImplemented
        return ~(self == other)

    def __lt__(self, other):
        if not _is_comparable(other):
            return NotImplemented
        return self._compare_with(other) == LESS

    def __le__(self, other):
        if not _is_comparable(other):
            return NotImplemented
        return _less_or_equal(self._compare_with(other))

    def __gt__(self, other):
        if not _is_comparable(other):
            return NotImplemented
        return self._compare_with(other) == GREATER

    def __ge__(self, other):
        if not _is_comparable(other):
            return NotImplemented
        return _greater_or_equal(self._compare_with(other))

    __hash__ = None
    # numpy arrays on the left defer to the reflected comparison
    __array_ufunc__ = None

    def min(self, other) -> "DoubleDouble":
        """The smaller of two values, skipping an invalid operand.

        If ``self`` is invalid, ``other`` is returned (even when it is invalid
        too); if only ``other`` is invalid, ``self`` is returned.
        """
        return dd_min(self, _to_dd(other))

    def max(self, other) -> "DoubleDouble":
        """The larger of two values, skipping an invalid operand.

        Same invalid-operand policy as ``min``.
        """
        return dd_max(self, _to_dd(other))

    def __neg__(self):
        return DoubleDouble(-self.hi, -self.lo)

    @jax.jit
    def __abs__(self):
        negative = jnp.signbit(self.hi)
        new_hi = jnp.where(negative, -self.hi, self.hi)
        new_lo = jnp.where(negative, -self.lo, self.lo)
        return DoubleDouble(new_hi, new_lo)

    def tree_flatten(self):
        """Implementation for JAX pytree."""
        children = (self.hi, self.lo)
        aux_data = None
        return (children, aux_data)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        """Implementation for JAX pytree."""
        # jax may hand back placeholders instead of arrays, skip validation
        obj = object.__new__(cls)
        obj.hi, obj.lo = children
        return obj


DoubleDouble.NAN = DoubleDouble(jnp.nan, jnp.nan)


def _format_nested(hi, lo) -> str:
    if isinstance(hi, list):
        return "[" + ", ".join(_format_nested(h, l) for h, l in zip(hi, lo)) + "]"
    return f"[{hi} ({lo:+})]"


def _is_comparable(other) -> bool:
    return isinstance(other, (DoubleDouble, numbers.Real, np.ndarray, jax.Array))


def _to_dd(x) -> DoubleDouble:
    if isinstance(x, DoubleDouble):
        return x
    if not isinstance(x, (numbers.Real, np.ndarray, jax.Array)):
        raise ValueError(f"Cannot interpret {type(x).__name__} as a DoubleDouble")
    return DoubleDouble(x)


def _less_or_equal(code: jnp.ndarray) -> jnp.ndarray:
    return (code == LESS) | (code == EQUAL)


def _greater_or_equal(code: jnp.ndarray) -> jnp.ndarray:
    return (code == GREATER) | (code == EQUAL)


def _compare_words(a: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    key_a = ordering_key(a)
    key_b = ordering_key(b)
    code = jnp.where(key_a < key_b, LESS, jnp.where(key_a > key_b, GREATER, EQUAL))
    return jnp.where(is_nan(a) | is_nan(b), UNORDERED, code).astype(jnp.int8)


def _lexicographic(hi_cmp: jnp.ndarray, lo_cmp: jnp.ndarray) -> jnp.ndarray:
    return jnp.where(hi_cmp == EQUAL, lo_cmp, hi_cmp)


@jax.jit
def dd_is_valid(x: DoubleDouble) -> jnp.ndarray:
    """True where both words are finite and satisfy ``no_overlap(hi, lo)``."""
    return jnp.isfinite(x.hi) & jnp.isfinite(x.lo) & no_overlap(x.hi, x.lo)


@jax.jit
def dd_compare(a: DoubleDouble, b: DoubleDouble) -> jnp.ndarray:
    """Elementwise lexicographic comparison of two DoubleDoubles.

    Args:
        a: Left operand.
        b: Right operand, broadcast against ``a``.

    Returns:
        jnp.ndarray: int8 codes, one of LESS, EQUAL, GREATER or UNORDERED. Any
        NaN word reached before the comparison is decided gives UNORDERED.
    """
    return _lexicographic(_compare_words(a.hi, b.hi), _compare_words(a.lo, b.lo))


@jax.jit
def dd_compare_scalar(x: DoubleDouble, s: jnp.ndarray) -> jnp.ndarray:
    """Compare a DoubleDouble (left) against plain float64 values (right).

    ``s`` is treated as the pair (s, 0.0). Codes as in ``dd_compare``.
    """
    s = jnp.asarray(s, dtype=jnp.float64)
    return _lexicographic(
        _compare_words(x.hi, s), _compare_words(x.lo, jnp.zeros_like(x.lo))
    )


@jax.jit
def scalar_compare_dd(s: jnp.ndarray, x: DoubleDouble) -> jnp.ndarray:
    """Compare plain float64 values (left) against a DoubleDouble (right).

    The mirror of ``dd_compare_scalar``: LESS means ``s`` is below ``x``.
    """
    s = jnp.asarray(s, dtype=jnp.float64)
    return _lexicographic(
        _compare_words(s, x.hi), _compare_words(jnp.zeros_like(x.lo), x.lo)
    )


@jax.jit
def dd_where(condition: jnp.ndarray, a: DoubleDouble, b: DoubleDouble) -> DoubleDouble:
    """Pick elements from ``a`` where ``condition`` holds, from ``b`` elsewhere."""
    return DoubleDouble(
        jnp.where(condition, a.hi, b.hi), jnp.where(condition, a.lo, b.lo)
    )


@jax.jit
def dd_min(a: DoubleDouble, b: DoubleDouble) -> DoubleDouble:
    """Elementwise minimum that discards invalid operands.

    Where ``a`` is invalid the result comes from ``b``, whatever ``b`` holds.
    Where only ``b`` is invalid it comes from ``a``. Otherwise ``a`` is kept
    when ``a <= b``.
    """
    keep_a = dd_is_valid(a) & (~dd_is_valid(b) | _less_or_equal(dd_compare(a, b)))
    return dd_where(keep_a, a, b)


@jax.jit
def dd_max(a: DoubleDouble, b: DoubleDouble) -> DoubleDouble:
    """Elementwise maximum that discards invalid operands, see ``dd_min``."""
    keep_a = dd_is_valid(a) & (~dd_is_valid(b) | _greater_or_equal(dd_compare(a, b)))
    return dd_where(keep_a, a, b)


def _extreme(x: DoubleDouble, axis: Optional[int], largest: bool) -> DoubleDouble:
    hi, lo = x.hi, x.lo
    if axis is None:
        hi, lo = hi.ravel(), lo.ravel()
        axis = 0
    valid = dd_is_valid(DoubleDouble(hi, lo))
    sign = 1 if largest else -1
    floor = jnp.int64(_KEY_FLOOR)

    hi_key = jnp.where(valid, sign * ordering_key(hi), floor)
    top = jnp.max(hi_key, axis=axis, keepdims=True)
    lo_key = jnp.where(valid & (hi_key == top), sign * ordering_key(lo), floor)
    idx = jnp.argmax(lo_key, axis=axis, keepdims=True)

    best_hi = jnp.squeeze(jnp.take_along_axis(hi, idx, axis=axis), axis=axis)
    best_lo = jnp.squeeze(jnp.take_along_axis(lo, idx, axis=axis), axis=axis)
    found = jnp.any(valid, axis=axis)
    return DoubleDouble(
        jnp.where(found, best_hi, jnp.nan), jnp.where(found, best_lo, jnp.nan)
    )


@partial(jax.jit, static_argnums=(1,))
def dd_amax(x: DoubleDouble, axis: Optional[int] = None) -> DoubleDouble:
    """Largest valid element along ``axis`` (all elements if None).

    Invalid elements are skipped; ties go to the first occurrence. A slice with
    no valid element reduces to the NaN sentinel.
    """
    return _extreme(x, axis, largest=True)


@partial(jax.jit, static_argnums=(1,))
def dd_amin(x: DoubleDouble, axis: Optional[int] = None) -> DoubleDouble:
    """Smallest valid element along ``axis``, see ``dd_amax``."""
    return _extreme(x, axis, largest=False)
