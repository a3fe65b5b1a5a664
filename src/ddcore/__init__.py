import jax

jax.config.update("jax_enable_x64", True)

from ddcore.utils.bits import FpCategory, classify, exponent
from ddcore.overlap import no_overlap
from ddcore.doubledouble import (
    EQUAL,
    GREATER,
    LESS,
    UNORDERED,
    DoubleDouble,
    Ordering,
    dd_amax,
    dd_amin,
    dd_compare,
    dd_compare_scalar,
    dd_is_valid,
    dd_max,
    dd_min,
    dd_where,
    scalar_compare_dd,
)
from ddcore.eft import dd_from_product, dd_from_sum, fast_two_sum, two_prod, two_sum

__all__ = [
    "DoubleDouble",
    "FpCategory",
    "Ordering",
    "LESS",
    "EQUAL",
    "GREATER",
    "UNORDERED",
    "classify",
    "exponent",
    "no_overlap",
    "dd_is_valid",
    "dd_compare",
    "dd_compare_scalar",
    "scalar_compare_dd",
    "dd_where",
    "dd_min",
    "dd_max",
    "dd_amin",
    "dd_amax",
    "two_sum",
    "fast_two_sum",
    "two_prod",
    "dd_from_sum",
    "dd_from_product",
]

__version__ = "0.1.0"
