# aad/ops/__init__.py

# Convenience re-exports so users can do: from energy_ad.aad.ops import mul, exp, ...
from .arithmetic import (
    const, make_input,
    add, sub, mul, div, neg, pow, squared, inverse, absval,
    maximum, minimum, atan2,
    gt, lt, eq, and_, or_,
)
from .transcendental import (
    sqrt, cbrt, exp, expm1, ln, log2, log10, log1p,
    sin, cos, tan, asin, acos, atan,
    sinh, cosh, tanh, asinh, acosh, atanh,
)
from .special import ceil, floor, round, sign, trunc, if_cond, add_n, max_n, min_n, debug

__all__ = [
    "const", "make_input",
    "add", "sub", "mul", "div", "neg", "pow", "squared", "inverse", "absval",
    "maximum", "minimum", "atan2",
    "gt", "lt", "eq", "and_", "or_",
    "sqrt", "cbrt", "exp", "expm1", "ln", "log2", "log10", "log1p",
    "sin", "cos", "tan", "asin", "acos", "atan",
    "sinh", "cosh", "tanh", "asinh", "acosh", "atanh",
    "ceil", "floor", "round", "sign", "trunc",
    "if_cond", "add_n", "max_n", "min_n", "debug",
]
