# aad/core/primitives.py
"""
Forward rules and local partials for every operator.

These tables are the single source of numeric semantics: the builder uses
the forward rules for constant folding and the code generator uses both the
forward rules and the local partials, so a folded constant and a compiled
evaluator always agree.

All rules take numpy float64 scalars and must be called under
`np.errstate(all="ignore")`; domain errors give NaN/Inf, never exceptions.

    UNARY[op]  = (f(x),        df(x, y) -> ∂y/∂x)
    BINARY[op] = (f(a, b),     df(a, b, y) -> (∂y/∂a, ∂y/∂b))
    NARY[op]   = (f(values),   df(values, y) -> [∂y/∂v_i])
"""
from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np

from .config import EPS_DENOM

LN2 = np.log(2.0)
LN10 = np.log(10.0)


def truthy(x) -> bool:
    """Truthiness of a numeric condition: non-zero and not NaN."""
    return bool(x != 0) and not bool(np.isnan(x))


def _inv(x):
    return 1.0 / (x + EPS_DENOM)


UNARY: Dict[str, Tuple[Callable, Callable]] = {
    "neg":     (lambda x: -x,                 lambda x, y: -1.0),
    "squared": (lambda x: x * x,              lambda x, y: 2.0 * x),
    "sqrt":    (np.sqrt,                      lambda x, y: 0.5 / y),
    # inverse(x) = 1/(x+eps); the derivative is of the guarded expression
    "inverse": (_inv,                         lambda x, y: -(y * y)),
    "abs":     (np.abs,                       lambda x, y: np.sign(x)),
    "acos":    (np.arccos,                    lambda x, y: -1.0 / np.sqrt(1.0 - x * x)),
    "acosh":   (np.arccosh,                   lambda x, y: 1.0 / np.sqrt(x * x - 1.0)),
    "asin":    (np.arcsin,                    lambda x, y: 1.0 / np.sqrt(1.0 - x * x)),
    "asinh":   (np.arcsinh,                   lambda x, y: 1.0 / np.sqrt(x * x + 1.0)),
    "atan":    (np.arctan,                    lambda x, y: 1.0 / (1.0 + x * x)),
    "atanh":   (np.arctanh,                   lambda x, y: 1.0 / (1.0 - x * x)),
    "cbrt":    (np.cbrt,                      lambda x, y: 1.0 / (3.0 * y * y)),
    "ceil":    (np.ceil,                      lambda x, y: 0.0),
    "cos":     (np.cos,                       lambda x, y: -np.sin(x)),
    "cosh":    (np.cosh,                      lambda x, y: np.sinh(x)),
    "exp":     (np.exp,                       lambda x, y: y),
    "expm1":   (np.expm1,                     lambda x, y: np.exp(x)),
    "floor":   (np.floor,                     lambda x, y: 0.0),
    "ln":      (np.log,                       lambda x, y: 1.0 / x),
    "log2":    (np.log2,                      lambda x, y: 1.0 / (x * LN2)),
    "log10":   (np.log10,                     lambda x, y: 1.0 / (x * LN10)),
    "log1p":   (np.log1p,                     lambda x, y: 1.0 / (1.0 + x)),
    # halves round towards +inf
    "round":   (lambda x: np.floor(x + 0.5),  lambda x, y: 0.0),
    "sign":    (np.sign,                      lambda x, y: 0.0),
    "sin":     (np.sin,                       lambda x, y: np.cos(x)),
    "sinh":    (np.sinh,                      lambda x, y: np.cosh(x)),
    "tan":     (np.tan,                       lambda x, y: 1.0 / (np.cos(x) ** 2)),
    "tanh":    (np.tanh,                      lambda x, y: 1.0 - y * y),
    "trunc":   (np.trunc,                     lambda x, y: 0.0),
}


def _pow_partials(a, b, y):
    da = b * np.power(a, b - 1.0)
    # ∂/∂b = a^b * ln(a) is only defined for a > 0
    db = y * np.log(a) if a > 0 else 0.0
    return da, db


def _atan2_partials(a, b, y):
    r2 = a * a + b * b
    return b / r2, -a / r2


def _div_partials(a, b, y):
    d = b + EPS_DENOM
    return 1.0 / d, -a / (d * d)


BINARY: Dict[str, Tuple[Callable, Callable]] = {
    "+":     (lambda a, b: a + b,                      lambda a, b, y: (1.0, 1.0)),
    "-":     (lambda a, b: a - b,                      lambda a, b, y: (1.0, -1.0)),
    "*":     (lambda a, b: a * b,                      lambda a, b, y: (b, a)),
    "/":     (lambda a, b: a / (b + EPS_DENOM),        _div_partials),
    # subgradients: all flow to the attaining operand, ties go left
    "max":   (np.maximum,                              lambda a, b, y: (1.0, 0.0) if a >= b else (0.0, 1.0)),
    "min":   (np.minimum,                              lambda a, b, y: (1.0, 0.0) if a <= b else (0.0, 1.0)),
    "atan2": (np.arctan2,                              _atan2_partials),
    "pow":   (np.power,                                _pow_partials),
    ">":     (lambda a, b: np.float64(a > b),          lambda a, b, y: (0.0, 0.0)),
    "<":     (lambda a, b: np.float64(a < b),          lambda a, b, y: (0.0, 0.0)),
    "==":    (lambda a, b: np.float64(a == b),         lambda a, b, y: (0.0, 0.0)),
    "and":   (lambda a, b: np.float64(truthy(a) and truthy(b)), lambda a, b, y: (0.0, 0.0)),
    "or":    (lambda a, b: np.float64(truthy(a) or truthy(b)),  lambda a, b, y: (0.0, 0.0)),
}


def _add_n(values: Sequence) -> np.float64:
    if not values:
        return np.float64(0.0)
    total = np.float64(values[0])
    for v in values[1:]:
        total = total + v
    return total


def _reduce(values: Sequence, pick, empty: float) -> np.float64:
    if not values:
        return np.float64(empty)
    best = np.float64(values[0])
    for v in values[1:]:
        best = pick(best, v)
    return best


def _route_first(values: Sequence, y) -> List[float]:
    # the first operand equal to the result takes the whole gradient
    out = [0.0] * len(values)
    for i, v in enumerate(values):
        if v == y:
            out[i] = 1.0
            break
    return out


NARY: Dict[str, Tuple[Callable, Callable]] = {
    "addN": (_add_n,                                         lambda vs, y: [1.0] * len(vs)),
    "maxN": (lambda vs: _reduce(vs, np.maximum, -np.inf),    _route_first),
    "minN": (lambda vs: _reduce(vs, np.minimum, np.inf),     _route_first),
}


def ternary(cond, then, els):
    return then if truthy(cond) else els


def ternary_partials(cond, then, els, y) -> Tuple[float, float, float]:
    return (0.0, 1.0, 0.0) if truthy(cond) else (0.0, 0.0, 1.0)
