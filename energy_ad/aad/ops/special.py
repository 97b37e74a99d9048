# aad/ops/special.py
"""
Non-smooth and structural primitives: rounding, conditionals, n-ary
reductions and debug labels.
"""
from typing import Sequence

import numpy as np

from ..core.node import Debug, GraphInvariantError, Nary, Ternary
from ..core.primitives import NARY, ternary
from ..core.var import ADVar
from .arithmetic import _as_ad, _fold, _tape_of, _unary

# Piecewise constant: gradient 0 everywhere it is defined.
def ceil(x): return _unary(x, "ceil")
def floor(x): return _unary(x, "floor")
def round(x): return _unary(x, "round")
def sign(x): return _unary(x, "sign")
def trunc(x): return _unary(x, "trunc")


def if_cond(cond, then, els) -> ADVar:
    """
    `then` if `cond` is truthy (non-zero, not NaN) else `els`.

    The gradient flows into the selected branch only; `cond` gets none.
    """
    tape = _tape_of(cond, then, els)
    cond, then, els = (_as_ad(v, tape) for v in (cond, then, els))
    if cond.is_const and then.is_const and els.is_const:
        return ADVar(tape, tape.const(_fold(ternary, cond.val, then.val, els.val)))
    return ADVar(tape, tape.push_node(op=Ternary(), children=[cond.index, then.index, els.index]))


def _nary(xs: Sequence, op: str) -> ADVar:
    if op not in NARY:
        raise GraphInvariantError(f"unknown n-ary operator {op!r}")
    xs = list(xs)
    tape = _tape_of(*xs)
    xs = [_as_ad(x, tape) for x in xs]
    if all(x.is_const for x in xs):
        with np.errstate(all="ignore"):
            value = float(NARY[op][0]([np.float64(x.val) for x in xs]))
        return ADVar(tape, tape.const(value))
    return ADVar(tape, tape.push_node(op=Nary(op), children=[x.index for x in xs]))


def add_n(xs: Sequence) -> ADVar:
    """
    Sum of many terms as one node (instead of a deep chain of "+").
    Evaluates as a left fold; the empty sum is 0.
    """
    return _nary(xs, "addN")


def max_n(xs: Sequence) -> ADVar:
    """Maximum of many terms; the first maximal term takes the gradient. Empty -> -inf."""
    return _nary(xs, "maxN")


def min_n(xs: Sequence) -> ADVar:
    """Minimum of many terms; the first minimal term takes the gradient. Empty -> +inf."""
    return _nary(xs, "minN")


def debug(x, info: str = "") -> ADVar:
    """Identity node carrying a label; its value is logged during evaluation."""
    tape = _tape_of(x)
    x = _as_ad(x, tape)
    if x.is_const:
        return x
    return ADVar(tape, tape.push_node(op=Debug(str(info)), children=[x.index]))
