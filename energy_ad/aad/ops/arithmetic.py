# aad/ops/arithmetic.py
import numbers
from typing import Optional

import numpy as np

from ..core import tape as tape_mod  # module access keeps use_tape() working
from ..core.node import Binary, GraphInvariantError, Unary
from ..core.primitives import BINARY, UNARY
from ..core.var import ADVar


def _tape_of(*xs):
    """The tape shared by all handles in `xs`, or the active tape if there are none."""
    tape = None
    for x in xs:
        if isinstance(x, ADVar):
            if tape is None:
                tape = x.tape
            elif x.tape is not tape:
                raise GraphInvariantError("operands belong to different tapes")
    return tape if tape is not None else tape_mod.global_tape


def _as_ad(x, tape) -> ADVar:
    """Ensure x is an ADVar; otherwise wrap it as a constant on `tape`."""
    if isinstance(x, ADVar):
        return x
    if isinstance(x, (numbers.Real, np.floating, np.integer)):
        return ADVar(tape, tape.const(float(x)))
    raise TypeError(f"expected ADVar or real number, got {type(x)}")


def _fold(f, *values) -> float:
    with np.errstate(all="ignore"):
        return float(f(*[np.float64(v) for v in values]))


def _unary(x, unop: str) -> ADVar:
    """
    Generic unary constructor:
      - constant operand -> fold to a constant
      - otherwise        -> (deduplicated) Unary node
    """
    if unop not in UNARY:
        raise GraphInvariantError(f"unknown unary operator {unop!r}")
    tape = _tape_of(x)
    x = _as_ad(x, tape)
    if x.is_const:
        return ADVar(tape, tape.const(_fold(UNARY[unop][0], x.val)))
    return ADVar(tape, tape.push_node(op=Unary(unop), children=[x.index]))


def _binary(x, y, binop: str) -> ADVar:
    """Generic binary constructor; folds when both operands are constants."""
    if binop not in BINARY:
        raise GraphInvariantError(f"unknown binary operator {binop!r}")
    tape = _tape_of(x, y)
    x = _as_ad(x, tape)
    y = _as_ad(y, tape)
    if x.is_const and y.is_const:
        return ADVar(tape, tape.const(_fold(BINARY[binop][0], x.val, y.val)))
    return ADVar(tape, tape.push_node(op=Binary(binop), children=[x.index, y.index]))


# ----------------------------- terminals ----------------------------- #
def const(value) -> ADVar:
    """A constant on the active tape (equal values share one node)."""
    tape = tape_mod.global_tape
    return ADVar(tape, tape.const(float(value)))


def make_input(index: Optional[int] = None, val: float = 0.0) -> ADVar:
    """
    An input on the active tape.

    `index` is the position in the optimizer's variable vector; when omitted
    the next free index is taken. `val` is a sample value used when an
    evaluator is called without this position.
    """
    tape = tape_mod.global_tape
    return ADVar(tape, tape.input(index, val))


# ----------------------------- arithmetic ----------------------------- #
def add(x, y): return _binary(x, y, "+")
def sub(x, y): return _binary(x, y, "-")
def mul(x, y): return _binary(x, y, "*")


def div(x, y):
    """x / (y + EPS_DENOM); finite even when y is exactly 0."""
    return _binary(x, y, "/")


def pow(x, y):
    """
    x ** y.

    Local partials:
      ∂out/∂x = y * x^(y-1)
      ∂out/∂y = x^y * log(x)   (0 where x <= 0)
    """
    return _binary(x, y, "pow")


def maximum(x, y):
    """max(x, y); the gradient goes to the larger operand, ties to x."""
    return _binary(x, y, "max")


def minimum(x, y):
    """min(x, y); the gradient goes to the smaller operand, ties to x."""
    return _binary(x, y, "min")


def atan2(y, x): return _binary(y, x, "atan2")


def neg(x): return _unary(x, "neg")
def squared(x): return _unary(x, "squared")


def inverse(x):
    """1 / (x + EPS_DENOM)."""
    return _unary(x, "inverse")


def absval(x): return _unary(x, "abs")


# --------------------- comparisons and logic (zero gradient) --------------------- #
def gt(x, y): return _binary(x, y, ">")
def lt(x, y): return _binary(x, y, "<")
def eq(x, y): return _binary(x, y, "==")
def and_(x, y): return _binary(x, y, "and")
def or_(x, y): return _binary(x, y, "or")
