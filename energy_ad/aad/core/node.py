# aad/core/node.py
"""
Node model of the computation graph.

A node on the tape is a pair (op, children):

    op       : one of the closed set of literals below (Const, Input, Unary,
               Binary, Ternary, Nary, Debug). The literal carries everything
               that identifies the operation except its operands.
    children : tuple of arena indices of the operands, in role order.

Roles ("edges") name the slot an operand fills in its parent:
    Unary / Debug : None
    Binary        : "left", "right"
    Ternary       : "cond", "then", "els"
    Nary          : "0", "1", ..., "k-1"
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

UNARY_OPS = (
    "neg", "squared", "sqrt", "inverse", "abs",
    "acos", "acosh", "asin", "asinh", "atan", "atanh",
    "cbrt", "ceil", "cos", "cosh", "exp", "expm1", "floor",
    "ln", "log2", "log10", "log1p", "round", "sign",
    "sin", "sinh", "tan", "tanh", "trunc",
)
BINARY_OPS = ("+", "-", "*", "/", "max", "min", "atan2", "pow", ">", "<", "==", "and", "or")
NARY_OPS = ("addN", "maxN", "minN")

BINARY_ROLES = ("left", "right")
TERNARY_ROLES = ("cond", "then", "els")

Role = Optional[str]


class GraphInvariantError(RuntimeError):
    """Raised when a graph invariant is broken (arity, cycle, unknown id, ...).

    This signals a bug in the caller or a corrupted interchange document and is
    never meant to be caught and retried.
    """


@dataclass(frozen=True)
class Const:
    value: float


@dataclass(frozen=True)
class Input:
    index: int
    val: float = 0.0   # sample value; only used when the caller omits this index


@dataclass(frozen=True)
class Unary:
    unop: str


@dataclass(frozen=True)
class Binary:
    binop: str


@dataclass(frozen=True)
class Ternary:
    pass


@dataclass(frozen=True)
class Nary:
    op: str


@dataclass(frozen=True)
class Debug:
    info: str


Op = Union[Const, Input, Unary, Binary, Ternary, Nary, Debug]


@dataclass(frozen=True)
class Node:
    """
    One arena entry.

    Attributes
    ----------
    op : Op
        The node literal.
    children : Tuple[int, ...]
        Arena indices of the operands, ordered as `roles(op, len(children))`.
    """
    op: Op
    children: Tuple[int, ...] = ()


def roles(op: Op, n_children: int) -> Tuple[Role, ...]:
    """Return the edge role of each operand slot of `op`."""
    if isinstance(op, (Const, Input)):
        return ()
    if isinstance(op, (Unary, Debug)):
        return (None,)
    if isinstance(op, Binary):
        return BINARY_ROLES
    if isinstance(op, Ternary):
        return TERNARY_ROLES
    if isinstance(op, Nary):
        return tuple(str(i) for i in range(n_children))
    raise GraphInvariantError(f"unknown node literal {op!r}")


def check_node(op: Op, n_children: int) -> None:
    """
    Validate the operator name and operand count of a node.

    Raises GraphInvariantError on an unknown operator or a wrong arity.
    """
    if isinstance(op, (Const, Input)):
        expected = 0
        if isinstance(op, Input) and op.index < 0:
            raise GraphInvariantError(f"input index must be non-negative, got {op.index}")
    elif isinstance(op, Unary):
        if op.unop not in UNARY_OPS:
            raise GraphInvariantError(f"unknown unary operator {op.unop!r}")
        expected = 1
    elif isinstance(op, Debug):
        expected = 1
    elif isinstance(op, Binary):
        if op.binop not in BINARY_OPS:
            raise GraphInvariantError(f"unknown binary operator {op.binop!r}")
        expected = 2
    elif isinstance(op, Ternary):
        expected = 3
    elif isinstance(op, Nary):
        if op.op not in NARY_OPS:
            raise GraphInvariantError(f"unknown n-ary operator {op.op!r}")
        return
    else:
        raise GraphInvariantError(f"unknown node literal {op!r}")
    if n_children != expected:
        raise GraphInvariantError(
            f"{type(op).__name__} node {op!r} expects {expected} operand(s), got {n_children}"
        )


def order_by_roles(op: Op, named: dict) -> Tuple:
    """
    Arrange a {role: child} mapping into the positional order of `op`.

    Used when a node is rebuilt from its edge list (interchange, codegen).
    """
    if isinstance(op, Nary):
        n = len(named)
        wanted = tuple(str(i) for i in range(n))
    else:
        wanted = roles(op, len(named))
    missing = [r for r in wanted if r not in named]
    if missing or len(named) != len(wanted):
        raise GraphInvariantError(
            f"{type(op).__name__} node {op!r} has operand roles {sorted(map(str, named))}, "
            f"expected {list(map(str, wanted))}"
        )
    return tuple(named[r] for r in wanted)
