# aad/core/var.py
from __future__ import annotations

from typing import Optional

from .node import Const, Input, Node, Op


class ADVar:
    """
    Opaque handle to one node of a tape.

    Attributes
    ----------
    tape : Tape
        The arena that owns the node.
    index : int
        Arena index of the node on `tape`.

    Two handles are equal when they point at the same node of the same tape.
    Python operators (+, -, *, /, **, unary -, abs) build new graph nodes;
    comparisons and logic have named constructors instead (`lt`, `gt`, `eq`,
    `and_`, `or_`) so that `==` keeps its usual meaning for handles.
    """

    __slots__ = ("tape", "index")

    def __init__(self, tape, index: int):
        self.tape = tape
        self.index = int(index)

    @property
    def node(self) -> Node:
        return self.tape.nodes[self.index]

    @property
    def op(self) -> Op:
        return self.node.op

    @property
    def is_const(self) -> bool:
        return isinstance(self.op, Const)

    @property
    def val(self) -> Optional[float]:
        """Value of a constant, sample value of an input, None for operators."""
        op = self.op
        if isinstance(op, Const):
            return op.value
        if isinstance(op, Input):
            return op.val
        return None

    def __eq__(self, other):
        return isinstance(other, ADVar) and other.tape is self.tape and other.index == self.index

    def __hash__(self):
        return hash((id(self.tape), self.index))

    def __repr__(self):
        return f"ADVar({self.index}, {self.op!r})"

    # Operator overloading (ops import us, so import lazily)
    def __add__(self, other):
        from ..ops.arithmetic import add
        return add(self, other)

    def __radd__(self, other):
        from ..ops.arithmetic import add
        return add(other, self)

    def __sub__(self, other):
        from ..ops.arithmetic import sub
        return sub(self, other)

    def __rsub__(self, other):
        from ..ops.arithmetic import sub
        return sub(other, self)

    def __mul__(self, other):
        from ..ops.arithmetic import mul
        return mul(self, other)

    def __rmul__(self, other):
        from ..ops.arithmetic import mul
        return mul(other, self)

    def __truediv__(self, other):
        from ..ops.arithmetic import div
        return div(self, other)

    def __rtruediv__(self, other):
        from ..ops.arithmetic import div
        return div(other, self)

    def __neg__(self):
        from ..ops.arithmetic import neg
        return neg(self)

    def __abs__(self):
        from ..ops.arithmetic import absval
        return absval(self)

    def __pow__(self, other):
        from ..ops.arithmetic import pow
        return pow(self, other)

    def __rpow__(self, other):
        from ..ops.arithmetic import pow
        return pow(other, self)
