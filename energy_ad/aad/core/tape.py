# aad/core/tape.py
from __future__ import annotations

import logging
import numbers
from contextlib import contextmanager
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

from .node import Const, GraphInvariantError, Input, Node, Op, check_node

logger = logging.getLogger(__name__)


def _const_key(value: float) -> Tuple[str, str]:
    # float.hex keeps 0.0 and -0.0 apart and maps every NaN to the same key
    return ("const", float(value).hex())


class Tape:
    """
    Arena of graph nodes addressed by integer index.

    Nodes are appended in creation order; every child index is smaller than
    its parent's, so the arena is a DAG by construction. Appending goes
    through a dedup table keyed by the constant value (constants) or by
    (op, children) (operators), so asking twice for the same node returns the
    same index.
    """

    def __init__(self):
        self.nodes: List[Node] = []
        self._dedup: Dict[Hashable, int] = {}
        self._inputs: Dict[int, int] = {}   # input index -> arena index

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def num_inputs(self) -> int:
        """One past the largest declared input index."""
        return max(self._inputs) + 1 if self._inputs else 0

    def const(self, value: float) -> int:
        key = _const_key(value)
        idx = self._dedup.get(key)
        if idx is None:
            idx = self._append(Node(Const(float(value))))
            self._dedup[key] = idx
        return idx

    def input(self, index: Optional[int] = None, val: float = 0.0) -> int:
        """
        Declare (or look up) the input with the given index.

        With `index=None` the next free index is used, which keeps indices
        dense from 0. Redeclaring an index with another sample value is a bug.
        """
        if index is None:
            index = self.num_inputs
        if isinstance(index, bool) or not isinstance(index, numbers.Integral):
            raise GraphInvariantError(f"input index must be an integer, got {index!r}")
        op = Input(int(index), float(val))
        check_node(op, 0)
        idx = self._inputs.get(op.index)
        if idx is not None:
            existing = self.nodes[idx].op
            if _const_key(existing.val) != _const_key(op.val):
                raise GraphInvariantError(
                    f"input {op.index} already declared with val={existing.val}, got val={op.val}"
                )
            return idx
        idx = self._append(Node(op))
        self._inputs[op.index] = idx
        return idx

    def push_node(self, *, op: Op, children: Sequence[int]) -> int:
        """
        Append (or find) an operator node and return its arena index.
        `children` are arena indices ordered by the operand roles of `op`.
        """
        children = tuple(int(c) for c in children)
        check_node(op, len(children))
        if isinstance(op, (Const, Input)):
            raise GraphInvariantError("terminal nodes must be created with const()/input()")
        for c in children:
            if not 0 <= c < len(self.nodes):
                raise GraphInvariantError(f"operand index {c} is not on this tape")
        key = (op, children)
        idx = self._dedup.get(key)
        if idx is None:
            idx = self._append(Node(op, children))
            self._dedup[key] = idx
        return idx

    def _append(self, node: Node) -> int:
        self.nodes.append(node)
        idx = len(self.nodes) - 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("tape %#x: node %d = %r <- %s", id(self), idx, node.op, list(node.children))
        return idx


# Global singleton tape (simple and practical; swap with use_tape())
global_tape = Tape()


@contextmanager
def use_tape(tape: Optional[Tape] = None):
    """
    Context manager to temporarily use a fresh tape:
        with use_tape() as t:
            ... build the energy ...
            g = primary_graph(energy)
    """
    from . import tape as _tape_mod  # local import to rebind the module global
    prev = _tape_mod.global_tape
    try:
        _tape_mod.global_tape = tape if tape is not None else Tape()
        yield _tape_mod.global_tape
    finally:
        _tape_mod.global_tape = prev
