# aad/core/engine.py
"""
Code generation: turn an ExtractedGraph into an Evaluator.

The evaluator is "generated code as data": a flat program with one
instruction per node in topological order. A call runs

  1) a forward sweep over the program, computing every node's value;
  2) a reverse sweep over the nodes that feed the primary output, seeding
     ∂primary/∂primary = 1 and accumulating  adj[child] += adj[node] * ∂node/∂child;
  3) the gradient is read off the Input nodes' adjoints.

Values and adjoints live in lists local to the call, so an Evaluator holds no
per-call state and can be called repeatedly (or from several threads).
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import EngineConfig, get_engine_config
from .extract import ExtractedGraph
from .node import Binary, Const, Debug, GraphInvariantError, Input, Nary, Ternary, Unary
from .primitives import BINARY, NARY, UNARY, ternary, ternary_partials

logger = logging.getLogger(__name__)

# instruction kinds
_CONST, _INPUT, _UNARY, _BINARY, _TERNARY, _NARY, _DEBUG = range(7)


@dataclass(frozen=True)
class Outputs:
    """
    Result of one evaluator call.

    Attributes
    ----------
    primary : Optional[float]
        Value of the primary output (None for graphs without one).
    gradient : np.ndarray
        ∂primary/∂x_i for every input position i; 0 where x_i does not feed the primary.
    secondary : np.ndarray
        Values of the secondary outputs, in extraction order.
    """
    primary: Optional[float]
    gradient: np.ndarray
    secondary: np.ndarray


def _instruction(op, children: Tuple[int, ...]):
    if isinstance(op, Const):
        return (_CONST, np.float64(op.value), children)
    if isinstance(op, Input):
        return (_INPUT, (op.index, np.float64(op.val)), children)
    if isinstance(op, Unary):
        return (_UNARY, UNARY[op.unop], children)
    if isinstance(op, Binary):
        return (_BINARY, BINARY[op.binop], children)
    if isinstance(op, Ternary):
        return (_TERNARY, None, children)
    if isinstance(op, Nary):
        return (_NARY, NARY[op.op], children)
    if isinstance(op, Debug):
        return (_DEBUG, op.info, children)
    raise GraphInvariantError(f"cannot generate code for {op!r}")


class Evaluator:
    """
    Compiled form of an ExtractedGraph.

    Call it with the input vector (positioned by Input index). Positions
    beyond the end of the vector fall back to the Input's sample value.
    """

    def __init__(self, graph: ExtractedGraph, config: Optional[EngineConfig] = None):
        self.graph = graph
        self._config = copy.deepcopy(config) if config is not None else get_engine_config()

        slot = {nid: i for i, nid in enumerate(graph.order)}
        operands = graph.operands()
        self._program = [
            _instruction(graph.nodes[nid], tuple(slot[c] for c in operands[nid]))
            for nid in graph.order
        ]
        self._ids = graph.order
        self._primary = slot[graph.primary] if graph.primary is not None else None
        self._secondary = [slot[s] for s in graph.secondary]
        self._num_inputs = graph.num_inputs
        self._backward = self._gradient_path()

        logger.debug(
            "compiled evaluator: %d instructions, %d on the gradient path, %d secondary",
            len(self._program), len(self._backward), len(self._secondary),
        )

    def _gradient_path(self) -> List[int]:
        """Slots reachable backwards from the primary, in reverse topological order."""
        if self._primary is None:
            return []
        live = [False] * len(self._program)
        live[self._primary] = True
        # children always sit at smaller slots, so one downward sweep suffices
        for i in range(self._primary, -1, -1):
            if live[i]:
                for c in self._program[i][2]:
                    live[c] = True
        return [i for i in range(len(self._program) - 1, -1, -1) if live[i]]

    def __call__(self, xs: Sequence[float] = ()) -> Outputs:
        xs = np.asarray(xs, dtype=np.float64).ravel()
        n_xs = len(xs)
        vals = self._forward(xs, n_xs)

        gradient = np.zeros(max(self._num_inputs, n_xs), dtype=np.float64)
        primary = None
        if self._primary is not None:
            primary = float(vals[self._primary])
            self._reverse(vals, gradient)
            if self._config.warn_non_finite and not np.isfinite(primary):
                logger.warning("primary output is not finite: %r", primary)

        secondary = np.array([vals[s] for s in self._secondary], dtype=np.float64)
        return Outputs(primary=primary, gradient=gradient, secondary=secondary)

    def node_values(self, xs: Sequence[float] = ()) -> Dict[str, float]:
        """Forward pass only: the value of every node, keyed by node id."""
        xs = np.asarray(xs, dtype=np.float64).ravel()
        vals = self._forward(xs, len(xs))
        return {nid: float(v) for nid, v in zip(self._ids, vals)}

    def _forward(self, xs: np.ndarray, n_xs: int) -> list:
        vals = [None] * len(self._program)
        log_debug = self._config.log_debug_nodes and logger.isEnabledFor(logging.DEBUG)
        with np.errstate(all="ignore"):
            for i, (kind, arg, ch) in enumerate(self._program):
                if kind == _CONST:
                    v = arg
                elif kind == _INPUT:
                    index, default = arg
                    v = xs[index] if index < n_xs else default
                elif kind == _UNARY:
                    v = arg[0](vals[ch[0]])
                elif kind == _BINARY:
                    v = arg[0](vals[ch[0]], vals[ch[1]])
                elif kind == _TERNARY:
                    v = ternary(vals[ch[0]], vals[ch[1]], vals[ch[2]])
                elif kind == _NARY:
                    v = arg[0]([vals[c] for c in ch])
                else:  # _DEBUG
                    v = vals[ch[0]]
                    if log_debug:
                        logger.debug("debug node %s (%s): %r", self._ids[i], arg, float(v))
                vals[i] = np.float64(v)
        return vals

    def _reverse(self, vals: list, gradient: np.ndarray) -> None:
        adj = [np.float64(0.0)] * len(self._program)
        adj[self._primary] = np.float64(1.0)
        skip_zero = self._config.skip_zero_adjoints
        with np.errstate(all="ignore"):
            for i in self._backward:
                a = adj[i]
                if skip_zero and a == 0.0:
                    continue  # nothing to propagate
                kind, arg, ch = self._program[i]
                if kind == _CONST:
                    continue
                if kind == _INPUT:
                    gradient[arg[0]] += a
                elif kind == _UNARY:
                    c = ch[0]
                    adj[c] = adj[c] + a * arg[1](vals[c], vals[i])
                elif kind == _BINARY:
                    l, r = ch
                    dl, dr = arg[1](vals[l], vals[r], vals[i])
                    adj[l] = adj[l] + a * dl
                    adj[r] = adj[r] + a * dr
                elif kind == _TERNARY:
                    partials = ternary_partials(vals[ch[0]], vals[ch[1]], vals[ch[2]], vals[i])
                    for c, d in zip(ch, partials):
                        adj[c] = adj[c] + a * d
                elif kind == _NARY:
                    partials = arg[1]([vals[c] for c in ch], vals[i])
                    for c, d in zip(ch, partials):
                        adj[c] = adj[c] + a * d
                else:  # _DEBUG
                    adj[ch[0]] = adj[ch[0]] + a


def gen_code(graph: ExtractedGraph, config: Optional[EngineConfig] = None) -> Evaluator:
    """
    Compile `graph` into an Evaluator.

    The engine config is snapshotted here; later `set_engine_config` calls do
    not affect evaluators that already exist.
    """
    return Evaluator(graph, config)
