# aad/core/extract.py
"""
Extraction of the live subgraph for a set of outputs.

Given a primary output (the differentiated energy) and zero or more secondary
outputs, walk the operand edges breadth-first from the roots, name every
reachable node `_0, _1, ...` in encounter order and freeze the result together
with a topological order. The same outputs always give the same graph, which
makes evaluators and gradient layouts reproducible.
"""
from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .node import Const, GraphInvariantError, Input, Op, Role, check_node, order_by_roles, roles
from .var import ADVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphEdge:
    """Operand edge: `source` fills slot `role` of `target`."""
    source: str
    target: str
    role: Role = None


@dataclass(frozen=True)
class ExtractedGraph:
    """
    Immutable, self-contained view of a computation graph.

    Attributes
    ----------
    nodes : Mapping[str, Op]
        Node literals keyed by id, in encounter order.
    edges : Tuple[GraphEdge, ...]
        Operand edges in encounter order.
    order : Tuple[str, ...]
        Topological order (operands before the nodes using them).
    primary : Optional[str]
        Id of the differentiated output, if any.
    secondary : Tuple[str, ...]
        Ids of the non-differentiated outputs, in request order.
    num_inputs : int
        Length of the input vector the graph was built against.
    """
    nodes: Mapping[str, Op]
    edges: Tuple[GraphEdge, ...]
    order: Tuple[str, ...]
    primary: Optional[str]
    secondary: Tuple[str, ...]
    num_inputs: int

    def operands(self) -> Dict[str, Tuple[str, ...]]:
        """Operand ids of every node, ordered by role."""
        named: Dict[str, Dict[Role, str]] = defaultdict(dict)
        for e in self.edges:
            if e.role in named[e.target]:
                raise GraphInvariantError(f"node {e.target} has two operands in role {e.role!r}")
            named[e.target][e.role] = e.source
        result = {}
        for nid, op in self.nodes.items():
            if isinstance(op, (Const, Input)):
                if named.get(nid):
                    raise GraphInvariantError(f"terminal node {nid} has operands")
                result[nid] = ()
            else:
                result[nid] = order_by_roles(op, named.get(nid, {}))
        return result


def topological_sort(ids: Sequence[str], edges: Iterable[GraphEdge]) -> List[str]:
    """
    Kahn's algorithm over the edges (source before target).

    Ties are broken by position in `ids`, so the order is deterministic.
    Raises GraphInvariantError if the edges contain a cycle.
    """
    successors: Dict[str, List[str]] = defaultdict(list)
    indegree: Dict[str, int] = {nid: 0 for nid in ids}
    for e in edges:
        successors[e.source].append(e.target)
        indegree[e.target] += 1

    queue = deque(nid for nid in ids if indegree[nid] == 0)
    order: List[str] = []
    while queue:
        nid = queue.popleft()
        order.append(nid)
        for succ in successors.get(nid, []):
            indegree[succ] -= 1
            if indegree[succ] == 0:
                queue.append(succ)

    if len(order) != len(indegree):
        stuck = sorted(nid for nid, deg in indegree.items() if deg > 0)
        raise GraphInvariantError(f"cycle detected in graph (nodes {stuck[:10]})")
    return order


def build_graph(
    nodes: Mapping[str, Op],
    edges: Sequence[GraphEdge],
    primary: Optional[str] = None,
    secondary: Sequence[str] = (),
    num_inputs: Optional[int] = None,
) -> ExtractedGraph:
    """
    Validate parts and freeze them into an ExtractedGraph.

    Checks that every referenced id exists, every operator has the operands
    its arity requires and that the edges are acyclic.
    """
    edges = tuple(edges)
    secondary = tuple(secondary)
    for e in edges:
        for nid in (e.source, e.target):
            if nid not in nodes:
                raise GraphInvariantError(f"edge {e} references undefined node {nid!r}")
    for nid in ([primary] if primary is not None else []) + list(secondary):
        if nid not in nodes:
            raise GraphInvariantError(f"output references undefined node {nid!r}")

    input_indices = {}
    for nid, op in nodes.items():
        if isinstance(op, Input):
            check_node(op, 0)
            if op.index in input_indices:
                raise GraphInvariantError(
                    f"input index {op.index} used by both {input_indices[op.index]} and {nid}"
                )
            input_indices[op.index] = nid
    if num_inputs is None:
        num_inputs = max(input_indices) + 1 if input_indices else 0

    graph = ExtractedGraph(
        nodes=MappingProxyType(dict(nodes)),
        edges=edges,
        order=tuple(topological_sort(list(nodes), edges)),
        primary=primary,
        secondary=secondary,
        num_inputs=int(num_inputs),
    )
    # arity check
    for nid, children in graph.operands().items():
        check_node(graph.nodes[nid], len(children))
    return graph


def make_graph(primary: Optional[ADVar] = None, secondary: Iterable[ADVar] = ()) -> ExtractedGraph:
    """
    Extract the subgraph reachable from `primary` and `secondary`.

    Nodes get ids in breadth-first encounter order starting from the primary,
    then from each secondary output in turn. A node reachable from several
    roots appears once.
    """
    secondary = list(secondary)
    roots = ([primary] if primary is not None else []) + secondary
    if not roots:
        raise GraphInvariantError("make_graph needs a primary or at least one secondary output")
    for r in roots:
        if not isinstance(r, ADVar):
            raise TypeError(f"outputs must be ADVar handles, got {type(r)}")
    tape = roots[0].tape
    for r in roots:
        if r.tape is not tape:
            raise GraphInvariantError("outputs belong to different tapes")

    ids: Dict[int, str] = {}
    raw_edges: List[Tuple[int, int, Role]] = []
    queue = deque(r.index for r in roots)
    while queue:
        idx = queue.popleft()
        if idx in ids:
            continue
        ids[idx] = f"_{len(ids)}"
        node = tape.nodes[idx]
        for child, role in zip(node.children, roles(node.op, len(node.children))):
            raw_edges.append((child, idx, role))
            queue.append(child)

    nodes = {nid: tape.nodes[idx].op for idx, nid in ids.items()}
    edges = [GraphEdge(ids[c], ids[p], role) for c, p, role in raw_edges]
    graph = build_graph(
        nodes,
        edges,
        primary=ids[primary.index] if primary is not None else None,
        secondary=[ids[s.index] for s in secondary],
        num_inputs=tape.num_inputs,
    )
    logger.debug(
        "extracted graph: %d nodes, %d edges, primary=%s, %d secondary",
        len(graph.nodes), len(graph.edges), graph.primary, len(graph.secondary),
    )
    return graph


def primary_graph(output: ADVar) -> ExtractedGraph:
    return make_graph(primary=output)


def secondary_graph(outputs: Sequence[ADVar]) -> ExtractedGraph:
    return make_graph(secondary=outputs)
