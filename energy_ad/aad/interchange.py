# aad/interchange.py
"""
JSON interchange format for extracted graphs (offline dumps and fuzz fixtures).

    {
      "primary": "_0",
      "nodes": {
        "_0": {"tag":"Binary","binop":"*"},
        "_1": {"tag":"Input","index":0,"val":3},
        "_2": 2
      },
      "edges": [
        {"from":"_1","to":"_0","role":"left"},
        {"from":"_2","to":"_0","role":"right"}
      ]
    }

Constants are bare numbers. Edges point from operand to user; "role" is
omitted for unary and debug operands. A "secondary" list is written only when
the graph has secondary outputs, and "primary" is null when it has none.
"""
from __future__ import annotations

import json
import logging
import math
import numbers
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .core import tape as tape_mod
from .core.extract import ExtractedGraph, GraphEdge, build_graph
from .core.node import Binary, Const, Debug, GraphInvariantError, Input, Nary, Op, Ternary, Unary
from .core.tape import Tape, use_tape
from .core.var import ADVar

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"))


def _number(value: float) -> Union[int, float]:
    # integral values are written without a fraction part
    if value.is_integer() and abs(value) < 1e21 and not (value == 0.0 and math.copysign(1.0, value) < 0):
        return int(value)
    return value


def node_to_json(op: Op) -> Any:
    if isinstance(op, Const):
        return _number(op.value)
    if isinstance(op, Input):
        return {"tag": "Input", "index": op.index, "val": _number(op.val)}
    if isinstance(op, Unary):
        return {"tag": "Unary", "unop": op.unop}
    if isinstance(op, Binary):
        return {"tag": "Binary", "binop": op.binop}
    if isinstance(op, Ternary):
        return {"tag": "Ternary"}
    if isinstance(op, Nary):
        return {"tag": "Nary", "op": op.op}
    if isinstance(op, Debug):
        return {"tag": "Debug", "info": op.info}
    raise GraphInvariantError(f"cannot serialize node {op!r}")


def node_from_json(nid: str, obj: Any) -> Op:
    if isinstance(obj, numbers.Real) and not isinstance(obj, bool):
        return Const(float(obj))
    if not isinstance(obj, dict):
        raise GraphInvariantError(f"node {nid}: expected a number or an object, got {obj!r}")
    tag = obj.get("tag")
    try:
        if tag == "Input":
            index = obj["index"]
            if isinstance(index, bool) or not isinstance(index, int):
                raise GraphInvariantError(f"node {nid}: input index must be an integer, got {index!r}")
            return Input(index, float(obj.get("val", 0.0)))
        if tag == "Unary":
            return Unary(str(obj["unop"]))
        if tag == "Binary":
            return Binary(str(obj["binop"]))
        if tag == "Ternary":
            return Ternary()
        if tag == "Nary":
            return Nary(str(obj["op"]))
        if tag == "Debug":
            return Debug(str(obj.get("info", "")))
    except KeyError as exc:
        raise GraphInvariantError(f"node {nid}: missing field {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise GraphInvariantError(f"node {nid}: malformed field ({exc})") from exc
    raise GraphInvariantError(f"node {nid}: unknown tag {tag!r}")


def edge_to_json(edge: GraphEdge) -> Dict[str, str]:
    obj = {"from": edge.source, "to": edge.target}
    if edge.role is not None:
        obj["role"] = edge.role
    return obj


def to_json(graph: ExtractedGraph) -> str:
    """Serialize `graph`, one node and one edge per line."""
    lines = ["{", f'  "primary": {_dumps(graph.primary)},']
    if graph.secondary:
        lines.append(f'  "secondary": {_dumps(list(graph.secondary))},')

    node_lines = [f"    {_dumps(nid)}: {_dumps(node_to_json(op))}" for nid, op in graph.nodes.items()]
    edge_lines = [f"    {_dumps(edge_to_json(e))}" for e in graph.edges]

    lines.append('  "nodes": {' if node_lines else '  "nodes": {},')
    if node_lines:
        lines.append(",\n".join(node_lines))
        lines.append("  },")
    lines.append('  "edges": [' if edge_lines else '  "edges": []')
    if edge_lines:
        lines.append(",\n".join(edge_lines))
        lines.append("  ]")
    lines.append("}")
    return "\n".join(lines) + "\n"


def from_json(text: str) -> ExtractedGraph:
    """
    Parse an interchange document into an ExtractedGraph.

    Raises GraphInvariantError on unknown tags, undefined node ids, missing
    operands or cycles (the json module's own error on malformed JSON).
    """
    doc = json.loads(text)
    if not isinstance(doc, dict) or "nodes" not in doc or "edges" not in doc:
        raise GraphInvariantError("interchange document needs 'nodes' and 'edges'")
    if not isinstance(doc["nodes"], dict) or not isinstance(doc["edges"], list):
        raise GraphInvariantError("'nodes' must be an object and 'edges' a list")

    nodes = {str(nid): node_from_json(str(nid), obj) for nid, obj in doc["nodes"].items()}
    edges: List[GraphEdge] = []
    for obj in doc["edges"]:
        try:
            edges.append(GraphEdge(str(obj["from"]), str(obj["to"]), obj.get("role")))
        except (KeyError, TypeError, AttributeError) as exc:
            raise GraphInvariantError(f"malformed edge {obj!r}") from exc

    primary = doc.get("primary")
    return build_graph(
        nodes,
        edges,
        primary=str(primary) if primary is not None else None,
        secondary=[str(s) for s in doc.get("secondary", [])],
    )


def dump(graph: ExtractedGraph, path: PathLike) -> None:
    path = Path(path)
    path.write_text(to_json(graph), encoding="utf-8")
    logger.info("wrote graph with %d nodes and %d edges to %s", len(graph.nodes), len(graph.edges), path)


def load(path: PathLike) -> ExtractedGraph:
    path = Path(path)
    graph = from_json(path.read_text(encoding="utf-8"))
    logger.info("loaded graph with %d nodes and %d edges from %s", len(graph.nodes), len(graph.edges), path)
    return graph


def to_tape(graph: ExtractedGraph, tape: Optional[Tape] = None) -> Tuple[Optional[ADVar], List[ADVar]]:
    """
    Rebuild `graph` on a tape through the regular constructors.

    Folding and deduplication apply as usual. Returns the primary handle (or
    None) and the secondary handles.
    """
    from .ops.arithmetic import _binary, _unary
    from .ops.special import _nary, debug, if_cond

    tape = tape if tape is not None else tape_mod.global_tape
    operands = graph.operands()
    handles: Dict[str, ADVar] = {}
    with use_tape(tape):
        for nid in graph.order:
            op = graph.nodes[nid]
            args = [handles[c] for c in operands[nid]]
            if isinstance(op, Const):
                h = ADVar(tape, tape.const(op.value))
            elif isinstance(op, Input):
                h = ADVar(tape, tape.input(op.index, op.val))
            elif isinstance(op, Unary):
                h = _unary(args[0], op.unop)
            elif isinstance(op, Binary):
                h = _binary(args[0], args[1], op.binop)
            elif isinstance(op, Ternary):
                h = if_cond(*args)
            elif isinstance(op, Nary):
                h = _nary(args, op.op)
            else:
                h = debug(args[0], op.info)
            handles[nid] = h

    primary = handles[graph.primary] if graph.primary is not None else None
    return primary, [handles[s] for s in graph.secondary]
