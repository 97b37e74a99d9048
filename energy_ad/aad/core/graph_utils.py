"""
Graph utilities: print and analyse the structure of an extracted graph.
"""

from collections import Counter
from typing import Dict

import numpy as np

from .extract import ExtractedGraph
from .node import Binary, Const, Debug, Input, Nary, Op, Ternary, Unary


def op_label(op: Op) -> str:
    """Short operator name of a node literal ("const", "input", "+", "sin", ...)."""
    if isinstance(op, Const):
        return "const"
    if isinstance(op, Input):
        return "input"
    if isinstance(op, Unary):
        return op.unop
    if isinstance(op, Binary):
        return op.binop
    if isinstance(op, Nary):
        return op.op
    if isinstance(op, Ternary):
        return "ifCond"
    if isinstance(op, Debug):
        return "debug"
    return type(op).__name__


def get_graph_stats(graph: ExtractedGraph) -> Dict:
    """
    Collect graph statistics (without printing).

    Returns:
        dict with node/edge counts, fan-in/fan-out and operator breakdown
    """
    n_nodes = len(graph.nodes)
    if n_nodes == 0:
        return {
            'nodes': 0,
            'edges': 0,
            'inputs': 0,
            'max_fan_in': 0,
            'avg_fan_in': 0.0,
            'max_fan_out': 0,
            'avg_fan_out': 0.0,
            'operations': {}
        }

    fan_in = Counter(e.target for e in graph.edges)
    fan_out = Counter(e.source for e in graph.edges)
    fan_ins = [fan_in.get(nid, 0) for nid in graph.nodes]
    fan_outs = [fan_out.get(nid, 0) for nid in graph.nodes]

    op_counter = Counter(op_label(op) for op in graph.nodes.values())

    return {
        'nodes': n_nodes,
        'edges': len(graph.edges),
        'inputs': op_counter.get('input', 0),
        'max_fan_in': max(fan_ins),
        'avg_fan_in': float(np.mean(fan_ins)),
        'max_fan_out': max(fan_outs),
        'avg_fan_out': float(np.mean(fan_outs)),
        'operations': dict(op_counter)
    }


def print_graph_summary(graph: ExtractedGraph, detailed: bool = False) -> Dict:
    """
    Print a summary of the graph.

    Args:
        graph: extracted graph
        detailed: also list every node (only for graphs of at most 100 nodes)

    Returns:
        the statistics dict from get_graph_stats
    """
    stats = get_graph_stats(graph)
    if stats['nodes'] == 0:
        print("Empty computation graph")
        return stats

    n_nodes = stats['nodes']
    print("\n" + "="*70)
    print("COMPUTATION GRAPH SUMMARY")
    print("="*70)
    print(f"Total nodes:        {n_nodes:,}")
    print(f"Total edges:        {stats['edges']:,}")
    print(f"Inputs:             {stats['inputs']:,}")
    print(f"Max fan-in:         {stats['max_fan_in']}")
    print(f"Avg fan-in:         {stats['avg_fan_in']:.2f}")
    print(f"Max fan-out:        {stats['max_fan_out']}")
    print(f"Avg fan-out:        {stats['avg_fan_out']:.2f}")
    print(f"Primary:            {graph.primary}")
    print(f"Secondary:          {len(graph.secondary)}")
    print()
    print("Operation breakdown:")
    for op_type, count in Counter(stats['operations']).most_common(10):
        pct = 100.0 * count / n_nodes
        print(f"  {op_type:12s}: {count:6,} ({pct:5.1f}%)")

    if detailed and n_nodes <= 100:
        print()
        print("="*70)
        print("DETAILED NODE LIST")
        print("="*70)
        print_computation_graph(graph, max_nodes=100)

    print("="*70 + "\n")
    return stats


def print_computation_graph(graph: ExtractedGraph, max_nodes: int = 20) -> None:
    """
    Print nodes in topological order with their operands.

    Args:
        graph: extracted graph
        max_nodes: print at most this many nodes
    """
    if not graph.nodes:
        print("Empty graph")
        return

    operands = graph.operands()
    for nid in graph.order[:max_nodes]:
        op = graph.nodes[nid]
        if isinstance(op, Const):
            print(f"{nid:>6s}: const        ({op.value!r})")
        elif isinstance(op, Input):
            print(f"{nid:>6s}: input        (x[{op.index}], sample={op.val!r})")
        else:
            label = op_label(op) if not isinstance(op, Debug) else f"debug[{op.info}]"
            print(f"{nid:>6s}: {label:12s} <- [{', '.join(operands[nid])}]")

    if len(graph.order) > max_nodes:
        print(f"... ({len(graph.order) - max_nodes} more nodes)")
