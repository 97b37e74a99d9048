# aad/core/__init__.py

"""
Core public API of the energy graph engine.

Exports:
    ADVar          : Opaque handle to a node of a tape.
    Tape           : Node arena with structural sharing.
    global_tape    : The default tape nodes are recorded on.
    use_tape       : Context manager to temporarily switch the active tape.
    make_graph     : Extract the live subgraph for primary/secondary outputs.
    primary_graph  : make_graph with a primary output only.
    secondary_graph: make_graph with secondary outputs only.
    gen_code       : Compile an extracted graph into an Evaluator.
    grad, grads_list, value, nums_of : convenience wrappers.
"""

from .config import EPS_DENOM, EngineConfig, get_engine_config, set_engine_config
from .engine import Evaluator, Outputs, gen_code
from .extract import ExtractedGraph, GraphEdge, build_graph, make_graph, primary_graph, secondary_graph
from .node import GraphInvariantError
from .seeds import grad, grads_list, nums_of, value
from .tape import Tape, global_tape, use_tape
from .var import ADVar

__all__ = [
    "ADVar",
    "Tape", "global_tape", "use_tape",
    "ExtractedGraph", "GraphEdge", "build_graph",
    "make_graph", "primary_graph", "secondary_graph",
    "Evaluator", "Outputs", "gen_code",
    "GraphInvariantError",
    "EPS_DENOM", "EngineConfig", "get_engine_config", "set_engine_config",
    "grad", "grads_list", "nums_of", "value",
]
