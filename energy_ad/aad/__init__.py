# aad/__init__.py
# Energy graphs: build, extract, compile (value + gradient + secondary outputs)

from .core.var import ADVar
from .core.tape import Tape, global_tape, use_tape
from .core.extract import ExtractedGraph, make_graph, primary_graph, secondary_graph
from .core.engine import Evaluator, Outputs, gen_code
from .core.node import GraphInvariantError
from .core.seeds import grad, grads_list, nums_of, value

# Interchange format
from . import interchange
from .interchange import dump, load, from_json, to_json, to_tape

__all__ = [
    # Core
    'ADVar',
    'Tape',
    'global_tape',
    'use_tape',
    'GraphInvariantError',
    # Extraction / codegen
    'ExtractedGraph',
    'make_graph',
    'primary_graph',
    'secondary_graph',
    'Evaluator',
    'Outputs',
    'gen_code',
    'grad',
    'grads_list',
    'nums_of',
    'value',
    # Interchange
    'interchange',
    'dump',
    'load',
    'from_json',
    'to_json',
    'to_tape',
]
