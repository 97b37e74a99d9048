# aad/fuzz.py
"""
Offline fuzzing: random energy graphs, JSON fixtures and gradient checks.

    python -m energy_ad.aad.fuzz --seed 0 --inputs 4 --ops 200 --out fixtures/

writes `graph.json` (interchange format) and `outputs.json` holding the
gradient and primary value at the inputs' sample values, plus the value of
every node under "secondary".
"""
from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.optimize import approx_fprime

from .core.engine import Evaluator, gen_code
from .core.extract import ExtractedGraph, primary_graph
from .core.node import BINARY_OPS, NARY_OPS, UNARY_OPS, Input
from .core.tape import Tape, use_tape
from .core.var import ADVar
from .interchange import dump
from .ops.arithmetic import _binary, _unary, make_input
from .ops.special import _nary, add_n, debug, if_cond

logger = logging.getLogger(__name__)

# differentiable everywhere and bounded enough to keep nested values finite
SMOOTH_UNARY = ("neg", "sin", "cos", "tanh", "atan", "asinh")
SMOOTH_BINARY = ("+", "-", "*")
SMOOTH_NARY = ("addN",)


@dataclass(frozen=True)
class GradientCheck:
    analytic: np.ndarray
    numeric: np.ndarray
    max_error: float


def random_graph(
    rng: np.random.Generator,
    n_inputs: int = 4,
    n_ops: int = 50,
    *,
    smooth: bool = False,
    window: int = 8,
) -> Tuple[ADVar, List[ADVar]]:
    """
    Build a random expression on the active tape.

    Operands are drawn mostly from the last `window` nodes so that the graph
    gets deep, and sometimes from anywhere so that nodes get shared. The
    primary output sums the last few nodes.

    Returns:
        (primary handle, input handles)
    """
    unary = SMOOTH_UNARY if smooth else UNARY_OPS
    binary = SMOOTH_BINARY if smooth else BINARY_OPS
    nary = SMOOTH_NARY if smooth else NARY_OPS

    inputs = [make_input(i, float(rng.uniform(-2.0, 2.0))) for i in range(n_inputs)]
    pool: List[ADVar] = list(inputs)

    def pick() -> ADVar:
        if rng.random() < 0.75:
            return pool[-int(rng.integers(1, min(window, len(pool)) + 1))]
        return pool[int(rng.integers(len(pool)))]

    for _ in range(n_ops):
        kind = rng.random()
        if kind < 0.4:
            h = _unary(pick(), str(rng.choice(unary)))
        elif kind < 0.8:
            other = pick() if rng.random() < 0.8 else float(np.round(rng.uniform(-3.0, 3.0), 2))
            h = _binary(pick(), other, str(rng.choice(binary)))
        elif kind < 0.9:
            h = _nary([pick() for _ in range(int(rng.integers(2, 6)))], str(rng.choice(nary)))
        elif smooth:
            h = _binary(pick(), pick(), "+")
        elif kind < 0.95:
            h = if_cond(pick(), pick(), pick())
        else:
            h = debug(pick(), f"fuzz{len(pool)}")
        pool.append(h)

    tail = pool[-min(len(pool), 4):]
    return add_n(tail), inputs


def sample_point(graph: ExtractedGraph) -> np.ndarray:
    """The sample values of the graph's inputs, as an input vector."""
    x = np.zeros(graph.num_inputs)
    for op in graph.nodes.values():
        if isinstance(op, Input):
            x[op.index] = op.val
    return x


def check_gradient(evaluator: Evaluator, x: Sequence[float], epsilon: float = 1e-6) -> GradientCheck:
    """Compare the reverse-mode gradient with forward finite differences."""
    x = np.asarray(x, dtype=np.float64)
    analytic = evaluator(x).gradient[: len(x)]
    numeric = approx_fprime(x, lambda z: evaluator(z).primary, epsilon)
    err = float(np.max(np.abs(analytic - numeric))) if len(x) else 0.0
    return GradientCheck(analytic=analytic, numeric=np.asarray(numeric), max_error=err)


def fuzz(
    out_dir: Union[str, Path],
    seed: int = 0,
    n_inputs: int = 4,
    n_ops: int = 50,
    *,
    smooth: bool = False,
) -> ExtractedGraph:
    """Generate one random graph and write graph.json / outputs.json to `out_dir`."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(seed)

    with use_tape(Tape()):
        primary, _ = random_graph(rng, n_inputs, n_ops, smooth=smooth)
        graph = primary_graph(primary)

    evaluator = gen_code(graph)
    x = sample_point(graph)
    out = evaluator(x)
    dump(graph, out_dir / "graph.json")
    outputs = {
        "gradient": out.gradient.tolist(),
        "primary": out.primary,
        "secondary": evaluator.node_values(x),
    }
    (out_dir / "outputs.json").write_text(json.dumps(outputs, indent=2) + "\n", encoding="utf-8")
    logger.info(
        "fuzz seed=%d: %d nodes, primary=%r, written to %s", seed, len(graph.nodes), out.primary, out_dir
    )
    return graph


def parse_args(argv: Optional[Sequence[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Generate random energy graphs and their evaluator outputs',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('--seed', type=int, default=0,
                        help='random seed')
    parser.add_argument('--inputs', type=int, default=4,
                        help='number of input variables')
    parser.add_argument('--ops', type=int, default=50,
                        help='number of random operations')
    parser.add_argument('--out', type=str, default='.',
                        help='output directory for graph.json and outputs.json')
    parser.add_argument('--smooth', action='store_true',
                        help='only use smooth operators')
    parser.add_argument('--check', action='store_true',
                        help='also compare the gradient against finite differences')
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    graph = fuzz(args.out, args.seed, args.inputs, args.ops, smooth=args.smooth)
    if args.check:
        result = check_gradient(gen_code(graph), sample_point(graph))
        print(f"max |analytic - numeric| = {result.max_error:.3e}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
