# aad/core/seeds.py

#-----------------------------------------------------------------------------
# Convenience wrappers: build in a fresh tape, extract, compile, and "plant"
# the seed (dy/dy = 1) at the scalar output in one call.
#-----------------------------------------------------------------------------
from __future__ import annotations

from typing import Any, Callable, Iterable, List, Sequence

import numpy as np

from .engine import gen_code
from .extract import primary_graph, secondary_graph
from .tape import use_tape
from .var import ADVar


def value(x: Any) -> Any:
    """Return the value of a constant/input handle; pass plain numbers through unchanged."""
    if isinstance(x, ADVar):
        v = x.val
        if v is None:
            raise ValueError(f"{x!r} is not a constant or input; use nums_of()")
        return v
    return x


def nums_of(xs: Sequence[Any]) -> List[float]:
    """
    Numeric values of several handles, with every input at its sample value.

    Compiles a secondary graph over the handles and evaluates it once with an
    empty input vector.
    """
    handles = [x for x in xs if isinstance(x, ADVar)]
    if not handles:
        return [float(x) for x in xs]
    out = iter(gen_code(secondary_graph(handles))([]).secondary)
    return [float(next(out)) if isinstance(x, ADVar) else float(x) for x in xs]


def _ensure_ad(y: Any) -> ADVar:
    from ..ops.arithmetic import const
    return y if isinstance(y, ADVar) else const(y)


# ----------------------------- single-input grad ----------------------------- #
def grad(f: Callable[[ADVar], Any], x0: float) -> float:
    """
    Derivative of a scalar function y=f(x) at x0.
    Runs one reverse pass within a fresh, isolated tape.
    """
    from ..ops.arithmetic import make_input
    with use_tape():
        x = make_input(0, float(x0))
        y = _ensure_ad(f(x))
        out = gen_code(primary_graph(y))([x0])
        return float(out.gradient[0])


# ----------------------------- multi-input grads ----------------------------- #
def grads_list(f: Callable[[List[ADVar]], Any], x0_list: Iterable[float]) -> List[float]:
    """
    Gradient of y=f(xs) with respect to every element of the input list,
    from ONE reverse pass.

    Example
    -------
    f = lambda xs: xs[0]*xs[0] + 3*xs[1]
    grads_list(f, [2.0, 4.0]) -> [4.0, 3.0]
    """
    from ..ops.arithmetic import make_input
    x0 = np.asarray(list(x0_list), dtype=np.float64)
    with use_tape():
        xs = [make_input(i, v) for i, v in enumerate(x0)]
        y = _ensure_ad(f(xs))
        out = gen_code(primary_graph(y))(x0)
        return [float(g) for g in out.gradient[: len(xs)]]
