# contrib/vectors.py
"""Small vector helpers over graph scalars (vectors are plain lists)."""

from typing import List, Sequence

from ..aad.ops import add, add_n, div, if_cond, lt, mul, neg, sqrt, squared, sub

Vec = Sequence


def vadd(u: Vec, v: Vec) -> List:
    return [add(a, b) for a, b in zip(u, v)]


def vsub(u: Vec, v: Vec) -> List:
    return [sub(a, b) for a, b in zip(u, v)]


def vmul(c, v: Vec) -> List:
    """Scale vector `v` by the scalar `c`."""
    return [mul(c, a) for a in v]


def vdot(u: Vec, v: Vec):
    return add_n([mul(a, b) for a, b in zip(u, v)])


def vnorm(v: Vec):
    return sqrt(add_n([squared(a) for a in v]))


def vnormalize(v: Vec) -> List:
    n = vnorm(v)
    return [div(a, n) for a in v]


def rot90(v: Vec) -> List:
    """Rotate a 2D vector counterclockwise by 90 degrees."""
    x, y = v
    return [neg(y), x]


def outward_unit_normal(segment: Sequence[Vec], inside_point: Vec) -> List:
    """
    Unit normal of the line through `segment` that points away from `inside_point`.

    The orientation is chosen inside the graph with a conditional, so it stays
    correct when the points move during optimization.
    """
    p0, p1 = segment
    normal = vnormalize(rot90(vsub(p1, p0)))
    facing_away = lt(vdot(normal, vsub(inside_point, p0)), 0)
    return [if_cond(facing_away, n, neg(n)) for n in normal]
