# contrib/implicit_shapes.py
"""
Implicit representations of ellipses and half-planes, built as graph nodes.

    ellipse    : a * (X - x)^2 + b * (Y - y)^2 = c
    half-plane : a * X + b * Y <= c

Used by containment/overlap energies, which need the shapes' implicit
functions (and the ellipse-ellipse polynomial) to be differentiable in the
shape parameters.
"""
from dataclasses import dataclass
from typing import Any, List, Sequence

from ..aad.core.seeds import nums_of
from ..aad.ops import add, div, mul, neg, squared, sub
from .vectors import outward_unit_normal, vdot

Num = Any  # ADVar or plain number


@dataclass(frozen=True)
class ImplicitEllipse:
    """Parameters of `a * (X - x)^2 + b * (Y - y)^2 = c`."""
    a: Num
    b: Num
    c: Num
    x: Num
    y: Num


@dataclass(frozen=True)
class ImplicitHalfPlane:
    """Parameters of `a * X + b * Y <= c`."""
    a: Num
    b: Num
    c: Num


def implicit_ellipse_func(ei: ImplicitEllipse, x: Num, y: Num):
    """Implicit ellipse function at point (x, y): negative inside, zero on the boundary."""
    return sub(
        add(mul(ei.a, squared(sub(x, ei.x))), mul(ei.b, squared(sub(y, ei.y)))),
        ei.c,
    )


def implicit_half_plane_func(hpi: ImplicitHalfPlane, x: Num, y: Num):
    """Implicit half-plane function at point (x, y): non-positive inside."""
    return sub(add(mul(hpi.a, x), mul(hpi.b, y)), hpi.c)


def half_plane_to_implicit(segment: Sequence[Sequence[Num]], inside_point: Sequence[Num], padding: Num) -> ImplicitHalfPlane:
    """
    Half-plane bounded by the line through `segment` containing `inside_point`,
    shrunk by `padding`.
    """
    normal = outward_unit_normal(segment, inside_point)
    return ImplicitHalfPlane(
        a=normal[0],
        b=normal[1],
        c=sub(vdot(normal, segment[0]), padding),
    )


def ellipse_to_implicit(center: Sequence[Num], rx: Num, ry: Num, padding: Num) -> ImplicitEllipse:
    """Implicit parameters of an axis-aligned ellipse grown by `padding`."""
    rx = add(rx, padding)
    ry = add(ry, padding)
    return ImplicitEllipse(
        a=div(ry, rx),
        b=div(rx, ry),
        c=mul(rx, ry),
        x=center[0],
        y=center[1],
    )


def circle_to_implicit_ellipse(center: Sequence[Num], r: Num, padding: Num) -> ImplicitEllipse:
    return ImplicitEllipse(
        a=1,
        b=1,
        c=squared(add(r, padding)),
        x=center[0],
        y=center[1],
    )


# Constant coefficient of the ellipse-ellipse polynomial
def _alpha0(a: ImplicitEllipse, b: ImplicitEllipse):
    return mul(
        mul(squared(a.a), squared(a.b)),
        add(
            sub(a.c, b.c),
            add(mul(b.a, squared(sub(b.x, a.x))), mul(b.b, squared(sub(b.y, a.y)))),
        ),
    )


# Linear coefficient
def _alpha1(a: ImplicitEllipse, b: ImplicitEllipse):
    coef = mul(2, mul(a.a, a.b))
    return mul(
        coef,
        add(
            mul(sub(a.c, b.c), sub(add(mul(a.a, b.b), mul(a.b, b.a)), coef)),
            add(
                mul(mul(a.a, b.a), mul(squared(sub(b.x, a.x)), sub(b.b, mul(2, a.b)))),
                mul(mul(a.b, b.b), mul(squared(sub(b.y, a.y)), sub(b.a, mul(2, a.a)))),
            ),
        ),
    )


# Quadratic coefficient
def _alpha2(a: ImplicitEllipse, b: ImplicitEllipse):
    coeff1 = add(
        add(
            mul(squared(a.a), squared(sub(b.b, a.b))),
            mul(squared(a.b), squared(sub(b.a, a.a))),
        ),
        mul(mul(4, mul(a.a, a.b)), mul(sub(b.b, a.b), sub(b.a, a.a))),
    )
    coeff2 = sub(
        mul(squared(a.b), sub(mul(6, a.a), b.a)),
        mul(mul(a.a, b.b), sub(mul(6, a.b), b.b)),
    )
    coeff3 = sub(
        mul(squared(a.a), sub(mul(6, a.b), b.b)),
        mul(mul(a.b, b.a), sub(mul(6, a.a), b.a)),
    )
    return add(
        mul(coeff1, sub(a.c, b.c)),
        add(
            mul(mul(coeff2, mul(a.a, b.a)), squared(sub(b.x, a.x))),
            mul(mul(coeff3, mul(a.b, b.b)), squared(sub(b.y, a.y))),
        ),
    )


# Cubic coefficient
def _alpha3(a: ImplicitEllipse, b: ImplicitEllipse):
    factor = mul(2, sub(mul(2, mul(a.a, a.b)), add(mul(a.b, b.a), mul(a.a, b.b))))
    return mul(
        factor,
        add(
            mul(mul(sub(b.a, a.a), sub(b.b, a.b)), sub(b.c, a.c)),
            add(
                mul(mul(a.a, b.a), mul(squared(sub(b.x, a.x)), sub(b.b, a.b))),
                mul(mul(a.b, b.b), mul(squared(sub(b.y, a.y)), sub(b.a, a.a))),
            ),
        ),
    )


# Quartic coefficient
def _alpha4(a: ImplicitEllipse, b: ImplicitEllipse):
    return neg(
        add(
            mul(mul(squared(sub(b.a, a.a)), squared(sub(b.b, a.b))), sub(b.c, a.c)),
            add(
                mul(
                    mul(mul(a.a, b.a), squared(sub(b.x, a.x))),
                    mul(sub(b.a, a.a), squared(sub(b.b, a.b))),
                ),
                mul(
                    mul(mul(a.b, b.b), squared(sub(b.y, a.y))),
                    mul(squared(sub(b.a, a.a)), sub(b.b, a.b)),
                ),
            ),
        )
    )


def ellipse_polynomial_params(a: ImplicitEllipse, b: ImplicitEllipse) -> List:
    """Coefficients of the ellipse-ellipse polynomial, lowest degree first."""
    return [_alpha0(a, b), _alpha1(a, b), _alpha2(a, b), _alpha3(a, b), _alpha4(a, b)]


def poly_order(poly: Sequence[float]) -> int:
    """Degree of a polynomial given by its coefficients (lowest degree first)."""
    for i in range(len(poly) - 1, 0, -1):
        if poly[i] != 0:
            return i
    return 0


def ellipse_polynomial(a: ImplicitEllipse, b: ImplicitEllipse) -> List:
    """
    Monic ellipse-ellipse polynomial, lowest degree first.

    The leading coefficient is omitted (it is 1). The degree is decided from
    the coefficients' current values.
    """
    params = ellipse_polynomial_params(a, b)
    order = poly_order(nums_of(params))
    return [div(params[i], params[order]) for i in range(order)]
