# contrib/__init__.py
# Geometry helpers written on top of the graph constructors.

from .implicit_shapes import (
    ImplicitEllipse,
    ImplicitHalfPlane,
    circle_to_implicit_ellipse,
    ellipse_polynomial,
    ellipse_to_implicit,
    half_plane_to_implicit,
    implicit_ellipse_func,
    implicit_half_plane_func,
    poly_order,
)
from .vectors import outward_unit_normal, rot90, vadd, vdot, vmul, vnorm, vnormalize, vsub

__all__ = [
    'ImplicitEllipse',
    'ImplicitHalfPlane',
    'circle_to_implicit_ellipse',
    'ellipse_polynomial',
    'ellipse_to_implicit',
    'half_plane_to_implicit',
    'implicit_ellipse_func',
    'implicit_half_plane_func',
    'poly_order',
    'outward_unit_normal',
    'rot90',
    'vadd',
    'vdot',
    'vmul',
    'vnorm',
    'vnormalize',
    'vsub',
]
