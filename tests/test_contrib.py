import numpy as np
import pytest

from energy_ad.aad import gen_code, primary_graph, secondary_graph, use_tape, value
from energy_ad.aad.ops import make_input
from energy_ad.contrib import (
    circle_to_implicit_ellipse,
    ellipse_polynomial,
    ellipse_to_implicit,
    half_plane_to_implicit,
    implicit_ellipse_func,
    implicit_half_plane_func,
    outward_unit_normal,
    poly_order,
    rot90,
    vdot,
    vmul,
    vnorm,
    vnormalize,
)


def vals(handles):
    return [value(h) for h in handles]


def test_vector_helpers_fold_on_constants():
    with use_tape():
        assert vdot([1, 2], [3, 4]).val == 11.0
        assert vnorm([3, 4]).val == 5.0
        assert vals(rot90([1, 2])) == [-2.0, 1.0]
        assert vals(vmul(2, [1, 2])) == [2.0, 4.0]
        assert vals(vnormalize([3, 4])) == [pytest.approx(0.6), pytest.approx(0.8)]


def test_outward_normal_follows_the_inside_point():
    with use_tape():
        inside = [make_input(0, 0.5), make_input(1, 1.0)]
        normal = outward_unit_normal([[0.0, 0.0], [1.0, 0.0]], inside)
        f = gen_code(secondary_graph(normal))
    np.testing.assert_allclose(f([0.5, 1.0]).secondary, [0.0, -1.0], atol=1e-9)
    np.testing.assert_allclose(f([0.5, -1.0]).secondary, [0.0, 1.0], atol=1e-9)


def test_circle_implicit_function_and_gradient():
    with use_tape():
        center = [make_input(0, 0.0), make_input(1, 0.0)]
        ei = circle_to_implicit_ellipse(center, 1.0, 0.0)
        f = gen_code(primary_graph(implicit_ellipse_func(ei, 2.0, 0.0)))
    out = f([0.0, 0.0])
    assert out.primary == 3.0
    np.testing.assert_allclose(out.gradient, [-4.0, 0.0])
    # inside the circle the function is negative
    assert f([1.9, 0.0]).primary < 0


def test_ellipse_implicit_function_is_zero_on_the_boundary():
    with use_tape():
        ei = ellipse_to_implicit([1.0, 2.0], 2.0, 1.0, 0.0)
        assert implicit_ellipse_func(ei, 3.0, 2.0).val == pytest.approx(0.0, abs=1e-8)
        assert implicit_ellipse_func(ei, 1.0, 3.0).val == pytest.approx(0.0, abs=1e-8)
        assert implicit_ellipse_func(ei, 1.0, 2.0).val < 0


def test_half_plane_contains_the_inside_point():
    with use_tape():
        hpi = half_plane_to_implicit([[0.0, 0.0], [1.0, 0.0]], [0.5, 1.0], 0.0)
        assert hpi.a.val == pytest.approx(0.0)
        assert hpi.b.val == pytest.approx(-1.0)
        assert hpi.c.val == pytest.approx(0.0)
        assert implicit_half_plane_func(hpi, 0.5, 1.0).val == pytest.approx(-1.0)
        assert implicit_half_plane_func(hpi, 0.5, -1.0).val == pytest.approx(1.0)


def test_half_plane_padding_moves_the_boundary_inwards():
    with use_tape():
        hpi = half_plane_to_implicit([[0.0, 0.0], [1.0, 0.0]], [0.5, 1.0], 0.25)
        assert implicit_half_plane_func(hpi, 0.5, 0.0).val == pytest.approx(0.25)


def test_ellipse_polynomial_of_two_separated_circles():
    with use_tape():
        a = circle_to_implicit_ellipse([0.0, 0.0], 1.0, 0.0)
        b = circle_to_implicit_ellipse([3.0, 0.0], 1.0, 0.0)
        poly = ellipse_polynomial(a, b)
        assert len(poly) == 1
        assert poly[0].val == pytest.approx(-0.5)


def test_ellipse_polynomial_is_differentiable_in_the_shape_parameters():
    with use_tape():
        cx = make_input(0, 3.0)
        a = circle_to_implicit_ellipse([0.0, 0.0], 1.0, 0.0)
        b = circle_to_implicit_ellipse([cx, 0.0], 1.0, 0.0)
        poly = ellipse_polynomial(a, b)
        f = gen_code(primary_graph(poly[0]))
    out = f([3.0])
    assert out.primary == pytest.approx(-0.5)
    assert out.gradient[0] == pytest.approx(0.0, abs=1e-8)


@pytest.mark.parametrize("poly, order", [
    ([1.0, 2.0, 0.0, 0.0], 1),
    ([1.0, 0.0, 3.0], 2),
    ([5.0], 0),
    ([0.0, 0.0, 0.0], 0),
    ([], 0),
])
def test_poly_order(poly, order):
    assert poly_order(poly) == order
