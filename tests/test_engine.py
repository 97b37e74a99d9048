import logging
import math

import numpy as np
import pytest
from scipy.optimize import approx_fprime

from energy_ad.aad import gen_code, grad, grads_list, make_graph, nums_of, primary_graph, use_tape, value
from energy_ad.aad.core.config import EPS_DENOM, EngineConfig, get_engine_config, set_engine_config
from energy_ad.aad.core.node import UNARY_OPS
from energy_ad.aad.fuzz import random_graph
from energy_ad.aad.ops import (
    add,
    add_n,
    debug,
    div,
    gt,
    if_cond,
    inverse,
    ln,
    lt,
    make_input,
    max_n,
    maximum,
    min_n,
    minimum,
    mul,
    pow,
    sin,
    sqrt,
)
from energy_ad.aad.ops.arithmetic import _binary, _unary


@pytest.fixture(autouse=True)
def restore_engine_config():
    saved = get_engine_config()
    yield
    set_engine_config(saved)


def compile_primary(build, n_inputs=1):
    """Build `build(*inputs)` on a fresh tape and compile its primary graph."""
    with use_tape():
        xs = [make_input(i, 0.0) for i in range(n_inputs)]
        return gen_code(primary_graph(build(*xs)))


def test_shared_subexpression_accumulates_gradient():
    f = compile_primary(lambda x: mul(x, x))
    out = f([3.0])
    assert out.primary == 9.0
    np.testing.assert_array_equal(out.gradient, [6.0])


def test_max_and_min_route_gradient_with_ties_to_the_left():
    fmax = compile_primary(maximum, 2)
    np.testing.assert_array_equal(fmax([2.0, 1.0]).gradient, [1.0, 0.0])
    np.testing.assert_array_equal(fmax([1.0, 2.0]).gradient, [0.0, 1.0])
    np.testing.assert_array_equal(fmax([1.0, 1.0]).gradient, [1.0, 0.0])

    fmin = compile_primary(minimum, 2)
    np.testing.assert_array_equal(fmin([2.0, 1.0]).gradient, [0.0, 1.0])
    np.testing.assert_array_equal(fmin([1.0, 1.0]).gradient, [1.0, 0.0])


def test_max_n_and_min_n_give_the_gradient_to_the_first_extremum():
    fmax = compile_primary(lambda *xs: max_n(xs), 3)
    np.testing.assert_array_equal(fmax([1.0, 3.0, 3.0]).gradient, [0.0, 1.0, 0.0])
    fmin = compile_primary(lambda *xs: min_n(xs), 3)
    np.testing.assert_array_equal(fmin([2.0, 1.0, 1.0]).gradient, [0.0, 1.0, 0.0])


def test_add_n_is_a_left_fold():
    xs = [0.1, 0.2, 0.3, 1e16, -1e16]
    f = compile_primary(lambda *v: add_n(v), len(xs))
    out = f(xs)
    expected = xs[0]
    for v in xs[1:]:
        expected = expected + v
    assert out.primary == expected
    np.testing.assert_array_equal(out.gradient, np.ones(len(xs)))


def test_inverse_and_division_by_zero_stay_finite():
    f = compile_primary(inverse)
    out = f([0.0])
    assert out.primary == pytest.approx(1.0 / EPS_DENOM)
    assert np.all(np.isfinite(out.gradient))

    g = compile_primary(lambda a, b: div(a, b), 2)
    out = g([1.0, 0.0])
    assert math.isfinite(out.primary)
    assert np.all(np.isfinite(out.gradient))


def test_inputs_not_feeding_the_primary_get_zero_gradient():
    with use_tape():
        x0 = make_input(0, 1.0)
        make_input(1, 2.0)
        f = gen_code(primary_graph(sin(x0)))
    out = f([0.5, 7.0])
    assert out.gradient[0] == pytest.approx(math.cos(0.5))
    assert out.gradient[1] == 0.0


def test_gradient_is_at_least_as_long_as_the_input_vector():
    f = compile_primary(lambda x: mul(x, 2.0))
    out = f([1.0, 2.0, 3.0, 4.0])
    np.testing.assert_array_equal(out.gradient, [2.0, 0.0, 0.0, 0.0])


def test_missing_positions_fall_back_to_sample_values():
    with use_tape():
        x0 = make_input(0, 3.0)
        x1 = make_input(1, 4.0)
        f = gen_code(primary_graph(mul(x0, x1)))
    out = f([])
    assert out.primary == 12.0
    np.testing.assert_array_equal(out.gradient, [4.0, 3.0])
    out = f([1.0])
    assert out.primary == 4.0
    np.testing.assert_array_equal(out.gradient, [4.0, 1.0])


def test_secondary_outputs_are_evaluated_but_not_differentiated():
    with use_tape():
        x0 = make_input(0, 0.0)
        x1 = make_input(1, 0.0)
        f = gen_code(make_graph(mul(x0, 2.0), [mul(x1, 5.0), sin(x0)]))
    out = f([1.0, 2.0])
    assert out.primary == 2.0
    np.testing.assert_array_equal(out.gradient, [2.0, 0.0])
    np.testing.assert_allclose(out.secondary, [10.0, math.sin(1.0)])


def test_secondary_only_graph_has_no_primary():
    with use_tape():
        x = make_input(0, 1.5)
        f = gen_code(make_graph(secondary=[sin(x)]))
    out = f([])
    assert out.primary is None
    np.testing.assert_array_equal(out.gradient, [0.0])
    assert out.secondary[0] == pytest.approx(math.sin(1.5))


def test_if_cond_routes_gradient_to_the_selected_branch():
    f = compile_primary(lambda a, b, c: if_cond(gt(c, 0.0), mul(a, 2.0), mul(b, 3.0)), 3)
    np.testing.assert_array_equal(f([1.0, 1.0, 1.0]).gradient, [2.0, 0.0, 0.0])
    np.testing.assert_array_equal(f([1.0, 1.0, -1.0]).gradient, [0.0, 3.0, 0.0])
    # NaN conditions are falsy
    np.testing.assert_array_equal(f([1.0, 1.0, float("nan")]).gradient, [0.0, 3.0, 0.0])


def test_comparisons_have_zero_gradient():
    f = compile_primary(lambda a, b: add(gt(a, b), lt(a, b)), 2)
    out = f([1.0, 2.0])
    assert out.primary == 1.0
    np.testing.assert_array_equal(out.gradient, [0.0, 0.0])


def test_debug_node_is_identity_and_logs_its_value(caplog):
    f = compile_primary(lambda x: mul(debug(x, "marker"), 2.0))
    with caplog.at_level(logging.DEBUG, logger="energy_ad.aad.core.engine"):
        out = f([3.0])
    assert out.primary == 6.0
    np.testing.assert_array_equal(out.gradient, [2.0])
    assert "marker" in caplog.text


def test_pow_partials():
    f = compile_primary(pow, 2)
    out = f([1.5, 2.5])
    assert out.primary == pytest.approx(1.5 ** 2.5)
    assert out.gradient[0] == pytest.approx(2.5 * 1.5 ** 1.5)
    assert out.gradient[1] == pytest.approx(1.5 ** 2.5 * math.log(1.5))

    # the exponent partial is 0 for non-positive bases
    out = f([-2.0, 2.0])
    assert out.primary == 4.0
    np.testing.assert_array_equal(out.gradient, [-4.0, 0.0])


@pytest.mark.parametrize("binop, point", [
    ("+", [0.3, -1.2]),
    ("-", [0.3, -1.2]),
    ("*", [0.3, -1.2]),
    ("/", [3.0, 2.0]),
    ("atan2", [0.7, -1.2]),
    ("pow", [1.5, 2.5]),
])
def test_binary_gradients_match_finite_differences(binop, point):
    f = compile_primary(lambda a, b: _binary(a, b, binop), 2)
    x = np.array(point)
    numeric = approx_fprime(x, lambda z: f(z).primary, 1e-7)
    np.testing.assert_allclose(f(x).gradient, numeric, rtol=1e-4, atol=1e-5)


SMOOTH_POINTS = {
    "neg": 0.7, "squared": 0.7, "sqrt": 2.0, "inverse": 2.0, "abs": -1.5,
    "acos": 0.3, "acosh": 1.5, "asin": 0.3, "asinh": 0.5, "atan": 0.7, "atanh": 0.3,
    "cbrt": 2.0, "cos": 0.7, "cosh": 0.5, "exp": 0.5, "expm1": 0.5,
    "ln": 2.0, "log2": 2.0, "log10": 2.0, "log1p": 0.5,
    "sin": 0.7, "sinh": 0.5, "tan": 0.3, "tanh": 0.5,
}


@pytest.mark.parametrize("unop", sorted(SMOOTH_POINTS))
def test_unary_gradients_match_finite_differences(unop):
    f = compile_primary(lambda x: _unary(x, unop))
    x = np.array([SMOOTH_POINTS[unop]])
    numeric = approx_fprime(x, lambda z: f(z).primary, 1e-7)
    np.testing.assert_allclose(f(x).gradient, numeric, rtol=1e-4, atol=1e-5)


@pytest.mark.parametrize("unop", ["ceil", "floor", "round", "sign", "trunc"])
def test_piecewise_constant_operators_have_zero_gradient(unop):
    f = compile_primary(lambda x: _unary(x, unop))
    np.testing.assert_array_equal(f([1.3]).gradient, [0.0])


def test_round_sends_halves_up():
    f = compile_primary(lambda x: _unary(x, "round"))
    assert f([2.5]).primary == 3.0
    assert f([-2.5]).primary == -2.0
    assert f([-2.6]).primary == -3.0


@pytest.mark.parametrize("unop", UNARY_OPS)
@pytest.mark.parametrize("point", [-0.5, 0.0, 2.5])
def test_folded_constants_agree_with_compiled_evaluation(unop, point):
    with use_tape():
        folded = _unary(point, unop).val
    compiled = compile_primary(lambda x: _unary(x, unop))([point]).primary
    np.testing.assert_array_equal(folded, compiled)


def test_evaluation_is_deterministic():
    with use_tape():
        primary, _ = random_graph(np.random.default_rng(3), n_inputs=5, n_ops=120)
        graph = primary_graph(primary)
    x = np.linspace(-1.0, 1.0, 5)
    first = gen_code(graph)(x)
    second = gen_code(graph)(x)
    again = gen_code(graph)(x)
    np.testing.assert_array_equal(first.gradient, second.gradient)
    np.testing.assert_array_equal(first.gradient, again.gradient)
    np.testing.assert_array_equal(first.primary, second.primary)


def test_non_finite_primary_is_logged_when_enabled(caplog):
    with use_tape():
        x = make_input(0, 0.0)
        graph = primary_graph(ln(x))
    f = gen_code(graph, EngineConfig(warn_non_finite=True))
    with caplog.at_level(logging.WARNING, logger="energy_ad.aad.core.engine"):
        out = f([0.0])
    assert out.primary == -math.inf
    assert "not finite" in caplog.text


def test_zero_adjoints_are_not_propagated_by_default():
    def build(a, b):
        return if_cond(gt(b, 0.0), a, sqrt(a))

    out = compile_primary(build, 2)([0.0, 1.0])
    np.testing.assert_array_equal(out.gradient, [1.0, 0.0])

    set_engine_config(EngineConfig(skip_zero_adjoints=False))
    out = compile_primary(build, 2)([0.0, 1.0])
    assert math.isnan(out.gradient[0])


def test_evaluator_keeps_the_config_it_was_compiled_with():
    f = compile_primary(lambda x: ln(x))
    set_engine_config(EngineConfig(warn_non_finite=True))
    assert not f._config.warn_non_finite


def test_node_values_cover_every_node():
    with use_tape():
        x = make_input(0, 2.0)
        graph = primary_graph(add(mul(x, 3.0), x))
    values = gen_code(graph).node_values([2.0])
    assert values == {"_0": 8.0, "_1": 6.0, "_2": 2.0, "_3": 3.0}


def test_convenience_wrappers():
    assert grad(lambda x: mul(sin(x), x), 0.5) == pytest.approx(math.cos(0.5) * 0.5 + math.sin(0.5))
    assert grads_list(lambda xs: add(mul(xs[0], xs[0]), mul(3.0, xs[1])), [2.0, 4.0]) == [4.0, 3.0]

    with use_tape():
        x = make_input(0, 0.5)
        assert value(x) == 0.5
        assert value(3) == 3
        with pytest.raises(ValueError):
            value(sin(x))
        assert nums_of([sin(x), 2, x]) == [pytest.approx(math.sin(0.5)), 2.0, 0.5]


def test_explicit_config_is_copied_at_compile_time():
    def build(a, b):
        return if_cond(gt(b, 0.0), a, sqrt(a))

    config = EngineConfig()
    with use_tape():
        a = make_input(0, 0.0)
        b = make_input(1, 1.0)
        f = gen_code(primary_graph(build(a, b)), config)
    config.skip_zero_adjoints = False
    np.testing.assert_array_equal(f([0.0, 1.0]).gradient, [1.0, 0.0])
