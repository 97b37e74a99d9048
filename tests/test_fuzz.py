import json

import numpy as np
import pytest

from energy_ad.aad import gen_code, load, primary_graph, to_json, use_tape
from energy_ad.aad.core.node import Input
from energy_ad.aad.fuzz import check_gradient, fuzz, main, random_graph, sample_point


def test_fuzz_writes_graph_and_outputs(tmp_path):
    graph = fuzz(tmp_path, seed=1, n_inputs=3, n_ops=30)

    assert to_json(load(tmp_path / "graph.json")) == to_json(graph)
    outputs = json.loads((tmp_path / "outputs.json").read_text(encoding="utf-8"))
    assert set(outputs) == {"gradient", "primary", "secondary"}
    assert len(outputs["gradient"]) == graph.num_inputs == 3
    assert set(outputs["secondary"]) == set(graph.nodes)
    assert outputs["secondary"][graph.primary] == pytest.approx(outputs["primary"], nan_ok=True)


def test_fuzz_is_reproducible(tmp_path):
    fuzz(tmp_path / "a", seed=4)
    fuzz(tmp_path / "b", seed=4)
    for name in ("graph.json", "outputs.json"):
        assert (tmp_path / "a" / name).read_text() == (tmp_path / "b" / name).read_text()


def test_random_graph_uses_every_requested_input():
    with use_tape():
        primary, inputs = random_graph(np.random.default_rng(0), n_inputs=5, n_ops=10)
        graph = primary_graph(primary)
    assert len(inputs) == 5
    assert graph.num_inputs == 5
    assert all(isinstance(h.op, Input) for h in inputs)


def test_sample_point_reads_input_values():
    with use_tape():
        primary, inputs = random_graph(np.random.default_rng(2), n_inputs=3, n_ops=40)
        graph = primary_graph(primary)
    x = sample_point(graph)
    assert len(x) == 3
    for h in inputs:
        if any(op == h.op for op in graph.nodes.values()):
            assert x[h.op.index] == h.val


@pytest.mark.parametrize("seed", range(8))
def test_smooth_graphs_match_finite_differences(seed):
    with use_tape():
        primary, _ = random_graph(np.random.default_rng(seed), n_inputs=4, n_ops=25, smooth=True)
        graph = primary_graph(primary)
    evaluator = gen_code(graph)
    result = check_gradient(evaluator, sample_point(graph))
    assert np.all(np.isfinite(result.analytic))
    assert result.max_error <= 1e-3 * (1.0 + np.max(np.abs(result.analytic)))


def test_cli_writes_fixtures(tmp_path, capsys):
    assert main(["--seed", "3", "--inputs", "2", "--ops", "15", "--out", str(tmp_path), "--smooth", "--check"]) == 0
    assert (tmp_path / "graph.json").exists()
    assert (tmp_path / "outputs.json").exists()
    assert "max |analytic - numeric|" in capsys.readouterr().out
