# aad/core/config.py
"""Engine-wide constants and runtime switches."""

from __future__ import annotations

import copy
from dataclasses import dataclass

# Added to every denominator of `/` and `inverse` so that x/0 stays finite.
# Fixed for the whole engine: constant folding and compiled evaluators must agree.
EPS_DENOM = 1e-10


@dataclass
class EngineConfig:
    """
    Switches read by `gen_code` when an evaluator is compiled.

    Attributes:
        warn_non_finite: log a warning whenever the primary value is NaN/Inf.
        log_debug_nodes: log the value of every Debug node at DEBUG level.
        skip_zero_adjoints: do not propagate from nodes whose adjoint is 0
            (keeps 0 * inf from turning unrelated gradients into NaN).
    """
    warn_non_finite: bool = False
    log_debug_nodes: bool = True
    skip_zero_adjoints: bool = True


_ENGINE_CONFIG = EngineConfig()


def get_engine_config() -> EngineConfig:
    return copy.deepcopy(_ENGINE_CONFIG)


def set_engine_config(config: EngineConfig) -> None:
    global _ENGINE_CONFIG
    _ENGINE_CONFIG = copy.deepcopy(config)
