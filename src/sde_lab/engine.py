from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import numpy as np

from sde_lab.config.models import EngineSettings
from sde_lab.sde.ensemble import CancelToken, ProgressCallback, simulate_ensemble
from sde_lab.sde.integrators import euler_maruyama
from sde_lab.sde.models import create_model
from sde_lab.sde.schemas import MonteCarloResult, Path, as_parameter_set
from sde_lab.sde.sensitivity import analyze_sensitivity, parameter_sweep_2d
from sde_lab.sde.statistics import calculate_statistics
from sde_lab.sde.wiener import rng_with_seed

LOGGER = logging.getLogger(__name__)

__all__ = [
    "solve",
    "simulate_ensemble",
    "calculate_statistics",
    "run_monte_carlo",
    "analyze_sensitivity",
    "parameter_sweep_2d",
]


# ======================================================================
# Single path
# ======================================================================


def solve(
    model_tag: Any,
    parameters: Any,
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    increments: Optional[Sequence[float]] = None,
    settings: Optional[EngineSettings] = None,
) -> Path:
    """
    Generate one Euler-Maruyama path.

    parameters: ParameterSet or mapping of its fields.
    seed / rng: random stream for the increments (rng wins if both given).
    increments: pre-generated dW of length steps, bypassing the sampler.

    Raises InvalidParameterError, UnsupportedModelError or
    NumericalInstabilityError.
    """
    settings = settings or EngineSettings()
    params = as_parameter_set(parameters)
    model = create_model(model_tag, params)

    if increments is None and rng is None:
        rng = rng_with_seed(seed)

    return euler_maruyama(
        model, increments=increments, rng=rng, clamp_limit=settings.clamp_limit
    )


# ======================================================================
# Ensemble + statistics
# ======================================================================


def run_monte_carlo(
    model_tag: Any,
    parameters: Any,
    path_count: int,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
    *,
    seed: Optional[int] = None,
    settings: Optional[EngineSettings] = None,
) -> MonteCarloResult:
    """Simulate an ensemble and reduce it to per-time-step statistics."""
    ensemble = simulate_ensemble(
        model_tag,
        parameters,
        path_count,
        progress,
        cancel,
        seed=seed,
        settings=settings,
    )
    stats = calculate_statistics(ensemble)
    LOGGER.info(
        "Monte Carlo done: %d paths, terminal mean=%.6g var=%.6g",
        stats.n_paths,
        stats.mean[-1],
        stats.variance[-1],
    )
    return MonteCarloResult(ensemble=ensemble, statistics=stats)
