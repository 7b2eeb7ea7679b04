from __future__ import annotations

import numpy as np
import pytest

import sde_lab
from sde_lab.config.models import EngineSettings
from sde_lab.engine import run_monte_carlo, solve
from sde_lab.sde.ensemble import CancelToken
from sde_lab.sde.errors import (
    EmptyEnsembleError,
    InvalidParameterError,
    UnsupportedModelError,
)
from sde_lab.sde.schemas import MonteCarloResult, ParameterSet
from sde_lab.sde.wiener import rng_with_seed


def test_solve_with_seed_is_reproducible(gbm_params):
    a = solve("gbm", gbm_params, seed=10)
    b = solve("gbm", gbm_params, seed=10)
    np.testing.assert_array_equal(a.values, b.values)


def test_solve_with_rng(gbm_params):
    a = solve("gbm", gbm_params, rng=rng_with_seed(3))
    b = solve("gbm", gbm_params, rng=rng_with_seed(3))
    np.testing.assert_array_equal(a.values, b.values)


def test_solve_with_increments_and_mapping():
    params = {"mu": 0.0, "sigma": 1.0, "X0": 2.0, "T": 1.0, "steps": 3}
    path = solve("abm", params, increments=[1.0, -2.0, 0.5])
    np.testing.assert_allclose(path.values, [2.0, 3.0, 1.0, 1.5])


def test_solve_uses_settings_clamp():
    p = ParameterSet(mu=0.0, sigma=1.0, X0=0.0, T=1.0, steps=2)
    path = solve("abm", p, increments=[50.0, -50.0], settings=EngineSettings(clamp_limit=3.0))
    np.testing.assert_allclose(path.values, [0.0, 3.0, 0.0])


def test_solve_rejects_bad_input(gbm_params):
    with pytest.raises(UnsupportedModelError):
        solve("heston", gbm_params)
    with pytest.raises(InvalidParameterError):
        solve("gbm", [0.05, 0.2])
    with pytest.raises(InvalidParameterError):
        solve("gbm", {"mu": 0.0, "sigma": 1.0, "X0": 1.0, "T": -1.0, "steps": 5})
    # mean-reverting model without theta
    with pytest.raises(InvalidParameterError):
        solve("ou", {"mu": 0.0, "sigma": 1.0, "X0": 1.0, "T": 1.0, "steps": 100})


def test_run_monte_carlo_bundles_statistics(ou_params):
    res = run_monte_carlo("ou", ou_params, 200, seed=9)

    assert isinstance(res, MonteCarloResult)
    assert res.ensemble.n_paths == 200
    assert res.statistics.n_paths == 200
    np.testing.assert_allclose(res.statistics.time, ou_params.time_grid())
    np.testing.assert_allclose(res.statistics.mean, res.ensemble.values.mean(axis=0))
    # long horizon: mean close to the long-run level mu
    assert res.statistics.mean[-1] == pytest.approx(ou_params.mu, abs=0.005)


def test_run_monte_carlo_progress_and_cancel(abm_params, small_batches):
    token = CancelToken()
    token.cancel()
    with pytest.raises(EmptyEnsembleError):
        run_monte_carlo("abm", abm_params, 20, cancel=token, settings=small_batches)

    seen = []
    run_monte_carlo("abm", abm_params, 20, progress=seen.append, settings=small_batches)
    assert seen[-1] == 1.0


def test_package_exports():
    for name in sde_lab.__all__:
        assert hasattr(sde_lab, name)
    assert sde_lab.__version__ == "0.1.0"
