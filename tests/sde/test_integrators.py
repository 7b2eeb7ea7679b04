# tests/sde/test_integrators.py
import numpy as np
import pytest

from sde_lab.sde import models
from sde_lab.sde.errors import InvalidParameterError, NumericalInstabilityError
from sde_lab.sde.integrators import (
    euler_maruyama,
    euler_maruyama_step,
    first_unstable_step,
    integrate_paths,
)
from sde_lab.sde.models import create_model
from sde_lab.sde.schemas import ModelKind, ParameterSet
from sde_lab.sde.wiener import rng_with_seed


def test_step_matches_formula():
    x_next = euler_maruyama_step(1.0, drift=0.5, diffusion=0.2, dt=0.1, dW=0.3)
    assert np.isclose(x_next, 1.0 + 0.05 + 0.06)


def test_step_clamps_each_term_separately():
    x_next = euler_maruyama_step(
        0.0, drift=1e9, diffusion=-1e9, dt=1.0, dW=1.0, clamp_limit=10.0
    )
    # +10 from drift, -10 from diffusion
    assert x_next == 0.0

    x_next = euler_maruyama_step(5.0, drift=1e9, diffusion=0.0, dt=1.0, dW=1.0, clamp_limit=10.0)
    assert x_next == 15.0


def test_abm_with_given_increments_is_exact_sum():
    p = ParameterSet(mu=1.0, sigma=2.0, X0=0.5, T=1.0, steps=4)
    dW = [0.1, -0.2, 0.05, 0.3]
    path = euler_maruyama(create_model("abm", p), increments=dW)

    expected = [0.5]
    for w in dW:
        expected.append(expected[-1] + 1.0 * 0.25 + 2.0 * w)

    np.testing.assert_allclose(path.values, expected)
    np.testing.assert_allclose(path.time, [0.0, 0.25, 0.5, 0.75, 1.0])
    assert path.model is ModelKind.ABM
    assert path.parameters is p


def test_zero_sigma_gbm_is_deterministic_euler_growth():
    p = ParameterSet(mu=0.1, sigma=0.0, X0=100.0, T=1.0, steps=10)
    path = euler_maruyama(create_model("gbm", p), rng=rng_with_seed(3))

    expected = 100.0 * (1.0 + 0.1 * 0.1) ** np.arange(11)
    np.testing.assert_allclose(path.values, expected, rtol=1e-12)


def test_ou_zero_noise_converges_to_mu():
    p = ParameterSet(mu=0.05, sigma=0.0, theta=2.0, X0=0.5, T=10.0, steps=1000)
    path = euler_maruyama(create_model("ou", p), rng=rng_with_seed(0))
    assert abs(path.final_value - 0.05) < 1e-6
    # monotone decay from above
    assert np.all(np.diff(path.values) <= 0.0)


def test_path_length_and_start(gbm_params):
    path = euler_maruyama(create_model("gbm", gbm_params), rng=rng_with_seed(42))
    assert len(path) == gbm_params.steps + 1
    assert path.values[0] == gbm_params.X0
    assert path.time[-1] == pytest.approx(gbm_params.T)


def test_same_rng_seed_same_path(gbm_params):
    m = create_model("gbm", gbm_params)
    a = euler_maruyama(m, rng=rng_with_seed(9))
    b = euler_maruyama(m, rng=rng_with_seed(9))
    np.testing.assert_array_equal(a.values, b.values)


def test_path_arrays_are_read_only(abm_params):
    path = euler_maruyama(create_model("abm", abm_params), rng=rng_with_seed(1))
    with pytest.raises(ValueError):
        path.values[0] = 1.0


def test_wrong_increment_count_rejected(abm_params):
    m = create_model("abm", abm_params)
    with pytest.raises(InvalidParameterError):
        euler_maruyama(m, increments=np.zeros(abm_params.steps - 1))


def test_non_finite_increments_rejected(abm_params):
    m = create_model("abm", abm_params)
    dW = np.zeros(abm_params.steps)
    dW[3] = np.nan
    with pytest.raises(InvalidParameterError):
        euler_maruyama(m, increments=dW)


def test_bad_clamp_limit_rejected(abm_params):
    m = create_model("abm", abm_params)
    with pytest.raises(InvalidParameterError):
        integrate_paths(m, np.zeros((1, abm_params.steps)), clamp_limit=0.0)


def test_first_unstable_step_per_row():
    states = np.array(
        [
            [0.0, 1.0, 2.0, 3.0],
            [0.0, 1.0, np.nan, np.nan],
            [0.0, np.inf, np.nan, np.nan],
        ]
    )
    np.testing.assert_array_equal(first_unstable_step(states), [-1, 1, 0])


def test_instability_reports_failing_step(monkeypatch):
    def nan_after_half(p, x, t):
        return np.full_like(x, np.nan) if t > 0.45 else np.zeros_like(x)

    monkeypatch.setitem(models._DRIFT, ModelKind.ABM, nan_after_half)

    p = ParameterSet(mu=0.0, sigma=0.0, X0=1.0, T=1.0, steps=10)
    with pytest.raises(NumericalInstabilityError) as exc:
        euler_maruyama(create_model("abm", p), increments=np.zeros(10))

    # t_5 = 0.5 is the first time above 0.45
    assert exc.value.step == 5
    assert exc.value.parameters == p
    assert exc.value.path_index is None
    assert "step 5" in str(exc.value)


def test_clamping_keeps_explosive_gbm_finite():
    p = ParameterSet(mu=50.0, sigma=5.0, X0=1.0, T=10.0, steps=100)
    path = euler_maruyama(create_model("gbm", p), rng=rng_with_seed(4), clamp_limit=1.0)
    assert np.all(np.isfinite(path.values))
    # each step moves by at most 2C
    assert np.max(np.abs(np.diff(path.values))) <= 2.0 + 1e-12
