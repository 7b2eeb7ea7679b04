# tests/sde/test_models.py
import math

import numpy as np
import pytest

from sde_lab.sde import models
from sde_lab.sde.errors import InvalidParameterError, UnsupportedModelError
from sde_lab.sde.models import available_models, create_model
from sde_lab.sde.schemas import ModelKind, ParameterSet


def _params(**overrides):
    base = dict(mu=0.5, sigma=0.3, theta=2.0, X0=1.0, T=1.0, steps=10)
    base.update(overrides)
    return ParameterSet(**base)


def test_gbm_coefficients():
    m = create_model("gbm", _params())
    assert math.isclose(m.drift(2.0, 0.0), 0.5 * 2.0)
    assert math.isclose(m.diffusion(2.0, 0.0), 0.3 * 2.0)
    assert m.name() == "Geometric Brownian Motion"
    assert m.equation_latex() == r"dX_t = \mu X_t dt + \sigma X_t dW_t"


def test_ou_coefficients():
    m = create_model("ou", _params())
    assert math.isclose(m.drift(2.0, 0.0), 2.0 * (0.5 - 2.0))
    assert math.isclose(m.diffusion(2.0, 0.0), 0.3)
    assert m.name() == "Ornstein-Uhlenbeck Process"
    assert "theta" in m.equation_latex()


def test_abm_coefficients():
    m = create_model("abm", _params())
    assert math.isclose(m.drift(123.0, 0.7), 0.5)
    assert math.isclose(m.diffusion(-4.0, 0.2), 0.3)
    assert m.name() == "Arithmetic Brownian Motion"


def test_coefficients_vectorise_over_paths():
    x = np.array([1.0, 2.0, 3.0])
    for tag in available_models():
        m = create_model(tag, _params())
        assert np.shape(m.drift(x, 0.0)) == (3,)
        assert np.shape(m.diffusion(x, 0.0)) == (3,)


def test_every_kind_has_all_table_entries():
    for table in (models._DRIFT, models._DIFFUSION, models._NAMES, models._LATEX):
        assert set(table) == set(ModelKind)


def test_factory_accepts_kind_and_case_insensitive_tag():
    assert create_model(ModelKind.OU, _params()).kind is ModelKind.OU
    assert create_model("GBM", _params()).kind is ModelKind.GBM


def test_unknown_tag_raises():
    with pytest.raises(UnsupportedModelError) as exc:
        create_model("heston", _params())
    assert exc.value.tag == "heston"
    assert "gbm" in exc.value.available


def test_ou_requires_theta():
    params = ParameterSet(mu=0.0, sigma=1.0, X0=1.0, T=1.0, steps=100)
    with pytest.raises(InvalidParameterError):
        create_model("ou", params)
    # non mean-reverting models don't need theta
    create_model("gbm", params)
    create_model("abm", params)


@pytest.mark.parametrize(
    "overrides",
    [
        {"T": 0.0},
        {"T": -1.0},
        {"steps": 0},
        {"steps": 2.5},
        {"steps": True},
        {"sigma": -0.1},
        {"theta": 0.0},
        {"mu": float("nan")},
        {"X0": float("inf")},
    ],
)
def test_invalid_parameters_rejected(overrides):
    with pytest.raises(InvalidParameterError):
        _params(**overrides)


def test_unknown_field_rejected():
    with pytest.raises(InvalidParameterError):
        ParameterSet(mu=0.0, sigma=1.0, X0=0.0, T=1.0, steps=10, kappa=1.0)


def test_parameter_set_is_immutable():
    p = _params()
    with pytest.raises(Exception):
        p.mu = 1.0


def test_with_value_copies_and_revalidates():
    p = _params()
    q = p.with_value("sigma", 0.9)
    assert q.sigma == 0.9
    assert p.sigma == 0.3
    assert q.mu == p.mu and q.steps == p.steps

    with pytest.raises(InvalidParameterError):
        p.with_value("sigma", -1.0)
    with pytest.raises(InvalidParameterError):
        p.with_value("kappa", 1.0)


def test_time_grid():
    p = _params(T=2.0, steps=4)
    assert p.dt == 0.5
    np.testing.assert_allclose(p.time_grid(), [0.0, 0.5, 1.0, 1.5, 2.0])
