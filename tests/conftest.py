import pytest

from sde_lab.config.models import EngineSettings
from sde_lab.sde.schemas import ParameterSet


@pytest.fixture
def abm_params():
    return ParameterSet(mu=0.0, sigma=1.0, X0=0.0, T=1.0, steps=50)


@pytest.fixture
def gbm_params():
    return ParameterSet(mu=0.05, sigma=0.2, X0=100.0, T=1.0, steps=100)


@pytest.fixture
def ou_params():
    return ParameterSet(mu=0.05, sigma=0.01, theta=2.0, X0=0.03, T=5.0, steps=260)


@pytest.fixture
def small_batches():
    return EngineSettings(batch_size=10)
