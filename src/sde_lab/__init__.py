"""sde_lab: Euler-Maruyama SDE simulation, Monte Carlo statistics and sensitivity sweeps."""

from sde_lab.engine import (
    analyze_sensitivity,
    calculate_statistics,
    parameter_sweep_2d,
    run_monte_carlo,
    simulate_ensemble,
    solve,
)
from sde_lab.sde.ensemble import CancelToken
from sde_lab.sde.errors import (
    EmptyEnsembleError,
    InvalidParameterError,
    NumericalInstabilityError,
    SDEError,
    UnsupportedModelError,
)
from sde_lab.sde.schemas import ModelKind, ParameterSet

__version__ = "0.1.0"

__all__ = [
    "solve",
    "simulate_ensemble",
    "calculate_statistics",
    "run_monte_carlo",
    "analyze_sensitivity",
    "parameter_sweep_2d",
    "CancelToken",
    "ModelKind",
    "ParameterSet",
    "SDEError",
    "InvalidParameterError",
    "UnsupportedModelError",
    "NumericalInstabilityError",
    "EmptyEnsembleError",
]
