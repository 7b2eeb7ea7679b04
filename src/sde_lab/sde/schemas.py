# src/sde_lab/sde/schemas.py
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sde_lab.sde.errors import InvalidParameterError


class ModelKind(str, Enum):
    """Closed set of supported SDE families."""

    GBM = "gbm"
    OU = "ou"
    ABM = "abm"


# Fields a sensitivity sweep may substitute.
SWEEPABLE_PARAMETERS: Tuple[str, ...] = ("mu", "sigma", "theta", "X0", "T", "steps")


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=float)
    arr.setflags(write=False)
    return arr


class ParameterSet(BaseModel):
    """
    Parameters of one SDE run.

        dX = mu(X, t) dt + sigma(X, t) dW,   X(0) = X0,   t in [0, T]

    mu:    drift coefficient (long-run mean for OU)
    sigma: diffusion coefficient, >= 0
    theta: mean-reversion rate, required (> 0) for OU only
    X0:    initial value
    T:     time horizon, > 0
    steps: number of Euler steps, > 0

    Instances are immutable. Any violation raises InvalidParameterError.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    mu: float
    sigma: float = Field(..., ge=0.0)
    theta: Optional[float] = Field(default=None, gt=0.0)
    X0: float
    T: float = Field(..., gt=0.0)
    steps: int = Field(..., gt=0)

    @field_validator("steps", mode="before")
    @classmethod
    def _steps_not_bool(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("steps must be an integer, not a bool")
        return v

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidParameterError(f"Invalid parameters: {e}") from e

    @property
    def dt(self) -> float:
        return self.T / self.steps

    def time_grid(self) -> np.ndarray:
        """t_i = i * dt for i in [0, steps]."""
        return np.arange(self.steps + 1, dtype=float) * self.dt

    def with_value(self, name: str, value: Any) -> "ParameterSet":
        """Return a revalidated copy with one field replaced."""
        if name not in SWEEPABLE_PARAMETERS:
            raise InvalidParameterError(
                f"Unknown parameter '{name}'. Sweepable: {list(SWEEPABLE_PARAMETERS)}"
            )
        data = self.model_dump()
        data[name] = value
        return ParameterSet(**data)


@dataclass(frozen=True, eq=False)
class Path:
    """One simulated sample path."""

    time: np.ndarray
    values: np.ndarray
    parameters: ParameterSet
    model: ModelKind

    def __post_init__(self):
        object.__setattr__(self, "time", _readonly(self.time))
        object.__setattr__(self, "values", _readonly(self.values))
        if self.time.shape != self.values.shape:
            raise InvalidParameterError("time and values must have equal length")

    def __len__(self) -> int:
        return int(self.values.shape[0])

    @property
    def final_value(self) -> float:
        return float(self.values[-1])


@dataclass(frozen=True, eq=False)
class Ensemble:
    """
    Monte Carlo ensemble: n_paths paths sharing one time grid and one
    ParameterSet, stored row-wise in `values` (n_paths, steps + 1).

    requested: number of paths the caller asked for
    dropped:   paths discarded because their integration was unstable
    cancelled: True when the run stopped early on a cancel request
    """

    model: ModelKind
    parameters: ParameterSet
    time: np.ndarray
    values: np.ndarray
    requested: int
    dropped: int = 0
    cancelled: bool = False

    def __post_init__(self):
        object.__setattr__(self, "time", _readonly(self.time))
        values = np.array(self.values, dtype=float).reshape(-1, self.time.shape[0])
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    @property
    def n_paths(self) -> int:
        return int(self.values.shape[0])

    def __len__(self) -> int:
        return self.n_paths

    def __getitem__(self, i: int) -> Path:
        return Path(
            time=self.time,
            values=self.values[i],
            parameters=self.parameters,
            model=self.model,
        )

    def __iter__(self) -> Iterator[Path]:
        for i in range(self.n_paths):
            yield self[i]

    @property
    def terminal_values(self) -> np.ndarray:
        return self.values[:, -1]

    @property
    def complete(self) -> bool:
        return not self.cancelled and self.n_paths + self.dropped == self.requested


@dataclass(frozen=True, eq=False)
class StatisticsSummary:
    """Cross-sectional statistics per time index of an ensemble."""

    time: np.ndarray
    mean: np.ndarray
    variance: np.ndarray
    p5: np.ndarray
    p25: np.ndarray
    p50: np.ndarray
    p75: np.ndarray
    p95: np.ndarray
    n_paths: int

    @property
    def percentiles(self) -> Dict[str, np.ndarray]:
        return {
            "p5": self.p5,
            "p25": self.p25,
            "p50": self.p50,
            "p75": self.p75,
            "p95": self.p95,
        }

    @property
    def std(self) -> np.ndarray:
        return np.sqrt(self.variance)

    def to_frame(self) -> pd.DataFrame:
        """Statistics as a DataFrame indexed by time."""
        data = {"mean": self.mean, "variance": self.variance}
        data.update(self.percentiles)
        return pd.DataFrame(data, index=pd.Index(self.time, name="time"))


@dataclass(frozen=True, eq=False)
class MonteCarloResult:
    """An ensemble together with its statistics."""

    ensemble: Ensemble
    statistics: StatisticsSummary


@dataclass(frozen=True, eq=False)
class SensitivityPoint:
    """Outcome of the mini-ensemble run for one candidate value."""

    value: float
    final_values: np.ndarray
    mean_final_value: float
    std_final_value: float


@dataclass(frozen=True, eq=False)
class SensitivityResult:
    """
    1-D sweep output: one SensitivityPoint per tested value, in the order
    given, plus the unperturbed base-case path for reference.
    """

    parameter: str
    values: Tuple[float, ...]
    results: Tuple[SensitivityPoint, ...]
    base_case: Path
    paths_per_value: int

    @property
    def mean_final_values(self) -> np.ndarray:
        return np.array([r.mean_final_value for r in self.results], dtype=float)

    @property
    def std_final_values(self) -> np.ndarray:
        return np.array([r.std_final_value for r in self.results], dtype=float)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "mean_final_value": self.mean_final_values,
                "std_final_value": self.std_final_values,
            },
            index=pd.Index(self.values, name=self.parameter),
        )


@dataclass(frozen=True, eq=False)
class SweepGrid:
    """
    2-D sweep output.

    grid[i, j]: mean terminal value for (values1[i], values2[j])
    std_grid[i, j]: population std of those terminal values (0 for one path)
    paths_per_cell: sample size behind each cell
    """

    param1: str
    values1: Tuple[float, ...]
    param2: str
    values2: Tuple[float, ...]
    grid: np.ndarray
    std_grid: np.ndarray
    paths_per_cell: int


def as_parameter_set(parameters: Any) -> ParameterSet:
    """Accept a ParameterSet or a plain mapping of its fields."""
    if isinstance(parameters, ParameterSet):
        return parameters
    if isinstance(parameters, Mapping):
        return ParameterSet(**dict(parameters))
    raise InvalidParameterError(
        f"parameters must be a ParameterSet or mapping, got {type(parameters).__name__}"
    )


def as_count(name: str, n: Any) -> int:
    """Validate a path count: an integer >= 1 (integral floats allowed, bools not)."""
    if isinstance(n, bool):
        raise InvalidParameterError(f"{name} must be an integer >= 1, got {n!r}")
    if isinstance(n, numbers.Integral):
        value = int(n)
    elif isinstance(n, numbers.Real) and math.isfinite(n) and float(n).is_integer():
        value = int(n)
    else:
        raise InvalidParameterError(f"{name} must be an integer >= 1, got {n!r}")
    if value < 1:
        raise InvalidParameterError(f"{name} must be an integer >= 1, got {n!r}")
    return value
