from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sde_lab.sde.schemas import SWEEPABLE_PARAMETERS, ParameterSet


# ============================================================
# Engine settings
# ============================================================


class FailurePolicy(str, Enum):
    """What the ensemble runner does with a numerically unstable path."""

    ABORT = "abort"
    DROP = "drop"


class EngineSettings(BaseModel):
    """
    Numerical and scheduling controls shared by all engine entry points.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    clamp_limit: float = Field(
        default=1000.0,
        gt=0.0,
        allow_inf_nan=False,
        description="Bound C on each of |drift*dt| and |diffusion*dW| per step.",
    )
    batch_size: int = Field(
        default=100, ge=1, description="Paths integrated together by one worker."
    )
    max_workers: int = Field(
        default=1, ge=1, description="Worker count; 1 runs batches inline."
    )
    executor: Literal["process", "thread"] = "process"
    failure_policy: FailurePolicy = FailurePolicy.ABORT
    sensitivity_paths: int = Field(
        default=20, ge=1, description="Mini-ensemble size per 1-D sweep value."
    )


# ============================================================
# Sensitivity settings
# ============================================================


class SensitivitySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    parameter: str
    values: List[float] = Field(..., min_length=1)
    paths_per_value: Optional[int] = Field(default=None, ge=1)

    @field_validator("parameter")
    @classmethod
    def _known_parameter(cls, v: str) -> str:
        if v not in SWEEPABLE_PARAMETERS:
            raise ValueError(
                f"parameter must be one of {list(SWEEPABLE_PARAMETERS)}, got '{v}'"
            )
        return v


# ============================================================
# Top-level SimulationConfig
# ============================================================


class SimulationConfig(BaseModel):
    """
    One simulation run as described by a YAML/JSON file.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = "default_run"
    model: str = "gbm"
    parameters: ParameterSet
    n_paths: int = Field(default=1000, ge=1)
    seed: Optional[int] = None

    settings: EngineSettings = Field(default_factory=EngineSettings)
    sensitivity: Optional[SensitivitySettings] = None
