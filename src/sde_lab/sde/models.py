# src/sde_lab/sde/models.py
"""
Drift / diffusion definitions of the supported SDE families.

    gbm:  dX = mu X dt + sigma X dW
    ou:   dX = theta (mu - X) dt + sigma dW
    abm:  dX = mu dt + sigma dW

A model is a (ModelKind, ParameterSet) pair; behaviour is looked up in
per-kind tables rather than spread over a class hierarchy.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Union

import numpy as np

from sde_lab.sde.errors import InvalidParameterError, UnsupportedModelError
from sde_lab.sde.schemas import ModelKind, ParameterSet

ArrayLike = Union[float, np.ndarray]
Coefficient = Callable[[ParameterSet, ArrayLike, float], ArrayLike]


def _gbm_drift(p: ParameterSet, x: ArrayLike, t: float) -> ArrayLike:
    return p.mu * x


def _gbm_diffusion(p: ParameterSet, x: ArrayLike, t: float) -> ArrayLike:
    return p.sigma * x


def _ou_drift(p: ParameterSet, x: ArrayLike, t: float) -> ArrayLike:
    return p.theta * (p.mu - x)


def _constant_drift(p: ParameterSet, x: ArrayLike, t: float) -> ArrayLike:
    return p.mu + np.zeros_like(x, dtype=float)


def _constant_diffusion(p: ParameterSet, x: ArrayLike, t: float) -> ArrayLike:
    return p.sigma + np.zeros_like(x, dtype=float)


_DRIFT: Dict[ModelKind, Coefficient] = {
    ModelKind.GBM: _gbm_drift,
    ModelKind.OU: _ou_drift,
    ModelKind.ABM: _constant_drift,
}

_DIFFUSION: Dict[ModelKind, Coefficient] = {
    ModelKind.GBM: _gbm_diffusion,
    ModelKind.OU: _constant_diffusion,
    ModelKind.ABM: _constant_diffusion,
}

_NAMES: Dict[ModelKind, str] = {
    ModelKind.GBM: "Geometric Brownian Motion",
    ModelKind.OU: "Ornstein-Uhlenbeck Process",
    ModelKind.ABM: "Arithmetic Brownian Motion",
}

_LATEX: Dict[ModelKind, str] = {
    ModelKind.GBM: r"dX_t = \mu X_t dt + \sigma X_t dW_t",
    ModelKind.OU: r"dX_t = \theta(\mu - X_t) dt + \sigma dW_t",
    ModelKind.ABM: r"dX_t = \mu dt + \sigma dW_t",
}

# Kinds whose drift needs theta.
_MEAN_REVERTING = frozenset({ModelKind.OU})


@dataclass(frozen=True)
class ProcessModel:
    kind: ModelKind
    parameters: ParameterSet

    def drift(self, x: ArrayLike, t: float) -> ArrayLike:
        """mu(X, t); works element-wise on arrays of path states."""
        return _DRIFT[self.kind](self.parameters, x, t)

    def diffusion(self, x: ArrayLike, t: float) -> ArrayLike:
        """sigma(X, t); works element-wise on arrays of path states."""
        return _DIFFUSION[self.kind](self.parameters, x, t)

    def name(self) -> str:
        return _NAMES[self.kind]

    def equation_latex(self) -> str:
        return _LATEX[self.kind]


def available_models() -> List[str]:
    return [k.value for k in ModelKind]


def resolve_kind(tag: Union[str, ModelKind]) -> ModelKind:
    """Map a model tag to its ModelKind or raise UnsupportedModelError."""
    if isinstance(tag, ModelKind):
        return tag
    try:
        return ModelKind(str(tag).strip().lower())
    except ValueError:
        raise UnsupportedModelError(tag, available_models()) from None


def create_model(tag: Union[str, ModelKind], parameters: ParameterSet) -> ProcessModel:
    """
    Factory for ProcessModel.

    Raises UnsupportedModelError for unknown tags and InvalidParameterError
    when a mean-reverting model is built without theta.
    """
    kind = resolve_kind(tag)
    if not isinstance(parameters, ParameterSet):
        raise InvalidParameterError(
            f"parameters must be a ParameterSet, got {type(parameters).__name__}"
        )
    if kind in _MEAN_REVERTING and parameters.theta is None:
        raise InvalidParameterError(
            f"Model '{kind.value}' requires a positive theta (mean-reversion rate)"
        )
    return ProcessModel(kind=kind, parameters=parameters)
