# src/sde_lab/sde/errors.py
from __future__ import annotations

from typing import Any, Optional


class SDEError(Exception):
    """Base class for every error raised by the simulation engine."""

    pass


class InvalidParameterError(SDEError, ValueError):
    """
    Raised when a parameter record or call argument violates the engine's
    numeric preconditions (non-finite values, T <= 0, steps <= 0,
    sigma < 0, missing theta for a mean-reverting model, ...).
    """

    pass


class UnsupportedModelError(SDEError, ValueError):
    """Raised by the model factory for an unrecognised model tag."""

    def __init__(self, tag: Any, available: Optional[list[str]] = None):
        self.tag = tag
        self.available = list(available or [])
        msg = f"Unsupported model: {tag!r}"
        if self.available:
            msg += f". Available: {self.available}"
        super().__init__(msg)


class NumericalInstabilityError(SDEError, ArithmeticError):
    """
    Raised when a path's integration produces a non-finite state despite
    clamping of the drift and diffusion contributions.

    step: index i of the Euler step whose update X[i] -> X[i+1] went non-finite
    parameters: the ParameterSet in effect
    path_index: position of the path inside an ensemble (None for solve)
    """

    def __init__(
        self,
        step: int,
        parameters: Any = None,
        path_index: Optional[int] = None,
    ):
        self.step = int(step)
        self.parameters = parameters
        self.path_index = path_index
        msg = f"Numerical instability detected at step {self.step}"
        if path_index is not None:
            msg += f" (path {path_index})"
        super().__init__(msg)


class EmptyEnsembleError(SDEError, ValueError):
    """Raised when statistics are requested over zero paths."""

    pass
