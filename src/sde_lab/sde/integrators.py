# src/sde_lab/sde/integrators.py
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Union

import numpy as np

from sde_lab.sde.errors import InvalidParameterError, NumericalInstabilityError
from sde_lab.sde.models import ProcessModel
from sde_lab.sde.schemas import Path
from sde_lab.sde.wiener import rng_with_seed, wiener_increments

LOGGER = logging.getLogger(__name__)

DEFAULT_CLAMP_LIMIT = 1000.0

ArrayLike = Union[float, np.ndarray]


def _check_clamp_limit(clamp_limit: float) -> float:
    c = float(clamp_limit)
    if not math.isfinite(c) or c <= 0.0:
        raise InvalidParameterError(f"clamp_limit must be finite and > 0, got {c}")
    return c


def euler_maruyama_step(
    x: ArrayLike,
    drift: ArrayLike,
    diffusion: ArrayLike,
    dt: float,
    dW: ArrayLike,
    clamp_limit: float = DEFAULT_CLAMP_LIMIT,
) -> ArrayLike:
    """
    Single Euler-Maruyama step:
    X_{t+dt} = X_t + clip(a(X_t)*dt, +-C) + clip(b(X_t)*dW, +-C)
    Here we pass precomputed drift and diffusion values for speed.
    """
    drift_term = np.clip(drift * dt, -clamp_limit, clamp_limit)
    diffusion_term = np.clip(diffusion * dW, -clamp_limit, clamp_limit)
    return x + drift_term + diffusion_term


def first_unstable_step(states: np.ndarray) -> np.ndarray:
    """
    For each row of states (n_paths, steps + 1), the index i of the first
    step whose update X[i] -> X[i+1] produced a non-finite value, or -1.
    """
    bad = ~np.isfinite(states[:, 1:])
    return np.where(bad.any(axis=1), bad.argmax(axis=1), -1)


def integrate_paths(
    model: ProcessModel,
    increments: np.ndarray,
    clamp_limit: float = DEFAULT_CLAMP_LIMIT,
) -> np.ndarray:
    """
    Vectorised Euler-Maruyama over a batch of paths.

    increments: dW, shape (n_paths, steps)
    Returns states of shape (n_paths, steps + 1). Rows that went unstable are
    left non-finite; use first_unstable_step to locate them.
    """
    p = model.parameters
    dW = np.asarray(increments, dtype=float)
    if dW.ndim != 2 or dW.shape[1] != p.steps:
        raise InvalidParameterError(
            f"increments must have shape (n_paths, {p.steps}), got {dW.shape}"
        )
    clamp_limit = _check_clamp_limit(clamp_limit)

    n_paths, n_steps = dW.shape
    dt = p.dt

    X = np.empty((n_paths, n_steps + 1), dtype=float)
    X[:, 0] = p.X0

    with np.errstate(over="ignore", invalid="ignore"):
        for i in range(n_steps):
            t = i * dt
            x = X[:, i]
            X[:, i + 1] = euler_maruyama_step(
                x,
                model.drift(x, t),
                model.diffusion(x, t),
                dt,
                dW[:, i],
                clamp_limit,
            )
    return X


def euler_maruyama(
    model: ProcessModel,
    increments: Optional[Sequence[float]] = None,
    rng: Optional[np.random.Generator] = None,
    clamp_limit: float = DEFAULT_CLAMP_LIMIT,
) -> Path:
    """
    Solve one path of the model with Euler-Maruyama.

    increments: optional pre-generated dW of length steps; otherwise drawn
    from rng (a fresh unseeded Generator when rng is None).

    Raises NumericalInstabilityError if any state is non-finite.
    """
    p = model.parameters

    if increments is None:
        rng = rng if rng is not None else rng_with_seed(None)
        dW = wiener_increments(rng, p.dt, (1, p.steps))
    else:
        dW = np.asarray(increments, dtype=float).reshape(1, -1)
        if dW.shape[1] != p.steps:
            raise InvalidParameterError(
                f"expected {p.steps} increments, got {dW.shape[1]}"
            )
        if not np.all(np.isfinite(dW)):
            raise InvalidParameterError("increments must be finite")

    X = integrate_paths(model, dW, clamp_limit)

    step = int(first_unstable_step(X)[0])
    if step >= 0:
        LOGGER.warning(
            "%s: numerical instability at step %d", model.name(), step
        )
        raise NumericalInstabilityError(step=step, parameters=p)

    return Path(time=p.time_grid(), values=X[0], parameters=p, model=model.kind)
