# src/sde_lab/sde/wiener.py
"""
Wiener process (Brownian motion) increments.

Every function takes an explicit numpy Generator; there is no module-level
random state, so independent streams can be handed to independent workers.
"""
from __future__ import annotations

import math
from typing import List, Tuple, Union

import numpy as np

from sde_lab.sde.errors import InvalidParameterError

# Smallest positive double; replaces a uniform draw of exactly 0 before log().
_TINY = np.finfo(float).tiny

Shape = Union[int, Tuple[int, ...]]


def rng_with_seed(seed: int | np.random.SeedSequence | None) -> np.random.Generator:
    """Create a numpy Generator deterministically from seed if provided."""
    return np.random.default_rng(seed)


def as_seed_sequence(seed: int | np.random.SeedSequence | None) -> np.random.SeedSequence:
    if isinstance(seed, np.random.SeedSequence):
        return seed
    return np.random.SeedSequence(seed)


def spawn_streams(
    seed: int | np.random.SeedSequence | None, n: int
) -> List[np.random.Generator]:
    """
    n statistically independent Generators derived from one seed.

    Child k is the same for a given seed no matter how many workers later
    consume the streams.
    """
    if n < 0:
        raise InvalidParameterError("n must be non-negative")
    return [np.random.default_rng(child) for child in as_seed_sequence(seed).spawn(n)]


def _check_dt(dt: float) -> float:
    dt = float(dt)
    if not math.isfinite(dt) or dt <= 0.0:
        raise InvalidParameterError(f"dt must be finite and > 0, got {dt}")
    return dt


def standard_normals(rng: np.random.Generator, size: Shape) -> np.ndarray:
    """
    Box-Muller transform:
        z = sqrt(-2 ln u1) * cos(2 pi u2),   u1, u2 ~ U(0, 1)
    """
    u1 = rng.random(size)
    u2 = rng.random(size)
    u1 = np.where(u1 > 0.0, u1, _TINY)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * math.pi * u2)


def wiener_increment(rng: np.random.Generator, dt: float) -> float:
    """One increment dW ~ N(0, dt)."""
    dt = _check_dt(dt)
    return float(standard_normals(rng, 1)[0] * math.sqrt(dt))


def wiener_increments(rng: np.random.Generator, dt: float, size: Shape) -> np.ndarray:
    """
    Array of independent increments dW ~ N(0, dt).
    Use size=(n_paths, n_steps) for a batch of paths.
    """
    dt = _check_dt(dt)
    return standard_normals(rng, size) * math.sqrt(dt)


def wiener_path(rng: np.random.Generator, T: float, steps: int) -> np.ndarray:
    """Brownian path W(t_i), i = 0..steps, starting at W(0) = 0."""
    return wiener_paths(rng, T, steps, 1)[0]


def wiener_paths(
    rng: np.random.Generator, T: float, steps: int, n_paths: int
) -> np.ndarray:
    """n_paths independent Brownian paths, shape (n_paths, steps + 1)."""
    if int(steps) != steps or steps <= 0:
        raise InvalidParameterError(f"steps must be a positive integer, got {steps}")
    if int(n_paths) != n_paths or n_paths <= 0:
        raise InvalidParameterError(f"n_paths must be a positive integer, got {n_paths}")
    steps, n_paths = int(steps), int(n_paths)

    dW = wiener_increments(rng, float(T) / steps, (n_paths, steps))
    W = np.zeros((n_paths, steps + 1), dtype=float)
    np.cumsum(dW, axis=1, out=W[:, 1:])
    return W
