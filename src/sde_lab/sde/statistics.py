# src/sde_lab/sde/statistics.py
from __future__ import annotations

from typing import Any, Sequence, Tuple

import numpy as np
from scipy.stats import norm

from sde_lab.sde.errors import EmptyEnsembleError, InvalidParameterError
from sde_lab.sde.schemas import Ensemble, Path, StatisticsSummary

PERCENTILE_LEVELS: Tuple[Tuple[str, float], ...] = (
    ("p5", 0.05),
    ("p25", 0.25),
    ("p50", 0.50),
    ("p75", 0.75),
    ("p95", 0.95),
)


def _as_matrix(ensemble: Any) -> Tuple[np.ndarray, np.ndarray]:
    """Return (values (n_paths, n_times), time grid) for any accepted input."""
    if isinstance(ensemble, Ensemble):
        if ensemble.n_paths == 0:
            raise EmptyEnsembleError("No paths provided for statistical analysis")
        return ensemble.values, ensemble.time

    if isinstance(ensemble, np.ndarray):
        values = np.asarray(ensemble, dtype=float)
        if values.ndim == 1:
            values = values.reshape(1, -1)
        if values.ndim != 2:
            raise InvalidParameterError("values must be a 2D array (n_paths, n_times)")
        if values.shape[0] == 0:
            raise EmptyEnsembleError("No paths provided for statistical analysis")
        return values, np.arange(values.shape[1], dtype=float)

    try:
        items = list(ensemble)
    except TypeError:
        raise InvalidParameterError(
            "expected an Ensemble, a sequence of Path or array rows, "
            f"or a 2D array; got {type(ensemble).__name__}"
        ) from None
    if len(items) == 0:
        raise EmptyEnsembleError("No paths provided for statistical analysis")

    # plain rows carry no time grid; fall back to the index
    rows = [
        np.asarray(p.values if isinstance(p, Path) else p, dtype=float) for p in items
    ]
    if any(r.ndim != 1 for r in rows):
        raise InvalidParameterError("each path must be one-dimensional")
    lengths = {r.shape[0] for r in rows}
    if len(lengths) != 1:
        raise InvalidParameterError(f"All paths must have equal length, got {sorted(lengths)}")

    first = items[0]
    if isinstance(first, Path):
        time = np.asarray(first.time, dtype=float)
    else:
        time = np.arange(rows[0].shape[0], dtype=float)
    return np.vstack(rows), time


def _interpolated_order_statistics(
    values: np.ndarray, probs: Sequence[float]
) -> list[np.ndarray]:
    """
    Linear-interpolated order statistics along axis 0.

    For level p the position is p * (N - 1); integral positions return the
    order statistic itself, otherwise floor/ceil statistics are blended by the
    fractional part. Only the needed ranks are selected (np.partition), so the
    cost per time index is O(N) rather than a full O(N log N) sort.
    """
    n = values.shape[0]
    pos = np.asarray(probs, dtype=float) * (n - 1)
    lo = np.floor(pos).astype(int)
    hi = np.ceil(pos).astype(int)

    kth = np.unique(np.concatenate([lo, hi]))
    part = np.partition(values, kth, axis=0)

    out = []
    for p_pos, l, h in zip(pos, lo, hi):
        a = part[l]
        if l == h:
            out.append(a.copy())
            continue
        b = part[h]
        w = p_pos - l
        # clip keeps the blend inside [a, b] under rounding
        out.append(np.clip(a + (b - a) * w, a, b))
    return out


def calculate_statistics(ensemble: Any) -> StatisticsSummary:
    """
    Per-time-step mean, population variance and 5/25/50/75/95 percentiles.

    ensemble:
        an Ensemble, a sequence of Path, or an array (n_paths, n_times).

    Raises EmptyEnsembleError for zero paths.
    """
    values, time = _as_matrix(ensemble)
    if not np.all(np.isfinite(values)):
        raise InvalidParameterError("ensemble contains non-finite values")

    mean = values.mean(axis=0)
    variance = np.mean((values - mean) ** 2, axis=0)

    bands = _interpolated_order_statistics(values, [p for _, p in PERCENTILE_LEVELS])
    named = {name: band for (name, _), band in zip(PERCENTILE_LEVELS, bands)}

    return StatisticsSummary(
        time=np.asarray(time, dtype=float),
        mean=mean,
        variance=variance,
        n_paths=int(values.shape[0]),
        **named,
    )


def percentile(values: Sequence[float], p: float) -> float:
    """
    Percentile p in [0, 1] of a 1D sample using the same linear-interpolated
    order-statistic rule as calculate_statistics.
    """
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        raise EmptyEnsembleError("percentile of an empty sample")
    if not (0.0 <= p <= 1.0):
        raise InvalidParameterError("p must be in [0, 1].")
    return float(_interpolated_order_statistics(arr.reshape(-1, 1), [p])[0][0])


def calculate_confidence_intervals(
    mean: np.ndarray,
    variance: np.ndarray,
    n_paths: int,
    confidence: float = 0.95,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Normal-approximation confidence band for the ensemble mean:

        mean +- z * sqrt(variance / n_paths),   z = Phi^{-1}((1 + confidence) / 2)

    Returns
    -------
    (lower, upper)
    """
    if not (0.0 < confidence < 1.0):
        raise InvalidParameterError("confidence must be in (0, 1).")
    if n_paths < 1:
        raise EmptyEnsembleError("n_paths must be >= 1")

    m = np.asarray(mean, dtype=float)
    v = np.asarray(variance, dtype=float)
    if m.shape != v.shape:
        raise InvalidParameterError("mean and variance must have the same shape")

    z = float(norm.ppf(0.5 * (1.0 + confidence)))
    half = z * np.sqrt(v / n_paths)
    return m - half, m + half
