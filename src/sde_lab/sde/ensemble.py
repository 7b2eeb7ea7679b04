# src/sde_lab/sde/ensemble.py
"""
Monte Carlo ensemble runner.

Paths are integrated in batches. Batch k always draws from child stream k of
SeedSequence(seed), so a seeded ensemble is identical whether batches run
inline, on threads, or on worker processes. Finished batches are assembled in
batch order once every worker is done.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import (
    FIRST_COMPLETED,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from sde_lab.config.models import EngineSettings, FailurePolicy
from sde_lab.sde.errors import NumericalInstabilityError
from sde_lab.sde.integrators import first_unstable_step, integrate_paths
from sde_lab.sde.models import ProcessModel, create_model
from sde_lab.sde.schemas import Ensemble, as_count, as_parameter_set
from sde_lab.sde.wiener import spawn_streams, wiener_increments

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class CancelToken:
    """
    Cooperative cancellation flag. Safe to set from another thread; the
    runner checks it before starting each batch of paths.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class _BatchResult:
    index: int
    start: int
    states: np.ndarray
    failed_steps: np.ndarray


def _run_batch(
    model: ProcessModel,
    index: int,
    start: int,
    size: int,
    rng: np.random.Generator,
    clamp_limit: float,
) -> _BatchResult:
    """Picklable worker: integrate `size` paths from one random stream."""
    p = model.parameters
    dW = wiener_increments(rng, p.dt, (size, p.steps))
    states = integrate_paths(model, dW, clamp_limit)
    return _BatchResult(
        index=index,
        start=start,
        states=states,
        failed_steps=first_unstable_step(states),
    )


class _InlineExecutor:
    """Runs submitted work immediately in the calling thread."""

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def submit(self, fn, *args) -> Future:
        fut: Future = Future()
        try:
            fut.set_result(fn(*args))
        except Exception as e:
            fut.set_exception(e)
        return fut


def _make_executor(settings: EngineSettings):
    if settings.max_workers <= 1:
        return _InlineExecutor()
    if settings.executor == "thread":
        return ThreadPoolExecutor(max_workers=settings.max_workers)
    return ProcessPoolExecutor(max_workers=settings.max_workers)


class _ProgressReporter:
    """Emits a monotone fraction of completed paths."""

    def __init__(self, callback: Optional[ProgressCallback], total: int):
        self.callback = callback
        self.total = total
        self.done = 0
        self.last = 0.0

    def advance(self, n: int) -> None:
        self.done += n
        self._emit(min(self.done / self.total, 1.0))

    def finish(self) -> None:
        if self.last < 1.0:
            self._emit(1.0)

    def _emit(self, value: float) -> None:
        value = max(value, self.last)
        self.last = value
        if self.callback is not None:
            self.callback(value)


def _batch_sizes(n_paths: int, batch_size: int) -> List[int]:
    full, rest = divmod(n_paths, batch_size)
    return [batch_size] * full + ([rest] if rest else [])


def _instability(
    res: _BatchResult, row: int, model: ProcessModel
) -> NumericalInstabilityError:
    return NumericalInstabilityError(
        step=int(res.failed_steps[row]),
        parameters=model.parameters,
        path_index=res.start + row,
    )


def simulate_ensemble(
    model_tag: Any,
    parameters: Any,
    n_paths: int,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
    *,
    seed: int | np.random.SeedSequence | None = None,
    settings: Optional[EngineSettings] = None,
) -> Ensemble:
    """
    Simulate n_paths independent Euler-Maruyama paths.

    progress:
        called with a non-decreasing fraction in [0, 1] after each batch,
        and with 1.0 when the run completes.
    cancel:
        checked before each batch starts. A cancelled run returns the paths
        already finished with Ensemble.cancelled set.
    seed:
        root seed; identical seeds give bit-identical ensembles.

    Unstable paths are handled by settings.failure_policy: ABORT raises the
    NumericalInstabilityError of the lowest failing path index, DROP removes
    failing paths and records how many in Ensemble.dropped.
    """
    settings = settings or EngineSettings()
    params = as_parameter_set(parameters)
    model = create_model(model_tag, params)

    n_paths = as_count("n_paths", n_paths)

    sizes = _batch_sizes(n_paths, settings.batch_size)
    streams = spawn_streams(seed, len(sizes))
    starts = np.concatenate([[0], np.cumsum(sizes)[:-1]]).astype(int)

    queue = deque(zip(range(len(sizes)), starts, sizes, streams))
    reporter = _ProgressReporter(progress, n_paths)
    results: Dict[int, _BatchResult] = {}
    abort = settings.failure_policy == FailurePolicy.ABORT
    cancelled = False
    stop = False

    LOGGER.info(
        "Simulating %d %s paths (steps=%d, batches=%d, workers=%d)",
        n_paths,
        model.kind.value,
        params.steps,
        len(sizes),
        settings.max_workers,
    )

    with _make_executor(settings) as pool:
        in_flight: Dict[Future, int] = {}
        while True:
            while queue and not stop and len(in_flight) < settings.max_workers:
                if cancel is not None and cancel.cancelled:
                    cancelled = stop = True
                    break
                k, start, size, rng = queue.popleft()
                fut = pool.submit(
                    _run_batch, model, k, int(start), size, rng, settings.clamp_limit
                )
                in_flight[fut] = size

            if not in_flight:
                break

            done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
            for fut in done:
                size = in_flight.pop(fut)
                res = fut.result()
                results[res.index] = res
                reporter.advance(size)
                LOGGER.debug("Batch %d finished (%d paths)", res.index, size)
                if abort and (res.failed_steps >= 0).any():
                    stop = True

    ordered = [results[k] for k in sorted(results)]

    if abort:
        for res in ordered:
            bad = np.flatnonzero(res.failed_steps >= 0)
            if bad.size:
                err = _instability(res, int(bad[0]), model)
                LOGGER.error("Ensemble aborted: %s", err)
                raise err

    kept: List[np.ndarray] = []
    dropped = 0
    first_failure: Optional[NumericalInstabilityError] = None
    for res in ordered:
        ok = res.failed_steps < 0
        kept.append(res.states[ok])
        n_bad = int((~ok).sum())
        if n_bad and first_failure is None:
            first_failure = _instability(res, int(np.flatnonzero(~ok)[0]), model)
        dropped += n_bad

    width = params.steps + 1
    values = np.concatenate(kept, axis=0) if kept else np.empty((0, width))

    if dropped:
        LOGGER.warning(
            "Dropped %d of %d paths after numerical instability", dropped, n_paths
        )
        if values.shape[0] == 0 and not cancelled:
            raise first_failure

    if cancelled:
        LOGGER.warning(
            "Ensemble cancelled after %d of %d paths", values.shape[0] + dropped, n_paths
        )
    else:
        reporter.finish()

    return Ensemble(
        model=model.kind,
        parameters=params,
        time=params.time_grid(),
        values=values,
        requested=n_paths,
        dropped=dropped,
        cancelled=cancelled,
    )
