"""SDE engine: sampler, models, integrator, ensemble runner, statistics, sensitivity."""
__all__ = [
    "errors",
    "schemas",
    "wiener",
    "models",
    "integrators",
    "ensemble",
    "statistics",
    "sensitivity",
    "presets",
]
