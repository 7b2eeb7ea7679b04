# src/sde_lab/sde/presets.py
"""Ready-made parameter sets for common SDE applications."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict

from sde_lab.sde.schemas import ModelKind, ParameterSet


class Preset(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    model: ModelKind
    parameters: ParameterSet
    category: str


PRESETS: List[Preset] = [
    # Finance
    Preset(
        name="Stock Price (Bull Market)",
        description="Geometric Brownian Motion modeling a bullish stock",
        model=ModelKind.GBM,
        parameters=ParameterSet(mu=0.15, sigma=0.25, X0=100.0, T=1.0, steps=252),
        category="Finance",
    ),
    Preset(
        name="Stock Price (Bear Market)",
        description="Geometric Brownian Motion modeling a bearish stock",
        model=ModelKind.GBM,
        parameters=ParameterSet(mu=-0.10, sigma=0.35, X0=100.0, T=1.0, steps=252),
        category="Finance",
    ),
    Preset(
        name="Cryptocurrency",
        description="High volatility asset modeling",
        model=ModelKind.GBM,
        parameters=ParameterSet(mu=0.50, sigma=0.80, X0=1000.0, T=0.25, steps=90),
        category="Finance",
    ),
    # Interest rates
    Preset(
        name="Interest Rate (Mean Reverting)",
        description="Vasicek model for interest rates",
        model=ModelKind.OU,
        parameters=ParameterSet(
            mu=0.05, sigma=0.01, theta=2.0, X0=0.03, T=5.0, steps=260
        ),
        category="Interest Rates",
    ),
    Preset(
        name="Central Bank Rate",
        description="Slowly adjusting policy rate",
        model=ModelKind.OU,
        parameters=ParameterSet(
            mu=0.02, sigma=0.005, theta=0.5, X0=0.025, T=3.0, steps=156
        ),
        category="Interest Rates",
    ),
    # Physics
    Preset(
        name="Particle Diffusion",
        description="Brownian motion of a particle in fluid",
        model=ModelKind.ABM,
        parameters=ParameterSet(mu=0.0, sigma=1.0, X0=0.0, T=10.0, steps=1000),
        category="Physics",
    ),
    Preset(
        name="Temperature Fluctuation",
        description="Room temperature around set point",
        model=ModelKind.OU,
        parameters=ParameterSet(mu=20.0, sigma=0.5, theta=1.0, X0=22.0, T=24.0, steps=288),
        category="Physics",
    ),
    # Biology
    Preset(
        name="Population Growth",
        description="Stochastic population dynamics",
        model=ModelKind.GBM,
        parameters=ParameterSet(mu=0.02, sigma=0.10, X0=1000.0, T=50.0, steps=500),
        category="Biology",
    ),
    Preset(
        name="Drug Concentration",
        description="Drug elimination with random fluctuations",
        model=ModelKind.OU,
        parameters=ParameterSet(mu=0.0, sigma=2.0, theta=0.3, X0=100.0, T=24.0, steps=96),
        category="Biology",
    ),
]


def get_preset(name: str) -> Preset:
    for p in PRESETS:
        if p.name == name:
            return p
    raise KeyError(f"Unknown preset: {name!r}. Available: {[p.name for p in PRESETS]}")


def get_presets_by_category(category: str) -> List[Preset]:
    return [p for p in PRESETS if p.category == category]


def get_categories() -> List[str]:
    """Categories in first-seen order."""
    return list(dict.fromkeys(p.category for p in PRESETS))
