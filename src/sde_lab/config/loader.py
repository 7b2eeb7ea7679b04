from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from sde_lab.config.models import SimulationConfig
from sde_lab.sde.errors import InvalidParameterError


def load_config(path: str | Path) -> SimulationConfig:
    """
    Load a SimulationConfig from YAML or JSON.

    Automatically validates using Pydantic v2.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    text = path.read_text()

    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            raw = yaml.safe_load(text)
        elif path.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raise ValueError("Config path must be YAML or JSON.")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to parse config: {e}") from e

    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a mapping, got {type(raw).__name__}")

    try:
        return SimulationConfig.model_validate(raw)
    except (ValidationError, InvalidParameterError) as e:
        raise ValueError(f"Invalid SimulationConfig: {e}") from e
