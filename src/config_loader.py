"""
Utilities for loading CarbonSim parameter sets from YAML files.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from assembly import ConfigValidationError, SimulationConfig


logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
PRESETS_DIR = PROJECT_ROOT / "config" / "presets"
DEFAULT_PRESET = "graphene"

_INTEGER_FIELDS = {"n"}


@dataclass
class ConfigBundle:
    """Container returned by configuration loader."""

    config: SimulationConfig
    metadata: Dict[str, Any] = field(default_factory=dict)
    ui: Dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return str(self.metadata.get("label") or self.metadata.get("name") or "")


def load_config_from_yaml(path: Path) -> ConfigBundle:
    """Load a SimulationConfig plus associated metadata from a YAML file."""
    data = _load_yaml(path)
    config = config_from_mapping(data.get("simulation") or {})
    bundle = ConfigBundle(
        config=config,
        metadata=dict(data.get("metadata") or {}),
        ui=dict(data.get("ui") or {}),
    )
    logger.debug("Loaded configuration %s from %s", bundle.label or "<unnamed>", path)
    return bundle


def config_from_mapping(values: Mapping[str, Any]) -> SimulationConfig:
    """
    Build a validated config from a plain mapping. Missing keys fall back
    to the dataclass defaults; unknown keys are rejected.
    """
    known = {spec.name for spec in fields(SimulationConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigValidationError(unknown[0], "unknown configuration key")

    kwargs: Dict[str, Any] = {}
    for key, raw in values.items():
        kwargs[key] = _coerce(key, raw)
    return SimulationConfig(**kwargs).validate()


def available_presets(directory: Optional[Path] = None) -> List[str]:
    directory = directory or PRESETS_DIR
    if not directory.exists():
        return []
    return sorted(path.stem for path in directory.glob("*.yaml"))


def load_preset(name: str, directory: Optional[Path] = None) -> ConfigBundle:
    directory = directory or PRESETS_DIR
    path = directory / f"{name}.yaml"
    if not path.exists():
        raise KeyError(f"Unknown preset {name!r}; available: {', '.join(available_presets(directory))}")
    return load_config_from_yaml(path)


def load_all_presets(directory: Optional[Path] = None) -> Dict[str, ConfigBundle]:
    return {name: load_preset(name, directory) for name in available_presets(directory)}


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle)
    if not isinstance(content, dict):
        raise ValueError(f"YAML file {path} must contain a mapping at the root.")
    return content


def _coerce(key: str, raw: Any) -> Any:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        raise ConfigValidationError(key, f"expected a number, got {raw!r}")
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigValidationError(key, f"expected a number, got {raw!r}") from exc
    if key in _INTEGER_FIELDS:
        if not value.is_integer():
            raise ConfigValidationError(key, f"must be an integer, got {raw!r}")
        return int(value)
    return value
