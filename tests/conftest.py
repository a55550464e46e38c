"""
Shared pytest fixtures for CarbonSim.

These fixtures expose parsed configuration files and deterministic
particle layouts so tests can build upon them without duplicating I/O.
"""

from __future__ import annotations

import math
import pathlib
import random
import sys
from typing import Any, Dict

import pytest
import yaml

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from assembly import Particle, SimulationConfig  # noqa: E402


@pytest.fixture(scope="session")
def project_root() -> pathlib.Path:
    """Return repository root directory."""
    return REPO_ROOT


@pytest.fixture(scope="session")
def presets_dir(project_root: pathlib.Path) -> pathlib.Path:
    return project_root / "config" / "presets"


@pytest.fixture(scope="session")
def config_template(project_root: pathlib.Path) -> Dict[str, Any]:
    """Parsed representation of the documented configuration template."""
    with (project_root / "config" / "template.yaml").open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def graphene_config() -> SimulationConfig:
    return SimulationConfig(
        n=500,
        rep_str=3000.0,
        att_str=400.0,
        eq_dist=29.0,
        sharpness=8.0,
        torque_str=195.0,
        friction=2.4,
        width=800.0,
        height=450.0,
    )


@pytest.fixture
def bonded_pair() -> list[Particle]:
    """Two particles one bond length apart with facing symmetry axes."""
    return [
        Particle(x=90.0, y=100.0, theta=0.0),
        Particle(x=110.0, y=100.0, theta=math.pi),
    ]
