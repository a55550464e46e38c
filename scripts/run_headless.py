"""
Headless batch harness for CarbonSim.

Drives ``Simulation.tick`` for a fixed number of frames without a display
and reports the kinetic energy (and renderable bond count) as it goes.

Examples:
    python scripts/run_headless.py --preset graphene --ticks 300 --seed 7
    python scripts/run_headless.py --config config/template.yaml --report-every 25
"""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import random
import sys
from dataclasses import asdict, dataclass
from typing import List, Optional

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from assembly import Simulation, find_bonds  # noqa: E402
from src.config_loader import ConfigBundle, DEFAULT_PRESET, load_config_from_yaml, load_preset  # noqa: E402
from src.logging_config import setup_logging  # noqa: E402


logger = logging.getLogger(__name__)


@dataclass
class FrameReport:
    frame: int
    energy: float
    particles: int
    bonds: int


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the self-assembly engine without a display.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--preset",
        type=str,
        default=None,
        help=f"Preset name under config/presets (default: {DEFAULT_PRESET}).",
    )
    source.add_argument(
        "--config",
        type=pathlib.Path,
        default=None,
        help="Path to a YAML configuration file.",
    )
    parser.add_argument("--ticks", type=int, default=100, help="Number of frames to run.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for particle placement.")
    parser.add_argument(
        "--report-every",
        type=int,
        default=10,
        help="Emit a report line every N frames.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print reports as JSON lines instead of plain text.",
    )
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level.")
    return parser.parse_args(argv)


def load_bundle(preset: Optional[str], config_path: Optional[pathlib.Path]) -> ConfigBundle:
    if config_path is not None:
        return load_config_from_yaml(config_path)
    return load_preset(preset or DEFAULT_PRESET)


def run_batch(
    bundle: ConfigBundle,
    ticks: int,
    seed: Optional[int] = None,
    report_every: int = 10,
) -> List[FrameReport]:
    if ticks < 0:
        raise ValueError(f"ticks must be non-negative, got {ticks}")
    if report_every < 1:
        raise ValueError(f"report_every must be at least 1, got {report_every}")
    simulation = Simulation(bundle.config, rng=random.Random(seed))
    reports: List[FrameReport] = []
    for _ in range(ticks):
        result = simulation.tick(bundle.config)
        if result.frame_index % report_every == 0 or result.frame_index == ticks:
            reports.append(
                FrameReport(
                    frame=result.frame_index,
                    energy=result.energy,
                    particles=len(result.snapshot),
                    bonds=len(find_bonds(simulation.particles, bundle.config)),
                )
            )
            logger.debug("frame %d energy %.3f", result.frame_index, result.energy)
    return reports


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(getattr(logging, args.log_level.upper(), logging.WARNING))

    bundle = load_bundle(args.preset, args.config)
    logger.info("Running %s for %d ticks", bundle.label or "configuration", args.ticks)
    for report in run_batch(bundle, args.ticks, seed=args.seed, report_every=args.report_every):
        if args.json:
            print(json.dumps(asdict(report)))  # noqa: T201 (informational)
        else:
            print(  # noqa: T201 (informational)
                f"frame {report.frame:6d}  energy {report.energy:12.3f}  "
                f"particles {report.particles:5d}  bonds {report.bonds:5d}"
            )


if __name__ == "__main__":
    main()
