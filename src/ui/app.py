"""
pygame application for CarbonSim.

The app owns the frame loop and acts as the scheduler for the engine:
each frame it asks the controller to tick (when running), then renders
the returned snapshot, bonds and energy history.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
import logging
from pathlib import Path
import random
from typing import Optional

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from assembly import ParticleSnapshot, Simulation
from src.config_loader import DEFAULT_PRESET, load_all_presets, load_config_from_yaml
from src.logging_config import setup_logging
from .viewport import AssemblyViewport
from .panels import ControlDockPanel, EnergyChartPanel, InspectorPanel, ParameterPanel
from .controllers import SimulationController, UIController


logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    width: int = 1240
    height: int = 780
    title: str = "CarbonSim - sp2 Self-Assembly"
    target_fps: int = 60
    enable_vsync: bool = False
    sidebar_width: int = 320
    dock_height: int = 170
    chart_height: int = 110


@dataclass
class AppState:
    running: bool = True
    clock: Optional["pygame.time.Clock"] = field(default=None, repr=False)


class CarbonSimApp:
    """
    High-level pygame application manager.

    Responsibilities:
      - Initialize pygame, surfaces, and panels.
      - Route events to the control dock and parameter sliders.
      - Tick the simulation when running and render each frame.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        controller: Optional[SimulationController] = None,
    ):
        if pygame is None:
            raise RuntimeError("pygame is not installed. Install it to run the UI.")
        self.config = config or AppConfig()
        self.state = AppState()
        self.screen: Optional["pygame.Surface"] = None
        self.sim_controller = controller or self._create_default_controller()
        self.ui_controller: Optional[UIController] = None
        self._latest_snapshot: Optional[ParticleSnapshot] = None

    def setup(self) -> None:
        """Initialize pygame context and create panels."""
        pygame.init()
        flags = pygame.SCALED if self.config.enable_vsync else 0
        self.screen = pygame.display.set_mode((self.config.width, self.config.height), flags)
        pygame.display.set_caption(self.config.title)
        self.state.clock = pygame.time.Clock()

        font = pygame.font.SysFont("Helvetica", 16)
        main_width = self.config.width - self.config.sidebar_width
        viewport_height = self.config.height - self.config.dock_height - self.config.chart_height
        inspector_height = 150

        viewport_rect = pygame.Rect(0, 0, main_width, viewport_height)
        chart_rect = pygame.Rect(0, viewport_height, main_width, self.config.chart_height)
        dock_rect = pygame.Rect(
            0, viewport_height + self.config.chart_height, main_width, self.config.dock_height
        )
        parameter_rect = pygame.Rect(
            main_width, 0, self.config.sidebar_width, self.config.height - inspector_height
        )
        inspector_rect = pygame.Rect(
            main_width,
            self.config.height - inspector_height,
            self.config.sidebar_width,
            inspector_height,
        )

        preset_labels = {name: bundle.label or name for name, bundle in self.sim_controller.presets.items()}
        control_panel = ControlDockPanel(
            rect=dock_rect,
            font=font,
            on_toggle_run=self.sim_controller.toggle_running,
            on_step=self._step_once,
            on_reset=self.sim_controller.reset,
            on_preset=self.sim_controller.apply_preset,
            preset_labels=preset_labels,
            active_preset=self.sim_controller.active_preset,
        )
        parameter_panel = ParameterPanel(rect=parameter_rect, font=font, on_change=self._on_parameter_change)
        parameter_panel.sync(self.sim_controller.config)

        self.ui_controller = UIController(
            simulation_controller=self.sim_controller,
            viewport=AssemblyViewport(viewport_rect),
            control_panel=control_panel,
            parameter_panel=parameter_panel,
            energy_panel=EnergyChartPanel(rect=chart_rect, font=font),
            inspector_panel=InspectorPanel(rect=inspector_rect, font=font),
        )
        self._latest_snapshot = self.sim_controller.snapshot()
        logger.info("UI ready: %dx%d window", self.config.width, self.config.height)

    def handle_event(self, event: "pygame.event.Event") -> None:
        """Dispatch a single pygame event."""
        if event.type == pygame.QUIT:
            self.state.running = False
            return

        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_SPACE:
                self.sim_controller.toggle_running()
            elif event.key == pygame.K_PERIOD:
                self._step_once()
            elif event.key == pygame.K_r:
                self.sim_controller.reset()

        if self.ui_controller:
            self.ui_controller.handle_event(event)

    def update(self, dt_seconds: float) -> None:
        if self.ui_controller:
            self._latest_snapshot = self.ui_controller.update(dt_seconds)

    def render(self) -> None:
        if self.screen is None or self._latest_snapshot is None or self.ui_controller is None:
            return
        self.screen.fill((13, 17, 23))
        self.ui_controller.render(self.screen, self._latest_snapshot)
        pygame.display.flip()

    def run(self) -> None:
        """Main loop entry point."""
        if self.screen is None or self.state.clock is None:
            self.setup()

        assert self.state.clock is not None
        while self.state.running:
            dt_ms = self.state.clock.tick(self.config.target_fps)
            dt_seconds = dt_ms / 1000.0
            for event in pygame.event.get():
                self.handle_event(event)
            self.update(dt_seconds)
            self.render()

        pygame.quit()

    def _step_once(self) -> None:
        self.sim_controller.step(1)

    def _on_parameter_change(self, name: str, value: float) -> None:
        self.sim_controller.set_parameter(name, value)

    def _create_default_controller(self) -> SimulationController:
        presets = load_all_presets()
        bundle = presets[DEFAULT_PRESET]
        simulation = Simulation(bundle.config)
        return SimulationController(
            simulation=simulation,
            config=bundle.config,
            presets=presets,
            active_preset=DEFAULT_PRESET,
        )


def build_controller(
    config_path: Optional[Path] = None,
    preset: Optional[str] = None,
    seed: Optional[int] = None,
) -> SimulationController:
    """Create a controller from a YAML file or a named preset."""
    presets = load_all_presets()
    if config_path is not None:
        bundle = load_config_from_yaml(config_path)
        active = None
    else:
        active = preset or DEFAULT_PRESET
        if active not in presets:
            raise KeyError(f"Unknown preset {active!r}; available: {', '.join(sorted(presets))}")
        bundle = presets[active]
    ui_settings = bundle.ui
    controller = SimulationController(
        simulation=Simulation(bundle.config, rng=random.Random(seed)),
        config=bundle.config,
        presets=presets,
        active_preset=active,
        history_size=int(ui_settings.get("energy_history", 200)),
        sample_every=int(ui_settings.get("energy_sample_every", 3)),
    )
    return controller


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interactive sp2 self-assembly sandbox.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--preset", help="Name of a preset under config/presets.")
    source.add_argument("--config", type=Path, help="Path to a YAML configuration file.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for particle placement.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, ...).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    setup_logging(getattr(logging, args.log_level.upper(), logging.INFO))
    controller = build_controller(config_path=args.config, preset=args.preset, seed=args.seed)
    app = CarbonSimApp(controller=controller)
    app.run()


if __name__ == "__main__":
    main()
