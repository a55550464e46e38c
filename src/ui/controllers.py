"""
Controller layer connecting the pygame UI and the assembly engine.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, replace
import logging
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, TYPE_CHECKING

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from .viewport import AssemblyViewport
from .panels import ControlDockPanel, EnergyChartPanel, InspectorPanel, ParameterPanel

if TYPE_CHECKING:  # pragma: no cover
    from assembly import BondState, ParticleSnapshot, Simulation, SimulationConfig
    from src.config_loader import ConfigBundle


logger = logging.getLogger(__name__)

ENERGY_HISTORY_SIZE = 200
ENERGY_SAMPLE_EVERY = 3

EnergySample = Tuple[int, int]


@dataclass
class SimulationController:
    simulation: "Simulation"
    config: "SimulationConfig"
    presets: Dict[str, "ConfigBundle"] = field(default_factory=dict)
    active_preset: Optional[str] = None
    speed_multiplier: float = 1.0
    history_size: int = ENERGY_HISTORY_SIZE
    sample_every: int = ENERGY_SAMPLE_EVERY
    energy_history: Deque[EnergySample] = field(init=False, repr=False)
    _step_accumulator: float = 0.0

    def __post_init__(self) -> None:
        self.energy_history = deque(maxlen=self.history_size)

    @property
    def is_running(self) -> bool:
        return self.simulation.is_running

    def toggle_running(self) -> None:
        self.simulation.set_running(not self.simulation.is_running)

    def step(self, ticks: int = 1) -> None:
        for _ in range(ticks):
            result = self.simulation.tick(self.config)
            if result.frame_index % self.sample_every == 0:
                self.energy_history.append((result.frame_index, round(result.energy)))

    def update(self, dt_seconds: float) -> None:
        if not self.is_running:
            return
        self._step_accumulator += self.speed_multiplier
        ticks = int(self._step_accumulator)
        if ticks >= 1:
            self.step(ticks)
            self._step_accumulator -= ticks

    def reset(self) -> None:
        self.simulation.reset(self.config)
        self.energy_history.clear()
        self._step_accumulator = 0.0

    def apply_preset(self, name: str) -> None:
        bundle = self.presets[name]
        self.config = bundle.config
        self.active_preset = name
        logger.info("Applying preset %s", name)
        self.reset()

    def set_parameter(self, name: str, value: Any) -> None:
        """Swap in a config with one field changed; takes effect next tick."""
        if name == "n":
            value = int(round(value))
        self.config = replace(self.config, **{name: value}).validate()
        self.active_preset = None

    def snapshot(self) -> "ParticleSnapshot":
        return self.simulation.snapshot()

    def bonds(self) -> List["BondState"]:
        return self.simulation.bonds()

    def energy_series(self) -> List[int]:
        return [energy for _, energy in self.energy_history]


class UIController:
    """
    Routes pygame events to panels and refreshes their displayed state.
    """

    def __init__(
        self,
        simulation_controller: SimulationController,
        viewport: AssemblyViewport,
        control_panel: ControlDockPanel,
        parameter_panel: ParameterPanel,
        energy_panel: EnergyChartPanel,
        inspector_panel: InspectorPanel,
        on_preset_selected: Optional[Callable[[str], None]] = None,
    ):
        if pygame is None:
            raise RuntimeError("pygame must be installed to use UIController.")
        self.simulation_controller = simulation_controller
        self.viewport = viewport
        self.control_panel = control_panel
        self.parameter_panel = parameter_panel
        self.energy_panel = energy_panel
        self.inspector_panel = inspector_panel
        self.on_preset_selected = on_preset_selected
        self._latest_snapshot: Optional["ParticleSnapshot"] = None

    def handle_event(self, event: "pygame.event.Event") -> None:
        self.control_panel.handle_event(event)
        self.parameter_panel.handle_event(event)

    def update(self, dt_seconds: float) -> "ParticleSnapshot":
        controller = self.simulation_controller
        controller.update(dt_seconds)
        snapshot = controller.snapshot()
        self._latest_snapshot = snapshot
        self.control_panel.is_running = controller.is_running
        self.control_panel.active_preset = controller.active_preset
        self.parameter_panel.sync(controller.config)
        self.energy_panel.update_series(controller.energy_series())
        self._update_inspector(snapshot)
        return snapshot

    def render(self, screen: "pygame.Surface", snapshot: "ParticleSnapshot") -> None:
        controller = self.simulation_controller
        viewport_surface = screen.subsurface(self.viewport.rect)
        self.viewport.render(viewport_surface, snapshot, controller.bonds(), controller.config)
        self.control_panel.render(screen)
        self.parameter_panel.render(screen)
        self.energy_panel.render(screen)
        self.inspector_panel.render(screen)

    def _update_inspector(self, snapshot: "ParticleSnapshot") -> None:
        controller = self.simulation_controller
        simulation = controller.simulation
        info: Dict[str, str] = {
            "Status": "Running" if controller.is_running else "Paused",
            "Frame": str(simulation.frame_index),
            "Particles": str(len(snapshot)),
            "Kinetic energy": f"{simulation.energy:.1f}",
            "Preset": controller.active_preset or "custom",
        }
        self.inspector_panel.update_info(info)
