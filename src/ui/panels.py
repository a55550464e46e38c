"""
Panel components for the pygame UI (control dock, parameter sliders,
energy chart, inspector).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

if TYPE_CHECKING:  # pragma: no cover
    from assembly import SimulationConfig

Color = Tuple[int, int, int]

PANEL_BG: Color = (13, 17, 23)
TEXT_COLOR: Color = (176, 208, 232)
MUTED_TEXT: Color = (140, 160, 184)
ACCENT: Color = (80, 200, 255)


@dataclass(frozen=True)
class SliderSpec:
    key: str
    label: str
    minimum: float
    maximum: float
    step: float
    unit: str = ""

    def snap(self, value: float) -> float:
        """Round to the nearest step and keep inside the slider range."""
        steps = round((value - self.minimum) / self.step)
        snapped = self.minimum + steps * self.step
        snapped = max(self.minimum, min(self.maximum, snapped))
        # Trim float noise from repeated step additions (e.g. 0.30000000000000004).
        return round(snapped, 6)

    def value_at(self, normalized: float) -> float:
        normalized = max(0.0, min(1.0, normalized))
        return self.snap(self.minimum + normalized * (self.maximum - self.minimum))

    def normalized(self, value: float) -> float:
        span = self.maximum - self.minimum
        if span <= 0:
            return 0.0
        return max(0.0, min(1.0, (value - self.minimum) / span))

    def format(self, value: float) -> str:
        if float(value).is_integer():
            return f"{int(value)}{self.unit}"
        return f"{value:g}{self.unit}"


PARAMETER_SLIDERS: Tuple[SliderSpec, ...] = (
    SliderSpec("n", "Particles", 100, 1000, 10),
    SliderSpec("eq_dist", "Bond Distance", 5, 50, 1, unit="px"),
    SliderSpec("rep_str", "Repulsion", 100, 3000, 50),
    SliderSpec("att_str", "Attraction", 50, 1000, 10),
    SliderSpec("sharpness", "Angular Sharpness", 1, 8, 0.5),
    SliderSpec("torque_str", "Torque Strength", 10, 200, 5),
    SliderSpec("friction", "Friction", 0, 5, 0.1),
    SliderSpec("width", "Width", 400, 1200, 50, unit="px"),
    SliderSpec("height", "Height", 300, 800, 50, unit="px"),
)


@dataclass
class ControlDockPanel:
    rect: "pygame.Rect"
    font: "pygame.font.Font"
    on_toggle_run: Callable[[], None]
    on_step: Callable[[], None]
    on_reset: Callable[[], None]
    on_preset: Callable[[str], None]
    preset_labels: Dict[str, str] = field(default_factory=dict)
    is_running: bool = False
    active_preset: Optional[str] = None
    _button_rects: Dict[str, "pygame.Rect"] = field(default_factory=dict, init=False, repr=False)
    _preset_rects: Dict[str, "pygame.Rect"] = field(default_factory=dict, init=False, repr=False)

    def render(self, surface: "pygame.Surface") -> None:
        if pygame is None:
            return
        pygame.draw.rect(surface, PANEL_BG, self.rect)
        title = self.font.render("Carbon sp2 Self-Assembly Simulation", True, (224, 240, 255))
        surface.blit(title, (self.rect.x + 16, self.rect.y + 12))

        button_labels = [
            ("run", "Pause" if self.is_running else "Play"),
            ("step", "Step"),
            ("reset", "Reset"),
        ]
        self._button_rects = {}
        for idx, (key, label) in enumerate(button_labels):
            rect = pygame.Rect(self.rect.x + 16 + idx * 104, self.rect.y + 44, 92, 32)
            if key == "run":
                color = (192, 64, 64) if self.is_running else (42, 122, 74)
            else:
                color = (42, 58, 80)
            pygame.draw.rect(surface, color, rect, border_radius=6)
            text_surface = self.font.render(label, True, (240, 240, 255))
            surface.blit(text_surface, text_surface.get_rect(center=rect.center))
            self._button_rects[key] = rect

        self._preset_rects = {}
        x = self.rect.x + 16
        y = self.rect.y + 90
        for name, label in self.preset_labels.items():
            text_surface = self.font.render(label, True, (224, 240, 255) if name == self.active_preset else (112, 144, 168))
            rect = pygame.Rect(x, y, text_surface.get_width() + 20, 28)
            if rect.right > self.rect.right - 8:
                x = self.rect.x + 16
                y += 34
                rect.topleft = (x, y)
            active = name == self.active_preset
            pygame.draw.rect(surface, (26, 90, 138) if active else (26, 38, 54), rect, border_radius=6)
            pygame.draw.rect(surface, (48, 144, 208) if active else (42, 58, 74), rect, width=1, border_radius=6)
            surface.blit(text_surface, text_surface.get_rect(center=rect.center))
            self._preset_rects[name] = rect
            x = rect.right + 6

    def handle_event(self, event: "pygame.event.Event") -> None:
        if pygame is None:
            return
        if event.type != pygame.MOUSEBUTTONDOWN or event.button != 1 or not hasattr(event, "pos"):
            return
        pos = event.pos
        for key, rect in self._button_rects.items():
            if rect.collidepoint(pos):
                if key == "run":
                    self.on_toggle_run()
                elif key == "step":
                    self.on_step()
                elif key == "reset":
                    self.on_reset()
                return
        for name, rect in self._preset_rects.items():
            if rect.collidepoint(pos):
                self.on_preset(name)
                return


@dataclass
class ParameterPanel:
    rect: "pygame.Rect"
    font: "pygame.font.Font"
    on_change: Callable[[str, float], None]
    sliders: Sequence[SliderSpec] = PARAMETER_SLIDERS
    values: Dict[str, float] = field(default_factory=dict)
    row_height: int = 48
    _tracks: Dict[str, "pygame.Rect"] = field(default_factory=dict, init=False, repr=False)
    _dragging: Optional[str] = field(default=None, init=False, repr=False)

    def sync(self, config: "SimulationConfig") -> None:
        for spec in self.sliders:
            self.values[spec.key] = getattr(config, spec.key)

    def render(self, surface: "pygame.Surface") -> None:
        if pygame is None:
            return
        pygame.draw.rect(surface, PANEL_BG, self.rect)
        self._tracks = {}
        for index, spec in enumerate(self.sliders):
            top = self.rect.y + 16 + index * self.row_height
            value = self.values.get(spec.key, spec.minimum)
            label = self.font.render(f"{spec.label}: {spec.format(value)}", True, MUTED_TEXT)
            surface.blit(label, (self.rect.x + 16, top))

            track = pygame.Rect(self.rect.x + 16, top + 24, self.rect.width - 32, 6)
            pygame.draw.rect(surface, (42, 58, 74), track, border_radius=3)
            filled = track.copy()
            filled.width = int(spec.normalized(value) * track.width)
            pygame.draw.rect(surface, ACCENT, filled, border_radius=3)
            handle_center = (track.x + filled.width, track.centery)
            pygame.draw.circle(surface, (200, 235, 255), handle_center, 7)
            self._tracks[spec.key] = track

    def handle_event(self, event: "pygame.event.Event") -> None:
        if pygame is None:
            return
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and hasattr(event, "pos"):
            for key, track in self._tracks.items():
                if track.inflate(0, 16).collidepoint(event.pos):
                    self._dragging = key
                    self._set_from_position(key, event.pos[0])
                    return
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self._dragging = None
        elif event.type == pygame.MOUSEMOTION and self._dragging is not None:
            self._set_from_position(self._dragging, event.pos[0])

    def _set_from_position(self, key: str, x_pos: int) -> None:
        track = self._tracks.get(key)
        if track is None:
            return
        spec = next(s for s in self.sliders if s.key == key)
        value = spec.value_at((x_pos - track.x) / track.width)
        if value != self.values.get(key):
            self.values[key] = value
            self.on_change(key, value)


@dataclass
class EnergyChartPanel:
    rect: "pygame.Rect"
    font: "pygame.font.Font"
    series: List[int] = field(default_factory=list)
    line_color: Color = ACCENT

    def update_series(self, series: Sequence[int]) -> None:
        self.series = list(series)

    def render(self, surface: "pygame.Surface") -> None:
        if pygame is None:
            return
        pygame.draw.rect(surface, (10, 14, 23), self.rect)
        title = self.font.render("Kinetic Energy", True, (90, 122, 144))
        surface.blit(title, (self.rect.x + 12, self.rect.y + 6))
        points = chart_points(self.series, self.rect.inflate(-24, -36).move(0, 10))
        if len(points) >= 2:
            pygame.draw.lines(surface, self.line_color, False, points, 2)


def chart_points(series: Sequence[float], rect: "pygame.Rect") -> List[Tuple[int, int]]:
    """Map a series onto ``rect``; the y axis always starts at zero."""
    if not series:
        return []
    top = max(max(series), 1)
    count = len(series)
    x_step = rect.width / max(1, count - 1)
    points: List[Tuple[int, int]] = []
    for index, value in enumerate(series):
        x = rect.x + int(index * x_step)
        y = rect.bottom - int(max(0, value) / top * rect.height)
        points.append((x, y))
    return points


@dataclass
class InspectorPanel:
    rect: "pygame.Rect"
    font: "pygame.font.Font"
    info: Dict[str, str] = field(default_factory=dict)

    def render(self, surface: "pygame.Surface") -> None:
        if pygame is None:
            return
        pygame.draw.rect(surface, (18, 18, 32), self.rect)
        title = self.font.render("Inspector", True, (200, 200, 210))
        surface.blit(title, (self.rect.x + 12, self.rect.y + 12))
        y = self.rect.y + 40
        for key, value in self.info.items():
            label = self.font.render(f"{key}: {value}", True, (180, 180, 190))
            surface.blit(label, (self.rect.x + 12, y))
            y += 20

    def update_info(self, info: Dict[str, str]) -> None:
        self.info = info
