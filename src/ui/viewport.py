"""
Viewport rendering for the pygame UI.

The viewport draws a ``ParticleSnapshot`` plus the renderable bonds
reported by the engine: bonds first, then each particle's three axis
ticks, then a soft glow with a bright core dot.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, TYPE_CHECKING

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from assembly import AXIS_COUNT, AXIS_SPACING, RENDER_BOND_RANGE_FACTOR

if TYPE_CHECKING:  # pragma: no cover
    from assembly import BondState, ParticleSnapshot, SimulationConfig

Color = Tuple[int, int, int]

AXIS_TICK_FACTOR = 0.35
BOND_NEAR_FACTOR = 0.7


def bond_alpha(distance: float, gate: float, eq_dist: float) -> float:
    """Opacity in [0, 1]: stronger gates are brighter, longer bonds fade."""
    near = eq_dist * BOND_NEAR_FACTOR
    far = eq_dist * RENDER_BOND_RANGE_FACTOR
    alpha = min(1.0, gate * 0.9) * (1.0 - (distance - near) / (far - near))
    return max(0.0, min(1.0, alpha))


def bond_width(gate: float) -> int:
    return max(1, int(round(1.5 + gate)))


@dataclass
class ViewportConfig:
    background_color: Color = (10, 14, 23)
    bond_color: Color = (80, 200, 255)
    axis_color: Color = (80, 200, 255)
    axis_alpha: int = 64
    glow_color: Color = (60, 160, 220)
    core_color: Color = (176, 232, 255)
    glow_radius_px: int = 5
    core_radius_px: int = 2


class AssemblyViewport:
    """
    Maps domain coordinates onto the viewport rect and renders particles.
    """

    def __init__(self, rect: "pygame.Rect", config: Optional[ViewportConfig] = None):
        if pygame is None:
            raise RuntimeError("pygame must be installed to use AssemblyViewport.")
        self.rect = rect
        self.config = config or ViewportConfig()
        self.scale = 1.0
        self.offset = (0.0, 0.0)

    def fit_domain(self, width: float, height: float) -> None:
        self.scale = min(self.rect.width / width, self.rect.height / height)
        self.offset = (
            (self.rect.width - width * self.scale) / 2.0,
            (self.rect.height - height * self.scale) / 2.0,
        )

    def world_to_screen(self, x: float, y: float) -> Tuple[int, int]:
        return (
            int(self.offset[0] + x * self.scale),
            int(self.offset[1] + y * self.scale),
        )

    def render(
        self,
        surface: "pygame.Surface",
        snapshot: "ParticleSnapshot",
        bonds: Sequence["BondState"],
        sim_config: "SimulationConfig",
    ) -> None:
        surface.fill(self.config.background_color)
        if pygame is None:
            return
        self.fit_domain(sim_config.width, sim_config.height)
        domain = pygame.Rect(
            self.world_to_screen(0.0, 0.0),
            (int(sim_config.width * self.scale), int(sim_config.height * self.scale)),
        )
        pygame.draw.rect(surface, (26, 42, 58), domain, width=1)

        overlay = pygame.Surface(surface.get_size(), pygame.SRCALPHA)

        # Bonds first so particles sit on top.
        for bond in bonds:
            a = snapshot[bond.i]
            b = snapshot[bond.j]
            alpha = bond_alpha(bond.distance, bond.gate, sim_config.eq_dist)
            if alpha <= 0.0:
                continue
            color = (*self.config.bond_color, int(alpha * 255))
            pygame.draw.line(
                overlay,
                color,
                self.world_to_screen(a.x, a.y),
                self.world_to_screen(b.x, b.y),
                bond_width(bond.gate),
            )

        tick_length = sim_config.eq_dist * AXIS_TICK_FACTOR
        axis_rgba = (*self.config.axis_color, self.config.axis_alpha)
        glow_rgba = (*self.config.glow_color, 100)
        for particle in snapshot:
            center = self.world_to_screen(particle.x, particle.y)
            for k in range(AXIS_COUNT):
                angle = particle.theta + k * AXIS_SPACING
                tip = self.world_to_screen(
                    particle.x + math.cos(angle) * tick_length,
                    particle.y + math.sin(angle) * tick_length,
                )
                pygame.draw.line(overlay, axis_rgba, center, tip, 1)
            pygame.draw.circle(overlay, glow_rgba, center, self.config.glow_radius_px)

        surface.blit(overlay, (0, 0))
        for particle in snapshot:
            center = self.world_to_screen(particle.x, particle.y)
            pygame.draw.circle(surface, self.config.core_color, center, self.config.core_radius_px)
