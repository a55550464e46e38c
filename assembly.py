"""
Orientable-particle self-assembly engine for CarbonSim.

Particles live on a bounded 2-D plane and carry an orientation with three
equivalent bonding axes spaced 120 degrees apart (an sp2-carbon analogue).
Each sub-step accumulates three pairwise terms into a separate buffer:

    - soft repulsion inside 1.2 x the equilibrium bond length,
    - attraction gated by how well both particles' axes face each other,
    - alignment torque peaked at the equilibrium separation,

and then advances the particles with a damped semi-implicit Euler step.
Units are arbitrary "display" units (pixels, frames); the system is
dissipative and is tuned for visually stable pattern formation rather
than physical accuracy.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import logging
import math
import random
from typing import Iterable, List, Optional, Sequence, Tuple


logger = logging.getLogger(__name__)

AXIS_COUNT = 3
AXIS_SPACING = 2.0 * math.pi / AXIS_COUNT
SUBSTEP_DT = 0.4
SUBSTEPS_PER_TICK = 3
LINEAR_DAMPING = 0.97
ANGULAR_DAMPING = 0.94
BOUNDARY_INSET = 3.0
BOUNDARY_RESTITUTION = -0.3
MIN_PAIR_DISTANCE_SQ = 1.0
CUTOFF_FACTOR = 3.0
REPULSION_RANGE_FACTOR = 1.2
ATTRACTION_GATE_MIN = 0.01
SPAWN_MARGIN_MIN = 5.0
MAX_PARTICLES = 1000
RENDER_BOND_RANGE_FACTOR = 1.4
RENDER_BOND_GATE_MIN = 0.15


class ConfigValidationError(ValueError):
    """Raised when a configuration value falls outside its allowed range."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field = field_name


def alignment_weight(bond_angle: float, orientation: float, sharpness: float) -> float:
    """
    Return how well ``bond_angle`` lines up with one of the particle's
    three symmetry axes, in [0, 1]. Higher ``sharpness`` narrows the peak.
    """
    best = -1.0
    for k in range(AXIS_COUNT):
        c = math.cos(bond_angle - orientation - k * AXIS_SPACING)
        if c > best:
            best = c
    return max(0.0, best) ** sharpness


def nearest_axis_offset(bond_angle: float, orientation: float) -> float:
    """Signed angle in (-pi, pi] from the closest symmetry axis to the bond."""
    best = 0.0
    best_abs = math.inf
    for k in range(AXIS_COUNT):
        delta = bond_angle - orientation - k * AXIS_SPACING
        while delta > math.pi:
            delta -= math.tau
        while delta <= -math.pi:
            delta += math.tau
        if abs(delta) < best_abs:
            best_abs = abs(delta)
            best = delta
    return best


def friction_multiplier(friction: float, dt: float = SUBSTEP_DT) -> float:
    return max(0.0, 1.0 - friction * dt)


@dataclass
class Particle:
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    theta: float = 0.0
    omega: float = 0.0


@dataclass(frozen=True)
class ParticleState:
    """Read-only view of one particle handed to renderers and telemetry."""

    x: float
    y: float
    theta: float
    vx: float = 0.0
    vy: float = 0.0
    omega: float = 0.0

    def to_particle(self) -> Particle:
        return Particle(self.x, self.y, self.vx, self.vy, self.theta, self.omega)


ParticleSnapshot = Tuple[ParticleState, ...]


@dataclass(frozen=True)
class SimulationConfig:
    """
    Parameter set for one tick. Collaborators replace the whole object
    (``dataclasses.replace``) between ticks instead of mutating it.
    """

    n: int = 500
    rep_str: float = 3000.0
    att_str: float = 400.0
    eq_dist: float = 29.0
    sharpness: float = 8.0
    torque_str: float = 195.0
    friction: float = 2.4
    width: float = 800.0
    height: float = 450.0

    @property
    def cutoff(self) -> float:
        return self.eq_dist * CUTOFF_FACTOR

    @property
    def spawn_margin(self) -> float:
        return max(SPAWN_MARGIN_MIN, self.eq_dist)

    def validate(self) -> "SimulationConfig":
        for spec in fields(self):
            value = getattr(self, spec.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigValidationError(spec.name, f"expected a number, got {value!r}")
            if not math.isfinite(value):
                raise ConfigValidationError(spec.name, f"must be finite, got {value!r}")
        if not isinstance(self.n, int):
            raise ConfigValidationError("n", f"must be an integer, got {self.n!r}")
        if self.n < 1:
            raise ConfigValidationError("n", f"must be at least 1, got {self.n}")
        if self.n > MAX_PARTICLES:
            raise ConfigValidationError("n", f"must not exceed {MAX_PARTICLES}, got {self.n}")
        if self.eq_dist <= 0:
            raise ConfigValidationError("eq_dist", f"must be positive, got {self.eq_dist}")
        for name in ("width", "height"):
            value = getattr(self, name)
            if value <= 2 * BOUNDARY_INSET:
                raise ConfigValidationError(
                    name, f"must exceed {2 * BOUNDARY_INSET:g} to hold the boundary band, got {value}"
                )
        if self.sharpness < 1:
            raise ConfigValidationError("sharpness", f"must be at least 1, got {self.sharpness}")
        for name in ("rep_str", "att_str", "torque_str", "friction"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigValidationError(name, f"must be non-negative, got {value}")
        return self


@dataclass
class ForceBuffer:
    fx: List[float]
    fy: List[float]
    torque: List[float]

    @classmethod
    def zeros(cls, count: int) -> "ForceBuffer":
        return cls([0.0] * count, [0.0] * count, [0.0] * count)

    def __len__(self) -> int:
        return len(self.fx)


@dataclass
class BondState:
    i: int
    j: int
    distance: float
    gate: float


def spawn_particle(config: SimulationConfig, rng: random.Random) -> Particle:
    margin = config.spawn_margin
    return Particle(
        x=margin + rng.random() * (config.width - 2 * margin),
        y=margin + rng.random() * (config.height - 2 * margin),
        vx=rng.random() - 0.5,
        vy=rng.random() - 0.5,
        theta=rng.random() * math.tau,
        omega=0.0,
    )


class ParticleStore:
    """
    Owns the mutable particle list. Resizing only touches the tail so
    existing particles keep their state.
    """

    def __init__(self, particles: Optional[Iterable[Particle]] = None):
        self.particles: List[Particle] = list(particles or [])

    def __len__(self) -> int:
        return len(self.particles)

    def __iter__(self):
        return iter(self.particles)

    def populate(self, config: SimulationConfig, rng: random.Random) -> None:
        self.particles = [spawn_particle(config, rng) for _ in range(config.n)]

    def resize(self, config: SimulationConfig, rng: random.Random) -> int:
        """Grow or shrink to ``config.n``; returns the signed change."""
        change = config.n - len(self.particles)
        while len(self.particles) < config.n:
            self.particles.append(spawn_particle(config, rng))
        while len(self.particles) > config.n:
            self.particles.pop()
        return change

    def snapshot(self) -> ParticleSnapshot:
        return tuple(
            ParticleState(x=p.x, y=p.y, theta=p.theta, vx=p.vx, vy=p.vy, omega=p.omega)
            for p in self.particles
        )


def accumulate_forces(particles: Sequence[Particle], config: SimulationConfig) -> ForceBuffer:
    """
    Sum repulsion, gated attraction and alignment torque over every pair
    within the cutoff. Particles are only read; results go to a fresh buffer.
    """
    count = len(particles)
    forces = ForceBuffer.zeros(count)
    fx, fy, tq = forces.fx, forces.fy, forces.torque

    eq_dist = config.eq_dist
    cutoff_sq = config.cutoff * config.cutoff
    repulsion_range = eq_dist * REPULSION_RANGE_FACTOR
    sharpness = config.sharpness

    for i in range(count):
        a = particles[i]
        for j in range(i + 1, count):
            b = particles[j]
            dx = b.x - a.x
            dy = b.y - a.y
            r2 = dx * dx + dy * dy
            if r2 < MIN_PAIR_DISTANCE_SQ or r2 > cutoff_sq:
                continue
            r = math.sqrt(r2)
            ux = dx / r
            uy = dy / r
            angle_ij = math.atan2(dy, dx)
            angle_ji = angle_ij + math.pi

            if r < repulsion_range:
                overlap = (repulsion_range - r) / eq_dist
                rf = config.rep_str * overlap * overlap
                fx[i] -= rf * ux
                fy[i] -= rf * uy
                fx[j] += rf * ux
                fy[j] += rf * uy

            dr = (r - eq_dist) / eq_dist
            gate = alignment_weight(angle_ij, a.theta, sharpness) * alignment_weight(
                angle_ji, b.theta, sharpness
            )
            if gate > ATTRACTION_GATE_MIN:
                stretch = max(0.0, dr)
                decay = math.exp(-2.0 * stretch * stretch)
                sf = config.att_str * gate * dr * decay
                fx[i] += sf * ux
                fy[i] += sf * uy
                fx[j] -= sf * ux
                fy[j] -= sf * uy

            proximity = math.exp(-2.0 * dr * dr)
            tq[i] += config.torque_str * math.sin(nearest_axis_offset(angle_ij, a.theta)) * proximity
            tq[j] += config.torque_str * math.sin(nearest_axis_offset(angle_ji, b.theta)) * proximity

    return forces


def integrate(
    particles: Sequence[Particle],
    forces: ForceBuffer,
    config: SimulationConfig,
    dt: float = SUBSTEP_DT,
) -> float:
    """Advance one damped semi-implicit Euler step; returns kinetic energy."""
    if len(forces) != len(particles):
        raise ValueError(
            f"Force buffer holds {len(forces)} slots for {len(particles)} particles."
        )
    fm = friction_multiplier(config.friction, dt)
    x_max = config.width - BOUNDARY_INSET
    y_max = config.height - BOUNDARY_INSET
    kinetic = 0.0

    for idx, p in enumerate(particles):
        p.vx = (p.vx + forces.fx[idx] * dt) * LINEAR_DAMPING * fm
        p.vy = (p.vy + forces.fy[idx] * dt) * LINEAR_DAMPING * fm
        p.x += p.vx * dt
        p.y += p.vy * dt
        p.omega = (p.omega + forces.torque[idx] * dt) * ANGULAR_DAMPING * fm
        p.theta += p.omega * dt
        kinetic += p.vx * p.vx + p.vy * p.vy

        if p.x < BOUNDARY_INSET:
            p.x = BOUNDARY_INSET
            p.vx *= BOUNDARY_RESTITUTION
        if p.x > x_max:
            p.x = x_max
            p.vx *= BOUNDARY_RESTITUTION
        if p.y < BOUNDARY_INSET:
            p.y = BOUNDARY_INSET
            p.vy *= BOUNDARY_RESTITUTION
        if p.y > y_max:
            p.y = y_max
            p.vy *= BOUNDARY_RESTITUTION

    return 0.5 * kinetic


def find_bonds(
    particles: Sequence[Particle],
    config: SimulationConfig,
    range_factor: float = RENDER_BOND_RANGE_FACTOR,
    min_gate: float = RENDER_BOND_GATE_MIN,
) -> List[BondState]:
    """Pairs close enough and well enough aligned to draw as bonds."""
    bonds: List[BondState] = []
    max_distance = config.eq_dist * range_factor
    for i, a in enumerate(particles):
        for j in range(i + 1, len(particles)):
            b = particles[j]
            dx = b.x - a.x
            dy = b.y - a.y
            r = math.hypot(dx, dy)
            if r > max_distance:
                continue
            angle = math.atan2(dy, dx)
            gate = alignment_weight(angle, a.theta, config.sharpness) * alignment_weight(
                angle + math.pi, b.theta, config.sharpness
            )
            if gate > min_gate:
                bonds.append(BondState(i=i, j=j, distance=r, gate=gate))
    return bonds


@dataclass
class TickResult:
    snapshot: ParticleSnapshot
    energy: float
    frame_index: int

    def __iter__(self):
        yield self.snapshot
        yield self.energy


class Simulation:
    """
    Tick-driven driver around the particle store.

    The host scheduler (frame loop, timer or batch harness) calls
    :meth:`tick` with the configuration to use for that frame. The
    running flag is a hint for that scheduler and is not consulted here.
    """

    def __init__(
        self,
        config: SimulationConfig,
        particles: Optional[Iterable[Particle]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.random = rng or random.Random()
        self.config = config.validate()
        self.store = ParticleStore()
        self.frame_index: int = 0
        self.energy: float = 0.0
        self._running = False
        if particles is None:
            self.initialize(config)
        else:
            self.store = ParticleStore(particles)

    @property
    def particles(self) -> List[Particle]:
        return self.store.particles

    @property
    def is_running(self) -> bool:
        return self._running

    def set_running(self, running: bool) -> None:
        self._running = bool(running)

    def start(self) -> None:
        self.set_running(True)

    def pause(self) -> None:
        self.set_running(False)

    def initialize(self, config: SimulationConfig) -> ParticleSnapshot:
        """(Re)seed the population from ``config``."""
        self.config = config.validate()
        self.store.populate(self.config, self.random)
        self.frame_index = 0
        self.energy = 0.0
        logger.info("Initialized %d particles in %gx%g domain", len(self.store), config.width, config.height)
        return self.store.snapshot()

    def reset(self, config: SimulationConfig) -> ParticleSnapshot:
        return self.initialize(config)

    def snapshot(self) -> ParticleSnapshot:
        return self.store.snapshot()

    def tick(self, config: Optional[SimulationConfig] = None) -> TickResult:
        """Reconcile the population, then run the sub-steps for one frame."""
        current = (config or self.config).validate()
        self.config = current
        change = self.store.resize(current, self.random)
        if change:
            logger.debug("Population changed by %+d to %d", change, len(self.store))

        energy = 0.0
        for _ in range(SUBSTEPS_PER_TICK):
            forces = accumulate_forces(self.store.particles, current)
            energy = integrate(self.store.particles, forces, current)

        self.frame_index += 1
        self.energy = energy
        return TickResult(snapshot=self.store.snapshot(), energy=energy, frame_index=self.frame_index)

    def bonds(self) -> List[BondState]:
        return find_bonds(self.store.particles, self.config)
