"""Particle records and the factory that randomises them.

A :class:`Particle` pairs the render primitive (a :class:`Mesh`) with the
private kinematic state advanced by the animation driver.  Nothing is stored
on the mesh itself besides its transform and material.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, Tuple

from .scene_graph import Material, Mesh
from .shapes import ShapePrototype, Vec3

__all__ = [
    "RandomSource",
    "OrbitState",
    "Kinematics",
    "Particle",
    "default_rng",
    "pick",
    "symmetric",
    "make_particle",
]

TWO_PI = math.pi * 2.0


class RandomSource(Protocol):
    """Anything exposing ``random()`` in ``[0, 1)``, ``random.Random`` included."""

    def random(self) -> float: ...


_DEFAULT_RNG = random.Random()


def default_rng() -> RandomSource:
    return _DEFAULT_RNG


def pick(rng: RandomSource, items: Sequence):
    return items[int(rng.random() * len(items)) % len(items)]


def symmetric(rng: RandomSource, span: float) -> float:
    """Uniform value in ``[-span / 2, span / 2)``."""

    return (rng.random() - 0.5) * span


@dataclass
class OrbitState:
    """Horizontal circular drift around ``center``."""

    radius: float
    angle: float
    speed: float
    vertical_offset: float
    center: Vec3 = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        if self.radius < 0.0:
            raise ValueError("orbit radius must be >= 0")


@dataclass
class Kinematics:
    rotation_speed: Vec3
    pulse_phase: float
    pulse_speed: float
    orbit: Optional[OrbitState] = None


@dataclass
class Particle:
    mesh: Mesh
    kinematics: Kinematics
    base_opacity: float = 1.0
    color: str = field(default="#ffffff")

    @property
    def position(self) -> Tuple[float, float, float]:
        p = self.mesh.position
        return (p[0], p[1], p[2])

    @property
    def opacity(self) -> float:
        material = self.mesh.material
        return material.opacity if material is not None else 0.0

    @property
    def disposed(self) -> bool:
        return self.mesh.disposed

    def dispose(self) -> None:
        self.mesh.dispose()


def make_particle(
    position: Sequence[float],
    shapes: Sequence[ShapePrototype],
    palette: Sequence[str],
    rng: Optional[RandomSource] = None,
    *,
    opacity: Tuple[float, float] = (0.6, 0.4),
    scale: Tuple[float, float] = (0.4, 1.2),
    scale_factor: float = 1.0,
    spin: float = 0.02,
    pulse_speed: Tuple[float, float] = (0.01, 0.02),
    orbit: Optional[OrbitState] = None,
) -> Particle:
    """Build one particle at ``position``.

    Range arguments are ``(minimum, span)`` pairs sampled uniformly; ``spin``
    is the full width of the per-axis rotation speed interval centred on zero.
    ``scale_factor`` multiplies the sampled scale (petals shrink toward the tip).
    """

    rng = rng or default_rng()
    shape = pick(rng, shapes)
    color = pick(rng, palette)
    base_opacity = opacity[0] + rng.random() * opacity[1]
    mesh = Mesh(shape, Material(color, base_opacity, transparent=True))
    mesh.position = [float(position[0]), float(position[1]), float(position[2])]
    mesh.scale = scale_factor * (scale[0] + rng.random() * scale[1])
    kinematics = Kinematics(
        rotation_speed=(symmetric(rng, spin), symmetric(rng, spin), symmetric(rng, spin)),
        pulse_phase=rng.random() * TWO_PI,
        pulse_speed=pulse_speed[0] + rng.random() * pulse_speed[1],
        orbit=orbit,
    )
    return Particle(mesh=mesh, kinematics=kinematics, base_opacity=base_opacity, color=color)
