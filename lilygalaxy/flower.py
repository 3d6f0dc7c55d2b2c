from __future__ import annotations

import math
from typing import Mapping, Optional, Sequence, Tuple

from .config import DEFAULTS
from .formations import Formation, generate_connections, generate_core, generate_petals
from .particles import Particle, RandomSource, default_rng
from .scene_graph import Group, quat_from_unit_vectors
from .shapes import ShapePrototype, Vec3

__all__ = ["LilyFlower", "UP"]

UP: Vec3 = (0.0, 1.0, 0.0)


def _unit(vec: Sequence[float]) -> Vec3:
    length = math.sqrt(vec[0] ** 2 + vec[1] ** 2 + vec[2] ** 2)
    if length == 0.0:
        return UP
    return (vec[0] / length, vec[1] / length, vec[2] / length)


class LilyFlower:
    """Core, petals and connective fill sharing one rigid frame.

    The group first maps the canonical up axis onto ``normal``, then yaws by
    ``rotation`` about its own up axis, so the generators never see the tilt.
    """

    def __init__(
        self,
        parent: Group,
        shapes: Sequence[ShapePrototype],
        *,
        position: Sequence[float] = (0.0, 0.0, 0.0),
        scale: float = 1.0,
        rotation: float = 0.0,
        normal: Sequence[float] = UP,
        core_color: str = "yellow",
        petal_color: str = "white",
        config: Optional[Mapping[str, dict]] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        cfg = config or DEFAULTS
        self.parent: Optional[Group] = parent
        self.shapes = tuple(shapes)
        self.scale = float(scale)
        self.rotation = float(rotation)
        self.normal = _unit(normal)
        self.core_color = core_color
        self.petal_color = petal_color
        self._rng = rng or default_rng()

        self.group: Optional[Group] = Group()
        self.group.position = [float(position[0]), float(position[1]), float(position[2])]
        self.group.set_rotation_from_quaternion(quat_from_unit_vectors(UP, self.normal))
        self.group.rotate_y(self.rotation)

        self.core = self._create_core(cfg.get("core", {}))
        self.petals = self._create_petals(cfg.get("petals", {}))
        self.connections = self._create_connections(cfg.get("connections", {}))
        for formation in (self.core, self.petals, self.connections):
            for particle in formation:
                self.group.add(particle.mesh)
        parent.add(self.group)

    # ---------------------------------------------------------------- builders
    def _create_core(self, cfg: Mapping[str, object]) -> Formation:
        return generate_core(
            self.shapes,
            scale=self.scale,
            rotation=self.rotation,
            color=self.core_color,
            count=int(cfg.get("count", 350)),
            base_radius=float(cfg.get("baseRadius", 35.0)),
            orbit_speed=float(cfg.get("orbitSpeed", 0.005)),
            rng=self._rng,
        )

    def _create_petals(self, cfg: Mapping[str, object]) -> Formation:
        return generate_petals(
            self.shapes,
            scale=self.scale,
            rotation=self.rotation,
            color=self.petal_color,
            petal_count=int(cfg.get("count", 24)),
            stars_per_petal=int(cfg.get("starsPerPetal", 150)),
            inner_radius=float(cfg.get("innerRadius", 40.0)),
            length=float(cfg.get("length", 280.0)),
            orbit_speed=float(cfg.get("orbitSpeed", 0.0008)),
            rng=self._rng,
        )

    def _create_connections(self, cfg: Mapping[str, object]) -> Formation:
        return generate_connections(
            self.shapes,
            scale=self.scale,
            rotation=self.rotation,
            gaps=int(cfg.get("gaps", 6)),
            stars_per_gap=int(cfg.get("starsPerGap", 80)),
            inner_radius=float(cfg.get("innerRadius", 50.0)),
            length=float(cfg.get("length", 270.0)),
            orbit_speed=float(cfg.get("orbitSpeed", 0.001)),
            rng=self._rng,
        )

    # -------------------------------------------------------------------- API
    @property
    def formations(self) -> Tuple[Formation, Formation, Formation]:
        return self.core, self.petals, self.connections

    def all_particles(self) -> Tuple[Particle, ...]:
        return self.core.particles + self.petals.particles + self.connections.particles

    get_all_stars = all_particles

    def __len__(self) -> int:
        return sum(len(f) for f in self.formations)

    def destroy(self) -> None:
        if self.group is not None and self.parent is not None:
            self.parent.remove(self.group)
        for formation in self.formations:
            formation.release()
        self.group = None
        self.parent = None
