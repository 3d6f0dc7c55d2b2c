"""Shared shape prototypes used by every particle.

Each prototype is a tiny unit-sized solid described by its vertices.  The
renderer only needs the vertices: a particle is drawn as the silhouette of its
rotated and scaled prototype.  Prototypes are created once and shared
read-only between all particles.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

__all__ = [
    "Vec3",
    "ShapePrototype",
    "STAR_SHAPES",
    "star_shapes",
    "uv_sphere_vertices",
]

Vec3 = Tuple[float, float, float]

_PHI = (1.0 + math.sqrt(5.0)) / 2.0


@dataclass(frozen=True)
class ShapePrototype:
    """Immutable vertex set shared between particles."""

    name: str
    vertices: Tuple[Vec3, ...]
    round: bool = False


def _normalize(vec: Sequence[float], radius: float = 1.0) -> Vec3:
    length = math.sqrt(vec[0] ** 2 + vec[1] ** 2 + vec[2] ** 2) or 1.0
    return (radius * vec[0] / length, radius * vec[1] / length, radius * vec[2] / length)


def uv_sphere_vertices(radius: float = 1.0, lat: int = 8, lon: int = 8) -> List[Vec3]:
    lat_steps = max(2, int(lat))
    lon_steps = max(3, int(lon))
    points: List[Vec3] = []
    for i in range(lat_steps):
        theta = (i / (lat_steps - 1)) * math.pi
        sin_theta = math.sin(theta)
        cos_theta = math.cos(theta)
        for j in range(lon_steps):
            phi = (j / lon_steps) * 2.0 * math.pi
            points.append((radius * sin_theta * math.cos(phi), radius * cos_theta, radius * sin_theta * math.sin(phi)))
    return points


_POLYHEDRA: Dict[str, List[Vec3]] = {
    "tetrahedron": [(1, 1, 1), (1, -1, -1), (-1, 1, -1), (-1, -1, 1)],
    "octahedron": [(1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1)],
    "icosahedron": [
        (-1, _PHI, 0),
        (1, _PHI, 0),
        (-1, -_PHI, 0),
        (1, -_PHI, 0),
        (0, -1, _PHI),
        (0, 1, _PHI),
        (0, -1, -_PHI),
        (0, 1, -_PHI),
        (_PHI, 0, -1),
        (_PHI, 0, 1),
        (-_PHI, 0, -1),
        (-_PHI, 0, 1),
    ],
}

# Unit edge box, not inscribed in the unit sphere.
_BOX: List[Vec3] = [
    (x * 0.5, y * 0.5, z * 0.5) for x in (-1, 1) for y in (-1, 1) for z in (-1, 1)
]


def star_shapes() -> Tuple[ShapePrototype, ...]:
    """Return the five prototypes a particle may pick from."""

    return (
        ShapePrototype("sphere", tuple(uv_sphere_vertices(1.0, 8, 8)), round=True),
        ShapePrototype("tetrahedron", tuple(_normalize(v) for v in _POLYHEDRA["tetrahedron"])),
        ShapePrototype("octahedron", tuple(_normalize(v) for v in _POLYHEDRA["octahedron"])),
        ShapePrototype("icosahedron", tuple(_normalize(v) for v in _POLYHEDRA["icosahedron"])),
        ShapePrototype("box", tuple(_BOX)),
    )


STAR_SHAPES: Tuple[ShapePrototype, ...] = star_shapes()
