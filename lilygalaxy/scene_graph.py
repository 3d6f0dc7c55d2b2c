"""Minimal retained scene graph consumed by the view widget.

The renderer draws meshes (a shared :class:`~lilygalaxy.shapes.ShapePrototype`
plus a per-particle :class:`Material`) and point clouds.  Meshes live inside
groups which carry a rigid transform; the view walks the tree once per frame.

Quaternions are stored as ``(x, y, z, w)`` tuples and Euler angles use the XYZ
order.
"""

from __future__ import annotations

import math
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from .shapes import ShapePrototype, Vec3

__all__ = [
    "Quat",
    "Mat3",
    "Material",
    "Mesh",
    "Points",
    "Group",
    "quat_identity",
    "quat_multiply",
    "quat_from_axis_angle",
    "quat_from_unit_vectors",
    "quat_to_matrix",
    "euler_to_matrix",
    "mat_mul",
    "mat_apply",
]

Quat = Tuple[float, float, float, float]
Mat3 = Tuple[Tuple[float, float, float], Tuple[float, float, float], Tuple[float, float, float]]


# ---------------------------------------------------------------------------
# Rotation helpers


def quat_identity() -> Quat:
    return (0.0, 0.0, 0.0, 1.0)


def quat_normalize(q: Sequence[float]) -> Quat:
    length = math.sqrt(q[0] ** 2 + q[1] ** 2 + q[2] ** 2 + q[3] ** 2)
    if length == 0.0:
        return quat_identity()
    return (q[0] / length, q[1] / length, q[2] / length, q[3] / length)


def quat_multiply(a: Quat, b: Quat) -> Quat:
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return (
        ax * bw + aw * bx + ay * bz - az * by,
        ay * bw + aw * by + az * bx - ax * bz,
        az * bw + aw * bz + ax * by - ay * bx,
        aw * bw - ax * bx - ay * by - az * bz,
    )


def quat_from_axis_angle(axis: Vec3, angle: float) -> Quat:
    ax, ay, az = axis
    half = angle / 2.0
    s = math.sin(half)
    return quat_normalize((ax * s, ay * s, az * s, math.cos(half)))


def quat_from_unit_vectors(v_from: Vec3, v_to: Vec3) -> Quat:
    """Return the shortest rotation taking ``v_from`` onto ``v_to``.

    Both vectors must be normalised.  Opposite vectors produce a half turn
    about an arbitrary perpendicular axis.
    """

    r = v_from[0] * v_to[0] + v_from[1] * v_to[1] + v_from[2] * v_to[2] + 1.0
    if r < 1e-8:
        r = 0.0
        if abs(v_from[0]) > abs(v_from[2]):
            q = (-v_from[1], v_from[0], 0.0, r)
        else:
            q = (0.0, -v_from[2], v_from[1], r)
    else:
        q = (
            v_from[1] * v_to[2] - v_from[2] * v_to[1],
            v_from[2] * v_to[0] - v_from[0] * v_to[2],
            v_from[0] * v_to[1] - v_from[1] * v_to[0],
            r,
        )
    return quat_normalize(q)


def quat_to_matrix(q: Quat) -> Mat3:
    x, y, z, w = q
    return (
        (1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)),
        (2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)),
        (2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)),
    )


def euler_to_matrix(rx: float, ry: float, rz: float) -> Mat3:
    a, b = math.cos(rx), math.sin(rx)
    c, d = math.cos(ry), math.sin(ry)
    e, f = math.cos(rz), math.sin(rz)
    ae, af, be, bf = a * e, a * f, b * e, b * f
    return (
        (c * e, -c * f, d),
        (af + be * d, ae - bf * d, -b * c),
        (bf - ae * d, be + af * d, a * c),
    )


def mat_mul(m: Mat3, n: Mat3) -> Mat3:
    return tuple(
        tuple(sum(m[i][k] * n[k][j] for k in range(3)) for j in range(3)) for i in range(3)
    )  # type: ignore[return-value]


def mat_apply(m: Mat3, v: Sequence[float]) -> Vec3:
    return (
        m[0][0] * v[0] + m[0][1] * v[1] + m[0][2] * v[2],
        m[1][0] * v[0] + m[1][1] * v[1] + m[1][2] * v[2],
        m[2][0] * v[0] + m[2][1] * v[1] + m[2][2] * v[2],
    )


# ---------------------------------------------------------------------------
# Scene objects


class Material:
    """Per-primitive color and opacity."""

    def __init__(
        self,
        color: str,
        opacity: float = 1.0,
        *,
        transparent: bool = True,
        blending: str = "normal",
        size: float = 1.0,
    ) -> None:
        self.color = color
        self.opacity = opacity
        self.transparent = transparent
        self.blending = blending
        self.size = size
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> bool:
        """Release the material; return ``False`` when it was already released."""

        if self._disposed:
            return False
        self._disposed = True
        return True


class Mesh:
    """One transformable primitive: a shape prototype drawn with a material."""

    def __init__(self, shape: ShapePrototype, material: Material) -> None:
        self.shape: Optional[ShapePrototype] = shape
        self.material: Optional[Material] = material
        self.position: List[float] = [0.0, 0.0, 0.0]
        self.rotation: List[float] = [0.0, 0.0, 0.0]
        self.scale: float = 1.0
        self.parent: Optional["Group"] = None

    @property
    def disposed(self) -> bool:
        return self.material is None

    def dispose(self) -> None:
        material = self.material
        self.material = None
        # the prototype is shared, only the reference is dropped
        self.shape = None
        if material is not None:
            material.dispose()


class Points:
    """Point cloud built from a flat ``x, y, z`` coordinate buffer."""

    def __init__(self, positions: Sequence[float], material: Material) -> None:
        if len(positions) % 3:
            raise ValueError("position buffer length must be a multiple of 3")
        self.positions: Optional[List[float]] = list(positions)
        self.material: Optional[Material] = material
        self.parent: Optional["Group"] = None

    def __len__(self) -> int:
        return len(self.positions) // 3 if self.positions else 0

    def iter_points(self) -> Iterator[Vec3]:
        buf = self.positions or []
        for i in range(0, len(buf), 3):
            yield (buf[i], buf[i + 1], buf[i + 2])

    def dispose(self) -> None:
        material = self.material
        self.material = None
        self.positions = None
        if material is not None:
            material.dispose()


Node = Union["Group", Mesh, Points]


class Group:
    """Container node holding a rigid transform and child nodes."""

    def __init__(self) -> None:
        self.position: List[float] = [0.0, 0.0, 0.0]
        self.quaternion: Quat = quat_identity()
        self.scale: float = 1.0
        self.children: List[Node] = []
        self.parent: Optional["Group"] = None

    def add(self, node: Node) -> None:
        if node.parent is not None:
            node.parent.remove(node)
        node.parent = self
        self.children.append(node)

    def remove(self, node: Node) -> None:
        try:
            self.children.remove(node)
        except ValueError:
            return
        node.parent = None

    def set_rotation_from_quaternion(self, q: Quat) -> None:
        self.quaternion = quat_normalize(q)

    def rotate_on_axis(self, axis: Vec3, angle: float) -> None:
        """Rotate about ``axis`` expressed in the group's own frame."""

        self.quaternion = quat_normalize(quat_multiply(self.quaternion, quat_from_axis_angle(axis, angle)))

    def rotate_y(self, angle: float) -> None:
        self.rotate_on_axis((0.0, 1.0, 0.0), angle)

    def world_transform(self) -> Tuple[Mat3, Vec3, float]:
        """Return ``(rotation, translation, scale)`` mapping local to world space."""

        rot = quat_to_matrix(self.quaternion)
        pos: Vec3 = (self.position[0], self.position[1], self.position[2])
        scale = self.scale
        if self.parent is None:
            return rot, pos, scale
        p_rot, p_pos, p_scale = self.parent.world_transform()
        moved = mat_apply(p_rot, pos)
        return (
            mat_mul(p_rot, rot),
            (p_pos[0] + moved[0] * p_scale, p_pos[1] + moved[1] * p_scale, p_pos[2] + moved[2] * p_scale),
            p_scale * scale,
        )

    def local_to_world(self, point: Sequence[float]) -> Vec3:
        rot, pos, scale = self.world_transform()
        v = mat_apply(rot, point)
        return (pos[0] + v[0] * scale, pos[1] + v[1] * scale, pos[2] + v[2] * scale)

    def traverse(self) -> Iterator[Tuple["Group", Node]]:
        """Yield ``(owner, node)`` for every mesh and point cloud below this group."""

        for child in list(self.children):
            if isinstance(child, Group):
                yield from child.traverse()
            else:
                yield self, child
