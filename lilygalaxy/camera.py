"""Perspective camera and the drag/wheel orbit rig."""

from __future__ import annotations

import math
from typing import List, Mapping, Optional, Sequence, Tuple

from .shapes import Vec3

__all__ = ["PerspectiveCamera", "CameraRig", "Projection"]

# (screen x, screen y, depth along the view axis, pixels per world unit)
Projection = Tuple[float, float, float, float]


def _sub(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def _cross(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (a[1] * b[2] - a[2] * b[1], a[2] * b[0] - a[0] * b[2], a[0] * b[1] - a[1] * b[0])


def _norm(a: Sequence[float]) -> float:
    return math.sqrt(a[0] * a[0] + a[1] * a[1] + a[2] * a[2])


def _unit(a: Sequence[float]) -> Vec3:
    n = _norm(a)
    if n == 0.0:
        return (0.0, 0.0, 0.0)
    return (a[0] / n, a[1] / n, a[2] / n)


class PerspectiveCamera:
    """Pinhole camera looking at a target with ``+y`` as the world up axis."""

    def __init__(
        self,
        fov: float = 75.0,
        aspect: float = 1.0,
        near: float = 0.1,
        far: float = 3000.0,
        position: Sequence[float] = (0.0, 0.0, 1.0),
    ) -> None:
        self.fov = float(fov)
        self.aspect = float(aspect)
        self.near = float(near)
        self.far = float(far)
        self.position: List[float] = [float(position[0]), float(position[1]), float(position[2])]
        self.target: Vec3 = (0.0, 0.0, 0.0)
        self._basis: Optional[Tuple[Vec3, Vec3, Vec3]] = None

    @property
    def distance(self) -> float:
        return _norm(self.position)

    def set_position(self, x: float, y: float, z: float) -> None:
        self.position = [float(x), float(y), float(z)]
        self._basis = None

    def set_aspect(self, aspect: float) -> None:
        if aspect > 0.0 and math.isfinite(aspect):
            self.aspect = float(aspect)

    def look_at(self, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> None:
        self.target = (float(x), float(y), float(z))
        self._basis = None

    def basis(self) -> Tuple[Vec3, Vec3, Vec3]:
        """Return the ``(right, up, forward)`` unit vectors."""

        if self._basis is not None:
            return self._basis
        forward = _unit(_sub(self.target, self.position))
        if forward == (0.0, 0.0, 0.0):
            forward = (0.0, 0.0, -1.0)
        right = _cross(forward, (0.0, 1.0, 0.0))
        if _norm(right) < 1e-9:
            # looking straight up or down
            right = _cross(forward, (0.0, 0.0, -1.0 if forward[1] < 0 else 1.0))
        right = _unit(right)
        up = _cross(right, forward)
        self._basis = (right, up, forward)
        return self._basis

    def focal_length(self, height: float) -> float:
        return (height / 2.0) / math.tan(math.radians(self.fov) / 2.0)

    def project(self, point: Sequence[float], width: float, height: float) -> Optional[Projection]:
        """Project a world point onto a ``width`` x ``height`` viewport.

        Returns ``None`` outside the near/far range.
        """

        right, up, forward = self.basis()
        d = _sub(point, self.position)
        depth = d[0] * forward[0] + d[1] * forward[1] + d[2] * forward[2]
        if depth < self.near or depth > self.far:
            return None
        focal = self.focal_length(height)
        inv = focal / depth
        xc = d[0] * right[0] + d[1] * right[1] + d[2] * right[2]
        yc = d[0] * up[0] + d[1] * up[1] + d[2] * up[2]
        return (width / 2.0 + xc * inv, height / 2.0 - yc * inv, depth, inv)


class CameraRig:
    """Accumulates drag and wheel input into spherical camera coordinates.

    Input handlers only mutate ``pitch``, ``yaw`` and the camera distance;
    :meth:`apply` places the camera once per frame.
    """

    def __init__(
        self,
        camera: PerspectiveCamera,
        *,
        sensitivity: float = 0.005,
        zoom_mode: str = "radius",
        zoom_factor: float = 0.5,
        zoom_min: float = 300.0,
        zoom_max: float = 2000.0,
        pitch: Optional[float] = None,
        yaw: Optional[float] = None,
    ) -> None:
        self.camera = camera
        self.sensitivity = float(sensitivity)
        self.zoom_mode = zoom_mode if zoom_mode in ("radius", "dolly") else "radius"
        self.zoom_factor = float(zoom_factor)
        self.zoom_min = float(zoom_min)
        self.zoom_max = float(zoom_max)
        radius = camera.distance or 1.0
        x, y, z = camera.position
        self.pitch = math.asin(max(-1.0, min(1.0, y / radius))) if pitch is None else float(pitch)
        self.yaw = math.atan2(x, z) if yaw is None else float(yaw)
        self.dragging = False
        self._last: Tuple[float, float] = (0.0, 0.0)

    @classmethod
    def from_config(cls, camera: PerspectiveCamera, cfg: Mapping[str, object], sensitivity: float = 0.005) -> "CameraRig":
        pitch = cfg.get("initialPitch")
        yaw = cfg.get("initialYaw")
        return cls(
            camera,
            sensitivity=sensitivity,
            zoom_mode=str(cfg.get("zoomMode", "radius")),
            zoom_factor=float(cfg.get("zoomFactor", 0.5)),
            zoom_min=float(cfg.get("zoomMin", 300.0)),
            zoom_max=float(cfg.get("zoomMax", 2000.0)),
            pitch=None if pitch is None else float(pitch),
            yaw=None if yaw is None else float(yaw),
        )

    # ----------------------------------------------------------------- input
    def press(self, x: float, y: float) -> None:
        self.dragging = True
        self._last = (float(x), float(y))

    def move(self, x: float, y: float) -> None:
        if not self.dragging:
            return
        dx = x - self._last[0]
        dy = y - self._last[1]
        self.yaw += dx * self.sensitivity
        self.pitch += dy * self.sensitivity
        self.pitch = max(-math.pi / 2.0, min(math.pi / 2.0, self.pitch))
        self._last = (float(x), float(y))

    def release(self) -> None:
        self.dragging = False

    def wheel(self, delta_y: float) -> None:
        """Zoom by a browser-style wheel delta (positive scrolls away)."""

        cam = self.camera
        if self.zoom_mode == "dolly":
            z = cam.position[2] + delta_y * self.zoom_factor
            cam.set_position(cam.position[0], cam.position[1], max(self.zoom_min, min(self.zoom_max, z)))
            return
        current = cam.distance
        if current == 0.0:
            return
        new_radius = max(self.zoom_min, min(self.zoom_max, current + delta_y * self.zoom_factor))
        ratio = new_radius / current
        cam.set_position(cam.position[0] * ratio, cam.position[1] * ratio, cam.position[2] * ratio)

    # ----------------------------------------------------------------- frame
    def apply(self, camera: Optional[PerspectiveCamera] = None) -> None:
        cam = camera or self.camera
        radius = cam.distance
        cam.set_position(
            radius * math.sin(self.yaw) * math.cos(self.pitch),
            radius * math.sin(self.pitch),
            radius * math.cos(self.yaw) * math.cos(self.pitch),
        )
        cam.look_at(0.0, 0.0, 0.0)
