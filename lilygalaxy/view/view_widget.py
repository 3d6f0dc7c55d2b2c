"""Qt widget rendering a particle scene with a Python perspective camera.

Each frame the widget's timer advances the :class:`AnimationDriver` (camera
first, then every particle) and schedules a repaint.  Painting walks the scene
graph, projects every mesh and point through :class:`PerspectiveCamera` and
draws them back to front with ``QPainter``:

* meshes whose projected size exceeds ``system.minPolygonPx`` are drawn as the
  convex silhouette of their rotated prototype, smaller ones (and spheres) as
  discs;
* point clouds are drawn as small additive dots.

Two backends share the same behaviour: a ``QOpenGLWidget`` when the platform
can create a GL context and a plain raster ``QWidget`` otherwise.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from PyQt5 import QtCore, QtGui, QtWidgets

from ..animation import AnimationDriver
from ..camera import CameraRig, PerspectiveCamera
from ..config import merge_config
from ..particles import RandomSource
from ..scene import FlowerScene, TextScene
from ..scene_graph import Group, Mat3, Mesh, Points, euler_to_matrix, mat_apply, mat_mul

__all__ = [
    "RenderItem",
    "build_draw_list",
    "SceneViewWidget",
    "mount_flower_scene",
    "mount_text_scene",
]

CameraCallback = Callable[[PerspectiveCamera], None]
Teardown = Callable[[], None]


@dataclass
class RenderItem:
    """One primitive projected on screen."""

    sx: float
    sy: float
    r: float
    color: str
    alpha: float
    depth: float
    polygon: Optional[List[Tuple[float, float]]] = None
    additive: bool = False


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _convex_hull(points: Sequence[Tuple[float, float]]) -> List[Tuple[float, float]]:
    pts = sorted(set(points))
    if len(pts) <= 2:
        return list(pts)

    def _turn(o, a, b) -> float:
        return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])

    lower: List[Tuple[float, float]] = []
    for p in pts:
        while len(lower) >= 2 and _turn(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)
    upper: List[Tuple[float, float]] = []
    for p in reversed(pts):
        while len(upper) >= 2 and _turn(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)
    return lower[:-1] + upper[:-1]


def _on_screen(sx: float, sy: float, r: float, width: int, height: int) -> bool:
    return -r <= sx <= width + r and -r <= sy <= height + r


def build_draw_list(
    root: Group,
    camera: PerspectiveCamera,
    width: int,
    height: int,
    *,
    min_polygon_px: float = 4.0,
    depth_sort: bool = True,
) -> List[RenderItem]:
    """Project every visible primitive below ``root``.

    Primitives whose projected disc lies outside the viewport are dropped.
    Items are ordered far to near when ``depth_sort`` is set.
    """

    if width <= 0 or height <= 0:
        return []
    items: List[RenderItem] = []
    transforms: Dict[int, Tuple[Mat3, Tuple[float, float, float], float]] = {}
    for owner, node in root.traverse():
        key = id(owner)
        if key not in transforms:
            transforms[key] = owner.world_transform()
        rot, origin, scale = transforms[key]

        if isinstance(node, Points):
            material = node.material
            if material is None:
                continue
            for point in node.iter_points():
                v = mat_apply(rot, point)
                world = (origin[0] + v[0] * scale, origin[1] + v[1] * scale, origin[2] + v[2] * scale)
                proj = camera.project(world, width, height)
                if proj is None:
                    continue
                sx, sy, depth, inv = proj
                r = max(0.5, material.size * inv * 0.5)
                if not _on_screen(sx, sy, r, width, height):
                    continue
                items.append(
                    RenderItem(
                        sx, sy, r, material.color,
                        clamp01(material.opacity), depth, additive=material.blending == "additive",
                    )
                )
            continue

        if not isinstance(node, Mesh) or node.material is None or node.shape is None:
            continue
        v = mat_apply(rot, node.position)
        center = (origin[0] + v[0] * scale, origin[1] + v[1] * scale, origin[2] + v[2] * scale)
        proj = camera.project(center, width, height)
        if proj is None:
            continue
        sx, sy, depth, inv = proj
        size = node.scale * scale
        radius = size * inv
        if not _on_screen(sx, sy, radius, width, height):
            continue
        polygon: Optional[List[Tuple[float, float]]] = None
        if not node.shape.round and radius >= min_polygon_px:
            spin = mat_mul(rot, euler_to_matrix(*node.rotation))
            screen: List[Tuple[float, float]] = []
            for vertex in node.shape.vertices:
                offset = mat_apply(spin, vertex)
                corner = camera.project(
                    (center[0] + offset[0] * size, center[1] + offset[1] * size, center[2] + offset[2] * size),
                    width,
                    height,
                )
                if corner is not None:
                    screen.append((corner[0], corner[1]))
            if len(screen) >= 3:
                polygon = _convex_hull(screen)
        items.append(
            RenderItem(
                sx, sy, max(0.5, radius), node.material.color,
                clamp01(node.material.opacity), depth, polygon=polygon,
                additive=node.material.blending == "additive",
            )
        )
    if depth_sort:
        items.sort(key=lambda it: it.depth, reverse=True)
    return items


# ---------------------------------------------------------------------------
# OpenGL helpers


def _create_opengl_functions() -> Tuple[Optional[object], Optional[BaseException]]:
    """Safely instantiate ``QOpenGLFunctions`` when available.

    Returns ``(functions, error)``; ``functions`` is ``None`` when the binding
    or the runtime GL state does not allow it.
    """

    factory = getattr(QtGui, "QOpenGLFunctions", None)
    if factory is None:
        return None, AttributeError("PyQt5.QtGui has no attribute 'QOpenGLFunctions'")
    try:
        functions = factory()
    except Exception as exc:  # pragma: no cover - depends on bindings
        return None, exc
    try:
        functions.initializeOpenGLFunctions()
    except Exception as exc:  # pragma: no cover - depends on runtime GL state
        return None, exc
    return functions, None


class _InputFilter(QtCore.QObject):
    """Forwards pointer and wheel events of the view to its camera rig."""

    def __init__(self, rig: CameraRig, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self.rig = rig

    def eventFilter(self, watched: QtCore.QObject, event: QtCore.QEvent) -> bool:
        kind = event.type()
        if kind == QtCore.QEvent.MouseButtonPress:
            pos = event.pos()
            self.rig.press(pos.x(), pos.y())
        elif kind == QtCore.QEvent.MouseMove:
            pos = event.pos()
            self.rig.move(pos.x(), pos.y())
        elif kind == QtCore.QEvent.MouseButtonRelease:
            self.rig.release()
        elif kind == QtCore.QEvent.Wheel:
            steps = event.angleDelta().y()
            if steps:
                # Qt reports +120 per notch away from the user, browsers +100 toward
                self.rig.wheel(-steps * (100.0 / 120.0))
                event.accept()
                return True
        return super().eventFilter(watched, event)


class _SceneViewBase:
    """Common behaviour shared by both the OpenGL and raster backends."""

    def _init_view_widget(
        self,
        scene,
        camera: PerspectiveCamera,
        rig: CameraRig,
        config: Mapping[str, dict],
    ) -> None:
        self.setAttribute(QtCore.Qt.WA_OpaquePaintEvent, False)
        self.setMouseTracking(False)
        self._gl: Optional[object] = None
        self.scene = scene
        self.camera = camera
        self.rig = rig
        system = config.get("system", {})
        self._depth_sort = bool(system.get("depthSort", True))
        self._min_polygon_px = float(system.get("minPolygonPx", 4.0))
        self.driver = AnimationDriver(scene, config=config.get("animation", {}), rig=rig, camera=camera)
        self._input = _InputFilter(rig, self)
        self.installEventFilter(self._input)
        self._shut_down = False
        self._timer = QtCore.QTimer(self)
        self._frame_interval_ms = int(system.get("frameIntervalMs", 16))
        self._timer.timeout.connect(self._advance_frame)
        self._timer.start(max(1, self._frame_interval_ms))

    def _advance_frame(self) -> None:
        if self._shut_down:
            return
        self.driver.step()
        self.update()

    def shutdown(self) -> None:
        """Stop the frame timer and input handling before the scene goes away."""

        if self._shut_down:
            return
        self._shut_down = True
        self._timer.stop()
        try:
            self._timer.timeout.disconnect(self._advance_frame)
        except TypeError:
            pass
        self.removeEventFilter(self._input)
        self.driver.detach()

    def _sync_aspect(self) -> None:
        height = max(1, self.height())
        self.camera.set_aspect(self.width() / height)

    # ------------------------------------------------------------------ OpenGL hooks
    def initializeGL(self) -> None:  # pragma: no cover - requires GUI context
        self._gl, _ = _create_opengl_functions()
        self._apply_clear_color()

    def resizeGL(self, width: int, height: int) -> None:  # pragma: no cover - requires GUI context
        del width, height

    def _apply_clear_color(self) -> None:
        if self._gl is None:
            return
        self._gl.glClearColor(0.0, 0.0, 0.0, 1.0)

    # ------------------------------------------------------------------ Rendering helpers
    def _render_with_painter(self, painter: QtGui.QPainter) -> None:
        painter.setRenderHint(QtGui.QPainter.Antialiasing, True)
        painter.fillRect(self.rect(), QtGui.QColor("black"))
        if self._shut_down or self.scene is None or self.scene.destroyed:
            return
        width = max(1, self.width())
        height = max(1, self.height())
        items = build_draw_list(
            self.scene.root,
            self.camera,
            width,
            height,
            min_polygon_px=self._min_polygon_px,
            depth_sort=self._depth_sort,
        )
        painter.setPen(QtCore.Qt.NoPen)
        colors: Dict[str, QtGui.QColor] = {}
        for item in items:
            base = colors.get(item.color)
            if base is None:
                base = colors[item.color] = QtGui.QColor(item.color)
            color = QtGui.QColor(base)
            color.setAlphaF(item.alpha)
            painter.setBrush(color)
            painter.setCompositionMode(
                QtGui.QPainter.CompositionMode_Plus if item.additive else QtGui.QPainter.CompositionMode_SourceOver
            )
            if item.polygon:
                painter.drawPolygon(QtGui.QPolygonF([QtCore.QPointF(x, y) for x, y in item.polygon]))
            else:
                painter.drawEllipse(QtCore.QRectF(item.sx - item.r, item.sy - item.r, item.r * 2, item.r * 2))
        painter.setCompositionMode(QtGui.QPainter.CompositionMode_SourceOver)


class _OpenGLViewWidget(QtWidgets.QOpenGLWidget, _SceneViewBase):
    """OpenGL-backed renderer when the system can create a GL context."""

    def __init__(self, parent, scene, camera, rig, config) -> None:
        QtWidgets.QOpenGLWidget.__init__(self, parent)
        self._gl = None
        self._init_view_widget(scene, camera, rig, config)

    def initializeGL(self) -> None:  # pragma: no cover - requires GUI context
        self._gl, error = _create_opengl_functions()
        if error is not None:  # pragma: no cover - depends on bindings/runtime
            print(
                f"[Lily][WARN] OpenGL initialisation failed: {error}. Falling back to raster clear handling.",
                file=sys.stderr,
            )
        self._apply_clear_color()

    def paintGL(self) -> None:  # pragma: no cover - requires GUI context
        if self._gl is not None:
            try:
                # GL_COLOR_BUFFER_BIT
                self._gl.glClear(0x00004000)
            except Exception:
                pass
        painter = QtGui.QPainter(self)
        try:
            self._render_with_painter(painter)
        finally:
            painter.end()

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self._sync_aspect()
        self.update()


class _RasterViewWidget(QtWidgets.QWidget, _SceneViewBase):
    """Fallback renderer using the traditional raster ``QWidget`` backend."""

    def __init__(self, parent, scene, camera, rig, config) -> None:
        QtWidgets.QWidget.__init__(self, parent)
        self._init_view_widget(scene, camera, rig, config)

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # type: ignore[override]
        del event
        painter = QtGui.QPainter(self)
        try:
            self._render_with_painter(painter)
        finally:
            painter.end()

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self._sync_aspect()
        self.update()


def _should_use_opengl(force_backend: Optional[str]) -> bool:
    if force_backend == "raster":
        return False
    if force_backend == "opengl":
        return True
    env_backend = os.environ.get("LILY_FORCE_BACKEND", "").strip().lower()
    if env_backend == "raster":
        return False
    if env_backend == "opengl":
        return True
    return hasattr(QtWidgets, "QOpenGLWidget")


def SceneViewWidget(
    parent: Optional[QtWidgets.QWidget],
    scene,
    camera: PerspectiveCamera,
    rig: CameraRig,
    config: Mapping[str, dict],
    *,
    force_backend: Optional[str] = None,
) -> QtWidgets.QWidget:
    """Factory returning the best available renderer widget.

    ``force_backend`` may be ``"opengl"`` or ``"raster"``; anything else lets
    the environment (``LILY_FORCE_BACKEND``) and the bindings decide.
    """

    if _should_use_opengl(force_backend):
        try:
            widget = _OpenGLViewWidget(parent, scene, camera, rig, config)
            setattr(widget, "backend_name", "opengl")
            return widget
        except Exception as exc:
            print(
                f"[Lily][WARN] Unable to initialise OpenGL backend ({exc!r}). Using raster widget instead.",
                file=sys.stderr,
            )
    widget = _RasterViewWidget(parent, scene, camera, rig, config)
    setattr(widget, "backend_name", "raster")
    return widget


# ---------------------------------------------------------------------------
# Mount entry points


def _mount(
    container: QtWidgets.QWidget,
    scene,
    cam_cfg: Mapping[str, object],
    config: Mapping[str, dict],
    on_camera_ready: Optional[CameraCallback],
    force_backend: Optional[str],
) -> Teardown:
    width = max(1, container.width())
    height = max(1, container.height())
    camera = PerspectiveCamera(
        fov=float(cam_cfg.get("fov", 75)),
        aspect=width / height,
        near=float(cam_cfg.get("near", 0.1)),
        far=float(cam_cfg.get("far", 3000)),
        position=tuple(cam_cfg.get("position", (0, 0, 900))),
    )
    camera.look_at(0.0, 0.0, 0.0)
    rig = CameraRig.from_config(camera, cam_cfg, float(config["camera"].get("dragSensitivity", 0.005)))
    if on_camera_ready is not None:
        on_camera_ready(camera)

    layout = container.layout()
    if layout is None:
        layout = QtWidgets.QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
    backend = force_backend or str(config["system"].get("backend", "auto"))
    view = SceneViewWidget(container, scene, camera, rig, config, force_backend=backend)
    layout.addWidget(view)
    state = {"done": False}

    def teardown() -> None:
        if state["done"]:
            return
        state["done"] = True
        view.shutdown()
        scene.destroy()
        layout.removeWidget(view)
        view.setParent(None)
        view.deleteLater()

    setattr(teardown, "view", view)
    return teardown


def mount_flower_scene(
    container: QtWidgets.QWidget,
    on_camera_ready: Optional[CameraCallback] = None,
    *,
    config: Optional[Mapping[str, object]] = None,
    rng: Optional[RandomSource] = None,
    force_backend: Optional[str] = None,
) -> Teardown:
    """Build the lily field inside ``container`` and return its teardown."""

    cfg = merge_config(config)
    scene = FlowerScene(cfg, rng=rng)
    return _mount(container, scene, cfg["camera"]["flowers"], cfg, on_camera_ready, force_backend)


def mount_text_scene(
    container: QtWidgets.QWidget,
    on_camera_ready: Optional[CameraCallback] = None,
    *,
    config: Optional[Mapping[str, object]] = None,
    image: Optional[QtGui.QImage] = None,
    rng: Optional[RandomSource] = None,
    force_backend: Optional[str] = None,
) -> Teardown:
    """Build the particle text inside ``container`` and return its teardown."""

    cfg = merge_config(config)
    scene = TextScene(cfg, image=image, rng=rng)
    return _mount(container, scene, cfg["camera"]["text"], cfg, on_camera_ready, force_backend)
