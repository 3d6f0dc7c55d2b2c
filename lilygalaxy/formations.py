"""Formation generators.

Every generator returns a :class:`Formation`: a named, fixed set of particles
laid out in the local space of whoever owns it.  Flower generators reason in a
canonical frame where ``+y`` is up and the flower sits at the origin; the
owning :class:`~lilygalaxy.flower.LilyFlower` group tilts and places them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from PyQt5 import QtCore, QtGui

from .particles import TWO_PI, OrbitState, Particle, RandomSource, default_rng, make_particle, symmetric
from .scene_graph import Material, Points
from .shapes import ShapePrototype

__all__ = [
    "CORE_PALETTES",
    "PETAL_PALETTES",
    "CONNECTION_PALETTE",
    "TEXT_PALETTE",
    "Formation",
    "core_palette",
    "petal_palette",
    "petal_width",
    "generate_core",
    "generate_petals",
    "generate_connections",
    "rasterize_text",
    "sample_alpha_grid",
    "generate_text",
    "generate_background",
]

CORE_PALETTES: Dict[str, Tuple[str, ...]] = {
    "yellow": ("#ffff00", "#ffaa00", "#ffcc00", "#ff8800", "#ffdd00"),
    "blue": ("#4444ff", "#6666ff", "#8888ff", "#5555ff", "#7777ff"),
    "pink": ("#ff66aa", "#ff88cc", "#ffaaee", "#ff5599", "#ff77bb"),
}

PETAL_PALETTES: Dict[str, Tuple[str, ...]] = {
    "white": ("#ffcc66", "#ffeeaa", "#ffffff", "#ffeeff"),
    "pink": ("#ff88aa", "#ffaacc", "#ffccee", "#ffddff", "#ffffff"),
    "purple": ("#8844ff", "#aa66ff", "#bb88ff", "#eeeeff"),
}

CONNECTION_PALETTE: Tuple[str, ...] = ("#ffcc66", "#ffeeaa", "#ffffff", "#ffeeff", "#eeeeff")

TEXT_PALETTE: Tuple[str, ...] = (
    "#ff88aa", "#ffaacc", "#ffccee", "#ffddff", "#ffffff",
    "#ff66aa", "#ff99cc", "#ffbbee",
)


def core_palette(key: Optional[str]) -> Tuple[str, ...]:
    return CORE_PALETTES.get(key or "", CORE_PALETTES["yellow"])


def petal_palette(key: Optional[str]) -> Tuple[str, ...]:
    return PETAL_PALETTES.get(key or "", ("#ffffff",))


@dataclass
class Formation:
    name: str
    particles: Tuple[Particle, ...]

    def __len__(self) -> int:
        return len(self.particles)

    def __iter__(self) -> Iterator[Particle]:
        return iter(self.particles)

    def release(self) -> None:
        """Dispose every particle once and drop them."""

        particles, self.particles = self.particles, ()
        for particle in particles:
            particle.dispose()


# ---------------------------------------------------------------------------
# Flower formations


def _orbit_position(orbit: OrbitState) -> Tuple[float, float, float]:
    return (
        orbit.center[0] + math.cos(orbit.angle) * orbit.radius,
        orbit.center[1] + orbit.vertical_offset,
        orbit.center[2] + math.sin(orbit.angle) * orbit.radius,
    )


def generate_core(
    shapes: Sequence[ShapePrototype],
    *,
    scale: float = 1.0,
    rotation: float = 0.0,
    color: str = "yellow",
    count: int = 350,
    base_radius: float = 35.0,
    orbit_speed: float = 0.005,
    rng: Optional[RandomSource] = None,
) -> Formation:
    """Dense spherical cluster thinning outward (``r = sqrt(u) * radius``)."""

    rng = rng or default_rng()
    core_radius = base_radius * scale
    palette = core_palette(color)
    particles: List[Particle] = []
    for _ in range(max(0, int(count))):
        phi = rng.random() * TWO_PI
        theta = math.acos(2.0 * rng.random() - 1.0)
        r = math.pow(rng.random(), 0.5) * core_radius
        x = r * math.sin(theta) * math.cos(phi)
        y = r * math.sin(theta) * math.sin(phi)
        z = r * math.cos(theta)
        orbit = OrbitState(
            radius=math.hypot(x, z),
            angle=math.atan2(z, x) + rotation,
            speed=orbit_speed * (1.0 + rng.random() * 0.3),
            vertical_offset=y,
        )
        particles.append(
            make_particle(
                _orbit_position(orbit), shapes, palette, rng,
                opacity=(0.6, 0.4), scale=(0.4, 1.2), spin=0.02, pulse_speed=(0.01, 0.02),
                orbit=orbit,
            )
        )
    return Formation("core", tuple(particles))


def petal_width(t: float) -> float:
    """Width envelope along a petal, ``t`` running from base (0) to tip (1).

    Linear widening up to 0.3, a raised-sine bulge peaking at 0.5 and a
    linear taper from 0.7; the three pieces meet at 2.4.
    """

    if t < 0.3:
        return t * 8.0
    if t < 0.7:
        return 2.4 + math.sin((t - 0.3) * math.pi * 2.5) * 3.5
    return (1.0 - t) * 8.0


def generate_petals(
    shapes: Sequence[ShapePrototype],
    *,
    scale: float = 1.0,
    rotation: float = 0.0,
    color: str = "white",
    petal_count: int = 24,
    stars_per_petal: int = 150,
    inner_radius: float = 40.0,
    length: float = 280.0,
    orbit_speed: float = 0.0008,
    rng: Optional[RandomSource] = None,
) -> Formation:
    rng = rng or default_rng()
    palette = petal_palette(color)
    petal_count = max(0, int(petal_count))
    stars_per_petal = max(0, int(stars_per_petal))
    particles: List[Particle] = []
    for petal in range(petal_count):
        base_angle = petal * (TWO_PI / petal_count) + rotation
        for i in range(stars_per_petal):
            t = i / stars_per_petal
            radius = (inner_radius + t * length) * scale
            curvature = math.sin(t * math.pi) * 0.3
            lateral = symmetric(rng, petal_width(t) * 30.0)
            angle = base_angle + (lateral / radius if radius else 0.0)
            height = (math.sin(t * math.pi) * 60.0 + curvature * 80.0 + symmetric(rng, 45.0)) * scale
            orbit = OrbitState(
                radius=abs(radius),
                angle=angle,
                speed=(1.0 - t * 0.7) * orbit_speed,
                vertical_offset=height,
            )
            particles.append(
                make_particle(
                    _orbit_position(orbit), shapes, palette, rng,
                    opacity=(0.6, 0.3), scale=(0.6, 1.5), scale_factor=1.0 - t * 0.6,
                    spin=0.015, pulse_speed=(0.008, 0.015), orbit=orbit,
                )
            )
    return Formation("petals", tuple(particles))


def generate_connections(
    shapes: Sequence[ShapePrototype],
    *,
    scale: float = 1.0,
    rotation: float = 0.0,
    gaps: int = 6,
    stars_per_gap: int = 80,
    inner_radius: float = 50.0,
    length: float = 270.0,
    orbit_speed: float = 0.001,
    rng: Optional[RandomSource] = None,
) -> Formation:
    """Fill between ``gaps`` sectors, independent from the petal count."""

    rng = rng or default_rng()
    gaps = max(0, int(gaps))
    stars_per_gap = max(0, int(stars_per_gap))
    particles: List[Particle] = []
    for sector in range(gaps):
        angle1 = sector * (TWO_PI / gaps) + rotation
        angle2 = ((sector + 1) % gaps) * (TWO_PI / gaps) + rotation
        if angle2 <= angle1:
            angle2 += TWO_PI
        for i in range(stars_per_gap):
            t = i / stars_per_gap
            radius = (inner_radius + t * length) * scale
            blend = rng.random()
            angle = angle1 + (angle2 - angle1) * blend
            lateral = symmetric(rng, 0.3 * radius)
            final_angle = angle + (lateral / radius if radius else 0.0)
            height_blend = math.sin(blend * math.pi)
            height = (math.sin(t * math.pi) * 50.0 * height_blend + symmetric(rng, 20.0)) * scale
            orbit = OrbitState(
                radius=abs(radius),
                angle=final_angle,
                speed=(1.0 - t * 0.7) * orbit_speed,
                vertical_offset=height,
            )
            particles.append(
                make_particle(
                    _orbit_position(orbit), shapes, CONNECTION_PALETTE, rng,
                    opacity=(0.45, 0.3), scale=(0.5, 1.2), scale_factor=1.0 - t * 0.5,
                    spin=0.015, pulse_speed=(0.008, 0.015), orbit=orbit,
                )
            )
    return Formation("connections", tuple(particles))


# ---------------------------------------------------------------------------
# Text and background


def _bold_font(family: str, pixel_size: int) -> QtGui.QFont:
    font = QtGui.QFont(family)
    font.setStyleHint(QtGui.QFont.SansSerif)
    font.setBold(True)
    font.setPixelSize(max(1, int(pixel_size)))
    return font


def rasterize_text(
    main_text: str,
    sub_text: str,
    *,
    main_font_size: int = 300,
    sub_font_size: int = 180,
    text_gap: int = 150,
    font_family: str = "Arial",
    main_color: str = "#ffffff",
    sub_color: str = "#ffddee",
) -> QtGui.QImage:
    """Draw the two text lines onto a transparent off-screen image.

    Requires a ``QGuiApplication`` for font access.
    """

    main_font = _bold_font(font_family, main_font_size)
    sub_font = _bold_font(font_family, sub_font_size)
    text_width = QtGui.QFontMetricsF(main_font).horizontalAdvance(main_text)
    width = int(max(2048, math.ceil(text_width + 200)))
    height = int(main_font_size * 3)

    image = QtGui.QImage(width, height, QtGui.QImage.Format_ARGB32)
    image.fill(QtCore.Qt.transparent)
    painter = QtGui.QPainter(image)
    try:
        painter.setRenderHint(QtGui.QPainter.TextAntialiasing, True)
        center_y = height / 2.0
        painter.setFont(main_font)
        painter.setPen(QtGui.QColor(main_color))
        main_y = center_y - 30
        painter.drawText(
            QtCore.QRectF(0, main_y - main_font_size, width, main_font_size * 2),
            QtCore.Qt.AlignHCenter | QtCore.Qt.AlignVCenter,
            main_text,
        )
        painter.setFont(sub_font)
        painter.setPen(QtGui.QColor(sub_color))
        sub_y = center_y + main_font_size / 2.0 + text_gap
        painter.drawText(
            QtCore.QRectF(0, sub_y - sub_font_size, width, sub_font_size * 2),
            QtCore.Qt.AlignHCenter | QtCore.Qt.AlignVCenter,
            sub_text,
        )
    finally:
        painter.end()
    return image


def sample_alpha_grid(image: QtGui.QImage, sampling: int = 8, threshold: int = 128) -> List[Tuple[int, int]]:
    """Return the grid pixels whose alpha exceeds ``threshold``."""

    if image.isNull():
        return []
    if image.format() != QtGui.QImage.Format_ARGB32:
        image = image.convertToFormat(QtGui.QImage.Format_ARGB32)
    step = max(1, int(sampling))
    hits: List[Tuple[int, int]] = []
    for y in range(0, image.height(), step):
        for x in range(0, image.width(), step):
            if QtGui.qAlpha(image.pixel(x, y)) > threshold:
                hits.append((x, y))
    return hits


def generate_text(
    image: QtGui.QImage,
    shapes: Sequence[ShapePrototype],
    *,
    sampling: int = 8,
    threshold: int = 128,
    scale: float = 0.5,
    rng: Optional[RandomSource] = None,
) -> Formation:
    """One particle per covered grid pixel; density follows the glyph raster."""

    rng = rng or default_rng()
    half_w = image.width() / 2.0
    half_h = image.height() / 2.0
    particles: List[Particle] = []
    for x, y in sample_alpha_grid(image, sampling, threshold):
        position = (
            (x - half_w) * scale + symmetric(rng, 3.0),
            (half_h - y) * scale + symmetric(rng, 3.0),
            symmetric(rng, 20.0),
        )
        particles.append(
            make_particle(
                position, shapes, TEXT_PALETTE, rng,
                opacity=(0.6, 0.3), scale=(1.0, 2.0), spin=0.01, pulse_speed=(0.01, 0.02),
            )
        )
    return Formation("text", tuple(particles))


def generate_background(
    *,
    count: int = 3000,
    radius: float = 2000.0,
    color: str = "#ffffff",
    size: float = 2.0,
    opacity: float = 0.6,
    rng: Optional[RandomSource] = None,
) -> Points:
    """Star backdrop drawn as one additive point cloud."""

    rng = rng or default_rng()
    buffer: List[float] = []
    for _ in range(max(0, int(count))):
        r = radius * rng.random()
        phi = rng.random() * TWO_PI
        theta = math.acos(rng.random() * 2.0 - 1.0)
        buffer.extend(
            (
                r * math.sin(theta) * math.cos(phi),
                r * math.sin(theta) * math.sin(phi),
                r * math.cos(theta),
            )
        )
    material = Material(color, opacity, transparent=True, blending="additive", size=size)
    return Points(buffer, material)
