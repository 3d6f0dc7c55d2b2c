"""
Test: Formation generators

Counts, geometric bounds and palette fallbacks of the core, petal,
connective, text and background generators.

Run:
    python -m pytest tests/test_formations.py -v
"""

import math

import pytest
from PyQt5 import QtCore, QtGui

from lilygalaxy.formations import (
    CONNECTION_PALETTE,
    CORE_PALETTES,
    PETAL_PALETTES,
    TEXT_PALETTE,
    core_palette,
    generate_background,
    generate_connections,
    generate_core,
    generate_petals,
    generate_text,
    petal_palette,
    petal_width,
    rasterize_text,
    sample_alpha_grid,
)
from lilygalaxy.shapes import STAR_SHAPES


class _FixedRng:
    """Random source returning one constant value."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def _transparent_image(width, height):
    image = QtGui.QImage(width, height, QtGui.QImage.Format_ARGB32)
    image.fill(QtCore.Qt.transparent)
    return image


# ============================================================
# CORE
# ============================================================

def test_core_count_and_radius(rng):
    scale = 0.85
    core = generate_core(STAR_SHAPES, scale=scale, rotation=1.1, color="blue", rng=rng)
    core_radius = 35.0 * scale
    assert len(core) == 350
    for particle in core:
        x, y, z = particle.position
        assert math.sqrt(x * x + y * y + z * z) <= core_radius + 1e-9
        orbit = particle.kinematics.orbit
        assert 0.0 <= orbit.radius <= core_radius + 1e-9
        assert orbit.vertical_offset == pytest.approx(y)


def test_core_orbit_speed_and_colors(rng):
    core = generate_core(STAR_SHAPES, color="pink", count=50, rng=rng)
    for particle in core:
        assert 0.005 <= particle.kinematics.orbit.speed <= 0.005 * 1.3
        assert particle.color in CORE_PALETTES["pink"]
        assert particle.mesh.shape in STAR_SHAPES


def test_unknown_core_color_falls_back_to_yellow(rng):
    assert core_palette("emerald") == CORE_PALETTES["yellow"]
    core = generate_core(STAR_SHAPES, color="emerald", count=30, rng=rng)
    assert all(p.color in CORE_PALETTES["yellow"] for p in core)


# ============================================================
# PETALS
# ============================================================

def test_petal_count(rng):
    petals = generate_petals(STAR_SHAPES, petal_count=24, stars_per_petal=150, rng=rng)
    assert len(petals) == 3600


@pytest.mark.parametrize("joint", [0.3, 0.7])
def test_petal_width_continuous_at_joints(joint):
    eps = 1e-9
    assert petal_width(joint - eps) == pytest.approx(petal_width(joint), abs=1e-6)
    assert petal_width(joint + eps) == pytest.approx(petal_width(joint), abs=1e-6)


def test_petal_width_shape():
    assert petal_width(0.0) == 0.0
    assert petal_width(1.0) == pytest.approx(0.0)
    assert petal_width(0.5) == pytest.approx(5.9)
    assert petal_width(0.5) > petal_width(0.3)
    assert petal_width(0.5) > petal_width(0.7)


def test_petal_orbit_slows_toward_tip(rng):
    petals = generate_petals(STAR_SHAPES, petal_count=1, stars_per_petal=10, rng=rng)
    speeds = [p.kinematics.orbit.speed for p in petals]
    assert speeds == sorted(speeds, reverse=True)
    assert speeds[0] == pytest.approx(0.0008)


def test_petal_lateral_spread_follows_envelope(rng):
    petal_count, per_petal, scale = 6, 40, 0.8
    petals = generate_petals(
        STAR_SHAPES, scale=scale, rotation=0.4, petal_count=petal_count, stars_per_petal=per_petal, rng=rng
    )
    for index, particle in enumerate(petals):
        petal, i = divmod(index, per_petal)
        t = i / per_petal
        base_angle = petal * (2 * math.pi / petal_count) + 0.4
        orbit = particle.kinematics.orbit
        assert abs(orbit.angle - base_angle) * orbit.radius <= petal_width(t) * 15.0 + 1e-9


def test_petal_base_has_no_lateral_spread():
    petals = generate_petals(STAR_SHAPES, petal_count=3, stars_per_petal=5, rng=_FixedRng(0.99))
    for petal in range(3):
        assert petals.particles[petal * 5].kinematics.orbit.angle == pytest.approx(petal * 2 * math.pi / 3)


def test_petal_palettes(rng):
    purple = generate_petals(STAR_SHAPES, color="purple", petal_count=2, stars_per_petal=10, rng=rng)
    assert all(p.color in PETAL_PALETTES["purple"] for p in purple)
    assert petal_palette("orange") == ("#ffffff",)


# ============================================================
# CONNECTIONS
# ============================================================

def test_connections_count_and_sector(rng):
    fill = generate_connections(STAR_SHAPES, gaps=6, stars_per_gap=80, rng=rng)
    assert len(fill) == 480
    sector = 2 * math.pi / 6
    for index, particle in enumerate(fill):
        gap = index // 80
        angle = particle.kinematics.orbit.angle
        # blend spans the sector, lateral offset adds at most 0.15 rad
        assert gap * sector - 0.15 - 1e-9 <= angle <= (gap + 1) * sector + 0.15 + 1e-9
        assert particle.color in CONNECTION_PALETTE


def test_connection_height_bounded_by_sector_profile(rng):
    per_gap, scale = 40, 0.9
    fill = generate_connections(STAR_SHAPES, scale=scale, gaps=6, stars_per_gap=per_gap, rng=rng)
    for index, particle in enumerate(fill):
        t = (index % per_gap) / per_gap
        bound = (math.sin(t * math.pi) * 50.0 + 10.0) * scale
        assert abs(particle.kinematics.orbit.vertical_offset) <= bound + 1e-9


@pytest.mark.parametrize("value, peak", [(0.5, 1.0), (0.0, 0.0)])
def test_connection_height_peaks_mid_gap(value, peak):
    # with a constant source: blend == value, lateral and height noise are fixed
    per_gap, scale = 10, 1.0
    fill = generate_connections(STAR_SHAPES, scale=scale, gaps=6, stars_per_gap=per_gap, rng=_FixedRng(value))
    noise = (value - 0.5) * 20.0
    for index, particle in enumerate(fill):
        t = (index % per_gap) / per_gap
        expected = (math.sin(t * math.pi) * 50.0 * peak + noise) * scale
        assert particle.kinematics.orbit.vertical_offset == pytest.approx(expected, abs=1e-9)


def test_connections_independent_of_petal_count(rng):
    fill = generate_connections(STAR_SHAPES, gaps=3, stars_per_gap=5, rng=rng)
    assert len(fill) == 15


# ============================================================
# TEXT AND BACKGROUND
# ============================================================

def test_single_opaque_pixel_yields_one_particle(rng):
    image = _transparent_image(64, 64)
    image.setPixelColor(16, 24, QtGui.QColor(255, 255, 255, 255))
    text = generate_text(image, STAR_SHAPES, sampling=8, threshold=128, scale=0.5, rng=rng)
    assert len(text) == 1
    x, y, z = text.particles[0].position
    assert abs(x - (16 - 32) * 0.5) <= 1.5
    assert abs(y - (32 - 24) * 0.5) <= 1.5
    assert abs(z) <= 10.0
    assert text.particles[0].kinematics.orbit is None
    assert text.particles[0].color in TEXT_PALETTE


def test_off_grid_and_faint_pixels_are_ignored():
    image = _transparent_image(32, 32)
    image.setPixelColor(3, 3, QtGui.QColor(255, 255, 255, 255))
    image.setPixelColor(8, 8, QtGui.QColor(255, 255, 255, 100))
    image.setPixelColor(16, 8, QtGui.QColor(255, 255, 255, 129))
    assert sample_alpha_grid(image, 8, 128) == [(16, 8)]


def test_background_points_inside_radius(rng):
    points = generate_background(count=300, radius=2000.0, rng=rng)
    assert len(points) == 300
    for x, y, z in points.iter_points():
        assert math.sqrt(x * x + y * y + z * z) <= 2000.0 + 1e-6
    assert points.material.blending == "additive"
    assert points.material.opacity == pytest.approx(0.6)


def test_rasterized_text_has_two_lines(qapp):
    image = rasterize_text("little gift", "click here", main_font_size=300, sub_font_size=180, text_gap=150)
    assert image.height() == 900
    assert image.width() >= 2048
    hits = sample_alpha_grid(image, 8, 128)
    split = image.height() / 2 + 150
    assert any(y < split for _, y in hits)
    assert any(y > split for _, y in hits)
