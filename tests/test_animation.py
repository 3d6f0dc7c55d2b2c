"""
Test: Per-frame particle update

Orbit advance, wobble bounds, pulse opacity and the driver frame order.

Run:
    python -m pytest tests/test_animation.py -v
"""

import math

import pytest

from lilygalaxy.animation import AnimationDriver, advance_particle, pulse_opacity
from lilygalaxy.formations import generate_core
from lilygalaxy.particles import OrbitState, make_particle
from lilygalaxy.shapes import STAR_SHAPES


def _orbiting(rng, radius=100.0, speed=0.01):
    orbit = OrbitState(radius=radius, angle=0.0, speed=speed, vertical_offset=0.0)
    return make_particle((radius, 0.0, 0.0), STAR_SHAPES, ("#ffffff",), rng, orbit=orbit)


class _ListScene:
    def __init__(self, particles, log=None):
        self._particles = list(particles)
        self._log = log

    def particles(self):
        if self._log is not None:
            self._log.append("particles")
        return list(self._particles)


class _RecordingRig:
    def __init__(self, log):
        self._log = log

    def apply(self, camera):
        self._log.append("camera")


def test_one_frame_moves_along_orbit_within_wobble(rng):
    particle = _orbiting(rng)
    advance_particle(particle, 3.7, amplitude=2.0, frequency=1.5)
    x, y, z = particle.position
    assert particle.kinematics.orbit.angle == pytest.approx(0.01)
    assert abs(x - 100.0 * math.cos(0.01)) <= 1.0 + 1e-9
    assert abs(z - 100.0 * math.sin(0.01)) <= 1.0 + 1e-9
    assert abs(y) <= 2.0 + 1e-9


def test_orbit_angle_is_monotonic(rng):
    particle = _orbiting(rng, speed=0.003)
    angles = []
    for frame in range(50):
        advance_particle(particle, frame / 60.0)
        angles.append(particle.kinematics.orbit.angle)
    assert all(b > a for a, b in zip(angles, angles[1:]))


def test_opacity_stays_in_unit_range(rng):
    core = generate_core(STAR_SHAPES, count=40, rng=rng)
    for frame in range(200):
        for particle in core:
            advance_particle(particle, frame / 60.0, opacity_scale=1.5)
            assert 0.0 <= particle.opacity <= 1.0


@pytest.mark.parametrize("phase", [0.0, math.pi / 2, math.pi, 3 * math.pi / 2])
def test_pulse_opacity_range(phase):
    value = pulse_opacity(phase, 0.8)
    assert 0.48 - 1e-9 <= value <= 0.8 + 1e-9


def test_particle_without_orbit_only_spins_and_pulses(rng):
    particle = make_particle((5.0, 6.0, 7.0), STAR_SHAPES, ("#ffffff",), rng)
    phase = particle.kinematics.pulse_phase
    advance_particle(particle, 1.0)
    assert particle.position == (5.0, 6.0, 7.0)
    assert particle.mesh.rotation == pytest.approx(list(particle.kinematics.rotation_speed))
    assert particle.kinematics.pulse_phase == pytest.approx(phase + particle.kinematics.pulse_speed)


def test_disposed_particle_is_skipped(rng):
    particle = _orbiting(rng)
    particle.dispose()
    advance_particle(particle, 0.0)
    assert particle.kinematics.orbit.angle == 0.0


def test_driver_places_camera_before_particles(rng):
    log = []
    scene = _ListScene([_orbiting(rng)], log)
    driver = AnimationDriver(scene, rig=_RecordingRig(log), camera=object(), clock=lambda: 0.0)
    assert driver.step() == 1
    assert log == ["camera", "particles"]
    assert driver.frame_count == 1


def test_driver_detach_stops_updates(rng):
    particle = _orbiting(rng)
    driver = AnimationDriver(_ListScene([particle]), clock=lambda: 0.0)
    driver.step()
    driver.detach()
    assert driver.step() == 0
    assert particle.kinematics.orbit.angle == pytest.approx(0.01)


def test_driver_uses_config_and_clock():
    ticks = iter([10.0, 12.5])
    driver = AnimationDriver(_ListScene([]), config={"jitterAmplitude": 0.0}, clock=lambda: next(ticks))
    assert driver.amplitude == 0.0
    assert driver.elapsed == pytest.approx(2.5)
