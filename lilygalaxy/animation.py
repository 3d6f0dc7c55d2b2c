"""Per-frame particle update.

Speeds are per frame, not per second: every call to
:meth:`AnimationDriver.step` adds one fixed increment to each phase, so the
effective speed follows the display refresh rate.  Only the small positional
jitter reads the wall clock.
"""

from __future__ import annotations

import math
import time
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Optional, Protocol

from .particles import Particle

if TYPE_CHECKING:  # pragma: no cover
    from .camera import CameraRig, PerspectiveCamera

__all__ = ["ParticleSource", "pulse_opacity", "advance_particle", "AnimationDriver"]


class ParticleSource(Protocol):
    def particles(self) -> Iterable[Particle]: ...


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def pulse_opacity(phase: float, scale: float = 0.8) -> float:
    return clamp01((math.sin(phase) * 0.2 + 0.8) * scale)


def advance_particle(
    particle: Particle,
    t: float,
    *,
    amplitude: float = 2.0,
    frequency: float = 1.5,
    opacity_scale: float = 0.8,
) -> None:
    """Advance orbit, spin and pulse of one particle by a single frame.

    ``t`` is wall-clock seconds, used only for the positional wobble.
    """

    mesh = particle.mesh
    if mesh.material is None:
        return
    k = particle.kinematics
    orbit = k.orbit
    if orbit is not None:
        orbit.angle += orbit.speed
        phase = k.pulse_phase
        cx, cy, cz = orbit.center
        x = math.cos(orbit.angle) * orbit.radius + cx
        z = math.sin(orbit.angle) * orbit.radius + cz
        x += math.sin(t * frequency + phase) * amplitude * 0.5
        y = cy + orbit.vertical_offset + math.cos(t * frequency * 0.8 + phase) * amplitude
        z += math.sin(t * frequency * 1.2 + phase * 0.7) * amplitude * 0.5
        mesh.position = [x, y, z]

    rot = mesh.rotation
    spin = k.rotation_speed
    rot[0] += spin[0]
    rot[1] += spin[1]
    rot[2] += spin[2]

    k.pulse_phase += k.pulse_speed
    mesh.material.opacity = pulse_opacity(k.pulse_phase, opacity_scale)


class AnimationDriver:
    """Runs one update over every live particle of a scene per frame.

    When a camera rig is attached the camera is placed before the particles
    move, so a frame always renders a consistent view.
    """

    def __init__(
        self,
        scene: ParticleSource,
        *,
        config: Optional[Mapping[str, object]] = None,
        clock: Callable[[], float] = time.perf_counter,
        rig: Optional["CameraRig"] = None,
        camera: Optional["PerspectiveCamera"] = None,
    ) -> None:
        cfg = config or {}
        self.scene: Optional[ParticleSource] = scene
        self.rig = rig
        self.camera = camera
        self.amplitude = float(cfg.get("jitterAmplitude", 2.0))
        self.frequency = float(cfg.get("jitterFrequency", 1.5))
        self.opacity_scale = float(cfg.get("opacityScale", 0.8))
        self._clock = clock
        self._start = clock()
        self.frame_count = 0

    @property
    def elapsed(self) -> float:
        return self._clock() - self._start

    def detach(self) -> None:
        """Forget the scene; later steps become no-ops."""

        self.scene = None
        self.rig = None
        self.camera = None

    def step(self, now: Optional[float] = None) -> int:
        """Advance one frame and return the number of particles updated."""

        if self.scene is None:
            return 0
        if self.rig is not None and self.camera is not None:
            self.rig.apply(self.camera)
        t = self.elapsed if now is None else now
        count = 0
        for particle in self.scene.particles():
            advance_particle(
                particle,
                t,
                amplitude=self.amplitude,
                frequency=self.frequency,
                opacity_scale=self.opacity_scale,
            )
            count += 1
        self.frame_count += 1
        return count
