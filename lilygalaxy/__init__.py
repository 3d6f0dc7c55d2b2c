"""Procedurally generated particle lilies and particle text rendered with PyQt5."""

from .animation import AnimationDriver, advance_particle, pulse_opacity
from .camera import CameraRig, PerspectiveCamera
from .flower import LilyFlower
from .formations import (
    Formation,
    generate_background,
    generate_connections,
    generate_core,
    generate_petals,
    generate_text,
    petal_width,
)
from .particles import Kinematics, OrbitState, Particle, make_particle
from .scene import FlowerScene, TextScene

__version__ = "0.1.0"

__all__ = [
    "AnimationDriver",
    "advance_particle",
    "pulse_opacity",
    "CameraRig",
    "PerspectiveCamera",
    "LilyFlower",
    "Formation",
    "generate_background",
    "generate_connections",
    "generate_core",
    "generate_petals",
    "generate_text",
    "petal_width",
    "Kinematics",
    "OrbitState",
    "Particle",
    "make_particle",
    "FlowerScene",
    "TextScene",
]
