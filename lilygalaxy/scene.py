"""Scene composition: the flower field and the text scene.

Scenes are the top-level owners.  They expose every live particle through
:meth:`particles` for the animation driver and release everything in
:meth:`destroy`.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from PyQt5 import QtGui

from .config import merge_config
from .flower import LilyFlower
from .formations import Formation, generate_background, generate_text, rasterize_text
from .particles import Particle, RandomSource, default_rng, symmetric
from .scene_graph import Group, Points
from .shapes import STAR_SHAPES, ShapePrototype, Vec3

__all__ = ["flower_grid", "FlowerScene", "TextScene"]


def _debug(message: str) -> None:
    print(f"[Lily][DEBUG] {message}", flush=True)


def flower_grid(cfg: Mapping[str, object], rng: RandomSource) -> List[Tuple[float, float, float]]:
    """Jittered grid positions sunk into a paraboloid bowl.

    The four corners of the square grid are skipped.
    """

    extent = int(cfg.get("gridHalfExtent", 2))
    spacing = float(cfg.get("spacing", 200))
    offset = float(cfg.get("randomOffset", 80))
    height_noise = float(cfg.get("randomHeight", 40))
    bowl = float(cfg.get("bowl", 4000)) or 1.0
    positions: List[Tuple[float, float, float]] = []
    for i in range(-extent, extent + 1):
        for j in range(-extent, extent + 1):
            if extent and abs(i) == extent and abs(j) == extent:
                continue
            x = i * spacing + symmetric(rng, offset * 2.0)
            z = j * spacing + symmetric(rng, offset * 2.0)
            y = -(x * x + z * z) / bowl + symmetric(rng, height_noise)
            positions.append((x, y, z))
    return positions


def _placements(cfg: Mapping[str, object], rng: RandomSource) -> List[Dict[str, object]]:
    bowl = float(cfg.get("bowl", 4000)) or 1.0
    blue_probability = float(cfg.get("blueProbability", 0.4))
    scale_min = float(cfg.get("scaleMin", 0.7))
    scale_range = float(cfg.get("scaleRange", 0.3))
    out: List[Dict[str, object]] = []
    for x, y, z in flower_grid(cfg, rng):
        core = "blue" if rng.random() < blue_probability else "pink"
        petals = "purple" if core == "blue" else "pink"
        # surface normal of the bowl, tilting flowers outward
        normal: Vec3 = (x / (bowl / 2.0), 1.0, z / (bowl / 2.0))
        out.append(
            dict(
                position=(x, y, z),
                scale=scale_min + rng.random() * scale_range,
                rotation=math.pi * rng.random(),
                normal=normal,
                core_color=core,
                petal_color=petals,
            )
        )
    return out


class _SceneBase(ABC):
    def __init__(self, config: Optional[Mapping[str, dict]], rng: Optional[RandomSource]) -> None:
        self.config = merge_config(config)
        self.rng = rng or default_rng()
        self.root = Group()
        self.background: Optional[Points] = None
        self._destroyed = False

    def _add_background(self) -> None:
        cfg = self.config["background"]
        self.background = generate_background(
            count=int(cfg.get("count", 3000)),
            radius=float(cfg.get("radius", 2000.0)),
            color=str(cfg.get("color", "#ffffff")),
            size=float(cfg.get("size", 2.0)),
            opacity=float(cfg.get("opacity", 0.6)),
            rng=self.rng,
        )
        self.root.add(self.background)

    @abstractmethod
    def particles(self) -> Iterator[Particle]:
        """Yield every live particle owned by the scene."""

    def particle_count(self) -> int:
        return sum(1 for _ in self.particles())

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def _release_background(self) -> None:
        if self.background is not None:
            self.root.remove(self.background)
            self.background.dispose()
            self.background = None

    @abstractmethod
    def destroy(self) -> None:
        """Release every particle and the backdrop; safe to call twice."""


class FlowerScene(_SceneBase):
    """Field of lilies on a curved ground plus the star backdrop."""

    def __init__(
        self,
        config: Optional[Mapping[str, dict]] = None,
        *,
        shapes: Sequence[ShapePrototype] = STAR_SHAPES,
        background: bool = True,
        rng: Optional[RandomSource] = None,
    ) -> None:
        super().__init__(config, rng)
        self.flowers: List[LilyFlower] = []
        for placement in _placements(self.config["flowerField"], self.rng):
            self.flowers.append(LilyFlower(self.root, shapes, config=self.config, rng=self.rng, **placement))
        if background:
            self._add_background()
        _debug("flower scene built: %d flowers, %d particles" % (len(self.flowers), self.particle_count()))

    def particles(self) -> Iterator[Particle]:
        for flower in self.flowers:
            yield from flower.all_particles()

    def destroy(self) -> None:
        for flower in self.flowers:
            flower.destroy()
        self.flowers = []
        self._release_background()
        self._destroyed = True


class TextScene(_SceneBase):
    """Glyph-sampled particle text floating in front of the star backdrop."""

    def __init__(
        self,
        config: Optional[Mapping[str, dict]] = None,
        *,
        shapes: Sequence[ShapePrototype] = STAR_SHAPES,
        image: Optional[QtGui.QImage] = None,
        background: bool = True,
        rng: Optional[RandomSource] = None,
    ) -> None:
        super().__init__(config, rng)
        cfg = self.config["text"]
        if image is None:
            image = rasterize_text(
                str(cfg.get("mainText", "")),
                str(cfg.get("subText", "")),
                main_font_size=int(cfg.get("mainFontSize", 300)),
                sub_font_size=int(cfg.get("subFontSize", 180)),
                text_gap=int(cfg.get("textGap", 150)),
                font_family=str(cfg.get("fontFamily", "Arial")),
                main_color=str(cfg.get("mainColor", "#ffffff")),
                sub_color=str(cfg.get("subColor", "#ffddee")),
            )
        self.text: Formation = generate_text(
            image,
            shapes,
            sampling=int(cfg.get("sampling", 8)),
            threshold=int(cfg.get("alphaThreshold", 128)),
            scale=float(cfg.get("scale", 0.5)),
            rng=self.rng,
        )
        self.text_group: Optional[Group] = Group()
        for particle in self.text:
            self.text_group.add(particle.mesh)
        self.root.add(self.text_group)
        if background:
            self._add_background()
        _debug("text scene built: %d particles from %dx%d raster" % (len(self.text), image.width(), image.height()))

    def particles(self) -> Iterator[Particle]:
        yield from self.text.particles

    def destroy(self) -> None:
        if self.text_group is not None:
            self.root.remove(self.text_group)
            self.text_group = None
        self.text.release()
        self._release_background()
        self._destroyed = True
