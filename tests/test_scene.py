"""
Test: Flower field and text scene composition

Run:
    python -m pytest tests/test_scene.py -v
"""

from PyQt5 import QtCore, QtGui

from lilygalaxy.config import DEFAULTS, merge_config
from lilygalaxy.scene import FlowerScene, TextScene, flower_grid


def test_default_grid_skips_corners(rng):
    positions = flower_grid(DEFAULTS["flowerField"], rng)
    assert len(positions) == 21
    for x, y, z in positions:
        assert abs(x) <= 2 * 200 + 80 and abs(z) <= 2 * 200 + 80
        assert y <= 20.0


def test_flower_scene_themes(small_config, rng):
    scene = FlowerScene(small_config, rng=rng)
    assert len(scene.flowers) == 5
    for flower in scene.flowers:
        assert flower.core_color in ("blue", "pink")
        expected = "purple" if flower.core_color == "blue" else "pink"
        assert flower.petal_color == expected
        assert 0.7 <= flower.scale <= 1.0
    assert scene.particle_count() == 5 * (12 + 24 + 18)
    assert len(scene.background) == 20


def test_flower_scene_destroy_releases_everything(small_config, rng):
    scene = FlowerScene(small_config, rng=rng)
    particles = list(scene.particles())
    background = scene.background
    scene.destroy()
    scene.destroy()
    assert scene.destroyed
    assert scene.particle_count() == 0
    assert scene.root.children == []
    assert all(p.disposed for p in particles)
    assert background.material is None


def test_flower_scene_without_background(small_config, rng):
    scene = FlowerScene(small_config, background=False, rng=rng)
    assert scene.background is None
    assert len(scene.root.children) == len(scene.flowers)


def test_text_scene_from_image(rng):
    image = QtGui.QImage(40, 40, QtGui.QImage.Format_ARGB32)
    image.fill(QtCore.Qt.transparent)
    for x in (0, 8, 16):
        image.setPixelColor(x, 8, QtGui.QColor(255, 255, 255, 255))
    scene = TextScene(merge_config({"background": {"count": 5}}), image=image, rng=rng)
    assert scene.particle_count() == 3
    assert len(scene.text_group.children) == 3
    scene.destroy()
    scene.destroy()
    assert scene.particle_count() == 0
    assert scene.root.children == []
