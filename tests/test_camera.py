"""
Test: Camera and orbit rig

Run:
    python -m pytest tests/test_camera.py -v
"""

import math

import pytest

from lilygalaxy.camera import CameraRig, PerspectiveCamera
from lilygalaxy.config import DEFAULTS


def test_project_origin_lands_on_viewport_center():
    camera = PerspectiveCamera(fov=75, aspect=800 / 600, position=(0, 0, 900))
    camera.look_at(0, 0, 0)
    sx, sy, depth, inv = camera.project((0, 0, 0), 800, 600)
    assert (sx, sy) == pytest.approx((400.0, 300.0))
    assert depth == pytest.approx(900.0)
    assert inv == pytest.approx(camera.focal_length(600) / 900.0)


def test_project_orientation_and_clipping():
    camera = PerspectiveCamera(position=(0, 0, 900), near=0.1, far=3000)
    camera.look_at(0, 0, 0)
    right = camera.project((100, 0, 0), 800, 600)
    up = camera.project((0, 100, 0), 800, 600)
    assert right[0] > 400
    assert up[1] < 300
    assert camera.project((0, 0, 1000), 800, 600) is None
    assert camera.project((0, 0, -2200), 800, 600) is None


def test_straight_down_view_has_valid_basis():
    camera = PerspectiveCamera(position=(0, 500, 0))
    camera.look_at(0, 0, 0)
    right, up, forward = camera.basis()
    assert forward == pytest.approx((0.0, -1.0, 0.0))
    assert math.sqrt(sum(c * c for c in right)) == pytest.approx(1.0)


def test_rig_derives_angles_from_position():
    camera = PerspectiveCamera(position=(50, 750, 450))
    rig = CameraRig(camera)
    radius = camera.distance
    rig.apply()
    assert camera.position == pytest.approx([50, 750, 450])
    assert camera.distance == pytest.approx(radius)


def test_drag_clamps_pitch():
    camera = PerspectiveCamera(position=(50, 750, 450))
    rig = CameraRig(camera, sensitivity=0.005)
    rig.press(0, 0)
    rig.move(0, 10000)
    assert rig.pitch == pytest.approx(math.pi / 2)
    rig.move(0, -30000)
    assert rig.pitch == pytest.approx(-math.pi / 2)
    rig.release()
    yaw = rig.yaw
    rig.move(500, 0)
    assert rig.yaw == yaw


def test_drag_updates_yaw():
    camera = PerspectiveCamera(position=(0, 0, 900))
    rig = CameraRig(camera, pitch=0.0, yaw=0.0)
    rig.press(10, 10)
    rig.move(110, 10)
    assert rig.yaw == pytest.approx(0.5)
    rig.apply()
    assert camera.position[0] == pytest.approx(900 * math.sin(0.5))
    assert camera.distance == pytest.approx(900)


def test_radius_zoom_is_clamped():
    camera = PerspectiveCamera(position=(50, 750, 450))
    rig = CameraRig.from_config(camera, DEFAULTS["camera"]["flowers"])
    rig.wheel(100000)
    assert camera.distance == pytest.approx(2000.0)
    rig.wheel(-100000)
    assert camera.distance == pytest.approx(300.0)


def test_dolly_zoom_moves_along_z():
    camera = PerspectiveCamera(position=(0, 50, 900))
    rig = CameraRig.from_config(camera, DEFAULTS["camera"]["text"])
    assert rig.pitch == 0.0 and rig.yaw == 0.0
    rig.wheel(1000)
    assert camera.position[2] == pytest.approx(1000.0)
    rig.wheel(100000)
    assert camera.position[2] == pytest.approx(1500.0)
    rig.wheel(-100000)
    assert camera.position[2] == pytest.approx(100.0)
