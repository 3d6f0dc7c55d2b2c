"""
Test: Scene graph helpers

Run:
    python -m pytest tests/test_scene_graph.py -v
"""

import math

import pytest

from lilygalaxy.scene_graph import (
    Group,
    Material,
    Mesh,
    Points,
    mat_apply,
    quat_from_unit_vectors,
    quat_to_matrix,
)
from lilygalaxy.shapes import STAR_SHAPES, star_shapes


@pytest.mark.parametrize(
    "target",
    [(0.0, 1.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, -1.0, 0.0), (0.6, 0.8, 0.0)],
)
def test_quaternion_maps_unit_vectors(target):
    q = quat_from_unit_vectors((0.0, 1.0, 0.0), target)
    assert mat_apply(quat_to_matrix(q), (0.0, 1.0, 0.0)) == pytest.approx(target, abs=1e-9)


def test_nested_group_transform():
    outer = Group()
    outer.position = [100.0, 0.0, 0.0]
    outer.rotate_y(math.pi / 2)
    inner = Group()
    inner.position = [0.0, 0.0, 10.0]
    outer.add(inner)
    assert inner.local_to_world((0.0, 0.0, 0.0)) == pytest.approx((110.0, 0.0, 0.0), abs=1e-9)


def test_reparenting_moves_node():
    a, b = Group(), Group()
    mesh = Mesh(STAR_SHAPES[0], Material("#ffffff"))
    a.add(mesh)
    b.add(mesh)
    assert a.children == [] and b.children == [mesh]
    a.remove(mesh)
    assert mesh.parent is b


def test_material_disposed_once():
    material = Material("#ffffff")
    assert material.dispose() is True
    assert material.dispose() is False


def test_points_reject_ragged_buffer():
    with pytest.raises(ValueError):
        Points([0.0, 1.0], Material("#ffffff"))


def test_star_shapes_catalogue():
    names = [shape.name for shape in star_shapes()]
    assert len(names) == 5
    assert [shape.round for shape in STAR_SHAPES].count(True) == 1
