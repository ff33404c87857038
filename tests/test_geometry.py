import math

import numpy as np
import pytest

from gridpattern import (
    SHAPE_TYPES,
    ShapeDescriptor,
    primitive_points,
    rotate_points,
    shape_primitive,
)

SHAPE = ShapeDescriptor(x=100.0, y=60.0, size=8.0, opacity=0.7)


def test_dot_is_circle_with_half_size_radius():
    prim = shape_primitive(SHAPE, "dots")
    assert prim["kind"] == "circle"
    assert (prim["cx"], prim["cy"], prim["r"]) == (100.0, 60.0, 4.0)
    assert prim["opacity"] == 0.7


def test_square_centered_on_cell():
    prim = shape_primitive(SHAPE, "squares")
    assert prim["kind"] == "rect"
    assert (prim["x"], prim["y"], prim["w"], prim["h"]) == (96.0, 56.0, 8.0, 8.0)


def test_triangle_is_equilateral():
    prim = shape_primitive(SHAPE, "triangles")
    pts = np.array(prim["points"])
    sides = [np.linalg.norm(pts[i] - pts[(i + 1) % 3]) for i in range(3)]
    assert sides == pytest.approx([8.0, 8.0, 8.0])
    height = pts[1, 1] - pts[0, 1]
    assert height == pytest.approx(8.0 * math.sqrt(3) / 2)


def test_line_is_horizontal_with_quarter_stroke():
    prim = shape_primitive(SHAPE, "lines")
    assert prim["kind"] == "line"
    assert prim["start"] == (96.0, 60.0)
    assert prim["end"] == (104.0, 60.0)
    assert prim["width"] == 2.0


def test_plus_is_group_of_two_perpendicular_lines():
    prim = shape_primitive(SHAPE, "plus")
    assert prim["kind"] == "group"
    horizontal, vertical = prim["children"]
    assert horizontal["start"][1] == horizontal["end"][1] == 60.0
    assert vertical["start"][0] == vertical["end"][0] == 100.0
    assert horizontal["width"] == vertical["width"] == 2.0
    assert "opacity" not in horizontal


def test_unknown_shape_type():
    with pytest.raises(ValueError, match="Unknown shape type"):
        shape_primitive(SHAPE, "stars")


def test_rotate_points_quarter_turn_about_origin():
    out = rotate_points([(1.0, 0.0)], math.pi / 2, origin=(0.0, 0.0))
    assert out == pytest.approx(np.array([[0.0, 1.0]]))


@pytest.mark.parametrize("shape_type", SHAPE_TYPES)
def test_full_turn_matches_no_rotation(shape_type):
    unrotated = primitive_points(shape_primitive(SHAPE, shape_type, 0))
    prim = shape_primitive(SHAPE, shape_type, 0)
    prim["rotation"] = 360.0
    assert np.allclose(primitive_points(prim), unrotated)
    assert shape_primitive(SHAPE, shape_type, 360) == shape_primitive(SHAPE, shape_type, 0)


@pytest.mark.parametrize("shape_type", SHAPE_TYPES)
def test_rotation_is_about_shape_center(shape_type):
    prim = shape_primitive(SHAPE, shape_type, 37)
    pts = primitive_points(prim)
    unrotated = primitive_points(shape_primitive(SHAPE, shape_type, 0))
    center = np.array([SHAPE.x, SHAPE.y])
    assert np.linalg.norm(pts - center, axis=1) == pytest.approx(np.linalg.norm(unrotated - center, axis=1))


def test_square_rotated_45_has_vertex_above_center():
    prim = shape_primitive(SHAPE, "squares", 45)
    pts = primitive_points(prim)
    assert pts[:, 1].min() == pytest.approx(SHAPE.y - 4.0 * math.sqrt(2))


def test_circle_points_ignore_rotation():
    pts = primitive_points(shape_primitive(SHAPE, "dots", 123))
    assert pts == pytest.approx(np.array([[100.0, 60.0]]))
