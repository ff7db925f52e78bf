import math

import numpy as np
import pytest

from celraster.transforms import (Mat4, Vec3, Vec4, barycentric, look_at_matrix,
                                  model_matrix, ortho_matrix, perspective_matrix,
                                  point_in_triangle, rotate_x, rotate_y, rotate_z,
                                  view_matrix, viewport)

TRIANGLES = [
    (0.0, 0.0, 10.0, 0.0, 0.0, 10.0),
    (0.0, 0.0, 0.0, 10.0, 10.0, 0.0),      # clockwise
    (-3.5, 2.0, 7.25, -4.0, 1.5, 9.0),
    (100.0, 100.0, 101.0, 100.0, 100.0, 101.0),
]


@pytest.mark.parametrize("tri", TRIANGLES)
def test_barycentric_sums_to_one(tri):
    for px, py in [(0.5, 0.5), (3.0, 4.0), (-20.0, 7.0), (100.2, 100.3), (55.0, -1.0)]:
        a, b, c = barycentric(px, py, *tri)
        assert a + b + c == pytest.approx(1.0, abs=1e-4)


@pytest.mark.parametrize("tri", TRIANGLES)
def test_barycentric_at_vertices(tri):
    ax, ay, bx, by, cx, cy = tri
    assert barycentric(ax, ay, *tri) == pytest.approx((1.0, 0.0, 0.0))
    assert barycentric(bx, by, *tri) == pytest.approx((0.0, 1.0, 0.0))
    assert barycentric(cx, cy, *tri) == pytest.approx((0.0, 0.0, 1.0))


@pytest.mark.parametrize("tri", TRIANGLES)
def test_centroid_is_strictly_inside(tri):
    ax, ay, bx, by, cx, cy = tri
    a, b, c = barycentric((ax + bx + cx) / 3, (ay + by + cy) / 3, *tri)
    assert a > 0 and b > 0 and c > 0
    assert point_in_triangle(a, b, c)


def test_outside_point_has_a_negative_weight():
    tri = TRIANGLES[0]
    for px, py in [(-1.0, 1.0), (11.0, 11.0), (5.0, -0.5), (20.0, 0.0)]:
        a, b, c = barycentric(px, py, *tri)
        assert min(a, b, c) < 0
        assert not point_in_triangle(a, b, c)


def test_point_in_triangle_is_double_sided():
    assert point_in_triangle(0.2, 0.3, 0.5)
    assert point_in_triangle(-0.2, -0.3, -0.5)
    assert point_in_triangle(0.0, 0.0, 1.0)
    assert not point_in_triangle(0.5, -0.1, 0.6)
    assert not point_in_triangle(-0.5, 0.1, -0.6)


def test_degenerate_triangle_is_rejected():
    a, b, c = barycentric(1.0, 1.0, 0.0, 0.0, 1.0, 1.0, 2.0, 2.0)
    assert math.isnan(a) and math.isnan(b) and math.isnan(c)
    assert not point_in_triangle(a, b, c)


def test_perspective_matrix_entries():
    m = perspective_matrix(90.0, 2.0, 1.0, 3.0).m
    assert m[0][0] == pytest.approx(0.5)
    assert m[1][1] == pytest.approx(1.0)
    assert m[2][2] == pytest.approx(-2.0)
    assert m[2][3] == pytest.approx(-3.0)
    assert m[3][2] == -1.0
    assert m[3][3] == 0.0


def test_perspective_maps_near_and_far_planes():
    p = perspective_matrix(60.0, 1.0, 0.5, 50.0)
    near = p.mul_vec4(Vec4(0.0, 0.0, -0.5, 1.0))
    far = p.mul_vec4(Vec4(0.0, 0.0, -50.0, 1.0))
    assert near.w == pytest.approx(0.5)
    assert near.z / near.w == pytest.approx(-1.0)
    assert far.z / far.w == pytest.approx(1.0)


def test_ortho_matrix_maps_box_to_ndc_cube():
    o = ortho_matrix(-2.0, 6.0, -1.0, 3.0, 1.0, 11.0)
    lo = o.mul_vec4(Vec4(-2.0, -1.0, -1.0, 1.0))
    hi = o.mul_vec4(Vec4(6.0, 3.0, -11.0, 1.0))
    assert (lo.x, lo.y, lo.z, lo.w) == pytest.approx((-1.0, -1.0, -1.0, 1.0))
    assert (hi.x, hi.y, hi.z, hi.w) == pytest.approx((1.0, 1.0, 1.0, 1.0))


def test_model_matrix_rotates_x_then_y_then_z():
    m = model_matrix(30.0, 45.0, 60.0)
    expected = (rotate_z(math.radians(60.0)) @ rotate_y(math.radians(45.0))
                @ rotate_x(math.radians(30.0)))
    np.testing.assert_allclose(m.m, expected.m)

    # X first: (0,1,0) -> (0,0,1), then Y: -> (1,0,0)
    v = model_matrix(90.0, 90.0, 0.0).mul_vec4(Vec4(0.0, 1.0, 0.0, 1.0))
    assert (v.x, v.y, v.z) == pytest.approx((1.0, 0.0, 0.0), abs=1e-9)


def test_axis_rotations_are_right_handed():
    v = rotate_z(math.radians(90.0)).mul_vec4(Vec4(1.0, 0.0, 0.0, 1.0))
    assert (v.x, v.y, v.z) == pytest.approx((0.0, 1.0, 0.0), abs=1e-9)
    v = rotate_x(math.radians(90.0)).mul_vec4(Vec4(0.0, 1.0, 0.0, 1.0))
    assert (v.x, v.y, v.z) == pytest.approx((0.0, 0.0, 1.0), abs=1e-9)
    v = rotate_y(math.radians(90.0)).mul_vec4(Vec4(0.0, 0.0, 1.0, 1.0))
    assert (v.x, v.y, v.z) == pytest.approx((1.0, 0.0, 0.0), abs=1e-9)


def test_view_matrix_is_translation_only():
    m = view_matrix(Vec3(1.0, -2.0, 10.0)).m
    np.testing.assert_allclose(m[:3, :3], np.eye(3))
    np.testing.assert_allclose(m[:3, 3], [-1.0, 2.0, -10.0])


def test_look_at_puts_target_on_negative_z():
    m = look_at_matrix(Vec3(20.0, 20.0, 20.0), Vec3(0.0, 0.0, 0.0))
    v = m.mul_vec4(Vec4(0.0, 0.0, 0.0, 1.0))
    assert (v.x, v.y) == pytest.approx((0.0, 0.0), abs=1e-9)
    assert v.z == pytest.approx(-math.sqrt(3 * 20.0 ** 2))


def test_look_at_straight_down_stays_finite():
    m = look_at_matrix(Vec3(0.0, 10.0, 0.0), Vec3(0.0, 0.0, 0.0))
    assert np.all(np.isfinite(m.m))


def test_viewport_keeps_bottom_left_origin():
    assert viewport(-1.0, -1.0, 640, 480) == (0.0, 0.0)
    assert viewport(1.0, 1.0, 640, 480) == (640.0, 480.0)
    assert viewport(0.0, 0.0, 640, 480) == (320.0, 240.0)


def test_transform_points_matches_mul_vec4():
    m = model_matrix(10.0, 20.0, 30.0) @ view_matrix(Vec3(1.0, 2.0, 3.0))
    pts = np.array([[1.0, 2.0, 3.0], [-4.0, 0.5, 2.0]])
    out = m.transform_points(pts)
    for p, row in zip(pts, out):
        v = m.mul_vec4(Vec4(*p, 1.0))
        assert tuple(row) == pytest.approx((v.x, v.y, v.z, v.w))


def test_mat4_identity():
    m = Mat4.identity()
    np.testing.assert_array_equal(m.m, np.eye(4))
    assert (Vec3(3.0, 4.0, 0.0).normalize().norm()) == pytest.approx(1.0)
    assert Vec3(0.0, 0.0, 0.0).normalize() == Vec3(0.0, 0.0, 0.0)
