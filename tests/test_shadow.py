import numpy as np
import pytest

from celraster.shading import shadow_visibility
from celraster.targets import ShadowTarget
from tests.conftest import full_screen_triangle

BIAS = 0.01


def test_shadow_pass_keeps_minimum_normalized_depth(renderer):
    tri = full_screen_triangle(32, 32, -0.5)
    assert renderer.rasterize_shadow(tri)
    np.testing.assert_allclose(renderer.shadow.depth, 0.25)

    # farther: ignored
    assert not renderer.rasterize_shadow(full_screen_triangle(32, 32, 0.0))
    np.testing.assert_allclose(renderer.shadow.depth, 0.25)

    # closer: replaces
    renderer.rasterize_shadow(full_screen_triangle(32, 32, -1.0))
    np.testing.assert_allclose(renderer.shadow.depth, 0.0, atol=1e-12)


def test_shadow_pass_does_not_touch_the_frame(renderer):
    before = renderer.get_frame_buffer().copy()
    renderer.rasterize_shadow(full_screen_triangle(32, 32, 0.0))
    np.testing.assert_array_equal(renderer.get_frame_buffer(), before)
    assert not np.isfinite(renderer.get_depth_buffer()).any()


def test_shadow_rows_follow_light_space_y(renderer):
    tri = np.array([[0.0, 0.0, 0.0], [4.0, 0.0, 0.0], [0.0, 4.0, 0.0]])
    renderer.rasterize_shadow(tri)
    assert np.isfinite(renderer.shadow.depth[0, 0])
    assert not np.isfinite(renderer.shadow.depth[31, 0])


def test_outside_light_frustum_is_always_lit():
    occluded = np.zeros((8, 8))
    for sx, sy in [(1.5, 0.0), (0.0, -1.2), (1.0, 0.0), (0.0, 1.0), (-3.0, 4.0)]:
        assert shadow_visibility(occluded, sx, sy, 0.5, 1.0, BIAS, 1) == 1.0
    # perspective divide happens first: (2, 0, 0, 4) maps inside
    assert shadow_visibility(occluded, 2.0, 0.0, 0.5, 4.0, BIAS, 1) == 0.0


def test_empty_map_is_lit_and_full_occluder_is_dark():
    empty = np.full((8, 8), np.inf)
    assert shadow_visibility(empty, 0.0, 0.0, 0.5, 1.0, BIAS, 1) == 1.0
    occluded = np.zeros((8, 8))
    assert shadow_visibility(occluded, 0.0, 0.0, 0.5, 1.0, BIAS, 1) == 0.0


def test_bias_prevents_self_shadowing():
    surface = np.full((8, 8), 0.75)
    # fragment exactly on the stored surface (z_ndc 0.5 -> 0.75)
    assert shadow_visibility(surface, 0.0, 0.0, 0.5, 1.0, BIAS, 1) == 1.0
    # fragment well behind it
    assert shadow_visibility(surface, 0.0, 0.0, 0.9, 1.0, BIAS, 1) == 0.0


def test_pcf_softens_a_shadow_edge():
    half = np.full((8, 8), np.inf)
    half[:, :5] = 0.0
    # u = 0.5 -> texel 4: columns 3,4 occluded, column 5 lit
    assert shadow_visibility(half, 0.0, 0.0, 0.5, 1.0, BIAS, 1) == pytest.approx(1.0 / 3.0)
    # radius 0 is a single hard sample
    assert shadow_visibility(half, 0.0, 0.0, 0.5, 1.0, BIAS, 0) == 0.0


def test_pcf_counts_only_in_bounds_texels():
    occluded = np.zeros((8, 8))
    occluded[:, 1] = np.inf
    # corner texel (0,0): 4 in-bounds samples, the two in column 1 are lit
    assert shadow_visibility(occluded, -1.0, -1.0, 0.5, 1.0, BIAS, 1) == pytest.approx(0.5)


def test_shadow_target_resize_is_lazy(renderer):
    renderer.init_shadow_buffer(8, 4)
    assert renderer.shadow.depth.shape == (32, 32)
    renderer.clear_shadow()
    assert renderer.shadow.depth.shape == (4, 8)
    assert not np.isfinite(renderer.shadow.depth).any()

    with pytest.raises(ValueError):
        renderer.init_shadow_buffer(0, 4)


def test_shadow_image_visualization():
    target = ShadowTarget(4, 2)
    target.depth[0, 0] = 0.5
    target.depth[1, 3] = 1.0
    img = target.to_image()
    assert img.dtype == np.uint8
    assert img[0, 0] == 127
    assert img[1, 3] == 255
    assert img[0, 1] == 0


def test_lookup_hits_the_texel_the_shadow_pass_wrote(renderer):
    # one occluding texel near the far corner of the map
    tiny = np.array([[30.0, 30.0, -1.0], [31.2, 30.0, -1.0], [30.0, 31.2, -1.0]])
    assert renderer.rasterize_shadow(tiny)
    assert np.isfinite(renderer.shadow.depth).sum() == 1
    assert renderer.shadow.depth[30, 30] == pytest.approx(0.0)
    # center of texel (30, 30) in light NDC
    sx = (30.5 / 32) * 2.0 - 1.0
    assert shadow_visibility(renderer.shadow.depth, sx, sx, 0.5, 1.0, BIAS, 0) == 0.0


def test_pending_resize_applies_before_the_next_shadow_write(renderer):
    renderer.init_shadow_buffer(64, 48)
    assert renderer.rasterize_shadow(full_screen_triangle(64, 48, 0.0))
    assert renderer.shadow.depth.shape == (48, 64)
    np.testing.assert_allclose(renderer.shadow.depth, 0.5)
