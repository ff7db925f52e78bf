import numpy as np
import pytest

from celraster.config import RenderSettings
from celraster.renderer import Renderer
from celraster.transforms import Vec3

BACKGROUND = (10, 10, 18)

# light clip coords that land outside the shadow map => always lit
UNSHADOWED = np.tile([5.0, 5.0, 0.0, 1.0], (3, 1))
FACING = np.tile([0.0, 0.0, 1.0], (3, 1))
NO_UV = np.zeros((3, 2))


def solid_texture(rgb, size=4):
    return np.full((size, size, 3), rgb, dtype=np.uint8)


def full_screen_triangle(width, height, z):
    """Covers every pixel center of a width x height target."""
    return np.array([[0.0, 0.0, z],
                     [2.0 * width, 0.0, z],
                     [0.0, 2.0 * height, z]])


@pytest.fixture
def settings():
    """Small target, light straight down the view axis, no outlines."""
    return RenderSettings(width=16, height=12, shadow_width=32, shadow_height=32,
                          light_direction=Vec3(0.0, 0.0, 1.0), edge_detection=False)


@pytest.fixture
def renderer(settings):
    r = Renderer(settings)
    r.clear()
    r.clear_shadow()
    return r
