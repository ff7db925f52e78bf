import logging
import math
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .transforms import Vec3

LOGGER = logging.getLogger(__name__)

GRADIENT_TOP = (70, 90, 140)
GRADIENT_BOTTOM = (200, 190, 185)


def camera_basis(eye: Vec3, target: Vec3, world_up: Vec3 = Vec3(0.0, 1.0, 0.0)):
    """
    Orthonormal camera basis:
      front = normalize(target - eye)
      right = normalize(front x worldUp)
      up    = right x front
    """
    front = (target - eye).normalize()
    right = front.cross(world_up)
    if right.norm() <= 1e-9:
        # looking straight up/down: any horizontal right vector will do
        right = front.cross(Vec3(0.0, 0.0, -1.0))
    right = right.normalize()
    up = right.cross(front)
    return front, right, up


def camera_rays(width: int, height: int, eye: Vec3, target: Vec3, fov_y: float) -> np.ndarray:
    """
    One unit ray per pixel through a pinhole camera.

    Returns (H, W, 3) float64 in IMAGE orientation (row 0 is the top row),
    matching FrameTarget.color.
    """
    front, right, up = camera_basis(eye, target)
    tan_half = math.tan(math.radians(fov_y) / 2.0)
    aspect = width / height

    xs = ((np.arange(width) + 0.5) / width * 2.0 - 1.0) * aspect * tan_half
    ys = (1.0 - (np.arange(height) + 0.5) / height * 2.0) * tan_half
    px, py = np.meshgrid(xs, ys)

    dirs = (front.as_array()[None, None, :]
            + px[:, :, None] * right.as_array()[None, None, :]
            + py[:, :, None] * up.as_array()[None, None, :])
    dirs /= np.linalg.norm(dirs, axis=-1, keepdims=True)
    return dirs


class Skybox:
    """
    Equirectangular environment lookup.

      u = 0.5 + atan2(dir.z, dir.x) / (2*pi)
      v = 0.5 - asin(dir.y) / pi

    scale_u / scale_v tile the panorama (2.0 => repeats twice); the result
    is wrapped with u - floor(u). Without a panorama a vertical gradient
    (by dir.y) is returned instead.
    """
    def __init__(self, panorama: Optional[np.ndarray] = None,
                 scale_u: float = 1.0, scale_v: float = 1.0):
        self.panorama = panorama
        self.scale_u = scale_u
        self.scale_v = scale_v

    @property
    def is_loaded(self) -> bool:
        return self.panorama is not None

    def load(self, path: str) -> bool:
        """Decode a panorama with Pillow. On failure keep the gradient."""
        LOGGER.info("Loading skybox: %s", path)
        try:
            with Image.open(path) as img:
                self.panorama = np.array(img.convert("RGB"), dtype=np.uint8)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Failed to load skybox %s: %s", path, exc)
            self.panorama = None
            return False
        return True

    def sample_directions(self, dirs: np.ndarray) -> np.ndarray:
        """Colors (..., 3) uint8 for an array of ray directions (..., 3)."""
        dirs = np.asarray(dirs, dtype=np.float64)
        length = np.linalg.norm(dirs, axis=-1, keepdims=True)
        d = dirs / np.maximum(length, 1e-12)

        if self.panorama is None:
            t = np.clip(d[..., 1] * 0.5 + 0.5, 0.0, 1.0)[..., None]
            top = np.array(GRADIENT_TOP, dtype=np.float64)
            bottom = np.array(GRADIENT_BOTTOM, dtype=np.float64)
            return (bottom + (top - bottom) * t).astype(np.uint8)

        u = 0.5 + np.arctan2(d[..., 2], d[..., 0]) / (2.0 * np.pi)
        v = 0.5 - np.arcsin(np.clip(d[..., 1], -1.0, 1.0)) / np.pi

        u = u * self.scale_u
        v = v * self.scale_v
        u = u - np.floor(u)
        v = v - np.floor(v)

        rows, cols, _ = self.panorama.shape
        tx = np.clip((u * (cols - 1)).astype(np.intp), 0, cols - 1)
        ty = np.clip((v * (rows - 1)).astype(np.intp), 0, rows - 1)
        return self.panorama[ty, tx]

    def sample(self, direction) -> Tuple[int, int, int]:
        """Color for a single direction (Vec3 or 3-sequence)."""
        if isinstance(direction, Vec3):
            direction = direction.as_array()
        r, g, b = self.sample_directions(np.asarray(direction, dtype=np.float64)[None, :])[0]
        return int(r), int(g), int(b)

    def render_background(self, width: int, height: int,
                          eye: Vec3, target: Vec3, fov_y: float) -> np.ndarray:
        """(H, W, 3) uint8 background image seen from eye looking at target."""
        return self.sample_directions(camera_rays(width, height, eye, target, fov_y))
