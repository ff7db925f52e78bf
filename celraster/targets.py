import numpy as np


# ============================================================
#  Render targets
# ============================================================

class FrameTarget:
    """
    Main camera target: RGB color buffer + per-pixel depth buffer.

    Both arrays are in IMAGE orientation (row 0 is the top row):
      color - (H, W, 3) uint8
      depth - (H, W) float64, NDC z, smaller is closer, +inf when untouched

    Allocated once; clear() resets it every frame.
    """
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.color = np.zeros((height, width, 3), dtype=np.uint8)
        self.depth = np.full((height, width), np.inf, dtype=np.float64)

    def clear(self, color=(0, 0, 0)):
        """Fill color with a constant and reset depth to +inf."""
        self.color[:, :, :] = color
        self.depth.fill(np.inf)

    def clear_depth(self):
        self.depth.fill(np.inf)


class ShadowTarget:
    """
    Depth-only target for the directional light.

    depth - (h, w) float64, normalized light depth in [0,1] (z*0.5+0.5),
            +inf when untouched.

    Rows follow light-space y directly (no image flip): the shadow lookup
    maps v = y_ndc*0.5+0.5 straight to a row index.

    resize() is lazy: the array is reallocated before the next write, or at
    the next clear(), whichever comes first.
    """
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.depth = np.full((height, width), np.inf, dtype=np.float64)

    def resize(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid shadow map size {width}x{height}")
        self.width = width
        self.height = height

    def ensure_size(self) -> bool:
        """Apply a pending resize. Returns True when the array was reallocated."""
        if self.depth.shape == (self.height, self.width):
            return False
        self.depth = np.full((self.height, self.width), np.inf, dtype=np.float64)
        return True

    def clear(self):
        if not self.ensure_size():
            self.depth.fill(np.inf)

    def to_image(self) -> np.ndarray:
        """
        8-bit visualization of the shadow map: untouched texels are black,
        the rest map depth [0,1] to [0,255].
        """
        img = np.zeros(self.depth.shape, dtype=np.uint8)
        hit = np.isfinite(self.depth)
        img[hit] = np.clip(self.depth[hit] * 255.0, 0, 255).astype(np.uint8)
        return img
