import logging
from typing import Optional

import numpy as np

from .config import RenderSettings
from .postprocess import detect_edges
from .raster import (NO_COLOR, NO_LIGHT_CLIP, NO_NORMALS, NO_SHADOW, NO_TEXTURE,
                     NO_UV, SHADER_DEPTH_ONLY, SHADER_TOON, rasterize_mesh)
from .skybox import Skybox
from .targets import FrameTarget, ShadowTarget
from .transforms import Vec3

LOGGER = logging.getLogger(__name__)


def _rows(a, cols, name) -> np.ndarray:
    arr = np.ascontiguousarray(a, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != cols:
        raise ValueError(f"{name} must have shape (N, {cols}), got {arr.shape}")
    return arr


class Renderer:
    """
    CPU renderer core.

    Owns one FrameTarget and one ShadowTarget. Per frame, in this order:
      clear(...)            - skybox / background fill, depth reset
      clear_shadow()        - shadow map reset (applies pending resize)
      rasterize_shadow(...) - depth-only pass in light space
      rasterize_triangle(...) / draw_mesh(...) - shaded color pass
      detect_edges()        - outline post-process
    """
    def __init__(self, settings: Optional[RenderSettings] = None):
        self.settings = settings if settings is not None else RenderSettings()
        s = self.settings
        self.frame = FrameTarget(s.width, s.height)
        self.shadow = ShadowTarget(s.shadow_width, s.shadow_height)
        light = s.light_dir_unit
        self._light = (light.x, light.y, light.z)

    @property
    def width(self) -> int:
        return self.frame.width

    @property
    def height(self) -> int:
        return self.frame.height

    # ------------------------------------------------------------
    #  Targets
    # ------------------------------------------------------------

    def clear(self, skybox: Optional[Skybox] = None,
              camera_pos: Optional[Vec3] = None, camera_target: Optional[Vec3] = None):
        """
        Reset depth to +inf and fill the color buffer.

        With a skybox, every pixel gets the environment color along its camera
        ray (gradient when the skybox has no image); otherwise the settings'
        background color.
        """
        if skybox is None:
            self.frame.clear(self.settings.background_color)
            return
        eye = camera_pos if camera_pos is not None else Vec3(0.0, 0.0, 0.0)
        target = camera_target if camera_target is not None else eye + Vec3(0.0, 0.0, -1.0)
        self.frame.color[:, :, :] = skybox.render_background(
            self.width, self.height, eye, target, self.settings.fov_y)
        self.frame.clear_depth()

    def init_shadow_buffer(self, width: int, height: int):
        """Change the shadow map resolution; applied before the next shadow write or clear."""
        self.shadow.resize(width, height)

    def clear_shadow(self):
        self.shadow.clear()

    def get_frame_buffer(self) -> np.ndarray:
        return self.frame.color

    def get_depth_buffer(self) -> np.ndarray:
        return self.frame.depth

    def get_shadow_image(self) -> np.ndarray:
        return self.shadow.to_image()

    # ------------------------------------------------------------
    #  Shadow pass
    # ------------------------------------------------------------

    def draw_shadow_mesh(self, light_screen) -> int:
        """
        Depth-only rasterization of (N,3) shadow-map coordinates
        (x,y in shadow pixels, z light NDC). Returns triangles drawn.
        """
        self.shadow.ensure_size()
        screen = _rows(light_screen, 3, "light_screen")
        valid = np.ones(screen.shape[0], dtype=np.bool_)
        drawn, _ = rasterize_mesh(SHADER_DEPTH_ONLY, screen, NO_UV, NO_NORMALS, NO_LIGHT_CLIP,
                                  valid, self.shadow.depth, NO_COLOR, NO_TEXTURE, False,
                                  NO_SHADOW, False, 1.0,
                                  0.0, 0.0, 0.0, 0.0, 0, 1.0)
        return drawn

    def rasterize_shadow(self, light_screen) -> bool:
        """Single triangle version of draw_shadow_mesh."""
        return self.draw_shadow_mesh(np.asarray(light_screen).reshape(3, 3)) > 0

    # ------------------------------------------------------------
    #  Color pass
    # ------------------------------------------------------------

    def draw_mesh(self, screen, uvs, normals, light_clip,
                  texture: Optional[np.ndarray] = None, is_face: bool = False,
                  opacity: float = 1.0, valid=None) -> int:
        """
        Shade and rasterize a flat triangle list into the frame target.

        Parameters:
          screen     - (N,3) x,y pixels (origin bottom-left), z NDC
          uvs        - (N,2) texture coordinates
          normals    - (N,3) unit normals (world space)
          light_clip - (N,4) light clip-space positions for the shadow lookup
          texture    - (h,w,3) uint8 RGB, or None for the checkerboard
          is_face    - exempt from shadows, darkening and rim light
          opacity    - below the opaque threshold the triangles are blended
          valid      - optional (N,) bool, False drops the vertex's triangle

        Returns triangles drawn.
        """
        screen = _rows(screen, 3, "screen")
        n = screen.shape[0]
        uvs = _rows(uvs, 2, "uvs")
        normals = _rows(normals, 3, "normals")
        light_clip = _rows(light_clip, 4, "light_clip")
        if not (uvs.shape[0] == normals.shape[0] == light_clip.shape[0] == n):
            raise ValueError("attribute arrays must have the same length")
        if valid is None:
            valid = np.ones(n, dtype=np.bool_)
        else:
            valid = np.ascontiguousarray(valid, dtype=np.bool_)

        has_texture = texture is not None
        tex = np.ascontiguousarray(texture, dtype=np.uint8) if has_texture else NO_TEXTURE
        s = self.settings
        lx, ly, lz = self._light
        drawn, fragments = rasterize_mesh(SHADER_TOON, screen, uvs, normals, light_clip, valid,
                                          self.frame.depth, self.frame.color, tex, has_texture,
                                          self.shadow.depth, bool(is_face), float(opacity),
                                          lx, ly, lz, s.shadow_bias, s.pcf_radius,
                                          s.opaque_threshold)
        LOGGER.debug("color pass: %d/%d triangles, %d fragments", drawn, n // 3, fragments)
        return drawn

    def rasterize_triangle(self, screen, uvs, normals, light_clip,
                           texture: Optional[np.ndarray] = None, is_face: bool = False,
                           opacity: float = 1.0) -> bool:
        """
        One triangle: screen (3,3), uvs (3,2), normals (3,3), light_clip (3,4).
        Returns True if any fragment was written.
        """
        return self.draw_mesh(np.asarray(screen).reshape(3, 3),
                              np.asarray(uvs).reshape(3, 2),
                              np.asarray(normals).reshape(3, 3),
                              np.asarray(light_clip).reshape(3, 4),
                              texture, is_face, opacity) > 0

    # ------------------------------------------------------------
    #  Post-process
    # ------------------------------------------------------------

    def detect_edges(self) -> int:
        """Blacken silhouettes and creases in the color buffer. Returns pixels hit."""
        s = self.settings
        return detect_edges(self.frame.color, self.frame.depth,
                            s.edge_background_depth, s.edge_threshold)
