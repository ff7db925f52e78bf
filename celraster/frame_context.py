from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import RenderSettings
from .transforms import (Mat4, Vec3, look_at_matrix, model_matrix, ortho_matrix,
                         perspective_matrix, scale, translate, view_matrix,
                         viewport)

# Perspective divide requires w > 0
W_EPSILON = 1e-6


@dataclass(frozen=True)
class FrameContext:
    """
    Every matrix of one frame, built once and shared by the shadow pass and
    the color pass so both derive vertex positions from the SAME model matrix:

      screen      = viewport(ndc(projection @ view @ model @ v))
      light_clip  = light_projection @ light_view @ model @ v
    """
    model: Mat4
    view: Mat4
    projection: Mat4
    light_view: Mat4
    light_projection: Mat4
    width: int
    height: int
    shadow_width: int
    shadow_height: int
    camera_position: Vec3
    camera_target: Vec3

    @classmethod
    def build(cls, settings: RenderSettings,
              angle_x: float = 0.0, angle_y: float = 0.0, angle_z: float = 0.0,
              camera_position: Vec3 = Vec3(0.0, 0.0, 10.0),
              center=(0.0, 0.0, 0.0), fit_scale: float = 1.0) -> "FrameContext":
        """
        Parameters:
          angle_*         - model rotation in degrees (Rz @ Ry @ Rx)
          camera_position - eye; the camera looks down -Z (translation-only view)
          center, fit_scale - model normalization: (v - center) * fit_scale
        """
        cx, cy, cz = center
        normalize = scale(fit_scale, fit_scale, fit_scale) @ translate(-cx, -cy, -cz)
        model = model_matrix(angle_x, angle_y, angle_z) @ normalize

        e = settings.light_extent
        return cls(
            model=model,
            view=view_matrix(camera_position),
            projection=perspective_matrix(settings.fov_y, settings.aspect,
                                          settings.z_near, settings.z_far),
            light_view=look_at_matrix(settings.light_position, settings.light_target),
            light_projection=ortho_matrix(-e, e, -e, e, settings.z_near, settings.z_far),
            width=settings.width,
            height=settings.height,
            shadow_width=settings.shadow_width,
            shadow_height=settings.shadow_height,
            camera_position=camera_position,
            camera_target=camera_position + Vec3(0.0, 0.0, -1.0),
        )

    @property
    def camera_mvp(self) -> Mat4:
        return self.projection @ self.view @ self.model

    @property
    def light_mvp(self) -> Mat4:
        return self.light_projection @ self.light_view @ self.model

    # ------------------------------------------------------------
    #  Batched vertex projection
    # ------------------------------------------------------------

    def project_screen(self, positions) -> Tuple[np.ndarray, np.ndarray]:
        """
        Model-space (N,3) -> camera screen (N,3): x,y pixels, z NDC.

        Returns (screen, valid); valid is False where clip w <= W_EPSILON
        (vertex behind the camera), those rows hold garbage.
        """
        clip = self.camera_mvp.transform_points(positions)
        return _to_screen(clip, self.width, self.height)

    def project_light_clip(self, positions) -> np.ndarray:
        """Model-space (N,3) -> light clip space (N,4), no divide."""
        return np.ascontiguousarray(self.light_mvp.transform_points(positions))

    def project_light_screen(self, positions, width: Optional[int] = None,
                             height: Optional[int] = None) -> np.ndarray:
        """
        Model-space (N,3) -> shadow-map pixels (N,3): x,y pixels, z light NDC.

        width/height default to the configured shadow map size.
        """
        clip = self.light_mvp.transform_points(positions)
        screen, _ = _to_screen(clip, width or self.shadow_width, height or self.shadow_height)
        return screen

    def transform_normals(self, normals) -> np.ndarray:
        """Rotate normals by the model matrix (w=0) and renormalize."""
        n = self.model.transform_points(normals, w=0.0)[:, :3]
        length = np.linalg.norm(n, axis=1, keepdims=True)
        return np.ascontiguousarray(n / np.maximum(length, 1e-12))


def _to_screen(clip: np.ndarray, width: int, height: int):
    w = clip[:, 3]
    valid = w > W_EPSILON
    safe_w = np.where(valid, w, 1.0)
    ndc = clip[:, :3] / safe_w[:, None]
    screen = np.empty((clip.shape[0], 3), dtype=np.float64)
    screen[:, 0], screen[:, 1] = viewport(ndc[:, 0], ndc[:, 1], width, height)
    screen[:, 2] = ndc[:, 2]
    return screen, valid
