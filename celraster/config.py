from dataclasses import dataclass
from typing import Tuple

from .transforms import Vec3


@dataclass
class RenderSettings:
    """
    Tunables for one renderer instance.

    Defaults follow the reference scene: a 700x700 frame, a 1024x1024
    shadow map, a light at (20,20,20) aimed at the origin with an
    orthographic extent of +-30 units, and a model fitted to ~5 units.
    """
    # --- Frame / camera
    width: int = 700
    height: int = 700
    fov_y: float = 45.0            # degrees, also used for skybox rays
    z_near: float = 0.1
    z_far: float = 100.0
    background_color: Tuple[int, int, int] = (10, 10, 18)

    # --- Light / shadow map
    shadow_width: int = 1024
    shadow_height: int = 1024
    light_position: Vec3 = Vec3(20.0, 20.0, 20.0)
    light_target: Vec3 = Vec3(0.0, 0.0, 0.0)
    light_extent: float = 30.0     # ortho box half-size
    light_direction: Vec3 = Vec3(1.0, 1.0, 1.0)
    shadow_bias: float = 0.01
    pcf_radius: int = 1            # 1 => 3x3 samples

    # --- Shading
    opaque_threshold: float = 0.99

    # --- Post-process
    edge_detection: bool = True
    edge_background_depth: float = 1.0
    edge_threshold: float = 0.002

    # --- Scene
    draw_glass: bool = False
    glass_opacity: float = 0.35
    model_size: float = 5.0

    def __post_init__(self):
        for name in ("width", "height", "shadow_width", "shadow_height"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.pcf_radius < 0:
            raise ValueError("pcf_radius must be >= 0")
        if not 0.0 < self.z_near < self.z_far:
            raise ValueError("expected 0 < z_near < z_far")
        if self.light_direction.norm() <= 1e-12:
            raise ValueError("light_direction must be non-zero")

    @property
    def aspect(self) -> float:
        return self.width / self.height

    @property
    def light_dir_unit(self) -> Vec3:
        return self.light_direction.normalize()
