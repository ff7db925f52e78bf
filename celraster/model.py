from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np


@dataclass
class SubMesh:
    """
    One material group of triangles.

    Arrays are flat per corner; rows 3k, 3k+1, 3k+2 form triangle k:
      positions - (N,3) model space
      texcoords - (N,2)
      normals   - (N,3)

    Pass tags are decided once at load time:
      cast_shadow  - rasterized into the shadow map
      render_color - drawn by the color pass
      opacity      - < opaque threshold => blended, never writes depth
    """
    positions: np.ndarray
    texcoords: np.ndarray
    normals: np.ndarray
    texture_id: int = -1
    is_face: bool = False
    cast_shadow: bool = True
    render_color: bool = True
    opacity: float = 1.0
    name: str = ""

    def __post_init__(self):
        self.positions = np.ascontiguousarray(self.positions, dtype=np.float64).reshape(-1, 3)
        self.texcoords = np.ascontiguousarray(self.texcoords, dtype=np.float64).reshape(-1, 2)
        self.normals = np.ascontiguousarray(self.normals, dtype=np.float64).reshape(-1, 3)
        n = self.positions.shape[0]
        if n % 3 != 0:
            raise ValueError(f"vertex count {n} is not a multiple of 3")
        if self.texcoords.shape[0] != n or self.normals.shape[0] != n:
            raise ValueError("positions, texcoords and normals must have the same length")

    @property
    def triangle_count(self) -> int:
        return self.positions.shape[0] // 3


@dataclass
class Model:
    """All sub-meshes plus the texture paths indexed by SubMesh.texture_id."""
    meshes: List[SubMesh] = field(default_factory=list)
    texture_paths: List[str] = field(default_factory=list)

    @property
    def triangle_count(self) -> int:
        return sum(m.triangle_count for m in self.meshes)

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Axis-aligned (min, max) corners over every sub-mesh."""
        if not self.meshes or self.triangle_count == 0:
            return np.zeros(3), np.zeros(3)
        pts = np.concatenate([m.positions for m in self.meshes if m.positions.size])
        return pts.min(axis=0), pts.max(axis=0)

    def fit(self, target_size: float = 5.0) -> Tuple[np.ndarray, float]:
        """
        Center and uniform scale that make the largest bbox side target_size.

        Returns (center, scale); apply as (v - center) * scale.
        """
        lo, hi = self.bounds()
        center = (lo + hi) / 2.0
        max_dim = float(np.max(hi - lo))
        if max_dim <= 1e-12:
            return center, 1.0
        return center, target_size / max_dim
