import logging
import os
from typing import Dict, List, Optional

import numpy as np
from PIL import Image

from .model import Model, SubMesh

LOGGER = logging.getLogger(__name__)

# Material / texture name fragments that mark a face region
FACE_KEYWORDS = ("kao", "face", "skin", "eye", "hitomi")
FACE_TEXTURE_KEYWORDS = ("kao", "face", "hitomi", "eye")
# Texture path fragments that mark glasses / eyewear
GLASS_KEYWORDS = ("megane", "glass")

FALLBACK_TEXTURE_SIZE = 1024


class ModelLoadError(Exception):
    """Raised when a model file cannot be read."""


def clean_path(path: str) -> str:
    """Strip whitespace and surrounding quotes (drag-and-drop paths)."""
    path = path.strip()
    if path.startswith('"'):
        path = path[1:]
    if path.endswith('"'):
        path = path[:-1]
    return path


def is_face_material(material_name: str, texture_name: str) -> bool:
    mat = material_name.lower()
    tex = texture_name.lower()
    return any(k in mat for k in FACE_KEYWORDS) or any(k in tex for k in FACE_TEXTURE_KEYWORDS)


def is_glass_texture(texture_path: str) -> bool:
    """Only the file name counts; the directories above it are ignored."""
    tex = os.path.basename(texture_path.replace("\\", "/")).lower()
    return any(k in tex for k in GLASS_KEYWORDS)


# ============================================================
#  MTL parser
# ============================================================

def load_mtl(path: str) -> Dict[str, str]:
    """
    Minimal MTL parser: material name -> diffuse texture name (map_Kd).
    Materials without map_Kd map to "".
    """
    materials: Dict[str, str] = {}
    current = None
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split(maxsplit=1)
            if parts[0] == "newmtl" and len(parts) > 1:
                current = parts[1].strip()
                materials[current] = ""
            elif parts[0] == "map_Kd" and len(parts) > 1 and current is not None:
                # options like "-s 1 1 1" precede the file name
                materials[current] = parts[1].split()[-1]
    return materials


# ============================================================
#  OBJ loader
# ============================================================

class OBJModel:
    """
    OBJ parser for textured meshes grouped by material.

    Supported:
      v  x y z
      vt u v
      vn x y z
      f  v/vt/vn ...  (polygons are fan-triangulated, negative indices ok)
      mtllib file.mtl / usemtl name

    Missing vt => (0,0), missing vn => (0,0,1).
    """
    def __init__(self, path: str):
        self.path = path
        self.base_dir = os.path.dirname(path)
        self.verts: List[List[float]] = []
        self.uvs: List[List[float]] = []
        self.normals: List[List[float]] = []
        # material name -> texture name, in declaration order
        self.materials: Dict[str, str] = {}
        # (material name or None, ((vi, vti, vni) x 3))
        self.faces = []
        self._load(path)

    def _load(self, path: str):
        """Read OBJ file and populate verts/uvs/normals/faces."""
        current_mtl: Optional[str] = None
        with open(path, "r", encoding="utf-8", errors="ignore") as f:
            for lineno, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                try:
                    current_mtl = self._parse_line(line, current_mtl)
                except ValueError as exc:
                    raise ModelLoadError(f"{path}:{lineno}: {exc}") from exc

    def _parse_line(self, line: str, current_mtl: Optional[str]) -> Optional[str]:
        """Handle one OBJ statement; returns the material active after it."""
        parts = line.split()
        if parts[0] == "v" and len(parts) >= 4:
            self.verts.append([float(parts[1]), float(parts[2]), float(parts[3])])
        elif parts[0] == "vt" and len(parts) >= 3:
            self.uvs.append([float(parts[1]), float(parts[2])])
        elif parts[0] == "vn" and len(parts) >= 4:
            self.normals.append([float(parts[1]), float(parts[2]), float(parts[3])])
        elif parts[0] == "mtllib" and len(parts) >= 2:
            self._load_mtllib(line.split(maxsplit=1)[1])
        elif parts[0] == "usemtl":
            current_mtl = parts[1] if len(parts) > 1 else None
        elif parts[0] == "f" and len(parts) >= 4:
            corners = [self._parse_corner(p) for p in parts[1:]]
            # fan triangulation: (0,1,2), (0,2,3), ...
            for k in range(1, len(corners) - 1):
                self.faces.append((current_mtl, (corners[0], corners[k], corners[k + 1])))
        return current_mtl

    def _load_mtllib(self, name: str):
        mtl_path = os.path.join(self.base_dir, name.strip())
        try:
            for mat, tex in load_mtl(mtl_path).items():
                self.materials.setdefault(mat, tex)
        except OSError as exc:
            LOGGER.warning("Cannot read material library %s: %s", mtl_path, exc)

    def _resolve(self, idx: int, count: int, kind: str) -> int:
        # OBJ is 1-based; negative indices count from the end
        resolved = count + idx if idx < 0 else idx - 1
        if idx == 0 or not 0 <= resolved < count:
            raise ValueError(f"{kind} index {idx} out of range (have {count})")
        return resolved

    def _parse_corner(self, token: str):
        comps = token.split("/")
        vi = self._resolve(int(comps[0]), len(self.verts), "vertex")
        vti = vni = -1
        if len(comps) > 1 and comps[1]:
            vti = self._resolve(int(comps[1]), len(self.uvs), "texcoord")
        if len(comps) > 2 and comps[2]:
            vni = self._resolve(int(comps[2]), len(self.normals), "normal")
        return vi, vti, vni

    def safe_uv(self, idx: int):
        """Return UV by index, or (0,0) if missing."""
        if idx < 0 or idx >= len(self.uvs):
            return [0.0, 0.0]
        return self.uvs[idx]

    def safe_n(self, idx: int):
        """Return normal by index, or default (0,0,1) if missing."""
        if idx < 0 or idx >= len(self.normals):
            return [0.0, 0.0, 1.0]
        return self.normals[idx]


def load_obj(path: str, glass_opacity: Optional[float] = None) -> Model:
    """
    Load an OBJ (+MTL) into a Model, one SubMesh per material id.

    Texture ids index Model.texture_paths (one entry per material, "" when
    the material has no diffuse map); faces without a material get id -1.

    Glass groups never cast shadows; they are skipped by the color pass
    unless glass_opacity is given, in which case they are drawn translucent.
    """
    path = clean_path(path)
    LOGGER.info("Loading model: %s", path)
    try:
        obj = OBJModel(path)
    except OSError as exc:
        raise ModelLoadError(f"cannot read {path}: {exc}") from exc

    model = Model()
    mat_ids: Dict[str, int] = {}
    face_flags: List[bool] = []
    for mat_name, tex_name in obj.materials.items():
        mat_ids[mat_name] = len(model.texture_paths)
        if tex_name:
            filename = os.path.basename(tex_name.replace("\\", "/"))
            model.texture_paths.append(os.path.join(obj.base_dir, filename))
        else:
            model.texture_paths.append("")
        is_face = is_face_material(mat_name, tex_name)
        face_flags.append(is_face)
        LOGGER.debug("Material %d [%s] tex [%s] -> %s",
                     mat_ids[mat_name], mat_name, tex_name, "face" if is_face else "body")

    groups: Dict[int, List] = {}
    for mat_name, corners in obj.faces:
        mat_id = mat_ids.get(mat_name, -1) if mat_name is not None else -1
        groups.setdefault(mat_id, []).append(corners)

    for mat_id in sorted(groups):
        pos, uv, nrm = [], [], []
        for corners in groups[mat_id]:
            for vi, vti, vni in corners:
                pos.append(obj.verts[vi])
                uv.append(obj.safe_uv(vti))
                nrm.append(obj.safe_n(vni))

        tex_path = model.texture_paths[mat_id] if 0 <= mat_id < len(model.texture_paths) else ""
        mesh = SubMesh(np.array(pos), np.array(uv), np.array(nrm),
                       texture_id=mat_id,
                       is_face=face_flags[mat_id] if 0 <= mat_id < len(face_flags) else False,
                       name=tex_path)
        if is_glass_texture(tex_path):
            mesh.cast_shadow = False
            if glass_opacity is None:
                mesh.render_color = False
            else:
                mesh.opacity = glass_opacity
        model.meshes.append(mesh)

    LOGGER.info("Model loaded: %d sub-meshes, %d triangles",
                len(model.meshes), model.triangle_count)
    return model


# ============================================================
#  Textures
# ============================================================

def fallback_texture(size: int = FALLBACK_TEXTURE_SIZE) -> np.ndarray:
    """Solid white RGB image used for empty paths and decode failures."""
    return np.full((size, size, 3), 255, dtype=np.uint8)


def load_texture(path: str) -> np.ndarray:
    """Decode an image to an (H,W,3) uint8 RGB array."""
    with Image.open(path) as img:
        return np.array(img.convert("RGB"), dtype=np.uint8)


def load_textures(model: Model) -> List[np.ndarray]:
    """
    Decode every texture path of the model, aligned with texture ids.
    Empty paths and unreadable files get the white fallback.
    """
    fallback = fallback_texture()
    textures = []
    for path in model.texture_paths:
        if not path:
            textures.append(fallback)
            continue
        LOGGER.info("Loading texture: %s", path)
        try:
            textures.append(load_texture(path))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Failed to load %s (using white fallback): %s", path, exc)
            textures.append(fallback)
    return textures
