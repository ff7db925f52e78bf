import logging
from typing import Optional, Sequence

import numpy as np

from .frame_context import FrameContext
from .model import Model, SubMesh
from .renderer import Renderer
from .skybox import Skybox

LOGGER = logging.getLogger(__name__)


def texture_for(mesh: SubMesh, textures: Sequence[np.ndarray]) -> Optional[np.ndarray]:
    """Texture of a sub-mesh, or None (checkerboard) for -1 / out-of-range ids."""
    if 0 <= mesh.texture_id < len(textures):
        return textures[mesh.texture_id]
    return None


def shadow_pass(renderer: Renderer, model: Model, context: FrameContext) -> int:
    renderer.clear_shadow()
    drawn = 0
    for mesh in model.meshes:
        if not mesh.cast_shadow:
            continue
        drawn += renderer.draw_shadow_mesh(context.project_light_screen(
            mesh.positions, renderer.shadow.width, renderer.shadow.height))
    return drawn


def color_pass(renderer: Renderer, model: Model, textures: Sequence[np.ndarray],
               context: FrameContext) -> int:
    """
    Opaque groups first, then translucent ones: translucent fragments
    never write depth, so they must come after everything they overlay.
    """
    threshold = renderer.settings.opaque_threshold
    visible = [m for m in model.meshes if m.render_color]
    ordered = ([m for m in visible if m.opacity >= threshold]
               + [m for m in visible if m.opacity < threshold])

    drawn = 0
    for mesh in ordered:
        screen, valid = context.project_screen(mesh.positions)
        drawn += renderer.draw_mesh(screen, mesh.texcoords,
                                    context.transform_normals(mesh.normals),
                                    context.project_light_clip(mesh.positions),
                                    texture_for(mesh, textures), mesh.is_face,
                                    mesh.opacity, valid)
    return drawn


def render_frame(renderer: Renderer, model: Model, textures: Sequence[np.ndarray],
                 context: FrameContext, skybox: Optional[Skybox] = None) -> np.ndarray:
    """
    One full frame, strictly ordered:
      background -> shadow map -> color pass -> edge post-process

    The shadow map is complete before the first color fragment samples it.
    Returns the frame buffer (H,W,3) uint8, owned by the renderer.
    """
    renderer.clear(skybox, context.camera_position, context.camera_target)
    shadow_tris = shadow_pass(renderer, model, context)
    color_tris = color_pass(renderer, model, textures, context)
    edges = renderer.detect_edges() if renderer.settings.edge_detection else 0
    LOGGER.debug("frame: %d shadow tris, %d color tris, %d edge pixels",
                 shadow_tris, color_tris, edges)
    return renderer.get_frame_buffer()
