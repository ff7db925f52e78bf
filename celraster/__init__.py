from .config import RenderSettings
from .frame_context import FrameContext
from .loader import ModelLoadError, load_obj, load_textures
from .model import Model, SubMesh
from .pipeline import render_frame
from .renderer import Renderer
from .skybox import Skybox
from .targets import FrameTarget, ShadowTarget
from .transforms import (Mat4, Vec3, barycentric, look_at_matrix, model_matrix,
                         ortho_matrix, perspective_matrix, point_in_triangle,
                         view_matrix, viewport)

__version__ = "0.1.0"
