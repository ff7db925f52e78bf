import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from numba import njit


# ============================================================
#  Math primitives
# ============================================================

@dataclass(frozen=True)
class Vec3:
    """
    3D vector for positions, directions and normals.

    Used in:
      - camera / light positions
      - light direction (normalized)
      - camera basis for skybox rays
    """
    x: float
    y: float
    z: float

    def __add__(self, o): return Vec3(self.x + o.x, self.y + o.y, self.z + o.z)
    def __sub__(self, o): return Vec3(self.x - o.x, self.y - o.y, self.z - o.z)
    def __mul__(self, k: float): return Vec3(self.x * k, self.y * k, self.z * k)

    def dot(self, o) -> float:
        """Dot product (scalar product)."""
        return self.x * o.x + self.y * o.y + self.z * o.z

    def cross(self, o):
        """Cross product (vector product)."""
        return Vec3(
            self.y * o.z - self.z * o.y,
            self.z * o.x - self.x * o.z,
            self.x * o.y - self.y * o.x
        )

    def norm(self) -> float:
        """Euclidean length."""
        return math.sqrt(self.dot(self))

    def normalize(self):
        """Return normalized vector (length=1)."""
        n = self.norm()
        if n <= 1e-12:
            return Vec3(0.0, 0.0, 0.0)
        return self * (1.0 / n)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass(frozen=True)
class Vec4:
    """4D homogeneous vector."""
    x: float
    y: float
    z: float
    w: float


class Mat4:
    """
    4x4 matrix (row-major), backed by a float64 numpy array.

    We use Mat4 for:
      - Model matrix (rotation, plus the fit-to-size normalization)
      - View matrix (camera / light translation)
      - Projection matrix (perspective for the camera, orthographic for the light)

    Multiplication:
      - Matrix * Matrix => Mat4
      - Matrix * Vec4   => Vec4
      - Matrix * (N,3) points => (N,4) homogeneous rows (transform_points)
    """
    def __init__(self, m: Optional[List[List[float]]] = None):
        if m is None:
            self.m = np.zeros((4, 4), dtype=np.float64)
        else:
            self.m = np.array(m, dtype=np.float64).reshape(4, 4)

    @staticmethod
    def identity():
        """Create identity matrix."""
        return Mat4(np.eye(4))

    def __matmul__(self, o: "Mat4") -> "Mat4":
        """Matrix multiplication (Mat4 @ Mat4)."""
        return Mat4(self.m @ o.m)

    def __repr__(self):
        return f"Mat4({self.m.tolist()})"

    def mul_vec4(self, v: Vec4) -> Vec4:
        """Multiply matrix by a Vec4 (Mat4 * Vec4)."""
        x, y, z, w = self.m @ np.array([v.x, v.y, v.z, v.w])
        return Vec4(float(x), float(y), float(z), float(w))

    def transform_points(self, points, w: float = 1.0) -> np.ndarray:
        """
        Transform an (N,3) array of points, treating each as (x, y, z, w).

        Returns the (N,4) homogeneous result, one row per input point.
        w=1 for positions, w=0 for directions (normals).
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        homo = np.empty((pts.shape[0], 4), dtype=np.float64)
        homo[:, :3] = pts
        homo[:, 3] = w
        return homo @ self.m.T


# ============================================================
#  3D transforms
# ============================================================

def translate(tx, ty, tz) -> Mat4:
    """
    Translation matrix.

    Applies: (x, y, z) -> (x + tx, y + ty, z + tz)
    """
    m = Mat4.identity()
    m.m[0][3] = tx
    m.m[1][3] = ty
    m.m[2][3] = tz
    return m

def scale(sx, sy, sz) -> Mat4:
    """
    Scaling matrix.

    Applies: (x, y, z) -> (sx*x, sy*y, sz*z)
    """
    m = Mat4.identity()
    m.m[0][0] = sx
    m.m[1][1] = sy
    m.m[2][2] = sz
    return m

def rotate_x(a) -> Mat4:
    """Rotation around X axis by angle a (radians)."""
    c, s = math.cos(a), math.sin(a)
    m = Mat4.identity()
    m.m[1][1] = c
    m.m[1][2] = -s
    m.m[2][1] = s
    m.m[2][2] = c
    return m

def rotate_y(a) -> Mat4:
    """Rotation around Y axis by angle a (radians)."""
    c, s = math.cos(a), math.sin(a)
    m = Mat4.identity()
    m.m[0][0] = c
    m.m[0][2] = s
    m.m[2][0] = -s
    m.m[2][2] = c
    return m

def rotate_z(a) -> Mat4:
    """Rotation around Z axis by angle a (radians)."""
    c, s = math.cos(a), math.sin(a)
    m = Mat4.identity()
    m.m[0][0] = c
    m.m[0][1] = -s
    m.m[1][0] = s
    m.m[1][1] = c
    return m

def model_matrix(angle_x, angle_y, angle_z) -> Mat4:
    """
    Model rotation from Euler angles in DEGREES.

    The order is fixed: rotate about X first, then Y, then Z,
    i.e. Model = Rz @ Ry @ Rx.
    """
    return (rotate_z(math.radians(angle_z))
            @ rotate_y(math.radians(angle_y))
            @ rotate_x(math.radians(angle_x)))

def view_matrix(eye: Vec3) -> Mat4:
    """
    Camera view matrix: moves the world by -eye.

    Translation only. Camera orientation is NOT handled here; a caller that
    needs a rotated camera composes the rotation on the left (see look_at_matrix).
    """
    return translate(-eye.x, -eye.y, -eye.z)

def look_at_matrix(eye: Vec3, target: Vec3, up: Vec3 = Vec3(0.0, 1.0, 0.0)) -> Mat4:
    """
    Orientation toward target composed with the translation-only view_matrix.

    Looking direction maps to -Z in view space. If target-eye is parallel to
    up, a different up axis is picked so the basis stays well defined.
    """
    front = (target - eye).normalize()
    right = front.cross(up)
    if right.norm() <= 1e-9:
        right = front.cross(Vec3(0.0, 0.0, -1.0))
    right = right.normalize()
    cam_up = right.cross(front)

    rot = Mat4.identity()
    rot.m[0, :3] = (right.x, right.y, right.z)
    rot.m[1, :3] = (cam_up.x, cam_up.y, cam_up.z)
    rot.m[2, :3] = (-front.x, -front.y, -front.z)
    return rot @ view_matrix(eye)


# ============================================================
#  Projections
# ============================================================

def perspective_matrix(fov_y, aspect, z_near, z_far) -> Mat4:
    """
    Perspective projection matrix (OpenGL style).

    Parameters:
      fov_y  - vertical field of view in DEGREES
      aspect - width / height
      z_near - near plane distance (positive)
      z_far  - far plane distance (positive)

    Notes:
      - Camera looks towards -Z in view space.
      - This projection produces clip-space with w = -z_view.
    """
    tan_half = math.tan(math.radians(fov_y) / 2.0)
    m = Mat4()
    m.m[0][0] = 1.0 / (aspect * tan_half)
    m.m[1][1] = 1.0 / tan_half
    m.m[2][2] = -(z_far + z_near) / (z_far - z_near)
    m.m[2][3] = -(2.0 * z_far * z_near) / (z_far - z_near)
    m.m[3][2] = -1.0
    return m

def ortho_matrix(left, right, bottom, top, z_near, z_far) -> Mat4:
    """
    Orthographic projection of the box [left,right]x[bottom,top]x[-near,-far]
    onto NDC [-1,1]^3. Works for asymmetric boxes too.
    """
    m = Mat4.identity()
    m.m[0][0] = 2.0 / (right - left)
    m.m[1][1] = 2.0 / (top - bottom)
    m.m[2][2] = 2.0 / (z_near - z_far)
    m.m[0][3] = -(right + left) / (right - left)
    m.m[1][3] = -(top + bottom) / (top - bottom)
    m.m[2][3] = -(z_far + z_near) / (z_far - z_near)
    return m


# ============================================================
#  Utilities
# ============================================================

def viewport(ndc_x, ndc_y, W, H) -> Tuple[float, float]:
    """
    Convert NDC coordinates [-1..1] to pixel coordinates [0..W], [0..H].

    Pixel space keeps the mathematical orientation:
      x=0 left, y=0 BOTTOM.
    The row flip to image orientation happens at write time (row = H-1-y).
    Works element-wise on numpy arrays as well.
    """
    return 0.5 * W * (ndc_x + 1.0), 0.5 * H * (ndc_y + 1.0)


# ============================================================
#  2D triangle primitives (shared by all rasterization passes)
# ============================================================

@njit(cache=True)
def edge_function(ax, ay, bx, by, px, py):
    """Signed doubled area of (A, B, P); positive when P is left of A->B."""
    return (bx - ax) * (py - ay) - (by - ay) * (px - ax)


@njit(cache=True)
def barycentric(px, py, ax, ay, bx, by, cx, cy):
    """
    Barycentric coordinates of (px,py) with respect to triangle (A,B,C)
    in 2D, as ratios of signed areas.

    alpha + beta + gamma == 1 by construction (gamma is the remainder).
    For a degenerate triangle (zero area) the weights are NaN, which every
    inside test rejects.
    """
    area = edge_function(ax, ay, bx, by, cx, cy)
    if abs(area) < 1e-12:
        return np.nan, np.nan, np.nan
    alpha = edge_function(bx, by, cx, cy, px, py) / area
    beta = edge_function(cx, cy, ax, ay, px, py) / area
    gamma = 1.0 - alpha - beta
    return alpha, beta, gamma


@njit(cache=True)
def point_in_triangle(alpha, beta, gamma):
    """
    Inside test on barycentric weights.

    Accepts all-non-negative AND all-non-positive weights, so triangles are
    double-sided: winding order never culls a triangle.
    """
    if alpha >= 0.0 and beta >= 0.0 and gamma >= 0.0:
        return True
    return alpha <= 0.0 and beta <= 0.0 and gamma <= 0.0
