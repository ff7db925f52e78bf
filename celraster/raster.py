import math

import numpy as np
from numba import njit

from .shading import (RIM_COLOR, checkerboard, rim_strength, sample_texture,
                      shadow_visibility, toon_light)
from .transforms import barycentric, edge_function, point_in_triangle


# ============================================================
#  Fragment shaders (selected per call)
# ============================================================

SHADER_DEPTH_ONLY = 0   # shadow pass: keep min normalized depth, no color
SHADER_TOON = 1         # color pass: texture + toon + shadow + rim + alpha

# Placeholders for the arrays a shader does not read
NO_COLOR = np.zeros((1, 1, 3), dtype=np.uint8)
NO_TEXTURE = np.zeros((1, 1, 3), dtype=np.uint8)
NO_SHADOW = np.full((1, 1), np.inf, dtype=np.float64)
NO_UV = np.zeros((0, 2), dtype=np.float64)
NO_NORMALS = np.zeros((0, 3), dtype=np.float64)
NO_LIGHT_CLIP = np.zeros((0, 4), dtype=np.float64)


# ============================================================
#  Numba rasterizer
# ============================================================

@njit(cache=True)
def rasterize_triangle(shader, i, screen, uvs, normals, light_clip,
                       depth, color, texture, has_texture, shadow_depth,
                       is_face, opacity,
                       lx, ly, lz, bias, pcf_radius, opaque_threshold):
    """
    Rasterize triangle rows i, i+1, i+2 of the attribute arrays.

    screen:
      - (N,3) x,y in pixels (origin bottom-left), z in NDC
    depth / color:
      - target buffers; color is only touched by SHADER_TOON

    Coverage is shared by both shaders:
      - bbox clamped to the target, sampled at pixel centers (x+0.5, y+0.5)
      - double-sided inside test, strict "closer wins" depth test

    SHADER_DEPTH_ONLY stores z*0.5+0.5 at row y (light-space rows).
    SHADER_TOON writes at row H-1-y (image rows); translucent fragments
    blend with the existing color and leave depth untouched.

    Returns the number of fragments written.
    """
    H, W = depth.shape

    x0, y0, z0 = screen[i, 0], screen[i, 1], screen[i, 2]
    x1, y1, z1 = screen[i + 1, 0], screen[i + 1, 1], screen[i + 1, 2]
    x2, y2, z2 = screen[i + 2, 0], screen[i + 2, 1], screen[i + 2, 2]

    # zero-area triangles are skipped outright
    if abs(edge_function(x0, y0, x1, y1, x2, y2)) < 1e-12:
        return 0

    minx = max(0, int(math.floor(min(x0, x1, x2))))
    maxx = min(W - 1, int(math.ceil(max(x0, x1, x2))))
    miny = max(0, int(math.floor(min(y0, y1, y2))))
    maxy = min(H - 1, int(math.ceil(max(y0, y1, y2))))

    opaque = opacity >= opaque_threshold
    written = 0

    for y in range(miny, maxy + 1):
        py = y + 0.5
        if shader == SHADER_DEPTH_ONLY:
            row = y
        else:
            row = H - 1 - y
        for x in range(minx, maxx + 1):
            px = x + 0.5
            a, b, c = barycentric(px, py, x0, y0, x1, y1, x2, y2)
            if not point_in_triangle(a, b, c):
                continue

            z = a * z0 + b * z1 + c * z2

            if shader == SHADER_DEPTH_ONLY:
                zn = z * 0.5 + 0.5
                if zn < depth[row, x]:
                    depth[row, x] = zn
                    written += 1
                continue

            if z >= depth[row, x]:
                continue

            # --- texture (or checkerboard)
            uu = a * uvs[i, 0] + b * uvs[i + 1, 0] + c * uvs[i + 2, 0]
            vv = a * uvs[i, 1] + b * uvs[i + 1, 1] + c * uvs[i + 2, 1]
            if has_texture:
                tr, tg, tb = sample_texture(texture, uu, vv)
            else:
                tr, tg, tb = checkerboard(uu, vv)

            # --- shadow (faces are exempt)
            if is_face:
                visibility = 1.0
            else:
                sx = a * light_clip[i, 0] + b * light_clip[i + 1, 0] + c * light_clip[i + 2, 0]
                sy = a * light_clip[i, 1] + b * light_clip[i + 1, 1] + c * light_clip[i + 2, 1]
                sz = a * light_clip[i, 2] + b * light_clip[i + 1, 2] + c * light_clip[i + 2, 2]
                sw = a * light_clip[i, 3] + b * light_clip[i + 1, 3] + c * light_clip[i + 2, 3]
                visibility = shadow_visibility(shadow_depth, sx, sy, sz, sw, bias, pcf_radius)

            # --- interpolated normal
            nnx = a * normals[i, 0] + b * normals[i + 1, 0] + c * normals[i + 2, 0]
            nny = a * normals[i, 1] + b * normals[i + 1, 1] + c * normals[i + 2, 1]
            nnz = a * normals[i, 2] + b * normals[i + 1, 2] + c * normals[i + 2, 2]
            nlen = math.sqrt(nnx*nnx + nny*nny + nnz*nnz) + 1e-12
            nnx /= nlen; nny /= nlen; nnz /= nlen

            lr, lg, lb = toon_light(nnx, nny, nnz, lx, ly, lz, is_face, visibility)
            r = tr * lr
            g = tg * lg
            bl = tb * lb

            if opaque:
                if not is_face:
                    rim = rim_strength(nnx, nny, nnz)
                    r += RIM_COLOR[0] * rim
                    g += RIM_COLOR[1] * rim
                    bl += RIM_COLOR[2] * rim
                depth[row, x] = z
            else:
                r = r * opacity + color[row, x, 0] * (1.0 - opacity)
                g = g * opacity + color[row, x, 1] * (1.0 - opacity)
                bl = bl * opacity + color[row, x, 2] * (1.0 - opacity)

            color[row, x, 0] = int(min(255.0, max(0.0, r)))
            color[row, x, 1] = int(min(255.0, max(0.0, g)))
            color[row, x, 2] = int(min(255.0, max(0.0, bl)))
            written += 1

    return written


@njit(cache=True)
def rasterize_mesh(shader, screen, uvs, normals, light_clip, valid,
                   depth, color, texture, has_texture, shadow_depth,
                   is_face, opacity,
                   lx, ly, lz, bias, pcf_radius, opaque_threshold):
    """
    Rasterize every triangle of a flat (N,3) vertex array (N multiple of 3).

    Triangles with any invalid vertex (w <= 0 before the divide) are skipped.
    Returns (triangles drawn, fragments written).
    """
    drawn = 0
    fragments = 0
    for i in range(0, screen.shape[0] - 2, 3):
        if not (valid[i] and valid[i + 1] and valid[i + 2]):
            continue
        n = rasterize_triangle(shader, i, screen, uvs, normals, light_clip,
                               depth, color, texture, has_texture, shadow_depth,
                               is_face, opacity,
                               lx, ly, lz, bias, pcf_radius, opaque_threshold)
        if n > 0:
            drawn += 1
        fragments += n
    return drawn, fragments
