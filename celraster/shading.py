import math

from numba import njit


# ============================================================
#  Toon shading constants
# ============================================================

LIT_THRESHOLD = 0.5                 # N.L above this is fully lit
SHADE_TINT = (0.62, 0.66, 0.82)     # cool ambient instead of black

VIEW_DIR = (0.0, 0.0, 1.0)          # fixed, not recomputed per camera
RIM_POWER = 4
RIM_CUTOFF = 0.4
RIM_COLOR = (70.0, 80.0, 110.0)

CHECKER_TILES = 10
CHECKER_A = (220, 220, 220)
CHECKER_B = (70, 70, 80)


# ============================================================
#  Texture sampling
# ============================================================

@njit(cache=True)
def sample_texture(tex, u, v):
    """
    Nearest-neighbour texel fetch.

    u, v are clamped to [0..1]; v is flipped because texture row 0 is the
    TOP of the image:
      tx = floor(u * (cols-1)), ty = floor((1-v) * (rows-1))
    """
    th, tw, _ = tex.shape
    if u < 0.0: u = 0.0
    if u > 1.0: u = 1.0
    if v < 0.0: v = 0.0
    if v > 1.0: v = 1.0
    tx = int(math.floor(u * (tw - 1)))
    ty = int(math.floor((1.0 - v) * (th - 1)))
    return float(tex[ty, tx, 0]), float(tex[ty, tx, 1]), float(tex[ty, tx, 2])


@njit(cache=True)
def checkerboard(u, v):
    """Procedural stand-in for a missing texture (10x10 tiles over [0,1])."""
    if u < 0.0: u = 0.0
    if u > 1.0: u = 1.0
    if v < 0.0: v = 0.0
    if v > 1.0: v = 1.0
    cell = int(math.floor(u * CHECKER_TILES)) + int(math.floor(v * CHECKER_TILES))
    if cell % 2 == 0:
        return float(CHECKER_A[0]), float(CHECKER_A[1]), float(CHECKER_A[2])
    return float(CHECKER_B[0]), float(CHECKER_B[1]), float(CHECKER_B[2])


# ============================================================
#  Shadow lookup (PCF)
# ============================================================

@njit(cache=True)
def shadow_visibility(shadow_depth, sx, sy, sz, sw, bias, radius):
    """
    Fraction of the PCF window that is lit, in [0..1].

    Parameters:
      shadow_depth   - (h,w) normalized light depth map
      sx, sy, sz, sw - fragment position in light CLIP space
      bias           - subtracted from the fragment depth (acne control)
      radius         - window half-width, 1 => 3x3 samples

    Fragments whose light-space uv falls outside [0,1) are lit: no
    wraparound, no shadow. Only in-bounds texels are counted.
    """
    if sw == 0.0:
        return 1.0
    u = (sx / sw) * 0.5 + 0.5
    v = (sy / sw) * 0.5 + 0.5
    if u < 0.0 or u >= 1.0 or v < 0.0 or v >= 1.0:
        return 1.0

    depth = (sz / sw) * 0.5 + 0.5 - bias
    h, w = shadow_depth.shape
    # same texel the depth-only pass wrote for this point (pixel x covers [x, x+1))
    base_u = u * w
    base_v = v * h

    lit = 0
    total = 0
    for oy in range(-radius, radius + 1):
        ty = int(math.floor(base_v + oy))
        if ty < 0 or ty >= h:
            continue
        for ox in range(-radius, radius + 1):
            tx = int(math.floor(base_u + ox))
            if tx < 0 or tx >= w:
                continue
            total += 1
            if depth <= shadow_depth[ty, tx]:
                lit += 1
    if total == 0:
        return 1.0
    return lit / total


# ============================================================
#  Toon lighting
# ============================================================

@njit(cache=True)
def toon_light(nx, ny, nz, lx, ly, lz, is_face, visibility):
    """
    Banded light color (r,g,b multipliers) for a unit normal.

      face        -> always white (faces never darken)
      N.L > 0.5   -> white
      otherwise   -> cool ambient tint

    Occlusion pulls the color toward light*tint, proportionally to
    (1 - visibility).
    """
    if is_face:
        return 1.0, 1.0, 1.0

    ndotl = nx * lx + ny * ly + nz * lz
    if ndotl < 0.0:
        ndotl = 0.0

    if ndotl > LIT_THRESHOLD:
        r, g, b = 1.0, 1.0, 1.0
    else:
        r, g, b = SHADE_TINT[0], SHADE_TINT[1], SHADE_TINT[2]

    if visibility < 1.0:
        r *= SHADE_TINT[0] + (1.0 - SHADE_TINT[0]) * visibility
        g *= SHADE_TINT[1] + (1.0 - SHADE_TINT[1]) * visibility
        b *= SHADE_TINT[2] + (1.0 - SHADE_TINT[2]) * visibility
    return r, g, b


@njit(cache=True)
def rim_strength(nx, ny, nz):
    """Hard-edged rim term: 1.0 past the cutoff, else 0.0."""
    ndotv = nx * VIEW_DIR[0] + ny * VIEW_DIR[1] + nz * VIEW_DIR[2]
    if ndotv < 0.0:
        ndotv = 0.0
    rim = (1.0 - ndotv) ** RIM_POWER
    if rim > RIM_CUTOFF:
        return 1.0
    return 0.0
