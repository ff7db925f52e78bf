from numba import njit


# ============================================================
#  Edge detection (outline post-process)
# ============================================================

@njit(cache=True)
def _blacken(color, row, x):
    color[row, x, 0] = 0
    color[row, x, 1] = 0
    color[row, x, 2] = 0


@njit(cache=True)
def detect_edges(color, depth, background_depth, edge_threshold):
    """
    Darken pixels at depth discontinuities, in place.

    For every pixel except the last row/column, compare with the right and
    the lower neighbour:
      - silhouette: exactly one of the pair is background
        (depth > background_depth) -> both pixels go black, including
        when the current pixel is the background one, so the outline is
        closed on every side of the shape
      - crease: pixel and both neighbours are geometry and
        |d_right - d| + |d_down - d| > edge_threshold -> pixel goes black

    Decisions read only the depth buffer, so writing color while scanning
    does not influence later pixels. Returns the number of pixels touched.
    """
    H, W = depth.shape
    count = 0
    for row in range(H - 1):
        for x in range(W - 1):
            d = depth[row, x]
            d_right = depth[row, x + 1]
            d_down = depth[row + 1, x]
            bg = d > background_depth
            bg_right = d_right > background_depth
            bg_down = d_down > background_depth

            if bg != bg_right:
                _blacken(color, row, x)
                _blacken(color, row, x + 1)
                count += 1
            if bg != bg_down:
                _blacken(color, row, x)
                _blacken(color, row + 1, x)
                count += 1
            if bg or bg_right or bg_down:
                continue

            if abs(d_right - d) + abs(d_down - d) > edge_threshold:
                _blacken(color, row, x)
                count += 1
    return count
