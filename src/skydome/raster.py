"""Pixel buffer primitives for chart export.

A buffer is a ``(height, width, 3)`` uint8 numpy array indexed ``buf[y, x]``.
Every function draws into the buffer it is given; nothing here keeps state.
Coordinates outside the buffer are clipped.
"""

import math

import numpy as np

Color = tuple[int, int, int]


def new_buffer(width: int, height: int, background: Color = (0, 0, 0)) -> np.ndarray:
    """Allocate a buffer filled with the background colour."""
    buf = np.empty((height, width, 3), dtype=np.uint8)
    buf[:, :] = background
    return buf


def _window(buf: np.ndarray, cx: int, cy: int, r: int) -> tuple[int, int, int, int]:
    """Inclusive bounding box of a radius-r square around (cx, cy), clipped."""
    h, w = buf.shape[:2]
    return max(0, cx - r), min(w - 1, cx + r), max(0, cy - r), min(h - 1, cy + r)


def draw_soft_dot(
    buf: np.ndarray, cx: int, cy: int, radius: float, alpha: float
) -> None:
    """Additively blend a glow dot toward white.

    Falloff is ``(1 - d/radius)**2`` scaled by ``alpha``. Channels saturate at
    255, so overlapping dots brighten instead of occluding.
    """
    r = math.ceil(radius)
    min_x, max_x, min_y, max_y = _window(buf, cx, cy, r)
    if min_x > max_x or min_y > max_y:
        return

    ys, xs = np.mgrid[min_y : max_y + 1, min_x : max_x + 1]
    d2 = (xs - cx).astype(np.float64) ** 2 + (ys - cy).astype(np.float64) ** 2
    inside = d2 <= radius * radius

    inv_r = 1.0 / radius if radius > 0.0001 else 0.0
    falloff = 1.0 - np.sqrt(d2) * inv_r
    add = np.clip(np.rint(255.0 * alpha * falloff * falloff), 0, 255).astype(np.int16)
    add[~inside] = 0

    region = buf[min_y : max_y + 1, min_x : max_x + 1].astype(np.int16)
    region += add[:, :, np.newaxis]
    buf[min_y : max_y + 1, min_x : max_x + 1] = np.minimum(region, 255).astype(np.uint8)


def draw_solid_dot(buf: np.ndarray, cx: int, cy: int, radius: int, color: Color) -> None:
    """Fill a disc of integer radius. Radius 0 sets a single pixel."""
    min_x, max_x, min_y, max_y = _window(buf, cx, cy, radius)
    if min_x > max_x or min_y > max_y:
        return
    ys, xs = np.ogrid[min_y : max_y + 1, min_x : max_x + 1]
    mask = (xs - cx) ** 2 + (ys - cy) ** 2 <= radius * radius
    buf[min_y : max_y + 1, min_x : max_x + 1][mask] = color


def draw_line_thick(
    buf: np.ndarray,
    x0: int,
    y0: int,
    x1: int,
    y1: int,
    color: Color,
    thickness: int,
) -> None:
    """Bresenham line stamping a disc of radius ``thickness - 1`` at every step."""
    dx = abs(x1 - x0)
    sx = 1 if x0 < x1 else -1
    dy = -abs(y1 - y0)
    sy = 1 if y0 < y1 else -1
    err = dx + dy
    r = max(0, thickness - 1)

    while True:
        draw_solid_dot(buf, x0, y0, r, color)
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += sx
        if e2 <= dx:
            err += dx
            y0 += sy


def draw_circle_outline(
    buf: np.ndarray, cx: int, cy: int, r: int, thickness: int, color: Color
) -> None:
    """Fill the annulus ``r - thickness <= d <= r`` (squared-distance test)."""
    r_inner = max(0, r - thickness)
    min_x, max_x, min_y, max_y = _window(buf, cx, cy, r)
    if min_x > max_x or min_y > max_y:
        return
    ys, xs = np.ogrid[min_y : max_y + 1, min_x : max_x + 1]
    d2 = (xs - cx) ** 2 + (ys - cy) ** 2
    mask = (d2 <= r * r) & (d2 >= r_inner * r_inner)
    buf[min_y : max_y + 1, min_x : max_x + 1][mask] = color


def flip_vertical(buf: np.ndarray) -> None:
    """Swap rows top-to-bottom in place."""
    h = buf.shape[0]
    for y in range(h // 2):
        y2 = h - 1 - y
        row = buf[y].copy()
        buf[y] = buf[y2]
        buf[y2] = row


def new_occupancy(width: int, height: int) -> np.ndarray:
    return np.zeros((height, width), dtype=bool)


def rect_any_occupied(
    occupancy: np.ndarray, x: int, y: int, rect_w: int, rect_h: int
) -> bool:
    """True if any cell of the inclusive rectangle ``[x, x+w] x [y, y+h]`` is taken."""
    h, w = occupancy.shape
    x2 = min(w - 1, x + rect_w)
    y2 = min(h - 1, y + rect_h)
    return bool(occupancy[y : y2 + 1, x : x2 + 1].any())


def mark_rect_occupied(
    occupancy: np.ndarray, x: int, y: int, rect_w: int, rect_h: int
) -> None:
    h, w = occupancy.shape
    x2 = min(w - 1, x + rect_w)
    y2 = min(h - 1, y + rect_h)
    occupancy[y : y2 + 1, x : x2 + 1] = True
