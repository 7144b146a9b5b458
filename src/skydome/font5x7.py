"""Tiny 5x7 bitmap font for chart labels.

Each glyph is seven row bytes; bit 4 is the leftmost column. Characters
advance by six columns so glyphs keep a one-pixel gap.
"""

import re

import numpy as np

from skydome.raster import Color

GLYPH_WIDTH = 5
GLYPH_HEIGHT = 7
ADVANCE = 6

_BLANK = (0, 0, 0, 0, 0, 0, 0)

GLYPHS: dict[str, tuple[int, ...]] = {
    " ": _BLANK,
    "0": (0x1E, 0x11, 0x13, 0x15, 0x19, 0x11, 0x1E),
    "1": (0x04, 0x0C, 0x04, 0x04, 0x04, 0x04, 0x0E),
    "2": (0x1E, 0x01, 0x01, 0x1E, 0x10, 0x10, 0x1F),
    "3": (0x1E, 0x01, 0x01, 0x0E, 0x01, 0x01, 0x1E),
    "4": (0x02, 0x06, 0x0A, 0x12, 0x1F, 0x02, 0x02),
    "5": (0x1F, 0x10, 0x10, 0x1E, 0x01, 0x01, 0x1E),
    "6": (0x0E, 0x10, 0x10, 0x1E, 0x11, 0x11, 0x0E),
    "7": (0x1F, 0x01, 0x02, 0x04, 0x08, 0x08, 0x08),
    "8": (0x0E, 0x11, 0x11, 0x0E, 0x11, 0x11, 0x0E),
    "9": (0x0E, 0x11, 0x11, 0x0F, 0x01, 0x01, 0x0E),
    "-": (0x00, 0x00, 0x00, 0x1F, 0x00, 0x00, 0x00),
    ".": (0x00, 0x00, 0x00, 0x00, 0x00, 0x0C, 0x0C),
    "'": (0x04, 0x04, 0x02, 0x00, 0x00, 0x00, 0x00),
    "A": (0x0E, 0x11, 0x11, 0x1F, 0x11, 0x11, 0x11),
    "B": (0x1E, 0x11, 0x11, 0x1E, 0x11, 0x11, 0x1E),
    "C": (0x0E, 0x11, 0x10, 0x10, 0x10, 0x11, 0x0E),
    "D": (0x1C, 0x12, 0x11, 0x11, 0x11, 0x12, 0x1C),
    "E": (0x1F, 0x10, 0x10, 0x1E, 0x10, 0x10, 0x1F),
    "F": (0x1F, 0x10, 0x10, 0x1E, 0x10, 0x10, 0x10),
    "G": (0x0E, 0x11, 0x10, 0x17, 0x11, 0x11, 0x0E),
    "H": (0x11, 0x11, 0x11, 0x1F, 0x11, 0x11, 0x11),
    "I": (0x0E, 0x04, 0x04, 0x04, 0x04, 0x04, 0x0E),
    "J": (0x07, 0x02, 0x02, 0x02, 0x02, 0x12, 0x0C),
    "K": (0x11, 0x12, 0x14, 0x18, 0x14, 0x12, 0x11),
    "L": (0x10, 0x10, 0x10, 0x10, 0x10, 0x10, 0x1F),
    "M": (0x11, 0x1B, 0x15, 0x11, 0x11, 0x11, 0x11),
    "N": (0x11, 0x19, 0x15, 0x13, 0x11, 0x11, 0x11),
    "O": (0x0E, 0x11, 0x11, 0x11, 0x11, 0x11, 0x0E),
    "P": (0x1E, 0x11, 0x11, 0x1E, 0x10, 0x10, 0x10),
    "Q": (0x0E, 0x11, 0x11, 0x11, 0x15, 0x12, 0x0D),
    "R": (0x1E, 0x11, 0x11, 0x1E, 0x14, 0x12, 0x11),
    "S": (0x0F, 0x10, 0x10, 0x0E, 0x01, 0x01, 0x1E),
    "T": (0x1F, 0x04, 0x04, 0x04, 0x04, 0x04, 0x04),
    "U": (0x11, 0x11, 0x11, 0x11, 0x11, 0x11, 0x0E),
    "V": (0x11, 0x11, 0x11, 0x11, 0x11, 0x0A, 0x04),
    "W": (0x11, 0x11, 0x11, 0x11, 0x15, 0x1B, 0x11),
    "X": (0x11, 0x11, 0x0A, 0x04, 0x0A, 0x11, 0x11),
    "Y": (0x11, 0x11, 0x0A, 0x04, 0x04, 0x04, 0x04),
    "Z": (0x1F, 0x01, 0x02, 0x04, 0x08, 0x10, 0x1F),
}

_DISALLOWED = re.compile(r"[^A-Z0-9 .'\-]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_label(text: str) -> str:
    """Uppercase, replace characters the font lacks with spaces, collapse runs."""
    text = _DISALLOWED.sub(" ", text.strip().upper())
    return _WHITESPACE.sub(" ", text).strip()


def measure_width(text: str, scale: int) -> int:
    return len(text) * ADVANCE * scale


def measure_height(scale: int) -> int:
    return GLYPH_HEIGHT * scale


def draw_char(buf: np.ndarray, x: int, y: int, char: str, scale: int, color: Color) -> None:
    """Draw one glyph with its top-left corner at (x, y). Unknown chars are blank."""
    h, w = buf.shape[:2]
    rows = GLYPHS.get(char, _BLANK)
    for row, bits in enumerate(rows):
        for col in range(GLYPH_WIDTH):
            if not bits & (1 << (GLYPH_WIDTH - 1 - col)):
                continue
            px = x + col * scale
            py = y + row * scale
            x0, x1 = max(0, px), min(w, px + scale)
            y0, y1 = max(0, py), min(h, py + scale)
            if x0 < x1 and y0 < y1:
                buf[y0:y1, x0:x1] = color


def draw_text(
    buf: np.ndarray, x: int, y: int, text: str, scale: int, color: Color
) -> None:
    """Draw a string left to right starting at (x, y)."""
    pen_x = x
    for char in text:
        draw_char(buf, pen_x, y, char, scale, color)
        pen_x += ADVANCE * scale
