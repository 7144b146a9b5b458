"""Greedy label placement with simple collision avoidance."""

import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from skydome import font5x7
from skydome.raster import Color, mark_rect_occupied, new_occupancy, rect_any_occupied


@dataclass(frozen=True)
class LabelCandidate:
    """A named object at a pixel position that may receive a label."""

    x: int
    y: int
    magnitude: float
    name: str


@dataclass(frozen=True)
class PlacedLabel:
    text: str
    x: int  # Top-left corner of the text box
    y: int
    width: int
    height: int


def anchor_offsets(text_w: int, text_h: int) -> tuple[tuple[int, int], ...]:
    """Offsets tried in order around a point: right-below, left-below, right-above,
    left-above, right, left."""
    return (
        (6, 6),
        (-6 - text_w, 6),
        (6, -6 - text_h),
        (-6 - text_w, -6 - text_h),
        (8, 0),
        (-8 - text_w, 0),
    )


def _candidate_key(candidate: LabelCandidate) -> tuple[float, str]:
    mag = math.inf if math.isnan(candidate.magnitude) else candidate.magnitude
    return (mag, candidate.name)


def place_labels(
    candidates: Iterable[LabelCandidate],
    width: int,
    height: int,
    scale: int = 1,
    avoid_collisions: bool = True,
) -> list[PlacedLabel]:
    """Choose a position for each candidate, brightest first.

    A candidate takes the first anchor whose box lies fully inside the image and,
    with collision avoidance on, overlaps no previously placed box. Candidates
    without such an anchor are dropped; placed labels never move.

    Args:
        candidates: Named points with magnitudes.
        width: Image width in pixels.
        height: Image height in pixels.
        scale: Integer font scale.
        avoid_collisions: Reject anchors overlapping earlier labels.

    Returns:
        Placed labels in placement order.
    """
    occupancy = new_occupancy(width, height) if avoid_collisions else None
    text_h = font5x7.measure_height(scale)
    placed: list[PlacedLabel] = []

    for candidate in sorted(candidates, key=_candidate_key):
        text = font5x7.sanitize_label(candidate.name)
        if not text:
            continue
        text_w = font5x7.measure_width(text, scale)

        for off_x, off_y in anchor_offsets(text_w, text_h):
            tx = candidate.x + off_x
            ty = candidate.y + off_y
            if tx < 0 or ty < 0 or tx + text_w >= width or ty + text_h >= height:
                continue
            if occupancy is not None and rect_any_occupied(occupancy, tx, ty, text_w, text_h):
                continue
            if occupancy is not None:
                mark_rect_occupied(occupancy, tx, ty, text_w, text_h)
            placed.append(PlacedLabel(text=text, x=tx, y=ty, width=text_w, height=text_h))
            break

    return placed


def draw_labels(
    buf: np.ndarray, labels: Iterable[PlacedLabel], scale: int, color: Color
) -> int:
    """Render placed labels into the buffer. Returns how many were drawn."""
    count = 0
    for label in labels:
        font5x7.draw_text(buf, label.x, label.y, label.text, scale, color)
        count += 1
    return count
