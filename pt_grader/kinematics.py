"""
Planar kinematic helpers for pt_grader.

Implements:
- Joint angles from three landmarks (atan2 form, folded into [0, 180])
- Planar distances and midpoints
- Body-line deviation used for hip sag / pike classification
- Segment inclination used for trunk angle during sit-ups
- Visibility gating
"""

from typing import Iterable

import numpy as np

from .landmarks import Landmark, PoseFrame

# Rays shorter than this cannot define an angle.
DEGENERATE_EPS = 1e-9
# Returned when a joint angle is undefined (coincident points).
DEGENERATE_ANGLE = 180.0


def calculate_angle(a: Landmark, b: Landmark, c: Landmark) -> float:
    """Calculate the planar angle at point b formed by points a-b-c in degrees."""
    ba = np.array([a.x - b.x, a.y - b.y])
    bc = np.array([c.x - b.x, c.y - b.y])
    if np.linalg.norm(ba) < DEGENERATE_EPS or np.linalg.norm(bc) < DEGENERATE_EPS:
        return DEGENERATE_ANGLE

    radians = np.arctan2(bc[1], bc[0]) - np.arctan2(ba[1], ba[0])
    angle = np.abs(radians * 180.0 / np.pi)
    if angle > 180.0:
        angle = 360.0 - angle
    return float(angle)


def calculate_distance(a: Landmark, b: Landmark) -> float:
    """Euclidean distance in the image plane; depth is ignored."""
    return float(np.hypot(a.x - b.x, a.y - b.y))


def midpoint(a: Landmark, b: Landmark) -> Landmark:
    return Landmark(
        x=(a.x + b.x) / 2.0,
        y=(a.y + b.y) / 2.0,
        z=(a.z + b.z) / 2.0,
        visibility=min(a.visibility, b.visibility),
    )


def vertical_deviation(start: Landmark, point: Landmark, end: Landmark) -> float:
    """
    Signed vertical offset of ``point`` from the straight line start -> end,
    measured at ``point.x``.

    Image y grows downward, so a positive value means the point sits below
    the line (hips sagging in a plank) and a negative value above it (piking).
    """
    dx = end.x - start.x
    if abs(dx) < DEGENERATE_EPS:
        line_y = (start.y + end.y) / 2.0
    else:
        t = (point.x - start.x) / dx
        line_y = start.y + t * (end.y - start.y)
    return float(point.y - line_y)


def inclination_from_horizontal(base: Landmark, tip: Landmark) -> float:
    """
    Angle of the segment base -> tip above the horizontal, in [0, 90].

    0 means the segment lies flat, 90 means tip is straight above base.
    """
    dx = abs(tip.x - base.x)
    dy = base.y - tip.y
    if dx < DEGENERATE_EPS and abs(dy) < DEGENERATE_EPS:
        return 0.0
    angle = np.degrees(np.arctan2(dy, dx))
    return float(np.clip(angle, 0.0, 90.0))


def landmarks_visible(frame: PoseFrame, indices: Iterable[int], threshold: float = 0.6) -> bool:
    """True when every landmark in ``indices`` exists and is confidently visible."""
    for idx in indices:
        lm = frame.get(idx)
        if lm is None or lm.visibility <= threshold:
            return False
    return True
