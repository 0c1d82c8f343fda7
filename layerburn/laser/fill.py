"""
Scanline fill for closed contours.

Hatch lines are generated in a frame rotated by the fill angle, clipped
against all contours at once with the even-odd rule (so inner contours
become holes) and rotated back.
"""

from typing import List, Optional, Sequence
import math

import numpy as np

from ..core.shapes import Point, Polyline
from .cancellation import CancellationToken


def _polygon_area(coords: np.ndarray) -> float:
    """Unsigned shoelace area of a closed ring of (x, y) rows."""
    x = coords[:, 0]
    y = coords[:, 1]
    return abs(float(np.dot(x[:-1], y[1:]) - np.dot(x[1:], y[:-1]))) / 2


def hatch_polygons(polygons: Sequence[Polyline], angle_deg: float,
                   spacing: float,
                   cancel_token: Optional[CancellationToken] = None) -> List[Polyline]:
    """
    Fill closed contours with parallel line segments.

    Args:
        polygons: Closed contours; overlapping contours cancel (even-odd)
        angle_deg: Hatch direction, counterclockwise from the X axis
        spacing: Distance between neighbouring hatch lines
        cancel_token: Checked before every scan line

    Returns:
        Two-point polylines, alternating direction line by line
    """
    if spacing <= 0:
        raise ValueError(f"Fill spacing must be positive, got {spacing}")

    angle = math.radians(angle_deg)
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    # Rotating by -angle makes the hatch direction horizontal
    to_scan = np.array([[cos_a, sin_a], [-sin_a, cos_a]])
    from_scan = to_scan.T

    rings = []
    area = 0.0
    for polygon in polygons:
        if len(polygon.points) < 3:
            continue
        coords = np.array([[p.x, p.y] for p in polygon.points])
        if not np.allclose(coords[0], coords[-1]):
            coords = np.vstack([coords, coords[:1]])
        area += _polygon_area(coords)
        rings.append(coords @ to_scan.T)

    if not rings or area <= 1e-12:
        return []

    starts = np.vstack([ring[:-1] for ring in rings])
    ends = np.vstack([ring[1:] for ring in rings])
    x0, y0 = starts[:, 0], starts[:, 1]
    x1, y1 = ends[:, 0], ends[:, 1]

    min_y = float(min(y0.min(), y1.min()))
    max_y = float(max(y0.max(), y1.max()))
    if spacing >= max_y - min_y:
        return []

    segments: List[Polyline] = []
    line_num = 0
    y = min_y + spacing / 2
    while y < max_y:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        # Half-open test so a vertex shared by two edges is counted once
        crossing = ((y0 <= y) & (y < y1)) | ((y1 <= y) & (y < y0))
        if np.any(crossing):
            cx0, cy0 = x0[crossing], y0[crossing]
            cx1, cy1 = x1[crossing], y1[crossing]
            xs = np.sort(cx0 + (y - cy0) * (cx1 - cx0) / (cy1 - cy0))

            row = []
            for i in range(0, len(xs) - 1, 2):
                if xs[i + 1] - xs[i] <= 1e-9:
                    continue
                row.append((xs[i], xs[i + 1]))
            if line_num % 2 == 1:
                row = [(b, a) for a, b in reversed(row)]

            for a, b in row:
                ends_xy = np.array([[a, y], [b, y]]) @ from_scan.T
                segments.append(Polyline([
                    Point(float(ends_xy[0, 0]), float(ends_xy[0, 1])),
                    Point(float(ends_xy[1, 0]), float(ends_xy[1, 1]))
                ]))
            line_num += 1

        y += spacing

    return segments
