"""
Path Optimization for Laser Engraving

Minimizes non-burning travel distance by reordering polylines and
choosing where each one starts.
"""

from typing import List, Optional

from ..core.shapes import Point, Polyline


def optimize_paths(paths: List[Polyline],
                   start_point: Optional[Point] = None) -> List[Polyline]:
    """
    Order paths to minimize travel distance.

    Uses a nearest neighbor heuristic. Open paths may be burned in
    reverse; closed paths may start at any of their vertices.

    Args:
        paths: Paths to order
        start_point: Starting position (default: origin)

    Returns:
        New list of reordered paths; the inputs are not modified
    """
    if not paths:
        return []

    if start_point is None:
        start_point = Point(0, 0)

    remaining = [path for path in paths if path.points]
    ordered = []
    current_pos = start_point

    while remaining:
        best_idx = 0
        best_dist = float('inf')
        best_reversed = False

        for idx, path in enumerate(remaining):
            if path.closed:
                dist = min(current_pos.distance_to(p) for p in path.points)
                if dist < best_dist:
                    best_dist = dist
                    best_idx = idx
                    best_reversed = False
                continue

            dist_to_start = current_pos.distance_to(path.points[0])
            dist_to_end = current_pos.distance_to(path.points[-1])

            if dist_to_start < best_dist:
                best_dist = dist_to_start
                best_idx = idx
                best_reversed = False

            if dist_to_end < best_dist:
                best_dist = dist_to_end
                best_idx = idx
                best_reversed = True

        path = remaining.pop(best_idx)
        if path.closed:
            path = Polyline(optimize_closed_path_start(path.points, current_pos), True)
        elif best_reversed:
            path = path.reversed()
        else:
            path = Polyline(list(path.points), False)

        ordered.append(path)
        current_pos = path.points[-1]

    return ordered


def optimize_closed_path_start(path: List[Point],
                               entry_point: Point) -> List[Point]:
    """
    Rotate a closed path so it starts at the vertex nearest entry_point.

    Args:
        path: Closed path (first point == last point expected)
        entry_point: The position we're coming from

    Returns:
        Rotated path starting at the best vertex
    """
    if len(path) < 3:
        return list(path)

    # Remove closing point if present
    is_closed = path[0].is_close(path[-1])
    working_path = list(path[:-1]) if is_closed else list(path)

    best_idx = 0
    best_dist = float('inf')

    for i, point in enumerate(working_path):
        dist = entry_point.distance_to(point)
        if dist < best_dist:
            best_dist = dist
            best_idx = i

    rotated = working_path[best_idx:] + working_path[:best_idx]

    # Re-close if needed
    if is_closed:
        rotated.append(Point(rotated[0].x, rotated[0].y))

    return rotated
