"""
LayerBurn Core Shapes Module

Defines the geometry model used by the converter: Point, BoundingBox,
Polyline, affine matrices and the shape classes that flatten SVG geometry
into polylines at a given chord tolerance.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from uuid import UUID, uuid4
import math

import numpy as np


# Recursion limit for bezier subdivision (2**18 segments per curve at most)
MAX_SUBDIVISION_DEPTH = 18


@dataclass
class Point:
    """A 2D point."""
    x: float
    y: float

    def distance_to(self, other: 'Point') -> float:
        """Calculate Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def is_close(self, other: 'Point', tolerance: float = 1e-9) -> bool:
        return (abs(self.x - other.x) <= tolerance and
                abs(self.y - other.y) <= tolerance)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @staticmethod
    def from_points(points: Sequence[Point]) -> Optional['BoundingBox']:
        """Smallest box around the points, or None when there are none."""
        if not points:
            return None
        return BoundingBox(
            min_x=min(p.x for p in points),
            min_y=min(p.y for p in points),
            max_x=max(p.x for p in points),
            max_y=max(p.y for p in points)
        )


@dataclass
class Polyline:
    """
    An ordered point sequence produced by flattening.

    Closed polylines repeat their first point at the end.
    """
    points: List[Point]
    closed: bool = False

    @property
    def length(self) -> float:
        return sum(self.points[i - 1].distance_to(self.points[i])
                   for i in range(1, len(self.points)))

    def reversed(self) -> 'Polyline':
        return Polyline(list(reversed(self.points)), self.closed)


# ---------------------------------------------------------------------------
# Affine matrices
#
# Matrices are 3x3 numpy arrays laid out as SVG does:
#   [[a, c, e],
#    [b, d, f],
#    [0, 0, 1]]
# ---------------------------------------------------------------------------

def identity_matrix() -> np.ndarray:
    return np.identity(3)


def svg_matrix(a: float, b: float, c: float, d: float,
               e: float, f: float) -> np.ndarray:
    """Build a matrix from SVG's matrix(a b c d e f) arguments."""
    return np.array([
        [a, c, e],
        [b, d, f],
        [0.0, 0.0, 1.0]
    ])


def translation_matrix(tx: float, ty: float = 0.0) -> np.ndarray:
    return svg_matrix(1.0, 0.0, 0.0, 1.0, tx, ty)


def scale_matrix(sx: float, sy: Optional[float] = None) -> np.ndarray:
    if sy is None:
        sy = sx
    return svg_matrix(sx, 0.0, 0.0, sy, 0.0, 0.0)


def rotation_matrix(degrees: float, cx: float = 0.0,
                    cy: float = 0.0) -> np.ndarray:
    """Rotation by degrees around (cx, cy)."""
    angle = math.radians(degrees)
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    rotation = svg_matrix(cos_a, sin_a, -sin_a, cos_a, 0.0, 0.0)
    if cx == 0 and cy == 0:
        return rotation
    return translation_matrix(cx, cy) @ rotation @ translation_matrix(-cx, -cy)


def skew_x_matrix(degrees: float) -> np.ndarray:
    return svg_matrix(1.0, 0.0, math.tan(math.radians(degrees)), 1.0, 0.0, 0.0)


def skew_y_matrix(degrees: float) -> np.ndarray:
    return svg_matrix(1.0, math.tan(math.radians(degrees)), 0.0, 1.0, 0.0, 0.0)


def is_identity(matrix: np.ndarray) -> bool:
    return bool(np.array_equal(matrix, np.identity(3)))


def matrix_scale_factor(matrix: np.ndarray) -> float:
    """Largest stretch the matrix applies to any direction."""
    return float(np.linalg.norm(matrix[:2, :2], 2))


def transform_points(points: Sequence[Point], matrix: np.ndarray) -> List[Point]:
    """Apply an affine matrix to every point."""
    if not points or is_identity(matrix):
        return [Point(p.x, p.y) for p in points]
    coords = np.array([[p.x, p.y, 1.0] for p in points])
    result = coords @ matrix.T
    return [Point(float(x), float(y)) for x, y in result[:, :2]]


# ---------------------------------------------------------------------------
# Curve flattening
# ---------------------------------------------------------------------------

def arc_step_angle(radius: float, tolerance: float) -> float:
    """
    Angular step whose chord stays within tolerance of a circle of radius.

    The sagitta of a chord spanning angle t is r * (1 - cos(t / 2)).
    """
    if radius <= tolerance:
        return math.pi / 2
    return 2.0 * math.acos(1.0 - tolerance / radius)


def flatten_cubic_bezier(p0: Point, p1: Point, p2: Point, p3: Point,
                         tolerance: float = 0.1) -> List[Point]:
    """
    Flatten a cubic bezier curve to line segments using recursive subdivision.

    Uses the de Casteljau algorithm with a flatness test that bounds the
    distance between the curve and its chord by tolerance.
    """
    def is_flat(p0: Point, p1: Point, p2: Point, p3: Point, tol: float) -> bool:
        ux = 3 * p1.x - 2 * p0.x - p3.x
        uy = 3 * p1.y - 2 * p0.y - p3.y
        vx = 3 * p2.x - 2 * p3.x - p0.x
        vy = 3 * p2.y - 2 * p3.y - p0.y
        return max(ux * ux, vx * vx) + max(uy * uy, vy * vy) <= 16 * tol * tol

    def subdivide(p0: Point, p1: Point, p2: Point, p3: Point,
                  tol: float, depth: int, points: List[Point]) -> None:
        if depth >= MAX_SUBDIVISION_DEPTH or is_flat(p0, p1, p2, p3, tol):
            points.append(p3)
            return
        # de Casteljau subdivision at t=0.5
        q0 = Point((p0.x + p1.x) / 2, (p0.y + p1.y) / 2)
        q1 = Point((p1.x + p2.x) / 2, (p1.y + p2.y) / 2)
        q2 = Point((p2.x + p3.x) / 2, (p2.y + p3.y) / 2)
        r0 = Point((q0.x + q1.x) / 2, (q0.y + q1.y) / 2)
        r1 = Point((q1.x + q2.x) / 2, (q1.y + q2.y) / 2)
        s = Point((r0.x + r1.x) / 2, (r0.y + r1.y) / 2)

        subdivide(p0, q0, r0, s, tol, depth + 1, points)
        subdivide(s, r1, q2, p3, tol, depth + 1, points)

    points = [p0]
    subdivide(p0, p1, p2, p3, tolerance, 0, points)
    return points


def flatten_quadratic_bezier(p0: Point, p1: Point, p2: Point,
                             tolerance: float = 0.1) -> List[Point]:
    """Flatten a quadratic bezier curve to line segments."""
    # Degree elevation to the equivalent cubic
    cp1 = Point(p0.x + 2 / 3 * (p1.x - p0.x), p0.y + 2 / 3 * (p1.y - p0.y))
    cp2 = Point(p2.x + 2 / 3 * (p1.x - p2.x), p2.y + 2 / 3 * (p1.y - p2.y))
    return flatten_cubic_bezier(p0, cp1, cp2, p2, tolerance)


def _vector_angle(ux: float, uy: float, vx: float, vy: float) -> float:
    n = math.hypot(ux, uy) * math.hypot(vx, vy)
    if n == 0:
        return 0.0
    c = (ux * vx + uy * vy) / n
    s = ux * vy - uy * vx
    return math.atan2(s, max(-1.0, min(1.0, c)))


def flatten_elliptical_arc(start: Point, rx: float, ry: float, phi: float,
                           large_arc: bool, sweep: bool, end: Point,
                           tolerance: float = 0.1) -> List[Point]:
    """
    Flatten an SVG elliptical arc (endpoint parameterization).

    Follows the W3C implementation notes for the center conversion,
    including radius scaling when the radii are too small.
    """
    rx = abs(rx)
    ry = abs(ry)
    if start.is_close(end):
        return [start]
    if rx == 0 or ry == 0:
        # Degenerate radii render as a straight line
        return [start, end]

    phi_rad = math.radians(phi)
    cos_phi = math.cos(phi_rad)
    sin_phi = math.sin(phi_rad)

    dx = (start.x - end.x) / 2
    dy = (start.y - end.y) / 2
    x1p = cos_phi * dx + sin_phi * dy
    y1p = -sin_phi * dx + cos_phi * dy

    lambda_ = (x1p * x1p) / (rx * rx) + (y1p * y1p) / (ry * ry)
    if lambda_ > 1:
        rx *= math.sqrt(lambda_)
        ry *= math.sqrt(lambda_)

    denominator = (rx * rx * y1p * y1p) + (ry * ry * x1p * x1p)
    numerator = (rx * rx * ry * ry) - denominator
    coef = math.sqrt(max(0.0, numerator / denominator)) if denominator else 0.0
    if large_arc == sweep:
        coef = -coef
    cxp = coef * rx * y1p / ry
    cyp = -coef * ry * x1p / rx

    cx = cos_phi * cxp - sin_phi * cyp + (start.x + end.x) / 2
    cy = sin_phi * cxp + cos_phi * cyp + (start.y + end.y) / 2

    theta1 = _vector_angle(1, 0, (x1p - cxp) / rx, (y1p - cyp) / ry)
    dtheta = _vector_angle((x1p - cxp) / rx, (y1p - cyp) / ry,
                           (-x1p - cxp) / rx, (-y1p - cyp) / ry)
    if not sweep and dtheta > 0:
        dtheta -= 2 * math.pi
    elif sweep and dtheta < 0:
        dtheta += 2 * math.pi

    step = arc_step_angle(max(rx, ry), tolerance)
    segments = max(1, int(math.ceil(abs(dtheta) / step)))

    points = [start]
    for i in range(1, segments):
        t = theta1 + dtheta * i / segments
        x = rx * math.cos(t)
        y = ry * math.sin(t)
        points.append(Point(
            cos_phi * x - sin_phi * y + cx,
            sin_phi * x + cos_phi * y + cy
        ))
    # Land exactly on the requested endpoint
    points.append(Point(end.x, end.y))
    return points


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------

class Shape(ABC):
    """
    Abstract base class for all shapes.

    Subclasses describe their geometry in local coordinates through
    _local_paths(); get_paths() applies the shape's transform matrix.
    """

    def __init__(self):
        self.id: UUID = uuid4()
        self.name: str = ""
        self.transform: np.ndarray = identity_matrix()

    @abstractmethod
    def _local_paths(self, tolerance: float) -> List[Polyline]:
        """Flatten the shape in its own coordinate system."""
        pass

    def get_paths(self, tolerance: float = 0.1) -> List[Polyline]:
        """
        Return the shape as polylines with chord deviation <= tolerance.

        The tolerance is tightened by the transform's largest scale factor
        so the bound still holds after the transform is applied.
        """
        if tolerance <= 0:
            raise ValueError(f"Tolerance must be positive, got {tolerance}")
        scale = matrix_scale_factor(self.transform)
        local_tolerance = tolerance / scale if scale > 1.0 else tolerance

        result = []
        for path in self._local_paths(local_tolerance):
            if len(path.points) < 2:
                continue
            result.append(Polyline(transform_points(path.points, self.transform),
                                   path.closed))
        return result

    def get_bounding_box(self, tolerance: float = 0.1) -> Optional[BoundingBox]:
        points = [p for path in self.get_paths(tolerance) for p in path.points]
        return BoundingBox.from_points(points)


class Rectangle(Shape):
    """A rectangle, optionally with elliptical corners."""

    def __init__(self, x: float, y: float, width: float, height: float,
                 rx: float = 0.0, ry: float = 0.0):
        super().__init__()
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.rx = rx
        self.ry = ry

    def _corner_radii(self) -> Tuple[float, float]:
        # An unspecified radius takes the value of the other one
        rx = self.rx if self.rx > 0 else self.ry
        ry = self.ry if self.ry > 0 else self.rx
        return (max(0.0, min(rx, self.width / 2)),
                max(0.0, min(ry, self.height / 2)))

    def _local_paths(self, tolerance: float) -> List[Polyline]:
        if self.width <= 0 or self.height <= 0:
            return []
        x0, y0 = self.x, self.y
        x1, y1 = self.x + self.width, self.y + self.height
        rx, ry = self._corner_radii()

        if rx <= 0 or ry <= 0:
            points = [
                Point(x0, y0),
                Point(x1, y0),
                Point(x1, y1),
                Point(x0, y1),
                Point(x0, y0)
            ]
            return [Polyline(points, closed=True)]

        step = arc_step_angle(max(rx, ry), tolerance)
        segments = max(1, int(math.ceil((math.pi / 2) / step)))
        # Corner centers and start angles, clockwise in SVG space
        corners = [
            (x1 - rx, y0 + ry, -math.pi / 2),
            (x1 - rx, y1 - ry, 0.0),
            (x0 + rx, y1 - ry, math.pi / 2),
            (x0 + rx, y0 + ry, math.pi),
        ]
        points = []
        for cx, cy, start_angle in corners:
            for i in range(segments + 1):
                angle = start_angle + (math.pi / 2) * i / segments
                points.append(Point(cx + rx * math.cos(angle),
                                    cy + ry * math.sin(angle)))
        points.append(Point(points[0].x, points[0].y))
        return [Polyline(points, closed=True)]


class Ellipse(Shape):
    """An ellipse (circles are ellipses with equal radii)."""

    def __init__(self, center_x: float, center_y: float,
                 radius_x: float, radius_y: float):
        super().__init__()
        self.center_x = center_x
        self.center_y = center_y
        self.radius_x = radius_x
        self.radius_y = radius_y

    def _local_paths(self, tolerance: float) -> List[Polyline]:
        if self.radius_x <= 0 or self.radius_y <= 0:
            return []
        step = arc_step_angle(max(self.radius_x, self.radius_y), tolerance)
        segments = max(8, int(math.ceil(2 * math.pi / step)))

        points = []
        for i in range(segments):
            angle = 2 * math.pi * i / segments
            points.append(Point(
                self.center_x + self.radius_x * math.cos(angle),
                self.center_y + self.radius_y * math.sin(angle)
            ))
        points.append(Point(points[0].x, points[0].y))
        return [Polyline(points, closed=True)]


# Path segment types
@dataclass
class PathSegment(ABC):
    pass


@dataclass
class MoveToSegment(PathSegment):
    point: Point


@dataclass
class LineToSegment(PathSegment):
    point: Point


@dataclass
class CubicBezierSegment(PathSegment):
    cp1: Point
    cp2: Point
    end_point: Point


@dataclass
class QuadraticBezierSegment(PathSegment):
    control_point: Point
    end_point: Point


@dataclass
class ArcSegment(PathSegment):
    rx: float
    ry: float
    rotation: float
    large_arc: bool
    sweep: bool
    end_point: Point


@dataclass
class ClosePathSegment(PathSegment):
    pass


class Path(Shape):
    """
    A path consisting of subpaths of lines, curves and arcs.

    line, polyline and polygon elements are stored as paths too.
    """

    def __init__(self):
        super().__init__()
        self.segments: List[PathSegment] = []

    def move_to(self, x: float, y: float) -> 'Path':
        """Start a new subpath at the given point."""
        self.segments.append(MoveToSegment(Point(x, y)))
        return self

    def line_to(self, x: float, y: float) -> 'Path':
        self.segments.append(LineToSegment(Point(x, y)))
        return self

    def cubic_to(self, cp1x: float, cp1y: float,
                 cp2x: float, cp2y: float,
                 x: float, y: float) -> 'Path':
        self.segments.append(CubicBezierSegment(
            Point(cp1x, cp1y), Point(cp2x, cp2y), Point(x, y)
        ))
        return self

    def quadratic_to(self, cpx: float, cpy: float,
                     x: float, y: float) -> 'Path':
        self.segments.append(QuadraticBezierSegment(
            Point(cpx, cpy), Point(x, y)
        ))
        return self

    def arc_to(self, rx: float, ry: float, rotation: float,
               large_arc: bool, sweep: bool, x: float, y: float) -> 'Path':
        self.segments.append(ArcSegment(
            rx, ry, rotation, large_arc, sweep, Point(x, y)
        ))
        return self

    def close(self) -> 'Path':
        """Close the current subpath."""
        self.segments.append(ClosePathSegment())
        return self

    def _local_paths(self, tolerance: float) -> List[Polyline]:
        all_paths: List[Polyline] = []
        current_path: List[Point] = []
        current: Optional[Point] = None
        path_start: Optional[Point] = None

        def finish(closed: bool) -> None:
            if len(current_path) >= 2:
                all_paths.append(Polyline(list(current_path), closed))

        for seg in self.segments:
            if isinstance(seg, MoveToSegment):
                finish(False)
                current = seg.point
                path_start = current
                current_path = [current]
                continue

            if current is None:
                # Drawing commands before the first moveto have no origin
                continue

            if not current_path:
                # Drawing after a closepath restarts at the subpath start
                current_path = [current]

            if isinstance(seg, LineToSegment):
                current_path.append(seg.point)
                current = seg.point
            elif isinstance(seg, CubicBezierSegment):
                curve = flatten_cubic_bezier(current, seg.cp1, seg.cp2,
                                             seg.end_point, tolerance)
                current_path.extend(curve[1:])
                current = seg.end_point
            elif isinstance(seg, QuadraticBezierSegment):
                curve = flatten_quadratic_bezier(current, seg.control_point,
                                                 seg.end_point, tolerance)
                current_path.extend(curve[1:])
                current = seg.end_point
            elif isinstance(seg, ArcSegment):
                arc = flatten_elliptical_arc(current, seg.rx, seg.ry,
                                             seg.rotation, seg.large_arc,
                                             seg.sweep, seg.end_point,
                                             tolerance)
                current_path.extend(arc[1:])
                current = seg.end_point
            elif isinstance(seg, ClosePathSegment):
                if not current_path[-1].is_close(path_start):
                    current_path.append(Point(path_start.x, path_start.y))
                finish(True)
                current_path = []
                current = path_start

        finish(False)
        return all_paths
