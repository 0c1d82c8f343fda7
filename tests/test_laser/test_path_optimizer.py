"""
Tests for path ordering.
"""

import unittest

from layerburn.core.shapes import Point, Polyline
from layerburn.laser.path_optimizer import optimize_closed_path_start, optimize_paths


def travel_distance(paths, start=Point(0, 0)):
    total = 0.0
    current = start
    for path in paths:
        total += current.distance_to(path.points[0])
        current = path.points[-1]
    return total


class TestOptimizePaths(unittest.TestCase):
    """Test optimize_paths."""

    def test_empty(self):
        """Test that no paths give no paths."""
        self.assertEqual(optimize_paths([]), [])

    def test_nearest_first(self):
        """Test that the path nearest the start is burned first."""
        far = Polyline([Point(50, 50), Point(60, 50)])
        near = Polyline([Point(1, 1), Point(2, 1)])
        ordered = optimize_paths([far, near])
        self.assertEqual(ordered[0].points[0], Point(1, 1))
        self.assertEqual(ordered[1].points[0], Point(50, 50))

    def test_open_path_reversed_when_end_is_closer(self):
        """Test reversing an open path whose end is closer."""
        line = Polyline([Point(10, 0), Point(0, 0)])
        ordered = optimize_paths([line], Point(0, 0))
        self.assertEqual(ordered[0].points, [Point(0, 0), Point(10, 0)])

    def test_inputs_not_modified(self):
        """Test that the input polylines are left alone."""
        line = Polyline([Point(10, 0), Point(0, 0)])
        optimize_paths([line])
        self.assertEqual(line.points[0], Point(10, 0))

    def test_closed_path_starts_at_nearest_vertex(self):
        """Test that a closed path is entered at its nearest vertex."""
        loop = Polyline([Point(10, 10), Point(20, 10), Point(20, 20),
                         Point(10, 20), Point(10, 10)], closed=True)
        ordered = optimize_paths([loop], Point(25, 25))
        points = ordered[0].points
        self.assertTrue(ordered[0].closed)
        self.assertEqual(points[0], Point(20, 20))
        self.assertEqual(points[-1], Point(20, 20))
        self.assertEqual(len(points), 5)

    def test_reduces_travel(self):
        """Test that ordering shortens the laser-off travel."""
        paths = [Polyline([Point(x, 0), Point(x, 1)]) for x in (9, 1, 5, 3, 7)]
        self.assertLess(travel_distance(optimize_paths(paths)), travel_distance(paths))


class TestClosedPathStart(unittest.TestCase):
    """Test optimize_closed_path_start."""

    def test_short_path_unchanged(self):
        """Test that a two-point path is returned as is."""
        path = [Point(0, 0), Point(1, 1)]
        self.assertEqual(optimize_closed_path_start(path, Point(1, 1)), path)

    def test_rotation(self):
        """Test rotating the start to the vertex nearest the entry point."""
        path = [Point(0, 0), Point(4, 0), Point(4, 4), Point(0, 0)]
        rotated = optimize_closed_path_start(path, Point(5, 5))
        self.assertEqual(rotated, [Point(4, 4), Point(0, 0), Point(4, 0), Point(4, 4)])


if __name__ == '__main__':
    unittest.main()
