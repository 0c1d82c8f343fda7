"""
Tests for G-code generation.
"""

import os
import tempfile
import unittest
from dataclasses import replace

from layerburn.core.shapes import BoundingBox
from layerburn.io.svg_parser import parse_svg
from layerburn.laser.cancellation import CancellationToken, ConversionCancelled
from layerburn.laser.config import (
    EngraveMode, JobPosition, LaserJobConfig, LayerLaserConfig, OriginPosition
)
from layerburn.laser.gcode_generator import (
    GCodeGenerator, GCodeSettings, LaserMode, count_gcode_lines
)


SQUARE_SVG = '<svg><rect id="square" width="10" height="10"/></svg>'


def job_for(document, **overrides):
    """Job config with every layer enabled at the default settings."""
    configs = tuple(LayerLaserConfig(layer.id, layer.name, **overrides)
                    for layer in document.layers)
    return LaserJobConfig(layer_configs=configs)


def motion_lines(gcode, prefix):
    return [line for line in gcode.splitlines() if line.startswith(prefix)]


class TestConvert(unittest.TestCase):
    """Test GCodeGenerator.convert."""

    def setUp(self):
        self.generator = GCodeGenerator()
        self.square = parse_svg(SQUARE_SVG)

    def test_single_square(self):
        """Test converting a single square."""
        result = self.generator.convert(self.square, job_for(self.square))
        self.assertTrue(result.success)
        self.assertIsNone(result.error_message)
        self.assertEqual(result.bounding_box, BoundingBox(0, 0, 10, 10))
        self.assertGreater(result.line_count, 0)
        self.assertGreater(result.estimated_time_minutes, 0)

        gcode = result.gcode
        self.assertIn("G21", gcode)
        self.assertIn("G90", gcode)
        self.assertIn("M3 S800", gcode)
        self.assertIn("G1 F3000", gcode)
        self.assertIn("G0 X0 Y0 ; Return to origin", gcode)
        self.assertEqual(gcode.strip().splitlines()[-1], "M2 ; End program")
        self.assertEqual(len(motion_lines(gcode, "G1 X")), 4)

    def test_line_count(self):
        """Test counting G-code lines."""
        result = self.generator.convert(self.square, job_for(self.square))
        self.assertEqual(result.line_count, count_gcode_lines(result.gcode))
        self.assertEqual(count_gcode_lines("; comment\n\nG0 X1 Y1 ; move\nM5\n"), 2)

    def test_gcode_is_ascii(self):
        """Test that non-ASCII names are replaced."""
        doc = parse_svg('<svg><rect id="café" width="10" height="10"/></svg>')
        result = self.generator.convert(doc, job_for(doc))
        self.assertTrue(result.success)
        result.gcode.encode('ascii')

    def test_no_enabled_layers(self):
        """Test converting with every layer disabled."""
        result = self.generator.convert(self.square, job_for(self.square, enabled=False))
        self.assertFalse(result.success)
        self.assertEqual(result.gcode, "")
        self.assertTrue(result.error_message)

    def test_layer_without_config_is_skipped(self):
        """Test a layer that has no config."""
        result = self.generator.convert(self.square, LaserJobConfig())
        self.assertFalse(result.success)

    def test_no_geometry(self):
        """Test layers without burnable geometry."""
        doc = parse_svg('<svg><text id="t">Hello</text></svg>')
        result = self.generator.convert(doc, job_for(doc))
        self.assertFalse(result.success)
        self.assertEqual(result.gcode, "")
        self.assertIn("geometry", result.error_message)

    def test_design_too_large(self):
        """Test a design larger than the work area."""
        doc = parse_svg('<svg><rect id="wide" width="200" height="10"/></svg>')
        result = self.generator.convert(doc, job_for(doc))
        self.assertFalse(result.success)
        self.assertIn("work area", result.error_message)

    def test_custom_position_outside_work_area(self):
        """Test a custom position pushing the design out."""
        job = replace(job_for(self.square),
                      position=JobPosition(OriginPosition.CUSTOM, 125, 0, True))
        result = self.generator.convert(self.square, job)
        self.assertFalse(result.success)

    def test_y_axis_is_mirrored(self):
        """Test flipping SVG Y down to machine Y up."""
        doc = parse_svg('<svg><line id="l" x1="0" y1="0" x2="10" y2="5"/></svg>')
        result = self.generator.convert(doc, job_for(doc))
        self.assertTrue(result.success)
        self.assertEqual(result.bounding_box, BoundingBox(0, 0, 10, 5))
        self.assertIn("G0 X0.000 Y5.000", result.gcode)
        self.assertIn("G1 X10.000 Y0.000", result.gcode)

    def test_design_offset_is_removed(self):
        """Test moving the design to the origin."""
        doc = parse_svg('<svg><rect id="r" x="40" y="30" width="10" height="10"/></svg>')
        result = self.generator.convert(doc, job_for(doc))
        self.assertEqual(result.bounding_box, BoundingBox(0, 0, 10, 10))

    def test_centered(self):
        """Test centering in the work area."""
        job = replace(job_for(self.square), position=JobPosition(OriginPosition.CENTER))
        result = self.generator.convert(self.square, job)
        self.assertEqual(result.bounding_box, BoundingBox(60, 65, 70, 75))

    def test_passes(self):
        """Test repeating a layer for each pass."""
        result = self.generator.convert(self.square, job_for(self.square, passes=3))
        self.assertIn("; Pass 3/3", result.gcode)
        self.assertEqual(len(motion_lines(result.gcode, "M3 S800")), 3)

    def test_fill_mode_adds_hatch(self):
        """Test hatch lines in fill mode."""
        line = self.generator.convert(self.square, job_for(self.square))
        fill = self.generator.convert(
            self.square, job_for(self.square, mode=EngraveMode.FILL, fill_spacing=1.0)
        )
        self.assertTrue(fill.success)
        # One contour plus ten hatch lines
        self.assertEqual(len(motion_lines(fill.gcode, "M3 S800")), 11)
        self.assertGreater(fill.line_count, line.line_count)

    def test_max_s_value(self):
        """Test scaling power to the max S value."""
        job = replace(job_for(self.square, power=50), max_s_value=255)
        result = self.generator.convert(self.square, job)
        self.assertIn("M3 S128", result.gcode)

    def test_dynamic_laser_mode(self):
        """Test M4 dynamic power."""
        generator = GCodeGenerator(GCodeSettings(laser_mode=LaserMode.DYNAMIC))
        result = generator.convert(self.square, job_for(self.square))
        self.assertIn("M4 S800", result.gcode)
        self.assertNotIn("M3 S800", result.gcode)

    def test_slower_speed_takes_longer(self):
        """Test the estimate against speed."""
        fast = self.generator.convert(self.square, job_for(self.square, speed=6000))
        slow = self.generator.convert(self.square, job_for(self.square, speed=500))
        self.assertGreater(slow.estimated_time_minutes, fast.estimated_time_minutes)

    def test_estimate(self):
        """Test the time estimate."""
        settings = GCodeSettings(rapid_speed=6000, laser_toggle_time=0.0)
        result = GCodeGenerator(settings).convert(self.square, job_for(self.square))
        # 40 mm at 3000 mm/min, no travel: the square starts and ends at the origin
        self.assertAlmostEqual(result.estimated_time_minutes, 40 / 3000)

    def test_disabled_layer_left_out(self):
        """Test leaving out disabled layers."""
        doc = parse_svg('<svg><rect id="a" width="10" height="10"/>'
                        '<rect id="b" x="20" width="10" height="10"/></svg>')
        configs = (LayerLaserConfig(doc.layers[0].id, 'a'),
                   LayerLaserConfig(doc.layers[1].id, 'b', enabled=False))
        result = self.generator.convert(doc, LaserJobConfig(layer_configs=configs))
        self.assertEqual(result.bounding_box, BoundingBox(0, 0, 10, 10))
        self.assertIn("; Layer: a", result.gcode)
        self.assertNotIn("; Layer: b", result.gcode)

    def test_layers_in_document_order(self):
        """Test layer order in the output."""
        doc = parse_svg('<svg><rect id="b" x="20" width="5" height="5"/>'
                        '<rect id="a" width="5" height="5"/></svg>')
        result = self.generator.convert(doc, job_for(doc))
        self.assertLess(result.gcode.index("; Layer: b"), result.gcode.index("; Layer: a"))

    def test_cancelled(self):
        """Test a cancelled conversion."""
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(ConversionCancelled):
            self.generator.convert(self.square, job_for(self.square), token)

    def test_save_to_file(self):
        """Test writing G-code to a file."""
        result = self.generator.convert(self.square, job_for(self.square))
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'job.gcode')
            self.generator.save_to_file(result.gcode, path)
            with open(path, 'r', encoding='ascii') as f:
                self.assertEqual(f.read(), result.gcode)


if __name__ == '__main__':
    unittest.main()
