"""
Tests for the command line entry point.
"""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

from layerburn.io.job_io import load_job_config
from layerburn.main import main

SVG = ('<svg xmlns="http://www.w3.org/2000/svg">\n'
       '  <rect id="frame" width="20" height="10"/>\n'
       '  <circle id="dot" cx="10" cy="5" r="3"/>\n'
       '</svg>\n')


class TestMain(unittest.TestCase):
    """Test the layerburn command line."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.svg_path = self.path('design.svg')
        with open(self.svg_path, 'w', encoding='utf-8') as f:
            f.write(SVG)

    def tearDown(self):
        self.tmpdir.cleanup()

    def path(self, name):
        return os.path.join(self.tmpdir.name, name)

    def run_main(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_layers(self):
        """Test listing the layers of a file."""
        code, out, _ = self.run_main('layers', self.svg_path)
        self.assertEqual(code, 0)
        self.assertIn('frame', out)
        self.assertIn('dot', out)
        self.assertIn('2 layers', out)

    def test_missing_file(self):
        """Test that an unreadable input file fails."""
        code, _, err = self.run_main('layers', self.path('missing.svg'))
        self.assertEqual(code, 1)
        self.assertIn('cannot read', err)

    def test_edit_writes_output(self):
        """Test duplicating and renaming into an output file."""
        output = self.path('edited.svg')
        code, out, _ = self.run_main('edit', self.svg_path, '--duplicate', 'dot',
                                     '--rename', 'frame=border', '-o', output)
        self.assertEqual(code, 0)
        self.assertIn('3 layers ready to save', out)
        with open(output, encoding='utf-8') as f:
            svg = f.read()
        self.assertIn('id="border"', svg)
        self.assertIn('id="dot_copy"', svg)

    def test_edit_to_stdout(self):
        """Test writing the edited SVG to stdout."""
        code, out, _ = self.run_main('edit', self.svg_path, '--move', '1', '0')
        self.assertEqual(code, 0)
        self.assertLess(out.index('id="dot"'), out.index('id="frame"'))

    def test_edit_stdout_holds_only_svg(self):
        """Test that warnings go to stderr when the SVG is written to stdout."""
        broken = self.path('broken.svg')
        with open(broken, 'w', encoding='utf-8') as f:
            f.write('<svg><g id="open"><rect id="a" width="1" height="1"/></svg>')
        code, out, err = self.run_main('edit', broken, '--move', '0', '5')
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith('<svg>'))
        self.assertEqual(out.strip().splitlines()[-1], '</svg>')
        self.assertNotIn('WARNING', out)
        self.assertIn('WARNING', err)

    def test_edit_rejects_duplicate_names(self):
        """Test that a rename collision is reported."""
        code, _, err = self.run_main('edit', self.svg_path, '--rename', 'dot=frame')
        self.assertEqual(code, 1)
        self.assertIn('frame', err)

    def test_edit_bad_rename(self):
        """Test a --rename value without '='."""
        code, _, _ = self.run_main('edit', self.svg_path, '--rename', 'dot')
        self.assertEqual(code, 2)

    def test_edit_unknown_layer(self):
        """Test editing a layer name that does not exist."""
        code, _, err = self.run_main('edit', self.svg_path, '--duplicate', 'nope')
        self.assertEqual(code, 1)
        self.assertIn("no layer named 'nope'", err)

    def test_convert(self):
        """Test converting with the default output path."""
        code, out, _ = self.run_main('convert', self.svg_path, '--speed', '1500',
                                     '--job-name', 'test job')
        self.assertEqual(code, 0)
        output = self.path('design.gcode')
        self.assertIn(f'Wrote {output}', out)
        with open(output, encoding='ascii') as f:
            gcode = f.read()
        self.assertIn('; Job: test job', gcode)
        self.assertIn('G1 F1500', gcode)
        self.assertIn('M2 ; End program', gcode)

    def test_convert_only(self):
        """Test burning a subset of layers."""
        output = self.path('only.gcode')
        code, _, _ = self.run_main('convert', self.svg_path, '--only', 'dot', '-o', output)
        self.assertEqual(code, 0)
        with open(output, encoding='ascii') as f:
            gcode = f.read()
        self.assertIn('; Layer: dot', gcode)
        self.assertNotIn('; Layer: frame', gcode)

    def test_convert_too_large(self):
        """Test that a design larger than the work area fails."""
        code, _, err = self.run_main('convert', self.svg_path, '--work-area', '10', '10')
        self.assertEqual(code, 1)
        self.assertIn('work area', err)
        self.assertFalse(os.path.exists(self.path('design.gcode')))

    def test_convert_invalid_work_area(self):
        """Test rejecting a zero work area."""
        code, _, _ = self.run_main('convert', self.svg_path, '--work-area', '0', '10')
        self.assertEqual(code, 2)

    def test_save_and_load_config(self):
        """Test reusing saved job settings."""
        config_path = self.path('job.json')
        code, _, _ = self.run_main('convert', self.svg_path, '--power', '40',
                                   '--save-config', config_path)
        self.assertEqual(code, 0)
        saved = load_job_config(config_path)
        self.assertIsNotNone(saved)
        self.assertTrue(all(c.power == 40 for c in saved.layer_configs))

        output = self.path('from_config.gcode')
        code, _, _ = self.run_main('convert', self.svg_path, '--config', config_path,
                                   '-o', output)
        self.assertEqual(code, 0)
        with open(output, encoding='ascii') as f:
            self.assertIn('M3 S400', f.read())

    def test_bad_config(self):
        """Test loading a corrupt job settings file."""
        config_path = self.path('broken.json')
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write('{not json')
        code, _, err = self.run_main('convert', self.svg_path, '--config', config_path)
        self.assertEqual(code, 1)
        self.assertIn('cannot load job config', err)


if __name__ == '__main__':
    unittest.main()
