"""
Tests for job configuration files.
"""

import json
import os
import tempfile
import unittest

from layerburn.io.job_io import (
    JobConfigError, dict_to_job_config, job_config_to_dict,
    load_job_config, save_job_config
)
from layerburn.laser.config import (
    Accuracy, EngraveMode, JobPosition, LaserJobConfig, LayerLaserConfig,
    OriginPosition, ProcessMethod
)


class TestJobConfigIO(unittest.TestCase):
    """Test saving and loading job configurations."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, 'job.json')
        self.config = LaserJobConfig(
            layer_configs=(
                LayerLaserConfig('id-1', 'outline', mode=EngraveMode.LINE,
                                 method=ProcessMethod.CUT, speed=1000, power=100,
                                 passes=3, accuracy=Accuracy.ULTRA_FINE),
                LayerLaserConfig('id-2', 'logo', enabled=False, mode=EngraveMode.FILL,
                                 fill_angle=45, fill_spacing=0.2),
            ),
            position=JobPosition(OriginPosition.CENTER),
            work_area_width=200.0,
            work_area_height=150.0,
            max_s_value=255,
            file_name='coaster',
        )

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_save_and_load(self):
        """Test saving and loading a job config."""
        self.assertTrue(save_job_config(self.config, self.path))
        loaded = load_job_config(self.path)
        self.assertEqual(loaded, self.config)

    def test_file_metadata(self):
        """Test the version and timestamp in the file."""
        save_job_config(self.config, self.path)
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        self.assertEqual(data['version'], '1.0')
        self.assertIn('saved_at', data)
        self.assertEqual(data['layers'][0]['accuracy'], 'ULTRA_FINE')
        self.assertEqual(data['position']['origin'], 'center')

    def test_save_to_missing_directory(self):
        """Test saving into a directory that does not exist."""
        path = os.path.join(self.tmpdir.name, 'missing', 'job.json')
        self.assertFalse(save_job_config(self.config, path))

    def test_load_missing_file(self):
        """Test loading a file that does not exist."""
        self.assertIsNone(load_job_config(self.path))

    def test_load_invalid_json(self):
        """Test loading malformed JSON."""
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write('{not json')
        self.assertIsNone(load_job_config(self.path))

    def test_load_invalid_content(self):
        """Test loading JSON with bad values."""
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({'layers': [{'mode': 'spiral'}]}, f)
        self.assertIsNone(load_job_config(self.path))


class TestDictConversion(unittest.TestCase):
    """Test dictionary conversion."""

    def test_defaults(self):
        """Test defaults for missing keys."""
        config = dict_to_job_config({})
        self.assertEqual(config, LaserJobConfig())

    def test_values_are_clamped(self):
        """Test clamping out-of-range values."""
        config = dict_to_job_config({'layers': [
            {'layer_id': 'a', 'speed': 99999, 'power': -5, 'passes': 0,
             'fill_angle': 270, 'fill_spacing': 0.0}
        ]})
        layer = config.layer_configs[0]
        self.assertEqual(layer.speed, 6000)
        self.assertEqual(layer.power, 0)
        self.assertEqual(layer.passes, 1)
        self.assertEqual(layer.fill_angle, 180)
        self.assertEqual(layer.fill_spacing, 0.05)

    def test_round_trip_dict(self):
        """Test dict conversion both ways."""
        config = LaserJobConfig(layer_configs=(LayerLaserConfig('x', 'x'),))
        self.assertEqual(dict_to_job_config(job_config_to_dict(config)), config)

    def test_errors(self):
        """Test conversion errors."""
        bad_inputs = [
            [],
            {'layers': {}},
            {'layers': ['nope']},
            {'layers': [{'accuracy': 'SUPER'}]},
            {'position': {'origin': 'middle'}},
            {'work_area_width': 'wide'},
        ]
        for data in bad_inputs:
            with self.assertRaises(JobConfigError, msg=repr(data)):
                dict_to_job_config(data)


if __name__ == '__main__':
    unittest.main()
