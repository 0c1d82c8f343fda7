"""
Tests for the background conversion worker.
"""

import unittest

from PyQt6.QtCore import QCoreApplication

from layerburn.io.svg_parser import parse_svg
from layerburn.laser.config import LaserJobConfig, LayerLaserConfig
from layerburn.laser.worker import ConversionWorker


class TestConversionWorker(unittest.TestCase):
    """Test ConversionWorker signals."""

    @classmethod
    def setUpClass(cls):
        cls.app = QCoreApplication.instance() or QCoreApplication([])

    def setUp(self):
        self.document = parse_svg('<svg><rect id="r" width="10" height="10"/></svg>')
        configs = tuple(LayerLaserConfig(layer.id, layer.name)
                        for layer in self.document.layers)
        self.job = LaserJobConfig(layer_configs=configs)
        self.results = []
        self.cancels = []
        self.errors = []

    def connect(self, worker):
        worker.finished.connect(self.results.append)
        worker.cancelled.connect(lambda: self.cancels.append(True))
        worker.error.connect(self.errors.append)

    def test_run_emits_result(self):
        """A normal run delivers the conversion result."""
        worker = ConversionWorker(self.document, self.job)
        self.connect(worker)
        worker.run()
        self.assertEqual(len(self.results), 1)
        self.assertTrue(self.results[0].success)
        self.assertIn("M2", self.results[0].gcode)
        self.assertEqual(self.cancels, [])
        self.assertEqual(self.errors, [])

    def test_failed_conversion_is_still_a_result(self):
        """A failed conversion is delivered through finished, not error."""
        worker = ConversionWorker(self.document, LaserJobConfig())
        self.connect(worker)
        worker.run()
        self.assertEqual(len(self.results), 1)
        self.assertFalse(self.results[0].success)
        self.assertEqual(self.errors, [])

    def test_cancel(self):
        """Cancelling emits cancelled and no result."""
        worker = ConversionWorker(self.document, self.job)
        self.connect(worker)
        worker.cancel()
        worker.run()
        self.assertEqual(self.cancels, [True])
        self.assertEqual(self.results, [])


if __name__ == '__main__':
    unittest.main()
