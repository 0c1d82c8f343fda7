"""
Background conversion worker.

Runs GCodeGenerator.convert on a QThread so a UI stays responsive, and
lets the UI cancel the run.
"""

from typing import Optional

from PyQt6.QtCore import QThread, pyqtSignal

from ..core.document import SvgDocument
from .cancellation import CancellationToken, ConversionCancelled
from .config import LaserJobConfig
from .gcode_generator import GCodeGenerator, GCodeSettings


class ConversionWorker(QThread):
    """Worker thread for converting documents without blocking UI."""

    finished = pyqtSignal(object)  # Emits ConversionResult, failed or not
    cancelled = pyqtSignal()       # Emitted instead of finished after cancel()
    error = pyqtSignal(str)        # Emits error message on unexpected failure

    def __init__(self, document: SvgDocument, job_config: LaserJobConfig,
                 settings: Optional[GCodeSettings] = None, parent=None):
        super().__init__(parent)
        self.document = document
        self.job_config = job_config
        self.settings = settings
        self.cancel_token = CancellationToken()

    def cancel(self):
        """Ask the running conversion to stop; no G-code is delivered."""
        self.cancel_token.cancel()

    def run(self):
        """Run the conversion in the background thread."""
        try:
            generator = GCodeGenerator(self.settings)
            result = generator.convert(self.document, self.job_config, self.cancel_token)
        except ConversionCancelled:
            self.cancelled.emit()
        except Exception as e:
            self.error.emit(str(e))
        else:
            self.finished.emit(result)
