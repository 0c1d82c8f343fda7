"""
LayerBurn Laser Module

Laser job configuration and G-code generation.
"""

from .config import (
    Accuracy, EngraveMode, ProcessMethod, LayerLaserConfig,
    OriginPosition, JobPosition, LaserJobConfig, infer_mode
)
from .cancellation import CancellationToken, ConversionCancelled
from .fill import hatch_polygons
from .gcode_generator import (
    GCodeGenerator, GCodeSettings, LaserMode, ConversionResult
)
from .path_optimizer import (
    optimize_paths, optimize_closed_path_start
)

__all__ = [
    # Configuration
    'Accuracy', 'EngraveMode', 'ProcessMethod', 'LayerLaserConfig',
    'OriginPosition', 'JobPosition', 'LaserJobConfig', 'infer_mode',
    # Cancellation
    'CancellationToken', 'ConversionCancelled',
    # G-code generation
    'hatch_polygons', 'GCodeGenerator', 'GCodeSettings', 'LaserMode',
    'ConversionResult',
    # Path optimization
    'optimize_paths', 'optimize_closed_path_start',
]
