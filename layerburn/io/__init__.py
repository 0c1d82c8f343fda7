"""
LayerBurn I/O Module

Handles SVG layer splitting, shape reading and job configuration files.
"""

from .svg_parser import SVGLayerParser, parse_svg, generate_svg
from .svg_geometry import SVGGeometryReader
from .job_io import JobConfigError, save_job_config, load_job_config

__all__ = [
    'SVGLayerParser', 'parse_svg', 'generate_svg',
    'SVGGeometryReader',
    'JobConfigError', 'save_job_config', 'load_job_config',
]
