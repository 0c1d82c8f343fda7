"""
LayerBurn - SVG layer editing and laser G-code conversion
"""

__version__ = "0.1.0"
