"""
LayerBurn Core Module

Contains the core data structures:
- Shapes: Point, BoundingBox, Polyline and the flattenable shapes
- SvgLayer: One top-level SVG element
- SvgDocument: Header, ordered layers and footer
- Edits: Duplicate, rename, delete and reorder layers
"""

# Import order matters - shapes first, then layer, then document
from .shapes import (
    Point, BoundingBox, Polyline, Shape,
    Rectangle, Ellipse, Path
)
from .layer import ElementKind, SvgLayer
from .document import SvgDocument
from .edits import (
    LayerNameError, duplicate_layer, rename_layer, delete_layer,
    reorder_layers, find_duplicate_names, validate_layer_names
)

__all__ = [
    'Point', 'BoundingBox', 'Polyline', 'Shape',
    'Rectangle', 'Ellipse', 'Path',
    'ElementKind', 'SvgLayer',
    'SvgDocument',
    'LayerNameError', 'duplicate_layer', 'rename_layer', 'delete_layer',
    'reorder_layers', 'find_duplicate_names', 'validate_layer_names',
]
