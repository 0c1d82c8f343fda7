"""
LayerBurn Document Model

The SvgDocument is the header, ordered layers and footer of a parsed SVG.
"""

from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

from .layer import SvgLayer


DEFAULT_HEADER = '<svg xmlns="http://www.w3.org/2000/svg">'
DEFAULT_FOOTER = '</svg>'


@dataclass(frozen=True)
class SvgDocument:
    """
    A parsed SVG split into independently editable layers.

    Documents are values: edits produce a new document through
    with_layers() instead of mutating this one.
    """
    header: str = DEFAULT_HEADER
    layers: Tuple[SvgLayer, ...] = ()
    footer: str = DEFAULT_FOOTER

    def with_layers(self, layers: Iterable[SvgLayer]) -> 'SvgDocument':
        return replace(self, layers=tuple(layers))

    def get_layer_by_id(self, layer_id: str) -> Optional[SvgLayer]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def get_layer_by_name(self, name: str) -> Optional[SvgLayer]:
        """Find the first layer with the given name."""
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    @property
    def layer_names(self) -> List[str]:
        return [layer.name for layer in self.layers]

    def to_svg(self) -> str:
        """Serialize the document with renamed ids written back."""
        from ..io.svg_parser import generate_svg

        return generate_svg(self.header, self.layers, self.footer)
