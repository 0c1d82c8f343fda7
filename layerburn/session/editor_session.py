"""
Layer editing session.

Holds the layers of one loaded SVG and applies edits by replacing an
immutable EditorState.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple
import logging

from ..core.document import SvgDocument, DEFAULT_HEADER, DEFAULT_FOOTER
from ..core.edits import (
    LayerNameError, delete_layer, duplicate_layer, rename_layer,
    reorder_layers, validate_layer_names
)
from ..core.layer import SvgLayer
from ..io.svg_parser import generate_svg, parse_svg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditorState:
    """Snapshot of an editing session."""
    file_name: str = ""
    header: str = DEFAULT_HEADER
    footer: str = DEFAULT_FOOTER
    original_layers: Tuple[SvgLayer, ...] = ()
    working_layers: Tuple[SvgLayer, ...] = ()
    confirmed_svg: Optional[str] = None
    error_message: Optional[str] = None
    success_message: Optional[str] = None

    @property
    def has_changes(self) -> bool:
        return self.working_layers != self.original_layers

    @property
    def document(self) -> SvgDocument:
        return SvgDocument(self.header, self.working_layers, self.footer)


class EditorSession:
    """Edit the top-level layers of an SVG file."""

    def __init__(self):
        self.state = EditorState()

    def load(self, file_name: str, content: str) -> EditorState:
        """Parse SVG text and start editing it."""
        document = parse_svg(content)
        self.state = EditorState(
            file_name=file_name,
            header=document.header,
            footer=document.footer,
            original_layers=document.layers,
            working_layers=document.layers,
        )
        logger.info(f"Loaded '{file_name}' with {len(document.layers)} layers")
        return self.state

    def _set_layers(self, layers: Tuple[SvgLayer, ...]) -> EditorState:
        self.state = replace(self.state, working_layers=layers, confirmed_svg=None)
        return self.state

    def duplicate(self, layer_id: str) -> EditorState:
        layer = self.state.document.get_layer_by_id(layer_id)
        if layer is None:
            logger.debug(f"Duplicate ignored, no layer with id {layer_id}")
            return self.state
        return self._set_layers(duplicate_layer(self.state.working_layers, layer))

    def rename(self, layer_id: str, new_name: str) -> EditorState:
        return self._set_layers(
            rename_layer(self.state.working_layers, layer_id, new_name)
        )

    def delete(self, layer_id: str) -> EditorState:
        return self._set_layers(delete_layer(self.state.working_layers, layer_id))

    def reorder(self, from_index: int, to_index: int) -> EditorState:
        return self._set_layers(
            reorder_layers(self.state.working_layers, from_index, to_index)
        )

    def confirm_changes(self) -> Optional[str]:
        """
        Validate the layer names and build the final SVG.

        Returns:
            The SVG text, or None when the names are invalid (the reason is
            stored in state.error_message)
        """
        try:
            validate_layer_names(self.state.working_layers)
        except LayerNameError as e:
            logger.warning(f"Cannot confirm changes: {e}")
            self.state = replace(self.state, error_message=str(e),
                                 success_message=None, confirmed_svg=None)
            return None

        svg = self.final_svg()
        self.state = replace(
            self.state,
            confirmed_svg=svg,
            error_message=None,
            success_message=f"{len(self.state.working_layers)} layers ready to save",
        )
        return svg

    def clear_messages(self) -> EditorState:
        self.state = replace(self.state, error_message=None, success_message=None)
        return self.state

    def reset(self) -> EditorState:
        self.state = EditorState()
        return self.state

    def final_svg(self) -> str:
        """Serialize the working layers without validating names."""
        return generate_svg(self.state.header, self.state.working_layers,
                            self.state.footer)
