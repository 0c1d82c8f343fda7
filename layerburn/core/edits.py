"""
Layer edit operations.

Every operation takes the current ordered layers and returns a new tuple;
the input is never modified. Invalid edits leave the layers unchanged.
"""

from collections import Counter
from dataclasses import replace
from typing import List, Sequence, Tuple
from uuid import uuid4
import logging

from .layer import SvgLayer, set_element_id

logger = logging.getLogger(__name__)

COPY_SUFFIX = "_copy"


class LayerNameError(ValueError):
    """Raised when layer names cannot be written as unique element ids."""

    def __init__(self, message: str, names: Sequence[str] = ()):
        super().__init__(message)
        self.names = list(names)


def unique_copy_name(layers: Sequence[SvgLayer], base_name: str) -> str:
    """Return base_copy, base_copy2, base_copy3, ... whichever is free first."""
    existing = {layer.name for layer in layers}
    candidate = f"{base_name}{COPY_SUFFIX}"
    counter = 1
    while candidate in existing:
        counter += 1
        candidate = f"{base_name}{COPY_SUFFIX}{counter}"
    return candidate


def duplicate_layer(layers: Sequence[SvgLayer],
                    layer: SvgLayer) -> Tuple[SvgLayer, ...]:
    """
    Insert a copy of layer right after it.

    The copy gets a fresh unique name that is also written into its
    markup. It is never an original, so it can be deleted later.
    """
    new_name = unique_copy_name(layers, layer.name)
    copy = replace(
        layer,
        id=str(uuid4()),
        original_id=new_name,
        name=new_name,
        raw_markup=set_element_id(layer.raw_markup, new_name),
        is_original=False,
        parent_original_id=layer.original_id,
    )

    result = list(layers)
    index = next((i for i, item in enumerate(result) if item.id == layer.id), -1)
    if index >= 0:
        result.insert(index + 1, copy)
    else:
        result.append(copy)
    logger.debug(f"Duplicated layer '{layer.name}' as '{new_name}'")
    return tuple(result)


def rename_layer(layers: Sequence[SvgLayer], layer_id: str,
                 new_name: str) -> Tuple[SvgLayer, ...]:
    """
    Change a layer's display name.

    Uniqueness is not checked here; see validate_layer_names().
    """
    result = []
    found = False
    for layer in layers:
        if layer.id == layer_id:
            result.append(layer.renamed(new_name))
            found = True
        else:
            result.append(layer)
    if not found:
        logger.debug(f"Rename ignored, no layer with id {layer_id}")
    return tuple(result)


def delete_layer(layers: Sequence[SvgLayer],
                 layer_id: str) -> Tuple[SvgLayer, ...]:
    """Remove a duplicated layer. Original layers cannot be deleted."""
    target = next((layer for layer in layers if layer.id == layer_id), None)
    if target is None:
        logger.debug(f"Delete ignored, no layer with id {layer_id}")
        return tuple(layers)
    if target.is_original:
        logger.debug(f"Delete ignored, '{target.name}' is an original layer")
        return tuple(layers)
    return tuple(layer for layer in layers if layer.id != layer_id)


def reorder_layers(layers: Sequence[SvgLayer], from_index: int,
                   to_index: int) -> Tuple[SvgLayer, ...]:
    """Move the layer at from_index so that it ends up at to_index."""
    count = len(layers)
    if not (0 <= from_index < count and 0 <= to_index < count):
        logger.warning(
            f"Reorder rejected: indices {from_index} -> {to_index} "
            f"out of range for {count} layers"
        )
        return tuple(layers)
    if from_index == to_index:
        return tuple(layers)

    result = list(layers)
    item = result.pop(from_index)
    result.insert(to_index, item)
    return tuple(result)


def find_duplicate_names(layers: Sequence[SvgLayer]) -> List[str]:
    """Names used by more than one layer, in first-seen order."""
    counts = Counter(layer.name for layer in layers)
    seen = []
    for layer in layers:
        if counts[layer.name] > 1 and layer.name not in seen:
            seen.append(layer.name)
    return seen


def validate_layer_names(layers: Sequence[SvgLayer]) -> None:
    """
    Check that the layers can be serialized with distinct ids.

    Raises:
        LayerNameError: if a name is blank or used by several layers
    """
    blank = [layer for layer in layers if not layer.name.strip()]
    if blank:
        raise LayerNameError(
            f"{len(blank)} layer(s) have an empty name", [layer.name for layer in blank]
        )
    duplicates = find_duplicate_names(layers)
    if duplicates:
        raise LayerNameError(
            "Layer names must be unique: " + ", ".join(duplicates), duplicates
        )
