"""
LayerBurn Layer System

A layer is one top-level SVG element that can be edited independently.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional
from uuid import uuid4
from xml.sax.saxutils import escape, unescape
import re


class ElementKind(Enum):
    """Top-level SVG elements that are extracted as layers."""
    GROUP = "g"
    PATH = "path"
    RECT = "rect"
    CIRCLE = "circle"
    ELLIPSE = "ellipse"
    LINE = "line"
    POLYLINE = "polyline"
    POLYGON = "polygon"
    TEXT = "text"
    IMAGE = "image"
    USE = "use"
    DEFS = "defs"
    CLIP_PATH = "clipPath"
    MASK = "mask"
    PATTERN = "pattern"
    LINEAR_GRADIENT = "linearGradient"
    RADIAL_GRADIENT = "radialGradient"
    SYMBOL = "symbol"
    STYLE = "style"
    METADATA = "metadata"
    TITLE = "title"
    DESC = "desc"

    @classmethod
    def from_tag(cls, tag: str) -> Optional['ElementKind']:
        """Case-insensitive lookup of a tag name."""
        return _KINDS_BY_LOWER_TAG.get(tag.lower())


_KINDS_BY_LOWER_TAG = {kind.value.lower(): kind for kind in ElementKind}

# id attribute inside an opening tag; not data-id, xml:id, etc.
_ID_ATTR_RE = re.compile(r'(?<![\w:.-])id\s*=\s*(["\'])(.*?)\1',
                         re.IGNORECASE | re.DOTALL)
_TAG_NAME_RE = re.compile(r'^<\s*[\w:.-]+')

_ATTR_ENTITIES = {'"': '&quot;'}
_ATTR_UNENTITIES = {'&quot;': '"', '&apos;': "'"}


def _opening_tag_end(markup: str) -> int:
    """Index just past the element's opening tag (or end of markup)."""
    end = markup.find('>')
    return len(markup) if end < 0 else end + 1


def find_element_id(markup: str) -> Optional[str]:
    """Return the id attribute of the element's opening tag, if any."""
    match = _ID_ATTR_RE.search(markup, 0, _opening_tag_end(markup))
    if match is None:
        return None
    return unescape(match.group(2), _ATTR_UNENTITIES)


def set_element_id(markup: str, new_id: str) -> str:
    """
    Rewrite the id attribute of the element's opening tag.

    Replaces the first id attribute found in the opening tag, or inserts
    one right after the tag name when the element has none. Everything
    else in the markup is kept byte for byte.
    """
    attribute = f'id="{escape(new_id, _ATTR_ENTITIES)}"'
    match = _ID_ATTR_RE.search(markup, 0, _opening_tag_end(markup))
    if match is not None:
        return markup[:match.start()] + attribute + markup[match.end():]

    name_match = _TAG_NAME_RE.match(markup)
    if name_match is None:
        return markup
    insert_at = name_match.end()
    return f'{markup[:insert_at]} {attribute}{markup[insert_at:]}'


@dataclass(frozen=True)
class SvgLayer:
    """
    One top-level SVG element treated as an independently editable unit.

    id is an opaque key that never changes; name is the display id and is
    written back into the markup when the document is serialized.
    """
    original_id: str
    name: str
    tag_name: ElementKind
    raw_markup: str
    is_original: bool = True
    parent_original_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))

    @property
    def is_renamed(self) -> bool:
        return self.name != self.original_id

    def renamed(self, new_name: str) -> 'SvgLayer':
        return replace(self, name=new_name)

    def current_markup(self) -> str:
        """Markup with the id attribute matching the layer's name."""
        if not self.is_renamed:
            return self.raw_markup
        return set_element_id(self.raw_markup, self.name)
