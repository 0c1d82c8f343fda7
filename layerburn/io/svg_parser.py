"""
SVG Layer Parser for LayerBurn

Splits raw SVG text into a header, the top-level elements (layers) and a
footer, and writes edited layers back. This is a tolerant indexed scanner
rather than an XML parser: markup a strict parser would reject still loads.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..core.document import SvgDocument, DEFAULT_HEADER, DEFAULT_FOOTER
from ..core.layer import ElementKind, SvgLayer, find_element_id

logger = logging.getLogger(__name__)

# Markup whose content is not element structure, with its terminator.
# Order matters: "<!" must be tried after the longer openers.
NON_ELEMENT_MARKUP = (
    ('<!--', '-->'),
    ('<![CDATA[', ']]>'),
    ('<?', '?>'),
    ('<!', '>'),
)
_NON_ELEMENT_RE = r'(<!--|<!\[CDATA\[|<\?|<!)'


def skip_non_element(content: str, start: int) -> int:
    """
    Index just past the comment, CDATA section, processing instruction or
    declaration that begins at start. Unterminated markup runs to the end.
    """
    for opener, terminator in NON_ELEMENT_MARKUP:
        if content.startswith(opener, start):
            end = content.find(terminator, start + len(opener))
            return len(content) if end < 0 else end + len(terminator)
    return start + 1


class SVGLayerParser:
    """Parse SVG text into an SvgDocument of top-level layers."""

    # Root open tag, optionally preceded by an XML declaration, doctype or comments
    ROOT_OPEN_RE = re.compile(
        _NON_ELEMENT_RE + r'|<svg(?=[\s/>])[^>]*>', re.IGNORECASE
    )
    ROOT_CLOSE = '</svg>'

    def __init__(self):
        names = sorted((kind.value for kind in ElementKind), key=len, reverse=True)
        self._tag_re = re.compile(
            _NON_ELEMENT_RE + r'|<(' + '|'.join(names) + r')(?=[\s/>])',
            re.IGNORECASE
        )

    def parse_file(self, filepath: str) -> SvgDocument:
        """Parse an SVG file and return an SvgDocument."""
        content = Path(filepath).read_text(encoding='utf-8')
        return self.parse_string(content)

    def parse_string(self, content: str) -> SvgDocument:
        """Parse SVG text and return an SvgDocument. Never raises on bad markup."""
        clean = content.replace('\r\n', '\n').replace('\r', '\n').strip()

        root_match = self._find_root(clean)
        if root_match:
            header = clean[:root_match.end()]
            if header.endswith('/>'):
                # <svg/> has no content; reopen it so the footer balances it
                header = header[:-2].rstrip() + '>'
            inner_start = root_match.end()
        else:
            logger.warning("No <svg> root tag found, using a default header")
            header = DEFAULT_HEADER
            inner_start = 0

        inner_end = clean.lower().rfind(self.ROOT_CLOSE)
        if inner_end < inner_start:
            inner_end = len(clean)

        layers = self.extract_layers(clean[inner_start:inner_end])
        logger.info(f"Parsed {len(layers)} layers")
        return SvgDocument(header=header, layers=tuple(layers), footer=DEFAULT_FOOTER)

    def _find_root(self, content: str) -> Optional[re.Match]:
        position = 0
        while True:
            match = self.ROOT_OPEN_RE.search(content, position)
            if match is None or not match.group(1):
                return match
            position = skip_non_element(content, match.start())

    def extract_layers(self, content: str) -> List[SvgLayer]:
        """Extract the top-level allow-listed elements of content in order."""
        layers: List[SvgLayer] = []
        position = 0

        while position < len(content):
            next_tag = self._find_next_tag(content, position)
            if next_tag is None:
                break
            kind, tag_start = next_tag

            open_end = content.find('>', tag_start)
            if open_end < 0:
                # Unterminated open tag
                position = tag_start + 1
                continue

            if content[open_end - 1] == '/':
                element_end = open_end + 1
            else:
                element_end = self._find_closing_tag(content, open_end + 1, kind.value)
                if element_end < 0:
                    logger.warning(
                        f"Skipping <{kind.value}> at offset {tag_start}: no closing tag"
                    )
                    position = open_end + 1
                    continue

            markup = content[tag_start:element_end].strip()
            element_id = find_element_id(markup)
            if element_id is None:
                element_id = f"layer_{len(layers)}"

            layers.append(SvgLayer(
                original_id=element_id,
                name=element_id,
                tag_name=kind,
                raw_markup=markup,
                is_original=True,
            ))
            position = element_end

        return layers

    def _find_next_tag(self, content: str,
                       start: int) -> Optional[Tuple[ElementKind, int]]:
        """Left-most allow-listed open tag at or after start, outside comments."""
        while True:
            match = self._tag_re.search(content, start)
            if match is None:
                return None
            if match.group(1):
                start = skip_non_element(content, match.start())
                continue
            return ElementKind.from_tag(match.group(2)), match.start()

    def _find_closing_tag(self, content: str, start: int, tag_name: str) -> int:
        """
        Find the end of the close tag matching an open tag.

        Nested open tags of the same name increase the depth so that a <g>
        inside a <g> does not end the outer element. Tags inside comments,
        CDATA sections and processing instructions are not counted.

        Returns:
            Index just past the matching close tag, or -1 if there is none
        """
        pattern = re.compile(
            _NON_ELEMENT_RE + r'|<(/?)' + re.escape(tag_name) + r'(?=[\s/>])',
            re.IGNORECASE
        )
        depth = 0
        position = start

        while True:
            match = pattern.search(content, position)
            if match is None:
                return -1

            if match.group(1):
                position = skip_non_element(content, match.start())
                continue

            tag_end = content.find('>', match.end())
            if tag_end < 0:
                return -1

            if match.group(2):
                if depth == 0:
                    return tag_end + 1
                depth -= 1
            elif content[tag_end - 1] != '/':
                depth += 1
            position = tag_end + 1


def parse_svg(content: str) -> SvgDocument:
    """Parse SVG text into a document of layers."""
    return SVGLayerParser().parse_string(content)


def generate_svg(header: str, layers: Sequence[SvgLayer],
                 footer: str = DEFAULT_FOOTER) -> str:
    """
    Rebuild SVG text from a header, ordered layers and a footer.

    Renamed layers get their id attribute rewritten; all other markup is
    emitted unchanged, one layer per line with a two-space indent.
    """
    lines = [header]
    for layer in layers:
        lines.append(f"  {layer.current_markup()}")
    lines.append(footer)
    return '\n'.join(lines)
