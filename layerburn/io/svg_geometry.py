"""
SVG geometry reader for LayerBurn

Turns the markup of one layer into Shape objects ready for flattening.
Supports rect, circle, ellipse, line, polyline, polygon and path elements,
nested groups and the transform attribute.
"""

import logging
import re
from typing import List, Optional, Tuple
from xml.etree import ElementTree as ET

import numpy as np

from ..core.document import DEFAULT_HEADER, DEFAULT_FOOTER
from ..core.layer import SvgLayer
from ..core.shapes import (
    Shape, Path, Rectangle, Ellipse, identity_matrix, svg_matrix,
    translation_matrix, scale_matrix, rotation_matrix,
    skew_x_matrix, skew_y_matrix
)

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r'[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?')
_SEPARATOR_RE = re.compile(r'[\s,]*')
_TRANSFORM_RE = re.compile(
    r'(matrix|translate|scale|rotate|skewX|skewY)\s*\(([^)]*)\)', re.IGNORECASE
)
_LENGTH_RE = re.compile(
    r'^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(px|pt|pc|mm|cm|in|em|ex)?\s*$'
)

PATH_COMMANDS = 'MmLlHhVvCcSsQqTtAaZz'


class PathDataReader:
    """Cursor over an SVG path data string."""

    def __init__(self, data: str):
        self.data = data
        self.pos = 0

    def _skip_separators(self) -> None:
        self.pos = _SEPARATOR_RE.match(self.data, self.pos).end()

    def at_end(self) -> bool:
        self._skip_separators()
        return self.pos >= len(self.data)

    def read_command(self) -> str:
        self._skip_separators()
        if self.pos >= len(self.data) or self.data[self.pos] not in PATH_COMMANDS:
            raise ValueError(f"Expected a path command at offset {self.pos}")
        command = self.data[self.pos]
        self.pos += 1
        return command

    def has_number(self) -> bool:
        self._skip_separators()
        return _NUMBER_RE.match(self.data, self.pos) is not None

    def read_number(self) -> float:
        self._skip_separators()
        match = _NUMBER_RE.match(self.data, self.pos)
        if match is None:
            raise ValueError(f"Expected a number at offset {self.pos}")
        self.pos = match.end()
        return float(match.group(0))

    def read_flag(self) -> bool:
        # Arc flags may be packed without separators ("a1 1 0 00.5.5")
        self._skip_separators()
        if self.pos >= len(self.data) or self.data[self.pos] not in '01':
            raise ValueError(f"Expected an arc flag at offset {self.pos}")
        flag = self.data[self.pos] == '1'
        self.pos += 1
        return flag


def parse_path_data(d: str) -> Path:
    """
    Parse an SVG path data string.

    Handles M L H V C S Q T A Z in absolute and relative forms, including
    implicit command repetition.

    Raises:
        ValueError: if the data is malformed
    """
    path = Path()
    reader = PathDataReader(d)
    if reader.at_end():
        return path

    current_x, current_y = 0.0, 0.0
    start_x, start_y = 0.0, 0.0
    last_control: Optional[Tuple[float, float]] = None
    last_upper = ''
    first = True

    while not reader.at_end():
        command = reader.read_command()
        upper = command.upper()
        relative = command.islower()
        if first and upper != 'M':
            raise ValueError("Path data must start with a moveto")
        first = False

        if upper == 'Z':
            path.close()
            current_x, current_y = start_x, start_y
            last_control = None
            last_upper = 'Z'
            continue

        repeat = False
        while True:
            if repeat and not reader.has_number():
                break
            ox, oy = (current_x, current_y) if relative else (0.0, 0.0)

            if upper == 'M':
                x = reader.read_number() + ox
                y = reader.read_number() + oy
                if repeat:
                    # Extra coordinate pairs after a moveto are linetos
                    path.line_to(x, y)
                else:
                    path.move_to(x, y)
                    start_x, start_y = x, y
                current_x, current_y = x, y
                last_control = None

            elif upper == 'L':
                x = reader.read_number() + ox
                y = reader.read_number() + oy
                path.line_to(x, y)
                current_x, current_y = x, y
                last_control = None

            elif upper == 'H':
                x = reader.read_number() + ox
                path.line_to(x, current_y)
                current_x = x
                last_control = None

            elif upper == 'V':
                y = reader.read_number() + oy
                path.line_to(current_x, y)
                current_y = y
                last_control = None

            elif upper == 'C':
                cp1x = reader.read_number() + ox
                cp1y = reader.read_number() + oy
                cp2x = reader.read_number() + ox
                cp2y = reader.read_number() + oy
                x = reader.read_number() + ox
                y = reader.read_number() + oy
                path.cubic_to(cp1x, cp1y, cp2x, cp2y, x, y)
                current_x, current_y = x, y
                last_control = (cp2x, cp2y)

            elif upper == 'S':
                cp2x = reader.read_number() + ox
                cp2y = reader.read_number() + oy
                x = reader.read_number() + ox
                y = reader.read_number() + oy
                # Reflect the previous control point for a smooth join
                if last_control is not None and last_upper in ('C', 'S'):
                    cp1x = 2 * current_x - last_control[0]
                    cp1y = 2 * current_y - last_control[1]
                else:
                    cp1x, cp1y = current_x, current_y
                path.cubic_to(cp1x, cp1y, cp2x, cp2y, x, y)
                current_x, current_y = x, y
                last_control = (cp2x, cp2y)

            elif upper == 'Q':
                cpx = reader.read_number() + ox
                cpy = reader.read_number() + oy
                x = reader.read_number() + ox
                y = reader.read_number() + oy
                path.quadratic_to(cpx, cpy, x, y)
                current_x, current_y = x, y
                last_control = (cpx, cpy)

            elif upper == 'T':
                x = reader.read_number() + ox
                y = reader.read_number() + oy
                if last_control is not None and last_upper in ('Q', 'T'):
                    cpx = 2 * current_x - last_control[0]
                    cpy = 2 * current_y - last_control[1]
                else:
                    cpx, cpy = current_x, current_y
                path.quadratic_to(cpx, cpy, x, y)
                current_x, current_y = x, y
                last_control = (cpx, cpy)

            elif upper == 'A':
                rx = reader.read_number()
                ry = reader.read_number()
                rotation = reader.read_number()
                large_arc = reader.read_flag()
                sweep = reader.read_flag()
                x = reader.read_number() + ox
                y = reader.read_number() + oy
                path.arc_to(rx, ry, rotation, large_arc, sweep, x, y)
                current_x, current_y = x, y
                last_control = None

            last_upper = upper
            repeat = True

    return path


def parse_transform(transform_str: str) -> np.ndarray:
    """
    Parse an SVG transform list into a single matrix.

    "translate(10) scale(2)" scales first, then translates, as in SVG.

    Raises:
        ValueError: if a transform has the wrong number of arguments
    """
    matrix = identity_matrix()
    for match in _TRANSFORM_RE.finditer(transform_str):
        func = match.group(1).lower()
        args = [float(x) for x in _NUMBER_RE.findall(match.group(2))]

        if func == 'matrix':
            if len(args) != 6:
                raise ValueError(f"matrix() takes 6 arguments, got {len(args)}")
            step = svg_matrix(*args)
        elif func == 'translate':
            if len(args) not in (1, 2):
                raise ValueError(f"translate() takes 1 or 2 arguments, got {len(args)}")
            step = translation_matrix(args[0], args[1] if len(args) > 1 else 0.0)
        elif func == 'scale':
            if len(args) not in (1, 2):
                raise ValueError(f"scale() takes 1 or 2 arguments, got {len(args)}")
            step = scale_matrix(args[0], args[1] if len(args) > 1 else None)
        elif func == 'rotate':
            if len(args) not in (1, 3):
                raise ValueError(f"rotate() takes 1 or 3 arguments, got {len(args)}")
            if len(args) == 3:
                step = rotation_matrix(args[0], args[1], args[2])
            else:
                step = rotation_matrix(args[0])
        elif func == 'skewx':
            if len(args) != 1:
                raise ValueError("skewX() takes 1 argument")
            step = skew_x_matrix(args[0])
        else:
            if len(args) != 1:
                raise ValueError("skewY() takes 1 argument")
            step = skew_y_matrix(args[0])

        matrix = matrix @ step
    return matrix


def parse_length(value: Optional[str], default: float = 0.0) -> float:
    """
    Parse an SVG length in user units.

    Unit suffixes are accepted and ignored; one user unit is one millimetre
    on the machine.

    Raises:
        ValueError: for percentages or text that is not a length
    """
    if value is None or not value.strip():
        return default
    match = _LENGTH_RE.match(value)
    if match is None:
        raise ValueError(f"Unsupported length: {value!r}")
    return float(match.group(1))


def parse_points(points_str: str) -> List[Tuple[float, float]]:
    """Parse an SVG points attribute; an odd trailing number is dropped."""
    numbers = [float(n) for n in _NUMBER_RE.findall(points_str)]
    return [(numbers[i], numbers[i + 1]) for i in range(0, len(numbers) - 1, 2)]


class SVGGeometryReader:
    """Read the drawable geometry of a layer's markup."""

    CONTAINER_TAGS = {'g', 'a', 'switch'}
    # Elements that never produce machine geometry on their own
    SKIPPED_TAGS = {
        'defs', 'clippath', 'mask', 'pattern', 'lineargradient',
        'radialgradient', 'symbol', 'style', 'metadata', 'title', 'desc',
        'text', 'image', 'use', 'marker', 'filter', 'script', 'foreignobject'
    }

    def read_layer(self, layer: SvgLayer, header: str = DEFAULT_HEADER) -> List[Shape]:
        """Return the shapes of a layer; malformed elements are left out."""
        return self.read_markup(layer.raw_markup, header)

    def read_markup(self, markup: str, header: str = DEFAULT_HEADER) -> List[Shape]:
        element = self._parse_fragment(markup, header)
        if element is None:
            return []
        shapes: List[Shape] = []
        self._parse_element(element, identity_matrix(), shapes)
        return shapes

    def _parse_fragment(self, markup: str, header: str) -> Optional[ET.Element]:
        """
        Parse one element inside the document's root tag.

        Wrapping in the real header keeps namespace prefixes such as
        inkscape: bound; the default header is the fallback.
        """
        for wrapper in (header, DEFAULT_HEADER):
            try:
                root = ET.fromstring(f"{wrapper}\n{markup}\n{DEFAULT_FOOTER}")
            except ET.ParseError as e:
                logger.debug(f"Fragment did not parse with header {wrapper[:40]!r}: {e}")
                continue
            children = list(root)
            return children[0] if children else None
        logger.warning(f"Could not parse layer markup: {markup[:60]!r}")
        return None

    def _local_tag(self, element: ET.Element) -> str:
        tag = element.tag
        if not isinstance(tag, str):
            return ''
        return tag.rsplit('}', 1)[-1].lower()

    def _parse_element(self, element: ET.Element, parent_matrix: np.ndarray,
                       shapes: List[Shape]) -> None:
        """Recursively collect shapes with their accumulated transform."""
        tag = self._local_tag(element)
        if not tag or tag in self.SKIPPED_TAGS:
            return

        try:
            matrix = parent_matrix
            transform_str = element.get('transform')
            if transform_str:
                matrix = parent_matrix @ parse_transform(transform_str)

            if tag in self.CONTAINER_TAGS or tag == 'svg':
                for child in element:
                    self._parse_element(child, matrix, shapes)
                return

            shape = self._parse_shape(tag, element)
        except ValueError as e:
            logger.warning(f"Skipping malformed <{tag}> element: {e}")
            return

        if shape is not None:
            shape.name = element.get('id', '')
            shape.transform = matrix
            shapes.append(shape)

    def _parse_shape(self, tag: str, element: ET.Element) -> Optional[Shape]:
        if tag == 'rect':
            return self._parse_rect(element)
        if tag == 'circle':
            return self._parse_circle(element)
        if tag == 'ellipse':
            return self._parse_ellipse(element)
        if tag == 'line':
            return self._parse_line(element)
        if tag == 'polyline':
            return self._parse_polyline(element, closed=False)
        if tag == 'polygon':
            return self._parse_polyline(element, closed=True)
        if tag == 'path':
            return parse_path_data(element.get('d', ''))
        logger.debug(f"Ignoring unsupported element <{tag}>")
        return None

    def _parse_rect(self, element: ET.Element) -> Rectangle:
        return Rectangle(
            parse_length(element.get('x')),
            parse_length(element.get('y')),
            parse_length(element.get('width')),
            parse_length(element.get('height')),
            rx=parse_length(element.get('rx')),
            ry=parse_length(element.get('ry')),
        )

    def _parse_circle(self, element: ET.Element) -> Ellipse:
        r = parse_length(element.get('r'))
        return Ellipse(parse_length(element.get('cx')),
                       parse_length(element.get('cy')), r, r)

    def _parse_ellipse(self, element: ET.Element) -> Ellipse:
        return Ellipse(
            parse_length(element.get('cx')),
            parse_length(element.get('cy')),
            parse_length(element.get('rx')),
            parse_length(element.get('ry')),
        )

    def _parse_line(self, element: ET.Element) -> Path:
        path = Path()
        path.move_to(parse_length(element.get('x1')), parse_length(element.get('y1')))
        path.line_to(parse_length(element.get('x2')), parse_length(element.get('y2')))
        return path

    def _parse_polyline(self, element: ET.Element, closed: bool) -> Path:
        points = parse_points(element.get('points', ''))
        path = Path()
        if not points:
            return path
        path.move_to(*points[0])
        for x, y in points[1:]:
            path.line_to(x, y)
        if closed:
            path.close()
        return path
