"""
G-Code Generator for LayerBurn

Converts the enabled layers of an SVG document to G-code for GRBL and
compatible laser controllers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional
import logging
import math

from ..core.document import SvgDocument
from ..core.layer import SvgLayer
from ..core.shapes import BoundingBox, Point, Polyline
from ..io.svg_geometry import SVGGeometryReader
from .cancellation import CancellationToken, ConversionCancelled
from .config import EngraveMode, LaserJobConfig, LayerLaserConfig
from .fill import hatch_polygons
from .path_optimizer import optimize_paths

logger = logging.getLogger(__name__)

# Slack for floating point noise when checking the work area
WORK_AREA_EPSILON = 1e-6


class LaserMode(Enum):
    """Laser control mode."""
    CONSTANT = "M3"  # Constant power
    DYNAMIC = "M4"   # Power scales with speed


@dataclass
class GCodeSettings:
    """Machine dialect settings for G-code generation."""
    laser_mode: LaserMode = LaserMode.CONSTANT
    rapid_speed: float = 6000.0       # mm/min for G0 moves, used for the estimate
    laser_toggle_time: float = 0.1    # Seconds added per laser on/off switch
    return_to_origin: bool = True     # Rapid back to X0 Y0 at the end
    optimize_paths: bool = True       # Reorder contours to shorten travel
    precision: int = 3                # Decimals in coordinates


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of one conversion."""
    success: bool
    gcode: str = ""
    line_count: int = 0
    estimated_time_minutes: float = 0.0
    bounding_box: Optional[BoundingBox] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> 'ConversionResult':
        return cls(success=False, error_message=message)


@dataclass
class LayerToolpath:
    """Flattened geometry of one enabled layer."""
    layer: SvgLayer
    config: LayerLaserConfig
    contours: List[Polyline]


def count_gcode_lines(gcode: str) -> int:
    """Number of lines that are neither blank nor pure comments."""
    count = 0
    for line in gcode.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith(';'):
            count += 1
    return count


def _ascii(text: str) -> str:
    return text.encode('ascii', 'replace').decode('ascii')


class GCodeGenerator:
    """Generate G-code from LayerBurn documents."""

    def __init__(self, settings: GCodeSettings = None):
        self.settings = settings or GCodeSettings()
        self.reader = SVGGeometryReader()
        self._reset_state()

    def _reset_state(self):
        """Reset generator state."""
        self._gcode_lines: List[str] = []
        self._current_x = 0.0
        self._current_y = 0.0
        self._laser_on = False
        self._current_power = 0
        self._current_speed = 0.0
        self._burn_seconds = 0.0
        self._travel_distance = 0.0
        self._toggles = 0

    def convert(self, document: SvgDocument, job_config: LaserJobConfig,
                cancel_token: Optional[CancellationToken] = None) -> ConversionResult:
        """
        Convert the document's enabled layers.

        Failures come back as a ConversionResult with success=False.

        Raises:
            ConversionCancelled: if cancel_token was cancelled; no G-code is
                produced in that case
        """
        try:
            return self._convert(document, job_config, cancel_token)
        except ConversionCancelled:
            logger.info("Conversion cancelled")
            raise
        except Exception as e:
            logger.exception("Conversion failed")
            return ConversionResult.failure(f"Conversion failed: {e}")
        finally:
            self._gcode_lines = []

    def _convert(self, document: SvgDocument, job_config: LaserJobConfig,
                 cancel_token: Optional[CancellationToken]) -> ConversionResult:
        self._reset_state()

        enabled = []
        for layer in document.layers:
            config = job_config.config_for(layer.id)
            if config is not None and config.enabled:
                enabled.append((layer, config.clamped()))
        if not enabled:
            return ConversionResult.failure("No layers are enabled for conversion")

        toolpaths = []
        for layer, config in enabled:
            self._check_cancelled(cancel_token)
            toolpaths.append(self._flatten_layer(document, layer, config))

        points = [p for tp in toolpaths for path in tp.contours for p in path.points]
        total_length = sum(path.length for tp in toolpaths for path in tp.contours)
        if not points or total_length <= 0:
            return ConversionResult.failure(
                "The enabled layers contain no geometry that can be burned"
            )

        design_box = BoundingBox.from_points(points)
        offset_x, offset_y = job_config.position.calculate_offset(
            design_box.width, design_box.height,
            job_config.work_area_width, job_config.work_area_height
        )
        machine_box = BoundingBox(
            offset_x, offset_y,
            offset_x + design_box.width, offset_y + design_box.height
        )
        if not self._fits_work_area(machine_box, job_config):
            return ConversionResult.failure(
                f"Design ({design_box.width:.2f} x {design_box.height:.2f} mm) placed at "
                f"X{machine_box.min_x:.2f} Y{machine_box.min_y:.2f} does not fit the "
                f"{job_config.work_area_width:g} x {job_config.work_area_height:g} mm work area"
            )

        for toolpath in toolpaths:
            toolpath.contours = [
                self._svg_to_machine(path, design_box, offset_x, offset_y)
                for path in toolpath.contours
            ]

        for toolpath in toolpaths:
            self._check_cancelled(cancel_token)
            self._process_layer(toolpath, job_config, cancel_token)
        self._add_footer()
        body = self._gcode_lines

        estimate = self._estimated_minutes()
        self._gcode_lines = []
        self._add_header(job_config, len(toolpaths), machine_box, estimate)
        gcode = '\n'.join(self._gcode_lines + body) + '\n'

        logger.info(
            f"Converted {len(toolpaths)} layers, "
            f"estimated {estimate:.1f} min"
        )
        return ConversionResult(
            success=True,
            gcode=gcode,
            line_count=count_gcode_lines(gcode),
            estimated_time_minutes=estimate,
            bounding_box=machine_box,
        )

    def _check_cancelled(self, cancel_token: Optional[CancellationToken]):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

    def _flatten_layer(self, document: SvgDocument, layer: SvgLayer,
                       config: LayerLaserConfig) -> LayerToolpath:
        """Flatten every shape of a layer at the layer's accuracy."""
        contours = []
        for shape in self.reader.read_layer(layer, document.header):
            contours.extend(shape.get_paths(config.accuracy.step_mm))
        if not contours:
            logger.warning(f"Layer '{layer.name}' has no burnable geometry")
        return LayerToolpath(layer, config, contours)

    def _fits_work_area(self, box: BoundingBox, job_config: LaserJobConfig) -> bool:
        return (box.min_x >= -WORK_AREA_EPSILON and
                box.min_y >= -WORK_AREA_EPSILON and
                box.max_x <= job_config.work_area_width + WORK_AREA_EPSILON and
                box.max_y <= job_config.work_area_height + WORK_AREA_EPSILON)

    def _svg_to_machine(self, path: Polyline, design_box: BoundingBox,
                        offset_x: float, offset_y: float) -> Polyline:
        """
        Map SVG coordinates (Y down) to machine coordinates (Y up).

        The design is mirrored vertically inside its own bounding box and
        its lower-left corner moved to the offset.
        """
        return Polyline([
            Point(p.x - design_box.min_x + offset_x,
                  design_box.max_y - p.y + offset_y)
            for p in path.points
        ], path.closed)

    def _add_header(self, job_config: LaserJobConfig, layer_count: int,
                    box: BoundingBox, estimate: float):
        """Add G-code header/preamble."""
        self._emit("; LayerBurn G-Code Output")
        self._emit(f"; Job: {_ascii(job_config.file_name)}")
        self._emit(f"; Layers: {layer_count}")
        self._emit(f"; Bounds: X{box.min_x:.2f} Y{box.min_y:.2f} "
                   f"to X{box.max_x:.2f} Y{box.max_y:.2f}")
        self._emit(f"; Estimated time: {estimate:.1f} min")
        self._emit("")
        self._emit("G21 ; Millimeters")
        self._emit("G90 ; Absolute positioning")
        self._emit(f"{self.settings.laser_mode.value} S0 ; Laser mode")
        self._emit("M5 ; Laser off")
        self._emit(f"G0 F{self.settings.rapid_speed:.0f} ; Set rapid speed")
        self._emit("")

    def _add_footer(self):
        """Add G-code footer/cleanup."""
        self._emit("")
        self._emit("; End of job")
        self._laser_off()
        if self.settings.return_to_origin:
            self._travel_distance += math.hypot(self._current_x, self._current_y)
            self._emit("G0 X0 Y0 ; Return to origin")
            self._current_x = 0.0
            self._current_y = 0.0
        self._emit("M5 ; Ensure laser off")
        self._emit("M2 ; End program")

    def _process_layer(self, toolpath: LayerToolpath, job_config: LaserJobConfig,
                       cancel_token: Optional[CancellationToken]):
        """Emit every pass of one layer."""
        config = toolpath.config
        self._emit(f"; Layer: {_ascii(toolpath.layer.name)} "
                   f"({config.mode.value}, {config.method.value})")

        paths = toolpath.contours
        if self.settings.optimize_paths:
            paths = optimize_paths(paths, Point(self._current_x, self._current_y))

        if config.mode == EngraveMode.FILL:
            closed = [path for path in toolpath.contours if path.closed]
            hatch = hatch_polygons(closed, config.fill_angle,
                                   config.fill_spacing, cancel_token)
            paths = paths + hatch

        power = config.s_value(job_config.max_s_value)
        for pass_num in range(config.passes):
            self._check_cancelled(cancel_token)
            if config.passes > 1:
                self._emit(f"; Pass {pass_num + 1}/{config.passes}")
            for path in paths:
                self._burn_path(path, power, config.speed)

    def _burn_path(self, path: Polyline, power: int, speed: float):
        """Generate G-code for a single path."""
        if len(path.points) < 2:
            return

        start = path.points[0]
        self._rapid_move(start.x, start.y)

        self._laser_on_with_power(power)
        self._set_speed(speed)
        for point in path.points[1:]:
            self._linear_move(point.x, point.y)

        self._laser_off()

    def _emit(self, line: str):
        """Add a line to the output."""
        self._gcode_lines.append(line)

    def _format_xy(self, x: float, y: float) -> str:
        digits = self.settings.precision
        return f"X{x:.{digits}f} Y{y:.{digits}f}"

    def _rapid_move(self, x: float, y: float):
        """Generate rapid move (G0)."""
        if x == self._current_x and y == self._current_y:
            return
        self._travel_distance += Point(self._current_x, self._current_y).distance_to(Point(x, y))
        self._emit(f"G0 {self._format_xy(x, y)}")
        self._current_x = x
        self._current_y = y

    def _linear_move(self, x: float, y: float):
        """Generate linear move (G1)."""
        if x == self._current_x and y == self._current_y:
            return
        distance = Point(self._current_x, self._current_y).distance_to(Point(x, y))
        if self._current_speed > 0:
            self._burn_seconds += distance / self._current_speed * 60.0
        self._emit(f"G1 {self._format_xy(x, y)}")
        self._current_x = x
        self._current_y = y

    def _laser_on_with_power(self, power: int):
        """Turn laser on with specified power."""
        mode = self.settings.laser_mode.value
        if not self._laser_on or power != self._current_power:
            self._emit(f"{mode} S{power}")
            self._laser_on = True
            self._current_power = power
            self._toggles += 1

    def _laser_off(self):
        """Turn laser off."""
        if self._laser_on:
            self._emit("M5")
            self._laser_on = False
            self._current_power = 0
            self._toggles += 1

    def _set_speed(self, speed: float):
        """Set feed rate."""
        if speed != self._current_speed:
            self._emit(f"G1 F{speed:.0f}")
            self._current_speed = speed

    def _estimated_minutes(self) -> float:
        travel_seconds = 0.0
        if self.settings.rapid_speed > 0:
            travel_seconds = self._travel_distance / self.settings.rapid_speed * 60.0
        toggle_seconds = self._toggles * self.settings.laser_toggle_time
        return (self._burn_seconds + travel_seconds + toggle_seconds) / 60.0

    def save_to_file(self, gcode: str, filepath: str):
        """Save G-code to a file."""
        with open(filepath, 'w', encoding='ascii', errors='replace') as f:
            f.write(gcode)
