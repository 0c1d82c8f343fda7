"""
Laser Job Configuration

Per-layer laser settings, job positioning and the overall job settings
passed to the G-code generator.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple
import re

from ..core.layer import SvgLayer


class EngraveMode(Enum):
    """How a layer is burned."""
    LINE = "line"    # Follow the contours
    FILL = "fill"    # Trace contours, then hatch the closed areas


class ProcessMethod(Enum):
    """Engraving marks the surface, cutting goes through the material."""
    ENGRAVE = "engrave"
    CUT = "cut"


class Accuracy(Enum):
    """Flattening precision; the value is the chord tolerance in mm."""
    ULTRA_FINE = (0.05, "Ultra Fine")
    FINE = (0.1, "Fine")
    FAST = (0.2, "Fast")
    ULTRA_FAST = (0.3, "Ultra Fast")

    @property
    def step_mm(self) -> float:
        return self.value[0]

    @property
    def display_name(self) -> str:
        return self.value[1]


# Limits shared by the config helpers and the session
MIN_SPEED = 500
MAX_SPEED = 6000
MIN_POWER = 0
MAX_POWER = 100
MIN_PASSES = 1
MAX_PASSES = 10
MIN_FILL_ANGLE = 0
MAX_FILL_ANGLE = 180
MIN_FILL_SPACING = 0.05


def _clamp(value, low, high):
    return max(low, min(high, value))


@dataclass(frozen=True)
class LayerLaserConfig:
    """Laser settings for one layer."""
    layer_id: str
    layer_name: str = ""
    enabled: bool = True
    mode: EngraveMode = EngraveMode.LINE
    method: ProcessMethod = ProcessMethod.ENGRAVE
    speed: int = 3000               # mm/min
    power: int = 80                 # 0-100 %
    passes: int = 1
    accuracy: Accuracy = Accuracy.FINE
    fill_angle: int = 0             # degrees, FILL only
    fill_spacing: float = 0.1       # mm between hatch lines

    def s_value(self, max_s_value: int = 1000) -> int:
        """Device intensity (S word) for this layer's power."""
        return int(round(self.power * max_s_value / 100))

    def clamped(self) -> 'LayerLaserConfig':
        """Copy with every numeric setting forced into its valid range."""
        return replace(
            self,
            speed=_clamp(self.speed, MIN_SPEED, MAX_SPEED),
            power=_clamp(self.power, MIN_POWER, MAX_POWER),
            passes=_clamp(self.passes, MIN_PASSES, MAX_PASSES),
            fill_angle=_clamp(self.fill_angle, MIN_FILL_ANGLE, MAX_FILL_ANGLE),
            fill_spacing=max(MIN_FILL_SPACING, self.fill_spacing),
        )

    def with_speed(self, speed: int) -> 'LayerLaserConfig':
        return replace(self, speed=_clamp(int(speed), MIN_SPEED, MAX_SPEED))

    def with_power(self, power: int) -> 'LayerLaserConfig':
        return replace(self, power=_clamp(int(power), MIN_POWER, MAX_POWER))

    def with_passes(self, passes: int) -> 'LayerLaserConfig':
        return replace(self, passes=_clamp(int(passes), MIN_PASSES, MAX_PASSES))

    def with_fill_angle(self, angle: int) -> 'LayerLaserConfig':
        return replace(self, fill_angle=_clamp(int(angle), MIN_FILL_ANGLE, MAX_FILL_ANGLE))

    def with_fill_spacing(self, spacing: float) -> 'LayerLaserConfig':
        return replace(self, fill_spacing=max(MIN_FILL_SPACING, float(spacing)))

    def with_settings_of(self, other: 'LayerLaserConfig') -> 'LayerLaserConfig':
        """Take every burn setting from other, keeping identity and enabled."""
        return replace(
            self,
            mode=other.mode,
            method=other.method,
            speed=other.speed,
            power=other.power,
            passes=other.passes,
            accuracy=other.accuracy,
            fill_angle=other.fill_angle,
            fill_spacing=other.fill_spacing,
        )

    @classmethod
    def for_method(cls, layer_id: str, layer_name: str = "",
                   method: ProcessMethod = ProcessMethod.ENGRAVE,
                   mode: EngraveMode = EngraveMode.LINE) -> 'LayerLaserConfig':
        """Preset for engraving (80 %, one pass) or cutting (100 %, 3 slow passes)."""
        if method == ProcessMethod.CUT:
            return cls(layer_id, layer_name, mode=mode, method=method,
                       speed=1000, power=100, passes=3)
        return cls(layer_id, layer_name, mode=mode, method=method,
                   speed=3000, power=80, passes=1)


_FILL_ATTR_RE = re.compile(r'\bfill\s*=\s*(["\'])(.*?)\1', re.IGNORECASE | re.DOTALL)
_FILL_STYLE_RE = re.compile(r'(?<![\w-])fill\s*:\s*([^;"\']*)', re.IGNORECASE)
_NO_FILL_VALUES = {'none', 'transparent'}


def infer_mode(layer: SvgLayer) -> EngraveMode:
    """FILL when the markup declares a visible fill anywhere, LINE otherwise."""
    values = [m.group(2) for m in _FILL_ATTR_RE.finditer(layer.raw_markup)]
    values += [m.group(1) for m in _FILL_STYLE_RE.finditer(layer.raw_markup)]
    for value in values:
        if value.strip().lower() not in _NO_FILL_VALUES:
            return EngraveMode.FILL
    return EngraveMode.LINE


class OriginPosition(Enum):
    """Where the design is anchored inside the work area."""
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    CENTER_LEFT = "center-left"
    CENTER = "center"
    CENTER_RIGHT = "center-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"
    CUSTOM = "custom"


@dataclass(frozen=True)
class JobPosition:
    """Placement of the design in the work area."""
    origin: OriginPosition = OriginPosition.BOTTOM_LEFT
    custom_x: float = 0.0
    custom_y: float = 0.0
    use_custom: bool = False

    def calculate_offset(self, design_width: float, design_height: float,
                         work_width: float = 130.0,
                         work_height: float = 140.0) -> Tuple[float, float]:
        """
        Machine position of the design's lower-left corner.

        Returns:
            (offset_x, offset_y) in mm
        """
        if self.use_custom or self.origin == OriginPosition.CUSTOM:
            return self.custom_x, self.custom_y

        free_x = work_width - design_width
        free_y = work_height - design_height
        offsets = {
            OriginPosition.TOP_LEFT: (0.0, free_y),
            OriginPosition.TOP_CENTER: (free_x / 2, free_y),
            OriginPosition.TOP_RIGHT: (free_x, free_y),
            OriginPosition.CENTER_LEFT: (0.0, free_y / 2),
            OriginPosition.CENTER: (free_x / 2, free_y / 2),
            OriginPosition.CENTER_RIGHT: (free_x, free_y / 2),
            OriginPosition.BOTTOM_LEFT: (0.0, 0.0),
            OriginPosition.BOTTOM_CENTER: (free_x / 2, 0.0),
            OriginPosition.BOTTOM_RIGHT: (free_x, 0.0),
        }
        return offsets[self.origin]


@dataclass(frozen=True)
class LaserJobConfig:
    """Settings for one conversion run."""
    layer_configs: Tuple[LayerLaserConfig, ...] = ()
    position: JobPosition = field(default_factory=JobPosition)
    work_area_width: float = 130.0     # mm
    work_area_height: float = 140.0    # mm
    max_s_value: int = 1000            # Must match the controller's $30
    file_name: str = "longer_job"

    def config_for(self, layer_id: str) -> Optional[LayerLaserConfig]:
        for config in self.layer_configs:
            if config.layer_id == layer_id:
                return config
        return None

    @property
    def enabled_configs(self) -> List[LayerLaserConfig]:
        return [config for config in self.layer_configs if config.enabled]
