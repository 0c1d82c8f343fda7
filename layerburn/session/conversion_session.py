"""
Conversion session.

Keeps the per-layer laser settings for a document, applies clamped
updates and runs the conversion.
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence, Tuple
import logging

from ..core.document import SvgDocument, DEFAULT_HEADER, DEFAULT_FOOTER
from ..core.layer import SvgLayer
from ..laser.cancellation import CancellationToken
from ..laser.config import (
    Accuracy, EngraveMode, JobPosition, LaserJobConfig, LayerLaserConfig,
    OriginPosition, ProcessMethod, infer_mode
)
from ..laser.gcode_generator import ConversionResult, GCodeGenerator, GCodeSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionState:
    """Snapshot of a conversion session."""
    document: SvgDocument = field(default_factory=SvgDocument)
    layer_configs: Tuple[LayerLaserConfig, ...] = ()
    position: JobPosition = field(default_factory=JobPosition)
    work_area_width: float = 130.0
    work_area_height: float = 140.0
    max_s_value: int = 1000
    file_name: str = "longer_job"
    result: Optional[ConversionResult] = None
    error_message: Optional[str] = None


class ConversionSession:
    """Configure and run the conversion of a document's layers."""

    def __init__(self, settings: Optional[GCodeSettings] = None):
        self.settings = settings
        self.state = ConversionState()

    def initialize(self, layers: Sequence[SvgLayer], header: str = DEFAULT_HEADER,
                   footer: str = DEFAULT_FOOTER) -> ConversionState:
        """Create one enabled config per layer with the default settings."""
        configs = tuple(
            LayerLaserConfig(layer_id=layer.id, layer_name=layer.name,
                             mode=infer_mode(layer))
            for layer in layers
        )
        self.state = replace(
            self.state,
            document=SvgDocument(header, tuple(layers), footer),
            layer_configs=configs,
            result=None,
            error_message=None,
        )
        return self.state

    def update_layer_config(self, layer_id: str,
                            update: Callable[[LayerLaserConfig], LayerLaserConfig]
                            ) -> ConversionState:
        """Replace the config of one layer with update(config)."""
        configs = tuple(
            update(config) if config.layer_id == layer_id else config
            for config in self.state.layer_configs
        )
        self.state = replace(self.state, layer_configs=configs)
        return self.state

    def toggle_layer(self, layer_id: str) -> ConversionState:
        return self.update_layer_config(
            layer_id, lambda c: replace(c, enabled=not c.enabled)
        )

    def update_speed(self, layer_id: str, speed: int) -> ConversionState:
        return self.update_layer_config(layer_id, lambda c: c.with_speed(speed))

    def update_power(self, layer_id: str, power: int) -> ConversionState:
        return self.update_layer_config(layer_id, lambda c: c.with_power(power))

    def update_passes(self, layer_id: str, passes: int) -> ConversionState:
        return self.update_layer_config(layer_id, lambda c: c.with_passes(passes))

    def update_mode(self, layer_id: str, mode: EngraveMode) -> ConversionState:
        return self.update_layer_config(layer_id, lambda c: replace(c, mode=mode))

    def update_method(self, layer_id: str, method: ProcessMethod) -> ConversionState:
        return self.update_layer_config(layer_id, lambda c: replace(c, method=method))

    def update_accuracy(self, layer_id: str, accuracy: Accuracy) -> ConversionState:
        return self.update_layer_config(layer_id, lambda c: replace(c, accuracy=accuracy))

    def update_fill_angle(self, layer_id: str, angle: int) -> ConversionState:
        return self.update_layer_config(layer_id, lambda c: c.with_fill_angle(angle))

    def update_fill_spacing(self, layer_id: str, spacing: float) -> ConversionState:
        return self.update_layer_config(layer_id, lambda c: c.with_fill_spacing(spacing))

    def update_origin(self, origin: OriginPosition) -> ConversionState:
        position = replace(self.state.position, origin=origin,
                           use_custom=origin == OriginPosition.CUSTOM)
        self.state = replace(self.state, position=position)
        return self.state

    def update_custom_position(self, x: float, y: float) -> ConversionState:
        """Place the design at (x, y), clamped to the work area."""
        position = JobPosition(
            origin=OriginPosition.CUSTOM,
            custom_x=max(0.0, min(self.state.work_area_width, x)),
            custom_y=max(0.0, min(self.state.work_area_height, y)),
            use_custom=True,
        )
        self.state = replace(self.state, position=position)
        return self.state

    def update_work_area(self, width: float, height: float) -> ConversionState:
        if width <= 0 or height <= 0:
            raise ValueError(f"Work area must be positive, got {width} x {height}")
        self.state = replace(self.state, work_area_width=width,
                             work_area_height=height)
        return self.state

    def update_max_s_value(self, max_s_value: int) -> ConversionState:
        if max_s_value <= 0:
            raise ValueError(f"Max S value must be positive, got {max_s_value}")
        self.state = replace(self.state, max_s_value=max_s_value)
        return self.state

    def update_file_name(self, name: str) -> ConversionState:
        self.state = replace(self.state, file_name=name)
        return self.state

    def copy_config_to_all(self, source_layer_id: str) -> ConversionState:
        """Give every other layer the source layer's burn settings."""
        source = next((c for c in self.state.layer_configs
                       if c.layer_id == source_layer_id), None)
        if source is None:
            logger.debug(f"Copy ignored, no config for layer {source_layer_id}")
            return self.state
        configs = tuple(
            config if config.layer_id == source_layer_id
            else config.with_settings_of(source)
            for config in self.state.layer_configs
        )
        self.state = replace(self.state, layer_configs=configs)
        return self.state

    def apply_job_config(self, job_config: LaserJobConfig) -> ConversionState:
        """
        Take saved settings for the current layers.

        Layers are matched by id first and then by name; layers with no
        saved entry keep their settings.
        """
        configs = []
        for config in self.state.layer_configs:
            saved = job_config.config_for(config.layer_id)
            if saved is None:
                saved = next((c for c in job_config.layer_configs
                              if c.layer_name == config.layer_name), None)
            if saved is None:
                configs.append(config)
            else:
                configs.append(replace(config.with_settings_of(saved.clamped()),
                                       enabled=saved.enabled))
        self.state = replace(
            self.state,
            layer_configs=tuple(configs),
            position=job_config.position,
            work_area_width=job_config.work_area_width,
            work_area_height=job_config.work_area_height,
            max_s_value=job_config.max_s_value,
            file_name=job_config.file_name,
        )
        return self.state

    def job_config(self) -> LaserJobConfig:
        return LaserJobConfig(
            layer_configs=self.state.layer_configs,
            position=self.state.position,
            work_area_width=self.state.work_area_width,
            work_area_height=self.state.work_area_height,
            max_s_value=self.state.max_s_value,
            file_name=self.state.file_name,
        )

    def convert(self, cancel_token: Optional[CancellationToken] = None) -> ConversionResult:
        """
        Run the conversion and keep its result.

        Raises:
            ConversionCancelled: if cancel_token is cancelled; the previous
                result is left untouched
        """
        self.state = replace(self.state, error_message=None)
        generator = GCodeGenerator(self.settings)
        result = generator.convert(self.state.document, self.job_config(), cancel_token)
        self.state = replace(
            self.state,
            result=result,
            error_message=None if result.success else result.error_message,
        )
        return result

    def clear_result(self) -> ConversionState:
        self.state = replace(self.state, result=None, error_message=None)
        return self.state

    def gcode(self) -> Optional[str]:
        if self.state.result is None:
            return None
        return self.state.result.gcode
