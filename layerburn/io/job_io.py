"""
Job Configuration File I/O for LayerBurn

Saves and loads laser job settings as JSON so a set of per-layer settings
can be reused for the next run of the same drawing.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..laser.config import (
    Accuracy, EngraveMode, JobPosition, LaserJobConfig, LayerLaserConfig,
    OriginPosition, ProcessMethod
)

logger = logging.getLogger(__name__)

JOB_FILE_VERSION = '1.0'


class JobConfigError(ValueError):
    """Raised when a job configuration file has invalid content."""


def save_job_config(job_config: LaserJobConfig, filepath: str) -> bool:
    """
    Save a job configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        job_dict = job_config_to_dict(job_config)
        job_dict['version'] = JOB_FILE_VERSION
        job_dict['saved_at'] = datetime.now().isoformat()

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(job_dict, f, indent=2, ensure_ascii=False)

        return True
    except OSError as e:
        logger.error(f"Error saving job config to {filepath}: {e}")
        return False


def load_job_config(filepath: str) -> Optional[LaserJobConfig]:
    """
    Load a job configuration from a JSON file.

    Returns:
        LaserJobConfig if successful, None otherwise
    """
    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            job_dict = json.load(f)
        return dict_to_job_config(job_dict)
    except (OSError, json.JSONDecodeError, JobConfigError) as e:
        logger.error(f"Error loading job config from {filepath}: {e}")
        return None


def job_config_to_dict(job_config: LaserJobConfig) -> Dict[str, Any]:
    """Convert LaserJobConfig to dictionary."""
    return {
        'file_name': job_config.file_name,
        'work_area_width': job_config.work_area_width,
        'work_area_height': job_config.work_area_height,
        'max_s_value': job_config.max_s_value,
        'position': position_to_dict(job_config.position),
        'layers': [layer_config_to_dict(c) for c in job_config.layer_configs],
    }


def dict_to_job_config(job_dict: Dict[str, Any]) -> LaserJobConfig:
    """
    Convert dictionary to LaserJobConfig.

    Raises:
        JobConfigError: if a value has the wrong type or an unknown name
    """
    if not isinstance(job_dict, dict):
        raise JobConfigError("Job configuration must be a JSON object")

    layers = job_dict.get('layers', [])
    if not isinstance(layers, list):
        raise JobConfigError("'layers' must be a list")

    try:
        return LaserJobConfig(
            layer_configs=tuple(dict_to_layer_config(d) for d in layers),
            position=dict_to_position(job_dict.get('position', {})),
            work_area_width=float(job_dict.get('work_area_width', 130.0)),
            work_area_height=float(job_dict.get('work_area_height', 140.0)),
            max_s_value=int(job_dict.get('max_s_value', 1000)),
            file_name=str(job_dict.get('file_name', 'longer_job')),
        )
    except (TypeError, ValueError) as e:
        if isinstance(e, JobConfigError):
            raise
        raise JobConfigError(f"Invalid job configuration: {e}") from e


def position_to_dict(position: JobPosition) -> Dict[str, Any]:
    return {
        'origin': position.origin.value,
        'custom_x': position.custom_x,
        'custom_y': position.custom_y,
        'use_custom': position.use_custom,
    }


def dict_to_position(position_dict: Dict[str, Any]) -> JobPosition:
    if not isinstance(position_dict, dict):
        raise JobConfigError("'position' must be an object")
    return JobPosition(
        origin=_enum_value(OriginPosition, position_dict.get('origin', 'bottom-left')),
        custom_x=float(position_dict.get('custom_x', 0.0)),
        custom_y=float(position_dict.get('custom_y', 0.0)),
        use_custom=bool(position_dict.get('use_custom', False)),
    )


def layer_config_to_dict(config: LayerLaserConfig) -> Dict[str, Any]:
    """Convert LayerLaserConfig to dictionary."""
    return {
        'layer_id': config.layer_id,
        'layer_name': config.layer_name,
        'enabled': config.enabled,
        'mode': config.mode.value,
        'method': config.method.value,
        'speed': config.speed,
        'power': config.power,
        'passes': config.passes,
        'accuracy': config.accuracy.name,
        'fill_angle': config.fill_angle,
        'fill_spacing': config.fill_spacing,
    }


def dict_to_layer_config(config_dict: Dict[str, Any]) -> LayerLaserConfig:
    """Convert dictionary to LayerLaserConfig; out-of-range numbers are clamped."""
    if not isinstance(config_dict, dict):
        raise JobConfigError("Each layer entry must be an object")

    accuracy_name = config_dict.get('accuracy', 'FINE')
    if accuracy_name not in Accuracy.__members__:
        raise JobConfigError(f"Unknown accuracy: {accuracy_name!r}")

    config = LayerLaserConfig(
        layer_id=str(config_dict.get('layer_id', '')),
        layer_name=str(config_dict.get('layer_name', '')),
        enabled=bool(config_dict.get('enabled', True)),
        mode=_enum_value(EngraveMode, config_dict.get('mode', 'line')),
        method=_enum_value(ProcessMethod, config_dict.get('method', 'engrave')),
        speed=int(config_dict.get('speed', 3000)),
        power=int(config_dict.get('power', 80)),
        passes=int(config_dict.get('passes', 1)),
        accuracy=Accuracy[accuracy_name],
        fill_angle=int(config_dict.get('fill_angle', 0)),
        fill_spacing=float(config_dict.get('fill_spacing', 0.1)),
    )
    return config.clamped()


def _enum_value(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        raise JobConfigError(f"Unknown {enum_cls.__name__}: {value!r}") from None
