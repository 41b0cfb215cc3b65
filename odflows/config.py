"""
Flow-map configuration management.
The visual tuning knobs (curve angle, curvature divisor, weight exponent)
live here with their documented defaults instead of inside the maths.
"""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pyproj import CRS
from pyproj.exceptions import CRSError

from . import INPUT_DIR, OUTPUT_DIR
from .models import BRITISH_NATIONAL_GRID


class LogLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class PathConfig:
    """Input and output directories"""
    input_dir: Path = INPUT_DIR
    output_dir: Path = OUTPUT_DIR

    def __post_init__(self):
        """Ensure paths are Path objects"""
        for field_name in self.__dataclass_fields__:
            value = getattr(self, field_name)
            if isinstance(value, str):
                setattr(self, field_name, Path(value))


@dataclass
class TrajectoryConfig:
    """
    Bezier trajectory shape.

    curve_angle : degrees the offset vector is rotated by; -90 bows each
                  curve to the left of its direction of travel.
    curvature   : divisor on the origin-minus-destination vector; 12 gives
                  half the bow depth of 6.
    samples     : points per curve when a Bezier is flattened for output.
    """
    curve_angle: float = -90.0
    curvature: float = 6.0
    samples: int = 20
    workers: int = 1

    def __post_init__(self):
        if self.curvature == 0:
            raise ValueError("curvature must be non-zero")
        if self.samples < 2:
            raise ValueError("samples must be >= 2")


@dataclass
class StyleConfig:
    """Rendering style; weights are drawn as (w / max w) ** weight_exponent"""
    weight_exponent: float = 0.4
    cmap: str = "viridis"
    line_width: float = 3.0
    dpi: int = 300
    figsize: tuple = (10.0, 10.0)

    def __post_init__(self):
        if not 0 < self.weight_exponent <= 1:
            raise ValueError("weight_exponent must be in (0, 1]")
        self.figsize = tuple(self.figsize)


@dataclass
class DataConfig:
    """Column names of the inputs and the working planar CRS"""
    origin_col: str = "origin"
    dest_col: str = "destination"
    weight_col: str = "count"
    zone_id_col: str = "code"
    crs: str = BRITISH_NATIONAL_GRID

    def __post_init__(self):
        try:
            crs = CRS(self.crs)
        except CRSError as exc:
            raise ValueError(f"unknown CRS {self.crs!r}: {exc}") from exc
        if crs.is_geographic:
            raise ValueError(f"{self.crs} is geographic; trajectories need a planar grid")


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: LogLevel = LogLevel.INFO
    rich: bool = True


@dataclass
class FlowConfig:
    """Main configuration class containing all settings"""
    paths: PathConfig = field(default_factory=PathConfig)
    trajectory: TrajectoryConfig = field(default_factory=TrajectoryConfig)
    style: StyleConfig = field(default_factory=StyleConfig)
    data: DataConfig = field(default_factory=DataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def save_to_file(self, file_path: Union[str, Path]):
        """Save configuration to file (JSON or YAML)"""
        file_path = Path(file_path)
        config_dict = self.to_dict()

        if file_path.suffix.lower() in ['.yaml', '.yml']:
            with open(file_path, 'w') as f:
                yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2)
        else:
            with open(file_path, 'w') as f:
                json.dump(config_dict, f, indent=2, default=str)

    @classmethod
    def load_from_file(cls, file_path: Union[str, Path]) -> 'FlowConfig':
        """Load configuration from file"""
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        if file_path.suffix.lower() in ['.yaml', '.yml']:
            with open(file_path, 'r') as f:
                try:
                    config_data = yaml.safe_load(f) or {}
                except yaml.YAMLError as exc:
                    raise ValueError(f"Malformed YAML in {file_path}: {exc}") from exc
        else:
            with open(file_path, 'r') as f:
                config_data = json.load(f)

        return cls.from_dict(config_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        def convert_value(value):
            if isinstance(value, Path):
                return str(value)
            elif isinstance(value, Enum):
                return value.value
            elif isinstance(value, dict):
                return {k: convert_value(v) for k, v in value.items()}
            elif isinstance(value, (list, tuple)):
                return [convert_value(item) for item in value]
            else:
                return value

        return convert_value(asdict(self))

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'FlowConfig':
        """Create configuration from dictionary; unknown sections are rejected"""
        sections = {
            'paths': PathConfig,
            'trajectory': TrajectoryConfig,
            'style': StyleConfig,
            'data': DataConfig,
            'logging': LoggingConfig,
        }
        if not isinstance(config_dict, dict):
            raise ValueError("Configuration must be a mapping of sections")
        unknown = set(config_dict) - set(sections)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

        config_kwargs = {}
        for name, section_cls in sections.items():
            data = config_dict.get(name) or {}
            if not isinstance(data, dict):
                raise ValueError(f"Section '{name}' must be a mapping, got {type(data).__name__}")
            data = dict(data)
            allowed = {f.name for f in fields(section_cls)}
            unknown_keys = set(data) - allowed
            if unknown_keys:
                raise ValueError(f"Unknown keys in '{name}': {sorted(unknown_keys)}")
            if name == 'logging' and isinstance(data.get('level'), str):
                data['level'] = LogLevel(data['level'].lower())
            config_kwargs[name] = section_cls(**data)

        return cls(**config_kwargs)

