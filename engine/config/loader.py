"""
Config Loader

Loads and validates the pipeline configuration from YAML.
Every key is optional; missing keys fall back to the defaults below.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dataflow.errors import ConfigError, SessionStartError
from dataflow.ingestion.source import parse_session_time

logger = logging.getLogger(__name__)

DEFAULT_GRANULARITIES = [5, 30, 240]
DEFAULT_SESSION_START = "07:00:00.000000"
DEFAULT_SESSION_HOURS = 20
DEFAULT_DEADLINE_SECONDS = 5.0
DEFAULT_INPUT_PATH = "trades.csv"


class PipelineConfig(BaseModel):
    """Complete pipeline configuration"""
    input_path: str = DEFAULT_INPUT_PATH
    output_dir: str = "."
    output_pattern: str = "candles_{minutes}m.csv"
    granularities: List[int] = Field(default_factory=lambda: list(DEFAULT_GRANULARITIES))
    session_start: str = DEFAULT_SESSION_START
    session_hours: float = Field(default=DEFAULT_SESSION_HOURS, gt=0, le=24)
    deadline_seconds: float = Field(default=DEFAULT_DEADLINE_SECONDS, gt=0)

    @field_validator("granularities")
    @classmethod
    def _check_granularities(cls, value: List[int]) -> List[int]:
        if not value:
            raise ValueError("at least one granularity is required")
        if any(minutes <= 0 for minutes in value):
            raise ValueError(f"granularities must be positive, got {value}")
        if len(set(value)) != len(value):
            raise ValueError(f"duplicate granularities: {value}")
        return value

    @field_validator("session_start")
    @classmethod
    def _check_session_start(cls, value: str) -> str:
        try:
            parse_session_time(value)
        except SessionStartError as e:
            raise ValueError(str(e))
        return value

    @field_validator("output_pattern")
    @classmethod
    def _check_output_pattern(cls, value: str) -> str:
        if "{minutes}" not in value:
            raise ValueError("output_pattern must contain '{minutes}'")
        return value

    def output_path(self, minutes: int) -> Path:
        """Output file for one granularity"""
        return Path(self.output_dir) / self.output_pattern.format(minutes=minutes)


class ConfigLoader:
    """
    Loads a PipelineConfig from an optional YAML file.

    Example usage:
        loader = ConfigLoader(Path("pipeline.yaml"))
        config = loader.load(input_path="trades.csv")
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize loader.

        Args:
            config_path: YAML file, or None to use defaults only
        """
        self.config_path = Path(config_path) if config_path is not None else None

    def load(self, **overrides) -> PipelineConfig:
        """
        Load the config and apply non-None overrides (e.g. from CLI flags).

        Raises:
            ConfigError: If the file cannot be read or validation fails
        """
        raw = {}

        if self.config_path is not None:
            try:
                with open(self.config_path) as f:
                    raw = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to load {self.config_path}: {e}")

            if not isinstance(raw, dict):
                raise ConfigError(f"{self.config_path} must contain a mapping")

            logger.info(f"Loaded config from {self.config_path}")

        raw.update({key: value for key, value in overrides.items() if value is not None})

        try:
            config = PipelineConfig(**raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid pipeline config: {e}")

        logger.debug(f"Pipeline config: {config}")
        return config
