"""
Config Module

YAML pipeline configuration loading and validation.
"""

from .loader import ConfigLoader, PipelineConfig

__all__ = [
    "ConfigLoader",
    "PipelineConfig",
]
