"""
Runtime Module

Pipeline coordinator and entry point.
"""

from .coordinator import PipelineCoordinator, PipelineResult

__all__ = [
    "PipelineCoordinator",
    "PipelineResult",
]
