"""
Pipeline Errors

Exception hierarchy for the candle pipeline.

Setup-time errors (SourceError, SinkError, SessionStartError, ConfigError)
are fatal and propagate to the caller. ParseError is recovered inside the
stage that detects it. PipelineCancelled and ChannelClosed are control-flow
signals raised by the channel layer and handled by each stage.
"""

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base class for all pipeline errors"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class ParseError(PipelineError):
    """A trade row has a malformed price, timestamp or shape"""

    def __init__(self, message: str, raw_data: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data


class SourceError(PipelineError, IOError):
    """Input file cannot be opened"""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.path = path


class SinkError(PipelineError, IOError):
    """Output file cannot be created"""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.path = path


class SessionStartError(PipelineError):
    """Session start cannot be determined from the input"""


class ConfigError(PipelineError):
    """Pipeline configuration is missing or invalid"""


class ChannelClosed(PipelineError):
    """Raised by a channel operation after the channel was closed"""


class PipelineCancelled(PipelineError):
    """Raised by a channel operation once the shared cancel token fired"""
