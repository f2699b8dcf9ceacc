"""
Real-time background replacement for webcams.

A RobustVideoMatting model mattes every captured frame; the foreground is
composited over a blurred copy of the frame, a static image or a solid colour,
and the result is published as a virtual camera.
"""

from .config import PipelineConfig
from .errors import (
    CaptureError,
    ConfigError,
    EngineError,
    MatteCamError,
    ModelLoadError,
    SinkError,
)
from .pipeline import PipelineDriver, PipelineState, StopReason

__all__ = [
    "CaptureError",
    "ConfigError",
    "EngineError",
    "MatteCamError",
    "ModelLoadError",
    "PipelineConfig",
    "PipelineDriver",
    "PipelineState",
    "SinkError",
    "StopReason",
]
