from __future__ import annotations


class MatteCamError(RuntimeError):
    """Base class for every failure surfaced by the matting pipeline."""


class ConfigError(MatteCamError):
    """Invalid startup configuration. Raised before the loop starts."""


class CaptureError(MatteCamError):
    """The capture device disappeared, rejected its format or failed a read."""


class EngineError(MatteCamError):
    """Inference backend failure or tensor signature/shape mismatch."""


class ModelLoadError(EngineError):
    """The model artifact is missing, corrupt or could not be fetched."""


class SinkError(MatteCamError):
    """Writing a frame to the output sink failed."""
