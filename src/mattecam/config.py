from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from .errors import ConfigError

RELEASE_URL = "https://github.com/PeterL1n/RobustVideoMatting/releases/download/v1.0.0"

MODEL_VARIANTS = ("mobilenetv3", "resnet50")
PRECISIONS = ("fp32", "fp16")
BACKENDS = ("onnx", "torchscript")
BACKGROUND_MODES = ("blur", "image", "color")
CHANNEL_ORDERS = ("RGB", "BGR")


@dataclass(frozen=True)
class PipelineConfig:
    camera_index: int = 0
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[int] = None
    model: str = "mobilenetv3"
    precision: str = "fp32"
    backend: str = "onnx"
    device: str = "cpu"
    weights_dir: Path = field(default_factory=lambda: Path("~/.cache/mattecam").expanduser())
    background_mode: str = "blur"
    background_image: Optional[Path] = None
    background_color: Tuple[int, int, int] = (0, 177, 64)
    blur_radius: int = 12
    warmup_frames: int = 15
    channel_order: str = "RGB"
    downsample_threshold: int = 512
    downsample_margin: float = 1.06
    stats_interval: int = 300
    max_frames: int = 0

    def __post_init__(self) -> None:
        if self.model not in MODEL_VARIANTS:
            raise ConfigError(
                f"Invalid model '{self.model}'. Choices: {', '.join(MODEL_VARIANTS)}"
            )
        if self.precision not in PRECISIONS:
            raise ConfigError(f"Invalid precision '{self.precision}'. Choices: {PRECISIONS}")
        if self.backend not in BACKENDS:
            raise ConfigError(f"Invalid backend '{self.backend}'. Choices: {BACKENDS}")
        if self.precision == "fp16" and not self.uses_cuda:
            raise ConfigError("fp16 models require a CUDA device.")
        if (self.width is None) != (self.height is None):
            raise ConfigError("Width and height overrides must be given together.")
        for name in ("width", "height", "fps"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")
        if self.camera_index < 0:
            raise ConfigError("camera_index must be >= 0")
        if self.background_mode not in BACKGROUND_MODES:
            raise ConfigError(
                f"Invalid background mode '{self.background_mode}'. Choices: {BACKGROUND_MODES}"
            )
        if self.background_mode == "image" and self.background_image is None:
            raise ConfigError("background_mode 'image' requires a background image path.")
        if len(self.background_color) != 3 or any(
            not 0 <= c <= 255 for c in self.background_color
        ):
            raise ConfigError(f"background_color must be an RGB triple, got {self.background_color}")
        if self.blur_radius <= 0:
            raise ConfigError("blur_radius must be positive")
        if self.warmup_frames < 0:
            raise ConfigError("warmup_frames must be >= 0")
        if self.channel_order not in CHANNEL_ORDERS:
            raise ConfigError(f"Invalid channel order '{self.channel_order}'. Choices: {CHANNEL_ORDERS}")
        if self.downsample_threshold <= 0 or self.downsample_margin <= 0:
            raise ConfigError("downsample threshold and margin must be positive")
        if self.stats_interval < 0 or self.max_frames < 0:
            raise ConfigError("stats_interval and max_frames must be >= 0")

    @property
    def uses_cuda(self) -> bool:
        return self.device.startswith("cuda")

    @property
    def artifact_stem(self) -> str:
        return f"rvm_{self.model}_{self.precision}"


def parse_color(value: str) -> Tuple[int, int, int]:
    """Parse ``#RRGGBB`` (or ``RRGGBB``) into an RGB triple."""
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ConfigError(f"Colour must look like #RRGGBB, got '{value}'")
    try:
        return tuple(int(text[i : i + 2], 16) for i in (0, 2, 4))  # type: ignore[return-value]
    except ValueError as exc:
        raise ConfigError(f"Colour must look like #RRGGBB, got '{value}'") from exc
