from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from .config import PipelineConfig
from .errors import ConfigError
from .frames import PixelLayout, StreamFormat

logger = logging.getLogger(__name__)

_TO_RGB = {
    PixelLayout.RGB: None,
    PixelLayout.RGBA: cv2.COLOR_RGBA2RGB,
    PixelLayout.BGR: cv2.COLOR_BGR2RGB,
    PixelLayout.BGRA: cv2.COLOR_BGRA2RGB,
}


class BackgroundPolicy(abc.ABC):
    """
    Produces the per-frame output buffer the foreground is composited onto.

    The buffer is an ``H x W x 3`` RGB ``uint8`` array matching the capture
    resolution. It is allocated by :meth:`prepare` and rewritten in place by
    :meth:`render` every frame.
    """

    def __init__(self) -> None:
        self.output: Optional[np.ndarray] = None

    def prepare(self, stream: StreamFormat) -> None:
        self.output = np.zeros((stream.height, stream.width, 3), dtype=np.uint8)
        self._prepare(stream)

    def _prepare(self, stream: StreamFormat) -> None:
        pass

    @abc.abstractmethod
    def render(self, raw: np.ndarray) -> np.ndarray:
        ...


class StaticBackground(BackgroundPolicy):
    """A fixed RGB image, copied into the output buffer before each composite."""

    def __init__(self, image: np.ndarray) -> None:
        super().__init__()
        self._source = np.ascontiguousarray(image, dtype=np.uint8)
        self._resized: Optional[np.ndarray] = None

    @classmethod
    def from_path(cls, path: Path) -> "StaticBackground":
        path = Path(path).expanduser()
        if not path.exists():
            raise ConfigError(f"Background image {path} does not exist.")
        try:
            with Image.open(path) as img:
                rgb = np.asarray(img.convert("RGB"))
        except OSError as exc:
            raise ConfigError(f"Cannot read background image {path}: {exc}") from exc
        return cls(rgb)

    @classmethod
    def from_color(cls, color: Tuple[int, int, int]) -> "StaticBackground":
        return cls(np.array(color, dtype=np.uint8).reshape(1, 1, 3))

    def _prepare(self, stream: StreamFormat) -> None:
        height, width = self._source.shape[:2]
        if (height, width) == (stream.height, stream.width):
            self._resized = self._source
            return
        if (height, width) == (1, 1):
            self._resized = np.broadcast_to(self._source, (stream.height, stream.width, 3))
            return
        logger.info(
            "Resizing background %dx%d -> %dx%d", width, height, stream.width, stream.height
        )
        resized = Image.fromarray(self._source).resize(
            (stream.width, stream.height), Image.LANCZOS
        )
        self._resized = np.asarray(resized)

    def render(self, raw: np.ndarray) -> np.ndarray:
        np.copyto(self.output, self._resized)
        return self.output


class BlurredBackground(BackgroundPolicy):
    """The current raw frame, blurred, as the background for that same frame."""

    def __init__(self, radius: int = 12) -> None:
        super().__init__()
        self.radius = radius
        self._ksize = (2 * radius + 1, 2 * radius + 1)
        self._code: Optional[int] = None
        self._rgb: Optional[np.ndarray] = None

    def _prepare(self, stream: StreamFormat) -> None:
        self._code = _TO_RGB[stream.layout]
        self._rgb = np.empty((stream.height, stream.width, 3), dtype=np.uint8)

    def render(self, raw: np.ndarray) -> np.ndarray:
        if self._code is None:
            src = raw
        else:
            cv2.cvtColor(raw, self._code, dst=self._rgb)
            src = self._rgb
        # sigma 0: OpenCV derives it from the kernel size, so nothing reaches past ``radius``.
        cv2.GaussianBlur(src, self._ksize, sigmaX=0, dst=self.output)
        return self.output


def build_background(config: PipelineConfig) -> BackgroundPolicy:
    if config.background_mode == "image":
        return StaticBackground.from_path(config.background_image)
    if config.background_mode == "color":
        return StaticBackground.from_color(config.background_color)
    return BlurredBackground(config.blur_radius)
