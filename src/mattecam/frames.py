from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol, Tuple

import numpy as np

from .state import RecurrentState


class PixelLayout(str, enum.Enum):
    RGB = "RGB"
    RGBA = "RGBA"
    BGR = "BGR"
    BGRA = "BGRA"

    @property
    def channels(self) -> int:
        return len(self.value)

    def channel_indices(self, order: str = "RGB") -> Tuple[int, int, int]:
        """Source channel index for each colour of ``order`` (alpha is dropped)."""
        return tuple(self.value.index(colour) for colour in order)  # type: ignore[return-value]


@dataclass(frozen=True)
class StreamFormat:
    width: int
    height: int
    layout: PixelLayout
    fps: float

    @property
    def frame_shape(self) -> Tuple[int, int, int]:
        return (self.height, self.width, self.layout.channels)


@dataclass
class MatteResult:
    """Model output for one frame: ``H x W x 3`` foreground and ``H x W x 1`` alpha, floats in [0, 1]."""

    foreground: np.ndarray
    alpha: np.ndarray


class FrameSource(Protocol):
    def stream_format(self) -> StreamFormat:
        ...

    def acquire_frame(self) -> np.ndarray:
        ...


class InferenceEngine(Protocol):
    def infer(
        self,
        tensor: np.ndarray,
        downsample_ratio: float,
        state: RecurrentState,
    ) -> Tuple[MatteResult, RecurrentState]:
        ...


class FrameSink(Protocol):
    def write_frame(self, frame: np.ndarray) -> None:
        ...
