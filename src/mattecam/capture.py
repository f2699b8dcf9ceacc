from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np

from .config import PipelineConfig
from .errors import CaptureError
from .frames import PixelLayout, StreamFormat

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30.0


@dataclass
class DeviceInfo:
    index: int
    width: int
    height: int
    fps: float
    backend: str


def list_devices(max_index: int = 10) -> List[DeviceInfo]:
    """Probe capture indices ``0..max_index-1`` and report the ones that open."""
    devices: List[DeviceInfo] = []
    for index in range(max_index):
        cap = cv2.VideoCapture(index)
        try:
            if not cap.isOpened():
                continue
            devices.append(
                DeviceInfo(
                    index=index,
                    width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
                    height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                    fps=float(cap.get(cv2.CAP_PROP_FPS)) or DEFAULT_FPS,
                    backend=cap.getBackendName(),
                )
            )
        finally:
            cap.release()
    return devices


class CameraSource:
    """
    OpenCV capture device delivering BGR frames.

    The requested resolution and frame rate are best effort: after
    negotiation the stream format is whatever the device reports, and it is
    fixed for the lifetime of this object. Frames are read into one reused
    buffer.
    """

    layout = PixelLayout.BGR

    def __init__(
        self,
        index: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
        fps: Optional[int] = None,
    ) -> None:
        self.index = index
        self.cap = cv2.VideoCapture(index)
        if not self.cap.isOpened():
            raise CaptureError(f"Cannot open capture device #{index}")
        # Keep latency low: never queue stale frames.
        self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        if width is not None and height is not None:
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        if fps is not None:
            self.cap.set(cv2.CAP_PROP_FPS, fps)

        self._format = StreamFormat(
            width=int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            layout=self.layout,
            fps=float(self.cap.get(cv2.CAP_PROP_FPS)) or DEFAULT_FPS,
        )
        if self._format.width <= 0 or self._format.height <= 0:
            self.release()
            raise CaptureError(f"Capture device #{index} reported no usable format")

        requested = (width, height, fps)
        actual = (self._format.width, self._format.height, int(self._format.fps))
        if any(r is not None and r != a for r, a in zip(requested, actual)):
            logger.warning(
                "Requested %sx%s@%s is unavailable; device is using %dx%d@%d",
                width,
                height,
                fps,
                *actual,
            )
        self._frame = np.empty(self._format.frame_shape, dtype=np.uint8)

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "CameraSource":
        return cls(config.camera_index, config.width, config.height, config.fps)

    def stream_format(self) -> StreamFormat:
        return self._format

    def acquire_frame(self) -> np.ndarray:
        ok, frame = self.cap.read(self._frame)
        if not ok or frame is None:
            raise CaptureError(f"Capture device #{self.index} stopped delivering frames")
        if frame is not self._frame:
            # Backend handed back its own buffer (e.g. after a size change).
            if frame.shape != self._frame.shape:
                raise CaptureError(
                    f"Capture device #{self.index} changed format mid-stream: {frame.shape}"
                )
            np.copyto(self._frame, frame)
        return self._frame

    def release(self) -> None:
        self.cap.release()

    def __enter__(self) -> "CameraSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
