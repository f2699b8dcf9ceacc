from __future__ import annotations

import logging

import numpy as np
import pyvirtualcam

from .errors import SinkError
from .frames import StreamFormat

logger = logging.getLogger(__name__)


class VirtualCameraSink:
    """Publishes RGB frames to an OS-level virtual camera via pyvirtualcam."""

    def __init__(self, stream: StreamFormat, device: str | None = None) -> None:
        try:
            self.cam = pyvirtualcam.Camera(
                width=stream.width,
                height=stream.height,
                fps=stream.fps,
                fmt=pyvirtualcam.PixelFormat.RGB,
                device=device,
            )
        except Exception as exc:
            raise SinkError(
                "Cannot open a virtual camera. On Linux load v4l2loopback first, e.g. "
                "`sudo modprobe v4l2loopback devices=1 exclusive_caps=1 card_label=mattecam`. "
                f"({exc})"
            ) from exc
        logger.info("Virtual camera ready: %s (%s)", self.cam.device, self.cam.backend)

    def write_frame(self, frame: np.ndarray) -> None:
        try:
            self.cam.send(frame)
        except Exception as exc:
            raise SinkError(f"Virtual camera rejected a frame: {exc}") from exc

    def close(self) -> None:
        self.cam.close()

    def __enter__(self) -> "VirtualCameraSink":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
