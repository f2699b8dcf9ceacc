from __future__ import annotations

from typing import Tuple

import numpy as np

from .frames import PixelLayout

_SCALE = np.float32(255.0)


class FrameNormalizer:
    """
    Converts interleaved 8-bit frames into ``[1, H, W, 3]`` float32 tensors in [0, 1].

    A single flat buffer backs every returned tensor. It only ever grows: a
    smaller frame reuses the front of the existing allocation, so the tensor
    returned by :meth:`normalize` is only valid until the next call.
    """

    def __init__(self, layout: PixelLayout = PixelLayout.RGB, channel_order: str = "RGB") -> None:
        self.layout = layout
        self.channel_order = channel_order
        self._indices: Tuple[int, int, int] = layout.channel_indices(channel_order)
        self._buffer = np.empty(0, dtype=np.float32)

    @property
    def capacity(self) -> int:
        return int(self._buffer.size)

    def ensure_capacity(self, elements: int) -> None:
        if elements > self._buffer.size:
            self._buffer = np.empty(elements, dtype=np.float32)

    def shrink_to_fit(self, elements: int = 0) -> None:
        """Release memory beyond ``elements``. Never call this from the frame loop."""
        if elements < self._buffer.size:
            self._buffer = np.empty(elements, dtype=np.float32)

    def normalize(self, frame: np.ndarray) -> np.ndarray:
        height, width = frame.shape[:2]
        frame = frame.reshape(height, width, self.layout.channels)
        required = height * width * 3
        self.ensure_capacity(required)

        tensor = self._buffer[:required].reshape(1, height, width, 3)
        for dst, src in enumerate(self._indices):
            np.divide(frame[:, :, src], _SCALE, out=tensor[0, :, :, dst])
        return tensor
