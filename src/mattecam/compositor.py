from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .frames import MatteResult


class Compositor:
    """
    Alpha-blends the matted foreground over the output buffer in place.

    ``channel_order`` is the order the model was fed; a BGR foreground is
    flipped back to RGB before blending.

    All intermediate arrays are allocated on the first frame and reused
    afterwards; they are only reallocated if the frame size changes.
    """

    def __init__(self, channel_order: str = "RGB") -> None:
        self.channel_order = channel_order
        self._shape: Optional[Tuple[int, int]] = None
        self._fgr_f32: Optional[np.ndarray] = None
        self._pha_f32: Optional[np.ndarray] = None
        self._fgr_u8: Optional[np.ndarray] = None
        self._pha_u8: Optional[np.ndarray] = None
        self._acc: Optional[np.ndarray] = None
        self._inv: Optional[np.ndarray] = None
        self._tmp: Optional[np.ndarray] = None

    def _ensure_buffers(self, height: int, width: int) -> None:
        if self._shape == (height, width):
            return
        self._fgr_f32 = np.empty((height, width, 3), dtype=np.float32)
        self._pha_f32 = np.empty((height, width, 1), dtype=np.float32)
        self._fgr_u8 = np.empty((height, width, 3), dtype=np.uint8)
        self._pha_u8 = np.empty((height, width, 1), dtype=np.uint8)
        self._acc = np.empty((height, width, 3), dtype=np.uint32)
        self._inv = np.empty((height, width, 1), dtype=np.uint32)
        self._tmp = np.empty((height, width, 3), dtype=np.uint32)
        self._shape = (height, width)

    @staticmethod
    def _to_u8(src: np.ndarray, work: np.ndarray, out: np.ndarray) -> np.ndarray:
        np.copyto(work, src, casting="same_kind")
        np.clip(work, 0.0, 1.0, out=work)
        np.multiply(work, np.float32(255.0), out=work)
        np.rint(work, out=work)
        np.copyto(out, work, casting="unsafe")
        return out

    def denormalize(self, matte: MatteResult) -> Tuple[np.ndarray, np.ndarray]:
        """Convert float model outputs into reusable ``uint8`` foreground and alpha buffers."""
        height, width = matte.foreground.shape[:2]
        self._ensure_buffers(height, width)
        alpha = matte.alpha.reshape(height, width, 1)
        foreground = matte.foreground
        if self.channel_order == "BGR":
            foreground = foreground[..., ::-1]
        fgr = self._to_u8(foreground, self._fgr_f32, self._fgr_u8)
        pha = self._to_u8(alpha, self._pha_f32, self._pha_u8)
        return fgr, pha

    def composite(
        self,
        foreground: np.ndarray,
        alpha: np.ndarray,
        background: np.ndarray,
    ) -> np.ndarray:
        """
        ``background = alpha * foreground + (1 - alpha) * background`` with 8-bit alpha.

        Rounded integer arithmetic keeps ``alpha == 0`` and ``alpha == 255``
        exact. ``background`` is overwritten and returned.
        """
        height, width = background.shape[:2]
        if foreground.shape[:2] != (height, width) or alpha.shape[:2] != (height, width):
            raise ValueError(
                f"Compositor inputs differ in size: fgr={foreground.shape} "
                f"pha={alpha.shape} bgr={background.shape}"
            )
        self._ensure_buffers(height, width)
        alpha = alpha.reshape(height, width, 1)

        acc, inv, tmp = self._acc, self._inv, self._tmp
        np.multiply(foreground, alpha, out=acc, dtype=np.uint32)
        np.subtract(255, alpha, out=inv, dtype=np.uint32)
        np.multiply(background, inv, out=tmp, dtype=np.uint32)
        np.add(acc, tmp, out=acc)
        np.add(acc, 127, out=acc)
        np.floor_divide(acc, 255, out=acc)
        np.copyto(background, acc, casting="unsafe")
        return background

    def apply(self, matte: MatteResult, background: np.ndarray) -> np.ndarray:
        fgr, pha = self.denormalize(matte)
        return self.composite(fgr, pha, background)
