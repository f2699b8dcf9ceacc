from __future__ import annotations

from typing import List, Optional

import numpy as np
import pytest

from mattecam.errors import EngineError
from mattecam.frames import MatteResult, PixelLayout, StreamFormat
from mattecam.state import RecurrentState


class FakeSource:
    def __init__(self, frames: List[np.ndarray], layout: PixelLayout = PixelLayout.RGB, fps: float = 30.0):
        self.frames = list(frames)
        height, width = frames[0].shape[:2]
        self._format = StreamFormat(width=width, height=height, layout=layout, fps=fps)
        self.acquired = 0

    def stream_format(self) -> StreamFormat:
        return self._format

    def acquire_frame(self) -> np.ndarray:
        if self.acquired >= len(self.frames):
            raise RuntimeError("end of synthetic stream")
        frame = self.frames[self.acquired]
        self.acquired += 1
        return frame


class CountingEngine:
    """Returns a fixed matte and ``state + 1`` for every slot."""

    def __init__(self, fgr_value: int = 200, pha_value: int = 128, fail_on: Optional[int] = None):
        self.fgr_value = fgr_value
        self.pha_value = pha_value
        self.fail_on = fail_on
        self.calls = 0
        self.ratios: List[float] = []
        self.seen_states: List[float] = []

    def infer(self, tensor, downsample_ratio, state):
        self.calls += 1
        if self.fail_on is not None and self.calls == self.fail_on:
            raise EngineError("backend exploded")
        self.ratios.append(downsample_ratio)
        self.seen_states.append(float(np.asarray(state.r1).ravel()[0]))
        _, height, width, _ = tensor.shape
        matte = MatteResult(
            foreground=np.full((height, width, 3), self.fgr_value / 255.0, dtype=np.float32),
            alpha=np.full((height, width, 1), self.pha_value / 255.0, dtype=np.float32),
        )
        new_state = RecurrentState.from_sequence([np.asarray(v) + 1 for v in state.as_tuple()])
        return matte, new_state


class RecordingSink:
    def __init__(self, fail_on: Optional[int] = None):
        self.frames: List[np.ndarray] = []
        self.fail_on = fail_on
        self.attempts = 0

    def write_frame(self, frame: np.ndarray) -> None:
        self.attempts += 1
        if self.fail_on is not None and self.attempts == self.fail_on:
            raise OSError("device buffer full")
        self.frames.append(frame.copy())


def solid_frames(count: int, value: int = 50, size=(2, 2), channels: int = 3) -> List[np.ndarray]:
    height, width = size
    return [np.full((height, width, channels), value, dtype=np.uint8) for _ in range(count)]


@pytest.fixture
def make_source():
    return FakeSource


@pytest.fixture
def make_engine():
    return CountingEngine


@pytest.fixture
def make_sink():
    return RecordingSink


@pytest.fixture
def frames():
    return solid_frames
