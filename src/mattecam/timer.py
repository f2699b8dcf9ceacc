from __future__ import annotations

import time
from collections import defaultdict
from typing import Dict


class FrameTimer:
    """Accumulates per-stage timings and reports averages over a window of frames."""

    def __init__(self) -> None:
        self.frames = 0
        self._stages: Dict[str, float] = defaultdict(float)
        self._window_start = time.perf_counter()
        self._mark = self._window_start

    def start_frame(self) -> None:
        self._mark = time.perf_counter()

    def lap(self, stage: str) -> None:
        now = time.perf_counter()
        self._stages[stage] += (now - self._mark) * 1000.0
        self._mark = now

    def end_frame(self) -> None:
        self.frames += 1

    def summary(self) -> str:
        elapsed = time.perf_counter() - self._window_start
        fps = self.frames / elapsed if elapsed > 0 else 0.0
        parts = [f"frames={self.frames}", f"fps={fps:.2f}"]
        for stage, total_ms in self._stages.items():
            parts.append(f"{stage}={total_ms / max(1, self.frames):.2f}ms")
        return " ".join(parts)

    def reset(self) -> None:
        self.frames = 0
        self._stages.clear()
        self._window_start = time.perf_counter()
        self._mark = self._window_start
