from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import onnxruntime as ort

from ..errors import EngineError, ModelLoadError
from ..frames import MatteResult
from ..state import RecurrentState
from .base import RVMEngine

logger = logging.getLogger(__name__)

INPUT_NAMES = ("src", "r1i", "r2i", "r3i", "r4i", "downsample_ratio")
OUTPUT_NAMES = ("fgr", "pha", "r1o", "r2o", "r3o", "r4o")

Provider = Union[str, Tuple[str, Dict[str, Any]]]


class RVMOnnxEngine(RVMEngine):
    """onnxruntime-backed RobustVideoMatting."""

    BACKEND = "onnx"
    WEIGHTS_EXTENSION = ".onnx"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.session: Optional[ort.InferenceSession] = None
        self.dtype = np.float32
        self._src: Optional[np.ndarray] = None
        self._ratio = np.zeros(1, dtype=np.float32)
        super().__init__(*args, **kwargs)

    def _load(self, path: Path) -> None:
        session_options = ort.SessionOptions()
        session_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        session_options.execution_mode = ort.ExecutionMode.ORT_SEQUENTIAL

        try:
            session = ort.InferenceSession(
                path.as_posix(),
                sess_options=session_options,
                providers=self._build_providers(),
            )
        except Exception as exc:
            raise ModelLoadError(f"Cannot load {path}: {exc}") from exc

        inputs = {item.name: item for item in session.get_inputs()}
        outputs = {item.name for item in session.get_outputs()}
        missing = [name for name in INPUT_NAMES if name not in inputs]
        missing += [name for name in OUTPUT_NAMES if name not in outputs]
        if missing:
            raise EngineError(
                f"{path.name} does not expose the expected signature; missing: {missing}"
            )

        if "float16" in inputs["src"].type:
            self.dtype = np.float16
        self._ratio = np.zeros(1, dtype=np.float32)
        if self.device.startswith("cuda") and "CUDAExecutionProvider" not in session.get_providers():
            logger.warning(
                "CUDAExecutionProvider unavailable; running on %s", session.get_providers()
            )
        logger.info("ONNX providers: %s", session.get_providers())
        self.session = session

    def _build_providers(self) -> List[Provider]:
        available = set(ort.get_available_providers())
        providers: List[Provider] = []
        if self.device.startswith("cuda") and "CUDAExecutionProvider" in available:
            _, _, index = self.device.partition(":")
            cuda_options = {
                "device_id": int(index or 0),
                "arena_extend_strategy": "kNextPowerOfTwo",
                "cudnn_conv_use_max_workspace": "1",
                "do_copy_in_default_stream": "1",
            }
            providers.append(("CUDAExecutionProvider", cuda_options))
        providers.append("CPUExecutionProvider")
        return providers

    def _prepare_src(self, tensor: np.ndarray) -> np.ndarray:
        _, height, width, channels = tensor.shape
        shape = (1, channels, height, width)
        if self._src is None or self._src.shape != shape:
            self._src = np.empty(shape, dtype=self.dtype)
        np.copyto(self._src, tensor.transpose(0, 3, 1, 2), casting="same_kind")
        return self._src

    def _as_state_input(self, value: Any) -> np.ndarray:
        value = np.asarray(value)
        if value.dtype != self.dtype:
            value = value.astype(self.dtype)
        return value

    def infer(
        self,
        tensor: np.ndarray,
        downsample_ratio: float,
        state: RecurrentState,
    ) -> Tuple[MatteResult, RecurrentState]:
        if self.session is None:
            raise EngineError("ONNX session not initialized.")

        self._ratio[0] = downsample_ratio
        feeds = {"src": self._prepare_src(tensor), "downsample_ratio": self._ratio}
        for name, value in zip(INPUT_NAMES[1:5], state.as_tuple()):
            feeds[name] = self._as_state_input(value)

        try:
            fgr, pha, *rec = self.session.run(list(OUTPUT_NAMES), feeds)
        except Exception as exc:
            raise EngineError(f"onnxruntime failed on {self.model_name}: {exc}") from exc

        matte = MatteResult(
            foreground=fgr[0].transpose(1, 2, 0),
            alpha=pha[0].transpose(1, 2, 0),
        )
        return matte, RecurrentState.from_sequence(rec)
