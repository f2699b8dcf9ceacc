from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Tuple

import numpy as np
import torch

from ..errors import EngineError, ModelLoadError
from ..frames import MatteResult
from ..state import RecurrentState
from .base import RVMEngine

logger = logging.getLogger(__name__)


class RVMTorchScriptEngine(RVMEngine):
    """TorchScript-backed RobustVideoMatting, running under ``torch.inference_mode``."""

    BACKEND = "torchscript"
    WEIGHTS_EXTENSION = ".torchscript"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.module: Optional[torch.jit.ScriptModule] = None
        super().__init__(*args, **kwargs)

    @property
    def torch_device(self) -> torch.device:
        return torch.device(self.device)

    @property
    def torch_dtype(self) -> torch.dtype:
        return torch.float16 if self.precision == "fp16" else torch.float32

    def _load(self, path: Path) -> None:
        if self.device.startswith("cuda"):
            if not torch.cuda.is_available():
                raise ModelLoadError("CUDA is not available. Install PyTorch with CUDA support.")
            torch.backends.cudnn.benchmark = True
        try:
            module = torch.jit.load(str(path), map_location=self.torch_device)
        except Exception as exc:
            raise ModelLoadError(f"Cannot load {path}: {exc}") from exc
        module.eval()
        self.module = module

    def _as_state_input(self, value: Any) -> torch.Tensor:
        if isinstance(value, torch.Tensor):
            return value
        return torch.as_tensor(np.asarray(value)).to(self.torch_device, self.torch_dtype)

    def infer(
        self,
        tensor: np.ndarray,
        downsample_ratio: float,
        state: RecurrentState,
    ) -> Tuple[MatteResult, RecurrentState]:
        if self.module is None:
            raise EngineError("TorchScript module not initialized.")

        src = (
            torch.from_numpy(tensor)
            .permute(0, 3, 1, 2)
            .to(self.torch_device, self.torch_dtype, non_blocking=True)
        )
        rec = [self._as_state_input(value) for value in state.as_tuple()]

        try:
            with torch.inference_mode():
                fgr, pha, *rec = self.module(src, *rec, downsample_ratio)
        except Exception as exc:
            raise EngineError(f"TorchScript inference failed on {self.model_name}: {exc}") from exc

        matte = MatteResult(
            foreground=fgr[0].permute(1, 2, 0).float().cpu().numpy(),
            alpha=pha[0].permute(1, 2, 0).float().cpu().numpy(),
        )
        return matte, RecurrentState.from_sequence(rec)
