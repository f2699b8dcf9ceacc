from __future__ import annotations

from typing import Dict, Type

from ..config import PipelineConfig
from .base import RVMEngine
from .onnx_engine import RVMOnnxEngine
from .torchscript import RVMTorchScriptEngine

ENGINE_REGISTRY: Dict[str, Type[RVMEngine]] = {
    "onnx": RVMOnnxEngine,
    "torchscript": RVMTorchScriptEngine,
}


def load_engine(config: PipelineConfig) -> RVMEngine:
    return ENGINE_REGISTRY[config.backend].from_config(config)


__all__ = [
    "ENGINE_REGISTRY",
    "RVMEngine",
    "RVMOnnxEngine",
    "RVMTorchScriptEngine",
    "load_engine",
]
