from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import ClassVar, Optional, Tuple

import numpy as np

from ..config import RELEASE_URL, PipelineConfig
from ..errors import ModelLoadError
from ..frames import MatteResult
from ..state import RecurrentState
from ..utils.downloads import download_file, sha256_file

logger = logging.getLogger(__name__)


class RVMEngine(abc.ABC):
    """
    Abstract base class for RobustVideoMatting inference backends.

    The model is loaded once on construction. :meth:`infer` is a blocking call
    that maps ``(frame, downsample_ratio, state)`` to
    ``(MatteResult, new_state)`` and raises ``EngineError`` on failure.
    """

    BACKEND: ClassVar[str]
    WEIGHTS_EXTENSION: ClassVar[str]
    WEIGHTS_SHA256: ClassVar[Optional[str]] = None

    def __init__(
        self,
        weights_root: Path,
        model: str = "mobilenetv3",
        precision: str = "fp32",
        device: str = "cpu",
    ) -> None:
        self.model_name = f"rvm_{model}_{precision}"
        self.precision = precision
        self.device = device
        self.weights = self.ensure_weights(Path(weights_root))
        self._load(self.weights)
        logger.info("Loaded %s (%s) on %s", self.model_name, self.BACKEND, device)

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "RVMEngine":
        return cls(config.weights_dir, config.model, config.precision, config.device)

    @property
    def weights_filename(self) -> str:
        return f"{self.model_name}{self.WEIGHTS_EXTENSION}"

    @property
    def weights_url(self) -> str:
        return f"{RELEASE_URL}/{self.weights_filename}"

    def ensure_weights(self, root: Path) -> Path:
        path = root.expanduser() / self.weights_filename
        if path.exists() and path.stat().st_size > 0:
            if not self.WEIGHTS_SHA256 or sha256_file(path) == self.WEIGHTS_SHA256.lower():
                return path

        logger.info("Model %s not cached, downloading from %s", self.weights_filename, self.weights_url)
        try:
            return download_file(self.weights_url, path, self.WEIGHTS_SHA256)
        except Exception as exc:  # pragma: no cover - network failure is runtime only
            raise ModelLoadError(f"Cannot fetch model '{self.model_name}': {exc}") from exc

    @abc.abstractmethod
    def _load(self, path: Path) -> None:
        ...

    @abc.abstractmethod
    def infer(
        self,
        tensor: np.ndarray,
        downsample_ratio: float,
        state: RecurrentState,
    ) -> Tuple[MatteResult, RecurrentState]:
        ...
