from __future__ import annotations

import enum
import logging
from typing import Optional

import numpy as np

from .background import BackgroundPolicy
from .compositor import Compositor
from .config import PipelineConfig
from .downsample import auto_downsample_ratio
from .errors import CaptureError, EngineError, MatteCamError, SinkError
from .frames import FrameSink, FrameSource, InferenceEngine, MatteResult, StreamFormat
from .normalizer import FrameNormalizer
from .state import RecurrentStateStore
from .timer import FrameTimer

logger = logging.getLogger(__name__)


class PipelineState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    WARMING = "warming"
    STEADY = "steady"
    STOPPED = "stopped"


class StopReason(str, enum.Enum):
    ERROR = "error"
    SHUTDOWN = "shutdown"


class PipelineDriver:
    """
    Runs the capture -> normalize -> infer -> composite -> emit cycle.

    Everything happens on the calling thread, one frame at a time, in capture
    order. Any capture, inference or sink failure stops the driver and is
    re-raised; nothing is retried because a skipped frame would leave the
    recurrent state out of step with the video.
    """

    def __init__(
        self,
        config: PipelineConfig,
        source: FrameSource,
        engine: InferenceEngine,
        sink: FrameSink,
        background: BackgroundPolicy,
    ) -> None:
        self.config = config
        self.source = source
        self.engine = engine
        self.sink = sink
        self.background = background
        self.compositor = Compositor(config.channel_order)
        self.timer = FrameTimer()

        self.state = PipelineState.UNINITIALIZED
        self.stop_reason: Optional[StopReason] = None
        self.error: Optional[BaseException] = None
        self.frames_emitted = 0

        self.stream: Optional[StreamFormat] = None
        self.normalizer: Optional[FrameNormalizer] = None
        self.store: Optional[RecurrentStateStore] = None

    def start(self) -> None:
        """Negotiate the session, then discard ``warmup_frames`` captures."""
        if self.state is not PipelineState.UNINITIALIZED:
            raise RuntimeError(f"Cannot start a pipeline in state {self.state.value}")

        try:
            stream = self.source.stream_format()
        except CaptureError:
            raise
        except Exception as exc:
            raise CaptureError(f"Cannot query the capture format: {exc}") from exc

        logger.info(
            "Capture stream: %dx%d %s @ %.1f fps",
            stream.width,
            stream.height,
            stream.layout.value,
            stream.fps,
        )
        self.stream = stream
        self.normalizer = FrameNormalizer(stream.layout, self.config.channel_order)
        self.normalizer.ensure_capacity(stream.width * stream.height * 3)
        self.store = RecurrentStateStore()
        self.background.prepare(stream)

        self.state = PipelineState.WARMING
        for _ in range(self.config.warmup_frames):
            self._acquire()
        logger.debug("Warm-up done after %d discarded frames", self.config.warmup_frames)
        self.state = PipelineState.STEADY
        self.timer.reset()

    def _acquire(self) -> np.ndarray:
        try:
            frame = self.source.acquire_frame()
        except CaptureError:
            raise
        except Exception as exc:
            raise CaptureError(f"Frame acquisition failed: {exc}") from exc

        if frame is None:
            raise CaptureError("Capture device returned no frame.")
        if frame.shape != self.stream.frame_shape:
            raise CaptureError(
                f"Frame shape {frame.shape} does not match the negotiated "
                f"format {self.stream.frame_shape}; restart the session."
            )
        return frame

    def step(self) -> np.ndarray:
        """Process exactly one frame and return the emitted output buffer."""
        if self.state is not PipelineState.STEADY:
            raise RuntimeError(f"Pipeline is not running (state: {self.state.value})")

        timer = self.timer
        timer.start_frame()
        frame = self._acquire()
        timer.lap("capture")

        tensor = self.normalizer.normalize(frame)
        ratio = auto_downsample_ratio(
            self.stream.height,
            self.stream.width,
            threshold=self.config.downsample_threshold,
            margin=self.config.downsample_margin,
        )
        timer.lap("normalize")

        try:
            matte, new_state = self.engine.infer(tensor, ratio, self.store.state)
        except EngineError:
            raise
        except Exception as exc:
            raise EngineError(f"Inference failed: {exc}") from exc
        self._check_matte(matte)
        self.store.update(new_state)
        timer.lap("infer")

        output = self.background.render(frame)
        self.compositor.apply(matte, output)
        timer.lap("composite")

        try:
            self.sink.write_frame(output)
        except SinkError:
            raise
        except Exception as exc:
            raise SinkError(f"Writing to the output sink failed: {exc}") from exc
        timer.lap("emit")
        timer.end_frame()

        self.frames_emitted += 1
        interval = self.config.stats_interval
        if interval and timer.frames >= interval:
            logger.info("[timing] %s", timer.summary())
            timer.reset()
        return output

    def _check_matte(self, matte: MatteResult) -> None:
        extent = (self.stream.height, self.stream.width)
        fgr_shape = tuple(matte.foreground.shape)
        pha_shape = tuple(matte.alpha.shape)
        if (
            fgr_shape != (*extent, 3)
            or pha_shape[:2] != extent
            or int(np.prod(pha_shape)) != extent[0] * extent[1]
        ):
            raise EngineError(
                f"Engine returned fgr={fgr_shape} pha={pha_shape} for a "
                f"{extent[1]}x{extent[0]} frame"
            )

    def run(self) -> int:
        """
        Start the session and loop until ``max_frames`` or SIGINT.

        Returns the number of emitted frames. Fatal errors are re-raised after
        the driver has moved to ``STOPPED``.
        """
        try:
            if self.state is PipelineState.UNINITIALIZED:
                self.start()
            limit = self.config.max_frames
            while not limit or self.frames_emitted < limit:
                self.step()
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
            self._stop(StopReason.SHUTDOWN)
            return self.frames_emitted
        except MatteCamError as exc:
            self._stop(StopReason.ERROR, exc)
            raise
        self._stop(StopReason.SHUTDOWN)
        return self.frames_emitted

    def _stop(self, reason: StopReason, error: Optional[BaseException] = None) -> None:
        self.state = PipelineState.STOPPED
        self.stop_reason = reason
        self.error = error
