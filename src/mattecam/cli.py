from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .background import build_background
from .capture import CameraSource, list_devices
from .config import BACKENDS, MODEL_VARIANTS, PipelineConfig, parse_color
from .engines import load_engine
from .errors import ConfigError, MatteCamError
from .pipeline import PipelineDriver
from .sink import VirtualCameraSink

logger = logging.getLogger("mattecam")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Virtual camera that replaces or blurs your background using RobustVideoMatting.",
    )
    parser.add_argument(
        "-l",
        "--list",
        dest="list_devices",
        action="store_true",
        help="List video capture devices present on the system and exit.",
    )
    parser.add_argument(
        "--camera-index",
        type=int,
        default=0,
        help="Capture device index, in case several cameras are connected.",
    )
    parser.add_argument(
        "-W",
        "--width",
        type=int,
        default=None,
        help="Desired capture width. Falls back to the device's mode if unavailable.",
    )
    parser.add_argument(
        "-H",
        "--height",
        type=int,
        default=None,
        help="Desired capture height. Falls back to the device's mode if unavailable.",
    )
    parser.add_argument(
        "--fps",
        type=int,
        default=None,
        help="Desired capture framerate. Falls back to the device's mode if unavailable.",
    )
    parser.add_argument(
        "--model",
        default="mobilenetv3",
        choices=MODEL_VARIANTS,
        help="RobustVideoMatting variant.",
    )
    parser.add_argument(
        "--backend",
        default="onnx",
        choices=BACKENDS,
        help="Inference runtime.",
    )
    parser.add_argument(
        "--fp16",
        dest="precision",
        action="store_const",
        const="fp16",
        default="fp32",
        help="Use the half precision model (CUDA only).",
    )
    parser.add_argument(
        "--device",
        default="cpu",
        help="Inference device, e.g. cpu, cuda or cuda:1.",
    )
    parser.add_argument(
        "--weights-dir",
        type=Path,
        default=Path("~/.cache/mattecam").expanduser(),
        help="Directory used to cache downloaded models.",
    )
    background = parser.add_mutually_exclusive_group()
    background.add_argument(
        "--background",
        type=Path,
        default=None,
        help="Replace the background with this image instead of blurring it.",
    )
    background.add_argument(
        "--color",
        type=str,
        default=None,
        help="Replace the background with a solid colour (#RRGGBB).",
    )
    parser.add_argument(
        "--blur-radius",
        type=int,
        default=12,
        help="Gaussian blur radius in pixels for the default blurred background.",
    )
    parser.add_argument(
        "--warmup",
        type=int,
        default=15,
        help="Frames discarded while the camera settles exposure and focus.",
    )
    parser.add_argument(
        "--bgr-model",
        action="store_true",
        help="Feed the model BGR instead of RGB channels.",
    )
    parser.add_argument(
        "--output-device",
        type=str,
        default=None,
        help="Virtual camera device to write to, e.g. /dev/video2.",
    )
    parser.add_argument(
        "--stats-interval",
        type=int,
        default=300,
        help="Frames between throughput reports (0 disables).",
    )
    parser.add_argument(
        "--max-frames",
        type=int,
        default=0,
        help="Stop after N frames (0 = run until interrupted).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    if args.background is not None:
        mode = "image"
    elif args.color is not None:
        mode = "color"
    else:
        mode = "blur"
    extra = {}
    if args.color is not None:
        extra["background_color"] = parse_color(args.color)
    return PipelineConfig(
        camera_index=args.camera_index,
        width=args.width,
        height=args.height,
        fps=args.fps,
        model=args.model,
        precision=args.precision,
        backend=args.backend,
        device=args.device,
        weights_dir=args.weights_dir.expanduser(),
        background_mode=mode,
        background_image=args.background,
        blur_radius=args.blur_radius,
        warmup_frames=args.warmup,
        channel_order="BGR" if args.bgr_model else "RGB",
        stats_interval=args.stats_interval,
        max_frames=args.max_frames,
        **extra,
    )


def print_devices() -> None:
    devices = list_devices()
    if not devices:
        print("No devices found on the system!")
        return
    print(f"Found {len(devices)} device(s) currently connected to this system:")
    for device in devices:
        print(
            f"  Index #{device.index}: {device.width}x{device.height}"
            f"@{device.fps:.0f}fps via {device.backend}"
        )


def run(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_devices:
        print_devices()
        return

    try:
        config = build_config(args)
        background = build_background(config)
    except ConfigError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    try:
        engine = load_engine(config)
        with CameraSource.from_config(config) as source:
            with VirtualCameraSink(source.stream_format(), args.output_device) as sink:
                driver = PipelineDriver(config, source, engine, sink, background)
                frames = driver.run()
    except MatteCamError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        raise SystemExit(1) from exc

    logger.info("Stopped after %d frames", frames)


if __name__ == "__main__":
    run()
