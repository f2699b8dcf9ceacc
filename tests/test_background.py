import numpy as np
import pytest
from PIL import Image

from mattecam.background import BlurredBackground, StaticBackground, build_background
from mattecam.config import PipelineConfig
from mattecam.errors import ConfigError
from mattecam.frames import PixelLayout, StreamFormat


def _stream(width=8, height=6, layout=PixelLayout.RGB):
    return StreamFormat(width=width, height=height, layout=layout, fps=30.0)


def test_static_image_is_resized_to_capture_resolution(tmp_path):
    path = tmp_path / "bg.png"
    Image.new("RGB", (32, 20), (12, 34, 56)).save(path)
    background = StaticBackground.from_path(path)

    background.prepare(_stream(8, 6))
    out = background.render(np.zeros((6, 8, 3), dtype=np.uint8))

    assert out.shape == (6, 8, 3)
    np.testing.assert_allclose(out, np.broadcast_to([12, 34, 56], out.shape), atol=1)


def test_static_background_survives_compositing():
    background = StaticBackground.from_color((1, 2, 3))
    background.prepare(_stream())

    out = background.render(None)
    out[:] = 255
    again = background.render(None)

    assert again is out
    np.testing.assert_array_equal(again[0, 0], (1, 2, 3))


def test_missing_image_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError):
        StaticBackground.from_path(tmp_path / "nope.jpg")


def test_blur_of_uniform_frame_is_uniform():
    background = BlurredBackground(radius=12)
    background.prepare(_stream(64, 64, PixelLayout.BGR))
    raw = np.empty((64, 64, 3), dtype=np.uint8)
    raw[:] = (30, 20, 10)

    out = background.render(raw)

    assert out is background.output
    np.testing.assert_array_equal(out[32, 32], (10, 20, 30))


def test_blur_smooths_edges():
    background = BlurredBackground(radius=3)
    background.prepare(_stream(32, 32))
    raw = np.zeros((32, 32, 3), dtype=np.uint8)
    raw[:, 16:] = 255

    out = background.render(raw)

    assert 0 < out[16, 15, 0] < 255
    assert 0 < out[16, 16, 0] < 255


def test_build_background_follows_mode(tmp_path):
    assert isinstance(build_background(PipelineConfig()), BlurredBackground)
    assert isinstance(
        build_background(PipelineConfig(background_mode="color")), StaticBackground
    )


def test_blur_does_not_reach_past_radius():
    radius = 3
    background = BlurredBackground(radius=radius)
    background.prepare(_stream(33, 33))
    raw = np.zeros((33, 33, 3), dtype=np.uint8)
    raw[16, 16] = 255

    out = background.render(raw)

    assert out[16, 16 + radius, 0] > 0
    assert out[16 + radius, 16, 0] > 0
    assert out[16, 16 + radius + 1, 0] == 0
    assert out[16 + radius + 1, 16, 0] == 0
    assert out[16 - radius - 1, 16 - radius - 1, 0] == 0
