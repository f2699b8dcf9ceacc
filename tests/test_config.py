from pathlib import Path

import pytest

from mattecam.config import PipelineConfig, parse_color
from mattecam.errors import ConfigError


def test_defaults_are_valid():
    config = PipelineConfig()
    assert config.background_mode == "blur"
    assert config.blur_radius == 12
    assert config.artifact_stem == "rvm_mobilenetv3_fp32"
    assert not config.uses_cuda


@pytest.mark.parametrize(
    "overrides",
    [
        {"model": "vgg16"},
        {"backend": "tensorflow"},
        {"precision": "int8"},
        {"precision": "fp16", "device": "cpu"},
        {"width": 640},
        {"width": 0, "height": 480},
        {"fps": -1},
        {"background_mode": "image"},
        {"background_mode": "video"},
        {"background_color": (0, 0, 300)},
        {"warmup_frames": -1},
        {"channel_order": "GRB"},
        {"blur_radius": 0},
    ],
)
def test_invalid_values_raise_config_error(overrides):
    with pytest.raises(ConfigError):
        PipelineConfig(**overrides)


def test_fp16_on_cuda():
    config = PipelineConfig(precision="fp16", device="cuda:1", model="resnet50")
    assert config.artifact_stem == "rvm_resnet50_fp16"


def test_config_is_immutable():
    config = PipelineConfig()
    with pytest.raises(AttributeError):
        config.fps = 60


def test_image_mode_with_path():
    config = PipelineConfig(background_mode="image", background_image=Path("bg.jpg"))
    assert config.background_image == Path("bg.jpg")


def test_parse_color():
    assert parse_color("#00b140") == (0, 177, 64)
    assert parse_color("FFFFFF") == (255, 255, 255)
    with pytest.raises(ConfigError):
        parse_color("#abc")
    with pytest.raises(ConfigError):
        parse_color("zzzzzz")
