import numpy as np

from mattecam.frames import PixelLayout
from mattecam.normalizer import FrameNormalizer


def test_every_byte_round_trips():
    values = np.arange(256, dtype=np.uint8)
    frame = np.stack([values, values, values], axis=-1).reshape(16, 16, 3)

    tensor = FrameNormalizer().normalize(frame)

    assert tensor.shape == (1, 16, 16, 3)
    assert tensor.dtype == np.float32
    assert tensor.min() >= 0.0 and tensor.max() <= 1.0
    restored = np.rint(tensor[0] * 255).astype(np.uint8)
    np.testing.assert_array_equal(restored, frame)


def test_alpha_channel_is_dropped():
    frame = np.zeros((2, 3, 4), dtype=np.uint8)
    frame[..., 0] = 255
    frame[..., 3] = 17

    tensor = FrameNormalizer(PixelLayout.RGBA).normalize(frame)

    assert tensor.shape == (1, 2, 3, 3)
    np.testing.assert_allclose(tensor[0, :, :, 0], 1.0)
    np.testing.assert_allclose(tensor[0, :, :, 1:], 0.0)


def test_bgr_source_is_reordered_to_rgb():
    frame = np.zeros((1, 1, 3), dtype=np.uint8)
    frame[0, 0] = (10, 20, 30)  # B, G, R

    tensor = FrameNormalizer(PixelLayout.BGR).normalize(frame)

    np.testing.assert_allclose(tensor[0, 0, 0] * 255, (30, 20, 10), atol=1e-4)


def test_bgr_model_order():
    frame = np.zeros((1, 1, 4), dtype=np.uint8)
    frame[0, 0] = (10, 20, 30, 255)  # R, G, B, A

    tensor = FrameNormalizer(PixelLayout.RGBA, channel_order="BGR").normalize(frame)

    np.testing.assert_allclose(tensor[0, 0, 0] * 255, (30, 20, 10), atol=1e-4)


def test_capacity_only_grows():
    normalizer = FrameNormalizer()
    observed = []
    for elements in [100, 50, 200, 10]:
        normalizer.ensure_capacity(elements)
        observed.append(normalizer.capacity)
    assert observed == [100, 100, 200, 200]


def test_smaller_frame_reuses_buffer():
    normalizer = FrameNormalizer()
    big = normalizer.normalize(np.full((4, 4, 3), 255, dtype=np.uint8))
    capacity = normalizer.capacity

    small = normalizer.normalize(np.zeros((2, 2, 3), dtype=np.uint8))

    assert normalizer.capacity == capacity == 48
    assert small.size == 12
    assert np.shares_memory(big, small)
    np.testing.assert_array_equal(small, 0.0)


def test_shrink_to_fit_releases_memory():
    normalizer = FrameNormalizer()
    normalizer.ensure_capacity(300)
    normalizer.shrink_to_fit(30)
    assert normalizer.capacity == 30
    normalizer.shrink_to_fit(100)
    assert normalizer.capacity == 30
