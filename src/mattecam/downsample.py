from __future__ import annotations

DOWNSAMPLE_THRESHOLD = 512
DOWNSAMPLE_MARGIN = 1.06


def auto_downsample_ratio(
    height: int,
    width: int,
    threshold: int = DOWNSAMPLE_THRESHOLD,
    margin: float = DOWNSAMPLE_MARGIN,
) -> float:
    """
    Internal-resolution hint passed to the matting network.

    Frames whose longest side reaches ``threshold`` are processed by the model
    at roughly ``threshold`` pixels, minus a small ``margin`` so the network never
    runs exactly at the threshold resolution. Smaller frames run at full size.
    """
    longest = max(height, width)
    if longest >= threshold:
        return threshold / (longest * margin)
    return 1.0
