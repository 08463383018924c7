"""Synthetic test images."""

import numpy as np

from pixelcore.buffer import PixelBuffer


def create_test_image(width=32, height=24, scene="interior", alpha=255, seed=7):
    """Create a synthetic RGBA test buffer."""
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[:, :, 3] = alpha

    if scene == "interior":
        # Dark walls, bright window upper right, warm floor
        img[:, :, :3] = [60, 55, 50]
        wx, wy = int(width * 0.6), int(height * 0.1)
        ww, wh = max(1, int(width * 0.3)), max(1, int(height * 0.4))
        img[wy:wy + wh, wx:wx + ww, :3] = [255, 255, 255]
        img[int(height * 0.7):, :, :3] = [80, 70, 60]

    elif scene == "gradient":
        # Horizontal ramp, dark left to bright right
        ramp = np.linspace(0, 255, width).astype(np.uint8)
        img[:, :, 0] = ramp
        img[:, :, 1] = ramp
        img[:, :, 2] = ramp[::-1]

    elif scene == "step":
        # Vertical edge down the middle
        img[:, :width // 2, :3] = 50
        img[:, width // 2:, :3] = 200

    elif scene == "noise":
        rng = np.random.default_rng(seed)
        img[:, :, :3] = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)

    else:
        raise ValueError(f"unknown scene: {scene}")

    return PixelBuffer.from_array(img)


def channels(buffer):
    """HxWx4 int array for easy arithmetic in assertions."""
    return buffer.to_array().astype(np.int32)
