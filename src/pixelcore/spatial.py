"""
Convolution & Spatial Filter Engine
===================================

Neighbourhood operations on RGB(A) pixel data:

1. Gaussian kernel generation (sigma = radius / 3)
2. Generic 2-D convolution with edge-clamped sampling
3. Unsharp mask (true high-pass: original + amount * (original - blurred))
4. Radial vignette
5. Film grain, median noise reduction, kernel sharpening
6. Edge-preserving (bilateral) smoothing

Each operation comes twice: a `*_rgb` function on float32 HxWx3 working
arrays (0..255) that the other engines compose, and a PixelBuffer wrapper
that leaves alpha untouched and returns a new buffer.

Convolution goes through cv2.filter2D, i.e. correlation with the kernel as
written; every kernel used here is symmetric or only its magnitude matters.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from pixelcore import config
from pixelcore.buffer import PixelBuffer, merge_channels, split_channels, to_uint8
from pixelcore.params import clamp_param

logger = logging.getLogger(__name__)

SHARPEN_KERNEL = np.array([
    [0, -1, 0],
    [-1, 5, -1],
    [0, -1, 0],
], dtype=np.float32)


@dataclass
class VignetteOptions:
    """Radial vignette. All values are percentages (0-100)."""
    enabled: bool = False
    intensity: float = 0.0
    size: float = 50.0
    roundness: float = 100.0  # 100 = circle, 0 = follows the frame's aspect ratio
    feather: float = 50.0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["VignetteOptions"]:
        if data is None:
            return None
        if isinstance(data, cls):
            return data
        known = ("enabled", "intensity", "size", "roundness", "feather")
        unknown = set(data) - set(known)
        if unknown:
            raise ValueError(f"unknown vignette options: {sorted(unknown)}")
        return cls(**{k: data[k] for k in known if k in data})


# ============================================================================
# KERNELS & CONVOLUTION
# ============================================================================

def gaussian_kernel(radius: float) -> np.ndarray:
    """
    Normalised (2r+1)x(2r+1) Gaussian kernel with sigma = r / 3.

    Fractional radii round up; radius 0 gives the 1x1 identity kernel.
    """
    r = int(math.ceil(max(0.0, float(radius))))
    if r == 0:
        return np.ones((1, 1), dtype=np.float64)

    sigma = r / 3
    y, x = np.mgrid[-r:r + 1, -r:r + 1]
    kernel = np.exp(-(x ** 2 + y ** 2) / (2 * sigma ** 2))
    return kernel / kernel.sum()


def _check_kernel(kernel) -> np.ndarray:
    kernel = np.asarray(kernel, dtype=np.float32)
    if kernel.ndim != 2 or kernel.shape[0] != kernel.shape[1] or kernel.shape[0] % 2 == 0:
        raise ValueError(f"kernel must be square with odd size, got shape {kernel.shape}")
    return kernel


def convolve_rgb(rgb: np.ndarray, kernel) -> np.ndarray:
    """Kernel-weighted neighbour sum, out-of-range samples clamp to the nearest edge."""
    kernel = _check_kernel(kernel)
    if kernel.shape == (1, 1):
        return np.clip(rgb * float(kernel[0, 0]), 0, 255)
    result = cv2.filter2D(
        np.ascontiguousarray(rgb, dtype=np.float32), -1, kernel,
        borderType=cv2.BORDER_REPLICATE,
    )
    return np.clip(result, 0, 255)


def gaussian_blur_rgb(rgb: np.ndarray, radius: float) -> np.ndarray:
    kernel = gaussian_kernel(radius)
    if kernel.shape == (1, 1):
        return rgb.copy()
    return convolve_rgb(rgb, kernel)


def unsharp_rgb(rgb: np.ndarray, amount: float, sharpen: bool = True,
                radius: float = config.UNSHARP_RADIUS) -> np.ndarray:
    """
    Unsharp mask.

    sharpen=True:  original + amount * (original - blurred)
    sharpen=False: original - amount * (original - blurred), amount capped at 1
                   so softening stops at the blurred image
    """
    if amount <= 0:
        return rgb.copy()
    blurred = gaussian_blur_rgb(rgb, radius)
    detail = rgb - blurred
    if sharpen:
        result = rgb + amount * detail
    else:
        result = rgb - min(amount, 1.0) * detail
    return np.clip(result, 0, 255)


# ============================================================================
# VIGNETTE
# ============================================================================

def vignette_mask(width: int, height: int, options: VignetteOptions) -> np.ndarray:
    """
    Per-pixel multiplier for a radial vignette.

    1 inside `size`, then a linear fade down to 1 - intensity across
    [size, size + feather]. Distance is measured from (w/2, h/2) and
    normalised so the corners sit at 1.
    """
    intensity = clamp_param(options.intensity, 0, 100, "vignette.intensity", default=0.0) / 100
    size = clamp_param(options.size, 0, 100, "vignette.size", default=50.0) / 100
    feather = clamp_param(options.feather, 0, 100, "vignette.feather", default=50.0) / 100
    roundness = clamp_param(options.roundness, 0, 100, "vignette.roundness", default=100.0) / 100

    cx, cy = width / 2, height / 2
    y, x = np.ogrid[:height, :width]
    dx = x - cx
    dy = y - cy

    circular = np.sqrt(dx ** 2 + dy ** 2) / math.sqrt(cx ** 2 + cy ** 2)
    elliptical = np.sqrt((dx / cx) ** 2 + (dy / cy) ** 2) / math.sqrt(2)
    distance = roundness * circular + (1 - roundness) * elliptical

    if feather > 0:
        fade = np.minimum(1.0, (distance - size) / feather)
    else:
        fade = np.ones_like(distance)

    mask = np.where(distance > size, 1 - fade * intensity, 1.0)
    return mask.astype(np.float32)


def apply_vignette_rgb(rgb: np.ndarray, options: VignetteOptions) -> np.ndarray:
    if not options.enabled:
        return rgb.copy()
    height, width = rgb.shape[:2]
    return rgb * vignette_mask(width, height, options)[:, :, np.newaxis]


# ============================================================================
# NOISE / DETAIL
# ============================================================================

def grain_rgb(rgb: np.ndarray, intensity: float, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Uniform luminance grain: one draw per pixel, added to R, G and B alike."""
    intensity = clamp_param(intensity, 0, 100, "grain", default=0.0) / 100
    if intensity == 0:
        return rgb.copy()
    rng = rng if rng is not None else np.random.default_rng()
    noise = (rng.random(rgb.shape[:2] + (1,), dtype=np.float32) - 0.5) * intensity * 50
    return np.clip(rgb + noise, 0, 255)


def reduce_noise_rgb(rgb: np.ndarray, strength: float) -> np.ndarray:
    """Median filter of radius floor(strength/20)+1, blended in by strength/100."""
    strength = clamp_param(strength, 0, 100, "noise.reduction", default=0.0)
    if strength == 0:
        return rgb.copy()
    radius = int(strength // 20) + 1
    median = cv2.medianBlur(to_uint8(rgb), 2 * radius + 1).astype(np.float32)
    return rgb + (median - rgb) * (strength / 100)


def sharpen_rgb(rgb: np.ndarray, strength: float) -> np.ndarray:
    """3x3 sharpening kernel, blended in by strength/100."""
    strength = clamp_param(strength, 0, 100, "noise.sharpen", default=0.0)
    if strength == 0:
        return rgb.copy()
    sharp = convolve_rgb(rgb, SHARPEN_KERNEL)
    return np.clip(rgb + (sharp - rgb) * (strength / 100), 0, 255)


def edge_preserving_rgb(rgb: np.ndarray, strength: float) -> np.ndarray:
    """Bilateral smoothing; strength 0-10 scales diameter and colour sigma."""
    if strength <= 0:
        return rgb.copy()
    diameter = int(min(15, 5 + round(strength)))
    sigma_color = 20 + strength * 8
    result = cv2.bilateralFilter(
        np.ascontiguousarray(rgb, dtype=np.float32), diameter, sigma_color, diameter,
        borderType=cv2.BORDER_REPLICATE,
    )
    return np.clip(result, 0, 255)


# ============================================================================
# BUFFER API
# ============================================================================

def _on_rgb(buffer: PixelBuffer, fn, *args, **kwargs) -> PixelBuffer:
    rgb, alpha = split_channels(buffer)
    return merge_channels(fn(rgb, *args, **kwargs), alpha)


def convolve(buffer: PixelBuffer, kernel) -> PixelBuffer:
    """Convolve RGB with `kernel` (edge-clamped); alpha passes through."""
    return _on_rgb(buffer, convolve_rgb, kernel)


def gaussian_blur(buffer: PixelBuffer, radius: float) -> PixelBuffer:
    return _on_rgb(buffer, gaussian_blur_rgb, radius)


def unsharp_mask(buffer: PixelBuffer, amount: float, sharpen: bool = True,
                 radius: float = config.UNSHARP_RADIUS) -> PixelBuffer:
    return _on_rgb(buffer, unsharp_rgb, amount, sharpen=sharpen, radius=radius)


def apply_vignette(buffer: PixelBuffer, options: VignetteOptions) -> PixelBuffer:
    return _on_rgb(buffer, apply_vignette_rgb, options)


def add_grain(buffer: PixelBuffer, intensity: float,
              rng: Optional[np.random.Generator] = None) -> PixelBuffer:
    return _on_rgb(buffer, grain_rgb, intensity, rng=rng)


def reduce_noise(buffer: PixelBuffer, strength: float) -> PixelBuffer:
    return _on_rgb(buffer, reduce_noise_rgb, strength)


def sharpen(buffer: PixelBuffer, strength: float) -> PixelBuffer:
    return _on_rgb(buffer, sharpen_rgb, strength)


def edge_preserving_smooth(buffer: PixelBuffer, strength: float) -> PixelBuffer:
    return _on_rgb(buffer, edge_preserving_rgb, strength)
