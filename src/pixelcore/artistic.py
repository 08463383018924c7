"""
Artistic Effect Engine
======================

Composite "look" filters built on the tonal and spatial engines:

- oil_painting:   local mode filter over quantised colour buckets
- watercolor:     blur -> edge-preserving smoothing -> posterize
- pencil_sketch:  grayscale -> invert -> blur -> colour dodge
- cartoon:        posterize + darkened Sobel edges
- vintage:        warm cast, muted contrast, soft vignette
- hdr:            unsharp mask + normalised Reinhard tone map
- cross_process:  per-channel film curves
- orton:          blurred bright copy screen-blended over the original
- tilt_shift:     sharp horizontal band, blur elsewhere, saturation lift

Every effect takes a float32 HxWx3 working array and an intensity factor
f = intensity / 100. Alpha is carried over untouched.
"""

import logging
import time
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from pixelcore import config
from pixelcore.buffer import PixelBuffer, merge_channels, split_channels
from pixelcore.color_space import luma601
from pixelcore.errors import UnsupportedFilterWarning
from pixelcore.params import clamp_param
from pixelcore.spatial import (
    VignetteOptions, apply_vignette_rgb, edge_preserving_rgb, gaussian_blur_rgb, unsharp_rgb,
)

logger = logging.getLogger(__name__)


class FilterType(str, Enum):
    OIL_PAINTING = "oil_painting"
    WATERCOLOR = "watercolor"
    PENCIL_SKETCH = "pencil_sketch"
    CARTOON = "cartoon"
    VINTAGE = "vintage"
    HDR = "hdr"
    CROSS_PROCESS = "cross_process"
    ORTON = "orton"
    TILT_SHIFT = "tilt_shift"


@dataclass
class ArtisticFilter:
    """
    One artistic effect.

    `type` may be a FilterType or a raw tag string; tags that name no known
    effect are reported as unsupported rather than rejected.
    """
    type: Union[FilterType, str]
    intensity: float = 50.0
    parameters: Dict[str, Any] = field(default_factory=dict)
    name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtisticFilter":
        return cls(
            type=data["type"],
            intensity=data.get("intensity", 50.0),
            parameters=dict(data.get("parameters") or {}),
            name=data.get("name", ""),
        )


def _filter_type(tag) -> Optional[FilterType]:
    if isinstance(tag, FilterType):
        return tag
    try:
        return FilterType(tag)
    except ValueError:
        return None


def is_supported(tag) -> bool:
    """Whether `tag` names an implemented effect."""
    return _filter_type(tag) is not None


# ============================================================================
# SHARED HELPERS
# ============================================================================

def posterize_rgb(rgb: np.ndarray, levels: int) -> np.ndarray:
    """Quantise each channel to `levels` evenly spaced values (levels >= 2)."""
    step = 255 / (max(2, int(levels)) - 1)
    return np.floor(rgb / step + 0.5) * step


def sobel_magnitude(rgb: np.ndarray) -> np.ndarray:
    """Sobel gradient magnitude of the Rec.601 grayscale, clamped to 0..255."""
    gray = np.ascontiguousarray(luma601(rgb), dtype=np.float32)
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3, borderType=cv2.BORDER_REPLICATE)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3, borderType=cv2.BORDER_REPLICATE)
    return np.minimum(255, np.sqrt(gx ** 2 + gy ** 2))


# ============================================================================
# EFFECTS
# ============================================================================

def oil_painting_rgb(rgb: np.ndarray, intensity: float) -> np.ndarray:
    """
    Local mode filter.

    Each neighbour in the (2r+1)^2 window is bucketed by floor(v / smoothness)
    per channel; the pixel becomes the mean colour of the most populous
    bucket. Ties go to the bucket whose first member comes earliest in
    row-major window order. Neighbours outside the image are skipped.
    """
    radius = int(intensity // 10) + 1
    smoothness = max(1.0, intensity / 10)
    height, width = rgb.shape[:2]
    size = 2 * radius + 1
    k = size * size
    invalid = np.int32(1 << 30)

    quant = np.floor(rgb / smoothness).astype(np.int32)
    keys = (quant[:, :, 0] << 16) | (quant[:, :, 1] << 8) | quant[:, :, 2]
    keys = np.pad(keys, radius, mode="constant", constant_values=invalid)
    colors = np.pad(rgb, ((radius, radius), (radius, radius), (0, 0)), mode="constant")

    rows_per_chunk = max(1, config.OIL_CHUNK_SAMPLES // max(1, width * k))
    out = np.empty_like(rgb, dtype=np.float32)
    positions = np.arange(k)

    for y0 in range(0, height, rows_per_chunk):
        y1 = min(height, y0 + rows_per_chunk)
        win_keys = sliding_window_view(keys[y0:y1 + 2 * radius], (size, size))
        win_keys = win_keys.reshape(y1 - y0, width, k)
        win_colors = sliding_window_view(colors[y0:y1 + 2 * radius], (size, size), axis=(0, 1))
        win_colors = win_colors.reshape(y1 - y0, width, 3, k)

        order = np.argsort(win_keys, axis=-1, kind="stable")
        ranked = np.take_along_axis(win_keys, order, axis=-1)

        starts = np.ones(ranked.shape, dtype=bool)
        starts[..., 1:] = ranked[..., 1:] != ranked[..., :-1]
        ends = np.ones(ranked.shape, dtype=bool)
        ends[..., :-1] = starts[..., 1:]

        run_start = np.maximum.accumulate(np.where(starts, positions, 0), axis=-1)
        run_end = np.minimum.accumulate(np.where(ends, positions, k)[..., ::-1], axis=-1)[..., ::-1]
        run_length = run_end - run_start + 1
        first_seen = np.take_along_axis(order, run_start, axis=-1)

        score = run_length.astype(np.int64) * (k + 1) - first_seen
        score = np.where(ranked == invalid, -1, score)
        best = np.argmax(score, axis=-1)[..., np.newaxis]
        winner = np.take_along_axis(ranked, best, axis=-1)

        members = win_keys == winner
        count = members.sum(axis=-1)
        total = (win_colors * members[:, :, np.newaxis, :]).sum(axis=-1)
        out[y0:y1] = total / count[:, :, np.newaxis]

    return out


def watercolor_rgb(rgb: np.ndarray, intensity: float) -> np.ndarray:
    result = gaussian_blur_rgb(rgb, intensity / 20)
    result = edge_preserving_rgb(result, intensity / 10)
    return posterize_rgb(result, int(intensity // 10) + 4)


def pencil_sketch_rgb(rgb: np.ndarray, intensity: float) -> np.ndarray:
    gray = luma601(rgb).astype(np.float32)
    inverted = 255 - gray
    blurred = gaussian_blur_rgb(np.repeat(inverted[:, :, np.newaxis], 3, axis=2), intensity / 10)[:, :, 0]

    base = gray / 255
    blend = blurred / 255
    dodge = np.where(blend < 1, base / np.maximum(1 - blend, 1e-12), 1.0)
    sketch = np.minimum(1.0, dodge) * 255
    return np.repeat(sketch[:, :, np.newaxis], 3, axis=2)


def cartoon_rgb(rgb: np.ndarray, intensity: float) -> np.ndarray:
    result = posterize_rgb(rgb, int(intensity // 10) + 3)
    edges = sobel_magnitude(rgb)
    darken = (edges / 255) * (intensity / 100) * 100
    return np.maximum(0, result - darken[:, :, np.newaxis])


def vintage_rgb(rgb: np.ndarray, intensity: float) -> np.ndarray:
    f = intensity / 100
    result = np.clip(rgb + np.array([30 * f, 20 * f, -40 * f], dtype=np.float32), 0, 255)
    mean = result.mean(axis=2, keepdims=True)
    result = result + (mean - result) * (0.3 * f)
    return apply_vignette_rgb(result, VignetteOptions(
        enabled=True, intensity=30 * f, size=80, roundness=50, feather=50,
    ))


def hdr_rgb(rgb: np.ndarray, intensity: float) -> np.ndarray:
    f = intensity / 100
    if f == 0:
        return rgb.copy()
    v = unsharp_rgb(rgb, 2 * f, sharpen=True) / 255
    return v / (v + f) * (1 + f) * 255


def cross_process_rgb(rgb: np.ndarray, intensity: float) -> np.ndarray:
    f = intensity / 100
    if f == 0:
        return rgb.copy()
    v = rgb / 255
    curved = np.stack([
        0.5 + (v[:, :, 0] - 0.5) * 1.3,
        0.5 + (v[:, :, 1] - 0.5) * 1.2,
        0.125 + v[:, :, 2] * 0.75,
    ], axis=-1)
    curved = np.clip(curved, 0, 1) * 255
    return rgb + (curved - rgb) * f


def orton_rgb(rgb: np.ndarray, intensity: float) -> np.ndarray:
    f = intensity / 100
    if f == 0:
        return rgb.copy()
    bright = np.clip(rgb * 2 ** f, 0, 255)
    glow = gaussian_blur_rgb(bright, max(1, round(f * 10)))
    screen = 255 - (255 - rgb) * (255 - glow) / 255
    return rgb + (screen - rgb) * (0.6 * f)


def tilt_shift_rgb(rgb: np.ndarray, intensity: float, parameters: Dict[str, Any]) -> np.ndarray:
    f = intensity / 100
    if f == 0:
        return rgb.copy()
    focus = clamp_param(parameters.get("focus", 0.5), 0, 1, "tilt_shift.focus", default=0.5)
    band = clamp_param(parameters.get("band", 0.15), 0, 0.5, "tilt_shift.band", default=0.15)

    height = rgb.shape[0]
    rows = (np.arange(height) + 0.5) / height
    distance = np.abs(rows - focus) - band
    ramp = max(band, 0.05)
    weight = np.clip(distance / ramp, 0, 1)[:, np.newaxis, np.newaxis]

    blurred = gaussian_blur_rgb(rgb, max(1, round(f * 12)))
    result = rgb + (blurred - rgb) * weight

    gray = luma601(result)[:, :, np.newaxis]
    return np.clip(gray + (result - gray) * (1 + 0.2 * f), 0, 255)


_EFFECTS = {
    FilterType.OIL_PAINTING: oil_painting_rgb,
    FilterType.WATERCOLOR: watercolor_rgb,
    FilterType.PENCIL_SKETCH: pencil_sketch_rgb,
    FilterType.CARTOON: cartoon_rgb,
    FilterType.VINTAGE: vintage_rgb,
    FilterType.HDR: hdr_rgb,
    FilterType.CROSS_PROCESS: cross_process_rgb,
    FilterType.ORTON: orton_rgb,
}


# ============================================================================
# PUBLIC API
# ============================================================================

def apply_artistic(buffer: PixelBuffer, artistic_filter: ArtisticFilter) -> PixelBuffer:
    """
    Apply one artistic effect.

    Unknown filter tags return an unchanged copy and emit
    UnsupportedFilterWarning; no other effect is substituted.
    """
    rgb, alpha = split_channels(buffer)
    kind = _filter_type(artistic_filter.type)

    if kind is None:
        logger.warning("Unsupported artistic filter: %r", artistic_filter.type)
        warnings.warn(f"unsupported artistic filter {artistic_filter.type!r}; image returned unchanged",
                      UnsupportedFilterWarning, stacklevel=2)
        return buffer.copy()

    intensity = clamp_param(artistic_filter.intensity, 0, 100, "intensity")
    start = time.perf_counter()

    if kind is FilterType.TILT_SHIFT:
        result = tilt_shift_rgb(rgb, intensity, artistic_filter.parameters or {})
    else:
        result = _EFFECTS[kind](rgb, intensity)

    logger.debug("%s (intensity=%s) on %dx%d in %.1fms", kind.value, intensity,
                 buffer.width, buffer.height, (time.perf_counter() - start) * 1000)
    return merge_channels(np.clip(result, 0, 255), alpha)


def detect_edges(buffer: PixelBuffer) -> PixelBuffer:
    """Sobel edge map: magnitude replicated to R, G and B with alpha 255."""
    rgb, alpha = split_channels(buffer)
    edges = sobel_magnitude(rgb)
    return merge_channels(np.repeat(edges[:, :, np.newaxis], 3, axis=2), np.full_like(alpha, 255))
