"""
Tonal Adjustment Engine
=======================

Per-pixel slider adjustments applied as one ordered pipeline:

 1. Brightness / Contrast
 2. Hue / Saturation
 3. Gamma
 4. Exposure
 5. Highlights / Shadows
 6. Whites / Blacks
 7. Clarity (unsharp mask)
 8. Vibrance
 9. Warmth / Tint
10. Noise reduction -> Sharpen -> Grain   (only with NoiseOptions)
11. Vignette                               (only when enabled)

Order matters: every stage sees the output of the previous one. Each stage
clamps to [0, 255]; rounding to 8 bits happens once at the end. Stages at
their no-op value are skipped, so TonalOptions() is an exact identity.

Usage:
    result = apply_tonal(buffer, TonalOptions(brightness=20, vibrance=35))
"""

import logging
import math
import re
import time
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import numpy as np

from pixelcore import config
from pixelcore.buffer import PixelBuffer, merge_channels, split_channels
from pixelcore.color_space import (
    LUMA_B, LUMA_G, LUMA_R, hsl_to_rgb_array, hsv_saturation_array, luma601, rgb_to_hsl_array,
)
from pixelcore.params import clamp_param
from pixelcore.spatial import (
    VignetteOptions, apply_vignette_rgb, grain_rgb, reduce_noise_rgb, sharpen_rgb, unsharp_rgb,
)

logger = logging.getLogger(__name__)


@dataclass
class NoiseOptions:
    """Noise handling, each 0-100."""
    reduction: float = 0.0
    sharpen: float = 0.0
    grain: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["NoiseOptions"]:
        if data is None:
            return None
        if isinstance(data, cls):
            return data
        known = ("reduction", "sharpen", "grain")
        unknown = set(data) - set(known)
        if unknown:
            raise ValueError(f"unknown noise options: {sorted(unknown)}")
        return cls(**{k: data[k] for k in known if k in data})


@dataclass
class TonalOptions:
    """Slider settings. Every default is the no-op value."""
    brightness: float = 0.0   # -100..100
    contrast: float = 0.0     # -100..100
    saturation: float = 0.0   # -100..100
    hue: float = 0.0          # degrees, 0..360
    gamma: float = 1.0        # 0.1..3.0
    exposure: float = 0.0     # -100..100, 100 = +1 stop
    highlights: float = 0.0   # -100..100
    shadows: float = 0.0      # -100..100
    whites: float = 0.0       # -100..100
    blacks: float = 0.0       # -100..100
    clarity: float = 0.0      # -100..100
    vibrance: float = 0.0     # -100..100
    warmth: float = 0.0       # -100..100
    tint: float = 0.0         # -100..100
    vignette: Optional[VignetteOptions] = None
    noise: Optional[NoiseOptions] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TonalOptions":
        """Build from a plain mapping; camelCase keys are accepted."""
        names = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            name = re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()
            if name not in names:
                raise ValueError(f"unknown tonal option: {key}")
            kwargs[name] = value
        kwargs["vignette"] = VignetteOptions.from_dict(kwargs.get("vignette"))
        kwargs["noise"] = NoiseOptions.from_dict(kwargs.get("noise"))
        return cls(**kwargs)


# ============================================================================
# STAGES (float32 HxWx3, 0..255)
# ============================================================================

def _brightness_contrast(rgb: np.ndarray, brightness: float, contrast: float) -> np.ndarray:
    factor = (contrast + 100) / 100
    return np.clip((rgb + brightness * 2.55 - 128) * factor + 128, 0, 255)


def _hue_saturation(rgb: np.ndarray, saturation: float, hue: float) -> np.ndarray:
    """
    Hue rotates in HSL. Saturation scales each channel's distance from the
    pixel's Rec.601 luma, so -100 lands on the luminance-equivalent gray.
    """
    result = rgb
    if hue % 360 != 0:
        h, s, l = rgb_to_hsl_array(result / 255)
        result = hsl_to_rgb_array(h + hue, s, l) * 255

    if saturation != 0:
        factor = (saturation + 100) / 100
        gray = luma601(result)[:, :, np.newaxis]
        result = gray + (result - gray) * factor

    return np.clip(result, 0, 255)


def _gamma(rgb: np.ndarray, gamma: float) -> np.ndarray:
    return 255 * np.power(rgb / 255, 1.0 / gamma)


def _exposure(rgb: np.ndarray, exposure: float) -> np.ndarray:
    return np.clip(rgb * 2 ** (exposure / 100), 0, 255)


def _highlights_shadows(rgb: np.ndarray, highlights: float, shadows: float) -> np.ndarray:
    lum = luma601(rgb / 255)
    factor = np.where(
        lum > 0.5,
        1 - (lum - 0.5) * 2 * (highlights / 100),
        1 + (0.5 - lum) * 2 * (shadows / 100),
    )
    return np.clip(rgb * factor[:, :, np.newaxis], 0, 255)


def _whites_blacks(rgb: np.ndarray, whites: float, blacks: float) -> np.ndarray:
    v = rgb / 255
    adjusted = np.where(v > 0.7, v + (1 - v) * (whites / 100), v)
    adjusted = np.where(v < 0.3, v + v * (blacks / 100), adjusted)
    return np.clip(adjusted * 255, 0, 255)


def _clarity(rgb: np.ndarray, clarity: float) -> np.ndarray:
    return unsharp_rgb(rgb, abs(clarity) / 100, sharpen=clarity > 0, radius=config.CLARITY_RADIUS)


def _vibrance(rgb: np.ndarray, vibrance: float) -> np.ndarray:
    """Saturation push weighted by 1 - current saturation; vivid pixels move least."""
    rgb01 = rgb / 255
    adjust = (vibrance / 100) * (1 - hsv_saturation_array(rgb01))
    h, s, l = rgb_to_hsl_array(rgb01)
    return np.clip(hsl_to_rgb_array(h, np.clip(s + adjust, 0, 1), l) * 255, 0, 255)


def _warmth_tint(rgb: np.ndarray, warmth: float, tint: float) -> np.ndarray:
    w = warmth / 100
    t = tint / 100
    shift = np.array([20 * w + 15 * t, 10 * w - 15 * t, -20 * w], dtype=np.float32)
    return np.clip(rgb + shift, 0, 255)


def _hue(value) -> float:
    hue = float(value)
    if not math.isfinite(hue):
        logger.debug("hue=%s is not finite, using 0", hue)
        return 0.0
    return hue % 360


def _slider(value, name: str) -> float:
    return clamp_param(value, -100, 100, name, default=0.0)


def _sanitize(options: TonalOptions) -> TonalOptions:
    """Clamp every slider into its documented range; NaN means no adjustment."""
    return TonalOptions(
        brightness=_slider(options.brightness, "brightness"),
        contrast=_slider(options.contrast, "contrast"),
        saturation=_slider(options.saturation, "saturation"),
        hue=_hue(options.hue),
        gamma=clamp_param(options.gamma, 0.1, 3.0, "gamma", default=1.0),
        exposure=_slider(options.exposure, "exposure"),
        highlights=_slider(options.highlights, "highlights"),
        shadows=_slider(options.shadows, "shadows"),
        whites=_slider(options.whites, "whites"),
        blacks=_slider(options.blacks, "blacks"),
        clarity=_slider(options.clarity, "clarity"),
        vibrance=_slider(options.vibrance, "vibrance"),
        warmth=_slider(options.warmth, "warmth"),
        tint=_slider(options.tint, "tint"),
        vignette=options.vignette,
        noise=options.noise,
    )


def tonal_rgb(rgb: np.ndarray, options: TonalOptions,
              rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Run the full tonal pipeline on a float working array."""
    o = _sanitize(options)
    result = rgb

    if o.brightness != 0 or o.contrast != 0:
        result = _brightness_contrast(result, o.brightness, o.contrast)
    if o.saturation != 0 or o.hue != 0:
        result = _hue_saturation(result, o.saturation, o.hue)
    if o.gamma != 1.0:
        result = _gamma(result, o.gamma)
    if o.exposure != 0:
        result = _exposure(result, o.exposure)
    if o.highlights != 0 or o.shadows != 0:
        result = _highlights_shadows(result, o.highlights, o.shadows)
    if o.whites != 0 or o.blacks != 0:
        result = _whites_blacks(result, o.whites, o.blacks)
    if o.clarity != 0:
        result = _clarity(result, o.clarity)
    if o.vibrance != 0:
        result = _vibrance(result, o.vibrance)
    if o.warmth != 0 or o.tint != 0:
        result = _warmth_tint(result, o.warmth, o.tint)

    if o.noise is not None:
        result = reduce_noise_rgb(result, o.noise.reduction)
        result = sharpen_rgb(result, o.noise.sharpen)
        result = grain_rgb(result, o.noise.grain, rng=rng)

    if o.vignette is not None and o.vignette.enabled:
        result = apply_vignette_rgb(result, o.vignette)

    return result


def apply_tonal(buffer: PixelBuffer, options: Optional[TonalOptions] = None,
                rng: Optional[np.random.Generator] = None) -> PixelBuffer:
    """
    Apply tonal adjustments.

    Args:
        buffer: Input pixels (not modified)
        options: Slider settings; None means all defaults
        rng: Random generator for film grain (reproducible output)

    Returns:
        New buffer of the same size; alpha is carried over unchanged.
    """
    start = time.perf_counter()
    rgb, alpha = split_channels(buffer)
    result = tonal_rgb(rgb, options or TonalOptions(), rng=rng)
    out = merge_channels(result, alpha)
    logger.debug("tonal %dx%d in %.1fms", buffer.width, buffer.height,
                 (time.perf_counter() - start) * 1000)
    return out


def luminance_mean(buffer: PixelBuffer) -> float:
    """Mean Rec.601 luminance of a buffer, 0..255."""
    rgb, _ = split_channels(buffer)
    return float(np.mean(rgb[:, :, 0] * LUMA_R + rgb[:, :, 1] * LUMA_G + rgb[:, :, 2] * LUMA_B))
