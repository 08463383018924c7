"""
Color-Space Utilities
=====================

RGB <-> HSL <-> CMYK conversion, hex strings, relative luminance and WCAG
contrast ratio. Every other engine builds on these.

Two flavours:
- scalar functions on 8-bit channels (palette analysis, harmony sets)
- array functions on float channels in 0..1 (per-pixel engines)

Hue is always in degrees [0, 360).
"""

import math
import re
from typing import Sequence, Tuple, Union

import numpy as np

# Rec.601 weights: "luminance" for tonal zones, grayscale and grading
LUMA_R, LUMA_G, LUMA_B = 0.299, 0.587, 0.114

# Rec.709 / sRGB weights for WCAG relative luminance
REL_LUM_R, REL_LUM_G, REL_LUM_B = 0.2126, 0.7152, 0.0722

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)

ColorLike = Union[str, Sequence[int]]


def _round8(value: float) -> int:
    """Round half up and clamp to a byte."""
    return int(min(255, max(0, math.floor(value + 0.5))))


# ============================================================================
# SCALAR CONVERSIONS (8-bit)
# ============================================================================

def rgb_to_hsl(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """
    Convert 8-bit RGB to HSL.

    Returns:
        (h, s, l) with h in [0, 360), s and l in [0, 1].
        Achromatic colours (max == min) get h = 0 and s = 0.
    """
    r, g, b = r / 255.0, g / 255.0, b / 255.0
    mx, mn = max(r, g, b), min(r, g, b)
    diff = mx - mn
    total = mx + mn
    l = total / 2

    if diff == 0:
        return 0.0, 0.0, l

    s = diff / total if l < 0.5 else diff / (2 - total)

    if mx == r:
        h = (g - b) / diff + (6 if g < b else 0)
    elif mx == g:
        h = (b - r) / diff + 2
    else:
        h = (r - g) / diff + 4

    return (h * 60) % 360, s, l


def _hue_to_channel(p: float, q: float, t: float) -> float:
    if t < 0:
        t += 1
    if t > 1:
        t -= 1
    if t < 1 / 6:
        return p + (q - p) * 6 * t
    if t < 1 / 2:
        return q
    if t < 2 / 3:
        return p + (q - p) * (2 / 3 - t) * 6
    return p


def hsl_to_rgb(h: float, s: float, l: float) -> Tuple[int, int, int]:
    """Convert HSL (h in degrees) to rounded 8-bit RGB."""
    s = min(1.0, max(0.0, s))
    l = min(1.0, max(0.0, l))

    if s == 0:
        gray = _round8(l * 255)
        return gray, gray, gray

    h = (h % 360) / 360
    q = l * (1 + s) if l < 0.5 else l + s - l * s
    p = 2 * l - q

    return (
        _round8(_hue_to_channel(p, q, h + 1 / 3) * 255),
        _round8(_hue_to_channel(p, q, h) * 255),
        _round8(_hue_to_channel(p, q, h - 1 / 3) * 255),
    )


def rgb_to_cmyk(r: float, g: float, b: float) -> Tuple[float, float, float, float]:
    """8-bit RGB to CMYK fractions. Pure black yields (0, 0, 0, 1)."""
    r, g, b = r / 255.0, g / 255.0, b / 255.0
    k = 1 - max(r, g, b)
    if k == 1:
        return 0.0, 0.0, 0.0, 1.0
    return (1 - r - k) / (1 - k), (1 - g - k) / (1 - k), (1 - b - k) / (1 - k), k


def cmyk_to_rgb(c: float, m: float, y: float, k: float) -> Tuple[int, int, int]:
    return (
        _round8(255 * (1 - c) * (1 - k)),
        _round8(255 * (1 - m) * (1 - k)),
        _round8(255 * (1 - y) * (1 - k)),
    )


def rgb_to_hex(r: float, g: float, b: float) -> str:
    return "#{:02x}{:02x}{:02x}".format(_round8(r), _round8(g), _round8(b))


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """Parse '#rrggbb' (leading '#' optional). Raises ValueError on anything else."""
    match = _HEX_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"not a hex colour: {value!r}")
    return tuple(int(part, 16) for part in match.groups())


def _rgb_of(color) -> Tuple[float, float, float]:
    """Accept a hex string, an (r, g, b[, a]) sequence or anything with r/g/b attributes."""
    if isinstance(color, str):
        return hex_to_rgb(color)
    if hasattr(color, "r") and hasattr(color, "g") and hasattr(color, "b"):
        return color.r, color.g, color.b
    r, g, b = tuple(color)[:3]
    return r, g, b


def _linearize(channel: float) -> float:
    c = channel / 255.0
    return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4


def relative_luminance(r: float, g: float, b: float) -> float:
    """WCAG relative luminance of an 8-bit sRGB colour, in [0, 1]."""
    return REL_LUM_R * _linearize(r) + REL_LUM_G * _linearize(g) + REL_LUM_B * _linearize(b)


def contrast_ratio(color_a: ColorLike, color_b: ColorLike) -> float:
    """
    WCAG contrast ratio between two colours.

    Symmetric in its arguments and always within [1, 21];
    white on black is exactly 21.
    """
    la = relative_luminance(*_rgb_of(color_a))
    lb = relative_luminance(*_rgb_of(color_b))
    lighter, darker = max(la, lb), min(la, lb)
    ratio = (lighter + 0.05) / (darker + 0.05)
    return min(21.0, max(1.0, round(ratio, 10)))


# ============================================================================
# ARRAY CONVERSIONS (float, 0..1)
# ============================================================================

def luma601(rgb: np.ndarray) -> np.ndarray:
    """Rec.601 luminance of an (..., 3) array, same scale as the input."""
    return rgb[..., 0] * LUMA_R + rgb[..., 1] * LUMA_G + rgb[..., 2] * LUMA_B


def rgb_to_hsl_array(rgb01: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorised RGB -> HSL.

    Args:
        rgb01: (..., 3) float array in 0..1

    Returns:
        (h, s, l) arrays; h in degrees.
    """
    r, g, b = rgb01[..., 0], rgb01[..., 1], rgb01[..., 2]
    mx = np.maximum(np.maximum(r, g), b)
    mn = np.minimum(np.minimum(r, g), b)
    diff = mx - mn
    total = mx + mn
    l = total / 2

    chromatic = diff > 0
    safe_diff = np.where(chromatic, diff, 1.0)
    denom = np.where(l < 0.5, total, 2 - total)
    safe_denom = np.where(chromatic & (denom > 0), denom, 1.0)
    s = np.where(chromatic, diff / safe_denom, 0.0)

    h = np.select(
        [mx == r, mx == g],
        [((g - b) / safe_diff) % 6, (b - r) / safe_diff + 2],
        (r - g) / safe_diff + 4,
    )
    h = np.where(chromatic, (h * 60) % 360, 0.0)

    return h, np.clip(s, 0, 1), l


def hsl_to_rgb_array(h: np.ndarray, s: np.ndarray, l: np.ndarray) -> np.ndarray:
    """Vectorised HSL (h in degrees) -> (..., 3) RGB in 0..1."""
    s = np.clip(s, 0, 1)
    l = np.clip(l, 0, 1)
    hk = (np.asarray(h) % 360) / 360
    q = np.where(l < 0.5, l * (1 + s), l + s - l * s)
    p = 2 * l - q

    def channel(t):
        t = t % 1.0
        return np.select(
            [t < 1 / 6, t < 1 / 2, t < 2 / 3],
            [p + (q - p) * 6 * t, q, p + (q - p) * (2 / 3 - t) * 6],
            p,
        )

    return np.stack([channel(hk + 1 / 3), channel(hk), channel(hk - 1 / 3)], axis=-1)


def hsv_saturation_array(rgb: np.ndarray) -> np.ndarray:
    """HSV-style saturation (max - min) / max, 0 for black."""
    mx = rgb.max(axis=-1)
    mn = rgb.min(axis=-1)
    return np.where(mx > 0, (mx - mn) / np.where(mx > 0, mx, 1.0), 0.0)
