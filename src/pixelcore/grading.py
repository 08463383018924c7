"""
Color Grading Engine
====================

Three-zone colour grading plus lift / gamma / gain.

Each pixel's Rec.601 luminance (0..1) picks a zone: below 0.3 shadows,
above 0.7 highlights, otherwise midtones. Each channel then becomes

    clamp(gain * max(value + lift, 0) ** (1 / gamma) + zone_bias, 0, 1)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

import numpy as np

from pixelcore.buffer import PixelBuffer, merge_channels, split_channels
from pixelcore.color_space import luma601

logger = logging.getLogger(__name__)

SHADOW_THRESHOLD = 0.3
HIGHLIGHT_THRESHOLD = 0.7
MIN_GAMMA = 0.01

Triple = Tuple[float, float, float]


def _triple(value, name: str) -> Triple:
    if isinstance(value, dict):
        value = (value.get("r", 0.0), value.get("g", 0.0), value.get("b", 0.0))
    values = tuple(float(v) for v in value)
    if len(values) != 3:
        raise ValueError(f"{name} needs exactly three values (r, g, b), got {len(values)}")
    return values


@dataclass
class ColorGrading:
    """Identity grade by default."""
    shadows: Sequence[float] = (0.0, 0.0, 0.0)
    midtones: Sequence[float] = (0.0, 0.0, 0.0)
    highlights: Sequence[float] = (0.0, 0.0, 0.0)
    lift: Sequence[float] = (0.0, 0.0, 0.0)
    gamma: Sequence[float] = (1.0, 1.0, 1.0)
    gain: Sequence[float] = (1.0, 1.0, 1.0)

    def __post_init__(self):
        for name in ("shadows", "midtones", "highlights", "lift", "gamma", "gain"):
            setattr(self, name, _triple(getattr(self, name), name))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColorGrading":
        known = ("shadows", "midtones", "highlights", "lift", "gamma", "gain")
        unknown = set(data) - set(known)
        if unknown:
            raise ValueError(f"unknown grading fields: {sorted(unknown)}")
        return cls(**{k: data[k] for k in known if k in data})


def grade_rgb(rgb: np.ndarray, grading: ColorGrading) -> np.ndarray:
    v = rgb / 255
    lum = luma601(v)

    zones = np.array([grading.shadows, grading.midtones, grading.highlights], dtype=np.float32)
    zone = np.where(lum < SHADOW_THRESHOLD, 0, np.where(lum > HIGHLIGHT_THRESHOLD, 2, 1))
    bias = zones[zone]

    gamma = np.array(grading.gamma, dtype=np.float32)
    if np.any(gamma <= 0):
        logger.debug("grading gamma %s clamped to %s", grading.gamma, MIN_GAMMA)
    gamma = np.maximum(gamma, MIN_GAMMA)
    lift = np.array(grading.lift, dtype=np.float32)
    gain = np.array(grading.gain, dtype=np.float32)

    graded = gain * np.power(np.maximum(v + lift, 0), 1 / gamma) + bias
    return np.clip(graded, 0, 1) * 255


def apply_grading(buffer: PixelBuffer, grading: ColorGrading) -> PixelBuffer:
    """Apply a colour grade; alpha is carried over unchanged."""
    rgb, alpha = split_channels(buffer)
    return merge_channels(grade_rgb(rgb, grading), alpha)
