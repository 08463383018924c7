"""Slider-style parameter handling shared by the engines."""

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)


def clamp_param(value, low: float, high: float, name: str, default: Optional[float] = None) -> float:
    """
    Clamp a numeric parameter into its documented range.

    Out-of-range input is clamped, never rejected, so UI sliders can feed
    the pipeline directly. NaN means "no adjustment" and collapses to
    `default` (the slider's neutral value), or to the lower bound when the
    parameter has none.
    """
    value = float(value)
    if math.isnan(value):
        fallback = low if default is None else default
        logger.debug("%s is NaN, using %s", name, fallback)
        return float(fallback)
    if value < low or value > high:
        clamped = min(high, max(low, value))
        logger.debug("%s=%s outside [%s, %s], clamped to %s", name, value, low, high, clamped)
        return float(clamped)
    return value
