"""
Lens Correction Engine
======================

Slider-driven lens corrections on RGBA buffers.

Corrections applied, in order:
1. Distortion (barrel/pincushion), Brown-Conrady k1
2. Vignetting (radial gain)
3. Chromatic aberration (R/B channel scaling about the centre)
4. Perspective (keystone + rotation)

Geometric steps resample all four channels so alpha follows the pixels;
samples that fall outside the frame replicate the nearest border pixel.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict

import cv2
import numpy as np

from pixelcore.buffer import PixelBuffer, require_buffer, to_uint8
from pixelcore.params import clamp_param

logger = logging.getLogger(__name__)

# Slider -> model coefficient scales
DISTORTION_K1_SCALE = 0.3
VIGNETTE_SCALE = 0.5
CA_SCALE = 0.01
KEYSTONE_SCALE = 0.2


@dataclass
class PerspectiveCorrection:
    horizontal: float = 0.0  # -100..100
    vertical: float = 0.0    # -100..100
    rotation: float = 0.0    # degrees, -45..45


@dataclass
class LensCorrection:
    """
    Lens correction sliders.

    distortion: -100..100, positive removes barrel distortion
    vignetting: -100..100, positive brightens corners
    chromatic_aberration: 0..100
    """
    distortion: float = 0.0
    vignetting: float = 0.0
    chromatic_aberration: float = 0.0
    perspective: PerspectiveCorrection = field(default_factory=PerspectiveCorrection)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LensCorrection":
        if not isinstance(data, dict):
            raise TypeError(f"lens correction must be a mapping, got {type(data).__name__}")
        perspective = data.get("perspective")
        if perspective is None:
            perspective = {}
        elif not isinstance(perspective, dict):
            raise TypeError(f"perspective must be a mapping, got {type(perspective).__name__}")
        return cls(
            distortion=data.get("distortion", 0.0),
            vignetting=data.get("vignetting", 0.0),
            chromatic_aberration=data.get("chromatic_aberration", data.get("chromaticAberration", 0.0)),
            perspective=PerspectiveCorrection(
                horizontal=perspective.get("horizontal", 0.0),
                vertical=perspective.get("vertical", 0.0),
                rotation=perspective.get("rotation", 0.0),
            ),
        )


def _camera_matrix(w: int, h: int) -> np.ndarray:
    # Principal point at the centre
    f = max(w, h)
    return np.array([
        [f, 0, w / 2],
        [0, f, h / 2],
        [0, 0, 1],
    ], dtype=np.float64)


def correct_distortion(image: np.ndarray, distortion: float) -> np.ndarray:
    """
    Undistort with k1 = -distortion/100 * 0.3.

    Uses the same centred camera model as cv2.undistort but remaps with
    replicated borders instead of black.
    """
    h, w = image.shape[:2]
    k1 = -distortion / 100 * DISTORTION_K1_SCALE
    camera_matrix = _camera_matrix(w, h)
    dist_coeffs = np.array([k1, 0, 0, 0, 0], dtype=np.float64)

    new_matrix, _ = cv2.getOptimalNewCameraMatrix(camera_matrix, dist_coeffs, (w, h), 0, (w, h))
    map_x, map_y = cv2.initUndistortRectifyMap(
        camera_matrix, dist_coeffs, None, new_matrix, (w, h), cv2.CV_32FC1,
    )
    return cv2.remap(image, map_x, map_y, cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE)


def correct_vignetting(image: np.ndarray, vignetting: float) -> np.ndarray:
    """
    Radial gain 1 / (1 - a*r^2), a = vignetting/100 * 0.5.

    r is normalised so the corners sit at 1. Negative amounts darken the
    corners instead. Only colour channels are scaled.
    """
    h, w = image.shape[:2]
    y, x = np.ogrid[:h, :w]
    cx, cy = w / 2, h / 2
    r_norm = np.sqrt((x - cx) ** 2 + (y - cy) ** 2) / np.sqrt(cx ** 2 + cy ** 2)

    amount = vignetting / 100 * VIGNETTE_SCALE
    falloff = 1 - amount * (r_norm ** 2)
    correction = (1 / np.clip(falloff, 0.5, 1.5)).astype(np.float32)

    result = image.copy()
    result[:, :, :3] = np.clip(image[:, :, :3] * correction[:, :, np.newaxis], 0, 255)
    return result


def correct_chromatic_aberration(image: np.ndarray, strength: float) -> np.ndarray:
    """Scale red by 1 + s and blue by 1 - s about the centre, s = strength/100 * 0.01."""
    h, w = image.shape[:2]
    center = (w / 2, h / 2)
    s = strength / 100 * CA_SCALE

    result = image.copy()
    for channel, scale in ((0, 1 + s), (2, 1 - s)):
        m = cv2.getRotationMatrix2D(center, 0, scale)
        result[:, :, channel] = cv2.warpAffine(
            np.ascontiguousarray(image[:, :, channel]), m, (w, h),
            flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE,
        )
    return result


def correct_perspective(image: np.ndarray, perspective: PerspectiveCorrection) -> np.ndarray:
    """
    Keystone and rotation in a single warp.

    vertical > 0 widens the top edge, horizontal > 0 stretches the right
    edge; each corner moves by up to 20% of the frame per 100 units.
    """
    h, w = image.shape[:2]
    sx = perspective.vertical / 100 * KEYSTONE_SCALE * w / 2
    sy = perspective.horizontal / 100 * KEYSTONE_SCALE * h / 2

    src = np.float32([[0, 0], [w, 0], [w, h], [0, h]])
    dst = np.float32([
        [-sx, 0],
        [w + sx, -sy],
        [w, h + sy],
        [0, h],
    ])
    keystone = cv2.getPerspectiveTransform(src, dst)

    rotation = np.vstack([cv2.getRotationMatrix2D((w / 2, h / 2), perspective.rotation, 1.0), [0, 0, 1]])
    homography = rotation @ keystone

    return cv2.warpPerspective(
        image, homography, (w, h),
        flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE,
    )


def apply_lens_correction(buffer: PixelBuffer, correction: LensCorrection) -> PixelBuffer:
    """
    Apply lens corrections.

    Steps whose slider is at zero are skipped, so LensCorrection() returns an
    identical copy.
    """
    buffer = require_buffer(buffer)
    distortion = clamp_param(correction.distortion, -100, 100, "distortion", default=0.0)
    vignetting = clamp_param(correction.vignetting, -100, 100, "vignetting", default=0.0)
    ca = clamp_param(correction.chromatic_aberration, 0, 100, "chromatic_aberration", default=0.0)
    perspective = PerspectiveCorrection(
        horizontal=clamp_param(correction.perspective.horizontal, -100, 100, "perspective.horizontal", default=0.0),
        vertical=clamp_param(correction.perspective.vertical, -100, 100, "perspective.vertical", default=0.0),
        rotation=clamp_param(correction.perspective.rotation, -45, 45, "perspective.rotation", default=0.0),
    )

    result = buffer.to_array().astype(np.float32)

    if distortion != 0:
        result = correct_distortion(result, distortion)
    if vignetting != 0:
        result = correct_vignetting(result, vignetting)
    if ca != 0:
        result = correct_chromatic_aberration(result, ca)
    if perspective.horizontal != 0 or perspective.vertical != 0 or perspective.rotation != 0:
        result = correct_perspective(result, perspective)

    return PixelBuffer.from_array(to_uint8(result))
