"""
Palette Extraction
==================

Dominant-colour and weighted-palette extraction behind a small capability
interface:

- KMeansPaletteExtractor (precise): OpenCV k-means over opaque pixels
- BucketPaletteExtractor (approximate): per-channel quantised histogram

`select_extractor()` returns the first available one in that order; a
call without an explicit extractor uses it, and an extractor that fails
raises PaletteExtractionError rather than silently switching method. Only
opaque pixels (alpha > 0) are considered; percentages are shares of the
opaque pixel count, so palettes of fully transparent buffers are empty.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from pixelcore import config
from pixelcore.buffer import PixelBuffer, require_buffer
from pixelcore.color_space import rgb_to_hex
from pixelcore.errors import PaletteExtractionError

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

PALETTE_BUCKET = 16
DOMINANT_BUCKET = 32
DOMINANT_PALETTE_SIZE = 5
ASSIGN_CHUNK = 1 << 20


@dataclass
class PaletteEntry:
    r: int
    g: int
    b: int
    hex: str
    percentage: float

    @classmethod
    def from_rgb(cls, rgb: Sequence[int], percentage: float) -> "PaletteEntry":
        r, g, b = (int(c) for c in rgb)
        return cls(r=r, g=g, b=b, hex=rgb_to_hex(r, g, b), percentage=float(percentage))

    @property
    def rgb(self) -> RGB:
        return self.r, self.g, self.b

    def to_dict(self) -> dict:
        return asdict(self)


def opaque_pixels(buffer: PixelBuffer) -> np.ndarray:
    """Nx3 uint8 array of the RGB values of every pixel with alpha > 0."""
    pixels = require_buffer(buffer).to_array().reshape(-1, 4)
    return pixels[pixels[:, 3] > 0, :3]


def _ranked(colors: np.ndarray, counts: np.ndarray, total: int, limit: int) -> List[PaletteEntry]:
    order = np.argsort(-counts, kind="stable")[:limit]
    return [PaletteEntry.from_rgb(colors[i], counts[i] / total * 100) for i in order]


class PaletteExtractor(ABC):
    """Palette extraction capability."""

    name = "base"

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this extractor can run in the current environment."""

    @abstractmethod
    def palette(self, pixels: np.ndarray, count: int) -> List[PaletteEntry]:
        """
        Build a palette from opaque pixels.

        Args:
            pixels: Nx3 uint8 RGB values, N > 0
            count: Maximum number of entries

        Returns:
            Entries sorted by percentage, descending
        """

    @abstractmethod
    def dominant(self, pixels: np.ndarray) -> RGB:
        """Single most representative colour of N > 0 opaque pixels."""


class KMeansPaletteExtractor(PaletteExtractor):
    """
    Cluster colours with cv2.kmeans (k-means++ seeding, fixed RNG seed).

    Buffers with no more distinct colours than requested are reported
    exactly. Otherwise clustering runs on a stride sample of at most
    `sample_limit` pixels and every opaque pixel is assigned to its nearest
    centre to compute the percentages.
    """

    name = "kmeans"

    def __init__(self, sample_limit: Optional[int] = None, seed: Optional[int] = None,
                 attempts: int = 3, max_iter: int = 20):
        self.sample_limit = sample_limit or config.PALETTE_SAMPLE_LIMIT
        self.seed = config.PALETTE_RNG_SEED if seed is None else seed
        self.attempts = attempts
        self.max_iter = max_iter

    def is_available(self) -> bool:
        return hasattr(cv2, "kmeans")

    def palette(self, pixels: np.ndarray, count: int) -> List[PaletteEntry]:
        total = len(pixels)
        colors, counts = np.unique(pixels, axis=0, return_counts=True)
        if len(colors) <= count:
            return _ranked(colors, counts, total, count)

        stride = max(1, math.ceil(total / self.sample_limit))
        sample = np.ascontiguousarray(pixels[::stride], dtype=np.float32)

        cv2.setRNGSeed(self.seed)
        criteria = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, self.max_iter, 1.0)
        _, _, centers = cv2.kmeans(sample, count, None, criteria, self.attempts, cv2.KMEANS_PP_CENTERS)

        labels = self._assign(pixels, centers)
        cluster_counts = np.bincount(labels, minlength=len(centers))
        keep = cluster_counts > 0
        rounded = np.clip(np.rint(centers[keep]), 0, 255).astype(np.int64)
        return _ranked(rounded, cluster_counts[keep], total, count)

    def dominant(self, pixels: np.ndarray) -> RGB:
        return self.palette(pixels, DOMINANT_PALETTE_SIZE)[0].rgb

    @staticmethod
    def _assign(pixels: np.ndarray, centers: np.ndarray) -> np.ndarray:
        """
        Nearest-centre label for every pixel, in chunks.

        |p - c|^2 = |p|^2 - 2 p.c + |c|^2 and |p|^2 is the same for every
        centre, so only the N x K dot products are materialised. Chunks are
        sized so that matrix stays at about ASSIGN_CHUNK elements.
        """
        centers = centers.astype(np.float64)
        center_norms = (centers ** 2).sum(axis=1)
        step = max(1, ASSIGN_CHUNK // len(centers))
        labels = np.empty(len(pixels), dtype=np.int64)
        for start in range(0, len(pixels), step):
            chunk = pixels[start:start + step].astype(np.float64)
            distances = chunk @ centers.T
            distances *= -2
            distances += center_norms
            labels[start:start + step] = distances.argmin(axis=1)
        return labels


class BucketPaletteExtractor(PaletteExtractor):
    """
    Histogram of quantised colours: floor(v / 16) * 16 per channel for the
    palette and floor(v / 32) * 32 for the dominant colour.
    """

    name = "bucket"

    def is_available(self) -> bool:
        return True

    def palette(self, pixels: np.ndarray, count: int) -> List[PaletteEntry]:
        buckets = (pixels // PALETTE_BUCKET) * PALETTE_BUCKET
        colors, counts = np.unique(buckets, axis=0, return_counts=True)
        return _ranked(colors, counts, len(pixels), count)

    def dominant(self, pixels: np.ndarray) -> RGB:
        buckets = (pixels // DOMINANT_BUCKET) * DOMINANT_BUCKET
        colors, counts = np.unique(buckets, axis=0, return_counts=True)
        r, g, b = colors[int(np.argmax(counts))]
        return int(r), int(g), int(b)


DEFAULT_EXTRACTORS: Tuple[type, ...] = (KMeansPaletteExtractor, BucketPaletteExtractor)


def available_extractors() -> List[PaletteExtractor]:
    extractors = [cls() for cls in DEFAULT_EXTRACTORS]
    return [extractor for extractor in extractors if extractor.is_available()]


def select_extractor() -> PaletteExtractor:
    """First available extractor, precise before approximate."""
    extractors = available_extractors()
    if not extractors:
        raise PaletteExtractionError("no palette extractor is available")
    return extractors[0]


def _run(method: str, pixels: np.ndarray, extractor: Optional[PaletteExtractor], *args):
    if extractor is None:
        extractor = select_extractor()
    logger.debug("%s %s over %d opaque pixels", extractor.name, method, len(pixels))
    try:
        return getattr(extractor, method)(pixels, *args)
    except cv2.error as e:
        raise PaletteExtractionError(f"{extractor.name} extractor failed: {e}") from e


def palette_of_pixels(pixels: np.ndarray, count: int = config.PALETTE_SIZE,
                      extractor: Optional[PaletteExtractor] = None) -> List[PaletteEntry]:
    """Palette of an Nx3 array of opaque pixels (see opaque_pixels)."""
    if count < 1:
        raise ValueError(f"palette size must be at least 1, got {count}")
    if len(pixels) == 0:
        return []
    return _run("palette", pixels, extractor, count)


def dominant_of_pixels(pixels: np.ndarray, extractor: Optional[PaletteExtractor] = None) -> RGB:
    if len(pixels) == 0:
        return 0, 0, 0
    return _run("dominant", pixels, extractor)


def extract_palette(buffer: PixelBuffer, count: int = config.PALETTE_SIZE,
                    extractor: Optional[PaletteExtractor] = None) -> List[PaletteEntry]:
    """
    Weighted palette of up to `count` colours, sorted by percentage.

    Percentages are shares of the opaque pixels and may not sum to 100.
    """
    if count < 1:
        raise ValueError(f"palette size must be at least 1, got {count}")
    return palette_of_pixels(opaque_pixels(buffer), count, extractor)


def dominant_color(buffer: PixelBuffer, extractor: Optional[PaletteExtractor] = None) -> RGB:
    """Most representative colour; black for a buffer with no opaque pixels."""
    return dominant_of_pixels(opaque_pixels(buffer), extractor)
