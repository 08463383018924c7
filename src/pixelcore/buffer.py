"""
Pixel Buffer Model
==================

The one value type every engine consumes and produces: a row-major RGBA
byte buffer with its dimensions.

Buffers are immutable. Engines unpack them into float32 working arrays with
`split_channels()`, operate on RGB only, and pack a freshly allocated result
with `merge_channels()`. The caller's buffer is never touched, so it can
serve as the undo state.
"""

import operator
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np

from pixelcore.errors import InvalidBufferError

BytesLike = Union[bytes, bytearray, memoryview, np.ndarray]


def _as_dimension(value, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidBufferError(f"{name} must be an integer, got {value!r}")
    try:
        value = operator.index(value)
    except TypeError:
        raise InvalidBufferError(f"{name} must be an integer, got {value!r}") from None
    if value <= 0:
        raise InvalidBufferError(f"{name} must be positive, got {value}")
    return value


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, np.ndarray):
        if data.dtype != np.uint8:
            raise InvalidBufferError(f"pixel array must be uint8, got {data.dtype}")
        return np.ascontiguousarray(data).tobytes()
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise InvalidBufferError(f"pixel data must be bytes-like, got {type(data).__name__}")


@dataclass(frozen=True, eq=True)
class PixelBuffer:
    """
    RGBA pixel buffer.

    Fields:
        width: Width in pixels (> 0)
        height: Height in pixels (> 0)
        data: width*height*4 bytes, row-major R,G,B,A
    """
    width: int
    height: int
    data: bytes

    def __post_init__(self):
        width = _as_dimension(self.width, "width")
        height = _as_dimension(self.height, "height")
        data = _as_bytes(self.data)

        expected = width * height * 4
        if len(data) != expected:
            raise InvalidBufferError(
                f"buffer is {len(data)} bytes, expected {expected} for {width}x{height} RGBA",
                width=width, height=height, length=len(data),
            )

        object.__setattr__(self, "width", width)
        object.__setattr__(self, "height", height)
        object.__setattr__(self, "data", data)

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height}, bytes={len(self.data)})"

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width), numpy order."""
        return self.height, self.width

    @property
    def nbytes(self) -> int:
        return len(self.data)

    def to_array(self) -> np.ndarray:
        """Writable HxWx4 uint8 copy of the pixels."""
        return np.frombuffer(self.data, dtype=np.uint8).reshape(self.height, self.width, 4).copy()

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, bytearray(self.data))

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """RGBA tuple at column x, row y."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height}")
        i = (y * self.width + x) * 4
        return tuple(self.data[i:i + 4])

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from an HxWx4 (RGBA) or HxWx3 (RGB, opaque) uint8 array.
        """
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise InvalidBufferError(f"expected HxWx3 or HxWx4 array, got shape {array.shape}")
        if array.dtype != np.uint8:
            raise InvalidBufferError(f"pixel array must be uint8, got {array.dtype}")
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array, alpha], axis=2)
        height, width = array.shape[:2]
        return cls(width, height, array)

    @classmethod
    def solid(cls, width: int, height: int, rgba: Sequence[int]) -> "PixelBuffer":
        """Buffer filled with a single colour."""
        if len(rgba) == 3:
            rgba = tuple(rgba) + (255,)
        pixel = np.clip(np.asarray(rgba, dtype=np.int64), 0, 255).astype(np.uint8)
        width = _as_dimension(width, "width")
        height = _as_dimension(height, "height")
        return cls(width, height, np.tile(pixel, (height, width, 1)))


def require_buffer(buffer) -> PixelBuffer:
    """Reject anything that is not a well-formed PixelBuffer."""
    if not isinstance(buffer, PixelBuffer):
        raise InvalidBufferError(f"expected PixelBuffer, got {type(buffer).__name__}")
    if len(buffer.data) != buffer.width * buffer.height * 4:
        raise InvalidBufferError(
            "buffer data length does not match its dimensions",
            width=buffer.width, height=buffer.height, length=len(buffer.data),
        )
    return buffer


def split_channels(buffer: PixelBuffer) -> Tuple[np.ndarray, np.ndarray]:
    """
    Unpack a buffer into working arrays.

    Returns:
        (rgb, alpha): float32 HxWx3 in 0..255 and uint8 HxW
    """
    pixels = np.frombuffer(require_buffer(buffer).data, dtype=np.uint8)
    pixels = pixels.reshape(buffer.height, buffer.width, 4)
    return pixels[:, :, :3].astype(np.float32), pixels[:, :, 3].copy()


def to_uint8(rgb: np.ndarray) -> np.ndarray:
    """Round and clamp a float working array to 8 bits."""
    return np.clip(np.rint(rgb), 0, 255).astype(np.uint8)


def merge_channels(rgb: np.ndarray, alpha: np.ndarray) -> PixelBuffer:
    """Pack a float RGB working array and an alpha plane into a new buffer."""
    out = np.empty(rgb.shape[:2] + (4,), dtype=np.uint8)
    out[:, :, :3] = to_uint8(rgb)
    out[:, :, 3] = alpha
    return PixelBuffer.from_array(out)
