"""
Image file <-> PixelBuffer conversion for the CLI and HTTP layers.

OpenCV works in BGR(A); everything here converts to and from the RGBA
order PixelBuffer uses. 16-bit images are reduced to 8 bits.
"""

import numpy as np
import cv2

from pixelcore.buffer import PixelBuffer
from pixelcore.errors import InvalidBufferError


def _to_rgba(image: np.ndarray) -> np.ndarray:
    if image.dtype == np.uint16:
        image = (image // 257).astype(np.uint8)
    elif image.dtype != np.uint8:
        raise InvalidBufferError(f"unsupported image depth: {image.dtype}")

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    raise InvalidBufferError(f"unsupported channel count: {image.shape[2]}")


def decode_image(contents: bytes, name: str = "image") -> PixelBuffer:
    """Decode an encoded image (PNG, JPEG, ...) into an RGBA buffer."""
    nparr = np.frombuffer(contents, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED) if nparr.size else None
    if image is None:
        raise InvalidBufferError(f"Could not decode image: {name}")
    return PixelBuffer.from_array(_to_rgba(image))


def read_image(path: str) -> PixelBuffer:
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    return PixelBuffer.from_array(_to_rgba(image))


def to_bgra(buffer: PixelBuffer) -> np.ndarray:
    return cv2.cvtColor(buffer.to_array(), cv2.COLOR_RGBA2BGRA)


def write_image(path: str, buffer: PixelBuffer) -> None:
    """Write a buffer; the format follows the file extension."""
    if not cv2.imwrite(str(path), to_bgra(buffer)):
        raise IOError(f"Could not write image: {path}")


def encode_png(buffer: PixelBuffer) -> bytes:
    ok, encoded = cv2.imencode(".png", to_bgra(buffer))
    if not ok:
        raise IOError("Failed to encode PNG")
    return encoded.tobytes()
