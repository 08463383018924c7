"""
Request / response models for the HTTP layer.

Buffers travel as {width, height, data} with data the base64 of the raw
RGBA bytes.
"""

import base64
import binascii
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from pixelcore import config
from pixelcore.buffer import PixelBuffer
from pixelcore.errors import InvalidBufferError


class BufferModel(BaseModel):
    width: int
    height: int
    data: str = Field(description="base64-encoded RGBA bytes, row-major")

    def to_buffer(self) -> PixelBuffer:
        try:
            raw = base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidBufferError(f"buffer data is not valid base64: {e}",
                                     width=self.width, height=self.height) from None
        return PixelBuffer(self.width, self.height, raw)

    @classmethod
    def from_buffer(cls, buffer: PixelBuffer) -> "BufferModel":
        return cls(width=buffer.width, height=buffer.height,
                   data=base64.b64encode(buffer.data).decode("ascii"))


# ─── Requests ─────────────────────────────────────────────


class TonalRequest(BaseModel):
    buffer: BufferModel
    options: Dict[str, Any] = Field(default_factory=dict)
    seed: Optional[int] = Field(default=None, description="Seed for film grain")


class ArtisticRequest(BaseModel):
    buffer: BufferModel
    filter: Dict[str, Any]


class GradingRequest(BaseModel):
    buffer: BufferModel
    grading: Dict[str, Any] = Field(default_factory=dict)


class LensRequest(BaseModel):
    buffer: BufferModel
    correction: Dict[str, Any] = Field(default_factory=dict)


class AnalyzeRequest(BaseModel):
    buffer: BufferModel
    palette_size: int = Field(default=config.PALETTE_SIZE, ge=1, le=64)


class SchemesRequest(BaseModel):
    colors: List[str] = Field(default_factory=list)


class SuggestionsRequest(BaseModel):
    base_color: str
    purpose: Literal["web", "print", "brand", "artistic"] = "web"


# ─── Responses ────────────────────────────────────────────


class ImageResponse(BaseModel):
    buffer: BufferModel
    warnings: List[str] = Field(default_factory=list)
