"""
Filters Router - tonal, artistic, grading and lens endpoints.

Each endpoint decodes the buffer, runs one engine call and returns the new
buffer. Malformed option payloads are 422s; malformed buffers are handled
by the InvalidBufferError handler in main.
"""

import logging

import numpy as np
from fastapi import APIRouter, HTTPException

from pixelcore.api.middleware.logging import record_pixels
from pixelcore.api.schemas import (
    ArtisticRequest, BufferModel, GradingRequest, ImageResponse, LensRequest, TonalRequest,
)
from pixelcore.artistic import ArtisticFilter, apply_artistic, is_supported
from pixelcore.grading import ColorGrading, apply_grading
from pixelcore.lens import LensCorrection, apply_lens_correction
from pixelcore.tonal import TonalOptions, apply_tonal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["filters"])


def _options(builder, data: dict, what: str):
    try:
        return builder(data)
    except (ValueError, TypeError, KeyError) as e:
        raise HTTPException(status_code=422, detail=f"invalid {what}: {e}")


def _run(engine, buffer, *args, **kwargs):
    # Non-numeric slider values only surface once the engine reads them
    try:
        result = engine(buffer, *args, **kwargs)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    record_pixels(buffer.width * buffer.height)
    return result


@router.post("/tonal", response_model=ImageResponse)
def tonal(req: TonalRequest):
    """Slider adjustments in the fixed tonal order."""
    buffer = req.buffer.to_buffer()
    options = _options(TonalOptions.from_dict, req.options, "options")
    rng = np.random.default_rng(req.seed) if req.seed is not None else None
    result = _run(apply_tonal, buffer, options, rng=rng)
    return ImageResponse(buffer=BufferModel.from_buffer(result))


@router.post("/artistic", response_model=ImageResponse)
def artistic(req: ArtisticRequest):
    """Artistic effect; unknown filter types come back unchanged with a warning."""
    buffer = req.buffer.to_buffer()
    artistic_filter = _options(ArtisticFilter.from_dict, req.filter, "filter")

    warnings = []
    if not is_supported(artistic_filter.type):
        warnings.append(f"unsupported filter type: {artistic_filter.type}")

    result = _run(apply_artistic, buffer, artistic_filter)
    return ImageResponse(buffer=BufferModel.from_buffer(result), warnings=warnings)


@router.post("/grading", response_model=ImageResponse)
def grading(req: GradingRequest):
    buffer = req.buffer.to_buffer()
    grade = _options(ColorGrading.from_dict, req.grading, "grading")
    return ImageResponse(buffer=BufferModel.from_buffer(_run(apply_grading, buffer, grade)))


@router.post("/lens", response_model=ImageResponse)
def lens(req: LensRequest):
    buffer = req.buffer.to_buffer()
    correction = _options(LensCorrection.from_dict, req.correction, "correction")
    return ImageResponse(buffer=BufferModel.from_buffer(_run(apply_lens_correction, buffer, correction)))
