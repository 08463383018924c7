"""
Analysis Router - colour analysis, schemes and suggestions.
"""

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from pixelcore import config
from pixelcore.analysis import analyze_colors, smart_color_suggestions, suggest_color_schemes
from pixelcore.api.schemas import AnalyzeRequest, SchemesRequest, SuggestionsRequest
from pixelcore.image_io import decode_image

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


@router.post("/analyze")
def analyze(req: AnalyzeRequest):
    """Full colour analysis of a raw RGBA buffer."""
    buffer = req.buffer.to_buffer()
    return analyze_colors(buffer, palette_size=req.palette_size).to_dict()


@router.post("/analyze/upload")
def analyze_upload(file: UploadFile = File(...), palette_size: int = config.PALETTE_SIZE):
    """Decode an uploaded image (PNG, JPEG, ...) and analyse it."""
    limit = config.MAX_UPLOAD_MB * 1024 * 1024
    contents = file.file.read(limit + 1)
    if len(contents) > limit:
        raise HTTPException(413, f"Upload exceeds {config.MAX_UPLOAD_MB} MB")
    if not 1 <= palette_size <= 64:
        raise HTTPException(422, "palette_size must be between 1 and 64")

    buffer = decode_image(contents, file.filename or "upload")
    logger.info("Analyzing upload %s (%dx%d)", file.filename, buffer.width, buffer.height)
    return analyze_colors(buffer, palette_size=palette_size).to_dict()


@router.post("/palette/schemes")
def palette_schemes(req: SchemesRequest):
    return {"schemes": [scheme.to_dict() for scheme in suggest_color_schemes(req.colors)]}


@router.post("/palette/suggestions")
def palette_suggestions(req: SuggestionsRequest):
    suggestions = smart_color_suggestions(req.base_color, req.purpose)
    return {"suggestions": [s.to_dict() for s in suggestions]}
