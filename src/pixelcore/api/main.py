"""
Pixelcore - FastAPI Service
===========================

HTTP front end for the pixel engines. Buffers travel as base64 RGBA.

Run:
    uvicorn pixelcore.api.main:app --port 8000

Endpoints:
    POST /tonal               - Tonal slider pipeline
    POST /artistic            - Artistic effects
    POST /grading             - Colour grading
    POST /lens                - Lens corrections
    POST /analyze             - Colour analysis of a raw buffer
    POST /analyze/upload      - Colour analysis of an uploaded image file
    POST /palette/schemes     - Colour schemes from dominant colours
    POST /palette/suggestions - Purpose-driven colour suggestions
    GET  /health              - Health check
    GET  /metrics             - Request metrics
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pixelcore import config
from pixelcore.api.middleware.error_handler import ErrorHandlerMiddleware, invalid_buffer_handler
from pixelcore.api.middleware.logging import RequestLoggingMiddleware
from pixelcore.api.routers import analysis, filters, health
from pixelcore.errors import InvalidBufferError

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ============================================
# APP SETUP
# ============================================

app = FastAPI(
    title="Pixelcore API",
    description="Pixel-level tonal, artistic, grading, lens and colour analysis engines",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials="*" not in config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Added last = outermost: request IDs exist before errors are rendered
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(InvalidBufferError, invalid_buffer_handler)

app.include_router(filters.router)
app.include_router(analysis.router)
app.include_router(health.router)

logger.info("Pixelcore API ready (log dir %s, %d workers)", config.LOG_DIR, config.MAX_WORKERS)


# ============================================
# MAIN
# ============================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
