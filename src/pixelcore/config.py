"""
Centralized configuration - single source of truth.
Every tunable lives here, read once from the environment.
"""

import os

# Batch processing
MAX_WORKERS = int(os.environ.get("PIXELCORE_MAX_WORKERS", str(os.cpu_count() or 1)))
MEMORY_CEILING_MB = int(os.environ.get("PIXELCORE_MEMORY_CEILING_MB", "1024"))

# Palette analysis
PALETTE_SIZE = int(os.environ.get("PIXELCORE_PALETTE_SIZE", "10"))
PALETTE_SAMPLE_LIMIT = int(os.environ.get("PIXELCORE_PALETTE_SAMPLE_LIMIT", "60000"))
PALETTE_RNG_SEED = 1234
CONTRAST_PAIR_LIMIT = 10

# Oil painting works in row chunks of at most this many window samples
OIL_CHUNK_SAMPLES = 4_000_000

# Unsharp-mask blur radii: clarity (local contrast) and the generic filter
CLARITY_RADIUS = 10
UNSHARP_RADIUS = 2

# Logging
LOG_LEVEL = os.environ.get("PIXELCORE_LOG_LEVEL", "INFO").upper()
LOG_DIR = os.path.expanduser(os.environ.get("PIXELCORE_LOG_DIR", "~/.pixelcore/logs"))

# HTTP service
MAX_UPLOAD_MB = int(os.environ.get("PIXELCORE_MAX_UPLOAD_MB", "25"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("PIXELCORE_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
