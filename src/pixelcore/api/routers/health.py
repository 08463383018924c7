"""
Health & Observability Router
==============================
/health, /metrics
"""

import shutil

import cv2
import numpy as np
from fastapi import APIRouter

from pixelcore import config
from pixelcore.api.middleware.logging import get_metrics
from pixelcore.palette import DEFAULT_EXTRACTORS

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Library versions, palette extractors and log-disk headroom."""
    extractors = {cls.name: cls().is_available() for cls in DEFAULT_EXTRACTORS}

    disk = shutil.disk_usage(config.LOG_DIR)
    disk_free_gb = round(disk.free / (1024 ** 3), 1)
    disk_ok = disk_free_gb > 1

    all_ok = disk_ok and any(extractors.values())
    return {
        "status": "healthy" if all_ok else "degraded",
        "components": {
            "opencv": {"installed": True, "version": cv2.__version__},
            "numpy": {"installed": True, "version": np.__version__},
            "palette_extractors": extractors,
            "disk": {"healthy": disk_ok, "free_gb": disk_free_gb},
        },
        "workers": config.MAX_WORKERS,
    }


@router.get("/metrics")
def metrics():
    """Request metrics: counts, latency percentiles, top endpoints."""
    return get_metrics()
