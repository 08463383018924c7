"""
Structured JSON Request Logging
===============================
Request ID tracking, one JSON line per request, rotation, in-memory metrics.
"""

import json
import logging
import os
import time
import uuid
from logging.handlers import RotatingFileHandler

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from pixelcore import config

os.makedirs(config.LOG_DIR, exist_ok=True)

# JSON request log
_logger = logging.getLogger("pixelcore.requests")
_logger.setLevel(logging.INFO)
_logger.propagate = False

# Rotating file handler: 10MB max, 5 backups
_file_handler = RotatingFileHandler(
    os.path.join(config.LOG_DIR, "requests.jsonl"),
    maxBytes=10 * 1024 * 1024,
    backupCount=5,
    encoding="utf-8",
)
_file_handler.setFormatter(logging.Formatter("%(message)s"))
_logger.addHandler(_file_handler)

# Errors only, for quick scanning
_error_logger = logging.getLogger("pixelcore.request_errors")
_error_logger.setLevel(logging.ERROR)
_error_logger.propagate = False
_error_handler = RotatingFileHandler(
    os.path.join(config.LOG_DIR, "errors.jsonl"),
    maxBytes=5 * 1024 * 1024,
    backupCount=3,
    encoding="utf-8",
)
_error_handler.setFormatter(logging.Formatter("%(message)s"))
_error_logger.addHandler(_error_handler)

_QUIET_PATHS = ("/health", "/favicon.ico")
_MAX_LATENCIES = 1000

_metrics = {
    "total_requests": 0,
    "errors_4xx": 0,
    "errors_5xx": 0,
    "by_endpoint": {},
    "pixels_processed": 0,
    "latencies": [],  # last _MAX_LATENCIES durations in ms
    "started_at": time.time(),
}


def _percentile(sorted_values: list, fraction: float) -> float:
    index = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return round(sorted_values[index], 1)


def get_metrics() -> dict:
    """Current request metrics."""
    latencies = sorted(_metrics["latencies"]) or [0]
    return {
        "total_requests": _metrics["total_requests"],
        "errors_4xx": _metrics["errors_4xx"],
        "errors_5xx": _metrics["errors_5xx"],
        "pixels_processed": _metrics["pixels_processed"],
        "uptime_seconds": round(time.time() - _metrics["started_at"]),
        "latency_ms": {
            "p50": _percentile(latencies, 0.5),
            "p95": _percentile(latencies, 0.95),
            "p99": _percentile(latencies, 0.99),
        },
        "top_endpoints": dict(
            sorted(_metrics["by_endpoint"].items(), key=lambda x: x[1], reverse=True)[:10]
        ),
    }


def record_pixels(count: int) -> None:
    _metrics["pixels_processed"] += count


def _entry(request: Request, request_id: str, status: int, duration_ms: float, **extra) -> str:
    entry = {
        "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "rid": request_id,
        "method": request.method,
        "path": request.url.path,
        "status": status,
        "ms": duration_ms,
        "ip": request.client.host if request.client else "unknown",
    }
    entry.update(extra)
    return json.dumps(entry)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request as structured JSON with request ID and duration."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        start = time.time()

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = round((time.time() - start) * 1000, 1)
            line = _entry(request, request_id, 500, duration_ms, error=str(exc)[:200])
            _logger.info(line)
            _error_logger.error(line)
            _metrics["total_requests"] += 1
            _metrics["errors_5xx"] += 1
            raise

        duration_ms = round((time.time() - start) * 1000, 1)
        status = response.status_code
        path = request.url.path

        if path not in _QUIET_PATHS:
            line = _entry(request, request_id, status, duration_ms)
            _logger.info(line)
            if status >= 500:
                _error_logger.error(line)

        _metrics["total_requests"] += 1
        if 400 <= status < 500:
            _metrics["errors_4xx"] += 1
        elif status >= 500:
            _metrics["errors_5xx"] += 1

        endpoint_key = f"{request.method} {path}"
        _metrics["by_endpoint"][endpoint_key] = _metrics["by_endpoint"].get(endpoint_key, 0) + 1

        _metrics["latencies"].append(duration_ms)
        if len(_metrics["latencies"]) > _MAX_LATENCIES:
            _metrics["latencies"] = _metrics["latencies"][-_MAX_LATENCIES:]

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration_ms)
        return response
