"""Healthcheck endpoint with dependency checks."""

from __future__ import annotations

import time
from datetime import datetime, timezone

import psutil
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storeintel.db.session import SessionLocal

router = APIRouter()

# Process start, used for uptime reporting
START_TIME = time.time()


def _check_database() -> dict:
    start = time.perf_counter()
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return {"status": "error", "error": str(e)}
    return {"status": "ok", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}


@router.get("/healthz")
def healthz():
    """Health check covering database, disk, memory and uptime.

    Returns:
        200 when the database answers (disk or memory pressure only degrades)
        503 when the database is unreachable

    """
    checks: dict = {"database": _check_database()}
    healthy = checks["database"]["status"] == "ok"
    status = "healthy" if healthy else "unhealthy"

    disk = psutil.disk_usage("/")
    checks["disk"] = {
        "status": "warning" if disk.percent > 90 else "ok",
        "free_gb": round(disk.free / (1024**3), 2),
        "used_percent": disk.percent,
    }

    mem = psutil.virtual_memory()
    checks["memory"] = {
        "status": "warning" if mem.percent > 90 else "ok",
        "available_mb": round(mem.available / (1024**2), 2),
        "used_percent": mem.percent,
    }

    if healthy and "warning" in (checks["disk"]["status"], checks["memory"]["status"]):
        status = "degraded"

    uptime_seconds = time.time() - START_TIME
    checks["uptime"] = {
        "status": "ok",
        "uptime_seconds": round(uptime_seconds, 2),
        "uptime_human": _format_uptime(uptime_seconds),
    }
    checks["timestamp"] = datetime.now(timezone.utc).isoformat()

    body = {"status": status, "healthy": healthy, "checks": checks}
    return JSONResponse(status_code=200 if healthy else 503, content=body)


def _format_uptime(seconds: float) -> str:
    """Format uptime as e.g. "1d 2h 30m"."""
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or not parts:
        parts.append(f"{minutes}m")

    return " ".join(parts)
