"""
HTTP endpoints for GeoAlert observability.

This module implements health, readiness, metrics, and info endpoints
for monitoring and operational visibility.
"""

import time
from typing import Awaitable, Callable, Optional
from fastapi import FastAPI, HTTPException
from fastapi.responses import Response, JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from geoalert.settings import Settings
from geoalert.observability import metrics as _metrics
from geoalert.observability.logging_setup import get_logger

log = get_logger("geoalert.http")

ReadinessCheck = Callable[[], Awaitable[bool]]

def create_app(settings: Settings, readiness: Optional[ReadinessCheck] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: application settings
        readiness: optional async check; /ready answers 503 while it returns False
    """
    app = FastAPI(
        title=settings.observability.service_name,
        version=settings.observability.build_version,
        description="Location-aware emergency alert engine"
    )

    start_time = time.time()

    @app.get("/health")
    async def health():
        return JSONResponse({
            "status": "ok",
            "service": settings.observability.service_name,
            "timestamp": time.time()
        })

    @app.get("/ready")
    async def ready():
        is_ready = True
        if readiness is not None:
            try:
                is_ready = await readiness()
            except Exception as e:
                log.error("readiness check failed", error=str(e))
                is_ready = False
        return JSONResponse({
            "status": "ready" if is_ready else "not_ready",
            "service": settings.observability.service_name,
            "timestamp": time.time()
        }, status_code=200 if is_ready else 503)

    @app.get("/metrics")
    async def metrics():
        if not settings.observability.metrics_enabled:
            raise HTTPException(status_code=503, detail="Metrics disabled")

        _metrics.uptime_seconds.set(time.time() - start_time)
        return Response(
            generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/info")
    async def info():
        uptime = time.time() - start_time
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "build_date": settings.observability.build_date,
            "uptime_seconds": int(uptime),
            "metrics_enabled": settings.observability.metrics_enabled,
            "log_level": settings.observability.log_level
        })

    @app.get("/")
    async def root():
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "endpoints": {
                "health": "/health",
                "ready": "/ready",
                "metrics": "/metrics",
                "info": "/info"
            }
        })

    return app
