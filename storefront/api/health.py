# storefront/api/health.py
"""
Health check endpoints.

Both report the connection state recorded at startup; neither runs a query.
"""
from datetime import datetime, timezone
from fastapi import APIRouter

from storefront import __version__
from storefront.db import get_connection_error, is_connected

router = APIRouter(tags=["Health"])


def _status() -> dict:
    connected = is_connected()
    return {
        "status": "healthy" if connected else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {"connected": connected, "error": get_connection_error()},
    }


@router.get("/healthz")
async def healthz():
    """Liveness probe: process is up, plus the database connection state."""
    return {"ok": True, **_status()}


@router.get("/api/health")
async def api_health():
    """API health check with version and database status."""
    return {"version": __version__, **_status()}
