"""
System health and configuration router.

Wired to:
- RequestStore for raw data diagnostics
- Settings for configuration
"""

import time

from fastapi import APIRouter

from requestlens import __version__
from requestlens.config import get_settings
from requestlens.storage import StorageError, get_store
from requestlens.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Track startup time for uptime calculation
_startup_time = time.time()


@router.get("/health")
async def system_health():
    """
    Get system health status.
    Counts raw requests to verify the store is reachable.
    """
    uptime = time.time() - _startup_time

    db_status = "healthy"
    raw_requests = None
    try:
        raw_requests = get_store().count_raw_requests()
    except StorageError as e:
        logger.warning("store_unhealthy", error=str(e))
        db_status = f"unhealthy: {e}"

    return {
        "success": True,
        "data": {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "version": __version__,
            "uptime_seconds": round(uptime, 1),
            "database": db_status,
            "raw_requests": raw_requests,
        },
    }


@router.get("/config")
async def system_config():
    """Report defaults and data source settings in effect."""
    settings = get_settings()
    return {
        "success": True,
        "data": {
            "db_path": settings.db_path,
            "raw_table": settings.raw_table,
            "report_defaults": {
                "min_group_size": settings.min_group_size,
                "min_monthly_group_size": settings.min_monthly_group_size,
                "rolling_window": settings.rolling_window,
                "z_threshold": settings.z_threshold,
                "top_n": settings.top_n,
                "decimals": settings.report_decimals,
            },
            "report_max_workers": settings.report_max_workers,
            "dev_mode": settings.dev_mode,
        },
    }
