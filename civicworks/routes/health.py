"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from fastapi import APIRouter, Depends, HTTPException

from civicworks.core.settings import settings
from civicworks.services.container import ServiceContainer, get_container
from civicworks.utils.time import utcnow


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat()
    }


@router.get("/db")
async def database_health(container: ServiceContainer = Depends(get_container)):
    """
    Document store connectivity check.
    Performs a lightweight read against the configured backend.
    """
    try:
        # Any read proves the backend answers; the document need not exist
        container.stores.reports.get("healthcheck")

        return {
            "status": "healthy",
            "database": container.stores.backend,
            "connected": True,
            "timestamp": utcnow().isoformat()
        }
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}"
        )
