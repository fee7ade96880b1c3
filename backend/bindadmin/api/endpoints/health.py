"""
Liveness endpoint
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from ...core.config import get_settings

router = APIRouter()


@router.get("")
async def health_check():
    """Health check endpoint for load balancers"""
    settings = get_settings()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
