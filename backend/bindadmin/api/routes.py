"""
Main API routes configuration
"""

from fastapi import APIRouter

from .endpoints import bind_server, health, named_conf

# Create main API router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(bind_server.router, prefix="/bind-server", tags=["BIND9 Service"])
api_router.include_router(named_conf.router, prefix="/bind-server/named-conf", tags=["named.conf"])
