"""
BIND9 daemon control endpoints
"""

from fastapi import APIRouter, Depends

from ...core.exceptions import BindException
from ...core.logging_config import get_bind_logger
from ...core.security import get_current_user
from ...services.bind_service import BindService

router = APIRouter()
logger = get_bind_logger()


def get_bind_service() -> BindService:
    return BindService()


@router.get("/status")
async def get_status(
    bind_service: BindService = Depends(get_bind_service),
    current_user: dict = Depends(get_current_user)
):
    """Get BIND9 service status"""
    status = await bind_service.get_service_status()
    return {"data": status, "success": True}


async def _control(action: str, operation, current_user: dict):
    logger.info(f"BIND9 {action} requested by {current_user.get('username', 'unknown')}")
    if not await operation():
        raise BindException(
            f"Failed to {action} BIND9 service",
            details={"action": action},
            suggestions=["Check the BIND9 logs", "Verify BIND_EXEC_* commands when systemd is not used"]
        )
    return {"data": {"success": True}, "success": True}


@router.post("/start")
async def start_service(
    bind_service: BindService = Depends(get_bind_service),
    current_user: dict = Depends(get_current_user)
):
    return await _control("start", bind_service.start_service, current_user)


@router.post("/stop")
async def stop_service(
    bind_service: BindService = Depends(get_bind_service),
    current_user: dict = Depends(get_current_user)
):
    return await _control("stop", bind_service.stop_service, current_user)


@router.post("/restart")
async def restart_service(
    bind_service: BindService = Depends(get_bind_service),
    current_user: dict = Depends(get_current_user)
):
    return await _control("restart", bind_service.restart_service, current_user)


@router.post("/reload")
async def reload_service(
    bind_service: BindService = Depends(get_bind_service),
    current_user: dict = Depends(get_current_user)
):
    return await _control("reload", bind_service.reload_service, current_user)
