"""
named.conf management endpoints
"""

from fastapi import APIRouter, Depends, status

from ...core.logging_config import get_namedconf_logger
from ...core.security import get_current_user
from ...namedconf.elements import ConfigElement
from ...schemas.named_conf import (
    DiffRequest,
    GenerateRequest,
    NamedConfContent,
    RestoreRequest,
    ZoneStanzaCreate,
    ZoneStanzaUpdate,
)
from ...services.named_conf_service import NamedConfService

router = APIRouter()
logger = get_namedconf_logger()


def get_named_conf_service() -> NamedConfService:
    return NamedConfService()


def _backup_payload(backup):
    return {"backup": backup.to_dict() if backup else None}


@router.get("/content")
async def get_content(
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Get the raw named.conf text"""
    return {
        "data": {"content": service.get_content(), "path": service.named_conf_path},
        "success": True
    }


@router.put("")
async def update_content(
    body: NamedConfContent,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Validate, back up, write and reload named.conf"""
    logger.info(f"named.conf update requested by {current_user.get('username', 'unknown')}")
    backup = await service.update_content(body.content)
    return {"data": _backup_payload(backup), "success": True}


@router.post("/validate")
async def validate_content(
    body: NamedConfContent,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Run named-checkconf against candidate text"""
    result = await service.validate(body.content)
    return {"data": result.to_dict(), "success": True}


@router.post("/diff")
async def diff_content(
    body: DiffRequest,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Line diff between two revisions"""
    if body.old_content is None:
        result = service.propose(body.new_content)
    else:
        result = service.diff(body.old_content, body.new_content)
    return {"data": result.to_dict(), "success": True}


@router.get("/parse")
async def parse_content(
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Structured tree of the live file with includes inlined"""
    return {"data": service.parse().to_dict(), "success": True}


@router.post("/generate")
async def generate_content(
    body: GenerateRequest,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Render a tree back to named.conf text"""
    tree = ConfigElement.from_dict(body.tree.model_dump())
    return {"data": {"content": service.generate(tree)}, "success": True}


@router.get("/backups")
async def list_backups(
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """List snapshots of named.conf, newest first"""
    return {"data": [backup.to_dict() for backup in service.list_backups()], "success": True}


@router.post("/backups", status_code=status.HTTP_201_CREATED)
async def create_backup(
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Take a manual snapshot"""
    return {"data": service.create_backup().to_dict(), "success": True}


@router.delete("/backups/{backup_id}")
async def delete_backup(
    backup_id: str,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    service.delete_backup(backup_id)
    return {"data": {"success": True}, "success": True}


@router.post("/restore")
async def restore_backup(
    body: RestoreRequest,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Copy a snapshot over named.conf and reload"""
    logger.info(f"Restore of {body.backup_path} requested by {current_user.get('username', 'unknown')}")
    result = await service.restore_backup(body.backup_path)
    return {"data": result, "success": True}


@router.get("/zones")
async def list_zones(
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    """Zone stanzas declared in named.conf and its includes"""
    return {"data": service.list_zones(), "success": True}


@router.post("/zones", status_code=status.HTTP_201_CREATED)
async def add_zone(
    body: ZoneStanzaCreate,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    backup = await service.add_zone(body.domain, body.zone_file, body.allow_query, body.comment)
    return {"data": _backup_payload(backup), "success": True}


@router.put("/zones/{domain}")
async def update_zone(
    domain: str,
    body: ZoneStanzaUpdate,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    backup = await service.update_zone(domain, body.zone_file, body.allow_query, body.comment)
    return {"data": _backup_payload(backup), "success": True}


@router.delete("/zones/{domain}")
async def remove_zone(
    domain: str,
    service: NamedConfService = Depends(get_named_conf_service),
    current_user: dict = Depends(get_current_user)
):
    backup = await service.remove_zone(domain)
    return {"data": _backup_payload(backup), "success": True}
