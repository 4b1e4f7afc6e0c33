from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user_id, require_permissions
from ..schemas.admin import MaintenanceModeUpdate, SystemLogCreate
from ..services import system as svc
from ..services.roles import Permission
from ..storage.factory import get_document_store, get_local_store
from ..storage.provider import DocumentStore, KeyValueStore


router = APIRouter(prefix="/system", tags=["system"])

_settings = require_permissions(Permission.system_settings.value)
_audit = require_permissions(Permission.audit_logs.value)


@router.get("/health")
def get_health(
    _role: str = Depends(require_permissions(Permission.admin_view.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_system_health(remote, local).to_response()


@router.get("/statistics")
def get_statistics(
    _role: str = Depends(require_permissions(Permission.admin_reports.value, Permission.admin_view.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_system_statistics(remote, local).to_response()


@router.get("/maintenance-mode")
def get_maintenance_mode(
    _uid: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_maintenance_status(remote, local).to_response()


@router.put("/maintenance-mode")
def set_maintenance_mode(
    payload: MaintenanceModeUpdate,
    me: str = Depends(get_current_user_id),
    _role: str = Depends(_settings),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.set_maintenance_mode(remote, local, payload.enabled, payload.message, set_by=me).to_response()


@router.get("/logs")
def list_logs(
    limit: int = Query(50, ge=1),
    _role: str = Depends(_audit),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_system_logs(remote, local, limit).to_response()


@router.post("/logs")
def add_log(
    payload: SystemLogCreate,
    me: str = Depends(get_current_user_id),
    _role: str = Depends(_settings),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    details = {**(payload.details or {}), "userId": me}
    return svc.add_system_log(remote, local, payload.level, payload.message, details, source="api").to_response()


@router.get("/audit-logs")
def list_audit_logs(
    limit: int = Query(30, ge=1),
    _role: str = Depends(_audit),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_audit_logs(remote, local, limit).to_response()


@router.post("/cleanup")
def cleanup(
    days_old: int = Query(90, ge=1),
    _role: str = Depends(_settings),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.cleanup_old_data(remote, local, days_old).to_response()
