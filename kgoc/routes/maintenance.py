from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user_id, require_permissions
from ..schemas.operations import MaintenanceRequestCreate, MaintenanceStatusUpdate
from ..services import maintenance as svc
from ..services.parts_catalog import list_parts, parts_by_category
from ..services.roles import Permission
from ..storage.factory import get_document_store, get_local_store
from ..storage.provider import DocumentStore, KeyValueStore


router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("/parts")
def get_parts(grouped: bool = False, _uid: str = Depends(get_current_user_id)):
    if grouped:
        return {
            category: [p.model_dump() for p in parts]
            for category, parts in parts_by_category().items()
        }
    return [p.model_dump() for p in list_parts()]


@router.post("/requests")
def create_request(
    payload: MaintenanceRequestCreate,
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    data = payload.model_dump(exclude_none=True)
    data.setdefault("requestedBy", user_id)
    return svc.create_maintenance_request(remote, local, data).to_response()


@router.get("/requests")
def list_requests(
    limit: Optional[int] = Query(None, ge=1),
    _uid: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_all_maintenance_requests(remote, local, limit).to_response()


@router.get("/requests/well/{well_number}")
def list_requests_for_well(
    well_number: str,
    _uid: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_maintenance_requests_by_well(remote, local, well_number).to_response()


@router.patch("/requests/{request_id}/status")
def update_request_status(
    request_id: str,
    payload: MaintenanceStatusUpdate,
    _role: str = Depends(require_permissions(Permission.well_services_edit.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.update_maintenance_request_status(
        remote, local, request_id, payload.status, payload.notes
    ).to_response()


@router.delete("/requests")
def clear_requests(
    include_remote: bool = True,
    _role: str = Depends(require_permissions(Permission.system_settings.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.clear_maintenance_requests(remote, local, include_remote).to_response()
