from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user_id, require_permissions
from ..schemas.operations import ServiceRequestCreate, ServiceRequestUpdate
from ..services import well_services as svc
from ..services.roles import Permission
from ..storage.factory import get_document_store, get_local_store
from ..storage.provider import DocumentStore, KeyValueStore


router = APIRouter(prefix="/well-services", tags=["well-services"])

_view = require_permissions(Permission.well_services_view.value)


@router.get("/types")
def get_service_types(_uid: str = Depends(get_current_user_id)):
    return {
        "serviceTypes": svc.SERVICE_TYPES,
        "statuses": [s.value for s in svc.ServiceStatus],
        "priorities": [p.value for p in svc.ServicePriority],
    }


@router.get("/analytics")
def get_analytics(
    _role: str = Depends(require_permissions(Permission.admin_reports.value, Permission.well_services_view.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.generate_service_analytics(remote, local).to_response()


@router.get("/statistics")
def get_statistics(
    _role: str = Depends(_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_service_statistics(remote, local).to_response()


@router.get("/recent")
def list_recent(
    days: int = Query(30, ge=1),
    _role: str = Depends(_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_recent_service_requests(remote, local, days).to_response()


@router.get("/search")
def search(
    q: str = "",
    _role: str = Depends(_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.search_service_requests(remote, local, q).to_response()


@router.get("/status/{status}")
def list_by_status(
    status: str,
    _role: str = Depends(_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_service_requests_by_status(remote, local, status).to_response()


@router.get("/priority/{priority}")
def list_by_priority(
    priority: str,
    _role: str = Depends(_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_service_requests_by_priority(remote, local, priority).to_response()


@router.get("/well/{well_number}")
def list_for_well(
    well_number: str,
    _role: str = Depends(_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_service_requests_by_well(remote, local, well_number).to_response()


@router.get("")
def list_service_requests(
    limit: Optional[int] = Query(None, ge=1),
    _role: str = Depends(_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_all_service_requests(remote, local, limit).to_response()


@router.post("")
def create_service_request(
    payload: ServiceRequestCreate,
    user_id: str = Depends(get_current_user_id),
    _role: str = Depends(require_permissions(Permission.well_services_create.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    data = payload.model_dump(exclude_none=True)
    data.setdefault("requestedBy", user_id)
    return svc.create_service_request(remote, local, data).to_response()


@router.get("/{request_id}")
def get_service_request(
    request_id: str,
    _role: str = Depends(_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_service_request_by_id(remote, local, request_id).to_response()


@router.patch("/{request_id}")
def update_service_request(
    request_id: str,
    payload: ServiceRequestUpdate,
    _role: str = Depends(require_permissions(
        Permission.well_services_edit.value, Permission.well_services_schedule.value
    )),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.update_service_request(remote, local, request_id, payload.model_dump()).to_response()


@router.delete("/{request_id}")
def delete_service_request(
    request_id: str,
    _role: str = Depends(require_permissions(Permission.well_services_delete.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.delete_service_request(remote, local, request_id).to_response()
