from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user_id, require_permissions
from ..schemas.admin import NotificationCreate
from ..services import notifications as svc
from ..services.roles import Permission
from ..storage.factory import get_document_store, get_local_store
from ..storage.provider import DocumentStore, KeyValueStore


router = APIRouter(prefix="/notifications", tags=["notifications"])

_admin_view = require_permissions(Permission.admin_view.value)


@router.get("/types")
def get_notification_types(_uid: str = Depends(get_current_user_id)):
    return {
        "types": [t.value for t in svc.NotificationType],
        "priorities": [p.value for p in svc.NotificationPriority],
    }


# ----- Current user -----

@router.get("/me")
def list_my_notifications(
    limit: int = Query(50, ge=1),
    unread_only: bool = False,
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_user_notifications(remote, local, user_id, limit, unread_only).to_response()


@router.get("/me/unread-count")
def my_unread_count(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_unread_count(remote, local, user_id).to_response()


@router.post("/me/read-all")
def mark_all_mine_read(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.mark_all_as_read(remote, local, user_id).to_response()


@router.patch("/{notification_id}/read")
def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.mark_as_read(remote, local, notification_id, user_id).to_response()


# ----- Administration -----

@router.get("/statistics")
def get_statistics(
    _role: str = Depends(require_permissions(Permission.admin_reports.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_notification_statistics(remote, local).to_response()


@router.post("/cleanup")
def clean_old(
    days_old: int = Query(30, ge=1),
    _role: str = Depends(require_permissions(Permission.system_settings.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.clean_old_notifications(remote, local, days_old).to_response()


@router.get("/type/{kind}")
def list_by_type(
    kind: str,
    _role: str = Depends(_admin_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_notifications_by_type(remote, local, kind).to_response()


@router.get("/priority/{priority}")
def list_by_priority(
    priority: str,
    _role: str = Depends(_admin_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_notifications_by_priority(remote, local, priority).to_response()


@router.get("")
def list_notifications(
    limit: int = Query(50, ge=1),
    _role: str = Depends(_admin_view),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.get_all_notifications(remote, local, limit).to_response()


@router.post("")
def create_notification(
    payload: NotificationCreate,
    me: str = Depends(get_current_user_id),
    _role: str = Depends(require_permissions(Permission.admin_create.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.create_notification(remote, local, payload.model_dump(exclude_none=True), created_by=me).to_response()


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    _role: str = Depends(require_permissions(Permission.admin_delete.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return svc.delete_notification(remote, local, notification_id).to_response()
