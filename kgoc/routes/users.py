from fastapi import APIRouter, Depends, Query

from ..auth.security import get_current_user_id, require_permissions, require_roles
from ..schemas.users import ActivityRequest, RoleAssignRequest, UserRegisterRequest
from ..services import profiles, roles, users
from ..services.roles import Permission, UserRole
from ..storage.factory import get_document_store, get_local_store
from ..storage.provider import DocumentStore, KeyValueStore


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/roles")
def list_roles(_uid: str = Depends(get_current_user_id)):
    return [
        {"role": role, **info, "permissions": roles.get_role_permissions(role)}
        for role, info in roles.ROLE_INFO.items()
    ]


# ----- Current user -----

@router.post("/me/register")
def register_me(
    payload: UserRegisterRequest,
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return users.create_user(
        remote,
        local,
        user_id,
        payload.email,
        display_name=payload.displayName,
        photo_url=payload.photoURL,
        provider=payload.provider or users.DEFAULT_PROVIDER,
    ).to_response()


@router.post("/me/login")
def record_my_login(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return users.update_user_last_login(remote, local, user_id).to_response()


@router.get("/me")
def get_me(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return users.get_user(remote, local, user_id).to_response()


@router.post("/me/profile")
def create_my_profile(
    payload: dict,
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.create_user_profile(remote, local, user_id, payload).to_response()


@router.get("/me/profile")
def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.get_user_profile(remote, local, user_id).to_response()


@router.patch("/me/profile")
def update_my_profile(
    payload: dict,
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.update_user_profile(remote, local, user_id, payload).to_response()


@router.delete("/me/profile")
def delete_my_profile(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.delete_user_profile(remote, local, user_id).to_response()


@router.get("/me/settings")
def get_my_settings(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.get_user_settings(remote, local, user_id).to_response()


@router.put("/me/settings")
def save_my_settings(
    payload: dict,
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.save_user_settings(remote, local, user_id, payload).to_response()


@router.get("/me/activities")
def get_my_activities(
    limit: int = Query(10, ge=1),
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.get_user_activities(remote, local, user_id, limit).to_response()


@router.post("/me/activities")
def add_my_activity(
    payload: ActivityRequest,
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.add_activity_log(remote, local, user_id, payload.model_dump(exclude_none=True)).to_response()


@router.delete("/me/local-data")
def clear_my_local_data(
    user_id: str = Depends(get_current_user_id),
    local: KeyValueStore = Depends(get_local_store),
):
    return profiles.clear_user_data(local, user_id).to_response()


@router.get("/me/role")
def get_my_role(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return roles.get_user_role(remote, local, user_id).to_response()


@router.post("/me/role/initialize")
def initialize_my_role(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    # The email comes from the stored registration, never from the caller
    email = users.stored_email(remote, local, user_id)
    return roles.initialize_user_role(remote, local, user_id, email).to_response()


@router.get("/me/modules")
def get_my_modules(
    user_id: str = Depends(get_current_user_id),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    result = roles.get_user_role(remote, local, user_id)
    role = getattr(result, "role", None)
    return {
        "role": role,
        "permissions": roles.get_role_permissions(role),
        "modules": roles.get_accessible_modules(role),
    }


# ----- Administration -----

@router.get("")
def list_users(
    limit: int = Query(50, ge=1),
    _role: str = Depends(require_permissions(Permission.user_management.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return users.get_all_users(remote, local, limit).to_response()


@router.get("/{user_id}")
def get_registered_user(
    user_id: str,
    _role: str = Depends(require_permissions(Permission.user_management.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return users.get_user(remote, local, user_id).to_response()


@router.get("/{user_id}/exists")
def registered_user_exists(
    user_id: str,
    _role: str = Depends(require_permissions(Permission.user_management.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return users.user_exists(remote, local, user_id).to_response()


@router.get("/{user_id}/role")
def get_role(
    user_id: str,
    _role: str = Depends(require_permissions(Permission.user_management.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return roles.get_user_role(remote, local, user_id).to_response()


@router.put("/{user_id}/role")
def assign_role(
    user_id: str,
    payload: RoleAssignRequest,
    me: str = Depends(get_current_user_id),
    _role: str = Depends(require_permissions(Permission.user_management.value)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return users.update_user_role(remote, local, user_id, payload.role, me).to_response()


@router.post("/{user_id}/role/override-admin")
def override_admin(
    user_id: str,
    me: str = Depends(get_current_user_id),
    _role: str = Depends(require_roles(UserRole.admin)),
    remote: DocumentStore = Depends(get_document_store),
    local: KeyValueStore = Depends(get_local_store),
):
    return roles.override_to_admin_role(remote, local, user_id, assigned_by=me).to_response()
