"""
User roles and the permissions each role grants.

Roles are stored per user in the ``userRoles`` collection and mirrored under
``userRole_<id>``. The very first user of a fresh system becomes admin.
"""
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from ..config import settings
from ..storage.hybrid_provider import now_iso
from ..storage.provider import DocumentStore, KeyValueStore, StoreError
from .results import ServiceResult, handle_store_error, invalid_argument


logger = structlog.get_logger(__name__)

USER_ROLES_COLLECTION = "userRoles"
USERS_COLLECTION = "users"
SYSTEM_CONFIG_COLLECTION = "systemConfig"
FIRST_USER_FLAG_KEY = "firstUserCreated"
FIRST_USER_DOC_ID = "firstUser"

# Local mirror keys that hold per-user data
USER_KEY_PREFIXES = ("userRole_", "userProfile_", "userSettings_", "user_")


class UserRole(str, Enum):
    welltester = "welltester"
    operator = "operator"
    supervisor = "supervisor"
    coordinator = "coordinator"
    administrator = "administrator"
    admin = "admin"


class Permission(str, Enum):
    # Well test
    well_test_view = "well_test_view"
    well_test_create = "well_test_create"
    well_test_edit = "well_test_edit"
    well_test_delete = "well_test_delete"
    well_test_approve = "well_test_approve"
    # Well services
    well_services_view = "well_services_view"
    well_services_create = "well_services_create"
    well_services_edit = "well_services_edit"
    well_services_delete = "well_services_delete"
    well_services_schedule = "well_services_schedule"
    # Administration
    admin_view = "admin_view"
    admin_create = "admin_create"
    admin_edit = "admin_edit"
    admin_delete = "admin_delete"
    admin_reports = "admin_reports"
    # System
    user_management = "user_management"
    system_settings = "system_settings"
    audit_logs = "audit_logs"


P = Permission

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.welltester.value: [P.well_test_view.value, P.well_test_create.value, P.well_test_edit.value],
    UserRole.operator.value: [
        P.well_test_view.value,
        P.well_services_view.value,
        P.well_services_create.value,
        P.well_services_edit.value,
    ],
    UserRole.supervisor.value: [
        P.well_test_view.value,
        P.well_test_create.value,
        P.well_test_edit.value,
        P.well_test_approve.value,
        P.well_services_view.value,
        P.well_services_create.value,
        P.well_services_edit.value,
        P.well_services_schedule.value,
        P.admin_view.value,
    ],
    UserRole.coordinator.value: [
        P.well_test_view.value,
        P.well_test_create.value,
        P.well_test_edit.value,
        P.well_test_approve.value,
        P.well_services_view.value,
        P.well_services_create.value,
        P.well_services_edit.value,
        P.well_services_delete.value,
        P.well_services_schedule.value,
        P.admin_view.value,
        P.admin_create.value,
        P.admin_edit.value,
        P.admin_reports.value,
    ],
    UserRole.administrator.value: [
        P.well_test_view.value,
        P.well_test_create.value,
        P.well_test_edit.value,
        P.well_test_delete.value,
        P.well_test_approve.value,
        P.well_services_view.value,
        P.well_services_create.value,
        P.well_services_edit.value,
        P.well_services_delete.value,
        P.well_services_schedule.value,
        P.admin_view.value,
        P.admin_create.value,
        P.admin_edit.value,
        P.admin_delete.value,
        P.admin_reports.value,
        P.user_management.value,
    ],
    UserRole.admin.value: [p.value for p in Permission],
}

ROLE_INFO: Dict[str, Dict[str, str]] = {
    UserRole.welltester.value: {"name": "Well Tester", "description": "Can create and manage well tests", "color": "#4CAF50"},
    UserRole.operator.value: {"name": "Operator", "description": "Can operate wells and services", "color": "#2196F3"},
    UserRole.supervisor.value: {"name": "Supervisor", "description": "Can supervise operations and approve tests", "color": "#FF9800"},
    UserRole.coordinator.value: {"name": "Coordinator", "description": "Can coordinate activities and manage documentation", "color": "#9C27B0"},
    UserRole.administrator.value: {"name": "Administrator", "description": "Can manage system and users", "color": "#F44336"},
    UserRole.admin.value: {"name": "System Admin", "description": "Full system access and control", "color": "#212121"},
}

VALID_ROLES = {r.value for r in UserRole}
DEFAULT_ROLE = UserRole.operator.value


def role_key(user_id: str) -> str:
    return f"userRole_{user_id}"


def user_key(user_id: str) -> str:
    return f"user_{user_id}"


def _value(item: Any) -> str:
    return item.value if isinstance(item, Enum) else str(item)


# ---------- Permission checks (pure) ----------

def get_role_permissions(role: Optional[str]) -> List[str]:
    return list(ROLE_PERMISSIONS.get(_value(role), [])) if role else []


def has_permission(role: Optional[str], permission: Optional[str]) -> bool:
    if not role or not permission:
        return False
    return _value(permission) in get_role_permissions(role)


def has_any_permission(role: Optional[str], permissions: Iterable[str]) -> bool:
    if not role or permissions is None:
        return False
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role: Optional[str], permissions: Iterable[str]) -> bool:
    if not role or permissions is None:
        return False
    return all(has_permission(role, p) for p in permissions)


def get_accessible_modules(role: Optional[str]) -> Dict[str, bool]:
    if role and _value(role) == UserRole.admin.value:
        return {"wellTest": True, "wellServices": True, "administration": True, "userManagement": True}

    permissions = get_role_permissions(role)
    return {
        "wellTest": any(p.startswith("well_test_") for p in permissions),
        "wellServices": any(p.startswith("well_services_") for p in permissions),
        "administration": any(p.startswith("admin_") for p in permissions),
        "userManagement": P.user_management.value in permissions,
    }


def is_predefined_admin(user_id: str) -> bool:
    return user_id in settings.admin_ids()


# ---------- Persistence ----------

def set_user_role(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    role: str,
    assigned_by: str = "system",
) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")
    role = _value(role)
    if role not in VALID_ROLES:
        return invalid_argument("Invalid role")

    timestamp = now_iso()
    role_data = {
        "userId": user_id,
        "role": role,
        "assignedAt": timestamp,
        "assignedBy": assigned_by,
        "updatedAt": timestamp,
    }
    role_name = ROLE_INFO[role]["name"]

    try:
        remote.set(USER_ROLES_COLLECTION, user_id, role_data, merge=True)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="setUserRole", code=e.code, error=e.message)
        fallback_data = {**role_data, "fallbackMode": True}
        try:
            local.set_json(role_key(user_id), fallback_data)
        except StoreError as local_error:
            logger.error("local_fallback_failed", operation="setUserRole", error=local_error.message)
            return handle_store_error(e, "setUserRole")
        return ServiceResult(
            success=True,
            message=f"User role set to {role_name} (stored locally)",
            data=fallback_data,
            source="local",
            fallback=True,
            role=role,
        )

    try:
        local.set_json(role_key(user_id), role_data)
    except StoreError as e:
        logger.warning("local_mirror_write_failed", operation="setUserRole", error=e.message)

    logger.info("user_role_set", user_id=user_id, role=role, assigned_by=assigned_by)
    return ServiceResult(
        success=True,
        message=f"User role set to {role_name} successfully",
        data=role_data,
        source="remote",
        role=role,
    )


def lookup_role(remote: DocumentStore, local: KeyValueStore, user_id: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """Find a stored role without assigning a default. Returns (data, source)."""
    try:
        doc = remote.get(USER_ROLES_COLLECTION, user_id)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="lookupRole", code=e.code, error=e.message)
        doc = None
        source = "local_fallback"
    else:
        source = "local"
        if doc is not None:
            return doc, "remote"
    try:
        return local.get_json(role_key(user_id)), source
    except StoreError:
        return None, source


def get_user_role(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    """Stored role for a user; users without one are given the default role."""
    if not user_id:
        return invalid_argument("User ID is required")

    try:
        doc = remote.get(USER_ROLES_COLLECTION, user_id)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="getUserRole", code=e.code, error=e.message)
        try:
            cached = local.get_json(role_key(user_id))
        except StoreError:
            cached = None
        if cached:
            return ServiceResult(success=True, data=cached, source="local", fallback=True, role=cached.get("role"))
        return handle_store_error(e, "getUserRole")

    if doc:
        try:
            local.set_json(role_key(user_id), doc)
        except StoreError as e:
            logger.warning("local_mirror_write_failed", operation="getUserRole", error=e.message)
        return ServiceResult(success=True, data=doc, source="remote", role=doc.get("role"))

    try:
        cached = local.get_json(role_key(user_id))
    except StoreError:
        cached = None
    if cached:
        return ServiceResult(success=True, data=cached, source="local", role=cached.get("role"))

    logger.info("assigning_default_role", user_id=user_id, role=DEFAULT_ROLE)
    set_user_role(remote, local, user_id, DEFAULT_ROLE)
    return ServiceResult(
        success=True,
        data={
            "userId": user_id,
            "role": DEFAULT_ROLE,
            "assignedAt": now_iso(),
            "assignedBy": "system",
            "isDefault": True,
        },
        source="default",
        role=DEFAULT_ROLE,
    )


def check_if_first_user(remote: DocumentStore, local: KeyValueStore) -> bool:
    try:
        if remote.get(SYSTEM_CONFIG_COLLECTION, FIRST_USER_DOC_ID):
            return False
        if remote.query(USERS_COLLECTION, limit=1):
            return False
        if remote.query(USER_ROLES_COLLECTION, limit=1):
            return False
        return True
    except StoreError as e:
        logger.warning("remote_store_failed", operation="checkIfFirstUser", code=e.code, error=e.message)

    try:
        if local.get_item(FIRST_USER_FLAG_KEY):
            return False
        return not any(k.startswith(("userRole_", "user_")) for k in local.keys())
    except StoreError as e:
        logger.error("local_fallback_failed", operation="checkIfFirstUser", error=e.message)
        return False


def mark_first_user_created(remote: DocumentStore, local: KeyValueStore, user_id: str) -> bool:
    data = {
        "userId": user_id,
        "role": UserRole.admin.value,
        "isFirstUser": True,
        "markedAt": now_iso(),
    }
    try:
        remote.set(SYSTEM_CONFIG_COLLECTION, FIRST_USER_DOC_ID, data)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="markFirstUserCreated", code=e.code, error=e.message)
    try:
        local.set_json(FIRST_USER_FLAG_KEY, data)
    except StoreError as e:
        logger.error("local_mirror_write_failed", operation="markFirstUserCreated", error=e.message)
        return False
    return True


def reset_first_user_detection(remote: DocumentStore, local: KeyValueStore) -> Dict[str, int]:
    """
    Forget every registered user so the next one to initialize becomes admin.

    Clears stored roles, the user registry and the first-user marker remotely,
    and the first-user flag plus per-user keys in the local mirror.
    Returns how many entries were removed from each place.
    """
    removed = {
        "roles": remote.clear(USER_ROLES_COLLECTION),
        "users": remote.clear(USERS_COLLECTION),
    }
    remote.delete(SYSTEM_CONFIG_COLLECTION, FIRST_USER_DOC_ID)

    keys = [k for k in local.keys() if k == FIRST_USER_FLAG_KEY or k.startswith(USER_KEY_PREFIXES)]
    for key in keys:
        local.remove_item(key)
    removed["localKeys"] = len(keys)

    logger.info("first_user_detection_reset", **removed)
    return removed


def _default_role_for_email(email: Optional[str]) -> str:
    email = email or ""
    if "admin" in email:
        return UserRole.admin.value
    if "supervisor" in email:
        return UserRole.supervisor.value
    return DEFAULT_ROLE


def initialize_user_role(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    email: Optional[str] = None,
) -> ServiceResult:
    """
    Give a newly signed-in user a role.

    Order of precedence:
    1. the first user of an empty system becomes admin;
    2. ids listed in ADMIN_USER_IDS become admin;
    3. a role assigned by someone other than the system is kept;
    4. otherwise the role is derived from the email address.
    """
    if not user_id:
        return invalid_argument("User ID is required")

    if check_if_first_user(remote, local):
        logger.info("first_user_detected", user_id=user_id, email=email)
        result = set_user_role(remote, local, user_id, UserRole.admin.value)
        if result.success:
            mark_first_user_created(remote, local, user_id)
            return ServiceResult(
                success=True,
                role=UserRole.admin.value,
                message="First user automatically assigned ADMIN role",
                fallback=result.fallback,
                isFirstUser=True,
            )
        logger.error("first_user_admin_failed", user_id=user_id, error=result.message)

    if is_predefined_admin(user_id):
        result = set_user_role(remote, local, user_id, UserRole.admin.value)
        if result.success:
            return ServiceResult(
                success=True,
                role=UserRole.admin.value,
                message=f"Forced ADMIN role assignment for UID: {user_id}",
                fallback=result.fallback,
            )
        logger.error("predefined_admin_failed", user_id=user_id, error=result.message)

    existing, source = lookup_role(remote, local, user_id)
    if existing and existing.get("role") and existing.get("assignedBy") != "system":
        return ServiceResult(success=True, role=existing["role"], data=existing, source=source)

    role = _default_role_for_email(email)
    result = set_user_role(remote, local, user_id, role)
    if not result.success:
        return result
    return ServiceResult(
        success=True,
        role=role,
        message=f"Initialized with {ROLE_INFO[role]['name']} role",
        fallback=result.fallback,
    )


def override_to_admin_role(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    assigned_by: str = "manual_override",
) -> ServiceResult:
    """Force the admin role onto a user and read it back to verify."""
    result = set_user_role(remote, local, user_id, UserRole.admin.value, assigned_by=assigned_by)
    if not result.success:
        return result

    stored, _ = lookup_role(remote, local, user_id)
    verified = bool(stored) and stored.get("role") == UserRole.admin.value
    if not verified:
        logger.warning("admin_override_not_verified", user_id=user_id)
    return ServiceResult(
        success=True,
        role=UserRole.admin.value,
        message=f"Successfully changed {user_id} to admin" if verified else f"Role change attempted for {user_id}",
        fallback=result.fallback,
        verification="passed" if verified else "failed",
    )
