"""
User registry.

One document per signed-in user in the ``users`` collection, mirrored locally
under ``user_<id>``. Registering a user resolves their role (first user of an
empty system becomes admin), seeds their profile and settings and records the
sign-up in their activity log. Role changes made by administrators are
written back onto the registry document and into the system log.
"""
from typing import Any, Dict, List, Optional

import structlog

from ..storage.hybrid_provider import newest_first, now_iso
from ..storage.provider import DocumentStore, KeyValueStore, StoreError
from . import profiles, roles, system
from .results import ServiceResult, handle_store_error, invalid_argument
from .roles import ROLE_INFO, USERS_COLLECTION, Permission, lookup_role, user_key


logger = structlog.get_logger(__name__)

DEFAULT_PROVIDER = "header"


def _with_role(remote: DocumentStore, local: KeyValueStore, user: Dict[str, Any]) -> Dict[str, Any]:
    stored, _ = lookup_role(remote, local, user.get("uid") or user.get("id"))
    role = (stored or {}).get("role") or user.get("role")
    return {**user, "role": role, "roleInfo": ROLE_INFO.get(role)}


def _save(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    data: Dict[str, Any],
    operation: str,
) -> ServiceResult:
    try:
        remote.set(USERS_COLLECTION, user_id, data, merge=True)
    except StoreError as e:
        logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
        try:
            merged = {**(local.get_json(user_key(user_id)) or {}), **data}
            local.set_json(user_key(user_id), merged)
        except StoreError as local_error:
            logger.error("local_fallback_failed", operation=operation, error=local_error.message)
            return handle_store_error(e, operation)
        return ServiceResult(success=True, data=merged, source="local", fallback=True)

    try:
        merged = remote.get(USERS_COLLECTION, user_id) or data
        local.set_json(user_key(user_id), merged)
    except StoreError as e:
        logger.warning("local_mirror_write_failed", operation=operation, error=e.message)
        merged = data
    return ServiceResult(success=True, data=merged, source="remote")


def get_user(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")

    try:
        doc = remote.get(USERS_COLLECTION, user_id)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="getUser", code=e.code, error=e.message)
        try:
            cached = local.get_json(user_key(user_id))
        except StoreError:
            cached = None
        if cached:
            return ServiceResult(success=True, data=_with_role(remote, local, cached), source="local", fallback=True)
        return handle_store_error(e, "getUser")

    if doc is None:
        try:
            cached = local.get_json(user_key(user_id))
        except StoreError as e:
            return handle_store_error(e, "getUser")
        if cached:
            return ServiceResult(success=True, data=_with_role(remote, local, cached), source="local")
        return ServiceResult(success=False, error="not-found", message="User not found")
    try:
        local.set_json(user_key(user_id), doc)
    except StoreError as e:
        logger.warning("local_mirror_write_failed", operation="getUser", error=e.message)
    return ServiceResult(success=True, data=_with_role(remote, local, doc), source="remote")


def user_exists(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    result = get_user(remote, local, user_id)
    if result.success or result.error == "not-found":
        return ServiceResult(success=True, exists=result.success, source=result.source, fallback=result.fallback)
    return result


def update_user_last_login(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")
    existing = get_user(remote, local, user_id)
    if not existing.success:
        return existing
    timestamp = now_iso()
    return _save(remote, local, user_id, {"lastLogin": timestamp, "updatedAt": timestamp}, "updateUserLastLogin")


def create_user(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    email: str,
    display_name: Optional[str] = None,
    photo_url: Optional[str] = None,
    provider: str = DEFAULT_PROVIDER,
) -> ServiceResult:
    """
    Register a user on first sign-in.

    Already registered users only get their ``lastLogin`` refreshed; the stored
    email is never replaced, since role initialization reads it.
    """
    if not user_id:
        return invalid_argument("User ID is required")
    if not email or "@" not in email:
        return invalid_argument("A valid email is required")

    existing = get_user(remote, local, user_id)
    if existing.success:
        login = update_user_last_login(remote, local, user_id)
        data = {**existing.data, **(login.data or {})} if login.success else existing.data
        return ServiceResult(
            success=True,
            message="User already registered",
            data=data,
            role=data.get("role"),
            isNewUser=False,
            source=existing.source,
            fallback=existing.fallback or login.fallback,
        )
    if existing.error != "not-found":
        logger.warning("user_lookup_failed", user_id=user_id, error=existing.error)

    role_result = roles.initialize_user_role(remote, local, user_id, email)
    if not role_result.success:
        return role_result
    role = role_result.role
    is_first_user = bool(getattr(role_result, "isFirstUser", False))

    timestamp = now_iso()
    display_name = display_name or email.split("@")[0]
    doc = {
        "uid": user_id,
        "email": email,
        "displayName": display_name,
        "photoURL": photo_url,
        "role": role,
        "isFirstUser": is_first_user,
        "createdAt": timestamp,
        "updatedAt": timestamp,
        "lastLogin": timestamp,
        "isActive": True,
        "provider": provider,
    }
    saved = _save(remote, local, user_id, doc, "createUser")
    if not saved.success:
        return saved

    profiles.update_user_profile(
        remote, local, user_id,
        {"email": email, "displayName": display_name, "photoURL": photo_url, "role": role},
    )
    profiles.get_user_settings(remote, local, user_id)
    profiles.add_activity_log(
        remote, local, user_id,
        {"action": "user_created", "description": f"User account created with role: {role}", "module": "users"},
    )

    logger.info("user_registered", user_id=user_id, role=role, first_user=is_first_user)
    return ServiceResult(
        success=True,
        message=f"User registered with {ROLE_INFO[role]['name']} role",
        data=saved.data,
        role=role,
        isNewUser=True,
        isFirstUser=is_first_user,
        source=saved.source,
        fallback=saved.fallback or role_result.fallback,
    )


def get_all_users(remote: DocumentStore, local: KeyValueStore, limit: int = 50) -> ServiceResult:
    try:
        docs = remote.query(USERS_COLLECTION, order_by="createdAt", descending=True, limit=limit)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="getAllUsers", code=e.code, error=e.message)
        try:
            cached: List[Dict[str, Any]] = [
                local.get_json(k) or {} for k in local.keys() if k.startswith(user_key(""))
            ]
        except StoreError as local_error:
            logger.error("local_fallback_failed", operation="getAllUsers", error=local_error.message)
            return handle_store_error(e, "getAllUsers")
        users = [_with_role(remote, local, u) for u in newest_first(cached)[:limit]]
        return ServiceResult(success=True, data=users, count=len(users), source="local", fallback=True)

    users = [_with_role(remote, local, u) for u in docs]
    return ServiceResult(success=True, data=users, count=len(users), source="remote")


def update_user_role(
    remote: DocumentStore,
    local: KeyValueStore,
    target_user_id: str,
    new_role: str,
    admin_user_id: str,
) -> ServiceResult:
    """Change another user's role. The acting user needs the user-management permission."""
    if not target_user_id or not admin_user_id:
        return invalid_argument("Target and acting user IDs are required")

    acting, _ = lookup_role(remote, local, admin_user_id)
    if not roles.has_permission((acting or {}).get("role"), Permission.user_management):
        return ServiceResult(
            success=False,
            error="permission-denied",
            message="Insufficient permissions to change user roles",
        )

    result = roles.set_user_role(remote, local, target_user_id, new_role, assigned_by=admin_user_id)
    if not result.success:
        return result

    timestamp = now_iso()
    if get_user(remote, local, target_user_id).success:
        _save(
            remote, local, target_user_id,
            {"role": result.role, "roleUpdatedBy": admin_user_id, "roleUpdatedAt": timestamp, "updatedAt": timestamp},
            "updateUserRole",
        )

    profiles.add_activity_log(
        remote, local, admin_user_id,
        {
            "action": "role_updated",
            "description": f"Changed role of {target_user_id} to {result.role}",
            "module": "users",
        },
    )
    system.add_system_log(
        remote, local, "info", "User role updated",
        {"userId": admin_user_id, "targetUserId": target_user_id, "role": result.role},
        source="users",
    )
    return result


def stored_email(remote: DocumentStore, local: KeyValueStore, user_id: str) -> Optional[str]:
    """Email on record for a user: the registry entry first, then the profile."""
    registered = get_user(remote, local, user_id)
    if registered.success and registered.data.get("email"):
        return registered.data["email"]
    profile = profiles.get_user_profile(remote, local, user_id)
    if profile.success:
        return (profile.data or {}).get("email")
    return None
