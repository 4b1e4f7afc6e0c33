"""
User profile, settings and activity log.

Each record is a key-value document keyed by user id, written to the remote
store and mirrored locally under ``userProfile_<id>``, ``userSettings_<id>``
and ``userActivities_<id>``. When the remote store fails the local mirror is
used on its own and the envelope is marked ``fallback``.
"""
import uuid
from typing import Any, Dict, Optional

import structlog

from ..config import settings
from ..storage.hybrid_provider import now_iso
from ..storage.provider import DocumentStore, KeyValueStore, StoreError
from .results import ServiceResult, handle_store_error, invalid_argument


logger = structlog.get_logger(__name__)

PROFILES_COLLECTION = "userProfiles"
SETTINGS_COLLECTION = "userSettings"
ACTIVITIES_COLLECTION = "userActivities"

DEFAULT_SETTINGS = {
    "notifications": True,
    "darkMode": False,
    "language": "en",
}


def profile_key(user_id: str) -> str:
    return f"userProfile_{user_id}"


def settings_key(user_id: str) -> str:
    return f"userSettings_{user_id}"


def activities_key(user_id: str) -> str:
    return f"userActivities_{user_id}"


def _write_both(
    remote: DocumentStore,
    local: KeyValueStore,
    collection: str,
    user_id: str,
    local_key: str,
    data: Dict[str, Any],
    operation: str,
    message: str,
) -> ServiceResult:
    try:
        remote.set(collection, user_id, data)
    except StoreError as e:
        logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
        try:
            local.set_json(local_key, data)
        except StoreError as local_error:
            logger.error("local_fallback_failed", operation=operation, error=local_error.message)
            return handle_store_error(e, operation)
        return ServiceResult(success=True, message=f"{message} (stored locally)", data=data, source="local", fallback=True)

    try:
        local.set_json(local_key, data)
    except StoreError as e:
        logger.warning("local_mirror_write_failed", operation=operation, error=e.message)
    return ServiceResult(success=True, message=message, data=data, source="remote")


def _read_either(
    remote: DocumentStore,
    local: KeyValueStore,
    collection: str,
    user_id: str,
    local_key: str,
    operation: str,
) -> ServiceResult:
    """Remote first, caching what it finds; the mirror when the remote has nothing or fails."""
    try:
        doc = remote.get(collection, user_id)
    except StoreError as e:
        logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
        try:
            cached = local.get_json(local_key)
        except StoreError:
            cached = None
        if cached is not None:
            return ServiceResult(success=True, data=cached, source="local", fallback=True)
        return handle_store_error(e, operation)

    if doc is not None:
        try:
            local.set_json(local_key, doc)
        except StoreError as e:
            logger.warning("local_mirror_write_failed", operation=operation, error=e.message)
        return ServiceResult(success=True, data=doc, source="remote")

    try:
        cached = local.get_json(local_key)
    except StoreError as e:
        return handle_store_error(e, operation)
    if cached is not None:
        return ServiceResult(success=True, data=cached, source="local")
    return ServiceResult(success=False, error="not-found", message="No data found")


def create_user_profile(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    profile_data: Dict[str, Any],
) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")
    timestamp = now_iso()
    data = {**profile_data, "createdAt": timestamp, "updatedAt": timestamp, "id": user_id}
    return _write_both(
        remote, local, PROFILES_COLLECTION, user_id, profile_key(user_id), data,
        "createUserProfile", "Profile created successfully!",
    )


def get_user_profile(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")
    result = _read_either(remote, local, PROFILES_COLLECTION, user_id, profile_key(user_id), "getUserProfile")
    if result.error == "not-found":
        result.message = "No profile data found"
    return result


def update_user_profile(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    updates: Dict[str, Any],
) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")

    changes = {**updates, "updatedAt": now_iso(), "id": user_id}
    key = profile_key(user_id)
    try:
        remote.set(PROFILES_COLLECTION, user_id, changes, merge=True)
        merged = remote.get(PROFILES_COLLECTION, user_id) or changes
    except StoreError as e:
        logger.warning("remote_store_failed", operation="updateUserProfile", code=e.code, error=e.message)
        try:
            merged = {**(local.get_json(key) or {}), **changes}
            local.set_json(key, merged)
        except StoreError as local_error:
            logger.error("local_fallback_failed", operation="updateUserProfile", error=local_error.message)
            return handle_store_error(e, "updateUserProfile")
        return ServiceResult(
            success=True,
            message="Profile updated successfully! (stored locally)",
            data=merged,
            source="local",
            fallback=True,
        )

    try:
        local.set_json(key, merged)
    except StoreError as e:
        logger.warning("local_mirror_write_failed", operation="updateUserProfile", error=e.message)
    return ServiceResult(success=True, message="Profile updated successfully!", data=merged, source="remote")


def delete_user_profile(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")
    remote_error: Optional[StoreError] = None
    try:
        remote.delete(PROFILES_COLLECTION, user_id)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="deleteUserProfile", code=e.code, error=e.message)
        remote_error = e
    try:
        local.remove_item(profile_key(user_id))
    except StoreError as e:
        return handle_store_error(remote_error or e, "deleteUserProfile")
    return ServiceResult(
        success=True,
        message="Profile deleted successfully!",
        source="local" if remote_error else "remote",
        fallback=remote_error is not None,
    )


def save_user_settings(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    user_settings: Dict[str, Any],
) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")
    data = {**user_settings, "updatedAt": now_iso(), "id": user_id}
    return _write_both(
        remote, local, SETTINGS_COLLECTION, user_id, settings_key(user_id), data,
        "saveUserSettings", "Settings saved successfully!",
    )


def get_user_settings(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    """Stored settings, or the defaults (persisted on first read). Never fails for a valid user id."""
    if not user_id:
        return invalid_argument("User ID is required")

    result = _read_either(remote, local, SETTINGS_COLLECTION, user_id, settings_key(user_id), "getUserSettings")
    if result.success:
        return result

    if result.error == "not-found":
        timestamp = now_iso()
        defaults = {**DEFAULT_SETTINGS, "id": user_id, "createdAt": timestamp, "updatedAt": timestamp}
        saved = _write_both(
            remote, local, SETTINGS_COLLECTION, user_id, settings_key(user_id), defaults,
            "saveDefaultSettings", "Default settings saved",
        )
        return ServiceResult(success=True, data=defaults, source="default", fallback=saved.fallback)

    return ServiceResult(success=True, data=dict(DEFAULT_SETTINGS), source="default", fallback=True)


def add_activity_log(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    activity: Dict[str, Any],
) -> ServiceResult:
    """Prepend an activity; the log keeps only the newest ``activity_log_cap`` entries."""
    if not user_id:
        return invalid_argument("User ID is required")

    cap = settings.activity_log_cap
    entry = {"id": uuid.uuid4().hex, "userId": user_id, **activity, "timestamp": now_iso()}
    key = activities_key(user_id)

    try:
        doc = remote.get(ACTIVITIES_COLLECTION, user_id) or {}
        activities = ([entry] + list(doc.get("items") or []))[:cap]
        remote.set(ACTIVITIES_COLLECTION, user_id, {"userId": user_id, "items": activities})
    except StoreError as e:
        logger.warning("remote_store_failed", operation="addActivityLog", code=e.code, error=e.message)
        try:
            activities = ([entry] + list(local.get_json(key) or []))[:cap]
            local.set_json(key, activities)
        except StoreError as local_error:
            logger.error("local_fallback_failed", operation="addActivityLog", error=local_error.message)
            return handle_store_error(e, "addActivityLog")
        return ServiceResult(
            success=True,
            message="Activity logged successfully! (stored locally)",
            data=entry,
            source="local",
            fallback=True,
        )

    try:
        local.set_json(key, activities)
    except StoreError as e:
        logger.warning("local_mirror_write_failed", operation="addActivityLog", error=e.message)
    return ServiceResult(success=True, message="Activity logged successfully!", data=entry, source="remote")


def get_user_activities(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    limit: int = 10,
) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")

    key = activities_key(user_id)
    try:
        doc = remote.get(ACTIVITIES_COLLECTION, user_id)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="getUserActivities", code=e.code, error=e.message)
        try:
            activities = local.get_json(key) or []
        except StoreError as local_error:
            logger.error("local_fallback_failed", operation="getUserActivities", error=local_error.message)
            return handle_store_error(e, "getUserActivities")
        limited = activities[:limit]
        return ServiceResult(success=True, data=limited, count=len(limited), source="local", fallback=True)

    if doc is None:
        try:
            activities = local.get_json(key) or []
        except StoreError as e:
            return handle_store_error(e, "getUserActivities")
        limited = activities[:limit]
        return ServiceResult(success=True, data=limited, count=len(limited), source="local")

    activities = list(doc.get("items") or [])
    try:
        local.set_json(key, activities)
    except StoreError as e:
        logger.warning("local_mirror_write_failed", operation="getUserActivities", error=e.message)
    limited = activities[:limit]
    return ServiceResult(success=True, data=limited, count=len(limited), source="remote")


def clear_user_data(local: KeyValueStore, user_id: str) -> ServiceResult:
    """Drop the local copies of a user's profile, settings and activities."""
    if not user_id:
        return invalid_argument("User ID is required")
    try:
        for key in (profile_key(user_id), settings_key(user_id), activities_key(user_id)):
            local.remove_item(key)
    except StoreError as e:
        return handle_store_error(e, "clearUserData")
    return ServiceResult(success=True, message="All user data cleared successfully!")


def get_storage_stats(local: KeyValueStore) -> ServiceResult:
    try:
        total_size = 0
        item_count = 0
        items: Dict[str, Any] = {}
        for key in local.keys():
            value = local.get_item(key) or ""
            size = len(value.encode("utf-8"))
            total_size += size
            item_count += 1
            if key.startswith("user"):
                items[key] = {"size": size, "preview": value[:50] + "..."}
    except StoreError as e:
        return handle_store_error(e, "getStorageStats")

    return ServiceResult(
        success=True,
        data={
            "totalSize": total_size,
            "itemCount": item_count,
            "items": items,
            "lastChecked": now_iso(),
        },
    )
