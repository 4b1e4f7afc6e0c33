"""
System administration: the system log, maintenance mode, health and usage statistics.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import structlog

from ..storage.hybrid_provider import MirroredCollection, now_iso, parse_iso
from ..storage.provider import DocumentStore, KeyValueStore, StoreError
from .maintenance import LOCAL_KEY as MAINTENANCE_LOCAL_KEY
from .maintenance import MAINTENANCE_REQUESTS_COLLECTION
from .results import ServiceResult, handle_store_error, invalid_argument
from .roles import USERS_COLLECTION
from .well_services import LOCAL_KEY as WELL_SERVICES_LOCAL_KEY
from .well_services import WELL_SERVICES_COLLECTION
from .well_tests import LOCAL_KEY as WELL_TESTS_LOCAL_KEY
from .well_tests import WELL_TESTS_COLLECTION


logger = structlog.get_logger(__name__)

SYSTEM_LOGS_COLLECTION = "systemLogs"
SYSTEM_LOGS_LOCAL_KEY = "systemLogs"
SYSTEM_COLLECTION = "system"
MAINTENANCE_DOC_ID = "maintenance"
MAINTENANCE_MODE_KEY = "maintenanceMode"

LOG_LEVELS = ("info", "warning", "error")
ACTIVE_USER_DAYS = 30

DEFAULT_MAINTENANCE_STATUS = {
    "enabled": False,
    "message": "",
    "startTime": None,
    "setBy": None,
}


def _logs(remote: DocumentStore, local: KeyValueStore) -> MirroredCollection:
    return MirroredCollection(remote, local, SYSTEM_LOGS_COLLECTION, SYSTEM_LOGS_LOCAL_KEY, "System log")


# ---------- System log ----------

def add_system_log(
    remote: DocumentStore,
    local: KeyValueStore,
    level: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    source: str = "system",
) -> ServiceResult:
    if level not in LOG_LEVELS:
        return invalid_argument("Invalid log level")
    if not message:
        return invalid_argument("Message is required")

    timestamp = now_iso()
    entry = {
        "level": level,
        "message": message,
        "details": details or {},
        "source": source,
        "timestamp": timestamp,
        "createdAt": timestamp,
    }
    getattr(logger, level)("system_log", message=message, source=source)
    return _logs(remote, local).create(entry, "addSystemLog")


def get_system_logs(remote: DocumentStore, local: KeyValueStore, limit: int = 50) -> ServiceResult:
    return _logs(remote, local).list_all(limit, "getSystemLogs")


def get_audit_logs(remote: DocumentStore, local: KeyValueStore, limit: int = 30) -> ServiceResult:
    result = get_system_logs(remote, local, limit)
    if not result.success:
        return result
    entries = [
        {
            "id": log.get("id"),
            "timestamp": log.get("timestamp"),
            "action": log.get("message"),
            "user": (log.get("details") or {}).get("userId") or log.get("source") or "system",
            "level": log.get("level"),
        }
        for log in result.data
    ]
    return ServiceResult(success=True, data=entries, count=len(entries), source=result.source, fallback=result.fallback)


def cleanup_old_data(remote: DocumentStore, local: KeyValueStore, days_old: int = 90) -> ServiceResult:
    """Delete system log entries older than ``days_old`` days from both stores."""
    cutoff = datetime.now(tz=timezone.utc) - timedelta(days=days_old)

    def _is_old(entry: Dict[str, Any]) -> bool:
        stamp = parse_iso(entry.get("timestamp") or entry.get("createdAt"))
        return stamp is not None and stamp < cutoff

    logs = _logs(remote, local)
    removed = 0
    fallback = False
    try:
        for entry in remote.query(SYSTEM_LOGS_COLLECTION):
            if _is_old(entry):
                remote.delete(SYSTEM_LOGS_COLLECTION, entry["id"])
                removed += 1
    except StoreError as e:
        logger.warning("remote_store_failed", operation="cleanupOldData", code=e.code, error=e.message)
        fallback = True

    try:
        mirror = logs.read_mirror()
        kept = [entry for entry in mirror if not _is_old(entry)]
        logs.write_mirror(kept)
    except StoreError as e:
        if fallback:
            return handle_store_error(e, "cleanupOldData")
        logger.warning("local_mirror_write_failed", operation="cleanupOldData", error=e.message)
    else:
        if fallback:
            removed = len(mirror) - len(kept)

    logger.info("old_system_logs_cleaned", removed=removed, days_old=days_old)
    return ServiceResult(
        success=True,
        count=removed,
        message=f"Cleaned up {removed} old log entries",
        source="local" if fallback else "remote",
        fallback=fallback,
    )


# ---------- Maintenance mode ----------

def set_maintenance_mode(
    remote: DocumentStore,
    local: KeyValueStore,
    enabled: bool,
    message: str = "",
    set_by: Optional[str] = None,
) -> ServiceResult:
    timestamp = now_iso()
    data = {
        "enabled": bool(enabled),
        "message": message or "",
        "startTime": timestamp if enabled else None,
        "setBy": set_by,
        "updatedAt": timestamp,
    }

    source = "remote"
    fallback = False
    try:
        remote.set(SYSTEM_COLLECTION, MAINTENANCE_DOC_ID, data)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="setMaintenanceMode", code=e.code, error=e.message)
        source, fallback = "local", True
        try:
            local.set_json(MAINTENANCE_MODE_KEY, data)
        except StoreError as local_error:
            logger.error("local_fallback_failed", operation="setMaintenanceMode", error=local_error.message)
            return handle_store_error(e, "setMaintenanceMode")
    else:
        try:
            local.set_json(MAINTENANCE_MODE_KEY, data)
        except StoreError as e:
            logger.warning("local_mirror_write_failed", operation="setMaintenanceMode", error=e.message)

    add_system_log(
        remote,
        local,
        "warning" if enabled else "info",
        f"Maintenance mode {'enabled' if enabled else 'disabled'}",
        {"userId": set_by, "message": message},
        source="maintenance",
    )
    return ServiceResult(
        success=True,
        message=f"Maintenance mode {'enabled' if enabled else 'disabled'}",
        data=data,
        source=source,
        fallback=fallback,
    )


def get_maintenance_status(remote: DocumentStore, local: KeyValueStore) -> ServiceResult:
    """Current maintenance mode. Falls back to the mirror, then to "disabled"; never fails."""
    try:
        doc = remote.get(SYSTEM_COLLECTION, MAINTENANCE_DOC_ID)
    except StoreError as e:
        logger.warning("remote_store_failed", operation="getMaintenanceStatus", code=e.code, error=e.message)
        doc = None
        fallback = True
    else:
        fallback = False
        if doc is not None:
            return ServiceResult(success=True, data=doc, source="remote")

    try:
        cached = local.get_json(MAINTENANCE_MODE_KEY)
    except StoreError as e:
        logger.warning("local_mirror_read_failed", operation="getMaintenanceStatus", error=e.message)
        cached = None
    if cached:
        return ServiceResult(success=True, data=cached, source="local", fallback=fallback)
    return ServiceResult(success=True, data=dict(DEFAULT_MAINTENANCE_STATUS), source="default", fallback=fallback)


# ---------- Health and statistics ----------

def get_system_health(remote: DocumentStore, local: KeyValueStore) -> ServiceResult:
    database = "healthy" if remote.ping() else "error"
    try:
        local.keys()
        local_store = "healthy"
    except StoreError as e:
        logger.error("local_store_unhealthy", error=e.message)
        local_store = "error"

    if database == "healthy" and local_store == "healthy":
        overall = "healthy"
    elif local_store == "healthy":
        overall = "warning"
    else:
        overall = "error"
    return ServiceResult(
        success=True,
        data={
            "status": overall,
            "database": database,
            "localStore": local_store,
            "lastChecked": now_iso(),
        },
    )


def _recently_active(user: Dict[str, Any], cutoff: datetime) -> bool:
    last_login = parse_iso(user.get("lastLogin"))
    return last_login is not None and last_login > cutoff


def get_system_statistics(remote: DocumentStore, local: KeyValueStore) -> ServiceResult:
    """Record counts across the system, from the remote store or, failing that, the mirror."""
    cutoff = datetime.now(tz=timezone.utc) - timedelta(days=ACTIVE_USER_DAYS)
    try:
        registered = remote.query(USERS_COLLECTION)
        stats = {
            "totalUsers": len(registered),
            "activeUsers": sum(1 for u in registered if _recently_active(u, cutoff)),
            "wellTests": len(remote.query(WELL_TESTS_COLLECTION)),
            "serviceRequests": len(remote.query(WELL_SERVICES_COLLECTION)),
            "maintenanceRequests": len(remote.query(MAINTENANCE_REQUESTS_COLLECTION)),
            "systemLogs": len(remote.query(SYSTEM_LOGS_COLLECTION)),
        }
    except StoreError as e:
        logger.warning("remote_store_failed", operation="getSystemStatistics", code=e.code, error=e.message)
    else:
        return ServiceResult(success=True, data={**stats, "lastUpdated": now_iso()}, source="remote")

    try:
        registered = [local.get_json(k) or {} for k in local.keys() if k.startswith("user_")]
        stats = {
            "totalUsers": len(registered),
            "activeUsers": sum(1 for u in registered if _recently_active(u, cutoff)),
            "wellTests": len(local.get_json(WELL_TESTS_LOCAL_KEY, [])),
            "serviceRequests": len(local.get_json(WELL_SERVICES_LOCAL_KEY, [])),
            "maintenanceRequests": len(local.get_json(MAINTENANCE_LOCAL_KEY, [])),
            "systemLogs": len(local.get_json(SYSTEM_LOGS_LOCAL_KEY, [])),
        }
    except StoreError as e:
        return handle_store_error(e, "getSystemStatistics")
    return ServiceResult(success=True, data={**stats, "lastUpdated": now_iso()}, source="local", fallback=True)
