"""
In-app notifications.

A notification targets ``"all"``, a single user id or a list of user ids.
Read state is tracked per reader in ``readBy``; ``isRead`` flips to true once
anyone has read it. Expired notifications are hidden from user inboxes.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog

from ..config import settings
from ..storage.hybrid_provider import MirroredCollection, newest_first, now_iso, parse_iso
from ..storage.provider import DocumentStore, KeyValueStore, StoreError
from .results import ServiceResult, invalid_argument


logger = structlog.get_logger(__name__)

NOTIFICATIONS_COLLECTION = "notifications"
LOCAL_KEY = "notifications"
TARGET_ALL = "all"


class NotificationType(str, Enum):
    system = "system"
    maintenance = "maintenance"
    alert = "alert"
    update = "update"
    reminder = "reminder"
    well_test = "well_test"
    service_request = "service_request"
    performance = "performance"
    safety = "safety"


class NotificationPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


VALID_TYPES = {t.value for t in NotificationType}
VALID_PRIORITIES = {p.value for p in NotificationPriority}


def _collection(remote: DocumentStore, local: KeyValueStore) -> MirroredCollection:
    return MirroredCollection(remote, local, NOTIFICATIONS_COLLECTION, LOCAL_KEY, "Notification")


def is_targeted_at(notification: Dict[str, Any], user_id: str) -> bool:
    targets = notification.get("targetUsers", notification.get("targetUser", TARGET_ALL))
    if targets == TARGET_ALL or targets == user_id:
        return True
    return isinstance(targets, list) and user_id in targets


def is_expired(notification: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    expires = parse_iso(notification.get("expiresAt"))
    return expires is not None and expires <= (now or datetime.now(tz=timezone.utc))


def is_read_by(notification: Dict[str, Any], user_id: str) -> bool:
    return user_id in (notification.get("readBy") or [])


def create_notification(
    remote: DocumentStore,
    local: KeyValueStore,
    notification_data: Dict[str, Any],
    created_by: Optional[str] = None,
) -> ServiceResult:
    if not notification_data.get("title") or not notification_data.get("message"):
        return invalid_argument("Title and message are required")

    kind = notification_data.get("type") or NotificationType.system.value
    priority = notification_data.get("priority") or NotificationPriority.medium.value
    if kind not in VALID_TYPES:
        return invalid_argument("Invalid notification type")
    if priority not in VALID_PRIORITIES:
        return invalid_argument("Invalid notification priority")

    timestamp = now_iso()
    doc = {
        **notification_data,
        "type": kind,
        "priority": priority,
        "targetUsers": notification_data.get("targetUsers") or TARGET_ALL,
        "expiresAt": notification_data.get("expiresAt"),
        "isRead": False,
        "readBy": [],
        "status": "active",
        "createdBy": created_by or notification_data.get("createdBy") or "system",
        "createdAt": timestamp,
        "updatedAt": timestamp,
    }
    doc.pop("id", None)
    return _collection(remote, local).create(doc, "createNotification")


def get_all_notifications(remote: DocumentStore, local: KeyValueStore, limit: Optional[int] = None) -> ServiceResult:
    return _collection(remote, local).list_all(limit or settings.default_query_limit, "getAllNotifications")


def get_notification_by_id(remote: DocumentStore, local: KeyValueStore, notification_id: str) -> ServiceResult:
    if not notification_id:
        return invalid_argument("Notification ID is required")
    return _collection(remote, local).get(notification_id, "getNotificationById")


def get_user_notifications(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    limit: int = 50,
    unread_only: bool = False,
) -> ServiceResult:
    """Unexpired notifications addressed to a user, newest first, with ``isRead`` from that user's view."""
    if not user_id:
        return invalid_argument("User ID is required")

    result = get_all_notifications(remote, local)
    if not result.success:
        return result

    now = datetime.now(tz=timezone.utc)
    inbox = []
    for n in newest_first(result.data):
        if not is_targeted_at(n, user_id) or is_expired(n, now):
            continue
        read = is_read_by(n, user_id)
        if unread_only and read:
            continue
        inbox.append({**n, "isRead": read})
    inbox = inbox[:limit]
    return ServiceResult(success=True, data=inbox, count=len(inbox), source=result.source, fallback=result.fallback)


def get_unread_count(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    result = get_user_notifications(remote, local, user_id, limit=settings.default_query_limit, unread_only=True)
    if not result.success:
        return result
    return ServiceResult(success=True, count=result.count, source=result.source, fallback=result.fallback)


def mark_as_read(
    remote: DocumentStore,
    local: KeyValueStore,
    notification_id: str,
    user_id: str,
) -> ServiceResult:
    if not notification_id or not user_id:
        return invalid_argument("Notification ID and user ID are required")

    collection = _collection(remote, local)
    current = collection.get(notification_id, "markAsRead")
    if not current.success:
        return current

    readers = list(current.data.get("readBy") or [])
    if user_id not in readers:
        readers.append(user_id)
    timestamp = now_iso()
    return collection.update(
        notification_id,
        {"isRead": True, "readBy": readers, "readAt": timestamp, "updatedAt": timestamp},
        "markAsRead",
    )


def mark_all_as_read(remote: DocumentStore, local: KeyValueStore, user_id: str) -> ServiceResult:
    unread = get_user_notifications(remote, local, user_id, limit=settings.default_query_limit, unread_only=True)
    if not unread.success:
        return unread

    marked = 0
    fallback = unread.fallback
    for n in unread.data:
        result = mark_as_read(remote, local, n["id"], user_id)
        if result.success:
            marked += 1
            fallback = fallback or result.fallback
        else:
            logger.warning("notification_mark_read_failed", id=n["id"], error=result.error)
    return ServiceResult(
        success=True,
        count=marked,
        message=f"Marked {marked} notifications as read",
        fallback=fallback,
    )


def delete_notification(remote: DocumentStore, local: KeyValueStore, notification_id: str) -> ServiceResult:
    if not notification_id:
        return invalid_argument("Notification ID is required")
    return _collection(remote, local).delete(notification_id, "deleteNotification")


def clean_old_notifications(remote: DocumentStore, local: KeyValueStore, days_old: int = 30) -> ServiceResult:
    """Delete notifications created more than ``days_old`` days ago."""
    result = get_all_notifications(remote, local, limit=settings.default_query_limit)
    if not result.success:
        return result

    cutoff = datetime.now(tz=timezone.utc) - timedelta(days=days_old)
    collection = _collection(remote, local)
    deleted = 0
    for n in result.data:
        created = parse_iso(n.get("createdAt"))
        if created and created < cutoff and collection.delete(n["id"], "cleanOldNotifications").success:
            deleted += 1

    logger.info("old_notifications_cleaned", deleted=deleted, days_old=days_old)
    return ServiceResult(
        success=True,
        count=deleted,
        message=f"Cleaned {deleted} old notifications",
        source=result.source,
        fallback=result.fallback,
    )


def _where(remote: DocumentStore, local: KeyValueStore, field: str, value: Any, operation: str) -> ServiceResult:
    try:
        items = remote.query(NOTIFICATIONS_COLLECTION, where=[(field, value)], order_by="createdAt", descending=True)
    except StoreError as e:
        logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
        try:
            mirror = _collection(remote, local).read_mirror()
        except StoreError:
            return ServiceResult(success=True, data=[], count=0, source="empty", fallback=True)
        items = newest_first([i for i in mirror if i.get(field) == value])
        return ServiceResult(success=True, data=items, count=len(items), source="local", fallback=True)
    return ServiceResult(success=True, data=items, count=len(items), source="remote")


def get_notifications_by_type(remote: DocumentStore, local: KeyValueStore, kind: str) -> ServiceResult:
    return _where(remote, local, "type", kind, "getNotificationsByType")


def get_notifications_by_priority(remote: DocumentStore, local: KeyValueStore, priority: str) -> ServiceResult:
    return _where(remote, local, "priority", priority, "getNotificationsByPriority")


def build_notification_statistics(
    notifications: List[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now(tz=timezone.utc)
    stats: Dict[str, Any] = {
        "total": len(notifications),
        "byType": {},
        "byPriority": {},
        "readCount": 0,
        "unreadCount": 0,
        "last24Hours": 0,
        "thisWeek": 0,
        "thisMonth": 0,
    }
    for n in notifications:
        kind = n.get("type") or "unknown"
        priority = n.get("priority") or "unknown"
        stats["byType"][kind] = stats["byType"].get(kind, 0) + 1
        stats["byPriority"][priority] = stats["byPriority"].get(priority, 0) + 1
        if n.get("isRead"):
            stats["readCount"] += 1
        else:
            stats["unreadCount"] += 1

        created = parse_iso(n.get("createdAt"))
        if not created:
            continue
        if created > now - timedelta(hours=24):
            stats["last24Hours"] += 1
        if created > now - timedelta(days=7):
            stats["thisWeek"] += 1
        if created > now - timedelta(days=30):
            stats["thisMonth"] += 1
    return stats


def get_notification_statistics(remote: DocumentStore, local: KeyValueStore) -> ServiceResult:
    result = get_all_notifications(remote, local)
    if not result.success:
        return result
    return ServiceResult(
        success=True,
        data=build_notification_statistics(result.data),
        source=result.source,
        fallback=result.fallback,
    )


def send_immediate_notification(
    remote: DocumentStore,
    local: KeyValueStore,
    user_id: str,
    title: str,
    message: str,
    kind: str = NotificationType.alert.value,
    priority: str = NotificationPriority.high.value,
) -> ServiceResult:
    if not user_id:
        return invalid_argument("User ID is required")
    return create_notification(
        remote,
        local,
        {"title": title, "message": message, "type": kind, "priority": priority, "targetUsers": user_id},
    )


def create_system_notification(
    remote: DocumentStore,
    local: KeyValueStore,
    title: str,
    message: str,
    priority: str = NotificationPriority.medium.value,
) -> ServiceResult:
    return create_notification(
        remote,
        local,
        {"title": title, "message": message, "type": NotificationType.system.value, "priority": priority},
        created_by="system",
    )
