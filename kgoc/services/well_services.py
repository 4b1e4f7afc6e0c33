"""
Well service requests (repairs, inspections, routine checks) and their analytics.
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

WELL_SERVICES_COLLECTION = "wellServices"
LOCAL_KEY = "wellServices"


class ServiceStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    on_hold = "on_hold"


class ServicePriority(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"
    critical = "Critical"


SERVICE_TYPES = [
    "Maintenance",
    "Repair",
    "Inspection",
    "Testing",
    "Cleaning",
    "Installation",
    "Emergency Response",
    "Routine Check",
]


def _collection(remote: DocumentStore, local: KeyValueStore) -> MirroredCollection:
    return MirroredCollection(remote, local, WELL_SERVICES_COLLECTION, LOCAL_KEY, "Service request")


def create_service_request(remote: DocumentStore, local: KeyValueStore, service_data: Dict[str, Any]) -> ServiceResult:
    if not service_data.get("wellNumber") or not service_data.get("serviceType"):
        return invalid_argument("Well Number and Service Type are required")

    timestamp = now_iso()
    doc = {
        **service_data,
        "status": service_data.get("status") or ServiceStatus.pending.value,
        "priority": service_data.get("priority") or ServicePriority.medium.value,
        "createdAt": timestamp,
        "lastUpdated": timestamp,
    }
    doc.pop("id", None)
    return _collection(remote, local).create(doc, "createServiceRequest")


def get_all_service_requests(remote: DocumentStore, local: KeyValueStore, limit: Optional[int] = None) -> ServiceResult:
    return _collection(remote, local).list_all(limit or settings.default_query_limit, "getAllServiceRequests")


def get_service_request_by_id(remote: DocumentStore, local: KeyValueStore, request_id: str) -> ServiceResult:
    if not request_id:
        return invalid_argument("Request ID is required")
    return _collection(remote, local).get(request_id, "getServiceRequestById")


def update_service_request(
    remote: DocumentStore,
    local: KeyValueStore,
    request_id: str,
    updates: Dict[str, Any],
) -> ServiceResult:
    if not request_id:
        return invalid_argument("Request ID is required")
    changes = {k: v for k, v in updates.items() if k not in ("id", "createdAt")}
    changes["lastUpdated"] = now_iso()
    return _collection(remote, local).update(request_id, changes, "updateServiceRequest")


def delete_service_request(remote: DocumentStore, local: KeyValueStore, request_id: str) -> ServiceResult:
    if not request_id:
        return invalid_argument("Request ID is required")
    return _collection(remote, local).delete(request_id, "deleteServiceRequest")


def _where(remote: DocumentStore, local: KeyValueStore, field: str, value: Any, operation: str) -> ServiceResult:
    try:
        items = remote.query(WELL_SERVICES_COLLECTION, where=[(field, value)], order_by="createdAt", descending=True)
    except StoreError as e:
        logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
        try:
            mirror = _collection(remote, local).read_mirror()
        except StoreError:
            return ServiceResult(success=True, data=[], count=0, source="empty", fallback=True)
        items = newest_first([i for i in mirror if i.get(field) == value])
        return ServiceResult(success=True, data=items, count=len(items), source="local", fallback=True)
    return ServiceResult(success=True, data=items, count=len(items), source="remote")


def get_service_requests_by_status(remote: DocumentStore, local: KeyValueStore, status: str) -> ServiceResult:
    return _where(remote, local, "status", status, "getServiceRequestsByStatus")


def get_service_requests_by_priority(remote: DocumentStore, local: KeyValueStore, priority: str) -> ServiceResult:
    return _where(remote, local, "priority", priority, "getServiceRequestsByPriority")


def get_service_requests_by_well(remote: DocumentStore, local: KeyValueStore, well_number: str) -> ServiceResult:
    if not (well_number or "").strip():
        return ServiceResult(success=True, data=[], count=0)
    return _where(remote, local, "wellNumber", well_number, "getServiceRequestsByWell")


def get_recent_service_requests(remote: DocumentStore, local: KeyValueStore, days: int = 30) -> ServiceResult:
    result = get_all_service_requests(remote, local)
    if not result.success:
        return result
    cutoff = datetime.now(tz=timezone.utc) - timedelta(days=days)
    recent = [r for r in result.data if (parse_iso(r.get("createdAt")) or cutoff) > cutoff]
    return ServiceResult(success=True, data=recent, count=len(recent), source=result.source, fallback=result.fallback)


def search_service_requests(remote: DocumentStore, local: KeyValueStore, search_query: str) -> ServiceResult:
    result = get_all_service_requests(remote, local)
    if not result.success:
        return result
    term = (search_query or "").strip().lower()
    if not term:
        return result
    fields = ("wellNumber", "serviceType", "description", "requestedBy", "status", "priority")
    matches = [r for r in result.data if any(term in str(r.get(f) or "").lower() for f in fields)]
    return ServiceResult(success=True, data=matches, count=len(matches), source=result.source, fallback=result.fallback)


def build_service_analytics(requests: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate counts, completion rate and turnaround over a list of service requests."""
    analytics: Dict[str, Any] = {
        "totalRequests": len(requests),
        "byStatus": {s.value: 0 for s in ServiceStatus},
        "byPriority": {p.value: 0 for p in ServicePriority},
        "byServiceType": {t: 0 for t in SERVICE_TYPES},
        "byMonth": {},
        "averageCompletionTime": 0,
        "completionRate": 0,
        "mostCommonService": None,
        "criticalRequestsPending": 0,
    }

    total_completion = timedelta(0)
    completed = 0
    for r in requests:
        if r.get("status") in analytics["byStatus"]:
            analytics["byStatus"][r["status"]] += 1
        if r.get("priority") in analytics["byPriority"]:
            analytics["byPriority"][r["priority"]] += 1
        if r.get("serviceType") in analytics["byServiceType"]:
            analytics["byServiceType"][r["serviceType"]] += 1

        created = parse_iso(r.get("createdAt"))
        if created:
            month = created.strftime("%Y-%m")
            analytics["byMonth"][month] = analytics["byMonth"].get(month, 0) + 1

        if r.get("status") == ServiceStatus.completed.value:
            completed += 1
            finished = parse_iso(r.get("lastUpdated"))
            if created and finished:
                total_completion += finished - created

        if r.get("priority") == ServicePriority.critical.value and r.get("status") == ServiceStatus.pending.value:
            analytics["criticalRequestsPending"] += 1

    if completed:
        analytics["averageCompletionTime"] = round(total_completion.total_seconds() / completed / 86400)
    if requests:
        analytics["completionRate"] = round(completed / len(requests) * 100)

    max_count = 0
    for service_type, count in analytics["byServiceType"].items():
        if count > max_count:
            max_count = count
            analytics["mostCommonService"] = service_type

    return analytics


def generate_service_analytics(remote: DocumentStore, local: KeyValueStore) -> ServiceResult:
    result = get_all_service_requests(remote, local)
    if not result.success:
        return result
    return ServiceResult(
        success=True,
        data=build_service_analytics(result.data),
        source=result.source,
        fallback=result.fallback,
    )


def get_service_statistics(remote: DocumentStore, local: KeyValueStore) -> ServiceResult:
    result = get_all_service_requests(remote, local)
    if not result.success:
        return result

    analytics = build_service_analytics(result.data)
    this_month = datetime.now(tz=timezone.utc).strftime("%Y-%m")
    statistics = {
        "total": len(result.data),
        "pending": analytics["byStatus"][ServiceStatus.pending.value],
        "inProgress": analytics["byStatus"][ServiceStatus.in_progress.value],
        "completed": analytics["byStatus"][ServiceStatus.completed.value],
        "critical": analytics["byPriority"][ServicePriority.critical.value],
        "completionRate": analytics["completionRate"],
        "averageCompletionTime": analytics["averageCompletionTime"],
        "criticalRequestsPending": analytics["criticalRequestsPending"],
        "mostCommonService": analytics["mostCommonService"],
        "thisMonth": analytics["byMonth"].get(this_month, 0),
    }
    return ServiceResult(success=True, data=statistics, source=result.source, fallback=result.fallback)
