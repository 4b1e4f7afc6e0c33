"""
Maintenance requests raised against parts of a well.
The remote store is authoritative; the local mirror keeps a best-effort copy.
"""
from enum import Enum
from typing import Any, Dict, Optional

import structlog

from ..config import settings
from ..storage.hybrid_provider import MirroredCollection, newest_first, now_iso
from ..storage.provider import DocumentStore, KeyValueStore
from .parts_catalog import get_part
from .results import ServiceResult, invalid_argument


logger = structlog.get_logger(__name__)

MAINTENANCE_REQUESTS_COLLECTION = "maintenanceRequests"
LOCAL_KEY = "maintenanceRequests"


class MaintenanceStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    resolved = "resolved"


VALID_STATUSES = {s.value for s in MaintenanceStatus}


def _collection(remote: DocumentStore, local: KeyValueStore) -> MirroredCollection:
    return MirroredCollection(remote, local, MAINTENANCE_REQUESTS_COLLECTION, LOCAL_KEY, "Maintenance request")


def create_maintenance_request(
    remote: DocumentStore,
    local: KeyValueStore,
    request_data: Dict[str, Any],
) -> ServiceResult:
    if not request_data.get("wellNumber") or not request_data.get("partId"):
        return invalid_argument("Well Number and Part ID are required")

    part = get_part(request_data["partId"])
    timestamp = now_iso()
    doc = {
        **request_data,
        "partInfo": part.model_dump() if part else None,
        "status": MaintenanceStatus.pending.value,
        "priority": request_data.get("priority") or "medium",
        "createdAt": timestamp,
        "updatedAt": timestamp,
    }
    doc.pop("id", None)
    return _collection(remote, local).create(doc, "createMaintenanceRequest")


def get_all_maintenance_requests(
    remote: DocumentStore,
    local: KeyValueStore,
    limit: Optional[int] = None,
) -> ServiceResult:
    return _collection(remote, local).list_all(limit or settings.default_query_limit, "getAllMaintenanceRequests")


def get_maintenance_requests_by_well(
    remote: DocumentStore,
    local: KeyValueStore,
    well_number: str,
) -> ServiceResult:
    if not (well_number or "").strip():
        return ServiceResult(success=True, data=[], count=0)

    result = get_all_maintenance_requests(remote, local)
    if not result.success:
        return result

    wanted = well_number.strip().lower()
    matches = newest_first([r for r in result.data if str(r.get("wellNumber") or "").lower() == wanted])
    logger.info("maintenance_requests_for_well", well_number=well_number, count=len(matches))
    return ServiceResult(
        success=True,
        data=matches,
        count=len(matches),
        source=result.source,
        fallback=result.fallback,
        wellNumber=well_number,
    )


def update_maintenance_request_status(
    remote: DocumentStore,
    local: KeyValueStore,
    request_id: str,
    status: str,
    notes: str = "",
) -> ServiceResult:
    if not request_id:
        return invalid_argument("Request ID is required")
    if status not in VALID_STATUSES:
        return invalid_argument(f"Status must be one of: {', '.join(sorted(VALID_STATUSES))}")

    timestamp = now_iso()
    changes = {
        "status": status,
        "statusNotes": notes,
        "updatedAt": timestamp,
        "statusUpdatedAt": timestamp,
    }
    result = _collection(remote, local).update(request_id, changes, "updateMaintenanceRequestStatus")
    if result.success and not result.fallback:
        result.message = "Maintenance request status updated successfully!"
    return result


def clear_maintenance_requests(
    remote: DocumentStore,
    local: KeyValueStore,
    include_remote: bool = True,
) -> ServiceResult:
    return _collection(remote, local).clear(include_remote, "clearMaintenanceRequests")
