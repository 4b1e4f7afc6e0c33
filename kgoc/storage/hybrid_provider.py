"""
Dual-write collection: the remote document store is authoritative, the local
mirror is a best-effort copy that serves reads and writes when the remote fails.
"""
import random
import string
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from .provider import DocumentStore, KeyValueStore, StoreError
from ..services.results import ServiceResult, handle_store_error


logger = structlog.get_logger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC. Unparseable values give None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def local_id() -> str:
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"local_{int(time.time() * 1000)}_{suffix}"


def newest_first(items: List[Dict[str, Any]], field: str = "createdAt") -> List[Dict[str, Any]]:
    return sorted(items, key=lambda i: str(i.get(field) or ""), reverse=True)


class MirroredCollection:
    def __init__(
        self,
        remote: DocumentStore,
        local: KeyValueStore,
        collection: str,
        local_key: str,
        label: str,
    ):
        self.remote = remote
        self.local = local
        self.collection = collection
        self.local_key = local_key
        self.label = label

    def read_mirror(self) -> List[Dict[str, Any]]:
        items = self.local.get_json(self.local_key, [])
        return items if isinstance(items, list) else []

    def write_mirror(self, items: List[Dict[str, Any]]) -> None:
        self.local.set_json(self.local_key, items)

    def _find_in_mirror(self, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            return next((i for i in self.read_mirror() if i.get("id") == doc_id), None)
        except StoreError as e:
            logger.warning("local_mirror_read_failed", collection=self.collection, error=e.message)
            return None

    def create(self, doc: Dict[str, Any], operation: str) -> ServiceResult:
        try:
            doc_id = self.remote.add(self.collection, doc)
        except StoreError as e:
            logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
            local_doc = {**doc, "id": local_id(), "isLocal": True}
            try:
                items = self.read_mirror()
                items.append(local_doc)
                self.write_mirror(items)
            except StoreError as local_error:
                logger.error("local_fallback_failed", operation=operation, error=local_error.message)
                return handle_store_error(e, operation)
            logger.info("saved_to_local_fallback", operation=operation, id=local_doc["id"])
            return ServiceResult(
                success=True,
                id=local_doc["id"],
                message=f"{self.label} saved locally (remote store unavailable)",
                data=local_doc,
                source="local",
                fallback=True,
            )

        saved = {**doc, "id": doc_id}
        try:
            items = self.read_mirror()
            items.append(saved)
            self.write_mirror(items)
        except StoreError as e:
            logger.warning("local_mirror_write_failed", operation=operation, error=e.message)

        logger.info("document_created", collection=self.collection, id=doc_id)
        return ServiceResult(
            success=True,
            id=doc_id,
            message=f"{self.label} created successfully!",
            data=saved,
            source="remote",
        )

    def list_all(self, limit: int, operation: str) -> ServiceResult:
        try:
            items = self.remote.query(self.collection, order_by="createdAt", descending=True, limit=limit)
        except StoreError as e:
            logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
            try:
                local_items = newest_first(self.read_mirror())[:limit]
            except StoreError as local_error:
                logger.error("local_fallback_failed", operation=operation, error=local_error.message)
                return ServiceResult(success=True, data=[], count=0, source="empty", fallback=True)
            return ServiceResult(
                success=True,
                data=local_items,
                count=len(local_items),
                source="local",
                fallback=True,
            )

        # The mirror is overwritten with the remote view; last write wins
        try:
            self.write_mirror(items)
        except StoreError as e:
            logger.warning("local_mirror_write_failed", operation=operation, error=e.message)

        return ServiceResult(success=True, data=items, count=len(items), source="remote")

    def get(self, doc_id: str, operation: str) -> ServiceResult:
        try:
            doc = self.remote.get(self.collection, doc_id)
        except StoreError as e:
            logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
            local_doc = self._find_in_mirror(doc_id)
            if local_doc:
                return ServiceResult(success=True, data=local_doc, source="local", fallback=True)
            return handle_store_error(e, operation)

        if doc:
            return ServiceResult(success=True, data=doc, source="remote")

        local_doc = self._find_in_mirror(doc_id)
        if local_doc:
            return ServiceResult(success=True, data=local_doc, source="local")
        return ServiceResult(success=False, error="not-found", message=f"{self.label} not found")

    def update(self, doc_id: str, changes: Dict[str, Any], operation: str) -> ServiceResult:
        try:
            self.remote.update(self.collection, doc_id, changes)
        except StoreError as e:
            logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
            try:
                items = self.read_mirror()
                for index, item in enumerate(items):
                    if item.get("id") == doc_id:
                        items[index] = {**item, **changes, "isLocal": True}
                        self.write_mirror(items)
                        return ServiceResult(
                            success=True,
                            message=f"{self.label} updated locally (remote store unavailable)",
                            data=items[index],
                            source="local",
                            fallback=True,
                        )
            except StoreError as local_error:
                logger.error("local_fallback_failed", operation=operation, error=local_error.message)
            return handle_store_error(e, operation)

        try:
            items = self.read_mirror()
            for index, item in enumerate(items):
                if item.get("id") == doc_id:
                    items[index] = {**item, **changes}
                    self.write_mirror(items)
                    break
        except StoreError as e:
            logger.warning("local_mirror_write_failed", operation=operation, error=e.message)

        logger.info("document_updated", collection=self.collection, id=doc_id)
        return ServiceResult(
            success=True,
            message=f"{self.label} updated successfully!",
            data=changes,
            source="remote",
        )

    def delete(self, doc_id: str, operation: str) -> ServiceResult:
        try:
            self.remote.delete(self.collection, doc_id)
        except StoreError as e:
            logger.warning("remote_store_failed", operation=operation, code=e.code, error=e.message)
            try:
                self.write_mirror([i for i in self.read_mirror() if i.get("id") != doc_id])
            except StoreError as local_error:
                logger.error("local_fallback_failed", operation=operation, error=local_error.message)
                return handle_store_error(e, operation)
            return ServiceResult(
                success=True,
                message=f"{self.label} deleted locally (remote store unavailable)",
                source="local",
                fallback=True,
            )

        try:
            self.write_mirror([i for i in self.read_mirror() if i.get("id") != doc_id])
        except StoreError as e:
            logger.warning("local_mirror_write_failed", operation=operation, error=e.message)

        logger.info("document_deleted", collection=self.collection, id=doc_id)
        return ServiceResult(success=True, message=f"{self.label} deleted successfully!", source="remote")

    def clear(self, include_remote: bool, operation: str) -> ServiceResult:
        removed = 0
        if include_remote:
            try:
                removed = self.remote.clear(self.collection)
            except StoreError as e:
                return handle_store_error(e, operation)
        try:
            self.local.remove_item(self.local_key)
        except StoreError as e:
            if not include_remote:
                return handle_store_error(e, operation)
            logger.warning("local_mirror_write_failed", operation=operation, error=e.message)

        logger.info("collection_cleared", collection=self.collection, removed=removed, include_remote=include_remote)
        return ServiceResult(success=True, count=removed, message=f"All {self.collection} cleared")
