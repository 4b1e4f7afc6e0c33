import json
from typing import Any, Dict, List, Optional, Sequence, Tuple


class StoreError(Exception):
    """Failure talking to a store. ``code`` mirrors the document-store error codes."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code
        self.message = message or code


class DocumentStore:
    """Remote, collection-based document store."""

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        raise NotImplementedError

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    def query(
        self,
        collection: str,
        where: Optional[Sequence[Tuple[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def clear(self, collection: str) -> int:
        raise NotImplementedError

    def ping(self) -> bool:
        raise NotImplementedError


class KeyValueStore:
    """String-keyed, string-valued local mirror."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StoreError("local-storage-error", f"Corrupt value for {key}: {e}")

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, default=str))
