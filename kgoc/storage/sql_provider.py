"""
Remote document store backed by a SQL database.
Each collection is a slice of the ``documents`` table; document bodies live in a JSON column.
"""
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models.models import Document
from .provider import DocumentStore, StoreError


def _sort_key(value: Any):
    # None sorts before everything so it ends up last in descending queries
    if value is None:
        return (0, "")
    if isinstance(value, (int, float)):
        return (1, value)
    return (2, str(value))


class SqlDocumentStore(DocumentStore):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError("unavailable", str(e))
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _to_dict(doc: Document) -> Dict[str, Any]:
        return {**(doc.data or {}), "id": doc.id}

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        with self._session() as db:
            db.add(Document(collection=collection, id=doc_id, data=dict(data)))
        return doc_id

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        with self._session() as db:
            doc = db.get(Document, (collection, doc_id))
            if doc is None:
                db.add(Document(collection=collection, id=doc_id, data=dict(data)))
                return
            # JSON columns are not mutation-tracked; always assign a new dict
            doc.data = {**doc.data, **data} if merge else dict(data)
            doc.updated_at = datetime.utcnow()

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as db:
            doc = db.get(Document, (collection, doc_id))
            return self._to_dict(doc) if doc else None

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        with self._session() as db:
            doc = db.get(Document, (collection, doc_id))
            if doc is None:
                raise StoreError("not-found", f"No document to update: {collection}/{doc_id}")
            doc.data = {**doc.data, **data}
            doc.updated_at = datetime.utcnow()

    def delete(self, collection: str, doc_id: str) -> None:
        with self._session() as db:
            doc = db.get(Document, (collection, doc_id))
            if doc is not None:
                db.delete(doc)

    def query(
        self,
        collection: str,
        where: Optional[Sequence[Tuple[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        with self._session() as db:
            rows = (
                db.query(Document)
                .filter(Document.collection == collection)
                .order_by(Document.created_at.asc())
                .all()
            )
            items = [self._to_dict(r) for r in rows]
        for field, value in where or []:
            items = [i for i in items if i.get(field) == value]
        if order_by:
            items.sort(key=lambda i: _sort_key(i.get(order_by)), reverse=descending)
        if limit is not None:
            items = items[:limit]
        return items

    def clear(self, collection: str) -> int:
        with self._session() as db:
            return db.query(Document).filter(Document.collection == collection).delete()

    def ping(self) -> bool:
        try:
            with self._session() as db:
                db.execute(text("select 1"))
            return True
        except StoreError:
            return False
