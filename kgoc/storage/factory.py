from functools import lru_cache

from ..config import settings
from ..db import SessionLocal
from .provider import DocumentStore, KeyValueStore
from .sql_provider import SqlDocumentStore
from .local_provider import LocalKeyValueStore


@lru_cache(maxsize=1)
def get_document_store() -> DocumentStore:
    return SqlDocumentStore(SessionLocal)


@lru_cache(maxsize=1)
def get_local_store() -> KeyValueStore:
    return LocalKeyValueStore(settings.local_store_path)
