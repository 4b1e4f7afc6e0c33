"""Shared fixtures: a throwaway SQLite document store, a temp local mirror and an API client."""

import os

# Settings are read on first import of kgoc.config
os.environ["RATE_LIMIT"] = "10000/minute"
os.environ["ADMIN_USER_IDS"] = ""
os.environ["AUTO_CREATE_DB"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from kgoc.db import Base, build_engine
from kgoc.models import models  # noqa: F401
from kgoc.storage.factory import get_document_store, get_local_store
from kgoc.storage.local_provider import LocalKeyValueStore
from kgoc.storage.provider import DocumentStore, StoreError
from kgoc.storage.sql_provider import SqlDocumentStore


class FailingDocumentStore(DocumentStore):
    """Remote store that is always unreachable. Counts the calls made against it."""

    def __init__(self, code: str = "unavailable"):
        self.code = code
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise StoreError(self.code, "remote store unreachable")

    add = _fail
    set = _fail
    get = _fail
    update = _fail
    delete = _fail
    query = _fail
    clear = _fail

    def ping(self) -> bool:
        self.calls += 1
        return False


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'remote.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def remote(engine):
    return SqlDocumentStore(sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True))


@pytest.fixture
def local(tmp_path):
    return LocalKeyValueStore(str(tmp_path / "local_store.json"))


@pytest.fixture
def failing_remote():
    return FailingDocumentStore()


@pytest.fixture
def app():
    from kgoc.main import app

    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app, remote, local):
    app.dependency_overrides[get_document_store] = lambda: remote
    app.dependency_overrides[get_local_store] = lambda: local
    return TestClient(app)


@pytest.fixture
def offline_client(app, failing_remote, local):
    app.dependency_overrides[get_document_store] = lambda: failing_remote
    app.dependency_overrides[get_local_store] = lambda: local
    return TestClient(app)
