"""Shared test fixtures for the ESS Design backend test suite.

All tests use a throwaway SQLite file database. Tables are dropped and
recreated before each test, ensuring complete isolation. A file (not
``:memory:``) is used because the folder assembler reads on worker threads,
each with its own connection.

Blob storage and email are replaced by in-memory fakes; the real backends
are covered separately with ``httpx.MockTransport``.
"""

import os
import tempfile

# Force auth off and use the test database before any app imports.
_TEST_DIR = tempfile.mkdtemp(prefix="essdesign-tests-")
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}",
)
os.environ["AUTH_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["ENVIRONMENT"] = "development"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_STORAGE_DIR"] = os.path.join(_TEST_DIR, "storage")
os.environ["RESEND_API_KEY"] = ""

from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from essdesign import models  # noqa: F401
from essdesign.api.deps import get_blob_store, get_notifier, get_tree_cache
from essdesign.database import Base, SessionLocal, engine, get_db
from essdesign.exceptions import BlobStorageError
from essdesign.main import app
from essdesign.repositories.document_repository import DocumentRepository
from essdesign.repositories.folder_repository import FolderRepository
from essdesign.services.document_service import DocumentService
from essdesign.services.folder_service import FolderService
from essdesign.services.tree_cache import TreeCache


class InMemoryBlobStore:
    """Blob store fake. Paths containing any string in ``fail_on`` fail to upload."""

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_on: List[str] = []
        self.fail_delete = False

    def upload(self, data: bytes, path: str, content_type: str = "application/pdf") -> str:
        if any(marker in path for marker in self.fail_on):
            raise BlobStorageError(f"Failed to upload {path}", path=path)
        self.files[path] = data
        return path

    def delete(self, path: str) -> None:
        if self.fail_delete:
            raise BlobStorageError(f"Failed to delete {path}", path=path)
        self.deleted.append(path)
        self.files.pop(path, None)

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        return f"https://blobs.test/{path}?ttl={ttl_seconds}"

    def ensure_bucket(self) -> None:
        pass


class RecordingNotifier:
    """Collects notifications instead of emailing them."""

    def __init__(self):
        self.sent = []

    def send_upload_notification(self, notification) -> int:
        self.sent.append(notification)
        return len(notification.recipients)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _reset_tables():
    """Recreate every table before each test for isolation."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def cache() -> TreeCache:
    return TreeCache(ttl_seconds=300)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def folder_service(db, cache, blob_store) -> FolderService:
    return FolderService(db, cache, session_factory=SessionLocal, blob_store=blob_store, search_limit=100)


@pytest.fixture()
def document_service(db, cache, blob_store) -> DocumentService:
    return DocumentService(db, cache, blob_store)


@pytest.fixture()
def client(db, cache, blob_store, notifier):
    """FastAPI TestClient with the DB session and shared components overridden."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_tree_cache] = lambda: cache
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_folder(db, name: str, parent_folder_id: Optional[str] = None, owner_id: Optional[str] = None):
    """Insert and commit a folder row directly, bypassing the service."""
    folder = FolderRepository(db).create(name, parent_folder_id, owner_id)
    db.commit()
    return folder


def make_document(
    db,
    folder_id: str,
    revision_number: str = "01",
    ess_path: Optional[str] = "documents/x/ess_plan.pdf",
    third_party_path: Optional[str] = None,
    description: Optional[str] = None,
):
    """Insert and commit a document row directly, bypassing the service."""
    repo = DocumentRepository(db)
    document = repo.create(
        document_id=repo.new_id(),
        folder_id=folder_id,
        revision_number=revision_number,
        description=description,
        ess_design_issue_path=ess_path,
        ess_design_issue_name=ess_path.rsplit("/", 1)[-1] if ess_path else None,
        third_party_design_path=third_party_path,
        third_party_design_name=third_party_path.rsplit("/", 1)[-1] if third_party_path else None,
    )
    db.commit()
    return document


def pdf_upload(name: str = "plan.pdf", data: bytes = b"%PDF-1.4 test"):
    """Multipart tuple for TestClient ``files=``."""
    return (name, data, "application/pdf")
