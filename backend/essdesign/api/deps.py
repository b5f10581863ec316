"""FastAPI dependencies for the shared components built in the lifespan.

The tree cache, blob store and notifier live on ``app.state``; routes get
them (and the services composed from them) through these functions, so
tests can swap any of them with ``app.dependency_overrides``.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import settings
from ..database import get_db, get_session_factory
from ..services.document_service import DocumentService
from ..services.folder_service import FolderService
from ..services.notification_service import UploadNotifier
from ..services.storage import BlobStore
from ..services.tree_cache import TreeCache


def get_tree_cache(request: Request) -> TreeCache:
    return request.app.state.tree_cache


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_notifier(request: Request) -> UploadNotifier:
    return request.app.state.notifier


def get_folder_service(
    db: Session = Depends(get_db),
    cache: TreeCache = Depends(get_tree_cache),
    session_factory: sessionmaker = Depends(get_session_factory),
    blob_store: BlobStore = Depends(get_blob_store),
) -> FolderService:
    return FolderService(
        db,
        cache,
        session_factory=session_factory,
        blob_store=blob_store,
        search_limit=settings.search_result_limit,
    )


def get_document_service(
    db: Session = Depends(get_db),
    cache: TreeCache = Depends(get_tree_cache),
    blob_store: BlobStore = Depends(get_blob_store),
) -> DocumentService:
    return DocumentService(
        db,
        cache,
        blob_store,
        signed_url_ttl=settings.signed_url_ttl_seconds,
    )
