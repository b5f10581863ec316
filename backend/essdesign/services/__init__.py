"""Business logic services."""

from .tree_cache import TreeCache
from .folder_assembler import FolderResponseAssembler
from .breadcrumbs import BreadcrumbResolver
from .search_service import SearchEngine
from .folder_service import FolderService
from .document_service import DocumentService
from .storage import BlobStore, LocalBlobStore, SupabaseBlobStore, create_blob_store
from .notification_service import UploadNotification, UploadNotifier

__all__ = [
    "TreeCache",
    "FolderResponseAssembler",
    "BreadcrumbResolver",
    "SearchEngine",
    "FolderService",
    "DocumentService",
    "BlobStore",
    "LocalBlobStore",
    "SupabaseBlobStore",
    "create_blob_store",
    "UploadNotification",
    "UploadNotifier",
]
