"""Pydantic schemas for API validation."""

from .document import (
    FileVariant,
    DocumentResponse,
    DocumentRevisionUpdate,
    UploadedFile,
    UploadResult,
    DownloadLink,
)
from .folder import (
    FolderCreate,
    FolderRename,
    FolderStub,
    LightFolderResponse,
    FullFolderResponse,
    BreadcrumbItem,
    FolderHierarchy,
    MessageResponse,
)
from .search import SearchResult, normalize_search_query

__all__ = [
    "FileVariant",
    "DocumentResponse",
    "DocumentRevisionUpdate",
    "UploadedFile",
    "UploadResult",
    "DownloadLink",
    "FolderCreate",
    "FolderRename",
    "FolderStub",
    "LightFolderResponse",
    "FullFolderResponse",
    "BreadcrumbItem",
    "FolderHierarchy",
    "MessageResponse",
    "SearchResult",
    "normalize_search_query",
]
