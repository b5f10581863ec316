"""Data access repositories."""

from .base import BaseRepository
from .folder_repository import FolderRepository
from .document_repository import DocumentRepository

__all__ = [
    "BaseRepository",
    "FolderRepository",
    "DocumentRepository",
]
