"""Database models."""

from .folder import Folder
from .document import DesignDocument

__all__ = ["Folder", "DesignDocument"]
