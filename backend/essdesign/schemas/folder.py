"""Folder, tree and breadcrumb schemas.

Folder listings come in two explicitly tagged shapes. ``LightFolderResponse``
has no ``documents`` field at all, so a light listing can never be mistaken
for one that was checked for documents.
"""

from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional, List, Literal

from .document import DocumentResponse


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Folder name is required")
    return v


class FolderCreate(BaseModel):
    """Create a folder at the root or under ``parent_folder_id``."""
    name: str
    parent_folder_id: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class FolderRename(BaseModel):
    """Rename a folder in place."""
    new_name: str

    @field_validator('new_name')
    @classmethod
    def validate_new_name(cls, v: str) -> str:
        return _clean_name(v)


class FolderStub(BaseModel):
    """A folder's own fields, without any children."""
    id: str
    name: str
    parent_folder_id: Optional[str] = None
    owner_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LightFolderResponse(FolderStub):
    """Folder plus its immediate subfolder stubs. Documents are not loaded."""
    shape: Literal["light"] = "light"
    sub_folders: List[FolderStub] = []


class FullFolderResponse(FolderStub):
    """Folder plus immediate subfolder stubs and immediate documents."""
    shape: Literal["full"] = "full"
    sub_folders: List[FolderStub] = []
    documents: List[DocumentResponse] = []


class BreadcrumbItem(BaseModel):
    """One step of the path from a root folder down to the current folder."""
    id: str
    name: str


class FolderHierarchy(BaseModel):
    """Names of the top three levels above (and including) a folder.

    The repository is organised client / project / scaffold, so these
    labels appear in upload notifications.
    """
    client: Optional[str] = None
    project: Optional[str] = None
    scaffold: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
