"""Search schemas and query validation."""

from pydantic import BaseModel
from typing import Optional, List

from .document import DocumentResponse
from .folder import FolderStub
from ..exceptions import ValidationError

MIN_QUERY_LENGTH = 2
PATH_SEPARATOR = " / "


class SearchResult(BaseModel):
    """A folder whose name matched, with one level of its contents."""
    id: str
    name: str
    parent_folder_id: Optional[str] = None
    path: str
    sub_folders: List[FolderStub] = []
    documents: List[DocumentResponse] = []


def normalize_search_query(q: Optional[str]) -> str:
    """Trim *q* and reject queries shorter than ``MIN_QUERY_LENGTH``."""
    query = (q or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        raise ValidationError(
            f"Search query must be at least {MIN_QUERY_LENGTH} characters", field="q"
        )
    return query
