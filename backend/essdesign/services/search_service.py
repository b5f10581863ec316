"""Folder name search over the whole folder forest."""

import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..models import Folder
from ..repositories.document_repository import DocumentRepository
from ..repositories.folder_repository import FolderRepository
from ..schemas.document import DocumentResponse
from ..schemas.search import PATH_SEPARATOR, SearchResult
from .folder_assembler import to_stub

logger = logging.getLogger(__name__)


class SearchEngine:
    """Case-insensitive substring match on folder names.

    All folders are loaded once and walked breadth-first from the roots, so
    results come out shallowest first and in name order within a level.
    Each result carries one level of its own contents. ``limit`` caps the
    number of results; 0 or None means no cap.
    """

    def __init__(self, db: Session, limit: Optional[int] = None):
        self.folder_repo = FolderRepository(db)
        self.doc_repo = DocumentRepository(db)
        self.limit = limit or None

    def search(self, query: str) -> List[SearchResult]:
        """Expects an already normalized query (see ``normalize_search_query``)."""
        needle = query.casefold()
        folders = self.folder_repo.get_all()

        # get_all is name ordered, so every child list below is too.
        children: Dict[Optional[str], List[Folder]] = {}
        for folder in folders:
            children.setdefault(folder.parent_folder_id, []).append(folder)

        matches: List[Tuple[Folder, str]] = []
        visited = set()
        queue: Deque[Tuple[Folder, List[str]]] = deque(
            (root, []) for root in children.get(None, [])
        )
        truncated = False

        while queue:
            folder, ancestors = queue.popleft()
            if folder.id in visited:
                logger.warning("Folder reached twice during search", extra={"folder_id": folder.id})
                continue
            visited.add(folder.id)

            names = ancestors + [folder.name]
            if needle in folder.name.casefold():
                if self.limit is not None and len(matches) >= self.limit:
                    truncated = True
                    break
                matches.append((folder, PATH_SEPARATOR.join(names)))

            for child in children.get(folder.id, []):
                queue.append((child, names))

        if truncated:
            logger.info(
                "Search results truncated",
                extra={"query": query, "limit": self.limit},
            )

        documents = self.doc_repo.get_by_folders(folder.id for folder, _ in matches)
        return [
            SearchResult(
                id=folder.id,
                name=folder.name,
                parent_folder_id=folder.parent_folder_id,
                path=path,
                sub_folders=[to_stub(child) for child in children.get(folder.id, [])],
                documents=[DocumentResponse.model_validate(d) for d in documents[folder.id]],
            )
            for folder, path in matches
        ]
