"""Folder hierarchy service: one entry point for every folder operation.

Reads go through the assembler (and, for ``get_folder``, the tree cache).
Writes commit first, then invalidate every cache entry whose content the
write changed:

    create  -- the new folder's parent
    rename  -- the folder and its parent
    delete  -- the folder, its parent and every descendant

Concurrent writers on the same folder are last-write-wins. There is no
version token; each writer invalidates its own targets after its commit.
"""

import logging
from typing import List, Optional, Set

from sqlalchemy.orm import Session, sessionmaker

from ..database import commit_or_raise
from ..exceptions import BlobStorageError, FolderNotFoundError, ValidationError
from ..repositories.document_repository import DocumentRepository
from ..repositories.folder_repository import FolderRepository
from ..schemas.folder import (
    BreadcrumbItem,
    FolderCreate,
    FullFolderResponse,
    LightFolderResponse,
)
from ..schemas.search import SearchResult, normalize_search_query
from .breadcrumbs import BreadcrumbResolver
from .folder_assembler import FolderResponseAssembler
from .search_service import SearchEngine
from .storage import BlobStore
from .tree_cache import TreeCache

logger = logging.getLogger(__name__)


class FolderService:
    """All folder reads and writes behind a narrow interface.

    Public methods:
        list_root_folders   -- root folders, light shape
        get_folder          -- full shape, cache-backed
        get_folder_children -- light shape
        get_breadcrumbs     -- root-first ancestry
        create_folder
        rename_folder
        delete_folder       -- cascades to subfolders and documents
        search              -- name search with one level of contents
    """

    def __init__(
        self,
        db: Session,
        cache: TreeCache,
        session_factory: Optional[sessionmaker] = None,
        blob_store: Optional[BlobStore] = None,
        search_limit: Optional[int] = None,
    ):
        self.db = db
        self.cache = cache
        self.blob_store = blob_store
        self.search_limit = search_limit
        self.folder_repo = FolderRepository(db)
        self.doc_repo = DocumentRepository(db)
        self.assembler = FolderResponseAssembler(db, session_factory)
        self.breadcrumbs = BreadcrumbResolver(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_root_folders(self) -> List[LightFolderResponse]:
        return self.assembler.build_light_many(self.folder_repo.get_roots())

    def get_folder(self, folder_id: str) -> FullFolderResponse:
        cached = self.cache.get(folder_id)
        if cached is not None:
            return cached

        response = self.assembler.build_full_by_id(folder_id)
        self.cache.put(folder_id, response)
        return response

    def get_folder_children(self, folder_id: str) -> LightFolderResponse:
        return self.assembler.build_light(self.folder_repo.get_by_id(folder_id))

    def get_breadcrumbs(self, folder_id: str) -> List[BreadcrumbItem]:
        chain = self.breadcrumbs.resolve(folder_id)
        if not chain:
            raise FolderNotFoundError(folder_id)
        return chain

    def search(self, query: Optional[str]) -> List[SearchResult]:
        normalized = normalize_search_query(query)
        return SearchEngine(self.db, limit=self.search_limit).search(normalized)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_folder(self, data: FolderCreate, owner_id: Optional[str] = None) -> FullFolderResponse:
        """Create a folder at the root or under an existing parent."""
        if data.parent_folder_id is not None:
            self.folder_repo.get_by_id(data.parent_folder_id)

        folder = self.folder_repo.create(data.name, data.parent_folder_id, owner_id)
        folder_id = folder.id
        commit_or_raise(self.db, "create folder")
        self.cache.invalidate(data.parent_folder_id)

        logger.info(
            "Created folder",
            extra={"folder_id": folder_id, "parent_folder_id": data.parent_folder_id},
        )
        return self.get_folder(folder_id)

    def rename_folder(self, folder_id: str, new_name: str) -> FullFolderResponse:
        new_name = (new_name or "").strip()
        if not new_name:
            raise ValidationError("Folder name is required", field="new_name")

        folder = self.folder_repo.rename(folder_id, new_name)
        parent_id = folder.parent_folder_id
        commit_or_raise(self.db, "rename folder")
        self.cache.invalidate_many([folder_id, parent_id])

        logger.info("Renamed folder", extra={"folder_id": folder_id})
        return self.get_folder(folder_id)

    def delete_folder(self, folder_id: str) -> None:
        """Delete a folder with its whole subtree.

        The database cascade removes the rows. Files of every document in the
        subtree are removed from blob storage afterwards; failures there are
        logged and do not fail the delete.
        """
        folder = self.folder_repo.get_by_id(folder_id)
        parent_id = folder.parent_folder_id

        subtree = self._collect_subtree(folder_id)
        documents = self.doc_repo.get_by_folders(subtree)
        blob_paths = [path for docs in documents.values() for doc in docs for path in doc.file_paths()]

        self.folder_repo.delete(folder_id)
        commit_or_raise(self.db, "delete folder")
        self.cache.invalidate_many([parent_id, *subtree])

        logger.info(
            "Deleted folder",
            extra={"folder_id": folder_id, "folders_removed": len(subtree), "files_removed": len(blob_paths)},
        )
        self._delete_blobs(blob_paths)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _collect_subtree(self, folder_id: str) -> List[str]:
        """Ids of *folder_id* and all its descendants, one query per level."""
        collected: List[str] = [folder_id]
        seen: Set[str] = {folder_id}
        frontier = [folder_id]
        while frontier:
            children = self.folder_repo.get_children_of_many(frontier)
            frontier = []
            for kids in children.values():
                for child in kids:
                    if child.id in seen:
                        continue
                    seen.add(child.id)
                    collected.append(child.id)
                    frontier.append(child.id)
        return collected

    def _delete_blobs(self, paths: List[str]) -> None:
        if self.blob_store is None:
            return
        for path in paths:
            try:
                self.blob_store.delete(path)
            except BlobStorageError as e:
                logger.warning("Could not delete stored file", extra={"path": path, "error": e.message})
