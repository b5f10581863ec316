"""Builds the light and full folder response shapes.

Neither shape recurses: a folder is emitted with its immediate subfolders as
stubs and, for the full shape only, its immediate documents.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from ..models import Folder
from ..repositories.document_repository import DocumentRepository
from ..repositories.folder_repository import FolderRepository
from ..schemas.document import DocumentResponse
from ..schemas.folder import FolderStub, FullFolderResponse, LightFolderResponse

logger = logging.getLogger(__name__)


def to_stub(folder: Folder) -> FolderStub:
    return FolderStub.model_validate(folder)


def _folder_fields(folder: Folder) -> Dict[str, Any]:
    return to_stub(folder).model_dump()


class FolderResponseAssembler:
    """Composes folder responses from the folder store.

    ``build_full`` reads subfolders and documents concurrently, each on its
    own session from ``session_factory``. When no factory is given, one bound
    to the same engine as ``db`` is used.
    """

    def __init__(self, db: Session, session_factory: Optional[sessionmaker] = None):
        self.db = db
        self.folder_repo = FolderRepository(db)
        self.session_factory = session_factory or sessionmaker(
            autocommit=False, autoflush=False, bind=db.get_bind()
        )

    def build_light(self, folder: Folder) -> LightFolderResponse:
        """Folder plus immediate subfolder stubs. Documents are never fetched."""
        children = self.folder_repo.get_children(folder.id)
        return LightFolderResponse(
            **_folder_fields(folder),
            sub_folders=[to_stub(child) for child in children],
        )

    def build_light_many(self, folders: Iterable[Folder]) -> List[LightFolderResponse]:
        """``build_light`` for several folders with a single child query."""
        folders = list(folders)
        children = self.folder_repo.get_children_of_many(f.id for f in folders)
        return [
            LightFolderResponse(
                **_folder_fields(folder),
                sub_folders=[to_stub(child) for child in children[folder.id]],
            )
            for folder in folders
        ]

    def build_full(self, folder: Folder) -> FullFolderResponse:
        """Folder plus immediate subfolder stubs and immediate documents.

        Ends the transaction on ``db`` before the workers start, so a request
        never holds one pooled connection while waiting for two more.
        """
        fields = _folder_fields(folder)
        self.db.commit()

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="folder-assembler") as pool:
            sub_folders_future = pool.submit(self._load_sub_folders, fields["id"])
            documents_future = pool.submit(self._load_documents, fields["id"])
            sub_folders = sub_folders_future.result()
            documents = documents_future.result()

        return FullFolderResponse(
            **fields,
            sub_folders=sub_folders,
            documents=documents,
        )

    def build_full_by_id(self, folder_id: str) -> FullFolderResponse:
        """Look up *folder_id* and build its full response. Raises FolderNotFoundError."""
        return self.build_full(self.folder_repo.get_by_id(folder_id))

    # ------------------------------------------------------------------
    # Worker-side reads. Rows are converted to schemas before the session
    # closes, so nothing lazy-loads against a closed session.
    # ------------------------------------------------------------------

    def _load_sub_folders(self, folder_id: str) -> List[FolderStub]:
        session = self.session_factory()
        try:
            return [to_stub(child) for child in FolderRepository(session).get_children(folder_id)]
        finally:
            session.close()

    def _load_documents(self, folder_id: str) -> List[DocumentResponse]:
        session = self.session_factory()
        try:
            return [
                DocumentResponse.model_validate(doc)
                for doc in DocumentRepository(session).get_by_folder(folder_id)
            ]
        finally:
            session.close()
