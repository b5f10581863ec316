"""Repository for design document rows."""

import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..models import DesignDocument
from ..exceptions import DocumentNotFoundError
from .base import BaseRepository


class DocumentRepository(BaseRepository[DesignDocument]):
    """Data access layer for design documents."""

    model_class = DesignDocument
    not_found_error = DocumentNotFoundError

    @staticmethod
    def new_id() -> str:
        """Document ids are chosen before the files are stored, since blob paths embed them."""
        return str(uuid.uuid4())

    def create(
        self,
        document_id: str,
        folder_id: str,
        revision_number: str,
        description: Optional[str] = None,
        ess_design_issue_path: Optional[str] = None,
        ess_design_issue_name: Optional[str] = None,
        third_party_design_path: Optional[str] = None,
        third_party_design_name: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> DesignDocument:
        now = datetime.now(timezone.utc)
        document = DesignDocument(
            id=document_id,
            folder_id=folder_id,
            revision_number=revision_number,
            description=description,
            ess_design_issue_path=ess_design_issue_path,
            ess_design_issue_name=ess_design_issue_name,
            third_party_design_path=third_party_design_path,
            third_party_design_name=third_party_design_name,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        return self.add(document)

    def get_by_folder(self, folder_id: str) -> List[DesignDocument]:
        """Documents directly inside *folder_id*, revision ascending."""
        return (
            self.db.query(DesignDocument)
            .filter(DesignDocument.folder_id == folder_id)
            .order_by(DesignDocument.revision_number, DesignDocument.id)
            .all()
        )

    def get_by_folders(self, folder_ids: Iterable[str]) -> Dict[str, List[DesignDocument]]:
        """Documents for several folders in one query, keyed by folder id."""
        ids = list(folder_ids)
        grouped: Dict[str, List[DesignDocument]] = {fid: [] for fid in ids}
        if not ids:
            return grouped
        rows = (
            self.db.query(DesignDocument)
            .filter(DesignDocument.folder_id.in_(ids))
            .order_by(DesignDocument.revision_number, DesignDocument.id)
            .all()
        )
        for row in rows:
            grouped[row.folder_id].append(row)
        return grouped

    def update_revision(self, document_id: str, revision_number: str) -> DesignDocument:
        document = self.get_by_id(document_id)
        document.revision_number = revision_number
        document.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return document

    def touch(self, document: DesignDocument) -> DesignDocument:
        document.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return document

    def delete(self, document_id: str) -> bool:
        deleted = (
            self.db.query(DesignDocument)
            .filter(DesignDocument.id == document_id)
            .delete(synchronize_session=False)
        )
        return deleted > 0
