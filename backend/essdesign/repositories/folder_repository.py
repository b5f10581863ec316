"""Repository for folder rows. Plain CRUD; tree logic lives in the services."""

import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func

from ..models import Folder
from ..exceptions import FolderNotFoundError
from .base import BaseRepository

# Alphabetical, case-insensitive; exact name then id break ties so listings are stable.
_NAME_ORDER = (func.lower(Folder.name), Folder.name, Folder.id)


class FolderRepository(BaseRepository[Folder]):
    """Data access layer for folders."""

    model_class = Folder
    not_found_error = FolderNotFoundError

    def create(self, name: str, parent_folder_id: Optional[str], owner_id: Optional[str]) -> Folder:
        now = datetime.now(timezone.utc)
        folder = Folder(
            id=str(uuid.uuid4()),
            name=name,
            parent_folder_id=parent_folder_id,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        return self.add(folder)

    def get_roots(self) -> List[Folder]:
        """Root-level folders ordered by name."""
        return (
            self.db.query(Folder)
            .filter(Folder.parent_folder_id.is_(None))
            .order_by(*_NAME_ORDER)
            .all()
        )

    def get_children(self, folder_id: str) -> List[Folder]:
        """Immediate subfolders of *folder_id* ordered by name."""
        return (
            self.db.query(Folder)
            .filter(Folder.parent_folder_id == folder_id)
            .order_by(*_NAME_ORDER)
            .all()
        )

    def get_children_of_many(self, folder_ids: Iterable[str]) -> Dict[str, List[Folder]]:
        """Immediate subfolders for several parents in one query, keyed by parent id."""
        ids = list(folder_ids)
        grouped: Dict[str, List[Folder]] = {fid: [] for fid in ids}
        if not ids:
            return grouped
        rows = (
            self.db.query(Folder)
            .filter(Folder.parent_folder_id.in_(ids))
            .order_by(*_NAME_ORDER)
            .all()
        )
        for row in rows:
            grouped[row.parent_folder_id].append(row)
        return grouped

    def get_all(self) -> List[Folder]:
        """Every folder, ordered by name. Used to build the adjacency for search."""
        return self.db.query(Folder).order_by(*_NAME_ORDER).all()

    def rename(self, folder_id: str, new_name: str) -> Folder:
        folder = self.get_by_id(folder_id)
        folder.name = new_name
        folder.updated_at = datetime.now(timezone.utc)
        self.db.flush()
        return folder

    def delete(self, folder_id: str) -> bool:
        """Delete a folder row. Subfolders and documents go with it via ON DELETE CASCADE."""
        deleted = (
            self.db.query(Folder)
            .filter(Folder.id == folder_id)
            .delete(synchronize_session=False)
        )
        return deleted > 0
