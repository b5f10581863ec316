"""Ancestry of a folder: breadcrumbs and the client / project / scaffold labels."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..repositories.folder_repository import FolderRepository
from ..schemas.folder import BreadcrumbItem, FolderHierarchy

logger = logging.getLogger(__name__)


class BreadcrumbResolver:
    """Walks parent links from a folder up to its root.

    Public methods:
        resolve   -- root-first list of BreadcrumbItem
        hierarchy -- names of the first three levels of the chain
    """

    def __init__(self, db: Session):
        self.folder_repo = FolderRepository(db)

    def resolve(self, folder_id: Optional[str]) -> List[BreadcrumbItem]:
        """Return the path from the root down to *folder_id*, inclusive.

        No id (the virtual root above all root folders) and unknown ids give
        ``[]``. A parent that no longer exists ends the walk early and the
        partial chain is returned. A repeated id also ends the walk.
        """
        chain: List[BreadcrumbItem] = []
        visited = set()
        current_id = folder_id

        while current_id is not None:
            if current_id in visited:
                logger.warning(
                    "Cycle in folder parent links, stopping breadcrumb walk",
                    extra={"folder_id": folder_id, "repeated_id": current_id},
                )
                break
            visited.add(current_id)

            folder = self.folder_repo.get_by_id_optional(current_id)
            if folder is None:
                if chain:
                    logger.warning(
                        "Dangling parent reference, returning partial breadcrumbs",
                        extra={"folder_id": folder_id, "missing_id": current_id},
                    )
                break

            chain.append(BreadcrumbItem(id=folder.id, name=folder.name))
            current_id = folder.parent_folder_id

        chain.reverse()
        return chain

    def hierarchy(self, folder_id: Optional[str]) -> FolderHierarchy:
        names = [item.name for item in self.resolve(folder_id)]
        names += [None] * (3 - len(names))
        return FolderHierarchy(client=names[0], project=names[1], scaffold=names[2])
