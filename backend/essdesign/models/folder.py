"""Folder model: one node of the folder forest."""

from sqlalchemy import Column, Index, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from .common import utcnow


class Folder(Base):
    """A folder. ``parent_folder_id`` is NULL for root-level folders."""

    __tablename__ = "folders"
    __table_args__ = (
        Index("ix_folders_parent_folder_id", "parent_folder_id"),
        Index("ix_folders_name", "name"),
    )

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)

    # Deleting a folder removes its whole subtree at the database level.
    parent_folder_id = Column(
        String(36), ForeignKey("folders.id", ondelete="CASCADE"), nullable=True
    )
    owner_id = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    documents = relationship(
        "DesignDocument",
        back_populates="folder",
        passive_deletes=True,
    )
