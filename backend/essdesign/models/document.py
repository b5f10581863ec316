"""Design document model: one revision of a design, up to two PDF files."""

from sqlalchemy import Column, Index, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from .common import utcnow


class DesignDocument(Base):
    """A revision of a design held in a folder.

    A document carries the primary ("ESS design issue") file, the
    third-party file, or both. Paths point into the blob store; names are
    the original upload file names shown to users.
    """

    __tablename__ = "design_documents"
    __table_args__ = (
        Index("ix_design_documents_folder_id", "folder_id"),
    )

    id = Column(String(36), primary_key=True)
    folder_id = Column(
        String(36), ForeignKey("folders.id", ondelete="CASCADE"), nullable=False
    )

    # Opaque label ("01", "A", "3b"); compared as a string.
    revision_number = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    ess_design_issue_path = Column(Text, nullable=True)
    ess_design_issue_name = Column(String(255), nullable=True)
    third_party_design_path = Column(Text, nullable=True)
    third_party_design_name = Column(String(255), nullable=True)

    owner_id = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    folder = relationship("Folder", back_populates="documents")

    def file_paths(self) -> list[str]:
        """Blob paths of every stored variant."""
        return [p for p in (self.ess_design_issue_path, self.third_party_design_path) if p]
