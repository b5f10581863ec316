"""Design document schemas."""

from enum import Enum
from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional


class FileVariant(str, Enum):
    """The two file slots a document can carry. Values match the download URLs."""
    ESS = "ess"
    THIRD_PARTY = "thirdparty"

    @property
    def storage_prefix(self) -> str:
        return "ess" if self is FileVariant.ESS else "third_party"


class DocumentResponse(BaseModel):
    """A document as listed inside a folder."""
    id: str
    folder_id: str
    revision_number: str
    description: Optional[str] = None
    ess_design_issue_path: Optional[str] = None
    ess_design_issue_name: Optional[str] = None
    third_party_design_path: Optional[str] = None
    third_party_design_name: Optional[str] = None
    owner_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DocumentRevisionUpdate(BaseModel):
    """Change the revision label of a document."""
    new_revision_number: str

    @field_validator('new_revision_number')
    @classmethod
    def validate_revision(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("New revision number is required")
        return v


class UploadedFile(BaseModel):
    """A file received from the client, fully read into memory."""
    filename: str
    content_type: str = "application/pdf"
    data: bytes


class UploadResult(BaseModel):
    """Outcome of a document upload."""
    id: str
    message: str = "Document uploaded"


class DownloadLink(BaseModel):
    """Short-lived URL for one file of a document."""
    url: str
    file_name: str
