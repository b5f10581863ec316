"""Custom exception hierarchy for the ESS Design backend."""

from enum import Enum
from typing import Optional, Dict, Any, List


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Folder errors
    FOLDER_NOT_FOUND = "FOLDER_NOT_FOUND"

    # Document errors
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"

    # Upload / storage errors
    STORAGE_ERROR = "STORAGE_ERROR"
    PARTIAL_UPLOAD = "PARTIAL_UPLOAD"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class EssException(Exception):
    """
    Base exception for all ESS Design errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class FolderNotFoundError(EssException):
    """Folder id does not resolve."""

    def __init__(self, folder_id: str):
        super().__init__(
            f"Folder not found: {folder_id}",
            ErrorCode.FOLDER_NOT_FOUND,
            status_code=404,
            details={"folder_id": folder_id}
        )


class DocumentNotFoundError(EssException):
    """Document id does not resolve."""

    def __init__(self, document_id: str):
        super().__init__(
            f"Document not found: {document_id}",
            ErrorCode.DOCUMENT_NOT_FOUND,
            status_code=404,
            details={"document_id": document_id}
        )


class FileVariantNotFoundError(EssException):
    """The document exists but carries no file for the requested variant."""

    def __init__(self, document_id: str, variant: str):
        super().__init__(
            f"File type {variant} not found for document {document_id}",
            ErrorCode.FILE_NOT_FOUND,
            status_code=404,
            details={"document_id": document_id, "variant": variant}
        )


class ValidationError(EssException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class BlobStorageError(EssException):
    """The blob store rejected an upload, delete or signing request."""

    def __init__(self, message: str, path: Optional[str] = None, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {}
        if path:
            details["path"] = path
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(
            message,
            ErrorCode.STORAGE_ERROR,
            status_code=502,
            details=details
        )


class PartialUploadError(EssException):
    """One file variant was stored, the other failed.

    The document record exists and references only the stored variant.
    Nothing is rolled back; the caller may re-upload the missing variant.
    """

    def __init__(self, document_id: str, failed_variants: List[str]):
        super().__init__(
            f"Document {document_id} was created but these files failed to upload: "
            + ", ".join(failed_variants),
            ErrorCode.PARTIAL_UPLOAD,
            status_code=502,
            details={"document_id": document_id, "failed_variants": failed_variants}
        )
        self.document_id = document_id
        self.failed_variants = failed_variants


class AuthenticationError(EssException):
    """Request lacks valid authentication credentials."""

    def __init__(self, message: str = "Invalid or missing authentication token"):
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class DatabaseError(EssException):
    """Database operation failed."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.DATABASE_ERROR,
            status_code=500,
            details=details
        )
