"""Design document operations: upload, variant replacement, revision, delete, download.

Every write invalidates the owning folder's cache entry after its commit.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.auth import AuthContext
from ..database import commit_or_raise
from ..exceptions import (
    BlobStorageError,
    DatabaseError,
    FileVariantNotFoundError,
    PartialUploadError,
    ValidationError,
)
from ..repositories.document_repository import DocumentRepository
from ..repositories.folder_repository import FolderRepository
from ..schemas.document import DocumentResponse, DownloadLink, FileVariant, UploadedFile
from .breadcrumbs import BreadcrumbResolver
from .notification_service import UploadNotification
from .storage import BlobStore, build_blob_path, safe_filename
from .tree_cache import TreeCache

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_TTL = 3600


def _path_attr(variant: FileVariant) -> str:
    return "ess_design_issue_path" if variant is FileVariant.ESS else "third_party_design_path"


def _name_attr(variant: FileVariant) -> str:
    return "ess_design_issue_name" if variant is FileVariant.ESS else "third_party_design_name"


class DocumentService:
    """Document writes and downloads.

    Public methods:
        upload_document           -- new document with one or both files
        add_document_file         -- store or replace one file of a document
        update_document_revision
        delete_document           -- row first, then its stored files
        get_download_url          -- short-lived URL for one file
        build_upload_notification -- email payload for a finished upload
    """

    def __init__(
        self,
        db: Session,
        cache: TreeCache,
        blob_store: BlobStore,
        signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ):
        self.db = db
        self.cache = cache
        self.blob_store = blob_store
        self.signed_url_ttl = signed_url_ttl
        self.doc_repo = DocumentRepository(db)
        self.folder_repo = FolderRepository(db)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload_document(
        self,
        folder_id: str,
        revision_number: Optional[str],
        ess_file: Optional[UploadedFile] = None,
        third_party_file: Optional[UploadedFile] = None,
        description: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> DocumentResponse:
        """Store the supplied files and create the document record.

        Both files are uploaded concurrently. If every upload fails no record
        is created and BlobStorageError is raised. If only one of two fails
        the record is created with the file that was stored, and
        PartialUploadError is raised after the commit.
        """
        if not folder_id:
            raise ValidationError("Folder ID required", field="folder_id")
        revision = (revision_number or "").strip()
        if not revision:
            raise ValidationError("Revision number required", field="revision_number")

        files: Dict[FileVariant, UploadedFile] = {}
        if ess_file is not None:
            files[FileVariant.ESS] = ess_file
        if third_party_file is not None:
            files[FileVariant.THIRD_PARTY] = third_party_file
        if not files:
            raise ValidationError("At least one file required", field="files")

        self.folder_repo.get_by_id(folder_id)
        document_id = DocumentRepository.new_id()

        stored, failed = self._store_files(folder_id, document_id, files)
        if not stored:
            raise BlobStorageError(f"Failed to upload files for document in folder {folder_id}")

        fields: Dict[str, Optional[str]] = {}
        for variant, path in stored.items():
            fields[_path_attr(variant)] = path
            fields[_name_attr(variant)] = safe_filename(files[variant].filename)

        document = self.doc_repo.create(
            document_id=document_id,
            folder_id=folder_id,
            revision_number=revision,
            description=(description or "").strip() or None,
            owner_id=owner_id,
            **fields,
        )
        response = DocumentResponse.model_validate(document)
        try:
            commit_or_raise(self.db, "create document")
        except DatabaseError:
            self._delete_blobs(list(stored.values()))
            raise
        self.cache.invalidate(folder_id)

        logger.info(
            "Uploaded document",
            extra={
                "document_id": document_id,
                "folder_id": folder_id,
                "revision_number": revision,
                "variants": [v.value for v in stored],
            },
        )

        if failed:
            raise PartialUploadError(document_id, [v.value for v in failed])
        return response

    def add_document_file(
        self, document_id: str, variant: FileVariant, file: UploadedFile
    ) -> DocumentResponse:
        """Store *file* as *variant* of an existing document, replacing any previous file."""
        document = self.doc_repo.get_by_id(document_id)
        folder_id = document.folder_id
        old_path = getattr(document, _path_attr(variant))

        path = build_blob_path(folder_id, document_id, variant.storage_prefix, file.filename)
        self.blob_store.upload(file.data, path, file.content_type)

        setattr(document, _path_attr(variant), path)
        setattr(document, _name_attr(variant), safe_filename(file.filename))
        self.doc_repo.touch(document)
        response = DocumentResponse.model_validate(document)
        commit_or_raise(self.db, "update document file")
        self.cache.invalidate(folder_id)

        if old_path and old_path != path:
            self._delete_blobs([old_path])

        logger.info(
            "Stored document file",
            extra={"document_id": document_id, "variant": variant.value},
        )
        return response

    # ------------------------------------------------------------------
    # Other writes
    # ------------------------------------------------------------------

    def update_document_revision(self, document_id: str, new_revision: str) -> DocumentResponse:
        revision = (new_revision or "").strip()
        if not revision:
            raise ValidationError("New revision number is required", field="new_revision_number")

        document = self.doc_repo.update_revision(document_id, revision)
        folder_id = document.folder_id
        response = DocumentResponse.model_validate(document)
        commit_or_raise(self.db, "update document revision")
        self.cache.invalidate(folder_id)
        return response

    def delete_document(self, document_id: str) -> None:
        document = self.doc_repo.get_by_id(document_id)
        folder_id = document.folder_id
        paths = document.file_paths()

        self.doc_repo.delete(document_id)
        commit_or_raise(self.db, "delete document")
        self.cache.invalidate(folder_id)

        logger.info("Deleted document", extra={"document_id": document_id, "folder_id": folder_id})
        self._delete_blobs(paths)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_download_url(self, document_id: str, variant: FileVariant) -> DownloadLink:
        document = self.doc_repo.get_by_id(document_id)
        path = getattr(document, _path_attr(variant))
        if not path:
            raise FileVariantNotFoundError(document_id, variant.value)

        url = self.blob_store.create_signed_url(path, self.signed_url_ttl)
        name = getattr(document, _name_attr(variant)) or path.rsplit("/", 1)[-1]
        return DownloadLink(url=url, file_name=name)

    def build_upload_notification(
        self,
        document: DocumentResponse,
        recipients: List[str],
        uploader: AuthContext,
    ) -> UploadNotification:
        """Collect the email fields while the request session is still open."""
        folder = self.folder_repo.get_by_id(document.folder_id)
        return UploadNotification(
            recipients=recipients,
            document_id=document.id,
            document_name=folder.name,
            revision_number=document.revision_number,
            uploader_name=uploader.display_name,
            uploaded_at=datetime.now(timezone.utc),
            has_ess_design=bool(document.ess_design_issue_path),
            has_third_party_design=bool(document.third_party_design_path),
            hierarchy=BreadcrumbResolver(self.db).hierarchy(document.folder_id),
            description=document.description,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _store_files(
        self,
        folder_id: str,
        document_id: str,
        files: Dict[FileVariant, UploadedFile],
    ):
        """Upload each file concurrently. Returns (stored paths by variant, failed variants)."""
        stored: Dict[FileVariant, str] = {}
        failed: List[FileVariant] = []

        with ThreadPoolExecutor(max_workers=len(files), thread_name_prefix="blob-upload") as pool:
            futures = {
                variant: pool.submit(
                    self.blob_store.upload,
                    upload.data,
                    build_blob_path(folder_id, document_id, variant.storage_prefix, upload.filename),
                    upload.content_type,
                )
                for variant, upload in files.items()
            }
            for variant, future in futures.items():
                try:
                    stored[variant] = future.result()
                except BlobStorageError as e:
                    logger.error(
                        "File upload failed",
                        extra={"document_id": document_id, "variant": variant.value, "error": e.message},
                    )
                    failed.append(variant)

        return stored, failed

    def _delete_blobs(self, paths: List[str]) -> None:
        for path in paths:
            try:
                self.blob_store.delete(path)
            except BlobStorageError as e:
                logger.warning("Could not delete stored file", extra={"path": path, "error": e.message})
