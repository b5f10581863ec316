"""Folder API: tree navigation, folder CRUD, document upload/download and search.

Single router under ``/api/folders``. Fixed-path routes (``/search``,
``/documents/...``) are declared before ``/{folder_id}`` so they are not
shadowed by it.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, UploadFile
from fastapi.responses import RedirectResponse

from ..core.auth import AuthContext, current_user
from ..exceptions import ValidationError
from ..schemas.document import (
    DocumentResponse,
    DocumentRevisionUpdate,
    DownloadLink,
    FileVariant,
    UploadedFile,
    UploadResult,
)
from ..schemas.folder import (
    BreadcrumbItem,
    FolderCreate,
    FolderRename,
    FullFolderResponse,
    LightFolderResponse,
    MessageResponse,
)
from ..schemas.search import SearchResult
from ..services.document_service import DocumentService
from ..services.folder_service import FolderService
from ..services.notification_service import UploadNotifier
from .deps import get_document_service, get_folder_service, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["folders"])


def _parse_variant(value: str) -> FileVariant:
    try:
        return FileVariant(value.lower())
    except ValueError:
        raise ValidationError(
            f"Invalid file type: {value}. Use 'ess' or 'thirdparty'", field="variant"
        ) from None


def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Read a multipart file fully. Browsers send an empty part for an unset file input."""
    if upload is None or not upload.filename:
        return None
    return UploadedFile(
        filename=upload.filename,
        content_type=upload.content_type or "application/pdf",
        data=upload.file.read(),
    )


def _split_emails(values: List[str]) -> List[str]:
    emails: List[str] = []
    for value in values:
        emails.extend(part.strip() for part in value.split(",") if part.strip())
    return emails


# -- Tree -----------------------------------------------------------------

@router.get("", response_model=List[LightFolderResponse])
def list_root_folders(
    service: FolderService = Depends(get_folder_service),
    auth: AuthContext = Depends(current_user),
):
    """Root-level folders, each with its immediate subfolders. No documents."""
    return service.list_root_folders()


# -- Search ---------------------------------------------------------------

@router.get("/search", response_model=List[SearchResult])
def search_folders(
    q: Optional[str] = Query(None),
    service: FolderService = Depends(get_folder_service),
    auth: AuthContext = Depends(current_user),
):
    """Folders whose name contains ``q`` (case-insensitive, at least 2 characters)."""
    return service.search(q)


# -- Documents ------------------------------------------------------------

@router.post("/documents", response_model=UploadResult, status_code=201)
def upload_document(
    background_tasks: BackgroundTasks,
    folder_id: str = Form(""),
    revision_number: str = Form(""),
    description: Optional[str] = Form(None),
    notify_emails: List[str] = Form([]),
    ess_design_issue: Optional[UploadFile] = File(None),
    third_party_design: Optional[UploadFile] = File(None),
    service: DocumentService = Depends(get_document_service),
    notifier: UploadNotifier = Depends(get_notifier),
    auth: AuthContext = Depends(current_user),
):
    """Upload a document revision with the ESS file, the third-party file, or both.

    Recipients in ``notify_emails`` are emailed after the response is sent,
    and only when every supplied file was stored.
    """
    document = service.upload_document(
        folder_id=folder_id,
        revision_number=revision_number,
        ess_file=_read_upload(ess_design_issue),
        third_party_file=_read_upload(third_party_design),
        description=description,
        owner_id=auth.user_id,
    )

    recipients = _split_emails(notify_emails)
    if recipients:
        notification = service.build_upload_notification(document, recipients, auth)
        background_tasks.add_task(notifier.send_upload_notification, notification)

    return UploadResult(id=document.id)


@router.put("/documents/{document_id}/files/{variant}", response_model=DocumentResponse)
def add_document_file(
    document_id: str,
    variant: str,
    file: UploadFile = File(...),
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(current_user),
):
    """Store or replace one file of an existing document."""
    uploaded = _read_upload(file)
    if uploaded is None:
        raise ValidationError("A file is required", field="file")
    return service.add_document_file(document_id, _parse_variant(variant), uploaded)


@router.put("/documents/{document_id}/revision", response_model=DocumentResponse)
def update_document_revision(
    document_id: str,
    data: DocumentRevisionUpdate,
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(current_user),
):
    return service.update_document_revision(document_id, data.new_revision_number)


@router.delete("/documents/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: str,
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(current_user),
):
    service.delete_document(document_id)
    return MessageResponse(message="Document deleted")


@router.get("/documents/{document_id}/download/{variant}", response_model=DownloadLink)
def download_document(
    document_id: str,
    variant: str,
    redirect: bool = Query(False),
    service: DocumentService = Depends(get_document_service),
    auth: AuthContext = Depends(current_user),
):
    """Short-lived URL for one file. ``redirect=true`` answers with a 307 to it instead."""
    link = service.get_download_url(document_id, _parse_variant(variant))
    if redirect:
        return RedirectResponse(link.url, status_code=307)
    return link


# -- Folders --------------------------------------------------------------

@router.post("", response_model=FullFolderResponse, status_code=201)
def create_folder(
    data: FolderCreate,
    service: FolderService = Depends(get_folder_service),
    auth: AuthContext = Depends(current_user),
):
    """Create a folder at the root, or under ``parent_folder_id``."""
    return service.create_folder(data, owner_id=auth.user_id)


@router.get("/{folder_id}", response_model=FullFolderResponse)
def get_folder(
    folder_id: str,
    service: FolderService = Depends(get_folder_service),
    auth: AuthContext = Depends(current_user),
):
    """Folder with its immediate subfolders and documents."""
    return service.get_folder(folder_id)


@router.get("/{folder_id}/children", response_model=LightFolderResponse)
def get_folder_children(
    folder_id: str,
    service: FolderService = Depends(get_folder_service),
    auth: AuthContext = Depends(current_user),
):
    return service.get_folder_children(folder_id)


@router.get("/{folder_id}/breadcrumbs", response_model=List[BreadcrumbItem])
def get_breadcrumbs(
    folder_id: str,
    service: FolderService = Depends(get_folder_service),
    auth: AuthContext = Depends(current_user),
):
    return service.get_breadcrumbs(folder_id)


@router.put("/{folder_id}/rename", response_model=FullFolderResponse)
def rename_folder(
    folder_id: str,
    data: FolderRename,
    service: FolderService = Depends(get_folder_service),
    auth: AuthContext = Depends(current_user),
):
    return service.rename_folder(folder_id, data.new_name)


@router.delete("/{folder_id}", response_model=MessageResponse)
def delete_folder(
    folder_id: str,
    service: FolderService = Depends(get_folder_service),
    auth: AuthContext = Depends(current_user),
):
    """Delete a folder together with its subfolders, documents and stored files."""
    service.delete_folder(folder_id)
    return MessageResponse(message="Folder deleted")
