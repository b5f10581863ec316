"""Serves files from the local blob store through its signed URLs.

Only active when ``STORAGE_BACKEND=local``; with Supabase the signed URLs
point at Supabase directly and this route answers 404.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from ..services.storage import BlobStore, LocalBlobStore
from .deps import get_blob_store

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/{path:path}")
def get_stored_file(
    path: str,
    expires: int = Query(...),
    signature: str = Query(...),
    blob_store: BlobStore = Depends(get_blob_store),
):
    if not isinstance(blob_store, LocalBlobStore):
        raise HTTPException(status_code=404, detail="Not found")
    if not blob_store.verify(path, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired link")

    file_path = blob_store.open_path(path)
    if file_path is None:
        raise HTTPException(status_code=404, detail="File not found")

    # Inline so browsers open PDFs in the viewer instead of downloading.
    return FileResponse(
        file_path,
        media_type="application/pdf",
        filename=file_path.name,
        content_disposition_type="inline",
    )
