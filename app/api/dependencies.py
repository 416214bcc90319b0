"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import Depends, File, HTTPException, UploadFile, status

from app.config import ImportSettings, get_import_settings

UPLOAD_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "text/plain",
    "text/tab-separated-values",
}
UPLOAD_EXTENSIONS = (".csv", ".tsv", ".txt")


def get_delimited_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a delimited text file by extension or
    MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_delimited_filename = filename.endswith(UPLOAD_EXTENSIONS)
    is_delimited_content_type = content_type in UPLOAD_CONTENT_TYPES

    if not is_delimited_filename and not is_delimited_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV or other delimited text files are allowed.",
        )

    return file


def read_upload_bytes(
    file: UploadFile = Depends(get_delimited_upload),
    settings: ImportSettings = Depends(get_import_settings),
) -> bytes:
    """
    Read the upload, refusing anything over the configured size limit.
    """

    try:
        file.file.seek(0)
        content = file.file.read(settings.max_upload_bytes + 1)
    finally:
        file.file.close()

    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Uploaded file exceeds configured size limit.",
        )
    return content
