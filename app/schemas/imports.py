"""
Schemas for import batch submission, status and error endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ImportBatchAcceptedResponse(BaseModel):
    batch_id: UUID
    import_type: str
    status: str
    total_rows: int
    created_at: datetime


class ImportErrorResponse(BaseModel):
    row_number: int
    message: str
    raw_row: dict[str, Any] | None = None


class ImportErrorPageResponse(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    items: list[ImportErrorResponse] = Field(default_factory=list)


class ImportBatchStatusResponse(BaseModel):
    batch_id: UUID
    import_type: str
    status: str
    file_name: str | None = None
    created_by: str | None = None
    total_rows: int
    valid_rows: int | None = None
    invalid_rows: int | None = None
    success_rate: float
    created_at: datetime
    updated_at: datetime
    commit_started_at: datetime | None = None
    finished_at: datetime | None = None
    error_message: str | None = None
    summary: dict[str, Any] | None = None
    errors: ImportErrorPageResponse | None = None


class ImportBatchListResponse(BaseModel):
    batches: list[ImportBatchStatusResponse] = Field(default_factory=list)


class StructuralUploadErrorResponse(BaseModel):
    message: str
    missing_columns: list[str] = Field(default_factory=list)
