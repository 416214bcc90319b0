"""
Import batch endpoints: submit, poll, list, export errors, abandon.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api.dependencies import get_delimited_upload, read_upload_bytes
from app.errors import BatchNotFoundError, BatchStateError, StructuralUploadError
from app.schemas.imports import (
    ImportBatchAcceptedResponse,
    ImportBatchListResponse,
    ImportBatchStatusResponse,
    ImportErrorPageResponse,
    ImportErrorResponse,
)
from app.services.import_pipeline_service import (
    FastAPIBackgroundTaskExecutor,
    ImportPipelineService,
    get_import_pipeline_service,
)
from db.models.import_batch import ImportBatch
from db.session import get_db

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post(
    "/{import_type}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportBatchAcceptedResponse,
)
def submit_import(
    import_type: str,
    background_tasks: BackgroundTasks,
    file: UploadFile = Depends(get_delimited_upload),
    content: bytes = Depends(read_upload_bytes),
    created_by: str | None = Query(default=None, description="Admin user submitting the file"),
    db: Session = Depends(get_db),
    pipeline: ImportPipelineService = Depends(get_import_pipeline_service),
) -> ImportBatchAcceptedResponse:
    try:
        batch = pipeline.submit_import(
            db=db,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            content=content,
            import_type=import_type,
            file_name=file.filename,
            created_by=created_by,
        )
    except StructuralUploadError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc

    return ImportBatchAcceptedResponse(
        batch_id=batch.id,
        import_type=batch.import_type,
        status=batch.status,
        total_rows=batch.total_rows,
        created_at=batch.created_at,
    )


@router.get("", response_model=ImportBatchListResponse)
def list_imports(
    import_type: str | None = Query(default=None, description="Optional import type filter"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max batches returned"),
    db: Session = Depends(get_db),
    pipeline: ImportPipelineService = Depends(get_import_pipeline_service),
) -> ImportBatchListResponse:
    batches = pipeline.list_batches(
        db=db,
        limit=limit,
        import_type=import_type,
        status=status_filter,
    )
    return ImportBatchListResponse(batches=[_to_status_response(batch) for batch in batches])


@router.get("/{batch_id}", response_model=ImportBatchStatusResponse)
def get_import(
    batch_id: UUID,
    page: int = Query(default=1, ge=1, description="Error page number"),
    page_size: int | None = Query(default=None, ge=1, description="Errors per page"),
    db: Session = Depends(get_db),
    pipeline: ImportPipelineService = Depends(get_import_pipeline_service),
) -> ImportBatchStatusResponse:
    try:
        batch = pipeline.get_batch(db=db, batch_id=batch_id)
        error_page = pipeline.list_errors(db=db, batch_id=batch_id, page=page, page_size=page_size)
    except BatchNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    response = _to_status_response(batch)
    response.errors = ImportErrorPageResponse(
        page=error_page.page,
        page_size=error_page.page_size,
        total=error_page.total,
        total_pages=error_page.total_pages,
        items=[
            ImportErrorResponse(row_number=error.row_number, message=error.message, raw_row=error.raw_row)
            for error in error_page.items
        ],
    )
    return response


@router.get("/{batch_id}/errors/export")
def export_import_errors(
    batch_id: UUID,
    db: Session = Depends(get_db),
    pipeline: ImportPipelineService = Depends(get_import_pipeline_service),
) -> StreamingResponse:
    try:
        lines = list(pipeline.export_errors_csv(db=db, batch_id=batch_id))
    except BatchNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return StreamingResponse(
        content=iter(lines),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="import_{batch_id}_errors.csv"',
            "X-Row-Count": str(len(lines) - 1),
        },
    )


@router.post("/{batch_id}/abandon", response_model=ImportBatchStatusResponse)
def abandon_import(
    batch_id: UUID,
    db: Session = Depends(get_db),
    pipeline: ImportPipelineService = Depends(get_import_pipeline_service),
) -> ImportBatchStatusResponse:
    try:
        batch = pipeline.abandon_batch(db=db, batch_id=batch_id)
    except BatchNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except BatchStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return _to_status_response(batch)


def _to_status_response(batch: ImportBatch) -> ImportBatchStatusResponse:
    return ImportBatchStatusResponse(
        batch_id=batch.id,
        import_type=batch.import_type,
        status=batch.status,
        file_name=batch.file_name,
        created_by=batch.created_by,
        total_rows=batch.total_rows,
        valid_rows=batch.valid_rows,
        invalid_rows=batch.invalid_rows,
        success_rate=batch.success_rate,
        created_at=batch.created_at,
        updated_at=batch.updated_at,
        commit_started_at=batch.commit_started_at,
        finished_at=batch.finished_at,
        error_message=batch.error_message,
        summary=batch.summary,
    )
