"""
Orchestrator for import batches: staging, background validation and commit,
and the read side used by admin tooling.

Each background run uses its own session and three short transactions:

1. validate every staged row and fix the batch counters;
2. claim the batch and merge its valid rows (one transaction for the whole
   commit, so a failure leaves no partial data behind);
3. write the terminal status.
"""

from __future__ import annotations

import csv
import io
import logging
import uuid
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from app.config import ImportSettings, get_import_settings
from app.domain.imports import BatchOutcome, CommitSummary, ErrorPage, RowValidationError, ValidationSummary
from app.errors import BatchNotFoundError, BatchStateError, CommitConflictError
from app.logging_utils import log_event
from app.services.batch_state_machine import BatchStateMachine
from app.services.commit_engine import CommitEngine
from app.services.staging_loader import STAGING_MODELS, StagingLoader
from app.validators.row_rules import ReferenceLookup, build_rule_set
from app.validators.row_validator import ImportRowValidator
from db.models.import_batch import ImportBatch, ImportBatchStatus
from db.repositories.import_batch_repository import ImportBatchRepository

logger = logging.getLogger(__name__)

ERROR_EXPORT_FIELDS: tuple[str, ...] = ("rowNumber", "message")


class ImportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class ImportPipelineService:
    """
    Coordinates batch creation, background processing, and status queries.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | Callable[[], Session] | None = None,
        settings: ImportSettings | None = None,
        loader: StagingLoader | None = None,
        commit_engine: CommitEngine | None = None,
        state_machine: BatchStateMachine | None = None,
        reference_lookup: ReferenceLookup | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        self._settings = settings or get_import_settings()
        self._loader = loader or StagingLoader(max_upload_bytes=self._settings.max_upload_bytes)
        self._commit_engine = commit_engine or CommitEngine()
        self._state_machine = state_machine or BatchStateMachine()
        self._reference_lookup = reference_lookup or ReferenceLookup()

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def submit_import(
        self,
        *,
        db: Session,
        executor: ImportTaskExecutor,
        content: bytes,
        import_type: str,
        file_name: str | None = None,
        created_by: str | None = None,
    ) -> ImportBatch:
        """
        Stage ``content`` as a new PROCESSING batch and schedule its
        processing. StructuralUploadError propagates and nothing is stored.
        """

        repository = ImportBatchRepository(db)
        with db.begin():
            staged = self._loader.stage(
                db=db,
                content=content,
                import_type=import_type,
                file_name=file_name,
                created_by=created_by,
            )
            batch = repository.get_batch(staged.batch_id)

        try:
            executor.submit(self.process_batch, staged.batch_id)
        except Exception:
            with db.begin():
                batch = repository.get_batch(staged.batch_id, for_update=True)
                self._state_machine.fail(batch, error_message="Failed to schedule import batch processing.")
            raise

        return batch

    def process_batch(self, batch_id: uuid.UUID) -> BatchOutcome | None:
        """
        Validate, commit and finalize one batch. Runs in the background;
        failures end as a FAILED batch instead of propagating.
        """

        with self._session_factory() as db:
            try:
                return self._process(db, batch_id)
            except Exception as exc:
                self._mark_batch_failed(db=db, batch_id=batch_id, exc=exc)
                return None

    def abandon_batch(
        self,
        *,
        db: Session,
        batch_id: uuid.UUID,
        reason: str = "Abandoned before commit.",
    ) -> ImportBatch:
        """
        Fail a PROCESSING batch whose commit has not started.

        Raises BatchNotFoundError or BatchStateError.
        """

        repository = ImportBatchRepository(db)
        with db.begin():
            batch = repository.get_batch(batch_id, for_update=True)
            if batch is None:
                raise BatchNotFoundError(f"Import batch not found: {batch_id}")
            self._state_machine.abandon(batch, reason=reason)

        log_event(logger, logging.INFO, "import_batch.abandoned", batch_id=batch_id, reason=reason)
        return batch

    def abandon_stale_batches(self, *, now: datetime | None = None) -> list[uuid.UUID]:
        """
        Abandon batches stuck in PROCESSING without a commit start for longer
        than the configured threshold.
        """

        cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=self._settings.stale_batch_minutes)
        abandoned: list[uuid.UUID] = []
        with self._session_factory() as db:
            with db.begin():
                stale_ids = ImportBatchRepository(db).list_stale_batch_ids(older_than=cutoff)

            for batch_id in stale_ids:
                try:
                    self.abandon_batch(
                        db=db,
                        batch_id=batch_id,
                        reason=f"Abandoned after {self._settings.stale_batch_minutes} minutes without commit.",
                    )
                except (BatchNotFoundError, BatchStateError) as exc:
                    logger.info("Skipped stale batch id=%s reason=%s", batch_id, exc)
                    continue
                abandoned.append(batch_id)

        if abandoned:
            logger.warning("Abandoned %s stale import batches", len(abandoned))
        return abandoned

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_batch(self, *, db: Session, batch_id: uuid.UUID) -> ImportBatch:
        batch = ImportBatchRepository(db).get_batch(batch_id)
        if batch is None:
            raise BatchNotFoundError(f"Import batch not found: {batch_id}")
        return batch

    def list_batches(
        self,
        *,
        db: Session,
        limit: int = 100,
        import_type: str | None = None,
        status: str | None = None,
    ) -> list[ImportBatch]:
        return ImportBatchRepository(db).list_batches(
            limit=limit,
            import_type=import_type,
            status=status,
        )

    def list_errors(
        self,
        *,
        db: Session,
        batch_id: uuid.UUID,
        page: int = 1,
        page_size: int | None = None,
    ) -> ErrorPage:
        self.get_batch(db=db, batch_id=batch_id)
        repository = ImportBatchRepository(db)

        size = page_size or self._settings.error_page_size
        size = max(1, min(size, self._settings.max_error_page_size))
        page = max(1, page)
        items = repository.list_errors(batch_id=batch_id, offset=(page - 1) * size, limit=size)
        return ErrorPage(
            items=items,
            page=page,
            page_size=size,
            total=repository.count_errors(batch_id=batch_id),
        )

    def export_errors_csv(self, *, db: Session, batch_id: uuid.UUID) -> Iterator[str]:
        """
        Yield the batch's error records as CSV text, header first.
        """

        self.get_batch(db=db, batch_id=batch_id)
        errors = ImportBatchRepository(db).list_errors(batch_id=batch_id)

        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\r\n")
        writer.writerow(ERROR_EXPORT_FIELDS)
        yield buf.getvalue()

        for error in errors:
            buf.seek(0)
            buf.truncate(0)
            writer.writerow((error.row_number, error.message))
            yield buf.getvalue()

    # ------------------------------------------------------------------
    # Background processing
    # ------------------------------------------------------------------

    def _process(self, db: Session, batch_id: uuid.UUID) -> BatchOutcome | None:
        repository = ImportBatchRepository(db)

        with db.begin():
            batch = repository.get_batch(batch_id, for_update=True)
            if batch is None:
                raise BatchNotFoundError(f"Import batch not found: {batch_id}")
            if batch.status != ImportBatchStatus.PROCESSING:
                logger.info("Import batch id=%s already %s; nothing to process", batch_id, batch.status)
                return None

            validation = self.validate_batch(db, batch)
            self._state_machine.record_counts(
                batch,
                valid_rows=validation.valid_rows,
                invalid_rows=validation.invalid_rows,
            )
            repository.add_errors(batch_id=batch_id, errors=validation.errors)
            import_type = batch.import_type

        log_event(
            logger,
            logging.INFO,
            "import_batch.validated",
            batch_id=batch_id,
            import_type=import_type,
            total_rows=validation.total_rows,
            valid_rows=validation.valid_rows,
            invalid_rows=validation.invalid_rows,
        )

        commit_succeeded = True
        error_message: str | None = None
        if validation.valid_rows > 0:
            with db.begin():
                claimed = repository.claim_for_commit(batch_id=batch_id)
            if not claimed:
                logger.info("Import batch id=%s was abandoned before commit", batch_id)
                return None

            try:
                with db.begin():
                    batch = repository.get_batch(batch_id, for_update=True)
                    summary = self._commit_engine.commit(db, batch)
                    batch.summary = summary.to_dict()
            except CommitConflictError as exc:
                commit_succeeded = False
                error_message = str(exc)[:2000]
                log_event(
                    logger,
                    logging.ERROR,
                    "import_batch.commit_failed",
                    batch_id=batch_id,
                    row_number=exc.row_number,
                    error=error_message,
                )
            else:
                self._log_committed(batch_id, summary)

        with db.begin():
            batch = repository.get_batch(batch_id, for_update=True)
            if batch.status != ImportBatchStatus.PROCESSING:
                logger.info("Import batch id=%s was abandoned before finalize", batch_id)
                return None
            status = self._state_machine.finalize(
                batch,
                commit_succeeded=commit_succeeded,
                error_message=error_message,
            )
            outcome = BatchOutcome(
                batch_id=batch_id,
                status=status,
                total_rows=batch.total_rows,
                valid_rows=batch.valid_rows,
                invalid_rows=batch.invalid_rows,
                commit_succeeded=commit_succeeded,
                error_message=batch.error_message,
            )

        log_event(
            logger,
            logging.INFO,
            "import_batch.finalized",
            batch_id=batch_id,
            status=outcome.status,
            total_rows=outcome.total_rows,
            valid_rows=outcome.valid_rows,
            invalid_rows=outcome.invalid_rows,
        )
        return outcome

    def validate_batch(self, db: Session, batch: ImportBatch) -> ValidationSummary:
        """
        Give every staged row of ``batch`` its verdict. Must run inside the
        caller's transaction.
        """

        model = STAGING_MODELS[batch.import_type]
        rows = list(
            db.scalars(select(model).where(model.batch_id == batch.id).order_by(model.row_number)).all()
        )
        references = self._reference_lookup.fetch(db, import_type=batch.import_type, rows=rows)
        validator = ImportRowValidator(
            import_type=batch.import_type,
            rules=build_rule_set(batch.import_type, references),
        )

        errors: list[RowValidationError] = []
        for row in rows:
            verdict = validator.validate_staged_row(row)
            row.is_valid = verdict.is_valid
            row.validation_errors = list(verdict.errors)
            if verdict.is_valid:
                continue
            errors.append(RowValidationError(row_number=row.row_number, messages=verdict.errors, raw_row=row.raw_row))
            if self._settings.log_validation_errors:
                logger.warning(
                    "Import row rejected batch_id=%s row=%s errors=%s",
                    batch.id,
                    row.row_number,
                    "; ".join(verdict.errors),
                )
        db.flush()

        return ValidationSummary(
            total_rows=len(rows),
            valid_rows=len(rows) - len(errors),
            invalid_rows=len(errors),
            errors=errors,
        )

    def _log_committed(self, batch_id: uuid.UUID, summary: CommitSummary) -> None:
        log_event(
            logger,
            logging.INFO,
            "import_batch.committed",
            batch_id=batch_id,
            **summary.to_dict(),
        )

    def _mark_batch_failed(self, *, db: Session, batch_id: uuid.UUID, exc: Exception) -> None:
        repository = ImportBatchRepository(db)
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Import batch failed id=%s error=%s", batch_id, error_message)
        try:
            db.rollback()
            with db.begin():
                batch = repository.get_batch(batch_id, for_update=True)
                if batch is None:
                    logger.error("Unable to mark import batch as failed because it was not found id=%s", batch_id)
                    return
                if batch.status != ImportBatchStatus.PROCESSING:
                    return
                self._state_machine.fail(batch, error_message=error_message[:2000])
        except Exception:
            db.rollback()
            logger.exception("Failed to persist failed import batch state id=%s", batch_id)


@lru_cache(maxsize=1)
def get_import_pipeline_service() -> ImportPipelineService:
    return ImportPipelineService()
