"""
Repository for import batch persistence, error records and status lookup.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from app.domain.imports import RowValidationError
from db.models.import_batch import ImportBatch, ImportBatchStatus, ImportErrorRecord


class ImportBatchRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_batch(self, batch_id: uuid.UUID, *, for_update: bool = False) -> ImportBatch | None:
        if not for_update:
            return self._session.get(ImportBatch, batch_id)
        return self._session.get(
            ImportBatch,
            batch_id,
            with_for_update=True,
            populate_existing=True,
        )

    def list_batches(
        self,
        *,
        limit: int = 100,
        import_type: str | None = None,
        status: str | None = None,
    ) -> list[ImportBatch]:
        stmt: Select[tuple[ImportBatch]] = select(ImportBatch)

        if import_type:
            stmt = stmt.where(ImportBatch.import_type == import_type)
        if status:
            stmt = stmt.where(ImportBatch.status == status)

        stmt = stmt.order_by(ImportBatch.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def add_errors(self, *, batch_id: uuid.UUID, errors: Iterable[RowValidationError]) -> int:
        records = [
            ImportErrorRecord(
                batch_id=batch_id,
                row_number=error.row_number,
                message=error.message,
                raw_row=error.raw_row,
            )
            for error in errors
        ]
        self._session.add_all(records)
        self._session.flush()
        return len(records)

    def list_errors(
        self,
        *,
        batch_id: uuid.UUID,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[ImportErrorRecord]:
        stmt = (
            select(ImportErrorRecord)
            .where(ImportErrorRecord.batch_id == batch_id)
            .order_by(ImportErrorRecord.row_number)
            .offset(max(0, offset))
        )
        if limit is not None:
            stmt = stmt.limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def count_errors(self, *, batch_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(ImportErrorRecord).where(ImportErrorRecord.batch_id == batch_id)
        return int(self._session.scalar(stmt) or 0)

    def claim_for_commit(self, *, batch_id: uuid.UUID) -> bool:
        """
        Mark the commit as started unless the batch already left PROCESSING.

        The conditional update is the single point where an abandon and a
        commit race; exactly one of them wins.
        """

        result = self._session.execute(
            update(ImportBatch)
            .where(
                ImportBatch.id == batch_id,
                ImportBatch.status == ImportBatchStatus.PROCESSING,
                ImportBatch.commit_started_at.is_(None),
            )
            .values(commit_started_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_stale_batch_ids(self, *, older_than: datetime) -> list[uuid.UUID]:
        stmt = (
            select(ImportBatch.id)
            .where(
                ImportBatch.status == ImportBatchStatus.PROCESSING,
                ImportBatch.commit_started_at.is_(None),
                ImportBatch.created_at < older_than,
            )
            .order_by(ImportBatch.created_at)
        )
        return list(self._session.scalars(stmt).all())
