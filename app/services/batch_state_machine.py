"""
app/services/batch_state_machine.py

Lifecycle rules for ImportBatch.

    PROCESSING ──► SUCCEEDED
               ├─► SUCCEEDED_WITH_ERRORS
               └─► FAILED

Every terminal status is final. Row counters are fixed once, before the
terminal transition, and never revised.
"""

from __future__ import annotations

from datetime import datetime, timezone

from app.errors import BatchStateError
from db.models.import_batch import ImportBatch, ImportBatchStatus


def resolve_terminal_status(*, valid_rows: int, invalid_rows: int, commit_succeeded: bool) -> str:
    """
    Terminal status as a pure function of the fixed counters and the commit
    outcome.

    ============  ==============  ================  =======================
    valid_rows    invalid_rows    commit_succeeded  status
    ============  ==============  ================  =======================
    any           any             False             FAILED
    0             any             True              FAILED
    > 0           0               True              SUCCEEDED
    > 0           > 0             True              SUCCEEDED_WITH_ERRORS
    ============  ==============  ================  =======================
    """

    if valid_rows < 0 or invalid_rows < 0:
        raise ValueError("Row counters must not be negative.")
    if not commit_succeeded or valid_rows == 0:
        return ImportBatchStatus.FAILED
    if invalid_rows == 0:
        return ImportBatchStatus.SUCCEEDED
    return ImportBatchStatus.SUCCEEDED_WITH_ERRORS


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BatchStateMachine:
    """
    Guards every status and counter change made to a batch.
    """

    def record_counts(self, batch: ImportBatch, *, valid_rows: int, invalid_rows: int) -> None:
        self._require_processing(batch)
        if batch.valid_rows is not None or batch.invalid_rows is not None:
            raise BatchStateError(f"Row counters of batch {batch.id} are already fixed.")
        if valid_rows + invalid_rows != batch.total_rows:
            raise BatchStateError(
                f"Counters do not add up for batch {batch.id}: "
                f"{valid_rows} valid + {invalid_rows} invalid != {batch.total_rows} total."
            )
        batch.valid_rows = valid_rows
        batch.invalid_rows = invalid_rows

    def finalize(
        self,
        batch: ImportBatch,
        *,
        commit_succeeded: bool,
        error_message: str | None = None,
    ) -> str:
        self._require_processing(batch)
        if batch.valid_rows is None or batch.invalid_rows is None:
            raise BatchStateError(f"Batch {batch.id} cannot finish before its counters are fixed.")

        batch.status = resolve_terminal_status(
            valid_rows=batch.valid_rows,
            invalid_rows=batch.invalid_rows,
            commit_succeeded=commit_succeeded,
        )
        if batch.status == ImportBatchStatus.FAILED and error_message is None and batch.valid_rows == 0:
            error_message = "No valid rows to commit."
        batch.error_message = error_message
        batch.finished_at = _utcnow()
        return batch.status

    def abandon(self, batch: ImportBatch, *, reason: str) -> None:
        """
        Cancel a batch before its commit has started.
        """

        self._require_processing(batch)
        if batch.commit_started_at is not None:
            raise BatchStateError(f"Batch {batch.id} is already committing and cannot be abandoned.")
        self._fail(batch, reason)

    def fail(self, batch: ImportBatch, *, error_message: str) -> None:
        """
        Close a batch whose processing broke before a normal finalize.
        """

        self._require_processing(batch)
        self._fail(batch, error_message)

    @staticmethod
    def _fail(batch: ImportBatch, error_message: str) -> None:
        batch.status = ImportBatchStatus.FAILED
        batch.error_message = error_message
        batch.finished_at = _utcnow()

    @staticmethod
    def _require_processing(batch: ImportBatch) -> None:
        if batch.status != ImportBatchStatus.PROCESSING:
            raise BatchStateError(f"Batch {batch.id} is already {batch.status}.")
