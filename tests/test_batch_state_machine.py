"""
tests/test_batch_state_machine.py

Pytest unit tests for the import batch lifecycle.

The batches here are transient ORM objects; nothing is persisted.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.errors import BatchStateError
from app.services.batch_state_machine import BatchStateMachine, resolve_terminal_status
from db.models.import_batch import ImportBatch, ImportBatchStatus, ImportType


def _batch(total_rows: int = 3) -> ImportBatch:
    return ImportBatch(
        import_type=ImportType.GENUINE_PRODUCTS,
        status=ImportBatchStatus.PROCESSING,
        total_rows=total_rows,
    )


@pytest.fixture()
def machine() -> BatchStateMachine:
    return BatchStateMachine()


@pytest.mark.parametrize(
    ("valid_rows", "invalid_rows", "commit_succeeded", "expected"),
    [
        (3, 0, True, ImportBatchStatus.SUCCEEDED),
        (1, 2, True, ImportBatchStatus.SUCCEEDED_WITH_ERRORS),
        (0, 3, True, ImportBatchStatus.FAILED),
        (0, 0, True, ImportBatchStatus.FAILED),
        (3, 0, False, ImportBatchStatus.FAILED),
        (1, 2, False, ImportBatchStatus.FAILED),
    ],
)
def test_resolve_terminal_status(valid_rows: int, invalid_rows: int, commit_succeeded: bool, expected: str) -> None:
    assert (
        resolve_terminal_status(
            valid_rows=valid_rows,
            invalid_rows=invalid_rows,
            commit_succeeded=commit_succeeded,
        )
        == expected
    )


def test_resolve_terminal_status_rejects_negative_counts() -> None:
    with pytest.raises(ValueError):
        resolve_terminal_status(valid_rows=-1, invalid_rows=0, commit_succeeded=True)


class TestRecordCounts:
    def test_counts_must_add_up(self, machine: BatchStateMachine) -> None:
        batch = _batch(total_rows=3)
        with pytest.raises(BatchStateError, match="do not add up"):
            machine.record_counts(batch, valid_rows=1, invalid_rows=1)

    def test_counts_are_fixed_once(self, machine: BatchStateMachine) -> None:
        batch = _batch(total_rows=3)
        machine.record_counts(batch, valid_rows=1, invalid_rows=2)

        with pytest.raises(BatchStateError, match="already fixed"):
            machine.record_counts(batch, valid_rows=3, invalid_rows=0)
        assert (batch.valid_rows, batch.invalid_rows) == (1, 2)


class TestFinalize:
    def test_requires_counts(self, machine: BatchStateMachine) -> None:
        with pytest.raises(BatchStateError):
            machine.finalize(_batch(), commit_succeeded=True)

    def test_succeeded_with_errors(self, machine: BatchStateMachine) -> None:
        batch = _batch(total_rows=3)
        machine.record_counts(batch, valid_rows=1, invalid_rows=2)

        status = machine.finalize(batch, commit_succeeded=True)

        assert status == ImportBatchStatus.SUCCEEDED_WITH_ERRORS
        assert batch.status == status
        assert batch.finished_at is not None
        assert batch.error_message is None

    def test_zero_valid_rows_explains_failure(self, machine: BatchStateMachine) -> None:
        batch = _batch(total_rows=2)
        machine.record_counts(batch, valid_rows=0, invalid_rows=2)

        assert machine.finalize(batch, commit_succeeded=True) == ImportBatchStatus.FAILED
        assert batch.error_message == "No valid rows to commit."

    def test_commit_failure_keeps_counters(self, machine: BatchStateMachine) -> None:
        batch = _batch(total_rows=100)
        machine.record_counts(batch, valid_rows=100, invalid_rows=0)

        machine.finalize(batch, commit_succeeded=False, error_message="Row 37: IntegrityError")

        assert batch.status == ImportBatchStatus.FAILED
        assert batch.valid_rows == 100
        assert batch.error_message == "Row 37: IntegrityError"

    def test_terminal_status_is_final(self, machine: BatchStateMachine) -> None:
        batch = _batch(total_rows=1)
        machine.record_counts(batch, valid_rows=1, invalid_rows=0)
        machine.finalize(batch, commit_succeeded=True)

        with pytest.raises(BatchStateError, match="already SUCCEEDED"):
            machine.finalize(batch, commit_succeeded=False)
        with pytest.raises(BatchStateError):
            machine.fail(batch, error_message="late failure")


class TestAbandon:
    def test_abandon_before_commit(self, machine: BatchStateMachine) -> None:
        batch = _batch()
        machine.abandon(batch, reason="Cancelled by admin.")

        assert batch.status == ImportBatchStatus.FAILED
        assert batch.error_message == "Cancelled by admin."

    def test_cannot_abandon_once_commit_started(self, machine: BatchStateMachine) -> None:
        batch = _batch()
        batch.commit_started_at = datetime.now(timezone.utc)

        with pytest.raises(BatchStateError, match="already committing"):
            machine.abandon(batch, reason="too late")
        assert batch.status == ImportBatchStatus.PROCESSING
