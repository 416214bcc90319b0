"""
app/domain/imports.py

Domain models used by the import pipeline.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RowValidationError:
    """
    One staging row that failed validation. Recorded, never raised.
    """

    row_number: int
    messages: tuple[str, ...]
    raw_row: dict[str, Any] | None = None

    @property
    def message(self) -> str:
        return "; ".join(self.messages)


@dataclass(frozen=True)
class RowVerdict:
    """
    Validator output for one staging row.
    """

    is_valid: bool
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class StagingResult:
    """
    Outcome of staging one upload: the PROCESSING batch and its row count.
    """

    batch_id: uuid.UUID
    import_type: str
    total_rows: int


@dataclass(frozen=True)
class ValidationSummary:
    """
    Counters fixed once every staging row has a verdict.
    """

    total_rows: int
    valid_rows: int
    invalid_rows: int
    errors: list[RowValidationError] = field(default_factory=list)


@dataclass
class CommitSummary:
    """
    What one batch commit wrote to the live tables.
    """

    rows_committed: int = 0
    created: dict[str, int] = field(default_factory=dict)
    updated: dict[str, int] = field(default_factory=dict)

    def count_created(self, entity: str, amount: int = 1) -> None:
        self.created[entity] = self.created.get(entity, 0) + amount

    def count_updated(self, entity: str, amount: int = 1) -> None:
        self.updated[entity] = self.updated.get(entity, 0) + amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_committed": self.rows_committed,
            "created": dict(self.created),
            "updated": dict(self.updated),
        }


@dataclass(frozen=True)
class BatchOutcome:
    """
    Terminal state of one processed batch.
    """

    batch_id: uuid.UUID
    status: str
    total_rows: int
    valid_rows: int
    invalid_rows: int
    commit_succeeded: bool
    error_message: str | None = None


@dataclass(frozen=True)
class ErrorPage:
    """
    One page of a batch's error records, ordered by row number.
    """

    items: list[Any]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size
