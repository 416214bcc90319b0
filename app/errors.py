"""
app/errors.py

Exception taxonomy shared by the import pipeline, band assignment manager and
pricing engine.

Row-level problems are never raised: they travel as data (staging row
verdicts, ImportErrorRecord rows, UnresolvedPrice entries). Only structural
upload failures and whole-transaction failures propagate to callers.
"""

from __future__ import annotations

from typing import Any


class DealerPortalError(Exception):
    """Base exception for the import and pricing core."""


class StructuralUploadError(DealerPortalError, ValueError):
    """
    Raised when an upload cannot be staged at all (unreadable, empty,
    wrong encoding, or missing required columns). No batch is created.
    """

    def __init__(self, message: str, *, missing_columns: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.missing_columns = list(missing_columns or [])

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "missing_columns": self.missing_columns}


class CommitConflictError(DealerPortalError, RuntimeError):
    """
    Raised when merging valid rows into the live catalog violates a
    constraint. The whole batch commit is rolled back.
    """

    def __init__(self, message: str, *, row_number: int | None = None) -> None:
        super().__init__(message)
        self.row_number = row_number


class InvariantViolationError(DealerPortalError, ValueError):
    """
    Raised when a dealer's band assignments would not be exactly one per
    part type. Nothing is written.
    """

    def __init__(self, message: str, *, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = list(problems or [message])


class UnresolvedPriceError(DealerPortalError, LookupError):
    """
    Raised only on request by callers that cannot proceed with unpriced
    products (e.g. checkout).
    """

    def __init__(self, product_ids: list[Any]) -> None:
        super().__init__(f"No price could be resolved for {len(product_ids)} product(s).")
        self.product_ids = list(product_ids)


class BatchNotFoundError(DealerPortalError, LookupError):
    """Raised when an import batch id does not exist."""


class DealerNotFoundError(DealerPortalError, LookupError):
    """Raised when a dealer account id does not exist."""


class BatchStateError(DealerPortalError, RuntimeError):
    """Raised on an illegal import batch status transition."""


class DuplicateDealerError(DealerPortalError, ValueError):
    """Raised when a dealer account number is already taken."""
