"""
app/domain package marker.
"""

from app.domain.imports import (
    BatchOutcome,
    CommitSummary,
    ErrorPage,
    RowValidationError,
    RowVerdict,
    StagingResult,
    ValidationSummary,
)

__all__ = [
    "BatchOutcome",
    "CommitSummary",
    "ErrorPage",
    "RowValidationError",
    "RowVerdict",
    "StagingResult",
    "ValidationSummary",
]
