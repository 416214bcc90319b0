"""
app/mappers package marker.
"""

from app.mappers.column_mapper import (
    COLUMN_SETS,
    ColumnKind,
    ColumnMapper,
    ColumnMapping,
    ColumnSpec,
    MissingRequiredColumnsError,
)

__all__ = [
    "COLUMN_SETS",
    "ColumnKind",
    "ColumnMapper",
    "ColumnMapping",
    "ColumnSpec",
    "MissingRequiredColumnsError",
]
