"""
app/validators package marker.
"""

from app.validators.row_rules import (
    ALLOWED_PART_TYPES,
    BandCode,
    DifferentFrom,
    ExistsIn,
    NonNegative,
    NotGreaterThan,
    OneOf,
    ReferenceLookup,
    References,
    Required,
    RowRule,
    build_rule_set,
)
from app.validators.row_validator import ImportRowValidator

__all__ = [
    "ALLOWED_PART_TYPES",
    "BandCode",
    "DifferentFrom",
    "ExistsIn",
    "ImportRowValidator",
    "NonNegative",
    "NotGreaterThan",
    "OneOf",
    "ReferenceLookup",
    "References",
    "Required",
    "RowRule",
    "build_rule_set",
]
