"""
app/validators/row_validator.py

Applies a rule set to staged rows and produces one verdict per row.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from app.domain.imports import RowVerdict
from app.mappers.column_mapper import ColumnMapper
from app.validators.row_rules import RowRule


class ImportRowValidator:
    """
    Validates staged rows of one import type.

    Every message is collected: parse errors first, in column order, then
    each rule in declaration order. Rules on a column whose cell failed to
    parse are skipped, since the parse error already explains it.
    """

    def __init__(self, *, import_type: str, rules: Sequence[RowRule], mapper: ColumnMapper | None = None) -> None:
        self._rules = tuple(rules)
        self._fields = tuple(column.field for column in (mapper or ColumnMapper()).columns_for(import_type))

    def values_of(self, staged_row: Any) -> dict[str, Any]:
        return {field_name: getattr(staged_row, field_name, None) for field_name in self._fields}

    def validate(
        self,
        *,
        values: Mapping[str, Any],
        parse_errors: Sequence[Mapping[str, str]] = (),
    ) -> RowVerdict:
        errors: list[str] = [entry["message"] for entry in parse_errors]
        unparsed_columns = {entry.get("column") for entry in parse_errors}

        for rule in self._rules:
            if rule.column in unparsed_columns:
                continue
            errors.extend(rule.check(values))

        return RowVerdict(is_valid=not errors, errors=tuple(errors))

    def validate_staged_row(self, staged_row: Any) -> RowVerdict:
        return self.validate(
            values=self.values_of(staged_row),
            parse_errors=staged_row.parse_errors or (),
        )
