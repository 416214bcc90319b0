"""
app/services/staging_loader.py

Parses an uploaded delimited file into typed staging rows.

Structural problems (empty or undecodable content, malformed CSV, missing
required columns, oversize uploads, a header with no data rows) raise
StructuralUploadError before any row is written. Individual malformed cells
never raise: the typed column is left NULL and the problem is kept in the
row's ``parse_errors`` so the validator can report it. Numbers that do not
fit their staging column are malformed cells too.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

from sqlalchemy.orm import Session

from app.domain.imports import StagingResult
from app.errors import StructuralUploadError
from app.logging_utils import log_event
from app.mappers.column_mapper import ColumnKind, ColumnMapper, ColumnMapping, ColumnSpec, MissingRequiredColumnsError
from db.models.import_batch import ImportBatch, ImportBatchStatus, ImportType
from db.models.staging import (
    StagingBackorderRow,
    StagingFulfillmentRow,
    StagingProductRow,
    StagingSupersessionRow,
)

logger = logging.getLogger(__name__)

STAGING_MODELS: dict[str, type] = {
    ImportType.GENUINE_PRODUCTS: StagingProductRow,
    ImportType.AFTERMARKET_PRODUCTS: StagingProductRow,
    ImportType.BACKORDERS: StagingBackorderRow,
    ImportType.SUPERSESSION: StagingSupersessionRow,
    ImportType.FULFILLMENT_STATUS: StagingFulfillmentRow,
}

_CANDIDATE_DELIMITERS = ",;\t|"
_CURRENCY_PREFIXES = ("£", "$", "€")
_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "active"})
_FALSE_VALUES = frozenset({"0", "false", "no", "n", "inactive"})
_CENT = Decimal("0.01")
# Bounds of the Integer and Money (NUMERIC(12, 2)) staging columns.
_MAX_INTEGER = 2**31 - 1
_MAX_MONEY = Decimal("9999999999.99")


@dataclass
class ParsedRow:
    """
    One data line after header mapping and type parsing.
    """

    row_number: int
    raw_row: dict[str, Any]
    values: dict[str, Any]
    parse_errors: list[dict[str, str]] = field(default_factory=list)


class StagingLoader:
    """
    Turns raw upload bytes into a PROCESSING ImportBatch plus staged rows.
    """

    def __init__(
        self,
        *,
        max_upload_bytes: int,
        mapper: ColumnMapper | None = None,
    ) -> None:
        self._max_upload_bytes = max(1, max_upload_bytes)
        self._mapper = mapper or ColumnMapper()

    def stage(
        self,
        *,
        db: Session,
        content: bytes,
        import_type: str,
        file_name: str | None = None,
        created_by: str | None = None,
    ) -> StagingResult:
        """
        Parse ``content`` and persist the batch and its rows.

        The caller owns the transaction; nothing is added to the session when
        parsing raises.
        """

        parsed_rows = self.parse(content=content, import_type=import_type)

        batch = ImportBatch(
            import_type=import_type,
            status=ImportBatchStatus.PROCESSING,
            file_name=file_name,
            created_by=created_by,
            total_rows=len(parsed_rows),
        )
        db.add(batch)
        db.flush()
        db.refresh(batch)

        model = STAGING_MODELS[import_type]
        db.add_all(
            [
                model(
                    batch_id=batch.id,
                    row_number=row.row_number,
                    raw_row=row.raw_row,
                    parse_errors=list(row.parse_errors),
                    validation_errors=[],
                    **row.values,
                )
                for row in parsed_rows
            ]
        )
        db.flush()

        log_event(
            logger,
            logging.INFO,
            "import_batch.staged",
            batch_id=batch.id,
            import_type=import_type,
            file_name=file_name,
            total_rows=len(parsed_rows),
        )
        return StagingResult(batch_id=batch.id, import_type=import_type, total_rows=len(parsed_rows))

    def parse(self, *, content: bytes, import_type: str) -> list[ParsedRow]:
        """
        Parse ``content`` without touching the database.
        """

        if import_type not in STAGING_MODELS:
            allowed = ", ".join(ImportType.ALL)
            raise StructuralUploadError(f"Unsupported import type '{import_type}'. Allowed: {allowed}.")
        if not content:
            raise StructuralUploadError("Uploaded file is empty.")
        if len(content) > self._max_upload_bytes:
            raise StructuralUploadError("Uploaded file exceeds configured size limit.")

        text = self._decode(content)
        if not text.strip():
            raise StructuralUploadError("Uploaded file is empty.")

        try:
            reader = csv.DictReader(io.StringIO(text), delimiter=self._sniff_delimiter(text))
            headers = [header.strip() for header in (reader.fieldnames or []) if header is not None]
            if not any(headers):
                raise StructuralUploadError("File header row is missing.")
            reader.fieldnames = headers

            try:
                mapping = self._mapper.build_mapping(import_type, headers)
            except MissingRequiredColumnsError as exc:
                raise StructuralUploadError(str(exc), missing_columns=list(exc.missing)) from exc

            rows: list[ParsedRow] = []
            for raw_row in reader:
                cleaned = {
                    key: value
                    for key, value in raw_row.items()
                    if key is not None and key != ""
                }
                if all(self._is_blank(value) for value in cleaned.values()):
                    continue
                rows.append(self._parse_row(len(rows) + 1, cleaned, mapping))
        except csv.Error as exc:
            raise StructuralUploadError(f"Invalid CSV format: {exc}") from exc

        if not rows:
            raise StructuralUploadError("Uploaded file contains no data rows.")
        return rows

    # ------------------------------------------------------------------
    # Parsing internals
    # ------------------------------------------------------------------

    def _parse_row(
        self,
        row_number: int,
        raw_row: Mapping[str, str | None],
        mapping: ColumnMapping,
    ) -> ParsedRow:
        mapped = self._mapper.map_row(raw_row=raw_row, mapping=mapping)
        parsed = ParsedRow(row_number=row_number, raw_row=dict(raw_row), values={})

        for column in mapping.columns:
            value, error = self._parse_value(column, mapped.get(column.field))
            parsed.values[column.field] = value
            if error:
                parsed.parse_errors.append({"column": column.header, "message": error})

        return parsed

    def _parse_value(self, column: ColumnSpec, raw: str | None) -> tuple[Any, str | None]:
        if self._is_blank(raw):
            return None, None
        text = str(raw).strip()

        if column.kind == ColumnKind.TEXT:
            return text, None
        if column.kind == ColumnKind.CODE:
            return text.upper(), None
        if column.kind == ColumnKind.INTEGER:
            return self._parse_integer(column, text)
        if column.kind == ColumnKind.DECIMAL:
            return self._parse_decimal(column, text)
        if column.kind == ColumnKind.BOOLEAN:
            lowered = text.lower()
            if lowered in _TRUE_VALUES:
                return True, None
            if lowered in _FALSE_VALUES:
                return False, None
            return None, f"{column.header} must be true or false (got {text!r})."
        raise ValueError(f"Unknown column kind: {column.kind}")

    def _parse_integer(self, column: ColumnSpec, text: str) -> tuple[int | None, str | None]:
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None, f"{column.header} must be a whole number (got {text!r})."
        if not number.is_finite() or number != number.to_integral_value():
            return None, f"{column.header} must be a whole number (got {text!r})."
        if abs(number) > _MAX_INTEGER:
            return None, f"{column.header} is out of range (got {text!r})."
        return int(number), None

    def _parse_decimal(self, column: ColumnSpec, text: str) -> tuple[Decimal | None, str | None]:
        cleaned = text
        for prefix in _CURRENCY_PREFIXES:
            if cleaned.startswith(prefix):
                cleaned = cleaned[len(prefix):].strip()
                break
        try:
            number = Decimal(cleaned)
            if not number.is_finite():
                raise InvalidOperation
            number = number.quantize(_CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return None, f"{column.header} must be a number (got {text!r})."
        if abs(number) > _MAX_MONEY:
            return None, f"{column.header} is out of range (got {text!r})."
        return number, None

    @staticmethod
    def _decode(content: bytes) -> str:
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise StructuralUploadError("File must be UTF-8 encoded.") from exc

    @staticmethod
    def _sniff_delimiter(text: str) -> str:
        header_line = text.splitlines()[0] if text else ""
        try:
            return csv.Sniffer().sniff(header_line, delimiters=_CANDIDATE_DELIMITERS).delimiter
        except csv.Error:
            return ","

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, (list, tuple)):
            return all(str(item).strip() == "" for item in value)
        return str(value).strip() == ""
