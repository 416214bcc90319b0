"""
app/mappers/column_mapper.py

Column sets per import type and header resolution against them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from db.models.import_batch import ImportType


class ColumnKind:
    TEXT = "text"
    CODE = "code"  # stripped, upper-cased identifiers (product codes, order numbers)
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class ColumnSpec:
    """
    One recognised upload column.

    ``field`` is the staging-row attribute; ``header`` is the documented
    upload header and the name used in validation messages.
    """

    field: str
    header: str
    kind: str = ColumnKind.TEXT
    required: bool = False
    aliases: tuple[str, ...] = ()


_PRODUCT_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("product_code", "productCode", ColumnKind.CODE, True, ("code", "partNumber", "partNo", "sku")),
    ColumnSpec("description", "description", ColumnKind.TEXT, False, ("productDescription", "desc")),
    ColumnSpec("part_type", "partType", ColumnKind.CODE, True, ("type",)),
    ColumnSpec("free_stock", "freeStock", ColumnKind.INTEGER, True, ("stock", "qty", "quantity")),
    ColumnSpec("price", "price", ColumnKind.DECIMAL, True, ("unitPrice",)),
    ColumnSpec("band_level", "bandLevel", ColumnKind.TEXT, False, ("band", "bandCode")),
    ColumnSpec("band_1", "band1", ColumnKind.DECIMAL, False, ("band1Price",)),
    ColumnSpec("band_2", "band2", ColumnKind.DECIMAL, False, ("band2Price",)),
    ColumnSpec("band_3", "band3", ColumnKind.DECIMAL, False, ("band3Price",)),
    ColumnSpec("band_4", "band4", ColumnKind.DECIMAL, False, ("band4Price",)),
    ColumnSpec("cost_price", "costPrice", ColumnKind.DECIMAL, False, ("cost",)),
    ColumnSpec("retail_price", "retailPrice", ColumnKind.DECIMAL, False, ("retail", "rrp")),
    ColumnSpec("trade_price", "tradePrice", ColumnKind.DECIMAL, False, ("trade",)),
    ColumnSpec("is_active", "isActive", ColumnKind.BOOLEAN, False, ("active",)),
)

COLUMN_SETS: dict[str, tuple[ColumnSpec, ...]] = {
    ImportType.GENUINE_PRODUCTS: _PRODUCT_COLUMNS,
    ImportType.AFTERMARKET_PRODUCTS: _PRODUCT_COLUMNS,
    ImportType.BACKORDERS: (
        ColumnSpec("account_number", "accountNumber", ColumnKind.CODE, True, ("accountNo", "account")),
        ColumnSpec("order_number", "orderNumber", ColumnKind.CODE, False, ("orderNo", "portalOrderNumber")),
        ColumnSpec("product_code", "productCode", ColumnKind.CODE, True, ("partNumber", "partNo", "code")),
        ColumnSpec("description", "description", ColumnKind.TEXT, False, ("desc",)),
        ColumnSpec("quantity_ordered", "quantityOrdered", ColumnKind.INTEGER, True, ("qtyOrdered", "ordered")),
        ColumnSpec(
            "quantity_outstanding",
            "quantityOutstanding",
            ColumnKind.INTEGER,
            True,
            ("qtyOutstanding", "outstanding"),
        ),
    ),
    ImportType.SUPERSESSION: (
        ColumnSpec("product_code", "productCode", ColumnKind.CODE, True, ("oldPartNumber", "fromPartNo", "code")),
        ColumnSpec("superseded_by", "supersededBy", ColumnKind.CODE, True, ("newPartNumber", "toPartNo", "replacement")),
    ),
    ImportType.FULFILLMENT_STATUS: (
        ColumnSpec("order_number", "orderNumber", ColumnKind.CODE, True, ("orderNo",)),
        ColumnSpec("status", "status", ColumnKind.CODE, True, ("orderStatus", "fulfillmentStatus")),
        ColumnSpec("tracking_number", "trackingNumber", ColumnKind.TEXT, False, ("tracking", "trackingNo")),
    ),
}


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


class MissingRequiredColumnsError(ValueError):
    """
    Raised when required columns cannot be found among the upload headers.
    """

    def __init__(self, missing: Sequence[str], headers: Sequence[str]) -> None:
        missing_csv = ", ".join(missing)
        headers_csv = ", ".join(headers) if headers else "<none>"
        message = f"Missing required columns: {missing_csv}. File headers: {headers_csv}"
        super().__init__(message)
        self.missing = tuple(missing)
        self.headers = tuple(headers)


@dataclass(frozen=True)
class ColumnMapping:
    """
    Resolved mapping between staging fields and source headers.
    Unknown source headers are simply absent from the mapping.
    """

    import_type: str
    columns: tuple[ColumnSpec, ...]
    field_to_source: dict[str, str]
    source_headers: tuple[str, ...]


class ColumnMapper:
    """
    Maps incoming upload columns to the fixed column set of one import type.
    """

    def __init__(self, column_sets: Mapping[str, Sequence[ColumnSpec]] | None = None) -> None:
        sets = column_sets or COLUMN_SETS
        self._column_sets: dict[str, tuple[ColumnSpec, ...]] = {
            import_type: tuple(columns) for import_type, columns in sets.items()
        }

    def columns_for(self, import_type: str) -> tuple[ColumnSpec, ...]:
        try:
            return self._column_sets[import_type]
        except KeyError:
            raise KeyError(f"Unknown import type: {import_type}") from None

    def build_mapping(self, import_type: str, headers: Sequence[str]) -> ColumnMapping:
        """
        Resolve every known column of ``import_type`` to a source header.
        """

        columns = self.columns_for(import_type)

        normalized_header_lookup: dict[str, str] = {}
        for header in headers:
            normalized = normalize_header(header)
            if normalized and normalized not in normalized_header_lookup:
                normalized_header_lookup[normalized] = header

        mapping: dict[str, str] = {}
        for column in columns:
            for candidate in (column.header, column.field, *column.aliases):
                match = normalized_header_lookup.get(normalize_header(candidate))
                if match:
                    mapping[column.field] = match
                    break

        missing = [column.header for column in columns if column.required and column.field not in mapping]
        if missing:
            raise MissingRequiredColumnsError(missing=missing, headers=headers)

        return ColumnMapping(
            import_type=import_type,
            columns=columns,
            field_to_source=mapping,
            source_headers=tuple(headers),
        )

    def map_row(
        self,
        *,
        raw_row: Mapping[str, str | None],
        mapping: ColumnMapping,
    ) -> dict[str, str | None]:
        """
        Convert one source row into raw strings keyed by staging field.
        """

        return {
            field: raw_row.get(source_column)
            for field, source_column in mapping.field_to_source.items()
        }
