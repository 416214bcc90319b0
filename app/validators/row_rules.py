"""
app/validators/row_rules.py

Composable business rules applied to staged rows, plus the rule set for each
import type.

Every rule reads the typed values of one row (keyed by staging field) and
returns zero or more human-readable messages. Rules other than ``Required``
ignore missing values so an absent optional column never produces noise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.import_batch import ImportType
from db.models.order import OrderHeader, OrderStatus
from db.models.product import BAND_CODES, PartType, Product

ALLOWED_PART_TYPES: dict[str, tuple[str, ...]] = {
    ImportType.GENUINE_PRODUCTS: (PartType.GENUINE, PartType.BRANDED),
    ImportType.AFTERMARKET_PRODUCTS: (PartType.AFTERMARKET, PartType.BRANDED),
}


class RowRule(Protocol):
    column: str

    def check(self, values: Mapping[str, Any]) -> list[str]:
        ...


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class Required:
    field: str
    column: str

    def check(self, values: Mapping[str, Any]) -> list[str]:
        if _is_missing(values.get(self.field)):
            return [f"{self.column} is required."]
        return []


@dataclass(frozen=True)
class OneOf:
    """Case-insensitive membership in a fixed set of codes."""

    field: str
    column: str
    allowed: tuple[str, ...]

    def check(self, values: Mapping[str, Any]) -> list[str]:
        value = values.get(self.field)
        if _is_missing(value):
            return []
        if str(value).strip().upper() not in {item.upper() for item in self.allowed}:
            allowed = ", ".join(self.allowed)
            return [f"{self.column} must be one of {allowed} (got {value!r})."]
        return []


@dataclass(frozen=True)
class NonNegative:
    field: str
    column: str

    def check(self, values: Mapping[str, Any]) -> list[str]:
        value = values.get(self.field)
        if value is None:
            return []
        if value < 0:
            return [f"{self.column} must not be negative (got {value})."]
        return []


@dataclass(frozen=True)
class BandCode:
    field: str
    column: str

    def check(self, values: Mapping[str, Any]) -> list[str]:
        value = values.get(self.field)
        if _is_missing(value):
            return []
        if str(value).strip() not in BAND_CODES:
            allowed = ", ".join(BAND_CODES)
            return [f"{self.column} must be one of {allowed} (got {value!r})."]
        return []


@dataclass(frozen=True)
class ExistsIn:
    """Referential check against keys fetched once for the whole batch."""

    field: str
    column: str
    known: frozenset[str]
    entity: str

    def check(self, values: Mapping[str, Any]) -> list[str]:
        value = values.get(self.field)
        if _is_missing(value):
            return []
        if value not in self.known:
            return [f"{self.column} {value} does not match an existing {self.entity}."]
        return []


@dataclass(frozen=True)
class NotGreaterThan:
    field: str
    column: str
    other_field: str
    other_column: str

    def check(self, values: Mapping[str, Any]) -> list[str]:
        value = values.get(self.field)
        limit = values.get(self.other_field)
        if value is None or limit is None:
            return []
        if value > limit:
            return [f"{self.column} ({value}) must not exceed {self.other_column} ({limit})."]
        return []


@dataclass(frozen=True)
class DifferentFrom:
    field: str
    column: str
    other_field: str
    other_column: str

    def check(self, values: Mapping[str, Any]) -> list[str]:
        value = values.get(self.field)
        other = values.get(self.other_field)
        if _is_missing(value) or _is_missing(other):
            return []
        if value == other:
            return [f"{self.column} must differ from {self.other_column}."]
        return []


@dataclass(frozen=True)
class References:
    """
    Existing keys a batch refers to, loaded before validation starts.
    """

    product_codes: frozenset[str] = frozenset()
    order_numbers: frozenset[str] = frozenset()


class ReferenceLookup:
    """
    Fetches the live keys referenced by a batch's rows in one query per
    referenced table.
    """

    def fetch(
        self,
        db: Session,
        *,
        import_type: str,
        rows: Sequence[Any],
    ) -> References:
        if import_type == ImportType.SUPERSESSION:
            codes = self._collect(rows, ("product_code", "superseded_by"))
            if not codes:
                return References()
            found = db.scalars(select(Product.product_code).where(Product.product_code.in_(codes))).all()
            return References(product_codes=frozenset(found))

        if import_type == ImportType.FULFILLMENT_STATUS:
            numbers = self._collect(rows, ("order_number",))
            if not numbers:
                return References()
            found = db.scalars(
                select(OrderHeader.order_number).where(OrderHeader.order_number.in_(numbers))
            ).all()
            return References(order_numbers=frozenset(found))

        return References()

    @staticmethod
    def _collect(rows: Iterable[Any], fields: Sequence[str]) -> list[str]:
        keys: set[str] = set()
        for row in rows:
            for field_name in fields:
                value = getattr(row, field_name, None)
                if not _is_missing(value):
                    keys.add(value)
        return sorted(keys)


def _product_rules(import_type: str) -> list[RowRule]:
    rules: list[RowRule] = [
        Required("product_code", "productCode"),
        Required("part_type", "partType"),
        OneOf("part_type", "partType", ALLOWED_PART_TYPES[import_type]),
        Required("free_stock", "freeStock"),
        NonNegative("free_stock", "freeStock"),
        Required("price", "price"),
        NonNegative("price", "price"),
        BandCode("band_level", "bandLevel"),
    ]
    for field_name, column in (
        ("band_1", "band1"),
        ("band_2", "band2"),
        ("band_3", "band3"),
        ("band_4", "band4"),
        ("cost_price", "costPrice"),
        ("retail_price", "retailPrice"),
        ("trade_price", "tradePrice"),
    ):
        rules.append(NonNegative(field_name, column))
    return rules


def build_rule_set(import_type: str, references: References | None = None) -> list[RowRule]:
    """
    Return the ordered rules applied to every row of ``import_type``.
    """

    refs = references or References()

    if import_type in ImportType.PRODUCT_TYPES:
        return _product_rules(import_type)

    if import_type == ImportType.BACKORDERS:
        return [
            Required("account_number", "accountNumber"),
            Required("product_code", "productCode"),
            Required("quantity_ordered", "quantityOrdered"),
            NonNegative("quantity_ordered", "quantityOrdered"),
            Required("quantity_outstanding", "quantityOutstanding"),
            NonNegative("quantity_outstanding", "quantityOutstanding"),
            NotGreaterThan("quantity_outstanding", "quantityOutstanding", "quantity_ordered", "quantityOrdered"),
        ]

    if import_type == ImportType.SUPERSESSION:
        return [
            Required("product_code", "productCode"),
            ExistsIn("product_code", "productCode", refs.product_codes, "product"),
            Required("superseded_by", "supersededBy"),
            ExistsIn("superseded_by", "supersededBy", refs.product_codes, "product"),
            DifferentFrom("superseded_by", "supersededBy", "product_code", "productCode"),
        ]

    if import_type == ImportType.FULFILLMENT_STATUS:
        return [
            Required("order_number", "orderNumber"),
            ExistsIn("order_number", "orderNumber", refs.order_numbers, "order"),
            Required("status", "status"),
            OneOf("status", "status", OrderStatus.ALL),
        ]

    raise ValueError(f"Unknown import type: {import_type}")
