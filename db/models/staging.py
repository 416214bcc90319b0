"""
db/models/staging.py

Staging rows, one table per import family.

A staging row holds the typed values parsed from one uploaded line plus its
provenance (batch, row number). The loader writes it, the validator sets the
verdict once, and the commit engine only reads it. Rows stay after commit
for traceability.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from db.base import Base, JSONType, Money


class StagingRowMixin:
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    batch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("import_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    row_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="1-based data row number, header excluded",
    )
    raw_row: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    parse_errors: Mapped[list[dict[str, str]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
        comment="[{column, message}] for cells that failed type parsing",
    )
    is_valid: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True,
        comment="NULL until validated",
    )
    validation_errors: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        return (
            UniqueConstraint("batch_id", "row_number", name=f"uq_{cls.__tablename__}_batch_row"),
        )


class StagingProductRow(StagingRowMixin, Base):
    """Genuine and aftermarket product/stock/price rows."""

    __tablename__ = "staging_product_rows"

    product_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    part_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    free_stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    band_level: Mapped[str | None] = mapped_column(String(8), nullable=True)
    band_1: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    band_2: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    band_3: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    band_4: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    cost_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    retail_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    trade_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    is_active: Mapped[bool | None] = mapped_column(Boolean, nullable=True)


class StagingBackorderRow(StagingRowMixin, Base):
    __tablename__ = "staging_backorder_rows"

    account_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    product_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity_ordered: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quantity_outstanding: Mapped[int | None] = mapped_column(Integer, nullable=True)


class StagingSupersessionRow(StagingRowMixin, Base):
    __tablename__ = "staging_supersession_rows"

    product_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    superseded_by: Mapped[str | None] = mapped_column(String(64), nullable=True)


class StagingFulfillmentRow(StagingRowMixin, Base):
    __tablename__ = "staging_fulfillment_rows"

    order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
