"""
db/models/import_batch.py

Import batch and per-row import error models.

A batch is created once an upload passes structural checks and is retained
for audit after it reaches a terminal status. Its staged rows and error
records are owned by the batch; the live catalog rows it writes are not.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, JSONType, TimestampMixin

if TYPE_CHECKING:
    from db.models.staging import (
        StagingBackorderRow,
        StagingFulfillmentRow,
        StagingProductRow,
        StagingSupersessionRow,
    )


class ImportType:
    GENUINE_PRODUCTS = "genuine-products"
    AFTERMARKET_PRODUCTS = "aftermarket-products"
    BACKORDERS = "backorders"
    SUPERSESSION = "supersession"
    FULFILLMENT_STATUS = "fulfillment-status"

    ALL = (
        GENUINE_PRODUCTS,
        AFTERMARKET_PRODUCTS,
        BACKORDERS,
        SUPERSESSION,
        FULFILLMENT_STATUS,
    )
    PRODUCT_TYPES = (GENUINE_PRODUCTS, AFTERMARKET_PRODUCTS)


class ImportBatchStatus:
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    SUCCEEDED_WITH_ERRORS = "SUCCEEDED_WITH_ERRORS"
    FAILED = "FAILED"


class ImportBatch(Base, TimestampMixin):
    __tablename__ = "import_batches"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    import_type: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="genuine-products, aftermarket-products, backorders, supersession, fulfillment-status",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ImportBatchStatus.PROCESSING,
    )
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Originating actor (admin user id or e-mail)",
    )
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valid_rows: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Fixed once validation completes",
    )
    invalid_rows: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Fixed once validation completes",
    )
    commit_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Commit summary (created/updated counts per entity)",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    errors: Mapped[list["ImportErrorRecord"]] = relationship(
        "ImportErrorRecord",
        back_populates="batch",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ImportErrorRecord.row_number",
    )
    product_rows: Mapped[list["StagingProductRow"]] = relationship(
        "StagingProductRow",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    backorder_rows: Mapped[list["StagingBackorderRow"]] = relationship(
        "StagingBackorderRow",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    supersession_rows: Mapped[list["StagingSupersessionRow"]] = relationship(
        "StagingSupersessionRow",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    fulfillment_rows: Mapped[list["StagingFulfillmentRow"]] = relationship(
        "StagingFulfillmentRow",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_import_batches_import_type", "import_type"),
        Index("ix_import_batches_status", "status"),
        Index("ix_import_batches_created_at", "created_at"),
        Index("ix_import_batches_import_type_status", "import_type", "status"),
    )

    @property
    def success_rate(self) -> float:
        if not self.total_rows or self.valid_rows is None:
            return 0.0
        return round(self.valid_rows / self.total_rows, 4)

    def __repr__(self) -> str:
        return (
            f"<ImportBatch id={self.id} import_type={self.import_type!r} "
            f"status={self.status!r} total_rows={self.total_rows}>"
        )


class ImportErrorRecord(Base):
    """
    One failed staging row. Immutable once written.
    """

    __tablename__ = "import_errors"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    batch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("import_batches.id", ondelete="CASCADE"),
        nullable=False,
    )
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    raw_row: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Snapshot of the raw cells as uploaded",
    )

    batch: Mapped["ImportBatch"] = relationship("ImportBatch", back_populates="errors")

    __table_args__ = (
        Index("ix_import_errors_batch_id_row_number", "batch_id", "row_number"),
    )
