"""
db/models/backorder.py

Backorder snapshots. Each backorders import produces one dataset; at most one
dataset is current, enforced by a partial unique index.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class BackorderDataset(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "backorder_datasets"

    batch_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("import_batches.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    line_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    lines: Mapped[list["BackorderLine"]] = relationship(
        "BackorderLine",
        back_populates="dataset",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index(
            "uq_backorder_datasets_single_current",
            "is_current",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current = 1"),
        ),
    )


class BackorderLine(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "backorder_lines"

    dataset_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("backorder_datasets.id", ondelete="CASCADE"),
        nullable=False,
    )
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    account_number: Mapped[str] = mapped_column(String(64), nullable=False)
    order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    product_code: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_outstanding: Mapped[int] = mapped_column(Integer, nullable=False)

    dataset: Mapped["BackorderDataset"] = relationship("BackorderDataset", back_populates="lines")

    __table_args__ = (
        Index("ix_backorder_lines_dataset_id", "dataset_id"),
        Index("ix_backorder_lines_account_number", "account_number"),
    )
