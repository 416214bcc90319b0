"""
db/models/order.py

Order headers, the target of fulfillment-status imports.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.dealer import DealerAccount


class OrderStatus:
    SUSPENDED = "SUSPENDED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    CANCELLED = "CANCELLED"

    ALL = (SUSPENDED, PROCESSING, SHIPPED, CANCELLED)


class OrderHeader(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_headers"

    order_number: Mapped[str] = mapped_column(String(64), nullable=False)
    dealer_account_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("dealer_accounts.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=OrderStatus.PROCESSING,
    )
    tracking_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    dealer_account: Mapped[Optional["DealerAccount"]] = relationship(
        "DealerAccount",
        back_populates="orders",
    )

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_order_headers_order_number"),
        Index("ix_order_headers_status", "status"),
    )
