"""
db/models/dealer.py

Dealer accounts and their price-band assignments.

Every dealer owns exactly three band assignments, one per part type. The
unique (dealer_account_id, part_type) constraint rules out duplicates; the
count itself is enforced by the band assignment service, which only ever
replaces all three rows in one transaction.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.order import OrderHeader


class DealerStatus:
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"

    ALL = (ACTIVE, INACTIVE, SUSPENDED)


class Entitlement:
    GENUINE_ONLY = "GENUINE_ONLY"
    AFTERMARKET_ONLY = "AFTERMARKET_ONLY"
    SHOW_ALL = "SHOW_ALL"

    ALL = (GENUINE_ONLY, AFTERMARKET_ONLY, SHOW_ALL)


class DealerAccount(Base, TimestampMixin):
    __tablename__ = "dealer_accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    account_number: Mapped[str] = mapped_column(String(64), nullable=False)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=DealerStatus.ACTIVE,
        comment="ACTIVE, INACTIVE, SUSPENDED",
    )
    entitlement: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=Entitlement.SHOW_ALL,
        comment="GENUINE_ONLY, AFTERMARKET_ONLY, SHOW_ALL",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    band_assignments: Mapped[list["DealerBandAssignment"]] = relationship(
        "DealerBandAssignment",
        back_populates="dealer_account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    orders: Mapped[list["OrderHeader"]] = relationship(
        "OrderHeader",
        back_populates="dealer_account",
    )

    __table_args__ = (
        UniqueConstraint("account_number", name="uq_dealer_accounts_account_number"),
        Index("ix_dealer_accounts_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<DealerAccount id={self.id} account_number={self.account_number!r} "
            f"status={self.status!r} entitlement={self.entitlement!r}>"
        )


class DealerBandAssignment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "dealer_band_assignments"

    dealer_account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("dealer_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    part_type: Mapped[str] = mapped_column(String(32), nullable=False)
    band_code: Mapped[str] = mapped_column(String(8), nullable=False)

    dealer_account: Mapped["DealerAccount"] = relationship(
        "DealerAccount",
        back_populates="band_assignments",
    )

    __table_args__ = (
        UniqueConstraint(
            "dealer_account_id",
            "part_type",
            name="uq_dealer_band_assignments_dealer_part_type",
        ),
    )
