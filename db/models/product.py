"""
db/models/product.py

Live catalog: products and the stock, reference price, band price and alias
rows each product owns. Products are deactivated, never hard-deleted by the
import pipeline; deleting one removes its owned rows.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, Money, TimestampMixin, UUIDPrimaryKeyMixin


class PartType:
    GENUINE = "GENUINE"
    AFTERMARKET = "AFTERMARKET"
    BRANDED = "BRANDED"

    ALL = (GENUINE, AFTERMARKET, BRANDED)


BAND_CODES: tuple[str, ...] = ("1", "2", "3", "4")


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    product_code: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    part_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="GENUINE, AFTERMARKET, BRANDED",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    superseded_by_code: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Replacement product code from supersession imports",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    stock: Mapped[Optional["ProductStock"]] = relationship(
        "ProductStock",
        back_populates="product",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    price_reference: Mapped[Optional["ProductPriceReference"]] = relationship(
        "ProductPriceReference",
        back_populates="product",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    price_bands: Mapped[list["ProductPriceBand"]] = relationship(
        "ProductPriceBand",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    aliases: Mapped[list["ProductAlias"]] = relationship(
        "ProductAlias",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("product_code", name="uq_products_product_code"),
        Index("ix_products_part_type", "part_type"),
        Index("ix_products_is_active", "is_active"),
    )

    def band_price(self, band_code: str) -> Optional["ProductPriceBand"]:
        for band in self.price_bands:
            if band.band_code == band_code:
                return band
        return None

    def __repr__(self) -> str:
        return (
            f"<Product id={self.id} product_code={self.product_code!r} "
            f"part_type={self.part_type!r} is_active={self.is_active}>"
        )


class ProductStock(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "product_stock"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    free_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped["Product"] = relationship("Product", back_populates="stock")


class ProductPriceReference(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "product_price_references"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    cost_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    retail_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    trade_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    list_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)

    product: Mapped["Product"] = relationship("Product", back_populates="price_reference")

    def fallback_price(self) -> Decimal | None:
        """Trade price when set, otherwise list price."""
        if self.trade_price is not None:
            return self.trade_price
        return self.list_price


class ProductPriceBand(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "product_price_bands"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    band_code: Mapped[str] = mapped_column(String(8), nullable=False, comment='"1".."4"')
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="price_bands")

    __table_args__ = (
        UniqueConstraint("product_id", "band_code", name="uq_product_price_bands_product_band"),
        Index("ix_product_price_bands_band_code", "band_code"),
    )


class ProductAlias(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Alternate part number that resolves to a product."""

    __tablename__ = "product_aliases"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    alias_code: Mapped[str] = mapped_column(String(64), nullable=False)

    product: Mapped["Product"] = relationship("Product", back_populates="aliases")

    __table_args__ = (
        UniqueConstraint("alias_code", name="uq_product_aliases_alias_code"),
    )
