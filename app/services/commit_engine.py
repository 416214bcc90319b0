"""
app/services/commit_engine.py

Promotes the valid staged rows of one batch into the live tables.

The engine never opens or ends a transaction itself: the caller wraps
``commit`` in a single ``db.begin()`` block, so either every valid row of the
batch becomes visible or none does. Any database error raised while merging
a row is re-raised as CommitConflictError carrying that row's number.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.domain.imports import CommitSummary
from app.errors import CommitConflictError
from app.services.staging_loader import STAGING_MODELS
from db.models.backorder import BackorderDataset, BackorderLine
from db.models.import_batch import ImportBatch, ImportType
from db.models.order import OrderHeader, OrderStatus
from db.models.product import (
    Product,
    ProductAlias,
    ProductPriceBand,
    ProductPriceReference,
    ProductStock,
)
from db.models.staging import (
    StagingBackorderRow,
    StagingFulfillmentRow,
    StagingProductRow,
    StagingSupersessionRow,
)

logger = logging.getLogger(__name__)

_BAND_COLUMNS: tuple[tuple[str, str], ...] = (
    ("1", "band_1"),
    ("2", "band_2"),
    ("3", "band_3"),
    ("4", "band_4"),
)
_REFERENCE_COLUMNS: tuple[str, ...] = ("cost_price", "retail_price", "trade_price")


class CommitEngine:
    """
    Merges valid staged rows into products, backorders and orders.
    """

    def load_valid_rows(self, db: Session, batch: ImportBatch) -> list[Any]:
        model = STAGING_MODELS[batch.import_type]
        stmt = (
            select(model)
            .where(model.batch_id == batch.id, model.is_valid.is_(True))
            .order_by(model.row_number)
        )
        return list(db.scalars(stmt).all())

    def commit(self, db: Session, batch: ImportBatch) -> CommitSummary:
        rows = self.load_valid_rows(db, batch)
        summary = CommitSummary()
        if not rows:
            return summary

        if batch.import_type in ImportType.PRODUCT_TYPES:
            self._commit_products(db, rows, summary)
        elif batch.import_type == ImportType.BACKORDERS:
            self._commit_backorders(db, batch, rows, summary)
        elif batch.import_type == ImportType.SUPERSESSION:
            self._commit_supersessions(db, rows, summary)
        elif batch.import_type == ImportType.FULFILLMENT_STATUS:
            self._commit_fulfillment(db, rows, summary)
        else:
            raise ValueError(f"Unknown import type: {batch.import_type}")

        summary.rows_committed = len(rows)
        logger.debug("Merged %s rows for batch id=%s", len(rows), batch.id)
        return summary

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def _commit_products(
        self,
        db: Session,
        rows: Sequence[StagingProductRow],
        summary: CommitSummary,
    ) -> None:
        codes = sorted({row.product_code for row in rows})
        stmt = (
            select(Product)
            .where(Product.product_code.in_(codes))
            .options(
                selectinload(Product.stock),
                selectinload(Product.price_reference),
                selectinload(Product.price_bands),
            )
        )
        products = {product.product_code: product for product in db.scalars(stmt).all()}

        self._merge_each(
            db,
            rows,
            lambda row: self._merge_product_row(db, row, products, summary),
        )

    def _merge_product_row(
        self,
        db: Session,
        row: StagingProductRow,
        products: dict[str, Product],
        summary: CommitSummary,
    ) -> None:
        product = products.get(row.product_code)
        if product is None:
            product = Product(
                product_code=row.product_code,
                description=row.description,
                part_type=row.part_type,
                is_active=True if row.is_active is None else row.is_active,
            )
            db.add(product)
            products[row.product_code] = product
            summary.count_created("product")
        else:
            product.part_type = row.part_type
            if row.description is not None:
                product.description = row.description
            if row.is_active is not None:
                product.is_active = row.is_active
            summary.count_updated("product")

        if product.stock is None:
            product.stock = ProductStock(free_stock=row.free_stock)
        else:
            product.stock.free_stock = row.free_stock

        band_level = row.band_level.strip() if row.band_level else None
        reference_values = {
            column: getattr(row, column)
            for column in _REFERENCE_COLUMNS
            if getattr(row, column) is not None
        }
        if band_level is None and row.price is not None:
            reference_values["list_price"] = row.price
        if reference_values:
            if product.price_reference is None:
                product.price_reference = ProductPriceReference()
            for column, value in reference_values.items():
                setattr(product.price_reference, column, value)

        declared_bands = {
            band_code: getattr(row, column)
            for band_code, column in _BAND_COLUMNS
            if getattr(row, column) is not None
        }
        if band_level is not None and row.price is not None:
            declared_bands[band_level] = row.price

        for band_code, price in declared_bands.items():
            band = product.band_price(band_code)
            if band is None:
                product.price_bands.append(ProductPriceBand(band_code=band_code, price=price))
                summary.count_created("price_band")
            else:
                band.price = price
                summary.count_updated("price_band")

    # ------------------------------------------------------------------
    # Backorders
    # ------------------------------------------------------------------

    def _commit_backorders(
        self,
        db: Session,
        batch: ImportBatch,
        rows: Sequence[StagingBackorderRow],
        summary: CommitSummary,
    ) -> None:
        dataset = BackorderDataset(batch_id=batch.id, is_current=False, line_count=len(rows))
        db.add(dataset)
        db.flush()
        summary.count_created("backorder_dataset")

        def add_line(row: StagingBackorderRow) -> None:
            db.add(
                BackorderLine(
                    dataset_id=dataset.id,
                    row_number=row.row_number,
                    account_number=row.account_number,
                    order_number=row.order_number,
                    product_code=row.product_code,
                    description=row.description,
                    quantity_ordered=row.quantity_ordered,
                    quantity_outstanding=row.quantity_outstanding,
                )
            )
            summary.count_created("backorder_line")

        self._merge_each(db, rows, add_line)

        # Demote first, then promote: the single-current index never sees two.
        try:
            previous = db.scalars(
                select(BackorderDataset).where(
                    BackorderDataset.is_current.is_(True),
                    BackorderDataset.id != dataset.id,
                )
            ).all()
            for old_dataset in previous:
                old_dataset.is_current = False
                summary.count_updated("backorder_dataset")
            db.flush()

            dataset.is_current = True
            db.flush()
        except SQLAlchemyError as exc:
            raise CommitConflictError(
                f"Could not make backorder dataset current: {type(exc).__name__}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Supersession
    # ------------------------------------------------------------------

    def _commit_supersessions(
        self,
        db: Session,
        rows: Sequence[StagingSupersessionRow],
        summary: CommitSummary,
    ) -> None:
        codes = sorted({row.product_code for row in rows} | {row.superseded_by for row in rows})
        products = {
            product.product_code: product
            for product in db.scalars(select(Product).where(Product.product_code.in_(codes))).all()
        }
        old_codes = sorted({row.product_code for row in rows})
        aliases = {
            alias.alias_code: alias
            for alias in db.scalars(select(ProductAlias).where(ProductAlias.alias_code.in_(old_codes))).all()
        }

        def supersede(row: StagingSupersessionRow) -> None:
            product = products.get(row.product_code)
            replacement = products.get(row.superseded_by)
            if product is None or replacement is None:
                missing = row.product_code if product is None else row.superseded_by
                raise CommitConflictError(
                    f"Row {row.row_number}: product {missing} no longer exists.",
                    row_number=row.row_number,
                )

            product.superseded_by_code = replacement.product_code
            summary.count_updated("product")

            alias = aliases.get(product.product_code)
            if alias is None:
                alias = ProductAlias(alias_code=product.product_code, product_id=replacement.id)
                db.add(alias)
                aliases[alias.alias_code] = alias
                summary.count_created("product_alias")
            elif alias.product_id != replacement.id:
                alias.product_id = replacement.id
                summary.count_updated("product_alias")

        self._merge_each(db, rows, supersede)

    # ------------------------------------------------------------------
    # Fulfillment status
    # ------------------------------------------------------------------

    def _commit_fulfillment(
        self,
        db: Session,
        rows: Sequence[StagingFulfillmentRow],
        summary: CommitSummary,
    ) -> None:
        numbers = sorted({row.order_number for row in rows})
        orders = {
            order.order_number: order
            for order in db.scalars(select(OrderHeader).where(OrderHeader.order_number.in_(numbers))).all()
        }

        def apply_status(row: StagingFulfillmentRow) -> None:
            order = orders.get(row.order_number)
            if order is None:
                raise CommitConflictError(
                    f"Row {row.row_number}: order {row.order_number} no longer exists.",
                    row_number=row.row_number,
                )
            order.status = row.status.upper()
            if row.tracking_number is not None:
                order.tracking_number = row.tracking_number
            if order.status == OrderStatus.SHIPPED and order.shipped_at is None:
                order.shipped_at = datetime.now(timezone.utc)
            summary.count_updated("order")

        self._merge_each(db, rows, apply_status)

    # ------------------------------------------------------------------

    @staticmethod
    def _merge_each(db: Session, rows: Sequence[Any], merge: Callable[[Any], None]) -> None:
        """
        Merge and flush one row at a time so a failure names its row.
        """

        for row in rows:
            try:
                merge(row)
                db.flush()
            except SQLAlchemyError as exc:
                raise CommitConflictError(
                    f"Row {row.row_number}: {type(exc).__name__}: {exc}",
                    row_number=row.row_number,
                ) from exc
