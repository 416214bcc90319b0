"""
app/services/entitlements.py

Dealer visibility rules. Entitlement decides which part types a dealer may
see at all; it is applied before pricing and never changes a price.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import DealerNotFoundError
from db.models.dealer import DealerAccount, Entitlement
from db.models.product import PartType, Product

VISIBLE_PART_TYPES: dict[str, tuple[str, ...]] = {
    Entitlement.GENUINE_ONLY: (PartType.GENUINE,),
    Entitlement.AFTERMARKET_ONLY: (PartType.AFTERMARKET,),
    Entitlement.SHOW_ALL: PartType.ALL,
}


def visible_part_types(entitlement: str) -> tuple[str, ...]:
    try:
        return VISIBLE_PART_TYPES[entitlement]
    except KeyError:
        raise ValueError(f"Unknown entitlement: {entitlement}") from None


def filter_visible_product_ids(
    db: Session,
    *,
    dealer_account_id: uuid.UUID,
    product_ids: Iterable[uuid.UUID],
) -> list[uuid.UUID]:
    """
    Keep only the products the dealer may see, in request order.
    Unknown product ids are dropped.
    """

    allowed = _allowed_part_types(db, dealer_account_id)
    requested = list(dict.fromkeys(product_ids))
    if not requested:
        return []

    visible = set(
        db.scalars(
            select(Product.id).where(
                Product.id.in_(requested),
                Product.part_type.in_(allowed),
            )
        ).all()
    )
    return [product_id for product_id in requested if product_id in visible]


def hidden_product_ids(
    db: Session,
    *,
    dealer_account_id: uuid.UUID,
    product_ids: Iterable[uuid.UUID],
) -> dict[uuid.UUID, str]:
    """
    Map each existing product the dealer may not see to its part type.
    Unknown product ids are not reported.
    """

    allowed = _allowed_part_types(db, dealer_account_id)
    requested = list(dict.fromkeys(product_ids))
    if not requested:
        return {}

    rows = db.execute(
        select(Product.id, Product.part_type).where(
            Product.id.in_(requested),
            Product.part_type.not_in(allowed),
        )
    ).all()
    return {product_id: part_type for product_id, part_type in rows}


def _allowed_part_types(db: Session, dealer_account_id: uuid.UUID) -> tuple[str, ...]:
    dealer = db.get(DealerAccount, dealer_account_id)
    if dealer is None:
        raise DealerNotFoundError(f"Dealer account not found: {dealer_account_id}")
    return visible_part_types(dealer.entitlement)
