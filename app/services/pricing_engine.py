"""
app/services/pricing_engine.py

Dealer price resolution.

For every requested product the engine returns either a resolved price or
an explicit unresolved marker, never a silent zero. Resolution order:

    1. band price for the band the dealer is assigned for the product's
       part type;
    2. reference fallback (trade price, else list price);
    3. unresolved.

Entitlement is checked before any price is looked up when callers go through
``resolve_entitled_prices``.

The engine issues a fixed number of queries per call (assignments,
products, band prices, reference prices) regardless of how many products
are requested, and never writes.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Union

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from app.errors import DealerNotFoundError, InvariantViolationError, UnresolvedPriceError
from app.services.entitlements import hidden_product_ids
from db.models.dealer import DealerAccount, DealerBandAssignment
from db.models.product import PartType, Product, ProductPriceBand, ProductPriceReference

logger = logging.getLogger(__name__)


class PriceSource:
    BAND = "band"
    REFERENCE = "reference"


class UnresolvedReason:
    NO_PRICE = "no_price"
    PRODUCT_NOT_FOUND = "product_not_found"
    NOT_ENTITLED = "not_entitled"


@dataclass(frozen=True)
class ResolvedPrice:
    product_id: uuid.UUID
    price: Decimal
    source: str
    part_type: str
    band_code: str | None = None

    is_resolved = True


@dataclass(frozen=True)
class UnresolvedPrice:
    product_id: uuid.UUID
    reason: str
    part_type: str | None = None
    band_code: str | None = None

    is_resolved = False


PriceOutcome = Union[ResolvedPrice, UnresolvedPrice]


class PriceResolutionSet(Mapping[uuid.UUID, PriceOutcome]):
    """
    Read-only mapping ``product_id -> ResolvedPrice | UnresolvedPrice`` in
    request order.
    """

    def __init__(self, outcomes: Mapping[uuid.UUID, PriceOutcome]) -> None:
        self._outcomes = dict(outcomes)

    def __getitem__(self, product_id: uuid.UUID) -> PriceOutcome:
        return self._outcomes[product_id]

    def __iter__(self) -> Iterator[uuid.UUID]:
        return iter(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)

    @property
    def resolved(self) -> dict[uuid.UUID, ResolvedPrice]:
        return {
            product_id: outcome
            for product_id, outcome in self._outcomes.items()
            if isinstance(outcome, ResolvedPrice)
        }

    @property
    def unresolved(self) -> list[UnresolvedPrice]:
        return [outcome for outcome in self._outcomes.values() if isinstance(outcome, UnresolvedPrice)]

    def raise_for_unresolved(self) -> None:
        """
        For callers that must block (checkout): raise if any product has no
        price.
        """

        unresolved = self.unresolved
        if unresolved:
            raise UnresolvedPriceError([outcome.product_id for outcome in unresolved])


class PricingEngine:
    def resolve_entitled_prices(
        self,
        db: Session,
        *,
        dealer_account_id: uuid.UUID,
        product_ids: Iterable[uuid.UUID],
    ) -> PriceResolutionSet:
        """
        Resolve prices for the products the dealer is entitled to see.

        Products hidden by the dealer's entitlement are never priced; they
        come back as ``UnresolvedPrice(reason="not_entitled")``.
        """

        requested = list(dict.fromkeys(product_ids))
        hidden = hidden_product_ids(db, dealer_account_id=dealer_account_id, product_ids=requested)
        priced = self.resolve_prices(
            db,
            dealer_account_id=dealer_account_id,
            product_ids=[product_id for product_id in requested if product_id not in hidden],
        )

        outcomes: dict[uuid.UUID, PriceOutcome] = {}
        for product_id in requested:
            if product_id in hidden:
                outcomes[product_id] = UnresolvedPrice(
                    product_id=product_id,
                    reason=UnresolvedReason.NOT_ENTITLED,
                    part_type=hidden[product_id],
                )
            else:
                outcomes[product_id] = priced[product_id]
        return PriceResolutionSet(outcomes)

    def resolve_prices(
        self,
        db: Session,
        *,
        dealer_account_id: uuid.UUID,
        product_ids: Iterable[uuid.UUID],
    ) -> PriceResolutionSet:
        requested = list(dict.fromkeys(product_ids))
        band_for_part_type = self._load_band_lookup(db, dealer_account_id)
        if not requested:
            return PriceResolutionSet({})

        part_types: dict[uuid.UUID, str] = dict(
            db.execute(select(Product.id, Product.part_type).where(Product.id.in_(requested))).all()
        )

        band_prices: dict[uuid.UUID, tuple[str, Decimal]] = {}
        if part_types:
            band_filter = or_(
                *(
                    and_(Product.part_type == part_type, ProductPriceBand.band_code == band_code)
                    for part_type, band_code in band_for_part_type.items()
                )
            )
            stmt = (
                select(ProductPriceBand.product_id, ProductPriceBand.band_code, ProductPriceBand.price)
                .join(Product, Product.id == ProductPriceBand.product_id)
                .where(ProductPriceBand.product_id.in_(list(part_types)), band_filter)
            )
            for product_id, band_code, price in db.execute(stmt).all():
                band_prices[product_id] = (band_code, price)

        reference_prices: dict[uuid.UUID, Decimal] = {}
        remainder = [product_id for product_id in part_types if product_id not in band_prices]
        if remainder:
            references = db.scalars(
                select(ProductPriceReference).where(ProductPriceReference.product_id.in_(remainder))
            ).all()
            for reference in references:
                fallback = reference.fallback_price()
                if fallback is not None:
                    reference_prices[reference.product_id] = fallback

        outcomes: dict[uuid.UUID, PriceOutcome] = {}
        for product_id in requested:
            part_type = part_types.get(product_id)
            if part_type is None:
                outcomes[product_id] = UnresolvedPrice(
                    product_id=product_id,
                    reason=UnresolvedReason.PRODUCT_NOT_FOUND,
                )
                continue

            band_code = band_for_part_type.get(part_type)
            if product_id in band_prices:
                matched_band, price = band_prices[product_id]
                outcomes[product_id] = ResolvedPrice(
                    product_id=product_id,
                    price=price,
                    source=PriceSource.BAND,
                    part_type=part_type,
                    band_code=matched_band,
                )
            elif product_id in reference_prices:
                outcomes[product_id] = ResolvedPrice(
                    product_id=product_id,
                    price=reference_prices[product_id],
                    source=PriceSource.REFERENCE,
                    part_type=part_type,
                    band_code=band_code,
                )
            else:
                outcomes[product_id] = UnresolvedPrice(
                    product_id=product_id,
                    reason=UnresolvedReason.NO_PRICE,
                    part_type=part_type,
                    band_code=band_code,
                )

        result = PriceResolutionSet(outcomes)
        if result.unresolved:
            logger.info(
                "Unresolved prices dealer_account_id=%s unresolved=%s requested=%s",
                dealer_account_id,
                len(result.unresolved),
                len(requested),
            )
        return result

    @staticmethod
    def _load_band_lookup(db: Session, dealer_account_id: uuid.UUID) -> dict[str, str]:
        rows = db.execute(
            select(DealerBandAssignment.part_type, DealerBandAssignment.band_code).where(
                DealerBandAssignment.dealer_account_id == dealer_account_id
            )
        ).all()
        lookup = {part_type: band_code for part_type, band_code in rows}

        if not rows and db.get(DealerAccount, dealer_account_id) is None:
            raise DealerNotFoundError(f"Dealer account not found: {dealer_account_id}")
        if len(rows) != len(PartType.ALL) or set(lookup) != set(PartType.ALL):
            raise InvariantViolationError(
                f"Dealer {dealer_account_id} has {len(rows)} band assignments; expected one per part type."
            )
        return lookup


@lru_cache(maxsize=1)
def get_pricing_engine() -> PricingEngine:
    return PricingEngine()
