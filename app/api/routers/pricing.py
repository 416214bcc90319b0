"""
Dealer price resolution endpoint.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.config import PricingSettings, get_pricing_settings
from app.errors import DealerNotFoundError, InvariantViolationError, UnresolvedPriceError
from app.schemas.pricing import PriceEntryResponse, PriceResolveRequest, PriceResolveResponse
from app.services.pricing_engine import PricingEngine, ResolvedPrice, get_pricing_engine
from db.session import get_db

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/resolve", response_model=PriceResolveResponse)
def resolve_prices(
    payload: PriceResolveRequest,
    strict: bool = Query(default=False, description="Fail with 409 when any product has no price"),
    db: Session = Depends(get_db),
    engine: PricingEngine = Depends(get_pricing_engine),
    settings: PricingSettings = Depends(get_pricing_settings),
) -> PriceResolveResponse:
    if len(payload.product_ids) > settings.max_products_per_request:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"At most {settings.max_products_per_request} product ids may be priced per request.",
        )

    try:
        result = engine.resolve_entitled_prices(
            db,
            dealer_account_id=payload.dealer_account_id,
            product_ids=payload.product_ids,
        )
        if strict:
            result.raise_for_unresolved()
    except DealerNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvariantViolationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except UnresolvedPriceError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(exc),
                "unresolved": [str(product_id) for product_id in exc.product_ids],
            },
        ) from exc

    prices: dict[UUID, PriceEntryResponse] = {}
    for product_id, outcome in result.items():
        if isinstance(outcome, ResolvedPrice):
            prices[product_id] = PriceEntryResponse(
                status="resolved",
                price=outcome.price,
                source=outcome.source,
                part_type=outcome.part_type,
                band_code=outcome.band_code,
            )
        else:
            prices[product_id] = PriceEntryResponse(
                status="unresolved",
                part_type=outcome.part_type,
                band_code=outcome.band_code,
                reason=outcome.reason,
            )

    return PriceResolveResponse(
        dealer_account_id=payload.dealer_account_id,
        prices=prices,
        unresolved=[outcome.product_id for outcome in result.unresolved],
    )
