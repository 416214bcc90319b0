"""
Schemas for dealer price resolution.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class PriceResolveRequest(BaseModel):
    dealer_account_id: UUID
    product_ids: list[UUID] = Field(default_factory=list)


class PriceEntryResponse(BaseModel):
    status: str = Field(description="resolved or unresolved")
    price: Decimal | None = None
    source: str | None = Field(default=None, description="band or reference")
    part_type: str | None = None
    band_code: str | None = None
    reason: str | None = Field(
        default=None,
        description="Set when unresolved: no_price, product_not_found or not_entitled",
    )


class PriceResolveResponse(BaseModel):
    dealer_account_id: UUID
    prices: dict[UUID, PriceEntryResponse] = Field(default_factory=dict)
    unresolved: list[UUID] = Field(default_factory=list)
