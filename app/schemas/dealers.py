"""
Schemas for dealer creation and band assignment.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

PartTypeValue = Literal["GENUINE", "AFTERMARKET", "BRANDED"]
BandCodeValue = Literal["1", "2", "3", "4"]


class BandAssignmentItem(BaseModel):
    part_type: PartTypeValue
    band_code: BandCodeValue


class BandAssignmentRequest(BaseModel):
    assignments: list[BandAssignmentItem] = Field(min_length=3, max_length=3)


class BandAssignmentResponse(BaseModel):
    dealer_account_id: UUID
    bands: dict[str, str]


class DealerCreateRequest(BaseModel):
    account_number: str = Field(min_length=1, max_length=64)
    company_name: str | None = Field(default=None, max_length=255)
    entitlement: Literal["GENUINE_ONLY", "AFTERMARKET_ONLY", "SHOW_ALL"] = "SHOW_ALL"
    status: Literal["ACTIVE", "INACTIVE", "SUSPENDED"] = "ACTIVE"
    assignments: list[BandAssignmentItem] = Field(min_length=3, max_length=3)


class DealerResponse(BaseModel):
    dealer_account_id: UUID
    account_number: str
    company_name: str | None = None
    status: str
    entitlement: str
    bands: dict[str, str]
    created_at: datetime
