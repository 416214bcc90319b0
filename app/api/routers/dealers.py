"""
Dealer creation and band assignment endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.errors import DealerNotFoundError, DuplicateDealerError, InvariantViolationError
from app.schemas.dealers import (
    BandAssignmentRequest,
    BandAssignmentResponse,
    DealerCreateRequest,
    DealerResponse,
)
from app.services.band_assignment_service import (
    BandAssignmentInput,
    BandAssignmentService,
    get_band_assignment_service,
)
from db.session import get_db

router = APIRouter(prefix="/dealers", tags=["dealers"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=DealerResponse)
def create_dealer(
    payload: DealerCreateRequest,
    db: Session = Depends(get_db),
    service: BandAssignmentService = Depends(get_band_assignment_service),
) -> DealerResponse:
    try:
        dealer = service.create_dealer_account(
            db=db,
            account_number=payload.account_number,
            company_name=payload.company_name,
            entitlement=payload.entitlement,
            status=payload.status,
            assignments=[
                BandAssignmentInput(part_type=item.part_type, band_code=item.band_code)
                for item in payload.assignments
            ],
        )
    except InvariantViolationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "problems": exc.problems},
        ) from exc
    except DuplicateDealerError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return DealerResponse(
        dealer_account_id=dealer.id,
        account_number=dealer.account_number,
        company_name=dealer.company_name,
        status=dealer.status,
        entitlement=dealer.entitlement,
        bands=service.get_assignments(db=db, dealer_account_id=dealer.id),
        created_at=dealer.created_at,
    )


@router.put("/{dealer_id}/bands", response_model=BandAssignmentResponse)
def assign_bands(
    dealer_id: UUID,
    payload: BandAssignmentRequest,
    db: Session = Depends(get_db),
    service: BandAssignmentService = Depends(get_band_assignment_service),
) -> BandAssignmentResponse:
    try:
        bands = service.assign_bands(
            db=db,
            dealer_account_id=dealer_id,
            assignments=[
                BandAssignmentInput(part_type=item.part_type, band_code=item.band_code)
                for item in payload.assignments
            ],
        )
    except DealerNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvariantViolationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "problems": exc.problems},
        ) from exc

    return BandAssignmentResponse(dealer_account_id=dealer_id, bands=bands)


@router.get("/{dealer_id}/bands", response_model=BandAssignmentResponse)
def get_bands(
    dealer_id: UUID,
    db: Session = Depends(get_db),
    service: BandAssignmentService = Depends(get_band_assignment_service),
) -> BandAssignmentResponse:
    try:
        bands = service.get_assignments(db=db, dealer_account_id=dealer_id)
    except DealerNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvariantViolationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    return BandAssignmentResponse(dealer_account_id=dealer_id, bands=bands)
