"""
app/schemas package marker.
"""

from app.schemas.dealers import (
    BandAssignmentItem,
    BandAssignmentRequest,
    BandAssignmentResponse,
    DealerCreateRequest,
    DealerResponse,
)
from app.schemas.imports import (
    ImportBatchAcceptedResponse,
    ImportBatchListResponse,
    ImportBatchStatusResponse,
    ImportErrorPageResponse,
    ImportErrorResponse,
    StructuralUploadErrorResponse,
)
from app.schemas.pricing import PriceEntryResponse, PriceResolveRequest, PriceResolveResponse

__all__ = [
    "BandAssignmentItem",
    "BandAssignmentRequest",
    "BandAssignmentResponse",
    "DealerCreateRequest",
    "DealerResponse",
    "ImportBatchAcceptedResponse",
    "ImportBatchListResponse",
    "ImportBatchStatusResponse",
    "ImportErrorPageResponse",
    "ImportErrorResponse",
    "PriceEntryResponse",
    "PriceResolveRequest",
    "PriceResolveResponse",
    "StructuralUploadErrorResponse",
]
