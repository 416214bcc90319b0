"""
app/services package marker.
"""

from app.services.band_assignment_service import (
    BandAssignmentInput,
    BandAssignmentService,
    get_band_assignment_service,
)
from app.services.import_pipeline_service import (
    FastAPIBackgroundTaskExecutor,
    ImportPipelineService,
    get_import_pipeline_service,
)
from app.services.pricing_engine import (
    PriceResolutionSet,
    PricingEngine,
    get_pricing_engine,
)

__all__ = [
    "BandAssignmentInput",
    "BandAssignmentService",
    "get_band_assignment_service",
    "FastAPIBackgroundTaskExecutor",
    "ImportPipelineService",
    "get_import_pipeline_service",
    "PriceResolutionSet",
    "PricingEngine",
    "get_pricing_engine",
]
