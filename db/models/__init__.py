"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.backorder import BackorderDataset, BackorderLine
from db.models.dealer import DealerAccount, DealerBandAssignment, DealerStatus, Entitlement
from db.models.import_batch import ImportBatch, ImportBatchStatus, ImportErrorRecord, ImportType
from db.models.order import OrderHeader, OrderStatus
from db.models.product import (
    BAND_CODES,
    PartType,
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

__all__ = [
    "BAND_CODES",
    "BackorderDataset",
    "BackorderLine",
    "DealerAccount",
    "DealerBandAssignment",
    "DealerStatus",
    "Entitlement",
    "ImportBatch",
    "ImportBatchStatus",
    "ImportErrorRecord",
    "ImportType",
    "OrderHeader",
    "OrderStatus",
    "PartType",
    "Product",
    "ProductAlias",
    "ProductPriceBand",
    "ProductPriceReference",
    "ProductStock",
    "StagingBackorderRow",
    "StagingFulfillmentRow",
    "StagingProductRow",
    "StagingSupersessionRow",
]
