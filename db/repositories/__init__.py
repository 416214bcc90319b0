"""
Repository layer exports.
"""

from db.repositories.dealer_repository import DealerRepository
from db.repositories.import_batch_repository import ImportBatchRepository

__all__ = [
    "DealerRepository",
    "ImportBatchRepository",
]
