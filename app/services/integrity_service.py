"""
app/services/integrity_service.py

Read-only audit of cross-row invariants in the live tables.

Each check yields one CheckResult with status PASS, WARN or FAIL. A report
with any FAIL means the data violates a hard rule (for example a dealer
without exactly three band assignments); WARN marks data that is legal but
probably unintended.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from db.models.backorder import BackorderDataset
from db.models.dealer import DealerAccount, DealerBandAssignment
from db.models.import_batch import ImportBatch, ImportBatchStatus
from db.models.product import PartType, Product, ProductPriceBand

logger = logging.getLogger(__name__)

_DETAIL_LIMIT = 10


class CheckStatus:
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class CheckResult:
    category: str
    test: str
    status: str
    message: str
    details: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "test": self.test,
            "status": self.status,
            "message": self.message,
            "details": self.details,
        }


@dataclass(frozen=True)
class IntegrityReport:
    results: list[CheckResult]

    @property
    def failed(self) -> list[CheckResult]:
        return [result for result in self.results if result.status == CheckStatus.FAIL]

    @property
    def warnings(self) -> list[CheckResult]:
        return [result for result in self.results if result.status == CheckStatus.WARN]

    @property
    def passed(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "total": len(self.results),
                "passed": len(self.results) - len(self.failed) - len(self.warnings),
                "failed": len(self.failed),
                "warnings": len(self.warnings),
            },
            "results": [result.to_dict() for result in self.results],
        }


class IntegrityService:
    def run(self, db: Session) -> IntegrityReport:
        results = [
            self.check_band_assignments(db),
            self.check_duplicate_product_codes(db),
            self.check_active_products_priced(db),
            self.check_single_current_backorder_dataset(db),
            self.check_batch_counters(db),
        ]
        for result in results:
            if result.status != CheckStatus.PASS:
                logger.warning("Integrity check %s: %s %s", result.test, result.status, result.message)
        return IntegrityReport(results=results)

    def check_band_assignments(self, db: Session) -> CheckResult:
        band_count = func.count(DealerBandAssignment.id)
        stmt = (
            select(DealerAccount.id, DealerAccount.account_number, band_count)
            .outerjoin(DealerBandAssignment, DealerBandAssignment.dealer_account_id == DealerAccount.id)
            .group_by(DealerAccount.id, DealerAccount.account_number)
            .having(band_count != len(PartType.ALL))
        )
        rows = db.execute(stmt).all()
        if not rows:
            return CheckResult(
                "Business Rules",
                "Dealer Band Assignments",
                CheckStatus.PASS,
                "All dealers have exactly 3 band assignments",
            )
        return CheckResult(
            "Business Rules",
            "Dealer Band Assignments",
            CheckStatus.FAIL,
            f"{len(rows)} dealer(s) without exactly 3 band assignments",
            [
                {"dealer_account_id": str(dealer_id), "account_number": account_number, "band_count": count}
                for dealer_id, account_number, count in rows[:_DETAIL_LIMIT]
            ],
        )

    def check_duplicate_product_codes(self, db: Session) -> CheckResult:
        code_count = func.count(Product.id)
        stmt = (
            select(Product.product_code, code_count)
            .group_by(Product.product_code)
            .having(code_count > 1)
        )
        rows = db.execute(stmt).all()
        if not rows:
            return CheckResult("Business Rules", "Product Code Uniqueness", CheckStatus.PASS, "No duplicate product codes")
        return CheckResult(
            "Business Rules",
            "Product Code Uniqueness",
            CheckStatus.FAIL,
            f"{len(rows)} duplicate product codes found",
            [{"product_code": code, "count": count} for code, count in rows[:_DETAIL_LIMIT]],
        )

    def check_active_products_priced(self, db: Session) -> CheckResult:
        band_price_count = func.count(ProductPriceBand.id)
        stmt = (
            select(Product.id, Product.product_code)
            .outerjoin(ProductPriceBand, ProductPriceBand.product_id == Product.id)
            .where(Product.is_active.is_(True))
            .group_by(Product.id, Product.product_code)
            .having(band_price_count == 0)
            .order_by(Product.product_code)
        )
        rows = db.execute(stmt).all()
        if not rows:
            return CheckResult(
                "Business Rules",
                "Product Pricing",
                CheckStatus.PASS,
                "All active products have band pricing",
            )
        return CheckResult(
            "Business Rules",
            "Product Pricing",
            CheckStatus.WARN,
            f"{len(rows)} active product(s) without band pricing",
            [{"product_id": str(product_id), "product_code": code} for product_id, code in rows[:_DETAIL_LIMIT]],
        )

    def check_single_current_backorder_dataset(self, db: Session) -> CheckResult:
        current = int(
            db.scalar(
                select(func.count()).select_from(BackorderDataset).where(BackorderDataset.is_current.is_(True))
            )
            or 0
        )
        if current <= 1:
            return CheckResult(
                "Imports",
                "Current Backorder Dataset",
                CheckStatus.PASS,
                f"{current} current backorder dataset(s)",
            )
        return CheckResult(
            "Imports",
            "Current Backorder Dataset",
            CheckStatus.FAIL,
            f"{current} backorder datasets are marked current",
        )

    def check_batch_counters(self, db: Session) -> CheckResult:
        stmt = (
            select(ImportBatch.id, ImportBatch.total_rows, ImportBatch.valid_rows, ImportBatch.invalid_rows)
            .where(
                ImportBatch.status.in_(
                    [ImportBatchStatus.SUCCEEDED, ImportBatchStatus.SUCCEEDED_WITH_ERRORS]
                ),
                or_(
                    ImportBatch.valid_rows.is_(None),
                    ImportBatch.invalid_rows.is_(None),
                    and_(
                        ImportBatch.valid_rows.is_not(None),
                        ImportBatch.invalid_rows.is_not(None),
                        ImportBatch.valid_rows + ImportBatch.invalid_rows != ImportBatch.total_rows,
                    ),
                ),
            )
        )
        rows = db.execute(stmt).all()
        if not rows:
            return CheckResult(
                "Imports",
                "Batch Counters",
                CheckStatus.PASS,
                "All completed batches satisfy total = valid + invalid",
            )
        return CheckResult(
            "Imports",
            "Batch Counters",
            CheckStatus.FAIL,
            f"{len(rows)} completed batch(es) with inconsistent counters",
            [
                {"batch_id": str(batch_id), "total_rows": total, "valid_rows": valid, "invalid_rows": invalid}
                for batch_id, total, valid, invalid in rows[:_DETAIL_LIMIT]
            ],
        )
