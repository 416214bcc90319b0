from __future__ import annotations

from conftest import make_dealer, make_product

from app.config import ImportSettings
from app.scheduler.jobs import build_scheduler, sweep_interval_minutes
from app.services.integrity_service import CheckStatus, IntegrityService
from db.models.backorder import BackorderDataset
from db.models.import_batch import ImportBatch, ImportBatchStatus, ImportType
from db.models.product import PartType


def _statuses(report) -> dict[str, str]:
    return {result.test: result.status for result in report.results}


def test_clean_database_passes(db) -> None:
    make_dealer(db)
    make_product(db, product_code="P-1", bands={"1": "1.00"})

    report = IntegrityService().run(db)

    assert report.passed
    assert report.warnings == []
    assert report.to_dict()["summary"] == {"total": 5, "passed": 5, "failed": 0, "warnings": 0}


def test_dealer_without_three_bands_fails(db) -> None:
    make_dealer(db, bands={PartType.GENUINE: "1"})

    report = IntegrityService().run(db)

    assert not report.passed
    failed = report.failed[0]
    assert failed.test == "Dealer Band Assignments"
    assert failed.details[0]["band_count"] == 1


def test_unpriced_active_product_only_warns(db) -> None:
    make_product(db, product_code="P-2", list_price="3.00")

    report = IntegrityService().run(db)

    assert report.passed
    assert _statuses(report)["Product Pricing"] == CheckStatus.WARN


def test_batch_counter_mismatch_fails(db) -> None:
    with db.begin():
        db.add(
            ImportBatch(
                import_type=ImportType.GENUINE_PRODUCTS,
                status=ImportBatchStatus.SUCCEEDED,
                total_rows=5,
                valid_rows=3,
                invalid_rows=1,
            )
        )
        db.add(BackorderDataset(is_current=True, line_count=0))

    statuses = _statuses(IntegrityService().run(db))

    assert statuses["Batch Counters"] == CheckStatus.FAIL
    assert statuses["Current Backorder Dataset"] == CheckStatus.PASS


class TestScheduler:
    def test_sweep_interval_has_floor(self) -> None:
        assert sweep_interval_minutes(ImportSettings(stale_batch_minutes=10)) == 5
        assert sweep_interval_minutes(ImportSettings(stale_batch_minutes=120)) == 30

    def test_sweep_job_registered(self) -> None:
        scheduler = build_scheduler(ImportSettings())

        assert [job.id for job in scheduler.get_jobs()] == ["stale_batch_sweep"]

    def test_sweep_can_be_disabled(self) -> None:
        scheduler = build_scheduler(ImportSettings(sweep_enabled=False))

        assert scheduler.get_jobs() == []
