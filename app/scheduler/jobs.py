"""
app/scheduler/jobs.py

APScheduler-based periodic maintenance for the import pipeline.

Schedule
--------
  stale_batch_sweep: every ``IMPORT_STALE_BATCH_MINUTES / 4`` minutes
                      (at least every 5 minutes)

A batch whose background task died (process restart, worker crash) would
otherwise stay PROCESSING forever. The sweep abandons such batches once they
are older than ``IMPORT_STALE_BATCH_MINUTES`` and their commit never started;
a batch already committing is left alone.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import ImportSettings, get_import_settings
from app.services.import_pipeline_service import get_import_pipeline_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: stale batch sweep
# ---------------------------------------------------------------------------


def run_stale_batch_sweep() -> None:
    """
    Abandon import batches stuck in PROCESSING without a commit start.
    """
    logger.info("Scheduler: stale_batch_sweep starting")
    try:
        abandoned = get_import_pipeline_service().abandon_stale_batches()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: stale_batch_sweep failed: %s", exc)
        return
    logger.info("Scheduler: stale_batch_sweep complete abandoned=%s", len(abandoned))


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def sweep_interval_minutes(settings: ImportSettings) -> int:
    return max(5, settings.stale_batch_minutes // 4)


def build_scheduler(settings: ImportSettings | None = None) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = settings or get_import_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    if settings.sweep_enabled:
        scheduler.add_job(
            run_stale_batch_sweep,
            trigger="interval",
            minutes=sweep_interval_minutes(settings),
            id="stale_batch_sweep",
            name="Stale import batch sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=600,
        )
    else:
        logger.info("Scheduler: stale_batch_sweep disabled by IMPORT_SWEEP_ENABLED")

    return scheduler
