"""Maintenance tasks: abandoned run expiry and duplicate cleanup."""

import logging

from aijobs.tasks.celery_app import celery_app
from aijobs.models.base import SyncSessionLocal
from aijobs.services import duplicate_auditor
from aijobs.services.run_registry import RunRegistry

logger = logging.getLogger(__name__)


@celery_app.task(name="aijobs.tasks.maintenance_tasks.expire_stale_runs")
def expire_stale_runs():
    """Mark runs active longer than the max active duration as failed."""
    db = SyncSessionLocal()
    try:
        expired = RunRegistry().expire_stale(db)
        return {"expired": expired}
    finally:
        db.close()


@celery_app.task(name="aijobs.tasks.maintenance_tasks.clean_duplicate_jobs")
def clean_duplicate_jobs():
    """Collapse duplicate postings (same company + normalized title)."""
    db = SyncSessionLocal()
    try:
        result = duplicate_auditor.clean(db)
        logger.info(f"Removed {result.removed_count} duplicate jobs")
        return {"removed_count": result.removed_count}
    finally:
        db.close()
