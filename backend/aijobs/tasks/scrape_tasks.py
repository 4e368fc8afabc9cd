"""Scrape worker task."""

import logging
from datetime import datetime
from typing import Any, Callable

from sqlalchemy.orm import Session

from aijobs.tasks.celery_app import celery_app
from aijobs.models.base import SyncSessionLocal
from aijobs.services.extraction import ExtractionResult, extract
from aijobs.services.result_store import ImportResult, import_records
from aijobs.services.run_registry import RunOutcome, RunRegistry

logger = logging.getLogger(__name__)


def run_scrape(
    db: Session,
    company_key: str,
    source_url: str,
    registry: RunRegistry | None = None,
    started_at: datetime | None = None,
    extractor: Callable[[str], ExtractionResult] = extract,
) -> dict[str, Any]:
    """Extract, import, then report the outcome to the registry.

    Always leaves the run completed or failed.
    """
    registry = registry or RunRegistry()
    extraction = ExtractionResult()
    imported = ImportResult()

    try:
        extraction = extractor(source_url)
        imported = import_records(db, extraction.records, company_key=company_key)

        usable = imported.inserted + imported.skipped
        if usable == 0:
            outcome = RunOutcome(
                succeeded=False,
                jobs_found=len(extraction.records),
                error_message=extraction.error or "No usable job records extracted",
            )
        else:
            outcome = RunOutcome(
                succeeded=True,
                jobs_found=len(extraction.records),
                jobs_new=imported.inserted,
                jobs_skipped=imported.skipped,
                error_message=f"Used fallback data: {extraction.error}" if extraction.error else None,
            )

    except Exception as e:
        db.rollback()
        outcome = RunOutcome(
            succeeded=False,
            jobs_found=len(extraction.records),
            error_message=str(e) or e.__class__.__name__,
        )
        logger.error(f"Failed to scrape {company_key} from {source_url}: {e}")

    registry.complete(db, company_key, outcome, started_at=started_at)

    results = {
        "company_key": company_key,
        "status": "completed" if outcome.succeeded else "failed",
        "platform": extraction.platform,
        "used_fallback": extraction.used_fallback,
        "jobs_found": outcome.jobs_found,
        "jobs_new": outcome.jobs_new,
        "jobs_skipped": outcome.jobs_skipped,
        "error": outcome.error_message,
    }
    logger.info(f"Scraped {company_key}: {results}")
    return results


@celery_app.task(name="aijobs.tasks.scrape_tasks.scrape_company")
def scrape_company(company_key: str, source_url: str, run_started_at: str | None = None):
    """Background worker for one run. ``run_started_at`` pins completion to the run that spawned it."""
    db = SyncSessionLocal()
    try:
        started_at = datetime.fromisoformat(run_started_at) if run_started_at else None
        return run_scrape(db, company_key, source_url, started_at=started_at)
    finally:
        db.close()
