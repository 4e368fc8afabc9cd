"""Scrape lifecycle API endpoints: start, status, reset, summary."""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from kombu.exceptions import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from aijobs.models.base import get_db
from aijobs.schemas.job_record import CompanySummary, JobRecordRead, SkillCount
from aijobs.schemas.scrape_run import (
    ScrapeClearResponse,
    ScrapeRequest,
    ScrapeStartResponse,
    ScrapeStatusRead,
)
from aijobs.services import result_store
from aijobs.services.identity import company_key_for, company_key_from_url
from aijobs.services.run_registry import RunOutcome, RunRegistry, StartOutcome

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scrape"])

registry = RunRegistry()


def dispatch_scrape(company_key: str, source_url: str, run_started_at: str | None) -> str:
    """Queue the worker task. Returns the Celery task id."""
    from aijobs.tasks.scrape_tasks import scrape_company

    task = scrape_company.delay(company_key, source_url, run_started_at)
    return task.id


def run_scrape_inline(company_key: str, source_url: str, run_started_at: str | None) -> dict[str, Any]:
    """Run the worker in-process for legacy synchronous callers."""
    from aijobs.tasks.scrape_tasks import scrape_company

    return scrape_company(company_key, source_url, run_started_at)


def _company_key(company: str) -> str:
    key = company_key_for(company)
    if not key:
        raise HTTPException(status_code=400, detail="Company parameter required")
    return key


@router.post("/scrape", response_model=ScrapeStartResponse)
async def start_scrape(
    body: ScrapeRequest,
    db: AsyncSession = Depends(get_db),
    wait: bool = Query(False, description="Run the scrape inline and return the records"),
):
    """Start a background scrape for a company. At most one run per company is active."""
    company_key = company_key_for(body.company) if body.company else company_key_from_url(body.source_url)
    if not company_key:
        raise HTTPException(status_code=400, detail="Could not derive a company from the URL")

    outcome = await db.run_sync(lambda s: registry.start(s, company_key, body.source_url))
    if outcome is StartOutcome.ALREADY_ACTIVE:
        return ScrapeStartResponse(
            status="already_active",
            company_key=company_key,
            message=f"Scraping already in progress for {company_key}",
        )

    snapshot = await db.run_sync(lambda s: registry.status(s, company_key))
    started_at = snapshot.started_at.isoformat() if snapshot.started_at else None

    if wait:
        results = await run_in_threadpool(run_scrape_inline, company_key, body.source_url, started_at)
        records = await db.run_sync(lambda s: result_store.list_records(s, company_key))
        return ScrapeStartResponse(
            status=results["status"],
            company_key=company_key,
            message=results.get("error") or f"Scraped {results['jobs_found']} jobs",
            records=[JobRecordRead.model_validate(r) for r in records],
            inserted=results["jobs_new"],
            skipped=results["jobs_skipped"],
        )

    try:
        task_id = dispatch_scrape(company_key, body.source_url, started_at)
    except OperationalError as e:
        logger.error(f"Could not queue scrape for {company_key}: {e}")
        await db.run_sync(lambda s: registry.complete(
            s, company_key, RunOutcome(succeeded=False, error_message=f"Queue unavailable: {e}"),
        ))
        raise HTTPException(status_code=503, detail="Scrape queue unavailable")

    await db.run_sync(lambda s: registry.attach_task(s, company_key, task_id))
    return ScrapeStartResponse(
        status="started",
        company_key=company_key,
        message=f"Started scraping for {company_key}",
        task_id=task_id,
    )


@router.get("/scrape-status", response_model=ScrapeStatusRead)
async def get_scrape_status(
    company: str = Query(..., min_length=1, description="Company key"),
    db: AsyncSession = Depends(get_db),
):
    """Current run state. Runs past the max active duration read as inactive."""
    company_key = _company_key(company)
    snapshot = await db.run_sync(lambda s: registry.status(s, company_key))
    return ScrapeStatusRead.model_validate(snapshot)


@router.delete("/scrape-status", response_model=ScrapeClearResponse)
async def clear_scrape_status(
    company: str = Query(..., min_length=1, description="Company key"),
    db: AsyncSession = Depends(get_db),
):
    """Reset a company's run to idle. The worker, if still running, is not stopped."""
    company_key = _company_key(company)
    cleared = await db.run_sync(lambda s: registry.clear(s, company_key))
    return ScrapeClearResponse(
        success=True,
        company_key=company_key,
        message=f"Cleared scraping status for {company_key}" if cleared else f"No run tracked for {company_key}",
    )


@router.get("/summary", response_model=CompanySummary)
async def get_summary(
    company: str = Query(..., min_length=1, description="Company key"),
    db: AsyncSession = Depends(get_db),
):
    """Imported records and salary/skill statistics for a company."""
    company_key = _company_key(company)
    summary = await db.run_sync(lambda s: result_store.summarize(s, company_key))
    return CompanySummary(
        company_key=company_key,
        record_count=summary["record_count"],
        jobs_with_salary=summary["jobs_with_salary"],
        highest_paying_jobs=[JobRecordRead.model_validate(r) for r in summary["highest_paying_jobs"]],
        most_common_skills=[SkillCount(**s) for s in summary["most_common_skills"]],
        records=[JobRecordRead.model_validate(r) for r in summary["records"]],
    )
