"""Job record API endpoints: list, import, duplicate audit/clean, clear."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aijobs.models.base import get_db
from aijobs.schemas.job_record import (
    AuditReportRead,
    CleanDuplicatesResponse,
    ClearJobsResponse,
    JobImportRequest,
    JobImportResponse,
    JobRecordRead,
)
from aijobs.services import duplicate_auditor, result_store
from aijobs.services.identity import company_key_for

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("", response_model=list[JobRecordRead])
async def list_jobs(
    db: AsyncSession = Depends(get_db),
    company: str | None = Query(None, description="Filter by company key"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List stored jobs, newest first."""
    company_key = company_key_for(company) if company else None
    records = await db.run_sync(lambda s: result_store.list_records(s, company_key))
    return [JobRecordRead.model_validate(r) for r in records[skip:skip + limit]]


@router.post("/import", response_model=JobImportResponse)
async def import_jobs(
    body: JobImportRequest,
    db: AsyncSession = Depends(get_db),
):
    """Bulk import. Records whose identity already exists are skipped."""
    result = await db.run_sync(lambda s: result_store.import_records(s, body.records, company=body.company))
    return JobImportResponse(
        inserted=result.inserted,
        skipped=result.skipped,
        invalid=result.invalid,
        total=result.total,
    )


@router.get("/duplicates", response_model=AuditReportRead)
async def check_duplicates(db: AsyncSession = Depends(get_db)):
    """Group stored jobs by company + normalized title and report the duplicates."""
    report = await db.run_sync(duplicate_auditor.audit)
    return AuditReportRead.model_validate(report)


@router.post("/clean-duplicates", response_model=CleanDuplicatesResponse)
async def clean_duplicates(db: AsyncSession = Depends(get_db)):
    """Keep the earliest-scraped member of every duplicate group, delete the rest."""
    result = await db.run_sync(duplicate_auditor.clean)
    return CleanDuplicatesResponse.model_validate(result)


@router.delete("/clear-all", response_model=ClearJobsResponse)
async def clear_all_jobs(
    db: AsyncSession = Depends(get_db),
    company: str | None = Query(None, description="Only clear this company"),
):
    """Delete every stored job, optionally scoped to one company."""
    company_key = company_key_for(company) if company else None
    deleted = await db.run_sync(lambda s: result_store.clear_records(s, company_key))
    return ClearJobsResponse(deleted_count=deleted, company_key=company_key)


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a single job."""
    deleted = await db.run_sync(lambda s: result_store.delete_record(s, job_id))
    if not deleted:
        raise HTTPException(status_code=404, detail="Job not found")
    return {"success": True, "id": job_id}
