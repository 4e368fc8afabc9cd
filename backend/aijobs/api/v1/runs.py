"""Scrape run API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aijobs.models.base import get_db
from aijobs.api.v1.scrape import registry
from aijobs.models.scrape_run import RUN_STATUSES
from aijobs.schemas.scrape_run import ScrapeStatusRead

router = APIRouter(prefix="/runs", tags=["runs"])


@router.get("", response_model=list[ScrapeStatusRead])
async def list_runs(
    db: AsyncSession = Depends(get_db),
    status: str | None = Query(None, description="Filter by status"),
    active_only: bool = Query(False, description="Only return active runs"),
):
    """List tracked runs, most recently started first."""
    if status and status not in RUN_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")

    runs = await db.run_sync(registry.list_runs)

    if status:
        runs = [run for run in runs if run.status == status]
    if active_only:
        runs = [run for run in runs if run.is_active]

    return [ScrapeStatusRead.model_validate(run) for run in runs]
