"""API v1 router aggregation."""

from fastapi import APIRouter

from aijobs.api.v1.scrape import router as scrape_router
from aijobs.api.v1.jobs import router as jobs_router
from aijobs.api.v1.runs import router as runs_router

router = APIRouter(prefix="/api/v1")

router.include_router(scrape_router)
router.include_router(jobs_router)
router.include_router(runs_router)
