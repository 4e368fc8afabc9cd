"""Pydantic schemas for scrape runs."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from aijobs.schemas.job_record import JobRecordRead


class ScrapeRequest(BaseModel):
    """Body of a start-scrape request."""

    source_url: str = Field(min_length=4)
    company: str | None = Field(None, description="Company key; derived from the URL when omitted")


class ScrapeStartResponse(BaseModel):
    """Start reply. ``completed`` only for synchronous (``wait=true``) requests."""

    status: Literal["started", "already_active", "completed", "failed"]
    company_key: str
    message: str
    task_id: str | None = None
    records: list[JobRecordRead] = []
    inserted: int = 0
    skipped: int = 0


class ScrapeStatusRead(BaseModel):
    """Registry view of one company's run."""

    model_config = ConfigDict(from_attributes=True)

    company_key: str
    is_active: bool
    status: str
    message: str
    source_url: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_seconds: float | None = None
    task_id: str | None = None
    jobs_found: int = 0
    jobs_new: int = 0
    jobs_skipped: int = 0
    error_message: str | None = None


class ScrapeClearResponse(BaseModel):
    success: bool
    company_key: str
    message: str
