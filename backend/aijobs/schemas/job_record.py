"""Pydantic schemas for job records and the duplicate audit."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class JobRecordRead(BaseModel):
    """Canonical job record output."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company: str
    company_key: str
    title: str
    location: str | None = None
    department: str | None = None
    salary_min: int | None = None
    salary_max: int | None = None
    salary_text: str | None = None
    skills: list[str] = []
    description: str | None = None
    source_url: str | None = None
    scraped_at: datetime


class JobImportRequest(BaseModel):
    """Loose wire shape: records may carry ``salary`` text, ``url``, string skills, etc."""

    records: list[dict[str, Any]]
    company: str | None = None


class JobImportResponse(BaseModel):
    inserted: int
    skipped: int
    invalid: int = 0
    total: int


class SkillCount(BaseModel):
    skill: str
    count: int


class CompanySummary(BaseModel):
    company_key: str
    record_count: int
    jobs_with_salary: int
    highest_paying_jobs: list[JobRecordRead]
    most_common_skills: list[SkillCount]
    records: list[JobRecordRead]


class DuplicateGroupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    normalized_title: str
    count: int
    member_ids: list[str]


class CompanyAuditRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    company: str
    total_count: int
    unique_count: int
    duplicate_count: int
    duplicate_groups: list[DuplicateGroupRead]


class AuditReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_records: int
    total_duplicates: int
    companies_with_duplicates: int
    companies: list[CompanyAuditRead]


class CleanDuplicatesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    removed_count: int
    total_before: int
    total_after: int


class ClearJobsResponse(BaseModel):
    deleted_count: int
    company_key: str | None = None
