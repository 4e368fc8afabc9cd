"""Pydantic schemas package."""

from aijobs.schemas.job_record import (
    JobRecordRead,
    JobImportRequest,
    JobImportResponse,
    SkillCount,
    CompanySummary,
    DuplicateGroupRead,
    CompanyAuditRead,
    AuditReportRead,
    CleanDuplicatesResponse,
    ClearJobsResponse,
)
from aijobs.schemas.scrape_run import (
    ScrapeRequest,
    ScrapeStartResponse,
    ScrapeStatusRead,
    ScrapeClearResponse,
)

__all__ = [
    # JobRecord
    "JobRecordRead",
    "JobImportRequest",
    "JobImportResponse",
    "SkillCount",
    "CompanySummary",
    # Duplicate audit
    "DuplicateGroupRead",
    "CompanyAuditRead",
    "AuditReportRead",
    "CleanDuplicatesResponse",
    "ClearJobsResponse",
    # ScrapeRun
    "ScrapeRequest",
    "ScrapeStartResponse",
    "ScrapeStatusRead",
    "ScrapeClearResponse",
]
