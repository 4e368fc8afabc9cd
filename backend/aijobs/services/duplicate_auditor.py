"""Duplicate auditor: groups stored jobs by company + normalized title."""

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from aijobs.models.job_record import JobRecord
from aijobs.services.identity import audit_key

logger = logging.getLogger(__name__)

DELETE_BATCH_SIZE = 50


@dataclass
class DuplicateGroup:
    normalized_title: str
    count: int
    # Retention order: earliest scraped_at first, ties by lowest id
    member_ids: list[str]


@dataclass
class CompanyAudit:
    company: str
    total_count: int
    unique_count: int
    duplicate_groups: list[DuplicateGroup] = field(default_factory=list)

    @property
    def duplicate_count(self) -> int:
        return self.total_count - self.unique_count


@dataclass
class AuditReport:
    total_records: int
    companies: list[CompanyAudit]

    @property
    def total_duplicates(self) -> int:
        return sum(c.duplicate_count for c in self.companies)

    @property
    def companies_with_duplicates(self) -> int:
        return sum(1 for c in self.companies if c.duplicate_count > 0)


@dataclass
class CleanResult:
    removed_count: int
    total_before: int
    total_after: int


def audit(db: Session) -> AuditReport:
    """Read-only scan of every stored record."""
    rows = db.execute(
        select(JobRecord.id, JobRecord.company, JobRecord.title)
        .order_by(JobRecord.scraped_at.asc(), JobRecord.id.asc())
    ).all()

    # company -> normalized title -> ids, insertion order preserved
    grouped: dict[str, dict[str, list[str]]] = {}
    for row in rows:
        company, title = audit_key(row.company, row.title)
        grouped.setdefault(company, {}).setdefault(title, []).append(row.id)

    companies = []
    for company, titles in grouped.items():
        groups = [
            DuplicateGroup(normalized_title=title, count=len(ids), member_ids=ids)
            for title, ids in titles.items()
            if len(ids) > 1
        ]
        groups.sort(key=lambda g: (-g.count, g.normalized_title))
        companies.append(CompanyAudit(
            company=company or "unknown",
            total_count=sum(len(ids) for ids in titles.values()),
            unique_count=len(titles),
            duplicate_groups=groups,
        ))

    companies.sort(key=lambda c: (-c.total_count, c.company))
    return AuditReport(total_records=len(rows), companies=companies)


def clean(db: Session) -> CleanResult:
    """Collapse every duplicate group from a fresh audit to its first member."""
    report = audit(db)
    doomed = [
        member_id
        for company in report.companies
        for group in company.duplicate_groups
        for member_id in group.member_ids[1:]
    ]

    removed = 0
    for i in range(0, len(doomed), DELETE_BATCH_SIZE):
        batch = doomed[i:i + DELETE_BATCH_SIZE]
        removed += db.execute(
            delete(JobRecord)
            .where(JobRecord.id.in_(batch))
            .execution_options(synchronize_session=False)
        ).rowcount
        db.commit()

    if removed:
        logger.info(f"Cleaned {removed} duplicate jobs")
    return CleanResult(
        removed_count=removed,
        total_before=report.total_records,
        total_after=report.total_records - removed,
    )
