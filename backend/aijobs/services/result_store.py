"""Result store: persistent job records with dedup-on-write import."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from aijobs.models.base import insert_ignoring_conflicts
from aijobs.models.job_record import JobRecord
from aijobs.services.identity import company_key_for, record_id
from aijobs.services.job_text import extract_salary

logger = logging.getLogger(__name__)

TOP_PAYING_LIMIT = 20
TOP_SKILLS_LIMIT = 15


@dataclass
class ImportResult:
    inserted: int = 0
    skipped: int = 0
    invalid: int = 0
    inserted_ids: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.skipped + self.invalid


def _parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return round(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


def _parse_skills(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    skills = {str(s).strip() for s in value if s and str(s).strip()}
    return sorted(skills)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            logger.debug(f"Unparseable scraped_at {value!r}, using now")
    return datetime.now(timezone.utc)


def normalize_record(
    raw: dict[str, Any],
    company: str | None = None,
    company_key: str | None = None,
) -> dict[str, Any] | None:
    """Bring a loosely-shaped job dict into the canonical JobRecord columns.

    Accepts either numeric ``salary_min``/``salary_max`` or a free-text
    ``salary``, ``url`` or ``source_url``, and skills as a list or a
    comma-separated string. Any caller-supplied ``id`` is ignored.
    Returns None when title or company is missing.
    """
    title = (raw.get("title") or "").strip()
    company_name = (raw.get("company") or company or "").strip()
    if not title or not company_name:
        return None

    location = (raw.get("location") or "").strip() or None
    salary_min = _parse_int(raw.get("salary_min"))
    salary_max = _parse_int(raw.get("salary_max"))
    salary_text = raw.get("salary_text") or raw.get("salary")
    if salary_min is None and salary_max is None and isinstance(salary_text, str):
        _, salary_min, salary_max = extract_salary(salary_text)
    if salary_min is not None and salary_max is not None and salary_min > salary_max:
        salary_min, salary_max = salary_max, salary_min

    return {
        "id": record_id(company_name, title, location),
        "company": company_name,
        "company_key": company_key or company_key_for(company_name),
        "title": title,
        "location": location,
        "department": (raw.get("department") or "").strip() or None,
        "salary_min": salary_min,
        "salary_max": salary_max,
        "salary_text": salary_text[:255] if isinstance(salary_text, str) else None,
        "skills": _parse_skills(raw.get("skills")),
        "description": raw.get("description") or None,
        "source_url": raw.get("source_url") or raw.get("url"),
        "scraped_at": _parse_timestamp(raw.get("scraped_at")),
    }


def import_records(
    db: Session,
    records: Iterable[dict[str, Any]],
    company: str | None = None,
    company_key: str | None = None,
) -> ImportResult:
    """Insert records whose identity is new; skip the rest.

    The primary key on the derived id is the uniqueness constraint, so two
    imports racing for the same company cannot both insert a row.
    """
    result = ImportResult()
    stmt = insert_ignoring_conflicts(db, JobRecord, ["id"])

    for raw in records:
        values = normalize_record(raw, company=company, company_key=company_key)
        if values is None:
            result.invalid += 1
            logger.warning(f"Skipping job without title/company: {raw!r:.200}")
            continue

        if db.execute(stmt.values(**values)).rowcount:
            result.inserted += 1
            result.inserted_ids.append(values["id"])
        else:
            result.skipped += 1
            logger.debug(f"Skipping duplicate: {values['title']} at {values['company']}")

    db.commit()
    logger.info(f"Imported {result.inserted} new jobs, skipped {result.skipped} duplicates")
    return result


def list_records(db: Session, company_key: str | None = None) -> list[JobRecord]:
    query = select(JobRecord)
    if company_key:
        query = query.where(JobRecord.company_key == company_key)
    query = query.order_by(JobRecord.scraped_at.desc(), JobRecord.id)
    return list(db.execute(query).scalars().all())


def count_records(db: Session, company_key: str | None = None) -> int:
    query = select(func.count(JobRecord.id))
    if company_key:
        query = query.where(JobRecord.company_key == company_key)
    return db.execute(query).scalar() or 0


def clear_records(db: Session, company_key: str | None = None) -> int:
    stmt = delete(JobRecord)
    if company_key:
        stmt = stmt.where(JobRecord.company_key == company_key)
    deleted = db.execute(stmt.execution_options(synchronize_session=False)).rowcount
    db.commit()
    logger.info(f"Deleted {deleted} jobs" + (f" for {company_key}" if company_key else ""))
    return deleted


def delete_record(db: Session, record_id: str) -> bool:
    deleted = db.execute(
        delete(JobRecord)
        .where(JobRecord.id == record_id)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    return bool(deleted)


def summarize(db: Session, company_key: str) -> dict[str, Any]:
    """Record count, salary coverage, top payers and most common skills for a company."""
    records = list_records(db, company_key)

    with_salary = [r for r in records if r.salary_min or r.salary_max]
    highest_paying = sorted(
        (r for r in records if r.salary_max),
        key=lambda r: r.salary_max,
        reverse=True,
    )[:TOP_PAYING_LIMIT]

    skill_counts = Counter(skill for r in records for skill in (r.skills or []))
    most_common_skills = [
        {"skill": skill, "count": count}
        for skill, count in skill_counts.most_common(TOP_SKILLS_LIMIT)
    ]

    return {
        "company_key": company_key,
        "record_count": len(records),
        "jobs_with_salary": len(with_salary),
        "highest_paying_jobs": highest_paying,
        "most_common_skills": most_common_skills,
        "records": records,
    }
