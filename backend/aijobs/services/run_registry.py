"""Scrape run registry: server-side tracker of run status, keyed by company.

All transitions are conditional UPDATEs on the ``scrape_runs`` row so two
near-simultaneous starts for the same company cannot both win. Expected races
are reported through return values; nothing here raises for them.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from aijobs.config import get_settings
from aijobs.models.base import insert_ignoring_conflicts
from aijobs.models.scrape_run import (
    ScrapeRun,
    RUN_ACTIVE,
    RUN_COMPLETED,
    RUN_FAILED,
    RUN_IDLE,
)

logger = logging.getLogger(__name__)
settings = get_settings()


class StartOutcome(enum.Enum):
    STARTED = "started"
    ALREADY_ACTIVE = "already_active"


@dataclass
class RunOutcome:
    """What the worker reports when it finishes."""

    succeeded: bool
    jobs_found: int = 0
    jobs_new: int = 0
    jobs_skipped: int = 0
    error_message: str | None = None


@dataclass
class RunSnapshot:
    company_key: str
    status: str
    is_active: bool
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


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RunRegistry:

    def __init__(
        self,
        max_active: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_active = max_active or timedelta(minutes=settings.scrape_max_active_minutes)
        self.clock = clock

    def start(self, db: Session, company_key: str, source_url: str) -> StartOutcome:
        """Claim the company's run slot. Returns immediately; never waits for a worker."""
        now = self.clock()
        cutoff = now - self.max_active
        values = {
            "status": RUN_ACTIVE,
            "source_url": source_url,
            "started_at": now,
            "finished_at": None,
            "task_id": None,
            "jobs_found": 0,
            "jobs_new": 0,
            "jobs_skipped": 0,
            "error_message": None,
        }

        # Compare-and-swap: only a non-active (or abandoned) run can be claimed
        claimed = db.execute(
            update(ScrapeRun)
            .where(ScrapeRun.company_key == company_key)
            .where(or_(ScrapeRun.status != RUN_ACTIVE, ScrapeRun.started_at < cutoff))
            .values(**values, updated_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount

        if not claimed:
            stmt = insert_ignoring_conflicts(db, ScrapeRun, ["company_key"]).values(
                company_key=company_key, created_at=now, updated_at=now, **values,
            )
            claimed = db.execute(stmt).rowcount

        db.commit()

        if not claimed:
            logger.info(f"Scrape for {company_key} already active, not starting another")
            return StartOutcome.ALREADY_ACTIVE

        logger.info(f"Started scrape run for {company_key}: {source_url}")
        return StartOutcome.STARTED

    def attach_task(self, db: Session, company_key: str, task_id: str) -> None:
        db.execute(
            update(ScrapeRun)
            .where(ScrapeRun.company_key == company_key, ScrapeRun.status == RUN_ACTIVE)
            .values(task_id=task_id)
            .execution_options(synchronize_session=False)
        )
        db.commit()

    def status(self, db: Session, company_key: str) -> RunSnapshot:
        """Current state. An active run older than ``max_active`` is reported inactive."""
        run = self._load(db, company_key)
        if run is None:
            return RunSnapshot(
                company_key=company_key,
                status=RUN_IDLE,
                is_active=False,
                message="No active scraping",
            )

        if run.status == RUN_ACTIVE and self._is_expired(run):
            self._fail_expired(db, ScrapeRun.company_key == company_key)
            run = self._load(db, company_key)

        return self._snapshot(run)

    def complete(
        self,
        db: Session,
        company_key: str,
        outcome: RunOutcome,
        started_at: datetime | None = None,
    ) -> bool:
        """Move an active run to completed/failed.

        ``started_at`` pins the transition to the run the worker was spawned
        for; a run reset or restarted in the meantime is left untouched.
        """
        now = self.clock()
        stmt = (
            update(ScrapeRun)
            .where(ScrapeRun.company_key == company_key, ScrapeRun.status == RUN_ACTIVE)
            .values(
                status=RUN_COMPLETED if outcome.succeeded else RUN_FAILED,
                finished_at=now,
                updated_at=now,
                jobs_found=outcome.jobs_found,
                jobs_new=outcome.jobs_new,
                jobs_skipped=outcome.jobs_skipped,
                error_message=(outcome.error_message or "")[:2000] or None,
            )
            .execution_options(synchronize_session=False)
        )
        if started_at is not None:
            stmt = stmt.where(ScrapeRun.started_at == started_at)

        updated = db.execute(stmt).rowcount
        db.commit()

        if not updated:
            logger.warning(f"Run for {company_key} is no longer active, completion ignored")
            return False
        return True

    def clear(self, db: Session, company_key: str) -> bool:
        """Explicit reset to idle. Returns False when nothing was tracked."""
        now = self.clock()
        cleared = db.execute(
            update(ScrapeRun)
            .where(ScrapeRun.company_key == company_key)
            .values(status=RUN_IDLE, finished_at=now, updated_at=now, task_id=None)
            .execution_options(synchronize_session=False)
        ).rowcount
        db.commit()
        logger.info(f"Cleared scraping status for {company_key}")
        return bool(cleared)

    def expire_stale(self, db: Session) -> int:
        """Mark every abandoned active run as failed."""
        return self._fail_expired(db)

    def list_runs(self, db: Session) -> list[RunSnapshot]:
        runs = db.execute(
            select(ScrapeRun)
            .order_by(ScrapeRun.started_at.desc())
            .execution_options(populate_existing=True)
        ).scalars().all()
        return [self._snapshot(run) for run in runs]

    def _load(self, db: Session, company_key: str) -> ScrapeRun | None:
        return db.execute(
            select(ScrapeRun)
            .where(ScrapeRun.company_key == company_key)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _is_expired(self, run: ScrapeRun) -> bool:
        started = as_utc(run.started_at)
        return started is None or self.clock() - started > self.max_active

    def _fail_expired(self, db: Session, *criteria) -> int:
        now = self.clock()
        minutes = int(self.max_active.total_seconds() // 60)
        expired = db.execute(
            update(ScrapeRun)
            .where(ScrapeRun.status == RUN_ACTIVE, ScrapeRun.started_at < now - self.max_active, *criteria)
            .values(
                status=RUN_FAILED,
                finished_at=now,
                updated_at=now,
                error_message=f"Scraping timed out after {minutes} minutes",
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        db.commit()
        if expired:
            logger.warning(f"Expired {expired} abandoned scrape run(s)")
        return expired

    def _snapshot(self, run: ScrapeRun) -> RunSnapshot:
        started = as_utc(run.started_at)
        finished = as_utc(run.finished_at)
        is_active = run.status == RUN_ACTIVE and not self._is_expired(run)

        duration = None
        if started is not None:
            end = self.clock() if is_active or finished is None else finished
            duration = max((end - started).total_seconds(), 0.0)

        if is_active:
            message = "Scraping in progress"
        elif run.status == RUN_COMPLETED:
            message = f"Scraping completed with {run.jobs_found or 0} jobs"
        elif run.status == RUN_FAILED:
            message = run.error_message or "Scraping failed"
        else:
            message = "No active scraping"

        return RunSnapshot(
            company_key=run.company_key,
            status=RUN_FAILED if run.status == RUN_ACTIVE and not is_active else run.status,
            is_active=is_active,
            message=message,
            source_url=run.source_url,
            started_at=started,
            finished_at=finished,
            duration_seconds=duration,
            task_id=run.task_id,
            jobs_found=run.jobs_found or 0,
            jobs_new=run.jobs_new or 0,
            jobs_skipped=run.jobs_skipped or 0,
            error_message=run.error_message,
        )
