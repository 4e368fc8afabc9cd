"""Scrape run model: one tracked run per company."""

from sqlalchemy import Column, String, Integer, DateTime, Text

from aijobs.models.base import Base, TimestampMixin

RUN_IDLE = "idle"
RUN_ACTIVE = "active"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"

RUN_STATUSES = (RUN_IDLE, RUN_ACTIVE, RUN_COMPLETED, RUN_FAILED)


class ScrapeRun(TimestampMixin, Base):
    __tablename__ = "scrape_runs"

    company_key = Column(String(100), primary_key=True)

    status = Column(String(20), nullable=False, default=RUN_IDLE, index=True)  # idle, active, completed, failed
    source_url = Column(Text)
    started_at = Column(DateTime(timezone=True))
    finished_at = Column(DateTime(timezone=True))
    task_id = Column(String(255))

    jobs_found = Column(Integer, default=0)
    jobs_new = Column(Integer, default=0)
    jobs_skipped = Column(Integer, default=0)
    error_message = Column(Text)
