"""Job record model: imported job postings."""

from sqlalchemy import Column, String, Integer, DateTime, Text, Index, JSON

from aijobs.models.base import Base, TimestampMixin


class JobRecord(TimestampMixin, Base):
    __tablename__ = "job_records"

    # sha256 of normalized (company, title, location); doubles as the import uniqueness key
    id = Column(String(64), primary_key=True)

    company = Column(String(255), nullable=False)
    company_key = Column(String(100), nullable=False, index=True)

    title = Column(Text, nullable=False)
    location = Column(String(255))
    department = Column(String(255))

    # Thousands of USD
    salary_min = Column(Integer)
    salary_max = Column(Integer)
    salary_text = Column(String(255))

    skills = Column(JSON, default=list, nullable=False)
    description = Column(Text)
    source_url = Column(Text)
    scraped_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_job_record_company_scraped", "company_key", "scraped_at"),
    )
