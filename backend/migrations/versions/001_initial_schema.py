"""Initial schema: scrape_runs, job_records.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Scrape runs, one row per company
    op.create_table(
        "scrape_runs",
        sa.Column("company_key", sa.String(100), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="idle", index=True),
        sa.Column("source_url", sa.Text),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("finished_at", sa.DateTime(timezone=True)),
        sa.Column("task_id", sa.String(255)),
        sa.Column("jobs_found", sa.Integer, server_default=sa.text("0")),
        sa.Column("jobs_new", sa.Integer, server_default=sa.text("0")),
        sa.Column("jobs_skipped", sa.Integer, server_default=sa.text("0")),
        sa.Column("error_message", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Job records, keyed by the identity hash
    op.create_table(
        "job_records",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("company", sa.String(255), nullable=False),
        sa.Column("company_key", sa.String(100), nullable=False, index=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("location", sa.String(255)),
        sa.Column("department", sa.String(255)),
        sa.Column("salary_min", sa.Integer),
        sa.Column("salary_max", sa.Integer),
        sa.Column("salary_text", sa.String(255)),
        sa.Column("skills", sa.JSON, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("description", sa.Text),
        sa.Column("source_url", sa.Text),
        sa.Column("scraped_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_job_record_company_scraped", "job_records", ["company_key", "scraped_at"])


def downgrade() -> None:
    op.drop_index("idx_job_record_company_scraped", table_name="job_records")
    op.drop_table("job_records")
    op.drop_table("scrape_runs")
