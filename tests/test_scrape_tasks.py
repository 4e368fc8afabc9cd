from datetime import datetime, timedelta, timezone

from aijobs.models.scrape_run import RUN_ACTIVE, RUN_COMPLETED, RUN_FAILED, RUN_IDLE, ScrapeRun
from aijobs.services import result_store
from aijobs.services.extraction import ExtractionResult
from aijobs.services.run_registry import RunRegistry
from aijobs.tasks import maintenance_tasks
from aijobs.tasks.scrape_tasks import run_scrape

URL = "https://openai.com/careers/search/"


def test_scrape_openai_completes_with_records(db, offline_extract):
    registry = RunRegistry()
    registry.start(db, "openai", URL)

    results = run_scrape(db, "openai", URL, registry=registry, extractor=offline_extract)

    assert results["status"] == "completed"
    assert results["used_fallback"] is True
    assert results["jobs_new"] == 5
    assert result_store.count_records(db, "openai") >= 1

    snapshot = registry.status(db, "openai")
    assert snapshot.is_active is False
    assert snapshot.status == RUN_COMPLETED
    assert snapshot.jobs_found == 5


def test_rescrape_skips_known_records(db, offline_extract):
    registry = RunRegistry()
    registry.start(db, "openai", URL)
    run_scrape(db, "openai", URL, registry=registry, extractor=offline_extract)
    registry.start(db, "openai", URL)

    results = run_scrape(db, "openai", URL, registry=registry, extractor=offline_extract)

    assert (results["jobs_new"], results["jobs_skipped"]) == (0, 5)
    assert result_store.count_records(db) == 5


def test_zero_usable_records_fails_the_run(db):
    registry = RunRegistry()
    registry.start(db, "openai", URL)

    results = run_scrape(
        db, "openai", URL,
        registry=registry,
        extractor=lambda url: ExtractionResult(records=[{"company": "OpenAI"}], error="parse failed"),
    )

    assert results["status"] == "failed"
    snapshot = registry.status(db, "openai")
    assert snapshot.status == RUN_FAILED
    assert snapshot.error_message == "parse failed"


def test_worker_exception_fails_the_run(db):
    registry = RunRegistry()
    registry.start(db, "openai", URL)

    def explode(url):
        raise RuntimeError("worker crashed")

    results = run_scrape(db, "openai", URL, registry=registry, extractor=explode)

    assert results["status"] == "failed"
    assert registry.status(db, "openai").error_message == "worker crashed"


def test_worker_finishing_after_reset_leaves_run_idle(db, offline_extract):
    registry = RunRegistry()
    registry.start(db, "openai", URL)
    started_at = registry.status(db, "openai").started_at
    registry.clear(db, "openai")

    results = run_scrape(db, "openai", URL, registry=registry, started_at=started_at, extractor=offline_extract)

    # Results are still written, the registry is not re-activated
    assert results["status"] == "completed"
    assert result_store.count_records(db, "openai") == 5
    assert registry.status(db, "openai").status == RUN_IDLE


def test_expire_stale_runs_task(db):
    now = datetime.now(timezone.utc)
    db.add_all([
        ScrapeRun(company_key="openai", status=RUN_ACTIVE, source_url=URL, started_at=now - timedelta(minutes=45)),
        ScrapeRun(company_key="cohere", status=RUN_ACTIVE, source_url=URL, started_at=now),
    ])
    db.commit()

    assert maintenance_tasks.expire_stale_runs() == {"expired": 1}

    statuses = {r.company_key: r.status for r in db.query(ScrapeRun).populate_existing()}
    assert statuses == {"openai": RUN_FAILED, "cohere": RUN_ACTIVE}


def test_clean_duplicate_jobs_task(db):
    result_store.import_records(db, [
        {"title": "ML Engineer", "company": "Cohere", "location": "Toronto"},
        {"title": "ml engineer", "company": "cohere", "location": "Remote"},
    ])

    assert maintenance_tasks.clean_duplicate_jobs() == {"removed_count": 1}
    assert result_store.count_records(db) == 1
