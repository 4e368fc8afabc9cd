import os
from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from kombu.exceptions import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from aijobs.api.v1 import router as api_v1_router
from aijobs.api.v1 import scrape
from aijobs.client.api_client import ScrapeApiClient
from aijobs.client.controller import ControllerState, ScrapeRunController
from aijobs.client.storage import RunStateStorage
from aijobs.models.base import SyncSessionLocal, get_db
from aijobs.tasks.scrape_tasks import run_scrape

URL = "https://openai.com/careers/search/"


def _client() -> TestClient:
    engine = create_async_engine(os.environ["DATABASE_URL"], poolclass=NullPool)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = FastAPI()
    app.include_router(api_v1_router)
    app.dependency_overrides[get_db] = _get_db
    return TestClient(app)


@pytest.fixture
def queued(monkeypatch):
    """Capture dispatched scrapes instead of sending them to the broker."""
    calls = []

    def _dispatch(company_key, source_url, run_started_at):
        calls.append((company_key, source_url, run_started_at))
        return f"task-{len(calls)}"

    monkeypatch.setattr(scrape, "dispatch_scrape", _dispatch)
    return calls


@pytest.fixture
def worker_inline(monkeypatch, offline_extract):
    """Run the worker synchronously, offline, whenever a scrape is dispatched."""
    def _run(company_key, source_url, run_started_at):
        db = SyncSessionLocal()
        try:
            started_at = datetime.fromisoformat(run_started_at) if run_started_at else None
            return run_scrape(db, company_key, source_url, started_at=started_at, extractor=offline_extract)
        finally:
            db.close()

    def _dispatch(company_key, source_url, run_started_at):
        _run(company_key, source_url, run_started_at)
        return "inline-task"

    monkeypatch.setattr(scrape, "dispatch_scrape", _dispatch)
    monkeypatch.setattr(scrape, "run_scrape_inline", _run)


def test_start_scrape_is_single_flight(queued):
    client = _client()

    first = client.post("/api/v1/scrape", json={"source_url": URL})
    second = client.post("/api/v1/scrape", json={"source_url": URL})

    assert first.status_code == 200
    assert first.json()["status"] == "started"
    assert first.json()["company_key"] == "openai"
    assert first.json()["task_id"] == "task-1"
    assert second.json()["status"] == "already_active"
    assert len(queued) == 1

    status = client.get("/api/v1/scrape-status", params={"company": "openai"}).json()
    assert status["is_active"] is True
    assert status["task_id"] == "task-1"
    assert status["source_url"] == URL


def test_reset_makes_status_inactive(queued):
    client = _client()
    client.post("/api/v1/scrape", json={"source_url": URL})

    response = client.delete("/api/v1/scrape-status", params={"company": "openai"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    status = client.get("/api/v1/scrape-status", params={"company": "openai"}).json()
    assert status["is_active"] is False
    assert status["status"] == "idle"
    assert client.post("/api/v1/scrape", json={"source_url": URL}).json()["status"] == "started"


def test_status_of_unknown_company():
    client = _client()

    response = client.get("/api/v1/scrape-status", params={"company": "nobody"})

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    assert response.json()["message"] == "No active scraping"


def test_status_requires_company():
    client = _client()

    assert client.get("/api/v1/scrape-status").status_code == 422
    assert client.get("/api/v1/scrape-status", params={"company": "!!"}).status_code == 400


def test_queue_outage_fails_run(monkeypatch):
    def _down(*args):
        raise OperationalError("Connection refused")

    monkeypatch.setattr(scrape, "dispatch_scrape", _down)
    client = _client()

    response = client.post("/api/v1/scrape", json={"source_url": URL})

    assert response.status_code == 503
    status = client.get("/api/v1/scrape-status", params={"company": "openai"}).json()
    assert status["is_active"] is False
    assert status["status"] == "failed"


def test_synchronous_scrape_returns_records(worker_inline):
    client = _client()

    response = client.post("/api/v1/scrape", params={"wait": "true"}, json={"source_url": URL, "company": "OpenAI"})

    body = response.json()
    assert body["status"] == "completed"
    assert body["inserted"] == 5
    assert len(body["records"]) == 5
    status = client.get("/api/v1/scrape-status", params={"company": "openai"}).json()
    assert status["status"] == "completed"


def test_summary_after_scrape(worker_inline):
    client = _client()
    client.post("/api/v1/scrape", json={"source_url": URL})

    summary = client.get("/api/v1/summary", params={"company": "openai"}).json()

    assert summary["record_count"] == 5
    assert summary["jobs_with_salary"] == 5
    assert summary["highest_paying_jobs"][0]["salary_max"] == 600
    assert summary["most_common_skills"][0] == {"skill": "Python", "count": 5}


def test_controller_against_api(worker_inline, tmp_path):
    client = _client()
    controller = ScrapeRunController(
        ScrapeApiClient(client=client),
        RunStateStorage(tmp_path),
        sleep=lambda seconds: None,
    )

    controller.start(URL)

    assert controller.poll() is ControllerState.DONE
    assert controller.result.record_count == 5

    controller.reset()
    assert controller.state is ControllerState.IDLE
    status = client.get("/api/v1/scrape-status", params={"company": "openai"}).json()
    assert status["is_active"] is False


def test_import_twice_skips_everything():
    client = _client()
    records = [
        {"title": "Research Engineer", "company": "OpenAI", "location": "SF", "salary": "$300K - $400K"},
        {"title": "Data Scientist", "company": "OpenAI", "location": "SF", "skills": "Python, SQL"},
    ]

    first = client.post("/api/v1/jobs/import", json={"records": records}).json()
    second = client.post("/api/v1/jobs/import", json={"records": records}).json()

    assert (first["inserted"], first["skipped"], first["total"]) == (2, 0, 2)
    assert (second["inserted"], second["skipped"]) == (0, 2)

    jobs = client.get("/api/v1/jobs", params={"company": "OpenAI"}).json()
    assert len(jobs) == 2


def test_duplicate_audit_and_clean():
    client = _client()
    client.post("/api/v1/jobs/import", json={"records": [
        {"title": "Software Engineer", "company": "OpenAI", "location": "SF", "scraped_at": "2026-03-01T00:00:00Z"},
        {"title": "software engineer", "company": "openai", "location": "Remote", "scraped_at": "2026-03-02T00:00:00Z"},
    ]})

    report = client.get("/api/v1/jobs/duplicates").json()
    assert report["total_duplicates"] == 1
    assert report["companies"][0]["duplicate_groups"][0]["count"] == 2

    assert client.post("/api/v1/jobs/clean-duplicates").json()["removed_count"] == 1
    assert client.post("/api/v1/jobs/clean-duplicates").json()["removed_count"] == 0


def test_delete_and_clear_jobs():
    client = _client()
    client.post("/api/v1/jobs/import", json={"records": [
        {"title": "Research Engineer", "company": "OpenAI"},
        {"title": "Research Engineer", "company": "Anthropic"},
    ]})
    job_id = client.get("/api/v1/jobs", params={"company": "anthropic"}).json()[0]["id"]

    assert client.delete(f"/api/v1/jobs/{job_id}").status_code == 200
    assert client.delete(f"/api/v1/jobs/{job_id}").status_code == 404

    cleared = client.delete("/api/v1/jobs/clear-all", params={"company": "openai"}).json()
    assert cleared == {"deleted_count": 1, "company_key": "openai"}


def test_list_runs(queued):
    client = _client()
    client.post("/api/v1/scrape", json={"source_url": URL})
    client.post("/api/v1/scrape", json={"source_url": "https://boards.greenhouse.io/anthropic"})
    client.delete("/api/v1/scrape-status", params={"company": "openai"})

    runs = client.get("/api/v1/runs").json()
    active = client.get("/api/v1/runs", params={"active_only": "true"}).json()

    assert {r["company_key"] for r in runs} == {"openai", "anthropic"}
    assert [r["company_key"] for r in active] == ["anthropic"]
