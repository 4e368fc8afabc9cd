import os
import tempfile
from pathlib import Path

# Settings are cached on first import, so the test database must be chosen first.
_TEST_DIR = Path(tempfile.mkdtemp(prefix="aijobs-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'aijobs.db'}"
os.environ["LLM_API_KEY"] = ""
os.environ["CLIENT_STATE_DIR"] = str(_TEST_DIR / "client-state")
os.environ["SCRAPE_REQUEST_DELAY"] = "0"

import httpx
import pytest

from aijobs.models.base import Base, SyncSessionLocal, sync_engine
from aijobs.models.job_record import JobRecord  # noqa: F401
from aijobs.models.scrape_run import ScrapeRun  # noqa: F401
from aijobs.services.enrichment import LLMEnricher
from aijobs.services.extraction import extract


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(sync_engine)
    yield
    Base.metadata.drop_all(sync_engine)


@pytest.fixture
def db():
    session = SyncSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network disabled in tests", request=request)


@pytest.fixture
def offline_client():
    client = httpx.Client(transport=httpx.MockTransport(_unreachable))
    yield client
    client.close()


@pytest.fixture
def offline_extract(offline_client):
    """Extraction with every outbound request failing, so the fallback set is used."""
    def _extract(source_url: str):
        return extract(source_url, client=offline_client, enricher=LLMEnricher(api_key=""))
    return _extract
