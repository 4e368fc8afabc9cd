from datetime import datetime, timedelta, timezone

import httpx
import pytest

from aijobs.client.api_client import NetworkError, ScrapeApiClient
from aijobs.client.controller import ControllerState, RunErrorKind, ScrapeRunController
from aijobs.client.storage import ClientRunState, RunStateStorage, result_key, run_state_key

URL = "https://openai.com/careers/search/"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

ACTIVE = {"company_key": "openai", "is_active": True, "status": "active", "message": "Scraping in progress"}
COMPLETED = {"company_key": "openai", "is_active": False, "status": "completed", "message": "Scraping completed with 2 jobs"}
SUMMARY = {
    "company_key": "openai",
    "record_count": 2,
    "jobs_with_salary": 1,
    "records": [{"title": "Research Engineer"}, {"title": "Data Scientist"}],
    "most_common_skills": [{"skill": "Python", "count": 2}],
}


class FakeApi:
    """Scripted stand-in for ScrapeApiClient. The last status reply repeats."""

    def __init__(self, start_reply=None, statuses=(ACTIVE,), summary=SUMMARY, clear_error=None):
        self.start_reply = start_reply or {"status": "started", "company_key": "openai", "message": "Started"}
        self.statuses = list(statuses)
        self.summary = summary
        self.clear_error = clear_error
        self.calls = []

    def start_scrape(self, source_url, company=None):
        self.calls.append(("start", company))
        if isinstance(self.start_reply, Exception):
            raise self.start_reply
        return self.start_reply

    def get_status(self, company_key):
        self.calls.append(("status", company_key))
        reply = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def get_summary(self, company_key):
        self.calls.append(("summary", company_key))
        return self.summary

    def clear_status(self, company_key):
        self.calls.append(("clear", company_key))
        if self.clear_error:
            raise self.clear_error
        return {"success": True}


@pytest.fixture
def storage(tmp_path):
    return RunStateStorage(tmp_path / "state")


def _controller(api, storage, company_key=None, **kwargs):
    kwargs.setdefault("sleep", lambda seconds: None)
    kwargs.setdefault("clock", lambda: NOW)
    return ScrapeRunController(api, storage, company_key=company_key, **kwargs)


def _persist(storage, timestamp):
    state = ClientRunState(is_active=True, timestamp=timestamp, company_key="openai", source_url=URL)
    storage.put(run_state_key("openai"), state.to_dict())


def test_start_then_poll_to_done(storage):
    api = FakeApi(statuses=[ACTIVE, ACTIVE, COMPLETED])
    controller = _controller(api, storage)

    assert controller.start(URL) is ControllerState.POLLING
    assert storage.get(run_state_key("openai"))["source_url"] == URL

    assert controller.poll() is ControllerState.DONE
    assert controller.result.record_count == 2
    assert [c[0] for c in api.calls] == ["start", "status", "status", "status", "summary"]
    assert storage.get(run_state_key("openai")) is None
    assert storage.get(result_key("openai"))["record_count"] == 2
    assert controller.cached_result().records == SUMMARY["records"]


def test_state_is_persisted_before_start_request(storage):
    seen = {}

    class RecordingApi(FakeApi):
        def start_scrape(self, source_url, company=None):
            seen["state"] = storage.get(run_state_key("openai"))
            return super().start_scrape(source_url, company)

    _controller(RecordingApi(), storage).start(URL)

    assert seen["state"]["is_active"] is True
    assert seen["state"]["timestamp"] == NOW.isoformat()


def test_already_active_is_not_an_error(storage):
    api = FakeApi(start_reply={"status": "already_active", "company_key": "openai", "message": "busy"})
    controller = _controller(api, storage)

    assert controller.start(URL) is ControllerState.POLLING
    assert controller.error is None


def test_start_ignored_while_polling(storage):
    api = FakeApi()
    controller = _controller(api, storage)
    controller.start(URL)

    assert controller.start(URL) is ControllerState.POLLING
    assert [c for c in api.calls if c[0] == "start"] == [("start", "openai")]


def test_synchronous_completed_reply_goes_straight_to_done(storage):
    records = [{"title": "Research Engineer"}]
    api = FakeApi(start_reply={"status": "completed", "company_key": "openai", "message": "done", "records": records})
    controller = _controller(api, storage)

    assert controller.start(URL) is ControllerState.DONE
    assert controller.result.records == records
    assert controller.poll() is ControllerState.DONE
    assert [c[0] for c in api.calls] == ["start"]
    assert storage.get(run_state_key("openai")) is None


def test_start_network_error_discards_local_state(storage):
    api = FakeApi(start_reply=NetworkError("connection refused"))
    controller = _controller(api, storage)

    assert controller.start(URL) is ControllerState.FAILED
    assert controller.error.kind is RunErrorKind.NETWORK
    assert storage.get(run_state_key("openai")) is None


def test_worker_failure_surfaces(storage):
    failed = {"company_key": "openai", "is_active": False, "status": "failed", "message": "timeout", "error_message": "fetch timed out"}
    api = FakeApi(statuses=[ACTIVE, failed])
    controller = _controller(api, storage)
    controller.start(URL)

    assert controller.poll() is ControllerState.FAILED
    assert controller.error.kind is RunErrorKind.WORKER_FAILURE
    assert controller.error.message == "fetch timed out"
    assert storage.get(run_state_key("openai")) is None


def test_poll_network_errors_are_retried(storage):
    api = FakeApi(statuses=[NetworkError("blip"), NetworkError("blip"), COMPLETED])
    controller = _controller(api, storage)
    controller.start(URL)

    assert controller.poll() is ControllerState.DONE


def test_poll_ceiling_times_out_and_clears_state(storage):
    sleeps = []
    api = FakeApi(statuses=[ACTIVE])
    controller = _controller(api, storage, max_polls=3, poll_interval=5, sleep=sleeps.append)
    controller.start(URL)

    assert controller.poll() is ControllerState.FAILED
    assert controller.error.kind is RunErrorKind.TIMEOUT
    assert sleeps == [5, 5, 5]
    assert storage.get(run_state_key("openai")) is None


def test_zero_poll_ceiling_times_out_without_polling(storage):
    api = FakeApi()
    controller = _controller(api, storage, max_polls=0)
    controller.start(URL)

    assert controller.poll() is ControllerState.FAILED
    assert controller.error.kind is RunErrorKind.TIMEOUT
    assert [c[0] for c in api.calls] == ["start"]


def test_inactive_with_empty_summary_keeps_polling(storage):
    api = FakeApi(statuses=[COMPLETED], summary={"record_count": 0, "records": []})
    controller = _controller(api, storage, max_polls=2)
    controller.start(URL)

    assert controller.poll() is ControllerState.FAILED
    assert controller.error.kind is RunErrorKind.TIMEOUT


def test_reset_during_polling_returns_to_idle(storage):
    api = FakeApi(statuses=[ACTIVE])
    controller = None
    ticks = []

    def sleep(seconds):
        ticks.append(seconds)
        if len(ticks) == 2:
            controller.reset()

    controller = _controller(api, storage, sleep=sleep)
    controller.start(URL)

    assert controller.poll() is ControllerState.IDLE
    assert len(ticks) == 2
    assert ("clear", "openai") in api.calls
    assert storage.get(run_state_key("openai")) is None
    assert controller.error is None


def test_reset_discards_cached_result(storage):
    storage.put(result_key("openai"), {"record_count": 2})
    api = FakeApi()
    controller = _controller(api, storage, company_key="openai")

    assert controller.result.record_count == 2
    assert controller.reset() is ControllerState.IDLE
    assert controller.cached_result() is None


def test_reset_network_error_is_surfaced(storage):
    _persist(storage, NOW)
    api = FakeApi(clear_error=NetworkError("connection refused"))
    controller = _controller(api, storage, company_key="openai")

    assert controller.reset() is ControllerState.FAILED
    assert controller.error.kind is RunErrorKind.NETWORK
    assert storage.get(run_state_key("openai")) is None


def test_fresh_state_resumes_polling_without_start(storage):
    _persist(storage, NOW - timedelta(minutes=2))
    api = FakeApi(statuses=[COMPLETED])

    controller = _controller(api, storage, company_key="openai")

    assert controller.state is ControllerState.POLLING
    assert controller.poll() is ControllerState.DONE
    assert ("start", "openai") not in api.calls


def test_stale_state_is_discarded(storage):
    _persist(storage, NOW - timedelta(minutes=11))
    api = FakeApi()

    controller = _controller(api, storage, company_key="openai")

    assert controller.state is ControllerState.IDLE
    assert storage.get(run_state_key("openai")) is None
    assert api.calls == []


def test_zero_ttl_treats_saved_state_as_stale(storage):
    _persist(storage, NOW - timedelta(seconds=1))

    controller = _controller(FakeApi(), storage, company_key="openai", state_ttl=timedelta(0))

    assert controller.state is ControllerState.IDLE
    assert storage.get(run_state_key("openai")) is None


def test_corrupt_state_file_is_discarded(storage, tmp_path):
    storage.put(run_state_key("openai"), {"is_active": True})

    controller = _controller(FakeApi(), storage, company_key="openai")

    assert controller.state is ControllerState.IDLE
    assert storage.get(run_state_key("openai")) is None


def test_api_client_wraps_transport_and_status_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/scrape-status":
            return httpx.Response(500, json={"detail": "boom"})
        if request.url.path == "/api/v1/summary":
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"status": "started", "company_key": "openai"})

    api = ScrapeApiClient(client=httpx.Client(base_url="http://api.test", transport=httpx.MockTransport(handler)))

    assert api.start_scrape(URL, company="openai")["status"] == "started"
    with pytest.raises(NetworkError, match="500"):
        api.get_status("openai")
    with pytest.raises(NetworkError, match="refused"):
        api.get_summary("openai")
