"""Client-side scrape run controller.

Drives one company's run through idle -> starting -> polling -> done/failed.
The client's belief that a run is in progress survives restarts through
``RunStateStorage``; on construction that belief is reconciled (stale state
older than the TTL is discarded, fresh state resumes polling).

Start and reset failures are fatal and surfaced. Polling errors are logged
and retried until the poll ceiling is hit.
"""

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from aijobs.client.api_client import NetworkError, ScrapeApiClient
from aijobs.client.storage import (
    ClientRunState,
    RunStateStorage,
    result_key,
    run_state_key,
)
from aijobs.config import get_settings
from aijobs.services.identity import company_key_for, company_key_from_url
from aijobs.services.run_registry import utcnow

logger = logging.getLogger(__name__)
settings = get_settings()


class ControllerState(enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    POLLING = "polling"
    DONE = "done"
    FAILED = "failed"


class RunErrorKind(enum.Enum):
    WORKER_FAILURE = "worker_failure"
    TIMEOUT = "timeout"
    NETWORK = "network"


class RunError(Exception):
    def __init__(self, kind: RunErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


@dataclass
class RunResult:
    """Completed run as seen by the client, cached per company."""

    company_key: str
    record_count: int
    jobs_with_salary: int = 0
    records: list[dict[str, Any]] = field(default_factory=list)
    most_common_skills: list[dict[str, Any]] = field(default_factory=list)
    completed_at: str | None = None

    @classmethod
    def from_summary(cls, company_key: str, summary: dict[str, Any], completed_at: str | None = None) -> "RunResult":
        return cls(
            company_key=company_key,
            record_count=summary.get("record_count", 0),
            jobs_with_salary=summary.get("jobs_with_salary", 0),
            records=summary.get("records", []),
            most_common_skills=summary.get("most_common_skills", []),
            completed_at=completed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "company_key": self.company_key,
            "record_count": self.record_count,
            "jobs_with_salary": self.jobs_with_salary,
            "records": self.records,
            "most_common_skills": self.most_common_skills,
            "completed_at": self.completed_at,
        }


class ScrapeRunController:

    def __init__(
        self,
        api: ScrapeApiClient,
        storage: RunStateStorage,
        company_key: str | None = None,
        poll_interval: float | None = None,
        max_polls: int | None = None,
        state_ttl: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api = api
        self.storage = storage
        self.poll_interval = settings.client_poll_interval_seconds if poll_interval is None else poll_interval
        self.max_polls = settings.client_max_polls if max_polls is None else max_polls
        self.state_ttl = (
            timedelta(minutes=settings.client_state_ttl_minutes) if state_ttl is None else state_ttl
        )
        self.clock = clock
        self.sleep = sleep

        self.state = ControllerState.IDLE
        self.company_key = company_key_for(company_key) if company_key else None
        self.source_url: str | None = None
        self.error: RunError | None = None
        self.result: RunResult | None = None

        self._lock = threading.Lock()
        self._cancelled = threading.Event()

        if self.company_key:
            self.reconcile()

    # -- transitions ------------------------------------------------------

    def reconcile(self) -> ControllerState:
        """Resume or discard persisted run state for the current company."""
        if not self.company_key:
            return self.state

        data = self.storage.get(run_state_key(self.company_key))
        if data is None:
            self.result = self.cached_result()
            return self.state

        try:
            run_state = ClientRunState.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed run state for {self.company_key}: {e}")
            self._discard_run_state()
            return self.state

        if not run_state.is_active or run_state.is_stale(self.clock(), self.state_ttl):
            logger.info(f"Discarding stale run state for {self.company_key} from {run_state.timestamp.isoformat()}")
            self._discard_run_state()
            self.result = self.cached_result()
            return self.state

        with self._lock:
            self.source_url = run_state.source_url
            self.state = ControllerState.POLLING
            self._cancelled.clear()
        logger.info(f"Resuming poll for in-progress run of {self.company_key}")
        return self.state

    def start(self, source_url: str, company: str | None = None) -> ControllerState:
        """Ask the server to start a run. Ignored while one is already starting or polling."""
        with self._lock:
            if self.state in (ControllerState.STARTING, ControllerState.POLLING):
                logger.info(f"Run for {self.company_key} already {self.state.value}, ignoring start")
                return self.state

            company_key = company_key_for(company) if company else company_key_from_url(source_url)
            if not company_key:
                raise ValueError(f"Could not derive a company from {source_url!r}")

            self.company_key = company_key
            self.source_url = source_url
            self.error = None
            self.result = None
            self.state = ControllerState.STARTING
            self._cancelled.clear()

        # Persisted before the request so a restart mid-request still resumes
        self._save_run_state()

        try:
            reply = self.api.start_scrape(source_url, company=company_key)
        except NetworkError as e:
            logger.error(f"Failed to start scrape for {company_key}: {e}")
            self._discard_run_state()
            return self._fail(RunErrorKind.NETWORK, str(e))

        status = reply.get("status")
        if status == "completed":
            # Synchronous server: records arrive in the reply
            records = reply.get("records") or []
            return self._finish({"record_count": len(records), "records": records})
        if status == "failed":
            self._discard_run_state()
            return self._fail(RunErrorKind.WORKER_FAILURE, reply.get("message") or "Scraping failed")

        with self._lock:
            if self._cancelled.is_set():
                return self.state
            self.state = ControllerState.POLLING

        if status == "already_active":
            logger.info(f"Scrape for {company_key} already running on the server, polling it")
        return self.state

    def poll(self) -> ControllerState:
        """Poll status until the run settles, the ceiling is hit, or a reset cancels it."""
        if self.state is not ControllerState.POLLING:
            return self.state

        company_key = self.company_key
        for tick in range(1, self.max_polls + 1):
            self.sleep(self.poll_interval)
            if self._cancelled.is_set():
                return self.state

            try:
                status = self.api.get_status(company_key)
                if status.get("is_active"):
                    continue
                if status.get("status") == "failed":
                    self._discard_run_state()
                    return self._fail(
                        RunErrorKind.WORKER_FAILURE,
                        status.get("error_message") or status.get("message") or "Scraping failed",
                    )
                summary = self.api.get_summary(company_key)
            except NetworkError as e:
                logger.warning(f"Poll {tick}/{self.max_polls} for {company_key} failed: {e}")
                continue

            if summary.get("record_count"):
                return self._finish(summary)

        logger.warning(f"Gave up on {company_key} after {self.max_polls} polls")
        self._discard_run_state()
        return self._fail(
            RunErrorKind.TIMEOUT,
            f"Scraping did not finish after {self.max_polls} status checks",
        )

    def run(self, source_url: str, company: str | None = None) -> ControllerState:
        """start() then poll() to completion."""
        self.start(source_url, company=company)
        return self.poll()

    def reset(self) -> ControllerState:
        """Cancel polling, clear the server run and every piece of local state."""
        self._cancelled.set()
        with self._lock:
            company_key = self.company_key
            self.state = ControllerState.IDLE
            self.error = None
            self.result = None

        if not company_key:
            return self.state

        self._discard_run_state()
        self.storage.remove(result_key(company_key))

        try:
            self.api.clear_status(company_key)
        except NetworkError as e:
            logger.error(f"Failed to clear server status for {company_key}: {e}")
            with self._lock:
                self.error = RunError(RunErrorKind.NETWORK, str(e))
                self.state = ControllerState.FAILED
        return self.state

    def cached_result(self) -> RunResult | None:
        if not self.company_key:
            return None
        data = self.storage.get(result_key(self.company_key))
        if data is None:
            return None
        return RunResult.from_summary(self.company_key, data, completed_at=data.get("completed_at"))

    # -- helpers ----------------------------------------------------------

    def _finish(self, summary: dict[str, Any]) -> ControllerState:
        result = RunResult.from_summary(self.company_key, summary, completed_at=self.clock().isoformat())
        with self._lock:
            if self._cancelled.is_set():
                return self.state
            self.result = result
            self.state = ControllerState.DONE
        self.storage.put(result_key(self.company_key), result.to_dict())
        self._discard_run_state()
        logger.info(f"Scrape for {self.company_key} done with {result.record_count} records")
        return self.state

    def _fail(self, kind: RunErrorKind, message: str) -> ControllerState:
        with self._lock:
            if self._cancelled.is_set():
                return self.state
            self.error = RunError(kind, message)
            self.state = ControllerState.FAILED
        logger.error(f"Scrape for {self.company_key} failed: {self.error}")
        return self.state

    def _save_run_state(self) -> None:
        run_state = ClientRunState(
            is_active=True,
            timestamp=self.clock(),
            company_key=self.company_key,
            source_url=self.source_url,
        )
        self.storage.put(run_state_key(self.company_key), run_state.to_dict())

    def _discard_run_state(self) -> None:
        if self.company_key:
            self.storage.remove(run_state_key(self.company_key))
