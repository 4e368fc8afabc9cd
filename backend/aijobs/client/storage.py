"""Durable client-side storage for run state and cached results.

One JSON document per string key, one file per key. Only the run controller
reads or writes these records.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def run_state_key(company_key: str) -> str:
    return f"scraping-in-progress:{company_key}"


def result_key(company_key: str) -> str:
    return f"scrape-result:{company_key}"


@dataclass
class ClientRunState:
    """The client's belief that a run is in progress."""

    is_active: bool
    timestamp: datetime
    company_key: str
    source_url: str

    def is_stale(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.timestamp > ttl

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_active": self.is_active,
            "timestamp": self.timestamp.isoformat(),
            "company_key": self.company_key,
            "source_url": self.source_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientRunState":
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            is_active=bool(data["is_active"]),
            timestamp=timestamp,
            company_key=data["company_key"],
            source_url=data["source_url"],
        )


class RunStateStorage:
    """Key/value store backed by a directory of JSON files."""

    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Discarding unreadable client state {path}: {e}")
            self.remove(key)
            return None

    def put(self, key: str, value: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, default=str), encoding="utf-8")
        os.replace(tmp, path)

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
