"""Base scraper abstract class."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import httpx

from aijobs.config import get_settings
from aijobs.services.enrichment import LLMEnricher

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def scrape_client() -> httpx.Client:
    return httpx.Client(
        timeout=settings.scrape_timeout,
        follow_redirects=True,
        headers=DEFAULT_HEADERS,
    )


class ScraperError(Exception):
    """Raised when a career page cannot be fetched or parsed."""


class BaseScraper(ABC):
    """Abstract base class for all platform scrapers.

    Subclasses must implement:
        scrape() -> list[dict]: fetch raw job data from the platform
        normalize(raw) -> dict: convert platform-specific fields to standard schema
    """

    platform: str = "unknown"

    def __init__(
        self,
        source_url: str,
        company: str,
        client: httpx.Client | None = None,
        enricher: LLMEnricher | None = None,
        max_jobs: int | None = None,
    ):
        self.source_url = source_url
        self.company = company
        self.client = client or scrape_client()
        self.enricher = enricher
        self.max_jobs = max_jobs or settings.scrape_max_jobs

    @abstractmethod
    def scrape(self) -> list[dict]:
        """Fetch raw job listings from the platform. Returns list of raw dicts."""
        ...

    @abstractmethod
    def normalize(self, raw: dict) -> dict:
        """Normalize a raw job dict to standard schema fields.

        Must return a dict with at least:
            - title (str)
            - source_url (str)

        Optional fields:
            - location, department, salary_min, salary_max, salary_text
            - skills (list[str]), description
        """
        ...

    def posting_text(self, raw: dict) -> str:
        """Plain text handed to the LLM enricher. Platforms with descriptions override."""
        return ""

    def run(self) -> list[dict[str, Any]]:
        """Fetch and normalize. Fetch errors raise ScraperError; bad listings are skipped."""
        try:
            raw_listings = self.scrape()
        except httpx.HTTPError as e:
            raise ScraperError(f"Failed to fetch {self.source_url}: {e}") from e
        logger.info(f"[{self.platform}/{self.company}] Fetched {len(raw_listings)} raw listings")

        jobs = []
        scraped_at = datetime.now(timezone.utc).isoformat()
        for raw in raw_listings[: self.max_jobs]:
            try:
                job = self.normalize(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"[{self.platform}/{self.company}] Failed to process listing: {e}")
                continue

            job.setdefault("company", self.company)
            job.setdefault("scraped_at", scraped_at)
            if self.enricher is not None and self.enricher.enabled:
                job = self.enricher.enrich(job, self.posting_text(raw))
            jobs.append(job)

        return jobs
